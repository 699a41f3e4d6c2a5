# Copyright 2024 The Pigweed Authors
#
# Licensed under the Apache License, Version 2.0 (the "License"); you may not
# use this file except in compliance with the License. You may obtain a copy of
# the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS, WITHOUT
# WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied. See the
# License for the specific language governing permissions and limitations under
# the License.
"""Tests for the SCALE codecs of the well-known types."""

import unittest

from parameterized import parameterized  # type: ignore

from pw_protobuf_scale import scale, well_known
from pw_protobuf_scale.well_known import (
    ListValue,
    NullValue,
    Struct,
    Value,
    Value_Kind,
)


class MessageTest(unittest.TestCase):
    """Tests the fixed-layout well-known messages."""

    def test_timestamp(self) -> None:
        timestamp = well_known.Timestamp(seconds=1, nanos=2)
        data = bytes.fromhex('0100000000000000 02000000')
        self.assertEqual(timestamp.encode(), data)
        self.assertEqual(well_known.Timestamp.decode(data), timestamp)

    def test_negative_duration(self) -> None:
        duration = well_known.Duration(seconds=-1, nanos=-5)
        data = bytes.fromhex('ffffffffffffffff fbffffff')
        self.assertEqual(duration.encode(), data)
        self.assertEqual(well_known.Duration.decode(data), duration)

    def test_empty(self) -> None:
        self.assertEqual(well_known.Empty().encode(), b'')
        with self.assertRaises(scale.DecodeError):
            well_known.Empty.decode(b'\x00')

    def test_field_mask(self) -> None:
        mask = well_known.FieldMask(paths=['a.b', 'c'])
        data = bytes.fromhex('08 0c612e62 0463')
        self.assertEqual(mask.encode(), data)
        self.assertEqual(well_known.FieldMask.decode(data), mask)

    def test_any(self) -> None:
        message = well_known.Any(type_url='t', value=b'\x01')
        data = bytes.fromhex('0474 0401')
        self.assertEqual(message.encode(), data)
        self.assertEqual(well_known.Any.decode(data), message)


class WrapperTest(unittest.TestCase):
    """Tests the wrapper messages."""

    @parameterized.expand(
        [
            ('double', well_known.DoubleValue, 1.5, '000000000000f83f'),
            ('float', well_known.FloatValue, 1.5, '0000c03f'),
            ('int64', well_known.Int64Value, -2, 'feffffffffffffff'),
            ('uint64', well_known.UInt64Value, 2**64 - 1, 'ff' * 8),
            ('int32', well_known.Int32Value, -1, 'ffffffff'),
            ('uint32', well_known.UInt32Value, 7, '07000000'),
            ('bool', well_known.BoolValue, True, '01'),
            ('string', well_known.StringValue, 'hi', '086869'),
            ('bytes', well_known.BytesValue, b'\x00', '0400'),
        ]
    )
    def test_value(self, _, wrapper, value, data_hex) -> None:
        message = wrapper(value=value)
        data = bytes.fromhex(data_hex)
        self.assertEqual(message.encode(), data)
        self.assertEqual(wrapper.decode(data), message)

    def test_default(self) -> None:
        self.assertEqual(well_known.Int32Value().value, 0)
        self.assertEqual(well_known.StringValue().encode(), b'\x00')

    def test_class_attributes(self) -> None:
        self.assertEqual(well_known.Int32Value.__name__, 'Int32Value')
        self.assertEqual(
            well_known.Int32Value.__module__, 'pw_protobuf_scale.well_known'
        )
        self.assertTrue(
            issubclass(well_known.BytesValue, scale.Message)
        )

    def test_out_of_range(self) -> None:
        with self.assertRaises(scale.EncodeError):
            well_known.UInt32Value(value=-1).encode()


class StructTest(unittest.TestCase):
    """Tests the recursive Struct, Value and ListValue messages."""

    def test_nested_values(self) -> None:
        struct = Struct(
            fields={
                'b': Value(kind=Value_Kind.NumberValue(1.5)),
                'a': Value(
                    kind=Value_Kind.ListValue(
                        ListValue(
                            values=[
                                Value(kind=Value_Kind.BoolValue(True)),
                                Value(),
                            ]
                        )
                    )
                ),
            }
        )
        data = bytes.fromhex(
            '08 0461 0106 08 010401 00 0462 0102 000000000000f83f'
        )
        self.assertEqual(struct.encode(), data)
        self.assertEqual(Struct.decode(data), struct)

    def test_null_value(self) -> None:
        value = Value(kind=Value_Kind.NullValue(NullValue.NULL_VALUE))
        data = bytes.fromhex('0101 00000000')
        self.assertEqual(value.encode(), data)

        decoded = Value.decode(data)
        self.assertEqual(decoded, value)
        assert isinstance(decoded.kind, Value_Kind.NullValue)
        self.assertIs(decoded.kind.value, NullValue.NULL_VALUE)

    def test_struct_value(self) -> None:
        value = Value(
            kind=Value_Kind.StructValue(
                Struct(fields={'x': Value(Value_Kind.StringValue('y'))})
            )
        )
        data = bytes.fromhex('0105 04 0478 0103 0479')
        self.assertEqual(value.encode(), data)
        self.assertEqual(Value.decode(data), value)

    def test_unsorted_keys_rejected(self) -> None:
        with self.assertRaises(scale.DecodeError):
            Struct.decode(bytes.fromhex('08 0462 00 0461 00'))

    def test_duplicate_keys_rejected(self) -> None:
        with self.assertRaises(scale.DecodeError):
            Struct.decode(bytes.fromhex('08 0461 00 0461 00'))

    def test_unknown_kind(self) -> None:
        with self.assertRaises(scale.DecodeError):
            Value.decode(b'\x01\x07')

    def test_invalid_variant(self) -> None:
        with self.assertRaises(scale.EncodeError):
            Value(kind=1.5).encode()  # type: ignore[arg-type]

    def test_deep_list(self) -> None:
        value = Value()
        for _ in range(2000):
            value = Value(
                kind=Value_Kind.ListValue(ListValue(values=[value]))
            )
        data = value.encode()
        self.assertEqual(data, b'\x01\x06\x04' * 2000 + b'\x00')

        depth = 0
        decoded = Value.decode(data)
        while isinstance(decoded.kind, Value_Kind.ListValue):
            (decoded,) = decoded.kind.value.values
            depth += 1
        self.assertEqual(depth, 2000)
        self.assertIsNone(decoded.kind)


if __name__ == '__main__':
    unittest.main()
