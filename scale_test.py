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
"""Tests the SCALE codec runtime."""

import math
import unittest

from parameterized import parameterized  # type: ignore

from pw_protobuf_scale import scale


def _encode(write, value) -> bytes:
    encoder = scale.Encoder()
    write(encoder, value)
    return encoder.data()


class CompactTest(unittest.TestCase):
    """Tests compact integers."""

    @parameterized.expand(
        [
            (0, '00'),
            (1, '04'),
            (63, 'fc'),
            (64, '0101'),
            (16383, 'fdff'),
            (16384, '02000100'),
            (2**30 - 1, 'feffffff'),
            (2**30, '0300000040'),
            (2**32 - 1, '03ffffffff'),
            (2**32, '070000000001'),
        ]
    )
    def test_encode_and_decode(self, value: int, encoded: str) -> None:
        data = bytes.fromhex(encoded)
        self.assertEqual(_encode(scale.Encoder.write_compact, value), data)

        decoder = scale.Decoder(data)
        self.assertEqual(decoder.read_compact(), value)
        decoder.finish()

    @parameterized.expand(
        [
            ('single_byte_value_in_two_bytes', '0500'),
            ('two_byte_value_in_four_bytes', '06000000'),
            ('four_byte_value_in_big_mode', '03ffffff3f'),
            ('big_mode_with_zero_top_byte', '070000000100'),
        ]
    )
    def test_non_canonical_is_rejected(self, _, encoded: str) -> None:
        with self.assertRaisesRegex(scale.DecodeError, 'Non-canonical'):
            scale.Decoder(bytes.fromhex(encoded)).read_compact()

    def test_negative_cannot_be_encoded(self) -> None:
        with self.assertRaises(scale.EncodeError):
            _encode(scale.Encoder.write_compact, -1)

    def test_too_large_cannot_be_encoded(self) -> None:
        with self.assertRaises(scale.EncodeError):
            _encode(scale.Encoder.write_compact, 2**536)


class FixedWidthTest(unittest.TestCase):
    """Tests fixed-width primitives."""

    @parameterized.expand(
        [
            ('bool', scale.Encoder.write_bool, 'read_bool', True, '01'),
            ('u8', scale.Encoder.write_u8, 'read_u8', 255, 'ff'),
            ('i32', scale.Encoder.write_i32, 'read_i32', -2, 'feffffff'),
            ('u32', scale.Encoder.write_u32, 'read_u32', 1, '01000000'),
            (
                'i64',
                scale.Encoder.write_i64,
                'read_i64',
                -(2**63),
                '0000000000000080',
            ),
            (
                'u64',
                scale.Encoder.write_u64,
                'read_u64',
                2**64 - 1,
                'ffffffffffffffff',
            ),
            ('f32', scale.Encoder.write_f32, 'read_f32', 1.5, '0000c03f'),
            (
                'f64',
                scale.Encoder.write_f64,
                'read_f64',
                -2.0,
                '00000000000000c0',
            ),
        ]
    )
    def test_little_endian(self, _, write, read, value, encoded) -> None:
        data = bytes.fromhex(encoded)
        self.assertEqual(_encode(write, value), data)
        self.assertEqual(getattr(scale.Decoder(data), read)(), value)

    @parameterized.expand(
        [
            ('i32_overflow', scale.Encoder.write_i32, 2**31),
            ('u32_negative', scale.Encoder.write_u32, -1),
            ('u64_overflow', scale.Encoder.write_u64, 2**64),
            ('i64_not_int', scale.Encoder.write_i64, 'seven'),
        ]
    )
    def test_out_of_range(self, _, write, value) -> None:
        with self.assertRaises(scale.EncodeError):
            _encode(write, value)

    def test_nan_round_trips(self) -> None:
        data = _encode(scale.Encoder.write_f64, math.nan)
        self.assertTrue(math.isnan(scale.Decoder(data).read_f64()))

    def test_invalid_bool(self) -> None:
        with self.assertRaisesRegex(scale.DecodeError, 'bool'):
            scale.Decoder(b'\x02').read_bool()

    def test_truncated(self) -> None:
        with self.assertRaisesRegex(scale.DecodeError, 'Expected 4 bytes'):
            scale.Decoder(b'\x01\x02').read_u32()


class SequenceTest(unittest.TestCase):
    """Tests strings, bytes, options and lengths."""

    def test_str(self) -> None:
        data = _encode(scale.Encoder.write_str, 'héllo')
        self.assertEqual(data, b'\x18h\xc3\xa9llo')
        self.assertEqual(scale.Decoder(data).read_str(), 'héllo')

    def test_invalid_utf8(self) -> None:
        with self.assertRaisesRegex(scale.DecodeError, 'UTF-8') as context:
            scale.Decoder(b'\x04\xff').read_str()
        self.assertIsInstance(context.exception.__cause__, UnicodeDecodeError)

    def test_bytes(self) -> None:
        data = _encode(scale.Encoder.write_bytes, b'\x00\x01')
        self.assertEqual(data, b'\x08\x00\x01')
        self.assertEqual(scale.Decoder(data).read_bytes(), b'\x00\x01')

    def test_str_is_not_bytes(self) -> None:
        with self.assertRaises(scale.EncodeError):
            _encode(scale.Encoder.write_str, b'abc')
        with self.assertRaises(scale.EncodeError):
            _encode(scale.Encoder.write_bytes, 'abc')

    def test_option(self) -> None:
        decoder = scale.Decoder(b'\x00\x01\x02')
        self.assertFalse(decoder.read_option())
        self.assertTrue(decoder.read_option())
        with self.assertRaisesRegex(scale.DecodeError, 'option'):
            decoder.read_option()

    def test_length_larger_than_input(self) -> None:
        decoder = scale.Decoder(bytes.fromhex('fdff') + bytes(10))
        with self.assertRaisesRegex(scale.DecodeError, 'exceeds'):
            decoder.read_length(4)

    def test_length_without_item_size(self) -> None:
        self.assertEqual(scale.Decoder(b'\x08').read_length(), 2)

    def test_finish_with_trailing_bytes(self) -> None:
        decoder = scale.Decoder(b'\x01\x02')
        decoder.read_u8()
        with self.assertRaisesRegex(scale.DecodeError, 'trailing'):
            decoder.finish()


class MapKeyTest(unittest.TestCase):
    def test_ascending_keys(self) -> None:
        mapping: dict = {}
        for key in ('a', 'b', 'c'):
            scale.check_ascending_key(mapping, key)
            mapping[key] = None

    @parameterized.expand([('duplicate', 'c'), ('descending', 'a')])
    def test_rejected_keys(self, _, key: str) -> None:
        with self.assertRaises(scale.DecodeError):
            scale.check_ascending_key({'b': 1, 'c': 2}, key)


class _Color(scale.ScaleEnum):
    RED = 0
    GREEN = 1

    @classmethod
    def proto_names(cls) -> dict[int, str]:
        return {0: 'COLOR_RED', 1: 'COLOR_GREEN'}


class ScaleEnumTest(unittest.TestCase):
    """Tests the base class of generated enums."""

    def test_known_member(self) -> None:
        self.assertIs(_Color(1), _Color.GREEN)
        self.assertTrue(_Color.GREEN.is_known)
        self.assertEqual(_Color.GREEN.as_str_name(), 'COLOR_GREEN')
        self.assertIs(_Color.from_str_name('COLOR_RED'), _Color.RED)
        self.assertIsNone(_Color.from_str_name('RED'))

    def test_unknown_value_keeps_its_number(self) -> None:
        value = _Color(42)
        self.assertEqual(value, 42)
        self.assertIsInstance(value, _Color)
        self.assertFalse(value.is_known)
        self.assertEqual(_encode(scale.Encoder.write_i32, value), b'*\0\0\0')
        with self.assertRaises(ValueError):
            value.as_str_name()

    def test_value_outside_i32(self) -> None:
        with self.assertRaises(ValueError):
            _Color(2**31)


class _Leaf(scale.Message):
    def __init__(self, value: int = 0) -> None:
        self.value = value

    def _scale_encode(self, encoder):
        encoder.write_u8(self.value)
        yield from ()

    @classmethod
    def _scale_decode(cls, decoder):
        value = decoder.read_u8()
        yield from ()
        return cls(value)


class _Pair(scale.Message):
    def __init__(self, first: _Leaf, second: _Leaf) -> None:
        self.first = first
        self.second = second

    def _scale_encode(self, encoder):
        yield self.first
        encoder.write_u8(0xAA)
        yield self.second

    @classmethod
    def _scale_decode(cls, decoder):
        first = yield _Leaf
        marker = decoder.read_u8()
        if marker != 0xAA:
            raise scale.DecodeError(f'bad marker {marker}')
        second = yield _Leaf
        return cls(first, second)


class MessageTest(unittest.TestCase):
    """Tests the message encode and decode drivers."""

    def test_children_encode_in_order(self) -> None:
        self.assertEqual(_Pair(_Leaf(1), _Leaf(2)).encode(), b'\x01\xaa\x02')

    def test_children_decode_in_order(self) -> None:
        pair = _Pair.decode(b'\x03\xaa\x04')
        self.assertEqual((pair.first.value, pair.second.value), (3, 4))

    def test_decode_requires_all_input(self) -> None:
        with self.assertRaises(scale.DecodeError):
            _Pair.decode(b'\x03\xaa\x04\x00')

    def test_child_must_be_a_message(self) -> None:
        with self.assertRaisesRegex(scale.EncodeError, 'Expected a message'):
            _Pair(_Leaf(1), 2).encode()  # type: ignore[arg-type]


if __name__ == '__main__':
    unittest.main()
