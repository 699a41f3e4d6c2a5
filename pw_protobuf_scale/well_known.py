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
"""SCALE codec types for the google.protobuf well-known types.

Fields referring to these .google.protobuf types use these classes unless an
extern path maps the package elsewhere. The classes follow the layout of
generated code: each message is a dataclass whose fields are encoded in
field number order.
"""

import dataclasses
import typing

from pw_protobuf_scale import scale


@dataclasses.dataclass
class Timestamp(scale.Message):
    """A point in time, independent of any time zone or calendar."""

    seconds: int = 0
    nanos: int = 0

    def _scale_encode(
        self, encoder: scale.Encoder
    ) -> typing.Iterator[scale.Message]:
        encoder.write_i64(self.seconds)
        encoder.write_i32(self.nanos)
        yield from ()

    @classmethod
    def _scale_decode(
        cls, decoder: scale.Decoder
    ) -> typing.Generator[typing.Any, typing.Any, 'Timestamp']:
        _seconds = decoder.read_i64()
        _nanos = decoder.read_i32()
        yield from ()
        return cls(seconds=_seconds, nanos=_nanos)


@dataclasses.dataclass
class Duration(scale.Message):
    """A signed, fixed-length span of time."""

    seconds: int = 0
    nanos: int = 0

    def _scale_encode(
        self, encoder: scale.Encoder
    ) -> typing.Iterator[scale.Message]:
        encoder.write_i64(self.seconds)
        encoder.write_i32(self.nanos)
        yield from ()

    @classmethod
    def _scale_decode(
        cls, decoder: scale.Decoder
    ) -> typing.Generator[typing.Any, typing.Any, 'Duration']:
        _seconds = decoder.read_i64()
        _nanos = decoder.read_i32()
        yield from ()
        return cls(seconds=_seconds, nanos=_nanos)


@dataclasses.dataclass
class Empty(scale.Message):
    """A message with no fields; encodes to zero bytes."""

    def _scale_encode(
        self, encoder: scale.Encoder
    ) -> typing.Iterator[scale.Message]:
        yield from ()

    @classmethod
    def _scale_decode(
        cls, decoder: scale.Decoder
    ) -> typing.Generator[typing.Any, typing.Any, 'Empty']:
        yield from ()
        return cls()


@dataclasses.dataclass
class FieldMask(scale.Message):
    paths: list[str] = dataclasses.field(default_factory=list)

    def _scale_encode(
        self, encoder: scale.Encoder
    ) -> typing.Iterator[scale.Message]:
        encoder.write_length(len(self.paths))
        for item in self.paths:
            encoder.write_str(item)
        yield from ()

    @classmethod
    def _scale_decode(
        cls, decoder: scale.Decoder
    ) -> typing.Generator[typing.Any, typing.Any, 'FieldMask']:
        _paths = []
        for _ in range(decoder.read_length(1)):
            _paths.append(decoder.read_str())
        yield from ()
        return cls(paths=_paths)


@dataclasses.dataclass
class Any(scale.Message):
    """A serialized message with a URL that describes its type."""

    type_url: str = ''
    value: bytes = b''

    def _scale_encode(
        self, encoder: scale.Encoder
    ) -> typing.Iterator[scale.Message]:
        encoder.write_str(self.type_url)
        encoder.write_bytes(self.value)
        yield from ()

    @classmethod
    def _scale_decode(
        cls, decoder: scale.Decoder
    ) -> typing.Generator[typing.Any, typing.Any, 'Any']:
        _type_url = decoder.read_str()
        _value = decoder.read_bytes()
        yield from ()
        return cls(type_url=_type_url, value=_value)


def _wrapper(name: str, python_type: type, default: typing.Any, hint: str):
    """Creates the message class of a wrapper type such as Int32Value.

    Wrappers hold a single field numbered 1 named value.
    """
    write = getattr(scale.Encoder, f'write_{hint}')
    read = getattr(scale.Decoder, f'read_{hint}')

    def _scale_encode(self, encoder: scale.Encoder):
        write(encoder, self.value)
        yield from ()

    def _scale_decode(cls, decoder: scale.Decoder):
        value = read(decoder)
        yield from ()
        return cls(value=value)

    return dataclasses.make_dataclass(
        name,
        [('value', python_type, dataclasses.field(default=default))],
        bases=(scale.Message,),
        namespace={
            '__module__': __name__,
            '__doc__': f'Wrapper message for {python_type.__name__} values.',
            '_scale_encode': _scale_encode,
            '_scale_decode': classmethod(_scale_decode),
        },
    )


DoubleValue = _wrapper('DoubleValue', float, 0.0, 'f64')
FloatValue = _wrapper('FloatValue', float, 0.0, 'f32')
Int64Value = _wrapper('Int64Value', int, 0, 'i64')
UInt64Value = _wrapper('UInt64Value', int, 0, 'u64')
Int32Value = _wrapper('Int32Value', int, 0, 'i32')
UInt32Value = _wrapper('UInt32Value', int, 0, 'u32')
BoolValue = _wrapper('BoolValue', bool, False, 'bool')
StringValue = _wrapper('StringValue', str, '', 'str')
BytesValue = _wrapper('BytesValue', bytes, b'', 'bytes')


class NullValue(scale.ScaleEnum):
    """The JSON null value."""

    NULL_VALUE = 0

    @classmethod
    def proto_names(cls) -> dict[int, str]:
        return {0: 'NULL_VALUE'}


@dataclasses.dataclass
class Struct(scale.Message):
    """A structured value, such as a JSON object."""

    fields: dict[str, 'Value'] = dataclasses.field(default_factory=dict)

    def _scale_encode(
        self, encoder: scale.Encoder
    ) -> typing.Iterator[scale.Message]:
        encoder.write_length(len(self.fields))
        for key, value in sorted(self.fields.items()):
            encoder.write_str(key)
            yield value

    @classmethod
    def _scale_decode(
        cls, decoder: scale.Decoder
    ) -> typing.Generator[typing.Any, typing.Any, 'Struct']:
        _fields: dict[str, Value] = {}
        for _ in range(decoder.read_length(1)):
            key = decoder.read_str()
            scale.check_ascending_key(_fields, key)
            _fields[key] = yield Value
        return cls(fields=_fields)


class Value_Kind(scale.Oneof):  # pylint: disable=invalid-name
    """Alternatives of Value.kind."""

    @dataclasses.dataclass
    class NullValue(scale.OneofVariant):
        FIELD_NUMBER: typing.ClassVar[int] = 1
        value: 'NullValue'

    @dataclasses.dataclass
    class NumberValue(scale.OneofVariant):
        FIELD_NUMBER: typing.ClassVar[int] = 2
        value: float

    @dataclasses.dataclass
    class StringValue(scale.OneofVariant):
        FIELD_NUMBER: typing.ClassVar[int] = 3
        value: str

    @dataclasses.dataclass
    class BoolValue(scale.OneofVariant):
        FIELD_NUMBER: typing.ClassVar[int] = 4
        value: bool

    @dataclasses.dataclass
    class StructValue(scale.OneofVariant):
        FIELD_NUMBER: typing.ClassVar[int] = 5
        value: Struct

    @dataclasses.dataclass
    class ListValue(scale.OneofVariant):
        FIELD_NUMBER: typing.ClassVar[int] = 6
        value: 'ListValue'


@dataclasses.dataclass
class Value(scale.Message):
    """A dynamically typed value: null, a number, a string, a boolean, a
    Struct or a ListValue."""

    kind: typing.Optional[
        typing.Union[
            Value_Kind.NullValue,
            Value_Kind.NumberValue,
            Value_Kind.StringValue,
            Value_Kind.BoolValue,
            Value_Kind.StructValue,
            Value_Kind.ListValue,
        ]
    ] = None

    def _scale_encode(
        self, encoder: scale.Encoder
    ) -> typing.Iterator[scale.Message]:
        kind = self.kind
        if kind is None:
            encoder.write_option(False)
            return
        if not isinstance(kind, scale.OneofVariant):
            raise scale.EncodeError(f'Invalid Value.kind variant: {kind!r}')

        encoder.write_option(True)
        encoder.write_u8(kind.FIELD_NUMBER)
        if isinstance(kind, Value_Kind.NullValue):
            encoder.write_i32(kind.value)
        elif isinstance(kind, Value_Kind.NumberValue):
            encoder.write_f64(kind.value)
        elif isinstance(kind, Value_Kind.StringValue):
            encoder.write_str(kind.value)
        elif isinstance(kind, Value_Kind.BoolValue):
            encoder.write_bool(kind.value)
        elif isinstance(kind, (Value_Kind.StructValue, Value_Kind.ListValue)):
            yield kind.value
        else:
            raise scale.EncodeError(f'Invalid Value.kind variant: {kind!r}')

    @classmethod
    def _scale_decode(
        cls, decoder: scale.Decoder
    ) -> typing.Generator[typing.Any, typing.Any, 'Value']:
        tag = decoder.read_u8() if decoder.read_option() else 0
        kind: typing.Any
        if tag == 0:
            kind = None
        elif tag == 1:
            kind = Value_Kind.NullValue(NullValue(decoder.read_i32()))
        elif tag == 2:
            kind = Value_Kind.NumberValue(decoder.read_f64())
        elif tag == 3:
            kind = Value_Kind.StringValue(decoder.read_str())
        elif tag == 4:
            kind = Value_Kind.BoolValue(decoder.read_bool())
        elif tag == 5:
            kind = Value_Kind.StructValue((yield Struct))
        elif tag == 6:
            kind = Value_Kind.ListValue((yield ListValue))
        else:
            raise scale.DecodeError(f'Unknown Value.kind tag {tag}')
        return cls(kind=kind)


@dataclasses.dataclass
class ListValue(scale.Message):
    """A repeated field of dynamically typed values."""

    values: list[Value] = dataclasses.field(default_factory=list)

    def _scale_encode(
        self, encoder: scale.Encoder
    ) -> typing.Iterator[scale.Message]:
        encoder.write_length(len(self.values))
        for item in self.values:
            yield item

    @classmethod
    def _scale_decode(
        cls, decoder: scale.Decoder
    ) -> typing.Generator[typing.Any, typing.Any, 'ListValue']:
        _values = []
        for _ in range(decoder.read_length(1)):
            _values.append((yield Value))
        return cls(values=_values)
