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
"""SCALE codec runtime used by pw_protobuf_scale generated modules.

Generated message classes call into the Encoder and Decoder defined here for
every primitive. Nested messages are not encoded recursively: a message's
_scale_encode and _scale_decode methods are generators that yield child
messages (or child message classes) back to a driver loop, which keeps an
explicit stack. This bounds nesting depth by memory rather than by the
interpreter's recursion limit.
"""

import enum
import struct
from typing import Any, ClassVar, Generator, Iterator, Type, TypeVar

_M = TypeVar('_M', bound='Message')

_U8 = struct.Struct('<B')
_U16 = struct.Struct('<H')
_I32 = struct.Struct('<i')
_U32 = struct.Struct('<I')
_I64 = struct.Struct('<q')
_U64 = struct.Struct('<Q')
_F32 = struct.Struct('<f')
_F64 = struct.Struct('<d')

_COMPACT_SINGLE_BYTE_LIMIT = 1 << 6
_COMPACT_TWO_BYTE_LIMIT = 1 << 14
_COMPACT_FOUR_BYTE_LIMIT = 1 << 30

# The big-integer mode stores (length - 4) in the upper six bits.
_COMPACT_MAX_BIG_INT_BYTES = 4 + 0b111111


class ScaleError(Exception):
    """Base class for SCALE encoding and decoding errors."""


class EncodeError(ScaleError):
    """A value cannot be represented with its SCALE codec."""


class DecodeError(ScaleError):
    """The input is not a valid SCALE encoding of the requested type."""


class Encoder:
    """Accumulates SCALE-encoded bytes."""

    def __init__(self) -> None:
        self._data = bytearray()

    def data(self) -> bytes:
        return bytes(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def _pack(self, packer: struct.Struct, kind: str, value: Any) -> None:
        try:
            self._data += packer.pack(value)
        except (struct.error, OverflowError, TypeError) as err:
            raise EncodeError(
                f'Cannot encode {value!r} as {kind}: {err}'
            ) from err

    def write_bool(self, value: bool) -> None:
        self._data.append(1 if value else 0)

    def write_u8(self, value: int) -> None:
        self._pack(_U8, 'u8', value)

    def write_i32(self, value: int) -> None:
        self._pack(_I32, 'i32', value)

    def write_u32(self, value: int) -> None:
        self._pack(_U32, 'u32', value)

    def write_i64(self, value: int) -> None:
        self._pack(_I64, 'i64', value)

    def write_u64(self, value: int) -> None:
        self._pack(_U64, 'u64', value)

    def write_f32(self, value: float) -> None:
        self._pack(_F32, 'f32', value)

    def write_f64(self, value: float) -> None:
        self._pack(_F64, 'f64', value)

    def write_compact(self, value: int) -> None:
        """Writes an unsigned integer in SCALE compact form."""
        if not isinstance(value, int) or value < 0:
            raise EncodeError(f'Cannot encode {value!r} as a compact integer')

        if value < _COMPACT_SINGLE_BYTE_LIMIT:
            self._data.append(value << 2)
        elif value < _COMPACT_TWO_BYTE_LIMIT:
            self._data += ((value << 2) | 0b01).to_bytes(2, 'little')
        elif value < _COMPACT_FOUR_BYTE_LIMIT:
            self._data += ((value << 2) | 0b10).to_bytes(4, 'little')
        else:
            length = (value.bit_length() + 7) // 8
            if length > _COMPACT_MAX_BIG_INT_BYTES:
                raise EncodeError(f'{value} is too large for a compact integer')
            self._data.append(((length - 4) << 2) | 0b11)
            self._data += value.to_bytes(length, 'little')

    def write_length(self, length: int) -> None:
        self.write_compact(length)

    def write_option(self, present: bool) -> None:
        """Writes the presence byte of an Option."""
        self._data.append(1 if present else 0)

    def write_bytes(self, value: bytes) -> None:
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise EncodeError(f'Cannot encode {value!r} as bytes')
        self.write_compact(len(value))
        self._data += value

    def write_str(self, value: str) -> None:
        if not isinstance(value, str):
            raise EncodeError(f'Cannot encode {value!r} as str')
        try:
            encoded = value.encode('utf-8')
        except UnicodeEncodeError as err:
            raise EncodeError(
                f'Cannot encode {value!r} as UTF-8: {err}'
            ) from err
        self.write_compact(len(encoded))
        self._data += encoded


class Decoder:
    """Reads SCALE-encoded values from a buffer."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._offset = 0

    def remaining(self) -> int:
        return len(self._data) - self._offset

    def finish(self) -> None:
        """Raises DecodeError if any bytes remain unread."""
        if self.remaining():
            raise DecodeError(
                f'{self.remaining()} trailing bytes after offset {self._offset}'
            )

    def _take(self, size: int) -> bytes:
        if size > self.remaining():
            raise DecodeError(
                f'Expected {size} bytes at offset {self._offset}, '
                f'but only {self.remaining()} remain'
            )
        start = self._offset
        self._offset += size
        return self._data[start : self._offset]

    def _unpack(self, unpacker: struct.Struct) -> Any:
        return unpacker.unpack(self._take(unpacker.size))[0]

    def read_bool(self) -> bool:
        byte = self._take(1)[0]
        if byte > 1:
            raise DecodeError(
                f'Invalid bool byte 0x{byte:02x} at offset {self._offset - 1}'
            )
        return byte == 1

    def read_u8(self) -> int:
        return self._unpack(_U8)

    def read_i32(self) -> int:
        return self._unpack(_I32)

    def read_u32(self) -> int:
        return self._unpack(_U32)

    def read_i64(self) -> int:
        return self._unpack(_I64)

    def read_u64(self) -> int:
        return self._unpack(_U64)

    def read_f32(self) -> float:
        return self._unpack(_F32)

    def read_f64(self) -> float:
        return self._unpack(_F64)

    def read_compact(self) -> int:
        """Reads a SCALE compact integer, rejecting non-canonical forms."""
        start = self._offset
        first = self._take(1)[0]
        mode = first & 0b11

        if mode == 0b00:
            return first >> 2

        if mode == 0b01:
            value = _U16.unpack(bytes([first]) + self._take(1))[0] >> 2
            minimum = _COMPACT_SINGLE_BYTE_LIMIT
        elif mode == 0b10:
            value = _U32.unpack(bytes([first]) + self._take(3))[0] >> 2
            minimum = _COMPACT_TWO_BYTE_LIMIT
        else:
            length = (first >> 2) + 4
            value = int.from_bytes(self._take(length), 'little')
            minimum = _COMPACT_FOUR_BYTE_LIMIT
            if value >> ((length - 1) * 8) == 0:
                raise DecodeError(
                    f'Non-canonical compact integer at offset {start}'
                )

        if value < minimum:
            raise DecodeError(
                f'Non-canonical compact integer at offset {start}'
            )
        return value

    def read_length(self, item_size: int = 0) -> int:
        """Reads a sequence length.

        Args:
          item_size: The minimum encoded size of one item. Lengths that cannot
            fit in the remaining input are rejected before any item is read.
        """
        start = self._offset
        length = self.read_compact()
        if item_size and length * item_size > self.remaining():
            raise DecodeError(
                f'Length {length} at offset {start} exceeds the remaining '
                f'{self.remaining()} bytes'
            )
        return length

    def read_option(self) -> bool:
        """Reads the presence byte of an Option."""
        byte = self._take(1)[0]
        if byte > 1:
            raise DecodeError(
                f'Invalid option byte 0x{byte:02x} at offset {self._offset - 1}'
            )
        return byte == 1

    def read_bytes(self) -> bytes:
        return self._take(self.read_length(1))

    def read_str(self) -> str:
        start = self._offset
        data = self._take(self.read_length(1))
        try:
            return data.decode('utf-8')
        except UnicodeDecodeError as err:
            raise DecodeError(
                f'Invalid UTF-8 string at offset {start}: {err}'
            ) from err


def check_ascending_key(mapping: dict, key: Any) -> None:
    """Rejects a decoded map key that does not follow the previous one."""
    if mapping and not next(reversed(mapping)) < key:
        raise DecodeError(
            f'Map key {key!r} is not greater than the preceding key'
        )


class Message:
    """Base class of generated SCALE message types.

    Subclasses are dataclasses that implement _scale_encode and _scale_decode.
    """

    def encode(self) -> bytes:
        """Returns the SCALE encoding of this message."""
        encoder = Encoder()
        self.encode_to(encoder)
        return encoder.data()

    def encode_to(self, encoder: Encoder) -> None:
        encode_message(self, encoder)

    @classmethod
    def decode(cls: Type[_M], data: bytes) -> _M:
        """Decodes a message that occupies all of data."""
        decoder = Decoder(data)
        message = cls.decode_from(decoder)
        decoder.finish()
        return message

    @classmethod
    def decode_from(cls: Type[_M], decoder: Decoder) -> _M:
        """Decodes a message from the decoder's current position."""
        return decode_message(cls, decoder)

    def _scale_encode(self, encoder: Encoder) -> Iterator['Message']:
        raise NotImplementedError

    @classmethod
    def _scale_decode(
        cls, decoder: Decoder
    ) -> Generator[Type['Message'], Any, 'Message']:
        raise NotImplementedError


def encode_message(message: Message, encoder: Encoder) -> None:
    """Encodes a message tree without recursing for nested messages."""
    stack = [_encode_steps(message, encoder)]
    while stack:
        try:
            child = next(stack[-1])
        except StopIteration:
            stack.pop()
            continue
        stack.append(_encode_steps(child, encoder))


def _encode_steps(message: Any, encoder: Encoder) -> Iterator[Message]:
    if not isinstance(message, Message):
        raise EncodeError(f'Expected a message, got {message!r}')
    # pylint: disable-next=protected-access
    return message._scale_encode(encoder)


def decode_message(cls: Type[_M], decoder: Decoder) -> _M:
    """Decodes a message tree without recursing for nested messages."""
    # pylint: disable=protected-access
    stack = [cls._scale_decode(decoder)]
    result: Any = None
    while True:
        try:
            child_cls = stack[-1].send(result)
        except StopIteration as finished:
            stack.pop()
            result = finished.value
            if not stack:
                return result
            continue
        result = None
        stack.append(child_cls._scale_decode(decoder))
    # pylint: enable=protected-access


class ScaleEnum(enum.IntEnum):
    """Base class of generated enums.

    Discriminants that are not declared members decode to pseudo-members that
    carry the raw value, so they re-encode to the original bytes.
    """

    @classmethod
    def _missing_(cls, value):
        if not isinstance(value, int) or not -(2**31) <= value < 2**31:
            return None
        pseudo_member = int.__new__(cls, value)
        pseudo_member._name_ = None
        pseudo_member._value_ = value
        return pseudo_member

    @property
    def is_known(self) -> bool:
        return self._name_ is not None

    @classmethod
    def proto_names(cls) -> dict[int, str]:
        """Maps each declared discriminant to its name in the .proto file."""
        return {}

    def as_str_name(self) -> str:
        """Returns the value's name as written in the .proto file."""
        try:
            return self.proto_names()[int(self)]
        except KeyError:
            raise ValueError(
                f'{int(self)} is not a declared {type(self).__name__} value'
            ) from None

    @classmethod
    def from_str_name(cls, name: str):
        """Returns the member named name in the .proto file, or None."""
        for number, proto_name in cls.proto_names().items():
            if proto_name == name:
                return cls(number)
        return None


class Oneof:
    """Namespace class grouping the alternatives of a oneof."""


class OneofVariant:
    """Base class of one alternative of a oneof."""

    FIELD_NUMBER: ClassVar[int] = 0
