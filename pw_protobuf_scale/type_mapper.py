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
"""Maps resolved field types to their representation in generated code."""

import dataclasses
import enum

from pw_protobuf_scale.proto_tree import (
    Cardinality,
    ProtoEnum,
    ProtoMessage,
    ProtoMessageField,
    ProtoNode,
    Scalar,
    TypeRef,
)


class Container(enum.Enum):
    """How a field holds its values."""

    VALUE = 1
    OPTIONAL = 2
    SEQUENCE = 3
    MAP = 4
    ONEOF = 5


@dataclasses.dataclass(frozen=True)
class Codec:
    """The SCALE codec of a single value.

    Attributes:
      hint: Suffix of the scale.Encoder write_* / scale.Decoder read_*
        methods for scalars and enums ('i32' for enums), or 'message'.
      python_type: Python type of scalar values.
      default: Python literal of a scalar's default value.
      min_size: Fewest bytes one encoded value occupies.
      entity: The enum or message type, for non-scalars.
    """

    hint: str
    python_type: str | None = None
    default: str | None = None
    min_size: int = 0
    entity: ProtoNode | None = None

    def is_message(self) -> bool:
        return self.hint == 'message'

    def is_enum(self) -> bool:
        return isinstance(self.entity, ProtoEnum)


@dataclasses.dataclass(frozen=True)
class TargetRepr:
    """The representation of one field in generated code.

    Attributes:
      container: How values are held.
      element: The codec of each value; None for oneofs.
      key: The codec of map keys.
      indirect: The value is referenced lazily, so its class may be declared
        later. Set on cycle-closing edges and boxed fields.
      alternatives: The fields and representations of a oneof's variants, in
        ascending field number order.
    """

    container: Container
    element: Codec | None = None
    key: Codec | None = None
    indirect: bool = False
    alternatives: tuple[tuple[ProtoMessageField, 'TargetRepr'], ...] = ()


_I32 = Codec('i32', 'int', '0', 4)
_U32 = Codec('u32', 'int', '0', 4)
_I64 = Codec('i64', 'int', '0', 8)
_U64 = Codec('u64', 'int', '0', 8)

SCALAR_CODECS = {
    Scalar.DOUBLE: Codec('f64', 'float', '0.0', 8),
    Scalar.FLOAT: Codec('f32', 'float', '0.0', 4),
    Scalar.INT64: _I64,
    Scalar.SINT64: _I64,
    Scalar.SFIXED64: _I64,
    Scalar.UINT64: _U64,
    Scalar.FIXED64: _U64,
    Scalar.INT32: _I32,
    Scalar.SINT32: _I32,
    Scalar.SFIXED32: _I32,
    Scalar.UINT32: _U32,
    Scalar.FIXED32: _U32,
    Scalar.BOOL: Codec('bool', 'bool', 'False', 1),
    Scalar.STRING: Codec('str', 'str', "''", 1),
    Scalar.BYTES: Codec('bytes', 'bytes', "b''", 1),
}


def element_codec(type_ref: TypeRef) -> Codec:
    """Returns the codec of a single value of a resolved type."""
    scalar = type_ref.scalar()
    if scalar is not None:
        return SCALAR_CODECS[scalar]

    entity = type_ref.entity()
    if isinstance(entity, ProtoEnum):
        # Enums are encoded as their i32 discriminant.
        return Codec('i32', None, None, 4, entity)
    if isinstance(entity, ProtoMessage):
        return Codec('message', entity=entity)

    raise ValueError(f'{type_ref!r} is not resolved')


def map_type(
    type_ref: TypeRef, cardinality: Cardinality, indirect: bool = False
) -> TargetRepr:
    """Maps a resolved type and its cardinality to a target representation.

    Args:
      type_ref: The resolved field type. For MAP_ENTRY fields this is the
        synthetic entry message.
      cardinality: The field's cardinality.
      indirect: Whether the field's reference must be indirect. Only message
        values can be indirect.
    """
    if cardinality is Cardinality.MAP_ENTRY:
        entry = type_ref.entity()
        assert isinstance(entry, ProtoMessage) and entry.is_map_entry()
        key_field, value_field = entry.field(1), entry.field(2)
        assert key_field is not None and value_field is not None
        value = element_codec(value_field.type_ref())
        return TargetRepr(
            Container.MAP,
            value,
            key=element_codec(key_field.type_ref()),
            indirect=indirect and value.is_message(),
        )

    element = element_codec(type_ref)
    indirect = indirect and element.is_message()

    if cardinality is Cardinality.REPEATED:
        return TargetRepr(Container.SEQUENCE, element, indirect=indirect)
    if cardinality is Cardinality.OPTIONAL:
        return TargetRepr(Container.OPTIONAL, element, indirect=indirect)
    return TargetRepr(Container.VALUE, element, indirect=indirect)


def map_oneof(
    alternatives: list[tuple[ProtoMessageField, TargetRepr]]
) -> TargetRepr:
    """Maps the alternatives of a oneof to a tagged union."""
    return TargetRepr(
        Container.ONEOF,
        alternatives=tuple(
            sorted(alternatives, key=lambda pair: pair[0].number())
        ),
    )
