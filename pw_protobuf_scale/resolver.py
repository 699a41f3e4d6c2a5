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
"""Binds field type names to the messages and enums they refer to."""

import enum
import logging

from pw_protobuf_scale.errors import SchemaError, UnresolvedType
from pw_protobuf_scale.proto_tree import (
    DescriptorModel,
    ProtoEnum,
    ProtoMessage,
    ProtoMessageField,
    ProtoNode,
)

_LOG = logging.getLogger(__name__)

_TYPES = (ProtoNode.Type.MESSAGE, ProtoNode.Type.ENUM)
_AGGREGATES = (ProtoNode.Type.PACKAGE, ProtoNode.Type.MESSAGE)


class Classification(enum.Enum):
    """Whether an entity's encoding involves other messages.

    LEAF entities consist of scalars and enums only. COMPOSITE entities
    contain at least one message, directly or through a map or oneof.
    """

    LEAF = 1
    COMPOSITE = 2


def scopes(field: ProtoMessageField) -> list[str]:
    """Lists the scopes searched for a field's type, innermost first.

    The field's message comes first, followed by each enclosing message and
    package, ending with the global scope ''.
    """
    path = field.message().proto_path()
    result = []
    while path:
        result.append(path)
        path = path.rpartition('.')[0]
    result.append('')
    return result


def lookup(
    model: DescriptorModel, type_name: str, search_scopes: list[str]
) -> ProtoNode | None:
    """Finds the message or enum a type name refers to.

    Follows protobuf scoping: absolute names (leading '.') are looked up
    directly. For relative names, the first component is searched from the
    innermost scope outward; the remaining components are then resolved
    within the first match that can contain them.
    """
    if type_name.startswith('.'):
        node = model.lookup(type_name)
        return node if node is not None and node.type() in _TYPES else None

    first, _, rest = type_name.partition('.')
    for scope in search_scopes:
        symbol = model.lookup(f'{scope}.{first}' if scope else first)
        if symbol is None:
            continue

        if not rest:
            if symbol.type() in _TYPES:
                return symbol
            continue

        if symbol.type() not in _AGGREGATES:
            continue

        node = symbol.find(rest)
        if node is not None and node.type() in _TYPES:
            return node
        return None

    return None


def _resolve_field(model: DescriptorModel, field: ProtoMessageField) -> None:
    type_ref = field.type_ref()
    type_name = type_ref.type_name()
    assert type_name is not None

    file = field.message().file()
    file_name = file.name() if file else None
    search_scopes = [''] if type_name.startswith('.') else scopes(field)

    node = lookup(model, type_name, search_scopes)
    if node is None:
        raise UnresolvedType(
            type_name,
            search_scopes,
            file=file_name,
            entity=field.message().proto_path(),
            field=field.name(),
        )

    declared_enum = type_ref.is_enum()
    declared_message = type_ref.is_message()
    if (declared_enum and node.type() is not ProtoNode.Type.ENUM) or (
        declared_message and node.type() is not ProtoNode.Type.MESSAGE
    ):
        expected = 'an enum' if declared_enum else 'a message'
        raise SchemaError(
            f'{type_name!r} resolves to {node.proto_path()!r}, '
            f'which is not {expected}',
            file=file_name,
            entity=field.message().proto_path(),
            field=field.name(),
        )

    assert isinstance(node, (ProtoMessage, ProtoEnum))
    type_ref.bind(node)


def _refers_to_message(field: ProtoMessageField) -> bool:
    entity = field.type_ref().entity()
    if not isinstance(entity, ProtoMessage):
        return False
    if entity.is_map_entry():
        value = entity.field(2)
        return value is not None and _refers_to_message(value)
    return True


def classify(model: DescriptorModel) -> dict[ProtoNode, Classification]:
    """Classifies every entity as LEAF or COMPOSITE."""
    classifications = {}
    for entity in model.entities():
        if isinstance(entity, ProtoEnum):
            fields: list[ProtoMessageField] = []
        else:
            fields = entity.fields()  # type: ignore[attr-defined]

        if any(_refers_to_message(field) for field in fields):
            classifications[entity] = Classification.COMPOSITE
        else:
            classifications[entity] = Classification.LEAF
    return classifications


def resolve(model: DescriptorModel) -> dict[ProtoNode, Classification]:
    """Resolves the type of every message and enum field in the model.

    Returns:
      The LEAF/COMPOSITE classification of every entity.

    Raises:
      UnresolvedType: A type name matches no message or enum.
      SchemaError: A type name matches an entity of the wrong kind.
    """
    resolved = 0
    for message in model.messages():
        for field in message.fields():
            if field.type_ref().scalar() is None:
                _resolve_field(model, field)
                resolved += 1

    _LOG.debug('Resolved %d type references', resolved)
    return classify(model)
