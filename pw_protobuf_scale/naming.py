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
"""Converts proto identifiers to Python identifiers."""

import keyword
import re
from typing import Callable, Iterable, Sequence

from pw_protobuf_scale.proto_tree import (
    ProtoEnum,
    ProtoEnumValue,
    ProtoMessage,
    ProtoMessageField,
    ProtoNode,
    ProtoOneof,
)

# Splits an identifier into words at underscores and case boundaries. A run of
# capitals followed by a capitalized word ("HTTPServer") splits before the
# last capital. Digits stay with the preceding word.
_WORDS = re.compile(
    r'[A-Z]+(?=[A-Z][a-z])|[A-Z]?[a-z]+[0-9]*|[A-Z]+[0-9]*|[0-9]+'
)

# Attributes of scale.Message that fields must not shadow, and names that
# generated class bodies refer to.
MESSAGE_RESERVED = frozenset(
    (
        'encode',
        'encode_to',
        'decode',
        'decode_from',
        'dataclasses',
        'typing',
        'scale',
        'bool',
        'bytes',
        'dict',
        'float',
        'int',
        'list',
        'str',
    )
)

# Attributes of scale.ScaleEnum and enum.Enum that members must not shadow.
ENUM_RESERVED = frozenset(
    (
        'name',
        'value',
        'mro',
        'is_known',
        'proto_names',
        'as_str_name',
        'from_str_name',
    )
)


def words(identifier: str) -> list[str]:
    return _WORDS.findall(identifier)


def to_snake(identifier: str) -> str:
    """Converts an identifier to snake_case."""
    return '_'.join(word.lower() for word in words(identifier))


def to_upper_snake(identifier: str) -> str:
    """Converts an identifier to UPPER_SNAKE_CASE."""
    return '_'.join(word.upper() for word in words(identifier))


def to_upper_camel(identifier: str) -> str:
    """Converts an identifier to UpperCamelCase."""
    return ''.join(
        word[0].upper() + word[1:].lower() for word in words(identifier)
    )


def escape(name: str, reserved: Iterable[str] = ()) -> str:
    """Appends an underscore to keywords and reserved names."""
    if not name or name[0].isdigit():
        name = '_' + name
    if keyword.iskeyword(name) or name in reserved:
        return name + '_'
    return name


def strip_enum_prefix(enum_name: str, value_name: str) -> str:
    """Removes the enum's name from the start of a value name.

    For enum PhoneType, PHONE_TYPE_MOBILE becomes MOBILE. Names that would
    become empty or start with a digit are left alone.
    """
    prefix = to_upper_snake(enum_name) + '_'
    if value_name.startswith(prefix):
        stripped = value_name[len(prefix) :]
        if stripped and not stripped[0].isdigit():
            return stripped
    return value_name


class NameTable:
    """Hands out unique identifiers within one Python namespace.

    A name that is already taken receives the suffix _2, _3, ... in the order
    names are claimed, so callers claim names in a deterministic order.
    """

    def __init__(self, reserved: Iterable[str] = ()):
        self._reserved = frozenset(reserved)
        self._taken: set[str] = set()

    def claim(self, name: str) -> str:
        name = escape(name, self._reserved)
        candidate = name
        suffix = 2
        while candidate in self._taken or candidate in self._reserved:
            candidate = f'{name}_{suffix}'
            suffix += 1
        self._taken.add(candidate)
        return candidate

    def __contains__(self, name: str) -> bool:
        return name in self._taken


def assign(
    proto_names: Sequence[str],
    convert: Callable[[str], str],
    reserved: Iterable[str] = (),
) -> list[str]:
    """Converts and deduplicates names, claiming them in the given order."""
    table = NameTable(reserved)
    return [table.claim(convert(name)) for name in proto_names]


def class_name(nesting: Sequence[str]) -> str:
    """Names a flattened nested type: ('Person', 'phone_number') becomes
    Person_PhoneNumber."""
    return '_'.join(to_upper_camel(part) or part for part in nesting)


def module_path(package: str, default_package_filename: str = '_') -> str:
    """Returns the dotted Python module path for a proto package."""
    if not package:
        return default_package_filename
    return '.'.join(escape(segment) for segment in package.split('.'))


def module_alias(module: str) -> str:
    """Returns the local name under which a module is imported."""
    return '_m_' + module.replace('.', '_')


class Names:
    """Python identifiers for the entities of one compiler invocation.

    Class names are unique per module and claimed in declaration order.
    Message attributes are claimed in field number order, so reordering field
    declarations never renames anything. Enum members and oneof variants are
    claimed in declaration and field number order respectively.
    """

    def __init__(
        self,
        entities: Iterable[ProtoNode],
        module_of: Callable[[ProtoNode], str],
        strip_enum_prefixes: bool = True,
    ):
        self._classes: dict[ProtoNode, str] = {}
        self._attributes: dict[ProtoMessageField | ProtoOneof, str] = {}
        self._variants: dict[ProtoMessageField, str] = {}
        self._members: dict[ProtoEnum, list[tuple[ProtoEnumValue, str]]] = {}
        modules: dict[str, NameTable] = {}

        for entity in sorted(entities, key=lambda entity: entity.index()):
            table = modules.setdefault(module_of(entity), NameTable())
            self._classes[entity] = table.claim(class_name(entity.nesting()))

            if isinstance(entity, ProtoMessage):
                self._name_attributes(entity)
            elif isinstance(entity, ProtoOneof):
                variants = entity.fields()
                names = assign(
                    [field.name() for field in variants], to_upper_camel
                )
                self._variants.update(zip(variants, names))
            elif isinstance(entity, ProtoEnum):
                self._name_members(entity, strip_enum_prefixes)

    def _name_attributes(self, message: ProtoMessage) -> None:
        members: list[tuple[int, ProtoMessageField | ProtoOneof]] = [
            (field.number(), field)
            for field in message.fields()
            if field.oneof() is None
        ]
        members.extend((oneof.number(), oneof) for oneof in message.oneofs())
        members.sort(key=lambda member: member[0])

        names = assign(
            [member.name() for _, member in members],
            to_snake,
            MESSAGE_RESERVED,
        )
        for (_, member), name in zip(members, names):
            self._attributes[member] = name

    def _name_members(self, proto_enum: ProtoEnum, strip_prefix: bool) -> None:
        values = proto_enum.unique_values()
        proto_names = [
            strip_enum_prefix(proto_enum.name(), value.name)
            if strip_prefix
            else value.name
            for value in values
        ]
        names = assign(
            proto_names,
            lambda name: to_upper_snake(name) or name,
            ENUM_RESERVED,
        )
        self._members[proto_enum] = list(zip(values, names))

    def class_name(self, entity: ProtoNode) -> str:
        return self._classes[entity]

    def attribute(self, member: ProtoMessageField | ProtoOneof) -> str:
        """The dataclass attribute of a field or oneof."""
        return self._attributes[member]

    def variant(self, field: ProtoMessageField) -> str:
        """The variant class name of a oneof alternative."""
        return self._variants[field]

    def members(
        self, proto_enum: ProtoEnum
    ) -> list[tuple[ProtoEnumValue, str]]:
        """Enum values and their member names, without aliases."""
        return list(self._members[proto_enum])
