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
"""This module defines the in-memory model of a protobuf descriptor set."""

import abc
import enum
import textwrap
from typing import Callable, Iterable, Iterator, NamedTuple, TypeVar

from google.protobuf import descriptor_pb2

from pw_protobuf_scale.errors import (
    DuplicateFieldNumber,
    DuplicateIdentifier,
    InvalidEnum,
)

T = TypeVar('T')  # pylint: disable=invalid-name

_FieldDescriptor = descriptor_pb2.FieldDescriptorProto

# Field numbers from descriptor.proto, as they appear in source_code_info
# location paths.
_FILE_MESSAGE_TYPE = 4
_FILE_ENUM_TYPE = 5
_MESSAGE_FIELD = 2
_MESSAGE_NESTED_TYPE = 3
_MESSAGE_ENUM_TYPE = 4
_MESSAGE_ONEOF_DECL = 8
_ENUM_VALUE = 2

_CommentMap = dict[tuple[int, ...], str]


class Scalar(enum.Enum):
    """The protobuf scalar value types."""

    DOUBLE = _FieldDescriptor.TYPE_DOUBLE
    FLOAT = _FieldDescriptor.TYPE_FLOAT
    INT64 = _FieldDescriptor.TYPE_INT64
    UINT64 = _FieldDescriptor.TYPE_UINT64
    INT32 = _FieldDescriptor.TYPE_INT32
    FIXED64 = _FieldDescriptor.TYPE_FIXED64
    FIXED32 = _FieldDescriptor.TYPE_FIXED32
    BOOL = _FieldDescriptor.TYPE_BOOL
    STRING = _FieldDescriptor.TYPE_STRING
    BYTES = _FieldDescriptor.TYPE_BYTES
    UINT32 = _FieldDescriptor.TYPE_UINT32
    SFIXED32 = _FieldDescriptor.TYPE_SFIXED32
    SFIXED64 = _FieldDescriptor.TYPE_SFIXED64
    SINT32 = _FieldDescriptor.TYPE_SINT32
    SINT64 = _FieldDescriptor.TYPE_SINT64


_SCALAR_TYPES = frozenset(scalar.value for scalar in Scalar)


class Cardinality(enum.Enum):
    """How many values a field holds.

    SINGULAR fields always hold a value. OPTIONAL fields track presence.
    REPEATED fields hold a sequence and MAP_ENTRY fields hold key/value pairs
    described by a synthetic entry message.
    """

    SINGULAR = 1
    OPTIONAL = 2
    REPEATED = 3
    MAP_ENTRY = 4


class ProtoFile:
    """A .proto file of the descriptor set."""

    def __init__(self, name: str, package: str, syntax: str):
        self._name = name
        self._package = package
        self._syntax = syntax

    def name(self) -> str:
        return self._name

    def package(self) -> str:
        return self._package

    def syntax(self) -> str:
        """One of 'proto2', 'proto3' or 'editions'."""
        return self._syntax

    def __repr__(self) -> str:
        return f'ProtoFile({self._name!r})'


class ProtoNode(abc.ABC):
    """A ProtoNode represents a named scope or type in the descriptor set.

    Nodes form a tree beginning at a top-level (global) scope, descending into a
    hierarchy of .proto packages and the messages, enums and oneofs defined
    within them. Messages, enums and oneofs are the schema entities that code
    is generated for.
    """

    class Type(enum.Enum):
        """The type of a ProtoNode.

        PACKAGE is a segment of a .proto package name.
        MESSAGE, ENUM and ONEOF are schema entities.
        """

        PACKAGE = 1
        MESSAGE = 2
        ENUM = 3
        ONEOF = 4

    def __init__(self, name: str, proto_file: ProtoFile | None = None):
        self._name: str = name
        self._children: dict[str, 'ProtoNode'] = {}
        self._parent: 'ProtoNode | None' = None
        self._file = proto_file
        self._index = -1
        self._comments = ''

    @abc.abstractmethod
    def type(self) -> 'ProtoNode.Type':
        """The type of the node."""

    def children(self) -> list['ProtoNode']:
        return list(self._children.values())

    def name(self) -> str:
        return self._name

    def file(self) -> ProtoFile | None:
        """The .proto file that declares this node; None for packages."""
        return self._file

    def index(self) -> int:
        """Position of the entity in declaration order across all files."""
        return self._index

    def comments(self) -> str:
        return self._comments

    def is_entity(self) -> bool:
        return self.type() is not ProtoNode.Type.PACKAGE

    def proto_path(self) -> str:
        """Fully-qualified package path of the node, without a leading dot."""
        path = '.'.join(self._attr_hierarchy(lambda node: node.name(), None))
        return path.lstrip('.')

    def package(self) -> str:
        """The proto package that contains the node."""
        node: ProtoNode | None = self
        while node is not None and node.type() is not ProtoNode.Type.PACKAGE:
            node = node.parent()
        return node.proto_path() if node is not None else ''

    def nesting(self) -> list[str]:
        """Names from the outermost enclosing message down to this node."""
        names = []
        node: ProtoNode | None = self
        while node is not None and node.type() is not ProtoNode.Type.PACKAGE:
            names.append(node.name())
            node = node.parent()
        return list(reversed(names))

    def add_child(self, child: 'ProtoNode') -> None:
        """Inserts a new node into the tree as a child of this node.

        Args:
          child: The node to insert.

        Raises:
          ValueError: This node does not allow nesting the given type of child.
        """
        if not self._supports_child(child):
            raise ValueError(
                f'Invalid child {child.type()} for node of type {self.type()}'
            )

        # pylint: disable=protected-access
        if child._parent is not None:
            del child._parent._children[child.name()]

        child._parent = self
        self._children[child.name()] = child
        # pylint: enable=protected-access

    def find(self, path: str) -> 'ProtoNode | None':
        """Finds a node within this node's subtree."""
        node = self

        # pylint: disable=protected-access
        for section in path.split('.'):
            child = node._children.get(section)
            if child is None:
                return None
            node = child
        # pylint: enable=protected-access

        return node

    def parent(self) -> 'ProtoNode | None':
        return self._parent

    def __iter__(self) -> Iterator['ProtoNode']:
        """Iterates depth-first through all nodes in this node's subtree."""
        yield self
        for child_iterator in self._children.values():
            yield from child_iterator

    def __repr__(self) -> str:
        return f'{type(self).__name__}({self.proto_path()!r})'

    def _attr_hierarchy(
        self,
        attr_accessor: Callable[['ProtoNode'], T],
        root: 'ProtoNode | None',
    ) -> Iterator[T]:
        """Fetches node attributes at each level of the tree from the root.

        Args:
          attr_accessor: Function which extracts attributes from a ProtoNode.
          root: The node at which to terminate.

        Returns:
          An iterator to a list of the selected attributes from the root to the
          current node.
        """
        hierarchy = []
        node: ProtoNode | None = self
        while node is not None and node != root:
            hierarchy.append(attr_accessor(node))
            node = node.parent()
        return reversed(hierarchy)

    @abc.abstractmethod
    def _supports_child(self, child: 'ProtoNode') -> bool:
        """Returns True if child is a valid child type for the current node."""


class ProtoPackage(ProtoNode):
    """A protobuf package."""

    def type(self) -> ProtoNode.Type:
        return ProtoNode.Type.PACKAGE

    def _supports_child(self, child: ProtoNode) -> bool:
        return child.type() is not ProtoNode.Type.ONEOF


class ProtoEnumValue(NamedTuple):
    name: str
    number: int
    comments: str = ''


class ProtoEnum(ProtoNode):
    """Representation of an enum in a .proto file."""

    def __init__(self, name: str, proto_file: ProtoFile | None = None):
        super().__init__(name, proto_file)
        self._values: list[ProtoEnumValue] = []

    def type(self) -> ProtoNode.Type:
        return ProtoNode.Type.ENUM

    def values(self) -> list[ProtoEnumValue]:
        """All values in declaration order, including aliases."""
        return list(self._values)

    def unique_values(self) -> list[ProtoEnumValue]:
        """Values in declaration order, keeping the first name per number."""
        seen: set[int] = set()
        unique = []
        for value in self._values:
            if value.number not in seen:
                seen.add(value.number)
                unique.append(value)
        return unique

    def default_value(self) -> ProtoEnumValue:
        return self._values[0]

    def add_value(self, value: ProtoEnumValue) -> None:
        self._values.append(value)

    def _supports_child(self, child: ProtoNode) -> bool:
        # Enums cannot have nested children.
        return False


class ProtoMessage(ProtoNode):
    """Representation of a message in a .proto file."""

    def __init__(
        self,
        name: str,
        proto_file: ProtoFile | None = None,
        map_entry: bool = False,
    ):
        super().__init__(name, proto_file)
        self._fields: list['ProtoMessageField'] = []
        self._map_entry = map_entry

    def type(self) -> ProtoNode.Type:
        return ProtoNode.Type.MESSAGE

    def fields(self) -> list['ProtoMessageField']:
        """Fields in declaration order."""
        return list(self._fields)

    def fields_by_number(self) -> list['ProtoMessageField']:
        """Fields in ascending field number order, the wire order."""
        return sorted(self._fields, key=lambda field: field.number())

    def field(self, number: int) -> 'ProtoMessageField | None':
        for field in self._fields:
            if field.number() == number:
                return field
        return None

    def oneofs(self) -> list['ProtoOneof']:
        return [
            child
            for child in self.children()
            if child.type() is ProtoNode.Type.ONEOF
        ]  # type: ignore[misc]

    def is_map_entry(self) -> bool:
        """True for the synthetic entry message of a map field."""
        return self._map_entry

    def add_field(self, field: 'ProtoMessageField') -> None:
        """Adds a field, rejecting duplicate numbers and names."""
        for existing in self._fields:
            if existing.number() == field.number():
                raise DuplicateFieldNumber(
                    f'field number {field.number()} is used by both '
                    f'{existing.name()!r} and {field.name()!r}',
                    file=self._file.name() if self._file else None,
                    entity=self.proto_path(),
                    field=field.name(),
                )
            if existing.name() == field.name():
                raise DuplicateIdentifier(
                    f'field name {field.name()!r} is declared twice',
                    file=self._file.name() if self._file else None,
                    entity=self.proto_path(),
                    field=field.name(),
                )
        self._fields.append(field)

    def _supports_child(self, child: ProtoNode) -> bool:
        return child.type() in (
            ProtoNode.Type.MESSAGE,
            ProtoNode.Type.ENUM,
            ProtoNode.Type.ONEOF,
        )


class ProtoOneof(ProtoNode):
    """A oneof: mutually exclusive fields of its parent message."""

    def __init__(self, name: str, proto_file: ProtoFile | None = None):
        super().__init__(name, proto_file)
        self._fields: list['ProtoMessageField'] = []

    def type(self) -> ProtoNode.Type:
        return ProtoNode.Type.ONEOF

    def message(self) -> ProtoMessage:
        parent = self.parent()
        assert isinstance(parent, ProtoMessage)
        return parent

    def fields(self) -> list['ProtoMessageField']:
        """Alternatives in ascending field number order."""
        return sorted(self._fields, key=lambda field: field.number())

    def number(self) -> int:
        """The lowest field number, which positions the oneof on the wire."""
        return min(field.number() for field in self._fields)

    def add_field(self, field: 'ProtoMessageField') -> None:
        self._fields.append(field)

    def _supports_child(self, child: ProtoNode) -> bool:
        return False


class TypeRef:
    """The declared type of a field.

    Scalar types are known from the descriptor. Message and enum types start
    out as a possibly relative name, which the resolver binds to an entity.
    """

    def __init__(
        self,
        scalar: Scalar | None = None,
        type_name: str | None = None,
        declared_type: int = 0,
    ):
        assert (scalar is None) != (type_name is None)
        self._scalar = scalar
        self._type_name = type_name
        self._declared_type = declared_type
        self._entity: ProtoMessage | ProtoEnum | None = None

    def scalar(self) -> Scalar | None:
        return self._scalar

    def type_name(self) -> str | None:
        return self._type_name

    def entity(self) -> ProtoMessage | ProtoEnum | None:
        return self._entity

    def is_resolved(self) -> bool:
        return self._scalar is not None or self._entity is not None

    def bind(self, entity: ProtoMessage | ProtoEnum) -> None:
        self._entity = entity

    def is_message(self) -> bool:
        if self._entity is not None:
            return self._entity.type() is ProtoNode.Type.MESSAGE
        return self._declared_type in (
            _FieldDescriptor.TYPE_MESSAGE,
            _FieldDescriptor.TYPE_GROUP,
        )

    def is_enum(self) -> bool:
        if self._entity is not None:
            return self._entity.type() is ProtoNode.Type.ENUM
        return self._declared_type == _FieldDescriptor.TYPE_ENUM

    def __repr__(self) -> str:
        if self._scalar is not None:
            return f'TypeRef({self._scalar.name})'
        if self._entity is not None:
            return f'TypeRef({self._entity.proto_path()})'
        return f'TypeRef({self._type_name!r}, unresolved)'


# This class is not a node and does not appear in the proto tree.
# Fields belong to proto messages and are processed separately.
class ProtoMessageField:
    """Representation of a field within a protobuf message."""

    def __init__(
        self,
        field_name: str,
        field_number: int,
        type_ref: TypeRef,
        message: ProtoMessage,
        cardinality: Cardinality | None = None,
        oneof: ProtoOneof | None = None,
        comments: str = '',
    ):
        self._field_name = field_name
        self._number = field_number
        self._type_ref = type_ref
        self._message = message
        self._cardinality = cardinality
        self._oneof = oneof
        self._comments = comments

    def name(self) -> str:
        return self._field_name

    def number(self) -> int:
        return self._number

    def type_ref(self) -> TypeRef:
        return self._type_ref

    def message(self) -> ProtoMessage:
        return self._message

    def oneof(self) -> ProtoOneof | None:
        return self._oneof

    def comments(self) -> str:
        return self._comments

    def cardinality(self) -> Cardinality:
        # Fields with implicit presence still track presence for messages.
        if self._cardinality is None:
            if self._type_ref.is_message():
                return Cardinality.OPTIONAL
            return Cardinality.SINGULAR
        return self._cardinality

    def proto_path(self) -> str:
        return f'{self._message.proto_path()}.{self._field_name}'

    def __repr__(self) -> str:
        return f'ProtoMessageField({self.proto_path()!r}, {self._number})'


class DescriptorModel:
    """All packages, files and entities of one compiler invocation."""

    def __init__(self) -> None:
        self._root = ProtoPackage('')
        self._files: list[ProtoFile] = []
        self._entities: list[ProtoNode] = []

    def root(self) -> ProtoNode:
        return self._root

    def files(self) -> list[ProtoFile]:
        return list(self._files)

    def entities(self) -> list[ProtoNode]:
        """Messages, enums and oneofs in declaration order."""
        return list(self._entities)

    def messages(self) -> list[ProtoMessage]:
        return [
            entity
            for entity in self._entities
            if isinstance(entity, ProtoMessage)
        ]

    def lookup(self, proto_path: str) -> ProtoNode | None:
        """Finds a package or entity by fully-qualified name."""
        proto_path = proto_path.lstrip('.')
        if not proto_path:
            return self._root
        return self._root.find(proto_path)

    def add_file(self, proto_file: ProtoFile) -> None:
        self._files.append(proto_file)

    def add_entity(
        self, parent: ProtoNode, entity: ProtoNode, comments: str = ''
    ) -> None:
        """Inserts an entity below parent, rejecting duplicate names."""
        existing = parent.find(entity.name())
        if existing is not None:
            file = entity.file()
            raise DuplicateIdentifier(
                f'{existing.type().name.lower()} '
                f'{existing.proto_path()!r} is already defined',
                file=file.name() if file else None,
                entity=existing.proto_path(),
            )

        parent.add_child(entity)
        # pylint: disable=protected-access
        entity._index = len(self._entities)
        entity._comments = comments
        # pylint: enable=protected-access
        self._entities.append(entity)


def _leading_comments(proto_file) -> _CommentMap:
    comments: _CommentMap = {}
    for location in proto_file.source_code_info.location:
        if location.leading_comments:
            comments[tuple(location.path)] = textwrap.dedent(
                location.leading_comments
            ).strip()
    return comments


def _syntax(proto_file) -> str:
    return proto_file.syntax or 'proto2'


def _type_ref(field) -> TypeRef:
    if field.type in _SCALAR_TYPES:
        return TypeRef(scalar=Scalar(field.type))
    return TypeRef(type_name=field.type_name, declared_type=field.type)


def _is_map_field(field, proto_message, message_path: str) -> bool:
    """Checks whether a repeated field refers to a nested map entry type."""
    if not field.type_name:
        return False

    entries = {
        nested.name for nested in proto_message.nested_type
        if nested.options.map_entry
    }
    entry_name = field.type_name.rsplit('.', 1)[-1]
    if entry_name not in entries:
        return False

    if field.type_name.startswith('.'):
        return field.type_name == f'.{message_path}.{entry_name}'
    return field.type_name == entry_name


class FieldPresence(enum.Enum):
    """The field_presence feature of editions files."""

    FIELD_PRESENCE_UNKNOWN = 0
    EXPLICIT = 1
    IMPLICIT = 2
    LEGACY_REQUIRED = 3


def _field_presence(field, options_chain: list) -> FieldPresence:
    """Finds the field_presence feature of an editions field.

    Features set on the field override those of enclosing messages, which
    override the file's. Without the feature, presence is explicit.
    """
    for options in [field.options, *reversed(options_chain)]:
        if not hasattr(options, 'features'):
            continue
        if options.HasField('features') and options.features.HasField(
            'field_presence'
        ):
            return FieldPresence(options.features.field_presence)
    return FieldPresence.EXPLICIT


def _cardinality(
    field,
    proto_message,
    message_path: str,
    syntax: str,
    options_chain: list,
) -> Cardinality | None:
    """Determines field cardinality.

    Returns None for fields with implicit presence, whose cardinality depends
    on whether the type resolves to a message.
    """
    if field.label == _FieldDescriptor.LABEL_REPEATED:
        if _is_map_field(field, proto_message, message_path):
            return Cardinality.MAP_ENTRY
        return Cardinality.REPEATED

    if field.proto3_optional:
        return Cardinality.OPTIONAL

    if field.HasField('oneof_index') or (
        field.label == _FieldDescriptor.LABEL_REQUIRED
    ):
        return Cardinality.SINGULAR

    if syntax == 'editions':
        presence = _field_presence(field, options_chain)
        if presence is FieldPresence.LEGACY_REQUIRED:
            return Cardinality.SINGULAR
        if presence is FieldPresence.IMPLICIT:
            return None
        return Cardinality.OPTIONAL

    if syntax == 'proto3':
        return None

    return Cardinality.OPTIONAL


def _synthetic_oneofs(proto_message) -> set[int]:
    """Finds the oneofs protoc creates for proto3 optional fields."""
    synthetic = set()
    for index in range(len(proto_message.oneof_decl)):
        members = [
            field
            for field in proto_message.field
            if field.HasField('oneof_index') and field.oneof_index == index
        ]
        if members and all(field.proto3_optional for field in members):
            synthetic.add(index)
    return synthetic


def _build_enum(
    model: DescriptorModel,
    parent: ProtoNode,
    proto_enum,
    file_node: ProtoFile,
    path: tuple[int, ...],
    comments: _CommentMap,
) -> None:
    """Creates an enum node and its values."""
    enum_node = ProtoEnum(proto_enum.name, file_node)
    model.add_entity(parent, enum_node, comments.get(path, ''))

    if not proto_enum.value:
        raise InvalidEnum(
            'enum declares no values',
            file=file_node.name(),
            entity=enum_node.proto_path(),
        )

    names: set[str] = set()
    numbers: set[int] = set()
    for index, value in enumerate(proto_enum.value):
        if value.name in names:
            raise DuplicateIdentifier(
                f'enum value {value.name!r} is declared twice',
                file=file_node.name(),
                entity=enum_node.proto_path(),
            )
        if value.number in numbers and not proto_enum.options.allow_alias:
            raise InvalidEnum(
                f'enum value number {value.number} is used twice; set '
                'allow_alias to declare aliases',
                file=file_node.name(),
                entity=enum_node.proto_path(),
            )
        names.add(value.name)
        numbers.add(value.number)
        enum_node.add_value(
            ProtoEnumValue(
                value.name,
                value.number,
                comments.get(path + (_ENUM_VALUE, index), ''),
            )
        )

    if file_node.syntax() == 'proto3' and proto_enum.value[0].number != 0:
        raise InvalidEnum(
            'the first value of a proto3 enum must be zero',
            file=file_node.name(),
            entity=enum_node.proto_path(),
        )


def _build_hierarchy(model: DescriptorModel, proto_file, comments: _CommentMap):
    """Creates the ProtoNode hierarchy of a proto file descriptor."""
    file_node = ProtoFile(
        proto_file.name, proto_file.package, _syntax(proto_file)
    )
    model.add_file(file_node)

    package_root = model.root()
    if proto_file.package:
        for part in proto_file.package.split('.'):
            package = package_root.find(part)
            if package is None:
                package = ProtoPackage(part)
                package_root.add_child(package)
            elif package.type() is not ProtoNode.Type.PACKAGE:
                raise DuplicateIdentifier(
                    f'package {proto_file.package!r} collides with '
                    f'{package.proto_path()!r}',
                    file=proto_file.name,
                    entity=package.proto_path(),
                )
            package_root = package

    def build_message_subtree(parent: ProtoNode, proto_message, path):
        node = ProtoMessage(
            proto_message.name,
            file_node,
            map_entry=proto_message.options.map_entry,
        )
        model.add_entity(parent, node, comments.get(path, ''))

        for index, submessage in enumerate(proto_message.nested_type):
            build_message_subtree(
                node, submessage, path + (_MESSAGE_NESTED_TYPE, index)
            )
        for index, proto_enum in enumerate(proto_message.enum_type):
            _build_enum(
                model,
                node,
                proto_enum,
                file_node,
                path + (_MESSAGE_ENUM_TYPE, index),
                comments,
            )

        synthetic = _synthetic_oneofs(proto_message)
        for index, oneof in enumerate(proto_message.oneof_decl):
            if index not in synthetic:
                model.add_entity(
                    node,
                    ProtoOneof(oneof.name, file_node),
                    comments.get(path + (_MESSAGE_ONEOF_DECL, index), ''),
                )

    for index, message in enumerate(proto_file.message_type):
        build_message_subtree(
            package_root, message, (_FILE_MESSAGE_TYPE, index)
        )

    for index, proto_enum in enumerate(proto_file.enum_type):
        _build_enum(
            model,
            package_root,
            proto_enum,
            file_node,
            (_FILE_ENUM_TYPE, index),
            comments,
        )

    return file_node, package_root


def _populate_fields(
    proto_file,
    file_node: ProtoFile,
    package_root: ProtoNode,
    comments: _CommentMap,
) -> None:
    """Traverses a proto file, adding all message fields to the tree."""

    def populate_message(node, proto_message, path, options_chain):
        """Recursively populates nested messages."""
        options_chain = options_chain + [proto_message.options]
        synthetic = _synthetic_oneofs(proto_message)
        oneofs = {
            index: node.find(oneof.name)
            for index, oneof in enumerate(proto_message.oneof_decl)
            if index not in synthetic
        }

        for index, field in enumerate(proto_message.field):
            oneof = None
            if field.HasField('oneof_index'):
                oneof = oneofs.get(field.oneof_index)

            field_def = ProtoMessageField(
                field.name,
                field.number,
                _type_ref(field),
                node,
                _cardinality(
                    field,
                    proto_message,
                    node.proto_path(),
                    file_node.syntax(),
                    options_chain,
                ),
                oneof,
                comments.get(path + (_MESSAGE_FIELD, index), ''),
            )
            node.add_field(field_def)
            if oneof is not None:
                oneof.add_field(field_def)

        for index, msg in enumerate(proto_message.nested_type):
            populate_message(
                node.find(msg.name),
                msg,
                path + (_MESSAGE_NESTED_TYPE, index),
                options_chain,
            )

    # Iterate through the proto file, populating top-level objects.
    for index, message in enumerate(proto_file.message_type):
        populate_message(
            package_root.find(message.name),
            message,
            (_FILE_MESSAGE_TYPE, index),
            [proto_file.options],
        )


def build_model(proto_files: Iterable) -> DescriptorModel:
    """Builds the descriptor model of a set of FileDescriptorProtos.

    Args:
      proto_files: File descriptors in dependency order, as found in a
        FileDescriptorSet.

    Raises:
      SchemaError: The descriptors declare duplicate names or field numbers,
        or an invalid enum.
    """
    model = DescriptorModel()

    # Two passes are made through the files. The first builds the tree of all
    # message/enum/oneof nodes, then the second creates the fields in each.
    # This is done as fields belong to oneofs declared after them, and type
    # references are resolved separately once every file is loaded.
    built = []
    for proto_file in proto_files:
        comments = _leading_comments(proto_file)
        file_node, package_root = _build_hierarchy(model, proto_file, comments)
        built.append((proto_file, file_node, package_root, comments))

    for proto_file, file_node, package_root, comments in built:
        _populate_fields(proto_file, file_node, package_root, comments)

    return model
