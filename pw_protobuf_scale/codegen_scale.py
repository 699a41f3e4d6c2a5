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
"""This module defines the generated code for SCALE-encoded Python classes."""

import concurrent.futures
import dataclasses
import logging
import os
from typing import Iterable

from pw_protobuf_scale import naming, type_mapper
from pw_protobuf_scale.config import ExternPaths, GeneratorOptions, PathMatcher
from pw_protobuf_scale.dependency_graph import DependencyGraph
from pw_protobuf_scale.errors import SchemaError
from pw_protobuf_scale.output_file import OutputFile
from pw_protobuf_scale.proto_tree import (
    Cardinality,
    DescriptorModel,
    ProtoEnum,
    ProtoMessage,
    ProtoMessageField,
    ProtoNode,
    ProtoOneof,
)
from pw_protobuf_scale.resolver import Classification
from pw_protobuf_scale.type_mapper import Codec, Container, TargetRepr

_LOG = logging.getLogger(__name__)

PLUGIN_NAME = 'pw_protobuf_scale'
PLUGIN_VERSION = '0.1.0'

PYTHON_EXTENSION = '.py'
PACKAGE_INIT = '__init__.py'

# SCALE enum variant indices are a single byte.
MAX_ONEOF_TAG = 255


@dataclasses.dataclass(frozen=True)
class TypeReference:
    """How code in one generated module refers to a class.

    Deferred references name classes that may not exist yet while the
    referring class body runs: classes declared later in the same module or
    classes in other modules.
    """

    expression: str
    deferred: bool

    def annotation(self) -> str:
        return f"'{self.expression}'" if self.deferred else self.expression


@dataclasses.dataclass
class _Member:
    """A field or oneof of a message, as emitted."""

    attribute: str
    number: int
    node: ProtoMessageField | ProtoOneof
    target: TargetRepr


def _docstring(output: OutputFile, text: str) -> None:
    text = text.replace('\\', '\\\\').replace('"""', '\\"\\"\\"')
    if text.endswith('"'):
        text = text[:-1] + '\\"'
    lines = text.splitlines()
    if len(lines) == 1:
        output.write_line(f'"""{lines[0]}"""')
        return
    output.write_line(f'"""{lines[0]}')
    for line in lines[1:]:
        output.write_line(line.rstrip())
    output.write_line('"""')


def _comment(output: OutputFile, text: str) -> None:
    for line in text.splitlines():
        output.write_line(f'# {line}'.rstrip())


def _file_name(entity: ProtoNode) -> str | None:
    file = entity.file()
    return file.name() if file is not None else None


def _check_oneof_tags(oneof: ProtoOneof) -> None:
    for field in oneof.fields():
        if field.number() > MAX_ONEOF_TAG:
            raise SchemaError(
                f'oneof field number {field.number()} is larger than '
                f'{MAX_ONEOF_TAG}, the largest SCALE variant index',
                file=_file_name(oneof),
                entity=oneof.proto_path(),
                field=field.name(),
            )


def module_filename(module: str, modules: Iterable[str]) -> str:
    """Returns the path of a module's file, relative to the output root.

    Modules with submodules are written as packages.
    """
    path = module.replace('.', '/')
    if any(other.startswith(module + '.') for other in modules):
        return f'{path}/{PACKAGE_INIT}'
    return path + PYTHON_EXTENSION


class _UnitGenerator:
    """Writes the emission units of one module.

    Each instance renders a single unit, so units can be rendered on separate
    threads. Imports of other modules are collected as they are referenced.
    """

    def __init__(self, codegen: 'CodeGenerator', module: str):
        self._codegen = codegen
        self._names = codegen.names
        self._module = module
        self.imports: set[str] = set()

    def _reference(self, entity: ProtoNode, indirect: bool) -> TypeReference:
        external = self._codegen.extern_paths.resolve(
            entity.package(), entity.nesting()
        )
        if external is not None:
            module, class_name = external
            self.imports.add(module)
            return TypeReference(
                f'{naming.module_alias(module)}.{class_name}', True
            )

        module = self._codegen.module_of(entity)
        class_name = self._names.class_name(entity)
        if module == self._module:
            return TypeReference(class_name, indirect)

        import_path = self._codegen.options.module_prefix + module
        self.imports.add(import_path)
        return TypeReference(
            f'{naming.module_alias(import_path)}.{class_name}', True
        )

    def _element(self, codec: Codec, indirect: bool) -> TypeReference:
        if codec.entity is None:
            assert codec.python_type is not None
            return TypeReference(codec.python_type, False)
        return self._reference(codec.entity, indirect)

    def _annotation(self, target: TargetRepr, oneof_class: str = '') -> str:
        if target.container is Container.ONEOF:
            variants = [
                f'{oneof_class}.{self._names.variant(field)}'
                for field, _ in target.alternatives
            ]
            if len(variants) == 1:
                return f'typing.Optional[{variants[0]}]'
            return f'typing.Optional[typing.Union[{", ".join(variants)}]]'

        assert target.element is not None
        element = self._element(target.element, target.indirect).annotation()
        if target.container is Container.OPTIONAL:
            return f'typing.Optional[{element}]'
        if target.container is Container.SEQUENCE:
            return f'list[{element}]'
        if target.container is Container.MAP:
            assert target.key is not None
            key = self._element(target.key, False).annotation()
            return f'dict[{key}, {element}]'
        return element

    def _default(self, target: TargetRepr) -> str:
        if target.container in (Container.OPTIONAL, Container.ONEOF):
            return 'None'
        if target.container is Container.SEQUENCE:
            return 'dataclasses.field(default_factory=list)'
        if target.container is Container.MAP:
            return 'dataclasses.field(default_factory=dict)'

        codec = target.element
        assert codec is not None
        if codec.entity is None:
            assert codec.default is not None
            return codec.default

        reference = self._element(codec, target.indirect)
        if isinstance(codec.entity, ProtoEnum):
            if reference.deferred:
                number = codec.entity.default_value().number
                return (
                    'dataclasses.field(default_factory=lambda: '
                    f'{reference.expression}({number}))'
                )
            _, member = self._names.members(codec.entity)[0]
            return f'{reference.expression}.{member}'

        if reference.deferred:
            return (
                'dataclasses.field(default_factory=lambda: '
                f'{reference.expression}())'
            )
        return f'dataclasses.field(default_factory={reference.expression})'

    def _encode_value(self, codec: Codec, value: str) -> str:
        if codec.is_message():
            return f'yield {value}'
        return f'encoder.write_{codec.hint}({value})'

    def _decode_value(self, codec: Codec, indirect: bool) -> str:
        if codec.entity is None:
            return f'decoder.read_{codec.hint}()'
        runtime = self._element(codec, indirect).expression
        if codec.is_message():
            return f'(yield {runtime})'
        return f'{runtime}(decoder.read_i32())'

    def _encode_member(
        self, output: OutputFile, member: _Member, message: ProtoMessage
    ) -> None:
        target = member.target
        value = f'self.{member.attribute}'

        if target.container is Container.VALUE:
            assert target.element is not None
            output.write_line(self._encode_value(target.element, value))

        elif target.container is Container.OPTIONAL:
            assert target.element is not None
            output.write_line(f'if {value} is None:')
            with output.indent():
                output.write_line('encoder.write_option(False)')
            output.write_line('else:')
            with output.indent():
                output.write_line('encoder.write_option(True)')
                output.write_line(self._encode_value(target.element, value))

        elif target.container is Container.SEQUENCE:
            assert target.element is not None
            output.write_line(f'encoder.write_length(len({value}))')
            output.write_line(f'for item in {value}:')
            with output.indent():
                output.write_line(self._encode_value(target.element, 'item'))

        elif target.container is Container.MAP:
            assert target.element is not None and target.key is not None
            output.write_line(f'encoder.write_length(len({value}))')
            output.write_line(f'for key, value in sorted({value}.items()):')
            with output.indent():
                output.write_line(self._encode_value(target.key, 'key'))
                output.write_line(self._encode_value(target.element, 'value'))

        else:
            oneof_class = self._names.class_name(member.node)
            output.write_line(f'if {value} is None:')
            with output.indent():
                output.write_line('encoder.write_option(False)')
            for field, alternative in target.alternatives:
                variant = f'{oneof_class}.{self._names.variant(field)}'
                output.write_line(f'elif isinstance({value}, {variant}):')
                with output.indent():
                    output.write_line('encoder.write_option(True)')
                    output.write_line(f'encoder.write_u8({field.number()})')
                    assert alternative.element is not None
                    output.write_line(
                        self._encode_value(
                            alternative.element, f'{value}.value'
                        )
                    )
            output.write_line('else:')
            with output.indent():
                output.write_line('raise scale.EncodeError(')
                with output.indent():
                    output.write_line(
                        f"f'Invalid {message.name()}.{member.node.name()} "
                        f"variant: {{{value}!r}}'"
                    )
                output.write_line(')')

    def _decode_member(
        self, output: OutputFile, member: _Member, message: ProtoMessage
    ) -> None:
        target = member.target
        local = f'_{member.attribute}'

        if target.container is Container.VALUE:
            assert target.element is not None
            decoded = self._decode_value(target.element, target.indirect)
            output.write_line(f'{local} = {decoded}')

        elif target.container is Container.OPTIONAL:
            assert target.element is not None
            decoded = self._decode_value(target.element, target.indirect)
            output.write_line('if decoder.read_option():')
            with output.indent():
                output.write_line(f'{local} = {decoded}')
            output.write_line('else:')
            with output.indent():
                output.write_line(f'{local} = None')

        elif target.container is Container.SEQUENCE:
            assert target.element is not None
            decoded = self._decode_value(target.element, target.indirect)
            size = target.element.min_size
            output.write_line(f'{local} = []')
            output.write_line(
                'for _ in range(decoder.read_length'
                f'({size if size else ""})):'
            )
            with output.indent():
                output.write_line(f'{local}.append({decoded})')

        elif target.container is Container.MAP:
            assert target.element is not None and target.key is not None
            decoded = self._decode_value(target.element, target.indirect)
            size = target.key.min_size + target.element.min_size
            output.write_line(f'{local} = {{}}')
            output.write_line(f'for _ in range(decoder.read_length({size})):')
            with output.indent():
                key = self._decode_value(target.key, False)
                output.write_line(f'key = {key}')
                output.write_line(f'scale.check_ascending_key({local}, key)')
                output.write_line(f'{local}[key] = {decoded}')

        else:
            oneof_class = self._names.class_name(member.node)
            output.write_line(
                'tag = decoder.read_u8() if decoder.read_option() else 0'
            )
            output.write_line('if tag == 0:')
            with output.indent():
                output.write_line(f'{local} = None')
            for field, alternative in target.alternatives:
                assert alternative.element is not None
                variant = f'{oneof_class}.{self._names.variant(field)}'
                decoded = self._decode_value(
                    alternative.element, alternative.indirect
                )
                output.write_line(f'elif tag == {field.number()}:')
                with output.indent():
                    output.write_line(f'{local} = {variant}({decoded})')
            output.write_line('else:')
            with output.indent():
                output.write_line('raise scale.DecodeError(')
                with output.indent():
                    output.write_line(
                        f"f'Unknown {message.name()}.{member.node.name()} "
                        "tag {tag}'"
                    )
                output.write_line(')')

    def _comments_enabled(self, proto_path: str) -> bool:
        return not self._codegen.disable_comments.matches('.' + proto_path)

    def generate_enum(self, proto_enum: ProtoEnum, output: OutputFile) -> None:
        """Creates a ScaleEnum subclass for a proto enum."""
        class_name = self._names.class_name(proto_enum)
        comments = self._comments_enabled(proto_enum.proto_path())
        members = self._names.members(proto_enum)

        output.write_line(f'class {class_name}(scale.ScaleEnum):')
        with output.indent():
            if comments and proto_enum.comments():
                _docstring(output, proto_enum.comments())
                output.write_line()

            for value, member in members:
                if comments and value.comments:
                    _comment(output, value.comments)
                output.write_line(f'{member} = {value.number}')

            output.write_line()
            output.write_line('@classmethod')
            output.write_line('def proto_names(cls) -> dict[int, str]:')
            with output.indent():
                output.write_line('return {')
                with output.indent():
                    for value, _ in members:
                        output.write_line(f"{value.number}: '{value.name}',")
                output.write_line('}')

    def generate_oneof(self, oneof: ProtoOneof, output: OutputFile) -> None:
        """Creates the namespace class holding a oneof's variants."""
        class_name = self._names.class_name(oneof)
        target = self._codegen.oneof_target(oneof)

        output.write_line(f'class {class_name}(scale.Oneof):')
        with output.indent():
            if self._comments_enabled(oneof.proto_path()) and oneof.comments():
                _docstring(output, oneof.comments())
            else:
                _docstring(
                    output,
                    f'Alternatives of {oneof.message().name()}.{oneof.name()}.',
                )

            for field, alternative in target.alternatives:
                output.write_line()
                output.write_line('@dataclasses.dataclass')
                output.write_line(
                    f'class {self._names.variant(field)}(scale.OneofVariant):'
                )
                with output.indent():
                    if (
                        self._comments_enabled(field.proto_path())
                        and field.comments()
                    ):
                        _docstring(output, field.comments())
                    output.write_line(
                        'FIELD_NUMBER: typing.ClassVar[int] = '
                        f'{field.number()}'
                    )
                    output.write_line(
                        f'value: {self._annotation(alternative)}'
                    )

    def generate_message(
        self, message: ProtoMessage, output: OutputFile
    ) -> None:
        """Creates a dataclass and its SCALE codec for a proto message."""
        class_name = self._names.class_name(message)
        members = self._codegen.members(message)
        leaf = (
            self._codegen.classifications.get(message) is Classification.LEAF
        )

        if self._codegen.skip_repr.matches('.' + message.proto_path()):
            output.write_line('@dataclasses.dataclass(repr=False)')
        else:
            output.write_line('@dataclasses.dataclass')
        output.write_line(f'class {class_name}(scale.Message):')

        with output.indent():
            if (
                self._comments_enabled(message.proto_path())
                and message.comments()
            ):
                _docstring(output, message.comments())
                output.write_line()

            for member in members:
                if (
                    self._comments_enabled(member.node.proto_path())
                    and member.node.comments()
                ):
                    _comment(output, member.node.comments())
                oneof_class = ''
                if isinstance(member.node, ProtoOneof):
                    oneof_class = self._names.class_name(member.node)
                annotation = self._annotation(member.target, oneof_class)
                default = self._default(member.target)
                output.write_line(
                    f'{member.attribute}: {annotation} = {default}'
                )
            if members:
                output.write_line()

            output.write_line('def _scale_encode(')
            with output.indent():
                output.write_line('self, encoder: scale.Encoder')
            output.write_line(') -> typing.Iterator[scale.Message]:')
            with output.indent():
                for member in members:
                    self._encode_member(output, member, message)
                if leaf:
                    output.write_line('yield from ()')

            output.write_line()
            output.write_line('@classmethod')
            output.write_line('def _scale_decode(')
            with output.indent():
                output.write_line('cls, decoder: scale.Decoder')
            output.write_line(
                ') -> typing.Generator['
                f"typing.Any, typing.Any, '{class_name}']:"
            )
            with output.indent():
                for member in members:
                    self._decode_member(output, member, message)
                if leaf:
                    output.write_line('yield from ()')
                if not members:
                    output.write_line('return cls()')
                    return
                output.write_line('return cls(')
                with output.indent():
                    for member in members:
                        output.write_line(
                            f'{member.attribute}=_{member.attribute},'
                        )
                output.write_line(')')

    def generate(self, unit: ProtoNode) -> OutputFile:
        output = OutputFile(unit.proto_path())
        if isinstance(unit, ProtoEnum):
            self.generate_enum(unit, output)
        elif isinstance(unit, ProtoOneof):
            self.generate_oneof(unit, output)
        else:
            assert isinstance(unit, ProtoMessage)
            self.generate_message(unit, output)
        return output


class CodeGenerator:
    """Generates Python modules for the entities of a descriptor model.

    Output is a pure function of the model, graph and options: the same
    input always yields the same files with identical content.
    """

    def __init__(
        self,
        model: DescriptorModel,
        classifications: dict[ProtoNode, Classification],
        graph: DependencyGraph,
        options: GeneratorOptions,
        extern_paths: ExternPaths,
        files_to_generate: Iterable[str] | None = None,
    ):
        self.model = model
        self.classifications = classifications
        self.graph = graph
        self.options = options
        self.extern_paths = extern_paths
        self.boxed = PathMatcher(options.boxed)
        self.disable_comments = PathMatcher(options.disable_comments)
        self.skip_repr = PathMatcher(options.skip_repr)
        self.names = naming.Names(
            graph.nodes(), self.module_of, options.strip_enum_prefix
        )

        order = graph.emission_order()

        # A module holds a whole proto package, so selecting one file of a
        # package emits the entities of all of its files.
        selected = set(files_to_generate) if files_to_generate else None
        modules = {
            self.module_of(unit)
            for unit in order
            if selected is None or _file_name(unit) in selected
        }

        self._units: dict[str, list[ProtoNode]] = {}
        for unit in order:
            module = self.module_of(unit)
            if module in modules:
                self._units.setdefault(module, []).append(unit)

        for units in self._units.values():
            for unit in units:
                if isinstance(unit, ProtoOneof):
                    _check_oneof_tags(unit)

    def module_of(self, entity: ProtoNode) -> str:
        return naming.module_path(
            entity.package(), self.options.default_package_filename
        )

    def modules(self) -> list[str]:
        """Modules that receive at least one emission unit, sorted."""
        return sorted(self._units)

    def units(self, module: str) -> list[ProtoNode]:
        return list(self._units.get(module, []))

    def is_indirect(self, field: ProtoMessageField) -> bool:
        return self.graph.closes_cycle(field) or self.boxed.matches(
            '.' + field.proto_path()
        )

    def field_target(self, field: ProtoMessageField) -> TargetRepr:
        return type_mapper.map_type(
            field.type_ref(), field.cardinality(), self.is_indirect(field)
        )

    def oneof_target(self, oneof: ProtoOneof) -> TargetRepr:
        return type_mapper.map_oneof(
            [
                (
                    field,
                    type_mapper.map_type(
                        field.type_ref(),
                        Cardinality.SINGULAR,
                        self.is_indirect(field),
                    ),
                )
                for field in oneof.fields()
            ]
        )

    def members(self, message: ProtoMessage) -> list[_Member]:
        """The message's fields and oneofs in ascending field number order."""
        members = [
            _Member(
                self.names.attribute(field),
                field.number(),
                field,
                self.field_target(field),
            )
            for field in message.fields()
            if field.oneof() is None
        ]
        members.extend(
            _Member(
                self.names.attribute(oneof),
                oneof.number(),
                oneof,
                self.oneof_target(oneof),
            )
            for oneof in message.oneofs()
        )
        return sorted(members, key=lambda member: member.number)

    def _render_units(
        self, module: str, units: list[ProtoNode]
    ) -> list[tuple[OutputFile, set[str]]]:
        def render(unit: ProtoNode) -> tuple[OutputFile, set[str]]:
            generator = _UnitGenerator(self, module)
            return generator.generate(unit), generator.imports

        if self.options.jobs == 1:
            return [render(unit) for unit in units]

        with concurrent.futures.ThreadPoolExecutor(
            max_workers=self.options.jobs
        ) as executor:
            return list(executor.map(render, units))

    def generate_module(self, module: str, filename: str) -> OutputFile:
        """Generates the Python module for one proto package."""
        units = self._units[module]
        rendered = self._render_units(module, units)

        output = OutputFile(filename)
        self._generated_header(output)
        sources = sorted(
            {unit.file().name() for unit in units},  # type: ignore[union-attr]
        )
        for source in sources:
            output.write_line(f'# source: {source}')

        package = units[0].package()
        _docstring(
            output,
            f'SCALE codec types for the {package or "default"} proto package.',
        )
        output.write_line()

        if any(not isinstance(unit, ProtoEnum) for unit in units):
            output.write_line('import dataclasses')
            output.write_line('import typing')
            output.write_line()
        output.write_line('from pw_protobuf_scale import scale')

        imports = sorted(set().union(*(imports for _, imports in rendered)))
        for import_path in imports:
            output.write_line(
                f'import {import_path} as {naming.module_alias(import_path)}'
            )

        for unit_output, _ in rendered:
            output.write_line()
            output.write_line()
            output.write_block(unit_output)

        return output

    def _generated_header(self, output: OutputFile) -> None:
        output.write_line(
            f'# {os.path.basename(output.name())} automatically '
            f'generated by {PLUGIN_NAME} {PLUGIN_VERSION}'
        )

    def generate_include_file(self, filename: str) -> OutputFile:
        """Generates a module that imports every generated module."""
        output = OutputFile(filename)
        self._generated_header(output)
        _docstring(output, f'Imports every module generated by {PLUGIN_NAME}.')
        output.write_line()
        output.write_line('# pylint: disable=unused-import')
        for module in self.modules():
            output.write_line(f'import {self.options.module_prefix}{module}')
        return output

    def generate(self) -> list[OutputFile]:
        """Generates every output file, sorted by path."""
        modules = self.modules()
        files = {}

        for module in modules:
            filename = module_filename(module, modules)
            files[filename] = self.generate_module(module, filename)
            _LOG.debug(
                'Generated %s with %d units', filename, len(self._units[module])
            )

            parts = module.split('.')
            for depth in range(1, len(parts)):
                parent = '.'.join(parts[:depth])
                if parent in self._units:
                    continue
                init = f'{parent.replace(".", "/")}/{PACKAGE_INIT}'
                if init not in files:
                    files[init] = OutputFile(init)
                    self._generated_header(files[init])

        if self.options.include_file and modules:
            files[self.options.include_file] = self.generate_include_file(
                self.options.include_file
            )

        return [files[name] for name in sorted(files)]


def generate_code(
    model: DescriptorModel,
    classifications: dict[ProtoNode, Classification],
    graph: DependencyGraph,
    options: GeneratorOptions,
    extern_paths: ExternPaths,
    files_to_generate: Iterable[str] | None = None,
) -> list[OutputFile]:
    """Generates Python modules for a resolved, ordered descriptor model."""
    return CodeGenerator(
        model,
        classifications,
        graph,
        options,
        extern_paths,
        files_to_generate,
    ).generate()
