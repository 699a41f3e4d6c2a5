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
"""Errors raised while compiling protobuf schemas to SCALE code."""

from typing import Sequence


class CompileError(Exception):
    """Base class for errors that abort a compiler invocation.

    Errors carry the proto file, fully-qualified entity and field they relate
    to, where known, so diagnostics point at the offending declaration.
    """

    def __init__(
        self,
        error_message: str,
        file: str | None = None,
        entity: str | None = None,
        field: str | None = None,
    ):
        super().__init__(f'pw_protobuf_scale error: {error_message}')
        self.error_message = error_message
        self.file = file
        self.entity = entity
        self.field = field

    def formatted_message(self) -> str:
        lines = [f'pw_protobuf_scale error: {self.error_message}']

        if self.file is not None:
            lines.append(f'    in file {self.file}')
        if self.entity is not None:
            lines.append(f'    at {self.entity}')
        if self.field is not None:
            lines.append(f'    in field {self.field}')

        return '\n'.join(lines)


class SchemaError(CompileError):
    """The descriptor set violates a schema invariant."""


class DuplicateIdentifier(SchemaError):
    """Two entities share a fully-qualified name."""


class DuplicateFieldNumber(SchemaError):
    """Two fields of one message share a field number."""


class InvalidEnum(SchemaError):
    """An enum is empty or lacks the zero value proto3 requires."""


class UnresolvedType(CompileError):
    """A field's type name does not name any known message or enum."""

    def __init__(
        self,
        type_name: str,
        scopes: Sequence[str],
        file: str | None = None,
        entity: str | None = None,
        field: str | None = None,
    ):
        searched = ', '.join(repr(scope) for scope in scopes) or 'none'
        super().__init__(
            f'unresolved type {type_name!r} (searched scopes: {searched})',
            file=file,
            entity=entity,
            field=field,
        )
        self.type_name = type_name
        self.scopes = tuple(scopes)


class GraphError(CompileError):
    """The dependency graph cannot be ordered."""


class UnbreakableCycle(GraphError):
    """A dependency cycle consists only of edges that cannot be indirect.

    The type mapping rules make this unreachable for valid schemas, so this
    indicates a compiler bug rather than a user error.
    """


class EmissionIoError(CompileError):
    """Writing generated output failed."""


class ConfigError(CompileError):
    """The compiler configuration is invalid."""


class FrontendError(CompileError):
    """The proto front end failed to produce a descriptor set."""
