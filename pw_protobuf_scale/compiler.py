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
"""Runs the schema compiler pipeline on a set of file descriptors.

The pipeline builds the descriptor model, resolves field types, orders
entities by their dependencies and emits one Python module per proto
package:

  build_model -> resolve -> build_graph -> generate_code

Every stage either succeeds completely or raises a CompileError, and no
output is written unless all of them succeed.
"""

import logging
from pathlib import Path
from typing import Callable, Iterable

from google.protobuf import descriptor_pb2

from pw_protobuf_scale import codegen_scale, dependency_graph, resolver
from pw_protobuf_scale.config import ExternPaths, GeneratorOptions
from pw_protobuf_scale.errors import EmissionIoError
from pw_protobuf_scale.output_file import OutputFile
from pw_protobuf_scale.proto_tree import ProtoNode, build_model

_LOG = logging.getLogger(__name__)


def is_external(extern_paths: ExternPaths) -> Callable[[ProtoNode], bool]:
    """Returns a predicate for entities implemented by extern code."""

    def external(entity: ProtoNode) -> bool:
        return (
            extern_paths.resolve(entity.package(), entity.nesting())
            is not None
        )

    return external


def compile_files(
    proto_files: Iterable[descriptor_pb2.FileDescriptorProto],
    options: GeneratorOptions,
    files_to_generate: Iterable[str] | None = None,
) -> list[OutputFile]:
    """Generates Python code for a set of file descriptors.

    Args:
      proto_files: Descriptors of the files and all of their imports, in
        dependency order.
      options: Code generation options.
      files_to_generate: Names of the files to generate. The module of each
        file holds its whole package, so entities of other files in the same
        package are emitted too. All files are emitted if None.

    Returns:
      The generated files, sorted by path.

    Raises:
      CompileError: The descriptors or options are invalid.
    """
    extern_paths = ExternPaths(options.extern_paths)

    model = build_model(proto_files)
    _LOG.debug(
        'Loaded %d entities from %d files',
        len(model.entities()),
        len(model.files()),
    )

    classifications = resolver.resolve(model)
    graph = dependency_graph.build_graph(model, is_external(extern_paths))

    return codegen_scale.generate_code(
        model,
        classifications,
        graph,
        options,
        extern_paths,
        files_to_generate,
    )


def write_file_if_changed(path: Path, content: str) -> bool:
    """Writes a file unless it already holds the given content.

    Unchanged files keep their modification times.

    Returns:
      Whether the file was written.
    """
    try:
        if path.is_file() and path.read_text() == content:
            return False
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    except OSError as err:
        raise EmissionIoError(f'Failed to write {path}: {err}') from err
    return True


def write_outputs(outputs: Iterable[OutputFile], out_dir: Path) -> list[Path]:
    """Writes generated files below a directory.

    Returns:
      The paths of the files that changed.
    """
    changed = []
    total = 0
    for output in outputs:
        total += 1
        path = out_dir / output.name()
        if write_file_if_changed(path, output.content()):
            _LOG.debug('Wrote %s', path)
            changed.append(path)
        else:
            _LOG.debug('%s is up to date', path)

    _LOG.info(
        'Generated %d files in %s (%d changed)', total, out_dir, len(changed)
    )
    return changed
