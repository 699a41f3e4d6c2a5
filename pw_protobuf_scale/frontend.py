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
"""Produces descriptor sets from .proto sources by invoking protoc."""

import logging
import os
from pathlib import Path
import shlex
import subprocess
import tempfile
from typing import Iterable, NamedTuple, Sequence

from google.protobuf import descriptor_pb2
from google.protobuf.message import DecodeError

from pw_protobuf_scale.errors import FrontendError

_LOG = logging.getLogger(__name__)

DEFAULT_PROTOC = 'protoc'


class DescriptorSet(NamedTuple):
    """Parsed descriptors and the names of the files to generate code for."""

    files: Sequence[descriptor_pb2.FileDescriptorProto]
    files_to_generate: Sequence[str]


def proto_names(
    proto_files: Iterable[Path], include_paths: Iterable[Path]
) -> list[str]:
    """Returns the names protoc gives the files, relative to an include path.

    Proto files not covered by one of the include paths are named relative to
    their directory.
    """
    includes = [include.resolve() for include in include_paths]
    names = []

    for proto in proto_files:
        path = proto.resolve()
        for include in includes:
            if include in path.parents:
                names.append(path.relative_to(include).as_posix())
                break
        else:
            names.append(path.name)

    return names


def parse_descriptor_set(
    data: bytes, source: str
) -> list[descriptor_pb2.FileDescriptorProto]:
    descriptor_set = descriptor_pb2.FileDescriptorSet()
    try:
        descriptor_set.ParseFromString(data)
    except DecodeError as err:
        raise FrontendError(
            f'{source} is not a serialized FileDescriptorSet: {err}'
        ) from err
    return list(descriptor_set.file)


def load_descriptor_set(
    path: Path, files_to_generate: Iterable[str] = ()
) -> DescriptorSet:
    """Reads a FileDescriptorSet written by protoc --descriptor_set_out.

    Args:
      path: The serialized descriptor set.
      files_to_generate: Names of the files to generate code for. Every file
        in the set is generated if empty.
    """
    try:
        data = path.read_bytes()
    except OSError as err:
        raise FrontendError(
            f'Cannot read descriptor set {path}: {err}'
        ) from err

    files = parse_descriptor_set(data, str(path))
    names = list(files_to_generate) or [file.name for file in files]

    known = {file.name for file in files}
    for name in names:
        if name not in known:
            raise FrontendError(f'{name} is not in descriptor set {path}')

    return DescriptorSet(files, names)


def compile_descriptor_set(
    proto_files: Iterable[Path],
    include_paths: Iterable[Path] = (),
    protoc: str = DEFAULT_PROTOC,
) -> DescriptorSet:
    """Parses proto files by invoking the protobuf compiler.

    Imports are included in the returned set, so entities from imported
    files can be resolved. Only the given files are marked for generation.
    Proto files not covered by one of the include paths have their directory
    added as an include path.
    """
    proto_paths: list[Path] = [Path(f).resolve() for f in proto_files]
    includes: list[Path] = []
    for include in include_paths:
        resolved = Path(include).resolve()
        if resolved not in includes:
            includes.append(resolved)

    for path in proto_paths:
        if not any(include in path.parents for include in includes):
            includes.append(path.parent)

    with tempfile.TemporaryDirectory(prefix='pw_protobuf_scale_') as tempdir:
        descriptor_file = Path(tempdir, 'descriptor_set.pb')
        cmd: tuple[str, ...] = (
            protoc,
            '--include_imports',
            '--include_source_info',
            f'--descriptor_set_out={descriptor_file}',
            *(f'-I{include}' for include in includes),
            *(str(path) for path in proto_paths),
        )

        command = ' '.join(shlex.quote(c) for c in cmd)
        _LOG.debug('%s', command)
        try:
            process = subprocess.run(cmd, capture_output=True)
        except OSError as err:
            raise FrontendError(f'Failed to run {protoc}: {err}') from err

        if process.returncode:
            output = process.stderr.decode(errors='replace').strip()
            _LOG.error('protoc invocation failed!\n%s\n%s', command, output)
            raise FrontendError(
                f'{os.path.basename(protoc)} exited with status '
                f'{process.returncode}: {output}'
            )

        try:
            data = descriptor_file.read_bytes()
        except OSError as err:
            raise FrontendError(
                f'{protoc} did not write a descriptor set: {err}'
            ) from err

    return DescriptorSet(
        parse_descriptor_set(data, protoc),
        proto_names(proto_paths, includes),
    )
