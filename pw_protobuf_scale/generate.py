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
"""Generates SCALE codec Python modules from .proto files.

Settings come from a YAML config file (see config.ProjectConfig), with
command-line arguments taking precedence.
"""

import argparse
import logging
from pathlib import Path
import sys

from pw_protobuf_scale import compiler, config, frontend, log
from pw_protobuf_scale.errors import CompileError, ConfigError

_LOG = logging.getLogger(__name__)


def log_level(arg: str) -> int:
    try:
        return getattr(logging, arg.upper())
    except AttributeError as err:
        raise argparse.ArgumentTypeError(
            f'"{arg.upper()}" is not a valid log level'
        ) from err


def argument_parser(
    parser: argparse.ArgumentParser | None = None,
) -> argparse.ArgumentParser:
    """Registers the script's arguments on an argument parser."""

    if parser is None:
        parser = argparse.ArgumentParser(description=__doc__)

    parser.add_argument(
        'protos',
        metavar='PROTO',
        nargs='*',
        type=Path,
        help='Input protobuf files',
    )
    parser.add_argument(
        '-I',
        '--include-path',
        dest='include_paths',
        metavar='DIR',
        action='append',
        default=[],
        type=Path,
        help='protoc include path',
    )
    parser.add_argument(
        '-o',
        '--out-dir',
        type=Path,
        help='Output directory for generated code',
    )
    parser.add_argument(
        '--descriptor-set',
        type=Path,
        help=(
            'Read a FileDescriptorSet written by protoc --include_imports '
            'instead of running protoc'
        ),
    )
    parser.add_argument(
        '--protoc',
        default=frontend.DEFAULT_PROTOC,
        help='The protoc executable',
    )
    parser.add_argument(
        '--config-file',
        type=Path,
        help='YAML file with a pw_protobuf_scale section',
    )
    parser.add_argument(
        '-l',
        '--loglevel',
        type=log_level,
        default=logging.INFO,
        help='Set the log level (debug, info, warning, error, critical)',
    )
    config.add_generator_arguments(parser)

    return parser


def generate(args: argparse.Namespace) -> list[Path]:
    """Runs the compiler as configured by parsed arguments.

    Returns:
      The files that changed.

    Raises:
      CompileError: Compilation failed; nothing was written.
    """
    project = config.ProjectConfig(args.config_file)
    options = config.apply_generator_arguments(
        project.generator_options(), args
    )

    protos = args.protos or project.protos
    include_paths = project.include_paths + args.include_paths
    out_dir = args.out_dir or project.out_dir
    descriptor_set = args.descriptor_set or project.descriptor_set

    if out_dir is None:
        raise ConfigError('No output directory; set --out-dir')

    if descriptor_set is not None:
        descriptors = frontend.load_descriptor_set(
            descriptor_set, [proto.as_posix() for proto in protos]
        )
    elif protos:
        descriptors = frontend.compile_descriptor_set(
            protos, include_paths, args.protoc
        )
    else:
        raise ConfigError(
            'No input; list .proto files or set --descriptor-set'
        )

    outputs = compiler.compile_files(
        descriptors.files, options, descriptors.files_to_generate
    )
    return compiler.write_outputs(outputs, out_dir)


def main() -> int:
    """Generates code as configured by command-line arguments."""
    args = argument_parser().parse_args()
    log.install(args.loglevel)

    try:
        generate(args)
    except CompileError as err:
        _LOG.error('%s', err.formatted_message())
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
