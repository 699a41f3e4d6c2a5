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
"""pw_protobuf_scale compiler plugin.

This file implements a protobuf compiler plugin which generates Python
classes that encode and decode protobuf messages in the SCALE format.

Run it through protoc as protoc-gen-scale:

  protoc --plugin=protoc-gen-scale --scale_out=gen \
      --scale_opt=--module-prefix=gen.,--boxed=.pkg.Tree.children \
      network_protocol.proto
"""

import logging
import sys
from argparse import ArgumentParser, Namespace
from pathlib import Path
from shlex import shlex

from google.protobuf.compiler import plugin_pb2

from pw_protobuf_scale import compiler, config
from pw_protobuf_scale.errors import CompileError

_LOG = logging.getLogger(__name__)

# CodeGeneratorResponse.Feature and Edition values that older protobuf
# releases do not define.
FEATURE_SUPPORTS_EDITIONS = 2
EDITION_PROTO2 = 998
EDITION_2023 = 1000


def parse_parameter_options(parameter: str) -> Namespace:
    """Parses parameters passed through from protoc.

    These parameters come in via passing `--${NAME}_opt` parameters to protoc,
    where protoc-gen-${NAME} is the supplied name of the plugin.
    """
    parser = ArgumentParser(prog='protoc-gen-scale')
    parser.add_argument(
        '--config-file',
        type=Path,
        help='YAML file with a pw_protobuf_scale section',
    )
    config.add_generator_arguments(parser)

    # protoc passes the custom arguments in shell quoted form, separated by
    # commas. Use shlex to split them, correctly handling quoted sections, with
    # equivalent options to IFS=","
    lex = shlex(parameter)
    lex.whitespace_split = True
    lex.whitespace = ','
    lex.commenters = ''
    args = list(lex)

    return parser.parse_args(args)


def process_proto_request(
    req: plugin_pb2.CodeGeneratorRequest, res: plugin_pb2.CodeGeneratorResponse
) -> bool:
    """Handles a protoc CodeGeneratorRequest message.

    Generates code for the files in the request and writes the output to the
    specified CodeGeneratorResponse message.

    Args:
      req: A CodeGeneratorRequest for a proto compilation.
      res: A CodeGeneratorResponse to populate with the plugin's output.

    Returns:
      False if code generation failed; the error is printed to stderr.
    """
    try:
        args = parse_parameter_options(req.parameter)
        options = config.apply_generator_arguments(
            config.ProjectConfig(args.config_file).generator_options(),
            args,
        )
        output_files = compiler.compile_files(
            req.proto_file, options, req.file_to_generate
        )
    except CompileError as err:
        print(err.formatted_message(), file=sys.stderr)
        return False

    for output_file in output_files:
        fd = res.file.add()
        fd.name = output_file.name()
        fd.content = output_file.content()

    return True


def main() -> int:
    """Protobuf compiler plugin entrypoint.

    Reads a CodeGeneratorRequest proto from stdin and writes a
    CodeGeneratorResponse to stdout.
    """
    data = sys.stdin.buffer.read()
    request = plugin_pb2.CodeGeneratorRequest.FromString(data)
    response = plugin_pb2.CodeGeneratorResponse()

    # Declare that this plugin supports optional fields in proto3.
    response.supported_features |= (  # type: ignore[attr-defined]
        response.FEATURE_PROTO3_OPTIONAL
    )  # type: ignore[attr-defined]

    response.supported_features |= FEATURE_SUPPORTS_EDITIONS

    if hasattr(response, 'minimum_edition'):
        response.minimum_edition = EDITION_PROTO2  # type: ignore[attr-defined]
        response.maximum_edition = EDITION_2023  # type: ignore[attr-defined]

    if not process_proto_request(request, response):
        print('pw_protobuf_scale failed to generate code', file=sys.stderr)
        return 1

    sys.stdout.buffer.write(response.SerializeToString())
    return 0


if __name__ == '__main__':
    sys.exit(main())
