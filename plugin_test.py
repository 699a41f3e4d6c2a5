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
"""Tests for the protoc plugin entry point."""

import contextlib
import io
import unittest

from google.protobuf.compiler import plugin_pb2

from pw_protobuf_scale import plugin

import descriptor_test_data

_DUPLICATE_FIELD_NUMBER = '''
name: "broken.proto"
package: "broken"
syntax: "proto3"
message_type {
  name: "Twice"
  field { name: "a" number: 1 label: LABEL_OPTIONAL type: TYPE_INT32 }
  field { name: "b" number: 1 label: LABEL_OPTIONAL type: TYPE_INT32 }
}
'''


class ParameterOptionsTest(unittest.TestCase):
    """Tests parsing the --scale_opt parameter string."""

    def test_empty(self) -> None:
        args = plugin.parse_parameter_options('')
        self.assertIsNone(args.config_file)
        self.assertEqual(args.boxed, [])
        self.assertIsNone(args.module_prefix)

    def test_comma_separated(self) -> None:
        args = plugin.parse_parameter_options(
            '--module-prefix=gen.,--boxed=.chain.Node.next,'
            '--extern-path=.peers=peer_types,-j,2'
        )
        self.assertEqual(args.module_prefix, 'gen.')
        self.assertEqual(args.boxed, ['.chain.Node.next'])
        self.assertEqual(args.extern_paths, [('.peers', 'peer_types')])
        self.assertEqual(args.jobs, 2)

    def test_flags(self) -> None:
        args = plugin.parse_parameter_options(
            '--include-file=all.py,--no-strip-enum-prefix'
        )
        self.assertEqual(args.include_file, 'all.py')
        self.assertFalse(args.strip_enum_prefix)


class ProcessRequestTest(unittest.TestCase):
    """Tests handling a CodeGeneratorRequest."""

    def _request(self, files, parameter: str = ''):
        request = plugin_pb2.CodeGeneratorRequest()
        request.proto_file.extend(files)
        request.file_to_generate.append(files[-1].name)
        request.parameter = parameter
        return request

    def test_generates_files(self) -> None:
        response = plugin_pb2.CodeGeneratorResponse()
        request = self._request(
            descriptor_test_data.network_protocol(),
            '--include-file=all_protos.py,--module-prefix=gen.',
        )

        self.assertTrue(plugin.process_proto_request(request, response))
        self.assertEqual(
            [file.name for file in response.file],
            ['all_protos.py', 'network/__init__.py', 'network/protocol.py'],
        )
        self.assertIn(
            'import gen.network.protocol', response.file[0].content
        )
        self.assertIn(
            'class TransactionRequest(scale.Message):',
            response.file[2].content,
        )

    def test_only_requested_files(self) -> None:
        response = plugin_pb2.CodeGeneratorResponse()
        request = self._request(
            descriptor_test_data.network_protocol()
            + descriptor_test_data.linked_list()
        )

        self.assertTrue(plugin.process_proto_request(request, response))
        self.assertEqual([file.name for file in response.file], ['chain.py'])

    def test_schema_error(self) -> None:
        response = plugin_pb2.CodeGeneratorResponse()
        request = self._request(
            [descriptor_test_data.parse_file(_DUPLICATE_FIELD_NUMBER)]
        )

        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            self.assertFalse(plugin.process_proto_request(request, response))

        self.assertEqual(len(response.file), 0)
        self.assertIn('pw_protobuf_scale error:', stderr.getvalue())
        self.assertIn('broken.Twice', stderr.getvalue())


if __name__ == '__main__':
    unittest.main()
