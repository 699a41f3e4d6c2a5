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
"""Tests for the pw_protobuf_scale command line."""

import argparse
import logging
import os
from pathlib import Path
import tempfile
import unittest
from unittest import mock

from google.protobuf import descriptor_pb2

from pw_protobuf_scale import config, generate
from pw_protobuf_scale.errors import ConfigError

import descriptor_test_data


class GenerateTest(unittest.TestCase):
    """Tests running the compiler from parsed arguments."""

    def setUp(self) -> None:
        self._tempdir = tempfile.TemporaryDirectory()
        self.addCleanup(self._tempdir.cleanup)
        self.root = Path(self._tempdir.name)

        descriptor_set = descriptor_pb2.FileDescriptorSet()
        descriptor_set.file.extend(descriptor_test_data.proto2_record())
        self.descriptor_set = self.root / 'records.pb'
        self.descriptor_set.write_bytes(descriptor_set.SerializeToString())

        environment = mock.patch.dict(os.environ)
        environment.start()
        self.addCleanup(environment.stop)
        os.environ.pop(config.CONFIG_FILE_ENVIRONMENT_VAR, None)

    def _args(self, *args: str) -> argparse.Namespace:
        return generate.argument_parser().parse_args(list(args))

    def test_descriptor_set(self) -> None:
        out_dir = self.root / 'gen'
        changed = generate.generate(
            self._args(
                '--descriptor-set',
                str(self.descriptor_set),
                '--out-dir',
                str(out_dir),
                'records/record.proto',
            )
        )
        self.assertEqual(changed, [out_dir / 'records.py'])
        self.assertIn(
            'class Record(scale.Message):',
            (out_dir / 'records.py').read_text(),
        )

    def test_config_file(self) -> None:
        config_file = self.root / 'config.yaml'
        config_file.write_text(
            'config_title: pw_protobuf_scale\n'
            f'descriptor_set: {self.descriptor_set}\n'
            f'out_dir: {self.root / "from_config"}\n'
            'include_file: all_protos.py\n'
        )

        changed = generate.generate(
            self._args('--config-file', str(config_file))
        )
        self.assertEqual(
            sorted(path.name for path in changed),
            ['all_protos.py', 'records.py'],
        )

    def test_arguments_override_config_file(self) -> None:
        config_file = self.root / 'config.yaml'
        config_file.write_text(
            'config_title: pw_protobuf_scale\n'
            f'out_dir: {self.root / "from_config"}\n'
        )
        out_dir = self.root / 'from_args'

        generate.generate(
            self._args(
                '--config-file',
                str(config_file),
                '--descriptor-set',
                str(self.descriptor_set),
                '-o',
                str(out_dir),
            )
        )
        self.assertTrue((out_dir / 'records.py').is_file())
        self.assertFalse((self.root / 'from_config').exists())

    def test_no_output_directory(self) -> None:
        with self.assertRaises(ConfigError):
            generate.generate(
                self._args('--descriptor-set', str(self.descriptor_set))
            )

    def test_no_input(self) -> None:
        with self.assertRaises(ConfigError):
            generate.generate(self._args('-o', str(self.root / 'gen')))

    def test_nothing_written_on_error(self) -> None:
        out_dir = self.root / 'gen'
        with self.assertRaises(ConfigError):
            generate.generate(
                self._args(
                    '--descriptor-set',
                    str(self.descriptor_set),
                    '-o',
                    str(out_dir),
                    '--extern-path=records=not_qualified',
                )
            )
        self.assertFalse(out_dir.exists())


class LogLevelTest(unittest.TestCase):
    def test_names(self) -> None:
        self.assertEqual(generate.log_level('debug'), logging.DEBUG)
        self.assertEqual(generate.log_level('WARNING'), logging.WARNING)

    def test_invalid(self) -> None:
        with self.assertRaises(argparse.ArgumentTypeError):
            generate.log_level('loud')


if __name__ == '__main__':
    unittest.main()
