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
"""Tests conversion of proto identifiers to Python identifiers."""

import unittest

from parameterized import parameterized  # type: ignore

from pw_protobuf_scale import naming
from pw_protobuf_scale.compiler import is_external
from pw_protobuf_scale.config import ExternPaths
from pw_protobuf_scale.proto_tree import build_model

import descriptor_test_data


class CaseConversionTest(unittest.TestCase):
    """Tests the case conversion helpers."""

    @parameterized.expand(
        [
            ('snake_case', 'transaction_id', 'transaction_id'),
            ('camel_case', 'isPriority', 'is_priority'),
            ('upper_camel', 'HTTPServer', 'http_server'),
            ('digits', 'field2Name', 'field2_name'),
            ('upper_snake', 'STATUS_PENDING', 'status_pending'),
        ]
    )
    def test_to_snake(self, _, identifier: str, expected: str) -> None:
        self.assertEqual(naming.to_snake(identifier), expected)

    @parameterized.expand(
        [
            ('snake_case', 'phone_number', 'PhoneNumber'),
            ('already_camel', 'PhoneNumber', 'PhoneNumber'),
            ('acronym', 'HTTPServer', 'HttpServer'),
            ('upper_snake', 'NULL_VALUE', 'NullValue'),
        ]
    )
    def test_to_upper_camel(self, _, identifier: str, expected: str) -> None:
        self.assertEqual(naming.to_upper_camel(identifier), expected)

    def test_to_upper_snake(self) -> None:
        self.assertEqual(naming.to_upper_snake('phoneType'), 'PHONE_TYPE')


class EscapeTest(unittest.TestCase):
    """Tests escaping of names Python cannot use."""

    @parameterized.expand(
        [
            ('keyword', 'class', 'class_'),
            ('soft_keyword_is_allowed', 'match', 'match'),
            ('leading_digit', '2d', '_2d'),
            ('empty', '', '_'),
            ('reserved', 'encode', 'encode_'),
            ('plain', 'memo', 'memo'),
        ]
    )
    def test_escape(self, _, name: str, expected: str) -> None:
        self.assertEqual(
            naming.escape(name, naming.MESSAGE_RESERVED), expected
        )

    def test_module_path_escapes_segments(self) -> None:
        self.assertEqual(naming.module_path('my.import.pkg'), 'my.import_.pkg')
        self.assertEqual(naming.module_path(''), '_')
        self.assertEqual(naming.module_path('', 'protos'), 'protos')

    def test_module_alias(self) -> None:
        self.assertEqual(
            naming.module_alias('gen.network.protocol'),
            '_m_gen_network_protocol',
        )


class EnumPrefixTest(unittest.TestCase):
    @parameterized.expand(
        [
            ('stripped', 'PhoneType', 'PHONE_TYPE_MOBILE', 'MOBILE'),
            ('other_prefix', 'PhoneType', 'STATUS_MOBILE', 'STATUS_MOBILE'),
            ('would_be_empty', 'PhoneType', 'PHONE_TYPE_', 'PHONE_TYPE_'),
            ('leading_digit', 'Size', 'SIZE_2X', 'SIZE_2X'),
        ]
    )
    def test_strip_enum_prefix(self, _, enum, value, expected) -> None:
        self.assertEqual(naming.strip_enum_prefix(enum, value), expected)


class NameTableTest(unittest.TestCase):
    """Tests collision handling."""

    def test_collisions_get_numbered_suffixes(self) -> None:
        self.assertEqual(
            naming.assign(['fooBar', 'foo_bar', 'FOO_BAR'], naming.to_snake),
            ['foo_bar', 'foo_bar_2', 'foo_bar_3'],
        )

    def test_reserved_names_are_escaped_before_deduplication(self) -> None:
        self.assertEqual(
            naming.assign(
                ['encode', 'encode_'], naming.to_snake, naming.MESSAGE_RESERVED
            ),
            ['encode_', 'encode__2'],
        )

    def test_contains(self) -> None:
        table = naming.NameTable()
        table.claim('value')
        self.assertIn('value', table)
        self.assertNotIn('other', table)


class NamesTest(unittest.TestCase):
    """Tests the names of one compiler invocation's entities."""

    def setUp(self) -> None:
        self.model = build_model(descriptor_test_data.proto2_record())
        external = is_external(ExternPaths([]))
        entities = [
            entity
            for entity in self.model.entities()
            if not external(entity)
        ]
        self.names = naming.Names(
            entities, lambda entity: naming.module_path(entity.package())
        )

    def test_nested_class_names(self) -> None:
        record = self.model.lookup('records.Record')
        kind = self.model.lookup('records.Record.Kind')
        assert record is not None and kind is not None
        self.assertEqual(self.names.class_name(record), 'Record')
        self.assertEqual(self.names.class_name(kind), 'Record_Kind')

    def test_enum_members(self) -> None:
        kind = self.model.lookup('records.Record.Kind')
        self.assertEqual(
            [name for _, name in self.names.members(kind)],  # type: ignore
            ['FIRST', 'SECOND'],
        )

    def test_attributes_follow_field_names(self) -> None:
        record = self.model.lookup('records.Record')
        self.assertEqual(
            [
                self.names.attribute(field)
                for field in record.fields()  # type: ignore[union-attr]
            ],
            ['name', 'score', 'kind', 'created', 'payload'],
        )


if __name__ == '__main__':
    unittest.main()
