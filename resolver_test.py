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
"""Tests resolving field type names."""

import unittest

from parameterized import parameterized  # type: ignore

from pw_protobuf_scale import resolver
from pw_protobuf_scale.errors import SchemaError, UnresolvedType
from pw_protobuf_scale.proto_tree import ProtoMessage, build_model
from pw_protobuf_scale.resolver import Classification

import descriptor_test_data
from descriptor_test_data import parse_file

_SCOPES = '''
name: "scopes.proto"
package: "outer.inner"
message_type {
  name: "Holder"
  field {
    name: "relative" number: 1 label: LABEL_OPTIONAL type: TYPE_MESSAGE
    type_name: "Leaf"
  }
  field {
    name: "qualified" number: 2 label: LABEL_OPTIONAL type: TYPE_MESSAGE
    type_name: "inner.Leaf"
  }
  field {
    name: "nested" number: 3 label: LABEL_OPTIONAL type: TYPE_ENUM
    type_name: "Holder.Mode"
  }
  field {
    name: "absolute" number: 4 label: LABEL_OPTIONAL type: TYPE_MESSAGE
    type_name: ".outer.Leaf"
  }
  enum_type { name: "Mode" value { name: "MODE_OFF" number: 0 } }
}
message_type { name: "Leaf" }
'''

_OUTER = '''
name: "outer.proto"
package: "outer"
message_type { name: "Leaf" }
'''


class ResolveTest(unittest.TestCase):
    """Tests binding type names with protobuf scoping rules."""

    def setUp(self) -> None:
        self.model = build_model([parse_file(_OUTER), parse_file(_SCOPES)])
        self.classifications = resolver.resolve(self.model)
        holder = self.model.lookup('outer.inner.Holder')
        assert isinstance(holder, ProtoMessage)
        self.holder = holder

    def _target(self, number: int) -> str:
        field = self.holder.field(number)
        assert field is not None
        entity = field.type_ref().entity()
        assert entity is not None
        return entity.proto_path()

    @parameterized.expand(
        [
            ('innermost_scope_first', 1, 'outer.inner.Leaf'),
            ('partially_qualified', 2, 'outer.inner.Leaf'),
            ('nested_type', 3, 'outer.inner.Holder.Mode'),
            ('absolute', 4, 'outer.Leaf'),
        ]
    )
    def test_lookup(self, _, number: int, expected: str) -> None:
        self.assertEqual(self._target(number), expected)

    def test_scopes(self) -> None:
        field = self.holder.field(1)
        assert field is not None
        self.assertEqual(
            resolver.scopes(field),
            ['outer.inner.Holder', 'outer.inner', 'outer', ''],
        )

    def test_classification(self) -> None:
        leaf = self.model.lookup('outer.Leaf')
        self.assertIs(self.classifications[leaf], Classification.LEAF)
        self.assertIs(
            self.classifications[self.holder], Classification.COMPOSITE
        )


class ClassifyTest(unittest.TestCase):
    def test_maps_of_scalars_are_leaves(self) -> None:
        model = build_model(descriptor_test_data.network_protocol())
        classifications = resolver.resolve(model)
        classes = {
            entity.name(): classification
            for entity, classification in classifications.items()
        }
        self.assertIs(classes['Entity'], Classification.LEAF)
        self.assertIs(classes['MetadataEntry'], Classification.LEAF)
        self.assertIs(classes['TransactionStatus'], Classification.LEAF)
        self.assertIs(classes['TransactionRequest'], Classification.COMPOSITE)


class ResolveErrorTest(unittest.TestCase):
    """Tests type names that cannot be resolved."""

    def _resolve(self, type_name: str, declared_type: str = 'TYPE_MESSAGE'):
        model = build_model(
            [
                parse_file(
                    f'''
                    name: "bad.proto"
                    package: "pkg"
                    message_type {{
                      name: "Holder"
                      field {{
                        name: "target" number: 1 label: LABEL_OPTIONAL
                        type: {declared_type} type_name: "{type_name}"
                      }}
                      enum_type {{
                        name: "Mode" value {{ name: "MODE_OFF" number: 0 }}
                      }}
                    }}
                    '''
                )
            ]
        )
        resolver.resolve(model)

    def test_unresolved_type(self) -> None:
        with self.assertRaises(UnresolvedType) as context:
            self._resolve('Missing')

        error = context.exception
        self.assertEqual(error.type_name, 'Missing')
        self.assertEqual(error.scopes, ('pkg.Holder', 'pkg', ''))
        self.assertEqual(error.file, 'bad.proto')
        self.assertEqual(error.entity, 'pkg.Holder')
        self.assertEqual(error.field, 'target')
        self.assertIn(
            "unresolved type 'Missing'", error.formatted_message()
        )
        self.assertIn('    in field target', error.formatted_message())

    def test_absolute_name_is_not_searched(self) -> None:
        with self.assertRaises(UnresolvedType):
            self._resolve('.Holder')

    def test_enum_declared_as_message(self) -> None:
        with self.assertRaisesRegex(SchemaError, 'not a message'):
            self._resolve('Mode')

    def test_message_declared_as_enum(self) -> None:
        with self.assertRaisesRegex(SchemaError, 'not an enum'):
            self._resolve('Holder', 'TYPE_ENUM')


if __name__ == '__main__':
    unittest.main()
