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
"""File descriptors shared by the pw_protobuf_scale tests.

Descriptors are written in protobuf text format, as protoc would produce them,
so tests do not need a protoc binary.
"""

from google.protobuf import descriptor_pb2, text_format


def parse_file(text: str) -> descriptor_pb2.FileDescriptorProto:
    return text_format.Parse(text, descriptor_pb2.FileDescriptorProto())


NETWORK_PROTOCOL = '''
name: "network_protocol.proto"
package: "network.protocol"
syntax: "proto3"
enum_type {
  name: "TransactionStatus"
  value { name: "STATUS_UNSPECIFIED" number: 0 }
  value { name: "STATUS_PENDING" number: 1 }
  value { name: "STATUS_CONFIRMED" number: 2 }
  value { name: "STATUS_REJECTED" number: 3 }
}
message_type {
  name: "Entity"
  field { name: "id" number: 1 label: LABEL_OPTIONAL type: TYPE_STRING }
  field {
    name: "ip_address" number: 2 label: LABEL_OPTIONAL type: TYPE_FIXED32
  }
}
message_type {
  name: "AmountDetails"
  field { name: "value" number: 1 label: LABEL_OPTIONAL type: TYPE_UINT64 }
  field { name: "is_locked" number: 2 label: LABEL_OPTIONAL type: TYPE_BOOL }
}
message_type {
  name: "TransactionRequest"
  field {
    name: "is_priority" number: 1 label: LABEL_OPTIONAL type: TYPE_BOOL
  }
  field {
    name: "transaction_id" number: 2 label: LABEL_OPTIONAL type: TYPE_UINT64
  }
  field {
    name: "creation_time" number: 3 label: LABEL_OPTIONAL
    type: TYPE_SFIXED64
  }
  field { name: "memo" number: 4 label: LABEL_OPTIONAL type: TYPE_STRING }
  field {
    name: "associated_ids" number: 5 label: LABEL_REPEATED
    type: TYPE_STRING
  }
  field {
    name: "metadata" number: 6 label: LABEL_REPEATED type: TYPE_MESSAGE
    type_name: ".network.protocol.TransactionRequest.MetadataEntry"
  }
  field {
    name: "sender" number: 7 label: LABEL_OPTIONAL type: TYPE_MESSAGE
    type_name: ".network.protocol.Entity"
  }
  field {
    name: "error" number: 8 label: LABEL_OPTIONAL type: TYPE_STRING
    oneof_index: 0
  }
  field {
    name: "amount" number: 9 label: LABEL_OPTIONAL type: TYPE_MESSAGE
    type_name: ".network.protocol.AmountDetails" oneof_index: 0
  }
  field {
    name: "status" number: 10 label: LABEL_OPTIONAL type: TYPE_ENUM
    type_name: ".network.protocol.TransactionStatus"
  }
  nested_type {
    name: "MetadataEntry"
    field { name: "key" number: 1 label: LABEL_OPTIONAL type: TYPE_STRING }
    field { name: "value" number: 2 label: LABEL_OPTIONAL type: TYPE_UINT32 }
    options { map_entry: true }
  }
  oneof_decl { name: "result" }
}
'''

# A singly linked list: the only cycle is Node.next.
LINKED_LIST = '''
name: "linked_list.proto"
package: "chain"
syntax: "proto3"
message_type {
  name: "Node"
  field { name: "value" number: 1 label: LABEL_OPTIONAL type: TYPE_INT32 }
  field {
    name: "next" number: 2 label: LABEL_OPTIONAL type: TYPE_MESSAGE
    type_name: ".chain.Node"
  }
}
'''

MUTUAL_RECURSION = '''
name: "mutual.proto"
package: "mutual"
syntax: "proto3"
message_type {
  name: "A"
  field {
    name: "b" number: 1 label: LABEL_OPTIONAL type: TYPE_MESSAGE
    type_name: ".mutual.B"
  }
}
message_type {
  name: "B"
  field {
    name: "a" number: 1 label: LABEL_OPTIONAL type: TYPE_MESSAGE
    type_name: ".mutual.A"
  }
  field {
    name: "many" number: 2 label: LABEL_REPEATED type: TYPE_MESSAGE
    type_name: ".mutual.A"
  }
}
'''

# A tree whose nodes are reached through a oneof and a map.
EXPRESSION = '''
name: "expression.proto"
package: "calc"
syntax: "proto3"
message_type {
  name: "Expr"
  field {
    name: "literal" number: 1 label: LABEL_OPTIONAL type: TYPE_SINT64
    oneof_index: 0
  }
  field {
    name: "sum" number: 2 label: LABEL_OPTIONAL type: TYPE_MESSAGE
    type_name: ".calc.Sum" oneof_index: 0
  }
  field {
    name: "variables" number: 3 label: LABEL_REPEATED type: TYPE_MESSAGE
    type_name: ".calc.Expr.VariablesEntry"
  }
  nested_type {
    name: "VariablesEntry"
    field { name: "key" number: 1 label: LABEL_OPTIONAL type: TYPE_INT32 }
    field {
      name: "value" number: 2 label: LABEL_OPTIONAL type: TYPE_MESSAGE
      type_name: ".calc.Expr"
    }
    options { map_entry: true }
  }
  oneof_decl { name: "kind" }
}
message_type {
  name: "Sum"
  field {
    name: "terms" number: 1 label: LABEL_REPEATED type: TYPE_MESSAGE
    type_name: ".calc.Expr"
  }
}
'''

# Covers proto2 presence, nested types, comments and well-known types.
PROTO2_RECORD = '''
name: "records/record.proto"
package: "records"
dependency: "google/protobuf/timestamp.proto"
message_type {
  name: "Record"
  field {
    name: "name" number: 1 label: LABEL_REQUIRED type: TYPE_STRING
  }
  field {
    name: "score" number: 2 label: LABEL_OPTIONAL type: TYPE_DOUBLE
  }
  field {
    name: "kind" number: 3 label: LABEL_OPTIONAL type: TYPE_ENUM
    type_name: ".records.Record.Kind"
  }
  field {
    name: "created" number: 4 label: LABEL_OPTIONAL type: TYPE_MESSAGE
    type_name: ".google.protobuf.Timestamp"
  }
  field {
    name: "payload" number: 5 label: LABEL_REQUIRED type: TYPE_BYTES
  }
  enum_type {
    name: "Kind"
    value { name: "KIND_FIRST" number: 1 }
    value { name: "KIND_SECOND" number: 2 }
  }
}
source_code_info {
  location {
    path: 4 path: 0
    leading_comments: " A stored record.\\n"
  }
  location {
    path: 4 path: 0 path: 2 path: 1
    leading_comments: " Score in the range [0, 1].\\n"
  }
}
'''

TIMESTAMP = '''
name: "google/protobuf/timestamp.proto"
package: "google.protobuf"
syntax: "proto3"
message_type {
  name: "Timestamp"
  field { name: "seconds" number: 1 label: LABEL_OPTIONAL type: TYPE_INT64 }
  field { name: "nanos" number: 2 label: LABEL_OPTIONAL type: TYPE_INT32 }
}
'''

# One package split across two files: users.proto refers to an enum that is
# declared in kinds.proto.
SPLIT_PACKAGE_KINDS = '''
name: "kinds.proto"
package: "accounts"
syntax: "proto3"
enum_type {
  name: "Kind"
  value { name: "KIND_UNSPECIFIED" number: 0 }
  value { name: "KIND_ADMIN" number: 1 }
}
'''

SPLIT_PACKAGE_USERS = '''
name: "users.proto"
package: "accounts"
syntax: "proto3"
dependency: "kinds.proto"
message_type {
  name: "User"
  field { name: "name" number: 1 label: LABEL_OPTIONAL type: TYPE_STRING }
  field {
    name: "kind" number: 2 label: LABEL_OPTIONAL type: TYPE_ENUM
    type_name: ".accounts.Kind"
  }
}
'''

# A google.protobuf message that the runtime does not implement.
SOURCE_CONTEXT = '''
name: "google/protobuf/source_context.proto"
package: "google.protobuf"
syntax: "proto3"
message_type {
  name: "SourceContext"
  field {
    name: "file_name" number: 1 label: LABEL_OPTIONAL type: TYPE_STRING
  }
}
'''

DOCUMENT = '''
name: "document.proto"
package: "docs"
syntax: "proto3"
dependency: "google/protobuf/source_context.proto"
dependency: "google/protobuf/timestamp.proto"
message_type {
  name: "Doc"
  field {
    name: "context" number: 1 label: LABEL_OPTIONAL type: TYPE_MESSAGE
    type_name: ".google.protobuf.SourceContext"
  }
  field {
    name: "edited" number: 2 label: LABEL_OPTIONAL type: TYPE_MESSAGE
    type_name: ".google.protobuf.Timestamp"
  }
}
'''

# Floating point, proto3 optional, repeated enum and enum-valued map fields.
SENSOR = '''
name: "sensor.proto"
package: "sensor"
syntax: "proto3"
enum_type {
  name: "Unit"
  value { name: "UNIT_UNSPECIFIED" number: 0 }
  value { name: "UNIT_CELSIUS" number: 1 }
  value { name: "UNIT_PASCAL" number: 2 }
}
message_type {
  name: "Reading"
  field { name: "value" number: 1 label: LABEL_OPTIONAL type: TYPE_FLOAT }
  field {
    name: "precise" number: 2 label: LABEL_OPTIONAL type: TYPE_DOUBLE
  }
  field {
    name: "offset" number: 3 label: LABEL_OPTIONAL type: TYPE_SINT32
    oneof_index: 0 proto3_optional: true
  }
  field {
    name: "label" number: 4 label: LABEL_OPTIONAL type: TYPE_STRING
    oneof_index: 1 proto3_optional: true
  }
  field {
    name: "units" number: 5 label: LABEL_REPEATED type: TYPE_ENUM
    type_name: ".sensor.Unit"
  }
  field {
    name: "channels" number: 6 label: LABEL_REPEATED type: TYPE_MESSAGE
    type_name: ".sensor.Reading.ChannelsEntry"
  }
  nested_type {
    name: "ChannelsEntry"
    field { name: "key" number: 1 label: LABEL_OPTIONAL type: TYPE_STRING }
    field {
      name: "value" number: 2 label: LABEL_OPTIONAL type: TYPE_ENUM
      type_name: ".sensor.Unit"
    }
    options { map_entry: true }
  }
  oneof_decl { name: "_offset" }
  oneof_decl { name: "_label" }
}
'''


def network_protocol() -> list[descriptor_pb2.FileDescriptorProto]:
    return [parse_file(NETWORK_PROTOCOL)]


def linked_list() -> list[descriptor_pb2.FileDescriptorProto]:
    return [parse_file(LINKED_LIST)]


def mutual_recursion() -> list[descriptor_pb2.FileDescriptorProto]:
    return [parse_file(MUTUAL_RECURSION)]


def expression() -> list[descriptor_pb2.FileDescriptorProto]:
    return [parse_file(EXPRESSION)]


def proto2_record() -> list[descriptor_pb2.FileDescriptorProto]:
    return [parse_file(TIMESTAMP), parse_file(PROTO2_RECORD)]


def split_package() -> list[descriptor_pb2.FileDescriptorProto]:
    return [parse_file(SPLIT_PACKAGE_KINDS), parse_file(SPLIT_PACKAGE_USERS)]


def document() -> list[descriptor_pb2.FileDescriptorProto]:
    return [
        parse_file(SOURCE_CONTEXT),
        parse_file(TIMESTAMP),
        parse_file(DOCUMENT),
    ]


def sensor() -> list[descriptor_pb2.FileDescriptorProto]:
    return [parse_file(SENSOR)]
