"""SCIP wire schema.

Only the subset of scip.proto that scipnav reads is described here. The message
classes are built from a descriptor at import time, so no protoc step is needed;
fields the schema does not list are skipped by the protobuf parser.

Upstream schema: https://github.com/sourcegraph/scip/blob/main/scip.proto
"""

from __future__ import annotations

import enum

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.message import DecodeError

__all__ = [
    "DecodeError",
    "Document",
    "Index",
    "Metadata",
    "Occurrence",
    "SymbolRole",
    "ToolInfo",
    "decode_index",
]


class SymbolRole(enum.IntFlag):
    """Bit flags stored in ``Occurrence.symbol_roles``."""
    DEFINITION = 0x1
    IMPORT = 0x2
    WRITE_ACCESS = 0x4
    READ_ACCESS = 0x8
    GENERATED = 0x10
    TEST = 0x20
    FORWARD_DEFINITION = 0x40


_F = descriptor_pb2.FieldDescriptorProto

# (message, [(field, number, type, repeated, type_name)])
_MESSAGES = [
    ("ToolInfo", [
        ("name", 1, _F.TYPE_STRING, False, None),
        ("version", 2, _F.TYPE_STRING, False, None),
        ("arguments", 3, _F.TYPE_STRING, True, None),
    ]),
    ("Metadata", [
        # ProtocolVersion enum upstream; varint on the wire either way
        ("version", 1, _F.TYPE_INT32, False, None),
        ("tool_info", 2, _F.TYPE_MESSAGE, False, ".scip.ToolInfo"),
        ("project_root", 3, _F.TYPE_STRING, False, None),
    ]),
    ("Occurrence", [
        ("range", 1, _F.TYPE_INT32, True, None),
        ("symbol", 2, _F.TYPE_STRING, False, None),
        ("symbol_roles", 3, _F.TYPE_INT32, False, None),
        ("enclosing_range", 7, _F.TYPE_INT32, True, None),
    ]),
    ("Document", [
        ("relative_path", 1, _F.TYPE_STRING, False, None),
        ("occurrences", 2, _F.TYPE_MESSAGE, True, ".scip.Occurrence"),
        ("language", 4, _F.TYPE_STRING, False, None),
        ("text", 5, _F.TYPE_STRING, False, None),
    ]),
    ("Index", [
        ("metadata", 1, _F.TYPE_MESSAGE, False, ".scip.Metadata"),
        ("documents", 2, _F.TYPE_MESSAGE, True, ".scip.Document"),
    ]),
]


def _file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    proto = descriptor_pb2.FileDescriptorProto(
        name="scipnav/scip.proto", package="scip", syntax="proto3",
    )
    for msg_name, fields in _MESSAGES:
        msg = proto.message_type.add(name=msg_name)
        for name, number, ftype, repeated, type_name in fields:
            field = msg.field.add(
                name=name,
                number=number,
                type=ftype,
                label=_F.LABEL_REPEATED if repeated else _F.LABEL_OPTIONAL,
            )
            if type_name:
                field.type_name = type_name
    return proto


# Private pool so a generated scip_pb2 elsewhere in the process cannot clash.
_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_file_descriptor().SerializeToString())


def _message(name: str):
    return message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"scip.{name}"))


ToolInfo = _message("ToolInfo")
Metadata = _message("Metadata")
Occurrence = _message("Occurrence")
Document = _message("Document")
Index = _message("Index")


def decode_index(data: bytes):
    """Decode a binary SCIP index. Raises DecodeError on malformed input."""
    index = Index()
    index.ParseFromString(data)
    return index
