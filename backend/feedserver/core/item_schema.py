"""Item Schema - protobuf message classes for the signed Item wire format.

Invariants:
    - Field numbers are the wire contract shared with clients; never renumber
    - Item.item_type is a oneof; an unset oneof means a type this server does not know
    - Unknown fields survive decoding, so stored bytes are never the re-encoded form

Design Decisions:
    - Classes built from a FileDescriptorProto through the protobuf runtime,
      so the repo carries no protoc-generated module
"""

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

_FDP = descriptor_pb2.FieldDescriptorProto

PACKAGE = "feedserver"


def _add_field(message, name: str, number: int, field_type: int,
               type_name: str | None = None, repeated: bool = False,
               oneof_index: int | None = None) -> None:
    field = message.field.add(
        name=name, number=number, type=field_type,
        label=_FDP.LABEL_REPEATED if repeated else _FDP.LABEL_OPTIONAL,
    )
    if type_name:
        field.type_name = f".{PACKAGE}.{type_name}"
    if oneof_index is not None:
        field.oneof_index = oneof_index


def _build_file() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="feedserver/item.proto", package=PACKAGE, syntax="proto3",
    )

    item = file_proto.message_type.add(name="Item")
    item.oneof_decl.add(name="item_type")
    _add_field(item, "timestamp_ms_utc", 1, _FDP.TYPE_INT64)
    _add_field(item, "utc_offset_minutes", 2, _FDP.TYPE_SINT32)
    _add_field(item, "post", 3, _FDP.TYPE_MESSAGE, "Post", oneof_index=0)
    _add_field(item, "profile", 4, _FDP.TYPE_MESSAGE, "Profile", oneof_index=0)

    post = file_proto.message_type.add(name="Post")
    _add_field(post, "title", 1, _FDP.TYPE_STRING)
    _add_field(post, "body", 2, _FDP.TYPE_STRING)

    profile = file_proto.message_type.add(name="Profile")
    _add_field(profile, "display_name", 1, _FDP.TYPE_STRING)
    _add_field(profile, "about", 2, _FDP.TYPE_STRING)
    _add_field(profile, "follows", 3, _FDP.TYPE_MESSAGE, "Follow", repeated=True)

    follow = file_proto.message_type.add(name="Follow")
    _add_field(follow, "user", 1, _FDP.TYPE_MESSAGE, "UserID")
    _add_field(follow, "display_name", 2, _FDP.TYPE_STRING)

    user_id = file_proto.message_type.add(name="UserID")
    _add_field(user_id, "bytes", 1, _FDP.TYPE_BYTES)

    return file_proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_build_file().SerializeToString())


def _message_class(name: str):
    return message_factory.GetMessageClass(
        _pool.FindMessageTypeByName(f"{PACKAGE}.{name}"),
    )


Item = _message_class("Item")
Post = _message_class("Post")
Profile = _message_class("Profile")
Follow = _message_class("Follow")
UserIDProto = _message_class("UserID")
