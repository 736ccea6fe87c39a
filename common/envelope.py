"""Chunk envelope wire contract.

Every chunk body is a serialized ``chunkup.DataContainer`` protobuf message.
Only the fields the collector needs are declared here; any other field a
producer writes is carried through untouched and ignored on decode.

    message DataContainer {
        string group_id = 1;
        string session_id = 2;
    }
"""

from dataclasses import dataclass
from typing import Optional

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.message import DecodeError

ENVELOPE_PACKAGE = "chunkup"
ENVELOPE_MESSAGE = "DataContainer"


class EnvelopeDecodeError(Exception):
    """Raised when a buffer is not a valid serialized envelope."""
    pass


def _build_message_class():
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="chunkup/envelope.proto",
        package=ENVELOPE_PACKAGE,
        syntax="proto3",
    )
    message = file_proto.message_type.add(name=ENVELOPE_MESSAGE)
    for number, name in enumerate(("group_id", "session_id"), start=1):
        message.field.add(
            name=name,
            number=number,
            type=descriptor_pb2.FieldDescriptorProto.TYPE_STRING,
            label=descriptor_pb2.FieldDescriptorProto.LABEL_OPTIONAL,
        )

    pool = descriptor_pool.DescriptorPool()
    pool.AddSerializedFile(file_proto.SerializeToString())
    descriptor = pool.FindMessageTypeByName(f"{ENVELOPE_PACKAGE}.{ENVELOPE_MESSAGE}")
    return message_factory.GetMessageClass(descriptor)


DataContainer = _build_message_class()


@dataclass(frozen=True)
class Envelope:
    """
    Decoded view of a chunk envelope.
    """
    group_id: str
    session_id: Optional[str] = None


def decode_envelope(data: bytes) -> Envelope:
    """
    Deserialize a chunk body into an Envelope.

    Args:
        data: Decompressed request body

    Returns:
        Envelope with the logical transfer identifier

    Raises:
        EnvelopeDecodeError: If the buffer is not a valid DataContainer
    """
    container = DataContainer()
    try:
        container.ParseFromString(data)
    except DecodeError as e:
        raise EnvelopeDecodeError(str(e)) from e

    return Envelope(
        group_id=container.group_id,
        session_id=container.session_id or None,
    )


def encode_envelope(group_id: str, session_id: Optional[str] = None) -> bytes:
    """
    Serialize an envelope body.

    Args:
        group_id: Logical transfer identifier
        session_id: Optional session identifier

    Returns:
        Serialized DataContainer bytes
    """
    container = DataContainer(group_id=group_id)
    if session_id:
        container.session_id = session_id
    return container.SerializeToString()
