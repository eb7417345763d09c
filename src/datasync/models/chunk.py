import struct
from typing import Any
from uuid import UUID, uuid4

from pydantic import Field, field_validator

from datasync.errors import TransportMalformed
from datasync.models.base import FrozenModel, ensure_non_empty_text

# session id, index, total count, dataset type name length
_HEADER = struct.Struct(">16sIIH")
MAX_INDEX = 2**32 - 1


class Chunk(FrozenModel):
    """One bounded fragment of a serialized snapshot.

    Single-chunk transmissions use ``index=0`` and ``total_count=1`` with a
    fresh session id.
    """

    session_id: UUID = Field(default_factory=uuid4)
    index: int = Field(ge=0, le=MAX_INDEX)
    total_count: int = Field(ge=1, le=MAX_INDEX)
    dataset_type: str
    payload: bytes

    @field_validator("dataset_type")
    @classmethod
    def _validate_dataset_type(cls, value: Any) -> str:
        return ensure_non_empty_text(value, "dataset_type")

    @property
    def is_single(self) -> bool:
        return self.total_count == 1

    def to_bytes(self) -> bytes:
        name = self.dataset_type.encode("utf-8")
        if len(name) > 0xFFFF:
            raise TransportMalformed("dataset type name is too long to frame")
        header = _HEADER.pack(self.session_id.bytes, self.index, self.total_count, len(name))
        return header + name + self.payload

    @classmethod
    def from_bytes(cls, frame: bytes) -> "Chunk":
        if len(frame) < _HEADER.size:
            raise TransportMalformed(f"frame of {len(frame)} bytes is shorter than the chunk header")
        session_bytes, index, total_count, name_length = _HEADER.unpack_from(frame)
        name_end = _HEADER.size + name_length
        if len(frame) < name_end:
            raise TransportMalformed("frame ends inside the dataset type name")
        try:
            name = frame[_HEADER.size : name_end].decode("utf-8")
            return cls(
                session_id=UUID(bytes=session_bytes),
                index=index,
                total_count=total_count,
                dataset_type=name,
                payload=frame[name_end:],
            )
        except ValueError as exc:
            raise TransportMalformed(f"invalid chunk frame: {exc}") from exc

    def __repr__(self) -> str:
        return (
            f"Chunk(session_id={self.session_id}, index={self.index}, total_count={self.total_count}, "
            f"dataset_type={self.dataset_type!r}, payload=<{len(self.payload)} bytes>)"
        )
