"""Splits serialized snapshots into bounded chunks and hands them to the transport."""

import math
from enum import Enum
from uuid import uuid4

import structlog

from datasync.config import DEFAULT_MAX_CHUNK_SIZE
from datasync.models.chunk import Chunk
from datasync.services.transport import OutboundTransport, PeerHandle


class Broadcast(Enum):
    ALL_PEERS = "all_peers"


ALL_PEERS = Broadcast.ALL_PEERS

Destination = PeerHandle | Broadcast


class ChunkEncoder:
    """Splits payloads into chunks of at most ``max_chunk_size`` bytes.

    Sending is fire-and-forget: chunks go out in ascending index order and
    delivery guarantees are left to the transport.
    """

    def __init__(
        self,
        transport: OutboundTransport,
        max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        if max_chunk_size <= 0:
            raise ValueError("max_chunk_size must be positive")

        self._transport = transport
        self._max_chunk_size = max_chunk_size
        self._logger = logger or structlog.get_logger(__name__)

    @property
    def max_chunk_size(self) -> int:
        return self._max_chunk_size

    def split(self, dataset_type: str, payload: bytes) -> list[Chunk]:
        """Partition ``payload`` into chunks that share one fresh session id.

        Args:
            dataset_type: Name of the dataset type the payload belongs to.
            payload: Serialized snapshot bytes.

        Returns:
            Chunks in ascending index order. Payloads that fit in one chunk
            (including empty ones) yield a single chunk with index 0, total 1.
        """
        session_id = uuid4()
        size = self._max_chunk_size
        total_count = max(1, math.ceil(len(payload) / size))

        return [
            Chunk(
                session_id=session_id,
                index=index,
                total_count=total_count,
                dataset_type=dataset_type,
                payload=payload[index * size : (index + 1) * size],
            )
            for index in range(total_count)
        ]

    def send(self, dataset_type: str, payload: bytes, destination: Destination = ALL_PEERS) -> list[Chunk]:
        """Split ``payload`` and hand every chunk to the transport.

        Args:
            dataset_type: Name of the dataset type the payload belongs to.
            payload: Serialized snapshot bytes.
            destination: ``ALL_PEERS`` or a single peer handle.

        Returns:
            The chunks that were handed to the transport.

        Raises:
            TransportError: If the transport refuses a chunk; later chunks of
                the session are not sent.
        """
        chunks = self.split(dataset_type, payload)
        session_id = chunks[0].session_id

        self._logger.info(
            "sync_send_started",
            dataset_type=dataset_type,
            session_id=str(session_id),
            payload_bytes=len(payload),
            chunk_count=len(chunks),
            destination=destination.value if destination is ALL_PEERS else destination,
        )

        for chunk in chunks:
            if destination is ALL_PEERS:
                self._transport.broadcast(chunk)
            else:
                self._transport.send(destination, chunk)
            self._logger.debug(
                "chunk_sent",
                session_id=str(session_id),
                index=chunk.index,
                total_count=chunk.total_count,
                chunk_bytes=len(chunk.payload),
            )

        return chunks
