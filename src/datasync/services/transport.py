"""Outbound transport port and an in-process loopback implementation.

The core assumes an ordered, reliable, message-oriented channel per peer with
a maximum message size enforced outside of it.
"""

import threading
from collections.abc import Callable
from typing import Protocol, runtime_checkable

import structlog

from datasync.errors import TransportError
from datasync.models.chunk import Chunk

PeerHandle = str
ChunkHandler = Callable[[Chunk], None]
ConnectCallback = Callable[[PeerHandle], None]

DEFAULT_MAX_FRAME_SIZE = 32 * 1024


@runtime_checkable
class OutboundTransport(Protocol):
    def peers(self) -> list[PeerHandle]: ...

    def is_connected(self, peer: PeerHandle) -> bool: ...

    def send(self, peer: PeerHandle, chunk: Chunk) -> None: ...

    def broadcast(self, chunk: Chunk) -> None: ...


class LoopbackTransport:
    """Delivers chunks to in-process peer handlers through the binary frame format.

    Frames are encoded with ``Chunk.to_bytes`` and decoded again on delivery,
    so the wire format is exercised end to end. Frames larger than
    ``max_frame_size`` are refused with TransportError.
    """

    def __init__(
        self,
        max_frame_size: int = DEFAULT_MAX_FRAME_SIZE,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        if max_frame_size <= 0:
            raise ValueError("max_frame_size must be positive")
        self._max_frame_size = max_frame_size
        self._logger = logger or structlog.get_logger(__name__)
        self._lock = threading.Lock()
        self._handlers: dict[PeerHandle, ChunkHandler] = {}
        self._connect_callbacks: list[ConnectCallback] = []
        self.frames_sent = 0

    @property
    def max_frame_size(self) -> int:
        return self._max_frame_size

    def on_connect(self, callback: ConnectCallback) -> None:
        with self._lock:
            self._connect_callbacks.append(callback)

    def connect(self, peer: PeerHandle, handler: ChunkHandler) -> None:
        """Attach a peer and fire the connect callbacks."""
        with self._lock:
            if peer in self._handlers:
                raise TransportError(f"peer '{peer}' is already connected")
            self._handlers[peer] = handler
            callbacks = list(self._connect_callbacks)
        self._logger.info("peer_connected", peer=peer)
        for callback in callbacks:
            callback(peer)

    def disconnect(self, peer: PeerHandle) -> bool:
        with self._lock:
            removed = self._handlers.pop(peer, None) is not None
        if removed:
            self._logger.info("peer_disconnected", peer=peer)
        return removed

    def peers(self) -> list[PeerHandle]:
        with self._lock:
            return list(self._handlers)

    def is_connected(self, peer: PeerHandle) -> bool:
        with self._lock:
            return peer in self._handlers

    def send(self, peer: PeerHandle, chunk: Chunk) -> None:
        with self._lock:
            handler = self._handlers.get(peer)
        if handler is None:
            raise TransportError(f"peer '{peer}' is not connected")
        self._deliver(peer, handler, self._frame(chunk))

    def broadcast(self, chunk: Chunk) -> None:
        frame = self._frame(chunk)
        with self._lock:
            targets = list(self._handlers.items())
        for peer, handler in targets:
            self._deliver(peer, handler, frame)

    def _frame(self, chunk: Chunk) -> bytes:
        frame = chunk.to_bytes()
        if len(frame) > self._max_frame_size:
            raise TransportError(f"frame of {len(frame)} bytes exceeds the {self._max_frame_size} byte limit")
        return frame

    def _deliver(self, peer: PeerHandle, handler: ChunkHandler, frame: bytes) -> None:
        with self._lock:
            self.frames_sent += 1
        handler(Chunk.from_bytes(frame))
