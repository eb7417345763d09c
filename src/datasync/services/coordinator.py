"""Wiring between dataset stores and the chunk transport.

Holds no state of its own beyond references: snapshots live in the stores and
partial transmissions live in the reassembler.
"""

import structlog

from datasync.config import DEFAULT_PEER_SETTLE_DELAY_SECONDS
from datasync.errors import DatasyncError
from datasync.models.chunk import Chunk
from datasync.services.codec import decode_snapshot, encode_snapshot
from datasync.services.encoder import ALL_PEERS, ChunkEncoder, Destination
from datasync.services.reassembler import ChunkReassembler
from datasync.services.registry import DatasetRegistry
from datasync.services.scheduler import DelayedTaskScheduler
from datasync.services.store import DatasetStore
from datasync.services.transport import OutboundTransport, PeerHandle


class SyncCoordinator:
    """Pushes snapshots to peers and applies snapshots received from them.

    On the producing side it broadcasts after every local reload of a
    sync-enabled type and sends everything to newly connected peers after a
    settle delay. On the consuming side it turns reassembled payloads into
    ``replace_snapshot`` calls.
    """

    def __init__(
        self,
        registry: DatasetRegistry,
        encoder: ChunkEncoder,
        transport: OutboundTransport,
        scheduler: DelayedTaskScheduler,
        peer_settle_delay: float = DEFAULT_PEER_SETTLE_DELAY_SECONDS,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._registry = registry
        self._encoder = encoder
        self._transport = transport
        self._scheduler = scheduler
        self._peer_settle_delay = peer_settle_delay
        self._logger = logger or structlog.get_logger(__name__)
        self._reassembler: ChunkReassembler | None = None

    def attach(self, reassembler: ChunkReassembler | None = None) -> None:
        """Install the reload broadcast hook and the inbound reassembler."""
        self._registry.bind_broadcaster(self.broadcast)
        if reassembler is not None:
            self._reassembler = reassembler

    def detach(self) -> None:
        self._registry.bind_broadcaster(None)

    def broadcast(self, dataset_type: str) -> bool:
        """Send the current snapshot of ``dataset_type`` to every connected peer.

        Returns:
            True if the snapshot was handed to the transport.
        """
        if not self._transport.peers():
            self._logger.debug("sync_skipped", dataset_type=dataset_type, reason="no connected peers")
            return False

        store = self._registry.find(dataset_type)
        if store is None or not store.descriptor.sync_enabled:
            self._logger.debug("sync_skipped", dataset_type=dataset_type, reason="type not synchronized")
            return False

        return self._send_store(store, ALL_PEERS)

    def on_peer_connected(self, peer: PeerHandle) -> None:
        """Schedule a full sync to ``peer`` once its session has settled."""
        self._logger.debug("peer_sync_scheduled", peer=peer, delay_seconds=self._peer_settle_delay)
        self._scheduler.schedule(self._peer_settle_delay, self.sync_peer, peer)

    def sync_peer(self, peer: PeerHandle) -> int:
        """Send every non-empty sync-enabled snapshot to one peer, in priority order.

        Returns:
            Number of dataset types sent.
        """
        if not self._transport.is_connected(peer):
            self._logger.debug("peer_sync_skipped", peer=peer, reason="peer disconnected")
            return 0

        sent = 0
        for store in self._registry.ordered_stores():
            if store.descriptor.sync_enabled and len(store) > 0:
                if self._send_store(store, peer):
                    sent += 1

        self._logger.info("peer_sync_completed", peer=peer, dataset_types_sent=sent)
        return sent

    def handle_chunk(self, chunk: Chunk) -> bool:
        """Inbound transport hook for chunks arriving from a producer."""
        if self._reassembler is None:
            self._logger.warning("chunk_dropped", reason="no reassembler attached", dataset_type=chunk.dataset_type)
            return False
        return self._reassembler.receive(chunk)

    def apply_payload(self, dataset_type: str, payload: bytes) -> None:
        """Decode a reassembled snapshot document and install it.

        Raises:
            UnknownDatasetType: If the type is not registered locally.
            DecodeError: If the payload or any record cannot be decoded.
        """
        store = self._registry.get(dataset_type)
        records = decode_snapshot(store.codec, payload)
        store.replace_snapshot(records)
        self._logger.info("snapshot_applied", dataset_type=dataset_type, entry_count=len(records))

    def _send_store(self, store: DatasetStore, destination: Destination) -> bool:
        snapshot = store.snapshot
        try:
            payload = encode_snapshot(store.codec, snapshot.records())
            self._encoder.send(store.name, payload, destination)
        except DatasyncError as e:
            self._logger.error(
                "sync_send_failed",
                dataset_type=store.name,
                generation=snapshot.generation,
                destination=destination.value if destination is ALL_PEERS else destination,
                error=str(e),
            )
            return False
        return True
