"""Factory functions for wiring a synchronization runtime.

Provides a production factory that uses the given transport and settings and
a test factory that uses an in-process loopback transport with short timings.
"""

from types import TracebackType

import structlog

from datasync.config import SyncSettings
from datasync.services.coordinator import SyncCoordinator
from datasync.services.encoder import ChunkEncoder
from datasync.services.reassembler import ChunkReassembler
from datasync.services.registry import DatasetRegistry
from datasync.services.scheduler import DelayedTaskScheduler
from datasync.services.transport import LoopbackTransport, OutboundTransport

_TEST_SESSION_TIMEOUT_SECONDS = 1.0
_TEST_SWEEP_INTERVAL_SECONDS = 0.1


class SyncRuntime:
    """Bundle of the collaborating services for one process.

    Use as a context manager: entering initializes the registry and starts
    the session sweeper, leaving stops the sweeper and cancels pending
    delayed syncs.
    """

    def __init__(
        self,
        settings: SyncSettings,
        registry: DatasetRegistry,
        transport: OutboundTransport,
        encoder: ChunkEncoder,
        reassembler: ChunkReassembler,
        coordinator: SyncCoordinator,
        scheduler: DelayedTaskScheduler,
    ) -> None:
        self.settings = settings
        self.registry = registry
        self.transport = transport
        self.encoder = encoder
        self.reassembler = reassembler
        self.coordinator = coordinator
        self.scheduler = scheduler

    def start(self) -> "SyncRuntime":
        self.registry.initialize()
        self.reassembler.start()
        return self

    def close(self) -> None:
        self.reassembler.stop()
        self.scheduler.shutdown()
        self.coordinator.detach()

    def __enter__(self) -> "SyncRuntime":
        return self.start()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def create_sync_runtime(
    transport: OutboundTransport,
    settings: SyncSettings | None = None,
    registry: DatasetRegistry | None = None,
) -> SyncRuntime:
    """Create a SyncRuntime around an existing transport.

    Args:
        transport: Outbound transport to the remote peers.
        settings: Chunking and timing settings; defaults to ``SyncSettings.from_env()``.
        registry: Registry to attach to; a fresh one is created if omitted.

    Returns:
        Wired runtime. The caller connects the transport's inbound chunks to
        ``runtime.coordinator.handle_chunk`` and peer-connect events to
        ``runtime.coordinator.on_peer_connected``.
    """
    logger = structlog.get_logger(__name__)
    effective_settings = settings or SyncSettings.from_env()
    effective_registry = registry if registry is not None else DatasetRegistry(logger=logger)

    encoder = ChunkEncoder(
        transport=transport,
        max_chunk_size=effective_settings.max_chunk_size,
        logger=logger,
    )
    scheduler = DelayedTaskScheduler(logger=logger)
    coordinator = SyncCoordinator(
        registry=effective_registry,
        encoder=encoder,
        transport=transport,
        scheduler=scheduler,
        peer_settle_delay=effective_settings.peer_settle_delay_seconds,
        logger=logger,
    )
    reassembler = ChunkReassembler(
        deliver=coordinator.apply_payload,
        session_timeout=effective_settings.session_timeout_seconds,
        sweep_interval=effective_settings.sweep_interval_seconds,
        logger=logger,
    )
    coordinator.attach(reassembler)

    return SyncRuntime(
        settings=effective_settings,
        registry=effective_registry,
        transport=transport,
        encoder=encoder,
        reassembler=reassembler,
        coordinator=coordinator,
        scheduler=scheduler,
    )


def create_test_sync_runtime(
    max_chunk_size: int = 1024,
    transport: LoopbackTransport | None = None,
    registry: DatasetRegistry | None = None,
) -> SyncRuntime:
    """Create a SyncRuntime over a loopback transport for tests.

    Peer-connect syncs run without a settle delay and sessions expire after
    one second. Each call creates an independent registry and transport.
    """
    if transport is None:
        transport = LoopbackTransport(max_frame_size=max_chunk_size + 1024)
    settings = SyncSettings(
        max_chunk_size=max_chunk_size,
        session_timeout_seconds=_TEST_SESSION_TIMEOUT_SECONDS,
        sweep_interval_seconds=_TEST_SWEEP_INTERVAL_SECONDS,
        peer_settle_delay_seconds=0,
    )
    runtime = create_sync_runtime(transport=transport, settings=settings, registry=registry)
    transport.on_connect(runtime.coordinator.on_peer_connected)
    return runtime
