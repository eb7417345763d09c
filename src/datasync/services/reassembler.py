"""Reassembles chunked snapshot transmissions received from one remote peer.

Sessions are created lazily on the first chunk, filled by position so that
out-of-order and duplicate delivery are harmless, and dropped either when
they complete or when the periodic sweep finds them older than the session
timeout. There is no cancellation message; the sweep is the only reclaimer.
"""

import threading
import time
from collections.abc import Callable
from uuid import UUID

import structlog

from datasync.config import DEFAULT_SESSION_TIMEOUT_SECONDS, DEFAULT_SWEEP_INTERVAL_SECONDS
from datasync.errors import DatasyncError, TransportMalformed
from datasync.models.chunk import Chunk

PayloadHandler = Callable[[str, bytes], None]
Clock = Callable[[], float]


class SyncSession:
    """Partial state of one multi-chunk transmission.

    Slot mutation is guarded by a per-session lock so that exactly one caller
    observes the transition to complete.
    """

    def __init__(self, session_id: UUID, total_count: int, dataset_type: str, created_at: float) -> None:
        self.session_id = session_id
        self.total_count = total_count
        self.dataset_type = dataset_type
        self.created_at = created_at
        self._lock = threading.Lock()
        self._slots: dict[int, bytes] = {}
        self._complete = False

    @property
    def received_count(self) -> int:
        return len(self._slots)

    @property
    def complete(self) -> bool:
        return self._complete

    def accepts(self, chunk: Chunk) -> bool:
        return chunk.total_count == self.total_count and chunk.dataset_type == self.dataset_type

    def add(self, index: int, payload: bytes) -> bool:
        """Store ``payload`` at ``index``.

        Returns:
            True only for the call that filled the last missing slot.
        """
        with self._lock:
            if self._complete or index in self._slots:
                return False
            self._slots[index] = payload
            if len(self._slots) == self.total_count:
                self._complete = True
                return True
            return False

    def assemble(self) -> bytes:
        with self._lock:
            missing = [index for index in range(self.total_count) if index not in self._slots]
            if missing:
                raise TransportMalformed(f"session {self.session_id} is missing chunks {missing[:10]}")
            return b"".join(self._slots[index] for index in range(self.total_count))

    def age(self, now: float) -> float:
        return now - self.created_at


class ChunkReassembler:
    """Tracks in-flight sessions and hands completed payloads to ``deliver``.

    ``receive`` never raises for bad input: malformed chunks are dropped and
    failed reassemblies are abandoned, both with a log entry, so the peer keeps
    its previous snapshot.
    """

    def __init__(
        self,
        deliver: PayloadHandler,
        session_timeout: float = DEFAULT_SESSION_TIMEOUT_SECONDS,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Clock = time.monotonic,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        if session_timeout <= 0:
            raise ValueError("session_timeout must be positive")
        if sweep_interval <= 0:
            raise ValueError("sweep_interval must be positive")

        self._deliver = deliver
        self._session_timeout = session_timeout
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._logger = logger or structlog.get_logger(__name__)

        self._table_lock = threading.Lock()
        self._sessions: dict[UUID, SyncSession] = {}
        self._completed: dict[UUID, float] = {}

        self._sweep_lock = threading.Lock()
        self._sweep_thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    @property
    def session_timeout(self) -> float:
        return self._session_timeout

    def receive(self, chunk: Chunk) -> bool:
        """Accept one chunk.

        Args:
            chunk: Chunk received from the peer.

        Returns:
            True if this chunk completed a session whose payload was delivered.
        """
        session = self._session_for(chunk)
        if session is None:
            return False

        if not 0 <= chunk.index < session.total_count:
            self._logger.warning(
                "chunk_rejected",
                reason="index out of range",
                session_id=str(chunk.session_id),
                index=chunk.index,
                total_count=session.total_count,
                dataset_type=chunk.dataset_type,
            )
            return False

        if not session.accepts(chunk):
            self._logger.warning(
                "chunk_rejected",
                reason="session metadata mismatch",
                session_id=str(chunk.session_id),
                index=chunk.index,
                total_count=chunk.total_count,
                expected_total_count=session.total_count,
                dataset_type=chunk.dataset_type,
                expected_dataset_type=session.dataset_type,
            )
            return False

        if not session.add(chunk.index, chunk.payload):
            self._logger.debug(
                "chunk_buffered",
                session_id=str(chunk.session_id),
                index=chunk.index,
                received=session.received_count,
                total_count=session.total_count,
            )
            return False

        return self._complete(session)

    def sweep(self, now: float | None = None) -> int:
        """Drop sessions older than the session timeout.

        Args:
            now: Clock reading to compare against; defaults to the clock.

        Returns:
            Number of incomplete sessions removed.
        """
        current = self._clock() if now is None else now
        with self._table_lock:
            expired = [
                session for session in self._sessions.values() if session.age(current) > self._session_timeout
            ]
            for session in expired:
                del self._sessions[session.session_id]
            stale_markers = [
                session_id
                for session_id, completed_at in self._completed.items()
                if current - completed_at > self._session_timeout
            ]
            for session_id in stale_markers:
                del self._completed[session_id]

        for session in expired:
            self._logger.info(
                "session_expired",
                session_id=str(session.session_id),
                dataset_type=session.dataset_type,
                received=session.received_count,
                total_count=session.total_count,
                age_seconds=round(session.age(current), 3),
            )
        return len(expired)

    def pending_sessions(self) -> int:
        with self._table_lock:
            return len(self._sessions)

    def has_session(self, session_id: UUID) -> bool:
        with self._table_lock:
            return session_id in self._sessions

    def start(self) -> None:
        """Start the background sweep thread; calling it again is a no-op."""
        with self._sweep_lock:
            if self._sweep_thread is not None and self._sweep_thread.is_alive():
                return

            self._stop_event.clear()
            self._sweep_thread = threading.Thread(
                target=self._sweep_loop,
                daemon=True,
                name="ChunkReassemblerSweep",
            )
            self._sweep_thread.start()

        self._logger.info(
            "session_sweeper_started",
            sweep_interval=self._sweep_interval,
            session_timeout=self._session_timeout,
        )

    def stop(self) -> None:
        self._stop_event.set()
        with self._sweep_lock:
            thread = self._sweep_thread
            self._sweep_thread = None
        if thread is not None and thread.is_alive():
            thread.join(timeout=5.0)
            self._logger.info("session_sweeper_stopped")

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(timeout=self._sweep_interval):
            try:
                self.sweep()
            except Exception as e:
                self._logger.error("session_sweep_failed", error=str(e), exc_info=True)

    def _session_for(self, chunk: Chunk) -> SyncSession | None:
        with self._table_lock:
            if chunk.session_id in self._completed:
                self._logger.debug(
                    "chunk_ignored",
                    reason="session already completed",
                    session_id=str(chunk.session_id),
                    index=chunk.index,
                )
                return None
            session = self._sessions.get(chunk.session_id)
            if session is None:
                session = SyncSession(
                    session_id=chunk.session_id,
                    total_count=chunk.total_count,
                    dataset_type=chunk.dataset_type,
                    created_at=self._clock(),
                )
                self._sessions[chunk.session_id] = session
                self._logger.debug(
                    "session_created",
                    session_id=str(chunk.session_id),
                    dataset_type=chunk.dataset_type,
                    total_count=chunk.total_count,
                )
            return session

    def _complete(self, session: SyncSession) -> bool:
        try:
            payload = session.assemble()
            self._deliver(session.dataset_type, payload)
        except DatasyncError as e:
            self._logger.error(
                "session_abandoned",
                session_id=str(session.session_id),
                dataset_type=session.dataset_type,
                error=str(e),
            )
            return False
        except Exception as e:
            self._logger.error(
                "session_abandoned",
                session_id=str(session.session_id),
                dataset_type=session.dataset_type,
                error=str(e),
                exc_info=True,
            )
            return False
        finally:
            with self._table_lock:
                self._completed[session.session_id] = self._clock()
                self._sessions.pop(session.session_id, None)

        self._logger.info(
            "session_completed",
            session_id=str(session.session_id),
            dataset_type=session.dataset_type,
            payload_bytes=len(payload),
            chunk_count=session.total_count,
        )
        return True
