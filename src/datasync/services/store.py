"""Dataset store: owns one dataset type's snapshot, cache index and reload algorithm.

Readers never lock. Every publication replaces a single reference to an
immutable (snapshot, cache index, state) view, so a reader that grabs the view
once sees one generation only. Writers (``reload`` and ``replace_snapshot``)
are serialized per store.
"""

import itertools
import threading
from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any, NamedTuple

import structlog
from datasync.errors import CacheDisabledError, DecodeError, ValidationFailure
from datasync.models.base import ensure_identifier
from datasync.models.descriptor import DatasetTypeDescriptor
from datasync.models.entry import DatasetEntry
from datasync.models.enums import ReloadSource, StoreState
from datasync.models.events import ReloadCompleted, ReloadResult
from datasync.models.snapshot import CacheIndex, CacheKeyFunction, Snapshot, default_cache_keys
from datasync.models.validation import ValidationResult
from datasync.services.codec import Codec
from datasync.services.events import ReloadListeners
from datasync.services.validation import NoValidator, Validator

Broadcaster = Callable[[str], None]


class _View(NamedTuple):
    snapshot: Snapshot
    cache: CacheIndex
    state: StoreState


class _Outcome(NamedTuple):
    entry: DatasetEntry | None
    error: str | None


class DatasetStore:
    """Current snapshot of one dataset type plus its derived cache index.

    States move ``EMPTY -> LOADING -> READY`` and ``READY -> LOADING -> READY``
    on every reload; the store lives for the whole process.
    """

    def __init__(
        self,
        descriptor: DatasetTypeDescriptor,
        codec: Codec,
        validator: Validator | None = None,
        listeners: ReloadListeners | None = None,
        cache_keys: CacheKeyFunction | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._descriptor = descriptor
        self._codec = codec
        self._validator = validator if validator is not None else NoValidator()
        self._listeners = listeners if listeners is not None else ReloadListeners()
        self._cache_keys = cache_keys or default_cache_keys
        self._logger = (logger or structlog.get_logger(__name__)).bind(dataset_type=descriptor.name)
        self._write_lock = threading.Lock()
        self._generations = itertools.count(1)
        self._broadcaster: Broadcaster | None = None
        self._view = _View(Snapshot.empty(), CacheIndex.empty(), StoreState.EMPTY)

    @property
    def descriptor(self) -> DatasetTypeDescriptor:
        return self._descriptor

    @property
    def name(self) -> str:
        return self._descriptor.name

    @property
    def codec(self) -> Codec:
        return self._codec

    @property
    def listeners(self) -> ReloadListeners:
        return self._listeners

    @property
    def state(self) -> StoreState:
        return self._view.state

    @property
    def snapshot(self) -> Snapshot:
        return self._view.snapshot

    @property
    def cache_index(self) -> CacheIndex:
        return self._view.cache

    @property
    def generation(self) -> int:
        return self._view.snapshot.generation

    def bind_broadcaster(self, broadcaster: Broadcaster | None) -> None:
        self._broadcaster = broadcaster

    # Reads

    def get(self, identifier: str, default: Any = None) -> Any:
        entry = self._view.snapshot.get(identifier)
        return default if entry is None else entry.record

    def entry(self, identifier: str) -> DatasetEntry | None:
        return self._view.snapshot.get(identifier)

    def all(self) -> dict[str, Any]:
        return self._view.snapshot.records()

    def identifiers(self) -> list[str]:
        return list(self._view.snapshot)

    def by_cache_key(self, key: str) -> tuple[Any, ...]:
        """Return the records grouped under ``key`` in the current cache index.

        Raises:
            CacheDisabledError: If the dataset type was registered without caching.
        """
        if not self._descriptor.cache_enabled:
            raise CacheDisabledError(f"cache is disabled for dataset type '{self.name}'")
        return tuple(entry.record for entry in self._view.cache.lookup(key))

    def deferred_entries(self) -> list[DatasetEntry]:
        """Entries admitted with a deferred validation outcome, awaiting re-validation."""
        return [entry for entry in self._view.snapshot.values() if entry.deferred]

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._view.snapshot

    def __len__(self) -> int:
        return len(self._view.snapshot)

    def __iter__(self) -> Iterator[str]:
        return iter(self._view.snapshot)

    # Writes

    def reload(self, documents: Mapping[str, Any]) -> ReloadResult:
        """Rebuild the snapshot from a full set of tree documents.

        Malformed or invalid documents are logged, counted and skipped; they
        never abort the reload. A reload with no valid records still publishes
        an empty snapshot.

        Args:
            documents: Document identifier -> generic tree document.

        Returns:
            ReloadResult with valid, invalid and deferred counts.
        """
        with self._write_lock:
            previous = self._view
            self._publish(Snapshot.empty(next(self._generations)), StoreState.LOADING)
            published = False
            try:
                self._logger.info("reload_started", document_count=len(documents))

                entries: dict[str, DatasetEntry] = {}
                errors: list[str] = []
                invalid_count = 0

                for identifier, tree in self._expand(documents):
                    outcome = self._admit(identifier, tree)
                    if outcome.entry is None:
                        invalid_count += 1
                        errors.append(f"{identifier}: {outcome.error}")
                        continue
                    key = outcome.entry.identifier
                    if key in entries:
                        self._logger.warning("duplicate_identifier_replaced", identifier=key)
                    entries[key] = outcome.entry

                snapshot = Snapshot(entries, next(self._generations))
                self._publish(snapshot, StoreState.READY)
                published = True
            finally:
                if not published:
                    # keep serving the last complete view
                    self._view = previous
                    self._logger.error("reload_aborted", generation=previous.snapshot.generation)

        valid_count = len(entries)
        deferred_count = sum(1 for entry in entries.values() if entry.deferred)

        self._logger.info(
            "reload_completed",
            generation=snapshot.generation,
            valid_count=valid_count,
            invalid_count=invalid_count,
            deferred_count=deferred_count,
        )

        self._listeners.notify(
            ReloadCompleted(
                dataset_type=self.name,
                valid_count=valid_count,
                invalid_count=invalid_count,
                source=ReloadSource.LOCAL,
            )
        )

        if self._descriptor.sync_enabled:
            self._trigger_sync()

        return ReloadResult(
            dataset_type=self.name,
            generation=snapshot.generation,
            valid_count=valid_count,
            invalid_count=invalid_count,
            deferred_count=deferred_count,
            errors=errors,
        )

    def replace_snapshot(self, records: Mapping[str, Any]) -> Snapshot:
        """Install records received from a remote producer, replacing everything.

        Records are trusted as already validated by the producer. Never
        triggers a broadcast.

        Raises:
            pydantic.ValidationError: If an identifier is not a namespaced key.
            TypeError: If an identifier is not a string.
        """
        entries: dict[str, DatasetEntry] = {}
        for identifier, record in records.items():
            entry = DatasetEntry(identifier=identifier, record=record)
            entries[entry.identifier] = entry

        with self._write_lock:
            snapshot = Snapshot(entries, next(self._generations))
            self._publish(snapshot, StoreState.READY)

        self._logger.debug("snapshot_replaced", generation=snapshot.generation, entry_count=len(entries))

        self._listeners.notify(
            ReloadCompleted(
                dataset_type=self.name,
                valid_count=len(entries),
                invalid_count=0,
                source=ReloadSource.SYNC,
            )
        )
        return snapshot

    def _publish(self, snapshot: Snapshot, state: StoreState) -> None:
        if self._descriptor.cache_enabled and snapshot:
            cache = CacheIndex.build(snapshot, self._safe_cache_keys)
        else:
            cache = CacheIndex.empty()
        self._view = _View(snapshot, cache, state)

    def _expand(self, documents: Mapping[str, Any]) -> Iterable[tuple[str, Any]]:
        for identifier, tree in documents.items():
            if self._descriptor.supports_array and isinstance(tree, list):
                self._logger.debug("array_document_expanded", identifier=identifier, element_count=len(tree))
                for index, element in enumerate(tree):
                    yield f"{identifier}_{index}", element
            else:
                yield identifier, tree

    def _admit(self, identifier: Any, tree: Any) -> _Outcome:
        try:
            identifier = ensure_identifier(identifier)
        except (TypeError, ValueError) as e:
            self._logger.error("record_identifier_invalid", identifier=repr(identifier), error=str(e))
            return _Outcome(None, f"bad identifier: {e}")

        try:
            record = self._codec.decode(tree)
        except DecodeError as e:
            self._logger.error("record_decode_failed", identifier=identifier, error=str(e))
            return _Outcome(None, f"decode failed: {e}")
        except Exception as e:
            self._logger.error("record_decode_failed", identifier=identifier, error=str(e), exc_info=True)
            return _Outcome(None, f"decode failed: {e}")

        result = self._validate(record, identifier)
        if not result.admitted:
            self._logger.warning("record_invalid", identifier=identifier, reason=result.message)
            return _Outcome(None, f"invalid: {result.message}")

        if result.is_deferred:
            self._logger.debug("record_validation_deferred", identifier=identifier, reason=result.message)

        entry = DatasetEntry(
            identifier=identifier,
            record=record,
            deferred=result.is_deferred,
            deferred_reason=result.message if result.is_deferred else None,
        )

        self._logger.debug("record_loaded", identifier=identifier)
        return _Outcome(entry, None)

    def _validate(self, record: Any, identifier: str) -> ValidationResult:
        try:
            result = self._validator.validate(record, identifier)
        except ValidationFailure as e:
            return ValidationResult.failure(str(e) or type(e).__name__)
        except Exception as e:
            self._logger.error("validator_failed", identifier=identifier, error=str(e), exc_info=True)
            return ValidationResult.failure(f"validator raised {type(e).__name__}: {e}")
        if not isinstance(result, ValidationResult):
            return ValidationResult.failure(f"validator returned {type(result).__name__}, not ValidationResult")
        return result

    def _safe_cache_keys(self, entry: DatasetEntry) -> Iterable[str]:
        try:
            return tuple(self._cache_keys(entry))
        except Exception as e:
            self._logger.error("cache_key_failed", identifier=entry.identifier, error=str(e), exc_info=True)
            return ()

    def _trigger_sync(self) -> None:
        broadcaster = self._broadcaster
        if broadcaster is None:
            return
        try:
            broadcaster(self.name)
        except Exception as e:
            self._logger.error("sync_trigger_failed", error=str(e), exc_info=True)

    def __repr__(self) -> str:
        view = self._view
        return f"DatasetStore(name={self.name!r}, state={view.state.value}, size={len(view.snapshot)})"
