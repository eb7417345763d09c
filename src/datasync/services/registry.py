"""Registry of dataset types and their stores.

One registry value is built at startup and passed to whatever needs it; there
is no process-wide instance.
"""

import threading
from collections.abc import Callable
from typing import Any

import structlog

from datasync.errors import ConfigurationError, UnknownDatasetType
from datasync.models.descriptor import DatasetTypeDescriptor
from datasync.models.snapshot import CacheKeyFunction
from datasync.models.validation import ValidationResult
from datasync.services.codec import Codec, is_codec
from datasync.services.events import ReloadListeners
from datasync.services.store import Broadcaster, DatasetStore
from datasync.services.validation import Validator, as_validator


class DatasetRegistry:
    """Tracks registered dataset types in registration order.

    Registration is explicit: each dataset type is registered once with its
    descriptor, codec and optional validator.
    """

    def __init__(
        self,
        listeners: ReloadListeners | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._logger = logger or structlog.get_logger(__name__)
        self._listeners = listeners if listeners is not None else ReloadListeners(logger=self._logger)
        self._lock = threading.Lock()
        self._stores: dict[str, DatasetStore] = {}
        self._broadcaster: Broadcaster | None = None
        self._initialized = False

    @property
    def listeners(self) -> ReloadListeners:
        return self._listeners

    @property
    def initialized(self) -> bool:
        return self._initialized

    def register(
        self,
        descriptor: DatasetTypeDescriptor | None,
        codec: Codec | None,
        validator: Validator | Callable[[Any, str], ValidationResult] | None = None,
        cache_keys: CacheKeyFunction | None = None,
    ) -> DatasetStore:
        """Register a dataset type and return its store.

        Registering the same descriptor again returns the existing store.

        Args:
            descriptor: Static description of the dataset type.
            codec: Record <-> tree document codec for the type.
            validator: Validator object or ``(record, source_id)`` function.
                Defaults to accepting every record.
            cache_keys: Function returning the cache keys of an entry.
                Defaults to grouping every entry under ``"all"``.

        Returns:
            The DatasetStore for the type.

        Raises:
            ConfigurationError: If the descriptor or codec is missing or
                unusable, or the name is registered with a different descriptor.
        """
        if descriptor is None:
            raise ConfigurationError("a dataset type cannot be registered without a descriptor")
        if not isinstance(descriptor, DatasetTypeDescriptor):
            raise ConfigurationError(f"expected DatasetTypeDescriptor, got {type(descriptor).__name__}")
        if codec is None:
            raise ConfigurationError(f"dataset type '{descriptor.name}' has no codec")
        if not is_codec(codec):
            raise ConfigurationError(f"codec for '{descriptor.name}' must provide encode() and decode()")
        try:
            resolved_validator = as_validator(validator)
        except TypeError as e:
            raise ConfigurationError(f"validator for '{descriptor.name}' is unusable: {e}") from e

        with self._lock:
            existing = self._stores.get(descriptor.name)
            if existing is not None:
                if existing.descriptor != descriptor:
                    raise ConfigurationError(
                        f"dataset type '{descriptor.name}' is already registered with different metadata"
                    )
                return existing

            store = DatasetStore(
                descriptor=descriptor,
                codec=codec,
                validator=resolved_validator,
                listeners=self._listeners,
                cache_keys=cache_keys,
                logger=self._logger,
            )
            store.bind_broadcaster(self._broadcaster)
            self._stores[descriptor.name] = store

        self._logger.debug(
            "dataset_type_registered",
            dataset_type=descriptor.name,
            folder=descriptor.folder_path,
            priority=descriptor.priority,
            sync_enabled=descriptor.sync_enabled,
        )
        return store

    def initialize(self) -> None:
        """Finish process-wide setup; calling it again does nothing."""
        with self._lock:
            if self._initialized:
                return
            self._initialized = True
            count = len(self._stores)
        self._logger.info(
            "registry_initialized",
            registered_types=count,
            load_order=[descriptor.name for descriptor in self.ordered_types()],
        )

    def ordered_types(self) -> list[DatasetTypeDescriptor]:
        """Registered descriptors, ascending by priority, ties in registration order."""
        return [store.descriptor for store in self.ordered_stores()]

    def ordered_stores(self) -> list[DatasetStore]:
        stores = list(self._stores.values())
        # sorted() is stable and dict order is registration order
        return sorted(stores, key=lambda store: store.descriptor.priority)

    def registered_types(self) -> frozenset[str]:
        return frozenset(self._stores)

    def is_registered(self, name: str) -> bool:
        return name in self._stores

    def get(self, name: str) -> DatasetStore:
        store = self._stores.get(name)
        if store is None:
            raise UnknownDatasetType(name)
        return store

    def find(self, name: str) -> DatasetStore | None:
        return self._stores.get(name)

    def bind_broadcaster(self, broadcaster: Broadcaster | None) -> None:
        """Install the sync trigger on every current and future store."""
        with self._lock:
            self._broadcaster = broadcaster
            for store in self._stores.values():
                store.bind_broadcaster(broadcaster)

    def __len__(self) -> int:
        return len(self._stores)

    def __contains__(self, name: object) -> bool:
        return name in self._stores
