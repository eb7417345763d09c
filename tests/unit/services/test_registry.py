"""Unit tests for DatasetRegistry."""

from typing import Any

import pytest

from datasync.errors import ConfigurationError, UnknownDatasetType
from datasync.models.descriptor import DatasetTypeDescriptor
from datasync.models.validation import ValidationResult
from datasync.services.codec import JsonCodec
from datasync.services.registry import DatasetRegistry


def _descriptor(name: str, **overrides: Any) -> DatasetTypeDescriptor:
    return DatasetTypeDescriptor(name=name, folder=f"{name}s", **overrides)


@pytest.fixture
def registry() -> DatasetRegistry:
    return DatasetRegistry()


class TestRegister:
    def test_returns_store_for_descriptor(self, registry: DatasetRegistry) -> None:
        descriptor = _descriptor("widget")

        store = registry.register(descriptor, JsonCodec())

        assert store.descriptor == descriptor
        assert registry.get("widget") is store
        assert registry.is_registered("widget")
        assert "widget" in registry
        assert len(registry) == 1

    def test_same_descriptor_is_idempotent(self, registry: DatasetRegistry) -> None:
        first = registry.register(_descriptor("widget"), JsonCodec())
        second = registry.register(_descriptor("widget"), JsonCodec())

        assert first is second
        assert len(registry) == 1

    def test_conflicting_descriptor_is_rejected(self, registry: DatasetRegistry) -> None:
        registry.register(_descriptor("widget"), JsonCodec())

        with pytest.raises(ConfigurationError, match="already registered"):
            registry.register(_descriptor("widget", priority=5), JsonCodec())

    def test_missing_descriptor_is_rejected(self, registry: DatasetRegistry) -> None:
        with pytest.raises(ConfigurationError):
            registry.register(None, JsonCodec())

    def test_wrong_descriptor_type_is_rejected(self, registry: DatasetRegistry) -> None:
        with pytest.raises(ConfigurationError, match="DatasetTypeDescriptor"):
            registry.register({"name": "widget"}, JsonCodec())  # type: ignore[arg-type]

    def test_missing_codec_is_rejected(self, registry: DatasetRegistry) -> None:
        with pytest.raises(ConfigurationError, match="no codec"):
            registry.register(_descriptor("widget"), None)

    def test_codec_without_methods_is_rejected(self, registry: DatasetRegistry) -> None:
        with pytest.raises(ConfigurationError, match="encode"):
            registry.register(_descriptor("widget"), object())  # type: ignore[arg-type]

    def test_unusable_validator_is_rejected(self, registry: DatasetRegistry) -> None:
        with pytest.raises(ConfigurationError, match="validator"):
            registry.register(_descriptor("widget"), JsonCodec(), validator=42)  # type: ignore[arg-type]

    def test_plain_function_validator_is_accepted(self, registry: DatasetRegistry) -> None:
        store = registry.register(
            _descriptor("widget"),
            JsonCodec(),
            validator=lambda record, source_id: ValidationResult.failure("nope"),
        )

        result = store.reload({"demo:a": {"name": "a"}})

        assert result.invalid_count == 1

    def test_failed_registration_leaves_registry_unchanged(self, registry: DatasetRegistry) -> None:
        with pytest.raises(ConfigurationError):
            registry.register(_descriptor("widget"), None)

        assert len(registry) == 0
        assert not registry.is_registered("widget")


class TestLookup:
    def test_unknown_type_raises(self, registry: DatasetRegistry) -> None:
        with pytest.raises(UnknownDatasetType) as excinfo:
            registry.get("gadget")

        assert excinfo.value.dataset_type == "gadget"
        assert isinstance(excinfo.value, KeyError)

    def test_find_returns_none_for_unknown(self, registry: DatasetRegistry) -> None:
        assert registry.find("gadget") is None

    def test_registered_types(self, registry: DatasetRegistry) -> None:
        registry.register(_descriptor("widget"), JsonCodec())
        registry.register(_descriptor("gadget"), JsonCodec())

        assert registry.registered_types() == frozenset({"widget", "gadget"})


class TestOrdering:
    def test_orders_by_ascending_priority(self, registry: DatasetRegistry) -> None:
        registry.register(_descriptor("a", priority=50), JsonCodec())
        registry.register(_descriptor("b", priority=10), JsonCodec())
        registry.register(_descriptor("c"), JsonCodec())

        assert [descriptor.priority for descriptor in registry.ordered_types()] == [10, 50, 1000]
        assert [store.name for store in registry.ordered_stores()] == ["b", "a", "c"]

    def test_ties_keep_registration_order(self, registry: DatasetRegistry) -> None:
        for name in ("first", "second", "third"):
            registry.register(_descriptor(name, priority=7), JsonCodec())

        assert [descriptor.name for descriptor in registry.ordered_types()] == ["first", "second", "third"]


class TestInitialize:
    def test_initialize_is_idempotent(self, registry: DatasetRegistry) -> None:
        registry.register(_descriptor("widget"), JsonCodec())

        registry.initialize()
        registry.initialize()

        assert registry.initialized
        assert len(registry) == 1


class TestBroadcaster:
    def test_binds_existing_and_future_stores(self, registry: DatasetRegistry) -> None:
        calls: list[str] = []
        before = registry.register(_descriptor("before", sync_enabled=True), JsonCodec())
        registry.bind_broadcaster(calls.append)
        after = registry.register(_descriptor("after", sync_enabled=True), JsonCodec())

        before.reload({"demo:a": 1})
        after.reload({"demo:b": 2})

        assert calls == ["before", "after"]

    def test_stores_share_registry_listeners(self, registry: DatasetRegistry) -> None:
        seen: list[str] = []
        registry.listeners.add(lambda event: seen.append(event.dataset_type))
        store = registry.register(_descriptor("widget"), JsonCodec())

        store.reload({"demo:a": 1})

        assert seen == ["widget"]

    def test_listener_added_after_register_is_notified(self, registry: DatasetRegistry) -> None:
        seen: list[str] = []
        store = registry.register(_descriptor("widget"), JsonCodec())
        registry.listeners.add(lambda event: seen.append(event.dataset_type))

        store.reload({"demo:a": 1})

        assert store.listeners is registry.listeners
        assert seen == ["widget"]
