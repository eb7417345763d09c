"""Exception hierarchy for dataset loading and snapshot synchronization."""


class DatasyncError(Exception):
    """Base class for all datasync errors."""


class ConfigurationError(DatasyncError):
    """Raised when a dataset type is registered or wired incorrectly.

    Fatal at startup; never retried.
    """


class UnknownDatasetType(ConfigurationError, KeyError):
    """Raised when looking up a dataset type that was never registered."""

    def __init__(self, dataset_type: str) -> None:
        super().__init__(dataset_type)
        self.dataset_type = dataset_type

    def __str__(self) -> str:
        return f"dataset type '{self.dataset_type}' is not registered"


class CacheDisabledError(ConfigurationError):
    """Raised when querying the cache index of a type registered without caching."""


class DecodeError(DatasyncError):
    """Raised when a tree document cannot be turned into a record, or back."""


class ValidationFailure(DatasyncError):
    """Raised by validators that prefer exceptions over returning a failure result."""


class TransportMalformed(DatasyncError):
    """Raised for wire input that cannot be interpreted (bad frame, bad reassembly)."""


class TransportError(DatasyncError):
    """Raised by a transport that cannot hand a chunk to the wire."""
