from enum import IntEnum, StrEnum


class ValidationStatus(StrEnum):
    VALID = "valid"
    INVALID = "invalid"
    DEFERRED = "deferred"


class StoreState(StrEnum):
    EMPTY = "empty"
    LOADING = "loading"
    READY = "ready"


class ReloadSource(StrEnum):
    LOCAL = "local"
    SYNC = "sync"


class ListenerPriority(IntEnum):
    """Ordering for reload listeners; lower values run first."""

    HIGHEST = -1000
    VERY_HIGH = -750
    HIGH = -500
    ABOVE_NORMAL = -250
    NORMAL = 0
    BELOW_NORMAL = 250
    LOW = 500
    VERY_LOW = 750
    LOWEST = 1000
