from datasync.models.chunk import Chunk
from datasync.models.descriptor import DatasetTypeDescriptor
from datasync.models.entry import DatasetEntry
from datasync.models.enums import ListenerPriority, ReloadSource, StoreState, ValidationStatus
from datasync.models.events import ReloadCompleted, ReloadResult
from datasync.models.snapshot import CacheIndex, Snapshot
from datasync.models.validation import ValidationResult

__all__ = [
    "CacheIndex",
    "Chunk",
    "DatasetEntry",
    "DatasetTypeDescriptor",
    "ListenerPriority",
    "ReloadCompleted",
    "ReloadResult",
    "ReloadSource",
    "Snapshot",
    "StoreState",
    "ValidationResult",
    "ValidationStatus",
]
