from pydantic import Field

from datasync.models.base import FrozenModel
from datasync.models.enums import ReloadSource


class ReloadCompleted(FrozenModel):
    """Notification published after a store installs a new snapshot."""

    dataset_type: str
    valid_count: int = Field(ge=0)
    invalid_count: int = Field(ge=0)
    source: ReloadSource = ReloadSource.LOCAL


class ReloadResult(FrozenModel):
    """Statistics for one local reload."""

    dataset_type: str
    generation: int = Field(ge=0)
    valid_count: int = Field(ge=0)
    invalid_count: int = Field(ge=0)
    deferred_count: int = Field(default=0, ge=0)
    errors: list[str] = Field(default_factory=list)
