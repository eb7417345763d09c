from typing import Any

from pydantic import field_validator, model_validator

from datasync.models.base import FrozenModel, ensure_identifier


class DatasetEntry(FrozenModel):
    """One decoded, validated record and the document it came from.

    Entries admitted with a deferred validation outcome keep ``deferred`` set
    until an external re-validation pass replaces them.
    """

    identifier: str
    record: Any
    deferred: bool = False
    deferred_reason: str | None = None

    @field_validator("identifier", mode="before")
    @classmethod
    def _validate_identifier(cls, value: Any) -> str:
        return ensure_identifier(value)

    @model_validator(mode="after")
    def _validate_deferred_reason(self) -> "DatasetEntry":
        if self.deferred_reason is not None and not self.deferred:
            raise ValueError("deferred_reason requires deferred=True")
        return self
