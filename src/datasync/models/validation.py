from pydantic import model_validator

from datasync.models.base import FrozenModel
from datasync.models.enums import ValidationStatus


class ValidationResult(FrozenModel):
    """Outcome of validating one decoded record.

    ``deferred`` results are admitted into the snapshot but flagged for an
    external re-validation pass, for checks that depend on runtime state.
    """

    status: ValidationStatus
    message: str | None = None

    @model_validator(mode="after")
    def _require_message(self) -> "ValidationResult":
        if self.status is not ValidationStatus.VALID and not self.message:
            raise ValueError(f"a {self.status.value} result requires a message")
        return self

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls(status=ValidationStatus.VALID)

    @classmethod
    def failure(cls, message: str) -> "ValidationResult":
        return cls(status=ValidationStatus.INVALID, message=message)

    @classmethod
    def deferred(cls, message: str) -> "ValidationResult":
        return cls(status=ValidationStatus.DEFERRED, message=message)

    @property
    def admitted(self) -> bool:
        return self.status is not ValidationStatus.INVALID

    @property
    def is_deferred(self) -> bool:
        return self.status is ValidationStatus.DEFERRED
