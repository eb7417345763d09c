"""Validation port helpers."""

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from datasync.models.validation import ValidationResult


@runtime_checkable
class Validator(Protocol):
    def validate(self, record: Any, source_id: str) -> ValidationResult: ...


class NoValidator:
    """Accepts every record."""

    def validate(self, record: Any, source_id: str) -> ValidationResult:
        return ValidationResult.success()


class FunctionValidator:
    def __init__(self, fn: Callable[[Any, str], ValidationResult]) -> None:
        self._fn = fn

    def validate(self, record: Any, source_id: str) -> ValidationResult:
        return self._fn(record, source_id)


def as_validator(candidate: Validator | Callable[[Any, str], ValidationResult] | None) -> Validator:
    """Normalize a validator object, a plain function, or None into a Validator."""
    if candidate is None:
        return NoValidator()
    if callable(getattr(candidate, "validate", None)):
        return candidate  # type: ignore[return-value]
    if callable(candidate):
        return FunctionValidator(candidate)
    raise TypeError(f"{type(candidate).__name__} is neither a validator nor a callable")
