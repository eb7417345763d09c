from typing import Any

from pydantic import BaseModel, ConfigDict

NAMESPACE_SEPARATOR = ":"


class FrozenModel(BaseModel):
    """Base class for immutable value objects."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


def ensure_non_empty_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{field_name} must be a string")
    if not value.strip():
        raise ValueError(f"{field_name} cannot be empty")
    return value.strip()


def ensure_identifier(value: Any) -> str:
    """Validate a namespaced document identifier such as ``demo:widgets/gear``."""
    identifier = ensure_non_empty_text(value, "identifier")
    namespace, sep, path = identifier.partition(NAMESPACE_SEPARATOR)
    if not sep or not namespace or not path:
        raise ValueError(f"identifier '{identifier}' must look like 'namespace{NAMESPACE_SEPARATOR}path'")
    return identifier


def ensure_folder_path(value: Any, field_name: str) -> str:
    folder = ensure_non_empty_text(value, field_name).strip("/")
    if not folder:
        raise ValueError(f"{field_name} cannot be empty")
    if any(part in ("", ".", "..") for part in folder.split("/")):
        raise ValueError(f"{field_name} must be a relative path without '.' or '..' segments")
    return folder


def make_identifier(namespace: str, path: str) -> str:
    return f"{namespace}{NAMESPACE_SEPARATOR}{path}"
