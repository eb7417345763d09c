from pydantic import Field, ValidationInfo, field_validator

from datasync.models.base import FrozenModel, ensure_folder_path, ensure_non_empty_text

DEFAULT_PRIORITY = 1000


class DatasetTypeDescriptor(FrozenModel):
    """Static description of one dataset type.

    Lower ``priority`` values load and initialize earlier. When ``namespace``
    is set, documents live under ``<namespace>/<folder>``.
    """

    name: str
    folder: str
    namespace: str | None = None
    sync_enabled: bool = False
    priority: int = DEFAULT_PRIORITY
    supports_array: bool = False
    cache_enabled: bool = True
    description: str | None = Field(default=None)

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        return ensure_non_empty_text(value, "name")

    @field_validator("folder", "namespace")
    @classmethod
    def _validate_folder(cls, value: str | None, info: ValidationInfo) -> str | None:
        if value is None:
            return None
        return ensure_folder_path(value, info.field_name or "folder")

    @property
    def folder_path(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.folder}"
        return self.folder
