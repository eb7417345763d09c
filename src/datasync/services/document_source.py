"""Discovers JSON documents for a dataset type on disk.

Documents are laid out as ``<root>/<namespace>/<folder path>/<path>.json`` and
receive the identifier ``<namespace>:<path>``. Parsing runs in worker threads
via asyncio.to_thread so the event loop is never blocked on file I/O.
"""

import asyncio
import json
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import structlog

from datasync.models.base import make_identifier
from datasync.models.descriptor import DatasetTypeDescriptor

DOCUMENT_SUFFIX = ".json"


class JsonDocumentSource:
    """Loads every JSON document belonging to a dataset type under ``root``."""

    def __init__(
        self,
        root: Path,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._root = root
        self._logger = logger or structlog.get_logger(__name__)

    @property
    def root(self) -> Path:
        return self._root

    async def load(self, descriptor: DatasetTypeDescriptor) -> dict[str, Any]:
        """Read and parse the documents for ``descriptor``.

        Files that cannot be read or parsed are logged and left out.

        Returns:
            Identifier -> parsed JSON tree.

        Raises:
            FileNotFoundError: If the root directory does not exist.
            NotADirectoryError: If the root is not a directory.
        """
        documents: dict[str, Any] = {}
        skipped = 0

        async for identifier, file_path in self.walk(descriptor):
            try:
                documents[identifier] = await asyncio.to_thread(self._read_json, file_path)
            except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
                skipped += 1
                self._logger.warning(
                    "document_read_error",
                    file_path=str(file_path),
                    identifier=identifier,
                    error=str(e),
                )

        self._logger.info(
            "documents_loaded",
            dataset_type=descriptor.name,
            folder=descriptor.folder_path,
            document_count=len(documents),
            skipped=skipped,
        )
        return documents

    async def walk(self, descriptor: DatasetTypeDescriptor) -> AsyncIterator[tuple[str, Path]]:
        """Yield ``(identifier, path)`` for every document of ``descriptor``, sorted."""
        if not self._root.exists():
            raise FileNotFoundError(f"Directory not found: {self._root}")
        if not self._root.is_dir():
            raise NotADirectoryError(f"Path is not a directory: {self._root}")

        found = await asyncio.to_thread(self._discover, descriptor.folder_path)
        for identifier, file_path in found:
            yield identifier, file_path

    def _discover(self, folder_path: str) -> list[tuple[str, Path]]:
        found: list[tuple[str, Path]] = []
        for namespace_dir in sorted(p for p in self._root.iterdir() if p.is_dir()):
            folder = namespace_dir / folder_path
            if not folder.is_dir():
                continue
            for file_path in sorted(folder.rglob(f"*{DOCUMENT_SUFFIX}")):
                if not file_path.is_file():
                    continue
                relative = file_path.relative_to(folder).with_suffix("").as_posix()
                found.append((make_identifier(namespace_dir.name, relative), file_path))
        return found

    def _read_json(self, file_path: Path) -> Any:
        return json.loads(file_path.read_text(encoding="utf-8"))
