"""Blob storage for artifacts and diagrams.

Paths are relative, forward-slash keys such as ``<project_id>/repomix.xml``.
"""

from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path, PurePosixPath
from typing import Protocol

DEFAULT_BLOB_ROOT = "./.repoflow-artifacts"


class BlobNotFound(LookupError):
    """No object stored under the requested path."""


class BlobStore(Protocol):
    async def put(self, path: str, content: str) -> None: ...

    async def get(self, path: str) -> str:
        """Return the stored text; raise :class:`BlobNotFound` if absent."""
        ...


class LocalBlobStore:
    """Filesystem-backed :class:`BlobStore` rooted at ``REPOFLOW_BLOB_ROOT``."""

    def __init__(self, root: Path | str | None = None) -> None:
        self.root = Path(root or os.environ.get("REPOFLOW_BLOB_ROOT", DEFAULT_BLOB_ROOT))

    def _resolve(self, path: str) -> Path:
        rel = PurePosixPath(path)
        if not path or rel.is_absolute() or ".." in rel.parts:
            raise ValueError(f"invalid blob path: {path!r}")
        return self.root.joinpath(*rel.parts)

    async def put(self, path: str, content: str) -> None:
        target = self._resolve(path)
        await asyncio.to_thread(self._write, target, content)

    async def get(self, path: str) -> str:
        target = self._resolve(path)
        try:
            return await asyncio.to_thread(target.read_text, encoding="utf-8")
        except FileNotFoundError as exc:
            raise BlobNotFound(path) from exc

    @staticmethod
    def _write(target: Path, content: str) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        # one temp file per writer; concurrent puts to a key end as last-write-wins
        fd, tmp = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(content)
            os.replace(tmp, target)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
