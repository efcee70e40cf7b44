from __future__ import annotations

"""Snapshot storage backends for the context store.

``SnapshotStorage`` is the minimal blob interface the store needs. The
default ``LocalFileStorage`` resolves relative paths under a root directory,
creates parent directories on write, and replaces files atomically so a
crashed write never leaves a half-written snapshot behind.
"""

import asyncio
import os
from pathlib import Path
from typing import Protocol
from uuid import uuid4


class SnapshotStorage(Protocol):
    async def write(self, path: str, blob: str) -> str:
        """Write ``blob`` to ``path`` and return the resolved location."""
        ...

    async def read(self, path: str) -> str:
        """Return the blob stored at ``path``."""
        ...


class LocalFileStorage:
    """Filesystem implementation of ``SnapshotStorage``."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, path: str) -> Path:
        candidate = Path(path)
        return candidate if candidate.is_absolute() else self._root / candidate

    async def write(self, path: str, blob: str) -> str:
        target = self.resolve(path)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp = target.with_name(f"{target.name}.{uuid4().hex}.tmp")
            tmp.write_text(blob, encoding="utf-8")
            os.replace(tmp, target)

        await asyncio.to_thread(_write)
        return str(target)

    async def read(self, path: str) -> str:
        return await asyncio.to_thread(self.resolve(path).read_text, encoding="utf-8")
