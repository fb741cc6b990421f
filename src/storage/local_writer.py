# src/storage/local_writer.py - v3
"""Local filesystem writer with atomic replace semantics.

Every write goes to a temp file in the destination directory, is fsynced,
then renamed over the destination with os.replace. A crash before the rename
leaves the previous file untouched.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from pathlib import Path

from matrixmint.storage.base_output_writer import BaseOutputWriter

_TMP_SUFFIX = ".tmp"


class LocalWriter(BaseOutputWriter):
    """Write outputs to the local filesystem."""

    def __init__(self, base_path: str | Path | None = None) -> None:
        """Initialize with optional base path.

        Args:
            base_path: Root directory for all writes. If None, paths are absolute.
        """
        self._base = Path(base_path).expanduser() if base_path else None

    @property
    def base_path(self) -> Path | None:
        return self._base

    def _resolve(self, path: str) -> Path:
        """Resolve a path relative to base_path."""
        if self._base is not None:
            return self._base / path
        return Path(path)

    async def write(self, path: str, content: bytes | str) -> None:
        """Atomically write content to a local file path."""
        p = self._resolve(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        data = content.encode("utf-8") if isinstance(content, str) else content

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{p.name}.", suffix=_TMP_SUFFIX, dir=str(p.parent)
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, p)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)
            raise

    async def read(self, path: str) -> bytes:
        """Read content from a local file path."""
        return self._resolve(path).read_bytes()

    async def exists(self, path: str) -> bool:
        """Check if a local path exists."""
        return self._resolve(path).exists()

    async def delete(self, path: str) -> bool:
        p = self._resolve(path)
        try:
            p.unlink()
        except FileNotFoundError:
            return False
        return True

    async def list_dir(self, path: str) -> list[str]:
        """List directory contents, skipping in-flight temp files."""
        p = self._resolve(path)
        if not p.is_dir():
            return []
        return [
            entry.name
            for entry in sorted(p.iterdir())
            if entry.is_file() and not entry.name.endswith(_TMP_SUFFIX)
        ]

    async def modified_at(self, path: str) -> float:
        return self._resolve(path).stat().st_mtime
