# src/storage/base_output_writer.py - v2
"""Abstract output writer interface shared by the cache disk tier and the run store."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseOutputWriter(ABC):
    """Unified interface for file-like storage backends."""

    @abstractmethod
    async def write(self, path: str, content: bytes | str) -> None:
        """Write content to the given path. Readers never observe a partial file."""

    @abstractmethod
    async def read(self, path: str) -> bytes:
        """Read content from the given path."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Check if path exists."""

    @abstractmethod
    async def delete(self, path: str) -> bool:
        """Delete a file. Returns False if it did not exist."""

    @abstractmethod
    async def list_dir(self, path: str) -> list[str]:
        """List file names in a directory (empty if missing)."""

    @abstractmethod
    async def modified_at(self, path: str) -> float:
        """Modification time as a unix timestamp in seconds."""
