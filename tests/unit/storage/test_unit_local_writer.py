# tests/unit/storage/test_unit_local_writer.py - v1
"""Tests for storage/local_writer.py - atomic writes and listing."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from matrixmint.storage.local_writer import LocalWriter


class TestLocalWriter:
    @pytest.mark.asyncio
    async def test_write_and_read(self, tmp_path):
        writer = LocalWriter(tmp_path)
        await writer.write("sub/file.json", '{"a": 1}')
        assert await writer.read("sub/file.json") == b'{"a": 1}'
        assert await writer.exists("sub/file.json")

    @pytest.mark.asyncio
    async def test_overwrite_replaces_content(self, tmp_path):
        writer = LocalWriter(tmp_path)
        await writer.write("f.txt", "old")
        await writer.write("f.txt", b"new")
        assert (tmp_path / "f.txt").read_text() == "new"

    @pytest.mark.asyncio
    async def test_failed_rename_leaves_old_content(self, tmp_path):
        writer = LocalWriter(tmp_path)
        await writer.write("entry.json", "old")

        with patch("matrixmint.storage.local_writer.os.replace", side_effect=OSError("crash")):
            with pytest.raises(OSError, match="crash"):
                await writer.write("entry.json", "new")

        assert (tmp_path / "entry.json").read_text() == "old"
        assert [p.name for p in tmp_path.iterdir()] == ["entry.json"]

    @pytest.mark.asyncio
    async def test_list_dir_skips_temp_files(self, tmp_path):
        writer = LocalWriter(tmp_path)
        await writer.write("a.json", "1")
        (tmp_path / ".b.json.123.tmp").write_text("partial")
        (tmp_path / "nested").mkdir()
        assert await writer.list_dir("") == ["a.json"]

    @pytest.mark.asyncio
    async def test_list_missing_dir_is_empty(self, tmp_path):
        assert await LocalWriter(tmp_path / "nope").list_dir("") == []

    @pytest.mark.asyncio
    async def test_delete(self, tmp_path):
        writer = LocalWriter(tmp_path)
        await writer.write("x.json", "1")
        assert await writer.delete("x.json") is True
        assert await writer.delete("x.json") is False

    @pytest.mark.asyncio
    async def test_modified_at(self, tmp_path):
        writer = LocalWriter(tmp_path)
        await writer.write("x.json", "1")
        assert await writer.modified_at("x.json") == (tmp_path / "x.json").stat().st_mtime

    def test_base_path(self, tmp_path):
        assert LocalWriter(tmp_path).base_path == tmp_path
        assert LocalWriter().base_path is None
