# tests/unit/logging/test_unit_handlers.py - v1
"""Tests for logging/handlers.py."""

from __future__ import annotations

import pytest

from matrixmint.logging.handlers import create_rotating_handler, parse_size


class TestParseSize:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("512B", 512), ("10KB", 10_240), ("10MB", 10_485_760), ("1gb", 1_073_741_824), (" 5 MB ", 5_242_880)],
    )
    def test_valid(self, raw, expected):
        assert parse_size(raw) == expected

    @pytest.mark.parametrize("raw", ["", "10", "ten MB", "10TB"])
    def test_invalid(self, raw):
        with pytest.raises(ValueError, match="Invalid size format"):
            parse_size(raw)


class TestCreateRotatingHandler:
    def test_creates_parent(self, tmp_path):
        path = tmp_path / "nested" / "app.log"
        handler = create_rotating_handler(str(path), rotation="1KB", retention=3)
        try:
            assert path.parent.is_dir()
            assert handler.maxBytes == 1024
            assert handler.backupCount == 3
        finally:
            handler.close()
