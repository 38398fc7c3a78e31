# tests/unit/storage/test_unit_local_writer.py - v1
"""Tests for storage/local_writer.py - local filesystem writer."""

from __future__ import annotations

import pytest

from visionnarrate.storage.local_writer import LocalWriter


class TestLocalWriter:
    @pytest.mark.asyncio
    async def test_write_text_and_bytes(self, tmp_path):
        writer = LocalWriter(tmp_path)
        await writer.write("run_1/logs.jsonl", "line\n")
        await writer.write("run_1/final.mp4", b"\x00\x01")
        assert (tmp_path / "run_1" / "logs.jsonl").read_text() == "line\n"
        assert await writer.read("run_1/final.mp4") == b"\x00\x01"

    @pytest.mark.asyncio
    async def test_exists_and_delete(self, tmp_path):
        writer = LocalWriter(tmp_path)
        await writer.write("a.txt", "x")
        assert await writer.exists("a.txt")
        await writer.delete("a.txt")
        assert not await writer.exists("a.txt")
        await writer.delete("a.txt")

    @pytest.mark.asyncio
    async def test_list_dir(self, tmp_path):
        writer = LocalWriter(tmp_path)
        await writer.write("d/b.txt", "x")
        await writer.write("d/a.txt", "x")
        assert await writer.list_dir("d") == ["a.txt", "b.txt"]
        assert await writer.list_dir("missing") == []

    @pytest.mark.asyncio
    async def test_absolute_path_bypasses_base(self, tmp_path):
        writer = LocalWriter(tmp_path / "base")
        target = tmp_path / "elsewhere" / "f.txt"
        await writer.write(str(target), "x")
        assert target.exists()
