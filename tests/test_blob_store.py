"""Tests for LocalBlobStore."""

from __future__ import annotations

import asyncio

import pytest

from repoflow.storage.blob import BlobNotFound, LocalBlobStore


class TestLocalBlobStore:
    async def test_put_get(self, tmp_path):
        store = LocalBlobStore(tmp_path)
        await store.put("p1/repomix.xml", "<repository/>")
        assert await store.get("p1/repomix.xml") == "<repository/>"
        assert (tmp_path / "p1" / "repomix.xml").is_file()

    async def test_overwrite(self, tmp_path):
        store = LocalBlobStore(tmp_path)
        await store.put("p1/diagrams/data-flow.mmd", "old")
        await store.put("p1/diagrams/data-flow.mmd", "new")
        assert await store.get("p1/diagrams/data-flow.mmd") == "new"
        assert not list((tmp_path / "p1" / "diagrams").glob("*.tmp"))

    async def test_concurrent_puts_same_key(self, tmp_path):
        store = LocalBlobStore(tmp_path)
        bodies = [f'<repository n="{i}"/>' * 200 for i in range(40)]

        results = await asyncio.gather(
            *(store.put("p1/repomix.xml", body) for body in bodies), return_exceptions=True
        )

        assert [r for r in results if isinstance(r, Exception)] == []
        assert await store.get("p1/repomix.xml") in bodies
        assert sorted(p.name for p in (tmp_path / "p1").iterdir()) == ["repomix.xml"]

    async def test_missing(self, tmp_path):
        with pytest.raises(BlobNotFound):
            await LocalBlobStore(tmp_path).get("nope/repomix.xml")

    @pytest.mark.parametrize("path", ["", "/etc/passwd", "../escape.txt", "p1/../../x"])
    async def test_rejects_paths_outside_root(self, tmp_path, path):
        with pytest.raises(ValueError, match="invalid blob path"):
            await LocalBlobStore(tmp_path).put(path, "x")

    def test_root_from_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("REPOFLOW_BLOB_ROOT", str(tmp_path / "blobs"))
        assert LocalBlobStore().root == tmp_path / "blobs"
