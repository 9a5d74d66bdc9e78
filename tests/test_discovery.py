import os
from pathlib import Path

import pytest

from collection_agent.cache import CollectionCache
from collection_agent.collection import discovery
from collection_agent.collection.discovery import clamp_depth, discover_collections
from collection_agent.errors import CollectionNotFoundError, InvalidCollectionError


def _make_collection(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    (path / "bruno.json").write_text('{"version": "1", "name": "c", "type": "collection"}')
    return path


class TestClampDepth:
    @pytest.mark.parametrize("requested,expected", [(-3, 0), (0, 0), (4, 4), (10, 10), (99, 10)])
    def test_clamped(self, requested, expected):
        assert clamp_depth(requested) == expected


class TestDiscoverCollections:
    def test_finds_collections(self, tmp_path):
        a = _make_collection(tmp_path / "a")
        b = _make_collection(tmp_path / "group" / "b")
        found = discover_collections(tmp_path)
        assert set(found) == {str(a.resolve()), str(b.resolve())}

    def test_root_itself_is_a_collection(self, tmp_path):
        _make_collection(tmp_path)
        _make_collection(tmp_path / "inner")
        assert discover_collections(tmp_path) == [str(tmp_path.resolve())]

    def test_nested_collection_not_reported(self, tmp_path):
        outer = _make_collection(tmp_path / "outer")
        _make_collection(outer / "deeper" / "inner")
        assert discover_collections(tmp_path) == [str(outer.resolve())]

    def test_depth_limit(self, tmp_path):
        _make_collection(tmp_path / "l1" / "l2" / "l3")
        assert discover_collections(tmp_path, max_depth=2) == []
        assert len(discover_collections(tmp_path, max_depth=3)) == 1

    def test_depth_zero_checks_only_root(self, tmp_path):
        _make_collection(tmp_path / "child")
        assert discover_collections(tmp_path, max_depth=0) == []

    def test_never_visits_beyond_depth(self, tmp_path, monkeypatch):
        deep = tmp_path
        for i in range(6):
            deep = deep / f"d{i}"
        deep.mkdir(parents=True)

        visited = []
        real_scan = discovery._scan

        def recording_scan(dir_path):
            visited.append(Path(dir_path))
            return real_scan(dir_path)

        monkeypatch.setattr(discovery, "_scan", recording_scan)
        discover_collections(tmp_path, max_depth=3)

        root = tmp_path.resolve()
        depths = [len(p.relative_to(root).parts) for p in visited]
        assert max(depths) == 3

    def test_depth_capped_at_ten(self, tmp_path):
        deep = tmp_path
        for i in range(11):
            deep = deep / f"d{i}"
        _make_collection(deep)
        assert discover_collections(tmp_path, max_depth=50) == []

    def test_skips_hidden_and_dependency_dirs(self, tmp_path):
        _make_collection(tmp_path / ".hidden" / "c")
        _make_collection(tmp_path / "node_modules" / "c")
        visible = _make_collection(tmp_path / "visible")
        assert discover_collections(tmp_path) == [str(visible.resolve())]

    def test_missing_root(self, tmp_path):
        with pytest.raises(CollectionNotFoundError):
            discover_collections(tmp_path / "nope")

    def test_root_is_file(self, tmp_path):
        f = tmp_path / "file.txt"
        f.write_text("x")
        with pytest.raises(InvalidCollectionError):
            discover_collections(f)

    @pytest.mark.skipif(os.name == "nt" or os.geteuid() == 0, reason="needs POSIX permissions as non-root")
    def test_unreadable_subdirectory_skipped(self, tmp_path):
        locked = tmp_path / "locked"
        locked.mkdir()
        ok = _make_collection(tmp_path / "ok")
        locked.chmod(0)
        try:
            assert discover_collections(tmp_path) == [str(ok.resolve())]
        finally:
            locked.chmod(0o755)

    def test_results_are_cached(self, tmp_path):
        cache = CollectionCache()
        _make_collection(tmp_path / "a")
        first = discover_collections(tmp_path, cache=cache)
        _make_collection(tmp_path / "b")
        assert discover_collections(tmp_path, cache=cache) == first
        cache.clear()
        assert len(discover_collections(tmp_path, cache=cache)) == 2

    def test_cache_keyed_by_depth(self, tmp_path):
        cache = CollectionCache()
        _make_collection(tmp_path / "l1" / "l2")
        assert discover_collections(tmp_path, max_depth=1, cache=cache) == []
        assert len(discover_collections(tmp_path, max_depth=2, cache=cache)) == 1
