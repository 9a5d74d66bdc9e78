from collection_agent.cache import CollectionCache, TtlCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TestTtlCache:
    def test_set_then_get(self):
        cache = TtlCache(ttl=10)
        cache.set("k", [1, 2])
        assert cache.get("k") == [1, 2]

    def test_missing_key(self):
        assert TtlCache().get("missing") is None

    def test_expiry_on_read(self):
        clock = FakeClock()
        cache = TtlCache(ttl=10, clock=clock)
        cache.set("k", "v")
        clock.advance(10)
        assert cache.get("k") == "v"
        clock.advance(0.5)
        assert cache.get("k") is None
        assert cache.stats().size == 0

    def test_stats_sweeps_expired(self):
        clock = FakeClock()
        cache = TtlCache(ttl=10, clock=clock)
        cache.set("old", 1)
        clock.advance(6)
        cache.set("new", 2)
        clock.advance(6)
        stats = cache.stats()
        assert stats.size == 1
        assert stats.keys == ["new"]
        assert cache.size() == 1

    def test_hit_count(self):
        cache = TtlCache(ttl=10)
        cache.set("k", "v")
        cache.get("k")
        cache.get("k")
        cache.get("other")
        assert cache.stats().total_hits == 2

    def test_set_resets_entry(self):
        cache = TtlCache(ttl=10)
        cache.set("k", "v1")
        cache.get("k")
        cache.set("k", "v2")
        assert cache.get("k") == "v2"
        assert cache.stats().total_hits == 1

    def test_clear_and_delete(self):
        cache = TtlCache(ttl=10)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.delete("a")
        assert cache.get("a") is None
        cache.clear()
        assert cache.size() == 0


class TestCollectionCache:
    def test_namespace_ttls(self):
        cache = CollectionCache(ttl=100)
        assert cache.requests.ttl == 100
        assert cache.environments.ttl == 100
        assert cache.discovery.ttl == 200
        assert cache.files.ttl == 50

    def test_namespaces_are_independent(self):
        cache = CollectionCache()
        cache.store(cache.requests, "/c", ["r"])
        assert cache.lookup(cache.environments, "/c") is None
        assert cache.lookup(cache.requests, "/c") == ["r"]

    def test_disabled_cache_never_hits(self):
        cache = CollectionCache(enabled=False)
        cache.store(cache.files, "/f", "text")
        assert cache.lookup(cache.files, "/f") is None
        assert cache.files.size() == 0

    def test_discovery_outlives_file_content(self):
        clock = FakeClock()
        cache = CollectionCache(ttl=10, clock=clock)
        cache.store(cache.discovery, "/root", ["/root/a"])
        cache.store(cache.files, "/root/a/x.bru", "text")
        clock.advance(8)
        assert cache.lookup(cache.files, "/root/a/x.bru") is None
        assert cache.lookup(cache.discovery, "/root") == ["/root/a"]

    def test_invalidate(self):
        cache = CollectionCache()
        cache.store(cache.requests, "/c", [])
        cache.store(cache.environments, "/c", [])
        cache.store(cache.discovery, "/c", [])
        cache.invalidate("/c")
        assert cache.lookup(cache.requests, "/c") is None
        assert cache.lookup(cache.environments, "/c") is None
        assert cache.lookup(cache.discovery, "/c") == []

    def test_stats(self):
        cache = CollectionCache()
        cache.store(cache.requests, "/c", [])
        cache.lookup(cache.requests, "/c")
        stats = cache.stats()
        assert set(stats) == {"requests", "discovery", "environments", "files"}
        assert stats["requests"].size == 1
        assert stats["requests"].total_hits == 1
        assert stats["files"].keys == []
