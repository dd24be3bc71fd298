"""Tests for cache stores."""

from unittest.mock import Mock, patch

import pytest

from pollution_report.utils.cache import FileCache, MemoryCache, create_cache


class TestMemoryCache:
    """Tests for the in-memory store."""

    def test_set_get_delete(self, cache):
        cache.set("k", {"a": 1}, ttl=60)
        assert cache.get("k") == {"a": 1}
        cache.delete("k")
        assert cache.get("k") is None

    def test_entries_expire_by_their_own_ttl(self):
        """Test per-entry TTL."""
        timer = Mock(return_value=100.0)
        cache = MemoryCache(timer=timer)
        cache.set("short", "s", ttl=10)
        cache.set("long", "l", ttl=1000)
        timer.return_value = 200.0
        assert cache.get("short") is None
        assert cache.get("long") == "l"

    def test_fetch_computes_once(self, cache):
        compute = Mock(return_value=[1, 2])
        assert cache.fetch("k", compute, ttl=60) == [1, 2]
        assert cache.fetch("k", compute, ttl=60) == [1, 2]
        compute.assert_called_once()

    def test_fetch_does_not_store_none(self, cache):
        compute = Mock(return_value=None)
        assert cache.fetch("k", compute) is None
        assert cache.fetch("k", compute) is None
        assert compute.call_count == 2


class TestFileCache:
    """Tests for the file store."""

    def test_round_trip(self, tmp_path):
        cache = FileCache(cache_dir=str(tmp_path / "c"))
        cache.set("pollu_api:auth", {"token": "abc"}, ttl=60)
        assert cache.get("pollu_api:auth") == {"token": "abc"}
        assert not list((tmp_path / "c").glob("*.tmp"))

    def test_shared_between_instances(self, tmp_path):
        """Test two processes' worth of caches see the same entries."""
        FileCache(cache_dir=str(tmp_path)).set("k", [1.0, 2.0], ttl=60)
        assert FileCache(cache_dir=str(tmp_path)).get("k") == [1.0, 2.0]

    def test_expired_entry_is_removed(self, tmp_path):
        cache = FileCache(cache_dir=str(tmp_path))
        with patch("pollution_report.utils.cache.time.time", return_value=1000.0):
            cache.set("k", "v", ttl=10)
        with patch("pollution_report.utils.cache.time.time", return_value=1011.0):
            assert cache.get("k") is None
        assert not cache._get_cache_path("k").exists()

    def test_corrupt_file_is_a_miss(self, tmp_path):
        cache = FileCache(cache_dir=str(tmp_path))
        cache._get_cache_path("k").write_bytes(b"not a pickle")
        assert cache.get("k") is None

    def test_delete_missing_key(self, tmp_path):
        FileCache(cache_dir=str(tmp_path)).delete("nothing")

    def test_long_key_is_stored(self, tmp_path):
        """Test keys far beyond the file name limit still work."""
        cache = FileCache(cache_dir=str(tmp_path))
        key = "wiki:action_summary:" + "a" * 300

        assert cache.get(key) is None
        cache.set(key, "descriptor", ttl=60)
        assert cache.get(key) == "descriptor"

    def test_similar_keys_do_not_collide(self, tmp_path):
        cache = FileCache(cache_dir=str(tmp_path))
        cache.set("wiki:action_summary:o'neil", "apostrophe", ttl=60)

        assert cache.get("wiki:action_summary:o neil") is None
        cache.set("wiki:action_summary:o neil", "space", ttl=60)
        assert cache.get("wiki:action_summary:o'neil") == "apostrophe"
        assert cache.get("wiki:action_summary:o neil") == "space"

    def test_failed_write_leaves_no_temp_file(self, tmp_path):
        cache = FileCache(cache_dir=str(tmp_path))
        with patch("pollution_report.utils.cache.pickle.dump", side_effect=TypeError("unpicklable")):
            cache.set("k", object(), ttl=60)

        assert list(tmp_path.iterdir()) == []
        assert cache.get("k") is None


class TestCreateCache:
    """Tests for backend selection."""

    def test_backends(self):
        assert isinstance(create_cache("memory"), MemoryCache)
        assert isinstance(create_cache("file"), FileCache)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_cache("redis")
