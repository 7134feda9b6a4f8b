"""
Tests for the release catalog cache.
"""

import os

import platformdirs
import pytest

from refpack.download.cache import CatalogCache
from refpack.download.interfaces import CacheEntry


@pytest.fixture
def cache(tmp_path):
    return CatalogCache(tmp_path / "cache")


class TestCatalogCache:
    def test_creates_directory(self, tmp_path):
        target = tmp_path / "nested" / "cache"
        CatalogCache(target)
        assert target.is_dir()

    def test_default_directory_uses_platformdirs(self):
        cache = CatalogCache()
        assert cache.cache_dir == platformdirs.user_cache_dir("refpack")

    def test_empty_cache(self, cache):
        assert cache.read() is None
        assert cache.read_etag() is None

    def test_write_and_read(self, cache):
        assert cache.write(b'[{"tag_name": "x"}]', 'W/"abc"') is True

        entry = cache.read()
        assert entry == CacheEntry(body=b'[{"tag_name": "x"}]', etag='W/"abc"')
        assert cache.read_etag() == 'W/"abc"'

    def test_write_without_etag_removes_stale_token(self, cache):
        cache.write(b"[]", '"old"')
        assert cache.read_etag() == '"old"'

        assert cache.write(b"[1]", None) is True
        assert cache.read_etag() is None
        assert not os.path.exists(cache.etag_path)
        assert cache.read().body == b"[1]"

    def test_blank_etag_file_reads_as_none(self, cache):
        cache.write(b"[]", '"tok"')
        with open(cache.etag_path, "w", encoding="utf-8") as f:
            f.write("   \n")
        assert cache.read_etag() is None

    def test_body_without_etag(self, cache):
        with open(cache.body_path, "wb") as f:
            f.write(b"[]")
        entry = cache.read()
        assert entry.body == b"[]"
        assert entry.etag is None

    def test_body_write_failure_keeps_old_token(self, cache, mocker):
        cache.write(b"[]", '"old"')
        mocker.patch("refpack.download.cache.atomic_write_bytes", return_value=False)

        assert cache.write(b"[1]", '"new"') is False
        assert cache.read_etag() == '"old"'
        assert cache.read().body == b"[]"

    def test_clear(self, cache):
        cache.write(b"[]", '"tok"')
        assert cache.clear() is True
        assert cache.read() is None
        assert cache.read_etag() is None

    def test_clear_when_empty(self, cache):
        assert cache.clear() is True
