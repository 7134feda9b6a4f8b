"""
Catalog Cache for the refpack Build Subsystem

This module persists the last release catalog body fetched in full together
with its entity tag, so the next fetch can be a conditional request and a
failing API can fall back to stale-but-available data.
"""

import os
from typing import Optional

from refpack.constants import CACHE_DIR_NAME, CATALOG_BODY_FILE, CATALOG_ETAG_FILE
from refpack.log_utils import logger

from .files import atomic_write_bytes, atomic_write_text, remove_file
from .interfaces import CacheEntry, Pathish


class CatalogCache:
    """
    Two-file cache of the release catalog: the raw JSON body and its ETag.

    The body is written before the token. A crash between the two writes leaves
    a body with an outdated token, which only costs one full fetch next time.
    """

    def __init__(self, cache_dir: Optional[Pathish] = None):
        """
        Initialize the cache with a directory.

        Parameters:
            cache_dir (Optional[Pathish]): Directory for the cache files. If None, the platform user cache directory for refpack is used and created if missing.
        """
        self.cache_dir = os.fspath(cache_dir) if cache_dir else self._get_default_cache_dir()
        self._ensure_cache_dir_exists()

    @property
    def body_path(self) -> str:
        return os.path.join(self.cache_dir, CATALOG_BODY_FILE)

    @property
    def etag_path(self) -> str:
        return os.path.join(self.cache_dir, CATALOG_ETAG_FILE)

    def _get_default_cache_dir(self) -> str:
        import platformdirs

        return platformdirs.user_cache_dir(CACHE_DIR_NAME)

    def _ensure_cache_dir_exists(self) -> None:
        """
        Ensure the cache directory exists, creating it if necessary.

        Raises:
            OSError: If the directory cannot be created or is otherwise inaccessible.
        """
        try:
            os.makedirs(self.cache_dir, exist_ok=True)
        except OSError as e:
            logger.error("Could not create cache directory %s: %s", self.cache_dir, e)
            raise

    def read_etag(self) -> Optional[str]:
        """
        Return the stored entity tag, or None when absent, blank or unreadable.
        """
        try:
            with open(self.etag_path, "r", encoding="utf-8") as f:
                etag = f.read().strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.debug("Could not read cached ETag %s: %s", self.etag_path, e)
            return None
        return etag or None

    def read(self) -> Optional[CacheEntry]:
        """
        Return the cached catalog body with its entity tag.

        Returns:
            Optional[CacheEntry]: The cache entry, or None if no body has been stored or it cannot be read.
        """
        try:
            with open(self.body_path, "rb") as f:
                body = f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error("Could not read cached catalog %s: %s", self.body_path, e)
            return None
        return CacheEntry(body=body, etag=self.read_etag())

    def write(self, body: bytes, etag: Optional[str]) -> bool:
        """
        Persist a freshly fetched catalog body and its entity tag.

        A missing `etag` removes any stored token so it can never be paired with
        a body it was not issued for.

        Returns:
            bool: `True` if both the body and the token were stored, `False` otherwise.
        """
        if not atomic_write_bytes(self.body_path, body):
            return False

        if etag:
            stored = atomic_write_text(self.etag_path, etag)
        else:
            stored = remove_file(self.etag_path)

        if stored:
            logger.debug("Cached catalog body (%d bytes) with ETag %s", len(body), etag)
        return stored

    def clear(self) -> bool:
        """
        Delete the cached body and token.

        Returns:
            bool: `True` if both files are gone afterwards, `False` if any removal failed.
        """
        body_removed = remove_file(self.body_path)
        etag_removed = remove_file(self.etag_path)
        return body_removed and etag_removed
