"""
GitHub Release Catalog Source

This module fetches the release list for the upstream repository with
ETag-conditional requests, keeps the last full body in a CatalogCache, and
parses raw release objects into Release values.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import requests  # type: ignore[import-untyped]

from refpack.constants import GITHUB_API_TIMEOUT, GITHUB_MAX_PER_PAGE
from refpack.exceptions import CacheUnavailable, FetchFailed
from refpack.log_utils import logger
from refpack.utils import make_github_api_request

from .cache import CatalogCache
from .interfaces import CatalogFetchResult, Release


def parse_iso_datetime_utc(value: Any) -> Optional[datetime]:
    """
    Parse an ISO 8601 timestamp and normalize it to UTC.

    Parameters:
        value (Any): An ISO 8601 datetime representation (commonly a string). Falsey values or unparsable values are treated as absent.

    Returns:
        A timezone-aware datetime in UTC if parsing succeeds, `None` otherwise.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def release_from_github_data(release_data: Dict[str, Any]) -> Optional[Release]:
    """
    Create a Release from one GitHub API release object.

    Returns:
        Optional[Release]: The parsed release, or None when `tag_name` is missing/blank or `published_at` is missing/unparsable.
    """
    tag_name = release_data.get("tag_name")
    if not isinstance(tag_name, str) or not tag_name.strip():
        logger.warning("Skipping release with missing or invalid tag_name")
        return None

    published_at = parse_iso_datetime_utc(release_data.get("published_at"))
    if published_at is None:
        logger.warning("Skipping release %s with invalid published_at", tag_name)
        return None

    return Release(tag_name=tag_name, published_at=published_at)


def parse_releases(releases_data: Iterable[Any]) -> List[Release]:
    """Parse raw release objects, skipping entries that are not well-formed. Release instances pass through."""
    releases: List[Release] = []
    for release_data in releases_data:
        if isinstance(release_data, Release):
            releases.append(release_data)
            continue
        if not isinstance(release_data, dict):
            logger.warning(
                "Skipping malformed release entry: expected dict, got %s",
                type(release_data).__name__,
            )
            continue
        release = release_from_github_data(release_data)
        if release is not None:
            releases.append(release)
    return releases


class ReleaseCatalogFetcher:
    """
    Fetches the release catalog with conditional caching.

    Outcomes of one fetch:
    1. 304 Not Modified: the cached body is returned verbatim.
    2. 200 OK: the body is stored with its ETag and returned.
    3. Anything else (or a transport error): the cached body is returned if
       one exists, otherwise FetchFailed is raised.

    Usage:
        fetcher = ReleaseCatalogFetcher(
            releases_url="https://api.github.com/repos/owner/repo/releases",
            cache=CatalogCache(),
        )
        result = fetcher.fetch()
    """

    def __init__(
        self,
        releases_url: str,
        cache: CatalogCache,
        github_token: Optional[str] = None,
        timeout: float = GITHUB_API_TIMEOUT,
        per_page: int = GITHUB_MAX_PER_PAGE,
    ):
        """
        Initialize the fetcher.

        Parameters:
            releases_url (str): The GitHub API URL listing releases.
            cache (CatalogCache): Store for the last full body and its ETag.
            github_token (Optional[str]): Optional token for authenticated requests.
            timeout (float): Wall-clock timeout for the request in seconds.
            per_page (int): Number of releases requested in one page.
        """
        self.releases_url = releases_url
        self.cache = cache
        self.github_token = github_token
        self.timeout = timeout
        self.per_page = per_page

    def fetch(self, etag: Optional[str] = None) -> CatalogFetchResult:
        """
        Retrieve the raw release list, revalidating against the cache.

        Parameters:
            etag (Optional[str]): Entity tag to revalidate with. When None, the token stored in the cache is used.

        Returns:
            CatalogFetchResult: The raw releases, the token to use next time, and whether they came from the cache.

        Raises:
            CacheUnavailable: The server answered 304 but nothing is cached.
            FetchFailed: The request failed (bad status, timeout, transport error or malformed body) and no cache can stand in.
        """
        if etag is None:
            etag = self.cache.read_etag()

        try:
            response = make_github_api_request(
                self.releases_url,
                github_token=self.github_token,
                params={"per_page": self.per_page},
                timeout=self.timeout,
                etag=etag,
            )
        except requests.Timeout as e:
            raise FetchFailed(
                "Timed out fetching releases",
                timed_out=True,
                url=self.releases_url,
                details=str(e),
            ) from e
        except requests.RequestException as e:
            logger.warning("Error fetching releases: %s", e)
            cached = self._fallback_to_cache(etag)
            if cached is not None:
                return cached
            raise FetchFailed(
                "Error fetching releases and no cache available",
                url=self.releases_url,
                details=str(e),
            ) from e

        if response.status_code == 304:
            return self._not_modified(etag)

        if response.status_code == 200:
            return self._store_fresh(response)

        logger.warning("API returned %s", response.status_code)
        cached = self._fallback_to_cache(etag)
        if cached is not None:
            return cached
        raise FetchFailed(
            f"API returned status {response.status_code} and no cache available",
            status=response.status_code,
            url=self.releases_url,
        )

    def _not_modified(self, etag: Optional[str]) -> CatalogFetchResult:
        entry = self.cache.read()
        if entry is None:
            raise CacheUnavailable(
                "Server reported the catalog unchanged but no cached copy exists",
                details=self.cache.body_path,
            )
        releases = self._decode(entry.body, status=304)
        logger.info("Using cached release data.")
        return CatalogFetchResult(
            releases=releases, etag=entry.etag or etag, from_cache=True
        )

    def _store_fresh(self, response: requests.Response) -> CatalogFetchResult:
        body = response.content
        releases = self._decode(body, status=200)
        new_etag = response.headers.get("ETag")
        if not self.cache.write(body, new_etag):
            logger.warning(
                "Could not update the release cache at %s; the next run will refetch.",
                self.cache.body_path,
            )
        logger.info("Fetched fresh release data from GitHub.")
        return CatalogFetchResult(releases=releases, etag=new_etag, from_cache=False)

    def _fallback_to_cache(self, etag: Optional[str]) -> Optional[CatalogFetchResult]:
        entry = self.cache.read()
        if entry is None:
            return None
        try:
            releases = self._decode(entry.body, status=None)
        except FetchFailed as e:
            logger.warning("Ignoring unusable cached catalog: %s", e)
            return None
        logger.info("Using cached release data after failed request.")
        return CatalogFetchResult(
            releases=releases, etag=entry.etag or etag, from_cache=True
        )

    def _decode(self, body: bytes, status: Optional[int]) -> List[Dict[str, Any]]:
        try:
            data = json.loads(body)
        except (ValueError, UnicodeDecodeError) as e:
            raise FetchFailed(
                "Release catalog is not valid JSON",
                status=status,
                url=self.releases_url,
                details=str(e),
            ) from e
        if not isinstance(data, list):
            raise FetchFailed(
                "Release catalog is not a JSON array",
                status=status,
                url=self.releases_url,
                details=f"got {type(data).__name__}",
            )
        return data
