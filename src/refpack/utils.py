# src/refpack/utils.py
import hashlib
import importlib.metadata
import os
import time
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry  # type: ignore

from refpack.constants import (
    DEFAULT_BACKOFF_FACTOR,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CONNECT_RETRIES,
    DEFAULT_REQUEST_TIMEOUT,
    GITHUB_API_TIMEOUT,
    GITHUB_API_VERSION,
    RETRY_STATUS_FORCELIST,
)
from refpack.exceptions import HTTPError, NetworkError
from refpack.log_utils import logger

# Cache for the User-Agent string to avoid repeated metadata lookups
_USER_AGENT_CACHE = None


def get_user_agent() -> str:
    """
    Get the User-Agent string used for HTTP requests.

    Returns:
        The string `refpack/{version}`, where `{version}` is the installed package version or `unknown` if the version cannot be determined.
    """
    global _USER_AGENT_CACHE

    if _USER_AGENT_CACHE is None:
        try:
            app_version = importlib.metadata.version("refpack")
        except importlib.metadata.PackageNotFoundError:
            app_version = "unknown"

        _USER_AGENT_CACHE = f"refpack/{app_version}"

    return _USER_AGENT_CACHE


def get_effective_github_token(github_token: Optional[str]) -> Optional[str]:
    """Return the token with surrounding whitespace removed, or None when blank."""
    candidate = (github_token or "").strip()
    return candidate or None


def make_github_api_request(
    url: str,
    github_token: Optional[str] = None,
    params: Optional[Dict[str, Any]] = None,
    timeout: Optional[float] = None,
    etag: Optional[str] = None,
) -> requests.Response:
    """
    Perform a GitHub API GET request, optionally authenticated and conditional.

    Unlike a plain `raise_for_status` call site, the response is returned for
    every status so callers can tell 304 (not modified) from other outcomes.

    Parameters:
        url (str): GitHub API URL to request.
        github_token (Optional[str]): Token to send as Authorization; trimmed before use.
        params (Optional[Dict[str, Any]]): Query parameters to include in the request.
        timeout (Optional[float]): Request timeout in seconds; the module default is used when omitted.
        etag (Optional[str]): Previously received entity tag, sent as If-None-Match.

    Returns:
        requests.Response: The HTTP response returned by GitHub.

    Raises:
        requests.Timeout: When the request exceeds `timeout`.
        requests.RequestException: For lower-level network or request errors.
    """
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
        "User-Agent": get_user_agent(),
    }

    effective_token = get_effective_github_token(github_token)
    if effective_token:
        headers["Authorization"] = f"token {effective_token}"
        logger.debug("Using GitHub token for API authentication")

    if etag:
        headers["If-None-Match"] = etag

    actual_timeout = timeout or GITHUB_API_TIMEOUT
    logger.debug("Making GitHub API request: %s", url)
    response = requests.get(url, timeout=actual_timeout, headers=headers, params=params)
    logger.debug("GitHub API responded %s for %s", response.status_code, url)

    remaining = response.headers.get("X-RateLimit-Remaining")
    if remaining is not None and str(remaining).isdigit():
        logger.debug("GitHub API rate-limit remaining: %s", remaining)
        if int(remaining) <= 10:
            logger.warning(
                "GitHub API rate limit running low: %s requests remaining", remaining
            )

    return response


def asset_download_url(template: str, tag: str, asset_name: str) -> str:
    """Format the release asset download URL for `tag`."""
    return template.format(tag=tag, asset=asset_name)


def build_retry_session() -> requests.Session:
    """
    Create a requests Session that retries idempotent requests on transient failures.
    """
    session = requests.Session()
    retry_strategy: Retry = Retry(
        total=DEFAULT_CONNECT_RETRIES,
        connect=DEFAULT_CONNECT_RETRIES,
        read=DEFAULT_CONNECT_RETRIES,
        status=DEFAULT_CONNECT_RETRIES,
        backoff_factor=DEFAULT_BACKOFF_FACTOR,
        status_forcelist=list(RETRY_STATUS_FORCELIST),
        allowed_methods=frozenset({"GET", "HEAD"}),
        raise_on_status=False,
        respect_retry_after_header=True,
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def download_release_asset(
    url: str,
    download_path: str,
    on_progress=None,
    timeout: Optional[float] = None,
) -> int:
    """
    Stream a release asset to disk and atomically move it into place.

    The body is written to a temporary sibling file which replaces
    `download_path` only after the last chunk has been written. The temporary
    file is removed on any failure.

    Parameters:
        url (str): The HTTP(S) URL of the asset.
        download_path (str): Final filesystem path for the asset.
        on_progress (Optional[Callable[[float], None]]): Receives downloaded/total fractions when the server sends a Content-Length.
        timeout (Optional[float]): Per-request timeout in seconds.

    Returns:
        int: Number of bytes written.

    Raises:
        HTTPError: If the server answers with a non-success status.
        NetworkError: If the transfer fails at the transport level or the file cannot be written.
    """
    temp_path = f"{download_path}.tmp.{os.getpid()}.{int(time.time() * 1000)}"
    session = build_retry_session()
    response = None
    downloaded_bytes = 0
    try:
        logger.debug("Downloading %s to %s", url, temp_path)
        start_time = time.time()
        response = session.get(
            url, stream=True, timeout=timeout or DEFAULT_REQUEST_TIMEOUT
        )
        if response.status_code != 200:
            raise HTTPError(
                f"Download failed: HTTP {response.status_code}",
                status_code=response.status_code,
                url=url,
            )

        total = int(response.headers.get("Content-Length") or 0)
        parent_dir = os.path.dirname(download_path)
        if parent_dir:
            os.makedirs(parent_dir, exist_ok=True)
        with open(temp_path, "wb") as file:
            for chunk in response.iter_content(chunk_size=DEFAULT_CHUNK_SIZE):
                if not chunk:
                    continue
                file.write(chunk)
                downloaded_bytes += len(chunk)
                if on_progress is not None and total > 0:
                    on_progress(min(downloaded_bytes / total, 1.0))

        os.replace(temp_path, download_path)
        logger.debug(
            "Downloaded %d bytes from %s in %.2fs",
            downloaded_bytes,
            url,
            time.time() - start_time,
        )
        return downloaded_bytes
    except requests.RequestException as e:
        raise NetworkError("Error downloading release asset", url=url, details=str(e)) from e
    except OSError as e:
        raise NetworkError(
            "Error saving release asset", url=url, details=f"{download_path}: {e}"
        ) from e
    finally:
        if response is not None:
            response.close()
        session.close()
        if os.path.exists(temp_path):
            try:
                os.remove(temp_path)
            except OSError as e_rm:
                logger.debug("Error removing temp file %s: %s", temp_path, e_rm)


def calculate_sha256(file_path: str) -> Optional[str]:
    """
    Compute the SHA-256 hex digest of a file.

    Streams the file in chunks and returns the lowercase hex digest, or None if
    the file cannot be opened or read.
    """
    try:
        sha256_hash = hashlib.sha256()
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(DEFAULT_CHUNK_SIZE), b""):
                sha256_hash.update(chunk)
        return sha256_hash.hexdigest()
    except OSError as e:
        logger.debug("Error calculating SHA-256 for %s: %s", file_path, e)
        return None
