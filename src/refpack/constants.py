"""
Constants and configuration values for refpack.

This module contains all hardcoded values, URLs, timeouts, and other constants
used throughout the application.
"""

# GitHub API URLs
GITHUB_API_BASE = "https://api.github.com/repos"
GITHUB_DOWNLOAD_BASE = "https://github.com"
UPSTREAM_REPO = "praydog/REFramework-nightly"
UPSTREAM_RELEASES_URL = f"{GITHUB_API_BASE}/{UPSTREAM_REPO}/releases"
UPSTREAM_ASSET_URL_TEMPLATE = (
    f"{GITHUB_DOWNLOAD_BASE}/{UPSTREAM_REPO}/releases/download/{{tag}}/{{asset}}"
)
GITHUB_API_VERSION = "2022-11-28"

# Network timeouts (in seconds)
GITHUB_API_TIMEOUT = 30
GITHUB_MAX_PER_PAGE = 100

# Download and retry settings
DEFAULT_CONNECT_RETRIES = 5
DEFAULT_BACKOFF_FACTOR = 0.3
DEFAULT_REQUEST_TIMEOUT = 30
DEFAULT_CHUNK_SIZE = 64 * 1024
RETRY_STATUS_FORCELIST = (408, 429, 500, 502, 503, 504)

# Release selection
NIGHTLY_TAG_PATTERN = r"nightly-([0-9]{4,})-([A-Za-z0-9]+)"
SHORT_BUILD_LENGTH = 6
DEFAULT_MAX_LIST = 20
MONTH_ABBREVIATIONS = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)
VERSION_LABEL_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Artifact layout
PRODUCT_NAME = "REFramework"
SOURCE_ASSET_NAME = "MHWILDS.zip"
ARCHIVE_ROOT_PREFIX = "MHWILDS/"
ZIP_EXTENSION = ".zip"

# Entries whose path contains any of these substrings are dropped (case-sensitive)
DEFAULT_FILTER_RULES = (
    "RE",
    "vr",
    "xr",
    "VR",
    "XR",
    "DELETE",
    "OpenVR",
    "OpenXR",
)

# Catalog cache
CACHE_DIR_NAME = "refpack"
CATALOG_BODY_FILE = "releases.json"
CATALOG_ETAG_FILE = "etag"

# Permission bits zipfile uses for directory entries
ZIP_DIRECTORY_ATTR = (0o40775 << 16) | 0x10

# Logging configuration
LOGGER_NAME = "refpack"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
INFO_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s: %(message)s"
LOG_FILE_NAME = "refpack.log"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
LOG_FILE_BACKUP_COUNT = 5

# Configuration file names
CONFIG_FILE_NAME = "refpack.yaml"

# Environment variable names (read by front-ends only)
LOG_LEVEL_ENV_VAR = "REFPACK_LOG_LEVEL"
MAX_LIST_ENV_VAR = "MAX_LIST"
DEV_PREFIX_ENV_VAR = "DEV_PREFIX"
SKIP_DOWNLOAD_ENV_VAR = "SKIP_DOWNLOAD"
SILENT_ENV_VAR = "SILENT"
GITHUB_TOKEN_ENV_VAR = "GITHUB_TOKEN"

# Exit codes
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130
