"""
refpack Build Subsystem

This package turns an upstream nightly release into a repacked archive with
clear separation between fetching, version resolution, transcoding and
delivery, all driven by one pipeline that any front-end can call.

Core Components:
- interfaces: Data types passed between stages and the FrontEnd contract
- cache: On-disk catalog cache with entity tags
- github_source: Conditional GitHub release catalog fetcher
- version: Tag parsing, de-duplication, ordering and artifact naming
- transcode: Streaming zip-to-zip rewrite with filtering and re-rooting
- files: Atomic writes and artifact placement
- orchestrator: Build pipeline coordination
"""

from .cache import CatalogCache
from .files import place
from .github_source import ReleaseCatalogFetcher
from .interfaces import (
    BuildPlan,
    BuildResult,
    BuildStatus,
    FilterRule,
    FrontEnd,
    Release,
    TranscodeJob,
    TranscodeSummary,
    VersionGroup,
)
from .orchestrator import ReleaseBuilder, summarize_archive
from .transcode import ArchiveTranscoder, transcode_archive
from .version import artifact_name, resolve_versions

__all__ = [
    # Interfaces
    "Release",
    "VersionGroup",
    "FilterRule",
    "TranscodeJob",
    "TranscodeSummary",
    "BuildPlan",
    "BuildResult",
    "BuildStatus",
    "FrontEnd",
    # Catalog
    "CatalogCache",
    "ReleaseCatalogFetcher",
    # Versions
    "resolve_versions",
    "artifact_name",
    # Transcoding
    "ArchiveTranscoder",
    "transcode_archive",
    # Orchestration
    "ReleaseBuilder",
    "summarize_archive",
    # Files
    "place",
]
