"""
Core Interfaces for the refpack Build Subsystem

This module defines the data structures handed between the catalog fetcher,
version resolver, transcoder and delivery step, plus the FrontEnd contract
that console (and any other) shells implement to drive the pipeline.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

Pathish = Union[str, Path]
ProgressCallback = Callable[[float], None]


@dataclass(frozen=True)
class Release:
    """Represents one published upstream release."""

    tag_name: str
    """The release tag (e.g., 'nightly-1050-def456abcdef')"""

    published_at: datetime
    """Timezone-aware UTC timestamp of publication"""


@dataclass(frozen=True)
class VersionGroup:
    """The most recently published release for one logical version number."""

    number: str
    """Numeric version captured from the tag (4+ digits, kept as a string)"""

    build: str
    """Alphanumeric build identifier captured from the tag"""

    release: Release
    """The release that represents this version number"""

    @property
    def tag_name(self) -> str:
        return self.release.tag_name

    @property
    def published_at(self) -> datetime:
        return self.release.published_at


@dataclass(frozen=True)
class CacheEntry:
    """Last catalog body fetched in full, with the entity tag that came with it."""

    body: bytes
    etag: Optional[str] = None


@dataclass(frozen=True)
class CatalogFetchResult:
    """Outcome of one catalog fetch."""

    releases: List[Dict[str, Any]]
    """Raw release objects as returned by the GitHub API"""

    etag: Optional[str]
    """Entity tag to send on the next conditional request"""

    from_cache: bool
    """Whether the releases came from the on-disk cache rather than a fresh body"""


@dataclass(frozen=True)
class FilterRule:
    """Case-sensitive substring exclusion rules for archive entry paths."""

    patterns: Tuple[str, ...] = ()

    def matches(self, name: str) -> bool:
        """
        Return True when `name` contains any pattern as a substring.

        Empty patterns are ignored so that a blank rule never drops every entry.
        """
        return any(pattern and pattern in name for pattern in self.patterns)


@dataclass(frozen=True)
class TranscodeJob:
    """A single archive rewrite request."""

    source_path: Pathish
    dest_path: Pathish
    rules: FilterRule
    root_prefix: str
    on_progress: Optional[ProgressCallback] = None


@dataclass
class TranscodeSummary:
    """Counts and entry names produced by a finished transcode."""

    dest_path: Pathish
    entries_total: int = 0
    """Entries present in the source archive"""

    entries_written: int = 0
    """Source entries copied into the destination (the root entry is not counted)"""

    entries_skipped: int = 0
    """Source entries dropped by the filter rules"""

    entry_names: List[str] = field(default_factory=list)
    """Destination entry names in write order, root directory first"""


class BuildStatus(Enum):
    """How a build run ended."""

    BUILT = "built"
    DRY_RUN = "dry_run"
    KEPT_EXISTING = "kept_existing"


@dataclass(frozen=True)
class BuildPlan:
    """Everything needed to produce one artifact for a chosen version."""

    version: VersionGroup
    artifact_name: str
    asset_url: str
    output_path: Path


@dataclass
class BuildResult:
    """Result of running the build pipeline for one plan."""

    status: BuildStatus
    plan: BuildPlan
    summary: Optional[TranscodeSummary] = None
    delivered_to: Optional[Path] = None

    @property
    def artifact_path(self) -> Optional[Path]:
        """Path of the artifact on disk, or None for a dry run."""
        if self.status is BuildStatus.DRY_RUN:
            return None
        return self.plan.output_path


class FrontEnd(ABC):
    """
    Input and presentation surface driving ReleaseBuilder.run().

    Implementations only gather choices and render output; fetching,
    resolution, transcoding and delivery stay in the core.
    """

    @abstractmethod
    def choose_max_list(self, default: int) -> int:
        """Return how many versions to present."""

    @abstractmethod
    def choose_version(self, versions: List[VersionGroup]) -> VersionGroup:
        """Return the version to build from the (already limited) list."""

    @abstractmethod
    def confirm_rebuild(self, artifact_name: str) -> bool:
        """Return True to rebuild an artifact that already exists."""

    @abstractmethod
    def confirm_delivery(self, artifact_name: str, dest_dir: Path) -> bool:
        """Return True to copy the artifact into `dest_dir`."""

    def status(self, message: str) -> None:
        """Report a pipeline status line."""

    def progress(self, task: str, fraction: float) -> None:
        """Report progress for `task` as a value between 0.0 and 1.0."""
