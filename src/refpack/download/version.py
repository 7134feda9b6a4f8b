"""
Version Resolution for the refpack Build Subsystem

This module turns the raw release catalog into the ordered list of
selectable nightly versions and derives artifact names from a chosen release.
"""

import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from refpack.constants import (
    MONTH_ABBREVIATIONS,
    NIGHTLY_TAG_PATTERN,
    SHORT_BUILD_LENGTH,
    VERSION_LABEL_DATE_FORMAT,
    ZIP_EXTENSION,
)
from refpack.exceptions import NoQualifyingReleases, SelectionError
from refpack.log_utils import logger

from .github_source import parse_releases
from .interfaces import Release, VersionGroup

# Matched against the whole tag, ASCII digits only
TAG_RX = re.compile(NIGHTLY_TAG_PATTERN, re.ASCII)

ReleaseLike = Union[Release, Dict[str, Any]]


def parse_tag(tag: Optional[str]) -> Optional[Tuple[str, str]]:
    """
    Split a nightly tag into its numeric version and build identifier.

    Args:
        tag: A release tag such as "nightly-1050-def456abcdef".

    Returns:
        A (number, build) tuple, or None when the tag does not match
        `nightly-<4+ digits>-<alphanumerics>` exactly.
    """
    if not tag:
        return None
    match = TAG_RX.fullmatch(tag)
    if not match:
        return None
    return match.group(1), match.group(2)


def _is_newer(candidate: Release, current: Release) -> bool:
    """Latest publish time wins; equal times go to the smaller tag."""
    if candidate.published_at != current.published_at:
        return candidate.published_at > current.published_at
    return candidate.tag_name < current.tag_name


def resolve_versions(
    releases: Iterable[ReleaseLike], numeric_prefix: Optional[str] = None
) -> List[VersionGroup]:
    """
    Build the presentation list of nightly versions.

    Releases whose tag does not match the nightly pattern are dropped. When
    `numeric_prefix` is set, only version numbers starting with it (as a
    string) are kept. Each version number keeps the release published last;
    identical publish times keep the lexicographically smallest tag. The
    result is ordered newest first.

    Args:
        releases: Release objects or raw GitHub release dicts.
        numeric_prefix: Optional string prefix the version number must start with.

    Returns:
        The ordered list of version groups.

    Raises:
        NoQualifyingReleases: If nothing survives the filtering.
    """
    chosen: Dict[str, Tuple[str, Release]] = {}
    for release in parse_releases(releases):
        parsed = parse_tag(release.tag_name)
        if parsed is None:
            continue
        number, build = parsed
        if numeric_prefix and not number.startswith(numeric_prefix):
            continue
        current = chosen.get(number)
        if current is None or _is_newer(release, current[1]):
            chosen[number] = (build, release)

    if not chosen:
        raise NoQualifyingReleases(prefix=numeric_prefix or None)

    groups = [
        VersionGroup(number=number, build=build, release=release)
        for number, (build, release) in chosen.items()
    ]
    # Tag order first so the stable sort breaks publish-time ties deterministically
    groups.sort(key=lambda g: g.tag_name)
    groups.sort(key=lambda g: g.published_at, reverse=True)
    logger.debug("Resolved %d nightly version(s)", len(groups))
    return groups


def limit_versions(groups: List[VersionGroup], max_list: int) -> List[VersionGroup]:
    """Return at most `max_list` leading groups; values below 1 mean no limit."""
    if max_list < 1:
        return list(groups)
    return list(groups[:max_list])


def select_version(groups: List[VersionGroup], index: int) -> VersionGroup:
    """
    Return the group at zero-based `index`.

    Raises:
        SelectionError: If `index` is outside the list.
    """
    if not 0 <= index < len(groups):
        raise SelectionError(
            f"Choice {index + 1} is out of range",
            index=index,
            details=f"expected 1-{len(groups)}",
        )
    return groups[index]


def short_version(tag: str) -> str:
    """
    Return the canonical short identifier `nightly-<number>-<build[:6]>`.

    Tags that do not follow the nightly pattern are returned unchanged.
    """
    parsed = parse_tag(tag)
    if parsed is None:
        return tag
    number, build = parsed
    return f"nightly-{number}-{build[:SHORT_BUILD_LENGTH]}"


def format_date_stamp(value: datetime) -> str:
    """Format a date as two-digit day, English month abbreviation, two-digit year (02Jan06)."""
    return f"{value.day:02d}{MONTH_ABBREVIATIONS[value.month - 1]}{value.year % 100:02d}"


def artifact_name(product: str, tag: str, published_at: datetime) -> str:
    """Return `<product>_<short version>_<ddMMMyy>.zip` for a release."""
    return f"{product}_{short_version(tag)}_{format_date_stamp(published_at)}{ZIP_EXTENSION}"


def format_version_label(group: VersionGroup) -> str:
    """Return the one-line menu label for a version group."""
    published = group.published_at.strftime(VERSION_LABEL_DATE_FORMAT)
    return f"{group.number}  ({group.tag_name})  {published}"
