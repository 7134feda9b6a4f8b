"""
Build Orchestration for refpack

This module coordinates the single build pipeline shared by every front-end:
fetch the catalog, resolve versions, let the front-end choose, download the
release asset, transcode it, and place the artifact.
"""

import os
import tempfile
import zipfile
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from refpack.exceptions import DeliveryError
from refpack.log_utils import logger
from refpack.setup_config import Settings
from refpack.utils import asset_download_url, download_release_asset

from .cache import CatalogCache
from .files import place
from .github_source import ReleaseCatalogFetcher
from .interfaces import (
    BuildPlan,
    BuildResult,
    BuildStatus,
    FilterRule,
    FrontEnd,
    Pathish,
    ProgressCallback,
    TranscodeJob,
    VersionGroup,
)
from .transcode import ArchiveTranscoder
from .version import artifact_name, limit_versions, resolve_versions

StatusCallback = Callable[[str], None]


def summarize_archive(path: Pathish) -> Tuple[List[str], int]:
    """
    List an archive's entry names and count its file (non-directory) entries.

    Returns:
        Tuple[List[str], int]: Entry names in stored order and the number of file entries.
    """
    with zipfile.ZipFile(path, "r") as zf:
        infos = zf.infolist()
    names = [info.filename for info in infos]
    file_count = sum(1 for info in infos if not info.is_dir())
    return names, file_count


class ReleaseBuilder:
    """
    Runs fetch -> resolve -> download -> transcode -> place for one configuration.

    Front-ends either call run() with a FrontEnd implementation or drive the
    individual stages (list_versions, plan, build, deliver) themselves.
    """

    def __init__(
        self,
        settings: Settings,
        fetcher: Optional[ReleaseCatalogFetcher] = None,
        transcoder: Optional[ArchiveTranscoder] = None,
    ):
        self.settings = settings
        self.fetcher = fetcher or ReleaseCatalogFetcher(
            settings.releases_url,
            CatalogCache(settings.cache_dir),
            github_token=settings.github_token,
            timeout=settings.api_timeout,
        )
        self.transcoder = transcoder or ArchiveTranscoder()

    def list_versions(self) -> List[VersionGroup]:
        """
        Fetch the catalog and resolve it into versions, newest first.

        Raises:
            FetchFailed, CacheUnavailable: The catalog could not be obtained.
            NoQualifyingReleases: No nightly release matched.
        """
        result = self.fetcher.fetch()
        logger.debug(
            "Catalog has %d release(s)%s",
            len(result.releases),
            " (cached)" if result.from_cache else "",
        )
        return resolve_versions(result.releases, self.settings.dev_prefix)

    def plan(self, version: VersionGroup) -> BuildPlan:
        """Derive artifact name, asset URL and output path for a chosen version."""
        name = artifact_name(
            self.settings.product_name, version.tag_name, version.published_at
        )
        return BuildPlan(
            version=version,
            artifact_name=name,
            asset_url=asset_download_url(
                self.settings.asset_url_template,
                version.tag_name,
                self.settings.asset_name,
            ),
            output_path=Path(self.settings.output_dir) / name,
        )

    def build(
        self,
        plan: BuildPlan,
        confirm_rebuild: Callable[[str], bool],
        on_status: Optional[StatusCallback] = None,
        on_progress: Optional[Callable[[str, float], None]] = None,
    ) -> BuildResult:
        """
        Produce the artifact described by `plan`.

        Parameters:
            plan (BuildPlan): Output of plan().
            confirm_rebuild (Callable[[str], bool]): Asked when the artifact already exists; False keeps it.
            on_status (Optional[Callable[[str], None]]): Receives human-readable stage messages.
            on_progress (Optional[Callable[[str, float], None]]): Receives (task, fraction) updates for "download" and "transcode".

        Returns:
            BuildResult: BUILT, KEPT_EXISTING, or DRY_RUN when downloads are disabled.
        """
        status = on_status or (lambda message: logger.info(message))

        if plan.output_path.exists() and not confirm_rebuild(plan.artifact_name):
            status(f"Keeping existing archive {plan.artifact_name}.")
            return BuildResult(status=BuildStatus.KEPT_EXISTING, plan=plan)

        if self.settings.skip_download:
            status(f"Download skipped; would create {plan.artifact_name}.")
            return BuildResult(status=BuildStatus.DRY_RUN, plan=plan)

        def progress_for(task: str) -> Optional[ProgressCallback]:
            if on_progress is None:
                return None
            return lambda fraction: on_progress(task, fraction)

        with tempfile.TemporaryDirectory(prefix="refpack-build-") as staging_dir:
            staged_asset = os.path.join(staging_dir, self.settings.asset_name)
            staged_artifact = os.path.join(staging_dir, plan.artifact_name)

            status(f"Downloading {plan.version.tag_name}...")
            downloaded = download_release_asset(
                plan.asset_url,
                staged_asset,
                on_progress=progress_for("download"),
            )
            logger.debug("Downloaded %d bytes from %s", downloaded, plan.asset_url)

            status("Creating optimized archive...")
            summary = self.transcoder.transcode(
                TranscodeJob(
                    source_path=staged_asset,
                    dest_path=staged_artifact,
                    rules=FilterRule(tuple(self.settings.filter_rules)),
                    root_prefix=self.settings.root_prefix,
                    on_progress=progress_for("transcode"),
                )
            )

            plan.output_path.parent.mkdir(parents=True, exist_ok=True)
            place(staged_artifact, plan.output_path)

        summary.dest_path = plan.output_path
        status(f"Created {plan.artifact_name}.")
        return BuildResult(status=BuildStatus.BUILT, plan=plan, summary=summary)

    def deliver(self, result: BuildResult, dest_dir: Optional[Pathish]) -> Optional[str]:
        """
        Copy a built or kept artifact into `dest_dir`.

        Returns:
            Optional[str]: The delivered path, or None for a dry run or a missing destination directory.

        Raises:
            DeliveryError: If the artifact is missing or the copy fails.
        """
        artifact = result.artifact_path
        if artifact is None or dest_dir is None:
            return None

        dest_dir = Path(dest_dir)
        if not dest_dir.is_dir():
            logger.debug("Delivery directory %s does not exist; skipping copy", dest_dir)
            return None
        if not artifact.exists():
            raise DeliveryError(
                "Final archive not found", path=str(artifact), details="nothing to copy"
            )

        target = dest_dir / artifact.name
        place(artifact, target)
        result.delivered_to = target
        return str(target)

    def run(self, front_end: FrontEnd) -> BuildResult:
        """
        Drive the whole pipeline for one front-end.

        Each stage either raises a RefpackError or hands its output to the next;
        KEPT_EXISTING and DRY_RUN outcomes skip straight to the delivery offer.
        """
        front_end.status("Fetching recent nightly releases...")
        versions = self.list_versions()

        max_list = front_end.choose_max_list(self.settings.max_list)
        shown = limit_versions(versions, max_list)
        front_end.status(
            f"Found {len(versions)} numeric nightly version(s). Showing {len(shown)}."
        )

        chosen = front_end.choose_version(shown)
        plan = self.plan(chosen)
        front_end.status(f"Selected: {chosen.tag_name} -> {plan.artifact_name}")

        result = self.build(
            plan,
            front_end.confirm_rebuild,
            on_status=front_end.status,
            on_progress=front_end.progress,
        )

        if result.status is BuildStatus.DRY_RUN:
            return result

        dest_dir = self.settings.delivery_dir
        if dest_dir is not None and Path(dest_dir).is_dir():
            if front_end.confirm_delivery(plan.artifact_name, Path(dest_dir)):
                delivered = self.deliver(result, dest_dir)
                if delivered is not None:
                    front_end.status(f"Copied to {delivered}")
        return result
