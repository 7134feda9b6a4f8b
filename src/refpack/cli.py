# src/refpack/cli.py

import argparse
import dataclasses
import importlib.metadata
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from refpack import log_utils, setup_config
from refpack.constants import EXIT_FAILURE, EXIT_INTERRUPTED
from refpack.download.cache import CatalogCache
from refpack.download.interfaces import BuildResult, BuildStatus, VersionGroup
from refpack.download.orchestrator import ReleaseBuilder, summarize_archive
from refpack.download.version import (
    format_version_label,
    limit_versions,
    select_version,
)
from refpack.exceptions import EntryError, RefpackError
from refpack.menu_release import ConsoleFrontEnd, InteractiveFrontEnd
from refpack.utils import calculate_sha256


class SilentFrontEnd(ConsoleFrontEnd):
    """
    Unattended front-end: newest version, configured list size, always rebuild,
    and copy whenever the delivery folder exists.
    """

    def choose_max_list(self, default: int) -> int:
        return default

    def choose_version(self, versions: List[VersionGroup]) -> VersionGroup:
        return select_version(versions, 0)

    def confirm_rebuild(self, artifact_name: str) -> bool:
        return True

    def confirm_delivery(self, artifact_name: str, dest_dir: Path) -> bool:
        return True


def get_version() -> str:
    """Return the installed refpack version, or "unknown" when not installed."""
    try:
        return importlib.metadata.version("refpack")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def _add_selection_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--max-list",
        type=int,
        default=None,
        metavar="N",
        help="Number of recent versions to offer",
    )
    parser.add_argument(
        "--dev-prefix",
        default=None,
        metavar="PREFIX",
        help="Only offer version numbers starting with PREFIX",
    )
    parser.add_argument(
        "--config",
        default=None,
        metavar="FILE",
        help="Read settings from FILE instead of the default config location",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="refpack",
        description="refpack - Repack REFramework nightly builds for Monster Hunter Wilds",
    )
    subparsers = parser.add_subparsers(dest="command")

    build_cmd = subparsers.add_parser(
        "build", help="Download a nightly build and repack it"
    )
    _add_selection_arguments(build_cmd)
    build_cmd.add_argument(
        "--silent",
        action="store_true",
        default=None,
        help="Run without prompts: newest version, always rebuild, copy if possible",
    )
    build_cmd.add_argument(
        "--dry-run",
        dest="skip_download",
        action="store_true",
        default=None,
        help="Resolve and name the artifact without downloading anything",
    )
    build_cmd.add_argument(
        "--output-dir",
        default=None,
        metavar="DIR",
        help="Directory to write the repacked archive to (default: current directory)",
    )
    copy_group = build_cmd.add_mutually_exclusive_group()
    copy_group.add_argument(
        "--copy-to",
        dest="delivery_dir",
        default=None,
        metavar="DIR",
        help="Folder to offer copying the archive into (default: Downloads)",
    )
    copy_group.add_argument(
        "--no-copy",
        action="store_true",
        help="Never copy the archive anywhere else",
    )
    build_cmd.add_argument(
        "--log-dir",
        default=None,
        metavar="DIR",
        help="Also write a rotating log file into DIR",
    )

    list_cmd = subparsers.add_parser("list", help="List available nightly versions")
    _add_selection_arguments(list_cmd)

    cache_cmd = subparsers.add_parser(
        "cache",
        help="Manage cached data",
        description="Manage the cached release catalog.",
    )
    cache_subparsers = cache_cmd.add_subparsers(dest="cache_command", required=True)
    cache_subparsers.add_parser("clear", help="Remove the cached release catalog")

    subparsers.add_parser("version", help="Display refpack version")
    return parser


def load_settings(
    args: argparse.Namespace, environ: Optional[Dict[str, str]] = None
) -> setup_config.Settings:
    """
    Assemble Settings from the config file, the environment and the parsed flags.

    Raises:
        ConfigurationError: If the config file or any value is invalid.
    """
    file_config = setup_config.load_config(getattr(args, "config", None))
    env_overrides = setup_config.settings_from_environment(
        os.environ if environ is None else environ
    )
    cli_overrides: Dict[str, Any] = {
        name: getattr(args, name, None)
        for name in (
            "max_list",
            "dev_prefix",
            "silent",
            "skip_download",
            "output_dir",
            "delivery_dir",
        )
    }
    settings = setup_config.build_settings(file_config, env_overrides, cli_overrides)
    if getattr(args, "no_copy", False):
        settings = dataclasses.replace(settings, delivery_dir=None)
    if settings.log_level:
        log_utils.set_log_level(settings.log_level)
    return settings


def _log_summary(result: BuildResult) -> None:
    artifact = result.artifact_path
    if artifact is None or not artifact.exists():
        return
    names, file_count = summarize_archive(artifact)
    for name in names:
        log_utils.logger.debug("  %s", name)
    log_utils.logger.debug("SHA-256 %s", calculate_sha256(str(artifact)))
    log_utils.logger.info(
        "Done. %s contains %d file(s) in %d entries.", artifact.name, file_count, len(names)
    )


def run_build(settings: setup_config.Settings, builder: Optional[ReleaseBuilder] = None) -> BuildResult:
    """
    Run one build with the front-end the settings call for.

    Without a terminal on stdin, interactive mode falls back to silent mode.
    """
    silent = settings.silent
    if not silent and not sys.stdin.isatty():
        log_utils.logger.warning("No interactive terminal detected; running silently.")
        silent = True

    front_end: ConsoleFrontEnd = SilentFrontEnd() if silent else InteractiveFrontEnd()
    builder = builder or ReleaseBuilder(settings)
    try:
        result = builder.run(front_end)
    finally:
        front_end.close()

    if result.status is BuildStatus.DRY_RUN:
        log_utils.logger.info("Dry run complete; no archive was written.")
    else:
        _log_summary(result)
    return result


def run_list(settings: setup_config.Settings, builder: Optional[ReleaseBuilder] = None) -> List[VersionGroup]:
    """Print the resolved versions, newest first, limited to settings.max_list."""
    builder = builder or ReleaseBuilder(settings)
    versions = limit_versions(builder.list_versions(), settings.max_list)
    for position, group in enumerate(versions, start=1):
        print(f"{position:>3}. {format_version_label(group)}")
    return versions


def run_cache_clear(settings: setup_config.Settings) -> None:
    cache = CatalogCache(settings.cache_dir)
    if cache.clear():
        log_utils.logger.info("Cleared cached release catalog in %s", cache.cache_dir)
    else:
        log_utils.logger.error("Failed to clear cached release catalog in %s", cache.cache_dir)


def report_error(error: RefpackError) -> None:
    """Log a one-line failure naming the pipeline stage (and entry, when known)."""
    if isinstance(error, EntryError) and error.entry_name:
        log_utils.logger.error(
            "%s failed on entry %s: %s", error.stage, error.entry_name, error
        )
    else:
        log_utils.logger.error("%s failed: %s", error.stage, error)


def main(argv: Optional[List[str]] = None) -> None:
    # Logging is automatically initialized by importing log_utils

    """
    Entry point for the refpack command-line interface.

    Dispatches the build, list, cache and version subcommands. Running with no
    subcommand behaves like `refpack build`. Every RefpackError is reported as a
    single stage-labelled line followed by exit status 1; Ctrl-C exits with 130.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "version":
        log_utils.logger.info("refpack v%s", get_version())
        return

    if args.command is None:
        args = parser.parse_args(["build"] + list(argv or []))

    try:
        settings = load_settings(args)
        if args.command == "build":
            if args.log_dir:
                log_utils.add_file_logging(
                    Path(args.log_dir), settings.log_level or "INFO"
                )
            run_build(settings)
        elif args.command == "list":
            run_list(settings)
        elif args.command == "cache":
            run_cache_clear(settings)
    except RefpackError as e:
        report_error(e)
        sys.exit(EXIT_FAILURE)
    except KeyboardInterrupt:
        log_utils.logger.info("Interrupted.")
        sys.exit(EXIT_INTERRUPTED)


if __name__ == "__main__":
    main()
