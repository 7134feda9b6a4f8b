"""
Archive Transcoding for the refpack Build Subsystem

This module rewrites one zip archive into another, entry by entry, without
extracting anything to disk. Entries whose stored path contains a filter
pattern are dropped; the rest are re-rooted under a fixed prefix and
recompressed with deflate.
"""

import os
import shutil
import time
import zipfile
import zlib
from typing import Iterable, Optional

from refpack.constants import DEFAULT_CHUNK_SIZE, ZIP_DIRECTORY_ATTR
from refpack.exceptions import (
    CopyError,
    DestCreateError,
    EntryReadError,
    EntryWriteError,
    FinalizeError,
    SourceOpenError,
)
from refpack.log_utils import logger

from .files import remove_file
from .interfaces import (
    FilterRule,
    Pathish,
    ProgressCallback,
    TranscodeJob,
    TranscodeSummary,
)


def normalize_root_prefix(root_prefix: str) -> str:
    """
    Return `root_prefix` with surrounding slashes collapsed to a single trailing one.

    Raises:
        ValueError: If the prefix is empty once slashes are stripped.
    """
    stripped = (root_prefix or "").strip().strip("/")
    if not stripped:
        raise ValueError("Archive root prefix must not be empty")
    return f"{stripped}/"


def _is_unsafe_entry_name(name: str) -> bool:
    """True for absolute names, drive-qualified names and names with a `..` component."""
    normalized = name.replace("\\", "/")
    if normalized.startswith("/") or "\x00" in normalized:
        return True
    if len(normalized) > 1 and normalized[1] == ":":
        return True
    return ".." in normalized.split("/")


def _directory_info(name: str, date_time) -> zipfile.ZipInfo:
    zinfo = zipfile.ZipInfo(name, date_time=date_time)
    zinfo.compress_type = zipfile.ZIP_STORED
    zinfo.external_attr = ZIP_DIRECTORY_ATTR
    return zinfo


class ArchiveTranscoder:
    """
    Streams a source zip into a filtered, re-rooted destination zip.

    Entries are visited in their stored order. Any failure on a surviving
    entry aborts the job and deletes the partially written destination.
    """

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.chunk_size = chunk_size

    def transcode(self, job: TranscodeJob) -> TranscodeSummary:
        """
        Run one transcode job.

        Parameters:
            job (TranscodeJob): Source, destination, filter rules, root prefix and progress sink.

        Returns:
            TranscodeSummary: Counts and destination entry names.

        Raises:
            SourceOpenError: The source cannot be opened or is not a zip archive.
            DestCreateError: The destination cannot be created.
            EntryReadError: A surviving source entry cannot be opened or its path is absolute or escapes the root.
            EntryWriteError: A destination entry cannot be created.
            CopyError: Streaming an entry's bytes failed.
            FinalizeError: The destination central directory cannot be written.
        """
        root_prefix = normalize_root_prefix(job.root_prefix)
        source_path = os.fspath(job.source_path)
        dest_path = os.fspath(job.dest_path)

        try:
            source = zipfile.ZipFile(source_path, "r")
        except (zipfile.BadZipFile, OSError) as e:
            raise SourceOpenError(
                "Could not open source archive", archive_path=source_path, details=str(e)
            ) from e

        with source:
            try:
                dest = zipfile.ZipFile(dest_path, "w", compression=zipfile.ZIP_DEFLATED)
            except OSError as e:
                raise DestCreateError(
                    "Could not create destination archive",
                    archive_path=dest_path,
                    details=str(e),
                ) from e

            summary = TranscodeSummary(dest_path=job.dest_path)
            try:
                self._write_entries(source, dest, job.rules, root_prefix, job.on_progress, summary)
            except Exception:
                self._discard(dest, dest_path)
                raise

            try:
                dest.close()
            except (OSError, ValueError) as e:
                remove_file(dest_path)
                raise FinalizeError(
                    "Could not finalize destination archive",
                    archive_path=dest_path,
                    details=str(e),
                ) from e

        logger.debug(
            "Transcoded %s -> %s: %d written, %d skipped",
            source_path,
            dest_path,
            summary.entries_written,
            summary.entries_skipped,
        )
        return summary

    def _write_entries(
        self,
        source: zipfile.ZipFile,
        dest: zipfile.ZipFile,
        rules: FilterRule,
        root_prefix: str,
        on_progress: Optional[ProgressCallback],
        summary: TranscodeSummary,
    ) -> None:
        source_path = source.filename
        try:
            dest.writestr(_directory_info(root_prefix, time.localtime()[:6]), b"")
        except (OSError, ValueError) as e:
            raise EntryWriteError(
                "Could not create root directory entry",
                entry_name=root_prefix,
                archive_path=source_path,
                details=str(e),
            ) from e
        summary.entry_names.append(root_prefix)

        entries = source.infolist()
        total = len(entries)
        summary.entries_total = total

        for processed, info in enumerate(entries, start=1):
            if rules.matches(info.filename):
                summary.entries_skipped += 1
                logger.debug("Skipping filtered entry %s", info.filename)
            else:
                if _is_unsafe_entry_name(info.filename):
                    raise EntryReadError(
                        "Illegal entry path",
                        entry_name=info.filename,
                        archive_path=source_path,
                        details="absolute paths and .. components are not allowed",
                    )
                target_name = root_prefix + info.filename
                if info.is_dir():
                    self._write_directory(dest, info, target_name, source_path)
                else:
                    self._copy_entry(source, dest, info, target_name)
                summary.entries_written += 1
                summary.entry_names.append(target_name)

            if on_progress is not None:
                on_progress(processed / total)

        if total == 0 and on_progress is not None:
            on_progress(1.0)

    def _write_directory(
        self,
        dest: zipfile.ZipFile,
        info: zipfile.ZipInfo,
        target_name: str,
        source_path: Optional[str],
    ) -> None:
        try:
            dest.writestr(_directory_info(target_name, info.date_time), b"")
        except (OSError, ValueError) as e:
            raise EntryWriteError(
                "Could not create directory entry",
                entry_name=info.filename,
                archive_path=source_path,
                details=str(e),
            ) from e

    def _copy_entry(
        self,
        source: zipfile.ZipFile,
        dest: zipfile.ZipFile,
        info: zipfile.ZipInfo,
        target_name: str,
    ) -> None:
        source_path = source.filename
        try:
            reader = source.open(info)
        except (
            OSError,
            zipfile.BadZipFile,
            RuntimeError,
            NotImplementedError,
            ValueError,
        ) as e:
            raise EntryReadError(
                "Could not open entry",
                entry_name=info.filename,
                archive_path=source_path,
                details=str(e),
            ) from e

        with reader:
            zinfo = zipfile.ZipInfo(target_name, date_time=info.date_time)
            zinfo.compress_type = zipfile.ZIP_DEFLATED
            zinfo.external_attr = info.external_attr
            zinfo.file_size = info.file_size
            try:
                writer = dest.open(
                    zinfo, "w", force_zip64=info.file_size > zipfile.ZIP64_LIMIT
                )
            except (OSError, ValueError, RuntimeError) as e:
                raise EntryWriteError(
                    "Could not create entry",
                    entry_name=info.filename,
                    archive_path=dest.filename,
                    details=str(e),
                ) from e

            with writer:
                try:
                    shutil.copyfileobj(reader, writer, self.chunk_size)
                except (OSError, zipfile.BadZipFile, zlib.error, EOFError) as e:
                    raise CopyError(
                        "Could not copy entry",
                        entry_name=info.filename,
                        archive_path=source_path,
                        details=str(e),
                    ) from e

    def _discard(self, dest: zipfile.ZipFile, dest_path: str) -> None:
        try:
            dest.close()
        except (OSError, ValueError) as e:
            logger.debug("Error closing discarded archive %s: %s", dest_path, e)
        if remove_file(dest_path):
            logger.debug("Removed incomplete archive %s", dest_path)


def transcode_archive(
    source_path: Pathish,
    dest_path: Pathish,
    filter_rules: Iterable[str],
    root_prefix: str,
    on_progress: Optional[ProgressCallback] = None,
) -> TranscodeSummary:
    """
    Convenience wrapper building a TranscodeJob and running it with a default transcoder.
    """
    job = TranscodeJob(
        source_path=source_path,
        dest_path=dest_path,
        rules=FilterRule(tuple(filter_rules)),
        root_prefix=root_prefix,
        on_progress=on_progress,
    )
    return ArchiveTranscoder().transcode(job)
