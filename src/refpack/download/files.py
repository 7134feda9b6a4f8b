"""
File Operations for the refpack Build Subsystem

This module provides atomic writes used by the catalog cache, the delivery
step that places finished artifacts, and small cleanup helpers.
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Any, Callable

from refpack.exceptions import DeliveryError
from refpack.log_utils import logger

from .interfaces import Pathish


def _atomic_write(
    file_path: Pathish,
    writer_func: Callable[[Any], None],
    suffix: str = ".tmp",
    binary: bool = False,
) -> bool:
    """
    Write data to a file atomically by writing to a temporary file and atomically replacing the target on success.

    Parameters:
        file_path (Pathish): Destination file path to be written.
        writer_func (Callable[[Any], None]): Callable that receives the open temporary file and writes the desired content to it.
        suffix (str): Suffix to use for the temporary file name (default ".tmp").
        binary (bool): Open the temporary file in binary mode instead of UTF-8 text mode.

    Returns:
        bool: `True` if the temporary write and atomic replace succeeded, `False` on any error.
    """
    file_path = os.fspath(file_path)
    try:
        temp_fd, temp_path = tempfile.mkstemp(
            dir=os.path.dirname(file_path) or ".", prefix="tmp-", suffix=suffix
        )
    except OSError as e:
        logger.error("Could not create temporary file for %s: %s", file_path, e)
        return False

    try:
        if binary:
            with os.fdopen(temp_fd, "wb") as temp_f:
                writer_func(temp_f)
        else:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as temp_f:
                writer_func(temp_f)
        os.replace(temp_path, file_path)
    except (UnicodeEncodeError, OSError) as e:
        logger.error("Could not write to %s: %s", file_path, e)
        return False
    finally:
        if os.path.exists(temp_path):
            try:
                os.remove(temp_path)
            except OSError:
                pass
    return True


def atomic_write_bytes(file_path: Pathish, data: bytes) -> bool:
    """Atomically replace `file_path` with `data`."""
    return _atomic_write(file_path, lambda f: f.write(data), binary=True)


def atomic_write_text(file_path: Pathish, content: str) -> bool:
    """Atomically replace `file_path` with UTF-8 `content`."""
    return _atomic_write(file_path, lambda f: f.write(content), suffix=".txt")


def remove_file(file_path: Pathish) -> bool:
    """
    Remove a file if it exists.

    Returns:
        bool: `True` when the file is gone afterwards, `False` if removal failed.
    """
    try:
        os.remove(file_path)
    except FileNotFoundError:
        return True
    except OSError as e:
        logger.error("Error removing %s: %s", file_path, e)
        return False
    return True


def same_file_path(first: Pathish, second: Pathish) -> bool:
    """Return True when both paths resolve to the same absolute location."""
    return Path(first).resolve() == Path(second).resolve()


def place(source_path: Pathish, dest_path: Pathish) -> bool:
    """
    Copy a finished artifact to its destination, overwriting any existing file.

    The copy is a direct overwrite (no temp file and rename). When source and
    destination resolve to the same path nothing is read or written.

    Parameters:
        source_path (Pathish): The artifact to copy.
        dest_path (Pathish): Where the copy should end up.

    Returns:
        bool: `True` if bytes were copied, `False` if the paths were identical and the call was a no-op.

    Raises:
        DeliveryError: If the copy fails.
    """
    if same_file_path(source_path, dest_path):
        logger.debug("Skipping copy, %s is already in place", dest_path)
        return False

    try:
        shutil.copyfile(source_path, dest_path)
    except OSError as e:
        raise DeliveryError(
            f"Could not copy {os.path.basename(os.fspath(source_path))}",
            path=os.fspath(dest_path),
            details=str(e),
        ) from e

    logger.debug("Copied %s to %s", source_path, dest_path)
    return True
