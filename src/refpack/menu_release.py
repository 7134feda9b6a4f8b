from pathlib import Path
from typing import Dict, List, Optional

from pick import pick
from rich.progress import BarColumn, Progress, TaskID, TextColumn

from refpack.download.interfaces import FrontEnd, VersionGroup
from refpack.download.version import format_version_label, select_version as version_at
from refpack.log_utils import logger

PROGRESS_LABELS = {
    "download": "Downloading",
    "transcode": "Repacking",
}


class ConsoleFrontEnd(FrontEnd):
    """
    Shared console rendering: status lines go through the logger and progress
    through a rich progress bar, one task row per pipeline step.
    """

    def __init__(self, show_progress: bool = True):
        self.show_progress = show_progress
        self._progress: Optional[Progress] = None
        self._tasks: Dict[str, TaskID] = {}

    def status(self, message: str) -> None:
        logger.info(message)

    def progress(self, task: str, fraction: float) -> None:
        if not self.show_progress:
            return
        if self._progress is None:
            self._progress = Progress(
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            )
            self._progress.start()
        task_id = self._tasks.get(task)
        if task_id is None:
            task_id = self._progress.add_task(
                PROGRESS_LABELS.get(task, task.capitalize()), total=1.0
            )
            self._tasks[task] = task_id
        self._progress.update(task_id, completed=min(max(fraction, 0.0), 1.0))

    def close(self) -> None:
        """Stop the progress display if one was started."""
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
            self._tasks.clear()


def ask_yes_no(prompt: str) -> bool:
    """Ask a y/N question; anything but y/yes means no."""
    answer = input(f"{prompt} [y/N]: ").strip().lower()
    return answer in ("y", "yes")


def ask_max_list(default: int) -> int:
    """
    Prompt for how many versions to show.

    An empty answer keeps `default`; an invalid or non-positive one is reported
    and also keeps `default`.
    """
    raw = input(f"How many recent versions to list? [{default}]: ").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid number %r; using %d.", raw, default)
        return default
    if value < 1:
        logger.warning("List size must be at least 1; using %d.", default)
        return default
    return value


def select_version(versions: List[VersionGroup]) -> VersionGroup:
    """
    Displays a menu of nightly versions, newest first, with the first preselected.
    Returns the chosen version.
    """
    labels = [format_version_label(group) for group in versions]
    title = "Select a nightly version to build (press ENTER to confirm):"
    _option, index = pick(labels, title, indicator="*", default_index=0)
    return version_at(versions, index)


class InteractiveFrontEnd(ConsoleFrontEnd):
    """Prompts on the terminal for every choice the pipeline needs."""

    def choose_max_list(self, default: int) -> int:
        return ask_max_list(default)

    def choose_version(self, versions: List[VersionGroup]) -> VersionGroup:
        return select_version(versions)

    def confirm_rebuild(self, artifact_name: str) -> bool:
        # Release the terminal from the progress bar before prompting
        self.close()
        return ask_yes_no(f"{artifact_name} already exists. Rebuild it?")

    def confirm_delivery(self, artifact_name: str, dest_dir: Path) -> bool:
        self.close()
        return ask_yes_no(f"Copy {artifact_name} to {dest_dir}?")
