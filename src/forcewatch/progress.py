"""Live spinners for in-flight deploys."""

import logging
import threading

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TaskID, TextColumn

logger = logging.getLogger(__name__)

SPINNER_STYLE = "rgb(119,181,31)"


class Spinner:
    """Handle for one spinner line on a ProgressBoard."""

    def __init__(self, board: "ProgressBoard", task_id: TaskID, label: str):
        self.board = board
        self.task_id = task_id
        self.label = label
        self.stopped = False

    def stop(self) -> None:
        """Remove the spinner. Safe to call more than once."""
        if self.stopped:
            return
        self.stopped = True
        self.board._remove(self.task_id)


class ProgressBoard:
    """Shared rich progress display, one spinner per active deploy.

    The live display runs only while at least one spinner is active, so
    ordinary console output between deploys is not redrawn over.
    """

    def __init__(self, console: Console | None = None):
        self.progress = Progress(
            SpinnerColumn(spinner_name="dots", style=SPINNER_STYLE),
            TextColumn("{task.description}"),
            console=console,
            transient=True,
        )
        self._active = 0
        self._lock = threading.Lock()

    @property
    def active(self) -> int:
        return self._active

    def start(self, label: str) -> Spinner:
        """Show a spinner labelled ``label`` and return its handle."""
        with self._lock:
            if self._active == 0:
                self.progress.start()
            self._active += 1
            task_id = self.progress.add_task(label, total=None)
        logger.debug(f"Spinner started: {label}")
        return Spinner(self, task_id, label)

    def _remove(self, task_id: TaskID) -> None:
        with self._lock:
            self.progress.remove_task(task_id)
            self._active -= 1
            if self._active == 0:
                self.progress.stop()
