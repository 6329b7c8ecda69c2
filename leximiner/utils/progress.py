from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)


class ProgressTracker:
    """Context manager yielding a rich Progress; renders nothing when disabled."""

    def __init__(self, enabled: bool = True, transient: bool = True):
        self.enabled = enabled
        self.transient = transient
        self._progress = None

    def __enter__(self) -> Progress:
        self._progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            transient=self.transient,
            disable=not self.enabled,
        )
        return self._progress.__enter__()

    def __exit__(self, *args):
        progress, self._progress = self._progress, None
        return progress.__exit__(*args)
