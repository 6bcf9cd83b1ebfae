"""Progress aggregation for a batch of uploads."""
import logging
from typing import Callable, Dict, Mapping, Optional

from ..models import SourceFile, UploadProgressInfo, UploadState, UploadSummary

logger = logging.getLogger(__name__)

ProgressMap = Dict[str, UploadProgressInfo]
ProgressSink = Callable[[ProgressMap], None]
SummarySink = Callable[[UploadSummary], None]

_IN_PROGRESS = (UploadState.RUNNING, UploadState.RETRY, UploadState.CANCELED)


def calculate_upload_summary(progress_map: Mapping[str, UploadProgressInfo]) -> UploadSummary:
    """
    Project the current task states onto one UploadSummary.

    overall_progress is the mean of the per-task percentages rather than a
    byte-weighted ratio, so it never goes backwards when a large file starts.
    """
    entries = list(progress_map.values())
    if not entries:
        return UploadSummary()

    completed = failed = in_progress = waiting = 0
    total_size = uploaded_size = 0
    total_progress = 0.0

    for entry in entries:
        total_size += entry.total_bytes
        uploaded_size += entry.uploaded_bytes

        if entry.state == UploadState.SUCCESS:
            completed += 1
            total_progress += 100.0
        elif entry.state == UploadState.ERROR:
            failed += 1
        elif entry.state in _IN_PROGRESS:
            in_progress += 1
            total_progress += entry.progress
        elif entry.state == UploadState.WAITING:
            waiting += 1

    return UploadSummary(
        total=len(entries),
        completed=completed,
        failed=failed,
        in_progress=in_progress,
        waiting=waiting,
        overall_progress=total_progress / len(entries),
        total_size=total_size,
        uploaded_size=uploaded_size,
    )


class ProgressTracker:
    """
    Holds the progress map of one batch and feeds the caller's callbacks.

    Every update replaces the task's entry, then calls on_progress with a copy
    of the map and on_summary with a freshly computed summary.
    """

    def __init__(
        self,
        on_progress: Optional[ProgressSink] = None,
        on_summary: Optional[SummarySink] = None,
    ):
        self._entries: ProgressMap = {}
        self._on_progress = on_progress
        self._on_summary = on_summary

    def register(self, task_id: str, file: SourceFile) -> None:
        """Add a task in waiting state without notifying anyone."""
        self._entries[task_id] = UploadProgressInfo(
            file=file,
            progress=0.0,
            state=UploadState.WAITING,
            uploaded_bytes=0,
            total_bytes=file.size,
            attempt=1,
        )

    def update(self, task_id: str, info: UploadProgressInfo) -> None:
        self._entries[task_id] = info

        if self._on_progress:
            try:
                self._on_progress(dict(self._entries))
            except Exception as e:
                logger.error(f"Error in progress callback: {e}")

        if self._on_summary:
            try:
                self._on_summary(self.summary())
            except Exception as e:
                logger.error(f"Error in summary callback: {e}")

    def summary(self) -> UploadSummary:
        return calculate_upload_summary(self._entries)

    @property
    def entries(self) -> ProgressMap:
        return dict(self._entries)
