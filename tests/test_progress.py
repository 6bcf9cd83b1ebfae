"""Tests for progress aggregation."""
from gallery_uploader.models import SourceFile, UploadProgressInfo, UploadState
from gallery_uploader.orchestrator.progress import ProgressTracker, calculate_upload_summary


def _info(state, uploaded=0, total=100, progress=None):
    file = SourceFile.from_bytes("a.jpg", b"x" * total)
    if progress is None:
        progress = 100.0 if state == UploadState.SUCCESS else uploaded / total * 100
    return UploadProgressInfo(file, progress, state, uploaded, total)


def test_empty_map():
    summary = calculate_upload_summary({})
    assert summary.total == 0
    assert summary.overall_progress == 0.0


def test_buckets_and_average_of_percentages():
    summary = calculate_upload_summary(
        {
            "0": _info(UploadState.SUCCESS, 100, 100),
            "1": _info(UploadState.ERROR, 0, 300),
            "2": _info(UploadState.RUNNING, 50, 100),
            "3": _info(UploadState.WAITING, 0, 500),
        }
    )
    assert summary.total == 4
    assert summary.completed == 1
    assert summary.failed == 1
    assert summary.in_progress == 1
    assert summary.waiting == 1
    # (100 + 0 + 50 + 0) / 4, independent of file sizes
    assert summary.overall_progress == 37.5
    assert summary.total_size == 1000
    assert summary.uploaded_size == 150


def test_retry_and_canceled_count_as_in_progress():
    summary = calculate_upload_summary(
        {
            "0": _info(UploadState.RETRY),
            "1": _info(UploadState.CANCELED),
        }
    )
    assert summary.in_progress == 2
    assert summary.completed + summary.failed + summary.in_progress + summary.waiting == summary.total


def test_tracker_register_is_silent_and_update_notifies():
    progress_calls, summary_calls = [], []
    tracker = ProgressTracker(on_progress=progress_calls.append, on_summary=summary_calls.append)
    file = SourceFile.from_bytes("a.jpg", b"x" * 10)

    tracker.register("0-a.jpg", file)
    assert progress_calls == []
    assert tracker.summary().waiting == 1

    tracker.update("0-a.jpg", UploadProgressInfo(file, 100.0, UploadState.SUCCESS, 10, 10))
    assert len(progress_calls) == 1
    assert progress_calls[0]["0-a.jpg"].state == UploadState.SUCCESS
    assert summary_calls[0].completed == 1


def test_tracker_survives_failing_callbacks():
    def explode(_):
        raise RuntimeError("display crashed")

    tracker = ProgressTracker(on_progress=explode, on_summary=explode)
    file = SourceFile.from_bytes("a.jpg", b"x")
    tracker.update("0-a.jpg", UploadProgressInfo(file, 0.0, UploadState.RUNNING, 0, 1))
    assert tracker.entries["0-a.jpg"].state == UploadState.RUNNING
