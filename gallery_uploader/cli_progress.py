"""Console rendering and progress helpers for the gallery-up CLI."""
from __future__ import annotations

import time
from typing import Any, Dict, Optional

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)
from rich.table import Table

from .models import UploadProgressInfo, UploadState, UploadSummary

console = Console()


def _human_size(value: int) -> str:
    size = float(max(value, 0))
    units = ["B", "KB", "MB", "GB", "TB"]
    unit_idx = 0
    while size >= 1024.0 and unit_idx < len(units) - 1:
        size /= 1024.0
        unit_idx += 1
    if unit_idx == 0:
        return f"{int(size)} {units[unit_idx]}"
    return f"{size:.2f} {units[unit_idx]}"


def render_configuration_summary(config: Dict[str, Any]) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    panel = Panel(
        table,
        title="[bold green]gallery-up[/bold green]",
        subtitle="[dim]gallery uploader CLI[/dim]",
        border_style="blue",
    )
    console.print(panel)


class BatchUploadProgressDisplay:
    """Event-based console display for a batch upload process."""

    def __init__(self, output: Optional[Console] = None):
        self._console = output or console
        self._file_tasks: Dict[str, TaskID] = {}
        self._overall_task_id: Optional[TaskID] = None
        self._live: Optional[Live] = None

        self._overall_progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold cyan]{task.fields[label]}", justify="left"),
            BarColumn(bar_width=28),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TextColumn("[dim]{task.fields[detail]}", justify="left"),
            expand=False,
            console=self._console,
        )
        self._file_progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold green]{task.fields[label]}", justify="left"),
            BarColumn(bar_width=42),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            DownloadColumn(),
            TransferSpeedColumn(),
            TimeRemainingColumn(),
            expand=False,
            console=self._console,
        )

    def _echo(self, message: str) -> None:
        self._console.print(message)

    def _emit_timeline(self, status: str, name: str, size_bytes: int = 0, error: Optional[str] = None) -> None:
        stamp = time.strftime("%H:%M:%S")
        size_label = f" {_human_size(size_bytes)}" if size_bytes > 0 else ""
        error_label = f" cause={error}" if error else ""
        color = {"DONE": "green", "FAIL": "red"}.get(status, "white")
        self._echo(f"[dim]{stamp}[/dim] [{color}]{status:<4}[/{color}] file: {name}{size_label}{error_label}")

    def _start_live(self) -> None:
        if self._live is not None:
            return

        self._live = Live(
            Group(self._overall_progress, self._file_progress),
            console=self._console,
            refresh_per_second=8,
            vertical_overflow="visible",
        )
        self._live.start()
        self._overall_task_id = self._overall_progress.add_task(
            "overall",
            label="Overall",
            total=100,
            completed=0,
            detail="waiting...",
        )

    def _stop_live(self) -> None:
        if self._live is None:
            return
        self._live.stop()
        self._live = None

    def _drop_file_task(self, task_id: str) -> None:
        progress_task = self._file_tasks.pop(task_id, None)
        if progress_task is not None:
            self._file_progress.remove_task(progress_task)

    def on_start(self) -> None:
        self._start_live()

    def on_progress(self, progress_map: Dict[str, UploadProgressInfo]) -> None:
        self._start_live()
        for task_id, info in progress_map.items():
            if info.state == UploadState.WAITING or info.state.is_terminal:
                continue

            total = max(info.total_bytes, 1)
            progress_task = self._file_tasks.get(task_id)
            if progress_task is None:
                progress_task = self._file_progress.add_task(
                    "upload",
                    label=info.file.name[:60],
                    total=total,
                )
                self._file_tasks[task_id] = progress_task

            label = info.file.name[:60]
            if info.state != UploadState.RUNNING:
                label = f"{label} ({info.state.value}, attempt {info.attempt})"
            self._file_progress.update(progress_task, completed=info.uploaded_bytes, total=total, label=label)

    def on_summary(self, summary: UploadSummary) -> None:
        self._start_live()
        if self._overall_task_id is None:
            return
        self._overall_progress.update(
            self._overall_task_id,
            completed=summary.overall_progress,
            detail=(
                f"done={summary.completed} failed={summary.failed} "
                f"active={summary.in_progress} waiting={summary.waiting} of {summary.total}"
            ),
        )

    def on_file_complete(self, task_id: str, info: UploadProgressInfo) -> None:
        self._drop_file_task(task_id)
        self._emit_timeline("DONE", info.file.name, size_bytes=info.total_bytes)

    def on_file_fail(self, task_id: str, info: UploadProgressInfo) -> None:
        self._drop_file_task(task_id)
        self._emit_timeline("FAIL", info.file.name, error=f"{info.attempt} attempt(s)")

    def on_error(self, error: Exception) -> None:
        self._stop_live()
        self._echo(f"[red]Error:[/red] {error}")

    def on_finish(self, result: Any) -> None:
        self._stop_live()
        if result is None:
            return

        uploaded = getattr(result, "uploaded_files", 0)
        total = getattr(result, "total_files", 0)
        failed = getattr(result, "failed_files", 0)
        duration = getattr(result, "duration", 0.0)
        self._echo(
            f"[bold]Finished[/bold] uploaded={uploaded} total={total} failed={failed} "
            f"in {duration:.1f}s"
        )

        for failure in getattr(result, "failures", []):
            self._echo(f"[red]  not uploaded:[/red] {failure.file_name} ({failure.error})")
