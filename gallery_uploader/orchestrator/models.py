"""Orchestrator data models."""
from dataclasses import dataclass, field
from typing import List, Optional

from ..models import UploadedPhoto, UploadSummary


@dataclass(frozen=True)
class UploadFailure:
    """A file that could not be uploaded."""
    task_id: str
    file_name: str
    attempts: int
    error: str


@dataclass
class BatchUploadResult:
    """Result of a batch upload."""
    destination_id: str
    total_files: int
    uploaded: List[UploadedPhoto] = field(default_factory=list)
    failures: List[UploadFailure] = field(default_factory=list)
    summary: Optional[UploadSummary] = None
    duration: float = 0.0

    @property
    def uploaded_files(self) -> int:
        return len(self.uploaded)

    @property
    def failed_files(self) -> int:
        return len(self.failures)

    @property
    def success(self) -> bool:
        return self.failed_files == 0

    @property
    def failed_names(self) -> List[str]:
        """Names of files left for a manual retry."""
        return [f.file_name for f in self.failures]
