"""Orchestrator package - coordinates batch upload workflows."""
from .core import UploadOrchestrator
from .models import BatchUploadResult, UploadFailure
from .process import ProcessState, UploadProcess
from .progress import calculate_upload_summary

__all__ = [
    "UploadOrchestrator",
    "BatchUploadResult",
    "UploadFailure",
    "UploadProcess",
    "ProcessState",
    "calculate_upload_summary",
]
