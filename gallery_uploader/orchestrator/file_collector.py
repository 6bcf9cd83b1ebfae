"""File collection utilities for folder uploads."""
import mimetypes
from pathlib import Path
from typing import Iterable, List


def is_media(path: Path) -> bool:
    """Photos and voice memos are the only uploadable media."""
    content_type, _ = mimetypes.guess_type(path.name)
    return bool(content_type) and content_type.split("/", 1)[0] in ("image", "audio")


class FileCollector:
    """Collects media files from folders."""

    @staticmethod
    def collect_files(folder: Path) -> List[Path]:
        """
        Collect all media files recursively, skipping hidden entries.

        Args:
            folder: Root folder to scan

        Returns:
            Sorted list of media file paths
        """
        files = []
        for item in Path(folder).rglob("*"):
            if any(part.startswith(".") for part in item.relative_to(folder).parts):
                continue
            if item.is_file() and is_media(item):
                files.append(item)
        return sorted(files)

    @classmethod
    def expand(cls, sources: Iterable[Path]) -> List[Path]:
        """Expand a mix of files and folders, keeping the given order."""
        files: List[Path] = []
        for source in sources:
            source = Path(source)
            if source.is_dir():
                files.extend(cls.collect_files(source))
            elif source.is_file():
                files.append(source)
        return files
