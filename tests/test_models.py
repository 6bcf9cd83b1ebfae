"""Tests for gallery_uploader models."""
from datetime import datetime, timezone

import pytest

from gallery_uploader.models import (
    CompressionOptions,
    SourceFile,
    UploadConfig,
    UploadedPhoto,
    UploaderInfo,
    UploadState,
    UploadSummary,
)


class TestUploadState:
    def test_terminal_states(self):
        assert UploadState.SUCCESS.is_terminal is True
        assert UploadState.ERROR.is_terminal is True
        assert UploadState.RUNNING.is_terminal is False
        assert UploadState.CANCELED.is_terminal is False

    def test_allowed_transitions(self):
        assert UploadState.WAITING.can_transition_to(UploadState.RUNNING)
        assert UploadState.RUNNING.can_transition_to(UploadState.RETRY)
        assert UploadState.RUNNING.can_transition_to(UploadState.CANCELED)
        assert UploadState.CANCELED.can_transition_to(UploadState.RETRY)
        assert UploadState.RETRY.can_transition_to(UploadState.RUNNING)

    def test_rejected_transitions(self):
        assert not UploadState.WAITING.can_transition_to(UploadState.SUCCESS)
        assert not UploadState.RETRY.can_transition_to(UploadState.ERROR)
        assert not UploadState.SUCCESS.can_transition_to(UploadState.RUNNING)
        assert not UploadState.ERROR.can_transition_to(UploadState.RETRY)


class TestSourceFile:
    def test_from_bytes_guesses_content_type(self):
        file = SourceFile.from_bytes("ceremony.png", b"1234")
        assert file.size == 4
        assert file.content_type == "image/png"
        assert file.is_image is True
        assert file.is_audio is False

    def test_from_bytes_unknown_type(self):
        file = SourceFile.from_bytes("notes.unknownext", b"x")
        assert file.content_type == "application/octet-stream"

    def test_from_path(self, tmp_path):
        path = tmp_path / "toast.mp3"
        path.write_bytes(b"abc")
        file = SourceFile.from_path(path)
        assert file.name == "toast.mp3"
        assert file.size == 3
        assert file.is_audio is True
        assert file.path == path

    @pytest.mark.asyncio
    async def test_read_bytes_from_path(self, tmp_path):
        path = tmp_path / "a.jpg"
        path.write_bytes(b"jpeg-data")
        assert await SourceFile.from_path(path).read_bytes() == b"jpeg-data"

    @pytest.mark.asyncio
    async def test_read_bytes_without_content(self):
        with pytest.raises(ValueError):
            await SourceFile(name="ghost.jpg", size=0).read_bytes()

    def test_immutable(self):
        file = SourceFile.from_bytes("a.jpg", b"x")
        with pytest.raises(Exception):
            file.name = "b.jpg"


class TestUploadConfig:
    def test_defaults(self):
        config = UploadConfig()
        assert config.max_retry_attempts == 3
        assert config.retry_delay == 2.0
        assert config.upload_timeout == 30.0
        assert config.chunk_size == 50
        assert config.admission_pause == 0.5
        assert config.compression == CompressionOptions()

    def test_zero_delays_allowed(self):
        config = UploadConfig(retry_delay=0, admission_pause=0, chunk_pause=0)
        assert config.retry_delay == 0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_retry_attempts": 0},
            {"chunk_size": 0},
            {"default_concurrency": 0},
            {"upload_timeout": 0},
            {"retry_delay": -1},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            UploadConfig(**kwargs)

    def test_compression_size_limit(self):
        assert CompressionOptions(max_size_mb=1).max_size_bytes == 1024 * 1024


def test_uploaded_photo_to_dict():
    created = datetime(2026, 6, 20, 18, 30, tzinfo=timezone.utc)
    photo = UploadedPhoto("kiss.jpg", "https://x/kiss.jpg", 10, "image/jpeg", created)
    assert photo.to_dict() == {
        "name": "kiss.jpg",
        "url": "https://x/kiss.jpg",
        "size": 10,
        "contentType": "image/jpeg",
        "createdAt": created.isoformat(),
    }


def test_uploader_info_to_dict():
    assert UploaderInfo("Ana", email="ana@example.com").to_dict() == {
        "uploaderName": "Ana",
        "uploaderEmail": "ana@example.com",
        "uploaderUid": None,
    }


def test_summary_finished():
    assert UploadSummary().finished is False
    assert UploadSummary(total=2, completed=1, failed=1).finished is True
    assert UploadSummary(total=2, completed=1, in_progress=1).finished is False
