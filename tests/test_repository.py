"""Tests for photo record persistence."""
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from gallery_uploader.errors import APIError
from gallery_uploader.models import UploadedPhoto, UploaderInfo
from gallery_uploader.services.repository import PhotoRepository

CREATED = datetime(2026, 6, 20, 21, 0, tzinfo=timezone.utc)


def _photo(name="cake.jpg") -> UploadedPhoto:
    return UploadedPhoto(name, f"https://x/{name}", 2048, "image/jpeg", CREATED)


def test_prepare_photo():
    document = PhotoRepository.prepare_photo("g1", _photo(), UploaderInfo("Luis", uid="u1"))
    assert document == {
        "galleryId": "g1",
        "name": "cake.jpg",
        "url": "https://x/cake.jpg",
        "size": 2048,
        "contentType": "image/jpeg",
        "createdAt": CREATED.isoformat(),
        "uploaderName": "Luis",
        "uploaderEmail": None,
        "uploaderUid": "u1",
    }


@pytest.mark.asyncio
async def test_save_photo_returns_id():
    api = AsyncMock()
    api.post.return_value = MagicMock(json=MagicMock(return_value={"id": "photo-1"}))

    photo_id = await PhotoRepository(api).save_photo("g1", _photo())

    assert photo_id == "photo-1"
    endpoint = api.post.call_args.args[0]
    assert endpoint == "/galleries/g1/photos"


@pytest.mark.asyncio
async def test_save_photos_collects_failures():
    api = AsyncMock()
    response = MagicMock(json=MagicMock(return_value={"id": "x"}))
    api.post.side_effect = [response, APIError("quota exceeded", status_code=429), response]

    failed = await PhotoRepository(api).save_photos("g1", [_photo("a.jpg"), _photo("b.jpg"), _photo("c.jpg")])

    assert failed == ["b.jpg"]
    assert api.post.await_count == 3
