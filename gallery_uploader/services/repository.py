"""
Photo Repository - Single Responsibility: persist uploaded photo records.

Implements Repository Pattern for data access. The orchestrator never calls
this itself; callers store the records it returns.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

from ..models import UploadedPhoto, UploaderInfo
from ..protocols import IAPIClient

logger = logging.getLogger(__name__)


class PhotoRepository:
    """Repository for saving photo metadata to the gallery API."""

    def __init__(self, api_client: IAPIClient):
        """
        Initialize repository.

        Args:
            api_client: HTTP client for API calls
        """
        self._api = api_client

    @staticmethod
    def prepare_photo(
        gallery_id: str,
        photo: UploadedPhoto,
        uploader: Optional[UploaderInfo] = None,
    ) -> Dict[str, Any]:
        """Prepare the photo document sent to the API."""
        document = {"galleryId": gallery_id, **photo.to_dict()}
        if uploader:
            document.update(uploader.to_dict())
        return document

    async def save_photo(
        self,
        gallery_id: str,
        photo: UploadedPhoto,
        uploader: Optional[UploaderInfo] = None,
    ) -> Optional[str]:
        """
        Save one photo record.

        Returns:
            Id assigned by the API, if it returned one
        """
        response = await self._api.post(
            f"/galleries/{gallery_id}/photos",
            json=self.prepare_photo(gallery_id, photo, uploader),
        )
        try:
            return response.json().get("id")
        except (AttributeError, ValueError):
            return None

    async def save_photos(
        self,
        gallery_id: str,
        photos: Sequence[UploadedPhoto],
        uploader: Optional[UploaderInfo] = None,
    ) -> List[str]:
        """
        Save every record of a batch, continuing past individual failures.

        Returns:
            Names of the photos that could not be saved
        """
        failed = []
        for photo in photos:
            try:
                await self.save_photo(gallery_id, photo, uploader)
            except Exception as e:
                logger.error(f"[repository] Could not save {photo.name}: {e}")
                failed.append(photo.name)
        return failed
