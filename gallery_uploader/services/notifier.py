"""Subscriber notification sent after new photos land in a gallery."""
import logging
from typing import Optional

from ..models import NotificationResult
from ..protocols import IAPIClient, INotifier

logger = logging.getLogger(__name__)


class SubscriberNotifier(INotifier):
    """
    Asks the gallery API to email the subscribers of a gallery.

    Never raises: delivery problems are logged and reported as zero counts.
    """

    def __init__(
        self,
        api_client: IAPIClient,
        uploader_name: str = "",
        gallery_base_url: Optional[str] = None,
        gallery_name: Optional[str] = None,
    ):
        self._api = api_client
        self._uploader_name = uploader_name
        self._gallery_base_url = gallery_base_url.rstrip("/") if gallery_base_url else None
        self._gallery_name = gallery_name

    def gallery_url(self, gallery_id: str) -> str:
        base = self._gallery_base_url or ""
        return f"{base}/gallery/{gallery_id}"

    async def notify(self, destination_id: str, result) -> NotificationResult:
        new_photos = getattr(result, "uploaded_files", 0)
        if not new_photos:
            logger.debug(f"[notify] No new photos in {destination_id}, nothing to send")
            return NotificationResult()

        try:
            response = await self._api.post(
                f"/galleries/{destination_id}/notify",
                json={
                    "galleryName": self._gallery_name or destination_id,
                    "newPhotosCount": new_photos,
                    "uploaderName": self._uploader_name,
                    "galleryUrl": self.gallery_url(destination_id),
                },
            )
            data = response.json()
        except Exception as e:
            logger.error(f"[notify] Notification for {destination_id} failed: {e}")
            return NotificationResult()

        outcome = NotificationResult(
            success=int(data.get("success", 0) or 0),
            failed=int(data.get("failed", 0) or 0),
        )
        logger.info(
            f"[notify] Notifications sent for {destination_id}: "
            f"{outcome.success} delivered, {outcome.failed} failed"
        )
        return outcome
