"""Services for gallery_uploader."""
from .api_client import HTTPAPIClient
from .compressor import ImageCompressor
from .notifier import NotificationResult, SubscriberNotifier
from .repository import PhotoRepository
from .transport import ObjectStorageTransport, TransferHandle

__all__ = [
    "HTTPAPIClient",
    "ImageCompressor",
    "NotificationResult",
    "ObjectStorageTransport",
    "PhotoRepository",
    "SubscriberNotifier",
    "TransferHandle",
]
