"""
Compressor Service - Single Responsibility: shrink photos before upload.

Uses Pillow to downscale and re-encode large images as JPEG.
Anything that is not a still image, or is already small enough, passes
through untouched.
"""
import asyncio
import io
import logging
from pathlib import Path
from typing import Optional

from PIL import Image

from ..models import CompressionOptions, SourceFile
from ..protocols import ICompressor

logger = logging.getLogger(__name__)

# Animated or vector formats are not re-encoded
_PASSTHROUGH_TYPES = {"image/gif", "image/svg+xml"}


class ImageCompressor(ICompressor):
    """
    Service for compressing photos.

    Never raises: on any error the original file is returned.
    """

    START_QUALITY = 85
    MIN_QUALITY = 40
    QUALITY_STEP = 10

    async def compress(
        self,
        file: SourceFile,
        options: Optional[CompressionOptions] = None,
    ) -> SourceFile:
        """
        Compress file if it is an image larger than options.max_size_mb.

        Args:
            file: File to compress
            options: Size and dimension limits

        Returns:
            A new in-memory SourceFile, or file itself when nothing was gained
        """
        options = options or CompressionOptions()

        if not file.is_image or file.content_type in _PASSTHROUGH_TYPES:
            return file
        if file.size <= options.max_size_bytes:
            return file

        try:
            data = await file.read_bytes()
            compressed = await asyncio.to_thread(self._compress_bytes, data, options)
        except Exception as e:
            logger.warning(f"[compressor] Could not compress {file.name}, using original: {e}")
            return file

        if len(compressed) >= file.size:
            logger.debug(f"[compressor] No gain for {file.name}, keeping original")
            return file

        logger.info(
            f"[compressor] {file.name}: {file.size / 1024:.2f} KB -> {len(compressed) / 1024:.2f} KB"
        )
        return SourceFile.from_bytes(f"{Path(file.name).stem}.jpg", compressed, "image/jpeg")

    def _compress_bytes(self, data: bytes, options: CompressionOptions) -> bytes:
        """Synchronous resize + re-encode, run in a worker thread."""
        with Image.open(io.BytesIO(data)) as source:
            exif = source.info.get("exif")
            image = source.convert("RGB") if source.mode not in ("RGB", "L") else source.copy()

        image.thumbnail((options.max_dimension, options.max_dimension), Image.Resampling.LANCZOS)

        quality = self.START_QUALITY
        while True:
            buffer = io.BytesIO()
            save_kwargs = {"format": "JPEG", "quality": quality, "optimize": True}
            if exif:
                save_kwargs["exif"] = exif
            image.save(buffer, **save_kwargs)
            output = buffer.getvalue()

            if len(output) <= options.max_size_bytes or quality <= self.MIN_QUALITY:
                return output
            quality = max(self.MIN_QUALITY, quality - self.QUALITY_STEP)
