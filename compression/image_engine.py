"""Lossy JPEG re-encoding for images, steered by the image_quality parameter."""

import asyncio
import mimetypes
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from common.exceptions import TranscodeFailure
from common.logging_config import get_logger
from common.types import Artifact, ContentCategory
from compression.base import CompressionEngine, CompressionResult
from compression.quality_model import IMAGE_QUALITY, AdaptiveQualityModel

logger = get_logger(__name__)

JPEG_MEDIA_TYPE = "image/jpeg"
JPEG_SUFFIXES = (".jpg", ".jpeg")


def reencode_jpeg(source: Path, destination: Path, quality: int) -> None:
    """
    Re-encode an image file as JPEG.

    Raises:
        TranscodeFailure: If the input cannot be decoded or encoded
    """
    try:
        with Image.open(source) as img:
            if img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            img.save(destination, format="JPEG", quality=quality, optimize=True)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise TranscodeFailure(f"Could not re-encode {source.name}: {e}") from e


class ImageEngine(CompressionEngine):
    """Re-encodes images with the current image_quality and feeds the ratio back."""

    category = ContentCategory.IMAGE

    def __init__(self, quality_model: AdaptiveQualityModel):
        self.quality_model = quality_model

    async def compress(self, artifact: Artifact) -> CompressionResult:
        quality = self.quality_model.get(IMAGE_QUALITY)
        output_path = self.output_path_for(artifact)

        try:
            await asyncio.to_thread(reencode_jpeg, artifact.path, output_path, quality)
        except TranscodeFailure as e:
            self.discard_output(output_path)
            logger.warning(f"Image compression failed, passing {artifact.original_filename} through: {e}")
            media_type, _ = mimetypes.guess_type(artifact.original_filename)
            return CompressionResult(
                artifact=artifact,
                original_size=artifact.size_bytes,
                compressed_size=artifact.size_bytes,
                media_type=media_type or "application/octet-stream",
                passed_through=True,
            )

        compressed = self.replace_input(artifact, output_path)
        adjustment = await self.quality_model.adjust(
            IMAGE_QUALITY, quality, artifact.size_bytes, compressed.size_bytes
        )

        logger.info(
            f"Re-encoded {artifact.original_filename} at quality {quality}: "
            f"{artifact.size_bytes} -> {compressed.size_bytes} bytes"
        )

        suffix = "" if artifact.original_filename.lower().endswith(JPEG_SUFFIXES) else ".jpg"
        return CompressionResult(
            artifact=compressed,
            original_size=artifact.size_bytes,
            compressed_size=compressed.size_bytes,
            media_type=JPEG_MEDIA_TYPE,
            download_suffix=suffix,
            adjustment=adjustment,
        )
