"""Maps each content category to exactly one compression engine."""

from typing import Dict, Iterable

from common.types import ContentCategory
from compression.base import CompressionEngine
from compression.document_engine import DocumentEngine
from compression.image_engine import ImageEngine
from compression.quality_model import AdaptiveQualityModel
from compression.video_engine import FfmpegTranscoder, Transcoder, VideoEngine


class EngineRegistry:
    """
    Lookup table from ContentCategory to its CompressionEngine.
    """

    def __init__(self, engines: Iterable[CompressionEngine]):
        self._engines: Dict[ContentCategory, CompressionEngine] = {}
        for engine in engines:
            if engine.category in self._engines:
                raise ValueError(f"Duplicate engine for category {engine.category.value}")
            self._engines[engine.category] = engine

        missing = set(ContentCategory) - set(self._engines)
        if missing:
            names = ", ".join(sorted(category.value for category in missing))
            raise ValueError(f"No compression engine registered for: {names}")

    @classmethod
    def default(
        cls,
        quality_model: AdaptiveQualityModel,
        transcoder: Transcoder = None,
    ) -> "EngineRegistry":
        """
        Build the standard image/video/document registry.

        Args:
            quality_model: Shared adaptive quality model
            transcoder: Video transcoder (ffmpeg on PATH if None)
        """
        return cls([
            ImageEngine(quality_model),
            VideoEngine(quality_model, transcoder or FfmpegTranscoder()),
            DocumentEngine(),
        ])

    def for_category(self, category: ContentCategory) -> CompressionEngine:
        return self._engines[category]
