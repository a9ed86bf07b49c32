"""Content-aware compression engines and the adaptive quality model."""

from compression.base import CompressionEngine, CompressionResult
from compression.classifier import classify
from compression.quality_model import AdaptiveQualityModel, QualityAdjustment
from compression.registry import EngineRegistry

__all__ = [
    "AdaptiveQualityModel",
    "CompressionEngine",
    "CompressionResult",
    "EngineRegistry",
    "QualityAdjustment",
    "classify",
]
