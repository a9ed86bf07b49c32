"""Adaptive quality parameters: a bang-bang controller driven by the last compression ratio."""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol

from common.keyed_lock import KeyedLock
from common.logging_config import get_logger

logger = get_logger(__name__)

IMAGE_QUALITY = "image_quality"
VIDEO_CRF = "video_crf"

DEFAULT_VALUE = 80

POOR_RATIO_THRESHOLD = 0.95
GOOD_RATIO_THRESHOLD = 0.60


@dataclass(frozen=True)
class ParameterSpec:
    """
    Default, closed range and step of one quality parameter.

    When ``higher_is_smaller`` is set a larger value produces smaller output
    (e.g. a constant rate factor), so the controller moves it the other way.
    """
    name: str
    default: int
    floor: int
    ceiling: int
    step: int
    higher_is_smaller: bool = False

    def clamp(self, value: float) -> int:
        return int(max(self.floor, min(self.ceiling, round(value))))


PARAMETER_SPECS: Dict[str, ParameterSpec] = {
    IMAGE_QUALITY: ParameterSpec(IMAGE_QUALITY, default=80, floor=30, ceiling=95, step=5),
    VIDEO_CRF: ParameterSpec(VIDEO_CRF, default=23, floor=18, ceiling=32, step=5, higher_is_smaller=True),
}


def get_parameter_spec(name: str) -> ParameterSpec:
    spec = PARAMETER_SPECS.get(name)
    if spec is None:
        spec = ParameterSpec(name, default=DEFAULT_VALUE, floor=30, ceiling=95, step=5)
    return spec


@dataclass(frozen=True)
class QualityAdjustment:
    """
    Outcome of one adjust() call; also the audit record written to history.
    """
    name: str
    previous_value: int
    new_value: int
    ratio: float
    created_at: datetime

    @property
    def transition(self) -> str:
        return f"{self.previous_value}->{self.new_value}"


class KeyValueStore(Protocol):
    """Persistence contract for quality parameters and their audit trail."""

    def get_value(self, name: str) -> Optional[str]:
        ...

    def set_value(self, name: str, value: str) -> None:
        ...

    def append_history(self, name: str, transition: str, ratio: float, created_at: datetime) -> None:
        ...

    def list_history(self, name: Optional[str], limit: int) -> List[QualityAdjustment]:
        ...


def next_value(spec: ParameterSpec, previous_value: int, ratio: float) -> int:
    """
    Apply the feedback rule once.

    A ratio above 0.95 means compression barely helped, so quality is traded
    for size; a ratio below 0.60 leaves slack that is spent on quality.
    Only the latest ratio is considered, so alternating inputs oscillate.

    Args:
        spec: Parameter being adjusted
        previous_value: Value used for the run that produced ratio
        ratio: compressed_size / original_size of that run

    Returns:
        New value, clamped to the parameter range
    """
    quality_step = -spec.step if spec.higher_is_smaller else spec.step

    value = previous_value
    if ratio > POOR_RATIO_THRESHOLD:
        value = previous_value - quality_step
    elif ratio < GOOD_RATIO_THRESHOLD:
        value = previous_value + quality_step

    return spec.clamp(value)


class AdaptiveQualityModel:
    """
    Named quality parameters backed by a key-value store.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store
        self._locks = KeyedLock()

    def get(self, name: str) -> int:
        """
        Get the current value of a parameter.

        Never raises: a missing, non-numeric or unreadable value yields the
        parameter default.

        Args:
            name: Parameter name (e.g. 'image_quality')

        Returns:
            Current value within the parameter range
        """
        spec = get_parameter_spec(name)
        try:
            raw = self.store.get_value(name)
        except Exception as e:
            logger.warning(f"Could not read quality parameter {name}, using default {spec.default}: {e}")
            return spec.default

        if raw is None:
            return spec.default

        try:
            return spec.clamp(float(raw))
        except (TypeError, ValueError):
            logger.warning(f"Non-numeric value {raw!r} stored for {name}, using default {spec.default}")
            return spec.default

    async def adjust(
        self,
        name: str,
        previous_value: int,
        original_size_bytes: int,
        compressed_size_bytes: int,
    ) -> QualityAdjustment:
        """
        Update a parameter from the size outcome of the run that used it.

        Args:
            name: Parameter name
            previous_value: Value the run was performed with
            original_size_bytes: Input size of the run
            compressed_size_bytes: Output size of the run

        Returns:
            The recorded adjustment
        """
        spec = get_parameter_spec(name)
        if original_size_bytes > 0:
            ratio = compressed_size_bytes / original_size_bytes
        else:
            ratio = 1.0

        async with self._locks.hold(name):
            previous_value = spec.clamp(previous_value)
            new_value = next_value(spec, previous_value, ratio)
            adjustment = QualityAdjustment(
                name=name,
                previous_value=previous_value,
                new_value=new_value,
                ratio=ratio,
                created_at=datetime.now(timezone.utc),
            )
            await asyncio.to_thread(self.store.set_value, name, str(new_value))
            await asyncio.to_thread(
                self.store.append_history, name, adjustment.transition, ratio, adjustment.created_at
            )

        logger.info(f"Quality parameter {name}: {adjustment.transition} ratio={ratio:.2f}")
        return adjustment

    def history(self, name: Optional[str] = None, limit: int = 50) -> List[QualityAdjustment]:
        """
        Audit records, newest first.

        Args:
            name: Restrict to one parameter (all parameters if None)
            limit: Maximum number of records
        """
        return self.store.list_history(name, limit)
