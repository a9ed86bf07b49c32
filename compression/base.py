"""Compression engine interface shared by the image, video and document variants."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from common.logging_config import get_logger
from common.types import Artifact, ContentCategory
from compression.quality_model import QualityAdjustment

logger = get_logger(__name__)

COMPRESSED_SUFFIX = ".cmp"


@dataclass(frozen=True)
class CompressionResult:
    """
    Output of one compression run.

    ``artifact`` is the file to catalog: the compressed output, or the
    untouched input when the engine fell back to passing it through.
    """
    artifact: Artifact
    original_size: int
    compressed_size: int
    media_type: str
    download_suffix: str = ""
    adjustment: Optional[QualityAdjustment] = None
    passed_through: bool = False

    @property
    def ratio(self) -> float:
        if self.original_size <= 0:
            return 1.0
        return self.compressed_size / self.original_size


class CompressionEngine(ABC):
    """
    Consumes a reassembled artifact and produces its compressed replacement.

    Implementations must delete the input file only once the output file
    exists, never before.
    """

    category: ContentCategory

    @abstractmethod
    async def compress(self, artifact: Artifact) -> CompressionResult:
        """
        Compress an artifact.

        Args:
            artifact: Reassembled, uncompressed artifact

        Returns:
            CompressionResult describing the artifact to catalog
        """

    @staticmethod
    def output_path_for(artifact: Artifact) -> Path:
        return artifact.path.with_name(artifact.path.name + COMPRESSED_SUFFIX)

    @staticmethod
    def replace_input(artifact: Artifact, output_path: Path) -> Artifact:
        """
        Swap the input artifact for its compressed output.

        Deletes the input file; the output must already be on disk.
        """
        if not output_path.exists():
            raise FileNotFoundError(f"Compressed output {output_path} does not exist")

        compressed = Artifact(
            path=output_path,
            original_filename=artifact.original_filename,
            size_bytes=output_path.stat().st_size,
            content_category=artifact.content_category,
        )
        artifact.path.unlink(missing_ok=True)
        return compressed

    @staticmethod
    def discard_output(output_path: Path) -> None:
        try:
            output_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove partial output {output_path}: {e}")
