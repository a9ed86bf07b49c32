"""Video transcoding through an external ffmpeg process, steered by video_crf."""

import asyncio
import mimetypes
from pathlib import Path
from typing import Protocol

from common.exceptions import TranscodeFailure
from common.logging_config import get_logger
from common.types import Artifact, ContentCategory
from compression.base import CompressionEngine, CompressionResult
from compression.quality_model import VIDEO_CRF, AdaptiveQualityModel, get_parameter_spec

logger = get_logger(__name__)

MP4_MEDIA_TYPE = "video/mp4"
STDERR_TAIL_BYTES = 2000


class Transcoder(Protocol):
    """Black-box transcoder: input path, rate factor, output path -> success flag."""

    async def transcode(self, source: Path, crf: int, destination: Path) -> bool:
        ...


class FfmpegTranscoder:
    """
    Runs ``ffmpeg -y -i <in> -vcodec libx264 -crf <crf> <out>`` as a subprocess.
    """

    def __init__(self, binary: str = "ffmpeg"):
        self.binary = binary

    def build_command(self, source: Path, crf: int, destination: Path) -> list[str]:
        return [
            self.binary,
            "-y",
            "-loglevel", "error",
            "-i", str(source),
            "-vcodec", "libx264",
            "-crf", str(crf),
            "-f", "mp4",
            str(destination),
        ]

    async def transcode(self, source: Path, crf: int, destination: Path) -> bool:
        command = self.build_command(source, crf, destination)
        logger.debug(f"Running transcoder: {' '.join(command)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.warning(f"Could not start transcoder {self.binary}: {e}")
            return False

        _, stderr = await process.communicate()
        if process.returncode != 0:
            tail = stderr[-STDERR_TAIL_BYTES:].decode("utf-8", errors="replace").strip()
            logger.warning(f"Transcoder exited with status {process.returncode}: {tail}")
            return False

        return True


def derive_crf(stored_value: float) -> int:
    """Clamp a stored video_crf value into the range ffmpeg is allowed to use."""
    return get_parameter_spec(VIDEO_CRF).clamp(stored_value)


class VideoEngine(CompressionEngine):
    """
    Transcodes videos; a failed transcode is not fatal and the upload keeps
    its uncompressed artifact.
    """

    category = ContentCategory.VIDEO

    def __init__(self, quality_model: AdaptiveQualityModel, transcoder: Transcoder):
        self.quality_model = quality_model
        self.transcoder = transcoder

    @staticmethod
    def output_path_for(artifact: Artifact) -> Path:
        return artifact.path.with_name(artifact.path.name + ".cmp.mp4")

    async def compress(self, artifact: Artifact) -> CompressionResult:
        crf = derive_crf(self.quality_model.get(VIDEO_CRF))
        output_path = self.output_path_for(artifact)

        try:
            succeeded = await self.transcoder.transcode(artifact.path, crf, output_path)
            if not succeeded:
                raise TranscodeFailure(f"Transcoding {artifact.original_filename} at crf {crf} failed")
            if not output_path.exists() or output_path.stat().st_size == 0:
                raise TranscodeFailure(f"Transcoding {artifact.original_filename} produced no output")
        except TranscodeFailure as e:
            self.discard_output(output_path)
            logger.warning(f"{e}; keeping the uncompressed video")
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
            VIDEO_CRF, crf, artifact.size_bytes, compressed.size_bytes
        )

        logger.info(
            f"Transcoded {artifact.original_filename} at crf {crf}: "
            f"{artifact.size_bytes} -> {compressed.size_bytes} bytes"
        )

        suffix = "" if artifact.original_filename.lower().endswith(".mp4") else ".mp4"
        return CompressionResult(
            artifact=compressed,
            original_size=artifact.size_bytes,
            compressed_size=compressed.size_bytes,
            media_type=MP4_MEDIA_TYPE,
            download_suffix=suffix,
            adjustment=adjustment,
        )
