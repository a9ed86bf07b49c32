"""Shared pytest fixtures for all tests."""

from pathlib import Path

import pytest

from cli.config import Config
from compression.quality_model import AdaptiveQualityModel
from staging.chunk_store import ChunkStore
from staging.reassembler import Reassembler
from transfer.config import Settings
from transfer.database import init_database
from transfer.repositories.catalog_repository import CatalogRepository
from transfer.repositories.quality_repository import QualityRepository
from transfer.services.catalog_service import ArtifactCatalog


class FakeTranscoder:
    """
    Stand-in for ffmpeg: writes a fixed fraction of the input, or fails.
    """

    def __init__(self, output_fraction: float = 0.5, succeed: bool = True, write_output: bool = True):
        self.output_fraction = output_fraction
        self.succeed = succeed
        self.write_output = write_output
        self.calls = []

    async def transcode(self, source: Path, crf: int, destination: Path) -> bool:
        self.calls.append((source, crf, destination))
        if self.write_output:
            data = source.read_bytes()
            destination.write_bytes(data[: int(len(data) * self.output_fraction)])
        return self.succeed


@pytest.fixture
def settings(tmp_path):
    """
    Settings that keep chunks, uploads and the database under tmp_path.
    """
    return Settings.for_data_dir(tmp_path / 'data', base_url='http://files.test')


@pytest.fixture
def database(settings):
    init_database(settings.database_path)
    return settings.database_path


@pytest.fixture
def chunk_store(settings):
    store = ChunkStore(settings.chunks_dir)
    store.ensure_directory()
    return store


@pytest.fixture
def reassembler(chunk_store, settings):
    return Reassembler(chunk_store, settings.uploads_dir)


@pytest.fixture
def quality_repository(database):
    return QualityRepository(database)


@pytest.fixture
def quality_model(quality_repository):
    return AdaptiveQualityModel(quality_repository)


@pytest.fixture
def catalog(database, settings):
    return ArtifactCatalog(CatalogRepository(database), settings.base_url)


@pytest.fixture
def fake_transcoder():
    return FakeTranscoder()


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Returns:
        Path to temporary .adaptive-transfer directory
    """
    config_dir = tmp_path / '.adaptive-transfer'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir):
    """
    Create temporary config instance.

    Returns:
        Config instance with temp config file
    """
    return Config(temp_config_dir / 'config.json')


@pytest.fixture
def sample_text():
    """Compressible text content split later into chunks."""
    return b"The quick brown fox jumps over the lazy dog.\n" * 400


def split_bytes(data: bytes, parts: int):
    """
    Split data into `parts` contiguous pieces (the last one takes the rest).
    """
    size = max(1, len(data) // parts)
    pieces = [data[i * size:(i + 1) * size] for i in range(parts - 1)]
    pieces.append(data[(parts - 1) * size:])
    return pieces


@pytest.fixture
def chunked():
    """Helper fixture: chunked(data, parts) -> list of byte pieces."""
    return split_bytes
