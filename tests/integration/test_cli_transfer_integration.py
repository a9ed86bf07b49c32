"""
Integration tests: the CLI client talking to a real transfer app in-process.
"""

import gzip

import pytest
from fastapi.testclient import TestClient

from cli.main import run, build_parser
from cli.transfer_client import TransferClient
from transfer.main import create_app


@pytest.fixture
def cli_client(settings, fake_transcoder, temp_config):
    temp_config.data['chunk_size'] = 1000
    client = TransferClient(temp_config)
    client.session.close()
    with TestClient(create_app(settings, fake_transcoder)) as test_client:
        client.session = test_client
        yield client


def artifact_id_from(result: str) -> str:
    link = result.rsplit("Download link: ", 1)[1].strip()
    return link.rsplit("/", 1)[1]


class TestUploadDownloadFlow:
    def test_text_round_trip(self, cli_client, tmp_path, sample_text):
        source = tmp_path / "notes.txt"
        source.write_bytes(sample_text)

        result = cli_client.upload_file(str(source))
        assert "document" in result
        assert "Download link: http://files.test/download/" in result

        output_dir = tmp_path / "downloads"
        message = cli_client.download(artifact_id_from(result), str(output_dir))

        downloaded = output_dir / "notes.txt.gz"
        assert message.startswith("Downloaded notes.txt.gz")
        assert gzip.decompress(downloaded.read_bytes()) == sample_text

    def test_empty_file(self, cli_client, tmp_path):
        source = tmp_path / "empty.txt"
        source.write_bytes(b"")

        result = cli_client.upload_file(str(source))
        output_dir = tmp_path / "downloads"
        cli_client.download(artifact_id_from(result), str(output_dir))

        assert gzip.decompress((output_dir / "empty.txt.gz").read_bytes()) == b""

    def test_video_goes_through_transcoder(self, cli_client, tmp_path, fake_transcoder):
        source = tmp_path / "clip.mp4"
        source.write_bytes(b"v" * 2500)

        result = cli_client.upload_file(str(source))

        assert "video" in result
        assert len(fake_transcoder.calls) == 1

    def test_stats_lists_uploads(self, cli_client, tmp_path):
        for name in ("first.txt", "second.txt"):
            path = tmp_path / name
            path.write_bytes(b"hello world")
            cli_client.upload_file(str(path))

        lines = cli_client.recent_uploads(10).splitlines()

        assert len(lines) == 2
        assert "second.txt" in lines[0]
        assert "downloads=0" in lines[0]

    def test_unknown_download(self, cli_client, tmp_path):
        assert cli_client.download("missing", str(tmp_path)) == "Download failed: No file with that id exists."

    def test_run_dispatches_commands(self, cli_client, tmp_path):
        source = tmp_path / "a.txt"
        source.write_bytes(b"abc")

        upload_result = run(build_parser().parse_args(['upload', str(source)]), cli_client)
        stats_result = run(build_parser().parse_args(['stats', '--limit', '1']), cli_client)

        assert "Download link" in upload_result
        assert "a.txt" in stats_result
