"""Tests for the transfer HTTP API."""

import gzip

import pytest
from fastapi.testclient import TestClient

from transfer.main import create_app


@pytest.fixture
def client(settings, fake_transcoder):
    with TestClient(create_app(settings, fake_transcoder)) as test_client:
        yield test_client


def post_chunk(client, upload_id, index, total, data, filename="notes.txt"):
    return client.post(
        "/upload-chunk",
        data={
            "upload_id": upload_id,
            "index": str(index),
            "total": str(total),
            "filename": filename,
        },
        files={"chunk": (filename, data, "application/octet-stream")},
    )


def upload(client, upload_id, pieces, filename="notes.txt"):
    for index, piece in enumerate(pieces):
        response = post_chunk(client, upload_id, index, len(pieces), piece, filename)
        assert response.status_code == 200
    return client.post("/assemble", json={"upload_id": upload_id, "filename": filename})


class TestServiceEndpoints:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy", "service": "transfer"}

    def test_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_request_id_is_generated(self, client):
        assert client.get("/health").headers.get("X-Request-ID")


class TestUploadChunk:
    def test_accepts_chunk(self, client):
        response = post_chunk(client, "u1", 0, 2, b"hello")

        assert response.status_code == 200
        assert response.json() == {"ok": True, "upload_id": "u1", "index": 0}

    def test_index_out_of_range(self, client):
        response = post_chunk(client, "u1", 2, 2, b"hello")

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_CHUNK"

    def test_total_mismatch(self, client):
        post_chunk(client, "u1", 0, 2, b"a")
        response = post_chunk(client, "u1", 1, 5, b"b")

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_CHUNK"

    def test_missing_fields(self, client):
        response = client.post("/upload-chunk", data={"upload_id": "u1"})
        assert response.status_code == 422


class TestAssemble:
    def test_upload_and_download(self, client, sample_text, chunked):
        response = upload(client, "u1", chunked(sample_text, 3))

        assert response.status_code == 201
        body = response.json()
        assert body["ok"] is True
        assert body["content_category"] == "document"
        assert body["download_url"] == f"http://files.test/download/{body['id']}"
        assert 0 < body["size"] < len(sample_text)

        download = client.get(f"/download/{body['id']}")
        assert download.status_code == 200
        assert download.headers["content-type"] == "application/gzip"
        assert "notes.txt.gz" in download.headers["content-disposition"]
        assert int(download.headers["content-length"]) == body["size"]
        assert gzip.decompress(download.content) == sample_text

    def test_incomplete_upload(self, client):
        post_chunk(client, "u1", 0, 3, b"a")
        post_chunk(client, "u1", 2, 3, b"c")

        response = client.post("/assemble", json={"upload_id": "u1", "filename": "notes.txt"})

        assert response.status_code == 409
        assert response.json()["code"] == "UPLOAD_INCOMPLETE"

    def test_unknown_upload(self, client):
        response = client.post("/assemble", json={"upload_id": "nope", "filename": "a.txt"})
        assert response.status_code == 409

    def test_second_assemble_fails(self, client):
        assert upload(client, "u1", [b"data"]).status_code == 201

        response = client.post("/assemble", json={"upload_id": "u1", "filename": "notes.txt"})
        assert response.status_code == 409

    def test_video_category(self, client, fake_transcoder):
        response = upload(client, "v1", [b"v" * 200], filename="clip.mp4")

        assert response.status_code == 201
        assert response.json()["content_category"] == "video"
        assert response.json()["size"] == 100

        download = client.get(f"/download/{response.json()['id']}")
        assert download.headers["content-type"] == "video/mp4"

    def test_empty_filename_rejected(self, client):
        response = client.post("/assemble", json={"upload_id": "u1", "filename": ""})
        assert response.status_code == 422


class TestDownload:
    def test_unknown_id(self, client):
        response = client.get("/download/does-not-exist")

        assert response.status_code == 404
        assert response.json()["code"] == "ARTIFACT_NOT_FOUND"

    def test_download_counts(self, client):
        artifact_id = upload(client, "u1", [b"data"]).json()["id"]

        client.get(f"/download/{artifact_id}")
        client.get(f"/download/{artifact_id}")

        stats = client.get("/stats").json()["uploads"]
        assert stats[0]["download_count"] == 2

    def test_unicode_filename(self, client):
        artifact_id = upload(client, "u1", [b"data"], filename="résumé.txt").json()["id"]

        response = client.get(f"/download/{artifact_id}")

        assert response.headers["content-disposition"] == (
            "attachment; filename*=UTF-8''r%C3%A9sum%C3%A9.txt.gz"
        )


class TestStats:
    def test_empty(self, client):
        assert client.get("/stats").json() == {"uploads": []}

    def test_newest_first_with_limit(self, client):
        for i in range(3):
            upload(client, f"u{i}", [b"data"], filename=f"file{i}.txt")

        uploads = client.get("/stats", params={"limit": 2}).json()["uploads"]

        assert [u["filename"] for u in uploads] == ["file2.txt", "file1.txt"]
        assert set(uploads[0]) == {"id", "filename", "size", "created_at", "download_count"}

    @pytest.mark.parametrize("limit", [0, 101])
    def test_limit_bounds(self, client, limit):
        assert client.get("/stats", params={"limit": limit}).status_code == 422


def test_error_schema_documented(client):
    schema = client.get("/openapi.json").json()

    assert "ErrorResponse" in schema["components"]["schemas"]
    assert "409" in schema["paths"]["/assemble"]["post"]["responses"]
