"""Tests for reassembly of staged chunks."""

import itertools

import pytest

from common.exceptions import CompletenessError
from common.types import ContentCategory
from staging.reassembler import sanitize_filename


def stage(chunk_store, upload_id, pieces, order=None, filename="file.txt"):
    chunk_store.declare_session(upload_id, len(pieces), filename)
    for index in order if order is not None else range(len(pieces)):
        chunk_store.put(upload_id, index, pieces[index])


class TestAssemble:
    def test_concatenates_in_index_order(self, chunk_store, reassembler):
        stage(chunk_store, "u1", [b"alpha-", b"beta-", b"gamma"])

        artifact = reassembler.assemble("u1", "notes.txt", 3)

        assert artifact.path.read_bytes() == b"alpha-beta-gamma"
        assert artifact.size_bytes == 16
        assert artifact.original_filename == "notes.txt"
        assert artifact.content_category == ContentCategory.DOCUMENT

    def test_reverse_delivery_matches_forward(self, chunk_store, reassembler, sample_text, chunked):
        pieces = chunked(sample_text, 5)

        stage(chunk_store, "forward", pieces)
        stage(chunk_store, "reverse", pieces, order=reversed(range(5)))

        forward = reassembler.assemble("forward", "a.txt", 5)
        reverse = reassembler.assemble("reverse", "a.txt", 5)

        assert forward.path.read_bytes() == reverse.path.read_bytes() == sample_text

    def test_more_than_ten_chunks_sort_numerically(self, chunk_store, reassembler):
        pieces = [f"[{i}]".encode() for i in range(12)]
        stage(chunk_store, "u1", pieces, order=[11, 10, 1, 0, 9, 2, 3, 4, 5, 6, 7, 8])

        artifact = reassembler.assemble("u1", "a.txt", 12)

        assert artifact.path.read_bytes() == b"".join(pieces)

    def test_chunks_and_session_are_consumed(self, chunk_store, reassembler):
        stage(chunk_store, "u1", [b"a", b"b"])

        reassembler.assemble("u1", "a.txt", 2)

        assert chunk_store.list_ordered("u1") == []
        assert chunk_store.get_session("u1") is None

    def test_category_from_extension(self, chunk_store, reassembler):
        stage(chunk_store, "img", [b"not really a png"])
        stage(chunk_store, "vid", [b"not really a video"])

        assert reassembler.assemble("img", "Photo.PNG", 1).content_category == ContentCategory.IMAGE
        assert reassembler.assemble("vid", "clip.mkv", 1).content_category == ContentCategory.VIDEO

    def test_output_name_is_sanitised(self, chunk_store, reassembler):
        stage(chunk_store, "u1", [b"x"])

        artifact = reassembler.assemble("u1", "../my report (final).txt", 1)

        assert artifact.path.parent == reassembler.uploads_dir
        assert artifact.path.name.endswith("my_report__final_.txt")


class TestCompleteness:
    def test_missing_chunk_fails_and_leaves_chunks(self, chunk_store, reassembler, settings):
        chunk_store.declare_session("u1", 3, "a.txt")
        chunk_store.put("u1", 0, b"zero")
        chunk_store.put("u1", 2, b"two")

        with pytest.raises(CompletenessError, match=r"missing indices \[1\]"):
            reassembler.assemble("u1", "a.txt", 3)

        assert [chunk.index for chunk in chunk_store.list_ordered("u1")] == [0, 2]
        assert chunk_store.get_session("u1") is not None
        assert not settings.uploads_dir.exists() or not any(settings.uploads_dir.iterdir())

    def test_unexpected_index_fails(self, chunk_store, reassembler):
        chunk_store.put("u1", 0, b"a")
        chunk_store.put("u1", 1, b"b")
        chunk_store.put("u1", 5, b"c")

        with pytest.raises(CompletenessError, match="unexpected indices"):
            reassembler.assemble("u1", "a.txt", 2)

    def test_nothing_staged(self, reassembler):
        with pytest.raises(CompletenessError):
            reassembler.assemble("ghost", "a.txt", 1)

    @pytest.mark.parametrize("received", [
        subset
        for size in range(0, 5)
        for subset in itertools.combinations(range(4), size)
    ])
    def test_succeeds_iff_all_indices_present(self, chunk_store, reassembler, received):
        for index in reversed(received):
            chunk_store.put("u1", index, bytes([65 + index]))

        if set(received) == {0, 1, 2, 3}:
            artifact = reassembler.assemble("u1", "a.txt", 4)
            assert artifact.path.read_bytes() == b"ABCD"
        else:
            with pytest.raises(CompletenessError):
                reassembler.assemble("u1", "a.txt", 4)

    def test_second_assembly_after_consumption_fails(self, chunk_store, reassembler):
        """
        Chunks are deleted as they are appended, so an upload cannot be
        assembled twice; this is also what an interrupted assembly leaves.
        """
        stage(chunk_store, "u1", [b"a", b"b"])
        reassembler.assemble("u1", "a.txt", 2)

        with pytest.raises(CompletenessError):
            reassembler.assemble("u1", "a.txt", 2)

    def test_interrupted_assembly_is_not_recoverable(self, chunk_store, reassembler, monkeypatch):
        stage(chunk_store, "u1", [b"a", b"b", b"c"])

        original_remove = chunk_store.remove
        calls = []

        def crash_after_first(upload_id, index):
            original_remove(upload_id, index)
            calls.append(index)
            if len(calls) == 1:
                raise RuntimeError("simulated crash")

        monkeypatch.setattr(chunk_store, "remove", crash_after_first)
        with pytest.raises(RuntimeError):
            reassembler.assemble("u1", "a.txt", 3)
        monkeypatch.setattr(chunk_store, "remove", original_remove)

        assert [chunk.index for chunk in chunk_store.list_ordered("u1")] == [1, 2]
        with pytest.raises(CompletenessError, match=r"missing indices \[0\]"):
            reassembler.assemble("u1", "a.txt", 3)


class TestSanitizeFilename:
    def test_keeps_safe_characters(self):
        assert sanitize_filename("report-2024.v2.txt") == "report-2024.v2.txt"

    def test_replaces_unsafe_characters(self):
        assert sanitize_filename("a b/c\\d.txt") == "a_b_c_d.txt"

    def test_never_empty_or_hidden(self):
        assert sanitize_filename("...") == "upload"
        assert not sanitize_filename(".bashrc").startswith(".")
