"""Tests for decoding FileRecord and Chunk from stored documents."""

from datetime import datetime, timezone
from unittest.mock import Mock

import pytest
from bson import Binary, ObjectId

from gridstore.models import Chunk, FileRecord
from gridstore.repositories.chunk_repository import ChunkRepository
from gridstore.store.base import StoreError


def files_document(**overrides):
    document = {
        "_id": ObjectId(),
        "length": 12,
        "chunkSize": 5,
        "uploadDate": datetime(2024, 1, 1, tzinfo=timezone.utc),
        "md5": "d41d8cd98f00b204e9800998ecf8427e",
    }
    document.update(overrides)
    return document


@pytest.fixture
def chunk_repo():
    return Mock(spec=ChunkRepository)


class TestFileRecordFromDocument:
    def test_required_fields(self, chunk_repo):
        document = files_document()
        record = FileRecord.from_document(document, chunk_repo)

        assert record.id == document["_id"]
        assert record.length == 12
        assert record.chunk_size == 5
        assert record.upload_date == document["uploadDate"]
        assert record.md5 == document["md5"]
        assert record.filename is None
        assert record.content_type is None
        assert record.aliases is None
        assert record.metadata is None

    @pytest.mark.parametrize("field", ["_id", "length", "chunkSize", "uploadDate", "md5"])
    def test_missing_required_field(self, chunk_repo, field):
        document = files_document()
        del document[field]

        assert FileRecord.from_document(document, chunk_repo) is None

    @pytest.mark.parametrize("field,value", [
        ("_id", "not-an-object-id"),
        ("length", "twelve"),
        ("length", -1),
        ("chunkSize", 0),
        ("uploadDate", "2024-01-01"),
        ("md5", 12345),
    ])
    def test_wrong_type(self, chunk_repo, field, value):
        assert FileRecord.from_document(files_document(**{field: value}), chunk_repo) is None

    def test_aliases_keep_only_strings(self, chunk_repo):
        record = FileRecord.from_document(files_document(aliases=["a", 1, None, "b", {"c": 1}]), chunk_repo)
        assert record.aliases == ("a", "b")

    def test_non_list_aliases(self, chunk_repo):
        record = FileRecord.from_document(files_document(aliases="a"), chunk_repo)
        assert record.aliases is None

    def test_optional_fields(self, chunk_repo):
        record = FileRecord.from_document(
            files_document(filename="x.txt", contentType="text/plain", metadata=[1, "two"]),
            chunk_repo,
        )
        assert record.filename == "x.txt"
        assert record.content_type == "text/plain"
        assert record.metadata == [1, "two"]

    def test_non_string_filename_is_ignored(self, chunk_repo):
        record = FileRecord.from_document(files_document(filename=42, contentType=["x"]), chunk_repo)

        assert record is not None
        assert record.filename is None
        assert record.content_type is None

    def test_records_are_immutable(self, chunk_repo):
        record = FileRecord.from_document(files_document(), chunk_repo)
        with pytest.raises(AttributeError):
            record.length = 99


class TestChunkFromDocument:
    def test_valid(self):
        files_id = ObjectId()
        chunk = Chunk.from_document({"_id": ObjectId(), "files_id": files_id, "n": 3, "data": Binary(b"abc", 0)})

        assert chunk.files_id == files_id
        assert chunk.n == 3
        assert chunk.data == b"abc"

    def test_plain_bytes_data(self):
        chunk = Chunk.from_document({"_id": ObjectId(), "files_id": ObjectId(), "n": 0, "data": b"abc"})
        assert chunk.data == b"abc"

    @pytest.mark.parametrize("field", ["_id", "files_id", "data"])
    def test_missing_required_field(self, field):
        document = {"_id": ObjectId(), "files_id": ObjectId(), "n": 0, "data": b"abc"}
        del document[field]

        assert Chunk.from_document(document) is None

    def test_string_data_is_rejected(self):
        assert Chunk.from_document({"_id": ObjectId(), "files_id": ObjectId(), "n": 0, "data": "abc"}) is None

    @pytest.mark.parametrize("n", ["1", None, True])
    def test_unreadable_index_defaults(self, n):
        chunk = Chunk.from_document({"_id": ObjectId(), "files_id": ObjectId(), "n": n, "data": b"abc"})
        assert chunk.n == -1


class TestChunkIteration:
    def test_chunked_in_order(self, bucket, payload):
        data = payload(23)
        record = bucket.find_one(bucket.store(data, chunk_size=5))

        chunks = list(record.chunked())

        assert [chunk.n for chunk in chunks] == [0, 1, 2, 3, 4]
        assert b"".join(chunk.data for chunk in chunks) == data
        assert all(chunk.files_id == record.id for chunk in chunks)

    def test_iterating_record(self, bucket, payload):
        record = bucket.find_one(bucket.store(payload(12), chunk_size=5))
        assert [chunk.n for chunk in record] == [0, 1, 2]

    def test_chunked_can_be_reissued(self, bucket, payload):
        record = bucket.find_one(bucket.store(payload(12), chunk_size=5))

        first = record.chunked()
        next(first)

        assert len(list(record.chunked())) == 3

    def test_chunked_propagates_store_errors(self, chunk_repo):
        chunk_repo.find_chunks.return_value = iter_raising(StoreError("connection lost"))
        record = FileRecord.from_document(files_document(), chunk_repo)

        with pytest.raises(StoreError):
            list(record.chunked())

    def test_iteration_is_lenient_on_store_errors(self, chunk_repo, caplog):
        chunk_repo.find_chunks.return_value = iter_raising(StoreError("connection lost"))
        record = FileRecord.from_document(files_document(), chunk_repo)

        assert list(record) == []
        assert "connection lost" in caplog.text


def iter_raising(error):
    raise error
    yield
