"""Tests for Bucket setup and object-level operations."""

import hashlib
from datetime import datetime
from unittest.mock import MagicMock, Mock

import pytest
from bson import ObjectId

from gridstore.bucket import Bucket
from gridstore.models import FileRecord
from gridstore.store.base import StoreError
from gridstore.store.memory import MemoryCollection, MemoryDatabase


class TestBucketInit:
    """Test collection naming and index creation."""

    def test_default_collection_names(self, memory_db):
        bucket = Bucket(memory_db)

        assert bucket.name == "fs"
        assert bucket.files.name == "fs.files"
        assert bucket.chunks.name == "fs.chunks"

    def test_custom_bucket_name(self, memory_db):
        bucket = Bucket(memory_db, bucket_name="photos")

        assert bucket.files.name == "photos.files"
        assert bucket.chunks.name == "photos.chunks"
        assert set(memory_db.collections) == {"photos.files", "photos.chunks"}

    def test_chunks_index(self, memory_db):
        Bucket(memory_db)
        index = memory_db["fs.chunks"].indexes["chunksindex"]

        assert index["keys"] == [("files_id", 1), ("n", 1)]
        assert index["unique"] is True
        assert index["background"] is True

    def test_files_index(self, memory_db):
        Bucket(memory_db)
        index = memory_db["fs.files"].indexes["filename"]

        assert index["keys"] == [("uploadDate", 1), ("filesindex", 1)]
        assert index["unique"] is False
        assert index["background"] is True

    def test_index_failure_is_fatal(self):
        failing = Mock(spec=MemoryCollection)
        failing.create_index.side_effect = StoreError("not authorized")
        database = MagicMock()
        database.__getitem__.return_value = failing

        with pytest.raises(StoreError, match="not authorized"):
            Bucket(database)

    def test_repr(self, bucket):
        assert repr(bucket) == "GridFSBucket<fs.files, fs.chunks>"


class TestBucketStoreAndFind:
    """Test storing files and looking them up again."""

    def test_store_returns_object_id(self, bucket):
        file_id = bucket.store(b"hello")
        assert isinstance(file_id, ObjectId)

    def test_find_one(self, bucket, payload):
        data = payload(1000)
        file_id = bucket.store(data, filename="a.bin", content_type="application/octet-stream", chunk_size=256)

        record = bucket.find_one(file_id)

        assert isinstance(record, FileRecord)
        assert record.id == file_id
        assert record.length == 1000
        assert record.chunk_size == 256
        assert record.md5 == hashlib.md5(data).hexdigest()
        assert record.filename == "a.bin"
        assert record.content_type == "application/octet-stream"
        assert isinstance(record.upload_date, datetime)

    def test_find_one_missing(self, bucket):
        assert bucket.find_one(ObjectId()) is None

    def test_find_all(self, bucket):
        ids = {bucket.store(b"one"), bucket.store(b"two"), bucket.store(b"three")}

        assert {record.id for record in bucket.find()} == ids

    def test_find_with_filter(self, bucket):
        bucket.store(b"x", filename="keep.txt")
        bucket.store(b"y", filename="other.txt")

        found = list(bucket.find({"filename": "keep.txt"}))

        assert len(found) == 1
        assert found[0].read() == b"x"

    def test_find_is_lazy_and_restartable(self, bucket):
        bucket.store(b"a")
        bucket.store(b"b")

        first_pass = bucket.find()
        assert next(first_pass).length == 1
        assert len(list(bucket.find())) == 2

    def test_find_skips_undecodable_documents(self, bucket):
        good_id = bucket.store(b"fine")
        bucket.files.insert({"_id": ObjectId(), "length": "lots", "chunkSize": 10})

        records = list(bucket.find())

        assert [record.id for record in records] == [good_id]

    def test_optional_fields_are_omitted(self, bucket):
        file_id = bucket.store(b"data")
        document = next(bucket.files.find({"_id": file_id}))

        assert set(document) == {"_id", "length", "chunkSize", "uploadDate", "md5"}

    def test_optional_fields_are_written(self, bucket):
        file_id = bucket.store(
            b"data",
            filename="f.txt",
            content_type="text/plain",
            metadata={"owner": "alice", "tags": [1, 2]},
            aliases=["g.txt"],
        )
        document = next(bucket.files.find({"_id": file_id}))

        assert document["filename"] == "f.txt"
        assert document["contentType"] == "text/plain"
        assert document["metadata"] == {"owner": "alice", "tags": [1, 2]}
        assert document["aliases"] == ["g.txt"]

        record = bucket.find_one(file_id)
        assert record.metadata == {"owner": "alice", "tags": [1, 2]}
        assert record.aliases == ("g.txt",)


class TestBucketRemoveAndDrop:
    """Test deleting files and whole buckets."""

    def test_remove_deletes_file_and_chunks(self, bucket, payload):
        keep_id = bucket.store(payload(100), chunk_size=10)
        gone_id = bucket.store(payload(100), chunk_size=10)

        bucket.remove(gone_id)

        assert bucket.find_one(gone_id) is None
        assert list(bucket.chunks.find({"files_id": gone_id})) == []
        assert len(list(bucket.chunks.find({"files_id": keep_id}))) == 10
        assert bucket.find_one(keep_id).read() == payload(100)

    def test_remove_missing_file_is_noop(self, bucket):
        bucket.store(b"abc")
        bucket.remove(ObjectId())
        assert len(list(bucket.find())) == 1

    def test_drop_clears_both_collections(self, memory_db):
        bucket = Bucket(memory_db)
        bucket.store(b"abc" * 100, chunk_size=7)

        bucket.drop()

        assert len(memory_db["fs.files"]) == 0
        assert len(memory_db["fs.chunks"]) == 0

    def test_drop_failure_propagates(self, memory_db):
        bucket = Bucket(memory_db)
        bucket.chunks = Mock(spec=MemoryCollection)
        bucket.chunks.drop.side_effect = StoreError("chunks drop failed")

        with pytest.raises(StoreError, match="chunks drop failed"):
            bucket.drop()

        assert len(memory_db["fs.files"]) == 0

    def test_buckets_are_isolated(self):
        database = MemoryDatabase()
        photos = Bucket(database, "photos")
        docs = Bucket(database, "docs")

        photo_id = photos.store(b"jpeg")

        assert docs.find_one(photo_id) is None
        assert photos.find_one(photo_id).read() == b"jpeg"


class TestSQLiteBackedBucket:
    """Run the bucket over the SQLite document store."""

    def test_round_trip(self, sqlite_db, payload):
        bucket = Bucket(sqlite_db)
        data = payload(5000)

        file_id = bucket.store(data, filename="big.bin", chunk_size=1024)
        record = bucket.find_one(file_id)

        assert record.read() == data
        assert record.read(1000, 3000) == data[1000:3000]
        assert record.filename == "big.bin"

    def test_persists_across_instances(self, tmp_path):
        from gridstore.store.sqlite import SQLiteDatabase

        db_path = str(tmp_path / "shared.db")
        file_id = Bucket(SQLiteDatabase(db_path)).store(b"persistent", chunk_size=4)

        reopened = Bucket(SQLiteDatabase(db_path))

        assert reopened.find_one(file_id).read() == b"persistent"

    def test_upload_date_is_timezone_aware(self, sqlite_db):
        bucket = Bucket(sqlite_db)
        record = bucket.find_one(bucket.store(b"x"))

        assert record.upload_date.tzinfo is not None
