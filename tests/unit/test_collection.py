"""
Unit tests for image collections: admission, independent per-store
writes and URL resolution as copies land.
"""

import asyncio

import pytest

from conftest import image_size, make_image
from easyimages.core.images import (
    FileMetadata,
    ImageCollectionFactory,
    StorageError,
    StorageStatus,
)
from easyimages.infrastructure.storage import MockObjectStore, S3ObjectStore


def jpeg_metadata(data: bytes, name: str = "photo.jpg") -> FileMetadata:
    return FileMetadata(name=name, content_type="image/jpeg", size_bytes=len(data))


class GatedObjectStore(MockObjectStore):
    """Mock store whose writes wait until the test opens the gate."""

    def __init__(self) -> None:
        super().__init__()
        self.gate = asyncio.Event()

    async def put_object(self, store, key, data, content_type):
        await self.gate.wait()
        await super().put_object(store, key, data, content_type)


class FailingStore(MockObjectStore):
    """Mock store that refuses writes to one store."""

    def __init__(self, failing_store: str) -> None:
        super().__init__()
        self.failing_store = failing_store

    async def put_object(self, store, key, data, content_type):
        if store.name == self.failing_store:
            raise StorageError("bucket unavailable")
        await super().put_object(store, key, data, content_type)


class ExplodingStore(MockObjectStore):
    """Mock store whose client blows up with a non-storage error for one store."""

    def __init__(self, failing_store: str) -> None:
        super().__init__()
        self.failing_store = failing_store

    async def put_object(self, store, key, data, content_type):
        if store.name == self.failing_store:
            raise RuntimeError("client misconfigured")
        await super().put_object(store, key, data, content_type)


class TestEndToEnd:
    """The avatars scenario: one 2000x1000 JPEG, one 50x50 thumb."""

    async def test_original_and_thumb_are_stored(self, public_factory, object_store):
        avatars = public_factory.create_collection("avatars", {"thumb": [50, 50]})
        data = make_image(2000, 1000)

        record = await avatars.insert(jpeg_metadata(data), data)
        await avatars.wait_until_stored(record)

        original_key = f"avatars-original/avatars/{record.id}-photo.jpg"
        thumb_key = f"avatars-thumb/avatars/{record.id}-photo.jpg"

        assert object_store.keys("photos") == sorted([original_key, thumb_key])
        assert await object_store.get_object(avatars.store("avatars-original"), original_key) == data
        thumb = await object_store.get_object(avatars.store("avatars-thumb"), thumb_key)
        assert image_size(thumb) == (50, 50)

    async def test_public_url_is_null_until_thumb_is_written(self, transformer, on_invalid):
        store = GatedObjectStore()
        factory = ImageCollectionFactory(
            "id", "secret", "photos",
            object_store=store,
            public_read=True,
            transformer=transformer,
            on_invalid=on_invalid,
        )
        avatars = factory.create_collection("avatars", {"thumb": [50, 50]})
        data = make_image(2000, 1000)

        record = await avatars.insert(jpeg_metadata(data), data)

        assert record is not None
        assert avatars.url(record, "avatars-thumb") is None

        store.gate.set()
        await avatars.wait_until_stored(record)

        assert avatars.url(record, "avatars-thumb") == (
            f"https://photos.s3.amazonaws.com/avatars-thumb/avatars/{record.id}-photo.jpg"
        )

    async def test_insert_returns_before_writes_finish(self, transformer):
        store = GatedObjectStore()
        factory = ImageCollectionFactory(
            "id", "secret", "photos", object_store=store, transformer=transformer,
        )
        avatars = factory.create_collection("avatars", {"thumb": [50, 50]})
        data = make_image(200, 100)

        record = await avatars.insert(jpeg_metadata(data), data)

        assert set(record.store_status.values()) == {StorageStatus.PENDING}
        assert not record.is_settled

        store.gate.set()
        await factory.drain()

        assert record.is_settled
        assert set(record.store_status.values()) == {StorageStatus.STORED}

    async def test_objects_written_with_factory_acl(self, public_factory, object_store):
        avatars = public_factory.create_collection("avatars", {"thumb": [50, 50]})
        data = make_image(100, 100)

        record = await avatars.insert(jpeg_metadata(data), data)
        await avatars.wait_until_stored(record)

        meta = object_store.metadata("photos", f"avatars-thumb/avatars/{record.id}-photo.jpg")
        assert meta["acl"] == "public-read"
        assert meta["content_type"] == "image/jpeg"

    async def test_private_collection_serves_through_server(self, private_factory):
        avatars = private_factory.create_collection("avatars", {"thumb": [50, 50]})
        data = make_image(100, 100)

        record = await avatars.insert(jpeg_metadata(data), data)
        await avatars.wait_until_stored(record)

        url = avatars.url(record, "avatars-thumb")
        assert url == f"/cfs/files/avatars/{record.id}/photo.jpg?store=avatars-thumb"
        assert not url.startswith(private_factory.bucket_url)


class TestAdmission:
    async def test_rejected_file_touches_no_store(self, private_factory, object_store, on_invalid):
        avatars = private_factory.create_collection("avatars", {"thumb": [50, 50]})
        data = b"plain text"

        record = await avatars.insert(
            FileMetadata(name="notes.png", content_type="text/plain", size_bytes=len(data)),
            data,
        )
        await avatars.drain()

        assert record is None
        assert object_store.keys() == []
        assert len(on_invalid.reasons) == 1

    async def test_oversized_file_rejected(self, private_factory, on_invalid):
        avatars = private_factory.create_collection("avatars", {"thumb": [50, 50]})

        record = await avatars.insert(
            FileMetadata(name="huge.jpg", content_type="image/jpeg", size_bytes=10 * 1024 * 1024 + 1),
            b"",
        )

        assert record is None
        assert "too large" in on_invalid.reasons[0]

    async def test_get_returns_accepted_record(self, private_factory):
        avatars = private_factory.create_collection("avatars", {})
        data = make_image(10, 10)

        record = await avatars.insert(jpeg_metadata(data), data)

        assert avatars.get(record.id) is record
        assert avatars.get("missing") is None
        await avatars.drain()


class TestVariantIsolation:
    """A failure in one store never affects its siblings."""

    async def test_undecodable_image_keeps_original(self, private_factory, object_store):
        avatars = private_factory.create_collection("avatars", {"thumb": [50, 50], "big": [500, 500]})
        data = b"\xff\xd8 not really a jpeg"

        record = await avatars.insert(jpeg_metadata(data), data)
        await avatars.wait_until_stored(record)

        assert record.status("avatars-original") == StorageStatus.STORED
        assert record.status("avatars-thumb") == StorageStatus.FAILED
        assert record.status("avatars-big") == StorageStatus.FAILED
        assert object_store.keys() == [f"avatars-original/avatars/{record.id}-photo.jpg"]

    async def test_storage_failure_is_isolated(self, transformer):
        store = FailingStore("avatars-thumb")
        factory = ImageCollectionFactory(
            "id", "secret", "photos", object_store=store, transformer=transformer,
        )
        avatars = factory.create_collection("avatars", {"thumb": [50, 50], "normal": [200, 100]})
        data = make_image(400, 400)

        record = await avatars.insert(jpeg_metadata(data), data)
        await avatars.wait_until_stored(record)

        assert record.status("avatars-thumb") == StorageStatus.FAILED
        assert record.status("avatars-original") == StorageStatus.STORED
        assert record.status("avatars-normal") == StorageStatus.STORED
        assert avatars.url(record, "avatars-thumb") is None

    async def test_degraded_mode_skips_variants_only(self, object_store):
        factory = ImageCollectionFactory(
            "id", "secret", "photos", object_store=object_store, transformer=None,
        )
        avatars = factory.create_collection("avatars", {"thumb": [50, 50]})
        data = make_image(400, 400)

        record = await avatars.insert(jpeg_metadata(data), data)
        await avatars.wait_until_stored(record)

        assert record.status("avatars-original") == StorageStatus.STORED
        assert record.status("avatars-thumb") == StorageStatus.SKIPPED
        assert object_store.keys() == [f"avatars-original/avatars/{record.id}-photo.jpg"]
        assert avatars.url(record, "avatars-thumb") is None


class TestRead:
    async def test_read_returns_stored_bytes(self, private_factory):
        avatars = private_factory.create_collection("avatars", {})
        data = make_image(10, 10)

        record = await avatars.insert(jpeg_metadata(data), data)
        await avatars.wait_until_stored(record)

        assert await avatars.read(record, avatars.store("avatars-original")) == data

    async def test_read_missing_object_raises(self, private_factory, object_store):
        avatars = private_factory.create_collection("avatars", {})
        data = make_image(10, 10)
        record = await avatars.insert(jpeg_metadata(data), data)
        await avatars.wait_until_stored(record)

        await object_store.delete_object(
            avatars.store("avatars-original"),
            avatars.object_key(record, avatars.store("avatars-original")),
        )

        with pytest.raises(StorageError):
            await avatars.read(record, avatars.store("avatars-original"))


class TestUnexpectedErrors:
    """Errors outside TransformError/StorageError still end the copy's lifecycle."""

    async def test_unexpected_error_marks_copy_failed(self, transformer):
        store = ExplodingStore("avatars-thumb")
        factory = ImageCollectionFactory(
            "id", "secret", "photos", object_store=store, transformer=transformer,
        )
        avatars = factory.create_collection("avatars", {"thumb": [50, 50]})
        data = make_image(200, 200)

        record = await avatars.insert(jpeg_metadata(data), data)
        await avatars.wait_until_stored(record)

        assert record.status("avatars-thumb") == StorageStatus.FAILED
        assert record.status("avatars-original") == StorageStatus.STORED
        assert record.is_settled

    async def test_drain_completes_after_unexpected_error(self, transformer):
        store = ExplodingStore("avatars-original")
        factory = ImageCollectionFactory(
            "id", "secret", "photos", object_store=store, transformer=transformer,
        )
        avatars = factory.create_collection("avatars", {"thumb": [50, 50]})
        data = make_image(200, 200)

        record = await avatars.insert(jpeg_metadata(data), data)
        await factory.drain()

        assert record.status("avatars-original") == StorageStatus.FAILED
        assert record.status("avatars-thumb") == StorageStatus.STORED

    async def test_bad_s3_region_fails_the_copy(self):
        factory = ImageCollectionFactory(
            "id", "secret", "photos", object_store=S3ObjectStore(region="eu west 1"),
        )
        avatars = factory.create_collection("avatars", {})
        data = make_image(20, 20)

        record = await avatars.insert(jpeg_metadata(data), data)
        await avatars.wait_until_stored(record)

        assert record.status("avatars-original") == StorageStatus.FAILED


class TestVariantContentType:
    async def test_variant_type_follows_encoded_format(self, private_factory, object_store):
        """A JPEG declared as PNG is stored as image/jpeg once re-encoded."""
        avatars = private_factory.create_collection("avatars", {"thumb": [50, 50]})
        data = make_image(200, 200)
        metadata = FileMetadata(name="photo.png", content_type="image/png", size_bytes=len(data))

        record = await avatars.insert(metadata, data)
        await avatars.wait_until_stored(record)

        thumb_key = f"avatars-thumb/avatars/{record.id}-photo.png"
        original_key = f"avatars-original/avatars/{record.id}-photo.png"
        assert object_store.metadata("photos", thumb_key)["content_type"] == "image/jpeg"
        assert object_store.metadata("photos", original_key)["content_type"] == "image/png"
        assert record.content_type_for("avatars-thumb") == "image/jpeg"
        assert record.content_type_for("avatars-original") == "image/png"
