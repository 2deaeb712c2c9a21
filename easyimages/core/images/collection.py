"""
Image collections: accepting uploads and writing every copy.

A collection owns a fixed list of StoreDefinitions. Each accepted file
is written once per store, and each (file, store) pair is its own unit
of work:
- the original store receives the uploaded bytes untouched
- variant stores run the transform pipeline first
- a failure in one store never touches the others

insert() returns as soon as the filter has admitted the file and the
writes are scheduled. Completion shows up later in the FileRecord's
per-store status.

FileRecords are kept in this process's memory for its lifetime and are
not shared between processes. Run the API as a single worker; with
several workers a file is only known to the worker that accepted it.
"""

import asyncio
import logging
from typing import Optional, Protocol

from .filters import UploadFilter
from .models import (
    FileMetadata,
    FileRecord,
    StorageStatus,
    StoreDefinition,
    build_object_key,
)
from .transform import TransformError, TransformPipeline
from .urls import UrlResolver

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when an object store operation fails."""
    pass


class ObjectStore(Protocol):
    """
    Interface for S3-compatible object storage.

    The store definition tells the implementation which bucket, ACL and
    credentials to use. Implementations raise StorageError on failure.
    """

    async def put_object(
        self,
        store: StoreDefinition,
        key: str,
        data: bytes,
        content_type: str,
    ) -> None:
        """Write bytes under key."""
        ...

    async def get_object(self, store: StoreDefinition, key: str) -> bytes:
        """Read the bytes stored under key."""
        ...

    async def delete_object(self, store: StoreDefinition, key: str) -> bool:
        """Delete key. Returns True if it is gone afterwards."""
        ...


class ImageCollection:
    """A named set of stores sharing one upload filter and URL resolver."""

    def __init__(
        self,
        name: str,
        stores: list[StoreDefinition],
        upload_filter: UploadFilter,
        object_store: ObjectStore,
        pipeline: TransformPipeline,
        url_resolver: UrlResolver,
    ) -> None:
        self.name = name
        self.stores = tuple(stores)
        self.filter = upload_filter
        self.url_resolver = url_resolver
        self._object_store = object_store
        self._pipeline = pipeline
        # process-local and never evicted; deletion is not handled here
        self._records: dict[str, FileRecord] = {}
        # in-flight writes per file id; tasks must be referenced to avoid GC
        self._pending: dict[str, set[asyncio.Task]] = {}

    @property
    def filter_policy(self):
        return self.filter.policy

    @property
    def store_names(self) -> list[str]:
        return [s.name for s in self.stores]

    def store(self, name: str) -> Optional[StoreDefinition]:
        for definition in self.stores:
            if definition.name == name:
                return definition
        return None

    def get(self, file_id: str) -> Optional[FileRecord]:
        return self._records.get(file_id)

    async def insert(self, metadata: FileMetadata, data: bytes) -> Optional[FileRecord]:
        """
        Admit a file and schedule its writes.

        Returns None if the upload filter rejects the file, in which case
        no store is written. Otherwise returns the new FileRecord with
        every store PENDING.
        """
        if not self.filter.accept(metadata):
            return None

        record = FileRecord(
            name=metadata.name,
            collection_name=self.name,
            content_type=metadata.content_type or "application/octet-stream",
            size_bytes=len(data),
        )
        for definition in self.stores:
            record.mark(definition.name, StorageStatus.PENDING)
        self._records[record.id] = record

        tasks = {
            asyncio.create_task(self._write(record, definition, data))
            for definition in self.stores
        }
        self._pending[record.id] = tasks
        for task in tasks:
            task.add_done_callback(lambda t, file_id=record.id: self._forget(file_id, t))

        logger.info(
            "File accepted",
            extra={
                "collection": self.name,
                "file_id": record.id,
                "file_name": record.name,
                "size_bytes": record.size_bytes,
                "stores": len(self.stores),
            }
        )

        return record

    async def wait_until_stored(self, file: FileRecord) -> FileRecord:
        """Wait for every in-flight write of one file to finish."""
        tasks = list(self._pending.get(file.id, ()))
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        return file

    async def drain(self) -> None:
        """Wait for every in-flight write in this collection."""
        tasks = [task for tasks in self._pending.values() for task in tasks]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def url(self, file: FileRecord, store: Optional[str] = None) -> Optional[str]:
        """Resolve the URL for one copy of a file; None while it is not stored."""
        return self.url_resolver.resolve_url(file, store)

    def urls(self, file: FileRecord) -> dict[str, Optional[str]]:
        return {name: self.url(file, name) for name in self.store_names}

    def object_key(self, file: FileRecord, store: StoreDefinition) -> str:
        return build_object_key(store.key_prefix, self.name, file.id, file.name)

    async def read(self, file: FileRecord, store: StoreDefinition) -> bytes:
        """Fetch the bytes of one stored copy from the object store."""
        return await self._object_store.get_object(store, self.object_key(file, store))

    def _forget(self, file_id: str, task: asyncio.Task) -> None:
        tasks = self._pending.get(file_id)
        if tasks is None:
            return
        tasks.discard(task)
        if not tasks:
            del self._pending[file_id]

    async def _write(self, record: FileRecord, store: StoreDefinition, data: bytes) -> None:
        """Produce and persist one copy. Never raises; outcome goes to the record."""
        log_extra = {
            "collection": self.name,
            "file_id": record.id,
            "store": store.name,
        }

        try:
            if store.dimensions is None:
                payload: Optional[bytes] = data
                content_type = record.content_type
            else:
                payload = await self._pipeline.run(
                    data,
                    store.dimensions,
                    file_name=record.name,
                )
                # variants are re-encoded, so the declared type may not match
                content_type = (
                    self._pipeline.content_type(payload, record.content_type)
                    if payload is not None
                    else record.content_type
                )

            if payload is None:
                record.mark(store.name, StorageStatus.SKIPPED)
                return

            await self._object_store.put_object(
                store,
                self.object_key(record, store),
                payload,
                content_type,
            )

        except TransformError as e:
            record.mark(store.name, StorageStatus.FAILED)
            logger.error("Variant transform failed", extra={**log_extra, "error": str(e)})
            return
        except StorageError as e:
            record.mark(store.name, StorageStatus.FAILED)
            logger.error("Store write failed", extra={**log_extra, "error": str(e)})
            return
        except Exception as e:
            record.mark(store.name, StorageStatus.FAILED)
            logger.error(
                "Unexpected error writing copy",
                extra={**log_extra, "error": str(e)},
                exc_info=e,
            )
            return

        record.set_content_type(store.name, content_type)
        record.mark(store.name, StorageStatus.STORED)
        logger.debug("Stored copy", extra={**log_extra, "size_bytes": len(payload)})
