"""
Image collection API endpoints.

Upload flow:
1. Client uploads a file to a collection
2. The upload filter admits or rejects it (422 with the reason)
3. One write per store is scheduled; the response returns immediately
   with every store "pending" unless wait=true was passed
4. Client polls the file or its URL; a URL of null means "not stored yet"
"""

import logging
from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, File, HTTPException, Query, UploadFile, status
from pydantic import BaseModel, Field

from ...core.images import FileMetadata, FileRecord, ImageCollection
from ..dependencies import CollectionDep, CollectionFactoryDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class StoreResponse(BaseModel):
    """One store of a collection."""
    name: str = Field(description="Store name, {collection}-{variant}")
    width: Optional[int] = Field(default=None, description="Variant width; null for the original")
    height: Optional[int] = Field(default=None, description="Variant height; null for the original")
    acl: str = Field(description="Object ACL")


class CollectionResponse(BaseModel):
    """A collection and its stores."""
    name: str
    stores: list[StoreResponse]
    max_size_bytes: int
    allowed_content_types: list[str]
    allowed_extensions: list[str]


class FileResponse(BaseModel):
    """An uploaded file with per-store status and URLs."""
    id: str = Field(description="File ID")
    name: str = Field(description="Original file name")
    collection: str
    content_type: str
    size_bytes: int
    uploaded_at: datetime
    stores: dict[str, str] = Field(description="Storage status per store")
    urls: dict[str, Optional[str]] = Field(description="Resolved URL per store; null while not stored")


class UrlResponse(BaseModel):
    """A resolved URL. null means the copy is not stored (yet)."""
    store: str
    url: Optional[str]


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------

def to_collection_response(collection: ImageCollection) -> CollectionResponse:
    policy = collection.filter_policy
    return CollectionResponse(
        name=collection.name,
        stores=[
            StoreResponse(
                name=s.name,
                width=s.dimensions.width if s.dimensions else None,
                height=s.dimensions.height if s.dimensions else None,
                acl=s.access_policy.value,
            )
            for s in collection.stores
        ],
        max_size_bytes=policy.max_size_bytes,
        allowed_content_types=list(policy.allowed_content_types),
        allowed_extensions=list(policy.allowed_extensions),
    )


def to_file_response(collection: ImageCollection, record: FileRecord) -> FileResponse:
    return FileResponse(
        id=record.id,
        name=record.name,
        collection=record.collection_name,
        content_type=record.content_type,
        size_bytes=record.size_bytes,
        uploaded_at=record.uploaded_at,
        stores={name: s.value for name, s in record.store_status.items()},
        urls=collection.urls(record),
    )


def get_record_or_404(collection: ImageCollection, file_id: str) -> FileRecord:
    record = collection.get(file_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"File not found: {file_id}",
        )
    return record


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=list[CollectionResponse],
    summary="List collections",
)
async def list_collections(factory: CollectionFactoryDep) -> list[CollectionResponse]:
    return [to_collection_response(c) for c in factory.collections.values()]


@router.get(
    "/{collection_name}",
    response_model=CollectionResponse,
    summary="Describe a collection",
)
async def get_collection_info(collection: CollectionDep) -> CollectionResponse:
    return to_collection_response(collection)


@router.post(
    "/{collection_name}/files",
    response_model=FileResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload an image",
    description="Upload an image; the original and every variant are stored independently",
)
async def upload_file(
    collection: CollectionDep,
    file: Annotated[UploadFile, File(description="Image file (PNG, JPEG or GIF, max 10MB)")],
    wait: Annotated[bool, Query(description="Wait until every store has settled")] = False,
) -> FileResponse:
    """
    Upload an image into a collection.

    The upload filter runs before anything is stored. Rejected files
    get a 422 with the violated rule; nothing is written for them.
    """
    data = await file.read()
    metadata = FileMetadata(
        name=file.filename or "",
        content_type=file.content_type,
        size_bytes=len(data),
    )

    record = await collection.insert(metadata, data)

    if record is None:
        rejection = collection.filter.check(metadata)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=rejection.reason if rejection else "File rejected",
        )

    if wait:
        await collection.wait_until_stored(record)

    return to_file_response(collection, record)


@router.get(
    "/{collection_name}/files/{file_id}",
    response_model=FileResponse,
    summary="Get a file's storage status and URLs",
)
async def get_file(collection: CollectionDep, file_id: str) -> FileResponse:
    record = get_record_or_404(collection, file_id)
    return to_file_response(collection, record)


@router.get(
    "/{collection_name}/files/{file_id}/url",
    response_model=UrlResponse,
    summary="Resolve the URL of one copy",
)
async def get_file_url(
    collection: CollectionDep,
    file_id: str,
    store: Annotated[Optional[str], Query(description="Store name; defaults to the original")] = None,
) -> UrlResponse:
    """
    Resolve a URL for one copy of a file.

    Returns url=null while the copy is not stored, so clients can treat
    it as pending.
    """
    record = get_record_or_404(collection, file_id)
    store_name = store or record.original_store

    if collection.store(store_name) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Store not found: {store_name}",
        )

    return UrlResponse(store=store_name, url=collection.url(record, store_name))
