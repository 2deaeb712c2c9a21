"""
Server-mediated file downloads.

This is the route the server-mediated URLs point at. It only serves a
copy once that store is marked stored, and every response carries a
one-year Cache-Control so browsers don't come back for the same bytes.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, HTTPException, Query, Response, status

from ...core.images import CACHE_CONTROL, StorageError
from ..dependencies import CollectionDep

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/{collection_name}/{file_id}/{filename:path}",
    summary="Download one stored copy of a file",
    response_class=Response,
)
async def download_file(
    collection: CollectionDep,
    file_id: str,
    filename: str,
    store: Annotated[Optional[str], Query(description="Store name; defaults to the original")] = None,
) -> Response:
    record = collection.get(file_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")

    store_name = store or record.original_store
    definition = collection.store(store_name)

    if definition is None or not record.is_stored(store_name):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"File not stored in {store_name}",
        )

    try:
        data = await collection.read(record, definition)
    except StorageError as e:
        logger.error(
            "Failed to read stored copy",
            extra={"file_id": file_id, "store": store_name, "error": str(e)}
        )
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to read file from storage",
        )

    return Response(
        content=data,
        media_type=record.content_type_for(store_name),
        headers={"Cache-Control": CACHE_CONTROL},
    )
