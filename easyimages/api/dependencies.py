"""
FastAPI dependency injection.

Dependencies provide the configured collection factory and its
collections to route handlers. The factory is built once per process:
its bucket URL, access policy and collections are fixed at startup, and
in mock mode the in-memory store must persist across requests.

Tests override get_collection_factory via app.dependency_overrides.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status

from ..config.settings import Settings, get_settings
from ..core.images import ImageCollection, ImageCollectionFactory, easy_images
from ..infrastructure.imaging import create_image_transformer
from ..infrastructure.storage import create_object_store

logger = logging.getLogger(__name__)

# Shared factory instance (built on first use)
_collection_factory: Optional[ImageCollectionFactory] = None


def build_collection_factory(settings: Settings) -> ImageCollectionFactory:
    """
    Build a factory and all configured collections from settings.

    Raises ConfigurationError on an invalid collection layout, so a bad
    deployment fails at startup rather than on first upload.
    """
    object_store = create_object_store(
        mock_mode=settings.s3_mock_mode,
        region=settings.s3_bucket_region,
        endpoint_url=settings.s3_endpoint_url,
    )

    factory = ImageCollectionFactory(
        settings.s3_access_key_id,
        settings.s3_secret_access_key,
        settings.s3_bucket_name,
        object_store=object_store,
        public_read=settings.s3_public_read,
        bucket_region=settings.s3_bucket_region,
        transformer=create_image_transformer(enabled=settings.imaging_enabled),
        server_url_prefix=settings.server_url_prefix,
    )

    for collection_name, sizes in settings.image_collections.items():
        factory.create_collection(collection_name, sizes)

    easy_images.configure(image_collection_factory=factory)

    return factory


def get_collection_factory(
    settings: Annotated[Settings, Depends(get_settings)],
) -> ImageCollectionFactory:
    """Provide the process-wide collection factory."""
    global _collection_factory

    if _collection_factory is None:
        _collection_factory = build_collection_factory(settings)
        logger.info(
            "Created shared collection factory",
            extra={"collections": list(_collection_factory.collections)}
        )

    return _collection_factory


def get_collection(
    collection_name: str,
    factory: Annotated[ImageCollectionFactory, Depends(get_collection_factory)],
) -> ImageCollection:
    """Look up the collection named in the path. 404 if it doesn't exist."""
    collection = factory.get_collection(collection_name)
    if collection is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Collection not found: {collection_name}",
        )
    return collection


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

SettingsDep = Annotated[Settings, Depends(get_settings)]
CollectionFactoryDep = Annotated[ImageCollectionFactory, Depends(get_collection_factory)]
CollectionDep = Annotated[ImageCollection, Depends(get_collection)]
