"""
Image collection factory.

Usage:

    factory = ImageCollectionFactory(
        access_key_id, secret_access_key, "my-bucket",
        public_read=True,
        bucket_region="eu-west-1",  # optional, leave blank for default region
        object_store=create_object_store(),
        transformer=create_image_transformer(),
    )
    images = factory.create_collection("myImages", {
        "thumbnail": [300, 300],
        "normal": [800, 400],
        "superGiant": [4096, 4096],
    })

This creates four stores: the original image plus the three sizes.

A factory holds one credential set and one bucket, and can create any
number of collections. The bucket URL and access policy are fixed at
construction. The URL resolver is chosen from the access policy and
handed to each collection the factory creates; other factories are not
affected.
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any, Callable, Optional

from .collection import ImageCollection, ObjectStore
from .filters import UploadFilter, image_filter_policy, log_invalid
from .models import (
    AccessPolicy,
    BucketUrlConfig,
    ConfigurationError,
    StorageCredentials,
    StoreDefinition,
)
from .planner import SizeValue, VariantPlanner
from .transform import ImageTransformer, TransformPipeline
from .urls import DEFAULT_SERVER_URL_PREFIX, UrlResolver, create_url_resolver

logger = logging.getLogger(__name__)

# Long-lived cache headers so repeated image GETs don't hit the server
CACHE_CONTROL = "public, max-age=31536000"


class ImageCollectionFactory:
    """Creates image collections that share one bucket and credential set."""

    def __init__(
        self,
        access_key_id: str,
        secret_access_key: str,
        bucket_name: str,
        *,
        object_store: ObjectStore,
        public_read: bool = False,
        bucket_region: str = "",
        transformer: Optional[ImageTransformer] = None,
        on_invalid: Callable[[str], None] = log_invalid,
        server_url_prefix: str = DEFAULT_SERVER_URL_PREFIX,
    ) -> None:
        if not bucket_name:
            raise ConfigurationError("bucket_name is required")

        self._access_policy = AccessPolicy.PUBLIC_READ if public_read else AccessPolicy.PRIVATE
        self._bucket_config = BucketUrlConfig(
            bucket_name=bucket_name,
            region=bucket_region or "",
            access_policy=self._access_policy,
        )
        self._bucket_url = self._bucket_config.base_url
        self._credentials = StorageCredentials(
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
        )
        self._planner = VariantPlanner(bucket_name, self._access_policy, self._credentials)
        self._object_store = object_store
        self._pipeline = TransformPipeline(transformer)
        self._on_invalid = on_invalid
        self._url_resolver = create_url_resolver(
            self._access_policy,
            self._bucket_url,
            server_url_prefix,
        )
        self._collections: dict[str, ImageCollection] = {}

        if not self._pipeline.is_available:
            logger.warning("Image processing not available; variants will not be produced")

        logger.info(
            "Image collection factory initialized",
            extra={
                "bucket": bucket_name,
                "bucket_url": self._bucket_url,
                "acl": self._access_policy.value,
            }
        )

    @property
    def bucket_url(self) -> str:
        return self._bucket_url

    @property
    def access_policy(self) -> AccessPolicy:
        return self._access_policy

    @property
    def public_read(self) -> bool:
        return self._access_policy == AccessPolicy.PUBLIC_READ

    @property
    def url_resolver(self) -> UrlResolver:
        return self._url_resolver

    @property
    def imaging_available(self) -> bool:
        """Whether variants can be produced; False means they are skipped."""
        return self._pipeline.is_available

    @property
    def collections(self) -> dict[str, ImageCollection]:
        return dict(self._collections)

    @property
    def all_stores(self) -> list[StoreDefinition]:
        """Every store created by this factory, across all collections."""
        return [s for c in self._collections.values() for s in c.stores]

    def create_collection(
        self,
        collection_name: str,
        sizes: Mapping[str, SizeValue],
    ) -> ImageCollection:
        """
        Create and register a collection.

        sizes looks like {"thumbnail": [100, 100], "normal": [200, 300]}.
        There is always one extra store, "{name}-original", holding the
        image at full size.

        Raises:
            ConfigurationError: if the plan is invalid or the name is taken
        """
        if collection_name in self._collections:
            raise ConfigurationError(f"Collection '{collection_name}' already exists")

        stores = self._planner.plan(collection_name, sizes)

        collection = ImageCollection(
            name=collection_name,
            stores=stores,
            upload_filter=UploadFilter(image_filter_policy(self._on_invalid)),
            object_store=self._object_store,
            pipeline=self._pipeline,
            url_resolver=self._url_resolver,
        )
        self._collections[collection_name] = collection

        logger.info(
            "Created image collection",
            extra={
                "collection": collection_name,
                "stores": collection.store_names,
            }
        )

        return collection

    def get_collection(self, collection_name: str) -> Optional[ImageCollection]:
        return self._collections.get(collection_name)

    def stores_for(self, collection_name: str) -> list[StoreDefinition]:
        collection = self._collections.get(collection_name)
        return list(collection.stores) if collection else []

    async def drain(self) -> None:
        """Wait for all in-flight writes in every collection."""
        await asyncio.gather(*(c.drain() for c in self._collections.values()))


class EasyImages:
    """Process-wide pointer to the configured factory."""

    def __init__(self) -> None:
        self.image_collection_factory: Optional[ImageCollectionFactory] = None

    @staticmethod
    def _required(options: Mapping[str, Any], name: str) -> Any:
        if options.get(name):
            return options[name]
        raise ConfigurationError(
            f"Missing required parameter '{name}' for EasyImages configuration"
        )

    def configure(self, **options: Any) -> None:
        self.image_collection_factory = self._required(options, "image_collection_factory")

    def bucket_url(self) -> str:
        if self.image_collection_factory is None:
            raise ConfigurationError("EasyImages is not configured")
        return self.image_collection_factory.bucket_url


easy_images = EasyImages()
