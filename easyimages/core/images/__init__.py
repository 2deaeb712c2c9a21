"""
Image collections: store planning, upload filtering, variant transforms
and URL resolution.
"""

from .collection import ImageCollection, ObjectStore, StorageError
from .factory import CACHE_CONTROL, EasyImages, ImageCollectionFactory, easy_images
from .filters import UploadFilter, ValidationRejection, image_filter_policy, log_invalid
from .models import (
    AccessPolicy,
    BucketUrlConfig,
    ConfigurationError,
    Dimensions,
    FileMetadata,
    FileRecord,
    StorageCredentials,
    StorageStatus,
    StoreDefinition,
    UploadFilterPolicy,
    build_object_key,
)
from .planner import VariantPlanner, parse_sizes
from .transform import ImageTransformer, TransformError, TransformPipeline
from .urls import (
    DirectBucketUrlResolver,
    ServerMediatedUrlResolver,
    UrlResolver,
    create_url_resolver,
)

__all__ = [
    "AccessPolicy",
    "BucketUrlConfig",
    "CACHE_CONTROL",
    "ConfigurationError",
    "Dimensions",
    "DirectBucketUrlResolver",
    "EasyImages",
    "FileMetadata",
    "FileRecord",
    "ImageCollection",
    "ImageCollectionFactory",
    "ImageTransformer",
    "ObjectStore",
    "ServerMediatedUrlResolver",
    "StorageCredentials",
    "StorageError",
    "StorageStatus",
    "StoreDefinition",
    "TransformError",
    "TransformPipeline",
    "UploadFilter",
    "UploadFilterPolicy",
    "UrlResolver",
    "ValidationRejection",
    "VariantPlanner",
    "build_object_key",
    "create_url_resolver",
    "easy_images",
    "image_filter_policy",
    "log_invalid",
    "parse_sizes",
]
