"""
Domain models for multi-variant image storage.

These models describe where and how each copy of an uploaded image is
persisted. They have no dependencies on boto3, Pillow or FastAPI; the
storage and imaging integrations live in the infrastructure layer.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional
from uuid import uuid4


ORIGINAL_VARIANT = "original"


class ConfigurationError(Exception):
    """Raised when collections or factories are configured with invalid parameters."""
    pass


class AccessPolicy(Enum):
    """Canned ACL applied to every object written to the bucket."""
    PRIVATE = "private"
    PUBLIC_READ = "public-read"


class StorageStatus(Enum):
    """
    Where one copy of a file is in its lifecycle.

    SKIPPED means the variant was never produced because image
    processing was unavailable. It is not an error, and the copy
    will never appear.
    """
    PENDING = "pending"
    STORED = "stored"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class StorageCredentials:
    """Access keys forwarded verbatim to the object store."""
    access_key_id: str
    secret_access_key: str = field(repr=False)


@dataclass(frozen=True)
class Dimensions:
    """Target size of a variant, in pixels."""
    width: int
    height: int

    def __post_init__(self) -> None:
        for label, value in (("width", self.width), ("height", self.height)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"Variant {label} must be an integer, got {value!r}")
            if value <= 0:
                raise ConfigurationError(f"Variant {label} must be positive, got {value}")

    @property
    def display(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class StoreDefinition:
    """
    One physical storage target within a collection.

    The original has no dimensions; every variant carries the size its
    transform produces. Frozen so that two plans built from the same
    input compare equal.
    """
    name: str
    bucket: str
    key_prefix: str
    access_policy: AccessPolicy
    credentials: StorageCredentials
    dimensions: Optional[Dimensions] = None

    @property
    def is_original(self) -> bool:
        return self.dimensions is None


@dataclass(frozen=True)
class UploadFilterPolicy:
    """Admission rules checked once per file before anything is stored."""
    max_size_bytes: int
    allowed_content_types: tuple[str, ...]
    allowed_extensions: tuple[str, ...]
    on_invalid: Callable[[str], None]

    def __post_init__(self) -> None:
        if self.max_size_bytes <= 0:
            raise ConfigurationError("max_size_bytes must be positive")


@dataclass(frozen=True)
class FileMetadata:
    """What we know about an upload before reading its bytes."""
    name: str
    content_type: Optional[str]
    size_bytes: int

    @property
    def extension(self) -> str:
        """Lowercased extension without the dot, or empty string."""
        if "." not in self.name:
            return ""
        return self.name.rsplit(".", 1)[-1].lower()


@dataclass
class FileRecord:
    """
    An uploaded file and the storage status of each of its copies.

    Created when a file passes the upload filter. Per-store status is
    updated as each independent write finishes.
    """
    name: str
    collection_name: str
    content_type: str = "application/octet-stream"
    size_bytes: int = 0
    id: str = field(default_factory=lambda: uuid4().hex)
    uploaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    store_status: dict[str, StorageStatus] = field(default_factory=dict)
    # content type each copy was written with, when it differs per store
    store_content_types: dict[str, str] = field(default_factory=dict)

    @property
    def original_store(self) -> str:
        return f"{self.collection_name}-{ORIGINAL_VARIANT}"

    def status(self, store: str) -> Optional[StorageStatus]:
        return self.store_status.get(store)

    def is_stored(self, store: str) -> bool:
        return self.store_status.get(store) == StorageStatus.STORED

    def mark(self, store: str, status: StorageStatus) -> None:
        self.store_status[store] = status

    def set_content_type(self, store: str, content_type: str) -> None:
        self.store_content_types[store] = content_type

    def content_type_for(self, store: str) -> str:
        return self.store_content_types.get(store, self.content_type)

    @property
    def is_settled(self) -> bool:
        """True once no copy is still pending."""
        return all(s != StorageStatus.PENDING for s in self.store_status.values())


@dataclass(frozen=True)
class BucketUrlConfig:
    """
    Inputs for the public bucket URL.

    An empty region means the provider's default region; otherwise the
    region is appended to the bucket name as "-{region}".
    """
    bucket_name: str
    region: str = ""
    access_policy: AccessPolicy = AccessPolicy.PRIVATE
    provider_host: str = "amazonaws.com"

    @property
    def base_url(self) -> str:
        region = f"-{self.region}" if self.region else ""
        return f"https://{self.bucket_name}{region}.s3.{self.provider_host}/"


def build_object_key(store: str, collection_name: str, file_id: str, file_name: str) -> str:
    """
    Object key of one copy of a file.

    Pattern: {store}/{collection}/{file_id}-{file_name}
    The store name doubles as the folder, so the public URL is the
    bucket URL followed by this key.
    """
    return f"{store}/{collection_name}/{file_id}-{file_name}"
