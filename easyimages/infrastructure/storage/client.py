"""
Object storage client for image copies.

Supports AWS S3 (and S3-compatible services) with mock mode for local
development. Every StoreDefinition carries its own bucket, ACL and
credentials, so the S3 client is looked up per credential pair rather
than fixed at construction.

Mock mode stores objects in memory, enabling API testing without
provisioning a bucket.
"""

import asyncio
import logging
from typing import Optional

from ...core.images.collection import ObjectStore, StorageError
from ...core.images.factory import CACHE_CONTROL
from ...core.images.models import StorageCredentials, StoreDefinition

logger = logging.getLogger(__name__)

__all__ = [
    "MockObjectStore",
    "S3ObjectStore",
    "StorageError",
    "create_object_store",
]


class S3ObjectStore:
    """
    S3 object storage using boto3.

    boto3 is synchronous, so every call runs in a worker thread to keep
    the event loop free while variants are being written.
    """

    def __init__(self, region: str = "", endpoint_url: Optional[str] = None) -> None:
        try:
            import boto3
            from botocore.config import Config
        except ImportError:
            raise ImportError(
                "boto3 is required for S3 storage. Install with: pip install boto3"
            )

        self._boto3 = boto3
        self._boto_config = Config(signature_version="s3v4")
        self._region = region or None
        self._endpoint_url = endpoint_url
        self._clients: dict[str, object] = {}

        logger.info(
            "Initialized S3 object store",
            extra={"region": region or "default", "endpoint": endpoint_url}
        )

    def client_for(self, credentials: StorageCredentials):
        """Return the cached boto3 client for a credential pair."""
        # keyed on the access key id only; secrets stay out of dict keys and logs
        client = self._clients.get(credentials.access_key_id)
        if client is None:
            client = self._boto3.client(
                "s3",
                aws_access_key_id=credentials.access_key_id,
                aws_secret_access_key=credentials.secret_access_key,
                region_name=self._region,
                endpoint_url=self._endpoint_url,
                config=self._boto_config,
            )
            self._clients[credentials.access_key_id] = client
        return client

    async def put_object(
        self,
        store: StoreDefinition,
        key: str,
        data: bytes,
        content_type: str,
    ) -> None:
        """Upload one copy with the store's ACL and long-lived cache headers."""
        try:
            client = self.client_for(store.credentials)
            await asyncio.to_thread(
                client.put_object,
                Bucket=store.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                ACL=store.access_policy.value,
                CacheControl=CACHE_CONTROL,
            )
        except Exception as e:
            logger.error(
                "Failed to upload object",
                extra={"store": store.name, "key": key, "error": str(e)}
            )
            raise StorageError(f"Upload failed: {e}")

        logger.debug(
            "Uploaded object",
            extra={"store": store.name, "key": key, "size_bytes": len(data)}
        )

    async def get_object(self, store: StoreDefinition, key: str) -> bytes:
        try:
            client = self.client_for(store.credentials)
            response = await asyncio.to_thread(
                client.get_object,
                Bucket=store.bucket,
                Key=key,
            )
            return await asyncio.to_thread(response["Body"].read)
        except Exception as e:
            logger.error(
                "Failed to download object",
                extra={"store": store.name, "key": key, "error": str(e)}
            )
            raise StorageError(f"Download failed: {e}")

    async def delete_object(self, store: StoreDefinition, key: str) -> bool:
        """Delete an object. S3 deletes are idempotent, so a missing key is success."""
        try:
            client = self.client_for(store.credentials)
            await asyncio.to_thread(
                client.delete_object,
                Bucket=store.bucket,
                Key=key,
            )
        except Exception as e:
            logger.error(
                "Failed to delete object",
                extra={"store": store.name, "key": key, "error": str(e)}
            )
            raise StorageError(f"Delete failed: {e}")

        logger.info("Deleted object", extra={"store": store.name, "key": key})
        return True


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockObjectStore:
    """
    In-memory object storage for local development and tests.

    Objects are kept in a dictionary keyed by (bucket, key), along with
    the content type and ACL they were written with.
    """

    def __init__(self) -> None:
        self._objects: dict[tuple[str, str], bytes] = {}
        self._metadata: dict[tuple[str, str], dict[str, str]] = {}
        logger.info("Initialized mock object store (in-memory)")

    async def put_object(
        self,
        store: StoreDefinition,
        key: str,
        data: bytes,
        content_type: str,
    ) -> None:
        self._objects[(store.bucket, key)] = data
        self._metadata[(store.bucket, key)] = {
            "content_type": content_type,
            "acl": store.access_policy.value,
            "cache_control": CACHE_CONTROL,
        }

        logger.debug(
            "Stored object in mock storage",
            extra={"store": store.name, "key": key, "size_bytes": len(data)}
        )

    async def get_object(self, store: StoreDefinition, key: str) -> bytes:
        if (store.bucket, key) not in self._objects:
            raise StorageError(f"Object not found: {key}")
        return self._objects[(store.bucket, key)]

    async def delete_object(self, store: StoreDefinition, key: str) -> bool:
        self._objects.pop((store.bucket, key), None)
        self._metadata.pop((store.bucket, key), None)
        return True

    def keys(self, bucket: Optional[str] = None) -> list[str]:
        """List stored keys, optionally for one bucket."""
        return sorted(k for b, k in self._objects if bucket is None or b == bucket)

    def metadata(self, bucket: str, key: str) -> Optional[dict[str, str]]:
        return self._metadata.get((bucket, key))


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_object_store(
    mock_mode: bool = False,
    region: str = "",
    endpoint_url: Optional[str] = None,
) -> ObjectStore:
    """
    Create the object store based on configuration.

    Args:
        mock_mode: If True, return the in-memory store
        region: Bucket region, empty for the provider default
        endpoint_url: Override for S3-compatible services

    Returns:
        ObjectStore implementation (S3 or Mock)
    """
    if mock_mode:
        return MockObjectStore()

    return S3ObjectStore(region=region, endpoint_url=endpoint_url)
