"""
URL resolution for stored files.

Two strategies:
- Server-mediated: the URL points at our own file route, which checks
  storage status and streams the bytes.
- Direct bucket: the URL points straight at the object in the bucket.
  Only valid for public-read buckets, and only handed out once the copy
  is known to exist, otherwise clients would race the transform.

The resolver is chosen per factory and passed to its collections.
"""

from typing import Optional, Protocol
from urllib.parse import quote, urlencode

from .models import AccessPolicy, FileRecord, build_object_key

DEFAULT_SERVER_URL_PREFIX = "/cfs/files"


class UrlResolver(Protocol):
    """Turns a file and store name into a URL, or None while not stored."""

    def resolve_url(self, file: FileRecord, store: Optional[str] = None) -> Optional[str]:
        ...


class ServerMediatedUrlResolver:
    """URLs routed through the application's own file endpoint."""

    def __init__(self, prefix: str = DEFAULT_SERVER_URL_PREFIX) -> None:
        self.prefix = prefix.rstrip("/")

    def resolve_url(self, file: FileRecord, store: Optional[str] = None) -> Optional[str]:
        store = store or file.original_store
        if not file.is_stored(store):
            return None

        query = urlencode({"store": store})
        return (
            f"{self.prefix}/{quote(file.collection_name, safe='')}/{file.id}/"
            f"{quote(file.name, safe='')}?{query}"
        )


class DirectBucketUrlResolver:
    """
    Direct-to-bucket URLs for public-read collections.

    The server-mediated resolver is asked first; its answer is used only
    as the "is it stored yet" signal.
    """

    def __init__(
        self,
        bucket_url: str,
        server_resolver: Optional[ServerMediatedUrlResolver] = None,
    ) -> None:
        self.bucket_url = bucket_url
        self._server_resolver = server_resolver or ServerMediatedUrlResolver()

    def resolve_url(self, file: FileRecord, store: Optional[str] = None) -> Optional[str]:
        store = store or file.original_store
        if not self._server_resolver.resolve_url(file, store):
            return None

        key = build_object_key(store, file.collection_name, file.id, file.name)
        return self.bucket_url + key


def create_url_resolver(
    access_policy: AccessPolicy,
    bucket_url: str,
    prefix: str = DEFAULT_SERVER_URL_PREFIX,
) -> UrlResolver:
    """Pick the resolver matching the bucket's access policy."""
    server_resolver = ServerMediatedUrlResolver(prefix)

    if access_policy == AccessPolicy.PUBLIC_READ:
        return DirectBucketUrlResolver(bucket_url, server_resolver)

    return server_resolver
