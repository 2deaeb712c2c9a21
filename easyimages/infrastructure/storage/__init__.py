"""
Object storage integration for image copies.

Supports S3 and S3-compatible services via boto3.
Includes mock mode for local development without credentials.
"""

from .client import MockObjectStore, S3ObjectStore, StorageError, create_object_store

__all__ = [
    "MockObjectStore",
    "S3ObjectStore",
    "StorageError",
    "create_object_store",
]
