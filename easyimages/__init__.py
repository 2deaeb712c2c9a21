"""
EasyImages - multi-variant image storage on S3-compatible buckets.

This package contains the complete application:
- core: Framework-agnostic collection, filter, transform and URL logic
- infrastructure: Object storage and image processing integrations
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
