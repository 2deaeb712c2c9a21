"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- storage: Object storage (S3 via boto3)
- imaging: Image processing (Pillow)

These wrappers implement the protocols defined in core.images.
"""
