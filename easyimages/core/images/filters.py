"""
Upload admission rules.

Every file passes through the filter once, before any store receives a
byte. A file is admitted only if all rules pass; there is no partial
admission. Rejection is not an exception: the on_invalid hook is told
why and the upload goes no further.
"""

import fnmatch
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from .models import FileMetadata, UploadFilterPolicy

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE = 1024 * 1024 * 10  # 10 MB
IMAGE_CONTENT_TYPES = ("image/*",)
IMAGE_EXTENSIONS = ("png", "jpg", "jpeg", "gif")


@dataclass(frozen=True)
class ValidationRejection:
    """Why a file was turned away. rule is max_size, content_type or extension."""
    rule: str
    reason: str


def log_invalid(reason: str) -> None:
    """Default on_invalid hook for non-interactive hosts."""
    logger.warning("Upload rejected: %s", reason)


def image_filter_policy(
    on_invalid: Callable[[str], None] = log_invalid,
) -> UploadFilterPolicy:
    """The fixed policy for image collections: 10 MB, image/* and common extensions."""
    return UploadFilterPolicy(
        max_size_bytes=DEFAULT_MAX_FILE_SIZE,
        allowed_content_types=IMAGE_CONTENT_TYPES,
        allowed_extensions=IMAGE_EXTENSIONS,
        on_invalid=on_invalid,
    )


class UploadFilter:
    """Applies an UploadFilterPolicy to incoming file metadata."""

    def __init__(self, policy: UploadFilterPolicy) -> None:
        self.policy = policy
        self._extensions = {ext.lower().lstrip(".") for ext in policy.allowed_extensions}
        self._content_types = [pattern.lower() for pattern in policy.allowed_content_types]

    def check(self, metadata: FileMetadata) -> Optional[ValidationRejection]:
        """
        Return the first violated rule, or None if the file is admissible.

        Rules are checked in order: size, content type, extension.
        Does not call on_invalid.
        """
        max_size = self.policy.max_size_bytes
        if metadata.size_bytes > max_size:
            return ValidationRejection(
                rule="max_size",
                reason=(
                    f"{metadata.name} is too large: {metadata.size_bytes} bytes "
                    f"exceeds the maximum size of {max_size} bytes"
                ),
            )

        content_type = (metadata.content_type or "").lower()
        if not content_type or not any(
            fnmatch.fnmatchcase(content_type, pattern) for pattern in self._content_types
        ):
            return ValidationRejection(
                rule="content_type",
                reason=(
                    f"{metadata.name} has invalid content type "
                    f"'{metadata.content_type or ''}'; allowed: "
                    f"{', '.join(self.policy.allowed_content_types)}"
                ),
            )

        if metadata.extension not in self._extensions:
            return ValidationRejection(
                rule="extension",
                reason=(
                    f"{metadata.name} has invalid filename extension "
                    f"'{metadata.extension}'; allowed: "
                    f"{', '.join(sorted(self._extensions))}"
                ),
            )

        return None

    def accept(self, metadata: FileMetadata) -> bool:
        """Admit or reject a file, notifying on_invalid once on rejection."""
        rejection = self.check(metadata)
        if rejection is None:
            return True

        self.policy.on_invalid(rejection.reason)
        return False
