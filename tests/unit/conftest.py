"""
Shared fixtures for the unit tests.

Images are generated in memory with Pillow; storage is the in-memory
mock store. Nothing here touches the network or the file system.
"""

import io
from typing import Optional

import pytest
from PIL import Image

from easyimages.core.images import ImageCollectionFactory
from easyimages.infrastructure.imaging import PillowImageTransformer
from easyimages.infrastructure.storage import MockObjectStore

EXIF_ORIENTATION_TAG = 0x0112


def make_image(
    width: int,
    height: int,
    image_format: str = "JPEG",
    orientation: Optional[int] = None,
    color: tuple[int, int, int] = (200, 30, 30),
) -> bytes:
    """Encode a solid-color image, optionally tagged with an EXIF orientation."""
    image = Image.new("RGB", (width, height), color)
    output = io.BytesIO()

    options = {}
    if orientation is not None:
        exif = Image.Exif()
        exif[EXIF_ORIENTATION_TAG] = orientation
        options["exif"] = exif.tobytes()

    image.save(output, format=image_format, **options)
    return output.getvalue()


def image_size(data: bytes) -> tuple[int, int]:
    with Image.open(io.BytesIO(data)) as image:
        return image.size


class RecordingInvalidHook:
    """on_invalid hook that remembers every reason it was given."""

    def __init__(self) -> None:
        self.reasons: list[str] = []

    def __call__(self, reason: str) -> None:
        self.reasons.append(reason)


@pytest.fixture
def object_store() -> MockObjectStore:
    return MockObjectStore()


@pytest.fixture
def on_invalid() -> RecordingInvalidHook:
    return RecordingInvalidHook()


@pytest.fixture
def transformer() -> PillowImageTransformer:
    return PillowImageTransformer()


@pytest.fixture
def private_factory(object_store, transformer, on_invalid) -> ImageCollectionFactory:
    return ImageCollectionFactory(
        "AKIDEXAMPLE",
        "secret",
        "photos",
        object_store=object_store,
        transformer=transformer,
        on_invalid=on_invalid,
    )


@pytest.fixture
def public_factory(object_store, transformer, on_invalid) -> ImageCollectionFactory:
    return ImageCollectionFactory(
        "AKIDEXAMPLE",
        "secret",
        "photos",
        object_store=object_store,
        public_read=True,
        transformer=transformer,
        on_invalid=on_invalid,
    )
