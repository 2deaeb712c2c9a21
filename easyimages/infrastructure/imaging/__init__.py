"""
Image processing for variant stores, using Pillow.
"""

from .transformer import PillowImageTransformer, create_image_transformer

__all__ = [
    "PillowImageTransformer",
    "create_image_transformer",
]
