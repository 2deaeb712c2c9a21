"""
Store planning for image collections.

A collection is stored as one untouched original plus one fixed-size
copy per named variant. Each copy gets its own StoreDefinition so the
writes are independent of each other.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Optional, Union

from .models import (
    ORIGINAL_VARIANT,
    AccessPolicy,
    ConfigurationError,
    Dimensions,
    StorageCredentials,
    StoreDefinition,
)

logger = logging.getLogger(__name__)

# sizes look like {"thumbnail": [100, 100], "normal": [200, 300]}
SizeValue = Union[Dimensions, Sequence[int]]


def parse_sizes(sizes: Mapping[str, SizeValue]) -> dict[str, Dimensions]:
    """Normalize a variant mapping into Dimensions, validating names and sizes."""
    parsed: dict[str, Dimensions] = {}

    for variant_name, value in sizes.items():
        if not isinstance(variant_name, str) or not variant_name.strip():
            raise ConfigurationError("Variant names must be non-empty strings")

        if isinstance(value, Dimensions):
            parsed[variant_name] = value
            continue

        if isinstance(value, (str, bytes)) or not isinstance(value, Sequence) or len(value) != 2:
            raise ConfigurationError(
                f"Variant '{variant_name}' needs exactly [width, height], got {value!r}"
            )

        parsed[variant_name] = Dimensions(width=value[0], height=value[1])

    return parsed


def store_name(collection_name: str, variant_name: str) -> str:
    return f"{collection_name}-{variant_name}"


class VariantPlanner:
    """
    Builds the StoreDefinitions for one collection.

    The planner is pure: it only returns the plan. Provisioning happens
    later, when the object store first receives bytes for a store.
    """

    def __init__(
        self,
        bucket: str,
        access_policy: AccessPolicy,
        credentials: StorageCredentials,
    ) -> None:
        self._bucket = bucket
        self._access_policy = access_policy
        self._credentials = credentials

    def plan(
        self,
        collection_name: str,
        sizes: Mapping[str, SizeValue],
    ) -> list[StoreDefinition]:
        """
        Plan the stores for a collection.

        The first definition is always "{collection}-original" without
        dimensions, followed by one "{collection}-{variant}" per entry
        in sizes.

        Raises:
            ConfigurationError: on an empty collection name, an invalid
                variant, or two stores that end up with the same name
        """
        if not collection_name or not collection_name.strip():
            raise ConfigurationError("Collection name cannot be empty")

        variants = parse_sizes(sizes)

        stores = [self._definition(store_name(collection_name, ORIGINAL_VARIANT))]
        seen = {stores[0].name}

        for variant_name, dimensions in variants.items():
            name = store_name(collection_name, variant_name)
            if name in seen:
                raise ConfigurationError(
                    f"Variant '{variant_name}' collides with existing store '{name}'"
                )
            seen.add(name)
            stores.append(self._definition(name, dimensions))

        logger.debug(
            "Planned collection stores",
            extra={
                "collection": collection_name,
                "stores": [s.name for s in stores],
            }
        )

        return stores

    def _definition(self, name: str, dimensions: Optional[Dimensions] = None) -> StoreDefinition:
        return StoreDefinition(
            name=name,
            bucket=self._bucket,
            key_prefix=name,
            access_policy=self._access_policy,
            credentials=self._credentials,
            dimensions=dimensions,
        )
