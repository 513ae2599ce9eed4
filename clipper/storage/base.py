"""
Storage driver contract and driver registry.
"""

import hashlib
import json
import logging
import mimetypes
from abc import ABC, abstractmethod
from typing import Mapping

from clipper.core.errors import ConfigurationError
from clipper.filerecord.models import Artifact, FileRecord


logger = logging.getLogger(__name__)

ORIGINAL_VARIANT = "original"
DEFAULT_MODIFICATION_KEY = "filters"


def variant_key(options: dict | None, modification_key: str = DEFAULT_MODIFICATION_KEY) -> str:
    """
    Derive the cache key of a variant from request options.

    Only the modification entry matters; without it (or with an empty one)
    the key names the original.
    """
    modifications = (options or {}).get(modification_key)
    if not modifications:
        return ORIGINAL_VARIANT
    encoded = json.dumps(modifications, sort_keys=True, default=str)
    return hashlib.sha1(encoded.encode("utf-8")).hexdigest()[:16]


class StorageDriver(ABC):
    """
    Pluggable storage backend.

    Every operation is keyed by (record, options); the options select the
    variant through ``variant_key``. Empty options address the original.
    """

    def __init__(self, modification_key: str = DEFAULT_MODIFICATION_KEY):
        self.modification_key = modification_key

    def get_modification_key(self) -> str:
        return self.modification_key

    def variant_key(self, options: dict | None = None) -> str:
        return variant_key(options, self.modification_key)

    def is_original(self, options: dict | None = None) -> bool:
        return self.variant_key(options) == ORIGINAL_VARIANT

    @staticmethod
    def extension_for(record: FileRecord) -> str:
        if not record.mime_type:
            return ""
        return mimetypes.guess_extension(record.mime_type) or ""

    def filename(self, record: FileRecord, options: dict | None = None) -> str:
        return f"{self.variant_key(options)}{self.extension_for(record)}"

    @abstractmethod
    def has(self, record: FileRecord, options: dict | None = None) -> bool:
        """True if the variant selected by options is stored."""

    @abstractmethod
    def temp_original(self, record: FileRecord) -> Artifact:
        """Copy the original into a staged working file."""

    @abstractmethod
    def save_file(self, artifact: Artifact, record: FileRecord, options: dict | None = None) -> None:
        """Store artifact as the variant selected by options."""

    @abstractmethod
    def delete(self, record: FileRecord, options: dict | None = None) -> None:
        """Remove the selected variant; removing the original removes them all."""

    @abstractmethod
    def get_public_uri(self, record: FileRecord, options: dict | None = None) -> str:
        """Client-addressable locator of a stored variant."""


class DriverRegistry:
    """
    Named storage drivers, resolved at startup.

    The first registered driver is the default unless another is named.
    """

    def __init__(self, drivers: Mapping[str, StorageDriver], default: str | None = None):
        if not drivers:
            raise ConfigurationError(
                "You must configure at least one file storage driver for clipper to use."
            )
        self.drivers = dict(drivers)
        self.default = default or next(iter(self.drivers))
        # Validate the default name
        self.get(self.default)

    def get(self, name: str) -> StorageDriver:
        try:
            return self.drivers[name]
        except KeyError as exc:
            raise ConfigurationError(
                f"Unknown storage driver '{name}'. Registered: {', '.join(self.drivers)}"
            ) from exc

    def names(self) -> list[str]:
        return list(self.drivers)

    def __contains__(self, name: str) -> bool:
        return name in self.drivers
