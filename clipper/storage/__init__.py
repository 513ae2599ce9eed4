"""
Storage drivers - durable homes for original files and their cached
variants.
"""

from clipper.storage.base import DriverRegistry, StorageDriver, variant_key
from clipper.storage.filesystem import FilesystemDriver
from clipper.storage.s3 import S3Driver

__all__ = [
    "DriverRegistry",
    "FilesystemDriver",
    "S3Driver",
    "StorageDriver",
    "variant_key",
]
