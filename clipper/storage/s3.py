"""
Amazon S3 storage driver.

Layout: ``s3://<bucket>/<prefix><record id>/<variant key><ext>``.
"""

import logging
import tempfile
from pathlib import Path

import boto3
from botocore.exceptions import ClientError

from clipper.filerecord.models import Artifact, FileRecord
from clipper.storage.base import StorageDriver, DEFAULT_MODIFICATION_KEY


logger = logging.getLogger(__name__)

MISSING_OBJECT_CODES = ("404", "NoSuchKey", "NotFound")


def _parse_s3_path(s3_path: str) -> tuple[str, str]:
    """Parse S3 path into bucket and prefix"""
    if not s3_path.startswith("s3://"):
        raise ValueError("Invalid S3 path format. Must start with s3://")

    path_without_scheme = s3_path[5:]

    if not path_without_scheme:
        raise ValueError("Invalid S3 path format. Bucket name is required")

    if path_without_scheme.startswith("/"):
        raise ValueError("Invalid S3 path format. Bucket name cannot start with /")

    if "//" in path_without_scheme:
        raise ValueError("Invalid S3 path format. Path cannot contain double slashes")

    if "/" in path_without_scheme:
        bucket, key = path_without_scheme.split("/", 1)
    else:
        bucket = path_without_scheme
        key = ""

    # Stored keys always sit below a directory-like prefix
    if key and not key.endswith("/"):
        key += "/"

    return bucket, key


class S3Driver(StorageDriver):
    """
    Stores files in an S3 bucket.

    Public URIs are built from ``public_prefix`` when the bucket is served
    publicly (e.g. behind a CDN), otherwise presigned GET URLs are issued.
    """

    def __init__(
        self,
        bucket_uri: str,
        s3_client=None,
        public_prefix: str | None = None,
        presign_expiry: int = 3600,
        modification_key: str = DEFAULT_MODIFICATION_KEY,
    ):
        super().__init__(modification_key)
        self.bucket, self.prefix = _parse_s3_path(bucket_uri)
        self._s3_client = s3_client
        self.public_prefix = public_prefix.rstrip("/") if public_prefix else None
        self.presign_expiry = presign_expiry

    @property
    def s3_client(self):
        if self._s3_client is None:
            self._s3_client = boto3.client("s3")
        return self._s3_client

    def record_prefix(self, record: FileRecord) -> str:
        return f"{self.prefix}{record.id}/"

    def key_for(self, record: FileRecord, options: dict | None = None) -> str:
        return f"{self.record_prefix(record)}{self.filename(record, options)}"

    def has(self, record, options=None):
        try:
            self.s3_client.head_object(Bucket=self.bucket, Key=self.key_for(record, options))
        except ClientError as exc:
            if exc.response["Error"]["Code"] in MISSING_OBJECT_CODES:
                return False
            raise
        return True

    def temp_original(self, record):
        key = self.key_for(record)
        response = self.s3_client.get_object(Bucket=self.bucket, Key=key)
        with tempfile.NamedTemporaryFile(suffix=Path(key).suffix, delete=False) as handle:
            handle.write(response["Body"].read())
        return Artifact(path=Path(handle.name), mime_type=record.mime_type, staged=True)

    def save_file(self, artifact, record, options=None):
        key = self.key_for(record, options)
        extra = {"ContentType": record.mime_type} if record.mime_type else {}
        self.s3_client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=artifact.read_bytes(),
            **extra,
        )
        logger.debug("Stored s3://%s/%s", self.bucket, key)

    def delete(self, record, options=None):
        if not self.is_original(options):
            self.s3_client.delete_object(Bucket=self.bucket, Key=self.key_for(record, options))
            return

        # Original goes, so every cached variant goes with it
        paginator = self.s3_client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=self.bucket, Prefix=self.record_prefix(record)):
            for obj in page.get("Contents", []):
                self.s3_client.delete_object(Bucket=self.bucket, Key=obj["Key"])
        logger.debug("Removed all stored objects of record %s", record.id)

    def get_public_uri(self, record, options=None):
        key = self.key_for(record, options)
        if self.public_prefix:
            return f"{self.public_prefix}/{key}"
        return self.s3_client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=self.presign_expiry,
        )
