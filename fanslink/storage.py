"""
Blob storage abstraction for Firebase Storage, S3-compatible buckets and
in-memory testing.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Optional, Protocol
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from firebase_admin import storage as firebase_storage
from google.api_core import exceptions as google_exceptions

from fanslink.errors import BackendError

logger = logging.getLogger(__name__)

FIREBASE_DOWNLOAD_URL = (
    "https://firebasestorage.googleapis.com/v0/b/{bucket}/o/{path}?alt=media&token={token}"
)


class StorageClient(Protocol):
    """Defines the operations the services need from object storage."""

    def upload_bytes(
        self, path: str, data: bytes, content_type: Optional[str] = None
    ) -> str:
        """Store `data` at `path` and return a URL that serves it."""
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage"
    stored_objects: dict = field(default_factory=dict)
    content_types: dict = field(default_factory=dict)

    def upload_bytes(
        self, path: str, data: bytes, content_type: Optional[str] = None
    ) -> str:
        self.stored_objects[path] = bytes(data)
        self.content_types[path] = content_type
        return f"{self.base_url}/{quote(path, safe='')}"


@dataclass
class FirebaseStorageClient:
    """
    Firebase Storage (GCS) client. URLs carry a download token so they can be
    served without making the object public.
    """

    bucket_name: Optional[str] = None

    def __post_init__(self):
        self._bucket = firebase_storage.bucket(self.bucket_name)

    def upload_bytes(
        self, path: str, data: bytes, content_type: Optional[str] = None
    ) -> str:
        token = uuid.uuid4().hex
        blob = self._bucket.blob(path)
        blob.metadata = {"firebaseStorageDownloadTokens": token}
        try:
            blob.upload_from_string(
                data, content_type=content_type or "application/octet-stream"
            )
        except google_exceptions.GoogleAPICallError as e:
            logger.error("Upload to %s failed: %s", path, e)
            raise BackendError(f"Upload to {path} failed") from e
        return FIREBASE_DOWNLOAD_URL.format(
            bucket=self._bucket.name, path=quote(path, safe=""), token=token
        )


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client (AWS, Tencent COS, MinIO).
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str
    public_base_url: Optional[str] = None

    def __post_init__(self):
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def upload_bytes(
        self, path: str, data: bytes, content_type: Optional[str] = None
    ) -> str:
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=path,
                Body=data,
                ContentType=content_type or "application/octet-stream",
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Upload to %s failed: %s", path, e)
            raise BackendError(f"Upload to {path} failed") from e
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{quote(path)}"
        # Without a public base URL the best we can hand out is a long-lived
        # presigned link (7 days is the SigV4 maximum).
        return self._client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self.bucket, "Key": path},
            ExpiresIn=7 * 24 * 3600,
        )
