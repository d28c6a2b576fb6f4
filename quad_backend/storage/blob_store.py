"""
Blob store clients for S3-compatible storage (Cloudflare R2) and in-memory testing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

MISSING_KEY_CODES = ("NoSuchKey", "404", "NotFound")


@dataclass
class StoredObject:
    body: bytes
    content_type: str = "application/octet-stream"


class BlobStore(Protocol):
    """Defines the operations the handlers need from object storage."""

    def put(self, key: str, data: bytes, content_type: str) -> None:
        ...

    def get(self, key: str) -> Optional[StoredObject]:
        ...


@dataclass
class InMemoryBlobStore:
    """Test double for blob storage."""

    objects: Dict[str, StoredObject] = field(default_factory=dict)

    def put(self, key: str, data: bytes, content_type: str) -> None:
        self.objects[key] = StoredObject(body=bytes(data), content_type=content_type)

    def get(self, key: str) -> Optional[StoredObject]:
        return self.objects.get(key)


@dataclass
class S3BlobStore:
    """
    S3-compatible blob store.
    Works against R2 by pointing endpoint_url at the account endpoint.
    """

    bucket: str
    endpoint_url: Optional[str] = None
    region: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None

    def __post_init__(self):
        config = Config(signature_version="s3v4")
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint_url,
            region_name=self.region,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def put(self, key: str, data: bytes, content_type: str) -> None:
        self._client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
        )

    def get(self, key: str) -> Optional[StoredObject]:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in MISSING_KEY_CODES:
                return None
            raise
        return StoredObject(
            body=response["Body"].read(),
            content_type=response.get("ContentType") or "application/octet-stream",
        )
