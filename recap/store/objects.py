"""
Object store clients.

Blobs live under ``<bucket>/<owner_id>/<name>``.  The bucket is the
*namespace*; the path always starts with the owner's id so one tenant's
blobs can never be addressed through another tenant's uploads.
"""

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from recap.config import settings
from recap.exceptions import ObjectStoreError

logger = logging.getLogger(__name__)


def blob_path_for(file_url: Optional[str], owner_id: str) -> Optional[str]:
    """
    Derive the storage path of an upload's blob from its public URL.

    Only the trailing path segment of *file_url* is trusted; the owner prefix
    always comes from the caller's identity.  Returns ``None`` when no
    segment can be extracted.

    >>> blob_path_for("https://x.supabase.co/storage/v1/object/public/uploads/u1/a%20b.m4a", "u1")
    'u1/a b.m4a'
    """
    if not file_url:
        return None
    try:
        path = urlparse(file_url).path if "://" in file_url else file_url
    except ValueError:
        # e.g. an unbalanced "[" in the host
        return None
    segment = unquote(path.rstrip("/").rsplit("/", 1)[-1]).strip()
    # An encoded separator would let the name climb out of the owner prefix
    if not segment or segment in (".", "..") or "/" in segment or "\\" in segment:
        return None
    return f"{owner_id}/{segment}"


class ObjectStore(ABC):
    """Remove-by-path (and put, for uploaders and tests) over a namespaced blob store."""

    @abstractmethod
    def put(self, namespace: str, path: str, data: bytes) -> None:
        """Store *data* at *path* inside *namespace*, overwriting any existing blob."""

    @abstractmethod
    def remove(self, namespace: str, path: str) -> None:
        """
        Remove the blob at *path*.

        Removing a blob that does not exist succeeds.  Any other failure,
        including a timeout, raises :class:`ObjectStoreError`.
        """


class S3ObjectStore(ObjectStore):
    """S3-compatible object storage (AWS S3, Supabase storage, R2, MinIO...)."""

    def __init__(self, client=None) -> None:
        if client is None:
            client = boto3.client(
                "s3",
                aws_access_key_id=settings.aws_access_key_id,
                aws_secret_access_key=settings.aws_secret_access_key,
                region_name=settings.aws_region,
                endpoint_url=settings.s3_endpoint_url,
                config=Config(
                    connect_timeout=settings.storage_timeout_seconds,
                    read_timeout=settings.storage_timeout_seconds,
                    retries={"max_attempts": 2},
                ),
            )
        self.client = client

    def put(self, namespace: str, path: str, data: bytes) -> None:
        try:
            self.client.put_object(Bucket=namespace, Key=path, Body=data)
        except (BotoCoreError, ClientError) as e:
            raise ObjectStoreError(f"Failed to upload s3://{namespace}/{path}: {e}") from e

    def remove(self, namespace: str, path: str) -> None:
        try:
            self.client.delete_object(Bucket=namespace, Key=path)
        except (BotoCoreError, ClientError) as e:
            raise ObjectStoreError(f"Failed to delete s3://{namespace}/{path}: {e}") from e
        logger.info(f"Removed s3://{namespace}/{path}")


class LocalObjectStore(ObjectStore):
    """Filesystem-backed store, laid out as ``<root>/<namespace>/<path>``."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()

    def _target(self, namespace: str, path: str) -> Path:
        base = (self.root / namespace).resolve()
        target = (base / path).resolve()
        if not target.is_relative_to(base):
            raise ObjectStoreError(f"Path escapes namespace '{namespace}': {path}")
        return target

    def put(self, namespace: str, path: str, data: bytes) -> None:
        target = self._target(namespace, path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            raise ObjectStoreError(f"Failed to write {target}: {e}") from e

    def remove(self, namespace: str, path: str) -> None:
        target = self._target(namespace, path)
        try:
            os.remove(target)
        except FileNotFoundError:
            logger.debug(f"Blob already absent: {target}")
            return
        except OSError as e:
            raise ObjectStoreError(f"Failed to delete {target}: {e}") from e
        logger.info(f"Removed {target}")

    def exists(self, namespace: str, path: str) -> bool:
        return self._target(namespace, path).is_file()


def get_object_store() -> ObjectStore:
    """Build the object store selected by ``settings.storage_backend``."""
    backend = (settings.storage_backend or "local").lower()
    if backend == "s3":
        return S3ObjectStore()
    if backend == "local":
        return LocalObjectStore(settings.local_storage_root)
    raise ValueError(f"Unsupported storage backend: {settings.storage_backend}")
