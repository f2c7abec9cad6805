"""Persistence of filled documents.

A store receives the finished bytes under a fresh artifact name and returns a
location the user can download from. Locations can be issued again later for
an artifact that is already stored, since presigned URLs expire.
"""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional, Union

from .config import Settings
from .errors import PersistenceFailure

logger = logging.getLogger(__name__)

S3_PREFIX = "filled-forms"


def new_artifact_name() -> str:
    return f"filled_{uuid.uuid4()}.pdf"


class ArtifactStore(ABC):
    """Base class for filled-document stores."""

    @abstractmethod
    def save(self, artifact_name: str, data: bytes) -> str:
        """Store ``data`` and return its download location."""

    @abstractmethod
    def location_for(self, artifact_name: str) -> str:
        """Return a fresh download location for an already stored artifact."""


class LocalArtifactStore(ArtifactStore):
    """Writes artifacts to a directory and returns ``file://`` URIs."""

    def __init__(self, directory: Union[str, Path]) -> None:
        self._directory = Path(directory)

    def _path_for(self, artifact_name: str) -> Path:
        return (self._directory / artifact_name).resolve()

    def save(self, artifact_name: str, data: bytes) -> str:
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            path = self._path_for(artifact_name)
            path.write_bytes(data)
        except OSError as e:
            logger.error(f"Failed to write {artifact_name}: {e}")
            raise PersistenceFailure(f"Failed to save filled form: {e}") from e
        logger.info(f"Saved {len(data)} bytes to {path}")
        return path.as_uri()

    def location_for(self, artifact_name: str) -> str:
        path = self._path_for(artifact_name)
        if not path.is_file():
            raise PersistenceFailure(f"Filled form {artifact_name} is not stored in {self._directory}")
        return path.as_uri()


class S3ArtifactStore(ArtifactStore):
    """Uploads artifacts to S3 and issues a presigned download URL."""

    def __init__(
        self,
        bucket: str,
        client: Any = None,
        prefix: str = S3_PREFIX,
        expires_in: int = 3600,
    ) -> None:
        if not bucket:
            raise ValueError("An S3 bucket name is required (set AWS_S3_BUCKET_NAME)")
        self._bucket = bucket
        self._client = client
        self._prefix = prefix.strip("/")
        self._expires_in = expires_in

    def _get_client(self) -> Any:
        if self._client is None:
            import boto3

            self._client = boto3.client("s3")
        return self._client

    def key_for(self, artifact_name: str) -> str:
        return f"{self._prefix}/{artifact_name}" if self._prefix else artifact_name

    def _presign(self, client: Any, artifact_name: str) -> str:
        return client.generate_presigned_url(
            "get_object",
            Params={
                "Bucket": self._bucket,
                "Key": self.key_for(artifact_name),
                "ResponseContentDisposition": f'attachment; filename="{artifact_name}"',
            },
            ExpiresIn=self._expires_in,
        )

    def save(self, artifact_name: str, data: bytes) -> str:
        key = self.key_for(artifact_name)
        try:
            client = self._get_client()
            client.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=data,
                ContentType="application/pdf",
                ACL="private",
            )
            url = self._presign(client, artifact_name)
        except Exception as e:
            logger.error(f"S3 upload failed for {key}: {e}")
            raise PersistenceFailure(f"Failed to upload filled form to S3: {e}") from e
        logger.info(f"Uploaded {len(data)} bytes to s3://{self._bucket}/{key}")
        return url

    def location_for(self, artifact_name: str) -> str:
        try:
            url = self._presign(self._get_client(), artifact_name)
        except Exception as e:
            logger.error(f"Could not presign {self.key_for(artifact_name)}: {e}")
            raise PersistenceFailure(f"Failed to issue a download URL: {e}") from e
        logger.info(f"Issued a fresh download URL for {artifact_name}")
        return url


def build_store(settings: Settings, client: Optional[Any] = None) -> ArtifactStore:
    if settings.storage_backend == "s3":
        return S3ArtifactStore(
            bucket=settings.s3_bucket or "",
            client=client,
            expires_in=settings.url_expiry_seconds,
        )
    return LocalArtifactStore(settings.output_dir)


__all__ = [
    "ArtifactStore",
    "LocalArtifactStore",
    "S3ArtifactStore",
    "build_store",
    "new_artifact_name",
]
