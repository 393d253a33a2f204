"""Object store access through the MinIO SDK.

Two clients may exist:

- the internal client talks to ``MINIO_ENDPOINT`` (typically a hostname
  only resolvable inside the deployment network) and performs all data
  operations;
- an optional signing client built from ``MINIO_PUBLIC_ENDPOINT`` is used
  only to presign URLs handed to browsers. It never performs network calls,
  which is why the region is configured explicitly.
"""

import io
import logging
import time
from datetime import timedelta
from functools import lru_cache
from typing import BinaryIO, Iterator, Optional
from urllib.parse import urlsplit, urlunsplit

from minio import Minio
from minio.error import S3Error
from urllib3.exceptions import HTTPError as Urllib3HTTPError

from ..core.config import settings
from ..exceptions import StorageError

logger = logging.getLogger(__name__)

# Multipart chunk size for uploads of unknown length (MinIO minimum is 5 MiB).
_PART_SIZE = 10 * 1024 * 1024
_STREAM_CHUNK = 64 * 1024
_RETRY_BACKOFF_SECONDS = 0.5

_TRANSIENT_ERRORS = (S3Error, Urllib3HTTPError, OSError)


def rewrite_host(url: str, public_base: str) -> str:
    """Swap the scheme and host of *url* for those of *public_base*.

    Best-effort: returns *url* unchanged when either value cannot be parsed
    or *public_base* has no host.
    """
    try:
        original = urlsplit(url)
        public = urlsplit(public_base)
        if not public.scheme or not public.netloc:
            return url
        return urlunsplit((public.scheme, public.netloc, original.path, original.query, original.fragment))
    except ValueError:
        logger.warning("Could not rewrite presigned URL host", extra={"public_base": public_base})
        return url


def _client_from_public_endpoint(public_endpoint: str) -> Optional[Minio]:
    """Build the signing-only client, or None if the URL cannot be parsed."""
    try:
        parsed = urlsplit(public_endpoint)
        if not parsed.hostname:
            raise ValueError("no host")
        secure = parsed.scheme == "https"
        port = parsed.port or (443 if secure else 80)
        return Minio(
            endpoint=f"{parsed.hostname}:{port}",
            access_key=settings.minio_access_key,
            secret_key=settings.minio_secret_key,
            secure=secure,
            region=settings.minio_region,
        )
    except ValueError as e:
        logger.warning(
            "Ignoring unparseable MINIO_PUBLIC_ENDPOINT",
            extra={"public_endpoint": public_endpoint, "reason": str(e)},
        )
        return None


class StorageService:
    """Blob operations on the configured bucket."""

    def __init__(
        self,
        client: Optional[Minio] = None,
        signing_client: Optional[Minio] = None,
        bucket: Optional[str] = None,
    ):
        self.bucket = bucket or settings.minio_bucket
        self.client = client or Minio(
            endpoint=f"{settings.minio_endpoint}:{settings.minio_port}",
            access_key=settings.minio_access_key,
            secret_key=settings.minio_secret_key,
            secure=settings.minio_use_ssl,
            region=settings.minio_region,
        )
        if signing_client is None and settings.minio_public_endpoint:
            signing_client = _client_from_public_endpoint(settings.minio_public_endpoint)
        self.signing_client = signing_client
        self.url_expiry = timedelta(seconds=settings.presigned_url_expiry_seconds)

    def ensure_bucket(self) -> None:
        """Create the bucket on first start."""
        try:
            if not self.client.bucket_exists(bucket_name=self.bucket):
                self.client.make_bucket(bucket_name=self.bucket, location=settings.minio_region)
                logger.info("Created bucket", extra={"bucket": self.bucket})
        except _TRANSIENT_ERRORS as e:
            raise StorageError(f"Cannot access bucket {self.bucket}", e) from e

    # --- Presigned URLs ---

    def _presign(self, method: str, key: str) -> str:
        presign_attr = "presigned_put_object" if method == "PUT" else "presigned_get_object"
        if self.signing_client is not None:
            try:
                return getattr(self.signing_client, presign_attr)(
                    bucket_name=self.bucket, object_name=key, expires=self.url_expiry
                )
            except _TRANSIENT_ERRORS as e:
                logger.warning(
                    "Signing client presign failed, falling back to internal client",
                    extra={"method": method, "error": str(e)},
                )
        try:
            url = getattr(self.client, presign_attr)(
                bucket_name=self.bucket, object_name=key, expires=self.url_expiry
            )
        except _TRANSIENT_ERRORS as e:
            raise StorageError("Failed to generate presigned URL", e) from e

        if self.signing_client is not None and settings.minio_public_endpoint:
            # Only valid behind a proxy that forwards the internal Host header.
            return rewrite_host(url, settings.minio_public_endpoint)
        return url

    def presigned_put_url(self, key: str) -> str:
        return self._presign("PUT", key)

    def presigned_get_url(self, key: str) -> str:
        return self._presign("GET", key)

    # --- Data operations ---

    def put_object(self, key: str, data: bytes | BinaryIO, content_type: Optional[str] = None) -> None:
        """Upload *data* under *key*. Bytes are sent in one request; streams as multipart."""
        if isinstance(data, (bytes, bytearray)):
            stream, length, part_size = io.BytesIO(data), len(data), 0
        else:
            stream, length, part_size = data, -1, _PART_SIZE
        try:
            self.client.put_object(
                bucket_name=self.bucket,
                object_name=key,
                data=stream,
                length=length,
                content_type=content_type or "application/octet-stream",
                part_size=part_size,
            )
        except _TRANSIENT_ERRORS as e:
            raise StorageError("Failed to store object", e) from e

    def get_object_stream(self, key: str) -> Iterator[bytes]:
        """Start a download and return an iterator over its chunks.

        The request is issued eagerly so a missing object fails here, before
        any response has been started. The connection is released once the
        iterator is exhausted or closed.
        """
        try:
            response = self.client.get_object(bucket_name=self.bucket, object_name=key)
        except _TRANSIENT_ERRORS as e:
            raise StorageError("Failed to read object", e) from e

        def _chunks() -> Iterator[bytes]:
            try:
                yield from response.stream(_STREAM_CHUNK)
            finally:
                response.close()
                response.release_conn()

        return _chunks()

    def stat_object(self, key: str) -> int:
        """Size in bytes of a stored object. Raises StorageError if it does not exist."""
        try:
            stat = self.client.stat_object(bucket_name=self.bucket, object_name=key)
        except _TRANSIENT_ERRORS as e:
            raise StorageError("Object not found in storage", e) from e
        return int(stat.size or 0)

    def remove_object(self, key: str) -> None:
        """Delete an object, retrying transient failures a bounded number of times."""
        attempts = max(1, settings.storage_delete_retries)
        last_error: Optional[Exception] = None
        for attempt in range(1, attempts + 1):
            try:
                self.client.remove_object(bucket_name=self.bucket, object_name=key)
                return
            except _TRANSIENT_ERRORS as e:
                last_error = e
                logger.warning(
                    "Object delete failed",
                    extra={"key": key, "attempt": attempt, "max_attempts": attempts, "error": str(e)},
                )
                if attempt < attempts:
                    time.sleep(_RETRY_BACKOFF_SECONDS * attempt)
        raise StorageError("Failed to delete object", last_error)


@lru_cache(maxsize=1)
def get_storage() -> StorageService:
    """FastAPI dependency returning the process-wide storage service."""
    return StorageService()
