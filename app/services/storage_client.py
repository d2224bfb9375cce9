"""Object storage helper for uploaded source files."""

from __future__ import annotations

import os
from dataclasses import dataclass
from urllib.parse import urlparse, urlunparse

from google.api_core.exceptions import NotFound
from google.auth.credentials import AnonymousCredentials
from google.cloud import storage
from starlette.concurrency import run_in_threadpool

from app.config import Settings
from app.core.errors import BlobNotFoundError


@dataclass(frozen=True)
class BlobLocation:
  """Bucket/object pair resolved from a stored path."""

  bucket: str
  object_name: str


class StorageClient:
  """Thin wrapper over GCS and emulator access for uploaded files."""

  def __init__(self, settings: Settings) -> None:
    self._bucket_name = settings.upload_bucket
    self._storage_host = settings.gcs_storage_host
    # Ensure emulator endpoint is visible to the SDK in local development.
    if self._storage_host:
      emulator_endpoint = _normalize_emulator_endpoint(self._storage_host)
      os.environ["STORAGE_EMULATOR_HOST"] = emulator_endpoint
      self._client = storage.Client(project=settings.gcp_project_id or "local-dev", credentials=AnonymousCredentials(), client_options={"api_endpoint": emulator_endpoint})
    else:
      self._client = storage.Client(project=settings.gcp_project_id)

  @property
  def bucket_name(self) -> str:
    """Return the default bucket for uploads."""
    return self._bucket_name

  async def ensure_bucket(self) -> None:
    """Create the upload bucket when missing in emulator mode."""
    if not self._storage_host:
      return
    bucket = self._client.bucket(self._bucket_name)

    def _create_if_missing() -> None:
      if not bucket.exists(client=self._client):
        self._client.create_bucket(bucket)

    await run_in_threadpool(_create_if_missing)

  async def download(self, path: str) -> bytes:
    """Download the object behind a stored path, raising BlobNotFoundError when absent."""
    location = resolve_blob_location(path, default_bucket=self._bucket_name)
    blob = self._client.bucket(location.bucket).blob(location.object_name)
    try:
      return await run_in_threadpool(blob.download_as_bytes)
    except NotFound as exc:
      raise BlobNotFoundError(f"Object not found: {location.bucket}/{location.object_name}") from exc


def resolve_blob_location(path: str, *, default_bucket: str) -> BlobLocation:
  """Split `bucket/object` (optionally `gs://`-prefixed); bare names land in the default bucket."""
  cleaned = path.strip().removeprefix("gs://").lstrip("/")
  if not cleaned:
    raise BlobNotFoundError("Storage path is empty.")
  bucket, sep, object_name = cleaned.partition("/")
  if not sep or not object_name:
    return BlobLocation(bucket=default_bucket, object_name=cleaned)
  return BlobLocation(bucket=bucket, object_name=object_name)


def build_storage_client(settings: Settings) -> StorageClient:
  """Create a storage client instance with environment-aware credentials."""
  return StorageClient(settings)


def _normalize_emulator_endpoint(raw_endpoint: str) -> str:
  """Normalize emulator endpoint so the SDK receives scheme+host+port only."""
  parsed = urlparse(raw_endpoint)
  if not parsed.scheme or not parsed.netloc:
    return raw_endpoint.rstrip("/")
  return urlunparse((parsed.scheme, parsed.netloc, "", "", "", "")).rstrip("/")
