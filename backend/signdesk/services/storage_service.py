"""
Storage for signed PDFs.

Two backends share one contract, ``upload(content, key) -> url``:
local disk (served back by the files blueprint) and Supabase Storage
(REST API via httpx, public bucket URLs). Upload failures raise
PersistenceFailedError and are never retried here.
"""

import asyncio
import logging
import os
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import quote

import httpx

from signdesk.config import settings
from signdesk.utils.exceptions import PersistenceFailedError

logger = logging.getLogger(__name__)


def normalize_key(key: str) -> str:
    """Validate a storage key like 'user-id/signed-doc-id.pdf'."""
    path = PurePosixPath(str(key).strip().lstrip("/"))
    if not path.parts or any(part in ("..", ".") for part in path.parts):
        raise PersistenceFailedError(str(key), "invalid storage key")
    return path.as_posix()


class StorageService:
    """Base class for signed-document storage backends."""

    async def upload(self, content: bytes, key: str) -> str:
        raise NotImplementedError

    def public_url(self, key: str) -> str:
        raise NotImplementedError


class LocalStorageService(StorageService):
    """Stores files under a local root directory."""

    def __init__(self, root: str, public_base_url: str):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def path_for(self, key: str) -> Path:
        return self.root / normalize_key(key)

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/files/{quote(normalize_key(key))}"

    async def upload(self, content: bytes, key: str) -> str:
        key = normalize_key(key)
        try:
            await asyncio.to_thread(self._write, self.path_for(key), content)
        except OSError as e:
            logger.error(f"Local storage write failed for {key}: {e}")
            raise PersistenceFailedError(key, e.strerror or str(e))

        url = self.public_url(key)
        logger.info(f"Stored {len(content)} bytes at {url}")
        return url

    @staticmethod
    def _write(path: Path, content: bytes) -> None:
        # Write to a sibling temp file first so readers never see a partial PDF
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f".{path.name}.tmp")
        tmp_path.write_bytes(content)
        os.replace(tmp_path, path)


class SupabaseStorageService(StorageService):
    """Stores files in a Supabase Storage bucket."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        bucket: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key
        self.bucket = bucket
        self.timeout = timeout
        self.transport = transport

    def _get_headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.service_key}",
            "apikey": self.service_key,
            "Content-Type": "application/pdf",
            "x-upsert": "true",
        }

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{quote(normalize_key(key))}"

    async def upload(self, content: bytes, key: str) -> str:
        key = normalize_key(key)
        upload_url = f"{self.base_url}/storage/v1/object/{self.bucket}/{quote(key)}"

        logger.info(f"Uploading file to Supabase Storage: {self.bucket}/{key}")

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.post(upload_url, headers=self._get_headers(), content=content)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                reason = self._error_message(e.response)
                logger.error(f"Supabase upload failed for {key}: {reason}")
                raise PersistenceFailedError(key, reason)
            except httpx.HTTPError as e:
                logger.error(f"Supabase upload failed for {key}: {e}")
                raise PersistenceFailedError(key, str(e) or type(e).__name__)

        url = self.public_url(key)
        logger.info(f"File uploaded successfully: {url}")
        return url

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return f"HTTP {response.status_code}"
        message = data.get("message") or data.get("error") if isinstance(data, dict) else None
        return f"HTTP {response.status_code}: {message}" if message else f"HTTP {response.status_code}"


# Singleton instance (lazy initialization)
_storage_service: Optional[StorageService] = None


def build_storage_service() -> StorageService:
    if settings.storage_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise RuntimeError("Supabase storage selected but SUPABASE_URL / SUPABASE_SERVICE_KEY are not set")
        return SupabaseStorageService(
            settings.supabase_url,
            settings.supabase_service_key,
            settings.supabase_bucket,
            timeout=settings.http_timeout_seconds,
        )
    return LocalStorageService(settings.storage_root, settings.public_base_url)


def get_storage_service() -> StorageService:
    """Get the storage service singleton."""
    global _storage_service
    if _storage_service is None:
        _storage_service = build_storage_service()
    return _storage_service
