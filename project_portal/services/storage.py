"""
Blob storage: upload handles and signed download URLs.

Files are stored out of band; records only keep the opaque `file_id`.
The default backend issues HMAC-signed, expiring URLs under
STORAGE_BASE_URL, served by whatever fronts the bucket.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from uuid import uuid4

from ..core.config import get_settings
from ..core.security import sign_file_reference

logger = logging.getLogger(__name__)


@dataclass
class UploadHandle:
    file_id: str
    upload_url: str
    expires_at: int


class StorageBackend(ABC):
    """Abstract blob store."""

    @abstractmethod
    async def generate_upload_url(self) -> UploadHandle:
        pass

    @abstractmethod
    async def get_url(self, file_id: str) -> str | None:
        """Download URL for a stored file, or None if it cannot be resolved."""
        pass

    @abstractmethod
    async def delete(self, file_id: str) -> None:
        pass


class SignedUrlStorage(StorageBackend):
    def __init__(self, base_url: str, ttl_seconds: int = 3600):
        self._base_url = base_url.rstrip("/")
        self._ttl = ttl_seconds

    def _expiry(self) -> int:
        return int(datetime.now(timezone.utc).timestamp()) + self._ttl

    def _signed(self, path: str, file_id: str) -> tuple[str, int]:
        expires_at = self._expiry()
        signature = sign_file_reference(file_id, expires_at)
        return f"{self._base_url}/{path}?expires={expires_at}&signature={signature}", expires_at

    async def generate_upload_url(self) -> UploadHandle:
        file_id = uuid4().hex
        url, expires_at = self._signed(f"upload/{file_id}", file_id)
        return UploadHandle(file_id=file_id, upload_url=url, expires_at=expires_at)

    async def get_url(self, file_id: str) -> str | None:
        if not file_id:
            return None
        url, _ = self._signed(file_id, file_id)
        return url

    async def delete(self, file_id: str) -> None:
        # Objects expire through bucket lifecycle rules; record the intent only
        logger.info(f"Storage delete requested for {file_id}")


@lru_cache
def get_storage_backend() -> StorageBackend:
    settings = get_settings()
    return SignedUrlStorage(settings.storage_base_url, settings.storage_url_ttl_seconds)
