"""
Object storage for uploaded images.

Both backends share one contract: ``upload(path, data, content_type)`` returns
the public URL of the stored object, ``remove(path)`` deletes it and
``path_from_url(url)`` recovers the object path from a URL we handed out.
"""
import logging
from pathlib import Path
from typing import Optional

import httpx

from .config import settings

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    pass


class LocalStorage:
    def __init__(self, root: str, base_url: str = "/uploads"):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        target = self.root / path
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Could not write {path}: {exc}") from exc
        return f"{self.base_url}/{path}"

    def remove(self, path: str) -> None:
        try:
            (self.root / path).unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise StorageError(f"Could not remove {path}: {exc}") from exc

    def path_from_url(self, url: str) -> str:
        prefix = f"{self.base_url}/"
        return url.split(prefix, 1)[1] if prefix in url else ""


class SupabaseStorage:
    """Supabase Storage over its REST API."""

    def __init__(
        self,
        url: str,
        service_role_key: str,
        bucket: str,
        timeout: float = 30,
        client: Optional[httpx.Client] = None,
    ):
        self.url = url.rstrip("/")
        self.bucket = bucket
        self._headers = {
            "Authorization": f"Bearer {service_role_key}",
            "apikey": service_role_key,
        }
        self._client = client or httpx.Client(timeout=timeout)

    def _public_prefix(self) -> str:
        return f"{self.url}/storage/v1/object/public/{self.bucket}/"

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        response = self._client.post(
            f"{self.url}/storage/v1/object/{self.bucket}/{path}",
            content=data,
            headers={**self._headers, "Content-Type": content_type, "x-upsert": "true"},
        )
        if response.status_code >= 300:
            raise StorageError(f"Upload of {path} failed: {response.status_code} {response.text}")
        return self._public_prefix() + path

    def remove(self, path: str) -> None:
        response = self._client.request(
            "DELETE",
            f"{self.url}/storage/v1/object/{self.bucket}",
            json={"prefixes": [path]},
            headers=self._headers,
        )
        if response.status_code >= 300:
            raise StorageError(f"Removal of {path} failed: {response.status_code} {response.text}")

    def path_from_url(self, url: str) -> str:
        prefix = self._public_prefix()
        return url[len(prefix):] if url.startswith(prefix) else ""


_storage = None


def get_storage():
    global _storage
    if _storage is None:
        if settings.storage_backend == "supabase":
            if not settings.supabase_url or not settings.supabase_service_role_key:
                raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required")
            _storage = SupabaseStorage(
                settings.supabase_url, settings.supabase_service_role_key, settings.storage_bucket
            )
        else:
            _storage = LocalStorage(settings.upload_dir, f"{settings.public_base_url}/uploads")
        logger.info("Using %s image storage", settings.storage_backend)
    return _storage
