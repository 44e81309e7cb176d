# comicsmith/lib/uploader.py
from __future__ import annotations

import asyncio
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from google.cloud import storage

from comicsmith.config import config
from comicsmith.lib.paths import outputs_dir
from comicsmith.logger import get_logger

log = get_logger(__name__)

_CONTENT_TYPES = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
    "pdf": "application/pdf",
}


@dataclass(frozen=True)
class UploadedAsset:
    url: str
    external_id: str


def _object_name(folder: str, logical_id: str, fmt: str) -> str:
    folder = folder.strip("/")
    fmt = fmt.lower().lstrip(".")
    return f"{folder}/{logical_id}.{fmt}" if folder else f"{logical_id}.{fmt}"


class AssetUploader(ABC):
    """Sink for generated bytes. Re-uploading the same (folder, logical_id) overwrites in place."""

    @abstractmethod
    def upload(self, data: bytes, logical_id: str, folder: str, fmt: str = "png") -> UploadedAsset:
        ...

    async def upload_async(self, data: bytes, logical_id: str, folder: str, fmt: str = "png") -> UploadedAsset:
        return await asyncio.to_thread(self.upload, data, logical_id, folder, fmt)

    def local_path_for(self, url: str) -> Optional[str]:
        """Map a URL this uploader produced back to a readable local file, if it has one."""
        return None


class LocalUploader(AssetUploader):
    """Writes under OUTPUTS_DIR; URLs are served by the HTTP API at /outputs/..."""

    def __init__(self, root: Optional[str] = None, base_url: Optional[str] = None):
        self.root = root or outputs_dir()
        self.base_url = (base_url or config.public_base_url).rstrip("/")

    def upload(self, data: bytes, logical_id: str, folder: str, fmt: str = "png") -> UploadedAsset:
        name = _object_name(folder, logical_id, fmt)
        path = os.path.join(self.root, *name.split("/"))
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)
        log.debug(f"stored {len(data)} bytes at {path}")
        return UploadedAsset(url=f"{self.base_url}/outputs/{name}", external_id=name)

    def local_path_for(self, url: str) -> Optional[str]:
        prefix = f"{self.base_url}/outputs/"
        if not url.startswith(prefix):
            return None
        rel = url[len(prefix):].split("?", 1)[0]
        path = os.path.realpath(os.path.join(self.root, *rel.split("/")))
        if not path.startswith(os.path.realpath(self.root) + os.sep):
            return None
        return path if os.path.exists(path) else None


class GCSUploader(AssetUploader):
    """Google Cloud Storage bucket; objects are addressed by their public storage.googleapis.com URL."""

    def __init__(self, bucket: Optional[str] = None):
        self.bucket_name = bucket or config.gcs_bucket
        if not self.bucket_name:
            raise ValueError("GCS_BUCKET not configured")
        self._storage = None

    def _client(self):
        if self._storage is None:
            self._storage = storage.Client()
        return self._storage

    def upload(self, data: bytes, logical_id: str, folder: str, fmt: str = "png") -> UploadedAsset:
        object_name = _object_name(folder, logical_id, fmt)
        bucket = self._client().bucket(self.bucket_name)
        blob = bucket.blob(object_name)
        blob.cache_control = "no-cache"
        blob.upload_from_string(data, content_type=_CONTENT_TYPES.get(fmt.lower(), "application/octet-stream"))
        log.info(f"uploaded gs://{self.bucket_name}/{object_name}")
        return UploadedAsset(
            url=f"https://storage.googleapis.com/{self.bucket_name}/{object_name}",
            external_id=f"gs://{self.bucket_name}/{object_name}",
        )


def get_uploader() -> AssetUploader:
    if config.asset_backend == "gcs":
        return GCSUploader()
    return LocalUploader()
