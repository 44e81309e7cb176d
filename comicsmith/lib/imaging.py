# comicsmith/lib/imaging.py
from __future__ import annotations

import asyncio
import base64
import io
import os
import re
from typing import Optional, Tuple

import requests
from PIL import Image

from comicsmith.lib.uploader import AssetUploader
from comicsmith.logger import get_logger

log = get_logger(__name__)

_DATAURL_RE = re.compile(r"^data:(image/[\w+.-]+);base64,(.*)$", re.IGNORECASE | re.DOTALL)


def sniff_mime(data: bytes) -> str:
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data.startswith(b"\xff\xd8"):
        return "image/jpeg"
    if data.startswith(b"GIF87a") or data.startswith(b"GIF89a"):
        return "image/gif"
    # WEBP: RIFF....WEBP
    if len(data) >= 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return "application/octet-stream"


def to_data_url(data: bytes, mime: Optional[str] = None) -> str:
    mime = mime or sniff_mime(data)
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def decode_data_url(data_url: str) -> Tuple[bytes, str]:
    m = _DATAURL_RE.match(data_url.strip())
    if not m:
        raise ValueError("not an image data URL")
    return base64.b64decode(m.group(2)), m.group(1).lower()


def fetch_image_bytes(url: str, *, uploader: Optional[AssetUploader] = None, timeout: float = 30) -> bytes:
    """
    Resolve an image reference to bytes:
    - data URL: decoded in place
    - URL produced by the local uploader, file:// URL or existing path: read from disk
    - anything else: HTTP GET
    """
    if url.startswith("data:"):
        return decode_data_url(url)[0]

    local = uploader.local_path_for(url) if uploader else None
    if local is None and url.startswith("file://"):
        local = url[len("file://"):]
    if local is None and os.path.exists(url):
        local = url
    if local:
        with open(local, "rb") as f:
            return f.read()

    r = requests.get(url, timeout=timeout)
    r.raise_for_status()
    return r.content


async def fetch_image_bytes_async(url: str, *, uploader: Optional[AssetUploader] = None, timeout: float = 30) -> bytes:
    return await asyncio.to_thread(fetch_image_bytes, url, uploader=uploader, timeout=timeout)


def open_image(data: bytes) -> Image.Image:
    img = Image.open(io.BytesIO(data))
    img.load()
    return img.convert("RGBA")


def encode_png(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def image_size(data: bytes) -> Tuple[int, int]:
    with Image.open(io.BytesIO(data)) as img:
        return img.width, img.height
