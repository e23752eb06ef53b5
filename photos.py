"""Student photo validation, hosting and deletion.

Photos go to Cloudinary when credentials are configured. Without
credentials, or when the host fails, they are written to the local upload
directory instead and served from ``/uploads/<name>``.
"""

from __future__ import annotations

import base64
import logging
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import cloudinary
import cloudinary.uploader
import requests

logger = logging.getLogger(__name__)

LOCAL_PREFIX = "local:"

# Hosts report photos may be downloaded from
DEFAULT_PHOTO_URL_PREFIXES = ("https://res.cloudinary.com/",)
_FETCH_CHUNK = 8192
_fetch_pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="photo-fetch")

# Magic byte signatures for file header validation
_MAGIC_BYTES = {
    ".png": b"\x89PNG",
    ".jpg": b"\xff\xd8\xff",
    ".jpeg": b"\xff\xd8\xff",
}
_MIMETYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
}


class PhotoRejected(ValueError):
    """The uploaded file is not an acceptable photo."""


@dataclass
class StoredPhoto:
    url: str
    public_id: str
    source: str  # "cloudinary" | "local"


def _cloudinary_ready(config: Mapping[str, Any]) -> bool:
    return all(config.get(k) for k in (
        "CLOUDINARY_CLOUD_NAME", "CLOUDINARY_API_KEY", "CLOUDINARY_API_SECRET",
    ))


def _configure(config: Mapping[str, Any]) -> None:
    cloudinary.config(
        cloud_name=config["CLOUDINARY_CLOUD_NAME"],
        api_key=config["CLOUDINARY_API_KEY"],
        api_secret=config["CLOUDINARY_API_SECRET"],
        secure=True,
    )


def read_photo(file_storage, max_bytes: int) -> tuple[bytes, str]:
    """Validate an uploaded photo and return ``(content, extension)``.

    Accepts JPEG or PNG whose header matches the extension, at most
    ``max_bytes`` long.
    """
    if file_storage is None or not file_storage.filename:
        raise PhotoRejected("No photo provided")

    ext = Path(file_storage.filename).suffix.lower()
    if ext not in _MAGIC_BYTES:
        raise PhotoRejected("Only JPEG and PNG photos are supported")

    content = file_storage.read(max_bytes + 1)
    if len(content) > max_bytes:
        raise PhotoRejected(f"Photo must be at most {max_bytes // 1024} KB")
    if not content.startswith(_MAGIC_BYTES[ext]):
        raise PhotoRejected("File content does not match its extension")
    return content, ext


def _save_local(content: bytes, ext: str, upload_dir: str) -> StoredPhoto:
    folder = Path(upload_dir)
    folder.mkdir(parents=True, exist_ok=True)
    filename = f"{uuid.uuid4().hex}{ext}"
    (folder / filename).write_bytes(content)
    return StoredPhoto(url=f"/uploads/{filename}", public_id=f"{LOCAL_PREFIX}{filename}", source="local")


def store_photo(content: bytes, ext: str, config: Mapping[str, Any]) -> StoredPhoto:
    """Host a validated photo, falling back to local disk on any host failure."""
    if _cloudinary_ready(config):
        try:
            _configure(config)
            encoded = base64.b64encode(content).decode()
            result = cloudinary.uploader.upload(
                f"data:{_MIMETYPES[ext]};base64,{encoded}",
                folder="students",
                resource_type="image",
                transformation=[{"width": 200, "height": 200, "crop": "fill"}],
                timeout=config.get("EXTERNAL_TIMEOUT_SECONDS", 5),
            )
            return StoredPhoto(url=result["secure_url"], public_id=result["public_id"], source="cloudinary")
        except Exception as e:
            logger.warning("Cloudinary upload failed, storing photo locally: %s", e)
    else:
        logger.info("Cloudinary not configured; storing photo locally")
    return _save_local(content, ext, config["UPLOAD_DIR"])


def delete_photo(public_id: str | None, config: Mapping[str, Any]) -> None:
    """Remove a hosted photo. Best-effort: failures are logged only."""
    if not public_id:
        return
    if public_id.startswith(LOCAL_PREFIX):
        name = Path(public_id[len(LOCAL_PREFIX):]).name
        path = Path(config["UPLOAD_DIR"]) / name
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not delete local photo %s: %s", name, e)
        return
    if not _cloudinary_ready(config):
        logger.warning("Cannot delete hosted photo %s: Cloudinary not configured", public_id)
        return
    try:
        _configure(config)
        cloudinary.uploader.destroy(public_id, timeout=config.get("EXTERNAL_TIMEOUT_SECONDS", 5))
    except Exception as e:
        logger.warning("Cloudinary delete failed for %s: %s", public_id, e)


def _fetch_remote(url: str, timeout: float, max_bytes: int, deadline: float, opened: list) -> bytes:
    with requests.get(url, timeout=timeout, stream=True) as response:
        opened.append(response)
        response.raise_for_status()
        body = bytearray()
        for chunk in response.iter_content(chunk_size=_FETCH_CHUNK):
            body.extend(chunk)
            if len(body) > max_bytes:
                raise PhotoRejected(f"Photo larger than {max_bytes} bytes")
            if time.monotonic() > deadline:
                raise TimeoutError("Photo download took too long")
        return bytes(body)


def load_photo(url: str | None, config: Mapping[str, Any]) -> bytes | None:
    """Fetch photo bytes for report embedding; ``None`` when unavailable.

    Remote fetches are limited to ``PHOTO_URL_PREFIXES``, capped at
    ``MAX_PHOTO_BYTES`` and bounded by ``EXTERNAL_TIMEOUT_SECONDS`` of wall
    time, however slowly the server sends.
    """
    if not url:
        return None
    if url.startswith("/uploads/"):
        path = Path(config["UPLOAD_DIR"]) / Path(url).name
        try:
            return path.read_bytes()
        except OSError as e:
            logger.warning("Could not read local photo %s: %s", path.name, e)
            return None

    prefixes = tuple(config.get("PHOTO_URL_PREFIXES") or DEFAULT_PHOTO_URL_PREFIXES)
    if not url.startswith(prefixes):
        logger.warning("Refusing to fetch photo from untrusted URL %s", url)
        return None

    timeout = float(config.get("EXTERNAL_TIMEOUT_SECONDS", 5))
    max_bytes = int(config.get("MAX_PHOTO_BYTES", 1024 * 1024))
    opened: list = []
    future = _fetch_pool.submit(_fetch_remote, url, timeout, max_bytes, time.monotonic() + timeout, opened)
    try:
        return future.result(timeout=timeout)
    except FutureTimeout:
        logger.warning("Photo fetch from %s exceeded %.1fs; skipping", url, timeout)
        # Closing the response unblocks the worker's pending read
        for response in opened:
            response.close()
        return None
    except (requests.RequestException, PhotoRejected, TimeoutError) as e:
        logger.warning("Could not fetch photo %s: %s", url, e)
        return None
