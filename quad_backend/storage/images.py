"""
Image upload and serving on top of a blob store.
"""

import logging
import re
import unicodedata
from typing import Any, Dict, Mapping, Optional

from flask import Response

from quad_backend.errors import MissingStorageBinding
from quad_backend.gateway.dispatch import error_response
from quad_backend.storage.blob_store import BlobStore

IMAGE_URL_PREFIX = "/images/"
CACHE_CONTROL = "public, max-age=86400"  # 24 hours

CONTENT_TYPES: Dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "webp": "image/webp",
    "bmp": "image/bmp",
    "ico": "image/x-icon",
}


def sanitize_file_name(name: str) -> str:
    """
    Make a file name safe to use as a storage key segment.

    Whitespace runs become underscores, accented characters lose their
    diacritics, and anything outside [A-Za-z0-9._-] is dropped.

    >>> sanitize_file_name("test file!@#.jpg")
    'test_file.jpg'
    """
    sanitized = re.sub(r"\s+", "_", name)

    # Transliterate unicode to ASCII (e.g., "Café" -> "Cafe")
    normalized = unicodedata.normalize("NFKD", sanitized)
    sanitized = normalized.encode("ascii", "ignore").decode("ascii")

    sanitized = re.sub(r"[^A-Za-z0-9._-]", "", sanitized)

    # Collapse multiple underscores
    return re.sub(r"_+", "_", sanitized)


def has_upload(value: Any) -> bool:
    """True when a parsed form value is a non-empty uploaded file."""
    return value is not None and hasattr(value, "read") and bool(getattr(value, "filename", ""))


def content_type_for(path: str) -> str:
    extension = path.rsplit(".", 1)[-1].lower() if "." in path else ""
    return CONTENT_TYPES.get(extension, "application/octet-stream")


def upload_file(store: Optional[BlobStore], file: Any, path: str) -> str:
    """
    Store an uploaded file and return its public URL.

    Only the final segment of ``path`` is sanitized; directory segments are
    chosen by the handlers and kept as-is.

    Args:
        store: Blob store binding, None when storage is not configured.
        file: Uploaded file (werkzeug FileStorage or any object with
            read() and content_type).
        path (str): Destination key inside the bucket.

    Returns:
        str: "/images/<sanitized path>".

    Raises:
        MissingStorageBinding: When no blob store is configured.
    """
    if store is None:
        raise MissingStorageBinding("Missing storage binding")

    base_path, _, file_name = path.rpartition("/")
    sanitized_path = f"{base_path}/{sanitize_file_name(file_name)}" if base_path else sanitize_file_name(file_name)

    data = file.read()
    content_type = getattr(file, "content_type", None) or "application/octet-stream"

    logging.info(f"[Storage] Uploading {sanitized_path} ({len(data)} bytes, {content_type})")
    store.put(sanitized_path, data, content_type)
    return f"{IMAGE_URL_PREFIX}{sanitized_path}"


def serve_image(store: Optional[BlobStore], path: str, cors_headers: Mapping[str, str]) -> Response:
    """
    Return the stored image at ``path`` as an HTTP response.

    Falls back to the bare file name for images stored before keys had
    directories. Responds 404 when neither key exists.
    """
    if store is None:
        raise MissingStorageBinding("Missing storage binding")

    stored = store.get(path)
    if stored is None and "/" in path:
        file_name = path.rsplit("/", 1)[-1]
        logging.info(f"[Storage] {path} not found, trying {file_name}")
        stored = store.get(file_name)

    if stored is None:
        logging.warning(f"[Storage] Image not found: {path}")
        return error_response("Image not found", 404)

    headers = dict(cors_headers)
    headers.update({
        "Content-Type": content_type_for(path),
        "Cache-Control": CACHE_CONTROL,
        "Access-Control-Allow-Origin": "*",
    })
    return Response(stored.body, status=200, headers=headers)
