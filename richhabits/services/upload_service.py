"""
Upload Service — file validation and presigned direct-upload URLs.

Flow:
    1. Client asks for an upload slot: POST /api/upload/image {filename, size, mimeType}
    2. ``validate_file_upload`` checks size, extension, MIME type and filename
    3. ``create_upload`` returns a short-lived S3 presigned PUT URL plus an ``uploadId``
    4. Client PUTs the bytes straight to the bucket, then saves the image reference;
       only ``/public-objects/<uploadId>`` is ever persisted
       (``normalize_object_reference``)
"""

import logging
import re
import time
import uuid
from urllib.parse import parse_qs, urlparse

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from flask import current_app

from richhabits.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

MB = 1024 * 1024
MAX_FILE_SIZE = 10 * MB
MAX_DESIGN_FILE_SIZE = 100 * MB
MAX_FILENAME_LENGTH = 255
SCAN_BYTES = 8192

PUBLIC_OBJECTS_PREFIX = "/public-objects/"

_IMAGE_MIME_TYPES = (
    "image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp", "image/svg+xml",
)
_DOCUMENT_MIME_TYPES = (
    "application/pdf",
    "text/plain",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
)
_DESIGN_MIME_TYPES = _IMAGE_MIME_TYPES + (
    "application/pdf",
    "image/vnd.adobe.photoshop",
    "application/x-photoshop",
    "application/photoshop",
    "application/psd",
    "image/psd",
    "application/postscript",
    "application/illustrator",
    "application/eps",
    "application/x-eps",
    "image/eps",
    "image/x-eps",
    "application/x-indesign",
    "application/octet-stream",
    "text/plain",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
)

ALLOWED_MIME_TYPES = {
    "images": _IMAGE_MIME_TYPES,
    "documents": _DOCUMENT_MIME_TYPES,
    "design_files": _DESIGN_MIME_TYPES,
    "manufacturing_attachments": _DESIGN_MIME_TYPES + (
        "application/zip",
        "application/x-zip-compressed",
        "application/x-rar-compressed",
        "application/vnd.rar",
        "application/x-7z-compressed",
    ),
}

_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg")
_DESIGN_EXTENSIONS = _IMAGE_EXTENSIONS + (
    ".psd", ".ai", ".eps", ".pdf", ".indd", ".sketch", ".fig", ".xd", ".txt", ".doc", ".docx",
)

ALLOWED_EXTENSIONS = {
    "images": _IMAGE_EXTENSIONS,
    "documents": (".pdf", ".txt", ".doc", ".docx"),
    "design_files": _DESIGN_EXTENSIONS,
    "manufacturing_attachments": _DESIGN_EXTENSIONS + (".zip", ".rar", ".7z"),
}

UPLOAD_CATEGORIES = tuple(ALLOWED_MIME_TYPES)

_INVALID_FILENAME_CHARS = re.compile(r'[<>:"|?*\x00-\x1f]')

MALICIOUS_PATTERNS = (
    (re.compile(r"<script[^>]*>", re.IGNORECASE), "Embedded script tag"),
    (re.compile(r"javascript:", re.IGNORECASE), "JavaScript URL"),
    (re.compile(r"on\w+\s*=", re.IGNORECASE), "Inline event handler"),
    (re.compile(r"<\?php", re.IGNORECASE), "PHP open tag"),
    (re.compile(r"<\?="), "PHP short echo tag"),
    (re.compile(r"<!--\s*#"), "Server-side include"),
    (re.compile(r"eval\s*\(", re.IGNORECASE), "eval() call"),
    (re.compile(r"exec\s*\(", re.IGNORECASE), "exec() call"),
    (re.compile(r"system\s*\(", re.IGNORECASE), "system() call"),
    (re.compile(r"shell_exec\s*\(", re.IGNORECASE), "shell_exec() call"),
)

_UPLOAD_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


# ═══════════════════════════════════════════════════════════════════════════
#  VALIDATION
# ═══════════════════════════════════════════════════════════════════════════

def max_size_for(category: str) -> int:
    if category in ("design_files", "manufacturing_attachments"):
        return MAX_DESIGN_FILE_SIZE
    return MAX_FILE_SIZE


def _extension(filename: str) -> str:
    dot = filename.rfind(".")
    return filename[dot:].lower() if dot != -1 else ""


def sanitize_filename(filename: str) -> str:
    """Strip traversal sequences and reserved characters from ``filename``."""
    cleaned = (filename or "").replace("..", "")
    cleaned = _INVALID_FILENAME_CHARS.sub("_", cleaned)
    cleaned = cleaned.strip().strip(".")

    stamp = int(time.time() * 1000)
    if not cleaned:
        return f"file_{stamp}"

    if len(cleaned) > MAX_FILENAME_LENGTH:
        ext = _extension(cleaned)
        base = cleaned[: len(cleaned) - len(ext)] if ext else cleaned
        suffix = f"_{stamp}{ext}"
        cleaned = base[: MAX_FILENAME_LENGTH - len(suffix)] + suffix
    return cleaned


def scan_file_content(content) -> list[str]:
    """Return a warning per malicious pattern found in the first 8 KB."""
    if content is None:
        return []
    if isinstance(content, bytes):
        content = content[:SCAN_BYTES].decode("utf-8", errors="ignore")
    else:
        content = str(content)[:SCAN_BYTES]

    return [
        f"Potentially malicious content detected: {label}"
        for pattern, label in MALICIOUS_PATTERNS
        if pattern.search(content)
    ]


def validate_file_upload(filename, size, mime_type, category="images", content=None) -> dict:
    """
    Validate an upload request.

    Returns:
        {"valid": bool, "errors": [...], "sanitizedFilename": str,
         "securityWarnings": [...]}
    """
    errors = []
    warnings = []
    filename = filename or ""
    mime_type = (mime_type or "").lower()

    if category not in ALLOWED_MIME_TYPES:
        raise ValueError(f"Unknown upload category: {category}")

    # ── Filename ─────────────────────────────────────────────────────────
    if not filename:
        errors.append("Filename is required")
    if len(filename) > MAX_FILENAME_LENGTH:
        errors.append(f"Filename must be at most {MAX_FILENAME_LENGTH} characters")
    if ".." in filename:
        errors.append("Filename cannot contain path traversal sequences")
    if _INVALID_FILENAME_CHARS.search(filename):
        errors.append("Filename contains invalid characters")

    # ── Size ─────────────────────────────────────────────────────────────
    max_size = max_size_for(category)
    if isinstance(size, bool) or not isinstance(size, (int, float)) or size <= 0:
        errors.append("File size must be positive")
    elif size > max_size:
        errors.append(
            f"File size exceeds maximum limit of {max_size // MB}MB for {category}"
        )

    # ── Type ─────────────────────────────────────────────────────────────
    ext = _extension(filename)
    if ext not in ALLOWED_EXTENSIONS[category]:
        errors.append(f"File extension not allowed for {category}")
    if mime_type not in ALLOWED_MIME_TYPES[category]:
        errors.append(f"MIME type '{mime_type}' not allowed for {category}")

    if category == "images":
        if ext in (".jpg", ".jpeg") and "jpeg" not in mime_type:
            warnings.append("MIME type mismatch: JPEG file with different MIME type")
        elif ext == ".png" and "png" not in mime_type:
            warnings.append("MIME type mismatch: PNG file with different MIME type")

    # ── Content ──────────────────────────────────────────────────────────
    content_warnings = scan_file_content(content)
    if content_warnings:
        warnings.extend(content_warnings)
        errors.append("File contains potentially malicious content")

    sanitized = sanitize_filename(filename)
    if filename and sanitized != filename:
        warnings.append("Filename was sanitized for security")

    if warnings:
        logger.warning("Upload security warnings for %r: %s", filename, warnings)

    return {
        "valid": not errors,
        "errors": errors,
        "sanitizedFilename": sanitized,
        "securityWarnings": warnings,
    }


# ═══════════════════════════════════════════════════════════════════════════
#  PRESIGNED UPLOAD URLS
# ═══════════════════════════════════════════════════════════════════════════

def get_storage_client():
    """boto3 S3 client for the configured bucket, built once per app."""
    client = current_app.extensions.get("object_storage")
    if client is None:
        cfg = current_app.config
        client = boto3.client(
            "s3",
            region_name=cfg.get("OBJECT_STORAGE_REGION") or "us-east-1",
            endpoint_url=cfg.get("OBJECT_STORAGE_ENDPOINT") or None,
            config=BotoConfig(signature_version="s3v4"),
        )
        current_app.extensions["object_storage"] = client
    return client


def object_key(upload_id: str) -> str:
    return f"uploads/{upload_id}"


def public_object_path(upload_id: str) -> str:
    return f"{PUBLIC_OBJECTS_PREFIX}{upload_id}"


def create_upload(category="images", content_type=None) -> dict:
    """Allocate an upload id and a presigned PUT URL for it.

    When ``content_type`` is given it is part of the signature, so the
    client must send the same ``Content-Type`` header with its PUT.

    Returns:
        {"uploadURL", "uploadId", "objectPath"}
    """
    cfg = current_app.config
    upload_id = uuid.uuid4().hex
    params = {"Bucket": cfg["OBJECT_STORAGE_BUCKET"], "Key": object_key(upload_id)}
    if content_type:
        params["ContentType"] = content_type

    try:
        url = get_storage_client().generate_presigned_url(
            "put_object",
            Params=params,
            ExpiresIn=int(cfg.get("UPLOAD_URL_TTL", 900)),
            HttpMethod="PUT",
        )
    except (BotoCoreError, ClientError):
        logger.exception("Could not presign upload %s (%s)", upload_id, category)
        raise

    return {
        "uploadURL": url,
        "uploadId": upload_id,
        "objectPath": public_object_path(upload_id),
    }


def _is_presigned(parsed) -> bool:
    query = parse_qs(parsed.query)
    return "X-Amz-Signature" in query or "Signature" in query or "/uploads/" in parsed.path


def normalize_object_reference(value):
    """
    Reduce an image reference to the persisted ``/public-objects/<id>`` form.

    Accepts a bare upload id, a ``/public-objects/...`` path or a presigned
    upload URL. Other absolute URLs (external image hosts) pass through.
    """
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None

    if value.startswith(PUBLIC_OBJECTS_PREFIX):
        return value.split("?", 1)[0]

    if _UPLOAD_ID_RE.match(value):
        return public_object_path(value)

    parsed = urlparse(value)
    if parsed.scheme in ("http", "https"):
        if PUBLIC_OBJECTS_PREFIX in parsed.path:
            return PUBLIC_OBJECTS_PREFIX + parsed.path.split(PUBLIC_OBJECTS_PREFIX, 1)[1]
        if _is_presigned(parsed):
            upload_id = parsed.path.rstrip("/").rsplit("/", 1)[-1]
            if _UPLOAD_ID_RE.match(upload_id):
                return public_object_path(upload_id)
            raise ValidationError("Unrecognised upload URL", details={"imageUrl": value})
        return value

    raise ValidationError("Invalid object reference", details={"imageUrl": value})
