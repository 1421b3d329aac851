"""
Mime type detection.

Content is sniffed first; when that is inconclusive the file extension
decides.
"""

import mimetypes
import os
from typing import Optional

INCONCLUSIVE = {"application/octet-stream", "inode/x-empty", "application/x-empty"}

# Not registered by every platform's mime.types
_EXTRA_TYPES = {
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    ".odt": "application/vnd.oasis.opendocument.text",
    ".ods": "application/vnd.oasis.opendocument.spreadsheet",
    ".odp": "application/vnd.oasis.opendocument.presentation",
    ".md": "text/markdown",
    ".yaml": "application/yaml",
    ".yml": "application/yaml",
    ".webp": "image/webp",
}

_SIGNATURES: list[tuple[bytes, str]] = [
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"%PDF-", "application/pdf"),
    (b"\x1f\x8b", "application/gzip"),
    (b"PK\x03\x04", "application/zip"),
    (b"BZh", "application/x-bzip2"),
    (b"\x7fELF", "application/x-executable"),
]

SNIFF_BYTES = 1024

_registry = mimetypes.MimeTypes()
for _ext, _type in _EXTRA_TYPES.items():
    _registry.add_type(_type, _ext)


def sniff(head: bytes) -> str:
    """Mime type from the first bytes of a file."""
    if not head:
        return "application/x-empty"
    for signature, mimetype in _SIGNATURES:
        if head.startswith(signature):
            return mimetype
    if head[:4] == b"RIFF" and head[8:12] == b"WEBP":
        return "image/webp"
    if b"\x00" in head:
        return "application/octet-stream"
    try:
        head.decode("utf-8")
    except UnicodeDecodeError as e:
        # a multibyte character cut off by the sniff window is still text
        if e.start < len(head) - 3:
            return "application/octet-stream"
    return "text/plain"


def by_extension(path: str) -> Optional[str]:
    """Mime type registered for the extension of ``path``."""
    mimetype, _ = _registry.guess_type(os.path.basename(path), strict=False)
    return mimetype


def detect_mimetype(path: str, head: Optional[bytes] = None) -> str:
    """
    Detect the mime type of a file.

    Args:
        path: Path (or file name) used for the extension fallback
        head: Leading bytes of the file; read from ``path`` when omitted

    Returns:
        The detected mime type, ``text/plain`` for text and
        ``application/octet-stream`` when nothing matches
    """
    if head is None:
        with open(path, "rb") as f:
            head = f.read(SNIFF_BYTES)

    detected = sniff(head)
    if detected == "application/zip":
        # office documents are zip containers
        return by_extension(path) or detected
    if detected in INCONCLUSIVE:
        return by_extension(path) or detected
    return detected
