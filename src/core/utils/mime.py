from collections.abc import Mapping

from core.utils.constants import GENERIC_CONTENT_TYPES, MIME_TYPE_ALIASES

MAGIC_BYTES: Mapping[bytes, str] = {
    b"\xff\xd8\xff": "image/jpeg",
    b"\x89PNG\r\n\x1a\n": "image/png",
}

# ISO-BMFF brands found at offset 8 of HEIC/HEIF files (after the ftyp box header)
HEIF_BRANDS: Mapping[bytes, str] = {
    b"heic": "image/heic",
    b"heix": "image/heic",
    b"hevc": "image/heic",
    b"heim": "image/heic",
    b"heis": "image/heic",
    b"mif1": "image/heif",
    b"msf1": "image/heif",
}


def detect_mime_type(file_data: bytes) -> str:
    for signature, mime in MAGIC_BYTES.items():
        if file_data.startswith(signature):
            return mime

    if file_data[4:8] == b"ftyp":
        brand = HEIF_BRANDS.get(file_data[8:12])
        if brand:
            return brand

    raise ValueError("Unsupported or unknown file type")


def normalize_content_type(content_type: str | None, file_data: bytes) -> str:
    """Return the canonical MIME type for a payload.

    Declared types are lower-cased and aliases (``image/jpg``) folded; a
    missing or generic declaration falls back to magic-byte detection.

    Raises:
        ValueError: If the type has to be sniffed and cannot be recognised
    """
    declared = (content_type or "").split(";", 1)[0].strip().lower()

    if declared in GENERIC_CONTENT_TYPES:
        return detect_mime_type(file_data)

    return MIME_TYPE_ALIASES.get(declared, declared)
