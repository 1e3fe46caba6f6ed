import base64
from typing import Optional
from urllib.parse import quote, unquote


# Folder each media type is stored under inside an SIQ package
MEDIA_FOLDERS = {
    "image": "Images",
    "audio": "Audio",
    "video": "Video",
}

MEDIA_TYPES = tuple(MEDIA_FOLDERS)

_MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "mp3": "audio/mpeg",
    "mpeg": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "mp4": "video/mp4",
    "webm": "video/webm",
}

# Characters encodeURI leaves untouched besides letters and digits
_URI_SAFE = ";,/?:@&=+$-_.!~*'()#"


def preferred_folder(media_type: str) -> Optional[str]:
    return MEDIA_FOLDERS.get(media_type)


def guess_mime(file_name: str, fallback: str) -> str:
    """Map a file extension to its MIME type, or return ``fallback``."""
    extension = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""
    return _MIME_TYPES.get(extension, fallback)


def to_data_uri(data: bytes, mime_type: str) -> str:
    """Embed raw bytes in a base64 data URI."""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def safe_unquote(value: str) -> str:
    """Percent-decode ``value``, returning it unchanged if it is not valid UTF-8 escapes."""
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError:
        return value


def uri_encode(value: str) -> str:
    return quote(value, safe=_URI_SAFE)


def normalize_name(value: str) -> str:
    """Fold a file name for loose comparison (decoding, slashes, whitespace, case)."""
    return safe_unquote(value).replace("\\", "/").strip().lower()


def name_variants(file_name: str) -> list:
    """Candidate spellings of a referenced file name, most literal first."""
    decoded = safe_unquote(file_name)
    variants = [
        file_name,
        decoded,
        uri_encode(decoded),
        decoded.strip(),
        uri_encode(decoded.strip()),
    ]
    # dict keeps insertion order while dropping duplicates
    return list(dict.fromkeys(variants))
