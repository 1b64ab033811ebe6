import mimetypes
import re


OCTET_STREAM = "application/octet-stream"

_MIME_PATTERN = re.compile(r"^[a-z0-9!#$&^_.+-]+/[a-z0-9!#$&^_.+-]+$")
_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9.-]")


def normalize_mime(raw_mime: str | None) -> str:
    if not raw_mime:
        return OCTET_STREAM

    base = raw_mime.split(";", 1)[0].strip().lower()
    if not base or not _MIME_PATTERN.match(base):
        return OCTET_STREAM
    return base


def effective_mime(stored_mime: str | None, filename: str) -> str:
    normalized = normalize_mime(stored_mime)
    if normalized != OCTET_STREAM:
        return normalized

    guessed, _encoding = mimetypes.guess_type(filename)
    return normalize_mime(guessed)


def sanitize_filename(filename: str) -> str:
    return _UNSAFE_FILENAME_CHARS.sub("_", filename) or "upload.bin"
