"""Image sniffing, hashing and thumbnail utilities."""
import hashlib
import logging
from pathlib import Path
from typing import BinaryIO

from PIL import Image as PILImage, ImageOps, UnidentifiedImageError

from errors import DecodeError, StorageError, ValidationError
from storage import FileStore

logger = logging.getLogger(__name__)

# Configuration
SNIFF_LEN = 512
HASH_CHUNK = 256 * 1024
THUMB_EXT = ".jpg"
THUMB_QUALITY = 88

# Leading bytes of each accepted format, and the extension stored originals get.
SIGNATURES = {
    b"\xff\xd8\xff": "image/jpeg",
    b"\x89PNG\r\n\x1a\n": "image/png",
}
MIME_EXTS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
}


def classify(stream: BinaryIO) -> str:
    """Return the MIME type sniffed from the first bytes of ``stream``.

    Only JPEG and PNG are accepted. The stream position is restored.
    """
    pos = stream.tell()
    try:
        head = stream.read(SNIFF_LEN)
    except OSError as exc:
        raise StorageError("Failed to read file") from exc
    finally:
        stream.seek(pos)

    for signature, mime in SIGNATURES.items():
        if head.startswith(signature):
            return mime
    raise ValidationError("File type not allowed. Only JPG and PNG are allowed.")


def extension_for(mime: str) -> str:
    """Extension used for stored originals of the given MIME type."""
    return MIME_EXTS[mime]


def sha256sum(stream: BinaryIO, chunk: int = HASH_CHUNK) -> str:
    """Calculate the hex SHA-256 of the whole stream, leaving it rewound."""
    h = hashlib.sha256()
    try:
        stream.seek(0)
        while True:
            b = stream.read(chunk)
            if not b:
                break
            h.update(b)
        stream.seek(0)
    except OSError as exc:
        raise StorageError("Failed to generate SHA-256") from exc
    return h.hexdigest()


def thumbnail_name(digest: str) -> str:
    return f"{digest}{THUMB_EXT}"


def make_thumbnail(
    store: FileStore, original: Path, digest: str, size: int
) -> tuple[str, int, int]:
    """Write a JPEG thumbnail of ``original`` fitting a ``size`` x ``size`` box.

    Returns the thumbnail filename and the pixel dimensions of the original.
    Images smaller than the box are not enlarged.
    """
    try:
        with PILImage.open(original) as im:
            im.load()
            width, height = im.size
            thumb = ImageOps.exif_transpose(im)
            thumb.thumbnail((size, size), PILImage.Resampling.BICUBIC)
            rgb = thumb.convert("RGB")
    except FileNotFoundError as exc:
        logger.error("original %s vanished before thumbnailing", original)
        raise StorageError("Failed to generate thumbnail") from exc
    except (UnidentifiedImageError, PILImage.DecompressionBombError, OSError, ValueError) as exc:
        logger.error("cannot decode %s: %s", original, exc)
        raise DecodeError("Failed to generate thumbnail") from exc

    name = thumbnail_name(digest)
    with rgb:
        store.save_thumbnail(name, lambda fh: rgb.save(fh, format="JPEG", quality=THUMB_QUALITY))
    return name, width, height
