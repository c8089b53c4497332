"""Durable storage for originals and thumbnails.

Both directories are flat and every file is named ``<digest><ext>``. Files are
written to a temporary sibling and renamed into place, so a reader sees
either the previous state or the complete file.
"""
import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Callable, Iterator

from errors import StorageError
from utils import resolve_under_root

logger = logging.getLogger(__name__)

COPY_CHUNK = 1024 * 1024


@contextmanager
def atomic_write(target: Path) -> Iterator[BinaryIO]:
    """Yield a binary handle whose contents replace ``target`` on clean exit."""
    tmp = tempfile.NamedTemporaryFile(
        dir=target.parent, prefix=f".{target.name}.", suffix=".part", delete=False
    )
    try:
        with tmp:
            yield tmp
        os.replace(tmp.name, target)
    except BaseException:
        Path(tmp.name).unlink(missing_ok=True)
        raise


class FileStore:
    """The original and thumbnail directories."""

    def __init__(self, upload_dir: Path, thumbnail_dir: Path) -> None:
        self.upload_dir = Path(upload_dir).resolve()
        self.thumbnail_dir = Path(thumbnail_dir).resolve()

    def ensure_dirs(self) -> None:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        self.thumbnail_dir.mkdir(parents=True, exist_ok=True)

    def original_path(self, filename: str) -> Path:
        return resolve_under_root(self.upload_dir, self.upload_dir / filename)

    def thumbnail_path(self, filename: str) -> Path:
        return resolve_under_root(self.thumbnail_dir, self.thumbnail_dir / filename)

    def save_original(self, stream: BinaryIO, filename: str) -> Path:
        """Copy ``stream`` from its start into the upload directory."""
        target = self.original_path(filename)
        try:
            stream.seek(0)
            with atomic_write(target) as dst:
                shutil.copyfileobj(stream, dst, COPY_CHUNK)
        except OSError as exc:
            logger.error("failed to save original %s: %s", target, exc)
            raise StorageError("Failed to save file") from exc
        return target

    def save_thumbnail(self, filename: str, write: Callable[[BinaryIO], None]) -> Path:
        """Create a thumbnail file by handing ``write`` an open binary handle."""
        target = self.thumbnail_path(filename)
        try:
            with atomic_write(target) as dst:
                write(dst)
        except OSError as exc:
            logger.error("failed to save thumbnail %s: %s", target, exc)
            raise StorageError("Failed to generate thumbnail") from exc
        return target

    def remove(self, *paths: Path) -> None:
        """Delete files, logging rather than raising on failure."""
        for p in paths:
            try:
                p.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("could not remove %s: %s", p, exc)
