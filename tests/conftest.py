"""Shared pytest fixtures for hashgallery tests."""

import io
import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from PIL import Image as PILImage

from app import build_context, create_app
from config import DatabaseSettings, Settings
from context import ServiceContext
from database import ImageRepository
from models import UploadCandidate
from pipeline import UploadPipeline
from storage import FileStore


def make_image_bytes(
    fmt: str = "JPEG",
    size: tuple[int, int] = (10, 10),
    color="red",
    mode: str = "RGB",
) -> bytes:
    """Encode a solid-colour image in memory."""
    buf = io.BytesIO()
    PILImage.new(mode, size, color).save(buf, format=fmt)
    return buf.getvalue()


def make_candidate(data: bytes, filename: str = "upload.jpg") -> UploadCandidate:
    return UploadCandidate.from_stream(io.BytesIO(data), filename)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_settings(temp_dir: Path) -> Settings:
    """Settings pointing every directory and the database into ``temp_dir``."""
    return Settings(
        database=DatabaseSettings(url=f"sqlite:///{temp_dir / 'images.db'}"),
        upload_dir=temp_dir / "image",
        thumbnail_dir=temp_dir / "thumb",
        templates_dir=temp_dir / "templates",
        static_dir=temp_dir / "static",
    )


@pytest.fixture
def context(test_settings: Settings) -> Generator[ServiceContext, None, None]:
    ctx = build_context(test_settings)
    try:
        yield ctx
    finally:
        ctx.repository.engine.dispose()


@pytest.fixture
def repository(context: ServiceContext) -> ImageRepository:
    return context.repository


@pytest.fixture
def store(context: ServiceContext) -> FileStore:
    return context.store


@pytest.fixture
def pipeline(context: ServiceContext) -> UploadPipeline:
    return context.pipeline


@pytest.fixture
def test_client(context: ServiceContext) -> Generator[TestClient, None, None]:
    with TestClient(create_app(context)) as client:
        yield client


@pytest.fixture
def red_jpeg() -> bytes:
    """The 10x10 red JPEG used throughout the upload scenarios."""
    return make_image_bytes("JPEG", (10, 10), "red")


@pytest.fixture
def blue_png() -> bytes:
    return make_image_bytes("PNG", (300, 150), "blue")
