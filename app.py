"""
hashgallery – content-addressed image upload service (FastAPI + SQLModel)

Quick start
-----------
1) python -m venv .venv && source .venv/bin/activate  # or .venv\\Scripts\\activate on Windows
2) pip install -e .
3) write config.yaml (see config.py) and run `hashgallery` or `python app.py 8080`
4) POST images to http://localhost:8080/upload, browse http://localhost:8080/view

Notes
-----
• Originals are stored as ./image/<sha256>.<ext>, thumbnails as ./thumb/<sha256>.jpg.
• Uploading the same bytes twice returns 409; the SHA-256 digest is the only dedup key.
• Templates and the stylesheet are written to disk on first run.
"""

import logging
import sys

from fastapi import FastAPI
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles

from config import Settings, load_settings
from context import ServiceContext
from database import ImageRepository, make_engine
from errors import ConfigError, RepositoryError
from pipeline import UploadPipeline
from routes import api_list_images, index, make_templates, upload, view
from storage import FileStore
from templates_static import ensure_assets

logger = logging.getLogger(__name__)


def build_context(settings: Settings) -> ServiceContext:
    """Create the repository, file store, pipeline and templates for ``settings``."""
    ensure_assets(settings.templates_dir, settings.static_dir)

    store = FileStore(settings.upload_dir, settings.thumbnail_dir)
    store.ensure_dirs()

    repository = ImageRepository(make_engine(settings.database.sqlalchemy_url()))
    repository.ping()
    repository.init_db()

    pipeline = UploadPipeline(
        repository,
        store,
        max_upload_size=settings.max_upload_size,
        thumbnail_size=settings.thumbnail_size,
        cleanup_failed_uploads=settings.cleanup_failed_uploads,
    )
    return ServiceContext(
        settings=settings,
        repository=repository,
        store=store,
        pipeline=pipeline,
        templates=make_templates(settings.templates_dir),
    )


def create_app(context: ServiceContext) -> FastAPI:
    """Create the FastAPI app serving ``context``."""
    app = FastAPI(title="hashgallery")
    app.state.context = context

    settings = context.settings
    app.mount("/static", StaticFiles(directory=str(settings.static_dir)), name="static")
    app.mount("/image", StaticFiles(directory=str(context.store.upload_dir)), name="image")
    app.mount("/thumb", StaticFiles(directory=str(context.store.thumbnail_dir)), name="thumb")

    # Routes
    app.get("/")(index)
    app.post("/upload")(upload)
    app.get("/view", response_class=HTMLResponse)(view)

    # API endpoints
    app.get("/api/images")(api_list_images)
    return app


def main(argv: list[str] | None = None) -> None:
    """Load config.yaml, connect to the database and serve."""
    argv = sys.argv[1:] if argv is None else argv
    try:
        settings = load_settings()
    except ConfigError as exc:
        logging.basicConfig(level=logging.ERROR)
        logger.error("%s", exc)
        sys.exit(1)

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        context = build_context(settings)
    except RepositoryError as exc:
        logger.error("Failed to connect to database: %s", exc.__cause__ or exc)
        sys.exit(1)

    # Allow `python app.py 8080`
    port = int(argv[0]) if argv else settings.port
    logger.info("serving on http://%s:%d", settings.host, port)
    import uvicorn

    uvicorn.run(create_app(context), host=settings.host, port=port)


if __name__ == "__main__":
    main()
