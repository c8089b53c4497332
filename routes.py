"""FastAPI routes for hashgallery."""
import logging
from pathlib import Path
from typing import Optional

from fastapi import Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from jinja2 import Environment, FileSystemLoader, select_autoescape
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from context import ServiceContext
from errors import RepositoryError
from models import ImageInfo, UploadCandidate

logger = logging.getLogger(__name__)

UPLOAD_FIELD = "file"
LIST_LIMIT_MAX = 500


def fmt_datetime(value):
    """Format datetime for templates."""
    return value.strftime("%Y-%m-%d %H:%M:%S")


def make_templates(templates_dir: Path) -> Environment:
    """Jinja environment for the gallery pages."""
    env = Environment(
        loader=FileSystemLoader(str(templates_dir)),
        autoescape=select_autoescape(["html", "xml"]),
    )
    env.filters["datetime"] = fmt_datetime
    return env


def render(env: Environment, name: str, status_code: int = 200, **ctx) -> HTMLResponse:
    """Render template with context."""
    template = env.get_template(name)
    ctx.setdefault("title", "Gallery")
    return HTMLResponse(template.render(**ctx), status_code=status_code)


def get_context(request: Request) -> ServiceContext:
    return request.app.state.context


def index():
    """Root route redirects to the gallery."""
    return RedirectResponse("/view")


async def upload(request: Request):
    """Accept one or more files in the ``file`` field of a multipart form."""
    ctx = get_context(request)
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith("multipart/form-data"):
        return JSONResponse(
            {"error": "request Content-Type isn't multipart/form-data"}, status_code=400
        )
    try:
        form = await request.form()
    except (MultiPartException, StarletteHTTPException) as exc:
        detail = getattr(exc, "message", None) or getattr(exc, "detail", None)
        return JSONResponse({"error": detail or "Malformed multipart body"}, status_code=400)

    try:
        candidates = [
            UploadCandidate.from_stream(part.file, part.filename)
            for part in form.getlist(UPLOAD_FIELD)
            if isinstance(part, UploadFile)
        ]
        results, status = await run_in_threadpool(ctx.pipeline.process_batch, candidates)
    finally:
        await form.close()

    return JSONResponse([r.to_dict() for r in results], status_code=status)


def view(request: Request):
    """Gallery of the most recent uploads."""
    ctx = get_context(request)
    limit = ctx.settings.gallery_limit
    try:
        records = ctx.repository.list_recent(limit)
        total = ctx.repository.count()
    except RepositoryError as exc:
        return render(ctx.templates, "error.html", status_code=500, title="Error", error=exc.message)
    return render(
        ctx.templates,
        "view.html",
        title="Recent uploads",
        images=[ImageInfo.from_record(r) for r in records],
        limit=limit,
        total=total,
        thumb_size=ctx.settings.thumbnail_size,
    )


def api_list_images(
    request: Request,
    limit: Optional[int] = Query(None, ge=1, le=LIST_LIMIT_MAX),
):
    """Most recent uploads as JSON."""
    ctx = get_context(request)
    try:
        records = ctx.repository.list_recent(limit or ctx.settings.gallery_limit)
    except RepositoryError as exc:
        return JSONResponse({"error": exc.message}, status_code=500)
    return [ImageInfo.from_record(r).model_dump(mode="json") for r in records]
