"""Database configuration and the image metadata repository."""
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Optional

from sqlalchemy import func, text
from sqlalchemy.engine import Engine, URL
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine, select

from errors import ConflictError, RepositoryError
from models import ImageRecord

logger = logging.getLogger(__name__)


def make_engine(url: URL | str) -> Engine:
    """Create the SQLAlchemy engine for ``url``."""
    backend = url.get_backend_name() if isinstance(url, URL) else str(url).split(":", 1)[0]
    connect_args = {"check_same_thread": False} if backend.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True)


class ImageRepository:
    """Persists :class:`ImageRecord` rows.

    The unique index on ``sha256sum`` is the only serialization point between
    concurrent uploads of the same content.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @contextmanager
    def get_session(self):
        """Get a database session context manager."""
        with Session(self.engine) as session:
            yield session

    def init_db(self) -> None:
        """Initialize database tables."""
        SQLModel.metadata.create_all(self.engine)

    def ping(self) -> None:
        """Raise RepositoryError unless the database answers."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise RepositoryError("Database unavailable") from exc

    def exists(self, digest: str) -> bool:
        try:
            with self.get_session() as s:
                row = s.exec(
                    select(ImageRecord.id).where(ImageRecord.sha256sum == digest)
                ).first()
        except SQLAlchemyError as exc:
            logger.error("exists(%s) failed: %s", digest, exc)
            raise RepositoryError("Database error") from exc
        return row is not None

    def insert(self, record: ImageRecord) -> int:
        """Insert ``record``, assigning its id and upload date.

        Raises ConflictError when the digest is already present.
        """
        record.id = None
        record.upload_date = datetime.utcnow()
        try:
            with self.get_session() as s:
                s.add(record)
                s.commit()
                s.refresh(record)
        except IntegrityError as exc:
            logger.info("insert of %s lost the race: %s", record.sha256sum, exc.orig)
            raise ConflictError("File already exists") from exc
        except SQLAlchemyError as exc:
            logger.error("insert of %s failed: %s", record.sha256sum, exc)
            raise RepositoryError("Failed to save to database") from exc
        return record.id

    def list_recent(self, limit: int) -> list[ImageRecord]:
        """Return at most ``limit`` records, newest first."""
        if limit <= 0:
            return []
        stmt = (
            select(ImageRecord)
            .order_by(ImageRecord.upload_date.desc(), ImageRecord.id.desc())
            .limit(limit)
        )
        try:
            with self.get_session() as s:
                return list(s.exec(stmt).all())
        except SQLAlchemyError as exc:
            logger.error("list_recent(%d) failed: %s", limit, exc)
            raise RepositoryError("Failed to fetch images") from exc

    def count(self, digest: Optional[str] = None) -> int:
        stmt = select(func.count()).select_from(ImageRecord)
        if digest is not None:
            stmt = stmt.where(ImageRecord.sha256sum == digest)
        try:
            with self.get_session() as s:
                return s.exec(stmt).one()
        except SQLAlchemyError as exc:
            raise RepositoryError("Database error") from exc
