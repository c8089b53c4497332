"""Upload ingestion pipeline.

Each uploaded file moves through a fixed sequence of stages::

    RECEIVED -> CLASSIFIED -> HASHED -> DEDUP_CHECKED -> STORED
             -> THUMBNAILED -> PERSISTED

and may leave early as REJECTED (oversize or not JPEG/PNG), DUPLICATE
(digest already recorded) or FAILED (any later fault). Stages run one after
another on the calling thread; nothing is retried.

Files and the database are not written in one transaction. When a stage
after STORED fails, the original stays on disk without a record unless
``cleanup_failed_uploads`` is enabled. Files are never removed after a lost
insert race, since the winning record names the same files.
"""
import abc
import enum
import logging
from dataclasses import dataclass, field
from typing import ClassVar, Iterable

from database import ImageRepository
from errors import ConflictError, UploadError, ValidationError
from imaging import classify, extension_for, make_thumbnail, sha256sum
from models import ImageRecord, UploadCandidate
from storage import FileStore

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "File uploaded successfully"
DUPLICATE_MESSAGE = "File already exists"
TOO_LARGE_MESSAGE = "File too large"
INTERNAL_ERROR_MESSAGE = "Internal error"


class UploadState(str, enum.Enum):
    RECEIVED = "received"
    CLASSIFIED = "classified"
    HASHED = "hashed"
    DEDUP_CHECKED = "dedup_checked"
    STORED = "stored"
    THUMBNAILED = "thumbnailed"
    PERSISTED = "persisted"
    REJECTED = "rejected"
    DUPLICATE = "duplicate"
    FAILED = "failed"


@dataclass
class UploadResult(abc.ABC):
    """Outcome for one file. Subclasses fix the terminal state and status."""
    filename: str

    state: ClassVar[UploadState]
    status_code: ClassVar[int]

    @property
    def ok(self) -> bool:
        return self.status_code == 200

    @abc.abstractmethod
    def to_dict(self) -> dict:
        """Wire representation sent back to the client."""


@dataclass
class Success(UploadResult):
    digest: str = ""
    record_id: int | None = None

    state = UploadState.PERSISTED
    status_code = 200

    def to_dict(self) -> dict:
        return {
            "filename": self.filename,
            "message": SUCCESS_MESSAGE,
            "sha256sum": self.digest,
        }


@dataclass
class Rejected(UploadResult):
    reason: str = ""

    state = UploadState.REJECTED
    status_code = 400

    def to_dict(self) -> dict:
        return {"filename": self.filename, "error": self.reason}


@dataclass
class Duplicate(UploadResult):
    digest: str = ""

    state = UploadState.DUPLICATE
    status_code = 409

    def to_dict(self) -> dict:
        return {"filename": self.filename, "error": DUPLICATE_MESSAGE}


@dataclass
class Failed(UploadResult):
    reason: str = ""
    # Last stage reached before the fault.
    stage: UploadState = UploadState.RECEIVED

    state = UploadState.FAILED
    status_code = 500

    def to_dict(self) -> dict:
        return {"filename": self.filename, "error": self.reason}


@dataclass
class _Progress:
    """Mutable bookkeeping for one file while it moves through the stages."""
    candidate: UploadCandidate
    state: UploadState = UploadState.RECEIVED
    digest: str = ""
    written: list = field(default_factory=list)

    def advance(self, state: UploadState) -> None:
        logger.debug("%s: %s -> %s", self.candidate.filename, self.state.value, state.value)
        self.state = state


class UploadPipeline:
    """Runs uploads through classification, dedup, storage and persistence."""

    def __init__(
        self,
        repository: ImageRepository,
        store: FileStore,
        *,
        max_upload_size: int,
        thumbnail_size: int = 120,
        cleanup_failed_uploads: bool = False,
    ) -> None:
        self.repository = repository
        self.store = store
        self.max_upload_size = max_upload_size
        self.thumbnail_size = thumbnail_size
        self.cleanup_failed_uploads = cleanup_failed_uploads

    def process(self, candidate: UploadCandidate) -> UploadResult:
        """Run one file through every stage and return its outcome."""
        progress = _Progress(candidate)
        try:
            return self._run(progress)
        except ConflictError:
            # Lost the race against a concurrent upload of the same bytes.
            logger.info("duplicate %s (%s) detected at insert", candidate.filename, progress.digest)
            return Duplicate(candidate.filename, digest=progress.digest)
        except ValidationError as exc:
            logger.info("rejected %s: %s", candidate.filename, exc.message)
            return Rejected(candidate.filename, reason=exc.message)
        except UploadError as exc:
            logger.error(
                "upload of %s failed after %s: %s",
                candidate.filename,
                progress.state.value,
                exc.__cause__ or exc,
            )
            self._handle_partial_writes(progress)
            return Failed(candidate.filename, reason=exc.message, stage=progress.state)
        except Exception:
            logger.exception(
                "unexpected error uploading %s after %s", candidate.filename, progress.state.value
            )
            self._handle_partial_writes(progress)
            return Failed(candidate.filename, reason=INTERNAL_ERROR_MESSAGE, stage=progress.state)

    def _run(self, progress: _Progress) -> UploadResult:
        candidate = progress.candidate
        if candidate.size > self.max_upload_size:
            raise ValidationError(TOO_LARGE_MESSAGE)

        mime = classify(candidate.stream)
        progress.advance(UploadState.CLASSIFIED)

        progress.digest = digest = sha256sum(candidate.stream)
        progress.advance(UploadState.HASHED)

        if self.repository.exists(digest):
            logger.info("duplicate %s (%s)", candidate.filename, digest)
            return Duplicate(candidate.filename, digest=digest)
        progress.advance(UploadState.DEDUP_CHECKED)

        filename = f"{digest}{extension_for(mime)}"
        original = self.store.save_original(candidate.stream, filename)
        progress.written.append(original)
        progress.advance(UploadState.STORED)

        thumb_name, width, height = make_thumbnail(
            self.store, original, digest, self.thumbnail_size
        )
        progress.written.append(self.store.thumbnail_path(thumb_name))
        progress.advance(UploadState.THUMBNAILED)

        record_id = self.repository.insert(
            ImageRecord(
                filename=filename,
                thumbnail_filename=thumb_name,
                width=width,
                height=height,
                sha256sum=digest,
            )
        )
        progress.advance(UploadState.PERSISTED)
        logger.info("stored %s as %s (%dx%d)", candidate.filename, filename, width, height)
        return Success(candidate.filename, digest=digest, record_id=record_id)

    def _handle_partial_writes(self, progress: _Progress) -> None:
        if not progress.written:
            return
        if self.cleanup_failed_uploads:
            self.store.remove(*progress.written)
            return
        logger.warning(
            "leaving %s on disk without a metadata record",
            ", ".join(str(p) for p in progress.written),
        )

    def process_batch(self, candidates: Iterable[UploadCandidate]) -> tuple[list[UploadResult], int]:
        """Process files in order, stopping at the first non-success.

        Returns the results gathered so far and the overall HTTP status.
        """
        results: list[UploadResult] = []
        for candidate in candidates:
            result = self.process(candidate)
            results.append(result)
            if not result.ok:
                return results, result.status_code
        return results, 200
