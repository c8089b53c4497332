"""Service context shared by every request of a running application."""
from dataclasses import dataclass

from jinja2 import Environment

from config import Settings
from database import ImageRepository
from pipeline import UploadPipeline
from storage import FileStore


@dataclass
class ServiceContext:
    """Everything a request handler needs, built once at startup."""
    settings: Settings
    repository: ImageRepository
    store: FileStore
    pipeline: UploadPipeline
    templates: Environment
