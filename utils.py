"""Utility functions."""
from pathlib import Path

from errors import StorageError


def resolve_under_root(root: Path, candidate: Path) -> Path:
    """Resolve a path ensuring it's directly inside the root directory."""
    real = candidate.resolve()
    if real.parent != root.resolve():
        raise StorageError("Path is outside storage root")
    return real
