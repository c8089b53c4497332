"""Tests for storage: atomic writes into the original and thumbnail directories."""

import io

import pytest

from errors import StorageError
from storage import FileStore, atomic_write


class TestAtomicWrite:
    def test_replaces_target(self, temp_dir):
        target = temp_dir / "out.bin"
        target.write_bytes(b"old")
        with atomic_write(target) as fh:
            fh.write(b"new")
        assert target.read_bytes() == b"new"
        assert list(temp_dir.iterdir()) == [target]

    def test_error_keeps_previous_contents(self, temp_dir):
        target = temp_dir / "out.bin"
        target.write_bytes(b"old")
        with pytest.raises(RuntimeError):
            with atomic_write(target) as fh:
                fh.write(b"partial")
                raise RuntimeError("boom")
        assert target.read_bytes() == b"old"
        assert list(temp_dir.iterdir()) == [target]


class TestFileStore:
    def test_save_original_copies_whole_stream(self, store, red_jpeg):
        stream = io.BytesIO(red_jpeg)
        stream.seek(4)
        path = store.save_original(stream, "abc.jpg")
        assert path == store.upload_dir / "abc.jpg"
        assert path.read_bytes() == red_jpeg

    def test_no_temporary_files_left(self, store, red_jpeg):
        store.save_original(io.BytesIO(red_jpeg), "abc.jpg")
        assert [p.name for p in store.upload_dir.iterdir()] == ["abc.jpg"]

    def test_rejects_names_outside_root(self, store):
        with pytest.raises(StorageError):
            store.save_original(io.BytesIO(b"x"), "../escape.jpg")
        with pytest.raises(StorageError):
            store.thumbnail_path("nested/dir.jpg")

    def test_missing_directory_is_storage_error(self, temp_dir, red_jpeg):
        store = FileStore(temp_dir / "nope" / "image", temp_dir / "nope" / "thumb")
        with pytest.raises(StorageError) as exc_info:
            store.save_original(io.BytesIO(red_jpeg), "abc.jpg")
        assert exc_info.value.message == "Failed to save file"
        assert not (temp_dir / "nope").exists()

    def test_save_thumbnail_failure_leaves_nothing(self, store):
        def write(fh):
            fh.write(b"half")
            raise OSError("disk full")

        with pytest.raises(StorageError):
            store.save_thumbnail("abc.jpg", write)
        assert list(store.thumbnail_dir.iterdir()) == []

    def test_remove_ignores_missing(self, store, red_jpeg):
        path = store.save_original(io.BytesIO(red_jpeg), "abc.jpg")
        store.remove(path, store.thumbnail_path("missing.jpg"))
        assert not path.exists()
