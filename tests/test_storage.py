"""
tests/test_storage.py -- LocalImageStorage (storage/local.py).

Covers:
  - save() writes under the folder with a generated name and the original extension
  - disallowed extensions and empty uploads raise ValidationError
  - delete() removes stored files, ignores missing ones, and refuses path traversal
"""

from __future__ import annotations

import pytest

from core.errors import ValidationError
from storage.local import LocalImageStorage


@pytest.fixture
def storage(tmp_path) -> LocalImageStorage:
    return LocalImageStorage(tmp_path / "images")


def test_save_generates_name_and_keeps_extension(storage, tmp_path) -> None:
    filename = storage.save(b"\x89PNG data", "My Photo.PNG", "users")
    assert filename.endswith(".png")
    assert "My Photo" not in filename
    assert (tmp_path / "images" / "users" / filename).read_bytes() == b"\x89PNG data"
    assert storage.exists("users", filename)


def test_two_saves_never_collide(storage) -> None:
    assert storage.save(b"a", "a.jpg", "posts") != storage.save(b"a", "a.jpg", "posts")


@pytest.mark.parametrize("name", ["script.exe", "noext", None, "image.svg"])
def test_disallowed_extension(storage, name) -> None:
    with pytest.raises(ValidationError):
        storage.save(b"data", name, "posts")


def test_empty_upload(storage) -> None:
    with pytest.raises(ValidationError):
        storage.save(b"", "empty.jpg", "posts")


def test_folder_must_stay_inside_base(storage) -> None:
    with pytest.raises(ValidationError):
        storage.save(b"data", "x.jpg", "../outside")


def test_delete(storage) -> None:
    filename = storage.save(b"data", "x.webp", "sliders")
    assert storage.delete("sliders", filename) is True
    assert not storage.exists("sliders", filename)
    assert storage.delete("sliders", filename) is False
    assert storage.delete("sliders", None) is False


def test_delete_refuses_traversal(storage, tmp_path) -> None:
    victim = tmp_path / "images" / "keep.txt"
    victim.write_text("keep")
    assert storage.delete("users", "../keep.txt") is False
    assert victim.exists()
