"""Unit tests for the local file store."""

import pytest

from protocom.storage.file_store import LocalFileStore
from protocom.utils.exceptions import FileError


@pytest.fixture
def store(tmp_path):
    return LocalFileStore(str(tmp_path))


def test_read_lines_without_terminators(store, tmp_path):
    (tmp_path / "script.p1s").write_text("V\r\nS\n\nM done", encoding="utf-8")
    assert store.read_all_lines("script.p1s") == ["V", "S", "", "M done"]


def test_absolute_path(store, tmp_path):
    path = tmp_path / "abs.txt"
    path.write_text("x\n", encoding="utf-8")
    assert store.read_all_lines(str(path)) == ["x"]


def test_read_missing(store):
    with pytest.raises(FileError):
        store.read_all_lines("missing.txt")


def test_read_undecodable(store, tmp_path):
    (tmp_path / "bad.txt").write_bytes(b"\xff\xfe\xfa")
    with pytest.raises(FileError):
        store.read_all_lines("bad.txt")


def test_append_line(store, tmp_path):
    store.append_line("out.txt", "first")
    store.append_line("out.txt", "second")
    assert (tmp_path / "out.txt").read_text(encoding="utf-8") == "first\nsecond\n"


def test_append_into_missing_directory(store):
    with pytest.raises(FileError):
        store.append_line("nope/out.txt", "x")
