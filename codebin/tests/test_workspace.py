import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..")))

from codebin import workspace


@pytest.mark.parametrize("language,ext", [
    ("javascript", ".js"),
    ("html", ".html"),
    ("python", ".py"),
    ("css", ".css"),
    ("java", ".java"),
    ("plaintext", ".txt"),
    ("", ".txt"),
])
def test_extension_for(language, ext):
    assert workspace.extension_for(language) == ext


def test_acquire_creates_empty_file_with_extension():
    ws = workspace.acquire("python")
    try:
        assert ws.path.endswith(".py")
        assert os.path.isfile(ws.path)
        assert os.path.getsize(ws.path) == 0
    finally:
        ws.release()


def test_paths_are_unique_per_acquisition():
    a = workspace.acquire("java")
    b = workspace.acquire("java")
    try:
        assert a.path != b.path
        assert a.directory != b.directory
    finally:
        a.release()
        b.release()


def test_write_and_release():
    ws = workspace.acquire("css")
    ws.write("a { color: red; }\n")
    with open(ws.path, encoding="utf-8") as f:
        assert f.read() == "a { color: red; }\n"
    ws.release()
    assert not os.path.exists(ws.path)
    assert not os.path.exists(ws.directory)


def test_release_is_idempotent_and_tolerates_missing_file():
    ws = workspace.acquire("html")
    os.unlink(ws.path)
    ws.release()
    ws.release()
    assert ws.released


def test_release_removes_by_products():
    ws = workspace.acquire("java")
    with open(os.path.join(ws.directory, "Main.class"), "wb") as f:
        f.write(b"\xca\xfe\xba\xbe")
    ws.release()
    assert not os.path.exists(ws.directory)


def test_context_manager_releases_on_exception():
    with pytest.raises(RuntimeError):
        with workspace.acquire("python") as ws:
            ws.write("x = 1\n")
            raise RuntimeError("boom")
    assert not os.path.exists(ws.path)
