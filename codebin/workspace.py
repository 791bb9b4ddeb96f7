"""Request-scoped temporary files for analyzers that need code on disk.

Each acquisition gets its own private directory so concurrent requests never
contend for a path, and compiler by-products (javac's .class files) are removed
together with the source file.
"""

import logging
import os
import shutil
import tempfile
import uuid

logger = logging.getLogger(__name__)

EXTENSIONS = {
    "javascript": ".js",
    "html": ".html",
    "python": ".py",
    "css": ".css",
    "java": ".java",
}


def extension_for(language: str) -> str:
    return EXTENSIONS.get(language, ".txt")


class WorkspaceFile:
    def __init__(self, directory: str, path: str):
        self.directory = directory
        self.path = path
        self._released = False

    def write(self, text: str) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            f.write(text)

    def release(self) -> None:
        """Delete the file and its directory. Safe to call more than once."""
        if self._released:
            return
        self._released = True
        try:
            os.unlink(self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove workspace file {self.path}: {e}")
        shutil.rmtree(self.directory, ignore_errors=True)

    @property
    def released(self) -> bool:
        return self._released

    def __enter__(self) -> "WorkspaceFile":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


def acquire(language: str) -> WorkspaceFile:
    """Create an empty, uniquely named file with the language's extension.
    The caller writes the content and must release the file when done.
    """
    directory = tempfile.mkdtemp(prefix="codebin-")
    path = os.path.join(directory, f"snippet_{uuid.uuid4().hex}{extension_for(language)}")
    try:
        open(path, "w", encoding="utf-8").close()
    except OSError:
        shutil.rmtree(directory, ignore_errors=True)
        raise
    return WorkspaceFile(directory, path)
