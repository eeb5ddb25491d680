"""Atomic file replacement shared by the manifest and workspace writers."""

import os
import tempfile
from pathlib import Path


def atomic_write_text(path: Path, content: str, encoding: str = "utf-8") -> None:
    """Replace path with content without ever exposing a partial file.

    Writes to a temp file in the same directory with fsync, then
    atomically replaces the target using os.replace().
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            suffix=".tmp",
            prefix=f".{path.name}_",
        )
        with os.fdopen(fd, "w", encoding=encoding, newline="\n") as f:
            fd = None  # os.fdopen takes ownership of fd
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, str(path))
        tmp_path = None  # replaced successfully
    except Exception:
        # Clean up temp file on failure
        if fd is not None:
            os.close(fd)
        if tmp_path and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
