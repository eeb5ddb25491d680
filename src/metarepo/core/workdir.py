"""Scoped change of the process working directory.

The working directory is process-wide state. working_directory() holds a
module lock for the whole scope, so two threads can never interleave their
chdir calls; nesting in the same thread is allowed.
"""

import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)

_cwd_lock = threading.RLock()


@contextmanager
def working_directory(path: Path) -> Iterator[Path]:
    """Switch to path for the duration of the block, creating it if needed.

    The previous directory is restored on every exit path, including
    when the block raises.

    Example:
        with working_directory(repo_dir):
            run_generator()
    """
    path = Path(path).absolute()
    with _cwd_lock:
        if not path.exists():
            path.mkdir(parents=True)
        previous = Path.cwd()
        os.chdir(path)
        logger.debug("Switched working directory to %s", path)
        try:
            yield path
        finally:
            os.chdir(previous)
            logger.debug("Restored working directory to %s", previous)
