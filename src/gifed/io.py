"""I/O utilities for logging setup and exclusive file output."""

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import IO

# Cross-platform file locking
if sys.platform == "win32":
    import msvcrt

    def lock_file(file_handle):
        """Lock file on Windows using msvcrt."""
        try:
            msvcrt.locking(file_handle.fileno(), msvcrt.LK_LOCK, 1)
        except OSError:
            pass  # File locking may not be available in all situations

    def unlock_file(file_handle):
        """Unlock file on Windows using msvcrt."""
        try:
            msvcrt.locking(file_handle.fileno(), msvcrt.LK_UNLCK, 1)
        except OSError:
            pass
else:
    import fcntl

    def lock_file(file_handle):
        """Lock file on Unix systems using fcntl."""
        try:
            fcntl.flock(file_handle.fileno(), fcntl.LOCK_EX)
        except OSError:
            pass

    def unlock_file(file_handle):
        """Unlock file on Unix systems using fcntl."""
        try:
            fcntl.flock(file_handle.fileno(), fcntl.LOCK_UN)
        except OSError:
            pass


def setup_logging(log_dir: Path | None = None, log_level: str = "INFO") -> logging.Logger:
    """Set up logging configuration for Gifed.

    Args:
        log_dir: Directory to store log files; console only when None
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured logger instance
    """
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        handlers.append(logging.FileHandler(log_dir / f"gifed_{timestamp}.log"))

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )

    logger = logging.getLogger("gifed")
    logger.setLevel(getattr(logging, log_level.upper()))
    return logger


@contextmanager
def exclusive_output(target_path: Path) -> Iterator[IO[bytes]]:
    """Open *target_path* for binary writing under an exclusive lock, then truncate it.

    The file is locked before its old content is discarded, so a cooperating
    writer holding the lock never sees it emptied underneath. The lock is
    advisory and best-effort: processes that skip ``lock_file`` are not kept
    out, and platforms without locking support proceed unlocked.

    Nothing is rolled back on failure: a file left behind by a failed write
    is invalid and must not be appended to.

    Example:
        with exclusive_output(Path("out.gif")) as f:
            f.write(data)
    """
    target_path.parent.mkdir(parents=True, exist_ok=True)

    fd = os.open(target_path, os.O_WRONLY | os.O_CREAT | getattr(os, "O_BINARY", 0), 0o666)
    with os.fdopen(fd, "wb") as f:
        try:
            lock_file(f)
            f.truncate(0)
            yield f
            f.flush()
        finally:
            unlock_file(f)
