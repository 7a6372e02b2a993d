"""Host-wide locking for provisioning runs.

Two runs against the same host storage paths are not supported; the lock makes
a second run fail immediately instead of racing the first one.

The lock file is never removed, so every run locks the same inode.
"""
import fcntl
import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from starlxc.core.errors import LockError
from starlxc.core.logger import get_logger

logger = get_logger(__name__)

DEFAULT_LOCK_FILE = Path("/var/run/starlxc/provision.lock")


class ProvisionLock:
    """File-based lock held for the duration of one provisioning run."""

    def __init__(self, lock_file: Optional[Path] = None):
        """Initialize lock.

        Args:
            lock_file: Path to lock file (default: /var/run/starlxc/provision.lock)
        """
        self.lock_file = Path(lock_file) if lock_file else DEFAULT_LOCK_FILE
        self.lock_fd = None

    def acquire(self) -> bool:
        """Acquire the lock, failing at once if another run holds it.

        Returns:
            True if lock acquired successfully

        Raises:
            LockError: If unable to acquire lock
        """
        try:
            self.lock_file.parent.mkdir(parents=True, exist_ok=True)
            self.lock_fd = open(self.lock_file, 'a+')
        except OSError as e:
            raise LockError(f"Cannot open lock file {self.lock_file}: {e}")

        try:
            fcntl.flock(self.lock_fd.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError:
            lock_info = self._read_lock_info()
            self.lock_fd.close()
            self.lock_fd = None
            raise LockError(
                f"Another provisioning run is in progress "
                f"(PID {lock_info['pid']} since {lock_info['time']}). "
                f"Wait for it to finish."
            )

        self.lock_fd.seek(0)
        self.lock_fd.truncate()
        self.lock_fd.write(f"{os.getpid()}\n")
        self.lock_fd.write(f"{time.strftime('%Y-%m-%d %H:%M:%S')}\n")
        self.lock_fd.flush()

        logger.debug(f"Acquired lock: {self.lock_file}")
        return True

    def release(self):
        """Clear the holder info and release the lock."""
        if self.lock_fd is None:
            return

        try:
            self.lock_fd.seek(0)
            self.lock_fd.truncate()
            self.lock_fd.flush()
            fcntl.flock(self.lock_fd.fileno(), fcntl.LOCK_UN)
            logger.debug(f"Released lock: {self.lock_file}")
        except OSError as e:
            logger.warning(f"Error releasing lock: {e}")
        finally:
            self.lock_fd.close()
            self.lock_fd = None

    def _read_lock_info(self) -> dict:
        """Read info from lock file about who holds it."""
        try:
            lines = self.lock_file.read_text().splitlines()
        except OSError:
            lines = []

        if len(lines) >= 2:
            return {'pid': lines[0].strip(), 'time': lines[1].strip()}
        return {'pid': 'unknown', 'time': 'unknown'}

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False


@contextmanager
def provision_lock(lock_file: Optional[Path] = None) -> Iterator[ProvisionLock]:
    """Context manager holding the provisioning lock.

    Usage:
        with provision_lock(settings.lock_file):
            driver.run(request)

    Raises:
        LockError: If unable to acquire lock
    """
    lock = ProvisionLock(lock_file=lock_file)
    lock.acquire()
    try:
        yield lock
    finally:
        lock.release()
