"""Run lock for a workspace.

Provides PID-based locking so that two loops never drive the same backlog
at once; the worker mutates shared files and concurrent runs would race.
"""

import os
from pathlib import Path
from types import TracebackType

from ralph.errors import LockHeldError


class RunLock:
    """PID-based lock for a workspace.

    The lock is a file containing the holder's PID. Locks left behind by
    dead processes are treated as stale and reclaimed.

    Usage:
        with RunLock(paths.lock_file):
            # Run the loop - lock is held
            ...
        # Lock is released

    Attributes:
        lock_path: Path to the lock file
    """

    def __init__(self, lock_path: Path) -> None:
        self.lock_path = lock_path

    def acquire(self) -> bool:
        """Try to acquire the lock.

        Returns:
            True if lock acquired, False if held by another running process
        """
        if self.lock_path.exists():
            holder_pid = self.get_holder_pid()
            if (
                holder_pid is not None
                and holder_pid != os.getpid()
                and self._is_process_running(holder_pid)
            ):
                return False

        self.lock_path.write_text(str(os.getpid()))
        return True

    def release(self) -> None:
        """Release the lock if this process holds it."""
        if self.get_holder_pid() == os.getpid():
            self.lock_path.unlink(missing_ok=True)

    def get_holder_pid(self) -> int | None:
        """Get PID of lock holder.

        Returns:
            PID as int if lock exists and contains valid PID, None otherwise
        """
        try:
            content = self.lock_path.read_text().strip()
            return int(content)
        except (FileNotFoundError, ValueError):
            return None

    def _is_process_running(self, pid: int) -> bool:
        try:
            os.kill(pid, 0)  # Signal 0 doesn't kill, just checks existence
            return True
        except ProcessLookupError:
            return False
        except PermissionError:
            # Process exists but we don't have permission to signal it
            return True

    def __enter__(self) -> "RunLock":
        """Acquire lock on context entry.

        Raises:
            LockHeldError: If lock is already held by a running process
        """
        if not self.acquire():
            holder_pid = self.get_holder_pid()
            raise LockHeldError(
                f"Another ralph loop is already running in this workspace (PID: {holder_pid})"
            )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Release lock on context exit."""
        self.release()
