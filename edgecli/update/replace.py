"""
In-place replacement of the running executable.

Two strategies, chosen by platform:
  - posix-rename: rename the staged binary over the target. The running
    process keeps its open inode, so the target may be replaced directly.
  - windows-rename-then-replace: Windows refuses to overwrite a running
    executable but allows renaming it, so the current binary is first
    moved aside to `<path>~`.

Both fall back to a byte copy when the rename fails (e.g. the staging file
lives on another filesystem). The copy goes to a sibling temporary file
that is fsynced and then renamed, so the target is never half-written.
"""
import os
import shutil
import sys
import tempfile
from abc import ABC, abstractmethod
from typing import Optional

from ..logging_config import get_logger

logger = get_logger(__name__)

BACKUP_SUFFIX = "~"


class ReplacementError(Exception):
    """The executable could not be replaced."""

    def __init__(self, message: str, backup_path: Optional[str] = None):
        super().__init__(message)
        # Set only when the original binary is stranded at this location
        self.backup_path = backup_path


def copy_file(src: str, dst: str):
    """
    Copy `src` over `dst`, flushing the new content to storage first.

    Raises:
        OSError: on any read, write, flush or rename failure. `dst` is
                 left untouched in that case.
    """
    if os.path.exists(dst) and os.path.samefile(src, dst):
        return

    directory = os.path.dirname(dst) or "."
    os.makedirs(directory, mode=0o700, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=".edgecli-", dir=directory)
    try:
        with os.fdopen(fd, "wb") as out, open(src, "rb") as inp:
            shutil.copyfileobj(inp, out)
            out.flush()
            os.fsync(out.fileno())
        shutil.copymode(src, tmp)
        os.replace(tmp, dst)
    except BaseException:
        if os.path.exists(tmp):
            os.remove(tmp)
        raise


class ReplacementStrategy(ABC):
    """Moves a staged binary to the path of the running executable."""

    name = ""

    def _move_into_place(self, staging_path: str, current_path: str):
        try:
            os.replace(staging_path, current_path)
        except OSError as e:
            logger.info(f"Rename of {staging_path} failed ({e}), copying instead")
            copy_file(staging_path, current_path)

    @abstractmethod
    def replace(self, staging_path: str, current_path: str):
        """
        Put the staged binary at `current_path`.

        Raises:
            ReplacementError: if the replacement failed
        """


class PosixRenameStrategy(ReplacementStrategy):
    name = "posix-rename"

    def replace(self, staging_path: str, current_path: str):
        try:
            self._move_into_place(staging_path, current_path)
        except OSError as e:
            raise ReplacementError(f"error moving latest binary in place: {e}") from e


class WindowsRenameStrategy(ReplacementStrategy):
    name = "windows-rename-then-replace"

    def replace(self, staging_path: str, current_path: str):
        backup = current_path + BACKUP_SUFFIX

        try:
            os.replace(current_path, backup)
        except OSError as e:
            if os.path.exists(backup):
                try:
                    os.remove(backup)
                except OSError as cleanup_err:
                    logger.warning(f"Unable to remove {backup}: {cleanup_err}")
            raise ReplacementError(f"error renaming the running executable: {e}") from e

        try:
            self._move_into_place(staging_path, current_path)
        except OSError as e:
            try:
                os.replace(backup, current_path)
            except OSError as restore_err:
                logger.error(f"Unable to restore {backup}: {restore_err}")
                raise ReplacementError(
                    f"error moving latest binary in place: {e}; "
                    f"the previous binary was left at {backup}",
                    backup_path=backup,
                ) from e
            raise ReplacementError(f"error moving latest binary in place: {e}") from e


def select_strategy(platform: Optional[str] = None) -> ReplacementStrategy:
    """Pick the replacement strategy for the given (default: current) platform."""
    platform = platform or sys.platform
    if platform == "win32":
        return WindowsRenameStrategy()
    return PosixRenameStrategy()


def remove_stale_backup(current_path: str):
    """Delete a `<path>~` left behind by an earlier Windows update."""
    backup = current_path + BACKUP_SUFFIX
    if os.path.exists(backup):
        try:
            os.remove(backup)
        except OSError as e:
            logger.info(f"Unable to remove previous binary {backup}: {e}")
