"""
Self-update sequence for the `update` command.
"""
import os
import shutil
import sys
from typing import Optional, TextIO

from .replace import ReplacementStrategy, ReplacementError, select_strategy, remove_stale_backup
from .versioner import Versioner, is_newer
from ..errors import RemediationError, NETWORK_REMEDIATION, BUG_REMEDIATION, UPDATE_RECOVERY_REMEDIATION
from ..logging_config import get_logger

logger = get_logger(__name__)


def current_executable() -> str:
    """
    Absolute path of the running executable.

    A frozen build is its own executable; otherwise resolve the script
    that was invoked.
    """
    if getattr(sys, "frozen", False):
        exec_path = sys.executable
    else:
        exec_path = shutil.which(sys.argv[0]) or sys.argv[0]
    return os.path.realpath(os.path.abspath(exec_path))


def _remove_staging(path: Optional[str]):
    if path and os.path.exists(path):
        try:
            os.remove(path)
        except OSError as e:
            logger.warning(f"Unable to remove staged download {path}: {e}")


class SelfUpdater:
    """
    Checks for, downloads and installs a newer CLI binary.

    Each step either succeeds or raises a RemediationError; nothing after a
    failing step runs.
    """

    def __init__(self, current_version: str, versioner: Versioner,
                 out: Optional[TextIO] = None, verbose: bool = False,
                 strategy: Optional[ReplacementStrategy] = None,
                 executable: Optional[str] = None):
        self.current_version = current_version
        self.versioner = versioner
        self.out = out or sys.stdout
        self.verbose = verbose
        self.strategy = strategy or select_strategy()
        self.executable = executable

    def _step(self, message: str):
        if self.verbose:
            self.out.write(f"{message}\n")

    def run(self) -> Optional[str]:
        """
        Perform the update.

        Returns:
            The installed version, or None if no update was required.
        """
        self._step("Checking CLI binary update...")
        try:
            latest = self.versioner.latest_version()
        except Exception as e:
            raise RemediationError(f"error fetching latest version: {e}", NETWORK_REMEDIATION) from e
        try:
            should_update = is_newer(latest, self.current_version)
        except ValueError as e:
            raise RemediationError(f"error comparing CLI versions: {e}", BUG_REMEDIATION) from e
        current = self.current_version

        self.out.write(f"\nCurrent version: {current}\n")
        self.out.write(f"Latest version: {latest}\n\n")

        if not should_update:
            self.out.write("No update required.\n")
            return None

        self._step("Fetching latest release...")
        try:
            staging_path = self.versioner.download(latest)
        except Exception as e:
            logger.error(f"Download failed: {e}", extra={"version": latest})
            raise RemediationError(f"error downloading latest release: {e}", NETWORK_REMEDIATION) from e

        try:
            self._step("Replacing binary...")
            try:
                current_path = self.executable or current_executable()
            except OSError as e:
                raise RemediationError(f"error determining executable path: {e}", BUG_REMEDIATION) from e

            remove_stale_backup(current_path)
            logger.info(f"Replacing {current_path} using {self.strategy.name}", extra={"version": latest})
            try:
                self.strategy.replace(staging_path, current_path)
            except ReplacementError as e:
                remediation = UPDATE_RECOVERY_REMEDIATION if e.backup_path else BUG_REMEDIATION
                raise RemediationError(e, remediation) from e
        finally:
            _remove_staging(staging_path)

        self.out.write(f"SUCCESS: Updated {current_path} to {latest}.\n")
        return latest
