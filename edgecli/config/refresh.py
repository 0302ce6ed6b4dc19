"""
Background refresh of the cached configuration.

A stale (but otherwise valid) configuration is refreshed on a worker thread
while the user's command runs. The entry point must call finalize() on
every exit path so the write completes, or its failure is reported, before
the process ends.
"""
import enum
import sys
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, TextIO

import requests

from .remote import load_remote
from .schemas import ConfigDocument
from .store import ConfigStore
from ..errors import RemediationError, BUG_REMEDIATION
from ..logging_config import get_logger

logger = get_logger(__name__)

UPDATE_SUCCESSFUL = (
    "Successfully updated the compatibility and versioning information for the CLI."
)


@dataclass
class RefreshOutcome:
    """
    Result of one background refresh.

    Exactly one of `document` (success) or `error` (failure) is set.
    """
    success: bool
    document: Optional[ConfigDocument] = None
    error: Optional[RemediationError] = None

    @classmethod
    def ok(cls, document: ConfigDocument) -> "RefreshOutcome":
        return cls(success=True, document=document)

    @classmethod
    def fail(cls, error: RemediationError) -> "RefreshOutcome":
        return cls(success=False, error=error)


class RefreshState(enum.Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"
    COMPLETED = "completed"


class BackgroundRefresh:
    """
    Runs at most one configuration refresh per process.

    Usage:
        refresh = BackgroundRefresh(store, session, verbose=args.verbose)
        if is_stale(...):
            refresh.start(doc)
        try:
            run_command()
        except Exception:
            refresh.finalize()
            sys.exit(1)
        refresh.finalize()
    """

    def __init__(self, store: ConfigStore, session: Optional[requests.Session] = None,
                 verbose: bool = False, out: Optional[TextIO] = None, err: Optional[TextIO] = None):
        self.store = store
        self.session = session
        self.verbose = verbose
        self.out = out or sys.stdout
        self.err = err or sys.stderr

        self._state = RefreshState.IDLE
        self._future: Optional["Future[RefreshOutcome]"] = None
        self._outcome: Optional[RefreshOutcome] = None
        self._lock = threading.Lock()

    @property
    def state(self) -> RefreshState:
        return self._state

    def _run(self, document: ConfigDocument) -> RefreshOutcome:
        """Worker body. Never raises: failures become a failed outcome."""
        url = document.cli.remote_config
        try:
            updated = load_remote(url, self.store, session=self.session, previous=document)
        except Exception as e:
            logger.warning(f"Background configuration refresh failed: {e}", extra={"url": url})
            return RefreshOutcome.fail(RemediationError(
                f"there was a problem updating the versioning information for the CLI:\n\n{e}",
                BUG_REMEDIATION,
            ))
        return RefreshOutcome.ok(updated)

    def start(self, document: ConfigDocument):
        """
        Launch the refresh against the document's own remote_config URL.

        Raises:
            RuntimeError: if a refresh was already started in this process
        """
        with self._lock:
            if self._state is not RefreshState.IDLE:
                raise RuntimeError("configuration refresh already started")
            self._state = RefreshState.REFRESHING

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="config-refresh")
        try:
            self._future = executor.submit(self._run, document)
        finally:
            # Returns immediately; the submitted task still runs to completion
            executor.shutdown(wait=False)

    def finalize(self) -> Optional[RefreshOutcome]:
        """
        Wait for the refresh, report its outcome and return it.

        Safe to call unconditionally: returns None if no refresh was
        started, and the cached outcome (without reporting again) on
        subsequent calls.
        """
        with self._lock:
            if self._state is RefreshState.IDLE:
                return None
            if self._state is RefreshState.COMPLETED:
                return self._outcome

            outcome = self._future.result()
            self._outcome = outcome
            self._state = RefreshState.COMPLETED

        if outcome.success:
            if self.verbose:
                self.out.write(f"\nINFO: {UPDATE_SUCCESSFUL}\n")
                self.out.flush()
        else:
            outcome.error.print_warning(self.err)
        return outcome
