#!/usr/bin/env python3
"""
Main entry point for edgecli.

Startup sequence:
  1. Parse arguments.
  2. Read the cached configuration; if it is missing, legacy or corrupt,
     load it synchronously from the bootstrap URL (fatal on failure).
  3. Repair a document whose last_checked is empty.
  4. If the document is stale, refresh it in the background.
  5. Run the command.
  6. On both the success and the error path, wait for the background
     refresh and report its outcome before exiting.
"""
import sys
from typing import Optional, Sequence, TextIO

import requests

from .cli import AppContext, create_parser, dispatch
from .config import (
    BackgroundRefresh, ConfigDocument, ConfigStore, ConfigStoreError,
    LegacyConfigError, ConfigNotFoundError, bootstrap_url, is_stale, load_remote,
)
from .config.store import ConfigWriteError
from .errors import (
    RemediationError, NETWORK_REMEDIATION, BUG_REMEDIATION, FILE_PERMISSION_REMEDIATION, deduce,
)
from .logging_config import get_logger
from .update import GitHubVersioner, Versioner

logger = get_logger(__name__)

GITHUB_ORG = "edgecli"
GITHUB_REPO = "edgecli"
BINARY_NAME = "edgecli"


def _info(out: TextIO, message: str):
    out.write(f"\nINFO: {message}\n\n")


def _load_or_fail(store: ConfigStore, session: requests.Session, **kwargs) -> ConfigDocument:
    """Synchronous fetch-and-write; any failure is fatal for bootstrap."""
    try:
        return load_remote(bootstrap_url(), store, session=session, **kwargs)
    except ConfigWriteError as e:
        raise RemediationError(e, FILE_PERMISSION_REMEDIATION) from e
    except Exception as e:
        raise RemediationError(e, NETWORK_REMEDIATION) from e


def bootstrap_config(store: ConfigStore, session: requests.Session,
                     verbose: bool = False, out: Optional[TextIO] = None) -> ConfigDocument:
    """
    Produce a usable configuration document before any command runs.

    Raises:
        RemediationError: if the configuration could not be loaded
    """
    out = out or sys.stdout
    try:
        doc = store.read()
    except ConfigStoreError as e:
        legacy_data = None
        if isinstance(e, LegacyConfigError):
            legacy_data = e.data
            message = ("Found your local configuration file (required to use the CLI) "
                       "was using a legacy format. File is being upgraded now.")
        elif isinstance(e, ConfigNotFoundError):
            message = ("Unable to locate a local configuration file (required to use the CLI). "
                       "File is being created now.")
        else:
            message = ("Your local configuration file (required to use the CLI) could not be read. "
                       "File is being replaced now.")
        logger.info(f"Local configuration unusable: {e}", extra={"config_path": str(store.path)})
        if verbose:
            _info(out, message)
        doc = _load_or_fail(store, session, legacy_data=legacy_data)

    # A successful read or load should never produce an empty last_checked.
    # Treat it as damage and reload once rather than trusting the document.
    if not doc.cli.last_checked:
        logger.warning(
            "Configuration loaded with empty last_checked; reloading from remote",
            extra={"config_path": str(store.path), "action": "repair"},
        )
        if verbose:
            out.write(
                "\nWARNING: There was a problem loading the compatibility and versioning "
                "information for the CLI. The operation will be retried as this "
                "configuration is required.\n\n"
            )
        doc = _load_or_fail(store, session, previous=doc)
        if not doc.cli.last_checked:
            raise RemediationError(
                "the compatibility and versioning information for the CLI could not be loaded",
                BUG_REMEDIATION,
            )

    return doc


def run(argv: Optional[Sequence[str]] = None, store: Optional[ConfigStore] = None,
        session: Optional[requests.Session] = None, versioner: Optional[Versioner] = None,
        out: Optional[TextIO] = None, err: Optional[TextIO] = None) -> int:
    """
    Execute the CLI and return the process exit code.

    All collaborators are parameters so tests can substitute them.
    """
    out = out or sys.stdout
    err = err or sys.stderr

    parser = create_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # argparse exits 2 on usage errors; --help exits 0
        return 0 if e.code in (0, None) else 1

    if not hasattr(args, "func"):
        parser.print_help(out)
        return 1

    verbose = getattr(args, "verbose", False)
    store = store or ConfigStore()
    session = session or requests.Session()

    try:
        config = bootstrap_config(store, session, verbose=verbose, out=out)
    except RemediationError as e:
        e.print(err)
        return 1

    refresh = BackgroundRefresh(store, session=session, verbose=verbose, out=out, err=err)
    if is_stale(config.cli.last_checked, config.cli.ttl):
        if verbose:
            _info(out, "Compatibility and versioning information for the CLI is being updated "
                       "in the background. The updated data will be used next time you execute "
                       "an edgecli command.")
        refresh.start(config)

    ctx = AppContext(
        config=config,
        store=store,
        session=session,
        versioner=versioner or GitHubVersioner(GITHUB_ORG, GITHUB_REPO, BINARY_NAME, session=session),
        refresh=refresh,
        verbose=verbose,
        out=out,
        err=err,
        token=getattr(args, "token", None),
        endpoint=getattr(args, "endpoint", None),
    )

    try:
        dispatch(args, ctx)
    except KeyboardInterrupt:
        err.write("\nInterrupted by user\n")
        refresh.finalize()
        return 130
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        deduce(e).print(err)
        refresh.finalize()
        return 1

    refresh.finalize()
    return 0


def main():
    """Main CLI entry point"""
    sys.exit(run())


if __name__ == '__main__':
    main()
