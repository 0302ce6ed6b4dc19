"""Shared utilities for CLI commands."""
import argparse
import json
import os
import sys
import tomllib
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional, Sequence, TextIO

import requests

from edgecli.api import ApiClient, Version
from edgecli.config import BackgroundRefresh, ConfigDocument, ConfigStore
from edgecli.config.store import expand_profile
from edgecli.errors import (
    RemediationError, no_token_error, no_service_id_error, verbose_json_error,
    INVALID_FLAGS_REMEDIATION, AUTH_REMEDIATION,
)
from edgecli.update import Versioner

MANIFEST_FILENAME = "edgecli.toml"


@dataclass
class AppContext:
    """Everything a command handler needs beyond its parsed arguments."""
    config: ConfigDocument
    store: ConfigStore
    session: requests.Session
    versioner: Versioner
    refresh: BackgroundRefresh
    verbose: bool = False
    out: TextIO = field(default_factory=lambda: sys.stdout)
    err: TextIO = field(default_factory=lambda: sys.stderr)
    token: Optional[str] = None
    endpoint: Optional[str] = None
    client_factory: Callable[..., ApiClient] = ApiClient

    def api_client(self) -> ApiClient:
        """
        Build an API client from the first token source that is set.

        Order: --token, EDGECLI_API_TOKEN, the default profile.
        """
        token = self.token or os.getenv("EDGECLI_API_TOKEN")
        if not token:
            profile = self.config.default_profile()
            if profile:
                try:
                    token = expand_profile(profile).token
                except ValueError as e:
                    raise RemediationError(f"error reading profile token: {e}", AUTH_REMEDIATION) from e
        if not token:
            raise no_token_error()
        return self.client_factory(token, self.endpoint, session=self.session)


def global_flags() -> argparse.ArgumentParser:
    """
    Flags accepted at any position on the command line.

    Defaults are suppressed so a subcommand's parse does not reset a value
    given before the subcommand name.
    """
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("-v", "--verbose", action="store_true", default=argparse.SUPPRESS,
                        help="Verbose logging")
    parser.add_argument("-t", "--token", default=argparse.SUPPRESS,
                        help="API token (falls back to EDGECLI_API_TOKEN or the default profile)")
    parser.add_argument("--endpoint", default=argparse.SUPPRESS,
                        help="Management API endpoint")
    return parser


def add_service_flags(parser: argparse.ArgumentParser, version_required: bool = True):
    """Register --service-id, --service-name and --version."""
    parser.add_argument("-s", "--service-id", dest="service_id", help="Service ID (falls back to EDGECLI_SERVICE_ID, then edgecli.toml)")
    parser.add_argument("--service-name", dest="service_name", help="The name of the service")
    parser.add_argument("--version", dest="service_version", required=version_required,
                        help="'latest', 'active', or the number of a specific version")


def check_json_verbose(args, ctx: AppContext):
    if ctx.verbose and getattr(args, "json", False):
        raise verbose_json_error()


def read_manifest_service_id(directory: Optional[str] = None) -> Optional[str]:
    """Return service_id from an edgecli.toml in `directory`, if present."""
    path = os.path.join(directory or os.getcwd(), MANIFEST_FILENAME)
    if not os.path.exists(path):
        return None
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise RemediationError(
            f"error parsing package manifest {path}: {e}",
            f"Check {MANIFEST_FILENAME} is valid TOML.",
        ) from e
    return data.get("service_id") or None


def resolve_service_id(args, client: ApiClient) -> str:
    """Find the target service from flags, environment or manifest."""
    if args.service_id:
        return args.service_id
    if args.service_name:
        return client.search_service(args.service_name).id
    env_id = os.getenv("EDGECLI_SERVICE_ID")
    if env_id:
        return env_id
    manifest_id = read_manifest_service_id()
    if manifest_id:
        return manifest_id
    raise no_service_id_error()


def _select_version(versions: Sequence[Version], value: str) -> Version:
    if not versions:
        raise RemediationError("error listing service versions: no versions available", INVALID_FLAGS_REMEDIATION)

    if value == "latest":
        return max(versions, key=lambda v: v.number)
    if value == "active":
        for v in versions:
            if v.active:
                return v
        raise RemediationError("error finding active service version: no active version",
                               "Use --version latest or a specific version number.")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise RemediationError(f"invalid service version '{value}'", INVALID_FLAGS_REMEDIATION)
    for v in versions:
        if v.number == number:
            return v
    raise RemediationError(f"service version {number} not found", INVALID_FLAGS_REMEDIATION)


def resolve_version(client: ApiClient, service_id: str, value: str, autoclone: bool = False,
                    allow_active_locked: bool = False, out: Optional[TextIO] = None,
                    verbose: bool = False) -> Version:
    """
    Resolve --version to a concrete service version.

    Editing commands need a draft version: an active or locked one is
    cloned when --autoclone is set and rejected otherwise.
    """
    version = _select_version(client.list_versions(service_id), value)
    if allow_active_locked or not (version.active or version.locked):
        return version

    if autoclone:
        cloned = client.clone_version(service_id, version.number)
        if verbose and out is not None:
            out.write(
                f"Service version {version.number} is not editable, so it was automatically "
                f"cloned because --autoclone is enabled. Now operating on version {cloned.number}.\n\n"
            )
        return cloned

    state = "active" if version.active else "locked"
    raise RemediationError(
        f"service version {version.number} is {state}",
        "Use --autoclone to make changes to a cloned copy of this version.",
    )


def print_table(out: TextIO, headers: List[str], rows: Iterable[Sequence[Any]]):
    """Print left-aligned columns sized to their widest value."""
    rows = [[str(c) for c in row] for row in rows]
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))
    out.write("  ".join(h.ljust(widths[i]) for i, h in enumerate(headers)).rstrip() + "\n")
    for row in rows:
        out.write("  ".join(c.ljust(widths[i]) for i, c in enumerate(row)).rstrip() + "\n")


def print_json(out: TextIO, data: Any):
    out.write(json.dumps(data, indent=2) + "\n")


def mask(value: str) -> str:
    """Hide all but the last four characters of a secret."""
    if not value:
        return ""
    if len(value) <= 4:
        return "*" * len(value)
    return "*" * (len(value) - 4) + value[-4:]
