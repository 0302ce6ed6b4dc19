"""
Remote configuration fetcher.

fetch_config() performs exactly one GET and never retries; callers decide
what a failure means. load_remote() is the full fetch-and-write cycle used
at bootstrap, for repairs and by the background refresh.
"""
import os
import requests
import yaml
from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import ValidationError

from .schemas import ConfigDocument, CURRENT_CONFIG_VERSION
from .staleness import utc_timestamp
from .store import ConfigStore
from ..logging_config import get_logger
from .. import __version__

logger = get_logger(__name__)

# Well-known bootstrap location, used until a document names its own source
REMOTE_CONFIG_URL = "https://developer.edgecli.dev/api/internal/cli-config"

DEFAULT_TIMEOUT = 10
USER_AGENT = f"edgecli/{__version__}"


class RemoteConfigError(Exception):
    """Base class for remote configuration failures."""

    def __init__(self, message: str, url: str):
        super().__init__(message)
        self.url = url


class NetworkError(RemoteConfigError):
    """The endpoint could not be reached or timed out."""


class BadResponseError(RemoteConfigError):
    """The endpoint answered with something that is not a config document."""


def bootstrap_url() -> str:
    return os.getenv("EDGECLI_REMOTE_CONFIG", REMOTE_CONFIG_URL)


def http_timeout() -> float:
    """Timeout applied to every remote config request, in seconds."""
    try:
        return float(os.getenv("EDGECLI_HTTP_TIMEOUT", DEFAULT_TIMEOUT))
    except ValueError:
        return DEFAULT_TIMEOUT


def fetch_config(url: str, session: Optional[requests.Session] = None,
                 timeout: Optional[float] = None) -> ConfigDocument:
    """
    Fetch a configuration document from `url`.

    The body may be YAML or JSON.

    Raises:
        NetworkError: connection failure or timeout
        BadResponseError: non-200 status or an invalid document
    """
    if not url:
        raise BadResponseError("no remote configuration URL", url)

    http = session or requests
    if timeout is None:
        timeout = http_timeout()

    try:
        resp = http.get(url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
    except requests.exceptions.RequestException as e:
        raise NetworkError(f"error fetching remote configuration from {url}: {e}", url) from e

    if resp.status_code != 200:
        raise BadResponseError(
            f"error fetching remote configuration from {url}: {resp.status_code} {resp.reason}", url
        )

    try:
        raw = yaml.safe_load(resp.text)
    except yaml.YAMLError as e:
        raise BadResponseError(f"error decoding remote configuration from {url}: {e}", url) from e

    if not isinstance(raw, dict):
        raise BadResponseError(f"remote configuration from {url} is not a mapping", url)

    try:
        return ConfigDocument.model_validate(raw)
    except ValidationError as e:
        raise BadResponseError(f"invalid remote configuration from {url}: {e}", url) from e


def _legacy_profiles(data: Dict[str, Any]) -> Dict[str, Any]:
    """Lift the token from a legacy `user` section into a profile."""
    user = data.get("user")
    if isinstance(user, dict) and user.get("token"):
        return {
            "user": {
                "token": user.get("token", ""),
                "email": user.get("email", ""),
                "default": True,
            }
        }
    return {}


def load_remote(url: str, store: ConfigStore, session: Optional[requests.Session] = None,
                previous: Optional[ConfigDocument] = None,
                legacy_data: Optional[Dict[str, Any]] = None,
                now: Optional[datetime] = None) -> ConfigDocument:
    """
    Fetch a fresh document, stamp it and persist it.

    User-owned settings (profiles) are carried over from `previous`, or
    from `legacy_data` when upgrading an old file.

    Raises:
        RemoteConfigError: the fetch failed
        ConfigWriteError: the store could not persist the result
    """
    logger.info("Fetching remote configuration", extra={"url": url})
    doc = fetch_config(url, session=session)

    if previous is not None:
        doc.profiles = dict(previous.profiles)
    elif legacy_data:
        doc.profiles = ConfigDocument(profiles=_legacy_profiles(legacy_data)).profiles

    if not doc.cli.remote_config:
        doc.cli.remote_config = url
    doc.config_version = CURRENT_CONFIG_VERSION
    doc.cli.last_checked = utc_timestamp(now)

    store.write(doc)
    return doc
