"""
Local configuration store.

Reads and writes the cached application configuration (YAML) at a fixed
per-user path and classifies anything unusable as not-found, legacy or
corrupt so the caller can decide to re-fetch.

Profile values are stored unexpanded and may reference environment
variables, resolved when a profile is used, with the following syntax:
  - ${VAR_NAME}           - Required, fails if not set
  - ${VAR_NAME:-default}  - Optional with default value
  - ${VAR_NAME:?error}    - Required with custom error message
"""
import os
import re
import sys
import tempfile
import yaml
from pathlib import Path
from typing import Any, Dict, Optional
from pydantic import ValidationError

from .schemas import ConfigDocument, Profile, CURRENT_CONFIG_VERSION
from ..logging_config import get_logger

logger = get_logger(__name__)

CONFIG_FILENAME = "config.yaml"


class ConfigStoreError(Exception):
    """Base class for local configuration failures."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class ConfigNotFoundError(ConfigStoreError):
    """No configuration file exists yet (first run)."""


class LegacyConfigError(ConfigStoreError):
    """The file predates the current schema and must be upgraded."""

    def __init__(self, message: str, path: Optional[Path] = None, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, path)
        # Raw legacy content, used to carry user settings across the upgrade
        self.data = data or {}


class CorruptConfigError(ConfigStoreError):
    """The file exists but cannot be parsed or validated."""


class ConfigWriteError(ConfigStoreError):
    """The file could not be persisted."""


def default_config_path() -> Path:
    """
    Resolve the configuration file location.

    EDGECLI_CONFIG_PATH wins, otherwise the platform user config directory.
    """
    override = os.getenv("EDGECLI_CONFIG_PATH")
    if override:
        return Path(override).expanduser()

    if sys.platform == "win32":
        base = os.getenv("APPDATA") or str(Path.home() / "AppData" / "Roaming")
        return Path(base) / "edgecli" / CONFIG_FILENAME

    base = os.getenv("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "edgecli" / CONFIG_FILENAME


# =============================================================================
# Environment Variable Expansion
# =============================================================================

def _expand_env_var(value: str) -> str:
    """
    Expand environment variables in a string value.

    Raises:
        ValueError: If a required variable is not set
    """
    if not isinstance(value, str):
        return value

    # Pattern matches ${VAR}, ${VAR:-default}, ${VAR:?error}
    pattern = r'\$\{([^}:]+)(?::-([^}]*)|:\?([^}]*))?\}'

    def replacer(match):
        var_name = match.group(1)
        default_value = match.group(2)
        error_msg = match.group(3)

        env_value = os.environ.get(var_name)

        if env_value is not None:
            return env_value
        if default_value is not None:
            return default_value
        if error_msg is not None:
            raise ValueError(f"Required environment variable {var_name}: {error_msg}")
        raise ValueError(f"Environment variable {var_name} is not set")

    return re.sub(pattern, replacer, value)


def expand_profile(profile: Profile) -> Profile:
    """Return a copy of the profile with ${...} expressions expanded."""
    return profile.model_copy(update={
        "token": _expand_env_var(profile.token),
        "email": _expand_env_var(profile.email),
    })


def is_legacy(raw: Dict[str, Any]) -> bool:
    """Check whether a raw document predates the current schema."""
    if "cli" not in raw or not isinstance(raw.get("cli"), dict):
        return True
    version = raw.get("config_version")
    if not isinstance(version, int):
        return True
    return version < CURRENT_CONFIG_VERSION


class ConfigStore:
    """
    Reads and writes the configuration document at a single path.

    Usage:
        store = ConfigStore()
        try:
            doc = store.read()
        except ConfigStoreError:
            doc = load_remote(...)
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else default_config_path()

    def _load_yaml(self) -> Dict[str, Any]:
        """Load the raw YAML mapping from disk."""
        if not self.path.exists():
            raise ConfigNotFoundError(f"configuration file not found: {self.path}", self.path)

        try:
            with open(self.path, 'rb') as f:
                raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise CorruptConfigError(f"unable to parse {self.path}: {e}", self.path) from e
        except OSError as e:
            raise CorruptConfigError(f"unable to read {self.path}: {e}", self.path) from e

        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise CorruptConfigError(f"{self.path} does not contain a mapping", self.path)
        return raw

    def read(self) -> ConfigDocument:
        """
        Read and validate the configuration document.

        Raises:
            ConfigNotFoundError: first run, nothing on disk
            LegacyConfigError: older schema, needs an upgrade
            CorruptConfigError: unparseable or invalid content
        """
        raw = self._load_yaml()

        if is_legacy(raw):
            raise LegacyConfigError(
                f"configuration file {self.path} uses a legacy format", self.path, data=raw
            )

        try:
            return ConfigDocument.model_validate(raw)
        except ValidationError as e:
            raise CorruptConfigError(f"invalid configuration in {self.path}: {e}", self.path) from e

    def write(self, doc: ConfigDocument):
        """
        Persist the document atomically.

        The content is written to a sibling temporary file and renamed over
        the target so a concurrent reader never observes a partial file.

        Raises:
            ConfigWriteError: the file could not be written
        """
        data = doc.model_dump(mode="json")
        tmp_name = None
        try:
            self.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=".config-", suffix=".tmp", dir=str(self.path.parent)
            )
            with os.fdopen(fd, "w") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise ConfigWriteError(f"unable to write {self.path}: {e}", self.path) from e
        finally:
            if tmp_name and os.path.exists(tmp_name):
                os.remove(tmp_name)

        logger.info("Configuration written", extra={"config_path": str(self.path)})
