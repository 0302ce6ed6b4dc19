"""Local configuration: schema, store, remote fetch and background refresh."""
from .schemas import ConfigDocument, CLISection, Profile, CURRENT_CONFIG_VERSION
from .store import (
    ConfigStore, ConfigStoreError, ConfigNotFoundError, LegacyConfigError,
    CorruptConfigError, ConfigWriteError, default_config_path,
)
from .remote import fetch_config, load_remote, bootstrap_url, RemoteConfigError
from .staleness import is_stale, parse_ttl
from .refresh import BackgroundRefresh, RefreshOutcome, RefreshState

__all__ = [
    'ConfigDocument', 'CLISection', 'Profile', 'CURRENT_CONFIG_VERSION',
    'ConfigStore', 'ConfigStoreError', 'ConfigNotFoundError', 'LegacyConfigError',
    'CorruptConfigError', 'ConfigWriteError', 'default_config_path',
    'fetch_config', 'load_remote', 'bootstrap_url', 'RemoteConfigError',
    'is_stale', 'parse_ttl',
    'BackgroundRefresh', 'RefreshOutcome', 'RefreshState',
]
