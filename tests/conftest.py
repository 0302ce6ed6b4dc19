import pytest
import yaml
from unittest.mock import MagicMock

from edgecli.config import ConfigDocument, ConfigStore
from edgecli.config.staleness import utc_timestamp

REMOTE_URL = "https://config.example.com/cli"

ENV_VARS = (
    "EDGECLI_API_TOKEN", "EDGECLI_API_ENDPOINT", "EDGECLI_SERVICE_ID",
    "EDGECLI_REMOTE_CONFIG", "EDGECLI_CONFIG_PATH", "EDGECLI_HTTP_TIMEOUT",
    "EDGECLI_REALTIME_ENDPOINT", "GITHUB_TOKEN",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Isolate every test from the caller's environment and working directory."""
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "edgecli" / "config.yaml"


@pytest.fixture
def store(config_path):
    return ConfigStore(config_path)


@pytest.fixture
def make_document():
    """Factory for ConfigDocument objects (fresh by default)."""
    def _make(last_checked=None, ttl="5m", remote_config=REMOTE_URL, version="0.4.0",
              profiles=None, **extra):
        if last_checked is None:
            last_checked = utc_timestamp()
        return ConfigDocument(
            cli={
                "remote_config": remote_config,
                "ttl": ttl,
                "last_checked": last_checked,
                "version": version,
            },
            profiles=profiles or {},
            **extra
        )
    return _make


@pytest.fixture
def write_raw(config_path):
    """Write arbitrary YAML (or text) straight to the config path."""
    def _write(data):
        config_path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(data, str):
            config_path.write_text(data)
        else:
            config_path.write_text(yaml.safe_dump(data))
        return config_path
    return _write


# =============================================================================
# HTTP Fixtures
# =============================================================================

@pytest.fixture
def make_response():
    """Factory for fake requests.Response objects."""
    def _make(status_code=200, text="", reason="OK", json_data=None):
        resp = MagicMock()
        resp.status_code = status_code
        resp.ok = 200 <= status_code < 300
        resp.text = text
        resp.reason = reason
        resp.content = text.encode() if text else b""
        if json_data is not None:
            resp.json.return_value = json_data
            resp.content = b"{}"
        else:
            resp.json.side_effect = ValueError("no json")
        return resp
    return _make


@pytest.fixture
def remote_body():
    """Factory for the body a remote config endpoint serves."""
    def _make(remote_config=REMOTE_URL, ttl="5m", version="0.5.0", **extra):
        data = {"cli": {"remote_config": remote_config, "ttl": ttl, "version": version}}
        data.update(extra)
        return yaml.safe_dump(data)
    return _make


@pytest.fixture
def session(make_response, remote_body):
    """A requests.Session stand-in whose GET serves a valid remote config."""
    s = MagicMock()
    s.get.return_value = make_response(text=remote_body())
    return s
