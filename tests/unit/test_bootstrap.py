"""
Unit tests for process startup: configuration bootstrap, the background
refresh rendezvous and exit codes.
"""
import io
import pytest
import requests
from unittest.mock import MagicMock, patch

from edgecli.config import CURRENT_CONFIG_VERSION
from edgecli.config.refresh import BackgroundRefresh
from edgecli.config.remote import NetworkError
from edgecli.errors import RemediationError
from edgecli.main import bootstrap_config, run

STALE = "2000-01-01T00:00:00Z"


@pytest.fixture
def streams():
    return io.StringIO(), io.StringIO()


@pytest.fixture
def versioner():
    return MagicMock()


def _run(argv, store, session, versioner, streams):
    out, err = streams
    return run(argv, store=store, session=session, versioner=versioner, out=out, err=err)


# =============================================================================
# Bootstrap
# =============================================================================

@pytest.mark.unit
class TestBootstrapConfig:

    def test_valid_file_is_used_without_network(self, store, make_document):
        store.write(make_document(version="9.9.9"))
        session = MagicMock()

        doc = bootstrap_config(store, session)

        assert doc.cli.version == "9.9.9"
        session.get.assert_not_called()

    def test_missing_file_is_created(self, store, session, streams):
        out, _ = streams
        doc = bootstrap_config(store, session, verbose=True, out=out)

        assert doc.cli.last_checked
        assert store.read().cli.version == "0.5.0"
        assert "File is being created now" in out.getvalue()

    def test_legacy_file_is_upgraded(self, store, session, write_raw, streams):
        out, _ = streams
        write_raw({"user": {"token": "legacy-token"}})

        doc = bootstrap_config(store, session, verbose=True, out=out)

        assert doc.config_version == CURRENT_CONFIG_VERSION
        assert doc.profiles["user"].token == "legacy-token"
        assert "legacy format" in out.getvalue()

    def test_corrupt_file_is_replaced(self, store, session, write_raw):
        write_raw("cli: {oops\n")
        doc = bootstrap_config(store, session)
        assert store.read().cli.last_checked == doc.cli.last_checked

    @pytest.mark.parametrize("content", [
        b"config_version: 2\ncli: {last_checked: x}\n1: foo\n",
        b"config_version: 2\ncli: {ttl: \xff\x80}\n",
    ])
    def test_undecodable_file_is_replaced(self, store, session, config_path, content, streams):
        out, _ = streams
        config_path.parent.mkdir(parents=True)
        config_path.write_bytes(content)

        doc = bootstrap_config(store, session, verbose=True, out=out)

        assert store.read().cli.last_checked == doc.cli.last_checked
        assert "File is being replaced now" in out.getvalue()

    def test_quiet_without_verbose(self, store, session, streams):
        out, _ = streams
        bootstrap_config(store, session, out=out)
        assert out.getvalue() == ""

    def test_bootstrap_failure_is_remediable(self, store):
        session = MagicMock()
        session.get.side_effect = requests.exceptions.ConnectionError("offline")

        with pytest.raises(RemediationError) as exc_info:
            bootstrap_config(store, session)
        assert "network" in exc_info.value.remediation.lower()

    def test_empty_last_checked_on_disk_is_repaired(self, store, session, write_raw):
        """A current-schema file with an empty last_checked is refetched before use."""
        write_raw({
            "config_version": CURRENT_CONFIG_VERSION,
            "cli": {"last_checked": "", "remote_config": "https://x.example.com"},
            "profiles": {"work": {"token": "keep-me", "default": True}},
        })

        doc = bootstrap_config(store, session)

        session.get.assert_called_once()
        assert doc.cli.last_checked
        assert doc.profiles["work"].token == "keep-me"
        on_disk = store.read()
        assert on_disk.cli.last_checked == doc.cli.last_checked

    def test_empty_last_checked_after_load_triggers_second_fetch(self, store, make_document):
        """Missing file, first load yields an empty last_checked, second load succeeds."""
        broken = make_document(last_checked="")
        good = make_document()

        with patch("edgecli.main.load_remote", side_effect=[broken, good]) as mock_load:
            doc = bootstrap_config(store, MagicMock())

        assert mock_load.call_count == 2
        assert mock_load.call_args_list[1].kwargs["previous"] is broken
        assert doc is good

    def test_repair_that_stays_empty_is_fatal(self, store, make_document):
        broken = make_document(last_checked="")
        with patch("edgecli.main.load_remote", side_effect=[broken, broken]):
            with pytest.raises(RemediationError):
                bootstrap_config(store, MagicMock())


# =============================================================================
# Entry point
# =============================================================================

@pytest.mark.unit
class TestRun:

    def test_bootstrap_failure_exits_before_command(self, store, versioner, streams):
        session = MagicMock()
        session.get.side_effect = requests.exceptions.ConnectionError("offline")

        with patch("edgecli.cli.commands.version.handle_version") as handler:
            code = _run(["version"], store, session, versioner, streams)

        assert code == 1
        handler.assert_not_called()
        assert "ERROR" in streams[1].getvalue()

    def test_fresh_config_starts_no_refresh(self, store, make_document, versioner, streams):
        store.write(make_document())
        session = MagicMock()

        code = _run(["version"], store, session, versioner, streams)

        assert code == 0
        session.get.assert_not_called()
        assert "edgecli version" in streams[0].getvalue()

    def test_no_command_prints_help(self, store, session, versioner, streams):
        assert _run([], store, session, versioner, streams) == 1
        assert "usage" in streams[0].getvalue()

    def test_usage_error_exits_one(self, store, session, versioner, streams, capsys):
        assert _run(["logging", "papertrail", "list"], store, session, versioner, streams) == 1
        assert "--version" in capsys.readouterr().err
        session.get.assert_not_called()

    def test_help_exits_zero(self, store, session, versioner, streams, capsys):
        assert _run(["--help"], store, session, versioner, streams) == 0
        assert "usage" in capsys.readouterr().out

    def test_stale_config_refreshes_from_persisted_url(self, store, session, make_document, versioner, streams):
        store.write(make_document(last_checked=STALE, remote_config="https://moved.example.com/cli"))

        code = _run(["version"], store, session, versioner, streams)

        assert code == 0
        assert session.get.call_args.args[0] == "https://moved.example.com/cli"
        assert store.read().cli.last_checked != STALE

    def test_refresh_failure_warns_but_keeps_command_status(self, store, make_document, versioner, streams):
        """The command succeeds, the refresh fails afterwards: exit 0 with a warning."""
        store.write(make_document(last_checked=STALE))
        session = MagicMock()
        session.get.side_effect = requests.exceptions.ConnectionError("network down")
        out, err = streams

        code = _run(["version"], store, session, versioner, streams)

        assert code == 0
        assert "edgecli version" in out.getvalue()
        assert "WARNING" in err.getvalue()
        assert store.read().cli.last_checked == STALE

    def test_verbose_announces_background_refresh(self, store, session, make_document, versioner, streams):
        store.write(make_document(last_checked=STALE))
        _run(["version", "-v"], store, session, versioner, streams)
        assert "updated in the background" in streams[0].getvalue()

    def test_interrupt_still_waits_for_refresh(self, store, make_document, versioner, streams):
        store.write(make_document(last_checked=STALE))
        finalize = MagicMock(return_value=None)

        with patch("edgecli.main.BackgroundRefresh") as refresh_cls, \
                patch("edgecli.main.dispatch", side_effect=KeyboardInterrupt):
            refresh_cls.return_value.finalize = finalize
            code = _run(["version"], store, MagicMock(), versioner, streams)

        assert code == 130
        finalize.assert_called_once()


@pytest.mark.unit
class TestRendezvous:
    """The background outcome is consumed exactly once on every exit path."""

    @pytest.mark.parametrize("command_fails", [False, True])
    @pytest.mark.parametrize("refresh_fails", [False, True])
    def test_rendezvous_matrix(self, command_fails, refresh_fails, store, make_document, versioner, streams):
        out, err = streams
        store.write(make_document(last_checked=STALE))
        events = []

        def fake_load(*args, **kwargs):
            events.append("refresh")
            if refresh_fails:
                raise NetworkError("refresh exploded", args[0])
            return make_document()

        def fake_dispatch(args, ctx):
            events.append("command")
            if command_fails:
                raise RuntimeError("command exploded")

        with patch("edgecli.config.refresh.load_remote", side_effect=fake_load), \
                patch("edgecli.main.dispatch", side_effect=fake_dispatch), \
                patch("edgecli.config.refresh.BackgroundRefresh.finalize", autospec=True,
                      side_effect=_counting_finalize(events)):
            code = _run(["version"], store, MagicMock(), versioner, streams)

        assert code == (1 if command_fails else 0)
        assert events.count("refresh") == 1
        assert events.count("command") == 1
        assert events.count("finalize") == 1
        assert events.index("finalize") > events.index("command")
        if refresh_fails:
            assert "refresh exploded" in err.getvalue()
        if command_fails:
            assert "command exploded" in err.getvalue()


def _counting_finalize(events):
    """Wrap the real finalize() and record each call that consumed an outcome."""
    real = BackgroundRefresh.finalize

    def _finalize(self):
        outcome = real(self)
        if outcome is not None:
            events.append("finalize")
        return outcome
    return _finalize
