"""
Unit tests for the management API client.
"""
import pytest
import requests
from unittest.mock import MagicMock, patch

from edgecli.api import ApiClient
from edgecli.config.remote import fetch_config
from edgecli.errors import ApiError


@pytest.fixture
def api_session(make_response):
    s = MagicMock()
    s.headers = {}
    s.request.return_value = make_response(json_data=[])
    return s


def _http_response(request, body):
    resp = requests.Response()
    resp.status_code = 200
    resp._content = body.encode()
    resp.encoding = "utf-8"
    resp.url = request.url
    resp.request = request
    return resp


@pytest.mark.unit
class TestApiClient:

    def test_auth_header_and_endpoint(self, api_session):
        client = ApiClient("secret", "https://api.example.com/", session=api_session)
        client.list_versions("svc")

        method, url = api_session.request.call_args.args
        assert (method, url) == ("GET", "https://api.example.com/service/svc/version")
        assert api_session.request.call_args.kwargs["headers"]["Fastly-Key"] == "secret"
        assert api_session.headers == {}

    def test_token_never_reaches_other_hosts(self, remote_body):
        sent = []
        body = remote_body()

        def send(adapter, request, **kwargs):
            sent.append(request)
            return _http_response(request, body if "config" in request.url else "[]")

        session = requests.Session()
        with patch("requests.adapters.HTTPAdapter.send", autospec=True, side_effect=send):
            client = ApiClient("SECRET-TOKEN", "https://api.example.com", session=session)
            fetch_config("https://config.other-host.example/cli", session=session)
            client.list_versions("svc")

        config_request, api_request = sent
        assert "Fastly-Key" not in config_request.headers
        assert api_request.headers["Fastly-Key"] == "SECRET-TOKEN"
        assert "Fastly-Key" not in session.headers

    def test_endpoint_from_environment(self, api_session, monkeypatch):
        monkeypatch.setenv("EDGECLI_API_ENDPOINT", "https://env.example.com")
        assert ApiClient("secret", session=api_session).endpoint == "https://env.example.com"

    def test_parses_versions(self, api_session, make_response):
        api_session.request.return_value = make_response(json_data=[
            {"service_id": "svc", "number": 1, "active": True, "comment": "ignored"},
        ])
        versions = ApiClient("secret", session=api_session).list_versions("svc")
        assert versions[0].number == 1
        assert versions[0].active is True

    def test_create_openstack_sends_form_fields(self, api_session, make_response):
        api_session.request.return_value = make_response(json_data={
            "service_id": "svc", "version": 3, "service_version": 3, "name": "logs",
        })
        endpoint = ApiClient("secret", session=api_session).create_openstack("svc", 3, {"name": "logs"})

        assert endpoint.name == "logs"
        assert api_session.request.call_args.args[0] == "POST"
        assert api_session.request.call_args.kwargs["data"] == {"name": "logs"}

    def test_create_snippet(self, api_session, make_response):
        api_session.request.return_value = make_response(json_data={
            "id": "snip-1", "service_id": "svc", "service_version": 3, "name": "waf",
            "type": "recv", "priority": "100", "dynamic": "0",
        })
        snippet = ApiClient("secret", session=api_session).create_snippet("svc", 3, {"name": "waf"})

        assert (snippet.id, snippet.priority) == ("snip-1", 100)
        assert api_session.request.call_args.args[1].endswith("/service/svc/version/3/snippet")

    def test_realtime_stats_uses_realtime_host(self, api_session, make_response):
        api_session.request.return_value = make_response(json_data={"timestamp": 42, "data": []})
        client = ApiClient("secret", session=api_session, realtime_endpoint="https://rt.example.com")

        assert client.get_realtime_stats("svc", 41) == {"timestamp": 42, "data": []}
        assert api_session.request.call_args.args[1] == "https://rt.example.com/v1/channel/svc/ts/41"

    def test_error_uses_detail(self, api_session, make_response):
        api_session.request.return_value = make_response(
            status_code=401, reason="Unauthorized", json_data={"msg": "Provided credentials are missing or invalid"},
        )
        with pytest.raises(ApiError) as exc_info:
            ApiClient("bad", session=api_session).list_versions("svc")
        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Provided credentials are missing or invalid"

    def test_error_without_json_body(self, api_session, make_response):
        api_session.request.return_value = make_response(status_code=503, reason="Service Unavailable")
        with pytest.raises(ApiError) as exc_info:
            ApiClient("secret", session=api_session).list_versions("svc")
        assert exc_info.value.message == "Service Unavailable"
