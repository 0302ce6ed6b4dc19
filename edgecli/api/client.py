"""
Thin client for the edge platform management API.

Authentication, transport and error mapping only; no retries.
"""
import os
from typing import Any, Dict, List, Optional

import requests

from .schemas import Service, Version, Papertrail, Openstack, Snippet
from ..errors import ApiError
from ..logging_config import get_logger
from .. import __version__

logger = get_logger(__name__)

DEFAULT_ENDPOINT = "https://api.edgecli.dev"
DEFAULT_REALTIME_ENDPOINT = "https://rt.edgecli.dev"
TOKEN_HEADER = "Fastly-Key"


class ApiClient:
    """
    Management API client.

    Usage:
        client = ApiClient(token, endpoint)
        versions = client.list_versions(service_id)
    """

    def __init__(self, token: str, endpoint: Optional[str] = None,
                 session: Optional[requests.Session] = None, timeout: float = 30,
                 realtime_endpoint: Optional[str] = None):
        self.endpoint = (endpoint or os.getenv("EDGECLI_API_ENDPOINT") or DEFAULT_ENDPOINT).rstrip("/")
        self.realtime_endpoint = (
            realtime_endpoint or os.getenv("EDGECLI_REALTIME_ENDPOINT") or DEFAULT_REALTIME_ENDPOINT
        ).rstrip("/")
        self.timeout = timeout
        # The session is shared with other hosts, so the token travels per request
        self.session = session or requests.Session()
        self.headers = {
            TOKEN_HEADER: token,
            "User-Agent": f"edgecli/{__version__}",
            "Accept": "application/json",
        }

    def _request(self, method: str, path: str, base: Optional[str] = None, **kwargs) -> Any:
        url = f"{base or self.endpoint}{path}"
        logger.debug(f"{method} {url}", extra={"url": url})
        resp = self.session.request(method, url, headers=self.headers, timeout=self.timeout, **kwargs)
        if not resp.ok:
            message = resp.text or resp.reason
            try:
                body = resp.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                message = body.get("detail") or body.get("msg") or resp.reason
            raise ApiError(resp.status_code, message, url)
        if not resp.content:
            return None
        return resp.json()

    # ----- services and versions -----

    def search_service(self, name: str) -> Service:
        data = self._request("GET", "/service/search", params={"name": name})
        return Service.model_validate(data)

    def list_versions(self, service_id: str) -> List[Version]:
        data = self._request("GET", f"/service/{service_id}/version")
        return [Version.model_validate(item) for item in data or []]

    def clone_version(self, service_id: str, version: int) -> Version:
        data = self._request("PUT", f"/service/{service_id}/version/{version}/clone")
        return Version.model_validate(data)

    # ----- logging endpoints -----

    def list_papertrails(self, service_id: str, version: int) -> List[Papertrail]:
        data = self._request("GET", f"/service/{service_id}/version/{version}/logging/papertrail")
        return [Papertrail.model_validate(item) for item in data or []]

    def create_openstack(self, service_id: str, version: int, fields: Dict[str, Any]) -> Openstack:
        data = self._request(
            "POST", f"/service/{service_id}/version/{version}/logging/openstack", data=fields
        )
        return Openstack.model_validate(data)

    # ----- vcl -----

    def create_snippet(self, service_id: str, version: int, fields: Dict[str, Any]) -> Snippet:
        data = self._request("POST", f"/service/{service_id}/version/{version}/snippet", data=fields)
        return Snippet.model_validate(data)

    # ----- stats -----

    def get_realtime_stats(self, service_id: str, timestamp: int = 0) -> Dict[str, Any]:
        """
        Long-poll the realtime stats channel.

        Pass the `timestamp` from the previous response to receive only
        newer data. The first call uses 0.
        """
        data = self._request("GET", f"/v1/channel/{service_id}/ts/{timestamp}", base=self.realtime_endpoint)
        return data or {}
