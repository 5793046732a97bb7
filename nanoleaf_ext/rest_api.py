"""
Nanoleaf REST API Client

Thin HTTP transport for the Nanoleaf OpenAPI. Requests are addressed
relative to http://<host>:<port>/api/v1/<token>/ and every call is bounded
by a timeout. Network and HTTP failures are returned as RestResponse
objects rather than raised.
"""

import requests
import logging
from typing import Optional, Dict, Any
from dataclasses import dataclass

from .config import API_BASE_PATH, API_DEFAULT_PORT, DEFAULT_TIMEOUT

try:
    import udi_interface
    LOGGER = udi_interface.LOGGER
except ImportError:
    LOGGER = logging.getLogger(__name__)


@dataclass
class RestResponse:
    """Result of a single REST call"""
    status_code: Optional[int] = None
    body: Any = None
    error_reason: str = ""

    @property
    def is_error(self) -> bool:
        return self.status_code is None or not 200 <= self.status_code < 300

    @property
    def is_timeout(self) -> bool:
        return self.status_code is None and self.error_reason == "Timeout"


class NanoleafRestApi:
    """
    REST client for a single Nanoleaf fixture.

    Owns one requests.Session; not shared between devices.
    """

    def __init__(self, host: str, port: int = API_DEFAULT_PORT, token: str = "",
                 timeout: float = DEFAULT_TIMEOUT,
                 session: Optional[requests.Session] = None):
        """
        Initialize REST client.

        Args:
            host: IP address or hostname of the fixture
            port: API port (default 16021)
            token: Authorization token, empty for unauthenticated calls
            timeout: Request timeout in seconds
            session: Optional pre-built session
        """
        self.host = host
        self.port = port
        self.timeout = timeout
        self._token = token
        self._session = session or requests.Session()

    @property
    def token(self) -> str:
        return self._token

    def set_token(self, token: str):
        """Use a new authorization token for subsequent requests"""
        self._token = token

    def url(self, path: str = "", with_token: bool = True) -> str:
        """Build the full URL for a resource path"""
        host = f"[{self.host}]" if ':' in self.host else self.host
        base = f"http://{host}:{self.port}{API_BASE_PATH}"
        if with_token:
            base = f"{base}/{self._token}"
        path = path.strip('/')
        return f"{base}/{path}" if path else f"{base}/"

    def get(self, path: str = "") -> RestResponse:
        return self._request("GET", path)

    def put(self, path: str, json_data: Optional[Dict] = None) -> RestResponse:
        return self._request("PUT", path, json_data)

    def post(self, path: str, json_data: Optional[Dict] = None,
             with_token: bool = True) -> RestResponse:
        return self._request("POST", path, json_data, with_token=with_token)

    def _request(self, method: str, path: str,
                 json_data: Optional[Dict] = None,
                 with_token: bool = True) -> RestResponse:
        """
        Make HTTP request to the fixture.

        Args:
            method: HTTP method (GET, PUT, POST)
            path: Resource path relative to the token root
            json_data: JSON body for PUT/POST
            with_token: False for calls made before a token exists

        Returns:
            RestResponse, never raises for network errors
        """
        url = self.url(path, with_token=with_token)

        try:
            response = self._session.request(method, url, json=json_data, timeout=self.timeout)
        except requests.exceptions.Timeout:
            LOGGER.warning(f"Nanoleaf {self.host}: Request timeout on {method} {path or '/'}")
            return RestResponse(error_reason="Timeout")
        except requests.exceptions.ConnectionError as e:
            LOGGER.warning(f"Nanoleaf {self.host}: Connection error - {e}")
            return RestResponse(error_reason=f"Connection error: {e}")
        except requests.exceptions.RequestException as e:
            LOGGER.error(f"Nanoleaf {self.host}: Request error - {e}")
            return RestResponse(error_reason=str(e))

        body = None
        if response.content:
            try:
                body = response.json()
            except ValueError:
                body = response.text

        if 200 <= response.status_code < 300:
            return RestResponse(status_code=response.status_code, body=body)

        reason = f"HTTP {response.status_code}"
        if response.reason:
            reason = f"{reason} {response.reason}"
        LOGGER.warning(f"Nanoleaf {self.host}: {reason} on {method} {path or '/'}")
        return RestResponse(status_code=response.status_code, body=body, error_reason=reason)

    def close(self):
        self._session.close()
