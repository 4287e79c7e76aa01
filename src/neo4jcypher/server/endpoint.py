# src/neo4jcypher/server/endpoint.py
"""
HTTP access to the Neo4j REST API.

``HttpEndpoint`` is the only place the driver touches the network. It wraps
a ``requests.Session`` configured from ``EndpointConfig`` and hands back
``EndpointResponse`` objects: status code, raw body and case-insensitive
headers. Sessions and transactions depend on the ``get``/``post``/``delete``
trio only, so tests substitute a fake.
"""

import json
import logging
from typing import Any, Mapping, Optional

import requests
from requests.structures import CaseInsensitiveDict

from neo4jcypher.errors import ServerUnavailable, TransportFailure
from neo4jcypher.server.config import EndpointConfig

logger = logging.getLogger(__name__)


class EndpointResponse:
    """Status code, body bytes and headers of one HTTP exchange."""

    def __init__(self, status_code: int, body: bytes = b"", headers: Optional[Mapping[str, str]] = None):
        self.status_code = status_code
        self.body = body
        self.headers: CaseInsensitiveDict = CaseInsensitiveDict(headers or {})

    @classmethod
    def from_json(cls, status_code: int, payload: Any, headers: Optional[Mapping[str, str]] = None) -> "EndpointResponse":
        return cls(status_code, json.dumps(payload).encode("utf-8"), headers)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        """Decode the body; an empty body decodes to ``None``."""
        if not self.body:
            return None
        try:
            return json.loads(self.body)
        except ValueError as e:
            raise TransportFailure(f"Invalid JSON in response body: {e}", self.status_code) from e

    def __repr__(self) -> str:
        return f"EndpointResponse(status_code={self.status_code}, bytes={len(self.body)})"


class HttpEndpoint:
    """Performs GET, POST and DELETE against the server with shared settings."""

    def __init__(self, config: Optional[EndpointConfig] = None, http: Optional[requests.Session] = None):
        self.config = config or EndpointConfig()
        self._http = http or requests.Session()
        self._http.headers.update(self.config.request_headers())
        if self.config.auth:
            self._http.auth = self.config.auth
        self._http.verify = self.config.verify

    def _request(self, method: str, url: str, body: Any = None) -> EndpointResponse:
        logger.debug("%s %s", method, url)
        try:
            response = self._http.request(
                method,
                url,
                data=None if body is None else json.dumps(body),
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            raise ServerUnavailable(f"{method} {url} failed: {e}") from e
        logger.debug("%s %s -> %s", method, url, response.status_code)
        return EndpointResponse(response.status_code, response.content, response.headers)

    def get(self, url: str) -> EndpointResponse:
        return self._request("GET", url)

    def post(self, url: str, body: Any = None) -> EndpointResponse:
        return self._request("POST", url, body)

    def delete(self, url: str) -> EndpointResponse:
        return self._request("DELETE", url)

    def close(self) -> None:
        self._http.close()


def expect_response_code(response: EndpointResponse, expected: int, url: str) -> None:
    """Raise ``ServerUnavailable`` unless ``response`` has the expected status."""
    if response.status_code != expected:
        raise ServerUnavailable(
            f"Expected response code {expected} from {url}, got {response.status_code}",
            response.status_code,
        )


__all__ = ["EndpointResponse", "HttpEndpoint", "expect_response_code"]
