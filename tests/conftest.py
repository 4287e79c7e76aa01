# tests/conftest.py

import pytest
from unittest.mock import MagicMock

from neo4jcypher.server.endpoint import EndpointResponse, HttpEndpoint
from neo4jcypher.server.session import CypherSession

# --- Constants for testing ---
ROOT_URL = "http://localhost:7474"
DATA_URL = "http://localhost:7474/db/data/"
CYPHER_URL = DATA_URL + "cypher"
TX_URL = DATA_URL + "transaction"


def json_response(status_code=200, payload=None, headers=None) -> EndpointResponse:
    return EndpointResponse.from_json(status_code, payload if payload is not None else {}, headers)


def cypher_rows(columns, rows) -> EndpointResponse:
    return json_response(200, {"columns": columns, "data": rows})


def tx_rows(columns, rows, commit=None) -> dict:
    payload = {
        "results": [{"columns": columns, "data": [{"row": row} for row in rows]}],
        "errors": [],
    }
    if commit:
        payload["commit"] = commit
    return payload


# --- Fixtures ---

@pytest.fixture
def endpoint() -> MagicMock:
    """A stand-in for HttpEndpoint; tests set get/post/delete return values."""
    return MagicMock(spec=HttpEndpoint)


@pytest.fixture
def session(endpoint) -> CypherSession:
    """A session built directly on the fake endpoint, skipping discovery."""
    return CypherSession(DATA_URL, endpoint)
