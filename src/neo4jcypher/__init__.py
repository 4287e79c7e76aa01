# src/neo4jcypher/__init__.py
r"""
Neo4jCypher - Cypher over the Neo4j REST API

Neo4jCypher is a synchronous driver for Neo4j's HTTP endpoints:
- Sessions opened by a discovery handshake against the server root
- Autocommit queries and explicit multi-statement transactions
- Cypher rendering for node creation, label lookups, filters and ordering
- Lazy materialization of results into Node, Relationship and Label handles

Example:
    ```python
    import re
    from neo4jcypher import CypherSession

    with CypherSession.open("http://localhost:7474", auth=("neo4j", "secret")) as session:
        jimmy = session.create_node({"name": "jimmy"}, ["Person"])

        people = session.create_label("Person")
        for node in people.query(conditions={"name": re.compile("j.*", re.I)}, order={"name": "desc"}, limit=10):
            print(node.neo_id, node.props())

        with session.begin_tx() as tx:
            alice = session.create_node({"name": "alice"}, ["Person"], tx=tx)
            alice.create_rel("KNOWS", jimmy, tx=tx)
    ```
"""

__version__ = "0.1.0"

# Core
from neo4jcypher.core.entities import Label, Node, Relationship
from neo4jcypher.core.response import CypherErrorInfo, CypherResponse, descend_nested

# Server
from neo4jcypher.server.config import EndpointConfig
from neo4jcypher.server.endpoint import EndpointResponse, HttpEndpoint
from neo4jcypher.server.session import CypherSession
from neo4jcypher.server.transaction import CypherTransaction, TransactionState

# Errors
from neo4jcypher.errors import (
    BuildError,
    CypherError,
    EmptyResult,
    EntityNotFound,
    MalformedDiscoveryResponse,
    Neo4jCypherError,
    QueryFailure,
    ServerUnavailable,
    TransactionClosedError,
    TransactionProtocolError,
    TransactionStartFailure,
    TransportFailure,
)

__all__ = [
    # Session and transactions
    "CypherSession",
    "CypherTransaction",
    "TransactionState",
    "EndpointConfig",
    "EndpointResponse",
    "HttpEndpoint",

    # Results and entities
    "CypherResponse",
    "CypherErrorInfo",
    "descend_nested",
    "Node",
    "Relationship",
    "Label",

    # Errors
    "Neo4jCypherError",
    "TransportFailure",
    "ServerUnavailable",
    "MalformedDiscoveryResponse",
    "CypherError",
    "QueryFailure",
    "EntityNotFound",
    "TransactionProtocolError",
    "TransactionStartFailure",
    "TransactionClosedError",
    "BuildError",
    "EmptyResult",

    # Version
    "__version__",
]
