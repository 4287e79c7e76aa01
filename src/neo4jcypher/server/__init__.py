"""
Neo4jCypher Server Module

Sessions, transactions and HTTP access for a Neo4j server's REST API.
"""

from neo4jcypher.server.config import EndpointConfig
from neo4jcypher.server.endpoint import EndpointResponse, HttpEndpoint
from neo4jcypher.server.session import CypherSession
from neo4jcypher.server.transaction import CypherTransaction, TransactionState

__all__ = [
    "CypherSession",
    "CypherTransaction",
    "TransactionState",
    "EndpointConfig",
    "EndpointResponse",
    "HttpEndpoint",
]
