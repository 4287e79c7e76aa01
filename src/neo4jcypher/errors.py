# src/neo4jcypher/errors.py
"""
Exception hierarchy for the Neo4jCypher driver.

Every error raised by the driver derives from ``Neo4jCypherError`` so callers
can catch the whole family at once. Database-reported failures keep the
server's own message, status and code unchanged.
"""

from typing import Optional


class Neo4jCypherError(Exception):
    """Base exception for all driver errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class TransportFailure(Neo4jCypherError):
    """A REST resource answered with an unexpected status or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ServerUnavailable(TransportFailure):
    """Discovery or schema resource did not answer with 200."""


class MalformedDiscoveryResponse(TransportFailure):
    """The discovery resources are missing fields the session needs."""


class CypherError(Neo4jCypherError):
    """
    A Cypher statement was rejected by the server.

    Attributes:
        message: Server error message.
        status: Exception-class style tag, e.g. ``SyntaxException``.
        code: Server error code, e.g. ``Neo.ClientError.Statement.InvalidSyntax``.
    """

    def __init__(self, message: str, status: Optional[str] = None, code: Optional[str] = None):
        self.status = status
        self.code = code
        super().__init__(message)

    def __str__(self) -> str:
        details = ", ".join(part for part in (self.status, self.code) if part)
        return f"{self.message} ({details})" if details else self.message

    @classmethod
    def from_info(cls, info) -> "CypherError":
        """Build the exception from a ``CypherErrorInfo`` descriptor."""
        return cls(info.message, status=info.status, code=info.code)


class QueryFailure(CypherError):
    """An internal driver query (create, find, load) failed on the server."""


class EntityNotFound(CypherError):
    """The server reported that a node or relationship does not exist."""


class TransactionProtocolError(Neo4jCypherError):
    """A transaction reply lacked the fields the protocol requires."""


class TransactionStartFailure(TransactionProtocolError):
    """The server refused to open a transaction."""


class TransactionClosedError(Neo4jCypherError):
    """A statement was submitted to a committed or rolled back transaction."""


class BuildError(Neo4jCypherError, ValueError):
    """Invalid input handed to the query builder."""


class EmptyResult(Neo4jCypherError, LookupError):
    """A single row was expected but the result has no rows."""


__all__ = [
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
]
