# src/neo4jcypher/server/transaction.py
"""
Transactions over the REST transactional Cypher endpoint.

A transaction moves through three states:

- ``UNOPENED``: nothing sent yet. The first statement is POSTed to the
  transaction collection and the reply's ``Location`` header and ``commit``
  field give the execution and commit URLs.
- ``OPEN``: further statements are POSTed to the execution URL.
- ``CLOSED``: committed or rolled back; no more statements are accepted.

Nothing is retried. If a commit fails the outcome on the server is unknown
and the error goes straight to the caller.
"""

import logging
import threading
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

from neo4jcypher.core.response import CypherResponse
from neo4jcypher.errors import (
    Neo4jCypherError,
    TransactionClosedError,
    TransactionProtocolError,
    TransactionStartFailure,
)
from neo4jcypher.server.endpoint import HttpEndpoint

logger = logging.getLogger(__name__)


class TransactionState(str, Enum):
    UNOPENED = "unopened"
    OPEN = "open"
    CLOSED = "closed"


def statement_body(query: Optional[str] = None, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Wrap one statement (or none) in the ``{"statements": [...]}`` envelope."""
    if query is None:
        return {"statements": []}
    statement: Dict[str, Any] = {"statement": query, "resultDataContents": ["row"]}
    if params is not None:
        statement["parameters"] = dict(params)
    return {"statements": [statement]}


class CypherTransaction:
    """
    One server-side transaction.

    Statements are serialized through an internal lock, so they reach the
    server in the order ``execute`` was called even if several threads share
    the handle. Used as a context manager it commits on a clean exit and
    rolls back when an exception escapes.

    Examples:
        >>> with session.begin_tx() as tx:
        ...     session.create_node({"name": "Alice"}, ["Person"], tx=tx)
        ...     session.query("MATCH (n:Person) RETURN count(n) AS c", tx=tx)
    """

    def __init__(
        self,
        endpoint: HttpEndpoint,
        transaction_url: str,
        on_close: Optional[Callable[["CypherTransaction"], None]] = None,
    ):
        self._endpoint = endpoint
        self.transaction_url = transaction_url
        self.exec_url: Optional[str] = None
        self.commit_url: Optional[str] = None
        self.state = TransactionState.UNOPENED
        self._on_close = on_close
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self.state is TransactionState.CLOSED

    def _assert_not_closed(self) -> None:
        if self.closed:
            raise TransactionClosedError("Transaction already committed or rolled back")

    def _mark_closed(self) -> None:
        self.state = TransactionState.CLOSED
        if self._on_close is not None:
            self._on_close(self)

    def _open(self, body: Dict[str, Any]) -> CypherResponse:
        response = self._endpoint.post(self.transaction_url, body)
        if not response.ok:
            raise TransactionStartFailure(
                f"Could not open transaction at {self.transaction_url} (response code {response.status_code})"
            )
        payload = response.json()
        result = CypherResponse.from_transaction(response.status_code, payload)
        if result.is_error():
            # The statement failed; the server keeps no transaction to resume.
            return result
        location = response.headers.get("Location")
        commit_url = payload.get("commit") if isinstance(payload, dict) else None
        if not location or not commit_url:
            raise TransactionStartFailure(
                f"Transaction reply from {self.transaction_url} is missing the Location header or commit URL"
            )
        self.exec_url = location
        self.commit_url = commit_url
        self.state = TransactionState.OPEN
        logger.debug("Opened transaction %s", self.exec_url)
        return result

    def execute(self, query: str, params: Optional[Mapping[str, Any]] = None) -> CypherResponse:
        """
        Run one statement inside the transaction.

        The first call opens the transaction on the server. A statement
        error comes back in the returned response and closes the
        transaction, because the server has already rolled it back.

        Raises:
            TransactionClosedError: The transaction was already committed or rolled back.
            TransactionStartFailure: The server refused to open the transaction.
            TransactionProtocolError: The execution URL answered with a non-2xx status.
        """
        body = statement_body(query, params)
        with self._lock:
            self._assert_not_closed()
            logger.debug("Cypher in transaction: %s params=%r", query, params)
            if self.state is TransactionState.UNOPENED:
                result = self._open(body)
            else:
                response = self._endpoint.post(self.exec_url, body)
                if not response.ok:
                    raise TransactionProtocolError(
                        f"Statement POST to {self.exec_url} failed (response code {response.status_code})"
                    )
                result = CypherResponse.from_transaction(response.status_code, response.json())
            if result.is_error():
                logger.debug("Transaction %s rolled back by the server: %s", self.exec_url, result.error_msg)
                self._mark_closed()
            return result

    def commit(self, query: Optional[str] = None, params: Optional[Mapping[str, Any]] = None) -> CypherResponse:
        """
        Commit, optionally sending one final statement with the commit.

        A transaction that never sent a statement is committed in a single
        request to ``<transaction>/commit``.

        Raises:
            TransactionClosedError: Already committed or rolled back.
            TransactionProtocolError: Non-2xx reply to the commit.
            CypherError: The server reported an error while committing.
        """
        body = statement_body(query, params)
        with self._lock:
            self._assert_not_closed()
            if self.state is TransactionState.OPEN:
                url = self.commit_url
            else:
                url = self.transaction_url.rstrip("/") + "/commit"
            try:
                response = self._endpoint.post(url, body)
            finally:
                self._mark_closed()
            if not response.ok:
                raise TransactionProtocolError(f"Commit to {url} failed (response code {response.status_code})")
            result = CypherResponse.from_transaction(response.status_code, response.json())
            result.raise_if_error()
            logger.debug("Committed transaction %s", url)
            return result

    def rollback(self) -> bool:
        """
        Roll back the transaction.

        Returns:
            ``True`` if the transaction was rolled back, ``False`` if it was
            already closed (a warning is logged, nothing is sent).
        """
        with self._lock:
            if self.closed:
                logger.warning("Rollback ignored: transaction %s is already closed", self.exec_url)
                return False
            if self.state is TransactionState.UNOPENED:
                self._mark_closed()
                return True
            try:
                response = self._endpoint.delete(self.exec_url)
            finally:
                self._mark_closed()
            if not response.ok:
                raise TransactionProtocolError(
                    f"Rollback of {self.exec_url} failed (response code {response.status_code})"
                )
            logger.debug("Rolled back transaction %s", self.exec_url)
            return True

    def __enter__(self) -> "CypherTransaction":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self.closed:
            return
        if exc_type is None:
            self.commit()
            return
        try:
            self.rollback()
        except Neo4jCypherError as e:
            logger.error("Rollback of %s failed while handling %s: %s", self.exec_url, exc_type.__name__, e)

    def __repr__(self) -> str:
        return f"CypherTransaction(state={self.state.value!r}, exec_url={self.exec_url!r})"


__all__ = ["CypherTransaction", "TransactionState", "statement_body"]
