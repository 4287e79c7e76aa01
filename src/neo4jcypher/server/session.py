# src/neo4jcypher/server/session.py
"""
The caller-facing session bound to one Neo4j server.

A session is opened with a discovery handshake against the server root,
then routes every statement either into a caller-supplied transaction or,
when no transaction is given, through a single autocommitting POST to the
plain Cypher endpoint.
"""

import logging
import threading
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Set, Tuple, Union
from urllib.parse import quote

from neo4jcypher.core import query_builder as qb
from neo4jcypher.core.entities import Label, Node, Relationship
from neo4jcypher.core.response import (
    CypherResponse,
    descend_nested,
    is_entity_not_found,
    is_relationship_not_found,
)
from neo4jcypher.errors import (
    CypherError,
    EntityNotFound,
    MalformedDiscoveryResponse,
    Neo4jCypherError,
    QueryFailure,
    ServerUnavailable,
)
from neo4jcypher.server.config import DEFAULT_URL, EndpointConfig
from neo4jcypher.server.endpoint import HttpEndpoint, expect_response_code
from neo4jcypher.server.transaction import CypherTransaction

logger = logging.getLogger(__name__)


class CypherSession:
    """
    Handle on one database endpoint.

    The session itself holds no transaction state: pass ``tx=`` to run a
    statement inside a transaction, or leave it out to autocommit. The base
    URLs never change after construction, so a session can be shared for
    independent autocommit queries.

    Example:
        ```python
        with CypherSession.open("http://localhost:7474", auth=("neo4j", "secret")) as session:
            jimmy = session.create_node({"name": "jimmy"}, ["Person"])
            for record in session.query("MATCH (n:Person) RETURN n.name AS name"):
                print(record["name"])

            with session.begin_tx() as tx:
                session.create_node({"name": "alice"}, ["Person"], tx=tx)
        ```
    """

    query_default_return = qb.DEFAULT_RETURN

    def __init__(
        self,
        data_url: str,
        endpoint: HttpEndpoint,
        cypher_url: Optional[str] = None,
        transaction_url: Optional[str] = None,
    ):
        """Internal constructor - use ``CypherSession.open()`` instead."""
        self.resource_url = data_url
        self.cypher_url = cypher_url or self.resource_url_for("cypher")
        self.transaction_url = transaction_url or self.resource_url_for("transaction")
        self._endpoint = endpoint
        self._transactions: Set[CypherTransaction] = set()
        self._transactions_lock = threading.Lock()
        self._closed = False

    # ------------------------------------------------------------------
    # Opening and closing
    # ------------------------------------------------------------------

    @classmethod
    def open(
        cls,
        endpoint_url: Optional[str] = None,
        auth: Optional[Tuple[str, str]] = None,
        endpoint: Optional[HttpEndpoint] = None,
        **config: Any,
    ) -> "CypherSession":
        """
        Open a session with a discovery handshake.

        Args:
            endpoint_url: Server root, defaults to ``http://localhost:7474``.
            auth: ``(username, password)`` for basic auth.
            endpoint: Pre-built HTTP endpoint; built from the config when omitted.
            **config: Further ``EndpointConfig`` fields (timeout, stream, headers...).

        Raises:
            ServerUnavailable: The root or data resource did not answer with 200.
            MalformedDiscoveryResponse: The root resource has no ``data`` URL.
        """
        settings = EndpointConfig(url=endpoint_url or DEFAULT_URL, auth=auth, **config)
        if endpoint is None:
            endpoint = HttpEndpoint(settings)

        url = settings.url
        logger.info("Connecting to %s", url)
        response = endpoint.get(url)
        if response.status_code != 200:
            raise ServerUnavailable(
                f"Server not available on {url} (response code {response.status_code})",
                response.status_code,
            )

        root = response.json()
        data_url = root.get("data") if isinstance(root, dict) else None
        if not isinstance(data_url, str) or not data_url:
            raise MalformedDiscoveryResponse(f"No data resource URL in discovery reply from {url}")
        if not data_url.endswith("/"):
            data_url += "/"

        return cls.from_data_url(data_url, endpoint)

    @classmethod
    def from_data_url(cls, data_url: str, endpoint: HttpEndpoint) -> "CypherSession":
        """Load the data resource and build a session from its sub-resource URLs."""
        response = endpoint.get(data_url)
        expect_response_code(response, 200, data_url)
        resource = response.json()
        if not isinstance(resource, dict):
            raise MalformedDiscoveryResponse(f"No data resource for {response.body!r}")
        session = cls(
            data_url,
            endpoint,
            cypher_url=resource.get("cypher"),
            transaction_url=resource.get("transaction"),
        )
        logger.info("Session opened on %s", data_url)
        return session

    def close(self) -> None:
        """
        Release the session.

        Transactions begun here and still open are rolled back; nothing is
        committed implicitly.
        """
        if self._closed:
            return
        with self._transactions_lock:
            leftovers = list(self._transactions)
        for tx in leftovers:
            logger.warning("Rolling back transaction %s left open at session close", tx.exec_url)
            try:
                tx.rollback()
            except Neo4jCypherError as e:
                logger.error("Rollback of %s failed during close: %s", tx.exec_url, e)
        logger.info("Closing session %s", self.resource_url)
        self._endpoint.close()
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "CypherSession":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __str__(self) -> str:
        return f"CypherSession {self.resource_url}"

    def __repr__(self) -> str:
        return f"CypherSession(resource_url={self.resource_url!r})"

    def resource_url_for(self, name: str) -> str:
        return self.resource_url + name

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def begin_tx(self) -> CypherTransaction:
        """Create a transaction; nothing is sent until its first statement."""
        tx = CypherTransaction(self._endpoint, self.transaction_url, on_close=self._forget_transaction)
        with self._transactions_lock:
            self._transactions.add(tx)
        return tx

    def transaction(self) -> CypherTransaction:
        return self.begin_tx()

    def _forget_transaction(self, tx: CypherTransaction) -> None:
        with self._transactions_lock:
            self._transactions.discard(tx)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _query(
        self,
        q: str,
        params: Optional[Mapping[str, Any]] = None,
        tx: Optional[CypherTransaction] = None,
    ) -> CypherResponse:
        """Run ``q`` in ``tx`` or, without one, as a single autocommitted request."""
        if tx is not None:
            return tx.execute(q, params)
        body: Dict[str, Any] = {"query": q}
        if params is not None:
            body["params"] = dict(params)
        logger.debug("Cypher: %s params=%r", q, params)
        response = self._endpoint.post(self.cypher_url, body)
        return CypherResponse.from_autocommit(response.status_code, response.json())

    def query(
        self,
        q: str,
        params: Optional[Mapping[str, Any]] = None,
        tx: Optional[CypherTransaction] = None,
    ) -> Iterator[Dict[str, Any]]:
        """
        Run a Cypher statement and return its rows as column-keyed dicts.

        Raises:
            CypherError: Carrying the server's message, status and code.
        """
        result = self._query(q, params, tx=tx)
        if result.is_error():
            raise CypherError.from_info(result.error)
        return result.rows_as_records()

    def _query_or_fail(
        self,
        q: str,
        single_row: bool = False,
        params: Optional[Mapping[str, Any]] = None,
        tx: Optional[CypherTransaction] = None,
    ) -> Union[CypherResponse, List[Any]]:
        response = self._query(q, params, tx=tx)
        if is_entity_not_found(response.error):
            raise EntityNotFound.from_info(response.error)
        if response.is_error():
            raise QueryFailure.from_info(response.error)
        return response.first_row() if single_row else response

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    def wrap_node(self, neo_id: Any) -> Node:
        return Node(self, neo_id=neo_id)

    def wrap_relationship(self, neo_id: Any) -> Relationship:
        return Relationship(self, neo_id=neo_id)

    def create_node(
        self,
        properties: Optional[Mapping[str, Any]] = None,
        labels: Sequence[str] = (),
        tx: Optional[CypherTransaction] = None,
    ) -> Node:
        row = self._query_or_fail(qb.create_node_cypher(properties, labels), single_row=True, tx=tx)
        return self.wrap_node(row[0])

    def load_node(self, neo_id: int, tx: Optional[CypherTransaction] = None) -> Optional[Node]:
        """Return the node, or ``None`` when the server reports it does not exist."""
        response = self._query(qb.load_node_cypher(neo_id), tx=tx)
        if not response.is_error():
            return self.wrap_node(neo_id)
        if is_entity_not_found(response.error):
            return None
        raise CypherError.from_info(response.error)

    def load_relationship(self, neo_id: int, tx: Optional[CypherTransaction] = None) -> Optional[Relationship]:
        """Return the relationship, or ``None`` when the server reports it does not exist."""
        response = self._query(qb.load_relationship_cypher(neo_id), tx=tx)
        if not response.is_error():
            return self.wrap_relationship(neo_id)
        if is_relationship_not_found(response.error):
            return None
        raise CypherError.from_info(response.error)

    def create_label(self, name: str) -> Label:
        return Label(self, name=name)

    def search_result_to_enumerable(self, response: CypherResponse) -> Iterator[Any]:
        if not response.data:
            return iter(())
        return descend_nested(response.data, self.wrap_node)

    def find_all_nodes(self, label_name: str, tx: Optional[CypherTransaction] = None) -> Iterator[Any]:
        response = self._query_or_fail(qb.find_all_nodes_cypher(label_name), tx=tx)
        return self.search_result_to_enumerable(response)

    def find_nodes(
        self, label_name: str, key: str, value: Any, tx: Optional[CypherTransaction] = None
    ) -> Iterator[Any]:
        response = self._query_or_fail(qb.find_nodes_cypher(label_name, key, value), tx=tx)
        return self.search_result_to_enumerable(response)

    def query_label(
        self,
        label_name: str,
        conditions: Optional[Mapping[str, Any]] = None,
        order: Any = None,
        limit: Any = None,
        tx: Optional[CypherTransaction] = None,
    ) -> Iterator[Any]:
        """Nodes carrying ``label_name`` filtered by ``conditions``, sorted by ``order``, capped by ``limit``."""
        cypher = qb.label_query_cypher(label_name, conditions, order, limit, self.query_default_return)
        response = self._query_or_fail(cypher, tx=tx)
        return self.search_result_to_enumerable(response)

    def indexes(self, label_name: str) -> Dict[str, List[List[str]]]:
        """
        List schema indexes for a label.

        Returns:
            ``{"property_keys": [[key, ...], ...]}`` with one entry per index,
            in server order.
        """
        url = self.resource_url_for(f"schema/index/{quote(str(label_name), safe='')}")
        response = self._endpoint.get(url)
        expect_response_code(response, 200, url)
        property_keys = [list(row["property_keys"]) for row in response.json() or []]
        return {"property_keys": property_keys}


__all__ = ["CypherSession"]
