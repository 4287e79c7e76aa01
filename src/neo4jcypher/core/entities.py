# src/neo4jcypher/core/entities.py
"""
Node, Relationship and Label handles.

Handles are thin: a node or relationship is its server-assigned id plus a
back-reference to the session that issues queries on its behalf. Properties
are fetched when asked for, never cached at construction. Every method that
talks to the server accepts an optional ``tx`` so the caller decides whether
the statement joins an open transaction or autocommits.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from neo4jcypher.core import query_builder as qb
from neo4jcypher.core.response import descend_nested, unwrap_entity

if TYPE_CHECKING:
    from neo4jcypher.server.session import CypherSession
    from neo4jcypher.server.transaction import CypherTransaction


class _Entity(BaseModel):
    """Shared identity and property access for nodes and relationships."""

    neo_id: int = Field(..., ge=0, description="Server-assigned identifier")

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    _session: Optional[CypherSession] = PrivateAttr(default=None)
    _var: str = "x"

    def __init__(self, session: Optional[CypherSession] = None, **data: Any) -> None:
        super().__init__(**data)
        self._session = session

    @property
    def session(self) -> CypherSession:
        if self._session is None:
            raise RuntimeError(f"{type(self).__name__} {self.neo_id} is not bound to a session")
        return self._session

    def _start(self) -> str:
        raise NotImplementedError

    def _load_cypher(self) -> str:
        raise NotImplementedError

    def props(self, tx: Optional[CypherTransaction] = None) -> Dict[str, Any]:
        """Fetch the current property map from the server."""
        row = self.session._query_or_fail(self._load_cypher(), single_row=True, tx=tx)
        return unwrap_entity(row[0])

    def get_property(self, key: str, default: Any = None, tx: Optional[CypherTransaction] = None) -> Any:
        return self.props(tx=tx).get(key, default)

    def set_property(self, key: str, value: Any, tx: Optional[CypherTransaction] = None) -> None:
        self.update_props({key: value}, tx=tx)

    def update_props(self, properties: Mapping[str, Any], tx: Optional[CypherTransaction] = None) -> None:
        """Set several properties in one statement; other properties are untouched."""
        cypher = qb.set_properties_cypher(self._start(), self._var, properties)
        self.session._query_or_fail(cypher, tx=tx)

    def remove_property(self, key: str, tx: Optional[CypherTransaction] = None) -> None:
        self.session._query_or_fail(qb.remove_property_cypher(self._start(), self._var, key), tx=tx)

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self) and other.neo_id == self.neo_id

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.neo_id))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(neo_id={self.neo_id})"


class Node(_Entity):
    """
    Handle on a node.

    Example:
        ```python
        alice = session.create_node({"name": "Alice"}, ["Person"])
        bob = session.create_node({"name": "Bob"}, ["Person"])
        alice.create_rel("KNOWS", bob, {"since": 2014})
        [label.name for label in alice.labels()]  # ['Person']
        ```
    """

    _var: str = "n"

    def _start(self) -> str:
        return qb.start_node(self.neo_id)

    def _load_cypher(self) -> str:
        return qb.load_node_cypher(self.neo_id)

    def labels(self, tx: Optional[CypherTransaction] = None) -> List[Label]:
        row = self.session._query_or_fail(qb.node_labels_cypher(self.neo_id), single_row=True, tx=tx)
        return [self.session.create_label(name) for name in row[0] or []]

    def add_labels(self, *labels: str, tx: Optional[CypherTransaction] = None) -> None:
        self.session._query_or_fail(qb.set_labels_cypher(self.neo_id, labels), tx=tx)

    def remove_labels(self, *labels: str, tx: Optional[CypherTransaction] = None) -> None:
        self.session._query_or_fail(qb.remove_labels_cypher(self.neo_id, labels), tx=tx)

    def create_rel(
        self,
        rel_type: str,
        other: Node,
        properties: Optional[Mapping[str, Any]] = None,
        tx: Optional[CypherTransaction] = None,
    ) -> Relationship:
        """Create an outgoing relationship from this node to ``other``."""
        cypher = qb.create_relationship_cypher(self.neo_id, other.neo_id, rel_type, properties)
        row = self.session._query_or_fail(cypher, single_row=True, tx=tx)
        return self.session.wrap_relationship(row[0])

    def rels(
        self,
        rel_type: Optional[str] = None,
        direction: str = "both",
        tx: Optional[CypherTransaction] = None,
    ) -> Iterator[Relationship]:
        """Lazily list relationships by type and ``outgoing``/``incoming``/``both`` direction."""
        cypher = qb.node_relationships_cypher(self.neo_id, rel_type, direction)
        response = self.session._query_or_fail(cypher, tx=tx)
        return descend_nested(response.data, self.session.wrap_relationship)

    def exists(self, tx: Optional[CypherTransaction] = None) -> bool:
        return self.session.load_node(self.neo_id, tx=tx) is not None

    def delete(self, tx: Optional[CypherTransaction] = None) -> None:
        """Delete the node together with any relationships attached to it."""
        self.session._query_or_fail(qb.delete_node_cypher(self.neo_id), tx=tx)


class Relationship(_Entity):
    """Handle on a relationship."""

    _var: str = "r"

    def _start(self) -> str:
        return qb.start_relationship(self.neo_id)

    def _load_cypher(self) -> str:
        return qb.load_relationship_cypher(self.neo_id)

    def rel_type(self, tx: Optional[CypherTransaction] = None) -> str:
        row = self.session._query_or_fail(qb.relationship_type_cypher(self.neo_id), single_row=True, tx=tx)
        return row[0]

    def nodes(self, tx: Optional[CypherTransaction] = None) -> tuple[Node, Node]:
        row = self.session._query_or_fail(qb.relationship_nodes_cypher(self.neo_id), single_row=True, tx=tx)
        return self.session.wrap_node(row[0]), self.session.wrap_node(row[1])

    def start_node(self, tx: Optional[CypherTransaction] = None) -> Node:
        return self.nodes(tx=tx)[0]

    def end_node(self, tx: Optional[CypherTransaction] = None) -> Node:
        return self.nodes(tx=tx)[1]

    def exists(self, tx: Optional[CypherTransaction] = None) -> bool:
        return self.session.load_relationship(self.neo_id, tx=tx) is not None

    def delete(self, tx: Optional[CypherTransaction] = None) -> None:
        self.session._query_or_fail(qb.delete_relationship_cypher(self.neo_id), tx=tx)


class Label(BaseModel):
    """
    A named grouping of nodes.

    A label is not a server resource of its own: each method runs a query
    through the owning session.
    """

    name: str = Field(..., min_length=1, description="Label name")

    model_config = ConfigDict(frozen=True)

    _session: Optional[CypherSession] = PrivateAttr(default=None)

    def __init__(self, session: Optional[CypherSession] = None, **data: Any) -> None:
        super().__init__(**data)
        self._session = session

    @property
    def session(self) -> CypherSession:
        if self._session is None:
            raise RuntimeError(f"Label {self.name!r} is not bound to a session")
        return self._session

    def find_all_nodes(self, tx: Optional[CypherTransaction] = None) -> Iterator[Any]:
        return self.session.find_all_nodes(self.name, tx=tx)

    def find_nodes(self, key: str, value: Any, tx: Optional[CypherTransaction] = None) -> Iterator[Any]:
        return self.session.find_nodes(self.name, key, value, tx=tx)

    def query(
        self,
        conditions: Optional[Mapping[str, Any]] = None,
        order: Any = None,
        limit: Any = None,
        tx: Optional[CypherTransaction] = None,
    ) -> Iterator[Any]:
        """Filter, sort and limit the nodes carrying this label."""
        return self.session.query_label(self.name, conditions=conditions, order=order, limit=limit, tx=tx)

    def indexes(self) -> Dict[str, List[List[str]]]:
        return self.session.indexes(self.name)

    def create_constraint(
        self, property_key: str, constraint_type: str = "unique", tx: Optional[CypherTransaction] = None
    ) -> None:
        """Create a uniqueness constraint on ``property_key``; other types raise ``BuildError``."""
        cypher = qb.create_constraint_cypher(self.name, property_key, constraint_type)
        self.session._query_or_fail(cypher, tx=tx)

    def drop_constraint(
        self, property_key: str, constraint_type: str = "unique", tx: Optional[CypherTransaction] = None
    ) -> None:
        cypher = qb.drop_constraint_cypher(self.name, property_key, constraint_type)
        self.session._query_or_fail(cypher, tx=tx)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Label) and other.name == self.name

    def __hash__(self) -> int:
        return hash(("Label", self.name))

    def __str__(self) -> str:
        return self.name


__all__ = ["Node", "Relationship", "Label"]
