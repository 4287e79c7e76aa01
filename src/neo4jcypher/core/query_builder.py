# src/neo4jcypher/core/query_builder.py
"""
Cypher text rendering.

Every function here is pure: it takes labels, property maps, filter
conditions, ordering specs and limits and returns Cypher text. Nothing is
executed. Invalid input raises ``BuildError`` before any request is made.
"""

import re
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from neo4jcypher.core.values import cypher_literal, cypher_prop_list, escape_string, property_name
from neo4jcypher.errors import BuildError


DEFAULT_RETURN = " RETURN ID(n)"

OrderItem = Union[str, Mapping[str, str]]
OrderSpec = Union[str, Mapping[str, str], Sequence[OrderItem]]

_ORDER_DIRECTIONS = ("asc", "desc")
_REL_DIRECTIONS = {
    "outgoing": ("-", "->"),
    "incoming": ("<-", "-"),
    "both": ("-", "-"),
}


def quote_name(name: Any) -> str:
    """Backtick-quote a label, relationship type or property key."""
    text = str(name)
    if not text:
        raise BuildError("Names used in Cypher cannot be empty")
    return "`" + text.replace("`", "``") + "`"


def label_suffix(labels: Iterable[Any]) -> str:
    """Render ``[a, b]`` as ``:`a`:`b``` in the given order."""
    return "".join(":" + quote_name(label) for label in labels)


def entity_id(neo_id: Any) -> int:
    """Check an identifier is a non-negative integer before it is spliced into Cypher."""
    if isinstance(neo_id, bool) or not isinstance(neo_id, int) or neo_id < 0:
        raise BuildError(f"Entity id must be a non-negative integer, got {neo_id!r}")
    return neo_id


def start_node(neo_id: Any, var: str = "n") -> str:
    return f"START {var}=node({entity_id(neo_id)})"


def start_relationship(neo_id: Any, var: str = "r") -> str:
    return f"START {var}=relationship({entity_id(neo_id)})"


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------

def create_node_cypher(properties: Optional[Mapping[str, Any]] = None, labels: Sequence[Any] = ()) -> str:
    """
    Render a node creation returning the new node's id.

    Examples:
        >>> create_node_cypher()
        'CREATE (n ) RETURN ID(n)'
        >>> create_node_cypher({"name": "jimmy"})
        "CREATE (n {name: 'jimmy'}) RETURN ID(n)"
        >>> create_node_cypher({}, ["person"])
        'CREATE (n:`person` {}) RETURN ID(n)'
    """
    labels = list(labels or ())
    if not labels and not properties:
        props = ""
    else:
        props = cypher_prop_list(properties or {})
    return f"CREATE (n{label_suffix(labels)} {props}) RETURN ID(n)"


def find_all_nodes_cypher(label_name: Any) -> str:
    return f"MATCH (n:{quote_name(label_name)}) RETURN ID(n)"


def find_nodes_cypher(label_name: Any, key: str, value: Any) -> str:
    """
    Render an equality lookup on one property.

    Strings are single-quoted; numbers keep their exact text form, so
    ``1.1`` renders as ``1.1`` and ``4`` as ``4``.
    """
    return (
        f"MATCH (n:{quote_name(label_name)}) "
        f"WHERE n.{property_name(key)} = {cypher_literal(value)} "
        f"RETURN ID(n)"
    )


def load_node_cypher(neo_id: Any) -> str:
    return f"{start_node(neo_id)} RETURN n"


def load_relationship_cypher(neo_id: Any) -> str:
    return f"{start_relationship(neo_id)} RETURN r"


# ---------------------------------------------------------------------------
# Label queries
# ---------------------------------------------------------------------------

def condition_to_cypher(conditions: Mapping[str, Any]) -> str:
    """
    AND together per-key equality and regex clauses.

    A compiled ``re.Pattern`` value becomes ``n.key=~'<pattern>'``; an
    ``re.IGNORECASE`` pattern gets the inline ``(?i)`` flag.
    """
    clauses = []
    for key, value in conditions.items():
        if isinstance(value, re.Pattern):
            pattern = ("(?i)" if value.flags & re.IGNORECASE else "") + value.pattern
            clauses.append(f"n.{property_name(key)}=~'{escape_string(pattern)}'")
        else:
            clauses.append(f"n.{property_name(key)}={cypher_literal(value)}")
    return " WHERE " + " AND ".join(clauses)


def _order_item(item: OrderItem) -> str:
    if isinstance(item, Mapping):
        return ", ".join(_order_pair(key, direction) for key, direction in item.items())
    if isinstance(item, str):
        return f"n.{quote_name(item)}"
    raise BuildError(f"Cannot order by {item!r}")


def _order_pair(key: str, direction: Any) -> str:
    if direction not in _ORDER_DIRECTIONS:
        raise BuildError(f"only 'asc' or 'desc' allowed in order, got {direction!r} for {key!r}")
    return f"n.{quote_name(key)}" if direction == "asc" else f"n.{quote_name(key)} DESC"


def order_to_cypher(order: OrderSpec) -> str:
    """
    Render ``ORDER BY`` from a key, a mapping of key to direction, or a
    sequence mixing both.

    Raises:
        BuildError: If a direction is anything other than ``asc`` or ``desc``.
    """
    if isinstance(order, (str, Mapping)):
        rendered = _order_item(order)
    elif isinstance(order, Sequence):
        rendered = ", ".join(_order_item(item) for item in order)
    else:
        raise BuildError(f"Cannot order by {order!r}")
    return " ORDER BY " + rendered


def label_query_cypher(
    label_name: Any,
    conditions: Optional[Mapping[str, Any]] = None,
    order: Optional[OrderSpec] = None,
    limit: Any = None,
    return_clause: str = DEFAULT_RETURN,
) -> str:
    """
    Compose ``MATCH``, ``WHERE``, ``RETURN``, ``ORDER BY`` and ``LIMIT``.

    ``limit`` is only rendered for a non-negative ``int``; anything else is
    dropped without complaint.
    """
    cypher = f"MATCH (n:{quote_name(label_name)})"
    if conditions:
        cypher += condition_to_cypher(conditions)
    cypher += return_clause
    if order:
        cypher += order_to_cypher(order)
    if isinstance(limit, int) and not isinstance(limit, bool) and limit >= 0:
        cypher += f" LIMIT {limit}"
    return cypher


# ---------------------------------------------------------------------------
# Constraints
# ---------------------------------------------------------------------------

def _constraint_cypher(verb: str, label_name: Any, property_key: str, constraint_type: str) -> str:
    if constraint_type != "unique":
        raise BuildError(
            f"Not supported constraint {constraint_type!r} for property {property_key!r} (expected 'unique')"
        )
    return f"{verb} CONSTRAINT ON (n:{quote_name(label_name)}) ASSERT n.{quote_name(property_key)} IS UNIQUE"


def create_constraint_cypher(label_name: Any, property_key: str, constraint_type: str = "unique") -> str:
    return _constraint_cypher("CREATE", label_name, property_key, constraint_type)


def drop_constraint_cypher(label_name: Any, property_key: str, constraint_type: str = "unique") -> str:
    return _constraint_cypher("DROP", label_name, property_key, constraint_type)


# ---------------------------------------------------------------------------
# Entity mutations
# ---------------------------------------------------------------------------

def set_properties_cypher(start: str, var: str, properties: Mapping[str, Any]) -> str:
    assignments = ", ".join(
        f"{var}.{quote_name(key)} = {cypher_literal(value)}" for key, value in properties.items()
    )
    if not assignments:
        raise BuildError("No properties to set")
    return f"{start} SET {assignments}"


def remove_property_cypher(start: str, var: str, key: str) -> str:
    return f"{start} REMOVE {var}.{quote_name(key)}"


def node_labels_cypher(neo_id: Any) -> str:
    return f"{start_node(neo_id)} RETURN labels(n)"


def set_labels_cypher(neo_id: Any, labels: Sequence[Any]) -> str:
    if not labels:
        raise BuildError("At least one label is required")
    return f"{start_node(neo_id)} SET n{label_suffix(labels)}"


def remove_labels_cypher(neo_id: Any, labels: Sequence[Any]) -> str:
    if not labels:
        raise BuildError("At least one label is required")
    return f"{start_node(neo_id)} REMOVE n{label_suffix(labels)}"


def delete_node_cypher(neo_id: Any) -> str:
    return f"{start_node(neo_id)} OPTIONAL MATCH (n)-[r]-() DELETE n, r"


def create_relationship_cypher(
    from_id: Any, to_id: Any, rel_type: str, properties: Optional[Mapping[str, Any]] = None
) -> str:
    props = f" {cypher_prop_list(properties)}" if properties else ""
    return (
        f"START a=node({entity_id(from_id)}), b=node({entity_id(to_id)}) "
        f"CREATE (a)-[r:{quote_name(rel_type)}{props}]->(b) RETURN ID(r)"
    )


def node_relationships_cypher(neo_id: Any, rel_type: Optional[str] = None, direction: str = "both") -> str:
    """Render a match over a node's relationships filtered by type and direction."""
    if direction not in _REL_DIRECTIONS:
        raise BuildError(f"direction must be one of {sorted(_REL_DIRECTIONS)}, got {direction!r}")
    left, right = _REL_DIRECTIONS[direction]
    rel = f"[r:{quote_name(rel_type)}]" if rel_type else "[r]"
    return f"{start_node(neo_id)} MATCH (n){left}{rel}{right}() RETURN ID(r)"


def relationship_type_cypher(neo_id: Any) -> str:
    return f"{start_relationship(neo_id)} RETURN type(r)"


def relationship_nodes_cypher(neo_id: Any) -> str:
    return f"{start_relationship(neo_id)} RETURN ID(startNode(r)), ID(endNode(r))"


def delete_relationship_cypher(neo_id: Any) -> str:
    return f"{start_relationship(neo_id)} DELETE r"


__all__ = [
    "DEFAULT_RETURN",
    "quote_name",
    "label_suffix",
    "entity_id",
    "start_node",
    "start_relationship",
    "create_node_cypher",
    "find_all_nodes_cypher",
    "find_nodes_cypher",
    "load_node_cypher",
    "load_relationship_cypher",
    "condition_to_cypher",
    "order_to_cypher",
    "label_query_cypher",
    "create_constraint_cypher",
    "drop_constraint_cypher",
    "set_properties_cypher",
    "remove_property_cypher",
    "node_labels_cypher",
    "set_labels_cypher",
    "remove_labels_cypher",
    "delete_node_cypher",
    "create_relationship_cypher",
    "node_relationships_cypher",
    "relationship_type_cypher",
    "relationship_nodes_cypher",
    "delete_relationship_cypher",
]
