"""
Neo4jCypher Core Module

Query rendering, result interpretation and entity handles. Nothing in this
module performs I/O on its own.
"""

from neo4jcypher.core.entities import Label, Node, Relationship
from neo4jcypher.core.response import CypherErrorInfo, CypherResponse, descend_nested

__all__ = [
    "Node",
    "Relationship",
    "Label",
    "CypherResponse",
    "CypherErrorInfo",
    "descend_nested",
]
