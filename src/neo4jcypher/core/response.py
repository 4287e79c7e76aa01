# src/neo4jcypher/core/response.py
"""
Interpretation of Cypher result payloads.

The server speaks two dialects. The legacy ``/db/data/cypher`` endpoint
returns ``{"columns": [...], "data": [[...]]}`` on success and a flat
``{"message", "exception", "fullname"}`` block on failure. The transactional
``/db/data/transaction`` endpoint returns ``{"results": [...], "errors": [...]}``
with rows wrapped as ``{"row": [...]}``. Both are normalized into a
``CypherResponse`` carrying at most one ``CypherErrorInfo``.
"""

from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from neo4jcypher.errors import CypherError, EmptyResult, TransportFailure


class CypherErrorInfo(BaseModel):
    """Canonical error descriptor shared by both wire formats."""

    message: str = Field(default="", description="Server error message")
    status: Optional[str] = Field(default=None, description="Exception class style tag")
    code: Optional[str] = Field(default=None, description="Server error code")

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_block(cls, block: Any) -> "CypherErrorInfo":
        """Read one ``errors[]`` entry, a nested ``error`` object or a bare string."""
        if isinstance(block, str):
            return cls(message=block)
        code = block.get("code") or block.get("fullname")
        status = block.get("status") or block.get("exception") or _status_from_code(code)
        return cls(message=block.get("message") or "", status=status, code=code)


def _status_from_code(code: Optional[str]) -> Optional[str]:
    # Neo.ClientError.Statement.InvalidSyntax -> InvalidSyntax
    if not code:
        return None
    return code.rsplit(".", 1)[-1]


def _error_from_payload(payload: Dict[str, Any]) -> Optional[CypherErrorInfo]:
    errors = payload.get("errors")
    if isinstance(errors, list):
        if errors:
            return CypherErrorInfo.from_block(errors[0])
    elif isinstance(errors, dict):
        return CypherErrorInfo.from_block(errors)

    error = payload.get("error")
    if isinstance(error, dict):
        return CypherErrorInfo.from_block(error)
    if isinstance(error, str) and error:
        return CypherErrorInfo(
            message=error,
            status=payload.get("exception") or payload.get("status"),
            code=payload.get("fullname") or payload.get("code"),
        )

    if "message" in payload and any(k in payload for k in ("exception", "status", "fullname", "code")):
        return CypherErrorInfo.from_block(payload)
    return None


def is_entity_not_found(error: Optional[CypherErrorInfo]) -> bool:
    """True when the server flagged a missing node by status."""
    return error is not None and error.status in ("EntityNotFoundException", "EntityNotFound")


def is_relationship_not_found(error: Optional[CypherErrorInfo]) -> bool:
    """
    True when the server reported a missing relationship.

    Older servers do not give relationships a distinct status and only say
    "not found" in the message, so the message is matched case-insensitively
    after the structured status check.
    """
    if error is None:
        return False
    return is_entity_not_found(error) or "not found" in error.message.lower()


def unwrap_entity(value: Any) -> Dict[str, Any]:
    """
    Return the property map of a node or relationship cell.

    The legacy endpoint returns full REST representations
    (``{"self": ..., "data": {...}}``); the transactional endpoint returns the
    properties directly.
    """
    if isinstance(value, dict) and "data" in value and ("self" in value or "metadata" in value):
        return dict(value["data"])
    if isinstance(value, dict):
        return dict(value)
    raise TransportFailure(f"Expected an entity representation, got {value!r}")


class CypherResponse:
    """
    One statement's outcome: columns, rows and an optional error.

    Examples:
        >>> r = CypherResponse.from_payload({"columns": ["ID(n)"], "data": [[7]], "errors": []})
        >>> r.is_error()
        False
        >>> r.first_row()
        [7]
    """

    def __init__(
        self,
        columns: Optional[Sequence[str]] = None,
        data: Optional[Sequence[Sequence[Any]]] = None,
        error: Optional[CypherErrorInfo] = None,
        in_transaction: bool = False,
    ):
        self.columns: List[str] = list(columns or [])
        self.data: List[List[Any]] = list(data or [])
        self.error = error
        self.in_transaction = in_transaction

    @classmethod
    def from_payload(cls, payload: Any, status_code: int = 200) -> "CypherResponse":
        """Pick the parser by payload shape."""
        if isinstance(payload, dict) and "results" in payload:
            return cls.from_transaction(status_code, payload)
        return cls.from_autocommit(status_code, payload)

    @classmethod
    def from_autocommit(cls, status_code: int, payload: Any) -> "CypherResponse":
        """
        Parse a reply from the plain ``cypher`` endpoint.

        Raises:
            TransportFailure: For a non-object body, or a status other than
                200 that carries no error block.
        """
        if not isinstance(payload, dict):
            raise TransportFailure(f"Unexpected Cypher reply body {payload!r}", status_code)
        error = _error_from_payload(payload)
        if error is not None:
            return cls(error=error)
        if status_code != 200:
            raise TransportFailure(f"Unknown response code {status_code} for Cypher query", status_code)
        return cls(columns=payload.get("columns"), data=payload.get("data"))

    @classmethod
    def from_transaction(cls, status_code: int, payload: Any) -> "CypherResponse":
        """Parse a reply from the transactional endpoint, keeping only the first statement's result."""
        if not isinstance(payload, dict):
            raise TransportFailure(f"Unexpected transaction reply body {payload!r}", status_code)
        error = _error_from_payload(payload)
        if error is not None:
            return cls(error=error, in_transaction=True)
        results = payload.get("results") or []
        if not results:
            return cls(in_transaction=True)
        first = results[0]
        rows = [entry["row"] if isinstance(entry, dict) else entry for entry in first.get("data") or []]
        return cls(columns=first.get("columns"), data=rows, in_transaction=True)

    def is_error(self) -> bool:
        return self.error is not None

    @property
    def error_msg(self) -> Optional[str]:
        return self.error.message if self.error else None

    @property
    def error_status(self) -> Optional[str]:
        return self.error.status if self.error else None

    @property
    def error_code(self) -> Optional[str]:
        return self.error.code if self.error else None

    def raise_if_error(self) -> None:
        """Raise ``CypherError`` carrying the server's message, status and code."""
        if self.error is not None:
            raise CypherError.from_info(self.error)

    def first_row(self) -> List[Any]:
        if not self.data:
            raise EmptyResult("Expected at least one row but the result is empty")
        return self.data[0]

    def first_value(self) -> Any:
        row = self.first_row()
        if not row:
            raise EmptyResult("Expected at least one column but the first row is empty")
        return row[0]

    def rows_as_records(self) -> Iterator[Dict[str, Any]]:
        """Yield each row as a column-ordered dict, one at a time."""
        columns = self.columns
        for row in self.data:
            yield dict(zip(columns, row))

    def __iter__(self) -> Iterator[List[Any]]:
        return iter(self.data)

    def __len__(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        if self.error is not None:
            return f"CypherResponse(error={self.error.status!r}: {self.error.message!r})"
        return f"CypherResponse(columns={self.columns!r}, rows={len(self.data)})"


def descend_nested(data: Iterable[Sequence[Any]], wrap: Callable[[Any], Any]) -> Iterator[Any]:
    """
    Lazily turn id rows into entity references.

    Each outer element is a row. When the row's first cell is an id,
    ``wrap(id)`` is yielded. When it is a list, the row is a nested
    collection and a new lazy sequence is yielded instead: a single ``COLLECT``
    cell (``[[1, 2]]``) is walked item by item, and a row made of several
    cells (``[[1, 2], [3]]``) is walked as the items of all its cells in
    order. Inner sequences are plain generators that run only when the
    consumer iterates them, so siblings are never pre-walked and nesting
    depth does not grow the call stack.

    Examples:
        >>> [n for n in descend_nested([[5]], int)]
        [5]
        >>> [list(inner) for inner in descend_nested([[[1, 2]]], int)]
        [[1, 2]]
        >>> [list(inner) for inner in descend_nested([[[1, 2], [3]]], int)]
        [[1, 2, 3]]
    """
    for row in data:
        head = row[0]
        if not isinstance(head, list):
            yield wrap(head)
        elif len(row) == 1:
            yield descend_nested(([item] for item in head), wrap)
        else:
            yield descend_nested(_row_items(row), wrap)


def _row_items(row: Sequence[Any]) -> Iterator[List[Any]]:
    for cell in row:
        for item in cell if isinstance(cell, list) else (cell,):
            yield [item]


__all__ = [
    "CypherErrorInfo",
    "CypherResponse",
    "descend_nested",
    "is_entity_not_found",
    "is_relationship_not_found",
    "unwrap_entity",
]
