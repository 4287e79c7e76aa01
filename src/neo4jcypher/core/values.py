# src/neo4jcypher/core/values.py
"""
Property values and their Cypher literal form.

Property maps accepted by the driver are restricted to a closed set of scalar
types: ``str``, ``int``, ``float``, ``bool`` and ``None``. Maps are checked
with a strict pydantic adapter before rendering, so lists, dicts, dates and
other objects are rejected up front instead of being rendered as garbage.
"""

import math
import re
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import StrictBool, StrictFloat, StrictInt, StrictStr, TypeAdapter, ValidationError

from neo4jcypher.errors import BuildError


PropertyValue = Union[StrictBool, StrictInt, StrictFloat, StrictStr, None]
PropertyMap = Dict[str, PropertyValue]

_value_adapter: TypeAdapter = TypeAdapter(PropertyValue)
_map_adapter: TypeAdapter = TypeAdapter(PropertyMap)

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*\Z")


def validate_value(value: Any) -> PropertyValue:
    """Check that ``value`` belongs to the supported scalar set."""
    try:
        return _value_adapter.validate_python(value)
    except ValidationError as e:
        raise BuildError(f"Unsupported property value {value!r}: {e.error_count()} validation error(s)") from e


def validate_properties(properties: Optional[Mapping[str, Any]]) -> PropertyMap:
    """
    Validate a property mapping, keeping the caller's key order.

    Returns:
        A plain dict with the same keys in insertion order.

    Raises:
        BuildError: If a key is not a string or a value is outside the scalar set.
    """
    if properties is None:
        return {}
    try:
        return _map_adapter.validate_python(dict(properties))
    except ValidationError as e:
        raise BuildError(f"Invalid property map: {e}") from e


def escape_string(text: str) -> str:
    return text.replace("\\", "\\\\").replace("'", "\\'")


def render_literal(value: PropertyValue) -> str:
    """
    Render one validated property value as Cypher literal text.

    Strings are single-quoted, booleans are ``true``/``false``, numbers keep
    their Python text form (``1.1`` stays ``1.1``) and ``None`` is ``null``.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise BuildError(f"Cypher has no literal for {value!r}")
        return repr(value)
    if isinstance(value, str):
        return f"'{escape_string(value)}'"
    raise BuildError(f"Unsupported property value {value!r}")


def cypher_literal(value: Any) -> str:
    """Validate then render a single value."""
    return render_literal(validate_value(value))


def property_name(key: Any) -> str:
    """Render a property key bare when it is a plain identifier, backtick-quoted otherwise."""
    text = str(key)
    if not text:
        raise BuildError("Property keys cannot be empty")
    if _IDENTIFIER.match(text):
        return text
    return "`" + text.replace("`", "``") + "`"


def cypher_prop_list(properties: Optional[Mapping[str, Any]]) -> str:
    """
    Render a property map as ``{key: value, ...}``.

    An empty map renders as ``{}``; ``None`` renders as an empty string so a
    bare ``CREATE (n )`` can be produced.
    """
    if properties is None:
        return ""
    validated = validate_properties(properties)
    body = ", ".join(f"{property_name(key)}: {render_literal(value)}" for key, value in validated.items())
    return "{" + body + "}"


__all__ = [
    "PropertyValue",
    "PropertyMap",
    "validate_value",
    "validate_properties",
    "property_name",
    "escape_string",
    "render_literal",
    "cypher_literal",
    "cypher_prop_list",
]
