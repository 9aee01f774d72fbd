"""Rewrite tool parameter schemas into the dialect Vertex accepts.

Function declarations on Vertex are validated against an OpenAPI-style
subset of JSON Schema.  Keywords outside that subset are rejected, and
``type`` must be a single string.  :func:`sanitize_schema` drops the
unsupported keywords and folds ``type`` arrays into ``type`` + ``nullable``.

Stripping happens only where a key is a schema keyword.  The keys of a
``properties`` map are property names, so a parameter literally called
``title`` or ``default`` survives.  Values of ``enum``, ``const`` and
``dependentRequired`` are data and are copied unchanged.
"""

from __future__ import annotations

import copy
from typing import Any

UNSUPPORTED_KEYWORDS = frozenset({
    # numeric bounds
    "minimum",
    "maximum",
    "exclusiveMinimum",
    "exclusiveMaximum",
    "multipleOf",
    # string constraints
    "minLength",
    "maxLength",
    "pattern",
    # structural / annotation
    "additionalProperties",
    "title",
    "default",
    "examples",
    "$schema",
    "$id",
})

# Keywords whose value maps names to sub-schemas
_NAMED_SCHEMA_MAPS = frozenset({
    "properties",
    "patternProperties",
    "$defs",
    "definitions",
    "dependentSchemas",
    "dependencies",
})

# Keywords whose value is data, copied as-is
_LITERAL_KEYWORDS = frozenset({
    "enum",
    "const",
    "dependentRequired",
})


def _fold_type(types: list[Any]) -> tuple[Any, bool]:
    """Return (single type, nullable) for a ``type`` array."""
    nullable = "null" in types
    for t in types:
        if t != "null":
            return t, nullable
    return "null", False


def sanitize_schema(node: Any) -> Any:
    """Return a sanitized copy of *node*; the input is left untouched."""
    if isinstance(node, list):
        return [sanitize_schema(item) for item in node]
    if not isinstance(node, dict):
        return node

    result: dict[str, Any] = {}
    for key, value in node.items():
        if key in UNSUPPORTED_KEYWORDS:
            continue
        if key == "type" and isinstance(value, list):
            folded, nullable = _fold_type(value)
            result["type"] = folded
            if nullable:
                result["nullable"] = True
            continue
        if key in _LITERAL_KEYWORDS:
            result[key] = copy.deepcopy(value)
            continue
        if key in _NAMED_SCHEMA_MAPS and isinstance(value, dict):
            result[key] = {
                name: sanitize_schema(sub) for name, sub in value.items()
            }
            continue
        result[key] = sanitize_schema(value)
    return result
