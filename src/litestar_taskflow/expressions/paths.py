"""Path resolution against the JSON-like workflow data context.

An expression is either a literal, a ``$``-prefixed reference such as
``$document.pages.0.text``, or a template string such as ``"Hello ${user.name}"``.
Resolution is pure: a missing segment yields :data:`UNDEFINED`, never an error.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping, MutableMapping, Sequence
from datetime import date, datetime
from typing import Any

from litestar_taskflow.core.types import UNDEFINED

__all__ = [
    "REFERENCE_SIGIL",
    "assign",
    "is_reference",
    "is_template",
    "lookup",
    "remove",
    "render_template",
    "resolve",
    "to_text",
]

REFERENCE_SIGIL = "$"
_TEMPLATE_PATTERN = re.compile(r"\$\{([^}]+)\}")


def is_template(expr: Any) -> bool:
    return isinstance(expr, str) and _TEMPLATE_PATTERN.search(expr) is not None


def is_reference(expr: Any) -> bool:
    return isinstance(expr, str) and expr.startswith(REFERENCE_SIGIL) and not expr.startswith("${")


def _split(path: str) -> list[str]:
    return [part for part in path.split(".") if part != ""]


def lookup(path: str, context: Any) -> Any:
    """Walk a dotted path through nested mappings and sequences.

    Args:
        path: Dot-separated path without the reference sigil. An empty path
            returns the context itself.
        context: The value to walk.

    Returns:
        The value at the path, or UNDEFINED when any segment is missing or hits
        a scalar.
    """
    value = context
    for part in _split(path):
        if isinstance(value, Mapping):
            if part not in value:
                return UNDEFINED
            value = value[part]
        elif isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
            try:
                value = value[int(part)]
            except (ValueError, IndexError):
                return UNDEFINED
        else:
            return UNDEFINED
    return value


def resolve(expr: Any, context: Any) -> Any:
    """Resolve a literal-or-reference expression.

    Args:
        expr: A literal, a ``$path`` reference, or a ``${path}`` template.
        context: The value references are resolved against.

    Returns:
        The literal itself, the referenced value (possibly UNDEFINED), or the
        rendered template.

    Example:
        >>> resolve("$user.name", {"user": {"name": "Ada"}})
        'Ada'
        >>> resolve("Hi ${user.name}", {"user": {"name": "Ada"}})
        'Hi Ada'
        >>> resolve(42, {})
        42
    """
    if not isinstance(expr, str):
        return expr
    if is_reference(expr):
        return lookup(expr[len(REFERENCE_SIGIL) :], context)
    if is_template(expr):
        return render_template(expr, context)
    return expr


def render_template(template: str, context: Any) -> str:
    """Interpolate every ``${path}`` placeholder of a template.

    Placeholders that do not resolve are left verbatim.
    """

    def _replace(match: re.Match[str]) -> str:
        value = lookup(match.group(1).strip(), context)
        return match.group(0) if value is UNDEFINED else to_text(value)

    return _TEMPLATE_PATTERN.sub(_replace, template)


def to_text(value: Any) -> str:
    """Coerce a context value to text, the way string operators and templates see it."""
    if isinstance(value, str):
        return value
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, default=str)
    return str(value)


def assign(path: str, value: Any, context: MutableMapping[str, Any]) -> None:
    """Write a value at a dotted path, creating intermediate dictionaries.

    Intermediates that exist but are not mappings are replaced.

    Args:
        path: Dot-separated target path.
        value: The value to write.
        context: The mapping to write into.
    """
    parts = _split(path)
    if not parts:
        msg = "Cannot assign to an empty path"
        raise ValueError(msg)
    current = context
    for part in parts[:-1]:
        child = current.get(part)
        if not isinstance(child, MutableMapping):
            child = {}
            current[part] = child
        current = child
    current[parts[-1]] = value


def remove(path: str, context: MutableMapping[str, Any]) -> None:
    """Delete the value at a dotted path if it exists."""
    parts = _split(path)
    if not parts:
        return
    parent = lookup(".".join(parts[:-1]), context)
    if isinstance(parent, MutableMapping):
        parent.pop(parts[-1], None)
