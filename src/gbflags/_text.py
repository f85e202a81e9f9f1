"""JSON-style stringification shared by comparisons, versions and hashing."""

from __future__ import annotations

from typing import Any


def json_text(value: Any) -> str:
    """Render a scalar the way a JSON producer would.

    ``True`` becomes ``"true"`` and integral floats drop their ``.0``.
    None renders as an empty string.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
