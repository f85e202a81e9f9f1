"""Version string normalization for the ``$v*`` operators."""

from __future__ import annotations

import re
from typing import Any

from ._text import json_text

_STRIP_RE = re.compile(r"(^v|\+.*$)")
_SPLIT_RE = re.compile(r"[-.]")
_NUMERIC_RE = re.compile(r"^\d+$")


def padded_version_string(input: Any) -> str:
    """Return a form of ``input`` whose lexical order matches version order.

    ``"1.9.0"`` becomes ``"    1-    9-    0-~"``: numeric parts are
    right-aligned to width 5 and a release gets a ``~`` tag so it sorts after
    any pre-release of the same triple.
    """
    if isinstance(input, bool):
        input = None
    elif isinstance(input, (int, float)):
        input = json_text(input)

    if not isinstance(input, str) or input == "":
        input = "0"

    input = _STRIP_RE.sub("", input)
    parts = _SPLIT_RE.split(input)

    if len(parts) == 3:
        parts.append("~")

    return "-".join(p.rjust(5) if _NUMERIC_RE.match(p) else p for p in parts)
