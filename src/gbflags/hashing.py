"""Deterministic bucketing hash (GrowthBook FNV-1a contract)."""

from __future__ import annotations

from collections.abc import Callable

HashFunction = Callable[[str, str, int], float | None]

_FNV32_OFFSET_BASIS = 0x811C9DC5
_FNV32_PRIME = 0x01000193
_UINT32_MASK = 0xFFFFFFFF


def fnv1a32(value: str) -> int:
    """32-bit FNV-1a over the code points of ``value``."""
    h = _FNV32_OFFSET_BASIS
    for ch in value:
        h ^= ord(ch)
        h = (h * _FNV32_PRIME) & _UINT32_MASK
    return h


def gbhash(seed: str, value: str, version: int) -> float | None:
    """Map ``(seed, value)`` to a float in [0, 1).

    Version 1 buckets to three decimals, version 2 to four with a double hash
    that removes the bias of v1 for short seeds. Unknown versions yield None.
    """
    if version == 2:
        n = fnv1a32(str(fnv1a32(seed + value)))
        return (n % 10000) / 10000
    if version == 1:
        n = fnv1a32(value + seed)
        return (n % 1000) / 1000
    return None
