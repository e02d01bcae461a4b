"""
Deterministic string-seeded random values.

Every "random" quantity in the prediction pipeline is derived from a string
seed so that the same region, day and index always produce the same numbers.
The hash uses 32-bit signed wraparound so values match bit-for-bit across
implementations.

Notes
-----
    hash = int32(hash * 31 + code_unit)   for each UTF-16 code unit
    value = abs(hash % 1000) / 1000       (% truncates toward zero)
"""

from __future__ import annotations

_INT32_MASK = 0xFFFFFFFF
_INT32_SIGN = 0x80000000


def _to_int32(value: int) -> int:
    value &= _INT32_MASK
    if value & _INT32_SIGN:
        value -= 1 << 32
    return value


def _code_units(seed: str) -> list[int]:
    """Return the UTF-16 code units of ``seed``."""
    raw = seed.encode("utf-16-le", errors="surrogatepass")
    return [raw[i] | (raw[i + 1] << 8) for i in range(0, len(raw), 2)]


def string_hash(seed: str) -> int:
    """
    Polynomial hash of ``seed`` with 32-bit signed overflow.

    Parameters
    ----------
    seed : str
        Arbitrary seed string.

    Returns
    -------
    int
        Hash in the int32 range.
    """
    h = 0
    for unit in _code_units(seed):
        h = _to_int32(h * 31 + unit)
    return h


def seeded_random(seed: str) -> float:
    """
    Map a string seed to a reproducible value in [0, 1).

    Only 1000 distinct values are produced (three decimal places).

    Parameters
    ----------
    seed : str
        Seed string, e.g. ``"pred_CA_2024-01-01_0"``.

    Returns
    -------
    float
        Pseudo-random value in [0, 1).
    """
    # abs() of a truncated remainder equals abs(h) % 1000
    return (abs(string_hash(seed)) % 1000) / 1000


def seeded_uniform(seed: str, low: float, high: float) -> float:
    """Seeded value scaled to [low, high)."""
    return low + seeded_random(seed) * (high - low)
