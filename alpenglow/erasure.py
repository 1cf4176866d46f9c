"""Systematic Reed-Solomon erasure coding over GF(2^8).

Original shards are kept as they are; coding shards are derived from a
Cauchy matrix, so any ``num_data`` shards out of the ``num_data + num_coding``
suffice to restore every original shard.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

MAX_SHARDS = 256
"""Upper bound on the total number of shards (original plus coding)."""

_POLYNOMIAL = 0x11D


class ErasureError(ValueError):
    """Raised when shards cannot be encoded or decoded."""


def _build_tables() -> tuple[list[int], list[int]]:
    exp = [0] * 512
    log = [0] * 256
    value = 1
    for power in range(255):
        exp[power] = value
        log[value] = power
        value <<= 1
        if value & 0x100:
            value ^= _POLYNOMIAL
    exp[255:] = exp[: 512 - 255]
    return exp, log


_EXP, _LOG = _build_tables()


def _mul(a: int, b: int) -> int:
    if a == 0 or b == 0:
        return 0
    return _EXP[_LOG[a] + _LOG[b]]


def _inv(a: int) -> int:
    if a == 0:
        raise ErasureError("zero has no inverse in GF(256)")
    return _EXP[255 - _LOG[a]]


_MUL_TABLES = [bytes(_mul(c, x) for x in range(256)) for c in range(256)]


def _check_counts(num_data: int, num_coding: int) -> None:
    if num_data < 1:
        raise ErasureError("at least one original shard is required")
    if num_coding < 1:
        raise ErasureError("at least one coding shard is required")
    if num_data + num_coding > MAX_SHARDS:
        raise ErasureError(f"at most {MAX_SHARDS} shards are supported")


def _shard_length(shards: Iterable[bytes]) -> int:
    lengths = {len(shard) for shard in shards}
    if len(lengths) != 1:
        raise ErasureError("all shards must have the same length")
    (length,) = lengths
    if length == 0:
        raise ErasureError("shards must not be empty")
    return length


def _coefficient(num_data: int, coding_index: int, data_index: int) -> int:
    return _inv((num_data + coding_index) ^ data_index)


def _combine(coefficients: Iterable[int], shards: Iterable[bytes]) -> int:
    """Linear combination of shards, as an integer of the shard's bytes."""
    acc = 0
    for coefficient, shard in zip(coefficients, shards):
        if coefficient:
            acc ^= int.from_bytes(shard.translate(_MUL_TABLES[coefficient]), "big")
    return acc


def _invert(matrix: Sequence[Sequence[int]]) -> list[list[int]]:
    size = len(matrix)
    rows = [
        list(row) + [int(i == j) for j in range(size)] for i, row in enumerate(matrix)
    ]
    for col in range(size):
        pivot = next((r for r in range(col, size) if rows[r][col]), None)
        if pivot is None:
            raise ErasureError("decoding matrix is singular")
        rows[col], rows[pivot] = rows[pivot], rows[col]
        scale = _inv(rows[col][col])
        rows[col] = [_mul(v, scale) for v in rows[col]]
        for r, row in enumerate(rows):
            factor = row[col]
            if r != col and factor:
                rows[r] = [v ^ _mul(factor, p) for v, p in zip(row, rows[col])]
    return [row[size:] for row in rows]


def encode(num_data: int, num_coding: int, parts: Iterable[bytes]) -> list[bytes]:
    """Return ``num_coding`` coding shards for the ``num_data`` original ``parts``."""
    _check_counts(num_data, num_coding)
    originals = [bytes(part) for part in parts]
    if len(originals) != num_data:
        raise ErasureError(f"expected {num_data} original shards, got {len(originals)}")
    length = _shard_length(originals)
    return [
        _combine(
            (_coefficient(num_data, i, j) for j in range(num_data)), originals
        ).to_bytes(length, "big")
        for i in range(num_coding)
    ]


def _collect(
    shards: Iterable[tuple[int, bytes]], limit: int, kind: str
) -> dict[int, bytes]:
    collected: dict[int, bytes] = {}
    for index, shard in shards:
        if not 0 <= index < limit:
            raise ErasureError(f"{kind} shard index {index} out of range")
        if index in collected:
            raise ErasureError(f"duplicate {kind} shard index {index}")
        collected[index] = bytes(shard)
    return collected


def decode(
    num_data: int,
    num_coding: int,
    data: Iterable[tuple[int, bytes]],
    coding: Iterable[tuple[int, bytes]],
) -> dict[int, bytes]:
    """Restore the missing original shards.

    ``data`` and ``coding`` yield ``(index, shard)`` pairs of the shards at hand.
    Returns a mapping from each missing original index to its restored shard.
    """
    _check_counts(num_data, num_coding)
    known = _collect(data, num_data, "original")
    parity = _collect(coding, num_coding, "coding")
    if len(known) + len(parity) < num_data:
        raise ErasureError("not enough shards to decode")
    missing = [j for j in range(num_data) if j not in known]
    if not missing:
        return {}
    length = _shard_length([*known.values(), *parity.values()])

    chosen = sorted(parity)[: len(missing)]
    known_indices = sorted(known)
    known_shards = [known[j] for j in known_indices]
    residuals = [
        (
            int.from_bytes(parity[i], "big")
            ^ _combine(
                (_coefficient(num_data, i, j) for j in known_indices), known_shards
            )
        ).to_bytes(length, "big")
        for i in chosen
    ]
    inverse = _invert(
        [[_coefficient(num_data, i, j) for j in missing] for i in chosen]
    )
    return {
        j: _combine(row, residuals).to_bytes(length, "big")
        for j, row in zip(missing, inverse)
    }