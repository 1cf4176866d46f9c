"""Shredders that turn slices into signed shreds and back.

- :class:`RegularShredder` augments data shreds with coding shreds.
- :class:`CodingOnlyShredder` only outputs coding shreds.
- :class:`AontShredder` uses the RAONT-RS all-or-nothing construction.
- :class:`PetsShredder` uses the PETS all-or-nothing construction.
"""

from __future__ import annotations

import abc
import hashlib
import secrets
from collections.abc import Sequence
from typing import ClassVar

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .erasure import ErasureError, decode, encode
from .shred import (
    DATA_SHREDS,
    MAX_DATA_PER_SLICE,
    TOTAL_SHREDS,
    DeshredError,
    DeshredReason,
    MerkleTree,
    Shred,
    ShredError,
    ShredPayload,
    Slice,
    build_shreds,
)

_KEY_SIZE = 16
_BLOCK_SIZE = 16

_Payloads = tuple[list[ShredPayload], list[ShredPayload]]


def _ctr_apply(key: bytes, data: bytes) -> bytes:
    """AES-128 in CTR mode with a 64-bit little-endian counter and a zero IV."""
    if not data:
        return b""
    blocks = -(-len(data) // _BLOCK_SIZE)
    counters = b"".join(
        i.to_bytes(8, "little") + bytes(8) for i in range(blocks)
    )
    encryptor = Cipher(algorithms.AES(key), modes.ECB()).encryptor()
    keystream = (encryptor.update(counters) + encryptor.finalize())[: len(data)]
    mixed = int.from_bytes(data, "big") ^ int.from_bytes(keystream, "big")
    return mixed.to_bytes(len(data), "big")


def _encode_raw(
    slot: int,
    slice_index: int,
    is_last_slice: bool,
    data: bytes,
    num_data: int,
    num_coding: int,
) -> _Payloads:
    """Split ``data`` into data payloads and derive Reed-Solomon coding payloads."""
    if len(data) > MAX_DATA_PER_SLICE:
        raise ShredError()
    if not data or len(data) % DATA_SHREDS:
        raise ShredError(
            f"slice data of {len(data)} bytes does not split into {DATA_SHREDS} shreds"
        )
    size = len(data) // DATA_SHREDS
    parts = [data[start : start + size] for start in range(0, len(data), size)]
    coding_parts = encode(num_data, num_coding, parts)

    def payload(index: int, chunk: bytes) -> ShredPayload:
        return ShredPayload(
            slot=slot,
            slice_index=slice_index,
            index_in_slice=index,
            is_last_slice=is_last_slice,
            data=bytes(chunk),
        )

    return (
        [payload(i, part) for i, part in enumerate(parts)],
        [payload(i, part) for i, part in enumerate(coding_parts)],
    )


def _encode_slice(slice: Slice, num_data: int, num_coding: int) -> _Payloads:
    return _encode_raw(
        slice.slot, slice.slice_index, slice.is_last, slice.data, num_data, num_coding
    )


def _reencode(
    any_shred: Shred, data: bytes, num_data: int, num_coding: int
) -> _Payloads:
    """Re-shred restored data with the metadata of ``any_shred``."""
    payload = any_shred.payload
    try:
        return _encode_raw(
            payload.slot,
            payload.slice_index,
            payload.is_last_slice,
            data,
            num_data,
            num_coding,
        )
    except ShredError as err:
        raise DeshredError(DeshredReason.TOO_MUCH_DATA) from err
    except ErasureError as err:
        raise DeshredError(DeshredReason.BAD_ENCODING) from err


def _restore(shreds: Sequence[Shred], num_data: int, num_coding: int) -> bytes:
    """Reconstruct the raw payload of a slice from the given shreds."""
    if len(shreds) < DATA_SHREDS:
        raise DeshredError(DeshredReason.NOT_ENOUGH_SHREDS)
    if len(shreds) > TOTAL_SHREDS:
        raise DeshredError(DeshredReason.TOO_MANY_SHREDS)

    known = [(s.payload.index_in_slice, s.payload.data) for s in shreds if s.is_data()]
    coding = [
        (s.payload.index_in_slice, s.payload.data) for s in shreds if s.is_coding()
    ]
    try:
        restored = decode(num_data, num_coding, known, coding)
    except ErasureError as err:
        raise DeshredError(DeshredReason.BAD_ENCODING) from err

    available = {**restored, **dict(known)}
    payload = bytearray()
    for index in range(DATA_SHREDS):
        part = available.get(index)
        if part is None:
            raise DeshredError(DeshredReason.BAD_ENCODING)
        if len(payload) + len(part) > MAX_DATA_PER_SLICE:
            raise DeshredError(DeshredReason.TOO_MUCH_DATA)
        payload += part
    return bytes(payload)


def _check_root(
    root: bytes, data: Sequence[ShredPayload], coding: Sequence[ShredPayload]
) -> None:
    tree = MerkleTree(p.data for p in [*data, *coding])
    if tree.root() != root:
        raise DeshredError(DeshredReason.INVALID_MERKLE_TREE)


class Shredder(abc.ABC):
    """Turns a slice into :data:`TOTAL_SHREDS` shreds and back."""

    MAX_DATA_SIZE: ClassVar[int] = MAX_DATA_PER_SLICE
    """Maximum number of payload bytes that fit into a slice."""

    @abc.abstractmethod
    def shred(self, slice: Slice, signing_key: Ed25519PrivateKey) -> list[Shred]:
        """Split ``slice`` into signed shreds.

        Raises :class:`ShredError` if the slice holds more than
        :attr:`MAX_DATA_SIZE` bytes.
        """

    @abc.abstractmethod
    def deshred(self, shreds: Sequence[Shred]) -> Slice:
        """Put ``shreds`` back together into a slice.

        Raises :class:`DeshredError`, with reason ``INVALID_MERKLE_TREE`` if the
        reconstructed shreds do not form the Merkle tree the shreds claim.
        """


class RegularShredder(Shredder):
    """Outputs :data:`DATA_SHREDS` data shreds plus the rest as coding shreds."""

    _NUM_CODING = TOTAL_SHREDS - DATA_SHREDS

    def shred(self, slice: Slice, signing_key: Ed25519PrivateKey) -> list[Shred]:
        data, coding = _encode_slice(slice, DATA_SHREDS, self._NUM_CODING)
        return build_shreds(data, coding, signing_key)

    def deshred(self, shreds: Sequence[Shred]) -> Slice:
        shreds = list(shreds)
        restored = _restore(shreds, DATA_SHREDS, self._NUM_CODING)
        result = Slice.from_parts(restored, shreds[0])
        data, coding = _reencode(shreds[0], restored, DATA_SHREDS, self._NUM_CODING)
        _check_root(shreds[0].merkle_root, data, coding)
        return result


class CodingOnlyShredder(Shredder):
    """Outputs only :data:`TOTAL_SHREDS` coding shreds."""

    def shred(self, slice: Slice, signing_key: Ed25519PrivateKey) -> list[Shred]:
        _, coding = _encode_slice(slice, DATA_SHREDS, TOTAL_SHREDS)
        return build_shreds([], coding, signing_key)

    def deshred(self, shreds: Sequence[Shred]) -> Slice:
        shreds = list(shreds)
        restored = _restore(shreds, DATA_SHREDS, TOTAL_SHREDS)
        result = Slice.from_parts(restored, shreds[0])
        _, coding = _reencode(shreds[0], restored, DATA_SHREDS, TOTAL_SHREDS)
        _check_root(shreds[0].merkle_root, [], coding)
        return result


class PetsShredder(Shredder):
    """PETS all-or-nothing shredder.

    Outputs ``DATA_SHREDS - 1`` encrypted data shreds and
    ``TOTAL_SHREDS - DATA_SHREDS + 1`` coding shreds; the data shred holding
    the key is withheld.
    """

    MAX_DATA_SIZE: ClassVar[int] = MAX_DATA_PER_SLICE - _KEY_SIZE
    _NUM_CODING = TOTAL_SHREDS - DATA_SHREDS + 1

    def shred(self, slice: Slice, signing_key: Ed25519PrivateKey) -> list[Shred]:
        if len(slice.data) > self.MAX_DATA_SIZE:
            raise ShredError()
        key = secrets.token_bytes(_KEY_SIZE)
        buffer = _ctr_apply(key, slice.data) + key
        data, coding = _encode_raw(
            slice.slot,
            slice.slice_index,
            slice.is_last,
            buffer,
            DATA_SHREDS,
            self._NUM_CODING,
        )
        return build_shreds(data[:-1], coding, signing_key)

    def deshred(self, shreds: Sequence[Shred]) -> Slice:
        shreds = list(shreds)
        buffer = _restore(shreds, DATA_SHREDS, self._NUM_CODING)
        if len(buffer) < _KEY_SIZE:
            raise DeshredError(DeshredReason.BAD_ENCODING)
        data, coding = _reencode(shreds[0], buffer, DATA_SHREDS, self._NUM_CODING)
        _check_root(shreds[0].merkle_root, data[:-1], coding)
        ciphertext, key = buffer[:-_KEY_SIZE], buffer[-_KEY_SIZE:]
        return Slice.from_parts(_ctr_apply(key, ciphertext), shreds[0])


class AontShredder(Shredder):
    """RAONT-RS all-or-nothing shredder.

    Outputs :data:`DATA_SHREDS` encrypted data shreds and
    ``TOTAL_SHREDS - DATA_SHREDS`` coding shreds.
    """

    MAX_DATA_SIZE: ClassVar[int] = MAX_DATA_PER_SLICE - _KEY_SIZE
    _NUM_CODING = TOTAL_SHREDS - DATA_SHREDS

    def shred(self, slice: Slice, signing_key: Ed25519PrivateKey) -> list[Shred]:
        if len(slice.data) > self.MAX_DATA_SIZE:
            raise ShredError()
        key = secrets.token_bytes(_KEY_SIZE)
        ciphertext = _ctr_apply(key, slice.data)
        digest = hashlib.sha256(ciphertext).digest()
        masked_key = bytes(h ^ k for h, k in zip(digest, key))
        data, coding = _encode_raw(
            slice.slot,
            slice.slice_index,
            slice.is_last,
            ciphertext + masked_key,
            DATA_SHREDS,
            self._NUM_CODING,
        )
        return build_shreds(data, coding, signing_key)

    def deshred(self, shreds: Sequence[Shred]) -> Slice:
        shreds = list(shreds)
        buffer = _restore(shreds, DATA_SHREDS, self._NUM_CODING)
        if len(buffer) < _KEY_SIZE:
            raise DeshredError(DeshredReason.BAD_ENCODING)
        data, coding = _reencode(shreds[0], buffer, DATA_SHREDS, self._NUM_CODING)
        _check_root(shreds[0].merkle_root, data, coding)
        ciphertext, masked_key = buffer[:-_KEY_SIZE], buffer[-_KEY_SIZE:]
        digest = hashlib.sha256(ciphertext).digest()
        key = bytes(h ^ m for h, m in zip(digest, masked_key))
        return Slice.from_parts(_ctr_apply(key, ciphertext), shreds[0])