"""Shreds, slices and the Merkle tree that ties the shreds of a slice together."""

from __future__ import annotations

import enum
import hashlib
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

DATA_SHREDS = 32
"""Number of data shreds the payload of a slice is split into."""
TOTAL_SHREDS = 64
"""Total number of shreds a shredder outputs for a slice."""
MAX_DATA_PER_SHRED = 1024
"""Maximum number of payload bytes a single shred can hold."""
MAX_DATA_PER_SLICE = DATA_SHREDS * MAX_DATA_PER_SHRED
"""Maximum number of payload bytes an entire slice can hold."""

HASH_SIZE = 32

_LEAF_PREFIX = b"\x00"
_NODE_PREFIX = b"\x01"


class ShredError(ValueError):
    """Raised when a slice cannot be shredded."""

    def __init__(self, message: str = "too much data to fit into slice") -> None:
        super().__init__(message)


class DeshredReason(enum.Enum):
    """Why shreds could not be put back together."""

    BAD_ENCODING = "could not deshred malformed input"
    TOO_MUCH_DATA = "too much data to fit into slice"
    NOT_ENOUGH_SHREDS = "not enough shreds to deshred"
    TOO_MANY_SHREDS = "more shreds than expected"
    INVALID_MERKLE_TREE = "shreds are part of invalid Merkle tree"


class DeshredError(ValueError):
    """Raised when shreds cannot be turned back into a slice."""

    def __init__(self, reason: DeshredReason) -> None:
        super().__init__(reason.value)
        self.reason = reason


def _leaf_hash(data: bytes) -> bytes:
    return hashlib.sha256(_LEAF_PREFIX + data).digest()


def _node_hash(left: bytes, right: bytes) -> bytes:
    return hashlib.sha256(_NODE_PREFIX + left + right).digest()


class MerkleTree:
    """Binary SHA-256 Merkle tree over byte-string leaves."""

    def __init__(self, leaves: Iterable[bytes]) -> None:
        level = [_leaf_hash(bytes(leaf)) for leaf in leaves]
        if not level:
            raise ValueError("a Merkle tree needs at least one leaf")
        self._levels: list[list[bytes]] = [level]
        while len(level) > 1:
            padded = level + [level[-1]] if len(level) % 2 else level
            level = [_node_hash(a, b) for a, b in zip(padded[0::2], padded[1::2])]
            self._levels.append(level)

    def __len__(self) -> int:
        return len(self._levels[0])

    def root(self) -> bytes:
        """The root hash of the tree."""
        return self._levels[-1][0]

    def create_proof(self, index: int) -> list[bytes]:
        """Sibling hashes from leaf ``index`` up to the root."""
        if not 0 <= index < len(self):
            raise IndexError(f"leaf index {index} out of range")
        proof = []
        for level in self._levels[:-1]:
            sibling = index ^ 1
            proof.append(level[sibling] if sibling < len(level) else level[index])
            index //= 2
        return proof

    @classmethod
    def check_proof(
        cls, data: bytes, index: int, root: bytes, proof: Sequence[bytes]
    ) -> bool:
        """Whether ``data`` is the leaf at ``index`` of the tree with ``root``."""
        if index < 0:
            return False
        current = _leaf_hash(bytes(data))
        for sibling in proof:
            if index & 1:
                current = _node_hash(sibling, current)
            else:
                current = _node_hash(current, sibling)
            index >>= 1
        return index == 0 and current == root


class ShredKind(enum.Enum):
    """Whether a shred carries original data or erasure-coding data."""

    DATA = "data"
    CODING = "coding"


@dataclass(frozen=True)
class ShredPayload:
    """Base payload of a shred, regardless of its kind."""

    slot: int
    slice_index: int
    index_in_slice: int
    is_last_slice: bool
    data: bytes

    def index_in_slot(self) -> int:
        """Index of this shred within the entire slot."""
        return self.slice_index * DATA_SHREDS + self.index_in_slice


@dataclass(frozen=True)
class Shred:
    """Smallest unit of a block, sized to fit into one packet."""

    kind: ShredKind
    payload: ShredPayload
    merkle_root: bytes
    merkle_root_sig: bytes
    merkle_path: tuple[bytes, ...]

    def is_data(self) -> bool:
        return self.kind is ShredKind.DATA

    def is_coding(self) -> bool:
        return self.kind is ShredKind.CODING

    def verify(
        self, public_key: Ed25519PublicKey, cached_merkle_root: bytes | None = None
    ) -> bool:
        """Check the Merkle proof and, unless the root is cached, its signature."""
        index = self.payload.index_in_slice
        if self.is_coding():
            index += DATA_SHREDS
        if not MerkleTree.check_proof(
            self.payload.data, index, self.merkle_root, self.merkle_path
        ):
            return False
        if cached_merkle_root is not None and cached_merkle_root == self.merkle_root:
            return True
        try:
            public_key.verify(self.merkle_root_sig, self.merkle_root)
        except InvalidSignature:
            return False
        return True


@dataclass
class Slice:
    """A batch of block data, the unit between block and shred."""

    slot: int
    slice_index: int
    is_last: bool
    merkle_root: bytes | None
    data: bytes

    @classmethod
    def from_parts(cls, data: bytes, any_shred: Shred) -> Slice:
        """Build a slice from payload bytes and metadata taken from a shred."""
        payload = any_shred.payload
        return cls(
            slot=payload.slot,
            slice_index=payload.slice_index,
            is_last=payload.is_last_slice,
            merkle_root=any_shred.merkle_root,
            data=bytes(data),
        )


def generate_signing_key() -> Ed25519PrivateKey:
    """A fresh random key for signing Merkle roots."""
    return Ed25519PrivateKey.generate()


def build_shreds(
    data_payloads: Sequence[ShredPayload],
    coding_payloads: Sequence[ShredPayload],
    signing_key: Ed25519PrivateKey,
) -> list[Shred]:
    """Build the Merkle tree, sign its root and wrap every payload in a shred.

    Data payloads come first, then coding payloads, both in tree and output order.
    """
    tree = MerkleTree(p.data for p in [*data_payloads, *coding_payloads])
    root = tree.root()
    signature = signing_key.sign(root)
    labelled = [
        *((ShredKind.DATA, p) for p in data_payloads),
        *((ShredKind.CODING, p) for p in coding_payloads),
    ]
    return [
        Shred(
            kind=kind,
            payload=payload,
            merkle_root=root,
            merkle_root_sig=signature,
            merkle_path=tuple(tree.create_proof(position)),
        )
        for position, (kind, payload) in enumerate(labelled)
    ]