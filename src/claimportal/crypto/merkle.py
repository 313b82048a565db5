"""Claim commitments: leaf hashing, sorted-pair Merkle trees and proofs."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Callable, Final, Iterable, Mapping, Sequence

from poseidon_py.poseidon_hash import poseidon_hash_many

from .field import FIELD_PRIME, felt_to_be32, split_u256, to_field

SHA256: Final[str] = "sha256"
# Starknet Poseidon over the STARK field, same sponge as Cairo poseidon_hash_span
POSEIDON: Final[str] = "poseidon"

# Safety cap on proof length, independent of the real tree height.
MAX_PROOF_LENGTH: Final[int] = 32


def _sha256_many(values: Sequence[int]) -> int:
    data = b"".join(felt_to_be32(v) for v in values)
    digest = hashlib.new(SHA256, data).digest()
    return int.from_bytes(digest, "big") % FIELD_PRIME


def _poseidon_many(values: Sequence[int]) -> int:
    return poseidon_hash_many([to_field(v) for v in values])


_HASHERS: Final[Mapping[str, Callable[[Sequence[int]], int]]] = {
    SHA256: _sha256_many,
    POSEIDON: _poseidon_many,
}

SUPPORTED_HASH_ALGS: Final[frozenset[str]] = frozenset(_HASHERS)


def hash_many(values: Sequence[int], hash_alg: str = SHA256) -> int:
    """Hash a fixed-arity sequence of field-sized integers into a field element.

    ``sha256``: each value is encoded as 32 bytes big-endian and the digest
    is reduced modulo FIELD_PRIME. ``poseidon``: Starknet ``poseidon_hash_many``.
    """
    try:
        hasher = _HASHERS[hash_alg]
    except KeyError:
        raise ValueError(f"Unsupported Merkle hash algorithm: {hash_alg}") from None
    return hasher(values)


def hash_pair(a: int, b: int, hash_alg: str = SHA256) -> int:
    """Combine two nodes in canonical (sorted) order."""
    if a < b:
        return hash_many((a, b), hash_alg)
    return hash_many((b, a), hash_alg)


def compute_leaf(account: int, amount: int, hash_alg: str = SHA256) -> int:
    """Leaf = H(account, amount_low, amount_high)."""
    low, high = split_u256(amount)
    return hash_many((to_field(account), low, high), hash_alg)


def _build_levels(leaves: list[int], hash_alg: str) -> list[list[int]]:
    """
    Build the tree bottom-up from leaf hashes.

    Returns levels where levels[0] is the leaves and levels[-1] holds only
    the root. An unpaired last node at any level is hashed with itself.
    """
    if not leaves:
        raise ValueError("Cannot build Merkle tree with empty leaves")

    levels: list[list[int]] = [leaves]
    current_level = leaves
    while len(current_level) > 1:
        next_level: list[int] = []
        for i in range(0, len(current_level), 2):
            left = current_level[i]
            right = current_level[i + 1] if i + 1 < len(current_level) else left
            next_level.append(hash_pair(left, right, hash_alg))
        levels.append(next_level)
        current_level = next_level
    return levels


def _proof_for_index(levels: list[list[int]], leaf_index: int) -> list[int]:
    """Sibling list (leaf-to-root) for the leaf at ``leaf_index``."""
    siblings: list[int] = []
    current_index = leaf_index
    for level in levels[:-1]:
        sibling_index = current_index ^ 1
        if sibling_index < len(level):
            siblings.append(level[sibling_index])
        else:
            # Unpaired node: its sibling is itself
            siblings.append(level[current_index])
        current_index //= 2
    return siblings


def compute_root_from_proof(
    leaf: int, proof: Iterable[int], hash_alg: str = SHA256
) -> int:
    """Fold a proof onto a leaf with sorted-pair hashing."""
    candidate = leaf
    for sibling in proof:
        candidate = hash_pair(candidate, sibling, hash_alg)
    return candidate


def verify_proof(
    root: int,
    account: int,
    amount: int,
    proof: Sequence[int],
    hash_alg: str = SHA256,
) -> bool:
    """
    Verify that (account, amount) is committed under ``root``.

    Oversized proofs are rejected before any hashing happens.
    """
    if len(proof) > MAX_PROOF_LENGTH:
        return False
    try:
        leaf = compute_leaf(account, amount, hash_alg)
        return compute_root_from_proof(leaf, proof, hash_alg) == root
    except ValueError:
        return False


@dataclass(frozen=True)
class MerkleTree:
    """
    Result of building a claim tree.

    Holds the root and the per-account proofs. The intermediate levels are
    discarded once the proofs are emitted.
    """

    root: int
    leaves: Mapping[int, int]
    proofs: Mapping[int, list[int]]
    hash_alg: str = SHA256

    def proof_for(self, account: int) -> list[int]:
        try:
            return list(self.proofs[account])
        except KeyError:
            raise ValueError(f"Account {hex(account)} is not in the tree") from None


def build_merkle_tree(
    entries: Sequence[tuple[int, int]], hash_alg: str = SHA256
) -> MerkleTree:
    """
    Build a claim tree from (account, amount) entries.

    A single entry yields root == leaf with an empty proof.

    Raises:
        ValueError: on an empty entry list, a duplicated account or an
            unsupported ``hash_alg``.
    """
    if hash_alg not in SUPPORTED_HASH_ALGS:
        raise ValueError(f"Unsupported Merkle hash algorithm: {hash_alg}")
    if not entries:
        raise ValueError("Cannot build Merkle tree with zero entries")

    accounts: list[int] = []
    leaves: list[int] = []
    seen: set[int] = set()
    for account, amount in entries:
        account = to_field(account)
        if account in seen:
            raise ValueError(f"Duplicate account in entries: {hex(account)}")
        seen.add(account)
        accounts.append(account)
        leaves.append(compute_leaf(account, amount, hash_alg))

    levels = _build_levels(leaves, hash_alg)
    proofs = {
        account: _proof_for_index(levels, index)
        for index, account in enumerate(accounts)
    }
    return MerkleTree(
        root=levels[-1][0],
        leaves=dict(zip(accounts, leaves)),
        proofs=proofs,
        hash_alg=hash_alg,
    )
