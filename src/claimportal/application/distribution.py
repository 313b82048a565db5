"""Off-line distribution building: snapshot in, root and proofs out."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence, Union

from ..crypto.field import to_field
from ..crypto.merkle import SHA256, build_merkle_tree, verify_proof
from .dtos import DistributionEntryDTO, MerkleDistributionDTO
from .use_cases.claim_validators import ensure_supported_hash_alg

PathLike = Union[str, Path]


def _parse_snapshot_entry(raw: Any, position: int) -> tuple[int, int]:
    if not isinstance(raw, dict):
        raise ValueError(f"Snapshot entry {position} must be an object")
    account_raw = raw.get("account", raw.get("address"))
    if account_raw is None:
        raise ValueError(f"Snapshot entry {position} is missing 'account'")
    amount_raw = raw.get("amount")
    if isinstance(amount_raw, str) and amount_raw.strip().isdigit():
        amount = int(amount_raw.strip())
    elif (
        isinstance(amount_raw, int)
        and not isinstance(amount_raw, bool)
        and amount_raw >= 0
    ):
        amount = amount_raw
    else:
        raise ValueError(f"Snapshot entry {position} has an invalid 'amount'")
    return to_field(account_raw), amount


def load_snapshot(path: PathLike) -> list[tuple[int, int]]:
    """Read ``[{"account" | "address": ..., "amount": ...}, ...]`` from a JSON file.

    Amounts may be JSON integers or decimal strings.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError("Snapshot must be a JSON list of entries")
    return [_parse_snapshot_entry(raw, i) for i, raw in enumerate(data)]


def build_distribution(
    entries: Sequence[tuple[int, int]], hash_alg: str = SHA256
) -> MerkleDistributionDTO:
    """Build the tree and emit one proof per account, in input order."""
    ensure_supported_hash_alg(hash_alg)
    for account, amount in entries:
        if amount <= 0:
            raise ValueError(f"Amount for {hex(account)} must be positive")
    tree = build_merkle_tree(entries, hash_alg)
    return MerkleDistributionDTO(
        root=tree.root,
        hash_alg=hash_alg,
        entries=[
            DistributionEntryDTO(
                account=account, amount=amount, proof=tree.proof_for(account)
            )
            for account, amount in entries
        ],
    )


def save_distribution(distribution: MerkleDistributionDTO, path: PathLike) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(distribution.model_dump_json(indent=2))
        f.write("\n")


def load_distribution(path: PathLike) -> MerkleDistributionDTO:
    """
    Raises:
        UnsupportedHashAlgorithm: If the document declares a hash this
            portal cannot recompute.
    """
    with open(path, "r", encoding="utf-8") as f:
        distribution = MerkleDistributionDTO.model_validate_json(f.read())
    ensure_supported_hash_alg(distribution.hash_alg)
    return distribution


def find_invalid_entries(
    distribution: MerkleDistributionDTO, account: Optional[int] = None
) -> list[DistributionEntryDTO]:
    """Entries whose proof does not reproduce the document root.

    Raises:
        ValueError: If ``account`` is given but not in the distribution.
        UnsupportedHashAlgorithm: If the document hash cannot be recomputed.
    """
    ensure_supported_hash_alg(distribution.hash_alg)
    entries: Iterable[DistributionEntryDTO] = distribution.entries
    if account is not None:
        entries = [e for e in distribution.entries if e.account == account]
        if not entries:
            raise ValueError(f"Account {hex(account)} is not in the distribution")
    return [
        e
        for e in entries
        if not verify_proof(
            distribution.root, e.account, e.amount, e.proof, distribution.hash_alg
        )
    ]
