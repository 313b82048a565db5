"""Pure guard functions for claims and root governance.

Each guard raises the portal error that names the violated rule. They hold
no state and touch no repository, so the services decide the order in
which they run.
"""

from __future__ import annotations

from typing import Sequence

from ...crypto.merkle import (
    MAX_PROOF_LENGTH,
    SHA256,
    SUPPORTED_HASH_ALGS,
    verify_proof,
)
from ...domain.entities import PendingRootUpdate
from ...domain.errors import (
    AmountZero,
    ClaimPeriodEnded,
    InvalidProof,
    InvalidRoot,
    MaxAmountExceeded,
    NoPendingRoot,
    PortalPaused,
    ProofTooLong,
    TimelockNotReady,
    Unauthorized,
    UnsupportedHashAlgorithm,
)


def ensure_not_paused(paused: bool) -> None:
    if paused:
        raise PortalPaused()


def ensure_proof_length(proof: Sequence[int]) -> None:
    """
    Raises:
        ProofTooLong: If the proof has more than MAX_PROOF_LENGTH siblings.
    """
    if len(proof) > MAX_PROOF_LENGTH:
        raise ProofTooLong(
            f"Merkle proof has {len(proof)} elements, maximum is {MAX_PROOF_LENGTH}"
        )


def ensure_within_claim_period(now: int, claim_deadline: int) -> None:
    """The deadline itself is still claimable."""
    if now > claim_deadline:
        raise ClaimPeriodEnded()


def ensure_amount_positive(amount: int) -> None:
    if amount <= 0:
        raise AmountZero()


def ensure_within_max_amount(amount: int, max_claim_amount: int) -> None:
    if amount > max_claim_amount:
        raise MaxAmountExceeded(
            f"Claim amount {amount} exceeds the per-claim maximum {max_claim_amount}"
        )


def ensure_valid_proof(
    root: int,
    account: int,
    amount: int,
    proof: Sequence[int],
    hash_alg: str = SHA256,
) -> None:
    if not verify_proof(root, account, amount, proof, hash_alg):
        raise InvalidProof()


def ensure_nonzero_root(root: int) -> None:
    if root == 0:
        raise InvalidRoot()


def ensure_supported_hash_alg(hash_alg: str) -> None:
    if hash_alg not in SUPPORTED_HASH_ALGS:
        raise UnsupportedHashAlgorithm(f"Unsupported Merkle hash algorithm: {hash_alg}")


def ensure_admin(caller: int, admin_account: int) -> None:
    if caller != admin_account:
        raise Unauthorized()


def ensure_timelock_elapsed(pending: PendingRootUpdate | None, now: int) -> PendingRootUpdate:
    """Return the pending update once it may be executed.

    Raises:
        NoPendingRoot: If nothing has been proposed.
        TimelockNotReady: If ``now`` is before ``execute_after``.
    """
    if pending is None:
        raise NoPendingRoot()
    if not pending.is_ready(now):
        raise TimelockNotReady(
            f"Root update executable at {pending.execute_after}, now is {now}"
        )
    return pending
