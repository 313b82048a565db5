"""Unit tests for claim and governance guards (pure functions)."""

import pytest

from claimportal.application.use_cases.claim_validators import (
    ensure_admin,
    ensure_amount_positive,
    ensure_nonzero_root,
    ensure_not_paused,
    ensure_proof_length,
    ensure_supported_hash_alg,
    ensure_timelock_elapsed,
    ensure_valid_proof,
    ensure_within_claim_period,
    ensure_within_max_amount,
)
from claimportal.crypto.merkle import MAX_PROOF_LENGTH, build_merkle_tree
from claimportal.domain.entities import PendingRootUpdate
from claimportal.domain.errors import (
    AmountZero,
    ClaimPeriodEnded,
    InvalidProof,
    InvalidRoot,
    MaxAmountExceeded,
    NoPendingRoot,
    PortalError,
    PortalPaused,
    ProofTooLong,
    TimelockNotReady,
    Unauthorized,
    UnsupportedHashAlgorithm,
)


class TestClaimGuards:
    """Test the per-claim guards."""

    def test_not_paused(self) -> None:
        ensure_not_paused(False)
        with pytest.raises(PortalPaused):
            ensure_not_paused(True)

    def test_proof_length_at_limit_is_accepted(self) -> None:
        """Exactly MAX_PROOF_LENGTH siblings is allowed."""
        ensure_proof_length([0] * MAX_PROOF_LENGTH)

    def test_proof_length_over_limit_raises(self) -> None:
        with pytest.raises(ProofTooLong, match="33"):
            ensure_proof_length([0] * (MAX_PROOF_LENGTH + 1))

    def test_deadline_is_inclusive(self) -> None:
        """now == deadline is still claimable; one second later is not."""
        ensure_within_claim_period(now=1000, claim_deadline=1000)
        with pytest.raises(ClaimPeriodEnded):
            ensure_within_claim_period(now=1001, claim_deadline=1000)

    def test_amount_zero_raises(self) -> None:
        ensure_amount_positive(1)
        with pytest.raises(AmountZero):
            ensure_amount_positive(0)

    def test_max_amount_is_inclusive(self) -> None:
        ensure_within_max_amount(500, 500)
        with pytest.raises(MaxAmountExceeded):
            ensure_within_max_amount(501, 500)

    def test_valid_proof(self) -> None:
        tree = build_merkle_tree([(0x10, 1000), (0x20, 2000)])
        ensure_valid_proof(tree.root, 0x10, 1000, tree.proof_for(0x10))
        with pytest.raises(InvalidProof):
            ensure_valid_proof(tree.root, 0x10, 999, tree.proof_for(0x10))


class TestGovernanceGuards:
    """Test root, admin and timelock guards."""

    def test_zero_root_raises(self) -> None:
        ensure_nonzero_root(1)
        with pytest.raises(InvalidRoot):
            ensure_nonzero_root(0)

    def test_supported_hash_algs(self) -> None:
        ensure_supported_hash_alg("sha256")
        ensure_supported_hash_alg("poseidon")
        with pytest.raises(UnsupportedHashAlgorithm):
            ensure_supported_hash_alg("keccak256")

    def test_admin_check(self) -> None:
        ensure_admin(caller=7, admin_account=7)
        with pytest.raises(Unauthorized):
            ensure_admin(caller=8, admin_account=7)

    def test_no_pending_root(self) -> None:
        with pytest.raises(NoPendingRoot):
            ensure_timelock_elapsed(None, now=0)

    def test_timelock_boundary(self) -> None:
        pending = PendingRootUpdate(new_root=5, proposed_at=100, execute_after=200)
        with pytest.raises(TimelockNotReady):
            ensure_timelock_elapsed(pending, now=199)
        assert ensure_timelock_elapsed(pending, now=200) is pending


def test_guard_errors_carry_stable_codes() -> None:
    """Every guard error is a PortalError (and ValueError) with a code."""
    for error_type in (
        AmountZero,
        ClaimPeriodEnded,
        InvalidProof,
        MaxAmountExceeded,
        PortalPaused,
        ProofTooLong,
    ):
        error = error_type()
        assert isinstance(error, PortalError)
        assert isinstance(error, ValueError)
        assert error.code.isupper()
        assert error.message
