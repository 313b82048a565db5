"""Data Transfer Objects for the portal application layer."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from ..crypto.field import U256_BOUND
from ..domain.entities import PendingRootUpdate
from ..domain.shared.serializers import FeltSerializersMixin


class SignedRequestDTO(BaseModel):
    """Caller presents its public key and a payload it signed with that key."""

    public_key_der_b64: str
    payload_b64: str
    signature_b64: str


# Claim DTOs
class ClaimPayload(FeltSerializersMixin, BaseModel):
    """Signed claim payload: the amount committed to the caller and its proof.

    Neither bound is enforced here beyond the 256-bit range; the portal's
    guards report zero amounts and oversized proofs with their own errors.
    """

    amount: int = Field(..., ge=0, lt=U256_BOUND)
    proof: list[int] = Field(default_factory=list)


class ClaimResponseDTO(FeltSerializersMixin, BaseModel):
    account: int
    amount: int
    claimed_at: int
    total_claimed: int


class ClaimStatusDTO(FeltSerializersMixin, BaseModel):
    account: int
    is_claimed: bool


class ClaimRecordDTO(FeltSerializersMixin, BaseModel):
    account: int
    amount: int
    claimed_at: int


class ClaimableRequestDTO(FeltSerializersMixin, BaseModel):
    account: int
    amount: int = Field(..., ge=0, lt=U256_BOUND)
    proof: list[int] = Field(default_factory=list)


class ClaimableResponseDTO(BaseModel):
    claimable: bool


class ClaimEventDTO(FeltSerializersMixin, BaseModel):
    account: int
    amount: int
    timestamp: int


# Portal state DTOs
class MerkleRootDTO(FeltSerializersMixin, BaseModel):
    merkle_root: int


class TotalClaimedDTO(FeltSerializersMixin, BaseModel):
    total_claimed: int


class PendingRootDTO(FeltSerializersMixin, BaseModel):
    new_root: int
    proposed_at: int
    execute_after: int


def to_pending_root_dto(pending: Optional[PendingRootUpdate]) -> Optional[PendingRootDTO]:
    if pending is None:
        return None
    return PendingRootDTO(
        new_root=pending.new_root,
        proposed_at=pending.proposed_at,
        execute_after=pending.execute_after,
    )


class PortalStatusDTO(FeltSerializersMixin, BaseModel):
    """Everything a client needs to decide whether a claim can go through."""

    merkle_root: int
    total_claimed: int
    paused: bool
    claim_deadline: int
    max_claim_amount: int
    root_timelock_delay: int
    admin_account: int
    hash_alg: str
    pending: Optional[PendingRootDTO] = None


# Governance DTOs
AdminAction = Literal["propose_root", "execute_root", "pause", "unpause"]


class AdminActionPayload(FeltSerializersMixin, BaseModel):
    """Admin-signed payload. ``issued_at`` bounds how long a signature is usable."""

    action: AdminAction
    issued_at: int
    new_root: Optional[int] = None
    nonce: Optional[str] = None


class GovernanceResponseDTO(FeltSerializersMixin, BaseModel):
    action: AdminAction
    merkle_root: int
    paused: bool
    pending: Optional[PendingRootDTO] = None


class GovernanceEventDTO(FeltSerializersMixin, BaseModel):
    kind: str
    root: Optional[int] = None
    execute_after: Optional[int] = None
    timestamp: int


# Token DTOs
class MintRequestDTO(FeltSerializersMixin, BaseModel):
    account: int
    amount: int = Field(..., gt=0, lt=U256_BOUND)


class MintResponseDTO(FeltSerializersMixin, BaseModel):
    account: int
    balance: int


# Off-line distribution DTOs
class DistributionEntryDTO(FeltSerializersMixin, BaseModel):
    account: int
    amount: int = Field(..., gt=0, lt=U256_BOUND)
    proof: list[int] = Field(default_factory=list)


class MerkleDistributionDTO(FeltSerializersMixin, BaseModel):
    """Builder output: the root to install plus one proof per account."""

    root: int
    hash_alg: str
    entries: list[DistributionEntryDTO]
