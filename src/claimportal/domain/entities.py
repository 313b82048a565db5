"""Portal domain entities: config, claim records, pending root updates, events."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_serializer

from ..crypto.field import U256_BOUND
from ..crypto.merkle import SHA256
from .shared.serializers import FeltSerializersMixin


class PortalConfig(FeltSerializersMixin, BaseModel):
    """Settings fixed when the portal is initialized; never mutated afterwards."""

    claim_deadline: int = Field(..., ge=0, description="Last claimable unix timestamp")
    max_claim_amount: int = Field(..., gt=0, lt=U256_BOUND)
    root_timelock_delay: int = Field(..., ge=0, description="Seconds")
    admin_account: int
    hash_alg: str = SHA256
    initialized_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_serializer("initialized_at")
    def serialize_initialized_at(self, value: datetime) -> str:
        return value.isoformat()


class PendingRootUpdate(FeltSerializersMixin, BaseModel):
    """A proposed root and the earliest time it may be executed."""

    new_root: int
    proposed_at: int
    execute_after: int

    def is_ready(self, now: int) -> bool:
        return now >= self.execute_after


class ClaimRecord(FeltSerializersMixin, BaseModel):
    """Presence of a record means the account is Claimed (terminal)."""

    account: int
    amount: int = Field(..., gt=0, lt=U256_BOUND)
    claimed_at: int


class ClaimEvent(FeltSerializersMixin, BaseModel):
    """Emitted after a claim's mint/transfer succeeded."""

    account: int
    amount: int
    timestamp: int


GovernanceEventKind = Literal["root_proposed", "root_updated", "paused", "unpaused"]


class GovernanceEvent(FeltSerializersMixin, BaseModel):
    """Emitted on every admin state transition."""

    kind: GovernanceEventKind
    root: Optional[int] = None
    execute_after: Optional[int] = None
    timestamp: int


class PortalState(FeltSerializersMixin, BaseModel):
    """Point-in-time read of everything a claim's guards look at."""

    config: PortalConfig
    merkle_root: int
    paused: bool = False
    total_claimed: int = 0
    pending: Optional[PendingRootUpdate] = None
