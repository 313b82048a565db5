"""Portal domain repositories: claim registry and portal state."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from .entities import (
    ClaimEvent,
    ClaimRecord,
    GovernanceEvent,
    PendingRootUpdate,
    PortalConfig,
    PortalState,
)


class ClaimRegistryRepository(ABC):
    """Exactly-once membership set keyed by account, plus the running total."""

    @abstractmethod
    async def get_claim(self, account: int) -> Optional[ClaimRecord]:
        pass

    @abstractmethod
    async def is_claimed(self, account: int) -> bool:
        pass

    @abstractmethod
    async def get_total_claimed(self) -> int:
        pass

    @abstractmethod
    async def commit_claim(self, record: ClaimRecord, expected_root: int) -> int:
        """
        Atomically mark the account claimed and add to the total.

        The commit re-checks, inside the same atomic step, that the portal
        is initialized and not paused, that the account is unclaimed and
        that the active root is still ``expected_root``.

        Returns:
          1 -> committed
          0 -> account already claimed
          2 -> portal not initialized
          3 -> portal paused
          4 -> active root changed since the proof was verified
        """
        pass

    @abstractmethod
    async def revert_claim(self, record: ClaimRecord) -> bool:
        """Undo a committed claim whose mint was rejected."""
        pass

    @abstractmethod
    async def record_claim_event(self, event: ClaimEvent) -> None:
        pass

    @abstractmethod
    async def list_claim_events(self, skip: int = 0, limit: int = 100) -> List[ClaimEvent]:
        """Most recent claim events first."""
        pass


class PortalStateRepository(ABC):
    """Config, active root, pause flag and the pending root update."""

    @abstractmethod
    async def initialize(
        self, config: PortalConfig, merkle_root: int
    ) -> tuple[int, PortalConfig]:
        """
        Install config and root once.

        Returns:
          (1, config) -> initialized now
          (0, existing_config) -> already initialized; nothing changed
        """
        pass

    @abstractmethod
    async def get_state(self) -> Optional[PortalState]:
        """Read config, root, pause flag, total and pending update together."""
        pass

    @abstractmethod
    async def get_pending_root(self) -> Optional[PendingRootUpdate]:
        pass

    @abstractmethod
    async def propose_root(self, pending: PendingRootUpdate) -> None:
        """Store the pending update, overwriting any earlier proposal."""
        pass

    @abstractmethod
    async def execute_root(self, now: int) -> tuple[int, Optional[PendingRootUpdate]]:
        """
        Atomically swap in the pending root once its delay has elapsed.

        Returns:
          (1, pending) -> root replaced, pending slot cleared
          (0, None) -> nothing pending
          (3, pending) -> delay has not elapsed yet
        """
        pass

    @abstractmethod
    async def set_paused(self, paused: bool) -> None:
        pass

    @abstractmethod
    async def record_governance_event(self, event: GovernanceEvent) -> None:
        pass

    @abstractmethod
    async def list_governance_events(
        self, skip: int = 0, limit: int = 100
    ) -> List[GovernanceEvent]:
        pass


class UsedRequestRepository(ABC):
    """Digests of signed admin requests that were already accepted."""

    @abstractmethod
    async def mark_used(self, digest: str, ttl_seconds: int) -> bool:
        """Record ``digest``; False when it was recorded before."""
        pass
