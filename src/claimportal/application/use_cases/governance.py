from __future__ import annotations

import logging
from typing import List, Optional

from ...crypto.field import felt_to_hex
from ...domain.entities import (
    GovernanceEvent,
    GovernanceEventKind,
    PendingRootUpdate,
    PortalConfig,
    PortalState,
)
from ...domain.errors import NoPendingRoot, PortalNotInitialized, TimelockNotReady
from ...domain.repositories import PortalStateRepository
from ...domain.shared import Clock, system_clock
from ..dtos import (
    AdminAction,
    GovernanceEventDTO,
    GovernanceResponseDTO,
    PendingRootDTO,
    to_pending_root_dto,
)
from .claim_validators import (
    ensure_admin,
    ensure_nonzero_root,
    ensure_supported_hash_alg,
    ensure_timelock_elapsed,
)

logger = logging.getLogger(__name__)


class GovernanceService:
    """Admin-only control of the active root (behind a timelock) and the pause switch."""

    def __init__(self, state_repo: PortalStateRepository, clock: Clock = system_clock):
        self.state_repo = state_repo
        self.clock = clock

    async def initialize(self, config: PortalConfig, merkle_root: int) -> PortalConfig:
        """
        Install the portal config and initial root.

        Config is immutable: on an already initialized portal nothing is
        changed and the stored config is returned.
        """
        ensure_nonzero_root(merkle_root)
        ensure_supported_hash_alg(config.hash_alg)

        status, stored = await self.state_repo.initialize(config, merkle_root)
        if status == 1:
            logger.info(
                "Portal initialized root=%s deadline=%d max_claim=%d timelock=%ds",
                felt_to_hex(merkle_root),
                config.claim_deadline,
                config.max_claim_amount,
                config.root_timelock_delay,
            )
        else:
            logger.info("Portal already initialized; keeping stored config")
        return stored

    async def _load_admin_state(self, caller: int) -> PortalState:
        state = await self.state_repo.get_state()
        if state is None:
            raise PortalNotInitialized()
        ensure_admin(caller, state.config.admin_account)
        return state

    async def _record(
        self,
        kind: GovernanceEventKind,
        timestamp: int,
        root: Optional[int] = None,
        execute_after: Optional[int] = None,
    ) -> None:
        await self.state_repo.record_governance_event(
            GovernanceEvent(
                kind=kind, root=root, execute_after=execute_after, timestamp=timestamp
            )
        )

    async def _response(self, action: AdminAction) -> GovernanceResponseDTO:
        state = await self.state_repo.get_state()
        if state is None:
            raise PortalNotInitialized()
        return GovernanceResponseDTO(
            action=action,
            merkle_root=state.merkle_root,
            paused=state.paused,
            pending=to_pending_root_dto(state.pending),
        )

    async def propose_merkle_root(
        self, caller: int, new_root: int
    ) -> GovernanceResponseDTO:
        """Schedule ``new_root``; replaces any earlier proposal and restarts its delay."""
        state = await self._load_admin_state(caller)
        ensure_nonzero_root(new_root)

        now = self.clock()
        pending = PendingRootUpdate(
            new_root=new_root,
            proposed_at=now,
            execute_after=now + state.config.root_timelock_delay,
        )
        await self.state_repo.propose_root(pending)
        await self._record(
            "root_proposed", now, root=new_root, execute_after=pending.execute_after
        )
        logger.info(
            "Merkle root proposed root=%s execute_after=%d",
            felt_to_hex(new_root),
            pending.execute_after,
        )
        return await self._response("propose_root")

    async def execute_merkle_root_update(self, caller: int) -> GovernanceResponseDTO:
        state = await self._load_admin_state(caller)
        now = self.clock()
        ensure_timelock_elapsed(state.pending, now)

        status, pending = await self.state_repo.execute_root(now)
        if status == 0:
            raise NoPendingRoot()
        if status == 3:
            raise TimelockNotReady()
        if status != 1 or pending is None:
            raise RuntimeError(f"Unexpected result from root execution: status={status}")

        await self._record("root_updated", now, root=pending.new_root)
        logger.info("Merkle root updated root=%s", felt_to_hex(pending.new_root))
        return await self._response("execute_root")

    async def pause(self, caller: int) -> GovernanceResponseDTO:
        await self._load_admin_state(caller)
        await self.state_repo.set_paused(True)
        await self._record("paused", self.clock())
        logger.info("Portal paused")
        return await self._response("pause")

    async def unpause(self, caller: int) -> GovernanceResponseDTO:
        await self._load_admin_state(caller)
        await self.state_repo.set_paused(False)
        await self._record("unpaused", self.clock())
        logger.info("Portal unpaused")
        return await self._response("unpause")

    async def get_pending_root(self) -> Optional[PendingRootDTO]:
        return to_pending_root_dto(await self.state_repo.get_pending_root())

    async def list_governance_events(
        self, skip: int = 0, limit: int = 100
    ) -> List[GovernanceEventDTO]:
        events = await self.state_repo.list_governance_events(skip=skip, limit=limit)
        return [
            GovernanceEventDTO(
                kind=e.kind,
                root=e.root,
                execute_after=e.execute_after,
                timestamp=e.timestamp,
            )
            for e in events
        ]
