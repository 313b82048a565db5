from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence

from ...crypto.field import felt_to_hex
from ...crypto.merkle import verify_proof
from ...domain.entities import ClaimEvent, ClaimRecord, PortalState
from ...domain.errors import (
    AlreadyClaimed,
    MintRejected,
    PortalNotInitialized,
    PortalPaused,
)
from ...domain.repositories import ClaimRegistryRepository, PortalStateRepository
from ...domain.shared import Clock, TokenMinterProtocol, system_clock
from ..dtos import (
    ClaimEventDTO,
    ClaimRecordDTO,
    ClaimResponseDTO,
    PortalStatusDTO,
    to_pending_root_dto,
)
from .claim_validators import (
    ensure_amount_positive,
    ensure_not_paused,
    ensure_proof_length,
    ensure_valid_proof,
    ensure_within_claim_period,
    ensure_within_max_amount,
)

logger = logging.getLogger(__name__)

# A root rotation between the state read and the commit is retried once
_MAX_COMMIT_ATTEMPTS = 2


class ClaimService:
    """Service turning a verified Merkle proof into a one-time claim."""

    def __init__(
        self,
        claim_repo: ClaimRegistryRepository,
        state_repo: PortalStateRepository,
        minter: TokenMinterProtocol,
        clock: Clock = system_clock,
    ):
        self.claim_repo = claim_repo
        self.state_repo = state_repo
        self.minter = minter
        self.clock = clock

    async def _load_state(self) -> PortalState:
        state = await self.state_repo.get_state()
        if state is None:
            raise PortalNotInitialized()
        return state

    async def _check_claim(
        self, state: PortalState, caller: int, amount: int, proof: Sequence[int]
    ) -> int:
        """Run every claim guard in order; returns the portal time used."""
        now = self.clock()
        ensure_not_paused(state.paused)
        ensure_proof_length(proof)
        if await self.claim_repo.is_claimed(caller):
            raise AlreadyClaimed()
        ensure_within_claim_period(now, state.config.claim_deadline)
        ensure_amount_positive(amount)
        ensure_within_max_amount(amount, state.config.max_claim_amount)
        ensure_valid_proof(
            state.merkle_root, caller, amount, proof, state.config.hash_alg
        )
        return now

    async def _commit(
        self, caller: int, amount: int, proof: Sequence[int]
    ) -> ClaimRecord:
        """
        Validate and atomically record the claim.

        Repository status codes:
          - 1: committed
          - 0: account claimed concurrently
          - 2: portal state missing
          - 3: paused concurrently
          - 4: root rotated after the proof was checked; re-validate
        """
        for attempt in range(_MAX_COMMIT_ATTEMPTS):
            state = await self._load_state()
            now = await self._check_claim(state, caller, amount, proof)
            record = ClaimRecord(account=caller, amount=amount, claimed_at=now)

            status = await self.claim_repo.commit_claim(
                record, expected_root=state.merkle_root
            )
            if status == 1:
                return record
            if status == 0:
                raise AlreadyClaimed()
            if status == 2:
                raise PortalNotInitialized()
            if status == 3:
                raise PortalPaused()
            if status != 4:
                raise RuntimeError(f"Unexpected result from atomic claim: status={status}")
            logger.info(
                "Merkle root rotated during claim for %s (attempt %d); re-validating",
                felt_to_hex(caller),
                attempt + 1,
            )

        raise RuntimeError("Merkle root kept changing while committing the claim")

    async def _settle(self, record: ClaimRecord) -> None:
        """Mint for a committed claim and emit its event.

        Only ``MintRejected`` rolls the claim back. Any other failure leaves
        the mint outcome unknown, so the account stays claimed and the error
        propagates for reconciliation.
        """
        account = felt_to_hex(record.account)
        try:
            await self.minter.mint_or_transfer(record.account, record.amount)
        except MintRejected:
            reverted = await self.claim_repo.revert_claim(record)
            logger.warning(
                "Mint rejected for %s amount=%d; claim reverted=%s",
                account,
                record.amount,
                reverted,
            )
            raise
        except Exception:
            logger.error(
                "Mint outcome unknown for %s amount=%d; claim kept",
                account,
                record.amount,
            )
            raise

        event = ClaimEvent(
            account=record.account, amount=record.amount, timestamp=record.claimed_at
        )
        await self.claim_repo.record_claim_event(event)
        logger.info("Claimed account=%s amount=%d", account, record.amount)

    async def claim(
        self, caller: int, amount: int, proof: Sequence[int]
    ) -> ClaimResponseDTO:
        """
        Redeem ``amount`` for ``caller`` against the active root.

        The claimed mark and the total are committed before the minter is
        called. A rejected mint rolls both back; any other mint failure keeps
        them. Settlement is shielded, so a cancelled request still finishes
        the mint it started.
        """
        record = await self._commit(caller, amount, list(proof))

        settle = asyncio.ensure_future(self._settle(record))
        try:
            await asyncio.shield(settle)
        except asyncio.CancelledError:
            logger.warning(
                "Claim request for %s cancelled; settlement continues in background",
                felt_to_hex(caller),
            )
            raise

        return ClaimResponseDTO(
            account=record.account,
            amount=record.amount,
            claimed_at=record.claimed_at,
            total_claimed=await self.claim_repo.get_total_claimed(),
        )

    async def is_claimed(self, account: int) -> bool:
        return await self.claim_repo.is_claimed(account)

    async def get_claimable(
        self, account: int, amount: int, proof: Sequence[int]
    ) -> bool:
        """Whether (account, amount, proof) is redeemable right now, ignoring pause and deadline."""
        if await self.claim_repo.is_claimed(account):
            return False
        state = await self._load_state()
        return verify_proof(
            state.merkle_root, account, amount, list(proof), state.config.hash_alg
        )

    async def get_claim(self, account: int) -> Optional[ClaimRecordDTO]:
        record = await self.claim_repo.get_claim(account)
        if record is None:
            return None
        return ClaimRecordDTO(
            account=record.account, amount=record.amount, claimed_at=record.claimed_at
        )

    async def merkle_root(self) -> int:
        state = await self._load_state()
        return state.merkle_root

    async def total_claimed(self) -> int:
        return await self.claim_repo.get_total_claimed()

    async def get_status(self) -> PortalStatusDTO:
        state = await self._load_state()
        config = state.config
        return PortalStatusDTO(
            merkle_root=state.merkle_root,
            total_claimed=state.total_claimed,
            paused=state.paused,
            claim_deadline=config.claim_deadline,
            max_claim_amount=config.max_claim_amount,
            root_timelock_delay=config.root_timelock_delay,
            admin_account=config.admin_account,
            hash_alg=config.hash_alg,
            pending=to_pending_root_dto(state.pending),
        )

    async def list_claim_events(
        self, skip: int = 0, limit: int = 100
    ) -> List[ClaimEventDTO]:
        events = await self.claim_repo.list_claim_events(skip=skip, limit=limit)
        return [
            ClaimEventDTO(account=e.account, amount=e.amount, timestamp=e.timestamp)
            for e in events
        ]
