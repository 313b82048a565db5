"""Portal repositories implemented over a storage abstraction."""

from __future__ import annotations

from typing import List, Optional

from ..crypto.field import felt_to_hex
from ..domain.entities import (
    ClaimEvent,
    ClaimRecord,
    GovernanceEvent,
    PendingRootUpdate,
    PortalConfig,
    PortalState,
)
from ..domain.repositories import (
    ClaimRegistryRepository,
    PortalStateRepository,
    UsedRequestRepository,
)
from .storage import KeyValueStore

CONFIG_KEY = "portal:config"
ROOT_KEY = "portal:root"
PAUSED_KEY = "portal:paused"
TOTAL_CLAIMED_KEY = "portal:total_claimed"
PENDING_ROOT_KEY = "portal:pending_root"

CLAIM_EVENT_SEQ_KEY = "claim_events:seq"
CLAIM_EVENT_INDEX_KEY = "claim_events:all"
CLAIM_EVENT_PREFIX = "claim_event:"

GOVERNANCE_EVENT_SEQ_KEY = "governance_events:seq"
GOVERNANCE_EVENT_INDEX_KEY = "governance_events:all"
GOVERNANCE_EVENT_PREFIX = "governance_event:"
USED_REQUEST_PREFIX = "admin_request:"


def claim_key(account: int) -> str:
    return f"claim:{felt_to_hex(account)}"


async def _append_event(
    store: KeyValueStore, seq_key: str, index_key: str, prefix: str, event_json: str
) -> int:
    return int(
        await store.run_script(
            "append_event", keys=[seq_key, index_key], args=[prefix, event_json]
        )
    )


async def _list_events(
    store: KeyValueStore, index_key: str, prefix: str, skip: int, limit: int
) -> list[str]:
    seqs: list[str] = await store.zrevrange(index_key, skip, skip + limit - 1)
    if not seqs:
        return []
    raw_events = await store.mget([f"{prefix}{seq}" for seq in seqs])
    return [raw for raw in raw_events if raw]


class ClaimRegistryRepositoryImpl(ClaimRegistryRepository):
    """Claim registry backed by KeyValueStore."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def get_claim(self, account: int) -> Optional[ClaimRecord]:
        data = await self.store.get(claim_key(account))
        if not data:
            return None
        return ClaimRecord.model_validate_json(data)

    async def is_claimed(self, account: int) -> bool:
        return await self.store.get(claim_key(account)) is not None

    async def get_total_claimed(self) -> int:
        raw = await self.store.get(TOTAL_CLAIMED_KEY)
        return int(raw) if raw else 0

    async def commit_claim(self, record: ClaimRecord, expected_root: int) -> int:
        result = await self.store.run_script(
            "commit_claim",
            keys=[
                claim_key(record.account),
                CONFIG_KEY,
                ROOT_KEY,
                PAUSED_KEY,
                TOTAL_CLAIMED_KEY,
            ],
            args=[
                record.model_dump_json(),
                str(record.amount),
                felt_to_hex(expected_root),
            ],
        )
        return int(result[0])

    async def revert_claim(self, record: ClaimRecord) -> bool:
        result = await self.store.run_script(
            "revert_claim",
            keys=[claim_key(record.account), TOTAL_CLAIMED_KEY],
            args=[record.model_dump_json(), str(record.amount)],
        )
        return int(result[0]) == 1

    async def record_claim_event(self, event: ClaimEvent) -> None:
        await _append_event(
            self.store,
            CLAIM_EVENT_SEQ_KEY,
            CLAIM_EVENT_INDEX_KEY,
            CLAIM_EVENT_PREFIX,
            event.model_dump_json(),
        )

    async def list_claim_events(self, skip: int = 0, limit: int = 100) -> List[ClaimEvent]:
        raw_events = await _list_events(
            self.store, CLAIM_EVENT_INDEX_KEY, CLAIM_EVENT_PREFIX, skip, limit
        )
        return [ClaimEvent.model_validate_json(raw) for raw in raw_events]


class PortalStateRepositoryImpl(PortalStateRepository):
    """Portal config, root, pause flag and pending update backed by KeyValueStore."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def initialize(
        self, config: PortalConfig, merkle_root: int
    ) -> tuple[int, PortalConfig]:
        result = await self.store.run_script(
            "initialize_portal",
            keys=[CONFIG_KEY, ROOT_KEY, PAUSED_KEY, TOTAL_CLAIMED_KEY],
            args=[config.model_dump_json(), felt_to_hex(merkle_root)],
        )
        status = int(result[0])
        return status, PortalConfig.model_validate_json(result[1])

    async def get_state(self) -> Optional[PortalState]:
        config_raw, root_raw, paused_raw, total_raw, pending_raw = await self.store.mget(
            [CONFIG_KEY, ROOT_KEY, PAUSED_KEY, TOTAL_CLAIMED_KEY, PENDING_ROOT_KEY]
        )
        if not config_raw or not root_raw:
            return None
        return PortalState(
            config=PortalConfig.model_validate_json(config_raw),
            merkle_root=root_raw,
            paused=paused_raw == "1",
            total_claimed=int(total_raw) if total_raw else 0,
            pending=PendingRootUpdate.model_validate_json(pending_raw)
            if pending_raw
            else None,
        )

    async def get_pending_root(self) -> Optional[PendingRootUpdate]:
        data = await self.store.get(PENDING_ROOT_KEY)
        if not data:
            return None
        return PendingRootUpdate.model_validate_json(data)

    async def propose_root(self, pending: PendingRootUpdate) -> None:
        await self.store.set(PENDING_ROOT_KEY, pending.model_dump_json())

    async def execute_root(self, now: int) -> tuple[int, Optional[PendingRootUpdate]]:
        result = await self.store.run_script(
            "execute_root",
            keys=[PENDING_ROOT_KEY, ROOT_KEY],
            args=[str(now)],
        )
        status = int(result[0])
        pending = PendingRootUpdate.model_validate_json(result[1]) if result[1] else None
        return status, pending

    async def set_paused(self, paused: bool) -> None:
        await self.store.set(PAUSED_KEY, "1" if paused else "0")

    async def record_governance_event(self, event: GovernanceEvent) -> None:
        await _append_event(
            self.store,
            GOVERNANCE_EVENT_SEQ_KEY,
            GOVERNANCE_EVENT_INDEX_KEY,
            GOVERNANCE_EVENT_PREFIX,
            event.model_dump_json(),
        )

    async def list_governance_events(
        self, skip: int = 0, limit: int = 100
    ) -> List[GovernanceEvent]:
        raw_events = await _list_events(
            self.store, GOVERNANCE_EVENT_INDEX_KEY, GOVERNANCE_EVENT_PREFIX, skip, limit
        )
        return [GovernanceEvent.model_validate_json(raw) for raw in raw_events]


class UsedRequestRepositoryImpl(UsedRequestRepository):
    """Used admin request digests, kept with SET NX EX so they age out."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def mark_used(self, digest: str, ttl_seconds: int) -> bool:
        return await self.store.set_if_absent(
            f"{USED_REQUEST_PREFIX}{digest}", "1", ttl_seconds
        )
