"""Pytest fixtures for use case tests."""

from __future__ import annotations

import pytest

from claimportal.application.use_cases.claim import ClaimService
from claimportal.application.use_cases.governance import GovernanceService
from claimportal.crypto.merkle import MerkleTree, build_merkle_tree
from claimportal.domain.entities import PortalConfig
from claimportal.infrastructure.repositories import (
    ClaimRegistryRepositoryImpl,
    PortalStateRepositoryImpl,
)
from tests.fixtures import FakeClock, RecordingMinter
from tests.fixtures.portal import (
    CLAIM_DEADLINE,
    CLAIMANT_AMOUNT,
    MAX_CLAIM_AMOUNT,
    OTHER_ENTRIES,
    TIMELOCK_DELAY,
)


@pytest.fixture
def entries(claimant_account: int) -> list[tuple[int, int]]:
    return [(claimant_account, CLAIMANT_AMOUNT), *OTHER_ENTRIES]


@pytest.fixture
def tree(entries: list[tuple[int, int]]) -> MerkleTree:
    return build_merkle_tree(entries)


@pytest.fixture
def portal_config(admin_account: int) -> PortalConfig:
    return PortalConfig(
        claim_deadline=CLAIM_DEADLINE,
        max_claim_amount=MAX_CLAIM_AMOUNT,
        root_timelock_delay=TIMELOCK_DELAY,
        admin_account=admin_account,
    )


@pytest.fixture
def minter() -> RecordingMinter:
    return RecordingMinter()


@pytest.fixture
def governance_service(
    state_repo: PortalStateRepositoryImpl, clock: FakeClock
) -> GovernanceService:
    return GovernanceService(state_repo, clock=clock)


@pytest.fixture
async def initialized_portal(
    governance_service: GovernanceService,
    portal_config: PortalConfig,
    tree: MerkleTree,
) -> MerkleTree:
    """Portal initialized with ``tree``'s root; returns the tree."""
    await governance_service.initialize(portal_config, tree.root)
    return tree


@pytest.fixture
def claim_service(
    claim_repo: ClaimRegistryRepositoryImpl,
    state_repo: PortalStateRepositoryImpl,
    minter: RecordingMinter,
    clock: FakeClock,
) -> ClaimService:
    return ClaimService(claim_repo, state_repo, minter, clock=clock)
