"""Dependencies for the Portal API."""

from __future__ import annotations

from functools import lru_cache

from ..application.use_cases.authentication import RequestAuthenticator
from ..application.use_cases.claim import ClaimService
from ..application.use_cases.governance import GovernanceService
from ..domain.shared import TokenMinterProtocol
from ..envs.portal_env import Settings, get_settings
from ..infrastructure.database import DatabaseClient, get_database_client
from ..infrastructure.repositories import (
    ClaimRegistryRepositoryImpl,
    PortalStateRepositoryImpl,
    UsedRequestRepositoryImpl,
)
from ..infrastructure.storage import RedisKeyValueStore
from ..infrastructure.token.ledger import TokenLedger
from ..infrastructure.token.token_client import AsyncTokenClient


@lru_cache()
def get_settings_dependency() -> Settings:
    return get_settings()


@lru_cache()
def get_database_client_dependency() -> DatabaseClient:
    settings = get_settings_dependency()
    return get_database_client(settings)


@lru_cache()
def get_store_dependency() -> RedisKeyValueStore:
    db_client = get_database_client_dependency()
    return RedisKeyValueStore(db_client)


@lru_cache()
def get_token_minter() -> TokenMinterProtocol:
    settings = get_settings_dependency()
    if settings.token_base_url:
        return AsyncTokenClient(settings.token_base_url)
    return TokenLedger(get_store_dependency())


def get_claim_registry_repository() -> ClaimRegistryRepositoryImpl:
    store = get_store_dependency()
    return ClaimRegistryRepositoryImpl(store)


def get_portal_state_repository() -> PortalStateRepositoryImpl:
    store = get_store_dependency()
    return PortalStateRepositoryImpl(store)


def get_request_authenticator() -> RequestAuthenticator:
    settings = get_settings_dependency()
    return RequestAuthenticator(
        admin_request_ttl=settings.admin_request_ttl,
        used_requests=UsedRequestRepositoryImpl(get_store_dependency()),
    )


def get_claim_service() -> ClaimService:
    return ClaimService(
        get_claim_registry_repository(),
        get_portal_state_repository(),
        get_token_minter(),
    )


def get_governance_service() -> GovernanceService:
    return GovernanceService(get_portal_state_repository())
