"""FastAPI application configuration (Portal API)."""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    generate_latest,
    multiprocess,
)

from ..application.use_cases.governance import GovernanceService
from ..domain.entities import PortalConfig
from ..envs.portal_env import Settings
from ..infrastructure.repositories import PortalStateRepositoryImpl
from ..infrastructure.scripts import register_portal_scripts
from ..infrastructure.token.token_client import AsyncTokenClient
from .dependencies import (
    get_database_client_dependency,
    get_settings_dependency,
    get_store_dependency,
    get_token_minter,
)
from .routers import claims, governance


async def initialize_portal(settings: Settings, service: GovernanceService) -> PortalConfig:
    """Install the configured root and limits unless the portal already has them."""
    config = PortalConfig(
        claim_deadline=settings.claim_deadline,
        max_claim_amount=settings.max_claim_amount,
        root_timelock_delay=settings.root_timelock_delay,
        admin_account=settings.admin_account,
        hash_alg=settings.hash_alg,
    )
    return await service.initialize(config, settings.merkle_root_felt)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings_dependency()
    store = get_store_dependency()
    await register_portal_scripts(store)
    await initialize_portal(settings, GovernanceService(PortalStateRepositoryImpl(store)))
    yield
    minter = get_token_minter()
    if isinstance(minter, AsyncTokenClient):
        await minter.aclose()
    await get_database_client_dependency().close()


def _metrics_payload() -> bytes:
    if os.environ.get("PROMETHEUS_MULTIPROC_DIR"):
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        return generate_latest(registry)
    return generate_latest(REGISTRY)


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings_dependency()
    app = FastAPI(
        title=f"{settings.app_name} Portal",
        version=settings.app_version,
        description="Merkle airdrop claim portal API",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api_cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(claims.router, prefix="/api/v1/portal")
    app.include_router(governance.router, prefix="/api/v1/portal")

    @app.get("/")
    async def root() -> dict[str, str]:
        return {
            "message": f"Welcome to {settings.app_name} Portal API",
            "version": settings.app_version,
            "docs": "/docs",
        }

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {
            "status": "healthy",
            "service": f"{settings.app_name} Portal",
            "version": settings.app_version,
        }

    @app.get("/metrics")
    async def metrics() -> Response:
        return Response(content=_metrics_payload(), media_type=CONTENT_TYPE_LATEST)

    return app
