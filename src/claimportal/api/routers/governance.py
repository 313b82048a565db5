"""Admin governance API routes: root rotation behind a timelock, pause switch."""

from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from prometheus_client import Counter, Histogram

from ...application.dtos import (
    AdminAction,
    AdminActionPayload,
    GovernanceEventDTO,
    GovernanceResponseDTO,
    PendingRootDTO,
    SignedRequestDTO,
)
from ...application.use_cases.authentication import RequestAuthenticator
from ...application.use_cases.governance import GovernanceService
from ...domain.errors import InvalidRoot, PortalError
from ..dependencies import get_governance_service, get_request_authenticator
from .errors import http_error_from

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/governance", tags=["governance"])


governance_requests_total = Counter(
    "governance_requests_total",
    "Total admin governance requests processed",
    ["action", "status"],
)

governance_request_duration_milliseconds = Histogram(
    "governance_request_duration_milliseconds",
    "Wall time to process an admin governance request (ms)",
    ["action", "status"],
)

AdminHandler = Callable[[int, AdminActionPayload], Awaitable[GovernanceResponseDTO]]


async def _run_admin_action(
    action: AdminAction,
    payload: SignedRequestDTO,
    authenticator: RequestAuthenticator,
    handler: AdminHandler,
) -> GovernanceResponseDTO:
    start_time = time.perf_counter()
    outcome = "success"
    try:
        caller, admin_payload = await authenticator.authenticate_admin(
            payload, action
        )
        return await handler(caller, admin_payload)
    except PortalError as e:
        outcome = "rejected"
        raise http_error_from(e)
    except ValueError as e:
        outcome = "client_error"
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        outcome = "server_error"
        logger.exception("Governance action %s failed", action)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to process {action}: {str(e)}",
        )
    finally:
        governance_requests_total.labels(action=action, status=outcome).inc()
        elapsed = (time.perf_counter() - start_time) * 1000
        governance_request_duration_milliseconds.labels(
            action=action, status=outcome
        ).observe(elapsed)


@router.post("/root-proposals", response_model=GovernanceResponseDTO)
async def propose_merkle_root(
    payload: SignedRequestDTO,
    authenticator: RequestAuthenticator = Depends(get_request_authenticator),
    service: GovernanceService = Depends(get_governance_service),
) -> GovernanceResponseDTO:
    """Schedule a new Merkle root; executable after the timelock delay."""

    async def handler(
        caller: int, admin_payload: AdminActionPayload
    ) -> GovernanceResponseDTO:
        if admin_payload.new_root is None:
            raise InvalidRoot("new_root is required")
        return await service.propose_merkle_root(caller, admin_payload.new_root)

    return await _run_admin_action("propose_root", payload, authenticator, handler)


@router.post("/root-proposals/execute", response_model=GovernanceResponseDTO)
async def execute_merkle_root_update(
    payload: SignedRequestDTO,
    authenticator: RequestAuthenticator = Depends(get_request_authenticator),
    service: GovernanceService = Depends(get_governance_service),
) -> GovernanceResponseDTO:
    return await _run_admin_action(
        "execute_root",
        payload,
        authenticator,
        lambda caller, _: service.execute_merkle_root_update(caller),
    )


@router.post("/pause", response_model=GovernanceResponseDTO)
async def pause(
    payload: SignedRequestDTO,
    authenticator: RequestAuthenticator = Depends(get_request_authenticator),
    service: GovernanceService = Depends(get_governance_service),
) -> GovernanceResponseDTO:
    return await _run_admin_action(
        "pause", payload, authenticator, lambda caller, _: service.pause(caller)
    )


@router.post("/unpause", response_model=GovernanceResponseDTO)
async def unpause(
    payload: SignedRequestDTO,
    authenticator: RequestAuthenticator = Depends(get_request_authenticator),
    service: GovernanceService = Depends(get_governance_service),
) -> GovernanceResponseDTO:
    return await _run_admin_action(
        "unpause", payload, authenticator, lambda caller, _: service.unpause(caller)
    )


@router.get("/pending-root", response_model=Optional[PendingRootDTO])
async def get_pending_root(
    service: GovernanceService = Depends(get_governance_service),
) -> Optional[PendingRootDTO]:
    return await service.get_pending_root()


@router.get("/events", response_model=list[GovernanceEventDTO])
async def list_governance_events(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    service: GovernanceService = Depends(get_governance_service),
) -> list[GovernanceEventDTO]:
    return await service.list_governance_events(skip=skip, limit=limit)
