"""Claim API routes."""

from __future__ import annotations

import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from prometheus_client import Counter, Gauge, Histogram

from ...application.dtos import (
    ClaimableRequestDTO,
    ClaimableResponseDTO,
    ClaimEventDTO,
    ClaimResponseDTO,
    ClaimStatusDTO,
    MerkleRootDTO,
    PortalStatusDTO,
    SignedRequestDTO,
    TotalClaimedDTO,
)
from ...application.use_cases.authentication import RequestAuthenticator
from ...application.use_cases.claim import ClaimService
from ...crypto.field import to_field
from ...domain.errors import PortalError
from ..dependencies import get_claim_service, get_request_authenticator
from .errors import http_error_from

logger = logging.getLogger(__name__)

router = APIRouter(tags=["claims"])


CLAIM_DURATION_BUCKETS = (
    [float(x) for x in range(1, 11)]  # 1..10ms
    + [float(x) for x in range(20, 110, 10)]  # 20..100ms
    + [250.0, 500.0, 1000.0, float("inf")]
)

claim_requests_total = Counter(
    "claim_requests_total",
    "Total claim requests processed",
    ["status"],
)

claim_request_duration_milliseconds = Histogram(
    "claim_request_duration_milliseconds",
    "Wall time to process a claim request (ms)",
    ["status"],
    buckets=CLAIM_DURATION_BUCKETS,
)

claim_requests_inprogress = Gauge(
    "claim_requests_inprogress",
    "Number of claim requests currently being processed",
    multiprocess_mode="livesum",
)


def _observe(outcome: str, start_time: float) -> None:
    claim_requests_total.labels(status=outcome).inc()
    elapsed = (time.perf_counter() - start_time) * 1000
    claim_request_duration_milliseconds.labels(status=outcome).observe(elapsed)


def _parse_account(account: str) -> int:
    try:
        return to_field(account)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post(
    "/claims",
    response_model=ClaimResponseDTO,
    status_code=status.HTTP_201_CREATED,
)
async def claim(
    payload: SignedRequestDTO,
    authenticator: RequestAuthenticator = Depends(get_request_authenticator),
    service: ClaimService = Depends(get_claim_service),
) -> ClaimResponseDTO:
    """Redeem the caller's allocation with a Merkle proof."""
    start_time = time.perf_counter()
    claim_requests_inprogress.inc()
    try:
        caller, claim_payload = authenticator.authenticate_claim(payload)
        result = await service.claim(caller, claim_payload.amount, claim_payload.proof)
        _observe("success", start_time)
        return result
    except PortalError as e:
        _observe("rejected", start_time)
        raise http_error_from(e)
    except ValueError as e:
        _observe("client_error", start_time)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        _observe("server_error", start_time)
        logger.exception("Claim failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to process claim: {str(e)}",
        )
    finally:
        claim_requests_inprogress.dec()


@router.get("/claims/events", response_model=list[ClaimEventDTO])
async def list_claim_events(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    service: ClaimService = Depends(get_claim_service),
) -> list[ClaimEventDTO]:
    """Most recent claims first."""
    return await service.list_claim_events(skip=skip, limit=limit)


@router.post("/claims/claimable", response_model=ClaimableResponseDTO)
async def get_claimable(
    payload: ClaimableRequestDTO,
    service: ClaimService = Depends(get_claim_service),
) -> ClaimableResponseDTO:
    try:
        claimable = await service.get_claimable(
            payload.account, payload.amount, payload.proof
        )
    except PortalError as e:
        raise http_error_from(e)
    return ClaimableResponseDTO(claimable=claimable)


@router.get("/claims/{account}", response_model=ClaimStatusDTO)
async def get_claim_status(
    account: str = Path(..., description="Account as 0x-prefixed hex"),
    service: ClaimService = Depends(get_claim_service),
) -> ClaimStatusDTO:
    account_felt = _parse_account(account)
    return ClaimStatusDTO(
        account=account_felt, is_claimed=await service.is_claimed(account_felt)
    )


@router.get("/merkle-root", response_model=MerkleRootDTO)
async def get_merkle_root(
    service: ClaimService = Depends(get_claim_service),
) -> MerkleRootDTO:
    try:
        return MerkleRootDTO(merkle_root=await service.merkle_root())
    except PortalError as e:
        raise http_error_from(e)


@router.get("/total-claimed", response_model=TotalClaimedDTO)
async def get_total_claimed(
    service: ClaimService = Depends(get_claim_service),
) -> TotalClaimedDTO:
    return TotalClaimedDTO(total_claimed=await service.total_claimed())


@router.get("/status", response_model=PortalStatusDTO)
async def get_status(
    service: ClaimService = Depends(get_claim_service),
) -> PortalStatusDTO:
    try:
        return await service.get_status()
    except PortalError as e:
        raise http_error_from(e)
