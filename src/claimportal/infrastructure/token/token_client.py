from __future__ import annotations

import logging
from typing import Optional, Type
from types import TracebackType

import httpx
from pydantic import ValidationError

from ...application.dtos import MintRequestDTO, MintResponseDTO
from ...crypto.field import felt_to_hex
from ...domain.errors import MintRejected
from ..http.http_client import AsyncHttpClient

logger = logging.getLogger(__name__)

IDEMPOTENCY_HEADER = "Idempotency-Key"


def mint_idempotency_key(account: int) -> str:
    """One mint per account, so the account alone keys the request."""
    return f"claim:{felt_to_hex(account)}"


class AsyncTokenClient:
    """Mint collaborator backed by an external token service.

    ``mint_or_transfer`` posts to ``{base_url}/mints`` with an
    ``Idempotency-Key`` header so a retried request is credited once.
    A 4xx answer means the mint was refused and surfaces as ``MintRejected``.
    Timeouts, 5xx answers and unreadable bodies propagate as-is: the service
    may have credited the account already.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._http = AsyncHttpClient(base_url, timeout=timeout, transport=transport)

    async def mint_or_transfer(self, account: int, amount: int) -> None:
        try:
            dto = MintRequestDTO(account=account, amount=amount)
        except ValidationError as e:
            raise MintRejected(str(e)) from e
        try:
            resp = await self._http.post(
                "/mints",
                json=dto.model_dump(),
                headers={IDEMPOTENCY_HEADER: mint_idempotency_key(account)},
            )
        except httpx.HTTPStatusError as e:
            if e.response.is_client_error:
                raise MintRejected(
                    f"Token service answered {e.response.status_code}"
                ) from e
            raise
        result = MintResponseDTO.model_validate(resp.json())
        logger.debug(
            "Minted %d to %s; balance=%d", amount, felt_to_hex(account), result.balance
        )

    async def get_balance(self, account: int) -> int:
        resp = await self._http.get(f"/balances/{felt_to_hex(account)}")
        return MintResponseDTO.model_validate(resp.json()).balance

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "AsyncTokenClient":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        await self.aclose()
