"""Token balances kept next to the portal state.

Used as the mint collaborator when no external token service is configured.
"""

from __future__ import annotations

from ...crypto.field import U256_BOUND, felt_to_hex
from ...domain.errors import MintRejected
from ..storage import KeyValueStore


def balance_key(account: int) -> str:
    return f"balance:{felt_to_hex(account)}"


class TokenLedger:
    def __init__(self, store: KeyValueStore):
        self.store = store

    async def mint_or_transfer(self, account: int, amount: int) -> None:
        if amount <= 0 or amount >= U256_BOUND:
            raise MintRejected("Mint amount must be an unsigned 256-bit integer > 0")
        await self.store.run_script(
            "credit_balance", keys=[balance_key(account)], args=[str(amount)]
        )

    async def get_balance(self, account: int) -> int:
        raw = await self.store.get(balance_key(account))
        return int(raw) if raw else 0
