"""Protocol interface for the asset mint/transfer collaborator.

The portal never moves assets itself. After a claim's effects are committed
it hands ``(account, amount)`` to an implementation of this protocol.
"""

from __future__ import annotations

from typing import Protocol


class TokenMinterProtocol(Protocol):
    """Mint or transfer ``amount`` of the claimable asset to ``account``.

    Each account is minted at most once, so implementations key the call on
    the account and treat a repeat as a no-op.

    Failure contract:
        - ``MintRejected`` means nothing was credited. The portal reverts the
          claim so the account may try again.
        - Any other exception leaves the outcome unknown (timeouts, server
          errors, unreadable replies). The claim stays committed and the
          error propagates.
    """

    async def mint_or_transfer(self, account: int, amount: int) -> None:
        """Credit ``amount`` to ``account``.

        Args:
            account: Portal account (field element)
            amount: Unsigned 256-bit quantity
        """
        ...
