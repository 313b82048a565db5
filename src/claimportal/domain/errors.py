"""Domain-specific exceptions.

Every guard failure of the portal surfaces as a distinct ``PortalError``
subclass. They derive from ``ValueError`` so the API layer maps them to
client errors the same way it maps any other rejected input.
"""

from __future__ import annotations


class PortalError(ValueError):
    """Base class for portal guard failures."""

    code: str = "PORTAL_ERROR"
    default_message: str = "Portal request rejected"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class AlreadyClaimed(PortalError):
    code = "ALREADY_CLAIMED"
    default_message = "Account has already claimed"


class ClaimPeriodEnded(PortalError):
    code = "CLAIM_PERIOD_ENDED"
    default_message = "Claim period has ended"


class InvalidProof(PortalError):
    code = "INVALID_PROOF"
    default_message = "Invalid Merkle proof"


class ProofTooLong(PortalError):
    code = "PROOF_TOO_LONG"
    default_message = "Merkle proof exceeds maximum length"


class AmountZero(PortalError):
    code = "AMOUNT_ZERO"
    default_message = "Claim amount must be greater than zero"


class MaxAmountExceeded(PortalError):
    code = "MAX_AMOUNT_EXCEEDED"
    default_message = "Claim amount exceeds the per-claim maximum"


class PortalPaused(PortalError):
    code = "PORTAL_PAUSED"
    default_message = "Portal is paused"


class TimelockNotReady(PortalError):
    code = "TIMELOCK_NOT_READY"
    default_message = "Root update timelock has not elapsed"


class NoPendingRoot(PortalError):
    code = "NO_PENDING_ROOT"
    default_message = "No pending Merkle root update"


class InvalidRoot(PortalError):
    code = "INVALID_ROOT"
    default_message = "Merkle root cannot be zero"


class Unauthorized(PortalError):
    code = "UNAUTHORIZED"
    default_message = "Caller is not the portal admin"


class PortalNotInitialized(PortalError):
    code = "PORTAL_NOT_INITIALIZED"
    default_message = "Portal has not been initialized"


class UnsupportedHashAlgorithm(PortalError):
    code = "UNSUPPORTED_HASH_ALGORITHM"
    default_message = "Unsupported Merkle hash algorithm"


class InvalidCallerSignature(PortalError):
    code = "INVALID_SIGNATURE"
    default_message = "Invalid request signature"


class ReplayedRequest(Unauthorized):
    code = "REQUEST_REPLAYED"
    default_message = "Signed admin request has already been used"


class MintRejected(PortalError):
    """The mint collaborator definitely did not credit the account."""

    code = "MINT_REJECTED"
    default_message = "Token service rejected the mint"
