"""Turn signed envelopes into authenticated callers.

A caller proves control of an account by signing the request payload with
the EC key whose DER encoding the account is derived from.
"""

from __future__ import annotations

import hashlib
from typing import Optional

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm

from ...crypto.certificates import (
    Envelope,
    PayloadB64,
    SignatureB64,
    account_from_public_key_der_b64,
    load_public_key_from_der_b64,
    verify_envelope_and_get_payload_bytes,
)
from ...domain.errors import InvalidCallerSignature, ReplayedRequest, Unauthorized
from ...domain.repositories import UsedRequestRepository
from ...domain.shared import Clock, system_clock
from ..dtos import AdminAction, AdminActionPayload, ClaimPayload, SignedRequestDTO


class RequestAuthenticator:
    """Verifies request signatures and decodes their payloads."""

    def __init__(
        self,
        admin_request_ttl: int = 300,
        clock: Clock = system_clock,
        used_requests: Optional[UsedRequestRepository] = None,
    ):
        self.admin_request_ttl = admin_request_ttl
        self.clock = clock
        self.used_requests = used_requests

    @staticmethod
    def verify(dto: SignedRequestDTO) -> tuple[int, bytes]:
        """Return the caller account and the verified payload bytes.

        Raises:
            InvalidCallerSignature: On a malformed key, bad encoding or a
                signature that does not verify.
        """
        try:
            public_key = load_public_key_from_der_b64(dto.public_key_der_b64)
        except (ValueError, UnsupportedAlgorithm):
            raise InvalidCallerSignature("Malformed public key")

        envelope = Envelope(
            payload_b64=PayloadB64(dto.payload_b64),
            signature_b64=SignatureB64(dto.signature_b64),
        )
        try:
            payload_bytes = verify_envelope_and_get_payload_bytes(public_key, envelope)
        except InvalidSignature:
            raise InvalidCallerSignature()
        except ValueError:
            raise InvalidCallerSignature("Malformed envelope encoding")

        return account_from_public_key_der_b64(dto.public_key_der_b64), payload_bytes

    def authenticate_claim(self, dto: SignedRequestDTO) -> tuple[int, ClaimPayload]:
        caller, payload_bytes = self.verify(dto)
        return caller, ClaimPayload.model_validate_json(payload_bytes)

    async def authenticate_admin(
        self, dto: SignedRequestDTO, action: AdminAction
    ) -> tuple[int, AdminActionPayload]:
        """Verify an admin envelope for ``action``.

        Whether the caller actually is the admin is decided by the
        governance service against the stored config.

        Each (key, payload) pair is accepted once. A repeat inside the
        freshness window raises ``ReplayedRequest``; admins sending the same
        action twice in one second vary ``nonce``.
        """
        caller, payload_bytes = self.verify(dto)
        payload = AdminActionPayload.model_validate_json(payload_bytes)

        if payload.action != action:
            raise Unauthorized(
                f"Signed action '{payload.action}' does not match '{action}'"
            )
        if abs(self.clock() - payload.issued_at) > self.admin_request_ttl:
            raise Unauthorized("Admin request expired")

        if self.used_requests is None:
            raise RuntimeError("Admin requests need a used-request repository")
        digest = hashlib.sha256(
            dto.public_key_der_b64.encode("ascii") + b"|" + payload_bytes
        ).hexdigest()
        # Outlives the window on both sides of issued_at
        ttl = 2 * self.admin_request_ttl + 1
        if not await self.used_requests.mark_used(digest, ttl):
            raise ReplayedRequest()
        return caller, payload
