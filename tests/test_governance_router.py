"""Unit tests for governance API routes."""

import unittest
from typing import Optional
from unittest.mock import AsyncMock

from cryptography.hazmat.primitives.asymmetric import ec
from fastapi import FastAPI
from fastapi.testclient import TestClient

from claimportal.api.dependencies import (
    get_governance_service,
    get_request_authenticator,
)
from claimportal.api.routers.governance import router
from claimportal.application.dtos import (
    GovernanceEventDTO,
    GovernanceResponseDTO,
    PendingRootDTO,
)
from claimportal.application.use_cases.authentication import RequestAuthenticator
from claimportal.crypto.certificates import (
    account_from_public_key_der_b64,
    generate_envelope,
    public_key_der_b64,
)
from claimportal.domain.errors import TimelockNotReady, Unauthorized
from claimportal.infrastructure.repositories import (
    USED_REQUEST_PREFIX,
    UsedRequestRepositoryImpl,
)
from tests.fixtures import GENESIS, FakeClock, InMemoryKeyValueStore

BASE = "/api/v1/portal/governance"


class TestGovernanceRouter(unittest.TestCase):
    """Test cases for governance router."""

    def setUp(self):
        """Set up test fixtures."""
        self.app = FastAPI()
        self.app.include_router(router, prefix="/api/v1/portal")

        self.private_key = ec.generate_private_key(ec.SECP256R1())
        self.public_key_der_b64 = public_key_der_b64(self.private_key.public_key())
        self.admin_account = account_from_public_key_der_b64(self.public_key_der_b64)

        self.clock = FakeClock()
        self.mock_service = AsyncMock()
        self.store = InMemoryKeyValueStore()
        self.authenticator = RequestAuthenticator(
            admin_request_ttl=300,
            clock=self.clock,
            used_requests=UsedRequestRepositoryImpl(self.store),
        )

        self.app.dependency_overrides[get_governance_service] = (
            lambda: self.mock_service
        )
        self.app.dependency_overrides[get_request_authenticator] = (
            lambda: self.authenticator
        )

        self.client = TestClient(self.app)

    def tearDown(self):
        """Clean up after tests."""
        self.app.dependency_overrides.clear()

    def _signed(
        self,
        action: str,
        issued_at: int = GENESIS,
        new_root: Optional[str] = None,
        nonce: Optional[str] = None,
    ) -> dict:
        payload = {"action": action, "issued_at": issued_at}
        if new_root is not None:
            payload["new_root"] = new_root
        if nonce is not None:
            payload["nonce"] = nonce
        envelope = generate_envelope(self.private_key, payload)
        return {
            "public_key_der_b64": self.public_key_der_b64,
            "payload_b64": envelope.payload_b64,
            "signature_b64": envelope.signature_b64,
        }

    def _response(self, action: str, **kwargs) -> GovernanceResponseDTO:
        return GovernanceResponseDTO(
            action=action, merkle_root=kwargs.pop("merkle_root", 0xABC), **kwargs
        )

    def test_propose_root_success(self):
        pending = PendingRootDTO(
            new_root=0xDEF, proposed_at=GENESIS, execute_after=GENESIS + 60
        )
        self.mock_service.propose_merkle_root.return_value = self._response(
            "propose_root", paused=False, pending=pending
        )

        response = self.client.post(
            f"{BASE}/root-proposals", json=self._signed("propose_root", new_root="0xdef")
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["pending"]["new_root"], "0xdef")
        self.mock_service.propose_merkle_root.assert_called_once_with(
            self.admin_account, 0xDEF
        )

    def test_propose_root_requires_new_root(self):
        response = self.client.post(
            f"{BASE}/root-proposals", json=self._signed("propose_root")
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"]["code"], "INVALID_ROOT")
        self.mock_service.propose_merkle_root.assert_not_called()

    def test_action_mismatch_is_forbidden(self):
        """A signed pause cannot be replayed as a root proposal."""
        response = self.client.post(f"{BASE}/root-proposals", json=self._signed("pause"))

        self.assertEqual(response.status_code, 403)
        self.mock_service.propose_merkle_root.assert_not_called()

    def test_expired_admin_request_is_forbidden(self):
        response = self.client.post(
            f"{BASE}/pause", json=self._signed("pause", issued_at=GENESIS - 301)
        )

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["detail"]["code"], "UNAUTHORIZED")
        self.mock_service.pause.assert_not_called()

    def test_replayed_admin_request_is_forbidden(self):
        """The same signed pause cannot be submitted twice inside its window."""
        self.mock_service.pause.return_value = self._response("pause", paused=True)
        body = self._signed("pause")

        first = self.client.post(f"{BASE}/pause", json=body)
        self.clock.advance(10)
        second = self.client.post(f"{BASE}/pause", json=body)

        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 403)
        self.assertEqual(second.json()["detail"]["code"], "REQUEST_REPLAYED")
        self.mock_service.pause.assert_called_once_with(self.admin_account)

    def test_resigned_payload_is_still_a_replay(self):
        self.mock_service.pause.return_value = self._response("pause", paused=True)

        first = self.client.post(f"{BASE}/pause", json=self._signed("pause"))
        second = self.client.post(f"{BASE}/pause", json=self._signed("pause"))

        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 403)
        self.assertEqual(self.mock_service.pause.call_count, 1)

    def test_nonce_allows_repeating_an_action(self):
        self.mock_service.pause.return_value = self._response("pause", paused=True)

        first = self.client.post(
            f"{BASE}/pause", json=self._signed("pause", nonce="a")
        )
        second = self.client.post(
            f"{BASE}/pause", json=self._signed("pause", nonce="b")
        )

        self.assertEqual(first.status_code, 200)
        self.assertEqual(second.status_code, 200)
        self.assertEqual(self.mock_service.pause.call_count, 2)

    def test_used_request_expires_after_freshness_window(self):
        self.mock_service.pause.return_value = self._response("pause", paused=True)

        self.client.post(f"{BASE}/pause", json=self._signed("pause"))

        used = [k for k in self.store.ttls if k.startswith(USED_REQUEST_PREFIX)]
        self.assertEqual(len(used), 1)
        self.assertEqual(self.store.ttls[used[0]], 601)

    def test_rejected_request_is_not_recorded(self):
        self.client.post(
            f"{BASE}/pause", json=self._signed("pause", issued_at=GENESIS - 301)
        )

        self.assertEqual(self.store.ttls, {})

    def test_non_admin_is_forbidden(self):
        self.mock_service.pause.side_effect = Unauthorized()

        response = self.client.post(f"{BASE}/pause", json=self._signed("pause"))

        self.assertEqual(response.status_code, 403)

    def test_bad_signature(self):
        body = self._signed("pause")
        body["signature_b64"] = self._signed("unpause")["signature_b64"]

        response = self.client.post(f"{BASE}/pause", json=body)

        self.assertEqual(response.status_code, 401)
        self.mock_service.pause.assert_not_called()

    def test_execute_before_timelock(self):
        self.mock_service.execute_merkle_root_update.side_effect = TimelockNotReady()

        response = self.client.post(
            f"{BASE}/root-proposals/execute", json=self._signed("execute_root")
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"]["code"], "TIMELOCK_NOT_READY")
        self.mock_service.execute_merkle_root_update.assert_called_once_with(
            self.admin_account
        )

    def test_pause_and_unpause(self):
        self.mock_service.pause.return_value = self._response("pause", paused=True)
        self.mock_service.unpause.return_value = self._response("unpause", paused=False)

        paused = self.client.post(f"{BASE}/pause", json=self._signed("pause"))
        unpaused = self.client.post(f"{BASE}/unpause", json=self._signed("unpause"))

        self.assertEqual(paused.status_code, 200)
        self.assertTrue(paused.json()["paused"])
        self.assertEqual(unpaused.status_code, 200)
        self.assertFalse(unpaused.json()["paused"])

    def test_unexpected_failure(self):
        self.mock_service.unpause.side_effect = RuntimeError("redis gone")

        response = self.client.post(f"{BASE}/unpause", json=self._signed("unpause"))

        self.assertEqual(response.status_code, 500)

    def test_get_pending_root_empty(self):
        self.mock_service.get_pending_root.return_value = None

        response = self.client.get(f"{BASE}/pending-root")

        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.json())

    def test_list_governance_events(self):
        self.mock_service.list_governance_events.return_value = [
            GovernanceEventDTO(kind="paused", timestamp=GENESIS)
        ]

        response = self.client.get(f"{BASE}/events")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()[0]["kind"], "paused")
        self.mock_service.list_governance_events.assert_called_once_with(
            skip=0, limit=100
        )


if __name__ == "__main__":
    unittest.main()
