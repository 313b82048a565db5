from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, field_validator

from claimportal.crypto.certificates import (
    account_from_public_key_der_b64,
    load_public_key_from_der_b64,
)
from claimportal.crypto.field import U256_BOUND, felt_from_hex
from claimportal.crypto.merkle import SHA256, SUPPORTED_HASH_ALGS

DEFAULT_ROOT_TIMELOCK_DELAY = 172800  # 48 hours
DEFAULT_ADMIN_REQUEST_TTL = 300


class Settings(BaseModel):
    database_url: str

    api_host: str
    api_port: int
    api_debug: bool
    api_cors_origins: list[str]

    app_name: str
    app_version: str

    merkle_root: str
    claim_deadline: int
    max_claim_amount: int
    root_timelock_delay: int = DEFAULT_ROOT_TIMELOCK_DELAY
    hash_alg: str = SHA256

    admin_public_key_der_b64: str
    admin_request_ttl: int = DEFAULT_ADMIN_REQUEST_TTL

    token_base_url: Optional[str] = None

    @field_validator("merkle_root")
    @classmethod
    def validate_merkle_root(cls, v: str) -> str:
        """Validate that the initial root is a non-zero field element in hex."""
        if felt_from_hex(v) == 0:
            raise ValueError("Merkle root cannot be zero")
        return v

    @field_validator("claim_deadline", "root_timelock_delay")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Must be a non-negative number of seconds")
        return v

    @field_validator("max_claim_amount")
    @classmethod
    def validate_max_claim_amount(cls, v: int) -> int:
        if v <= 0 or v >= U256_BOUND:
            raise ValueError("Max claim amount must be an unsigned 256-bit integer > 0")
        return v

    @field_validator("hash_alg")
    @classmethod
    def validate_hash_alg(cls, v: str) -> str:
        if v not in SUPPORTED_HASH_ALGS:
            raise ValueError(f"Unsupported Merkle hash algorithm: {v}")
        return v

    @field_validator("admin_public_key_der_b64")
    @classmethod
    def validate_admin_public_key(cls, v: str) -> str:
        """Validate that the admin key is a base64 DER-encoded EC public key."""
        if not v:
            raise ValueError("Admin public key cannot be empty")
        try:
            load_public_key_from_der_b64(v)
        except Exception as e:
            raise ValueError(f"Invalid admin public key: {e}") from e
        return v

    @property
    def merkle_root_felt(self) -> int:
        return felt_from_hex(self.merkle_root)

    @property
    def admin_account(self) -> int:
        return account_from_public_key_der_b64(self.admin_public_key_der_b64)


def get_settings() -> Settings:
    api_debug_str = os.environ.get("PORTAL_API_DEBUG")
    api_cors_origins_str = os.environ.get("PORTAL_API_CORS_ORIGINS")
    api_port_str = os.environ.get("PORTAL_API_PORT")
    claim_deadline_str = os.environ.get("PORTAL_CLAIM_DEADLINE")
    max_claim_amount_str = os.environ.get("PORTAL_MAX_CLAIM_AMOUNT")
    timelock_str = os.environ.get("PORTAL_ROOT_TIMELOCK_DELAY")
    ttl_str = os.environ.get("PORTAL_ADMIN_REQUEST_TTL")

    return Settings(
        database_url=os.environ.get("PORTAL_DATABASE_URL"),
        api_host=os.environ.get("PORTAL_API_HOST", "0.0.0.0"),
        api_port=int(api_port_str) if api_port_str is not None else 8000,
        api_debug=api_debug_str.lower() == "true"
        if api_debug_str is not None
        else False,
        api_cors_origins=api_cors_origins_str.split(",")
        if api_cors_origins_str is not None
        else ["*"],
        app_name=os.environ.get("PORTAL_APP_NAME", "ClaimPortal"),
        app_version=os.environ.get("PORTAL_APP_VERSION", "0.1.0"),
        merkle_root=os.environ.get("PORTAL_MERKLE_ROOT"),
        claim_deadline=int(claim_deadline_str)
        if claim_deadline_str is not None
        else None,
        max_claim_amount=int(max_claim_amount_str)
        if max_claim_amount_str is not None
        else None,
        root_timelock_delay=int(timelock_str)
        if timelock_str is not None
        else DEFAULT_ROOT_TIMELOCK_DELAY,
        hash_alg=os.environ.get("PORTAL_HASH_ALG", SHA256),
        admin_public_key_der_b64=os.environ.get("PORTAL_ADMIN_PUBLIC_KEY_DER_B64"),
        admin_request_ttl=int(ttl_str)
        if ttl_str is not None
        else DEFAULT_ADMIN_REQUEST_TTL,
        token_base_url=os.environ.get("PORTAL_TOKEN_BASE_URL") or None,
    )
