"""Shared Pydantic serializers used across DTOs/entities."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import field_serializer, field_validator

from ...crypto.field import felt_to_hex, to_field

FELT_FIELDS = ("account", "root", "new_root", "admin_account", "merkle_root")
AMOUNT_FIELDS = ("amount", "max_claim_amount", "total_claimed", "balance")
PROOF_FIELDS = ("proof",)


def _parse_felt(value: Any) -> Any:
    if value is None:
        return None
    return to_field(value)


def _parse_amount(value: Any) -> Any:
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped.isdigit():
            raise ValueError("Amount must be a non-negative decimal integer string")
        return int(stripped)
    return value


class FeltSerializersMixin:
    """Render field elements as ``0x`` hex and amounts as decimal strings.

    Amounts are 256-bit; keeping them as strings in stored JSON lets the
    Redis Lua scripts (which only have doubles) pass them through untouched.
    Uses ``check_fields=False`` so models can declare any subset of fields.
    """

    @field_validator(*FELT_FIELDS, mode="before", check_fields=False)
    @classmethod
    def parse_felt_fields(cls, value: Any) -> Any:
        return _parse_felt(value)

    @field_validator(*AMOUNT_FIELDS, mode="before", check_fields=False)
    @classmethod
    def parse_amount_fields(cls, value: Any) -> Any:
        return _parse_amount(value)

    @field_validator(*PROOF_FIELDS, mode="before", check_fields=False)
    @classmethod
    def parse_proof_fields(cls, value: Any) -> Any:
        if not isinstance(value, (list, tuple)):
            raise ValueError("Proof must be a list of field elements")
        return [to_field(item) for item in value]

    @field_serializer(*FELT_FIELDS, check_fields=False)
    def serialize_felt_fields(self, value: Optional[int]) -> Optional[str]:
        return felt_to_hex(value) if value is not None else None

    @field_serializer(*AMOUNT_FIELDS, check_fields=False)
    def serialize_amount_fields(self, value: Optional[int]) -> Optional[str]:
        return str(value) if value is not None else None

    @field_serializer(*PROOF_FIELDS, check_fields=False)
    def serialize_proof_fields(self, value: list[int]) -> list[str]:
        return [felt_to_hex(item) for item in value]
