"""Field element codec: the fixed-width units the portal hash consumes."""

from __future__ import annotations

from typing import Final, Union

# STARK field prime: 2^251 + 17 * 2^192 + 1
FIELD_PRIME: Final[int] = 2**251 + 17 * 2**192 + 1

FELT_BYTES: Final[int] = 32
U128_BOUND: Final[int] = 1 << 128
U256_BOUND: Final[int] = 1 << 256
MASK_128: Final[int] = U128_BOUND - 1

FeltLike = Union[int, str]


def felt_from_hex(text: str) -> int:
    """Parse a ``0x``-prefixed (or bare) hex string into a field element."""
    if not isinstance(text, str):
        raise ValueError("Field element hex must be a string")
    stripped = text.strip().lower()
    if stripped.startswith("0x"):
        stripped = stripped[2:]
    if not stripped:
        raise ValueError("Field element hex cannot be empty")
    try:
        value = int(stripped, 16)
    except ValueError as e:
        raise ValueError(f"Invalid field element hex: {text!r}") from e
    return to_field(value)


def felt_to_hex(value: int) -> str:
    """Render a field element as lowercase ``0x`` hex."""
    return hex(to_field(value))


def to_field(value: FeltLike) -> int:
    """Coerce an int or hex string into a field element, range-checked."""
    if isinstance(value, str):
        return felt_from_hex(value)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Field element must be int or hex string, got {type(value)!r}")
    if value < 0 or value >= FIELD_PRIME:
        raise ValueError("Field element out of range [0, FIELD_PRIME)")
    return value


def felt_to_be32(value: int) -> bytes:
    """Fixed-width big-endian encoding fed to the hash function.

    Accepts any value below 2^256 so that 128-bit amount limbs and field
    elements share one encoding.
    """
    if value < 0 or value >= U256_BOUND:
        raise ValueError("Value does not fit in 32 bytes")
    return value.to_bytes(FELT_BYTES, "big")


def split_u256(amount: int) -> tuple[int, int]:
    """Split an unsigned 256-bit amount into (low, high) 128-bit limbs."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError("Amount must be an integer")
    if amount < 0 or amount >= U256_BOUND:
        raise ValueError("Amount must be an unsigned 256-bit integer")
    return amount & MASK_128, amount >> 128


def join_u256(low: int, high: int) -> int:
    """Recombine 128-bit limbs into the full amount."""
    if not (0 <= low < U128_BOUND) or not (0 <= high < U128_BOUND):
        raise ValueError("Limbs must be unsigned 128-bit integers")
    return (high << 128) | low
