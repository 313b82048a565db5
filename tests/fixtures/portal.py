"""Portal parameters shared by use case tests."""

from __future__ import annotations

from .clock import GENESIS

CLAIM_DEADLINE = GENESIS + 30 * 24 * 3600
MAX_CLAIM_AMOUNT = 10_000
TIMELOCK_DELAY = 48 * 3600

# Other eligible accounts next to the claimant under test
OTHER_ENTRIES = [(0x20, 2000), (0x30, 3000), (0x40, 4000)]
CLAIMANT_AMOUNT = 1000
