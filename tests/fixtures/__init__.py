"""Test fixtures for in-memory implementations."""

from .clock import GENESIS, FakeClock
from .in_memory_storage import InMemoryKeyValueStore
from .minters import BlockingMinter, FailingMinter, RecordingMinter

__all__ = [
    "BlockingMinter",
    "FakeClock",
    "GENESIS",
    "FailingMinter",
    "InMemoryKeyValueStore",
    "RecordingMinter",
]
