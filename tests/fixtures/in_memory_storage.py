"""In-memory implementation of KeyValueStore for testing."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, List, Optional

from claimportal.infrastructure.storage import KeyValueStore


class InMemoryKeyValueStore(KeyValueStore):
    """In-memory implementation of KeyValueStore for fast testing.

    Registered portal scripts are dispatched by name to Python versions of
    the Lua logic. Each runs without awaiting, so like a Redis script it is
    atomic with respect to other coroutines.
    """

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._sorted_sets: dict[str, list[tuple[str, float]]] = {}
        self.ttls: dict[str, int] = {}
        self._script_cache: dict[str, str] = {}
        self._script_sources: dict[str, str] = {}
        self._scripts: dict[str, Callable[[List[str], List[str]], Any]] = {
            "initialize_portal": self._execute_initialize_portal,
            "commit_claim": self._execute_commit_claim,
            "revert_claim": self._execute_revert_claim,
            "execute_root": self._execute_execute_root,
            "append_event": self._execute_append_event,
            "credit_balance": self._execute_credit_balance,
        }

    async def get(self, key: str) -> Optional[str]:
        # Yield like a network round trip so concurrent callers interleave
        await asyncio.sleep(0)
        return self._data.get(key)

    async def mget(self, keys: List[str]) -> List[Optional[str]]:
        await asyncio.sleep(0)
        return [self._data.get(key) for key in keys]

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        # Expiry is recorded, not enforced
        if key in self._data:
            return False
        self._data[key] = value
        self.ttls[key] = ttl_seconds
        return True

    async def zrevrange(self, key: str, start: int, end: int) -> list[str]:
        if key not in self._sorted_sets:
            return []
        members = [m for m, _ in self._sorted_sets[key]]
        # Redis zrevrange is inclusive on both ends
        slice_end = None if end == -1 else end + 1
        return members[start:slice_end]

    async def register_script(self, name: str, script: str) -> str:
        """Register a script (return mock SHA1)."""
        self._script_cache[name] = f"sha1_{name}"
        self._script_sources[name] = script
        return f"sha1_{name}"

    async def run_script(self, name: str, keys: List[str], args: List[str]) -> Any:
        if name not in self._script_cache:
            raise ValueError(f"Script '{name}' not registered")
        if name not in self._scripts:
            raise NotImplementedError(f"Script '{name}' has no in-memory version")
        return self._scripts[name](keys, args)

    def clear(self) -> None:
        self._data.clear()
        self._sorted_sets.clear()
        self.ttls.clear()

    def _zadd(self, key: str, score: float, member: str) -> int:
        entries = self._sorted_sets.setdefault(key, [])
        existed = any(m == member for m, _ in entries)
        entries[:] = [(m, s) for m, s in entries if m != member]
        entries.append((member, score))
        # Descending by score
        entries.sort(key=lambda x: x[1], reverse=True)
        return 0 if existed else 1

    def _execute_initialize_portal(self, keys: List[str], args: List[str]) -> list[Any]:
        config_key, root_key, paused_key, total_key = keys
        config_json, root_hex = args

        existing = self._data.get(config_key)
        if existing:
            return [0, existing]

        self._data[config_key] = config_json
        self._data[root_key] = root_hex
        self._data[paused_key] = "0"
        self._data.setdefault(total_key, "0")
        return [1, config_json]

    def _execute_commit_claim(self, keys: List[str], args: List[str]) -> list[Any]:
        claim_key, config_key, root_key, paused_key, total_key = keys
        record_json, amount, expected_root = args

        if config_key not in self._data:
            return [2, ""]
        if self._data.get(paused_key) == "1":
            return [3, ""]

        existing = self._data.get(claim_key)
        if existing:
            return [0, existing]

        if self._data.get(root_key) != expected_root:
            return [4, ""]

        self._data[claim_key] = record_json
        new_total = str(int(self._data.get(total_key, "0")) + int(amount))
        self._data[total_key] = new_total
        return [1, new_total]

    def _execute_revert_claim(self, keys: List[str], args: List[str]) -> list[Any]:
        claim_key, total_key = keys
        record_json, amount = args

        if self._data.get(claim_key) != record_json:
            return [0, ""]

        del self._data[claim_key]
        new_total = str(int(self._data.get(total_key, "0")) - int(amount))
        self._data[total_key] = new_total
        return [1, new_total]

    def _execute_execute_root(self, keys: List[str], args: List[str]) -> list[Any]:
        pending_key, root_key = keys
        now = int(args[0])

        pending_raw = self._data.get(pending_key)
        if not pending_raw:
            return [0, ""]

        pending = json.loads(pending_raw)
        if now < int(pending["execute_after"]):
            return [3, pending_raw]

        self._data[root_key] = pending["new_root"]
        del self._data[pending_key]
        return [1, pending_raw]

    def _execute_append_event(self, keys: List[str], args: List[str]) -> int:
        seq_key, index_key = keys
        event_prefix, event_json = args

        seq = int(self._data.get(seq_key, "0")) + 1
        self._data[seq_key] = str(seq)
        self._data[f"{event_prefix}{seq}"] = event_json
        self._zadd(index_key, seq, str(seq))
        return seq

    def _execute_credit_balance(self, keys: List[str], args: List[str]) -> str:
        balance_key = keys[0]
        new_balance = str(int(self._data.get(balance_key, "0")) + int(args[0]))
        self._data[balance_key] = new_balance
        return new_balance
