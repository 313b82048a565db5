"""Central registry for Redis Lua scripts used by the portal.

The scripts are registered at application startup for EVALSHA optimization.
Each one is a single atomic step against the portal state, which is what
gives claims and governance actions their all-or-nothing semantics.

Return Code Conventions:
    Scripts that can be rejected return ``{status, detail}`` where status is:

    - 0: No update - the precondition did not hold (account already claimed,
         portal already initialized, nothing pending). ``detail`` carries the
         current stored value when there is one.
    - 1: Success - the state was updated. ``detail`` carries the new value.
    - 2: Portal missing - the config key does not exist.
    - 3: Blocked - the portal is paused (commit_claim) or the timelock has
         not elapsed (execute_root).
    - 4: Stale root - the active root differs from the one the claim proof
         was verified against.

Amounts are 256-bit and Lua numbers are doubles, so running totals and
balances are kept as decimal strings and added/subtracted digit by digit.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .storage import KeyValueStore

_BIGNUM_HELPERS = """
    local function strip_zeros(s)
        local out = string.gsub(s, '^0+', '')
        if out == '' then
            return '0'
        end
        return out
    end

    local function bigadd(a, b)
        local digits = {}
        local carry = 0
        local i, j = #a, #b
        while i > 0 or j > 0 or carry > 0 do
            local da = i > 0 and tonumber(string.sub(a, i, i)) or 0
            local db = j > 0 and tonumber(string.sub(b, j, j)) or 0
            local s = da + db + carry
            digits[#digits + 1] = tostring(s % 10)
            carry = math.floor(s / 10)
            i = i - 1
            j = j - 1
        end
        return strip_zeros(string.reverse(table.concat(digits)))
    end

    -- requires a >= b
    local function bigsub(a, b)
        local digits = {}
        local borrow = 0
        local i, j = #a, #b
        while i > 0 do
            local da = tonumber(string.sub(a, i, i)) - borrow
            local db = j > 0 and tonumber(string.sub(b, j, j)) or 0
            if da < db then
                da = da + 10
                borrow = 1
            else
                borrow = 0
            end
            digits[#digits + 1] = tostring(da - db)
            i = i - 1
            j = j - 1
        end
        return strip_zeros(string.reverse(table.concat(digits)))
    end
"""

PORTAL_SCRIPTS = {
    "initialize_portal": """
        local config_key = KEYS[1]
        local root_key = KEYS[2]
        local paused_key = KEYS[3]
        local total_key = KEYS[4]
        local config_json = ARGV[1]
        local root_hex = ARGV[2]

        -- Config is immutable once set
        local existing = redis.call('GET', config_key)
        if existing then
            return {0, existing}
        end

        redis.call('SET', config_key, config_json)
        redis.call('SET', root_key, root_hex)
        redis.call('SET', paused_key, '0')
        if redis.call('EXISTS', total_key) == 0 then
            redis.call('SET', total_key, '0')
        end
        return {1, config_json}
    """,
    "commit_claim": _BIGNUM_HELPERS
    + """
        local claim_key = KEYS[1]
        local config_key = KEYS[2]
        local root_key = KEYS[3]
        local paused_key = KEYS[4]
        local total_key = KEYS[5]
        local record_json = ARGV[1]
        local amount = ARGV[2]
        local expected_root = ARGV[3]

        if redis.call('EXISTS', config_key) == 0 then
            return {2, ''}
        end
        if redis.call('GET', paused_key) == '1' then
            return {3, ''}
        end

        local existing = redis.call('GET', claim_key)
        if existing then
            return {0, existing}
        end

        if redis.call('GET', root_key) ~= expected_root then
            return {4, ''}
        end

        -- Effects: claimed mark and aggregate total, in one step
        redis.call('SET', claim_key, record_json)
        local total = redis.call('GET', total_key) or '0'
        local new_total = bigadd(total, amount)
        redis.call('SET', total_key, new_total)
        return {1, new_total}
    """,
    "revert_claim": _BIGNUM_HELPERS
    + """
        local claim_key = KEYS[1]
        local total_key = KEYS[2]
        local record_json = ARGV[1]
        local amount = ARGV[2]

        if redis.call('GET', claim_key) ~= record_json then
            return {0, ''}
        end

        redis.call('DEL', claim_key)
        local total = redis.call('GET', total_key) or '0'
        local new_total = bigsub(total, amount)
        redis.call('SET', total_key, new_total)
        return {1, new_total}
    """,
    "execute_root": """
        local pending_key = KEYS[1]
        local root_key = KEYS[2]
        local now = tonumber(ARGV[1])

        local pending_raw = redis.call('GET', pending_key)
        if not pending_raw then
            return {0, ''}
        end

        local pending = cjson.decode(pending_raw)
        if now < tonumber(pending.execute_after) then
            return {3, pending_raw}
        end

        redis.call('SET', root_key, pending.new_root)
        redis.call('DEL', pending_key)
        return {1, pending_raw}
    """,
    "append_event": """
        local seq_key = KEYS[1]
        local index_key = KEYS[2]
        local event_prefix = ARGV[1]
        local event_json = ARGV[2]

        local seq = redis.call('INCR', seq_key)
        redis.call('SET', event_prefix .. seq, event_json)
        redis.call('ZADD', index_key, seq, seq)
        return seq
    """,
    "credit_balance": _BIGNUM_HELPERS
    + """
        local balance_key = KEYS[1]
        local amount = ARGV[1]

        local balance = redis.call('GET', balance_key) or '0'
        local new_balance = bigadd(balance, amount)
        redis.call('SET', balance_key, new_balance)
        return new_balance
    """,
}


async def register_portal_scripts(store: "KeyValueStore") -> None:
    """Load every portal script into the store's script cache."""
    for name, script in PORTAL_SCRIPTS.items():
        await store.register_script(name, script)
