"""Retry delay helpers shared by the HTTP client.

All delays are in milliseconds. Jitter comes from ``os.urandom`` so the
helpers stay free of global RNG state.
"""

from __future__ import annotations
import asyncio
import os
from typing import Literal

__all__ = ["compute_backoff_delay_ms", "async_backoff_sleep"]

BackoffMode = Literal["exp_equal_jitter", "exp_full_jitter", "decorrelated"]


def _unit_random() -> float:
    return int.from_bytes(os.urandom(2), "big") / 65535.0


def compute_backoff_delay_ms(
    attempt: int,
    *,
    base_ms: int,
    jitter_ms: int,
    cap_ms: int | None = None,
    mode: BackoffMode = "exp_equal_jitter",
) -> int:
    """Delay before retry number *attempt* (1-indexed).

    Modes:
      - exp_equal_jitter: base * 2**(n-1) + uniform(0, jitter)
      - exp_full_jitter:  uniform(0, base * 2**(n-1) + jitter)
      - decorrelated:     max(base, uniform(0, 3 * base * 2**(n-2)))
    """
    n = max(1, int(attempt))
    grown = base_ms * (2 ** (n - 1))
    if mode == "exp_equal_jitter":
        delay = grown + _unit_random() * max(0, jitter_ms)
    elif mode == "exp_full_jitter":
        delay = _unit_random() * (grown + max(1, jitter_ms))
    else:
        prev = base_ms * (2 ** max(0, n - 2))
        delay = max(base_ms, _unit_random() * prev * 3)
    if cap_ms is not None:
        delay = min(delay, cap_ms)
    return max(0, int(delay))


async def async_backoff_sleep(
    attempt: int,
    *,
    base_ms: int,
    jitter_ms: int,
    cap_ms: int | None = None,
    mode: BackoffMode = "exp_equal_jitter",
) -> int:
    """Sleep for the computed delay and return it (ms)."""
    delay_ms = compute_backoff_delay_ms(attempt, base_ms=base_ms, jitter_ms=jitter_ms, cap_ms=cap_ms, mode=mode)
    await asyncio.sleep(delay_ms / 1000.0)
    return delay_ms
