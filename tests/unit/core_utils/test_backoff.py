import asyncio

from core_utils.backoff import async_backoff_sleep, compute_backoff_delay_ms


def test_equal_jitter_grows_and_respects_cap():
    for attempt in range(1, 6):
        d = compute_backoff_delay_ms(attempt, base_ms=50, jitter_ms=0, cap_ms=300)
        assert d == min(50 * 2 ** (attempt - 1), 300)


def test_full_jitter_stays_in_range():
    for _ in range(50):
        d = compute_backoff_delay_ms(3, base_ms=50, jitter_ms=100, mode="exp_full_jitter")
        assert 0 <= d <= 300


def test_decorrelated_never_below_base():
    for _ in range(50):
        d = compute_backoff_delay_ms(2, base_ms=50, jitter_ms=200, cap_ms=2000, mode="decorrelated")
        assert 50 <= d <= 150


def test_async_sleep_returns_delay():
    assert asyncio.run(async_backoff_sleep(1, base_ms=1, jitter_ms=0)) == 1
