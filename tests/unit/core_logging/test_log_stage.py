import asyncio
import io, json
from contextlib import redirect_stdout

from core_logging import get_logger, log_stage


def _events(buf):
    return [json.loads(line)["event"] for line in buf.getvalue().splitlines() if line.startswith("{")]


def test_log_stage_imperative():
    buf = io.StringIO()
    logger = get_logger("dashboard.log_stage")
    with redirect_stdout(buf):
        log_stage(logger, "unit", "event", request_id="abc123")
    assert _events(buf) == ["event"]


def test_log_stage_decorator_sync():
    logger = get_logger("dashboard.log_stage_sync")

    @log_stage(logger, "unit", "event.sync")
    def add(a, b):
        return a + b

    buf = io.StringIO()
    with redirect_stdout(buf):
        assert add(2, 3) == 5
    assert _events(buf) == ["event.sync.done"]


def test_log_stage_decorator_async():
    logger = get_logger("dashboard.log_stage_async")

    @log_stage(logger, "unit", "event.async")
    async def mul(a, b):
        return a * b

    assert asyncio.run(mul(4, 5)) == 20


def test_log_stage_context_manager():
    logger = get_logger("dashboard.log_stage_ctx")
    buf = io.StringIO()
    with redirect_stdout(buf):
        with log_stage(logger, "unit", "event.ctx").ctx(extra="value"):
            pass
    assert _events(buf) == ["event.ctx", "event.ctx.start", "event.ctx.done"]


def test_cache_hit_is_debug_only():
    from core_logging import log_cache_hit, log_cache_miss

    logger = get_logger("dashboard.log_stage_cache")
    buf = io.StringIO()
    with redirect_stdout(buf):
        log_cache_hit(logger, namespace="schema", key="urn:adsk.dtm:x")
        log_cache_miss(logger, namespace="schema", key="urn:adsk.dtm:x", shared=True)
    lines = [json.loads(line) for line in buf.getvalue().splitlines()]
    assert [rec["event"] for rec in lines] == ["cache.miss"]
    assert lines[0]["meta"]["shared"] is True
    assert lines[0]["meta"]["key_fp"].startswith("sha256:")
