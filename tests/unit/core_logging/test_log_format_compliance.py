import io, json
from contextlib import redirect_stdout

from core_logging import ErrorCode, bind_request_id, get_logger, log_stage, record_error


def _lines(buf: io.StringIO):
    out = []
    for line in buf.getvalue().splitlines():
        try:
            out.append(json.loads(line))
        except json.JSONDecodeError:
            continue
    return out


def test_log_envelope_compliance(monkeypatch):
    """Fixed keys stay top-level; stage-specific fields nest under *meta*."""
    monkeypatch.delenv("SERVICE_NAME", raising=False)
    buf = io.StringIO()
    logger = get_logger("dashboard.unit_test")

    with redirect_stdout(buf):
        log_stage(
            logger,
            "resolve",
            "resolve.batch",
            request_id="req123",
            model_urn="urn:adsk.dtm:abc",
            references=8,
            failed_models=[],
        )

    payload = next(p for p in _lines(buf) if p["event"] == "resolve.batch")
    assert "ts" in payload
    assert payload["level"] == "INFO"
    assert payload["service"] == "dashboard.unit_test"
    assert payload["stage"] == "resolve"
    assert payload["request_id"] == "req123"
    assert payload["model_urn"] == "urn:adsk.dtm:abc"
    assert payload["meta"] == {"references": 8, "failed_models": []}


def test_bound_request_id_is_injected():
    buf = io.StringIO()
    logger = get_logger("dashboard.unit_test_rid")
    bind_request_id("rid-42")
    try:
        with redirect_stdout(buf):
            logger.info("ping", stage="unit")
    finally:
        bind_request_id(None)
    assert _lines(buf)[-1]["request_id"] == "rid-42"


def test_record_error_shape():
    buf = io.StringIO()
    logger = get_logger("dashboard.unit_test_err")

    with redirect_stdout(buf):
        record_error(
            ErrorCode.malformed_xref,
            where="resolver.decode",
            message="xref decodes to 36 bytes, expected 40",
            logger=logger,
            level="WARNING",
            stage="resolve",
            action="reference_dropped",
            context={"source_key": "s1"},
        )

    rec = _lines(buf)[-1]
    assert rec["level"] == "WARNING"
    assert rec["event"] == "error"
    assert rec["stage"] == "resolve"
    assert rec["error_code"] == "malformed_xref"
    assert rec["where"] == "resolver.decode"
    assert rec["meta"]["action"] == "reference_dropped"
    assert rec["meta"]["context"] == {"source_key": "s1"}


def test_reserved_keys_are_renamed():
    buf = io.StringIO()
    logger = get_logger("dashboard.unit_test_reserved")
    with redirect_stdout(buf):
        logger.info("evt", message="hello", module="resolver")
    rec = _lines(buf)[-1]
    assert rec["message"] == "hello"
    assert rec["meta"]["meta_module"] == "resolver"
