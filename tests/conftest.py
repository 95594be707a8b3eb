"""
Global conftest for the tandem-stats tests.

1. A unified-diff assertion helper for clearer dict-vs-dict failures.
2. An autouse fixture that drops the shared HTTP client after each test,
   so a client patched with a mock transport never leaks into the next one.
"""

import json
import difflib

import pytest


def pytest_assertrepr_compare(op, left, right):
    """Pretty unified-diff output when comparing two dicts with ==."""
    if isinstance(left, dict) and isinstance(right, dict) and op == "==":
        lhs = json.dumps(left, indent=2, sort_keys=True, default=str).splitlines()
        rhs = json.dumps(right, indent=2, sort_keys=True, default=str).splitlines()
        return [""] + list(
            difflib.unified_diff(lhs, rhs, fromfile="left", tofile="right")
        )


@pytest.fixture(autouse=True)
def _reset_shared_http_client():
    yield
    import core_http.client as http_client
    http_client._shared_client = None
