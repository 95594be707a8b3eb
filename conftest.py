"""
Project-wide PyTest bootstrap.

Puts the project root and every ``packages/*/src`` and ``services/*/src``
directory on ``sys.path`` so the suite runs without an editable install.
"""

from pathlib import Path
import sys

ROOT = Path(__file__).parent.resolve()
_paths = (
    [str(ROOT)]                                           # project root (tests.helpers)
    + [str(p) for p in (ROOT / "packages").glob("*/src")]   # packages/*/src
    + [str(p) for p in (ROOT / "services").glob("*/src")] # services/*/src
)
# Preserve order but ensure local paths take precedence
for _p in reversed(_paths):
    if _p not in sys.path:
        sys.path.insert(0, _p)

# Fail early with a clear message if the async plugin is missing.
try:
    import pytest_asyncio  # noqa: F401
except ImportError as exc:
    raise RuntimeError(
        "pytest_asyncio is required for async tests – install the 'test' extra."
    ) from exc
