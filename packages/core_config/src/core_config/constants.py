import os

# HTTP retry/backoff controls
HTTP_RETRY_BASE_MS = int(os.getenv("HTTP_RETRY_BASE_MS", "50"))
HTTP_RETRY_JITTER_MS = int(os.getenv("HTTP_RETRY_JITTER_MS", "200"))
HTTP_RETRY_CAP_MS = int(os.getenv("HTTP_RETRY_CAP_MS", "2000"))

# Stage budgets (ms). "scan" covers element fetches, "schema" attribute catalogs.
TIMEOUT_SCAN_MS = int(os.getenv("TIMEOUT_SCAN_MS", "10000"))
TIMEOUT_SCHEMA_MS = int(os.getenv("TIMEOUT_SCHEMA_MS", "5000"))
TIMEOUT_DEFAULT_MS = int(os.getenv("TIMEOUT_DEFAULT_MS", "5000"))

_STAGE_TIMEOUTS_MS = {
    "scan": TIMEOUT_SCAN_MS,
    "schema": TIMEOUT_SCHEMA_MS,
}

# Store endpoints
DEFAULT_TANDEM_BASE_URL = "https://developer.api.autodesk.com/tandem/v1"

# Columns requested when resolving a reference target
TARGET_COLUMNS = ("n:c", "n:!n", "n:n", "n:!v", "n:v")


def timeout_for_stage(stage: str) -> float:
    """Stage budget in seconds; unknown stages use the default budget."""
    return _STAGE_TIMEOUTS_MS.get(stage, TIMEOUT_DEFAULT_MS) / 1000.0
