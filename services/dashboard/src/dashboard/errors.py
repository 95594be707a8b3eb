from core_logging.error_codes import ErrorCode


class FetchFailure(RuntimeError):
    """The injected element fetch failed for one target model."""
    code = ErrorCode.fetch_failed

    def __init__(self, model_urn: str, message: str | None = None):
        super().__init__(message or f"element fetch failed for {model_urn}")
        self.model_urn = model_urn


class SchemaLoadFailure(RuntimeError):
    """The injected schema fetch failed for one model. Never cached."""
    code = ErrorCode.schema_load_failed

    def __init__(self, model_urn: str, message: str | None = None):
        super().__init__(message or f"schema load failed for {model_urn}")
        self.model_urn = model_urn
