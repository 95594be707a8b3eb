from .client import get_http_client, fetch_json

__all__ = ["get_http_client", "fetch_json"]
