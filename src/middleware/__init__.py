"""HTTP middleware."""

from .correlation import REQUEST_ID_HEADER, RequestIdMiddleware

__all__ = [
    "REQUEST_ID_HEADER",
    "RequestIdMiddleware",
]
