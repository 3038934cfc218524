"""
=============================================================================
MIDDLEWARE
=============================================================================

Cross-cutting request/response processing around the router.

    MiddlewarePipeline   ordered chain, first added = outermost
    LoggingMiddleware    access log lines + X-Request-ID

=============================================================================
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "LoggingMiddleware",
    "RequestLog",
]
