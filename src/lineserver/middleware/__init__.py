"""
=============================================================================
MIDDLEWARE PACKAGE
=============================================================================

Layers that sit between the reactor and the application handler.

    from lineserver.middleware import EventLoggingMiddleware

    server = LineServer(config, handler)
    server.use(EventLoggingMiddleware(log_format="json"))

=============================================================================
"""

from .base import FunctionMiddleware, Middleware, MiddlewarePipeline, function_middleware
from .logging import EventLog, EventLoggingMiddleware

__all__ = [
    # Base classes
    "Middleware",
    "MiddlewarePipeline",
    "FunctionMiddleware",
    "function_middleware",

    # Built-in middleware
    "EventLog",
    "EventLoggingMiddleware",
]
