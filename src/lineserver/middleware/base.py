"""
=============================================================================
HANDLER MIDDLEWARE
=============================================================================

Middleware wraps the event handler so cross-cutting work (logging,
filtering, counting) stays out of application code.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   reactor ──► EventLogging ──► MyFilter ──► handler                 │
    │                                                                      │
    │   Each layer gets (event, next). Calling next(event) passes the     │
    │   event inward; not calling it swallows the event.                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Events have no response, so unlike HTTP middleware there is nothing to
post-process on the way out; a layer can still do work after next()
returns (timing, for instance).

=============================================================================
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from ..events import Event, EventHandler


logger = logging.getLogger(__name__)


NextHandler = EventHandler


class Middleware(ABC):
    """
    Base class for handler middleware.

    Example:
        class IgnoreTimer(Middleware):
            def __call__(self, event, next):
                if not isinstance(event, TimerExpired):
                    next(event)
    """

    @abstractmethod
    def __call__(self, event: Event, next: NextHandler) -> None:
        """
        Process one event.

        Args:
            event: The event coming from the reactor.
            next: The next layer; call it to continue the chain.
        """
        pass

    @property
    def name(self) -> str:
        """Get the middleware name for logging."""
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Chains middleware around a final handler.

    First added = outermost:

        pipeline.add(A).add(B)
        handler = pipeline.wrap(final)     # A → B → final
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def wrap(self, handler: EventHandler) -> EventHandler:
        """
        Wrap ``handler`` with every middleware in the pipeline.

        We wrap in reverse so the first-added middleware ends up outermost:
        reversed([A, B, C]) gives A(B(C(handler))).
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._create_wrapped_handler(middleware, current)
        return current

    def _create_wrapped_handler(self, middleware: Middleware, next_handler: EventHandler) -> EventHandler:
        def wrapped(event: Event) -> None:
            middleware(event, next_handler)
        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)


class FunctionMiddleware(Middleware):
    """
    Wraps a plain ``(event, next)`` function as middleware.

        pipeline.add(FunctionMiddleware(my_func, name="my_func"))
    """

    def __init__(self, func: Callable[[Event, NextHandler], None], name: Optional[str] = None):
        self._func = func
        self._name = name or func.__name__

    def __call__(self, event: Event, next: NextHandler) -> None:
        self._func(event, next)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(func: Callable[[Event, NextHandler], None]) -> FunctionMiddleware:
    """
    Decorator form of FunctionMiddleware.

        @function_middleware
        def only_data(event, next):
            if isinstance(event, ClientData):
                next(event)

        server.use(only_data)
    """
    return FunctionMiddleware(func)
