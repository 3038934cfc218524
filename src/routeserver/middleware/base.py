"""
=============================================================================
MIDDLEWARE PIPELINE
=============================================================================

Middleware wraps the router like layers of an onion. Each layer sees the
request on the way in and the response on the way out, and may answer by
itself without calling the next layer:

    ┌─────────────────────────────────────────────────────────────────┐
    │  LoggingMiddleware                                              │
    │  ┌───────────────────────────────────────────────────────────┐  │
    │  │  ...more middleware                                       │  │
    │  │  ┌─────────────────────────────────────────────────────┐  │  │
    │  │  │          router.handle(request, state)              │  │  │
    │  │  └─────────────────────────────────────────────────────┘  │  │
    │  └───────────────────────────────────────────────────────────┘  │
    └─────────────────────────────────────────────────────────────────┘

The first middleware added is the outermost one.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterator, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Base class for middleware.

        class Tag(Middleware):
            def __call__(self, request, next):
                response = next(request)
                response.set_header("X-Tag", "1")
                return response
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """Process the request, calling next(request) unless short-circuiting."""

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Ordered middleware chain around a final handler.

        pipeline = MiddlewarePipeline().add(LoggingMiddleware())
        handler = pipeline.wrap(lambda request: router.handle(request, state))
        response = handler(request)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Build MW1(MW2(...(handler))).

        Wrapping runs in reverse so the first-added middleware ends up
        outermost.
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = _bind(middleware, current)
        return current

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middleware)


def _bind(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
    def wrapped(request: HTTPRequest) -> HTTPResponse:
        return middleware(request, next_handler)
    return wrapped
