"""
=============================================================================
MIDDLEWARE PIPELINE
=============================================================================

Chain of Responsibility around the static handler:

    Request ──► Logging ──► ... ──► StaticFileHandler
    Response ◄── Logging ◄── ... ◄──┘

Each middleware receives the request and `next`, the rest of the chain.
It may act before calling next, after it, or answer on its own without
calling next at all.

    pipeline = MiddlewarePipeline()
    pipeline.add(LoggingMiddleware())     # first added = outermost
    app = pipeline.wrap(handler.handle)
    response = app(request)

=============================================================================
"""

import logging
from abc import ABC, abstractmethod
from functools import partial
from typing import Callable, List

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


# The rest of the chain, as seen by one middleware
NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """Implement __call__(request, next) and return a response."""

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        ...

    @property
    def name(self) -> str:
        return type(self).__name__


class MiddlewarePipeline:
    """Ordered middleware; wrap() turns them plus a handler into one callable."""

    def __init__(self):
        self._stack: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        logger.debug(f"Middleware registered: {middleware.name}")
        self._stack.append(middleware)
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        """add() several at once, in order."""
        for item in middleware:
            self.add(item)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        The first middleware added is the first to see the request:

            [A, B] + handler  →  A(B(handler))
        """
        chain = handler
        for middleware in reversed(self._stack):
            chain = partial(_invoke, middleware, chain)
        return chain

    def __len__(self) -> int:
        return len(self._stack)


def _invoke(middleware: Middleware, next_handler: NextHandler, request: HTTPRequest) -> HTTPResponse:
    return middleware(request, next_handler)
