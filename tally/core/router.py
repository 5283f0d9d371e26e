import functools
import logging
from typing import Awaitable, Callable

from tally.core.model.message import Request, Response

RouteHandler = Callable[[Request], Awaitable[Response]]


class Router:
    def __init__(self) -> None:
        self._routes: dict[str, RouteHandler] = {}
        self._logger = logging.getLogger("tally.core.router")

    def request(self, method: str) -> Callable[[RouteHandler], RouteHandler]:
        method = method.upper()

        def decorator(func: RouteHandler) -> RouteHandler:
            if method in self._routes:
                raise RuntimeError(f"Handler already registered for '{method}'")

            @functools.wraps(func)
            async def wrapper(request: Request) -> Response:
                return await func(request)

            self._routes[method] = wrapper
            self._logger.debug(f"Route registered: {method} -> {func.__qualname__}")
            return wrapper

        return decorator

    def resolve(self, method: str) -> RouteHandler | None:
        return self._routes.get(method.upper())

    def routes(self) -> dict[str, RouteHandler]:
        return dict(self._routes)
