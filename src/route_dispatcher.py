# src/route_dispatcher.py
"""Route dispatcher for HTTP request routing.

This module provides the RouteDispatcher class that encapsulates
the routing logic from the fetch() handler:
- Route table with patterns and metadata
- Pattern matching (exact, prefix and :param patterns)
- Method filtering
- Route metadata (content type, cache status)

Usage:
    routes = [
        Route(path="/", content_type="html"),
        Route(path="/novels/:ncode/atom.xml", pattern="/novels/:ncode/atom.xml"),
    ]

    dispatcher = RouteDispatcher(routes)
    match = dispatcher.match("/novels/n4830bu/atom.xml")
    match.path_params  # {"ncode": "n4830bu"}
"""

import re
from dataclasses import dataclass, field

_PARAM_RE = re.compile(r":([a-zA-Z_][a-zA-Z0-9_]*)")


@dataclass
class Route:
    """Definition of a route.

    Attributes:
        path: URL path pattern (exact match or prefix)
        methods: Allowed HTTP methods (None = all methods)
        prefix: If True, match paths that start with this path
        pattern: Pattern with :param placeholders for dynamic paths
        content_type: Content type identifier for logging
        cacheable: Whether this route's response can be cached
        route_name: Name for the route (for logging), defaults to path
    """

    path: str
    methods: list[str] | None = None
    prefix: bool = False
    pattern: str | None = None
    content_type: str = "html"
    cacheable: bool = True
    route_name: str | None = None

    def __post_init__(self) -> None:
        """Set default route name if not provided."""
        if self.route_name is None:
            self.route_name = f"{self.path}*" if self.prefix else self.path


@dataclass
class RouteMatch:
    """Result of a route match.

    Attributes:
        route: The matched route
        path_params: Extracted path parameters (for pattern routes)
        path: The matched path
    """

    route: Route
    path_params: dict[str, str] = field(default_factory=dict)
    path: str = ""

    @property
    def content_type(self) -> str:
        return self.route.content_type

    @property
    def cache_status(self) -> str:
        """Get the cache status string for logging."""
        return "cacheable" if self.route.cacheable else "bypass"

    @property
    def route_name(self) -> str:
        return self.route.route_name or self.route.path


class RouteDispatcher:
    """Dispatcher for routing HTTP requests.

    Matches incoming requests against a list of routes and
    returns the matching route with metadata.
    """

    def __init__(self, routes: list[Route] | None = None):
        self.routes: list[Route] = routes or []
        self._compiled_patterns: dict[str, re.Pattern] = {}

    def _compile_pattern(self, pattern: str) -> re.Pattern:
        """Compile a route pattern to regex.

        ``:name`` segments become named groups matching one path segment;
        everything else matches literally.
        """
        if pattern in self._compiled_patterns:
            return self._compiled_patterns[pattern]

        parts = []
        last = 0
        for param in _PARAM_RE.finditer(pattern):
            parts.append(re.escape(pattern[last : param.start()]))
            parts.append(f"(?P<{param.group(1)}>[^/]+)")
            last = param.end()
        parts.append(re.escape(pattern[last:]))

        compiled = re.compile("^" + "".join(parts) + "$")
        self._compiled_patterns[pattern] = compiled
        return compiled

    def match(self, path: str, method: str = "GET") -> RouteMatch | None:
        """Match a path against the routes.

        Returns:
            RouteMatch if a route matches, None otherwise
        """
        if not path.startswith("/"):
            path = "/" + path

        for route in self.routes:
            if route.methods and method.upper() not in route.methods:
                continue

            if route.pattern:
                compiled = self._compile_pattern(route.pattern)
                match = compiled.match(path)
                if match:
                    return RouteMatch(route=route, path_params=match.groupdict(), path=path)
                continue

            if route.prefix:
                if path.startswith(route.path):
                    return RouteMatch(route=route, path=path)
                continue

            if path == route.path:
                return RouteMatch(route=route, path=path)

        return None


def create_default_routes() -> list[Route]:
    """Create the default route definitions for Okkake.

    Handlers are chosen by the Worker from each route's content_type.
    """
    return [
        Route(path="/", methods=["GET", "HEAD"], content_type="html", cacheable=True),
        Route(path="/index.html", methods=["GET", "HEAD"], content_type="html", cacheable=True),
        Route(path="/health", content_type="health", cacheable=False),
        Route(
            path="/novels/:ncode/atom.xml",
            pattern="/novels/:ncode/atom.xml",
            methods=["GET", "HEAD"],
            content_type="atom",
        ),
        Route(
            path="/r18novels/:ncode/atom.xml",
            pattern="/r18novels/:ncode/atom.xml",
            methods=["GET", "HEAD"],
            content_type="atom",
        ),
    ]
