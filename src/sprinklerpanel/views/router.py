"""Hash-fragment router keeping exactly one top-level view mounted."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple
from urllib.parse import parse_qsl

from ..config import PanelSettings
from ..gateway import ApiGateway
from ..logger import get_logger
from .base import View, ViewContext, ViewFactory
from .registry import ViewRegistry

logger = get_logger(__name__)

DEFAULT_PATH = "#/"


@dataclass(frozen=True)
class Route:
    path: str
    view_tag: str


@dataclass(frozen=True)
class NavLink:
    label: str
    target: str
    active: bool


ROUTES: Tuple[Route, ...] = (
    Route("#/", "sprinkler-dashboard"),
    Route("#/zones", "zone-editor"),
    Route("#/programs", "program-list"),
    Route("#/programs/edit", "program-editor"),
    Route("#/log", "sprinkler-log"),
)

NAV_TARGETS: Tuple[Tuple[str, str], ...] = (
    ("Dashboard", "#/"),
    ("Zones", "#/zones"),
    ("Programs", "#/programs"),
    ("Log", "#/log"),
)


def split_hash(value: str) -> Tuple[str, Dict[str, str]]:
    """Split ``"#/path?a=b"`` into the path and its query parameters."""

    value = (value or "").strip()
    if not value.startswith("#"):
        value = f"#{value}"
    path, _, query = value.partition("?")
    if path in ("#", ""):
        path = DEFAULT_PATH
    elif not path.startswith("#/"):
        path = "#/" + path[1:]
    return path, dict(parse_qsl(query, keep_blank_values=True))


class Router:
    """Mount the view selected by the navigation hash.

    Transitions run one at a time in arrival order; the previous view is
    fully unmounted before the next one mounts. Re-navigating to the mounted
    path does nothing. Unknown paths fall back to the default route, and a
    route whose view is not registered leaves the current mount in place.
    """

    def __init__(
        self,
        registry: ViewRegistry,
        *,
        gateway: ApiGateway,
        settings: PanelSettings,
        routes: Iterable[Route] = ROUTES,
        default_path: str = DEFAULT_PATH,
        nav_targets: Iterable[Tuple[str, str]] = NAV_TARGETS,
    ):
        self._registry = registry
        self._table: Dict[str, Route] = {route.path: route for route in routes}
        self._default_path = default_path
        self._nav_targets = tuple(nav_targets)
        self._current: Optional[Route] = None
        self._view: Optional[View] = None
        self._lock = asyncio.Lock()
        self.context = ViewContext(gateway=gateway, settings=settings, navigate=self.navigate)

    def register_view(self, tag: str, factory: ViewFactory) -> None:
        self._registry.register(tag, factory)

    def current_route(self) -> Optional[Route]:
        return self._current

    def current_view(self) -> Optional[View]:
        return self._view

    def nav_links(self) -> List[NavLink]:
        current = self._current.path if self._current else None
        return [NavLink(label, target, target == current) for label, target in self._nav_targets]

    def resolve(self, path: str) -> Route:
        route = self._table.get(path)
        if route is not None:
            return route
        logger.info("Unknown route %s; falling back to %s", path, self._default_path)
        return self._table[self._default_path]

    async def navigate(self, target: str) -> Optional[Route]:
        """Mount the view for ``target`` and return the route now current."""

        async with self._lock:
            path, params = split_hash(target)
            if self._current is not None and path == self._current.path:
                logger.debug("Already on %s; ignoring navigation", path)
                return self._current

            route = self.resolve(path)
            if route == self._current:
                logger.debug("Route %s resolves to the mounted view; ignoring navigation", path)
                return self._current

            factory = self._registry.get(route.view_tag)
            if factory is None:
                logger.warning("No view registered for '%s' (route %s); keeping current view", route.view_tag, path)
                return self._current

            if self._view is not None:
                await self._view.unmount()
            view = factory(self.context)
            self._view = view
            self._current = route
            logger.info("Navigated to %s (%s)", route.path, route.view_tag)
            await view.mount(params)
            return route

    async def close(self) -> None:
        """Unmount the current view and return to the unmounted state."""

        async with self._lock:
            if self._view is not None:
                await self._view.unmount()
            self._view = None
            self._current = None
