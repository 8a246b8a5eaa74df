"""Base classes shared by every mountable view."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple

from ..config import PanelSettings
from ..gateway import ApiGateway, Err, Result
from ..logger import get_logger

logger = get_logger(__name__)


class ActionFailed(Exception):
    """A user-initiated action was rejected by the controller or never reached it."""

    def __init__(self, action: str, message: str):
        super().__init__(message)
        self.action = action
        self.message = message


class UnknownAction(KeyError):
    """The mounted view does not offer the requested action."""


@dataclass
class ViewContext:
    """Collaborators handed to every view factory."""

    gateway: ApiGateway
    settings: PanelSettings
    navigate: Callable[[str], Awaitable[Any]]

    @property
    def tz(self) -> Optional[tzinfo]:
        return self.settings.display_timezone()


class View:
    """A top-level screen the router can mount and unmount."""

    tag: str = "base"
    title: str = "Unnamed View"
    actions: Tuple[str, ...] = ()

    def __init__(self, context: ViewContext):
        self.context = context
        self.params: Dict[str, str] = {}
        self.error: Optional[str] = None
        self.mounted = False

    @property
    def gateway(self) -> ApiGateway:
        return self.context.gateway

    async def mount(self, params: Mapping[str, str]) -> None:
        self.params = dict(params)
        self.mounted = True
        logger.debug("Mounting view '%s' with params %s", self.tag, self.params)
        await self.on_mount()

    async def unmount(self) -> None:
        self.mounted = False
        logger.debug("Unmounting view '%s'", self.tag)
        await self.on_unmount()

    async def on_mount(self) -> None:
        """Load whatever the view needs once it becomes current."""

    async def on_unmount(self) -> None:
        """Release timers and subscriptions owned by the view."""

    async def perform(self, action: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Run a named user action against the view."""

        if action not in self.actions:
            raise UnknownAction(f"View '{self.tag}' has no action '{action}'")
        handler = getattr(self, f"action_{action.replace('-', '_')}")
        logger.info("Performing action '%s' on view '%s'", action, self.tag)
        return await handler(payload)

    def raise_for(self, action: str, result: Result) -> None:
        if isinstance(result, Err):
            logger.warning("Action '%s' on view '%s' failed: %s", action, self.tag, result.message)
            raise ActionFailed(action, result.message)

    def error_text(self) -> Optional[str]:
        return self.error

    def describe(self) -> Dict[str, Any]:
        return {}

    def snapshot(self) -> Dict[str, Any]:
        return {
            "view": self.tag,
            "title": self.title,
            "actions": list(self.actions),
            "error": self.error_text(),
            **self.describe(),
        }


ViewFactory = Callable[[ViewContext], View]
