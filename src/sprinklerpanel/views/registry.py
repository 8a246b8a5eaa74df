"""Registry mapping view tags to factories."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from ..logger import get_logger
from .base import ViewFactory

logger = get_logger(__name__)


@dataclass
class ViewRegistry:
    """In-memory registry of mountable views, populated once at startup."""

    factories: Dict[str, ViewFactory] = field(default_factory=dict)

    def register(self, tag: str, factory: ViewFactory) -> None:
        if tag in self.factories:
            logger.warning("Replacing existing view registration: %s", tag)
        self.factories[tag] = factory
        logger.debug("Registered view: %s", tag)

    def extend(self, views: Iterable[Tuple[str, ViewFactory]]) -> None:
        for tag, factory in views:
            self.register(tag, factory)

    def get(self, tag: str) -> Optional[ViewFactory]:
        return self.factories.get(tag)

    def tags(self) -> List[str]:
        return list(self.factories)

    def __contains__(self, tag: object) -> bool:
        return tag in self.factories
