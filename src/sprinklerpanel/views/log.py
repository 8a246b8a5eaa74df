"""System log viewer with local-time stamps."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

from ..gateway import Err
from ..logger import get_logger
from ..runtime import PeriodicTask
from ..timecodec import localize_log_timestamp
from .base import View, ViewContext

logger = get_logger(__name__)

LOADING_TEXT = "Loading log..."
EMPTY_TEXT = "(no logs yet)"
UNAVAILABLE_TEXT = "No logged data available."


class LogView(View):
    tag = "sprinkler-log"
    title = "System Log"
    actions = ("refresh",)

    def __init__(self, context: ViewContext):
        super().__init__(context)
        self.lines: List[str] = []
        self.text = LOADING_TEXT
        self._refresher = PeriodicTask(self.refresh, name="sprinklerpanel-log")

    async def on_mount(self) -> None:
        await self.refresh()
        self._refresher.start(self.context.settings.log_refresh_seconds)

    async def on_unmount(self) -> None:
        await self._refresher.stop()

    async def refresh(self) -> None:
        result = await self.gateway.log_text()
        if isinstance(result, Err):
            self.lines = []
            self.text = UNAVAILABLE_TEXT
            return
        raw = result.value.strip()
        tz = self.context.tz
        self.lines = [localize_log_timestamp(line, tz=tz) for line in raw.splitlines()]
        self.text = "\n".join(self.lines) if self.lines else EMPTY_TEXT

    async def action_refresh(self, _payload: Mapping[str, Any]) -> Dict[str, Any]:
        await self.refresh()
        return {"lines": len(self.lines)}

    def describe(self) -> Dict[str, Any]:
        return {"text": self.text, "lines": self.lines}
