"""Dashboard view: live zone state, manual start/stop and the next scheduled run."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field

from ..logger import get_logger
from ..runtime import Reconciler
from .base import View, ViewContext

logger = get_logger(__name__)


class ZoneActionPayload(BaseModel):
    zone: str = Field(min_length=1)


class DashboardView(View):
    tag = "sprinkler-dashboard"
    title = "Sprinkler Dashboard"
    actions = ("start", "stop", "test-program", "refresh")

    def __init__(self, context: ViewContext):
        super().__init__(context)
        self.reconciler = Reconciler(context.gateway, tz=context.tz)

    async def on_mount(self) -> None:
        await self.reconciler.poll_once()
        self.reconciler.start_polling(self.context.settings.poll_interval_seconds)

    async def on_unmount(self) -> None:
        await self.reconciler.stop_polling()

    async def action_start(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        zone = ZoneActionPayload.model_validate(payload).zone
        self.raise_for("start", await self.reconciler.start_zone(zone))
        return {"zone": zone, "running": True}

    async def action_stop(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        zone = ZoneActionPayload.model_validate(payload).zone
        self.raise_for("stop", await self.reconciler.stop_zone(zone))
        return {"zone": zone, "running": False}

    async def action_test_program(self, _payload: Mapping[str, Any]) -> Dict[str, Any]:
        result = await self.gateway.run_test_program()
        self.raise_for("test-program", result)
        return {"scheduled": result.value.scheduled}

    async def action_refresh(self, _payload: Mapping[str, Any]) -> Dict[str, Any]:
        return {"poll_sequence": await self.reconciler.poll_once()}

    def error_text(self) -> Optional[str]:
        vm = self.reconciler.view_model
        if vm.zones_error and not vm.zones:
            return "Error loading zones."
        return None

    def describe(self) -> Dict[str, Any]:
        return self.reconciler.snapshot()
