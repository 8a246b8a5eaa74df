"""Zone editor view: rename zones, toggle them and attach an image."""

from __future__ import annotations

import base64
import binascii
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field

from ..gateway import Err, Zone, ZoneUpdate
from ..logger import get_logger
from .base import View, ViewContext

logger = get_logger(__name__)


class ZoneSavePayload(BaseModel):
    id: str
    name: str = Field(min_length=1)
    active: Optional[bool] = None


class ImageUploadPayload(BaseModel):
    id: str
    filename: str = Field(min_length=1)
    content_base64: str


class ZoneEditorView(View):
    tag = "zone-editor"
    title = "Zone Editor"
    actions = ("save", "upload-image")

    def __init__(self, context: ViewContext):
        super().__init__(context)
        self.zones: List[Zone] = []

    async def on_mount(self) -> None:
        await self.load()

    async def load(self) -> None:
        result = await self.gateway.list_zones()
        if isinstance(result, Err):
            self.error = "Error loading zones."
            return
        self.error = None
        self.zones = result.value

    def find(self, zone_id: str) -> Zone:
        for zone in self.zones:
            if zone.id == zone_id:
                return zone
        raise ValueError(f"Unknown zone id {zone_id!r}")

    async def save_zone(self, zone_id: str, name: str, active: Optional[bool] = None, image: Optional[str] = None) -> None:
        zone = self.find(zone_id)
        update = ZoneUpdate(
            id=zone.id,
            name=name.strip(),
            gpio_pin=zone.gpio_pin,
            active=zone.active if active is None else active,
            image=image if image is not None else zone.image,
        )
        self.raise_for("save", await self.gateway.update_zone(update))
        logger.info("Zone %s saved as '%s'", zone.id, update.name)
        await self.load()

    async def upload_image(self, zone_id: str, filename: str, content: bytes) -> None:
        zone = self.find(zone_id)
        self.raise_for("upload-image", await self.gateway.upload_image(filename, content))
        await self.save_zone(zone.id, zone.name, image=filename)

    async def action_save(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        request = ZoneSavePayload.model_validate(payload)
        await self.save_zone(request.id, request.name, request.active)
        return {"saved": request.id}

    async def action_upload_image(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        request = ImageUploadPayload.model_validate(payload)
        try:
            content = base64.b64decode(request.content_base64, validate=True)
        except binascii.Error as exc:
            raise ValueError("content_base64 is not valid base64") from exc
        await self.upload_image(request.id, request.filename, content)
        return {"uploaded": request.filename, "zone": request.id}

    def describe(self) -> Dict[str, Any]:
        return {"zones": [zone.model_dump(by_alias=True) for zone in self.zones]}
