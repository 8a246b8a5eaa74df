"""Program list and program editor views."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, Field

from ..gateway import Err, Program, ProgramStep, segment
from ..logger import get_logger
from ..timecodec import (
    DAY_NAMES,
    day_mask_to_names,
    local_time_of_day_to_utc,
    names_to_day_mask,
    utc_time_of_day_to_local,
)
from .base import View, ViewContext

logger = get_logger(__name__)

PROGRAM_LIST_ROUTE = "#/programs"
PROGRAM_EDIT_ROUTE = "#/programs/edit"
NEW_PROGRAM_START = "06:00"


class ProgramDeletePayload(BaseModel):
    name: str = Field(min_length=1)


class ProgramFormPayload(BaseModel):
    """Program as entered by the operator: local start time, days by name or index."""

    name: str = Field(min_length=1)
    start: str
    days: List[Union[int, str]] = Field(default_factory=list)
    zones: List[ProgramStep] = Field(default_factory=list)


def edit_route(name: str) -> str:
    return f"{PROGRAM_EDIT_ROUTE}?name={segment(name)}"


class ProgramListView(View):
    tag = "program-list"
    title = "Program List"
    actions = ("delete",)

    def __init__(self, context: ViewContext):
        super().__init__(context)
        self.programs: List[Program] = []

    async def on_mount(self) -> None:
        await self.load()

    async def load(self) -> None:
        result = await self.gateway.list_programs()
        if isinstance(result, Err):
            self.error = "Error loading programs."
            return
        self.error = None
        self.programs = result.value

    async def action_delete(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        name = ProgramDeletePayload.model_validate(payload).name
        self.raise_for("delete", await self.gateway.delete_program(name))
        logger.info("Deleted program '%s'", name)
        await self.load()
        return {"deleted": name}

    def describe(self) -> Dict[str, Any]:
        tz = self.context.tz
        return {
            "programs": [
                {
                    "name": program.name,
                    "start": utc_time_of_day_to_local(program.start, tz=tz),
                    "start_utc": program.start,
                    "days": day_mask_to_names(program.days),
                    "zones": [step.model_dump() for step in program.zones],
                    "edit_route": edit_route(program.name),
                }
                for program in self.programs
            ]
        }


class ProgramEditorView(View):
    """Edit an existing program (``?name=``) or create a new one."""

    tag = "program-editor"
    title = "Edit Program"
    actions = ("save",)

    def __init__(self, context: ViewContext):
        super().__init__(context)
        self.original_name: Optional[str] = None
        self.form: Dict[str, Any] = {}

    async def on_mount(self) -> None:
        self.original_name = self.params.get("name") or None
        if self.original_name is None:
            self.form = {"name": "", "start": NEW_PROGRAM_START, "days": [], "zones": []}
            return
        result = await self.gateway.get_program(self.original_name)
        if isinstance(result, Err):
            self.error = "Error loading program."
            return
        program: Program = result.value
        self.form = {
            "name": program.name,
            "start": utc_time_of_day_to_local(program.start, tz=self.context.tz),
            "days": day_mask_to_names(program.days),
            "zones": [step.model_dump() for step in program.zones],
        }

    def build_program(self, form: ProgramFormPayload) -> Program:
        return Program(
            name=form.name.strip(),
            start=local_time_of_day_to_utc(form.start, tz=self.context.tz),
            days=names_to_day_mask(form.days),
            zones=[ProgramStep(zone=step.zone.strip(), duration=step.duration) for step in form.zones],
        )

    async def action_save(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        program = self.build_program(ProgramFormPayload.model_validate(payload))
        if self.original_name is None:
            result = await self.gateway.create_program(program)
        else:
            result = await self.gateway.update_program(self.original_name, program)
        self.raise_for("save", result)
        logger.info("Saved program '%s' (start %s UTC, days=%d)", program.name, program.start, program.days)
        if self.mounted:
            await self.context.navigate(PROGRAM_LIST_ROUTE)
        else:
            logger.info("Program editor left before '%s' was saved; staying on the current view", program.name)
        return {"saved": program.name}

    def describe(self) -> Dict[str, Any]:
        return {
            "creating": self.original_name is None,
            "program": self.original_name,
            "form": self.form,
            "day_names": list(DAY_NAMES),
        }
