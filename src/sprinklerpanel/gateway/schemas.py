"""Pydantic schemas for the controller's JSON payloads."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..timecodec import MAX_DAY_MASK, parse_time_of_day


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Zone(_WireModel):
    id: str
    name: str
    gpio_pin: int = Field(alias="gpioPin")
    active: bool = False
    running: bool = False
    image: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value)

    @model_validator(mode="before")
    @classmethod
    def _running_defaults_to_active(cls, data: Any) -> Any:
        # Firmware without a separate flag reports a running zone as active.
        if isinstance(data, dict) and "running" not in data:
            return {**data, "running": data.get("active", False)}
        return data


class ZoneUpdate(_WireModel):
    """Body for ``PUT /api/v1/zones/{id}``; the pin is echoed, never edited."""

    id: str
    name: str = Field(min_length=1)
    gpio_pin: int = Field(alias="gpioPin")
    active: bool
    image: Optional[str] = None


class ProgramStep(_WireModel):
    zone: str
    duration: int = Field(ge=0, description="Seconds")


class Program(_WireModel):
    name: str = Field(min_length=1)
    start: str
    days: int = Field(ge=0, le=MAX_DAY_MASK)
    zones: List[ProgramStep] = Field(default_factory=list)

    @field_validator("start")
    @classmethod
    def _check_start(cls, value: str) -> str:
        return parse_time_of_day(value).strftime("%H:%M")


class ScheduleSummary(_WireModel):
    status: Literal["scheduled", "none"]
    name: Optional[str] = None
    time: Optional[str] = None


class ZoneLogEntry(_WireModel):
    status: str
    time: str


class LogSummary(_WireModel):
    zones: Dict[str, ZoneLogEntry] = Field(default_factory=dict)
    programs: Dict[str, str] = Field(default_factory=dict)

    @field_validator("zones", mode="before")
    @classmethod
    def _expand_compact_entries(cls, value: Any) -> Any:
        # The firmware reports completed zones as a bare timestamp.
        if isinstance(value, dict):
            return {
                name: {"status": "completed", "time": entry} if isinstance(entry, str) else entry
                for name, entry in value.items()
            }
        return value


class ActionAck(_WireModel):
    success: bool = True
    scheduled: Optional[Any] = None
