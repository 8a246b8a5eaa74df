"""Periodic reconciliation of server-reported zone state into the dashboard view model."""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Dict, Optional

from ..gateway import ApiGateway, Err, LogSummary, Result, ScheduleSummary
from ..logger import get_logger
from ..timecodec import iso_utc_to_local_time, utc_to_local_string
from .periodic import PeriodicTask

logger = get_logger(__name__)

NO_TIME = "--:--"
STALE_MARKER = " (Error)"


@dataclass
class ZoneDisplay:
    """What the dashboard currently shows for one zone."""

    running: bool = False
    last_status_text: str = ""
    active: bool = False


@dataclass(frozen=True)
class ScheduleDisplay:
    program: str
    time: str
    stale: bool = False


@dataclass
class ViewModel:
    """Client-held dashboard state; one per dashboard mount, never persisted."""

    zones: Dict[str, ZoneDisplay] = field(default_factory=dict)
    schedule: Optional[ScheduleSummary] = None
    schedule_stale: bool = False
    zones_error: Optional[str] = None


@dataclass
class _PendingAction:
    token: int
    running: bool
    previous: bool
    since_seq: int
    fence_seq: Optional[int] = None


class Reconciler:
    """Merge polled zone, log and schedule data into a :class:`ViewModel`.

    Zone state precedence, highest first:

    1. an optimistic update whose action has not been answered yet;
    2. the latest successful poll;
    3. the last known value, kept when a poll fails.

    Each poll gets a sequence number when it starts, and a source is never
    merged from a poll older than the one last merged for it. An answered
    action keeps shielding its zone from every poll that had started by the
    time the answer arrived, so a slow poll issued before the action cannot
    revert it.
    """

    def __init__(self, gateway: ApiGateway, *, tz: Optional[tzinfo] = None, view_model: Optional[ViewModel] = None):
        self.view_model = view_model or ViewModel()
        self._gateway = gateway
        self._tz = tz
        self._poll_seq = 0
        self._pending: Dict[str, _PendingAction] = {}
        self._merged_seq: Dict[str, int] = {"zones": 0, "logs": 0, "schedule": 0}
        self._tokens = itertools.count(1)
        self._poller = PeriodicTask(self.poll_once, name="sprinklerpanel-reconcile")

    @property
    def poll_sequence(self) -> int:
        """Sequence number of the most recently started poll."""

        return self._poll_seq

    @property
    def polling(self) -> bool:
        return self._poller.running

    def pending_since(self, zone_name: str) -> Optional[int]:
        marker = self._pending.get(zone_name)
        return marker.since_seq if marker else None

    # --------------------------------------------------------------------- #
    # Optimistic updates                                                    #
    # --------------------------------------------------------------------- #

    def apply_optimistic(self, zone_name: str, running: bool) -> int:
        """Show ``running`` for ``zone_name`` immediately and return the action token."""

        display = self.view_model.zones.setdefault(zone_name, ZoneDisplay())
        token = next(self._tokens)
        self._pending[zone_name] = _PendingAction(
            token=token,
            running=running,
            previous=display.running,
            since_seq=self._poll_seq,
        )
        display.running = running
        logger.debug("Optimistic %s for zone '%s' (token=%d, since poll %d)", running, zone_name, token, self._poll_seq)
        return token

    def resolve(self, zone_name: str, token: int, ok: bool) -> None:
        """Apply the response of the action identified by ``token``."""

        marker = self._pending.get(zone_name)
        if marker is None or marker.token != token:
            logger.debug("Ignoring superseded response for zone '%s' (token=%d)", zone_name, token)
            return
        display = self.view_model.zones.get(zone_name)
        if ok:
            marker.fence_seq = self._poll_seq
            if display is not None:
                display.running = marker.running
            logger.debug("Zone '%s' action confirmed; polls up to %d stay ignored", zone_name, marker.fence_seq)
            return
        del self._pending[zone_name]
        if display is not None:
            display.running = marker.previous
        logger.info("Zone '%s' action failed; display restored to running=%s", zone_name, marker.previous)

    async def set_running(self, zone_name: str, running: bool) -> Result:
        token = self.apply_optimistic(zone_name, running)
        result = await self._gateway.zone_action(zone_name, "start" if running else "stop")
        self.resolve(zone_name, token, result.ok)
        return result

    async def start_zone(self, zone_name: str) -> Result:
        return await self.set_running(zone_name, True)

    async def stop_zone(self, zone_name: str) -> Result:
        return await self.set_running(zone_name, False)

    # --------------------------------------------------------------------- #
    # Polling                                                               #
    # --------------------------------------------------------------------- #

    async def poll_once(self) -> int:
        """Fetch zones, log summary and next schedule, then merge each one."""

        self._poll_seq += 1
        seq = self._poll_seq
        zones, logs, schedule = await asyncio.gather(
            self._gateway.list_zones(),
            self._gateway.log_summary(),
            self._gateway.next_schedule(),
        )
        self.merge_zones(seq, zones)
        self.merge_logs(seq, logs)
        self.merge_schedule(seq, schedule)
        return seq

    def start_polling(self, interval: float) -> None:
        self._poller.start(interval)

    async def stop_polling(self) -> None:
        await self._poller.stop()

    # --------------------------------------------------------------------- #
    # Merging                                                               #
    # --------------------------------------------------------------------- #

    def _superseded(self, source: str, seq: int) -> bool:
        """True when a newer poll has already been merged for ``source``."""

        latest = self._merged_seq[source]
        if seq < latest:
            logger.debug("Dropping %s from poll %d; poll %d already merged", source, seq, latest)
            return True
        self._merged_seq[source] = seq
        return False

    def _held(self, zone_name: str, seq: int) -> bool:
        marker = self._pending.get(zone_name)
        if marker is None:
            return False
        if marker.fence_seq is None or seq <= marker.fence_seq:
            return True
        del self._pending[zone_name]
        return False

    def merge_zones(self, seq: int, result: Result) -> None:
        if self._superseded("zones", seq):
            return
        vm = self.view_model
        if isinstance(result, Err):
            vm.zones_error = result.message
            logger.warning("Zone poll %d failed; keeping last known state: %s", seq, result.message)
            return
        vm.zones_error = None
        merged: Dict[str, ZoneDisplay] = {}
        for zone in result.value:
            display = vm.zones.get(zone.name) or ZoneDisplay()
            display.active = zone.active
            if self._held(zone.name, seq):
                logger.debug("Poll %d skipped zone '%s' with an optimistic update in flight", seq, zone.name)
            else:
                display.running = zone.running
            merged[zone.name] = display
        for name in set(self._pending) - set(merged):
            del self._pending[name]
        vm.zones = merged

    def merge_logs(self, seq: int, result: Result) -> None:
        if self._superseded("logs", seq):
            return
        if isinstance(result, Err):
            logger.warning("Log summary poll failed: %s", result.message)
            return
        summary: LogSummary = result.value
        for name, entry in summary.zones.items():
            display = self.view_model.zones.get(name)
            if display is None:
                logger.debug("Ignoring log entry for unknown zone '%s'", name)
                continue
            try:
                when = utc_to_local_string(entry.time, tz=self._tz)
            except ValueError:
                when = entry.time
            display.last_status_text = f"{entry.status.capitalize()} at {when}"

    def merge_schedule(self, seq: int, result: Result) -> None:
        if self._superseded("schedule", seq):
            return
        vm = self.view_model
        if isinstance(result, Err):
            vm.schedule_stale = True
            logger.warning("Next-schedule poll failed: %s", result.message)
            return
        vm.schedule = result.value
        vm.schedule_stale = False

    # --------------------------------------------------------------------- #
    # Display                                                               #
    # --------------------------------------------------------------------- #

    def schedule_display(self) -> ScheduleDisplay:
        """Next-run text for the dashboard.

        After a failed schedule poll the last known program and time stay on
        screen with an ``(Error)`` marker on the program text.
        """

        vm = self.view_model
        summary = vm.schedule
        if summary is None:
            return ScheduleDisplay("Error" if vm.schedule_stale else "Loading", NO_TIME, vm.schedule_stale)
        if summary.status == "none":
            program, when = "None", NO_TIME
        else:
            program, when = summary.name or "Unnamed", NO_TIME
            if summary.time:
                try:
                    when = iso_utc_to_local_time(summary.time, tz=self._tz)
                except ValueError:
                    logger.warning("Unparseable next-schedule time: %r", summary.time)
        if vm.schedule_stale:
            program = f"{program}{STALE_MARKER}"
        return ScheduleDisplay(program, when, vm.schedule_stale)

    def snapshot(self) -> dict:
        schedule = self.schedule_display()
        return {
            "zones": [
                {
                    "name": name,
                    "running": display.running,
                    "active": display.active,
                    "last_status": display.last_status_text,
                    "pending": name in self._pending,
                }
                for name, display in self.view_model.zones.items()
            ],
            "zones_error": self.view_model.zones_error,
            "next_schedule": {"program": schedule.program, "time": schedule.time, "stale": schedule.stale},
            "poll_sequence": self._poll_seq,
        }
