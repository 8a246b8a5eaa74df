import asyncio
from datetime import timedelta, timezone
from typing import Dict, List

from sprinklerpanel.gateway import Err, FailureKind, GatewayFailure, LogSummary, Ok, ScheduleSummary, Zone
from sprinklerpanel.runtime import Reconciler

UTC_MINUS_5 = timezone(timedelta(hours=-5))
FAILURE = Err(GatewayFailure(FailureKind.NETWORK, "GET /api/v1/zones failed: ConnectError"))


def zone(name: str, running: bool = False, zone_id: str = "1") -> Zone:
    return Zone(id=zone_id, name=name, gpioPin=2, active=True, running=running)


class ScriptedGateway:
    """Gateway double whose replies can be held back to force interleavings."""

    def __init__(self, zones: List[Zone]):
        self.zones_reply = Ok(zones)
        self.logs_reply = Ok(LogSummary())
        self.schedule_reply = Ok(ScheduleSummary(status="none"))
        self.action_reply = Ok(None)
        self.gates: Dict[str, asyncio.Event] = {}
        self.actions: List[tuple] = []

    def hold(self, name: str) -> None:
        self.gates[name] = asyncio.Event()

    def release(self, name: str) -> None:
        self.gates.pop(name).set()

    def detach(self, name: str) -> asyncio.Event:
        """Stop holding new calls while keeping already waiting ones blocked."""

        return self.gates.pop(name)

    async def _wait(self, name: str) -> None:
        gate = self.gates.get(name)
        if gate is not None:
            await gate.wait()

    async def list_zones(self):
        await self._wait("zones")
        return self.zones_reply

    async def log_summary(self):
        await self._wait("logs")
        return self.logs_reply

    async def next_schedule(self):
        await self._wait("schedule")
        return self.schedule_reply

    async def zone_action(self, zone_name: str, action: str):
        self.actions.append((zone_name, action))
        await self._wait("action")
        return self.action_reply


async def settle() -> None:
    for _ in range(10):
        await asyncio.sleep(0)


def test_poll_populates_view_model() -> None:
    async def scenario():
        gateway = ScriptedGateway([zone("Front Lawn", running=True), zone("Back Garden", zone_id="2")])
        reconciler = Reconciler(gateway, tz=timezone.utc)
        seq = await reconciler.poll_once()
        return seq, reconciler

    seq, reconciler = asyncio.run(scenario())
    assert seq == 1
    assert list(reconciler.view_model.zones) == ["Front Lawn", "Back Garden"]
    assert reconciler.view_model.zones["Front Lawn"].running is True


def test_optimistic_update_survives_poll_resolving_before_confirmation() -> None:
    async def scenario():
        gateway = ScriptedGateway([zone("Front Lawn")])
        reconciler = Reconciler(gateway, tz=timezone.utc)
        await reconciler.poll_once()

        gateway.hold("zones")
        gateway.hold("action")
        poll = asyncio.create_task(reconciler.poll_once())
        await settle()
        action = asyncio.create_task(reconciler.start_zone("Front Lawn"))
        await settle()
        assert reconciler.view_model.zones["Front Lawn"].running is True

        gateway.release("zones")
        await poll
        assert reconciler.view_model.zones["Front Lawn"].running is True

        gateway.release("action")
        result = await action
        assert result.ok
        assert reconciler.view_model.zones["Front Lawn"].running is True

        gateway.zones_reply = Ok([zone("Front Lawn", running=True)])
        await reconciler.poll_once()
        return reconciler

    reconciler = asyncio.run(scenario())
    assert reconciler.view_model.zones["Front Lawn"].running is True
    assert reconciler.pending_since("Front Lawn") is None


def test_poll_started_before_action_cannot_revert_after_confirmation() -> None:
    async def scenario():
        gateway = ScriptedGateway([zone("Front Lawn")])
        reconciler = Reconciler(gateway, tz=timezone.utc)
        await reconciler.poll_once()

        gateway.hold("zones")
        stale_poll = asyncio.create_task(reconciler.poll_once())
        await settle()
        assert (await reconciler.start_zone("Front Lawn")).ok
        assert reconciler.pending_since("Front Lawn") == 2

        gateway.release("zones")
        await stale_poll
        still_running = reconciler.view_model.zones["Front Lawn"].running

        # A poll issued after the confirmation is trusted again.
        await reconciler.poll_once()
        return still_running, reconciler.view_model.zones["Front Lawn"].running

    still_running, after_fresh_poll = asyncio.run(scenario())
    assert still_running is True
    assert after_fresh_poll is False


def test_failed_action_restores_previous_display() -> None:
    async def scenario():
        gateway = ScriptedGateway([zone("Front Lawn")])
        reconciler = Reconciler(gateway, tz=timezone.utc)
        await reconciler.poll_once()
        gateway.action_reply = Err(GatewayFailure(FailureKind.HTTP_STATUS, "POST failed with status 500", 500))
        result = await reconciler.start_zone("Front Lawn")
        return result, reconciler

    result, reconciler = asyncio.run(scenario())
    assert isinstance(result, Err)
    assert reconciler.view_model.zones["Front Lawn"].running is False
    assert reconciler.pending_since("Front Lawn") is None


def test_superseded_action_response_is_ignored() -> None:
    async def scenario():
        gateway = ScriptedGateway([zone("Front Lawn")])
        reconciler = Reconciler(gateway, tz=timezone.utc)
        await reconciler.poll_once()
        first = reconciler.apply_optimistic("Front Lawn", True)
        second = reconciler.apply_optimistic("Front Lawn", False)
        reconciler.resolve("Front Lawn", first, ok=False)
        running_after_stale = reconciler.view_model.zones["Front Lawn"].running
        reconciler.resolve("Front Lawn", second, ok=True)
        return running_after_stale, reconciler

    running_after_stale, reconciler = asyncio.run(scenario())
    assert running_after_stale is False
    assert reconciler.view_model.zones["Front Lawn"].running is False


def test_log_entry_for_unknown_zone_is_ignored() -> None:
    async def scenario():
        gateway = ScriptedGateway([zone("Front Lawn")])
        gateway.logs_reply = Ok(
            LogSummary.model_validate(
                {
                    "zones": {
                        "Front Lawn": {"status": "completed", "time": "2025-01-02 03:04:05"},
                        "Ghost Zone": {"status": "started", "time": "2025-01-02 03:10:00"},
                    }
                }
            )
        )
        reconciler = Reconciler(gateway, tz=UTC_MINUS_5)
        await reconciler.poll_once()
        return reconciler

    reconciler = asyncio.run(scenario())
    assert "Ghost Zone" not in reconciler.view_model.zones
    assert reconciler.view_model.zones["Front Lawn"].last_status_text == "Completed at 2025-01-01 22:04:05 UTC-05:00"


def test_zone_poll_failure_keeps_last_known_state() -> None:
    async def scenario():
        gateway = ScriptedGateway([zone("Front Lawn", running=True)])
        reconciler = Reconciler(gateway, tz=timezone.utc)
        await reconciler.poll_once()
        gateway.zones_reply = FAILURE
        await reconciler.poll_once()
        return reconciler

    reconciler = asyncio.run(scenario())
    assert reconciler.view_model.zones["Front Lawn"].running is True
    assert reconciler.view_model.zones_error == FAILURE.message


def test_zone_missing_from_poll_is_dropped() -> None:
    async def scenario():
        gateway = ScriptedGateway([zone("Front Lawn"), zone("Back Garden", zone_id="2")])
        reconciler = Reconciler(gateway, tz=timezone.utc)
        await reconciler.poll_once()
        gateway.zones_reply = Ok([zone("Front Lawn")])
        await reconciler.poll_once()
        return reconciler

    reconciler = asyncio.run(scenario())
    assert list(reconciler.view_model.zones) == ["Front Lawn"]


def test_schedule_none_renders_placeholders() -> None:
    async def scenario():
        reconciler = Reconciler(ScriptedGateway([]), tz=timezone.utc)
        await reconciler.poll_once()
        return reconciler.schedule_display()

    display = asyncio.run(scenario())
    assert (display.program, display.time, display.stale) == ("None", "--:--", False)


def test_schedule_scheduled_renders_local_time() -> None:
    async def scenario():
        gateway = ScriptedGateway([])
        gateway.schedule_reply = Ok(
            ScheduleSummary(status="scheduled", name="Evening Watering", time="2025-01-02T19:00:00Z")
        )
        reconciler = Reconciler(gateway, tz=UTC_MINUS_5)
        await reconciler.poll_once()
        return reconciler.schedule_display()

    display = asyncio.run(scenario())
    assert (display.program, display.time) == ("Evening Watering", "14:00")


def test_schedule_failure_keeps_previous_and_marks_stale() -> None:
    async def scenario():
        gateway = ScriptedGateway([])
        gateway.schedule_reply = Ok(ScheduleSummary(status="scheduled", name="Evening Watering", time="2025-01-02T19:00:00Z"))
        reconciler = Reconciler(gateway, tz=timezone.utc)
        await reconciler.poll_once()
        gateway.schedule_reply = FAILURE
        await reconciler.poll_once()
        return reconciler.schedule_display()

    display = asyncio.run(scenario())
    assert (display.program, display.time, display.stale) == ("Evening Watering (Error)", "19:00", True)


def test_schedule_failure_without_history_shows_error() -> None:
    async def scenario():
        gateway = ScriptedGateway([])
        gateway.schedule_reply = FAILURE
        reconciler = Reconciler(gateway, tz=timezone.utc)
        await reconciler.poll_once()
        return reconciler.schedule_display()

    display = asyncio.run(scenario())
    assert (display.program, display.time, display.stale) == ("Error", "--:--", True)


def test_start_polling_is_idempotent() -> None:
    async def scenario():
        reconciler = Reconciler(ScriptedGateway([zone("Front Lawn")]), tz=timezone.utc)
        reconciler.start_polling(0.01)
        first = reconciler._poller._task
        reconciler.start_polling(0.01)
        same = reconciler._poller._task is first
        await asyncio.sleep(0.05)
        await reconciler.stop_polling()
        seq = reconciler.poll_sequence
        await asyncio.sleep(0.03)
        return same, seq, reconciler

    same, seq, reconciler = asyncio.run(scenario())
    assert same
    assert seq >= 1
    assert reconciler.poll_sequence == seq
    assert not reconciler.polling


def test_pre_action_poll_landing_after_newer_poll_is_dropped() -> None:
    async def scenario():
        gateway = ScriptedGateway([zone("Front Lawn")])
        reconciler = Reconciler(gateway, tz=timezone.utc)
        await reconciler.poll_once()

        gateway.hold("zones")
        stale_poll = asyncio.create_task(reconciler.poll_once())
        await settle()
        assert (await reconciler.start_zone("Front Lawn")).ok

        stale_gate = gateway.detach("zones")
        gateway.zones_reply = Ok([zone("Front Lawn", running=True)])
        assert await reconciler.poll_once() == 3
        assert reconciler.pending_since("Front Lawn") is None

        gateway.zones_reply = Ok([zone("Front Lawn", running=False)])
        stale_gate.set()
        await stale_poll
        return reconciler

    reconciler = asyncio.run(scenario())
    assert reconciler.view_model.zones["Front Lawn"].running is True


def test_older_schedule_never_replaces_newer() -> None:
    async def scenario():
        gateway = ScriptedGateway([])
        reconciler = Reconciler(gateway, tz=timezone.utc)

        gateway.hold("schedule")
        slow_poll = asyncio.create_task(reconciler.poll_once())
        await settle()

        slow_gate = gateway.detach("schedule")
        gateway.schedule_reply = Ok(ScheduleSummary(status="scheduled", name="Morning", time="2025-01-02T06:00:00Z"))
        await reconciler.poll_once()

        gateway.schedule_reply = Ok(ScheduleSummary(status="none"))
        slow_gate.set()
        await slow_poll
        return reconciler.schedule_display()

    display = asyncio.run(scenario())
    assert (display.program, display.time, display.stale) == ("Morning", "06:00", False)


def test_schedule_failure_after_none_keeps_marker() -> None:
    async def scenario():
        gateway = ScriptedGateway([])
        reconciler = Reconciler(gateway, tz=timezone.utc)
        await reconciler.poll_once()
        gateway.schedule_reply = FAILURE
        await reconciler.poll_once()
        return reconciler.schedule_display()

    display = asyncio.run(scenario())
    assert (display.program, display.time, display.stale) == ("None (Error)", "--:--", True)
