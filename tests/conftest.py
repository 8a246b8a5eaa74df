import copy
import json
from typing import Any, Dict, List, Optional

import httpx
import pytest

from sprinklerpanel.config import PanelSettings
from sprinklerpanel.gateway import ApiGateway

BASE_URL = "http://pico-framework"

DEFAULT_ZONES = [
    {"id": "1", "name": "Front Lawn", "gpioPin": 2, "active": True, "running": False, "image": "Front Lawn.jpg"},
    {"id": "2", "name": "Back Garden", "gpioPin": 3, "active": True, "running": False},
]

DEFAULT_PROGRAMS = [
    {
        "name": "Evening Watering",
        "start": "19:00",
        "days": 73,
        "zones": [{"zone": "Front Lawn", "duration": 120}, {"zone": "Back Garden", "duration": 180}],
    }
]


class FakeController:
    """In-memory stand-in for the controller's REST API, served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.zones: List[Dict[str, Any]] = copy.deepcopy(DEFAULT_ZONES)
        self.programs: List[Dict[str, Any]] = copy.deepcopy(DEFAULT_PROGRAMS)
        self.log_summary: Dict[str, Any] = {
            "zones": {
                "Front Lawn": {"status": "completed", "time": "2025-01-02 03:04:05"},
                "Ghost Zone": {"status": "completed", "time": "2025-01-02 03:10:00"},
            }
        }
        self.log_text = (
            "[2025-01-02 03:04:05] [INFO] Zone \"Front Lawn\" started\n"
            "[2025-01-02 03:06:05] [INFO] Zone \"Front Lawn\" completed\n"
        )
        self.schedule: Dict[str, Any] = {"status": "none"}
        self.failures: Dict[str, int] = {}
        self.offline = False
        self.uploads: List[str] = []
        self.requests: List[httpx.Request] = []

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def gateway(self) -> ApiGateway:
        return ApiGateway(BASE_URL, transport=self.transport())

    def _zone(self, key: str, field: str) -> Optional[Dict[str, Any]]:
        return next((zone for zone in self.zones if str(zone[field]) == key), None)

    def _program(self, name: str) -> Optional[Dict[str, Any]]:
        return next((program for program in self.programs if program["name"] == name), None)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.offline:
            raise httpx.ConnectError("controller unreachable", request=request)
        path = request.url.path
        method = request.method
        if path in self.failures:
            return httpx.Response(self.failures[path])

        ok = {"success": True}
        parts = path.removeprefix("/api/v1/").split("/")
        body = json.loads(request.content) if request.content and "json" in request.headers.get("content-type", "") else None

        if parts == ["zones"] and method == "GET":
            return httpx.Response(200, json=self.zones)
        if parts[0] == "zones" and len(parts) == 2 and method == "PUT":
            zone = self._zone(parts[1], "id")
            if zone is None:
                return httpx.Response(404, json={"error": "Zone not found"})
            zone.update(body)
            return httpx.Response(200, json=ok)
        if parts[0] == "zones" and len(parts) == 3 and method == "POST":
            zone = self._zone(parts[1], "name")
            if zone is None:
                return httpx.Response(404, json={"error": "Zone not found"})
            zone["running" if "running" in zone else "active"] = parts[2] == "start"
            return httpx.Response(200, json=ok)
        if parts == ["programs"] and method == "GET":
            return httpx.Response(200, json=self.programs)
        if parts == ["programs"] and method == "POST":
            self.programs.append(body)
            return httpx.Response(200, json=ok)
        if parts[0] == "programs" and len(parts) == 2:
            program = self._program(parts[1])
            if program is None:
                return httpx.Response(404, json={"error": "Program not found"})
            if method == "GET":
                return httpx.Response(200, json=program)
            if method == "PUT":
                program.update(body)
                return httpx.Response(200, json=ok)
            if method == "DELETE":
                self.programs.remove(program)
                return httpx.Response(200, json=ok)
        if parts == ["logs", "summary"]:
            return httpx.Response(200, text=self.log_text)
        if parts == ["logs", "summaryJson"]:
            return httpx.Response(200, json=self.log_summary)
        if parts == ["next-schedule"]:
            return httpx.Response(200, json=self.schedule)
        if parts == ["test-program"] and method == "POST":
            return httpx.Response(200, json={"success": True, "scheduled": "2025-01-02T03:05:00Z"})
        if parts == ["upload"] and method == "POST":
            self.uploads.append(request.content.decode("latin-1"))
            return httpx.Response(200, json=ok)
        return httpx.Response(404, json={"error": "Not found"})


@pytest.fixture()
def controller() -> FakeController:
    return FakeController()


@pytest.fixture()
def settings() -> PanelSettings:
    return PanelSettings(
        backend_url=BASE_URL,
        timezone="UTC",
        poll_interval_seconds=30.0,
        log_refresh_seconds=30.0,
    )
