"""Async HTTP gateway over the sprinkler controller's REST API."""

from __future__ import annotations

import mimetypes
from typing import Any, List, Optional
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter, ValidationError

from ..logger import get_logger
from .results import Err, GatewayFailure, Ok, Result
from .schemas import ActionAck, LogSummary, Program, ScheduleSummary, Zone, ZoneUpdate

logger = get_logger(__name__)

API_PREFIX = "/api/v1"

_ZONES = TypeAdapter(List[Zone])
_PROGRAMS = TypeAdapter(List[Program])
_PROGRAM = TypeAdapter(Program)
_SCHEDULE = TypeAdapter(ScheduleSummary)
_LOG_SUMMARY = TypeAdapter(LogSummary)
_ACK = TypeAdapter(ActionAck)


def segment(value: str) -> str:
    """Percent-encode a single path segment such as a zone or program name."""

    return quote(str(value), safe="")


class ApiGateway:
    """Uniform GET/POST/PUT/DELETE wrapper returning :class:`Ok` or :class:`Err`.

    Every call is attempted exactly once. Transport errors, non-2xx statuses
    and undecodable bodies all come back as ``Err``; nothing is raised.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)
        logger.debug("API gateway created for %s (timeout=%s)", base_url, timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ApiGateway":
        return self

    async def __aexit__(self, *_exc_info: Any) -> None:
        await self.aclose()

    # --------------------------------------------------------------------- #
    # Raw verbs                                                             #
    # --------------------------------------------------------------------- #

    async def request(self, method: str, path: str, body: Any = None, *, text: bool = False, **kwargs: Any) -> Result:
        if body is not None:
            kwargs["json"] = body
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            failure = GatewayFailure.network(method, path, exc)
            logger.warning("%s (%s)", failure.message, exc)
            return Err(failure)

        if not response.is_success:
            failure = GatewayFailure.http_status(method, path, response.status_code)
            logger.warning(failure.message)
            return Err(failure)

        if text:
            return Ok(response.text)
        if not response.content:
            return Ok(None)
        try:
            return Ok(response.json())
        except ValueError as exc:
            failure = GatewayFailure.malformed(method, path, "invalid JSON")
            logger.warning("%s (%s)", failure.message, exc)
            return Err(failure)

    async def get(self, path: str) -> Result:
        return await self.request("GET", path)

    async def get_text(self, path: str) -> Result:
        return await self.request("GET", path, text=True)

    async def post(self, path: str, body: Any = None) -> Result:
        return await self.request("POST", path, body)

    async def put(self, path: str, body: Any = None) -> Result:
        return await self.request("PUT", path, body)

    async def delete(self, path: str) -> Result:
        return await self.request("DELETE", path)

    async def upload(self, path: str, filename: str, content: bytes) -> Result:
        content_type = mimetypes.guess_type(filename)[0] or "application/octet-stream"
        return await self.request("POST", path, files={"file": (filename, content, content_type)})

    # --------------------------------------------------------------------- #
    # Endpoint helpers                                                      #
    # --------------------------------------------------------------------- #

    async def list_zones(self) -> Result:
        return _decode(await self.get(f"{API_PREFIX}/zones"), _ZONES, "GET", "zones")

    async def update_zone(self, update: ZoneUpdate) -> Result:
        path = f"{API_PREFIX}/zones/{segment(update.id)}"
        return _decode(await self.put(path, update.model_dump(by_alias=True)), _ACK, "PUT", path)

    async def zone_action(self, zone_name: str, action: str) -> Result:
        if action not in ("start", "stop"):
            raise ValueError(f"Unsupported zone action: {action!r}")
        path = f"{API_PREFIX}/zones/{segment(zone_name)}/{action}"
        return _decode(await self.post(path), _ACK, "POST", path)

    async def list_programs(self) -> Result:
        return _decode(await self.get(f"{API_PREFIX}/programs"), _PROGRAMS, "GET", "programs")

    async def get_program(self, name: str) -> Result:
        path = f"{API_PREFIX}/programs/{segment(name)}"
        return _decode(await self.get(path), _PROGRAM, "GET", path)

    async def create_program(self, program: Program) -> Result:
        path = f"{API_PREFIX}/programs"
        return _decode(await self.post(path, program.model_dump()), _ACK, "POST", path)

    async def update_program(self, original_name: str, program: Program) -> Result:
        path = f"{API_PREFIX}/programs/{segment(original_name)}"
        return _decode(await self.put(path, program.model_dump()), _ACK, "PUT", path)

    async def delete_program(self, name: str) -> Result:
        return await self.delete(f"{API_PREFIX}/programs/{segment(name)}")

    async def log_text(self) -> Result:
        return await self.get_text(f"{API_PREFIX}/logs/summary")

    async def log_summary(self) -> Result:
        return _decode(await self.get(f"{API_PREFIX}/logs/summaryJson"), _LOG_SUMMARY, "GET", "logs/summaryJson")

    async def next_schedule(self) -> Result:
        return _decode(await self.get(f"{API_PREFIX}/next-schedule"), _SCHEDULE, "GET", "next-schedule")

    async def run_test_program(self) -> Result:
        path = f"{API_PREFIX}/test-program"
        return _decode(await self.post(path), _ACK, "POST", path)

    async def upload_image(self, filename: str, content: bytes) -> Result:
        path = f"{API_PREFIX}/upload"
        return _decode(await self.upload(path, filename, content), _ACK, "POST", path)


def _decode(result: Result, adapter: TypeAdapter, method: str, path: str) -> Result:
    """Validate an ``Ok`` payload against ``adapter``; errors pass through untouched."""

    if isinstance(result, Err):
        return result
    payload = result.value if result.value is not None else {}
    try:
        return Ok(adapter.validate_python(payload))
    except ValidationError as exc:
        failure = GatewayFailure.malformed(method, path, f"{exc.error_count()} validation error(s)")
        logger.warning("%s: %s", failure.message, exc.errors()[:1])
        return Err(failure)
