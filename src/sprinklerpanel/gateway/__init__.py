"""REST gateway for the sprinkler controller."""

from ..logger import get_logger
from .client import API_PREFIX, ApiGateway, segment
from .results import Err, FailureKind, GatewayFailure, Ok, Result
from .schemas import LogSummary, Program, ProgramStep, ScheduleSummary, Zone, ZoneLogEntry, ZoneUpdate

get_logger(__name__).debug("Gateway package loaded")

__all__ = [
    "API_PREFIX",
    "ApiGateway",
    "segment",
    "Err",
    "FailureKind",
    "GatewayFailure",
    "Ok",
    "Result",
    "LogSummary",
    "Program",
    "ProgramStep",
    "ScheduleSummary",
    "Zone",
    "ZoneLogEntry",
    "ZoneUpdate",
]
