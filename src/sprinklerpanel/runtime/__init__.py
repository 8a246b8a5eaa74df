"""Runtime helpers: periodic tasks and dashboard reconciliation."""

from .periodic import PeriodicTask
from .reconciler import Reconciler, ScheduleDisplay, ViewModel, ZoneDisplay

__all__ = [
    "PeriodicTask",
    "Reconciler",
    "ScheduleDisplay",
    "ViewModel",
    "ZoneDisplay",
]
