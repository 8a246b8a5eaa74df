"""Mountable views and the hash router that switches between them."""

from typing import List, Tuple

from ..logger import get_logger
from .base import ActionFailed, UnknownAction, View, ViewContext, ViewFactory
from .dashboard import DashboardView
from .log import LogView
from .programs import ProgramEditorView, ProgramListView
from .registry import ViewRegistry
from .router import DEFAULT_PATH, NAV_TARGETS, ROUTES, NavLink, Route, Router, split_hash
from .zones import ZoneEditorView

get_logger(__name__).debug("Views package loaded")


def default_views() -> List[Tuple[str, ViewFactory]]:
    """Return the (tag, factory) pairs for every built-in view."""

    return [
        (view.tag, view)
        for view in (DashboardView, ZoneEditorView, ProgramListView, ProgramEditorView, LogView)
    ]


__all__ = [
    "ActionFailed",
    "UnknownAction",
    "View",
    "ViewContext",
    "ViewFactory",
    "ViewRegistry",
    "DashboardView",
    "LogView",
    "ProgramEditorView",
    "ProgramListView",
    "ZoneEditorView",
    "DEFAULT_PATH",
    "NAV_TARGETS",
    "ROUTES",
    "NavLink",
    "Route",
    "Router",
    "split_hash",
    "default_views",
]
