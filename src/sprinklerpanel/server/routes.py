"""HTTP surface exposing the panel session to a browser."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse
from pydantic import BaseModel

from ..logger import get_logger
from ..views import ActionFailed, Router, UnknownAction

router = APIRouter()
logger = get_logger(__name__)


class NavigateRequest(BaseModel):
    hash: str


SHELL_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <title>Sprinkler Panel</title>
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <style>
    body { margin: 0 auto; padding: 1.5rem; max-width: 960px; font-family: system-ui, sans-serif; }
    nav a { margin-right: 1rem; }
    nav a.active { font-weight: bold; }
    pre { background: rgba(127, 127, 127, 0.1); padding: 1rem; overflow: auto; }
  </style>
</head>
<body>
  <nav id="nav"></nav>
  <pre id="app">Loading...</pre>
  <script>
    function render(state) {
      document.getElementById('nav').innerHTML = state.nav
        .map(link => `<a href="${link.target}" class="${link.active ? 'active' : ''}">${link.label}</a>`)
        .join('');
      document.getElementById('app').textContent = JSON.stringify(state.view, null, 2);
    }
    async function loadRoute() {
      const res = await fetch('/panel/navigate', {
        method: 'POST',
        headers: { 'Content-Type': 'application/json' },
        body: JSON.stringify({ hash: location.hash || '#/' })
      });
      render(await res.json());
    }
    window.addEventListener('hashchange', loadRoute);
    window.addEventListener('DOMContentLoaded', loadRoute);
    setInterval(async () => render(await (await fetch('/panel')).json()), 5000);
  </script>
</body>
</html>
"""


def get_panel(request: Request) -> Router:
    return request.app.state.panel


def panel_state(panel: Router) -> Dict[str, Any]:
    route = panel.current_route()
    view = panel.current_view()
    return {
        "route": route.path if route else None,
        "view_tag": route.view_tag if route else None,
        "nav": [asdict(link) for link in panel.nav_links()],
        "view": view.snapshot() if view else None,
    }


@router.get("/", response_class=HTMLResponse)
async def shell() -> HTMLResponse:
    """Serve the HTML shell."""

    logger.debug("Serving panel shell HTML")
    return HTMLResponse(content=SHELL_HTML)


@router.get("/panel")
async def read_panel(panel: Router = Depends(get_panel)) -> Dict[str, Any]:
    """Return the current route, navigation state and view snapshot."""

    return panel_state(panel)


@router.post("/panel/navigate")
async def navigate(payload: NavigateRequest, panel: Router = Depends(get_panel)) -> Dict[str, Any]:
    """Navigate to a hash route."""

    await panel.navigate(payload.hash)
    return panel_state(panel)


@router.post("/panel/actions/{action}")
async def perform_action(
    action: str,
    payload: Dict[str, Any] = Body(default={}),
    panel: Router = Depends(get_panel),
) -> Dict[str, Any]:
    """Run an action on the mounted view."""

    view = panel.current_view()
    if view is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="No view is mounted.")
    try:
        result = await view.perform(action, payload)
    except UnknownAction as exc:
        logger.error("Requested action does not exist: %s", action)
        raise HTTPException(status_code=404, detail=exc.args[0]) from exc
    except ActionFailed as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message) from exc
    except ValueError as exc:
        logger.warning("Rejected payload for action '%s': %s", action, exc)
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return {"result": result, **panel_state(panel)}
