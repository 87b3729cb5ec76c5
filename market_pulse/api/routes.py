"""JSON and WebSocket routes for the market dashboard.

Every route reads the running RefreshLoop from ``app.state.loop``.
"""

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ConfigDict

from market_pulse.api.rate_limiter import limiter
from market_pulse.commentary.prompts import role_title
from market_pulse.engine.refresh_loop import RefreshLoop
from market_pulse.market.models import ChartMode, TimeFrame

logger = logging.getLogger(__name__)

router = APIRouter()


class TimeframeRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    timeframe: str


class ChartModeRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    mode: str


def _loop(request: Request) -> RefreshLoop:
    return request.app.state.loop


# ============================================================================
# Health Check
# ============================================================================


@router.get("/health")
@limiter.limit("60/minute")
async def health_check(request: Request) -> dict[str, str]:
    """Health check endpoint.

    Example:
        >>> GET /health
        {"status": "ok"}
    """
    return {"status": "ok"}


# ============================================================================
# Dashboard
# ============================================================================


@router.get("/api/dashboard")
@limiter.limit("600/minute")
async def get_dashboard(request: Request) -> dict[str, Any]:
    """Current dashboard state: selections, loop status, latest snapshot and commentary."""
    return _loop(request).state.to_dict()


@router.post("/api/dashboard/refresh", status_code=202)
@limiter.limit("30/minute")
async def refresh_dashboard(request: Request) -> dict[str, str]:
    """Queue a manual refresh of the current timeframe."""
    _loop(request).refresh()
    return {"status": "queued"}


@router.put("/api/dashboard/timeframe")
@limiter.limit("60/minute")
async def set_timeframe(request: Request, body: TimeframeRequest) -> dict[str, str]:
    """Select a chart timeframe and reload.

    Raises:
        HTTPException: 400 if the timeframe is unknown
    """
    try:
        selected = _loop(request).set_timeframe(body.timeframe)
    except ValueError:
        allowed = ", ".join(t.value for t in TimeFrame)
        raise HTTPException(
            status_code=400,
            detail=f"Unknown timeframe '{body.timeframe}'. Allowed: {allowed}",
        )
    return {"timeframe": selected.value}


@router.put("/api/dashboard/mode")
@limiter.limit("60/minute")
async def set_chart_mode(request: Request, body: ChartModeRequest) -> dict[str, str]:
    """Select a chart mode. Clears the commentary panel.

    Raises:
        HTTPException: 400 if the mode is unknown
    """
    try:
        selected = _loop(request).set_chart_mode(body.mode)
    except ValueError:
        allowed = ", ".join(m.value for m in ChartMode)
        raise HTTPException(
            status_code=400,
            detail=f"Unknown chart mode '{body.mode}'. Allowed: {allowed}",
        )
    return {"mode": selected.value}


# ============================================================================
# AI Commentary
# ============================================================================


@router.post("/api/commentary")
@limiter.limit("10/minute;100/day")
async def request_commentary(request: Request) -> dict[str, str]:
    """Ask the AI analyst about the numbers currently on screen.

    Always answers 200: configuration and provider problems come back as
    fixed messages in ``text``.
    """
    mode, text = await _loop(request).request_commentary()
    return {"mode": mode.value, "role": role_title(mode), "text": text}


# ============================================================================
# WebSocket
# ============================================================================


@router.websocket("/ws/dashboard")
async def dashboard_websocket(websocket: WebSocket) -> None:
    """Stream the dashboard state on every change.

    Message format:
        {"type": "state_update", "payload": {...}}
        {"type": "pong"} in answer to a "ping" text frame
    """
    await websocket.accept()
    loop: RefreshLoop = websocket.app.state.loop

    version = loop.state.version
    await websocket.send_json({"type": "state_update", "payload": loop.state.to_dict()})

    receive = asyncio.ensure_future(websocket.receive_text())
    change = asyncio.ensure_future(loop.wait_for_change(version))
    try:
        while True:
            done, _ = await asyncio.wait({receive, change}, return_when=asyncio.FIRST_COMPLETED)

            if receive in done:
                if receive.result() == "ping":
                    await websocket.send_json({"type": "pong"})
                receive = asyncio.ensure_future(websocket.receive_text())

            if change in done:
                state = change.result()
                version = state.version
                await websocket.send_json({"type": "state_update", "payload": state.to_dict()})
                change = asyncio.ensure_future(loop.wait_for_change(version))
    except WebSocketDisconnect:
        logger.debug("Dashboard WebSocket disconnected")
    finally:
        receive.cancel()
        change.cancel()
