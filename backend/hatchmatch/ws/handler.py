"""WebSocket endpoint for trip recommendations with progress updates.

The client sends ``{"waters": [{"id": ..., "name": ...}, ...]}``.  The
server replies with one ``progress`` message per water as it completes,
then a terminal ``result`` or ``error`` message.  ``{"type": "ping"}`` is
answered with ``{"type": "pong"}``.
"""

import json
import logging
from typing import Any

import httpx
from fastapi import Depends, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session

from ..api.dependencies import build_recommendation_service, get_clock, get_http_client, get_oracle
from ..exceptions import HatchMatchError
from ..models.database import get_db
from ..services.clock import Clock
from ..services.trip_aggregator import TripProgress, TripRecommendationAggregator, TripWater

logger = logging.getLogger(__name__)

TRIP_FAILED_MESSAGE = "Could not get trip recommendations"


def _parse_waters(raw: Any) -> list[TripWater]:
    if not isinstance(raw, list):
        return []
    waters = []
    for item in raw:
        if isinstance(item, dict) and item.get("id") and item.get("name"):
            waters.append(TripWater(id=str(item["id"]), name=str(item["name"])))
    return waters


async def _run_trip(
    websocket: WebSocket,
    waters: list[TripWater],
    db: Session,
    client: httpx.AsyncClient,
    now: Clock,
) -> None:
    async def send_progress(progress: TripProgress) -> None:
        await websocket.send_json({"type": "progress", "done": progress.done, "total": progress.total})

    try:
        service = build_recommendation_service(db, client, get_oracle(), now)
        aggregator = TripRecommendationAggregator(lambda water: service.fly_list(water.id))
        result = await aggregator.aggregate_trip(waters, on_progress=send_progress)
    except HatchMatchError as exc:
        await websocket.send_json({"type": "error", "error": str(exc)})
        return
    except (WebSocketDisconnect, ConnectionResetError):
        raise
    except Exception:
        logger.exception("Trip recommendations failed")
        await websocket.send_json({"type": "error", "error": TRIP_FAILED_MESSAGE})
        return

    await websocket.send_json({
        "type": "result",
        "recommendations": [r.to_dict() for r in result.recommendations],
        "failed_waters": result.failed_waters,
    })


async def trip_recommendations_endpoint(
    websocket: WebSocket,
    db: Session = Depends(get_db),
    client: httpx.AsyncClient = Depends(get_http_client),
    now: Clock = Depends(get_clock),
) -> None:
    await websocket.accept()
    logger.info("Trip recommendation client connected")
    try:
        while True:
            data = await websocket.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "error": "Invalid JSON"})
                continue
            if not isinstance(msg, dict):
                continue
            if msg.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
            elif "waters" in msg:
                await _run_trip(websocket, _parse_waters(msg["waters"]), db, client, now)
    except (WebSocketDisconnect, ConnectionResetError, OSError):
        logger.info("Trip recommendation client disconnected")
