# backend/api/ws_dashboard.py

import asyncio
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from api.deps import get_store
from db.store import DocumentStore
from services.dashboard import DashboardView

log = logging.getLogger(__name__)

router = APIRouter()


async def send_json_safe(ws: WebSocket, payload: Dict[str, Any]) -> None:
    try:
        await ws.send_json(payload)
    except RuntimeError:
        # connection is probably closed
        pass


@router.websocket("/generate/ws")
async def dashboard_ws(websocket: WebSocket, store: DocumentStore = Depends(get_store)):
    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue()

    # store writes may come from the threadpool running sync routes
    def push(view: Dict[str, Any]) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, view)

    async def pump() -> None:
        while True:
            await send_json_safe(websocket, await queue.get())

    view = DashboardView(store, on_change=push).mount()
    sender = asyncio.create_task(pump())
    try:
        while True:
            # clients send nothing meaningful; this only waits for the disconnect
            await websocket.receive_text()
    except WebSocketDisconnect:
        log.info("dashboard socket closed")
    finally:
        view.teardown()
        sender.cancel()
