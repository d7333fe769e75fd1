"""WebSocket endpoint for live sale/stock notifications."""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

router = APIRouter(tags=["notifications"])


@router.websocket("/ws")
async def notifications_socket(websocket: WebSocket):
    manager = websocket.app.state.broadcaster
    await manager.connect(websocket)
    try:
        # Clients only listen; inbound frames are read and discarded
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(websocket)
