"""
Push notifications for new mentions and spike alerts.

Subscribers join per-brand rooms over a WebSocket and receive JSON frames of
the form ``{"event": <name>, "data": <payload>}``.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Protocol, Set

from fastapi import WebSocket, WebSocketDisconnect

from buzztrack import schemas
from buzztrack.models import Mention, SpikeReport

logger = logging.getLogger(__name__)

EVENT_NEW_MENTION = "new-mention"
EVENT_SPIKE_ALERT = "spike-alert"

_SEND_ERRORS = (WebSocketDisconnect, RuntimeError, ConnectionError)


class EventSink(Protocol):
    async def emit_mention(self, mention: Mention) -> None: ...

    async def emit_spike(self, report: SpikeReport) -> None: ...


class NullEventSink:
    """Discards every event."""

    async def emit_mention(self, mention: Mention) -> None:
        return None

    async def emit_spike(self, report: SpikeReport) -> None:
        return None


def mention_payload(mention: Mention) -> Dict[str, Any]:
    return schemas.Mention.model_validate(mention).model_dump(mode="json", by_alias=True)


def spike_payload(report: SpikeReport) -> Dict[str, Any]:
    return schemas.SpikeReport.model_validate(report).model_dump(mode="json", by_alias=True)


def _room_key(brand: str) -> str:
    return (brand or "").strip().lower()


class RoomBroadcaster:
    """Brand rooms of WebSocket peers."""

    def __init__(self) -> None:
        self._rooms: Dict[str, Set[WebSocket]] = {}

    def subscribe(self, websocket: WebSocket, brand: str) -> None:
        self._rooms.setdefault(_room_key(brand), set()).add(websocket)

    def unsubscribe(self, websocket: WebSocket, brand: str) -> None:
        key = _room_key(brand)
        peers = self._rooms.get(key)
        if peers is None:
            return
        peers.discard(websocket)
        if not peers:
            del self._rooms[key]

    def disconnect(self, websocket: WebSocket) -> None:
        for key in list(self._rooms):
            self.unsubscribe(websocket, key)

    def subscriptions(self) -> Dict[str, int]:
        """Number of subscribers per brand room."""
        return {key: len(peers) for key, peers in self._rooms.items()}

    def has_subscribers(self, brand: str) -> bool:
        return bool(self._rooms.get(_room_key(brand)))

    async def handle_message(self, websocket: WebSocket, message: Any) -> None:
        """
        Apply one client frame.

        Args:
            websocket: Sending peer
            message: Decoded JSON, ``{"action": "subscribe"|"unsubscribe", "brand": ...}``
        """
        if not isinstance(message, dict):
            await websocket.send_json({"event": "error", "data": {"message": "Invalid message"}})
            return

        action = message.get("action")
        brand = (message.get("brand") or "").strip() if isinstance(message.get("brand"), str) else ""

        if action == "subscribe":
            if not brand:
                await websocket.send_json({"event": "error", "data": {"message": "Brand name is required"}})
                return
            self.subscribe(websocket, brand)
            logger.info("Client subscribed to %s", brand)
            await websocket.send_json({"event": "subscribed", "data": {"brand": brand}})
        elif action == "unsubscribe":
            if not brand:
                return
            self.unsubscribe(websocket, brand)
            logger.info("Client unsubscribed from %s", brand)
            await websocket.send_json({"event": "unsubscribed", "data": {"brand": brand}})
        else:
            await websocket.send_json({"event": "error", "data": {"message": f"Unknown action: {action}"}})

    async def serve(self, websocket: WebSocket) -> None:
        """Accept a peer and process its frames until it disconnects."""
        await websocket.accept()
        try:
            while True:
                try:
                    message = await websocket.receive_json()
                except ValueError:
                    await websocket.send_json({"event": "error", "data": {"message": "Invalid JSON"}})
                    continue
                await self.handle_message(websocket, message)
        except WebSocketDisconnect:
            pass
        finally:
            self.disconnect(websocket)

    async def broadcast(self, brand: str, event: str, data: Dict[str, Any]) -> int:
        """
        Send an event to every peer in a brand room.

        Returns:
            Number of peers the frame was delivered to
        """
        peers = self._rooms.get(_room_key(brand))
        if not peers:
            return 0

        message = {"event": event, "data": data}
        dead = []
        delivered = 0
        for websocket in list(peers):
            try:
                await websocket.send_json(message)
                delivered += 1
            except _SEND_ERRORS:
                dead.append(websocket)
        for websocket in dead:
            self.disconnect(websocket)
        return delivered

    async def emit_mention(self, mention: Mention) -> None:
        await self.broadcast(mention.brand, EVENT_NEW_MENTION, mention_payload(mention))

    async def emit_spike(self, report: SpikeReport) -> None:
        delivered = await self.broadcast(report.brand, EVENT_SPIKE_ALERT, spike_payload(report))
        logger.info("Spike alert for %s sent to %d subscribers", report.brand, delivered)
