"""
Socket.IO gateway for game rooms.

Each handler does all of its validation and room mutation before its first ``await``, so a
room is never seen half-updated by another event on the same loop.
"""

import logging

from pydantic import ValidationError
import socketio

from app.core.config import Settings
from app.core.request_meta import extract_client_ip_from_environ
from app.schemas.room import RoomJoinRequest
from app.services.action_processor import ActionProcessor, ActionResult
from app.services.errors import GameActionError
from app.services.rate_limit_service import RateLimitService
from app.services.room_registry import LeaveResult, RoomRegistry
from app.services.room_state import Room

logger = logging.getLogger(__name__)


def _session_string(session: dict, key: str) -> str:
    value = session.get(key)
    return value.strip() if isinstance(value, str) else ""


class GameSocketServer:
    def __init__(
        self,
        registry: RoomRegistry,
        processor: ActionProcessor,
        settings: Settings,
        rate_limiter: RateLimitService | None = None,
    ) -> None:
        self.registry = registry
        self.processor = processor
        self.settings = settings
        self.rate_limiter = rate_limiter or RateLimitService()
        self.sio = socketio.AsyncServer(
            async_mode="asgi",
            cors_allowed_origins="*" if "*" in settings.cors_origins else settings.cors_origins,
        )
        self._register_handlers()

    def _register_handlers(self) -> None:
        self.sio.on("connect", handler=self.connect)
        self.sio.on("disconnect", handler=self.disconnect)
        self.sio.on("createServer", handler=self.create_server)
        self.sio.on("requestServerList", handler=self.request_server_list)
        self.sio.on("joinServer", handler=self.join_server)
        self.sio.on("leaveServer", handler=self.leave_server)
        self.sio.on("playerAction", handler=self.player_action)
        self.sio.on("chatMessage", handler=self.chat_message)
        self.sio.on("setReady", handler=self.set_ready)

    def asgi_app(self, api_app) -> socketio.ASGIApp:
        return socketio.ASGIApp(
            self.sio,
            other_asgi_app=api_app,
            socketio_path=self.settings.socketio_path,
        )

    # -- helpers -------------------------------------------------------------------------

    def _is_connect_allowed(self, client_ip: str) -> bool:
        if not self.settings.rate_limit_enabled:
            return True
        decision = self.rate_limiter.check(
            f"ws:connect:{client_ip or 'unknown'}",
            limit=self.settings.websocket_connect_limit,
            window_seconds=self.settings.websocket_connect_window_seconds,
        )
        return decision.allowed

    def _is_event_allowed(self, sid: str, event_name: str) -> bool:
        if not self.settings.rate_limit_enabled:
            return True
        decision = self.rate_limiter.check(
            f"ws:event:{event_name}:{sid}",
            limit=self.settings.websocket_event_limit,
            window_seconds=self.settings.websocket_event_window_seconds,
        )
        return decision.allowed

    async def _rate_limited(self, sid: str, event_name: str) -> dict:
        await self.sio.emit(
            "rate_limited",
            {"event": event_name, "message": "Too many requests. Slow down."},
            room=sid,
        )
        return {"ok": False, "error": "rate limited"}

    async def _session(self, sid: str) -> dict:
        try:
            return await self.sio.get_session(sid)
        except KeyError:
            return {}

    async def _set_session_room(self, sid: str, room_id: str | None) -> None:
        session = await self._session(sid)
        session["room_id"] = room_id
        await self.sio.save_session(sid, session)

    async def _current_room(self, sid: str) -> Room | None:
        session = await self._session(sid)
        room = self.registry.get(_session_string(session, "room_id"))
        if room is None or sid not in room.players:
            return None
        return room

    async def _system_chat(self, room_id: str, message: str) -> None:
        await self.sio.emit("globalChat", (message, "system"), room=room_id)

    async def _error_chat(self, sid: str, error: GameActionError) -> None:
        await self.sio.emit("globalChat", (f"ERROR: {error.message}", "error"), room=sid)

    async def _broadcast_state(self, room: Room) -> None:
        await self.sio.emit("stateUpdate", room.serialize_state(), room=room.id)

    async def _publish_result(self, room: Room, result: ActionResult) -> None:
        for notice in result.notices:
            await self.sio.emit(notice.event, notice.payload, room=notice.player_id)
        await self._broadcast_state(room)
        if result.message:
            await self._system_chat(room.id, result.message)

    async def _run_leave_sequence(self, sid: str, room_id: str) -> LeaveResult | None:
        room = self.registry.get(room_id)
        if room is None or sid not in room.players:
            return None

        handoff = self.processor.end_turn_for_departure(room, sid)
        result = self.registry.leave(room_id, sid)
        if result is None:
            return None

        await self.sio.leave_room(sid, room_id)
        if result.room_deleted:
            return result

        if handoff is not None and handoff.message:
            await self._system_chat(room_id, handoff.message)
        await self._system_chat(room_id, f"{result.player.name} has left the game.")
        if result.host_changed:
            await self._system_chat(room_id, f"{result.new_host_name} is now the host.")
        await self._broadcast_state(room)
        return result

    # -- events --------------------------------------------------------------------------

    async def connect(self, sid: str, environ: dict, auth: dict | None = None) -> bool:
        client_ip = extract_client_ip_from_environ(environ or {})
        if not self._is_connect_allowed(client_ip):
            logger.info("Connection from %s refused by rate limit", client_ip)
            return False
        await self.sio.save_session(sid, {"room_id": None, "client_ip": client_ip})
        logger.info("User connected: %s", sid)
        return True

    async def disconnect(self, sid: str, reason=None) -> None:
        logger.info("User disconnected: %s", sid)
        session = await self._session(sid)
        room_id = _session_string(session, "room_id") or self.registry.room_id_for_player(sid)
        if room_id:
            await self._run_leave_sequence(sid, room_id)

    async def create_server(self, sid: str, data: dict | None = None) -> dict:
        if not self._is_event_allowed(sid, "createServer"):
            return await self._rate_limited(sid, "createServer")
        try:
            room_id = self.registry.create(data or {}, host_id=sid)
        except GameActionError as exc:
            await self.sio.emit("createFailed", exc.message, room=sid)
            return {"ok": False, "error": exc.message}
        await self.sio.emit("serverCreated", room_id, room=sid)
        return {"ok": True, "roomId": room_id}

    async def request_server_list(self, sid: str, data=None) -> dict:
        if not self._is_event_allowed(sid, "requestServerList"):
            return await self._rate_limited(sid, "requestServerList")
        summaries = list(self.registry.list())
        await self.sio.emit("serverList", summaries, room=sid)
        return {"ok": True, "count": len(summaries)}

    async def join_server(self, sid: str, data: dict | None = None) -> dict:
        if not self._is_event_allowed(sid, "joinServer"):
            return await self._rate_limited(sid, "joinServer")
        try:
            request = RoomJoinRequest.model_validate(data if isinstance(data, dict) else {})
        except ValidationError:
            await self.sio.emit("joinFailed", "Invalid join request.", room=sid)
            return {"ok": False, "error": "invalid payload"}
        room_id = request.server_id.strip().upper()
        password = request.password or None
        display_name = request.display_name

        previous_room_id = self.registry.room_id_for_player(sid)
        if previous_room_id == room_id:
            room = self.registry.get(room_id)
            if room is not None:
                await self.sio.emit("initialState", room.initial_state_for(sid), room=sid)
                return {"ok": True, "roomId": room_id}

        try:
            # A refused join must leave the player's current seat alone.
            self.registry.check_joinable(room_id, password)
            if previous_room_id:
                await self._run_leave_sequence(sid, previous_room_id)
            room, player = self.registry.join(room_id, sid, password, display_name)
        except GameActionError as exc:
            await self.sio.emit("joinFailed", exc.message, room=sid)
            return {"ok": False, "error": exc.message}

        await self.sio.enter_room(sid, room.id)
        await self._set_session_room(sid, room.id)
        await self._system_chat(room.id, f"{player.name} has joined the game.")
        await self.sio.emit("initialState", room.initial_state_for(sid), room=sid)
        await self._broadcast_state(room)
        return {"ok": True, "roomId": room.id, "playerId": sid}

    async def leave_server(self, sid: str, data=None) -> dict:
        if not self._is_event_allowed(sid, "leaveServer"):
            return await self._rate_limited(sid, "leaveServer")
        room_id = self.registry.room_id_for_player(sid)
        if not room_id:
            return {"ok": True}
        await self._run_leave_sequence(sid, room_id)
        await self._set_session_room(sid, None)
        await self.sio.emit("leftServer", room_id, room=sid)
        return {"ok": True, "roomId": room_id}

    async def player_action(self, sid: str, data=None) -> dict:
        if not self._is_event_allowed(sid, "playerAction"):
            return await self._rate_limited(sid, "playerAction")
        room = await self._current_room(sid)
        if room is None:
            return {"ok": False, "error": "not in a room"}

        try:
            result = self.processor.submit(room, sid, data)
        except GameActionError as exc:
            logger.info("Room %s: action from %s rejected: %s", room.id, sid, exc.code)
            await self._error_chat(sid, exc)
            return {"ok": False, "error": exc.code, "message": exc.message}

        await self._publish_result(room, result)
        return {"ok": True, "action": result.action_type}

    async def chat_message(self, sid: str, data=None) -> dict:
        if not self._is_event_allowed(sid, "chatMessage"):
            return await self._rate_limited(sid, "chatMessage")
        room = await self._current_room(sid)
        if room is None:
            return {"ok": False, "error": "not in a room"}

        text = data.get("message") if isinstance(data, dict) else data
        text = str(text or "").strip()[: self.settings.max_chat_message_length]
        if not text:
            return {"ok": False, "error": "message is empty"}

        player = room.players[sid]
        await self.sio.emit("globalChat", (f"{player.name}: {text}", "chat"), room=room.id)
        return {"ok": True}

    async def set_ready(self, sid: str, data=None) -> dict:
        if not self._is_event_allowed(sid, "setReady"):
            return await self._rate_limited(sid, "setReady")
        room = await self._current_room(sid)
        if room is None:
            return {"ok": False, "error": "not in a room"}

        player = room.players[sid]
        requested = data.get("ready") if isinstance(data, dict) else None
        player.is_ready = bool(requested) if requested is not None else not player.is_ready
        await self._broadcast_state(room)
        return {"ok": True, "ready": player.is_ready}
