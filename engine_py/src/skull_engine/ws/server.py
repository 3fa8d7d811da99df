"""
FastAPI WebSocket transport for Skull rooms.

One ``GameRoom`` per room code. Each connection's identity is the
``player_id`` query parameter (or a generated id) and stays stable for the
lifetime of the socket. The room turns engine events into one projected
message per recipient and writes them out in order.
"""

import asyncio
import logging
import random
import uuid
from collections import deque
from typing import Callable, Deque, Dict, Optional, Tuple

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..constants import ROOM_CODE_ALPHABET, ROOM_CODE_LENGTH
from ..engine import SkullGame
from ..errors import RoomNotFoundError
from ..models import GameEvent
from ..rules import RuleConfig
from ..serialization import project_event
from ..timers import AsyncioScheduler, Scheduler
from .events import decode_action, encode_message

logger = logging.getLogger(__name__)

# Close code sent when a join targets a room nobody created
CLOSE_ROOM_NOT_FOUND = 4004


def generate_room_code(rng: random.Random = random) -> str:
    return ''.join(rng.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))


class GameRoom:
    """A game session plus the sockets currently attached to it."""

    def __init__(self, code: str, rules: Optional[RuleConfig] = None, scheduler: Optional[Scheduler] = None):
        self.code = code
        self.connections: Dict[str, WebSocket] = {}
        self.game = SkullGame(room_id=code, rules=rules, scheduler=scheduler, on_event=self.dispatch)
        self._pending: Deque[Tuple[str, str]] = deque()
        self._flush_task: Optional[asyncio.Task] = None

    def connect(self, connection_id: str, websocket: WebSocket):
        self.connections[connection_id] = websocket
        logger.info(f"Player {connection_id} connected to room {self.code}")
        self.game.sync(connection_id)

    def disconnect(self, connection_id: str, websocket: WebSocket):
        # A newer socket may already have taken over this identity
        if self.connections.get(connection_id) is not websocket:
            return
        del self.connections[connection_id]
        logger.info(f"Player {connection_id} disconnected from room {self.code}")
        self.game.leave(connection_id)

    def dispatch(self, event: GameEvent):
        """Render ``event`` for each recipient and queue it for sending."""
        state = self.game.state
        targets = [event.recipient] if event.recipient else list(self.connections)
        for connection_id in targets:
            if connection_id in self.connections:
                message = project_event(state, event, connection_id)
                self._pending.append((connection_id, encode_message(message)))
        if self._pending and (self._flush_task is None or self._flush_task.done()):
            self._flush_task = asyncio.get_running_loop().create_task(self._flush())

    async def _flush(self):
        while self._pending:
            connection_id, text = self._pending.popleft()
            websocket = self.connections.get(connection_id)
            if websocket is None:
                continue
            try:
                await websocket.send_text(text)
            except Exception as e:
                logger.error(f"Error sending to {connection_id} in room {self.code}: {e}")
                # The socket is gone; its own disconnect will find no entry
                self.connections.pop(connection_id, None)
                self.game.leave(connection_id)

    async def drain(self):
        """Wait until everything queued so far has been written."""
        if self._flush_task is not None and not self._flush_task.done():
            await self._flush_task


class RoomRegistry:
    """Live rooms by code. Rooms share nothing with each other."""

    def __init__(
        self,
        rules: Optional[RuleConfig] = None,
        scheduler_factory: Callable[[], Scheduler] = AsyncioScheduler
    ):
        self.rules = rules
        self.scheduler_factory = scheduler_factory
        self.rooms: Dict[str, GameRoom] = {}

    def get_or_create(self, code: str) -> GameRoom:
        room = self.rooms.get(code)
        if room is None:
            room = GameRoom(code, rules=self.rules, scheduler=self.scheduler_factory())
            self.rooms[code] = room
            logger.info(f"Room {code} opened")
        return room

    def discard_if_empty(self, code: str):
        room = self.rooms.get(code)
        if room is not None and not room.connections:
            room.game.close()
            del self.rooms[code]
            logger.info(f"Room {code} closed")

    def new_code(self) -> str:
        code = generate_room_code()
        while code in self.rooms:
            code = generate_room_code()
        return code

    def connection_count(self) -> int:
        return sum(len(room.connections) for room in self.rooms.values())


registry = RoomRegistry()
router = APIRouter()


@router.post("/rooms")
async def create_room_code():
    """Hand out a fresh room code; the room itself opens on first connect."""
    return {"roomCode": registry.new_code()}


@router.websocket("/ws/{room_code}")
async def websocket_endpoint(websocket: WebSocket, room_code: str, player_id: Optional[str] = None):
    """Main WebSocket endpoint."""
    connection_id = player_id or str(uuid.uuid4())[:8]
    code = room_code.upper()

    await websocket.accept()
    room = registry.get_or_create(code)
    room.connect(connection_id, websocket)

    try:
        while True:
            raw_data = await websocket.receive_text()
            try:
                action = decode_action(raw_data)
            except ValueError as e:
                logger.warning(f"Dropping malformed message from {connection_id}: {e}")
                continue

            try:
                room.game.handle(connection_id, action)
            except RoomNotFoundError:
                await room.drain()
                await websocket.close(code=CLOSE_ROOM_NOT_FOUND)
                break

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for player {connection_id}")
    finally:
        room.disconnect(connection_id, websocket)
        registry.discard_if_empty(code)
