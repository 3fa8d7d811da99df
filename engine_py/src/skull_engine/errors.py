"""Error types raised by the game engine"""


class GameError(Exception):
    """Base exception for game-related errors."""
    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")


class RoomNotFoundError(GameError):
    """The room code does not match a live session; the caller should hang up."""
    def __init__(self, message: str = "Room not found. Please check the room code and try again."):
        super().__init__(ROOM_NOT_FOUND, message)


# Specific error codes
ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
ROOM_FULL = "ROOM_FULL"
GAME_STARTED = "GAME_STARTED"
NOT_ENOUGH_PLAYERS = "NOT_ENOUGH_PLAYERS"
NOT_HOST = "NOT_HOST"
WRONG_PHASE = "WRONG_PHASE"
NOT_YOUR_TURN = "NOT_YOUR_TURN"
INVALID_CARD = "INVALID_CARD"
INVALID_BID = "INVALID_BID"
INVALID_TARGET = "INVALID_TARGET"
INVALID_SELECTION = "INVALID_SELECTION"
RESOLVING = "RESOLVING"
GAME_OVER = "GAME_OVER"
INVALID_EVENT = "INVALID_EVENT"

# Helper function to raise common errors
def raise_error(code: str, message: str):
    raise GameError(code, message)
