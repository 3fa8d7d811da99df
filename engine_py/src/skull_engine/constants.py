"""Game constants"""

from enum import Enum


class CardKind(str, Enum):
    FLOWER = "flower"
    SKULL = "skull"


class Phase(str, Enum):
    LOBBY = "LOBBY"
    PLACEMENT = "PLACEMENT"
    CHALLENGE = "CHALLENGE"
    REVELATION = "REVELATION"
    CARD_LOSS = "CARD_LOSS"
    CHOOSE_FIRST_PLAYER = "CHOOSE_FIRST_PLAYER"
    GAME_OVER = "GAME_OVER"


# One slot per seat, handed out in join order
COLOR_CODES = ['c01', 'c02', 'c03', 'c04', 'c05', 'c06']

STARTING_HAND = [CardKind.FLOWER, CardKind.FLOWER, CardKind.FLOWER, CardKind.SKULL]

MIN_PLAYERS = 3
MAX_PLAYERS = 6
MAX_NAME_LENGTH = 30
WINS_TO_WIN = 2

# Display pacing (seconds)
REVEAL_DELAY = 1.0
ROUND_WON_DELAY = 3.0
CARD_LOST_DELAY = 2.0

WIN_REASON_CHALLENGE = "challenge"
WIN_REASON_LAST_STANDING = "lastStanding"

# Outbound events
EVENT_STATE = "state"
EVENT_PLAYER_JOINED = "playerJoined"
EVENT_PLAYER_LEFT = "playerLeft"
EVENT_GAME_STARTED = "gameStarted"
EVENT_CARD_PLACED = "cardPlaced"
EVENT_CHALLENGE_STARTED = "challengeStarted"
EVENT_BID_RAISED = "bidRaised"
EVENT_PLAYER_PASSED = "playerPassed"
EVENT_REVELATION_STARTED = "revelationStarted"
EVENT_CARD_REVEALED = "cardRevealed"
EVENT_SKULL_REVEALED = "skullRevealed"
EVENT_ROUND_WON = "roundWon"
EVENT_CARD_LOST = "cardLost"
EVENT_NEW_ROUND = "newRound"
EVENT_CHOOSE_FIRST_PLAYER = "chooseFirstPlayerPhase"
EVENT_GAME_OVER = "gameOver"
EVENT_GAME_RESET = "gameReset"
EVENT_TIMER_UPDATE = "timerUpdate"
EVENT_ERROR = "error"
EVENT_PONG = "pong"

# Room codes avoid I and O so they can be read aloud
ROOM_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ'
ROOM_CODE_LENGTH = 4
