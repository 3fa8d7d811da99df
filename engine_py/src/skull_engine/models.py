"""Game models and data structures"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from .constants import CardKind, Phase, STARTING_HAND


@dataclass
class Card:
    kind: CardKind
    revealed: bool = False


@dataclass
class Player:
    id: str
    name: str
    color_code: str
    hand: List[CardKind] = field(default_factory=lambda: list(STARTING_HAND))
    stack: List[Card] = field(default_factory=list)  # last item is the top disc
    wins: int = 0
    connected: bool = True

    @property
    def card_count(self) -> int:
        return len(self.hand) + len(self.stack)

    @property
    def eliminated(self) -> bool:
        return is_eliminated(self)

    def hidden_count(self) -> int:
        return sum(1 for card in self.stack if not card.revealed)

    def top_hidden_index(self) -> Optional[int]:
        """Index of the most recently placed disc that is still face down."""
        for index in range(len(self.stack) - 1, -1, -1):
            if not self.stack[index].revealed:
                return index
        return None

    def return_stack_to_hand(self):
        self.hand.extend(card.kind for card in self.stack)
        self.stack = []

    def all_cards(self) -> List[CardKind]:
        """Hand followed by stack, the index space used for card loss."""
        return list(self.hand) + [card.kind for card in self.stack]

    def remove_card_at(self, index: int) -> CardKind:
        if index < len(self.hand):
            return self.hand.pop(index)
        return self.stack.pop(index - len(self.hand)).kind


def is_eliminated(player: Player) -> bool:
    """A player is out once they hold no card at all, in hand or on the mat."""
    return player.card_count == 0


@dataclass
class GameState:
    players: List[Player] = field(default_factory=list)  # seat order
    phase: Phase = Phase.LOBBY
    host_id: Optional[str] = None
    current_turn_id: Optional[str] = None
    first_player_id: Optional[str] = None
    challenger_id: Optional[str] = None
    current_bid: int = 0
    revealed_count: int = 0
    revealed_skull: bool = False
    skull_owner_id: Optional[str] = None
    passed_players: Set[str] = field(default_factory=set)
    placement_round: int = 1
    card_loss_processed: bool = False
    turn_timer_duration: int = 0  # seconds, 0 = no timer
    turn_deadline: Optional[int] = None  # epoch milliseconds
    game_started: bool = False
    winner_id: Optional[str] = None
    win_reason: Optional[str] = None
    version: int = 0
    epoch: int = 0
    turn_serial: int = 0
    transition_pending: bool = False

    def get_player(self, player_id: Optional[str]) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def active_players(self) -> List[Player]:
        return [p for p in self.players if not p.eliminated]

    def connected_players(self) -> List[Player]:
        return [p for p in self.players if p.connected]

    def total_cards_on_table(self) -> int:
        return sum(len(p.stack) for p in self.active_players())

    def increment_version(self):
        self.version += 1


@dataclass
class GameEvent:
    """An outbound event before it is projected for each recipient."""
    type: str
    data: Dict[str, Any] = field(default_factory=dict)
    recipient: Optional[str] = None  # None = broadcast
    with_players: bool = False
    with_state: bool = False
