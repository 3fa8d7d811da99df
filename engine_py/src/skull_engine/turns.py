"""
Turn order lookups.

Seats are the join order of ``GameState.players``; every scan starts just after
the given seat and wraps around.
"""

from typing import Optional

from .models import GameState, Player


def _seat_index(state: GameState, player_id: str) -> int:
    for index, player in enumerate(state.players):
        if player.id == player_id:
            return index
    return -1


def first_active_player(state: GameState) -> Optional[Player]:
    for player in state.players:
        if not player.eliminated:
            return player
    return None


def next_active_player(state: GameState, from_id: str) -> Optional[Player]:
    """First non-eliminated player after ``from_id``; falls back to ``from_id`` itself."""
    players = state.players
    current = _seat_index(state, from_id)
    for offset in range(1, len(players) + 1):
        candidate = players[(current + offset) % len(players)]
        if not candidate.eliminated:
            return candidate
    return state.get_player(from_id)


def next_bidding_player(state: GameState, from_id: str) -> Optional[Player]:
    """Like ``next_active_player`` but also skips players who passed this challenge."""
    players = state.players
    current = _seat_index(state, from_id)
    for offset in range(1, len(players) + 1):
        candidate = players[(current + offset) % len(players)]
        if not candidate.eliminated and candidate.id not in state.passed_players:
            return candidate
    return state.get_player(state.challenger_id)


def bidding_complete(state: GameState) -> bool:
    """Bidding ends once a single active player has not passed."""
    still_bidding = [p for p in state.active_players() if p.id not in state.passed_players]
    return len(still_bidding) == 1
