"""
State serialization and sanitization utilities.

Every outbound message is rendered once per recipient. Other players' hands
are reduced to a count and their face-down discs to ``{revealed, kind: None}``;
only the viewer's own cards are sent in full.
"""

from typing import Any, Dict, List, Optional

from .constants import EVENT_STATE, EVENT_SKULL_REVEALED, Phase
from .models import Card, GameEvent, GameState, Player


def serialize_card(card: Card) -> Dict[str, Any]:
    return {"kind": card.kind.value, "revealed": card.revealed}


def public_player(player: Player) -> Dict[str, Any]:
    """Player as everyone may see them."""
    return {
        "id": player.id,
        "name": player.name,
        "colorCode": player.color_code,
        "handCount": len(player.hand),
        "stack": [
            {
                "revealed": card.revealed,
                "kind": card.kind.value if card.revealed else None,
            }
            for card in player.stack
        ],
        "wins": player.wins,
        "eliminated": player.eliminated,
        "connected": player.connected,
    }


def public_players(state: GameState) -> List[Dict[str, Any]]:
    return [public_player(player) for player in state.players]


def public_state(state: GameState) -> Dict[str, Any]:
    """
    Sanitize game state for transmission to clients.

    Args:
        state: Game state to sanitize

    Returns:
        Dictionary without any hidden card identity
    """
    return {
        "players": public_players(state),
        "phase": state.phase.value,
        "hostId": state.host_id,
        "currentTurnId": state.current_turn_id,
        "firstPlayerId": state.first_player_id,
        "challengerId": state.challenger_id,
        "currentBid": state.current_bid,
        "revealedCount": state.revealed_count,
        "revealedSkull": state.revealed_skull,
        "skullOwnerId": state.skull_owner_id,
        "passedPlayers": [p.id for p in state.players if p.id in state.passed_players],
        "placementRound": state.placement_round,
        "totalCardsOnTable": state.total_cards_on_table(),
        "gameStarted": state.game_started,
        "turnDeadline": state.turn_deadline,
        "winnerId": state.winner_id,
        "version": state.version,
    }


def private_view(state: GameState, viewer_id: Optional[str]) -> Dict[str, Any]:
    """The viewer's own hand and stack, face values included."""
    player = state.get_player(viewer_id)
    if player is None:
        return {}
    return {
        "myHand": [kind.value for kind in player.hand],
        "myStack": [serialize_card(card) for card in player.stack],
    }


def card_loss_options(state: GameState, viewer_id: Optional[str]) -> Optional[List[Optional[str]]]:
    """
    What the card-loss chooser is shown, indexed like ``hand ++ stack``.

    A challenger who hit their own skull sees their cards. A skull owner
    choosing for someone else only gets one face-down placeholder per card.
    """
    if state.phase != Phase.CARD_LOSS or viewer_id != state.current_turn_id:
        return None
    loser = state.get_player(state.challenger_id)
    if loser is None:
        return None
    if viewer_id == loser.id:
        return [kind.value for kind in loser.all_cards()]
    return [None] * loser.card_count


def project_event(state: GameState, event: GameEvent, viewer_id: Optional[str]) -> Dict[str, Any]:
    """Render one event for one recipient."""
    message = {"type": event.type, **event.data}

    personalized = event.with_players or event.with_state or event.type == EVENT_STATE
    if event.with_players:
        message["players"] = public_players(state)
    if event.with_state or event.type == EVENT_STATE:
        message["state"] = public_state(state)

    if personalized:
        message.update(private_view(state, viewer_id))
        if event.type in (EVENT_STATE, EVENT_SKULL_REVEALED):
            options = card_loss_options(state, viewer_id)
            if options is not None:
                message["lossOptions"] = options

    return message
