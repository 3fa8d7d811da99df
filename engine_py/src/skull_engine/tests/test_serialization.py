"""
Tests for per-viewer projection of state and events.
"""

from skull_engine.actions import (
    ChallengeAction, PassAction, PlaceCardAction, RevealAction
)
from skull_engine.constants import CardKind
from skull_engine.models import GameEvent
from skull_engine.serialization import project_event, public_state
from skull_engine.tests.helpers import make_game

F = CardKind.FLOWER
S = CardKind.SKULL


def state_for(game, viewer_id):
    return project_event(game.state, GameEvent("state"), viewer_id)


def test_other_players_face_down_discs_are_hidden():
    game, _, events = make_game()
    game.handle("p1", PlaceCardAction(card_type=S))
    placed = events.last("cardPlaced")

    seen_by_p2 = project_event(game.state, placed, "p2")
    p1_public = seen_by_p2["players"][0]
    assert p1_public["stack"] == [{"revealed": False, "kind": None}]
    assert p1_public["handCount"] == 3
    assert "hand" not in p1_public
    assert seen_by_p2["myStack"] == []
    assert len(seen_by_p2["myHand"]) == 4

    seen_by_p1 = project_event(game.state, placed, "p1")
    assert seen_by_p1["myStack"] == [{"kind": "skull", "revealed": False}]
    assert seen_by_p1["myHand"] == ["flower", "flower", "flower"]


def test_revealed_discs_are_public():
    game, _, _ = make_game()
    for kind in (F, F, F):
        game.handle(game.state.current_turn_id, PlaceCardAction(card_type=kind))
    game.handle("p1", ChallengeAction(bid=2))
    game.handle("p2", PassAction())
    game.handle("p3", PassAction())
    game.handle("p1", RevealAction(target_player_id="p1"))

    players = state_for(game, "p3")["state"]["players"]
    assert players[0]["stack"] == [{"revealed": True, "kind": "flower"}]
    assert players[1]["stack"] == [{"revealed": False, "kind": None}]


def test_public_state_fields():
    game, _, _ = make_game()
    game.handle("p1", PlaceCardAction(card_type=F))
    state = public_state(game.state)
    assert state["phase"] == "PLACEMENT"
    assert state["currentTurnId"] == "p2"
    assert state["firstPlayerId"] == "p1"
    assert state["totalCardsOnTable"] == 1
    assert state["passedPlayers"] == []
    assert state["gameStarted"] is True
    assert state["turnDeadline"] is None


def test_targeted_events_carry_no_private_view():
    game, _, events = make_game()
    game.handle("p2", PlaceCardAction(card_type=F))
    error = events.last("error")
    message = project_event(game.state, error, "p2")
    assert message == {"type": "error", "code": "NOT_YOUR_TURN", "message": "It's not your turn"}


def _skull_hit(game, skull_owner_kinds):
    for kind in skull_owner_kinds:
        game.handle(game.state.current_turn_id, PlaceCardAction(card_type=kind))
    game.handle("p1", ChallengeAction(bid=2))
    game.handle("p2", PassAction())
    game.handle("p3", PassAction())
    game.handle("p1", RevealAction(target_player_id="p1"))
    game.handle("p1", RevealAction(target_player_id="p2"))


def test_skull_owner_sees_only_placeholders_for_the_loss():
    game, _, events = make_game()
    _skull_hit(game, (F, S, F))
    skull = events.last("skullRevealed")

    for_owner = project_event(game.state, skull, "p2")
    assert for_owner["lossOptions"] == [None, None, None, None]

    for_challenger = project_event(game.state, skull, "p1")
    assert "lossOptions" not in for_challenger

    for_bystander = state_for(game, "p3")
    assert "lossOptions" not in for_bystander


def test_own_skull_challenger_sees_their_own_cards():
    game, _, _ = make_game()
    for kind in (S, F, F):
        game.handle(game.state.current_turn_id, PlaceCardAction(card_type=kind))
    game.handle("p1", ChallengeAction(bid=1))
    game.handle("p2", PassAction())
    game.handle("p3", PassAction())
    game.handle("p1", RevealAction(target_player_id="p1"))

    message = state_for(game, "p1")
    assert message["lossOptions"] == ["flower", "flower", "flower", "skull"]
