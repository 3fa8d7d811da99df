"""
Tests for the turn supervisor, timeout defaults and pacing continuations.
"""

import random

from skull_engine.actions import (
    ChallengeAction, PassAction, PlaceCardAction, ResetAction, RevealAction
)
from skull_engine.constants import CardKind, Phase
from skull_engine.tests.helpers import make_game
from skull_engine.timers import random_loss_index

F = CardKind.FLOWER
S = CardKind.SKULL


def lap(game, *kinds):
    for kind in kinds:
        assert game.handle(game.state.current_turn_id, PlaceCardAction(card_type=kind))


def test_no_timer_when_duration_is_zero():
    game, scheduler, events = make_game(timer=0)
    assert game.state.turn_deadline is None
    assert scheduler.pending() == []

    game.handle("p1", PlaceCardAction(card_type=F))
    update = events.last("timerUpdate")
    assert update.data == {'turnDeadline': None, 'currentTurnId': "p2"}
    scheduler.advance(600)
    assert game.state.current_turn_id == "p2"


def test_deadline_is_epoch_milliseconds():
    game, _, _ = make_game(timer=30)
    assert game.state.turn_deadline == 1030 * 1000


def test_only_one_timer_is_live():
    game, scheduler, _ = make_game(timer=30)
    assert len(scheduler.pending()) == 1
    scheduler.advance(10)
    game.handle("p1", PlaceCardAction(card_type=F))
    assert len(scheduler.pending()) == 1
    assert game.state.turn_deadline == 1040 * 1000


def test_placement_timeout_places_a_card_from_hand():
    game, scheduler, _ = make_game(timer=30)
    scheduler.advance(29)
    assert game.state.current_turn_id == "p1"
    scheduler.advance(1)
    p1 = game.state.get_player("p1")
    assert len(p1.stack) == 1
    assert len(p1.hand) == 3
    assert game.state.current_turn_id == "p2"


def test_placement_timeout_with_empty_hand_challenges_for_one():
    game, scheduler, _ = make_game(timer=30)
    game.state.get_player("p1").hand = [F]
    lap(game, F, F, F)
    assert game.state.current_turn_id == "p1"

    scheduler.advance(30)
    state = game.state
    assert state.phase == Phase.CHALLENGE
    assert state.challenger_id == "p1"
    assert state.current_bid == 1


def test_challenge_timeout_passes():
    game, scheduler, _ = make_game(timer=30)
    lap(game, F, F, F)
    game.handle("p1", ChallengeAction(bid=1))
    scheduler.advance(30)
    assert game.state.passed_players == {"p2"}
    scheduler.advance(30)
    assert game.state.phase == Phase.REVELATION
    assert game.state.current_turn_id == "p1"


def test_revelation_timeout_flips_own_disc_first():
    game, scheduler, _ = make_game(timer=30)
    lap(game, F, F, F)
    game.handle("p1", ChallengeAction(bid=2))
    game.handle("p2", PassAction())
    game.handle("p3", PassAction())

    scheduler.advance(30)
    assert game.state.get_player("p1").stack[0].revealed
    assert game.state.revealed_count == 1

    scheduler.advance(30)
    assert game.state.revealed_count == 2
    assert game.state.get_player("p1").wins == 1


def test_card_loss_timeout_takes_from_the_challenger():
    game, scheduler, events = make_game(timer=30)
    lap(game, F, S, F)
    game.handle("p1", ChallengeAction(bid=2))
    game.handle("p2", PassAction())
    game.handle("p3", PassAction())
    game.handle("p1", RevealAction(target_player_id="p1"))
    game.handle("p1", RevealAction(target_player_id="p2"))
    assert game.state.current_turn_id == "p2"

    scheduler.advance(30)
    assert game.state.get_player("p1").card_count == 3
    assert game.state.get_player("p2").card_count == 4
    assert events.last("cardLost").data["playerId"] == "p1"

    # the pause before the next round has no turn timer
    assert game.state.turn_deadline is None
    scheduler.advance(2)
    assert game.state.phase == Phase.PLACEMENT
    assert game.state.current_turn_id == "p1"


def test_choose_first_player_timeout_picks_an_active_player():
    game, scheduler, events = make_game(timer=30)
    game.state.get_player("p1").hand = [S]
    lap(game, S, F, F)
    game.handle("p1", ChallengeAction(bid=1))
    game.handle("p2", PassAction())
    game.handle("p3", PassAction())
    game.handle("p1", RevealAction(target_player_id="p1"))

    scheduler.advance(30)
    assert game.state.phase == Phase.CHOOSE_FIRST_PLAYER
    assert game.state.current_turn_id == "p1"

    scheduler.advance(30)
    chosen = events.last("cardLost").data["chosenFirstPlayerId"]
    assert chosen in {"p2", "p3"}
    scheduler.advance(2)
    assert game.state.current_turn_id == chosen


def test_reset_drops_pending_round_transition():
    game, scheduler, _ = make_game()
    lap(game, F, F, F)
    game.handle("p1", ChallengeAction(bid=1))
    game.handle("p2", PassAction())
    game.handle("p3", PassAction())
    game.handle("p1", RevealAction(target_player_id="p1"))
    assert game.state.transition_pending

    game.handle("p1", ResetAction())
    scheduler.advance(5)
    assert game.state.phase == Phase.LOBBY
    assert not game.state.transition_pending
    assert all(p.wins == 0 for p in game.state.players)


def test_stale_expiry_is_ignored():
    game, scheduler, _ = make_game(timer=30)
    handle = scheduler.pending()[0]
    game.handle("p1", PlaceCardAction(card_type=F))
    # fire the old callback by hand
    handle.callback()
    assert game.state.current_turn_id == "p2"
    assert len(game.state.get_player("p2").stack) == 0


def test_random_loss_index_points_at_first_card_of_chosen_kind():
    cards = [F, F, S, F]
    seen = set()
    rng = random.Random(3)
    for _ in range(50):
        seen.add(random_loss_index(cards, rng))
    assert seen == {0, 2}


def test_close_cancels_timer_and_pending_pause():
    game, scheduler, _ = make_game(timer=30)
    lap(game, F, F, F)
    game.handle("p1", ChallengeAction(bid=1))
    game.handle("p2", PassAction())
    game.handle("p3", PassAction())
    game.handle("p1", RevealAction(target_player_id="p1"))
    assert game.state.transition_pending

    game.close()
    assert scheduler.pending() == []
    scheduler.advance(600)
    assert game.state.phase == Phase.REVELATION
    assert game.state.get_player("p1").wins == 1
