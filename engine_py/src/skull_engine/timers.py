"""
Turn timers and display-pacing continuations.

One ``TurnSupervisor`` per game keeps at most one live turn timer. When it
expires, the supervisor builds the default action for the stalled player and
hands it to ``SkullGame.handle`` like any other action.
"""

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Callable, Optional, Protocol, Tuple

from .actions import (
    Action, ChallengeAction, ChooseFirstPlayerAction, PassAction,
    PlaceCardAction, RevealAction, SelectCardLossAction
)
from .constants import EVENT_TIMER_UPDATE, Phase
from .models import GameEvent

if TYPE_CHECKING:
    from .engine import SkullGame

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Clock and delayed-call source used by the engine."""

    def time(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def time(self) -> float:
        return time.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


class TurnSupervisor:
    def __init__(self, game: "SkullGame", scheduler: Scheduler):
        self.game = game
        self.scheduler = scheduler
        self._handle: Optional[TimerHandle] = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def cancel(self):
        """Drop the live timer, if any, and clear the advertised deadline."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self.game.state.turn_deadline = None

    def arm(self):
        """Restart the turn timer for whoever holds the turn now."""
        state = self.game.state
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

        state.turn_serial += 1
        duration = state.turn_timer_duration
        if duration and duration > 0:
            state.turn_deadline = int((self.scheduler.time() + duration) * 1000)
            serial = state.turn_serial
            self._handle = self.scheduler.call_later(duration, lambda: self._expire(serial))
        else:
            state.turn_deadline = None

        self.game.emit(GameEvent(EVENT_TIMER_UPDATE, {
            'turnDeadline': state.turn_deadline,
            'currentTurnId': state.current_turn_id,
        }))

    def _expire(self, serial: int):
        state = self.game.state
        if serial != state.turn_serial:
            return
        self._handle = None

        move = self.default_action()
        if move is None:
            return
        player_id, action = move
        player = state.get_player(player_id)
        logger.info(f"Time out for player {player.name if player else player_id} in phase {state.phase.value}")
        if not self.game.handle(player_id, action):
            logger.warning(f"Default {action.type.value} for {player_id} was rejected")

    def default_action(self) -> Optional[Tuple[str, Action]]:
        """The move played on behalf of the player holding the turn."""
        game = self.game
        state = game.state
        rng = game.rng
        player = state.get_player(state.current_turn_id)
        if player is None:
            return None

        if state.phase == Phase.PLACEMENT:
            if player.eliminated:
                return None
            if player.hand:
                return player.id, PlaceCardAction(card_type=rng.choice(player.hand))
            return player.id, ChallengeAction(bid=1)

        if state.phase == Phase.CHALLENGE:
            return player.id, PassAction()

        if state.phase == Phase.REVELATION:
            if player.hidden_count() > 0:
                return player.id, RevealAction(target_player_id=player.id)
            targets = [p for p in state.active_players() if p.hidden_count() > 0]
            if not targets:
                return None
            return player.id, RevealAction(target_player_id=rng.choice(targets).id)

        if state.phase == Phase.CARD_LOSS:
            loser = state.get_player(state.challenger_id)
            if loser is None or loser.card_count == 0:
                return None
            return player.id, SelectCardLossAction(card_index=random_loss_index(loser.all_cards(), rng))

        if state.phase == Phase.CHOOSE_FIRST_PLAYER:
            candidates = state.active_players()
            if not candidates:
                return None
            return player.id, ChooseFirstPlayerAction(player_id=rng.choice(candidates).id)

        return None


def random_loss_index(cards, rng) -> int:
    """Shuffle the cards, keep the first, and return where that kind first sits in ``cards``."""
    shuffled = list(cards)
    rng.shuffle(shuffled)
    return cards.index(shuffled[0])


def schedule_continuation(game: "SkullGame", delay: float, continuation: Callable[[], None]):
    """
    Run ``continuation`` after a display pause.

    The game refuses player actions until it fires. A reset in between moves
    the epoch on and turns the continuation into a no-op.
    """
    state = game.state
    epoch = state.epoch
    state.transition_pending = True

    def fire():
        if game.continuation is handle:
            game.continuation = None
        if game.state.epoch != epoch:
            logger.debug(f"Dropping stale continuation for epoch {epoch}")
            return
        game.state.transition_pending = False
        continuation()

    handle = game.scheduler.call_later(delay, fire)
    game.continuation = handle
