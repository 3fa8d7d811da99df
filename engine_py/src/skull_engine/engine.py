"""Phase state machine for one Skull session"""

import logging
import random
from typing import Callable, Dict, Optional

from .actions import (
    Action, ActionType, ChallengeAction, ChooseFirstPlayerAction, JoinAction,
    PlaceCardAction, RaiseAction, RevealAction, SelectCardLossAction, StartAction
)
from .constants import (
    COLOR_CODES, CardKind, Phase,
    EVENT_BID_RAISED, EVENT_CARD_LOST, EVENT_CARD_PLACED, EVENT_CARD_REVEALED,
    EVENT_CHALLENGE_STARTED, EVENT_CHOOSE_FIRST_PLAYER, EVENT_ERROR,
    EVENT_GAME_OVER, EVENT_GAME_RESET, EVENT_GAME_STARTED, EVENT_NEW_ROUND,
    EVENT_PLAYER_JOINED, EVENT_PLAYER_LEFT, EVENT_PLAYER_PASSED, EVENT_PONG,
    EVENT_REVELATION_STARTED, EVENT_ROUND_WON, EVENT_SKULL_REVEALED, EVENT_STATE,
    WIN_REASON_CHALLENGE, WIN_REASON_LAST_STANDING
)
from .errors import (
    GameError, RoomNotFoundError, raise_error,
    GAME_OVER, GAME_STARTED, INVALID_BID, INVALID_CARD, INVALID_EVENT,
    INVALID_SELECTION, INVALID_TARGET, NOT_ENOUGH_PLAYERS, NOT_HOST,
    NOT_YOUR_TURN, RESOLVING, ROOM_FULL, WRONG_PHASE
)
from .models import Card, GameEvent, GameState, Player
from .rules import RuleConfig, default_rules
from .serialization import public_player
from .timers import AsyncioScheduler, Scheduler, TimerHandle, TurnSupervisor, schedule_continuation
from .turns import bidding_complete, first_active_player, next_active_player, next_bidding_player

logger = logging.getLogger(__name__)


class SkullGame:
    """
    Authoritative game for one room.

    All mutations go through ``handle``, whether the action came from a
    client or from the turn supervisor. Outbound events are passed to the
    ``on_event`` callback as they happen.
    """

    def __init__(
        self,
        room_id: str = "local",
        rules: Optional[RuleConfig] = None,
        scheduler: Optional[Scheduler] = None,
        on_event: Optional[Callable[[GameEvent], None]] = None,
        seed: Optional[int] = None
    ):
        self.room_id = room_id
        self.rules = rules or default_rules
        self.scheduler = scheduler or AsyncioScheduler()
        self.rng = random.Random(seed)
        self.on_event = on_event
        self.state = GameState()
        self.supervisor = TurnSupervisor(self, self.scheduler)
        self.continuation: Optional[TimerHandle] = None
        self._handlers: Dict[ActionType, Callable[[str, Action], None]] = {
            ActionType.JOIN: self.join,
            ActionType.LEAVE: lambda sender_id, action: self.leave(sender_id),
            ActionType.START: self.start,
            ActionType.PLACE_CARD: self.place_card,
            ActionType.CHALLENGE: self.challenge,
            ActionType.RAISE: self.raise_bid,
            ActionType.PASS: lambda sender_id, action: self.pass_bid(sender_id),
            ActionType.REVEAL: self.reveal,
            ActionType.SELECT_CARD_LOSS: self.select_card_loss,
            ActionType.CHOOSE_FIRST_PLAYER: self.choose_first_player,
            ActionType.RESET: lambda sender_id, action: self.reset(sender_id),
            ActionType.PING: lambda sender_id, action: self.ping(sender_id),
        }

    # === ENTRY POINTS ===

    def emit(self, event: GameEvent):
        if self.on_event is not None:
            self.on_event(event)

    def handle(self, sender_id: str, action: Action) -> bool:
        """
        Apply one action for ``sender_id``.

        Returns False when the action was rejected; the sender then receives an
        ``error`` event and the state is unchanged. ``RoomNotFoundError`` is
        re-raised after the error event so the transport can hang up.
        """
        handler = self._handlers[action.type]
        try:
            handler(sender_id, action)
        except RoomNotFoundError as e:
            logger.info(f"[{self.room_id}] Join from {sender_id} to an empty room refused")
            self._send_error(sender_id, e)
            raise
        except GameError as e:
            logger.info(f"[{self.room_id}] Rejected {action.type.value} from {sender_id}: {e.message}")
            self._send_error(sender_id, e)
            return False
        return True

    def sync(self, viewer_id: str):
        """Send the full state to one recipient, e.g. on connect."""
        self.emit(GameEvent(EVENT_STATE, recipient=viewer_id))

    def ping(self, sender_id: str):
        self.emit(GameEvent(EVENT_PONG, recipient=sender_id))

    def close(self):
        """Stop the turn timer and any pending pause; nothing fires for this game afterwards."""
        self.supervisor.cancel()
        if self.continuation is not None:
            self.continuation.cancel()
            self.continuation = None
        self.state.epoch += 1
        self.state.transition_pending = False
        logger.info(f"[{self.room_id}] Game closed")

    # === LOBBY ===

    def join(self, sender_id: str, action: JoinAction):
        state = self.state
        existing = state.get_player(sender_id)
        if existing:
            # Reconnect to the same seat
            existing.connected = True
            if state.host_id is None:
                state.host_id = sender_id
            state.increment_version()
            logger.info(f"[{self.room_id}] {existing.name} reconnected")
            self._broadcast_join(existing)
            return

        if state.game_started:
            raise_error(GAME_STARTED, "Game already started")
        if len(state.players) >= self.rules.max_players:
            raise_error(ROOM_FULL, f"Room is full (max {self.rules.max_players} players)")
        if not state.players and not action.is_creator:
            raise RoomNotFoundError()

        player = Player(
            id=sender_id,
            name=action.name.strip() or "Player",
            color_code=self._free_color()
        )
        state.players.append(player)
        if state.host_id is None:
            state.host_id = sender_id
        state.increment_version()
        logger.info(f"[{self.room_id}] {player.name} joined as {player.color_code}")
        self._broadcast_join(player)

    def _broadcast_join(self, player: Player):
        self.emit(GameEvent(EVENT_PLAYER_JOINED, {
            'player': public_player(player),
            'hostId': self.state.host_id,
        }, with_players=True))

    def _free_color(self) -> str:
        taken = {p.color_code for p in self.state.players}
        for code in COLOR_CODES:
            if code not in taken:
                return code
        return COLOR_CODES[len(self.state.players) % len(COLOR_CODES)]

    def leave(self, sender_id: str):
        state = self.state
        player = state.get_player(sender_id)
        if player is None:
            return

        if state.game_started:
            # Keep the seat so turn order and card counts stay intact
            player.connected = False
        else:
            state.players.remove(player)

        if state.host_id == sender_id:
            remaining = state.connected_players()
            state.host_id = remaining[0].id if remaining else None

        state.increment_version()
        logger.info(f"[{self.room_id}] {player.name} left (host is now {state.host_id})")
        self.emit(GameEvent(EVENT_PLAYER_LEFT, {
            'playerId': sender_id,
            'hostId': state.host_id,
        }, with_players=True))

    def start(self, sender_id: str, action: StartAction):
        state = self.state
        if sender_id != state.host_id:
            raise_error(NOT_HOST, "Only the host can start the game")
        if state.game_started:
            raise_error(GAME_STARTED, "Game already started")
        if len(state.players) < self.rules.min_players:
            raise_error(NOT_ENOUGH_PLAYERS, f"Need at least {self.rules.min_players} players")
        if not self.rules.validate_timer(action.timer_duration):
            raise_error(INVALID_EVENT, f"Timer must be between 0 and {self.rules.max_turn_timer} seconds")

        state.game_started = True
        state.turn_timer_duration = action.timer_duration
        state.first_player_id = self.rng.choice(state.active_players()).id
        logger.info(f"[{self.room_id}] Game started with {len(state.players)} players, "
                    f"timer={state.turn_timer_duration}s")
        self.start_new_round(EVENT_GAME_STARTED)

    def start_new_round(self, event_type: str = EVENT_NEW_ROUND):
        """Reset bids and reveals, return every stack to hand and hand the turn to the first player."""
        state = self.state
        state.phase = Phase.PLACEMENT
        state.current_bid = 0
        state.revealed_count = 0
        state.revealed_skull = False
        state.skull_owner_id = None
        state.passed_players = set()
        state.challenger_id = None
        state.placement_round = 1
        state.card_loss_processed = False
        state.transition_pending = False
        state.epoch += 1

        for player in state.active_players():
            player.return_stack_to_hand()

        first = state.get_player(state.first_player_id)
        if first is None or first.eliminated:
            state.first_player_id = first_active_player(state).id

        state.current_turn_id = state.first_player_id
        state.increment_version()
        self.supervisor.arm()
        self.emit(GameEvent(event_type, with_state=True))

    # === PLACEMENT ===

    def place_card(self, sender_id: str, action: PlaceCardAction):
        state = self.state
        self._require_phase(Phase.PLACEMENT)
        player = self._require_turn(sender_id)

        kind = CardKind(action.card_type)
        if kind not in player.hand:
            raise_error(INVALID_CARD, "You don't have that card")

        player.hand.remove(kind)
        player.stack.append(Card(kind))
        logger.debug(f"[{self.room_id}] {player.name} placed {kind.value}")

        all_placed_once = all(p.stack for p in state.active_players())
        state.current_turn_id = next_active_player(state, sender_id).id

        # The opening lap is over: back to the first player for add-or-challenge
        if all_placed_once and state.placement_round == 1:
            state.placement_round = 2
            state.current_turn_id = state.first_player_id

        next_player = state.get_player(state.current_turn_id)
        state.increment_version()
        self.emit(GameEvent(EVENT_CARD_PLACED, {
            'playerId': sender_id,
            'stackSize': len(player.stack),
            'currentTurnId': state.current_turn_id,
            'phase': state.phase.value,
            'placementRound': state.placement_round,
            'mustChallenge': state.placement_round >= 2 and not next_player.hand,
        }, with_players=True))
        self.supervisor.arm()

    def challenge(self, sender_id: str, action: ChallengeAction):
        state = self.state
        self._require_phase(Phase.PLACEMENT)
        player = self._require_turn(sender_id)

        if not player.stack:
            raise_error(INVALID_BID, "You must place at least 1 disc before challenging")
        if not all(p.stack for p in state.active_players()):
            raise_error(INVALID_BID, "All players must place at least 1 disc first")

        bid = action.bid
        if not bid or bid < 1:
            raise_error(INVALID_BID, "You must specify a bid amount")
        total = state.total_cards_on_table()
        if bid > total:
            raise_error(INVALID_BID, f"Bid cannot exceed the {total} discs on the table")

        state.phase = Phase.CHALLENGE
        state.challenger_id = sender_id
        state.current_bid = bid
        state.passed_players = set()
        state.current_turn_id = next_active_player(state, sender_id).id
        state.increment_version()
        logger.info(f"[{self.room_id}] {player.name} challenges for {bid}/{total}")

        self.emit(GameEvent(EVENT_CHALLENGE_STARTED, {
            'challengerId': sender_id,
            'bid': bid,
            'currentTurnId': state.current_turn_id,
            'phase': state.phase.value,
            'totalCards': total,
        }))

        if bid >= total:
            self._reveal_after_pause()
        else:
            self.supervisor.arm()

    # === CHALLENGE ===

    def raise_bid(self, sender_id: str, action: RaiseAction):
        state = self.state
        if state.phase == Phase.CHALLENGE and sender_id in state.passed_players:
            return
        self._require_phase(Phase.CHALLENGE)
        player = self._require_turn(sender_id)

        bid = action.bid
        total = state.total_cards_on_table()
        if bid <= state.current_bid:
            raise_error(INVALID_BID, "Bid must be higher than current bid")
        if bid > total:
            raise_error(INVALID_BID, f"Bid cannot exceed the {total} discs on the table")

        state.current_bid = bid
        state.challenger_id = sender_id
        state.current_turn_id = next_bidding_player(state, sender_id).id
        state.increment_version()
        logger.info(f"[{self.room_id}] {player.name} raises to {bid}")

        self.emit(GameEvent(EVENT_BID_RAISED, {
            'playerId': sender_id,
            'bid': bid,
            'currentTurnId': state.current_turn_id,
            'challengerId': state.challenger_id,
        }))

        if bidding_complete(state):
            self.start_revelation()
        elif bid >= total:
            self._reveal_after_pause()
        else:
            self.supervisor.arm()

    def pass_bid(self, sender_id: str):
        state = self.state
        if state.phase == Phase.CHALLENGE and sender_id in state.passed_players:
            return
        self._require_phase(Phase.CHALLENGE)
        player = self._require_turn(sender_id)

        state.passed_players.add(sender_id)
        state.current_turn_id = next_bidding_player(state, sender_id).id
        state.increment_version()
        logger.info(f"[{self.room_id}] {player.name} passes")

        self.emit(GameEvent(EVENT_PLAYER_PASSED, {
            'playerId': sender_id,
            'passedPlayers': [p.id for p in state.players if p.id in state.passed_players],
            'currentTurnId': state.current_turn_id,
        }))

        if bidding_complete(state):
            self.start_revelation()
        else:
            self.supervisor.arm()

    def _reveal_after_pause(self):
        # Table maximum reached: nobody can outbid, show the bid then flip
        self.supervisor.cancel()
        schedule_continuation(self, self.rules.reveal_delay, self.start_revelation)

    # === REVELATION ===

    def start_revelation(self):
        state = self.state
        state.phase = Phase.REVELATION
        state.revealed_count = 0
        state.revealed_skull = False
        state.current_turn_id = state.challenger_id
        state.transition_pending = False
        state.epoch += 1
        state.increment_version()

        self.emit(GameEvent(EVENT_REVELATION_STARTED, {
            'challengerId': state.challenger_id,
            'bid': state.current_bid,
            'phase': state.phase.value,
        }, with_players=True))
        self.supervisor.arm()

    def reveal(self, sender_id: str, action: RevealAction):
        state = self.state
        self._require_phase(Phase.REVELATION)
        if sender_id != state.challenger_id:
            raise_error(NOT_YOUR_TURN, "Only the challenger can reveal discs")

        target = state.get_player(action.target_player_id)
        if target is None or target.eliminated:
            raise_error(INVALID_TARGET, "Invalid target")

        challenger = state.get_player(sender_id)
        if target.id != sender_id and challenger.hidden_count() > 0:
            raise_error(INVALID_TARGET, "You must reveal all your own discs first")

        index = target.top_hidden_index()
        if index is None:
            raise_error(INVALID_TARGET, "No discs to reveal")

        card = target.stack[index]
        card.revealed = True
        state.revealed_count += 1
        state.increment_version()
        logger.info(f"[{self.room_id}] {challenger.name} flips {target.name}'s disc: {card.kind.value}")

        if card.kind == CardKind.SKULL:
            state.revealed_skull = True
            state.skull_owner_id = target.id
            self._challenger_lost()
            return

        self.emit(GameEvent(EVENT_CARD_REVEALED, {
            'targetPlayerId': target.id,
            'cardType': card.kind.value,
            'revealedCount': state.revealed_count,
            'bid': state.current_bid,
        }, with_players=True))

        if state.revealed_count >= state.current_bid:
            self._challenger_won()
        else:
            self.supervisor.arm()

    def _challenger_won(self):
        state = self.state
        challenger = state.get_player(state.challenger_id)
        challenger.wins += 1

        if challenger.wins >= self.rules.wins_to_win:
            self._end_game(challenger, WIN_REASON_CHALLENGE)
            return

        state.first_player_id = challenger.id
        self.supervisor.cancel()
        logger.info(f"[{self.room_id}] {challenger.name} wins the round ({challenger.wins} wins)")
        self.emit(GameEvent(EVENT_ROUND_WON, {
            'winnerId': challenger.id,
            'winnerName': challenger.name,
            'wins': challenger.wins,
        }, with_players=True))
        schedule_continuation(self, self.rules.round_won_delay, self.start_new_round)

    def _challenger_lost(self):
        state = self.state
        state.phase = Phase.CARD_LOSS
        state.card_loss_processed = False

        own_skull = state.skull_owner_id == state.challenger_id
        # Rulebook: whoever owns the flipped skull picks the lost disc
        state.current_turn_id = state.challenger_id if own_skull else state.skull_owner_id

        self.emit(GameEvent(EVENT_SKULL_REVEALED, {
            'challengerId': state.challenger_id,
            'skullOwnerId': state.skull_owner_id,
            'ownSkull': own_skull,
            'phase': state.phase.value,
            'currentTurnId': state.current_turn_id,
        }, with_players=True))
        self.supervisor.arm()

    # === CARD LOSS ===

    def select_card_loss(self, sender_id: str, action: SelectCardLossAction):
        state = self.state
        # Repeated delivery of the same choice
        if state.card_loss_processed and state.phase in (Phase.CARD_LOSS, Phase.CHOOSE_FIRST_PLAYER):
            return
        self._require_phase(Phase.CARD_LOSS)
        if sender_id != state.current_turn_id:
            raise_error(NOT_YOUR_TURN, "It's not your choice to make")

        loser = state.get_player(state.challenger_id)
        index = action.card_index
        if index < 0 or index >= loser.card_count:
            raise_error(INVALID_SELECTION, "Invalid card selection")

        state.card_loss_processed = True
        lost = loser.remove_card_at(index)
        state.increment_version()
        logger.debug(f"[{self.room_id}] {loser.name} loses a {lost.value}")
        logger.info(f"[{self.room_id}] {loser.name} loses a disc, {loser.card_count} left")
        self._finish_card_loss(loser)

    def _finish_card_loss(self, loser: Player):
        state = self.state
        active = state.active_players()
        if len(active) == 1:
            self._end_game(active[0], WIN_REASON_LAST_STANDING)
            return

        if not loser.eliminated:
            state.first_player_id = loser.id
            self._proceed_after_card_loss(loser)
        elif state.skull_owner_id and state.skull_owner_id != loser.id:
            state.first_player_id = state.skull_owner_id
            self._proceed_after_card_loss(loser)
        else:
            # Knocked out by their own skull: they still name the next starter
            state.phase = Phase.CHOOSE_FIRST_PLAYER
            state.current_turn_id = loser.id
            logger.info(f"[{self.room_id}] {loser.name} is out and chooses the next first player")
            self.emit(GameEvent(EVENT_CHOOSE_FIRST_PLAYER, {
                'eliminatedPlayerId': loser.id,
                'phase': state.phase.value,
                'currentTurnId': state.current_turn_id,
            }, with_players=True))
            self.supervisor.arm()

    def _proceed_after_card_loss(self, loser: Player, **extra):
        self.supervisor.cancel()
        self.emit(GameEvent(EVENT_CARD_LOST, {
            'playerId': loser.id,
            'eliminated': loser.eliminated,
            'remainingCards': loser.card_count,
            **extra,
        }, with_players=True))
        schedule_continuation(self, self.rules.card_lost_delay, self.start_new_round)

    def choose_first_player(self, sender_id: str, action: ChooseFirstPlayerAction):
        state = self.state
        self._require_phase(Phase.CHOOSE_FIRST_PLAYER)
        if sender_id != state.current_turn_id:
            raise_error(NOT_YOUR_TURN, "It's not your turn")

        chosen = state.get_player(action.player_id)
        if chosen is None or chosen.eliminated:
            raise_error(INVALID_TARGET, "Invalid player selection")

        state.first_player_id = chosen.id
        state.increment_version()
        logger.info(f"[{self.room_id}] {chosen.name} will open the next round")
        self._proceed_after_card_loss(
            state.get_player(state.challenger_id),
            chosenFirstPlayerId=chosen.id,
            chosenFirstPlayerName=chosen.name
        )

    # === GAME END / RESET ===

    def _end_game(self, winner: Player, reason: str):
        state = self.state
        self.supervisor.cancel()
        state.phase = Phase.GAME_OVER
        state.winner_id = winner.id
        state.win_reason = reason
        state.current_turn_id = None
        state.transition_pending = False
        state.increment_version()
        logger.info(f"[{self.room_id}] Game over: {winner.name} wins ({reason})")
        self.emit(GameEvent(EVENT_GAME_OVER, {
            'winnerId': winner.id,
            'winnerName': winner.name,
            'reason': reason,
        }, with_players=True))

    def reset(self, sender_id: str):
        """Back to the lobby with the same seats and fresh hands."""
        old = self.state
        if sender_id != old.host_id:
            raise_error(NOT_HOST, "Only the host can reset the game")

        self.supervisor.cancel()
        fresh = GameState(
            host_id=old.host_id,
            version=old.version + 1,
            epoch=old.epoch + 1,
            turn_serial=old.turn_serial + 1
        )
        for index, player in enumerate(p for p in old.players if p.connected):
            fresh.players.append(Player(id=player.id, name=player.name, color_code=COLOR_CODES[index]))
        self.state = fresh

        logger.info(f"[{self.room_id}] Game reset by host, {len(fresh.players)} players kept")
        self.emit(GameEvent(EVENT_GAME_RESET, with_state=True))

    # === GUARDS ===

    def _require_phase(self, phase: Phase):
        state = self.state
        if state.phase == Phase.GAME_OVER:
            raise_error(GAME_OVER, "The game is over")
        if state.transition_pending:
            raise_error(RESOLVING, "Please wait, the round is resolving")
        if state.phase != phase:
            raise_error(WRONG_PHASE, f"Not allowed during {state.phase.value}")

    def _require_turn(self, sender_id: str) -> Player:
        state = self.state
        player = state.get_player(sender_id)
        if state.current_turn_id != sender_id or player is None or player.eliminated:
            raise_error(NOT_YOUR_TURN, "It's not your turn")
        return player

    def _send_error(self, recipient: str, error: GameError):
        self.emit(GameEvent(EVENT_ERROR, {
            'code': error.code,
            'message': error.message,
        }, recipient=recipient))
