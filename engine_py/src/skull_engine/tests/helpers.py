"""
Test helpers: a manual clock and a shortcut to a started game.
"""

from skull_engine.actions import JoinAction, StartAction
from skull_engine.engine import SkullGame


class FakeHandle:
    def __init__(self, when, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Scheduler whose clock only moves when a test calls ``advance``."""

    def __init__(self, now=1000.0):
        self.now = now
        self.handles = []

    def time(self):
        return self.now

    def call_later(self, delay, callback):
        handle = FakeHandle(self.now + delay, callback)
        self.handles.append(handle)
        return handle

    def pending(self):
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [h for h in self.pending() if h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self.now = max(self.now, handle.when)
            handle.fired = True
            handle.callback()
        self.now = target


class Recorder(list):
    """Collects engine events."""

    def types(self):
        return [event.type for event in self]

    def of_type(self, event_type):
        return [event for event in self if event.type == event_type]

    def last(self, event_type):
        matching = self.of_type(event_type)
        return matching[-1] if matching else None


def make_game(players=3, timer=0, first="p1", seed=7, rules=None):
    """
    Seat ``players`` players (p1..pN), start the game and force ``first`` to open.
    """
    scheduler = FakeScheduler()
    events = Recorder()
    game = SkullGame(room_id="TEST", rules=rules, scheduler=scheduler, on_event=events.append, seed=seed)
    for i in range(1, players + 1):
        game.handle(f"p{i}", JoinAction(name=f"Player {i}", is_creator=(i == 1)))
    if first is not None:
        assert game.handle("p1", StartAction(timer_duration=timer))
        game.state.first_player_id = first
        game.start_new_round()
    events.clear()
    return game, scheduler, events
