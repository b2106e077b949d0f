"""Shared fixtures for the auction tracker test suite."""

import pytest

from src.draft_ledger.draft_state import LedgerStore
from src.draft_ledger.ledger import DraftLedger
from src.inflation_engine.inflation_engine import InflationEngine
from src.inflation_engine.models import ProjectionRecord


# ------------------------------------------------------------------
# Manual scheduler - timers fire only when a test says so
# ------------------------------------------------------------------

class FakeTimer:
    def __init__(self, delay_seconds, callback):
        self.delay_seconds = delay_seconds
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Records every call_later; ``fire_next`` runs the oldest live timer."""

    def __init__(self):
        self.timers = []

    def call_later(self, delay_seconds, callback):
        timer = FakeTimer(delay_seconds, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self):
        return [t for t in self.timers if not t.cancelled and not t.fired]

    @property
    def delays_ms(self):
        return [round(t.delay_seconds * 1000) for t in self.timers]

    def fire_next(self):
        timer = self.pending[0]
        timer.fired = True
        timer.callback()
        return timer


@pytest.fixture
def scheduler():
    return FakeScheduler()


# ------------------------------------------------------------------
# Lightweight factories - cheap to construct, no I/O
# ------------------------------------------------------------------

@pytest.fixture
def store():
    return LedgerStore()


@pytest.fixture
def ledger(store):
    return DraftLedger(store)


@pytest.fixture
def engine():
    return InflationEngine()


@pytest.fixture
def projections():
    """Small pool: ten hitters and pitchers worth $50 down to $5."""
    specs = [
        ("p1", "Ace Hitter", "OF", 50.0),
        ("p2", "Big Bopper", "1B", 30.0),
        ("p3", "Slick Glove", "2B/SS", 25.0),
        ("p4", "Power Arm", "SP", 20.0),
        ("p5", "Backstop", "C", 15.0),
        ("p6", "Hot Corner", "3B", 12.0),
        ("p7", "Closer", "RP", 10.0),
        ("p8", "Fourth Outfielder", "OF", 8.0),
        ("p9", "Swingman", "SP", 6.0),
        ("p10", "Bench Bat", "DH", 5.0),
    ]
    return [
        ProjectionRecord(
            player_id=pid, projected_value=value, position=pos, player_name=name
        )
        for pid, name, pos, value in specs
    ]
