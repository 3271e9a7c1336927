"""
Pytest fixtures for Egg Battle tests.
"""

import pytest

from ..engine_core.state import DEFAULT_CONFIG, EggEffect, GameConfig, Participant, ParticipantId
from ..engine_core.controller import MatchAuthority
from ..engine_core.events import MatchEvent


def make_participant(
    participant_id: str,
    name: str | None = None,
    health: int = DEFAULT_CONFIG.max_hp,
    eggs: list[EggEffect] | None = None,
    history: list | None = None,
) -> Participant:
    """Build a participant record directly (bypassing the authority)."""
    return Participant(
        participant_id=ParticipantId(participant_id),
        display_name=name or participant_id.upper(),
        health=health,
        status_effects=list(eggs or []),
        move_history=list(history or []),
    )


@pytest.fixture
def config() -> GameConfig:
    """Default rule constants."""
    return DEFAULT_CONFIG


@pytest.fixture
def duel() -> MatchAuthority:
    """A started two-participant match: Alice (a) vs Bob (b)."""
    return MatchAuthority.create([("a", "Alice"), ("b", "Bob")], match_id="duel")


@pytest.fixture
def trio() -> MatchAuthority:
    """A started three-participant match: Alice, Bob and Carol."""
    return MatchAuthority.create(
        [("a", "Alice"), ("b", "Bob"), ("c", "Carol")],
        match_id="trio",
    )


@pytest.fixture
def recorder():
    """Collects published events; subscribe it with authority.subscribe(recorder)."""
    class Recorder:
        def __init__(self):
            self.events: list[MatchEvent] = []

        def __call__(self, event: MatchEvent):
            self.events.append(event)

        def kinds(self):
            return [e.kind for e in self.events]

        def lines(self):
            return [e.line for e in self.events if e.line is not None]

    return Recorder()


def give_egg(authority: MatchAuthority, participant_id: str, turns: int = 1, reflected: bool = False):
    """Seed an egg on a participant of a running match."""
    authority.state.participants[participant_id].status_effects.append(
        EggEffect(turns_remaining=turns, reflected=reflected)
    )
