"""
Match State - Participant arena and match container.

Design principles:
- One record per participant, addressed by ParticipantId
- Owned by the authority; the resolver only ever sees clones
- Serializable: every field maps onto the state snapshot message
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import NewType
from copy import deepcopy
from enum import Enum


ParticipantId = NewType("ParticipantId", str)


class Move(str, Enum):
    """The four moves a participant can commit each round."""
    ATTACK = "attack"
    EGG = "egg"
    SAUSAGE = "sausage"
    BARRIER = "barrier"


# Moves that only make sense against another participant
TARGETED_MOVES = frozenset({Move.ATTACK, Move.EGG})


class MatchPhase(Enum):
    """High-level match phases."""
    IN_PROGRESS = "in_progress"
    OVER = "over"


@dataclass(frozen=True)
class GameConfig:
    """Rule constants for one match."""
    max_hp: int = 5
    egg_timer: int = 2
    sausage_limit: int = 2
    min_players: int = 2


DEFAULT_CONFIG = GameConfig()


@dataclass
class EggEffect:
    """
    A timed egg debuff.

    turns_remaining counts down once per round; below zero the egg explodes.
    Reflected eggs come from a Barrier and can never be cured.
    """
    turns_remaining: int
    reflected: bool = False


@dataclass
class Participant:
    """
    State for a single participant.

    pending_move/pending_target hold the secret commit for the current
    round and are cleared by the authority after resolution.
    """
    participant_id: ParticipantId
    display_name: str
    health: int = DEFAULT_CONFIG.max_hp
    status_effects: list[EggEffect] = field(default_factory=list)
    move_history: list[Move] = field(default_factory=list)
    alive: bool = True
    is_bot: bool = False

    # Secret commit for the current round
    pending_move: Move | None = None
    pending_target: ParticipantId | None = None

    @property
    def has_committed(self) -> bool:
        return self.pending_move is not None

    @property
    def has_egg(self) -> bool:
        return len(self.status_effects) > 0

    @property
    def has_curable_egg(self) -> bool:
        return any(not e.reflected for e in self.status_effects)

    def clear_pending(self):
        self.pending_move = None
        self.pending_target = None

    def clone(self) -> Participant:
        return deepcopy(self)


@dataclass
class MatchState:
    """
    Complete match state at a point in time.

    The participants dict keeps join order, which is also the order the
    resolver walks defenders and attackers in.
    """
    match_id: str
    config: GameConfig = DEFAULT_CONFIG
    participants: dict[ParticipantId, Participant] = field(default_factory=dict)
    round: int = 1
    phase: MatchPhase = MatchPhase.IN_PROGRESS
    winner_id: ParticipantId | None = None
    event_log: list[str] = field(default_factory=list)

    @property
    def over(self) -> bool:
        return self.phase == MatchPhase.OVER

    @property
    def is_draw(self) -> bool:
        return self.over and self.winner_id is None

    def get_participant(self, participant_id: str) -> Participant | None:
        """Get participant by ID."""
        return self.participants.get(ParticipantId(participant_id))

    def living(self) -> list[Participant]:
        """Living participants in join order."""
        return [p for p in self.participants.values() if p.alive]

    def living_ids(self) -> list[ParticipantId]:
        return [p.participant_id for p in self.living()]

    def all_committed(self) -> bool:
        """True when every living participant has a pending move."""
        living = self.living()
        return bool(living) and all(p.has_committed for p in living)

    def display_name(self, participant_id: ParticipantId | None) -> str:
        if participant_id is None:
            return ""
        p = self.participants.get(participant_id)
        return p.display_name if p else str(participant_id)

    def clone(self) -> MatchState:
        """Deep copy the state."""
        return deepcopy(self)
