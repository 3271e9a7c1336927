"""
Commit System - Move commits and their results.

A commit is one participant's secret choice for the current round.
Commits from the local UI, remote replicas and bots all flow through
MatchAuthority.commit_move().
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .state import Move, ParticipantId

if TYPE_CHECKING:
    from .resolver import RoundOutcome


@dataclass(frozen=True)
class MoveCommit:
    """
    A fully specified move for one round.

    round is optional; when set, the authority rejects the commit if that
    round has already closed.
    """
    participant_id: ParticipantId
    move: Move
    target_id: ParticipantId | None = None
    round: int | None = None

    @classmethod
    def attack(cls, participant_id: str, target_id: str, round: int | None = None) -> MoveCommit:
        """Factory for an attack."""
        return cls(ParticipantId(participant_id), Move.ATTACK, ParticipantId(target_id), round)

    @classmethod
    def egg(cls, participant_id: str, target_id: str, round: int | None = None) -> MoveCommit:
        """Factory for an egg throw."""
        return cls(ParticipantId(participant_id), Move.EGG, ParticipantId(target_id), round)

    @classmethod
    def sausage(cls, participant_id: str, round: int | None = None) -> MoveCommit:
        """Factory for a sausage (self cure / attack reflect)."""
        return cls(ParticipantId(participant_id), Move.SAUSAGE, None, round)

    @classmethod
    def barrier(cls, participant_id: str, round: int | None = None) -> MoveCommit:
        """Factory for a barrier (egg reflect)."""
        return cls(ParticipantId(participant_id), Move.BARRIER, None, round)


@dataclass
class CommitResult:
    """
    Result of accepting a commit.

    resolved is set when this commit completed the round; outcome then
    holds what the resolver produced.
    """
    accepted: bool
    round: int
    resolved: bool = False
    outcome: RoundOutcome | None = None
    waiting_on: list[ParticipantId] = field(default_factory=list)
