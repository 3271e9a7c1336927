"""
Engine Core - Deterministic match state and round resolution.

The engine is the runtime that:
1. Holds the participant arena (MatchState)
2. Validates commits (limited-use guard, living actors/targets)
3. Resolves rounds once everyone has committed
4. Publishes events and snapshots for renderers and transports
"""

from .state import (
    DEFAULT_CONFIG,
    EggEffect,
    GameConfig,
    MatchPhase,
    MatchState,
    Move,
    Participant,
    ParticipantId,
)
from .action import CommitResult, MoveCommit
from .errors import EggBattleError, InvalidParticipant, MalformedSnapshot, MatchNotFound, MoveNotAllowed, RoundClosed
from .status import apply_egg, tick_eggs, try_cure
from .rules import can_use_move, legal_commits, legal_moves, valid_targets
from .resolver import DeathReason, RoundOutcome, RoundResolver, resolve_round
from .events import EventBus, EventKind, MatchEvent
from .snapshot import MembershipMessage, MoveCommitMessage, StateSnapshot, snapshot, state_from_snapshot
from .controller import MatchAuthority, MatchReplica, MatchView

__all__ = [
    "DEFAULT_CONFIG",
    "EggEffect",
    "GameConfig",
    "MatchPhase",
    "MatchState",
    "Move",
    "Participant",
    "ParticipantId",
    "CommitResult",
    "MoveCommit",
    "EggBattleError",
    "InvalidParticipant",
    "MalformedSnapshot",
    "MoveNotAllowed",
    "RoundClosed",
    "MatchNotFound",
    "apply_egg",
    "tick_eggs",
    "try_cure",
    "can_use_move",
    "legal_commits",
    "legal_moves",
    "valid_targets",
    "DeathReason",
    "RoundOutcome",
    "RoundResolver",
    "resolve_round",
    "EventBus",
    "EventKind",
    "MatchEvent",
    "MembershipMessage",
    "MoveCommitMessage",
    "StateSnapshot",
    "snapshot",
    "state_from_snapshot",
    "MatchAuthority",
    "MatchReplica",
    "MatchView",
]
