"""
Wire Messages - State snapshots, move commits and membership changes.

These models are the whole contract between the authority and its
replicas; the transport only has to move their JSON form. Unknown fields
are forbidden so a replica can tell a foreign or corrupted snapshot apart
from a valid one.
"""

from __future__ import annotations
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .state import DEFAULT_CONFIG, EggEffect, GameConfig, MatchPhase, MatchState, Move, Participant, ParticipantId
from .action import MoveCommit
from .errors import MalformedSnapshot


class EffectSnapshot(BaseModel):
    """One egg as seen on the wire."""
    model_config = ConfigDict(extra="forbid")

    turns_remaining: int = Field(..., ge=-1)
    reflected: bool = False


class ParticipantSnapshot(BaseModel):
    """Public view of a participant. Pending moves are never sent."""
    model_config = ConfigDict(extra="forbid")

    id: str
    display_name: str
    health: int = Field(..., ge=0)
    status_effects: list[EffectSnapshot] = Field(default_factory=list)
    move_history: list[Move] = Field(default_factory=list)
    alive: bool


class StateSnapshot(BaseModel):
    """Authority -> replicas, once at match start and once per resolved round."""
    model_config = ConfigDict(extra="forbid")

    type: Literal["state_snapshot"] = "state_snapshot"
    match_id: str
    round: int = Field(..., ge=1)
    over: bool = False
    winner_id: Optional[str] = None
    event_log: list[str] = Field(default_factory=list)
    participants: list[ParticipantSnapshot] = Field(default_factory=list)


class MoveCommitMessage(BaseModel):
    """Replica -> authority, once per round per human participant."""
    model_config = ConfigDict(extra="forbid")

    type: Literal["move_commit"] = "move_commit"
    participant_id: str
    move: Move
    target_id: Optional[str] = None
    round: Optional[int] = Field(None, ge=1, description="Round this commit is meant for")

    def to_commit(self) -> MoveCommit:
        return MoveCommit(
            participant_id=ParticipantId(self.participant_id),
            move=self.move,
            target_id=ParticipantId(self.target_id) if self.target_id is not None else None,
            round=self.round,
        )

    @classmethod
    def from_commit(cls, commit: MoveCommit) -> MoveCommitMessage:
        return cls(
            participant_id=commit.participant_id,
            move=commit.move,
            target_id=commit.target_id,
            round=commit.round,
        )


class MembershipMessage(BaseModel):
    """Join/leave notification."""
    model_config = ConfigDict(extra="forbid")

    type: Literal["join", "leave"]
    participant_id: str
    display_name: str


# =============================================================================
# State <-> snapshot
# =============================================================================

def participant_to_snapshot(p: Participant) -> ParticipantSnapshot:
    return ParticipantSnapshot(
        id=p.participant_id,
        display_name=p.display_name,
        health=p.health,
        status_effects=[
            EffectSnapshot(turns_remaining=e.turns_remaining, reflected=e.reflected)
            for e in p.status_effects
        ],
        move_history=list(p.move_history),
        alive=p.alive,
    )


def build_snapshot(state: MatchState) -> StateSnapshot:
    """Build the canonical snapshot model of a match."""
    return StateSnapshot(
        match_id=state.match_id,
        round=state.round,
        over=state.over,
        winner_id=state.winner_id,
        event_log=list(state.event_log),
        participants=[participant_to_snapshot(p) for p in state.participants.values()],
    )


def snapshot(state: MatchState) -> dict[str, Any]:
    """Return a JSON-serializable snapshot of the current match state."""
    return build_snapshot(state).model_dump(mode="json")


def parse_snapshot(data: Any) -> StateSnapshot:
    """Validate raw snapshot data; raises MalformedSnapshot on any deviation."""
    if isinstance(data, StateSnapshot):
        return data
    try:
        if isinstance(data, (str, bytes)):
            return StateSnapshot.model_validate_json(data)
        return StateSnapshot.model_validate(data)
    except ValidationError as e:
        raise MalformedSnapshot(
            f"Snapshot does not match the documented shape ({e.error_count()} errors)",
            errors=[err["msg"] for err in e.errors()],
        ) from e


def state_from_snapshot(data: Any, config: GameConfig = DEFAULT_CONFIG) -> MatchState:
    """
    Rebuild a full MatchState from a snapshot.

    The result is a fresh baseline - there is no merging with earlier
    state. Pending moves are empty since snapshots never carry them.
    """
    snap = parse_snapshot(data)

    ids = [p.id for p in snap.participants]
    if len(set(ids)) != len(ids):
        raise MalformedSnapshot("Snapshot lists a participant twice", participant_ids=ids)
    if snap.winner_id is not None and snap.winner_id not in ids:
        raise MalformedSnapshot(
            f"Snapshot winner {snap.winner_id} is not a participant",
            winner_id=snap.winner_id,
        )

    participants = {}
    for ps in snap.participants:
        if ps.health > config.max_hp:
            raise MalformedSnapshot(
                f"Participant {ps.id} has {ps.health} HP (max {config.max_hp})",
                participant_id=ps.id,
                health=ps.health,
            )
        pid = ParticipantId(ps.id)
        participants[pid] = Participant(
            participant_id=pid,
            display_name=ps.display_name,
            health=ps.health,
            status_effects=[
                EggEffect(turns_remaining=e.turns_remaining, reflected=e.reflected)
                for e in ps.status_effects
            ],
            move_history=list(ps.move_history),
            alive=ps.alive,
        )

    return MatchState(
        match_id=snap.match_id,
        config=config,
        participants=participants,
        round=snap.round,
        phase=MatchPhase.OVER if snap.over else MatchPhase.IN_PROGRESS,
        winner_id=ParticipantId(snap.winner_id) if snap.winner_id is not None else None,
        event_log=list(snap.event_log),
    )
