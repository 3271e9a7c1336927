"""
Move Rules - Limited-use guard, legal moves and commit validation.

Used by:
1. Bots to enumerate possible commits
2. UI to grey out unavailable moves
3. The authority to re-validate every incoming commit
"""

from __future__ import annotations

from .state import DEFAULT_CONFIG, GameConfig, MatchState, Move, Participant, ParticipantId, TARGETED_MOVES
from .action import MoveCommit
from .errors import InvalidParticipant, MoveNotAllowed, RoundClosed


def can_use_move(participant: Participant, move: Move, config: GameConfig = DEFAULT_CONFIG) -> bool:
    """
    Check the limited-use guard.

    Only Sausage is limited: it is refused when the last sausage_limit
    moves were all Sausage.
    """
    if move != Move.SAUSAGE:
        return True
    if len(participant.move_history) < config.sausage_limit:
        return True
    recent = participant.move_history[-config.sausage_limit:]
    return not all(m == Move.SAUSAGE for m in recent)


def legal_moves(participant: Participant, config: GameConfig = DEFAULT_CONFIG) -> list[Move]:
    """Moves the participant may commit this round, in enum order."""
    if not participant.alive:
        return []
    return [m for m in Move if can_use_move(participant, m, config)]


def valid_targets(state: MatchState, participant_id: str) -> list[ParticipantId]:
    """Living opponents of the participant, in join order."""
    return [pid for pid in state.living_ids() if pid != participant_id]


def legal_commits(state: MatchState, participant_id: str) -> list[MoveCommit]:
    """
    Generate every legal commit for a participant.

    Targeted moves are expanded once per living opponent; with no
    opponent left they are offered untargeted.
    """
    participant = state.get_participant(participant_id)
    if participant is None or not participant.alive or state.over:
        return []

    targets = valid_targets(state, participant_id)
    commits = []
    for move in legal_moves(participant, state.config):
        if move in TARGETED_MOVES and targets:
            for target in targets:
                commits.append(MoveCommit(participant.participant_id, move, target, state.round))
        else:
            commits.append(MoveCommit(participant.participant_id, move, None, state.round))
    return commits


def validate_commit(state: MatchState, commit: MoveCommit) -> Participant:
    """
    Validate a commit against the current state.

    Returns the acting participant; raises on any rejection.
    """
    if state.over:
        raise RoundClosed("Match is over - no moves allowed", round=state.round)
    if commit.round is not None and commit.round != state.round:
        raise RoundClosed(
            f"Round {commit.round} is closed (current round is {state.round})",
            round=state.round,
        )

    actor = state.get_participant(commit.participant_id)
    if actor is None:
        raise InvalidParticipant(
            f"Unknown participant: {commit.participant_id}",
            participant_id=commit.participant_id,
        )
    if not actor.alive:
        raise InvalidParticipant(
            f"{actor.display_name} is defeated and cannot move",
            participant_id=commit.participant_id,
        )

    if commit.target_id is not None:
        if commit.target_id == commit.participant_id:
            raise InvalidParticipant(
                f"{actor.display_name} cannot target themselves",
                participant_id=commit.target_id,
            )
        target = state.get_participant(commit.target_id)
        if target is None:
            raise InvalidParticipant(
                f"Unknown target: {commit.target_id}",
                participant_id=commit.target_id,
            )
        if not target.alive:
            raise InvalidParticipant(
                f"Target {target.display_name} is already defeated",
                participant_id=commit.target_id,
            )

    if not can_use_move(actor, commit.move, state.config):
        raise MoveNotAllowed(
            f"{actor.display_name} cannot use {commit.move.value} "
            f"{state.config.sausage_limit} rounds in a row",
            participant_id=commit.participant_id,
            move=commit.move.value,
        )
    return actor
