"""
Bot Policy - Interface for scripted opponents.

A BotPolicy looks at the match state and returns a decision holding one
fully specified commit. Bots submit that commit through the same
MatchAuthority.commit_move() entry point a human uses.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING
import random

from ..engine_core.state import Move, TARGETED_MOVES
from ..engine_core.action import MoveCommit
from ..engine_core.rules import valid_targets

if TYPE_CHECKING:
    from ..engine_core.state import MatchState


@dataclass
class BotDecision:
    """
    A decision made by a bot.

    Contains:
    - The commit to submit
    - Explanation (for UI/debugging)
    - Confidence in the decision
    """
    commit: MoveCommit
    explanation: str = ""
    confidence: float = 1.0

    # Number of options weighed (for debugging)
    evaluated_commits: int = 0


def _distinct_moves(legal_commits: list[MoveCommit]) -> list[Move]:
    moves = []
    for c in legal_commits:
        if c.move not in moves:
            moves.append(c.move)
    return moves


class BotPolicy(ABC):
    """
    Abstract base class for bot policies.

    A policy defines how a bot picks its move each round.
    """

    @abstractmethod
    def select_commit(
        self,
        state: MatchState,
        participant_id: str,
        legal_commits: list[MoveCommit],
    ) -> BotDecision:
        """
        Select a commit from the legal ones.

        Args:
            state: Current match state
            participant_id: The bot's own participant id
            legal_commits: Every legal commit for this round

        Returns:
            BotDecision with the selected commit
        """
        pass

    def get_name(self) -> str:
        """Get the bot's name/identifier."""
        return self.__class__.__name__


class RandomPolicy(BotPolicy):
    """
    Random policy - selects commits uniformly at random.

    Used for:
    - Testing
    - Baseline comparison
    """

    def __init__(self, seed: int | None = None):
        self.rng = random.Random(seed)

    def select_commit(
        self,
        state: MatchState,
        participant_id: str,
        legal_commits: list[MoveCommit],
    ) -> BotDecision:
        if not legal_commits:
            raise ValueError("No legal commits available")

        commit = self.rng.choice(legal_commits)
        return BotDecision(
            commit=commit,
            explanation="Selected randomly",
            confidence=1.0 / len(legal_commits),
            evaluated_commits=len(legal_commits),
        )


class FirstLegalPolicy(BotPolicy):
    """
    First-legal policy - always selects the first legal commit.

    Used for deterministic testing.
    """

    def select_commit(
        self,
        state: MatchState,
        participant_id: str,
        legal_commits: list[MoveCommit],
    ) -> BotDecision:
        if not legal_commits:
            raise ValueError("No legal commits available")

        return BotDecision(
            commit=legal_commits[0],
            explanation="Selected first legal commit",
            evaluated_commits=1,
        )


class ScriptedOpponent(BotPolicy):
    """
    The CPU opponent.

    Cures its own egg with Sausage whenever it may; otherwise it picks a
    move uniformly among the allowed ones and aims targeted moves at a
    random living opponent.
    """

    def __init__(self, seed: int | None = None):
        self.rng = random.Random(seed)

    def select_commit(
        self,
        state: MatchState,
        participant_id: str,
        legal_commits: list[MoveCommit],
    ) -> BotDecision:
        if not legal_commits:
            raise ValueError("No legal commits available")

        me = state.get_participant(participant_id)
        moves = _distinct_moves(legal_commits)

        if me is not None and me.has_curable_egg and Move.SAUSAGE in moves:
            move = Move.SAUSAGE
            explanation = "Curing own egg"
        else:
            move = self.rng.choice(moves)
            explanation = f"Picked {move.value} at random"

        target = None
        if move in TARGETED_MOVES:
            targets = valid_targets(state, participant_id)
            if targets:
                target = self.rng.choice(targets)

        commit = MoveCommit(
            participant_id=legal_commits[0].participant_id,
            move=move,
            target_id=target,
            round=state.round,
        )
        return BotDecision(
            commit=commit,
            explanation=explanation,
            confidence=1.0 / len(moves),
            evaluated_commits=len(moves),
        )


POLICIES = {
    "scripted": ScriptedOpponent,
    "random": RandomPolicy,
    "first_legal": FirstLegalPolicy,
}


def create_policy(name: str = "scripted", seed: int | None = None) -> BotPolicy:
    """Build a policy by name."""
    if name not in POLICIES:
        raise ValueError(f"Unknown bot policy '{name}'. Known policies: {sorted(POLICIES)}")
    if name == "first_legal":
        return FirstLegalPolicy()
    return POLICIES[name](seed=seed)
