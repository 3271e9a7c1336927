"""
Game Loop - Drives the scripted opponents of a session.

The loop:
1. Round opens
2. Every living bot picks and commits a move
3. Humans commit (API, CLI or WebSocket)
4. The last commit resolves the round
5. Repeat until one or zero participants remain

Bots never resolve anything themselves - they commit through the same
MatchAuthority.submit() entry point as every human.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING
import asyncio
import logging

from ..engine_core.rules import legal_commits

if TYPE_CHECKING:
    from .manager import Session

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROUNDS = 100


class LoopState(Enum):
    """State of the game loop."""
    WAITING_HUMAN = "waiting_human"
    GAME_OVER = "game_over"
    ROUND_LIMIT = "round_limit"


@dataclass
class BotTurn:
    """One bot commit, kept for display and debugging."""
    participant_id: str
    round: int
    move: str
    target_id: str | None
    explanation: str = ""


@dataclass
class TurnResult:
    """
    Result of letting the bots play.

    rounds_resolved counts rounds closed by a bot commit during this call.
    """
    loop_state: LoopState
    rounds_resolved: int = 0
    bot_turns: list[BotTurn] = field(default_factory=list)
    winner: str | None = None


class GameLoop:
    """
    The bot driver for one session.

    Usage:
        loop = GameLoop(session)
        loop.play_bots()                     # bots commit for the open round
        session.authority.commit_move(...)   # human closes the round
        loop.play_bots()                     # bots commit for the next one
    """

    def __init__(
        self,
        session: Session,
        bot_delay: float = 0.0,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
    ):
        self.session = session
        self.bot_delay = bot_delay
        self.max_rounds = max_rounds

    def play_bots(self, max_rounds: int | None = None) -> TurnResult:
        """
        Commit a move for every living bot that still owes one.

        When a bot commit closes a round the next round is handled too, so a
        bots-only match runs to completion (bounded by max_rounds).
        """
        limit = self.max_rounds if max_rounds is None else max_rounds
        authority = self.session.authority
        result = TurnResult(loop_state=LoopState.WAITING_HUMAN)

        while not authority.over:
            pending = self.session.bots_to_move()
            if not pending:
                break
            if result.rounds_resolved >= limit:
                logger.warning(
                    "Session %s: stopped bots after %d rounds",
                    self.session.session_id,
                    result.rounds_resolved,
                )
                result.loop_state = LoopState.ROUND_LIMIT
                return result

            for bot_id in pending:
                if self._bot_turn(bot_id, result):
                    # Round closed; re-read who owes a move
                    result.rounds_resolved += 1
                    break

        if authority.over:
            result.loop_state = LoopState.GAME_OVER
            result.winner = authority.state.winner_id
        return result

    async def play_bots_after_delay(self, round_number: int | None = None) -> TurnResult | None:
        """
        Async variant used by the server: wait bot_delay, then play.

        If the round the bots were scheduled for has closed or the match
        ended in the meantime, nothing is committed.
        """
        state = self.session.authority.state
        scheduled_round = state.round if round_number is None else round_number

        if self.bot_delay > 0:
            await asyncio.sleep(self.bot_delay)

        if self.session.authority.over or self.session.authority.state.round != scheduled_round:
            logger.debug(
                "Session %s: dropping bot moves for closed round %d",
                self.session.session_id,
                scheduled_round,
            )
            return None
        return self.play_bots()

    def _bot_turn(self, bot_id: str, result: TurnResult) -> bool:
        """Let one bot commit; returns True when that commit resolved the round."""
        state = self.session.authority.state
        policy = self.session.bots[bot_id]

        legal = legal_commits(state, bot_id)
        decision = policy.select_commit(state, bot_id, legal)
        commit = decision.commit

        result.bot_turns.append(BotTurn(
            participant_id=bot_id,
            round=state.round,
            move=commit.move.value,
            target_id=commit.target_id,
            explanation=decision.explanation,
        ))
        logger.debug(
            "Session %s: %s commits %s -> %s (%s, %d options)",
            self.session.session_id,
            bot_id,
            commit.move.value,
            commit.target_id,
            decision.explanation,
            decision.evaluated_commits,
        )

        return self.session.authority.submit(commit).resolved
