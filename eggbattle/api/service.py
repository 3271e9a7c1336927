"""
API Service - Business logic layer between API and engine.

The service:
1. Translates API requests to session/authority calls
2. Manages sessions and their bot loops
3. Converts engine rejections into ErrorResponse objects
4. Formats responses around the canonical state snapshot

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable
import logging

from pydantic import ValidationError

from .schemas import (
    # Requests
    CreateMatchRequest,
    JoinRequest,
    LeaveRequest,
    MoveCommitMessage,
    # Responses
    MatchResponse,
    CommitResponse,
    LegalMovesResponse,
    MatchListResponse,
    EndMatchResponse,
    ErrorResponse,
    # Enums
    ErrorCode,
    SessionStatus,
)
from ..engine_core.errors import EggBattleError, MatchNotFound
from ..engine_core.events import MatchEvent
from ..engine_core.rules import legal_moves, valid_targets
from ..engine_core.snapshot import build_snapshot
from ..session import SessionManager, Session, SessionState, GameLoop, TurnResult

logger = logging.getLogger(__name__)

MatchObserver = Callable[[MatchEvent], None]


@dataclass
class APIService:
    """
    Main API service.

    Usage:
        service = APIService()

        # Create a match against two bots
        match = service.create_match(CreateMatchRequest(num_bots=2))

        # Commit the host's move
        response = service.commit_move(match.match_id, MoveCommitMessage(
            participant_id="p1", move="attack", target_id="cpu1",
        ))

    With bot_delay == 0 the bots commit synchronously after every change;
    otherwise the caller schedules GameLoop.play_bots_after_delay().
    """
    session_manager: SessionManager = field(default_factory=SessionManager)
    bot_delay: float = 0.0

    # Game loops per session
    _game_loops: dict[str, GameLoop] = field(default_factory=dict)

    # Subscribed to every new match (e.g. the WebSocket broadcaster)
    _observers: list[MatchObserver] = field(default_factory=list)

    def add_observer(self, observer: MatchObserver):
        """Subscribe an observer to all matches created from now on."""
        self._observers.append(observer)

    def create_match(self, request: CreateMatchRequest) -> MatchResponse | ErrorResponse:
        """
        Create a new match and let the bots commit for round 1.
        """
        try:
            session = self.session_manager.create_session(
                host_name=request.host_name,
                num_bots=request.num_bots,
                seed=request.seed,
                bot_policy=request.bot_policy,
            )
        except ValueError as e:
            return ErrorResponse(error=str(e), error_code=ErrorCode.VALIDATION_ERROR)

        for observer in self._observers:
            session.authority.subscribe(observer)

        self._game_loops[session.session_id] = GameLoop(session, bot_delay=self.bot_delay)
        self._run_bots(session.session_id)
        return self._session_to_response(session)

    def get_match(self, match_id: str) -> MatchResponse | ErrorResponse:
        """
        Get match status and snapshot.
        """
        session = self.session_manager.get_session(match_id)
        if not session:
            return self._not_found(match_id)
        return self._session_to_response(session)

    def join_match(self, match_id: str, request: JoinRequest) -> MatchResponse | ErrorResponse:
        """
        Seat a late joiner.
        """
        try:
            participant = self.session_manager.join(
                match_id, request.display_name, request.participant_id
            )
        except EggBattleError as e:
            return self._engine_error(e)

        session = self.session_manager.require_session(match_id)
        response = self._session_to_response(session)
        response.participant_id = participant.participant_id
        return response

    def leave_match(self, match_id: str, request: LeaveRequest) -> MatchResponse | ErrorResponse:
        """
        Remove a participant from play.

        Leaving may complete the round; the bots then commit for the next one.
        """
        try:
            result = self.session_manager.leave(match_id, request.participant_id)
        except EggBattleError as e:
            return self._engine_error(e)

        if result is not None and result.resolved:
            self._run_bots(match_id)
        return self._session_to_response(self.session_manager.require_session(match_id))

    def commit_move(self, match_id: str, message: MoveCommitMessage | dict) -> CommitResponse | ErrorResponse:
        """
        Commit a move for one participant.

        This is the main gameplay entry point. Remote commits go through
        the same validation as local ones.
        """
        session = self.session_manager.get_session(match_id)
        if not session:
            return self._not_found(match_id)

        try:
            if isinstance(message, dict):
                message = MoveCommitMessage.model_validate(message)
            result = session.authority.submit(message.to_commit())
        except ValidationError as e:
            return ErrorResponse(
                error="Invalid move_commit message",
                error_code=ErrorCode.VALIDATION_ERROR,
                details={"errors": [err["msg"] for err in e.errors()]},
            )
        except EggBattleError as e:
            return self._engine_error(e)

        if result.resolved:
            self._run_bots(match_id)

        return CommitResponse(
            match_id=match_id,
            accepted=result.accepted,
            round=result.round,
            resolved=result.resolved,
            waiting_on=[str(pid) for pid in result.waiting_on],
            snapshot=build_snapshot(session.match),
        )

    def legal_moves(self, match_id: str, participant_id: str) -> LegalMovesResponse | ErrorResponse:
        """
        Moves and targets a participant may pick this round.

        Used by clients to grey out an unavailable Sausage.
        """
        session = self.session_manager.get_session(match_id)
        if not session:
            return self._not_found(match_id)

        participant = session.match.get_participant(participant_id)
        if participant is None:
            return ErrorResponse(
                error=f"Unknown participant: {participant_id}",
                error_code=ErrorCode.INVALID_PARTICIPANT,
                details={"participant_id": participant_id},
            )

        over = session.match.over
        return LegalMovesResponse(
            match_id=match_id,
            participant_id=participant_id,
            round=session.match.round,
            moves=[] if over else legal_moves(participant, session.match.config),
            targets=[] if over or not participant.alive else [
                str(pid) for pid in valid_targets(session.match, participant_id)
            ],
            has_committed=participant.has_committed,
        )

    def end_match(self, match_id: str, reason: str = "user_ended") -> EndMatchResponse:
        """
        End a match.
        """
        existed = self.session_manager.get_session(match_id) is not None
        self.session_manager.end_session(match_id, reason)
        self._game_loops.pop(match_id, None)
        return EndMatchResponse(success=existed, match_id=match_id)

    def list_matches(self) -> MatchListResponse:
        """
        List active match IDs.
        """
        matches = self.session_manager.list_active_sessions()
        return MatchListResponse(matches=matches, count=len(matches))

    def get_game_loop(self, match_id: str) -> GameLoop | None:
        return self._game_loops.get(match_id)

    # =========================================================================
    # Helper methods
    # =========================================================================

    def _run_bots(self, match_id: str) -> TurnResult | None:
        """Play bot turns now unless a delayed loop is in charge."""
        if self.bot_delay > 0:
            return None
        game_loop = self._game_loops.get(match_id)
        if game_loop is None:
            return None
        return game_loop.play_bots()

    def _session_to_response(self, session: Session) -> MatchResponse:
        """Convert Session to MatchResponse."""
        return MatchResponse(
            match_id=session.session_id,
            status=self._session_state_to_status(session),
            host_id=session.host_id,
            bot_ids=list(session.bots),
            created_at=session.created_at,
            snapshot=build_snapshot(session.match),
        )

    def _session_state_to_status(self, session: Session) -> SessionStatus:
        """Convert session state to API status."""
        if session.authority.over:
            return SessionStatus.GAME_OVER
        mapping = {
            SessionState.ACTIVE: SessionStatus.ACTIVE,
            SessionState.GAME_OVER: SessionStatus.GAME_OVER,
            SessionState.ABANDONED: SessionStatus.ABANDONED,
        }
        return mapping.get(session.state, SessionStatus.ACTIVE)

    def _not_found(self, match_id: str) -> ErrorResponse:
        return self._engine_error(MatchNotFound("Match not found", match_id=match_id))

    def _engine_error(self, error: EggBattleError) -> ErrorResponse:
        """Convert an engine rejection to an ErrorResponse."""
        try:
            code = ErrorCode(error.code)
        except ValueError:
            code = ErrorCode.INTERNAL_ERROR
        return ErrorResponse(
            error=error.message,
            error_code=code,
            details={k: _plain(v) for k, v in error.details.items()} or None,
        )


def _plain(value):
    """Make error details JSON friendly (enums, NewType ids)."""
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return getattr(value, "value", value)
