"""
API Module - Network interface for matches.

Exposes the match authority via REST and WebSocket. A client:
1. Creates (or joins) a match
2. Receives state snapshots
3. Commits one move per round
4. Leaves or ends the match

All state is session-scoped. No persistent user accounts required.
"""

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
    HealthResponse,
    # Enums
    ErrorCode,
    SessionStatus,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "CreateMatchRequest",
    "JoinRequest",
    "LeaveRequest",
    "MoveCommitMessage",
    # Responses
    "MatchResponse",
    "CommitResponse",
    "LegalMovesResponse",
    "MatchListResponse",
    "EndMatchResponse",
    "ErrorResponse",
    "HealthResponse",
    # Enums
    "ErrorCode",
    "SessionStatus",
    # Service
    "APIService",
    "create_app",
]
