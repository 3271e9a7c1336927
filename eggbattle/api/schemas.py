"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models define the contract between clients and the match service.
Snapshots and move commits reuse the wire messages from the engine, so a
client sees exactly what a MatchReplica would receive.

Error Codes:
- INVALID_PARTICIPANT: Unknown or defeated actor/target
- MOVE_NOT_ALLOWED: Limited-use guard rejected the move
- MALFORMED_SNAPSHOT: Snapshot outside the documented shape
- ROUND_CLOSED: Commit for a resolved round, or the match is over
- MATCH_NOT_FOUND: Match does not exist or has been ended
"""

from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, Field

from ..engine_core.state import Move
from ..engine_core.snapshot import MoveCommitMessage, StateSnapshot


# =============================================================================
# Enums
# =============================================================================

class SessionStatus(str, Enum):
    """Session status values."""
    ACTIVE = "active"
    GAME_OVER = "game_over"
    ABANDONED = "abandoned"


class ErrorCode(str, Enum):
    """Structured error codes."""
    INVALID_PARTICIPANT = "INVALID_PARTICIPANT"
    MOVE_NOT_ALLOWED = "MOVE_NOT_ALLOWED"
    MALFORMED_SNAPSHOT = "MALFORMED_SNAPSHOT"
    ROUND_CLOSED = "ROUND_CLOSED"
    MATCH_NOT_FOUND = "MATCH_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# =============================================================================
# Request Models
# =============================================================================

class CreateMatchRequest(BaseModel):
    """Request to create a new match."""
    host_name: Optional[str] = Field(
        "Player", description="Display name for the host (p1); null for a bots-only match"
    )
    num_bots: int = Field(1, ge=0, le=7, description="Number of scripted opponents")
    seed: Optional[int] = Field(None, description="Seed for reproducible bot choices")
    bot_policy: Optional[str] = Field(None, description="scripted, random or first_legal")


class JoinRequest(BaseModel):
    """Request to join a running match."""
    display_name: str = Field(..., min_length=1, description="Display name for the joiner")
    participant_id: Optional[str] = Field(None, description="Requested id; next free pN if omitted")


class LeaveRequest(BaseModel):
    """Request to leave (forfeit) a match."""
    participant_id: str


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class MatchResponse(BaseModel):
    """Response containing match information and the current snapshot."""
    match_id: str
    status: SessionStatus
    host_id: Optional[str] = None
    bot_ids: list[str] = Field(default_factory=list)
    participant_id: Optional[str] = Field(None, description="Id assigned by a join request")
    created_at: float = 0.0
    snapshot: StateSnapshot
    api_version: str = "v1"


class CommitResponse(BaseModel):
    """Response after a move commit."""
    match_id: str
    accepted: bool
    round: int = Field(..., description="Round the commit was recorded for")
    resolved: bool = Field(False, description="Whether this commit closed the round")
    waiting_on: list[str] = Field(default_factory=list)
    snapshot: StateSnapshot
    api_version: str = "v1"


class LegalMovesResponse(BaseModel):
    """Moves and targets currently available to one participant."""
    match_id: str
    participant_id: str
    round: int
    moves: list[Move] = Field(default_factory=list)
    targets: list[str] = Field(default_factory=list)
    has_committed: bool = False


class MatchListResponse(BaseModel):
    """Response listing active matches."""
    matches: list[str]
    count: int


class EndMatchResponse(BaseModel):
    """Response after ending a match."""
    success: bool
    match_id: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
    environment: str = "development"


__all__ = [
    "SessionStatus",
    "ErrorCode",
    "CreateMatchRequest",
    "JoinRequest",
    "LeaveRequest",
    "MoveCommitMessage",
    "ErrorResponse",
    "MatchResponse",
    "CommitResponse",
    "LegalMovesResponse",
    "MatchListResponse",
    "EndMatchResponse",
    "HealthResponse",
]
