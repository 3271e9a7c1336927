"""
Session Manager - Creates and manages match sessions.

LIFECYCLE:
1. Host starts a session -> MatchAuthority created, bots seated, round 1 opens
2. During the match:
   - Humans commit through the API/CLI
   - Bots commit through the GameLoop
   - Late joiners and leavers are folded into the living set
3. Match ends (one or zero survivors) -> session marked GAME_OVER
4. Session ended or stale -> removed from memory

PERSISTENCE RULES:
- NO database
- Match state is ephemeral (session-scoped only)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
import logging
import time

from ..engine_core.state import DEFAULT_CONFIG, GameConfig, MatchState, Participant
from ..engine_core.action import CommitResult
from ..engine_core.controller import MatchAuthority
from ..engine_core.errors import MatchNotFound
from ..engine_core.events import EventKind, MatchEvent
from ..bots import BotPolicy, create_policy

logger = logging.getLogger(__name__)

HOST_ID = "p1"


class SessionState(Enum):
    """State of a match session."""
    ACTIVE = "active"  # Match in progress
    GAME_OVER = "game_over"  # Match decided
    ABANDONED = "abandoned"  # Ended before a winner


@dataclass
class Session:
    """
    An ephemeral match session.

    Contains:
    - The authority for the match
    - One bot policy per CPU participant
    - Session metadata

    The session id is the match id.
    """
    session_id: str
    authority: MatchAuthority
    created_at: float

    state: SessionState = SessionState.ACTIVE
    bots: dict[str, BotPolicy] = field(default_factory=dict)
    host_id: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def match(self) -> MatchState:
        return self.authority.state

    def is_active(self) -> bool:
        """Check if session is still active."""
        return self.state == SessionState.ACTIVE and not self.authority.over

    def is_bot(self, participant_id: str) -> bool:
        return participant_id in self.bots

    def bots_to_move(self) -> list[str]:
        """Living bots with no commit for the current round yet."""
        if self.authority.over:
            return []
        return [
            p.participant_id for p in self.match.living()
            if self.is_bot(p.participant_id) and not p.has_committed
        ]

    def _on_match_over(self, event: MatchEvent):
        if self.state == SessionState.ACTIVE:
            self.state = SessionState.GAME_OVER
            logger.info("Session %s finished, winner=%s", self.session_id, event.data.get("winner_id"))


class SessionManager:
    """
    Manages match sessions.

    Responsibilities:
    - Create sessions with a host and scripted opponents
    - Route membership changes to the right authority
    - Track active sessions
    - Clean up completed sessions

    No persistence - sessions are in-memory only.
    """

    def __init__(self, config: GameConfig = DEFAULT_CONFIG, bot_policy: str = "scripted"):
        self.config = config
        self.bot_policy = bot_policy
        self._sessions: dict[str, Session] = {}

    def create_session(
        self,
        host_name: str | None = "Player",
        num_bots: int = 1,
        seed: int | None = None,
        bot_policy: str | None = None,
    ) -> Session:
        """
        Create a new match session.

        Args:
            host_name: Display name of the human host, seated as p1.
                None creates a bots-only match.
            num_bots: Number of scripted opponents (cpu1..cpuN)
            seed: Base seed for the bots' random choices
            bot_policy: Policy name, defaults to the manager's

        Returns:
            Session with round 1 open
        """
        if num_bots < 0:
            raise ValueError("num_bots must not be negative")

        seats: list[tuple[str, str, bool]] = []
        if host_name is not None:
            seats.append((HOST_ID, host_name, False))

        bots = {}
        for i in range(num_bots):
            bot_id = f"cpu{i + 1}"
            bot_seed = seed + i if seed is not None else None
            bots[bot_id] = create_policy(bot_policy or self.bot_policy, seed=bot_seed)
            seats.append((bot_id, f"CPU {i + 1}", True))

        authority = MatchAuthority(config=self.config)
        for entry in seats:
            authority.add_participant(*entry)

        session = Session(
            session_id=authority.match_id,
            authority=authority,
            created_at=time.time(),
            bots=bots,
            host_id=HOST_ID if host_name is not None else None,
            metadata={"seed": seed},
        )
        authority.subscribe(session._on_match_over, kinds={EventKind.MATCH_OVER})
        authority.start()

        self._sessions[session.session_id] = session
        logger.info(
            "Created session %s (host=%s, bots=%d)",
            session.session_id,
            host_name,
            num_bots,
        )
        return session

    def get_session(self, session_id: str) -> Session | None:
        """Get a session by ID."""
        return self._sessions.get(session_id)

    def require_session(self, session_id: str) -> Session:
        """Get a session by ID or raise MatchNotFound."""
        session = self._sessions.get(session_id)
        if session is None:
            raise MatchNotFound(f"Match {session_id} not found", match_id=session_id)
        return session

    def join(
        self,
        session_id: str,
        display_name: str,
        participant_id: str | None = None,
    ) -> Participant:
        """Seat a late joiner; picks the next free pN id when none is given."""
        session = self.require_session(session_id)
        if participant_id is None:
            participant_id = self._next_free_id(session)
        return session.authority.join(participant_id, display_name)

    def leave(self, session_id: str, participant_id: str) -> CommitResult | None:
        """Remove a participant from play."""
        session = self.require_session(session_id)
        return session.authority.leave(participant_id)

    def end_session(self, session_id: str, reason: str = "completed"):
        """
        End a session and clean up.

        This is called when:
        - The match is completed
        - The host abandons the match
        - The session went stale

        The session is removed from memory.
        """
        session = self._sessions.pop(session_id, None)
        if session:
            if reason == "completed" and session.authority.over:
                session.state = SessionState.GAME_OVER
            else:
                session.state = SessionState.ABANDONED
            session.bots.clear()
            logger.info("Ended session %s (%s)", session_id, reason)

    def list_active_sessions(self) -> list[str]:
        """List IDs of active sessions."""
        return [
            sid for sid, session in self._sessions.items()
            if session.is_active()
        ]

    def list_sessions(self) -> list[Session]:
        return list(self._sessions.values())

    def cleanup_stale_sessions(self, max_age_seconds: int = 3600) -> list[str]:
        """
        Clean up finished sessions older than max_age.

        Called periodically to free memory.
        """
        current_time = time.time()
        to_remove = [
            session_id for session_id, session in self._sessions.items()
            if current_time - session.created_at > max_age_seconds and not session.is_active()
        ]

        for session_id in to_remove:
            self.end_session(session_id, reason="stale")
        return to_remove

    def _next_free_id(self, session: Session) -> str:
        n = 1
        while f"p{n}" in session.match.participants:
            n += 1
        return f"p{n}"
