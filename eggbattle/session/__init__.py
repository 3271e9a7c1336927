"""
Session Module - Manages ephemeral match sessions.

A session represents one match:
- Created when a host starts a match
- Holds the match authority and the bot policies
- Runs bot turns through the game loop
- Destroyed when the match is ended or goes stale

Sessions are EPHEMERAL:
- No persistence to database
- Ends cleanly when the match completes
"""

from .manager import HOST_ID, SessionManager, Session, SessionState
from .game_loop import GameLoop, LoopState, TurnResult, BotTurn

__all__ = [
    "HOST_ID",
    "SessionManager",
    "Session",
    "SessionState",
    "GameLoop",
    "LoopState",
    "TurnResult",
    "BotTurn",
]
