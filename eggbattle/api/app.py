"""
FastAPI Application - REST + WebSocket API for Egg Battle.

Endpoints:
    POST   /api/v1/matches                    Create match (host + bots)
    GET    /api/v1/matches                    List active matches
    GET    /api/v1/matches/{id}               Get match status and snapshot
    DELETE /api/v1/matches/{id}               End match
    POST   /api/v1/matches/{id}/join          Join a running match
    POST   /api/v1/matches/{id}/leave         Leave (forfeit) a match
    POST   /api/v1/matches/{id}/moves         Commit a move
    GET    /api/v1/matches/{id}/participants/{pid}/moves  Legal moves and targets
    WS     /api/v1/matches/{id}/ws            Snapshot push + move commits

Bot Execution Flow:
    1. A change opens a round (create, resolved commit, join, leave)
    2. With EGGBATTLE_BOT_DELAY == 0 the bots commit before the response
    3. Otherwise a background task commits for them after the delay
    4. Every resolved round is pushed to WebSocket clients as a
       state_snapshot message

All responses are JSON with explicit Pydantic schemas.
"""

from typing import Optional, Union
import asyncio
import json
import logging
import os

from fastapi import FastAPI, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .. import __version__
from ..engine_core.events import EventKind, MatchEvent
from .service import APIService
from .schemas import (
    # Request models
    CreateMatchRequest,
    JoinRequest,
    LeaveRequest,
    MoveCommitMessage,
    # Response models
    MatchResponse,
    CommitResponse,
    LegalMovesResponse,
    MatchListResponse,
    EndMatchResponse,
    ErrorResponse,
    HealthResponse,
    # Enums
    ErrorCode,
)

# Environment configuration
EGGBATTLE_ENV = os.getenv("EGGBATTLE_ENV", "development")
EGGBATTLE_BOT_DELAY = float(os.getenv("EGGBATTLE_BOT_DELAY", "0.5"))
EGGBATTLE_LOG_LEVEL = os.getenv("EGGBATTLE_LOG_LEVEL", "INFO")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")

logger = logging.getLogger(__name__)

# Authority events that change what clients see
BROADCAST_EVENTS = {
    EventKind.MATCH_STARTED,
    EventKind.ROUND_RESOLVED,
    EventKind.PARTICIPANT_JOINED,
    EventKind.PARTICIPANT_LEFT,
}

ERROR_STATUS = {
    ErrorCode.MATCH_NOT_FOUND: 404,
    ErrorCode.ROUND_CLOSED: 409,
    ErrorCode.INTERNAL_ERROR: 500,
}


def create_app(service: Optional[APIService] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    logging.getLogger("eggbattle").setLevel(EGGBATTLE_LOG_LEVEL.upper())

    app = FastAPI(
        title="Egg Battle API",
        description="""
Simultaneous-move battle royale with scripted opponents.

## Round Flow

1. Every living participant commits one move (`POST /moves` or the WebSocket)
2. The last commit resolves the round
3. A `state_snapshot` is pushed to every WebSocket client

## Error Codes

| Code | Description |
|------|-------------|
| `INVALID_PARTICIPANT` | Unknown or defeated actor/target |
| `MOVE_NOT_ALLOWED` | Sausage used too many rounds in a row |
| `ROUND_CLOSED` | Round already resolved or match over |
| `MATCH_NOT_FOUND` | Match does not exist |
        """,
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Service instance
    api_service = service or APIService(bot_delay=EGGBATTLE_BOT_DELAY)

    # WebSocket connections
    ws_connections: dict[str, list[WebSocket]] = {}

    # Strong references to fire-and-forget tasks
    background_tasks: set[asyncio.Task] = set()

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(error: ErrorResponse) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=ERROR_STATUS.get(error.error_code, 400),
            content=error.model_dump(mode="json"),
        )

    # =========================================================================
    # Broadcasting and bot scheduling
    # =========================================================================

    async def broadcast_to_match(match_id: str, message: dict):
        """Broadcast a message to all WebSocket connections for a match."""
        if match_id in ws_connections:
            dead_connections = []
            for ws in list(ws_connections[match_id]):
                try:
                    await ws.send_json(message)
                except (WebSocketDisconnect, RuntimeError):
                    dead_connections.append(ws)
            for ws in dead_connections:
                if ws in ws_connections[match_id]:
                    ws_connections[match_id].remove(ws)

    def spawn(coro):
        task = asyncio.get_running_loop().create_task(coro)
        background_tasks.add(task)
        task.add_done_callback(background_tasks.discard)
        return task

    def on_match_event(event: MatchEvent):
        """Authority subscriber: push the new snapshot to connected clients."""
        if event.kind not in BROADCAST_EVENTS or event.snapshot is None:
            return
        if not ws_connections.get(event.match_id):
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; skipping broadcast for %s", event.match_id)
            return
        spawn(broadcast_to_match(event.match_id, event.snapshot))

    api_service.add_observer(on_match_event)

    def schedule_bots(match_id: str):
        """Let the bots commit after the configured delay."""
        if api_service.bot_delay <= 0:
            return
        game_loop = api_service.get_game_loop(match_id)
        if game_loop is not None:
            spawn(game_loop.play_bots_after_delay(round_number=game_loop.session.match.round))

    # =========================================================================
    # Match Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/matches",
        response_model=MatchResponse,
        responses={400: {"model": ErrorResponse}},
        tags=["Matches"],
        summary="Create a new match",
    )
    async def create_match(request: CreateMatchRequest) -> Union[MatchResponse, JSONResponse]:
        """
        Create a new match.

        The host is seated as `p1`, bots as `cpu1..cpuN`. Set `host_name`
        to null for a bots-only match.
        """
        response = api_service.create_match(request)
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        schedule_bots(response.match_id)
        return response

    @app.get(
        "/api/v1/matches",
        response_model=MatchListResponse,
        tags=["Matches"],
        summary="List active matches",
    )
    async def list_matches() -> MatchListResponse:
        """List all active match IDs."""
        return api_service.list_matches()

    @app.get(
        "/api/v1/matches/{match_id}",
        response_model=MatchResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Matches"],
        summary="Get match status",
    )
    async def get_match(match_id: str) -> Union[MatchResponse, JSONResponse]:
        """Get the current status and state snapshot of a match."""
        response = api_service.get_match(match_id)
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        return response

    @app.delete(
        "/api/v1/matches/{match_id}",
        response_model=EndMatchResponse,
        tags=["Matches"],
        summary="End a match",
    )
    async def end_match(
        match_id: str,
        reason: str = Query("user_ended", description="Reason for ending"),
    ) -> EndMatchResponse:
        """End a match and release resources."""
        response = api_service.end_match(match_id, reason)
        ws_connections.pop(match_id, None)
        return response

    @app.post(
        "/api/v1/matches/{match_id}/join",
        response_model=MatchResponse,
        responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
        tags=["Membership"],
        summary="Join a running match",
    )
    async def join_match(match_id: str, request: JoinRequest) -> Union[MatchResponse, JSONResponse]:
        """Join at full health; the current round now also waits on the joiner."""
        response = api_service.join_match(match_id, request)
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        return response

    @app.post(
        "/api/v1/matches/{match_id}/leave",
        response_model=MatchResponse,
        responses={404: {"model": ErrorResponse}, 400: {"model": ErrorResponse}},
        tags=["Membership"],
        summary="Leave a match",
    )
    async def leave_match(match_id: str, request: LeaveRequest) -> Union[MatchResponse, JSONResponse]:
        """Forfeit: the participant is removed from play for good."""
        response = api_service.leave_match(match_id, request)
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        schedule_bots(match_id)
        return response

    # =========================================================================
    # Gameplay Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/matches/{match_id}/moves",
        response_model=CommitResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Invalid participant or move"},
            404: {"model": ErrorResponse},
            409: {"model": ErrorResponse, "description": "Round already closed"},
        },
        tags=["Gameplay"],
        summary="Commit a move",
    )
    async def commit_move(match_id: str, message: MoveCommitMessage) -> Union[CommitResponse, JSONResponse]:
        """
        Commit one participant's move for the current round.

        Moves stay secret until every living participant has committed.
        A re-commit before resolution replaces the pending move.
        """
        response = api_service.commit_move(match_id, message)
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        if response.resolved:
            schedule_bots(match_id)
        return response

    @app.get(
        "/api/v1/matches/{match_id}/participants/{participant_id}/moves",
        response_model=LegalMovesResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Gameplay"],
        summary="Get legal moves",
    )
    async def get_legal_moves(match_id: str, participant_id: str) -> Union[LegalMovesResponse, JSONResponse]:
        """Moves and targets the participant may pick this round."""
        response = api_service.legal_moves(match_id, participant_id)
        if isinstance(response, ErrorResponse):
            return make_error_response(response)
        return response

    # =========================================================================
    # WebSocket Endpoint
    # =========================================================================

    @app.websocket("/api/v1/matches/{match_id}/ws")
    async def websocket_endpoint(websocket: WebSocket, match_id: str):
        """
        WebSocket for real-time play.

        Messages from server:
        - state_snapshot: Full match state (on connect and on every change)
        - commit_ack: A move_commit was accepted
        - pong: Reply to ping
        - error: Invalid message or rejected commit

        Messages from client:
        - move_commit: Commit a move
        - ping: Keep-alive
        """
        await websocket.accept()

        response = api_service.get_match(match_id)
        if isinstance(response, ErrorResponse):
            await websocket.send_json({
                "type": "error",
                "payload": response.model_dump(mode="json"),
            })
            await websocket.close(code=4404)
            return

        ws_connections.setdefault(match_id, []).append(websocket)

        try:
            await websocket.send_json(response.snapshot.model_dump(mode="json"))

            while True:
                data = await websocket.receive_text()
                try:
                    message = json.loads(data)
                except json.JSONDecodeError:
                    await websocket.send_json({
                        "type": "error",
                        "payload": {"error": "Invalid JSON", "error_code": ErrorCode.VALIDATION_ERROR.value},
                    })
                    continue

                kind = message.get("type") if isinstance(message, dict) else None
                if kind == "ping":
                    await websocket.send_json({"type": "pong"})
                elif kind == "move_commit":
                    await handle_ws_commit(websocket, match_id, message)
                else:
                    await websocket.send_json({
                        "type": "error",
                        "payload": {
                            "error": f"Unknown message type: {kind!r}",
                            "error_code": ErrorCode.VALIDATION_ERROR.value,
                        },
                    })

        except WebSocketDisconnect:
            logger.debug("WebSocket for match %s disconnected", match_id)
        finally:
            if match_id in ws_connections:
                if websocket in ws_connections[match_id]:
                    ws_connections[match_id].remove(websocket)

    async def handle_ws_commit(websocket: WebSocket, match_id: str, message: dict):
        try:
            commit = MoveCommitMessage.model_validate(message)
        except ValidationError as e:
            await websocket.send_json({
                "type": "error",
                "payload": ErrorResponse(
                    error="Invalid move_commit message",
                    error_code=ErrorCode.VALIDATION_ERROR,
                    details={"errors": [err["msg"] for err in e.errors()]},
                ).model_dump(mode="json"),
            })
            return

        response = api_service.commit_move(match_id, commit)
        if isinstance(response, ErrorResponse):
            await websocket.send_json({"type": "error", "payload": response.model_dump(mode="json")})
            return

        await websocket.send_json({
            "type": "commit_ack",
            "payload": {
                "round": response.round,
                "resolved": response.resolved,
                "waiting_on": response.waiting_on,
            },
        })
        if response.resolved:
            schedule_bots(match_id)

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="eggbattle",
            version=__version__,
            environment=EGGBATTLE_ENV,
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Egg Battle API",
            "version": __version__,
            "docs": "/api/docs",
            "health": "/health",
        }

    return app


# For running directly: uvicorn eggbattle.api.app:app
app = create_app()
