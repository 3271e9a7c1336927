"""
Match Controller - Authority and replica views of one match.

Exactly one MatchAuthority per match runs the resolver. Every other
process holds a MatchReplica that only applies authority snapshots and
forwards its local commits. Both share the MatchState data model and the
MatchView read/subscribe surface, not their control flow.

Participant lifecycle (authority):
    Alive(pending=None) -> CommittedWaiting(pending=X) -> Alive | Dead
Match lifecycle:
    IN_PROGRESS -> OVER (winner or draw)
"""

from __future__ import annotations
from typing import Any, Callable, Iterable
import logging
import uuid

from .state import DEFAULT_CONFIG, GameConfig, MatchPhase, MatchState, Move, Participant, ParticipantId
from .action import CommitResult, MoveCommit
from .errors import EggBattleError, InvalidParticipant, MalformedSnapshot, RoundClosed
from .events import EventBus, EventKind, MatchEvent, Subscriber
from .resolver import RoundOutcome, RoundResolver
from .rules import validate_commit
from .snapshot import MembershipMessage, MoveCommitMessage, snapshot, state_from_snapshot

logger = logging.getLogger(__name__)


class MatchView:
    """
    Read-only access to a match plus event subscription.

    Renderers only ever need this interface, whether they sit next to the
    authority or behind a replica.
    """

    def __init__(self, state: MatchState | None = None):
        self.state = state
        self.events = EventBus()

    @property
    def match_id(self) -> str | None:
        return self.state.match_id if self.state else None

    @property
    def over(self) -> bool:
        return bool(self.state and self.state.over)

    def subscribe(self, callback: Subscriber, kinds: set[EventKind] | None = None) -> Callable[[], None]:
        """Subscribe to match events; returns an unsubscribe function."""
        return self.events.subscribe(callback, kinds)

    def snapshot(self) -> dict[str, Any]:
        if self.state is None:
            raise MalformedSnapshot("No trusted baseline - waiting for a full snapshot")
        return snapshot(self.state)

    def _publish_log_lines(self, lines: Iterable[str]):
        for line in lines:
            self.events.publish(MatchEvent(
                kind=EventKind.LOG_LINE_APPENDED,
                match_id=self.state.match_id,
                round=self.state.round,
                line=line,
            ))

    def _publish(self, kind: EventKind, **data):
        self.events.publish(MatchEvent(
            kind=kind,
            match_id=self.state.match_id,
            round=self.state.round,
            snapshot=self.snapshot(),
            data=data,
        ))


class MatchAuthority(MatchView):
    """
    The canonical match.

    Usage:
        authority = MatchAuthority.create([("p1", "Alice"), ("p2", "Bob")])
        authority.subscribe(render)
        authority.commit_move("p1", Move.ATTACK, "p2")
        authority.commit_move("p2", Move.SAUSAGE)   # resolves the round
    """

    def __init__(
        self,
        match_id: str | None = None,
        config: GameConfig = DEFAULT_CONFIG,
        resolver: RoundResolver | None = None,
    ):
        super().__init__(MatchState(match_id=match_id or uuid.uuid4().hex[:12], config=config))
        self.config = config
        self.resolver = resolver or RoundResolver(config=config)
        self.started = False
        self._pending_lines: list[str] = []

    @classmethod
    def create(
        cls,
        participants: Iterable[tuple[str, str] | tuple[str, str, bool]],
        match_id: str | None = None,
        config: GameConfig = DEFAULT_CONFIG,
    ) -> MatchAuthority:
        """Build and start a match from (id, name[, is_bot]) entries."""
        authority = cls(match_id=match_id, config=config)
        for entry in participants:
            authority.add_participant(*entry)
        authority.start()
        return authority

    # =========================================================================
    # Setup and membership
    # =========================================================================

    def add_participant(self, participant_id: str, display_name: str, is_bot: bool = False) -> Participant:
        """Seat a participant at full health."""
        pid = ParticipantId(participant_id)
        if pid in self.state.participants:
            raise InvalidParticipant(f"Participant {participant_id} is already in the match", participant_id=pid)
        participant = Participant(
            participant_id=pid,
            display_name=display_name,
            health=self.config.max_hp,
            is_bot=is_bot,
        )
        self.state.participants[pid] = participant
        return participant

    def start(self):
        """Open round 1 and publish the starting snapshot."""
        if self.started:
            raise RoundClosed("Match already started", round=self.state.round)
        if len(self.state.participants) < self.config.min_players:
            raise ValueError(
                f"Need at least {self.config.min_players} participants, "
                f"got {len(self.state.participants)}"
            )
        self.started = True
        self._log("Match start! Battle royale mode.")
        logger.info(
            "Match %s started with %d participants",
            self.state.match_id,
            len(self.state.participants),
        )
        self._flush(EventKind.MATCH_STARTED)

    def join(self, participant_id: str, display_name: str, is_bot: bool = False) -> Participant:
        """
        Fold a late joiner into the living set.

        Match state is not reset; the joiner starts at full health and the
        current round now also waits on them.
        """
        if self.state.over:
            raise RoundClosed("Match is over - cannot join", round=self.state.round)
        participant = self.add_participant(participant_id, display_name, is_bot)
        self._log(f"{display_name} joined the match.")
        logger.info("Match %s: %s joined as %s", self.state.match_id, display_name, participant_id)
        self._flush(EventKind.PARTICIPANT_JOINED, participant_id=participant.participant_id)
        return participant

    def leave(self, participant_id: str) -> CommitResult | None:
        """
        Remove a participant from play (disconnect or forfeit).

        The leaver is permanently non-living. Leaving may end the match, or
        complete the round if everyone else had already committed.
        """
        participant = self.state.get_participant(participant_id)
        if participant is None:
            raise InvalidParticipant(f"Unknown participant: {participant_id}", participant_id=participant_id)
        if not participant.alive or self.state.over:
            return None

        participant.alive = False
        participant.clear_pending()
        self._log(f"{participant.display_name} left the match.")
        logger.info("Match %s: %s left", self.state.match_id, participant_id)

        self.check_termination()
        self._flush(EventKind.PARTICIPANT_LEFT, participant_id=participant.participant_id)
        if self.state.over:
            self._publish(EventKind.MATCH_OVER, winner_id=self.state.winner_id)
            return None

        if self.state.all_committed():
            outcome = self._resolve()
            return CommitResult(accepted=True, round=outcome.round, resolved=True, outcome=outcome)
        return None

    # =========================================================================
    # Commit protocol
    # =========================================================================

    def commit_move(
        self,
        participant_id: str,
        move: Move | str,
        target_id: str | None = None,
        round: int | None = None,
    ) -> CommitResult:
        """Commit a move; resolves the round when it was the last one missing."""
        commit = MoveCommit(
            participant_id=ParticipantId(participant_id),
            move=Move(move),
            target_id=ParticipantId(target_id) if target_id is not None else None,
            round=round,
        )
        return self.submit(commit)

    def submit(self, commit: MoveCommit) -> CommitResult:
        """Validate and record a commit."""
        try:
            if not self.started:
                raise RoundClosed("Match has not started", round=self.state.round)
            actor = validate_commit(self.state, commit)
        except EggBattleError as e:
            logger.warning("Match %s: rejected commit %s: %s", self.state.match_id, commit, e)
            raise

        actor.pending_move = commit.move
        actor.pending_target = commit.target_id
        round_number = self.state.round

        if self.state.all_committed():
            outcome = self._resolve()
            return CommitResult(accepted=True, round=round_number, resolved=True, outcome=outcome)

        return CommitResult(
            accepted=True,
            round=round_number,
            waiting_on=[p.participant_id for p in self.state.living() if not p.has_committed],
        )

    def handle_message(self, message: MoveCommitMessage | MembershipMessage | dict) -> CommitResult | Participant | None:
        """
        Entry point for remote traffic.

        Remote commits go through the exact same validation as local ones.
        """
        if isinstance(message, dict):
            kind = message.get("type")
            if kind == "move_commit":
                message = MoveCommitMessage.model_validate(message)
            elif kind in ("join", "leave"):
                message = MembershipMessage.model_validate(message)
            else:
                raise ValueError(f"Unknown message type: {kind!r}")

        if isinstance(message, MoveCommitMessage):
            return self.submit(message.to_commit())
        if message.type == "join":
            return self.join(message.participant_id, message.display_name)
        return self.leave(message.participant_id)

    # =========================================================================
    # Resolution
    # =========================================================================

    def _resolve(self) -> RoundOutcome:
        """Run the resolver on a snapshot and swap the result in atomically."""
        living = self.state.living()
        commits = {
            p.participant_id: MoveCommit(p.participant_id, p.pending_move, p.pending_target, self.state.round)
            for p in living
        }

        outcome = self.resolver.resolve(
            [p.clone() for p in living],
            commits,
            round_number=self.state.round,
        )

        for pid, record in outcome.participants.items():
            record.clear_pending()
            self.state.participants[pid] = record
        for line in outcome.log:
            self._log(line)

        self.state.round += 1
        self.check_termination()
        logger.info(
            "Match %s: round %d resolved, %d alive",
            self.state.match_id,
            outcome.round,
            len(self.state.living()),
        )

        self._flush(EventKind.ROUND_RESOLVED, resolved_round=outcome.round)
        if self.state.over:
            self._publish(EventKind.MATCH_OVER, winner_id=self.state.winner_id)
        return outcome

    def check_termination(self) -> bool:
        """End the match when at most one participant is alive."""
        if self.state.over:
            return True

        survivors = self.state.living()
        if len(survivors) > 1:
            return False

        self.state.phase = MatchPhase.OVER
        if survivors:
            self.state.winner_id = survivors[0].participant_id
            self._log(f"Game set! Winner: {survivors[0].display_name}")
        else:
            self.state.winner_id = None
            self._log("Game set! No one survived (draw).")
        logger.info("Match %s over, winner=%s", self.state.match_id, self.state.winner_id)
        return True

    # =========================================================================
    # Event helpers
    # =========================================================================

    def _log(self, line: str):
        self.state.event_log.append(line)
        self._pending_lines.append(line)

    def _flush(self, kind: EventKind, **data):
        """Publish queued log lines, then the state-changing event."""
        lines, self._pending_lines = self._pending_lines, []
        self._publish_log_lines(lines)
        self._publish(kind, **data)


class MatchReplica(MatchView):
    """
    A non-authoritative copy of a match.

    Applies full snapshots from the authority and forwards local commits
    through the injected send callable. Never resolves a round.

    Usage:
        replica = MatchReplica("p2", send=transport.send)
        replica.apply_snapshot(message)
        replica.commit_move(Move.EGG, "p1")
    """

    def __init__(
        self,
        local_participant_id: str | None = None,
        send: Callable[[MoveCommitMessage], None] | None = None,
        request_resync: Callable[[], None] | None = None,
        config: GameConfig = DEFAULT_CONFIG,
    ):
        super().__init__(None)
        self.local_participant_id = ParticipantId(local_participant_id) if local_participant_id else None
        self.config = config
        self._send = send
        self._request_resync = request_resync
        self.needs_resync = True

    def apply_snapshot(self, data: Any) -> MatchState:
        """
        Replace local state with an authority snapshot.

        A malformed snapshot drops the local baseline entirely and asks for
        a full resync; it is never partially merged.
        """
        previous = self.state
        try:
            new_state = state_from_snapshot(data, self.config)
        except MalformedSnapshot:
            self.state = None
            self.needs_resync = True
            logger.warning("Replica %s: malformed snapshot, resync required", self.local_participant_id)
            if self._request_resync is not None:
                self._request_resync()
            raise

        self.state = new_state
        self.needs_resync = False

        if previous is not None and previous.match_id == new_state.match_id:
            old_log = previous.event_log
            if new_state.event_log[:len(old_log)] == old_log:
                new_lines = new_state.event_log[len(old_log):]
            else:
                new_lines = new_state.event_log
        else:
            new_lines = new_state.event_log
        self._publish_log_lines(new_lines)

        if previous is None or previous.match_id != new_state.match_id:
            self._publish(EventKind.MATCH_STARTED)
        elif new_state.round > previous.round:
            self._publish(EventKind.ROUND_RESOLVED, resolved_round=new_state.round - 1)
        if new_state.over and (previous is None or not previous.over):
            self._publish(EventKind.MATCH_OVER, winner_id=new_state.winner_id)
        return new_state

    def commit_move(
        self,
        move: Move | str,
        target_id: str | None = None,
        participant_id: str | None = None,
    ) -> MoveCommitMessage:
        """
        Pre-validate a local commit and forward it to the authority.

        The authority re-validates; this only spares a round trip.
        """
        if self.state is None or self.needs_resync:
            raise MalformedSnapshot("Replica has no trusted baseline - waiting for a full snapshot")

        pid = participant_id or self.local_participant_id
        if pid is None:
            raise InvalidParticipant("Replica has no local participant to commit for")

        commit = MoveCommit(
            participant_id=ParticipantId(pid),
            move=Move(move),
            target_id=ParticipantId(target_id) if target_id is not None else None,
            round=self.state.round,
        )
        validate_commit(self.state, commit)

        message = MoveCommitMessage.from_commit(commit)
        if self._send is not None:
            self._send(message)
        return message
