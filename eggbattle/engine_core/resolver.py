"""
Round Resolver - Turns a full set of simultaneous commits into one round.

The resolver is a pure function of (living participants, commits). It
clones the participants before touching anything, so every decision is
made against start-of-round state and the caller's records are never
mutated. The authority swaps the returned records in atomically.

Phase order:
1. Snapshot   - who held an egg at round start; reveal every move
2. Self       - Sausage cures a pre-existing egg
3. Incoming   - Attack/Egg interactions are tallied, not applied
4. Apply      - damage, then egg stacking / instant death
5. Instant    - death check; a decided match skips the timer phase
6. Timer      - eggs tick down; explosions kill
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping
import logging

from .state import DEFAULT_CONFIG, GameConfig, Move, Participant, ParticipantId, TARGETED_MOVES
from .action import MoveCommit
from .status import apply_egg, tick_eggs, try_cure

logger = logging.getLogger(__name__)


class DeathReason(str, Enum):
    """Why a participant died this round."""
    INSTANT = "Instant"
    TIMER = "Timer"


@dataclass
class RoundOutcome:
    """
    Everything a resolved round produced.

    participants holds the post-round records for everyone who was alive
    at round start. The per-participant tallies are kept for observers and
    tests; the records already have them applied.
    """
    round: int
    participants: dict[ParticipantId, Participant] = field(default_factory=dict)

    # Damage received, as a negative delta (0 when untouched)
    health_deltas: dict[ParticipantId, int] = field(default_factory=dict)
    # Eggs received: curable ones and barrier-reflected ones
    new_effects: dict[ParticipantId, int] = field(default_factory=dict)
    reflected_effects: dict[ParticipantId, int] = field(default_factory=dict)

    self_cures: list[ParticipantId] = field(default_factory=list)
    deaths: list[tuple[ParticipantId, DeathReason]] = field(default_factory=list)
    log: list[str] = field(default_factory=list)

    # True when at most one participant is left standing
    ended: bool = False

    @property
    def survivors(self) -> list[ParticipantId]:
        return [pid for pid, p in self.participants.items() if p.alive]

    def died(self, participant_id: str) -> DeathReason | None:
        for pid, reason in self.deaths:
            if pid == participant_id:
                return reason
        return None


@dataclass
class RoundResolver:
    """
    Resolves one round of simultaneous moves.

    Stateless between rounds - the only input is the snapshot handed to
    resolve().
    """
    config: GameConfig = DEFAULT_CONFIG

    def resolve(
        self,
        participants: Iterable[Participant],
        commits: Mapping[ParticipantId, MoveCommit],
        round_number: int = 1,
    ) -> RoundOutcome:
        """
        Resolve a round.

        Args:
            participants: Living participants at round start (not mutated)
            commits: One commit per living participant, keyed by id
            round_number: Used for the log banner only

        Returns:
            RoundOutcome with post-round records and the ordered log
        """
        roster = {p.participant_id: p.clone() for p in participants if p.alive}
        missing = [pid for pid in roster if pid not in commits]
        if missing:
            raise ValueError(f"Cannot resolve round {round_number}: no commit from {missing}")

        outcome = RoundOutcome(
            round=round_number,
            participants=roster,
            health_deltas={pid: 0 for pid in roster},
            new_effects={pid: 0 for pid in roster},
            reflected_effects={pid: 0 for pid in roster},
        )

        had_egg = self._snapshot_phase(roster, commits, outcome)
        self._self_action_phase(roster, commits, had_egg, outcome)
        self._interaction_phase(roster, commits, had_egg, outcome)
        self._apply_phase(roster, had_egg, outcome)

        if not self._death_check(roster, outcome, DeathReason.INSTANT):
            self._timer_phase(roster, outcome)

        logger.debug(
            "Round %d resolved: deltas=%s deaths=%s survivors=%s",
            round_number,
            outcome.health_deltas,
            [(pid, reason.value) for pid, reason in outcome.deaths],
            outcome.survivors,
        )
        return outcome

    # =========================================================================
    # Phases
    # =========================================================================

    def _snapshot_phase(
        self,
        roster: dict[ParticipantId, Participant],
        commits: Mapping[ParticipantId, MoveCommit],
        outcome: RoundOutcome,
    ) -> dict[ParticipantId, bool]:
        """Record start-of-round egg ownership and reveal every move."""
        outcome.log.append(f"--- Round {outcome.round} ---")
        had_egg = {}
        for pid, p in roster.items():
            commit = commits[pid]
            had_egg[pid] = p.has_egg
            p.move_history.append(commit.move)

            line = f"{p.display_name}: [{commit.move.value.upper()}]"
            target = roster.get(commit.target_id) if commit.target_id is not None else None
            if target is not None:
                line += f" -> {target.display_name}"
            outcome.log.append(line)
        return had_egg

    def _self_action_phase(
        self,
        roster: dict[ParticipantId, Participant],
        commits: Mapping[ParticipantId, MoveCommit],
        had_egg: dict[ParticipantId, bool],
        outcome: RoundOutcome,
    ):
        for pid, p in roster.items():
            if commits[pid].move != Move.SAUSAGE or not had_egg[pid]:
                continue
            if try_cure(p, curable_only=True, config=self.config):
                outcome.self_cures.append(pid)
                outcome.log.append(f"{p.display_name} cured their egg!")

    def _interaction_phase(
        self,
        roster: dict[ParticipantId, Participant],
        commits: Mapping[ParticipantId, MoveCommit],
        had_egg: dict[ParticipantId, bool],
        outcome: RoundOutcome,
    ):
        """
        Tally every incoming Attack and Egg.

        Reflect decisions read had_egg, never the live records, so a cure
        earlier in this round cannot flip a reflect.
        """
        for pid, p in roster.items():
            commit = commits[pid]
            if commit.move in TARGETED_MOVES and (
                commit.target_id is None or commit.target_id == pid or commit.target_id not in roster
            ):
                outcome.log.append(f"{p.display_name}'s {commit.move.value} has no target.")

        for def_id, defender in roster.items():
            defense = commits[def_id].move

            for atk_id, attacker in roster.items():
                commit = commits[atk_id]
                if atk_id == def_id or commit.target_id != def_id:
                    continue

                if commit.move == Move.ATTACK:
                    if defense == Move.SAUSAGE and not had_egg[def_id]:
                        outcome.log.append(
                            f"{defender.display_name} reflects {attacker.display_name}'s attack!"
                        )
                        outcome.health_deltas[atk_id] -= 1
                    elif defense == Move.BARRIER:
                        outcome.log.append(
                            f"{defender.display_name}'s barrier fails against "
                            f"{attacker.display_name}'s attack!"
                        )
                        outcome.health_deltas[def_id] -= 1
                    else:
                        outcome.log.append(f"{attacker.display_name} attacks {defender.display_name}!")
                        outcome.health_deltas[def_id] -= 1

                elif commit.move == Move.EGG:
                    if defense == Move.BARRIER:
                        outcome.log.append(
                            f"{defender.display_name} reflects {attacker.display_name}'s egg! (uncurable)"
                        )
                        outcome.reflected_effects[atk_id] += 1
                    else:
                        outcome.log.append(
                            f"{attacker.display_name} plants an egg on {defender.display_name}!"
                        )
                        outcome.new_effects[def_id] += 1

    def _apply_phase(
        self,
        roster: dict[ParticipantId, Participant],
        had_egg: dict[ParticipantId, bool],
        outcome: RoundOutcome,
    ):
        for pid, p in roster.items():
            p.health = max(0, p.health + outcome.health_deltas[pid])

            new_eggs = outcome.new_effects[pid]
            reflected_eggs = outcome.reflected_effects[pid]
            incoming = new_eggs + reflected_eggs

            if incoming >= 2:
                outcome.log.append(f"{p.display_name} was hit by multiple eggs! Instant death!")
                p.health = 0
            elif incoming >= 1 and had_egg[pid] and p.has_egg:
                outcome.log.append(f"{p.display_name} got a double egg! Instant death!")
                p.health = 0
            else:
                for _ in range(new_eggs):
                    apply_egg(p, reflected=False, config=self.config)
                for _ in range(reflected_eggs):
                    apply_egg(p, reflected=True, config=self.config)

    def _death_check(
        self,
        roster: dict[ParticipantId, Participant],
        outcome: RoundOutcome,
        reason: DeathReason,
    ) -> bool:
        """Mark the fallen; returns True once the match is decided."""
        for pid, p in roster.items():
            if p.alive and p.health <= 0:
                p.alive = False
                outcome.deaths.append((pid, reason))
                outcome.log.append(f"{p.display_name} defeated! ({reason.value})")

        outcome.ended = len(outcome.survivors) <= 1
        return outcome.ended

    def _timer_phase(self, roster: dict[ParticipantId, Participant], outcome: RoundOutcome):
        exploded = []
        for pid, p in roster.items():
            if p.alive and tick_eggs(p):
                exploded.append(pid)
                outcome.log.append(f"{p.display_name}'s egg exploded!")

        for pid in exploded:
            outcome.deaths.append((pid, DeathReason.TIMER))
            outcome.log.append(f"{roster[pid].display_name} defeated! ({DeathReason.TIMER.value})")

        outcome.ended = len(outcome.survivors) <= 1


def resolve_round(
    participants: Iterable[Participant],
    commits: Mapping[ParticipantId, MoveCommit],
    round_number: int = 1,
    config: GameConfig = DEFAULT_CONFIG,
) -> RoundOutcome:
    """
    Convenience function to resolve a round.

    Creates a RoundResolver and resolves.
    """
    return RoundResolver(config=config).resolve(participants, commits, round_number)
