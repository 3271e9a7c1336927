"""
Tests for round resolution.

Tests:
- Attack / Sausage / Barrier / Egg interactions
- Egg stacking and instant death
- Timer explosions
- Phase ordering and termination before the timer phase
- The resolver never mutates its inputs
"""

import pytest

from ..engine_core.action import MoveCommit
from ..engine_core.resolver import DeathReason, RoundResolver, resolve_round
from ..engine_core.state import EggEffect, Move
from .conftest import make_participant


def commits_of(*commits: MoveCommit) -> dict:
    return {c.participant_id: c for c in commits}


class TestAttackInteractions:
    """Tests for Attack against each defense."""

    def test_plain_attack(self):
        """Attack against Attack: both take 1."""
        a, b = make_participant("a"), make_participant("b")
        outcome = resolve_round([a, b], commits_of(
            MoveCommit.attack("a", "b"),
            MoveCommit.attack("b", "a"),
        ))

        assert outcome.health_deltas == {"a": -1, "b": -1}
        assert outcome.participants["a"].health == 4
        assert outcome.participants["b"].health == 4

    def test_scenario_reflect(self):
        """Sausage with no egg reflects the attack onto the attacker."""
        a, b = make_participant("a", "P1"), make_participant("b", "P2")
        outcome = resolve_round([a, b], commits_of(
            MoveCommit.attack("a", "b"),
            MoveCommit.sausage("b"),
        ))

        assert outcome.participants["a"].health == 4
        assert outcome.participants["b"].health == 5
        assert outcome.new_effects == {"a": 0, "b": 0}
        assert outcome.reflected_effects == {"a": 0, "b": 0}
        assert "P2 reflects P1's attack!" in outcome.log

    def test_sausage_with_egg_cures_but_takes_damage(self):
        """Sausage while holding an egg cures it; the attack still lands."""
        a = make_participant("a")
        b = make_participant("b", eggs=[EggEffect(1)])
        outcome = resolve_round([a, b], commits_of(
            MoveCommit.attack("a", "b"),
            MoveCommit.sausage("b"),
        ))

        assert outcome.self_cures == ["b"]
        assert outcome.participants["b"].status_effects == []
        assert outcome.participants["b"].health == 4
        assert outcome.participants["a"].health == 5

    def test_barrier_does_not_stop_attack(self):
        """Barrier fails against Attack."""
        a, b = make_participant("a", "Alice"), make_participant("b", "Bob")
        outcome = resolve_round([a, b], commits_of(
            MoveCommit.attack("a", "b"),
            MoveCommit.barrier("b"),
        ))

        assert outcome.participants["b"].health == 4
        assert "Bob's barrier fails against Alice's attack!" in outcome.log

    def test_damage_accumulates_from_several_attackers(self):
        """Two attackers on one defender deal 2."""
        a, b, c = make_participant("a"), make_participant("b"), make_participant("c")
        outcome = resolve_round([a, b, c], commits_of(
            MoveCommit.attack("a", "c"),
            MoveCommit.attack("b", "c"),
            MoveCommit.barrier("c"),
        ))

        assert outcome.health_deltas["c"] == -2
        assert outcome.participants["c"].health == 3

    def test_health_loss_matches_landed_attacks(self):
        """Total health lost equals the attacks that landed or reflected."""
        roster = [make_participant(pid) for pid in ("a", "b", "c", "d")]
        outcome = resolve_round(roster, commits_of(
            MoveCommit.attack("a", "b"),   # reflected onto a
            MoveCommit.sausage("b"),
            MoveCommit.attack("c", "d"),   # lands on d
            MoveCommit.attack("d", "a"),   # lands on a
        ))

        lost = sum(5 - p.health for p in outcome.participants.values())
        assert lost == 3
        assert outcome.participants["a"].health == 3
        assert outcome.participants["b"].health == 5

    def test_health_floors_at_zero(self):
        """Damage never pushes health below 0."""
        a = make_participant("a", health=1)
        b, c = make_participant("b"), make_participant("c")
        outcome = resolve_round([a, b, c], commits_of(
            MoveCommit.barrier("a"),
            MoveCommit.attack("b", "a"),
            MoveCommit.attack("c", "a"),
        ))

        assert outcome.participants["a"].health == 0
        assert outcome.health_deltas["a"] == -2
        assert outcome.died("a") == DeathReason.INSTANT


class TestEggInteractions:
    """Tests for Egg and the stacking rules."""

    def test_egg_lands(self):
        """Egg against a non-Barrier plants a curable egg."""
        a, b = make_participant("a"), make_participant("b")
        outcome = resolve_round([a, b], commits_of(
            MoveCommit.egg("a", "b"),
            MoveCommit.attack("b", "a"),
        ))

        eggs = outcome.participants["b"].status_effects
        assert outcome.new_effects["b"] == 1
        # Applied at 2, ticked once in the timer phase
        assert eggs == [EggEffect(turns_remaining=1, reflected=False)]

    def test_egg_against_sausage_lands(self):
        """Sausage does not stop an Egg, and the fresh egg is not cured."""
        a, b = make_participant("a"), make_participant("b")
        outcome = resolve_round([a, b], commits_of(
            MoveCommit.egg("a", "b"),
            MoveCommit.sausage("b"),
        ))

        assert outcome.self_cures == []
        assert len(outcome.participants["b"].status_effects) == 1

    def test_barrier_reflects_egg(self):
        """Barrier sends the egg back as an uncurable egg."""
        a, b = make_participant("a", "Alice"), make_participant("b", "Bob")
        outcome = resolve_round([a, b], commits_of(
            MoveCommit.egg("a", "b"),
            MoveCommit.barrier("b"),
        ))

        assert outcome.reflected_effects["a"] == 1
        assert outcome.participants["a"].status_effects[0].reflected is True
        assert outcome.participants["b"].status_effects == []
        assert "Bob reflects Alice's egg! (uncurable)" in outcome.log

    def test_scenario_barrier_reflect_keeps_original_egg(self):
        """Holding an egg and using Barrier: own egg stays, the new one bounces."""
        a = make_participant("a", eggs=[EggEffect(1)])
        b = make_participant("b")
        outcome = resolve_round([a, b], commits_of(
            MoveCommit.barrier("a"),
            MoveCommit.egg("b", "a"),
        ))

        a_after, b_after = outcome.participants["a"], outcome.participants["b"]
        assert a_after.alive and b_after.alive
        assert a_after.status_effects == [EggEffect(turns_remaining=0)]
        assert b_after.status_effects == [EggEffect(turns_remaining=1, reflected=True)]

    def test_scenario_double_egg(self):
        """An egg landing on a participant who already holds one kills."""
        a = make_participant("a", "P1", eggs=[EggEffect(1)])
        b = make_participant("b", "P2")
        outcome = resolve_round([a, b], commits_of(
            MoveCommit.attack("a", "b"),
            MoveCommit.egg("b", "a"),
        ))

        assert outcome.participants["a"].health == 0
        assert outcome.died("a") == DeathReason.INSTANT
        assert "P1 got a double egg! Instant death!" in outcome.log
        assert outcome.ended

    def test_multiple_eggs_kill(self):
        """Two eggs arriving at once kill even without an earlier egg."""
        a, b, c = make_participant("a"), make_participant("b"), make_participant("c", "Carol")
        outcome = resolve_round([a, b, c], commits_of(
            MoveCommit.egg("a", "c"),
            MoveCommit.egg("b", "c"),
            MoveCommit.attack("c", "a"),
        ))

        assert outcome.died("c") == DeathReason.INSTANT
        assert "Carol was hit by multiple eggs! Instant death!" in outcome.log

    def test_reflected_and_direct_eggs_stack(self):
        """A reflected egg plus a direct egg in one round kill."""
        a, b, c = make_participant("a", "Alice"), make_participant("b"), make_participant("c")
        outcome = resolve_round([a, b, c], commits_of(
            MoveCommit.egg("a", "b"),
            MoveCommit.barrier("b"),
            MoveCommit.egg("c", "a"),
        ))

        assert outcome.reflected_effects["a"] == 1
        assert outcome.new_effects["a"] == 1
        assert outcome.died("a") == DeathReason.INSTANT
        assert "Alice was hit by multiple eggs! Instant death!" in outcome.log
        assert outcome.participants["a"].status_effects == []
        assert not outcome.ended

    def test_reflected_egg_onto_holder_kills(self):
        """Throwing into a Barrier while holding an egg is a double egg."""
        a = make_participant("a", "Alice", eggs=[EggEffect(1)])
        b = make_participant("b")
        outcome = resolve_round([a, b], commits_of(
            MoveCommit.egg("a", "b"),
            MoveCommit.barrier("b"),
        ))

        assert outcome.died("a") == DeathReason.INSTANT
        assert "Alice got a double egg! Instant death!" in outcome.log
        assert outcome.participants["b"].status_effects == []
        assert outcome.ended

    def test_egg_after_cure_is_applied_normally(self):
        """Curing the old egg this round means a new egg just lands."""
        a = make_participant("a", eggs=[EggEffect(1)])
        b = make_participant("b")
        outcome = resolve_round([a, b], commits_of(
            MoveCommit.sausage("a"),
            MoveCommit.egg("b", "a"),
        ))

        a_after = outcome.participants["a"]
        assert outcome.self_cures == ["a"]
        assert a_after.alive
        assert a_after.status_effects == [EggEffect(turns_remaining=1)]

    def test_reflected_egg_is_not_cured(self):
        """Sausage cannot remove a reflected egg; it still blocks the reflect."""
        a = make_participant("a", eggs=[EggEffect(1, reflected=True)])
        b = make_participant("b")
        outcome = resolve_round([a, b], commits_of(
            MoveCommit.sausage("a"),
            MoveCommit.attack("b", "a"),
        ))

        assert outcome.self_cures == []
        # had an egg at round start, so no reflect
        assert outcome.participants["a"].health == 4
        assert outcome.participants["b"].health == 5


class TestTimerPhase:
    """Tests for explosions."""

    def test_scenario_explosion(self):
        """An egg at 0 with no cure explodes at the end of the round."""
        a = make_participant("a", "P1", eggs=[EggEffect(0)])
        b, c = make_participant("b"), make_participant("c")
        outcome = resolve_round([a, b, c], commits_of(
            MoveCommit.barrier("a"),
            MoveCommit.barrier("b"),
            MoveCommit.barrier("c"),
        ))

        a_after = outcome.participants["a"]
        assert a_after.health == 0
        assert not a_after.alive
        assert outcome.deaths == [("a", DeathReason.TIMER)]
        assert outcome.log[-2:] == ["P1's egg exploded!", "P1 defeated! (Timer)"]
        assert not outcome.ended

    def test_cure_prevents_explosion(self):
        a = make_participant("a", eggs=[EggEffect(0)])
        b = make_participant("b")
        outcome = resolve_round([a, b], commits_of(
            MoveCommit.sausage("a"),
            MoveCommit.barrier("b"),
        ))

        assert outcome.participants["a"].alive
        assert outcome.deaths == []

    def test_simultaneous_explosions_draw(self):
        """Both exploding leaves no survivor."""
        a = make_participant("a", eggs=[EggEffect(0, reflected=True)])
        b = make_participant("b", eggs=[EggEffect(0, reflected=True)])
        outcome = resolve_round([a, b], commits_of(
            MoveCommit.barrier("a"),
            MoveCommit.barrier("b"),
        ))

        assert outcome.survivors == []
        assert outcome.ended


class TestPhaseOrder:
    """Tests for ordering guarantees."""

    def test_scenario_termination_before_timer(self):
        """Two instant deaths decide the match; the survivor's egg never ticks."""
        a = make_participant("a", eggs=[EggEffect(1)])
        b = make_participant("b", eggs=[EggEffect(1)])
        c = make_participant("c", eggs=[EggEffect(0)])
        outcome = resolve_round([a, b, c], commits_of(
            MoveCommit.egg("a", "b"),
            MoveCommit.attack("b", "c"),
            MoveCommit.egg("c", "a"),
        ))

        assert outcome.died("a") == DeathReason.INSTANT
        assert outcome.died("b") == DeathReason.INSTANT
        assert outcome.survivors == ["c"]
        assert outcome.ended
        # Timer phase skipped: c's egg is still at 0 and c is alive
        assert outcome.participants["c"].status_effects == [EggEffect(0)]
        assert outcome.participants["c"].health == 4

    def test_log_order(self):
        """Banner, reveals, interactions, then deaths."""
        a, b = make_participant("a", "Alice"), make_participant("b", "Bob")
        outcome = resolve_round([a, b], commits_of(
            MoveCommit.attack("a", "b"),
            MoveCommit.barrier("b"),
        ), round_number=3)

        assert outcome.log == [
            "--- Round 3 ---",
            "Alice: [ATTACK] -> Bob",
            "Bob: [BARRIER]",
            "Bob's barrier fails against Alice's attack!",
        ]

    def test_moves_recorded_in_history(self):
        a, b = make_participant("a"), make_participant("b")
        outcome = resolve_round([a, b], commits_of(
            MoveCommit.sausage("a"),
            MoveCommit.barrier("b"),
        ))

        assert outcome.participants["a"].move_history == [Move.SAUSAGE]
        assert outcome.participants["b"].move_history == [Move.BARRIER]

    def test_missing_target_is_logged(self):
        a, b = make_participant("a", "Alice"), make_participant("b")
        outcome = resolve_round([a, b], commits_of(
            MoveCommit(a.participant_id, Move.EGG, None),
            MoveCommit.barrier("b"),
        ))

        assert "Alice's egg has no target." in outcome.log
        assert outcome.participants["b"].status_effects == []

    def test_self_target_is_logged(self):
        a, b = make_participant("a", "Alice"), make_participant("b")
        outcome = resolve_round([a, b], commits_of(
            MoveCommit.egg("a", "a"),
            MoveCommit.barrier("b"),
        ))

        assert "Alice's egg has no target." in outcome.log
        assert outcome.participants["a"].status_effects == []
        assert outcome.participants["a"].health == 5


class TestPurity:
    """Tests that resolution works on copies."""

    def test_inputs_not_mutated(self):
        a = make_participant("a", eggs=[EggEffect(1)])
        b = make_participant("b")
        resolve_round([a, b], commits_of(
            MoveCommit.sausage("a"),
            MoveCommit.attack("b", "a"),
        ))

        assert a.health == 5
        assert a.status_effects == [EggEffect(1)]
        assert a.move_history == []

    def test_missing_commit_rejected(self):
        a, b = make_participant("a"), make_participant("b")

        with pytest.raises(ValueError):
            RoundResolver().resolve([a, b], commits_of(MoveCommit.barrier("a")))

    def test_dead_participants_ignored(self):
        a, b, c = make_participant("a"), make_participant("b"), make_participant("c")
        c.alive = False
        outcome = resolve_round([a, b, c], commits_of(
            MoveCommit.barrier("a"),
            MoveCommit.barrier("b"),
        ))

        assert set(outcome.participants) == {"a", "b"}
