"""
Tests for bot move selection and legality.

Tests:
- Bots only pick legal commits
- The scripted opponent cures its egg first
- Seeds make choices reproducible
"""

import pytest

from ..bots import BotPolicy, FirstLegalPolicy, RandomPolicy, ScriptedOpponent, create_policy
from ..engine_core.rules import legal_commits, validate_commit
from ..engine_core.state import Move
from .conftest import give_egg


class TestBotLegality:
    """Tests that bots only select legal commits."""

    @pytest.mark.parametrize("policy", [ScriptedOpponent(seed=1), RandomPolicy(seed=1), FirstLegalPolicy()])
    def test_policies_pick_valid_commits(self, trio, policy):
        """Every decision passes the authority's validation."""
        for _ in range(20):
            legal = legal_commits(trio.state, "a")
            decision = policy.select_commit(trio.state, "a", legal)
            validate_commit(trio.state, decision.commit)

    def test_random_picks_from_legal(self, duel):
        bot = RandomPolicy(seed=42)
        legal = legal_commits(duel.state, "a")

        for _ in range(10):
            assert bot.select_commit(duel.state, "a", legal).commit in legal

    def test_first_legal_is_deterministic(self, duel):
        legal = legal_commits(duel.state, "a")
        decision = FirstLegalPolicy().select_commit(duel.state, "a", legal)

        assert decision.commit == legal[0]
        assert decision.commit.move == Move.ATTACK

    def test_decisions_report_options_weighed(self, duel):
        legal = legal_commits(duel.state, "a")

        assert RandomPolicy(seed=1).select_commit(duel.state, "a", legal).evaluated_commits == len(legal)
        assert ScriptedOpponent(seed=1).select_commit(duel.state, "a", legal).evaluated_commits == 4

    def test_no_legal_commits(self, duel):
        with pytest.raises(ValueError):
            ScriptedOpponent().select_commit(duel.state, "a", [])

    def test_guard_respected(self, duel):
        """A blocked Sausage is never picked, even while holding an egg."""
        give_egg(duel, "a")
        duel.state.participants["a"].move_history = [Move.SAUSAGE, Move.SAUSAGE]
        bot = ScriptedOpponent(seed=3)

        for _ in range(20):
            legal = legal_commits(duel.state, "a")
            assert bot.select_commit(duel.state, "a", legal).commit.move != Move.SAUSAGE


class TestScriptedOpponent:
    """Tests for the CPU opponent's behaviour."""

    def test_cures_own_egg(self, trio):
        give_egg(trio, "a")
        decision = ScriptedOpponent(seed=7).select_commit(trio.state, "a", legal_commits(trio.state, "a"))

        assert decision.commit.move == Move.SAUSAGE
        assert decision.commit.target_id is None

    def test_ignores_reflected_egg(self, duel):
        """A reflected egg cannot be cured, so no forced Sausage."""
        give_egg(duel, "a", reflected=True)
        bot = ScriptedOpponent(seed=0)

        moves = {
            bot.select_commit(duel.state, "a", legal_commits(duel.state, "a")).commit.move
            for _ in range(40)
        }
        assert moves != {Move.SAUSAGE}

    def test_targets_living_opponents(self, trio):
        trio.state.participants["c"].alive = False
        bot = ScriptedOpponent(seed=11)

        for _ in range(20):
            commit = bot.select_commit(trio.state, "a", legal_commits(trio.state, "a")).commit
            if commit.move in (Move.ATTACK, Move.EGG):
                assert commit.target_id == "b"
            else:
                assert commit.target_id is None

    def test_commits_for_current_round(self, duel):
        duel.commit_move("a", Move.BARRIER)
        duel.commit_move("b", Move.BARRIER)
        decision = ScriptedOpponent(seed=5).select_commit(duel.state, "b", legal_commits(duel.state, "b"))

        assert decision.commit.round == 2
        assert decision.commit.participant_id == "b"

    def test_same_seed_same_choices(self, trio):
        first, second = ScriptedOpponent(seed=99), ScriptedOpponent(seed=99)
        legal = legal_commits(trio.state, "b")

        picks_1 = [first.select_commit(trio.state, "b", legal).commit for _ in range(10)]
        picks_2 = [second.select_commit(trio.state, "b", legal).commit for _ in range(10)]

        assert picks_1 == picks_2


class TestPolicyFactory:
    """Tests for create_policy."""

    def test_known_policies(self):
        assert isinstance(create_policy("scripted", seed=1), ScriptedOpponent)
        assert isinstance(create_policy("random", seed=1), RandomPolicy)
        assert isinstance(create_policy("first_legal"), FirstLegalPolicy)

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            create_policy("genius")

    def test_policies_share_interface(self):
        assert issubclass(ScriptedOpponent, BotPolicy)
        assert ScriptedOpponent().get_name() == "ScriptedOpponent"
