"""
Tests for the command-line interface.
"""

import pytest

from ..cli import format_status, main


def scripted_input(monkeypatch, answers):
    """Feed answers to input(); EOF once they run out."""
    answers = iter(answers)

    def fake_input(prompt=""):
        try:
            return next(answers)
        except StopIteration:
            raise EOFError

    monkeypatch.setattr("builtins.input", fake_input)


class TestSimulate:
    """Tests for the simulate command."""

    def test_simulate_prints_log_and_result(self, capsys):
        assert main(["simulate", "--bots", "3", "--seed", "1"]) == 0

        out = capsys.readouterr().out
        assert out.startswith("Match start! Battle royale mode.")
        assert "--- Round 1 ---" in out
        assert "Result: " in out

    def test_simulate_is_reproducible(self, capsys):
        main(["simulate", "--bots", "4", "--seed", "9"])
        first = capsys.readouterr().out
        main(["simulate", "--bots", "4", "--seed", "9"])

        assert capsys.readouterr().out == first

    def test_simulate_round_limit(self, capsys):
        main(["simulate", "--bots", "2", "--policy", "first_legal", "--max-rounds", "1"])

        assert "Result: round_limit, winner: none" in capsys.readouterr().out

    def test_simulate_needs_two_bots(self, capsys):
        assert main(["simulate", "--bots", "1"]) == 1
        assert capsys.readouterr().out.startswith("Error:")

    def test_unknown_policy(self, capsys):
        assert main(["simulate", "--policy", "genius"]) == 1


class TestPlay:
    """Tests for the interactive play command."""

    def test_play_then_leave(self, monkeypatch, capsys):
        # Two Barriers, then end of input forfeits the match
        scripted_input(monkeypatch, ["4", "4"])

        assert main(["play", "--name", "Alice", "--bots", "1", "--seed", "3"]) == 0

        out = capsys.readouterr().out
        assert "Round 1" in out
        assert "Round 3" in out
        assert "Alice left the match." in out
        assert "Game set! Winner: CPU 1" in out

    def test_bad_choice_reprompts(self, monkeypatch, capsys):
        scripted_input(monkeypatch, ["9", "x"])

        main(["play", "--bots", "1", "--seed", "3"])

        assert "Pick a number between 1 and 4." in capsys.readouterr().out

    def test_no_command_prints_help(self, capsys):
        with pytest.raises(SystemExit):
            main([])


def test_format_status(duel):
    duel.leave("b")
    status = format_status(duel.state)

    assert "Alice" in status
    assert "HP 5/5" in status
    assert "(defeated)" in status.splitlines()[1]


def test_format_status_marks_bots():
    from ..session import SessionManager

    session = SessionManager().create_session(host_name="Alice", num_bots=1)
    host_line, bot_line = format_status(session.match).splitlines()

    assert "(cpu)" not in host_line
    assert "CPU 1" in bot_line and "(cpu)" in bot_line
