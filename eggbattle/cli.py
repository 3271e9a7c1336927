"""
Egg Battle CLI - Command-line interface for the engine.

Usage:
    eggbattle play [--name NAME] [--bots N] [--seed S]    Play against bots
    eggbattle simulate [--bots N] [--seed S]              Bots-only match
    eggbattle serve [--host H] [--port P]                 Run the API server
"""

import argparse
import logging
import sys

from .engine_core.errors import EggBattleError
from .engine_core.events import EventKind, MatchEvent
from .engine_core.rules import legal_moves, valid_targets
from .engine_core.state import MatchState, TARGETED_MOVES


def configure_logging(level: str = "WARNING"):
    """Configure root logging once for command-line use."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Egg Battle - simultaneous-move battle royale",
        prog="eggbattle",
    )
    parser.add_argument("--log-level", default="WARNING", help="Diagnostic log level")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Play command
    play_parser = subparsers.add_parser("play", help="Play a match against scripted opponents")
    play_parser.add_argument("--name", default="Player", help="Your display name")
    play_parser.add_argument("--bots", type=int, default=1, help="Number of bot players")
    play_parser.add_argument("--seed", type=int, default=None, help="Seed for bot choices")

    # Simulate command
    simulate_parser = subparsers.add_parser("simulate", help="Run a bots-only match")
    simulate_parser.add_argument("--bots", type=int, default=3, help="Number of bot players")
    simulate_parser.add_argument("--seed", type=int, default=None, help="Seed for bot choices")
    simulate_parser.add_argument("--policy", default="scripted", help="scripted, random or first_legal")
    simulate_parser.add_argument("--max-rounds", type=int, default=100, help="Safety limit")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the REST/WebSocket API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "play":
        return cmd_play(args)
    elif args.command == "simulate":
        return cmd_simulate(args)
    elif args.command == "serve":
        return cmd_serve(args)
    else:
        parser.print_help()
        sys.exit(1)


def print_line(event: MatchEvent):
    print(event.line)


def format_status(state: MatchState) -> str:
    """One line per participant: health, eggs, and whether they are still in."""
    lines = []
    for p in state.participants.values():
        eggs = ", ".join(
            f"{'reflected ' if e.reflected else ''}egg {e.turns_remaining}"
            for e in p.status_effects
        )
        line = f"  {p.display_name:<12} HP {p.health}/{state.config.max_hp}"
        if p.is_bot:
            line += "  (cpu)"
        if eggs:
            line += f"  [{eggs}]"
        if not p.alive:
            line += "  (defeated)"
        lines.append(line)
    return "\n".join(lines)


def prompt_choice(prompt: str, options: list) -> int:
    """Ask until the user picks a 1-based index; returns the 0-based index."""
    while True:
        raw = input(prompt).strip()
        if raw.isdigit() and 1 <= int(raw) <= len(options):
            return int(raw) - 1
        print(f"Pick a number between 1 and {len(options)}.")


def cmd_play(args):
    """Play a match in the terminal."""
    from .session import HOST_ID, GameLoop, SessionManager

    manager = SessionManager()
    try:
        session = manager.create_session(host_name=args.name, num_bots=args.bots, seed=args.seed)
    except ValueError as e:
        print(f"Error: {e}")
        return 1
    loop = GameLoop(session)
    authority = session.authority

    for line in authority.state.event_log:
        print(line)
    authority.subscribe(print_line, kinds={EventKind.LOG_LINE_APPENDED})
    loop.play_bots()

    try:
        while not authority.over:
            me = authority.state.get_participant(HOST_ID)
            if not me.alive:
                print("You are out. The bots finish the match...")
                loop.play_bots()
                break

            print(f"\nRound {authority.state.round}")
            print(format_status(authority.state))

            moves = legal_moves(me, authority.config)
            for i, move in enumerate(moves, 1):
                print(f"  {i}. {move.value}")
            move = moves[prompt_choice("Your move: ", moves)]

            target = None
            if move in TARGETED_MOVES:
                targets = valid_targets(authority.state, HOST_ID)
                if len(targets) == 1:
                    target = targets[0]
                elif targets:
                    for i, pid in enumerate(targets, 1):
                        print(f"  {i}. {authority.state.display_name(pid)}")
                    target = targets[prompt_choice("Target: ", targets)]

            try:
                authority.commit_move(HOST_ID, move, target)
            except EggBattleError as e:
                print(f"Rejected: {e.message}")
                continue
            loop.play_bots()
    except (EOFError, KeyboardInterrupt):
        print("\nYou left the match.")
        authority.leave(HOST_ID)
        loop.play_bots()

    print()
    print(format_status(authority.state))
    manager.end_session(session.session_id)
    return 0


def cmd_simulate(args):
    """Run a bots-only match and print its log."""
    from .session import GameLoop, SessionManager

    manager = SessionManager(bot_policy=args.policy)
    try:
        session = manager.create_session(host_name=None, num_bots=args.bots, seed=args.seed)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    result = GameLoop(session, max_rounds=args.max_rounds).play_bots()

    for line in session.match.event_log:
        print(line)
    print()
    print(format_status(session.match))
    print(f"\nResult: {result.loop_state.value}, winner: {session.match.display_name(result.winner) or 'none'}")
    manager.end_session(session.session_id)
    return 0


def cmd_serve(args):
    """Run the API with uvicorn."""
    import uvicorn

    uvicorn.run("eggbattle.api.app:app", host=args.host, port=args.port, log_level=args.log_level.lower())
    return 0


if __name__ == "__main__":
    sys.exit(main())
