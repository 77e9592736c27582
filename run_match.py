#!/usr/bin/env python3
"""
Fight VM - Match Runner

Pit two fight assembly programs against each other.

Usage:
    # Fight two program files
    python run_match.py fighter_a.asm fighter_b.asm

    # Quick demo with the bundled programs
    python run_match.py --demo

    # Round-robin tournament over a directory of .asm files
    python run_match.py --tournament ./programs
"""

import argparse
import logging
import sys
from pathlib import Path

from fightvm.assembler import PROGRAMS, assemble, disassemble, load_program
from fightvm.battle import MatchConfig, run_match, run_tournament
from fightvm.errors import FightVMError

EXIT_REJECTED = 2


def print_result(result, plot: str = None, plot_intents: str = None):
    """Print a match summary and optionally save health and intent plots."""
    print("\n" + "=" * 60)

    for side, error in sorted(result.errors.items()):
        print(f"✗ Side {side + 1} rejected: {error}")

    print(f"Winner: {result.get_winner_name()}")
    print(f"Rounds: {result.rounds}")
    for side, name in enumerate(result.names):
        print(
            f"  {name}: {result.final_health[side]} hp, "
            f"strength {result.final_strength[side]}"
        )
    print("=" * 60 + "\n")

    if plot and result.history:
        from visualize import plot_health_curves
        plot_health_curves(result, save_path=plot)
    if plot_intents and result.history:
        from visualize import plot_intent_breakdown
        plot_intent_breakdown(result, save_path=plot_intents)


def run_demo(
    config: MatchConfig,
    names=("tactician", "gambler"),
    plot: str = None,
    plot_intents: str = None,
):
    """Run a quick demo match between two bundled programs."""
    print("\n" + "=" * 60)
    print("FIGHT VM DEMO - Bundled Programs")
    print("=" * 60)

    programs = [assemble(PROGRAMS[name], name=name) for name in names]
    print(f"Programs: {', '.join(p.name for p in programs)}")

    result = run_match(programs, config)
    print_result(result, plot, plot_intents)
    return result


def run_files(
    paths,
    config: MatchConfig,
    plot: str = None,
    plot_intents: str = None,
    show_disasm: bool = False,
) -> int:
    """
    Fight two program files.

    Returns:
        Process exit status
    """
    if show_disasm:
        for path in paths:
            try:
                program = load_program(path)
            except FightVMError as e:
                print(f"✗ {e}")
                continue
            print(f"--- {program.name} ({len(program)} words)")
            print(disassemble(program))
        print()

    result = run_match(paths, config)
    print_result(result, plot, plot_intents)
    return EXIT_REJECTED if result.is_forfeit() else 0


def run_directory_tournament(
    programs_dir: str,
    config: MatchConfig,
    matches: int = 1,
    plot_matrix: str = None,
):
    """
    Run a tournament between programs in a directory.

    Args:
        programs_dir: Directory containing .asm files
        config: Match configuration
        matches: Matches per pairing
        plot_matrix: Optional path for a head-to-head win rate plot

    Returns:
        Tuple of (stats or None if fewer than 2 programs loaded, rejected paths)
    """
    programs = []
    rejected = []
    for asm_file in sorted(Path(programs_dir).glob("*.asm")):
        try:
            program = load_program(asm_file)
        except FightVMError as e:
            print(f"Failed to load {asm_file}: {e}")
            rejected.append(str(asm_file))
            continue
        programs.append(program)
        print(f"Loaded: {program.name}")

    if len(programs) < 2:
        print("Need at least 2 programs for a tournament")
        return None, rejected

    print(f"\nRunning tournament with {len(programs)} programs...")
    stats = run_tournament(programs, config, matches_per_pair=matches)

    print("\n" + "=" * 60)
    print("TOURNAMENT RESULTS")
    print("=" * 60)

    # Sort by points
    sorted_stats = sorted(
        [(programs[i].name, s) for i, s in stats.items()],
        key=lambda x: x[1]["points"],
        reverse=True,
    )

    for rank, (name, s) in enumerate(sorted_stats, 1):
        print(f"{rank}. {name}: {s['points']:.0f} pts (W:{s['wins']} D:{s['draws']} L:{s['losses']})")

    print("=" * 60 + "\n")

    if plot_matrix:
        from visualize import plot_head_to_head
        plot_head_to_head(programs, config, num_matches=matches, save_path=plot_matrix)

    return stats, rejected


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fight VM - assembly programs fight each other",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_match.py --demo
  python run_match.py fighter_a.asm fighter_b.asm --seed 7 --plot health.png
  python run_match.py --tournament ./programs --matches 5
        """
    )

    parser.add_argument(
        "programs",
        nargs="*",
        help="Two fight assembly files",
    )

    parser.add_argument(
        "--demo",
        action="store_true",
        help="Run a demo match between bundled programs",
    )

    parser.add_argument(
        "--tournament",
        type=str,
        help="Run a tournament with programs from directory",
    )

    parser.add_argument(
        "--matches",
        type=positive_int,
        default=1,
        help="Matches per tournament pairing (default: 1)",
    )

    parser.add_argument(
        "--max-rounds",
        type=positive_int,
        default=1000,
        help="Round cap before the match is decided on health (default: 1000)",
    )

    parser.add_argument(
        "--max-steps",
        type=positive_int,
        default=10000,
        help="Instructions a program may run per round (default: 10000)",
    )

    parser.add_argument(
        "--seed",
        type=int,
        help="Seed for gamble draws",
    )

    parser.add_argument(
        "--reset-flags",
        action="store_true",
        help="Clear compare flags before every program run",
    )

    parser.add_argument(
        "--disasm",
        action="store_true",
        help="Print the assembled programs before fighting",
    )

    parser.add_argument(
        "--plot",
        type=str,
        help="Save a health-per-round plot to this path",
    )

    parser.add_argument(
        "--plot-intents",
        type=str,
        help="Save a per-side intent breakdown plot to this path",
    )

    parser.add_argument(
        "--plot-matrix",
        type=str,
        help="Save a head-to-head win rate plot of the tournament to this path",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Log rounds (-v) or every instruction (-vv)",
    )

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    config = MatchConfig(
        max_rounds=args.max_rounds,
        max_steps=args.max_steps,
        persist_flags=not args.reset_flags,
        seed=args.seed,
        trace=args.verbose > 1,
    )

    # Handle different modes
    if args.demo:
        run_demo(config, plot=args.plot, plot_intents=args.plot_intents)
        return 0

    elif args.tournament:
        _, rejected = run_directory_tournament(
            args.tournament, config, args.matches, plot_matrix=args.plot_matrix,
        )
        return EXIT_REJECTED if rejected else 0

    elif len(args.programs) == 2:
        return run_files(
            args.programs, config,
            plot=args.plot, plot_intents=args.plot_intents, show_disasm=args.disasm,
        )

    parser.print_help()
    print("\nQuick start: python run_match.py --demo")
    return 1


if __name__ == "__main__":
    sys.exit(main())
