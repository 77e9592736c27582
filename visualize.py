"""
Visualization Tools for Fight VM Matches

Provides tools for visualizing:
- Health over the course of a match
- Intent choices per side
- Head-to-head win rates between programs
"""

from typing import List, Optional
import random

import numpy as np
import matplotlib.pyplot as plt

from fightvm.assembler import CompiledProgram
from fightvm.battle import Match, MatchConfig, MatchResult
from fightvm.symbols import Intent


def _finish(save_path: Optional[str]):
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150)
        print(f"Saved to {save_path}")
    else:
        plt.show()

    plt.close()


def plot_health_curves(
    result: MatchResult,
    title: str = "Health per Round",
    save_path: Optional[str] = None,
):
    """
    Plot both sides' health from the first round to the last.

    Args:
        result: A finished match
        title: Plot title
        save_path: Optional path to save the figure
    """
    health = result.health_history()
    rounds = np.arange(len(health))

    fig, ax = plt.subplots(figsize=(12, 6))

    for side, color in zip(range(2), ("#e74c3c", "#2ecc71")):
        ax.plot(rounds, health[:, side], label=result.names[side], color=color, linewidth=2)

    ax.set_xlabel("Round", fontsize=12)
    ax.set_ylabel("Health", fontsize=12)
    ax.set_title(title, fontsize=14)
    ax.legend(loc="upper right")
    ax.grid(True, alpha=0.3)
    ax.set_ylim(0, result.starting_health)

    _finish(save_path)


def plot_intent_breakdown(
    result: MatchResult,
    title: str = "Intents Chosen",
    save_path: Optional[str] = None,
):
    """
    Grouped bar chart of how often each side chose each intent.

    Args:
        result: A finished match
        title: Plot title
        save_path: Optional path to save the figure
    """
    counts = result.intent_counts()
    x = np.arange(len(Intent))
    width = 0.35

    fig, ax = plt.subplots(figsize=(10, 6))

    ax.bar(x - width / 2, counts[0], width, label=result.names[0], color="#e74c3c")
    ax.bar(x + width / 2, counts[1], width, label=result.names[1], color="#2ecc71")

    ax.set_xticks(x)
    ax.set_xticklabels([intent.verb for intent in Intent])
    ax.set_ylabel("Rounds", fontsize=12)
    ax.set_title(title, fontsize=14)
    ax.legend()

    _finish(save_path)


def head_to_head_matrix(
    programs: List[CompiledProgram],
    config: Optional[MatchConfig] = None,
    num_matches: int = 10,
    rng: Optional[random.Random] = None,
) -> np.ndarray:
    """
    Win rate of each program (row) against each other program (column).

    Draws count as half a win; the diagonal is 0.5.
    """
    config = config or MatchConfig()
    rng = rng or random.Random(config.seed)
    n = len(programs)
    win_matrix = np.full((n, n), 0.5)

    for i in range(n):
        for j in range(n):
            if i == j:
                continue
            score = 0.0
            for _ in range(num_matches):
                result = Match([programs[i], programs[j]], config, rng=rng).run()
                if result.winner_id == 0:
                    score += 1.0
                elif result.winner_id is None:
                    score += 0.5
            win_matrix[i, j] = score / num_matches

    return win_matrix


def plot_head_to_head(
    programs: List[CompiledProgram],
    config: Optional[MatchConfig] = None,
    num_matches: int = 10,
    save_path: Optional[str] = None,
):
    """
    Create a head-to-head comparison matrix of programs.

    Args:
        programs: List of programs to compare
        config: Match configuration
        num_matches: Matches per ordered pairing
        save_path: Optional path to save the figure
    """
    win_matrix = head_to_head_matrix(programs, config, num_matches)
    n = len(programs)

    fig, ax = plt.subplots(figsize=(10, 8))

    im = ax.imshow(win_matrix, cmap="RdYlGn", vmin=0, vmax=1)

    names = [p.name[:15] for p in programs]  # Truncate long names
    ax.set_xticks(range(n))
    ax.set_yticks(range(n))
    ax.set_xticklabels(names, rotation=45, ha="right")
    ax.set_yticklabels(names)

    for i in range(n):
        for j in range(n):
            val = win_matrix[i, j]
            color = "white" if val < 0.3 or val > 0.7 else "black"
            ax.text(j, i, f"{val:.2f}", ha="center", va="center", color=color)

    ax.set_xlabel("Opponent", fontsize=12)
    ax.set_ylabel("Program", fontsize=12)
    ax.set_title("Head-to-Head Win Rates", fontsize=14)

    cbar = plt.colorbar(im, ax=ax)
    cbar.set_label("Win Rate", fontsize=12)

    _finish(save_path)
