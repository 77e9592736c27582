"""
Battle Module - Runs matches between two fight programs.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union
import logging
import random

import numpy as np

from .assembler import CompiledProgram, load_program
from .errors import FightVMError
from .resolver import GAMBLE_THRESHOLD, Combatant, resolve_round
from .symbols import MAX_HEALTH, Intent, Register
from .vm import RunStatus, VirtualMachine

logger = logging.getLogger(__name__)


@dataclass
class MatchConfig:
    """Configuration for a match."""

    max_health: int = MAX_HEALTH
    max_rounds: int = 1000                  # Stalemate cap
    max_steps: int = 10000                  # Per program, per round
    gamble_threshold: int = GAMBLE_THRESHOLD
    persist_flags: bool = True              # Flags survive between runs
    output_register: Register = Register.O0
    seed: Optional[int] = None
    trace: bool = False


@dataclass
class Fighter(Combatant):
    """A program taking part in a match, with its health and strength."""
    program: CompiledProgram = field(default_factory=CompiledProgram)
    last_intent: Intent = Intent.DEFEND


@dataclass
class RoundRecord:
    """Everything that happened in one round."""
    round_number: int
    chosen: Tuple[Intent, Intent]
    resolved: Tuple[Intent, Intent]
    gamble_won: Tuple[bool, bool]
    damage: Tuple[int, int]
    health: Tuple[int, int]
    strength: Tuple[int, int]
    statuses: Tuple[RunStatus, RunStatus]
    steps: Tuple[int, int]


@dataclass
class MatchResult:
    """Result of a match."""
    winner_id: Optional[int]  # None for draw
    names: Tuple[str, str]
    rounds: int
    final_health: Tuple[int, int]
    final_strength: Tuple[int, int] = (1, 1)
    history: List[RoundRecord] = field(default_factory=list)

    # Programs that could not be loaded or assembled, by side
    errors: Dict[int, FightVMError] = field(default_factory=dict)
    starting_health: int = MAX_HEALTH

    def is_draw(self) -> bool:
        return self.winner_id is None

    def is_forfeit(self) -> bool:
        return bool(self.errors)

    def get_winner_name(self) -> str:
        if self.winner_id is None:
            return "Draw"
        return self.names[self.winner_id]

    def health_history(self) -> np.ndarray:
        """Health per side at the start and after every round, shape (rounds + 1, 2)."""
        rows = [(self.starting_health, self.starting_health)]
        rows.extend(record.health for record in self.history)
        return np.array(rows, dtype=int)

    def intent_counts(self) -> np.ndarray:
        """Chosen intent counts per side, shape (2, 3) indexed by Intent."""
        counts = np.zeros((2, len(Intent)), dtype=int)
        for record in self.history:
            for side, intent in enumerate(record.chosen):
                counts[side, intent] += 1
        return counts


class Match:
    """
    Two programs fighting round by round.

    Each round both programs run on the same machine, side 0 first. Both
    health seeds are taken before either runs, so neither program sees the
    damage the current round is about to deal.
    """

    def __init__(
        self,
        programs: Sequence[CompiledProgram],
        config: Optional[MatchConfig] = None,
        rng: Optional[random.Random] = None,
        clock=None,
    ):
        """
        Initialize a match.

        Args:
            programs: Exactly two compiled programs
            config: Match configuration
            rng: Random source for gambles (default: seeded from config.seed)
            clock: Millisecond tick source for the T0 register
        """
        if len(programs) != 2:
            raise ValueError("A match needs exactly 2 programs")

        self.config = config or MatchConfig()
        self.rng = rng or random.Random(self.config.seed)
        self.vm = VirtualMachine(
            max_steps=self.config.max_steps,
            persist_flags=self.config.persist_flags,
            output_register=self.config.output_register,
            clock=clock,
            trace=self.config.trace,
        )
        self.fighters = [
            Fighter(name=p.name, health=self.config.max_health, program=p)
            for p in programs
        ]
        self.round = 0
        self.history: List[RoundRecord] = []

    def is_over(self) -> bool:
        if any(f.health <= 0 for f in self.fighters):
            return True
        return self.round >= self.config.max_rounds

    def play_round(self) -> RoundRecord:
        """Run both programs once and resolve the round."""
        a, b = self.fighters
        self.round += 1
        health = (a.health, b.health)

        runs = (
            self.vm.run(a.program, health[0], health[1]),
            self.vm.run(b.program, health[1], health[0]),
        )
        for fighter, run in zip(self.fighters, runs):
            fighter.last_intent = run.intent
            logger.info("%s has chosen to %s.", fighter.name, run.intent.verb)

        outcome = resolve_round(
            (a, b),
            (runs[0].intent, runs[1].intent),
            rng=self.rng,
            threshold=self.config.gamble_threshold,
        )

        record = RoundRecord(
            round_number=self.round,
            chosen=outcome.chosen,
            resolved=outcome.resolved,
            gamble_won=outcome.gamble_won,
            damage=outcome.damage,
            health=(a.health, b.health),
            strength=(a.strength, b.strength),
            statuses=(runs[0].status, runs[1].status),
            steps=(runs[0].steps, runs[1].steps),
        )
        self.history.append(record)
        return record

    def _winner(self) -> Optional[int]:
        a, b = self.fighters
        if a.health == b.health:
            return None
        return 0 if a.health > b.health else 1

    def run(self) -> MatchResult:
        """
        Play rounds until a side is out of health or the round cap is hit.

        Returns:
            MatchResult with winner and per-round history
        """
        while not self.is_over():
            self.play_round()

        a, b = self.fighters
        for fighter in self.fighters:
            logger.info(
                "%s has %d hitpoints left after %d rounds.",
                fighter.name, fighter.health, self.round,
            )

        return MatchResult(
            winner_id=self._winner(),
            names=(a.name, b.name),
            rounds=self.round,
            final_health=(a.health, b.health),
            final_strength=(a.strength, b.strength),
            history=self.history,
            starting_health=self.config.max_health,
        )


ProgramSource = Union[str, Path, CompiledProgram]


def _prepare(source: ProgramSource) -> CompiledProgram:
    if isinstance(source, CompiledProgram):
        return source
    return load_program(source)


def run_match(
    sources: Sequence[ProgramSource],
    config: Optional[MatchConfig] = None,
    rng: Optional[random.Random] = None,
    clock=None,
) -> MatchResult:
    """
    Load, assemble and fight two programs.

    A program that fails to load or assemble forfeits: its error is recorded
    in ``MatchResult.errors`` and the other side wins without a round being
    played. If both fail, the match is a draw.

    Args:
        sources: Two file paths or already compiled programs
        config: Match configuration
        rng: Random source for gambles
        clock: Millisecond tick source for the T0 register
    """
    if len(sources) != 2:
        raise ValueError("A match needs exactly 2 programs")

    config = config or MatchConfig()
    programs: List[Optional[CompiledProgram]] = []
    errors: Dict[int, FightVMError] = {}

    for side, source in enumerate(sources):
        try:
            programs.append(_prepare(source))
        except FightVMError as e:
            logger.warning("Side %d rejected: %s", side, e)
            errors[side] = e
            programs.append(None)

    if errors:
        names = tuple(
            p.name if p is not None else Path(str(s)).name
            for p, s in zip(programs, sources)
        )
        valid = [side for side, p in enumerate(programs) if p is not None]
        return MatchResult(
            winner_id=valid[0] if len(valid) == 1 else None,
            names=names,
            rounds=0,
            final_health=(config.max_health, config.max_health),
            errors=errors,
            starting_health=config.max_health,
        )

    return Match(programs, config, rng=rng, clock=clock).run()


def run_tournament(
    programs: List[CompiledProgram],
    config: Optional[MatchConfig] = None,
    matches_per_pair: int = 1,
    rng: Optional[random.Random] = None,
) -> Dict[int, Dict[str, float]]:
    """
    Run a round-robin tournament between all programs.

    Args:
        programs: Programs to compete
        config: Match configuration shared by every match
        matches_per_pair: Matches per head-to-head pairing
        rng: Random source shared by every match

    Returns:
        Dict mapping program index to tournament statistics
    """
    config = config or MatchConfig()
    rng = rng or random.Random(config.seed)
    n = len(programs)
    stats = {
        i: {"wins": 0, "losses": 0, "draws": 0, "points": 0.0}
        for i in range(n)
    }

    # Each pair fights
    for i in range(n):
        for j in range(i + 1, n):
            for _ in range(matches_per_pair):
                result = Match([programs[i], programs[j]], config, rng=rng).run()

                if result.winner_id == 0:
                    stats[i]["wins"] += 1
                    stats[j]["losses"] += 1
                    stats[i]["points"] += 3.0
                elif result.winner_id == 1:
                    stats[j]["wins"] += 1
                    stats[i]["losses"] += 1
                    stats[j]["points"] += 3.0
                else:
                    stats[i]["draws"] += 1
                    stats[j]["draws"] += 1
                    stats[i]["points"] += 1.0
                    stats[j]["points"] += 1.0

    return stats
