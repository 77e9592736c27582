"""
Fight VM - programs written in a tiny assembly language fight each other.

Each round both programs are run on a register machine to pick an intent
(defend, attack or gamble), and the two intents are turned into damage.
"""

from .symbols import (
    LABEL_CAPACITY,
    MAX_HEALTH,
    Flag,
    Intent,
    OpCode,
    Register,
)
from .errors import AssemblyError, FightVMError, LoadError
from .assembler import (
    PROGRAMS,
    CompiledProgram,
    assemble,
    disassemble,
    load_program,
    read_source,
)
from .vm import RunResult, RunStatus, VirtualMachine
from .resolver import DAMAGE_TABLE, RoundOutcome, resolve_gamble, resolve_round
from .battle import (
    Fighter,
    Match,
    MatchConfig,
    MatchResult,
    RoundRecord,
    run_match,
    run_tournament,
)

__all__ = [
    "LABEL_CAPACITY",
    "MAX_HEALTH",
    "Flag",
    "Intent",
    "OpCode",
    "Register",
    "AssemblyError",
    "FightVMError",
    "LoadError",
    "PROGRAMS",
    "CompiledProgram",
    "assemble",
    "disassemble",
    "load_program",
    "read_source",
    "RunResult",
    "RunStatus",
    "VirtualMachine",
    "DAMAGE_TABLE",
    "RoundOutcome",
    "resolve_gamble",
    "resolve_round",
    "Fighter",
    "Match",
    "MatchConfig",
    "MatchResult",
    "RoundRecord",
    "run_match",
    "run_tournament",
]
