"""
Fight VM - the register machine that runs one program per side each round.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional
import logging
import time

from .assembler import CompiledProgram
from .symbols import Flag, Intent, OpCode, Register, word_count

logger = logging.getLogger(__name__)


class RunStatus(Enum):
    """Why a run stopped."""
    RETURNED = "returned"              # RET executed
    END_OF_CODE = "end_of_code"        # ip ran past the bytecode
    INVALID_OPCODE = "invalid_opcode"  # Word at ip is not an opcode
    STEP_LIMIT = "step_limit"          # Step governor tripped


@dataclass
class RunResult:
    """Outcome of running one program once."""
    intent: Intent
    raw_output: int
    steps: int
    status: RunStatus
    registers: List[int] = field(default_factory=list)

    @property
    def hit_step_limit(self) -> bool:
        return self.status == RunStatus.STEP_LIMIT


def _millisecond_clock() -> Callable[[], int]:
    start = time.monotonic()
    return lambda: int((time.monotonic() - start) * 1000)


class VirtualMachine:
    """
    Register machine with eleven registers and four compare flags.

    Arithmetic and compare instructions have no operands of their own: ADD,
    SUB and MUL always compute ``O0 := I0 op I1`` and CMP always compares I0
    with I1. Programs are written against this convention.

    The register file is zeroed at the start of every run. Flags belong to
    the machine and, unless ``persist_flags`` is False, carry over from one
    run to the next, so the second program in a round sees the flags the
    first one left behind.
    """

    def __init__(
        self,
        max_steps: int = 10000,
        persist_flags: bool = True,
        output_register: Register = Register.O0,
        clock: Optional[Callable[[], int]] = None,
        trace: bool = False,
    ):
        """
        Initialize the machine.

        Args:
            max_steps: Instructions a single run may execute before it is cut off
            persist_flags: Keep flags between runs instead of clearing them
            output_register: Register read as the intent when a run ends
            clock: Millisecond tick source for T0 (default: time since creation)
            trace: Log every executed instruction at DEBUG level
        """
        if max_steps < 1:
            raise ValueError("max_steps must be at least 1")

        self.max_steps = max_steps
        self.persist_flags = persist_flags
        self.output_register = Register(output_register)
        self.clock = clock or _millisecond_clock()
        self.trace = trace

        self.registers: List[int] = [0] * len(Register)
        self.flags: List[bool] = [False] * len(Flag)

        self.program: Optional[CompiledProgram] = None
        self.ip: int = 0
        self.steps: int = 0
        self.status: Optional[RunStatus] = None

    def load(self, program: CompiledProgram, own_health: int, enemy_health: int):
        """Reset registers and seed the two health registers for a new run."""
        self.program = program
        self.registers = [0] * len(Register)
        self.registers[Register.C0] = own_health
        self.registers[Register.E0] = enemy_health
        if not self.persist_flags:
            self.reset_flags()

        self.ip = 0
        self.steps = 0
        self.status = None

    def reset_flags(self):
        self.flags = [False] * len(Flag)

    def _compare(self):
        a = self.registers[Register.I0]
        b = self.registers[Register.I1]
        self.flags[Flag.EQ] = a == b
        self.flags[Flag.LT] = a < b
        self.flags[Flag.GT] = a > b
        self.flags[Flag.ER] = False

    def _jump_taken(self, opcode: OpCode) -> bool:
        if opcode == OpCode.JMP:
            return True
        elif opcode == OpCode.JMPEQ:
            return self.flags[Flag.EQ]
        elif opcode == OpCode.JMPNE:
            return not self.flags[Flag.EQ]
        elif opcode == OpCode.JMPGT:
            return self.flags[Flag.GT]
        elif opcode == OpCode.JMPLT:
            return self.flags[Flag.LT]
        return False

    def step(self) -> bool:
        """
        Execute one instruction.

        Returns:
            True if the run should continue
        """
        if self.status is not None:
            return False

        code = self.program.bytecode
        if self.ip >= len(code):
            self.status = RunStatus.END_OF_CODE
            return False

        if self.steps >= self.max_steps:
            self.status = RunStatus.STEP_LIMIT
            return False

        try:
            opcode = OpCode(code[self.ip])
        except ValueError:
            self.status = RunStatus.INVALID_OPCODE
            return False
        if self.ip + word_count(opcode) > len(code):
            self.status = RunStatus.INVALID_OPCODE
            return False

        regs = self.registers
        regs[Register.T0] = self.clock()
        self.steps += 1

        if self.trace:
            operands = code[self.ip + 1:self.ip + word_count(opcode)]
            logger.debug(
                "%s ip=%d %s %s",
                self.program.name, self.ip, opcode.name, list(operands),
            )

        ip = self.ip

        if opcode == OpCode.STORE:
            regs[code[ip + 1]] = code[ip + 2]
            ip += 2

        elif opcode == OpCode.MOVE:
            regs[code[ip + 1]] = regs[code[ip + 2]]
            ip += 2

        elif opcode == OpCode.ADD:
            regs[Register.O0] = regs[Register.I0] + regs[Register.I1]

        elif opcode == OpCode.SUB:
            regs[Register.O0] = regs[Register.I0] - regs[Register.I1]

        elif opcode == OpCode.MUL:
            regs[Register.O0] = regs[Register.I0] * regs[Register.I1]

        elif opcode == OpCode.INC:
            ip += 1
            regs[code[ip]] += 1

        elif opcode == OpCode.DEC:
            ip += 1
            regs[code[ip]] -= 1

        elif opcode == OpCode.INCEQ:
            ip += 1
            if self.flags[Flag.EQ]:
                regs[code[ip]] += 1

        elif opcode == OpCode.DECEQ:
            ip += 1
            if self.flags[Flag.EQ]:
                regs[code[ip]] -= 1

        elif opcode == OpCode.CMP:
            self._compare()

        elif opcode == OpCode.LABEL:
            ip += 1

        elif opcode == OpCode.RET:
            self.ip = len(code)
            self.status = RunStatus.RETURNED
            return False

        else:  # Jumps
            ip += 1
            if self._jump_taken(opcode):
                # Lands on the label's operand word; the increment below
                # moves past it
                ip = self.program.labels[code[ip]]

        self.ip = ip + 1
        return True

    def result(self) -> RunResult:
        """Read the output register as this run's intent."""
        raw = self.registers[self.output_register]
        if self.status == RunStatus.STEP_LIMIT:
            intent = Intent.DEFEND
        else:
            intent = Intent.coerce(raw)
        return RunResult(
            intent=intent,
            raw_output=raw,
            steps=self.steps,
            status=self.status,
            registers=list(self.registers),
        )

    def run(self, program: CompiledProgram, own_health: int, enemy_health: int) -> RunResult:
        """
        Run a program to completion.

        Args:
            program: The compiled program
            own_health: Value seeded into C0
            enemy_health: Value seeded into E0

        Returns:
            RunResult with the chosen intent
        """
        self.load(program, own_health, enemy_health)

        while self.step():
            pass

        result = self.result()
        if result.hit_step_limit:
            logger.warning(
                "%s exceeded %d steps at ip=%d; defending",
                program.name, self.max_steps, self.ip,
            )
        return result
