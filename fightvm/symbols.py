"""
Instruction Set and Register File Layout

Static tables shared by the assembler and the virtual machine. The integer
value of every opcode and register is the word written into bytecode.
"""

from enum import IntEnum
from typing import Dict, Optional


MAX_HEALTH = 1000
LABEL_CAPACITY = 10


class OpCode(IntEnum):
    """Fight VM operation codes."""
    INC = 0      # Increment register
    DEC = 1      # Decrement register
    INCEQ = 2    # Increment register if Equal flag set
    DECEQ = 3    # Decrement register if Equal flag set
    ADD = 4      # O0 := I0 + I1
    SUB = 5      # O0 := I0 - I1
    MUL = 6      # O0 := I0 * I1
    STORE = 7    # Register := immediate
    MOVE = 8     # Register := register
    LABEL = 9    # Jump target declaration, no-op at runtime
    JMP = 10     # Unconditional jump
    JMPEQ = 11   # Jump if Equal
    JMPNE = 12   # Jump if not Equal
    JMPGT = 13   # Jump if GreaterThan
    JMPLT = 14   # Jump if LessThan
    CMP = 15     # Compare I0 with I1
    RET = 16     # End this run


class Register(IntEnum):
    """The eleven fixed-purpose register slots."""
    R0 = 0   # General purpose
    R1 = 1   # General purpose
    R2 = 2   # General purpose
    C0 = 3   # Own health
    C1 = 4   # Reserved
    E0 = 5   # Enemy health
    E1 = 6   # Reserved
    I0 = 7   # Arithmetic/compare input 0
    I1 = 8   # Arithmetic/compare input 1
    O0 = 9   # Arithmetic output, read as the round intent
    T0 = 10  # Millisecond tick


class Flag(IntEnum):
    """Compare flags."""
    LT = 0  # LessThan
    GT = 1  # GreaterThan
    EQ = 2  # Equal
    ER = 3  # Error


class Intent(IntEnum):
    """What a program chooses to do this round."""
    DEFEND = 0
    ATTACK = 1
    GAMBLE = 2

    @classmethod
    def coerce(cls, value: int) -> "Intent":
        """Map an output register value to an intent; anything unknown defends."""
        try:
            return cls(value)
        except ValueError:
            return cls.DEFEND

    @property
    def verb(self) -> str:
        return self.name.lower()


# Operand shape per opcode: "reg", "int" or "label"
OPERANDS: Dict[OpCode, tuple] = {
    OpCode.INC: ("reg",),
    OpCode.DEC: ("reg",),
    OpCode.INCEQ: ("reg",),
    OpCode.DECEQ: ("reg",),
    OpCode.ADD: (),
    OpCode.SUB: (),
    OpCode.MUL: (),
    OpCode.STORE: ("reg", "int"),
    OpCode.MOVE: ("reg", "reg"),
    OpCode.LABEL: ("label",),
    OpCode.JMP: ("label",),
    OpCode.JMPEQ: ("label",),
    OpCode.JMPNE: ("label",),
    OpCode.JMPGT: ("label",),
    OpCode.JMPLT: ("label",),
    OpCode.CMP: (),
    OpCode.RET: (),
}

JUMPS = (OpCode.JMP, OpCode.JMPEQ, OpCode.JMPNE, OpCode.JMPGT, OpCode.JMPLT)


def word_count(opcode: OpCode) -> int:
    """Number of bytecode words an instruction occupies, opcode included."""
    return 1 + len(OPERANDS[opcode])


def match_opcode(token: str) -> Optional[OpCode]:
    """Exact, case-sensitive mnemonic lookup."""
    for opcode in OpCode:
        if opcode.name == token:
            return opcode
    return None


def match_register(text: str, pos: int = 0) -> Optional[Register]:
    """Return the first register whose two-character name starts at ``pos``."""
    for register in Register:
        if text.startswith(register.name, pos):
            return register
    return None
