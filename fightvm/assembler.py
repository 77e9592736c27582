"""
Fight Assembly Assembler

Single-pass translation of fight assembly text into a flat bytecode stream
plus a label table. Matching is strict about mnemonics and lenient about
layout: the first token that is not a mnemonic ends the program.
"""

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple
import logging

from .errors import AssemblyError, LoadError
from .lexer import next_eol, parse_int, read_token, skip_comma, skip_space
from .symbols import (
    JUMPS,
    LABEL_CAPACITY,
    OPERANDS,
    OpCode,
    Register,
    match_opcode,
    match_register,
    word_count,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompiledProgram:
    """Bytecode and label table for one program. Immutable once assembled."""
    name: str = "Unknown"
    bytecode: Tuple[int, ...] = ()
    labels: Mapping[int, int] = field(
        default_factory=lambda: MappingProxyType({}), hash=False,
    )
    source: str = ""

    def __post_init__(self):
        object.__setattr__(self, "bytecode", tuple(self.bytecode))
        object.__setattr__(self, "labels", MappingProxyType(dict(self.labels)))
        self._validate()

    def _validate(self):
        """
        Walk the instruction stream up to the first word that is not an
        opcode and check every register and label reference, so that no
        executable instruction can index outside the register file or the
        label table.
        """
        code = self.bytecode
        declared = {}
        jumps = []
        ip = 0

        while ip < len(code):
            try:
                opcode = OpCode(code[ip])
            except ValueError:
                break
            width = word_count(opcode)
            if ip + width > len(code):
                raise ValueError(f"{opcode.name} at word {ip} is missing operands")

            for kind, word in zip(OPERANDS[opcode], code[ip + 1:ip + width]):
                if kind == "reg" and not 0 <= word < len(Register):
                    raise ValueError(f"register id {word} at word {ip} out of range")
                if kind == "label" and not 0 <= word < LABEL_CAPACITY:
                    raise ValueError(f"label id {word} at word {ip} out of range")

            if opcode == OpCode.LABEL:
                declared[code[ip + 1]] = ip + 1
            elif opcode in JUMPS:
                jumps.append(code[ip + 1])
            ip += width

        for label, index in self.labels.items():
            if declared.get(label) != index:
                raise ValueError(f"label {label} does not point at its LABEL operand")
        for label in jumps:
            if label not in self.labels:
                raise ValueError(f"jump to undeclared label {label}")

    def __len__(self) -> int:
        return len(self.bytecode)


class Assembler:
    """
    Assembles one program.

    The label table records, for ``LABEL n``, the index of the operand word
    ``n`` itself. Jumps set the instruction pointer to that index and the
    fetch loop then advances past it, so execution resumes at the instruction
    following the label.
    """

    def __init__(self, source: str, name: Optional[str] = None):
        self.source = source
        self.name = name or "Unknown"
        self.end = len(source)
        self.bytecode: List[int] = []
        self.labels: dict = {}
        self._references: List[Tuple[int, int]] = []  # (label id, source offset)

    def _fail(self, offset: int, expected: str, found: Optional[str] = None):
        if found is None:
            found = read_token(self.source, offset, self.end)
        raise AssemblyError(offset, expected, found, self.source, self.name)

    def _check(self, cursor: Optional[int], at: int, expected: str) -> int:
        if cursor is None:
            self._fail(at, expected, "")
        return cursor

    def _emit(self, word: int):
        self.bytecode.append(int(word))

    def _separator(self, pos: int) -> int:
        pos = self._check(skip_space(self.source, pos, self.end), pos, "','")
        pos = self._check(skip_comma(self.source, pos, self.end), pos, "','")
        return self._check(skip_space(self.source, pos, self.end), pos, "operand")

    def _line_end(self, pos: int) -> int:
        return self._check(next_eol(self.source, pos, self.end), pos, "end of line")

    def _register(self, pos: int) -> Tuple[Register, int]:
        register = match_register(self.source, pos)
        if register is None:
            self._fail(pos, "register")
        return register, pos + len(register.name)

    def _integer(self, pos: int, eol: int) -> int:
        parsed = parse_int(self.source[pos:eol])
        if parsed is None:
            self._fail(pos, "integer", self.source[pos:eol].strip())
        return parsed[0]

    def _label_id(self, pos: int, eol: int) -> int:
        value = self._integer(pos, eol)
        if not 0 <= value < LABEL_CAPACITY:
            self._fail(pos, f"label id in 0..{LABEL_CAPACITY - 1}", str(value))
        return value

    def assemble(self) -> CompiledProgram:
        """
        Assemble the whole source.

        Returns:
            The compiled program

        Raises:
            AssemblyError: On a missing or malformed operand, a bad or
                duplicate label id, or a jump to an undeclared label
        """
        pos = 0
        while True:
            pos = self._check(skip_space(self.source, pos, self.end), pos, "instruction")
            token = read_token(self.source, pos, self.end)
            opcode = match_opcode(token)
            if opcode is None:
                if token:
                    logger.debug("%s: assembly stops at %r (offset %d)", self.name, token, pos)
                break

            self._emit(opcode)
            t = pos + len(opcode.name)
            shape = OPERANDS[opcode]

            if not shape:
                pos = t
                continue

            t = self._check(skip_space(self.source, t, self.end), t, shape[0])

            if shape == ("reg", "int"):
                register, t = self._register(t)
                self._emit(register)
                t = self._separator(t)
                eol = self._line_end(t)
                self._emit(self._integer(t, eol))
                pos = eol

            elif shape == ("reg", "reg"):
                dst, t = self._register(t)
                self._emit(dst)
                t = self._separator(t)
                eol = self._line_end(t)
                src, _ = self._register(t)
                self._emit(src)
                pos = eol

            elif shape == ("reg",):
                register, t = self._register(t)
                self._emit(register)
                pos = self._line_end(t)

            else:
                eol = self._line_end(t)
                label = self._label_id(t, eol)
                self._emit(label)
                if opcode == OpCode.LABEL:
                    if label in self.labels:
                        self._fail(t, "label id not already declared", str(label))
                    self.labels[label] = len(self.bytecode) - 1
                else:
                    self._references.append((label, t))
                pos = eol

        for label, offset in self._references:
            if label not in self.labels:
                self._fail(offset, "declared label id", str(label))

        logger.debug(
            "%s: assembled %d words, %d labels",
            self.name, len(self.bytecode), len(self.labels),
        )
        return CompiledProgram(
            name=self.name,
            bytecode=tuple(self.bytecode),
            labels=self.labels,
            source=self.source,
        )


def assemble(source: str, name: Optional[str] = None) -> CompiledProgram:
    """Assemble fight assembly source into a CompiledProgram."""
    return Assembler(source, name).assemble()


def read_source(path) -> str:
    """
    Read a program file.

    Bytes that are not valid UTF-8 become U+FFFD. Mnemonics and registers
    are ASCII, so such bytes can only end the program or show up in a
    diagnostic.

    Raises:
        LoadError: If the file is missing or unreadable
    """
    try:
        return Path(path).read_text(encoding="utf-8", errors="replace")
    except FileNotFoundError:
        raise LoadError(str(path), "no such file")
    except OSError as e:
        raise LoadError(str(path), str(e))


def load_program(path) -> CompiledProgram:
    """Read and assemble a program file; the file name becomes the program name."""
    return assemble(read_source(path), name=Path(path).name)


def disassemble(program: CompiledProgram) -> str:
    """Convert bytecode back to fight assembly, one instruction per line."""
    code = program.bytecode
    lines = []
    ip = 0

    while ip < len(code):
        try:
            opcode = OpCode(code[ip])
        except ValueError:
            break
        if ip + word_count(opcode) > len(code):
            break

        operands = []
        for kind, word in zip(OPERANDS[opcode], code[ip + 1:ip + word_count(opcode)]):
            operands.append(Register(word).name if kind == "reg" else str(word))

        if operands:
            lines.append(f"{opcode.name} {', '.join(operands)}")
        else:
            lines.append(opcode.name)
        ip += word_count(opcode)

    return "\n".join(lines)


# Bundled example programs
PROGRAMS = {
    "turtle": """STORE O0, 0
RET
""",

    "berserker": """STORE O0, 1
RET
""",

    "gambler": """STORE O0, 2
RET
""",

    # Attack while at least as healthy as the enemy, gamble when behind
    "tactician": """MOVE I0, C0
MOVE I1, E0
CMP
JMPLT 1
STORE O0, 1
RET
LABEL 1
STORE O0, 2
RET
""",

    # Count R0 down to zero, then attack
    "countdown": """STORE R0, 3
LABEL 0
DEC R0
MOVE I0, R0
STORE I1, 0
CMP
JMPGT 0
STORE O0, 1
RET
""",
}
