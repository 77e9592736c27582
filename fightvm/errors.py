"""
Error types for loading and assembling fight programs.
"""

from typing import Optional


class FightVMError(Exception):
    """Base class for per-program failures."""


class LoadError(FightVMError):
    """A program file could not be read."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class AssemblyError(FightVMError):
    """
    A program was rejected by the assembler.

    Attributes:
        offset: Character offset into the source where the problem was found
        expected: What the assembler was looking for
        found: The text it found instead (empty at end of input)
        line: 1-based line number of ``offset``
        column: 1-based column of ``offset``
        name: Program name, when known
    """

    def __init__(
        self,
        offset: int,
        expected: str,
        found: str,
        source: str = "",
        name: Optional[str] = None,
    ):
        self.offset = offset
        self.expected = expected
        self.found = found
        self.name = name
        self.line = source.count("\n", 0, offset) + 1
        self.column = offset - (source.rfind("\n", 0, offset) + 1) + 1
        super().__init__(str(self))

    def __str__(self) -> str:
        where = f"{self.name}:" if self.name else ""
        found = repr(self.found) if self.found else "end of input"
        return (
            f"{where}{self.line}:{self.column}: expected {self.expected}, "
            f"found {found}"
        )

    def as_dict(self) -> dict:
        return {
            "name": self.name,
            "offset": self.offset,
            "line": self.line,
            "column": self.column,
            "expected": self.expected,
            "found": self.found,
        }
