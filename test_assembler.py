"""
Unit tests for the fight assembler
"""

import os
import tempfile
import unittest

from fightvm.assembler import (
    PROGRAMS,
    CompiledProgram,
    assemble,
    disassemble,
    load_program,
)
from fightvm.errors import AssemblyError, LoadError
from fightvm.symbols import OpCode, Register


class TestEmission(unittest.TestCase):
    """Bytecode produced for each operand shape"""

    def test_store(self):
        program = assemble("STORE R0, 7")
        self.assertEqual(program.bytecode, (OpCode.STORE, Register.R0, 7))

    def test_move_keeps_written_order(self):
        program = assemble("MOVE O0, R0")
        self.assertEqual(program.bytecode, (OpCode.MOVE, Register.O0, Register.R0))

    def test_single_register_ops(self):
        program = assemble("INC R1\nDEC R2\nINCEQ C0\nDECEQ E0\n")
        self.assertEqual(program.bytecode, (
            OpCode.INC, Register.R1,
            OpCode.DEC, Register.R2,
            OpCode.INCEQ, Register.C0,
            OpCode.DECEQ, Register.E0,
        ))

    def test_no_operand_ops(self):
        program = assemble("CMP\nADD\nSUB\nMUL\nRET")
        self.assertEqual(program.bytecode, (
            OpCode.CMP, OpCode.ADD, OpCode.SUB, OpCode.MUL, OpCode.RET,
        ))

    def test_jumps(self):
        program = assemble("LABEL 3\nJMP 3\nJMPEQ 3\nJMPNE 3\nJMPGT 3\nJMPLT 3\n")
        self.assertEqual(program.bytecode, (
            OpCode.LABEL, 3,
            OpCode.JMP, 3,
            OpCode.JMPEQ, 3,
            OpCode.JMPNE, 3,
            OpCode.JMPGT, 3,
            OpCode.JMPLT, 3,
        ))

    def test_label_records_its_operand_index(self):
        program = assemble("STORE R0, 1\nLABEL 2\nRET\n")
        self.assertEqual(program.labels[2], 4)
        self.assertEqual(program.bytecode[4], 2)

    def test_integer_bases(self):
        self.assertEqual(assemble("STORE R1, 0x10").bytecode[2], 16)
        self.assertEqual(assemble("STORE R1, 010").bytecode[2], 8)
        self.assertEqual(assemble("STORE R1, -3").bytecode[2], -3)

    def test_text_after_integer_ignored(self):
        program = assemble("STORE R1, 12 twelve\nRET")
        self.assertEqual(program.bytecode, (OpCode.STORE, Register.R1, 12, OpCode.RET))

    def test_comma_is_optional(self):
        self.assertEqual(assemble("STORE R2 5").bytecode, (OpCode.STORE, Register.R2, 5))

    def test_operands_may_span_lines(self):
        program = assemble("STORE\nR0,\n9")
        self.assertEqual(program.bytecode, (OpCode.STORE, Register.R0, 9))

    def test_register_matched_by_prefix(self):
        self.assertEqual(assemble("INC R0garbage").bytecode, (OpCode.INC, Register.R0))

    def test_indentation_and_blank_lines(self):
        program = assemble("\n\n    STORE O0, 1\n\t\n  RET\n\n")
        self.assertEqual(program.bytecode, (OpCode.STORE, Register.O0, 1, OpCode.RET))


class TestProgramEnd(unittest.TestCase):
    """Where assembly stops without an error"""

    def test_empty_source(self):
        program = assemble("")
        self.assertEqual(program.bytecode, ())
        self.assertEqual(len(program), 0)

    def test_trailing_garbage_ends_program(self):
        program = assemble("STORE R0, 1\nhello world\nRET\n")
        self.assertEqual(program.bytecode, (OpCode.STORE, Register.R0, 1))

    def test_mnemonics_are_case_sensitive(self):
        self.assertEqual(assemble("store R0, 1").bytecode, ())

    def test_mnemonic_must_be_whole_token(self):
        self.assertEqual(assemble("CMPX\nRET").bytecode, ())


class TestAssemblyErrors(unittest.TestCase):

    def assertRejected(self, source, expected_fragment):
        with self.assertRaises(AssemblyError) as ctx:
            assemble(source, name="bad.asm")
        self.assertIn(expected_fragment, ctx.exception.expected)
        return ctx.exception

    def test_unknown_register(self):
        error = self.assertRejected("STORE X0, 1", "register")
        self.assertEqual(error.offset, 6)
        self.assertEqual(error.found, "X0,")
        self.assertEqual((error.line, error.column), (1, 7))

    def test_missing_register_at_end(self):
        error = self.assertRejected("INC", "register")
        self.assertEqual(error.found, "")

    def test_bad_integer(self):
        error = self.assertRejected("STORE R0, abc", "integer")
        self.assertEqual(error.found, "abc")

    def test_missing_integer(self):
        error = self.assertRejected("STORE R0", "integer")
        self.assertEqual(error.offset, 8)
        self.assertEqual(error.found, "")

    def test_missing_second_register(self):
        error = self.assertRejected("STORE R0, 1\nMOVE O0, Q1", "register")
        self.assertEqual(error.offset, 21)
        self.assertEqual((error.line, error.column), (2, 10))

    def test_undeclared_label(self):
        error = self.assertRejected("JMP 4\nRET", "declared label")
        self.assertEqual(error.found, "4")

    def test_label_out_of_range(self):
        self.assertRejected("LABEL 10", "label id")
        self.assertRejected("LABEL -1", "label id")
        self.assertRejected("JMP 12", "label id")

    def test_duplicate_label(self):
        self.assertRejected("LABEL 1\nLABEL 1", "not already declared")

    def test_forward_reference_allowed(self):
        program = assemble("JMP 5\nSTORE O0, 2\nLABEL 5\nRET")
        self.assertEqual(program.labels[5], 6)

    def test_diagnostic_fields(self):
        error = self.assertRejected("STORE R0, nope", "integer")
        self.assertEqual(error.as_dict(), {
            "name": "bad.asm",
            "offset": 10,
            "line": 1,
            "column": 11,
            "expected": "integer",
            "found": "nope",
        })
        self.assertIn("bad.asm:1:11", str(error))


class TestCompiledProgram(unittest.TestCase):
    """Validation of hand-built bytecode"""

    def test_immutable(self):
        program = assemble("LABEL 0\nRET")
        with self.assertRaises(Exception):
            program.bytecode = ()
        with self.assertRaises(TypeError):
            program.labels[1] = 0

    def test_hashable(self):
        first = assemble("LABEL 0\nRET", name="a")
        second = assemble("LABEL 0\nRET", name="a")
        self.assertEqual(first, second)
        self.assertEqual(len({first, second}), 1)
        self.assertEqual(hash(first), hash(second))

    def test_register_out_of_range(self):
        with self.assertRaises(ValueError):
            CompiledProgram(bytecode=(OpCode.INC, 99))

    def test_jump_without_label(self):
        with self.assertRaises(ValueError):
            CompiledProgram(bytecode=(OpCode.JMP, 1))

    def test_label_must_point_at_label_operand(self):
        with self.assertRaises(ValueError):
            CompiledProgram(bytecode=(OpCode.LABEL, 1, OpCode.RET), labels={1: 2})

    def test_truncated_instruction(self):
        with self.assertRaises(ValueError):
            CompiledProgram(bytecode=(OpCode.STORE, Register.R0))

    def test_words_after_unknown_opcode_not_checked(self):
        program = CompiledProgram(bytecode=(OpCode.RET, 42, OpCode.INC, 99))
        self.assertEqual(len(program), 4)


class TestDisassemble(unittest.TestCase):

    def test_canonical_text(self):
        program = assemble("STORE R0, 0x10\nMOVE O0,R0\nLABEL 1\nJMPNE 1\nRET")
        self.assertEqual(
            disassemble(program),
            "STORE R0, 16\nMOVE O0, R0\nLABEL 1\nJMPNE 1\nRET",
        )

    def test_reassembles_to_same_bytecode(self):
        for name, source in PROGRAMS.items():
            program = assemble(source, name=name)
            again = assemble(disassemble(program), name=name)
            self.assertEqual(again.bytecode, program.bytecode, name)
            self.assertEqual(dict(again.labels), dict(program.labels), name)


class TestLoadProgram(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def test_load(self):
        path = os.path.join(self.tmp.name, "fighter.asm")
        with open(path, "w") as f:
            f.write("STORE O0, 1\nRET\n")
        program = load_program(path)
        self.assertEqual(program.name, "fighter.asm")
        self.assertEqual(program.bytecode, (OpCode.STORE, Register.O0, 1, OpCode.RET))

    def test_missing_file(self):
        path = os.path.join(self.tmp.name, "missing.asm")
        with self.assertRaises(LoadError) as ctx:
            load_program(path)
        self.assertEqual(ctx.exception.path, path)

    def test_latin1_trailing_text(self):
        path = os.path.join(self.tmp.name, "notes.asm")
        with open(path, "wb") as f:
            f.write(b"STORE O0, 1\nRET\n; caf\xe9 notes\n")
        program = load_program(path)
        self.assertEqual(program.bytecode, (OpCode.STORE, Register.O0, 1, OpCode.RET))

    def test_binary_file_is_empty_program(self):
        path = os.path.join(self.tmp.name, "binary.asm")
        with open(path, "wb") as f:
            f.write(b"\xff\xfe\xfa")
        self.assertEqual(load_program(path).bytecode, ())

    def test_directory(self):
        with self.assertRaises(LoadError):
            load_program(self.tmp.name)

    def test_assembly_error_carries_file_name(self):
        path = os.path.join(self.tmp.name, "broken.asm")
        with open(path, "w") as f:
            f.write("INC Z9\n")
        with self.assertRaises(AssemblyError) as ctx:
            load_program(path)
        self.assertEqual(ctx.exception.name, "broken.asm")


class TestBundledPrograms(unittest.TestCase):

    def test_all_assemble(self):
        for name, source in PROGRAMS.items():
            program = assemble(source, name=name)
            self.assertGreater(len(program), 0, name)


if __name__ == "__main__":
    unittest.main()
