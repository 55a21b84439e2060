# src/vmgen/codegen.py
from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional, TextIO

from vmparse.ast import (
    ArithOp,
    ARITH_OPS,
    Category,
    Instruction,
    MEMORY_ACCESS,
    Segment,
    SEGMENTS,
    SourceLine,
)
from vmparse.errors import (
    InvalidIndexError,
    InvalidOperationError,
    InvalidSegmentError,
    UnsupportedOperatorError,
)

from .emit_asm import (
    AsmProgram,
    emit_assign,
    emit_at,
    emit_jump,
    emit_pop_to_d,
    emit_push_d,
    emit_select_top,
)

log = logging.getLogger(__name__)

# largest literal an A-instruction can load
MAX_LITERAL = 0x7FFF

TEMP_BASE = 5
TEMP_SIZE = 8
SCRATCH = "R13"  # pop address, never touched by arithmetic

TRUE = -1
FALSE = 0

_BASES: Dict[Segment, str] = {
    Segment.LOCAL: "LCL",
    Segment.ARGUMENT: "ARG",
    Segment.THIS: "THIS",
    Segment.THAT: "THAT",
}
_POINTERS = ("THIS", "THAT")

# characters a Hack symbol may not contain; symbols also may not start with a digit
_NOT_SYMBOL_RE = re.compile(r"[^\w.$:]|[^\x00-\x7f]")

_UNARY: Dict[ArithOp, str] = {
    ArithOp.NEG: "-M",
    ArithOp.NOT: "!M",
}
# x is the deeper cell (M), y was popped into D
_BINARY: Dict[ArithOp, str] = {
    ArithOp.ADD: "D+M",
    ArithOp.SUB: "M-D",
    ArithOp.AND: "D&M",
    ArithOp.OR: "D|M",
}
_COMPARE: Dict[ArithOp, str] = {
    ArithOp.EQ: "JEQ",
    ArithOp.LT: "JLT",
    ArithOp.GT: "JGT",
}


def symbol_name(name: str) -> str:
    """Turn a file stem into a valid Hack symbol prefix ('Stack-Test' -> 'Stack_Test')."""
    s = _NOT_SYMBOL_RE.sub("_", name)
    if s[:1].isdigit():
        s = "_" + s
    return s


@dataclass(frozen=True)
class Location:
    mode: str    # "constant" | "fixed" | "based"
    symbol: str  # register, base register or static symbol; "" for constants


class CodeGenerator:
    """Translate classified VM instructions into Hack assembly.

    Each instruction becomes one block, headed by a comment echoing the
    source line. A block is fully built before anything reaches the sink,
    so an instruction that fails leaves no output behind.
    """

    def __init__(self, sink: Optional[TextIO] = None, module_name: Optional[str] = None):
        self.sink: TextIO = sink if sink is not None else io.StringIO()
        self.module_name = symbol_name(module_name) if module_name else None
        self._labels = 0

    @property
    def label_counter(self) -> int:
        return self._labels

    # ----------------- dispatch -----------------

    def emit(self, ins: Instruction) -> None:
        if ins.category is Category.ARITHMETIC:
            self.emit_arithmetic(ins.arg1 or "", source=ins.source)
        elif ins.category in MEMORY_ACCESS:
            self.emit_push_pop(ins.category, ins.arg1 or "", ins.index, source=ins.source)
        else:
            raise UnsupportedOperatorError.at(
                f"no translation for '{ins.category.value}' commands", ins.source
            )

    # ----------------- arithmetic -----------------

    def emit_arithmetic(self, mnemonic: str, source: Optional[SourceLine] = None) -> None:
        op = ARITH_OPS.get(mnemonic)
        if op is None:
            raise UnsupportedOperatorError.at(f"no translation for operator '{mnemonic}'", source)

        p = AsmProgram()
        p.comment(source.text if source is not None else mnemonic)

        if op in _UNARY:
            emit_select_top(p)
            emit_assign(p, "M", _UNARY[op])
        elif op in _BINARY:
            emit_pop_to_d(p)
            emit_assign(p, "A", "A-1")
            emit_assign(p, "M", _BINARY[op])
        elif op in _COMPARE:
            self._compare(p, _COMPARE[op])
        else:
            raise UnsupportedOperatorError.at(f"no translation for operator '{mnemonic}'", source)

        self._flush(p)

    def _compare(self, p: AsmProgram, jump: str) -> None:
        n = self._labels
        self._labels += 1
        true_label = f"TRUE_{n}"
        end_label = f"END_{n}"

        emit_pop_to_d(p)
        emit_assign(p, "A", "A-1")
        emit_assign(p, "D", "M-D")          # x - y
        emit_at(p, true_label)
        emit_jump(p, "D", jump)
        emit_select_top(p)
        emit_assign(p, "M", str(FALSE))
        emit_at(p, end_label)
        emit_jump(p, "0", "JMP")
        p.label(true_label)
        emit_select_top(p)
        emit_assign(p, "M", str(TRUE))
        p.label(end_label)

    # ----------------- push / pop -----------------

    def resolve(self, segment: str, index: int, source: Optional[SourceLine] = None) -> Location:
        seg = SEGMENTS.get(segment)
        if seg is None:
            raise InvalidSegmentError.at(f"unknown segment '{segment}'", source)
        if index < 0:
            raise InvalidIndexError.at(f"negative index {index}", source)

        if seg is Segment.CONSTANT:
            if index > MAX_LITERAL:
                raise InvalidIndexError.at(f"constant {index} does not fit in 15 bits", source)
            return Location("constant", "")
        if seg in _BASES:
            if index > MAX_LITERAL:
                raise InvalidIndexError.at(f"offset {index} does not fit in 15 bits", source)
            return Location("based", _BASES[seg])
        if seg is Segment.POINTER:
            if index > 1:
                raise InvalidIndexError.at(f"pointer index must be 0 or 1, got {index}", source)
            return Location("fixed", _POINTERS[index])
        if seg is Segment.TEMP:
            if index >= TEMP_SIZE:
                raise InvalidIndexError.at(
                    f"temp index must be 0..{TEMP_SIZE - 1}, got {index}", source
                )
            return Location("fixed", f"R{TEMP_BASE + index}")
        if seg is Segment.STATIC:
            return Location("fixed", self.static_symbol(index))
        raise InvalidSegmentError.at(f"unknown segment '{segment}'", source)

    def static_symbol(self, index: int) -> str:
        if self.module_name:
            return f"{self.module_name}.{index}"
        return f"STATIC_{index}"

    def emit_push_pop(
        self,
        category: Category,
        segment: str,
        index: Optional[int],
        source: Optional[SourceLine] = None,
    ) -> None:
        if category not in MEMORY_ACCESS:
            raise InvalidOperationError.at(
                f"'{category.value}' is not a push or pop command", source
            )
        if index is None:
            raise InvalidIndexError.at("push/pop needs an index", source)

        loc = self.resolve(segment, index, source)
        p = AsmProgram()
        p.comment(source.text if source is not None else f"{category.value} {segment} {index}")

        if category is Category.PUSH:
            self._push(p, loc, index)
        else:
            if loc.mode == "constant":
                raise InvalidOperationError.at("cannot pop into the constant segment", source)
            self._pop(p, loc, index)

        self._flush(p)

    def _push(self, p: AsmProgram, loc: Location, index: int) -> None:
        if loc.mode == "constant":
            emit_at(p, index)
            emit_assign(p, "D", "A")
        elif loc.mode == "fixed":
            emit_at(p, loc.symbol)
            emit_assign(p, "D", "M")
        else:
            emit_at(p, index)
            emit_assign(p, "D", "A")
            emit_at(p, loc.symbol)
            emit_assign(p, "A", "D+M")      # base + index
            emit_assign(p, "D", "M")
        emit_push_d(p)

    def _pop(self, p: AsmProgram, loc: Location, index: int) -> None:
        if loc.mode == "fixed":
            emit_pop_to_d(p)
            emit_at(p, loc.symbol)
            emit_assign(p, "M", "D")
            return
        emit_at(p, index)
        emit_assign(p, "D", "A")
        emit_at(p, loc.symbol)
        emit_assign(p, "D", "D+M")          # target address
        emit_at(p, SCRATCH)
        emit_assign(p, "M", "D")
        emit_pop_to_d(p)
        emit_at(p, SCRATCH)
        emit_assign(p, "A", "M")
        emit_assign(p, "M", "D")

    # ----------------- output -----------------

    def _flush(self, p: AsmProgram) -> None:
        log.debug("emit %s (%d lines)", p.lines[0], len(p.lines) - 1)
        p.write_to(self.sink)
