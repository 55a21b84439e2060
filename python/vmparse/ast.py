from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional


@dataclass(frozen=True)
class SourceLine:
    text: str
    lineno: int  # 1-based, position in the raw input
    column: int = 1  # 1-based column of the first character in the raw line


@dataclass
class ParseError:
    message: str
    line: int
    column: int


# ---- Closed sets ----
class Category(Enum):
    ARITHMETIC = "arithmetic"
    PUSH = "push"
    POP = "pop"
    LABEL = "label"
    GOTO = "goto"
    IF_GOTO = "if-goto"
    FUNCTION = "function"
    RETURN = "return"
    CALL = "call"


class ArithOp(Enum):
    ADD = "add"
    SUB = "sub"
    NEG = "neg"
    EQ = "eq"
    LT = "lt"
    GT = "gt"
    AND = "and"
    OR = "or"
    NOT = "not"


class Segment(Enum):
    LOCAL = "local"
    ARGUMENT = "argument"
    THIS = "this"
    THAT = "that"
    POINTER = "pointer"
    TEMP = "temp"
    STATIC = "static"
    CONSTANT = "constant"


# command word -> category
COMMANDS: Dict[str, Category] = {
    "push": Category.PUSH,
    "pop": Category.POP,
    "label": Category.LABEL,
    "goto": Category.GOTO,
    "if-goto": Category.IF_GOTO,
    "function": Category.FUNCTION,
    "return": Category.RETURN,
    "call": Category.CALL,
}
COMMANDS.update({op.value: Category.ARITHMETIC for op in ArithOp})

ARITH_OPS: Dict[str, ArithOp] = {op.value: op for op in ArithOp}
SEGMENTS: Dict[str, Segment] = {seg.value: seg for seg in Segment}

# categories that carry "<segment> <index>" operands
MEMORY_ACCESS = (Category.PUSH, Category.POP)


# ---- Instructions ----
@dataclass
class Instruction:
    category: Category
    source: SourceLine
    arg1: Optional[str] = None   # operator for arithmetic, segment for push/pop
    index: Optional[int] = None

    @property
    def text(self) -> str:
        return self.source.text


@dataclass
class ParseResult:
    instructions: List[Instruction]
    errors: List[ParseError]
