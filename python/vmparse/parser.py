from __future__ import annotations

import logging
import re
from functools import partial
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from lark import Lark, Transformer, exceptions

from .ast import *
from .errors import (
    TranslationError,
    SourceIOError,
    UnknownCommandError,
    UnexpectedEndError,
    MalformedInstructionError,
    NotANumberError,
)

log = logging.getLogger(__name__)

COMMENT_MARKER = "//"
_DEC_RE = re.compile(r"^[+-]?[0-9]+$")


# -------------------------
# Loading / cleaning
# -------------------------
def clean_lines(raw_lines: Iterable[str]) -> List[str]:
    """Trim every line and drop blank lines and whole-line comments.

    Inline trailing comments are kept, only lines that start with the marker
    are comments. Applying this twice gives the same result as once.
    """
    return [s.text for s in _clean(raw_lines)]


def _clean(raw_lines: Iterable[str]) -> List[SourceLine]:
    out: List[SourceLine] = []
    for lineno, raw in enumerate(raw_lines, start=1):
        raw = raw.rstrip("\r")
        line = raw.strip()
        if not line or line.startswith(COMMENT_MARKER):
            continue
        indent = len(raw) - len(raw.lstrip())
        out.append(SourceLine(text=line, lineno=lineno, column=indent + 1))
    return out


def load(raw_text: str) -> List[SourceLine]:
    # split on '\n' only so line numbers match what an editor shows
    lines = _clean(raw_text.split("\n"))
    log.debug("loaded %d source lines", len(lines))
    return lines


def read_text_blocked(path: str | Path, buf_size: int = 64 * 1024) -> str:
    # block reads, whole file is consumed before translation starts
    chunks = []
    try:
        with open(path, "r", encoding="utf-8") as f:
            for part in iter(partial(f.read, buf_size), ""):
                chunks.append(part)
    except (OSError, UnicodeDecodeError) as e:
        raise SourceIOError(f"cannot read input file {path}: {e}") from e
    return "".join(chunks)


def load_file(path: str | Path, buf_size: int = 64 * 1024) -> List[SourceLine]:
    return load(read_text_blocked(path, buf_size))


# -------------------------
# Tokenizer
# -------------------------
class WordCollector(Transformer):
    def start(self, items):
        # (word, 1-based column within the cleaned line)
        return [(str(t), t.column) for t in items]


def make_parser() -> Lark:
    with open(__file__.replace("parser.py", "vm_line.lark"), "r", encoding="utf-8") as f:
        grammar = f.read()
    return Lark(grammar, start="start", parser="lalr")


_PARSER: Optional[Lark] = None


def split_words(source: SourceLine) -> List[Tuple[str, int]]:
    global _PARSER
    if _PARSER is None:
        _PARSER = make_parser()
    try:
        tree = _PARSER.parse(source.text)
    except exceptions.UnexpectedInput as e:
        raise MalformedInstructionError.at("cannot split line", source, e.column) from e
    return WordCollector().transform(tree)


def tokenize(source: SourceLine) -> List[str]:
    return [word for word, _ in split_words(source)]


# -------------------------
# Cursor
# -------------------------
class Parser:
    """Cursor over cleaned source lines.

    Classification and field extraction always look at the line under the
    cursor; nothing is cached between lines except the current word split.
    """

    def __init__(self, lines: Iterable[SourceLine]):
        self.lines: List[SourceLine] = list(lines)
        self.pos = 0
        self._words: Optional[List[Tuple[str, int]]] = None

    @classmethod
    def from_text(cls, raw_text: str) -> "Parser":
        return cls(load(raw_text))

    @classmethod
    def from_file(cls, path: str | Path, buf_size: int = 64 * 1024) -> "Parser":
        return cls(load_file(path, buf_size))

    def has_next(self) -> bool:
        return self.pos < len(self.lines)

    def advance(self) -> None:
        # no-op once exhausted
        if self.has_next():
            self.pos += 1
            self._words = None

    @property
    def current_line(self) -> Optional[SourceLine]:
        if self.has_next():
            return self.lines[self.pos]
        return None

    def _line(self) -> SourceLine:
        line = self.current_line
        if line is None:
            raise UnexpectedEndError("no current instruction, input is exhausted")
        return line

    def _split(self) -> List[Tuple[str, int]]:
        if self._words is None:
            self._words = split_words(self._line())
        return self._words

    def current_category(self) -> Category:
        line = self._line()
        words = self._split()
        head, col = words[0] if words else ("", 1)
        category = COMMANDS.get(head)
        if category is None:
            raise UnknownCommandError.at(f"unknown command '{head}'", line, col)
        return category

    def current_segment(self) -> str:
        line = self._line()
        if self.current_category() is Category.ARITHMETIC:
            return line.text
        words = self._split()
        if len(words) < 2:
            # missing word: point just past the end of the line
            raise MalformedInstructionError.at(
                "expected an argument after the command", line, len(line.text) + 1
            )
        return words[1][0]

    def current_index(self) -> int:
        line = self._line()
        words = self._split()
        if len(words) < 3:
            raise MalformedInstructionError.at(
                "expected '<command> <segment> <index>'", line, len(line.text) + 1
            )
        tok, col = words[2]
        if not _DEC_RE.match(tok):
            raise NotANumberError.at(f"index '{tok}' is not a base-10 integer", line, col)
        return int(tok, 10)

    def current_instruction(self) -> Instruction:
        line = self._line()
        category = self.current_category()
        if category is Category.ARITHMETIC:
            return Instruction(category=category, source=line, arg1=self.current_segment())
        if category in MEMORY_ACCESS:
            return Instruction(
                category=category,
                source=line,
                arg1=self.current_segment(),
                index=self.current_index(),
            )
        # control commands: fields are not extracted
        return Instruction(category=category, source=line)


def parse_text(text: str) -> ParseResult:
    """Classify a whole program without raising.

    Stops at the first bad line; the instructions before it are returned
    together with the error.
    """
    parser = Parser.from_text(text)
    instructions: List[Instruction] = []
    while parser.has_next():
        try:
            instructions.append(parser.current_instruction())
        except TranslationError as e:
            return ParseResult(
                instructions=instructions,
                errors=[ParseError(message=e.message, line=e.line or 0, column=e.column or 1)],
            )
        parser.advance()
    return ParseResult(instructions=instructions, errors=[])
