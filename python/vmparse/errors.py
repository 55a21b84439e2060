from __future__ import annotations
from typing import Optional

from .ast import SourceLine


class TranslationError(Exception):
    """Base class for everything that aborts a translation run.

    Carries the literal text of the offending source line and its 1-based
    position in the raw input when those are known.
    """

    def __init__(self, message: str, *, text: Optional[str] = None, line: Optional[int] = None,
                 column: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.text = text
        self.line = line
        self.column = column

    @classmethod
    def at(cls, message: str, source: Optional[SourceLine],
           offset: Optional[int] = None) -> "TranslationError":
        """Build an error for `source`; `offset` is a 1-based column in its cleaned text."""
        if source is None:
            return cls(message)
        column = source.column + offset - 1 if offset is not None else None
        return cls(message, text=source.text, line=source.lineno, column=column)

    def __str__(self) -> str:
        out = ""
        if self.line is not None:
            out += f"line {self.line}"
            if self.column is not None:
                out += f", col {self.column}"
            out += ": "
        out += self.message
        if self.text is not None:
            out += f": '{self.text}'"
        return out


class SourceIOError(TranslationError):
    """Source cannot be read or the output cannot be written."""


class OutputIOError(SourceIOError):
    """Output file cannot be created or written."""


class UnknownCommandError(TranslationError):
    pass


class UnexpectedEndError(TranslationError):
    pass


class MalformedInstructionError(TranslationError):
    pass


class NotANumberError(TranslationError):
    pass


class InvalidSegmentError(TranslationError):
    pass


class InvalidIndexError(TranslationError):
    pass


class InvalidOperationError(TranslationError):
    pass


class UnsupportedOperatorError(TranslationError):
    pass
