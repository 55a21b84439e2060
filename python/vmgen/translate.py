# src/vmgen/translate.py
from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Iterable, Optional, TextIO

from vmparse.ast import SourceLine
from vmparse.errors import OutputIOError
from vmparse.parser import Parser, load, load_file

from .codegen import CodeGenerator

log = logging.getLogger(__name__)


def translate_lines(
    lines: Iterable[SourceLine],
    sink: TextIO,
    module_name: Optional[str] = None,
) -> int:
    """Translate cleaned source lines into `sink`, one block per instruction.

    Stops at the first error; whatever was written before it is partial
    output and must not be used. Returns the number of instructions.
    """
    parser = Parser(lines)
    gen = CodeGenerator(sink, module_name=module_name)
    count = 0
    while parser.has_next():
        gen.emit(parser.current_instruction())
        count += 1
        parser.advance()
    log.debug("translated %d instructions, %d comparison labels", count, gen.label_counter)
    return count


def translate_text(text: str, module_name: Optional[str] = None) -> str:
    out = io.StringIO()
    translate_lines(load(text), out, module_name=module_name)
    return out.getvalue()


def translate_file(
    src: str | Path,
    dst: str | Path,
    buf_size: int = 64 * 1024,
) -> int:
    """Translate `src` into `dst`, creating the parent directory of `dst`.

    Raises SourceIOError when `src` cannot be read and OutputIOError when
    `dst` cannot be written.
    """
    src = Path(src)
    dst = Path(dst)
    lines = load_file(src, buf_size)
    try:
        dst.parent.mkdir(parents=True, exist_ok=True)
        with open(dst, "w", encoding="utf-8", newline="\n") as f:
            return translate_lines(lines, f, module_name=src.stem)
    except OSError as e:
        raise OutputIOError(f"cannot write output file {dst}: {e}") from e
