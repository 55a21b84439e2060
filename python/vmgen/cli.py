# src/vmgen/cli.py
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from vmparse.errors import OutputIOError, SourceIOError, TranslationError
from vmparse.parser import parse_text, read_text_blocked

from .translate import translate_file

TAG = "[vmtranslate]"


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(
        prog="vmtranslate",
        description="Translate stack VM code (push/pop/arithmetic) into Hack assembly",
    )
    ap.add_argument("input", help="Input .vm source file")
    ap.add_argument("output", nargs="?", help="Output .asm file (default: input with .asm suffix)")
    ap.add_argument("--buf", type=int, default=64 * 1024, help="Read buffer size")
    ap.add_argument("--check", action="store_true", help="Only parse and classify, write nothing")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging to stderr")
    args = ap.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    inp = Path(args.input)
    if not inp.exists():
        print(f"{TAG} ERROR: input file not found: {inp}", file=sys.stderr)
        return 2

    if args.check:
        try:
            res = parse_text(read_text_blocked(inp, args.buf))
        except SourceIOError as e:
            print(f"{TAG} ERROR: {e}", file=sys.stderr)
            return 2
        if res.errors:
            for e in res.errors:
                print(f"[parse error] line={e.line} col={e.column}: {e.message}", file=sys.stderr)
            return 1
        print(f"OK. {len(res.instructions)} instructions in {inp}")
        return 0

    out = Path(args.output) if args.output else inp.with_suffix(".asm")

    try:
        count = translate_file(inp, out, buf_size=args.buf)
    except OutputIOError as e:
        print(f"{TAG} ERROR: {e}", file=sys.stderr)
        return 3
    except SourceIOError as e:
        print(f"{TAG} ERROR: {e}", file=sys.stderr)
        return 2
    except TranslationError as e:
        print(f"{TAG} ERROR: {e}", file=sys.stderr)
        print(f"{TAG} NOTE: {out} is incomplete and must not be used", file=sys.stderr)
        return 1

    print(f"OK. {count} instructions -> {out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
