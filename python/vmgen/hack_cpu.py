# src/vmgen/hack_cpu.py
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

RAM_SIZE = 0x8000
VAR_BASE = 16

PREDEFINED: Dict[str, int] = {
    "SP": 0, "LCL": 1, "ARG": 2, "THIS": 3, "THAT": 4,
    "SCREEN": 0x4000, "KBD": 0x6000,
}
PREDEFINED.update({f"R{i}": i for i in range(16)})

_Comp = Callable[[int, int, int], int]

# (a, d, m) -> value; commuted spellings are accepted too
_COMP: Dict[str, _Comp] = {
    "0": lambda a, d, m: 0,
    "1": lambda a, d, m: 1,
    "-1": lambda a, d, m: -1,
    "D": lambda a, d, m: d,
    "A": lambda a, d, m: a,
    "M": lambda a, d, m: m,
    "!D": lambda a, d, m: ~d,
    "!A": lambda a, d, m: ~a,
    "!M": lambda a, d, m: ~m,
    "-D": lambda a, d, m: -d,
    "-A": lambda a, d, m: -a,
    "-M": lambda a, d, m: -m,
    "D+1": lambda a, d, m: d + 1,
    "A+1": lambda a, d, m: a + 1,
    "M+1": lambda a, d, m: m + 1,
    "D-1": lambda a, d, m: d - 1,
    "A-1": lambda a, d, m: a - 1,
    "M-1": lambda a, d, m: m - 1,
    "D+A": lambda a, d, m: d + a,
    "A+D": lambda a, d, m: d + a,
    "D+M": lambda a, d, m: d + m,
    "M+D": lambda a, d, m: d + m,
    "D-A": lambda a, d, m: d - a,
    "D-M": lambda a, d, m: d - m,
    "A-D": lambda a, d, m: a - d,
    "M-D": lambda a, d, m: m - d,
    "D&A": lambda a, d, m: d & a,
    "A&D": lambda a, d, m: d & a,
    "D&M": lambda a, d, m: d & m,
    "M&D": lambda a, d, m: d & m,
    "D|A": lambda a, d, m: d | a,
    "A|D": lambda a, d, m: d | a,
    "D|M": lambda a, d, m: d | m,
    "M|D": lambda a, d, m: d | m,
}

_JUMP: Dict[str, Callable[[int], bool]] = {
    "JGT": lambda v: v > 0,
    "JEQ": lambda v: v == 0,
    "JGE": lambda v: v >= 0,
    "JLT": lambda v: v < 0,
    "JNE": lambda v: v != 0,
    "JLE": lambda v: v <= 0,
    "JMP": lambda v: True,
}

_LABEL_RE = re.compile(r"^\(([A-Za-z_.$:][\w.$:]*)\)$")
_SYMBOL_RE = re.compile(r"^[A-Za-z_.$:][\w.$:]*$")
_C_RE = re.compile(r"^(?:(?P<dest>[ADM]{1,3})=)?(?P<comp>[^;=]+)(?:;(?P<jump>J[A-Z]{2}))?$")


def to_word(x: int) -> int:
    """Wrap x to a signed 16-bit value."""
    x &= 0xFFFF
    return x - 0x10000 if x & 0x8000 else x


@dataclass
class Op:
    kind: str                  # "A" | "C"
    line: int
    value: int = 0             # A: resolved address/literal
    dest: str = ""
    comp: str = ""
    jump: Optional[str] = None


def _strip(raw: str) -> str:
    pos = raw.find("//")
    if pos >= 0:
        raw = raw[:pos]
    return raw.strip()


def assemble(source: str | Iterable[str]) -> tuple[List[Op], Dict[str, int]]:
    """Two passes: label addresses first, then symbols and variables."""
    lines = source.split("\n") if isinstance(source, str) else list(source)

    symbols: Dict[str, int] = dict(PREDEFINED)
    body: List[tuple[int, str]] = []
    for lineno, raw in enumerate(lines, start=1):
        s = _strip(raw)
        if not s:
            continue
        m = _LABEL_RE.match(s)
        if m:
            name = m.group(1)
            if name in symbols:
                raise ValueError(f"line {lineno}: label redefined: {name}")
            symbols[name] = len(body)
            continue
        body.append((lineno, s))

    ops: List[Op] = []
    next_var = VAR_BASE
    for lineno, s in body:
        if s.startswith("@"):
            ref = s[1:]
            if ref.isdigit():
                value = int(ref)
            elif _SYMBOL_RE.match(ref):
                if ref not in symbols:
                    symbols[ref] = next_var
                    next_var += 1
                value = symbols[ref]
            else:
                raise ValueError(f"line {lineno}: bad A-instruction: {s}")
            if value > 0x7FFF:
                raise ValueError(f"line {lineno}: literal out of range: {s}")
            ops.append(Op("A", lineno, value=value))
            continue

        m = _C_RE.match(s)
        if not m or m.group("comp") not in _COMP:
            raise ValueError(f"line {lineno}: bad C-instruction: {s}")
        jump = m.group("jump")
        if jump is not None and jump not in _JUMP:
            raise ValueError(f"line {lineno}: bad jump: {s}")
        ops.append(Op("C", lineno, dest=m.group("dest") or "", comp=m.group("comp"), jump=jump))

    return ops, symbols


class HackCPU:
    """Minimal Hack machine: A, D, PC and a 32K word RAM."""

    def __init__(self, source: str | Iterable[str], ram: Optional[Dict[int, int]] = None):
        self.rom, self.symbols = assemble(source)
        self.ram: List[int] = [0] * RAM_SIZE
        self.a = 0
        self.d = 0
        self.pc = 0
        for addr, value in (ram or {}).items():
            self.ram[addr] = to_word(value)

    def _addr(self, op: Op) -> int:
        if not 0 <= self.a < RAM_SIZE:
            raise IndexError(f"line {op.line}: RAM address out of range: {self.a}")
        return self.a

    def step(self) -> None:
        op = self.rom[self.pc]
        if op.kind == "A":
            self.a = op.value
            self.pc += 1
            return

        m = self.ram[self._addr(op)] if "M" in op.comp else 0
        value = to_word(_COMP[op.comp](self.a, self.d, m))
        # M is written through the A value from before this instruction
        if "M" in op.dest:
            self.ram[self._addr(op)] = value
        target = self.a
        if "A" in op.dest:
            self.a = value
        if "D" in op.dest:
            self.d = value

        if op.jump is not None and _JUMP[op.jump](value):
            self.pc = target
        else:
            self.pc += 1

    def run(self, max_steps: int = 100_000) -> int:
        steps = 0
        while 0 <= self.pc < len(self.rom):
            if steps >= max_steps:
                raise RuntimeError(f"step limit {max_steps} reached at pc={self.pc}")
            self.step()
            steps += 1
        return steps

    @property
    def sp(self) -> int:
        return self.ram[PREDEFINED["SP"]]

    def stack(self, base: int = 256) -> List[int]:
        return self.ram[base:self.sp]

    def peek(self, symbol: str) -> int:
        return self.ram[self.symbols[symbol]]
