# src/vmgen/emit_asm.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, TextIO


@dataclass
class AsmProgram:
    lines: List[str] = field(default_factory=list)

    def add(self, s: str) -> None:
        self.lines.append(s)

    def label(self, name: str) -> None:
        self.lines.append(f"({name})")

    def comment(self, text: str) -> None:
        self.lines.append(f"// {text}")

    def text(self) -> str:
        if not self.lines:
            return ""
        return "\n".join(self.lines) + "\n"

    def write_to(self, sink: TextIO) -> None:
        sink.write(self.text())


# ---- address / compute instructions ----

def emit_at(p: AsmProgram, symbol: str | int) -> None:
    p.add(f"@{symbol}")


def emit_assign(p: AsmProgram, dest: str, comp: str) -> None:
    p.add(f"{dest}={comp}")


def emit_jump(p: AsmProgram, comp: str, jump: str) -> None:
    p.add(f"{comp};{jump}")


# ---- stack idioms ----

def emit_push_d(p: AsmProgram) -> None:
    # *SP = D; SP++
    emit_at(p, "SP")
    emit_assign(p, "A", "M")
    emit_assign(p, "M", "D")
    emit_at(p, "SP")
    emit_assign(p, "M", "M+1")


def emit_pop_to_d(p: AsmProgram) -> None:
    # SP--; D = *SP, A is left pointing at the popped cell
    emit_at(p, "SP")
    emit_assign(p, "M", "M-1")
    emit_assign(p, "A", "M")
    emit_assign(p, "D", "M")


def emit_select_top(p: AsmProgram) -> None:
    # A = SP-1 (current top cell), SP unchanged
    emit_at(p, "SP")
    emit_assign(p, "A", "M-1")
