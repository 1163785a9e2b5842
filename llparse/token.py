from __future__ import annotations

from dataclasses import dataclass

from llparse.symbols import EOF, Symbol, terminal


@dataclass(frozen=True)
class Token:
    kind: str
    value: object
    line: int
    column: int

    def location(self) -> str:
        return f"{self.line}:{self.column}"

    def to_terminal(self) -> Symbol:
        if self.kind == "EOF":
            return EOF.with_position(self.line, self.column)
        return terminal(self.kind, self.line, self.column)
