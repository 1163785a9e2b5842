from __future__ import annotations

from dataclasses import dataclass, field, replace


TERMINAL = "terminal"
VARIABLE = "variable"


@dataclass(frozen=True)
class Symbol:
    name: str
    kind: str  # "terminal" | "variable"
    line: int | None = field(default=None, compare=False)
    column: int | None = field(default=None, compare=False)
    synthetic: bool = field(default=False, compare=False)

    @property
    def is_terminal(self) -> bool:
        return self.kind == TERMINAL

    @property
    def is_variable(self) -> bool:
        return self.kind == VARIABLE

    def with_position(self, line: int | None, column: int | None) -> Symbol:
        return replace(self, line=line, column=column)

    def location(self) -> str:
        if self.line is None:
            return "?:?"
        return f"{self.line}:{self.column}"

    def __str__(self) -> str:
        return self.name


def terminal(name: str, line: int | None = None, column: int | None = None) -> Symbol:
    return Symbol(name, TERMINAL, line=line, column=column)


def variable(name: str, synthetic: bool = False) -> Symbol:
    return Symbol(name, VARIABLE, synthetic=synthetic)


EOF = terminal("$")
EPSILON = terminal("EPSILON")


def is_epsilon_alternative(alternative: list[Symbol] | tuple[Symbol, ...]) -> bool:
    return len(alternative) == 1 and alternative[0] == EPSILON


def symbol_sort_key(symbol: Symbol) -> tuple[int, str]:
    # EOF last, epsilon after regular terminals
    if symbol == EOF:
        return (2, symbol.name)
    if symbol == EPSILON:
        return (1, symbol.name)
    return (0, symbol.name)
