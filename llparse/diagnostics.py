from __future__ import annotations

from dataclasses import dataclass, field

from llparse.symbols import Symbol


HINT_LINES = {
    "grammar_syntax": "Grammar rules look like `A -> x y | z`; check this line.",
    "invalid_grammar": "The grammar is inconsistent; every reachable variable needs rules.",
    "derivation_cycle": "Some variables derive each other without consuming input; break the cycle.",
    "empty_prefix": "Left factoring found an empty common prefix; the grammar input is malformed.",
    "not_ll1": "Two alternatives compete for the same lookahead; the grammar is not LL(1).",
    "unexpected_terminal": "This token was skipped; parsing resumes with the next one.",
    "no_production": "No rule starts with this token here; it was skipped.",
    "already_complete": "This parser already finished; create a new one for more input.",
    "unknown_char": "Character ignored by the tokenizer.",
    "unterminated_comment": "Block comment runs to the end of the file.",
    "number_too_big": "Integer literal does not fit in 10 digits.",
}


def hint_line(code: str) -> str:
    return HINT_LINES.get(code, "Something went wrong; check the input around this position.")


@dataclass
class LexWarning:
    code: str
    message: str
    line: int
    column: int

    def pretty(self, source_name: str | None = None) -> str:
        prefix = f"{source_name}:" if source_name else ""
        return f"{prefix}{self.line}:{self.column} [warning:{self.code}] {self.message}"


@dataclass
class LLParseError(Exception):
    code: str
    technical: str
    line: int = 0
    column: int = 0

    @property
    def hint(self) -> str:
        return hint_line(self.code)

    def pretty(self, source_name: str | None = None, source_text: str | None = None) -> str:
        prefix = f"{source_name}:" if source_name else ""
        base = (
            f"{prefix}{self.line}:{self.column} [{self.code}] {self.technical}\n"
            f"  {self.hint}"
        )
        frame = _source_frame(source_text, self.line, self.column)
        if frame:
            return f"{base}\n{frame}"
        return base

    def __str__(self) -> str:
        return self.pretty()


@dataclass
class GrammarError(LLParseError):
    symbols: tuple[Symbol, ...] = ()


@dataclass
class GrammarNotLL1Error(LLParseError):
    variable: Symbol | None = None
    terminal: Symbol | None = None
    existing: tuple[Symbol, ...] = ()
    incoming: tuple[Symbol, ...] = ()

    @property
    def key(self) -> tuple[Symbol | None, Symbol | None]:
        return self.variable, self.terminal


@dataclass
class ParseError(LLParseError):
    expected: tuple[Symbol, ...] = ()
    found: Symbol | None = None


@dataclass
class ParseAggregateError(Exception):
    errors: list[ParseError] = field(default_factory=list)

    def pretty(self, source_name: str | None = None, source_text: str | None = None) -> str:
        return "\n".join(err.pretty(source_name, source_text=source_text) for err in self.errors)

    def __str__(self) -> str:
        return self.pretty()


def not_ll1_error(
    variable: Symbol,
    terminal: Symbol,
    existing: tuple[Symbol, ...],
    incoming: tuple[Symbol, ...],
) -> GrammarNotLL1Error:
    return GrammarNotLL1Error(
        code="not_ll1",
        technical=(
            f"Conflict detected for ({variable}, {terminal}): "
            f"{_rhs_text(existing)}  <->  {_rhs_text(incoming)}"
        ),
        variable=variable,
        terminal=terminal,
        existing=existing,
        incoming=incoming,
    )


def _rhs_text(rhs: tuple[Symbol, ...]) -> str:
    return " ".join(str(sym) for sym in rhs)


def _source_frame(source_text: str | None, line: int, column: int) -> str:
    if not source_text:
        return ""
    lines = source_text.splitlines()
    if line < 1 or line > len(lines):
        return ""
    content = lines[line - 1]
    caret_pos = max(column, 1)
    caret_line = " " * (caret_pos - 1) + "^"
    return f"  | {content}\n  | {caret_line}"
