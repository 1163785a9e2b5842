"""Reader for textual grammar definitions.

One rule per line::

    # comments run to the end of the line
    E  -> T E2
    E2 -> '+' T E2
        | EPSILON
    T  -> id

The first left-hand side is the start variable. Every name that appears on a
left-hand side is a variable; any other name, and any quoted name, is a
terminal. ``EPSILON`` (or ``ε``) spells the empty alternative. ``$`` is kept
for the end of input and cannot name a terminal.
"""

from __future__ import annotations

import re
from pathlib import Path

from llparse.diagnostics import GrammarError
from llparse.grammar import EPSILON_SPELLINGS, Grammar
from llparse.symbols import EOF, EPSILON, Symbol, terminal, variable


TOKEN_RE = re.compile(
    r"""
    (?P<quoted>'[^']*'|"[^"]*")
    | (?P<arrow>->|::=)
    | (?P<pipe>\|)
    | (?P<comment>\#.*)
    | (?P<name>(?:[^\s|'"#:-]|-(?!>)|:(?!:=))(?:[^\s|"#:-]|-(?!>)|:(?!:=))*)
    | (?P<bad>\S)
    """,
    re.VERBOSE,
)


class _Item:
    __slots__ = ("kind", "text", "column")

    def __init__(self, kind: str, text: str, column: int) -> None:
        self.kind = kind
        self.text = text
        self.column = column


def read_grammar(text: str) -> Grammar:
    rules: list[tuple[str, list[list[_Item]], int]] = []
    order: list[str] = []

    for line_no, raw in enumerate(text.splitlines(), start=1):
        items = _scan_line(raw, line_no)
        if not items:
            continue

        if items[0].kind == "pipe":
            if not rules:
                raise _syntax_error("Continuation `|` before any rule.", line_no, items[0].column)
            lhs_name = rules[-1][0]
            body = items
        else:
            if len(items) < 2 or items[0].kind != "name" or items[1].kind != "arrow":
                raise _syntax_error(
                    "Expected `NAME -> alternatives`.", line_no, items[0].column
                )
            lhs_name = items[0].text
            body = [_Item("pipe", "|", items[1].column)] + items[2:]

        alternatives: list[list[_Item]] = []
        for item in body:
            if item.kind == "arrow":
                raise _syntax_error("Unexpected `->` inside alternatives.", line_no, item.column)
            if item.kind == "pipe":
                alternatives.append([])
            else:
                alternatives[-1].append(item)
        for alt, pipe in zip(alternatives, [i for i in body if i.kind == "pipe"]):
            if not alt:
                raise _syntax_error(
                    "Empty alternative; write EPSILON for the empty string.",
                    line_no,
                    pipe.column,
                )

        if lhs_name not in order:
            order.append(lhs_name)
        rules.append((lhs_name, alternatives, line_no))

    if not rules:
        raise GrammarError(code="grammar_syntax", technical="Grammar text contains no rules.")

    variable_names = set(order)
    variables = [variable(name) for name in order]
    terminals: list[Symbol] = []
    relations: dict[Symbol, list[list[Symbol]]] = {var: [] for var in variables}
    uses_epsilon = False

    for lhs_name, alternatives, line_no in rules:
        for alt in alternatives:
            rhs: list[Symbol] = []
            for item in alt:
                if item.kind == "name" and item.text in EPSILON_SPELLINGS:
                    rhs.append(EPSILON)
                    continue
                if item.kind == "name" and item.text in variable_names:
                    rhs.append(variable(item.text))
                    continue
                name = item.text[1:-1] if item.kind == "quoted" else item.text
                sym = terminal(name)
                if sym == EOF or name in EPSILON_SPELLINGS:
                    raise _syntax_error(
                        f"{item.text} is reserved for the end-of-input and empty-string markers.",
                        line_no,
                        item.column,
                    )
                if sym not in terminals:
                    terminals.append(sym)
                rhs.append(sym)
            if EPSILON in rhs:
                if len(rhs) > 1:
                    raise _syntax_error(
                        "EPSILON must be the only symbol of its alternative.",
                        line_no,
                        alt[0].column,
                    )
                uses_epsilon = True
            relations[variable(lhs_name)].append(rhs)

    grammar = Grammar(
        variables=variables,
        terminals=terminals,
        relations=relations,
        start=variables[0],
    )
    if uses_epsilon:
        grammar.add_epsilon_terminal()
    grammar.validate()
    return grammar


def read_grammar_file(path: str | Path) -> Grammar:
    return read_grammar(Path(path).read_text(encoding="utf-8"))


def _scan_line(raw: str, line_no: int) -> list[_Item]:
    items: list[_Item] = []
    for match in TOKEN_RE.finditer(raw):
        kind = match.lastgroup or "bad"
        if kind == "comment":
            break
        if kind == "bad":
            raise _syntax_error(f"Unexpected character {match.group()!r}.", line_no, match.start() + 1)
        if kind == "quoted" and len(match.group()) == 2:
            raise _syntax_error("Quoted terminal is empty.", line_no, match.start() + 1)
        items.append(_Item(kind, match.group(), match.start() + 1))
    return items


def _syntax_error(message: str, line: int, column: int) -> GrammarError:
    return GrammarError(code="grammar_syntax", technical=message, line=line, column=column)
