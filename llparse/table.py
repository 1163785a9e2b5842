from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from llparse.attributes import AttributeSets, compute_first_sets, compute_follow_sets, first_of_sequence
from llparse.diagnostics import not_ll1_error
from llparse.grammar import Grammar
from llparse.symbols import EPSILON, Symbol, symbol_sort_key


LOGGER = logging.getLogger(__name__)

TableKey = tuple[Symbol, Symbol]


@dataclass(frozen=True)
class Conflict:
    variable: Symbol
    terminal: Symbol
    existing: tuple[Symbol, ...]
    incoming: tuple[Symbol, ...]

    def __str__(self) -> str:
        old = " ".join(str(sym) for sym in self.existing)
        new = " ".join(str(sym) for sym in self.incoming)
        return f"({self.variable}, {self.terminal}): {old}  <->  {new}"


class ParseTable:
    """Read-only LL(1) prediction table plus the start variable it drives."""

    def __init__(self, entries: Mapping[TableKey, tuple[Symbol, ...]], start: Symbol) -> None:
        self._entries = MappingProxyType(dict(entries))
        self.start = start

    def lookup(self, variable: Symbol, terminal: Symbol) -> tuple[Symbol, ...] | None:
        return self._entries.get((variable, terminal))

    def items(self) -> Iterator[tuple[TableKey, tuple[Symbol, ...]]]:
        return iter(self._entries.items())

    def variables(self) -> list[Symbol]:
        out: list[Symbol] = []
        for var, _ in self._entries:
            if var not in out:
                out.append(var)
        return out

    def terminals(self) -> list[Symbol]:
        return sorted({term for _, term in self._entries}, key=symbol_sort_key)

    def expected_terminals(self, variable: Symbol) -> tuple[Symbol, ...]:
        found = {term for var, term in self._entries if var == variable}
        return tuple(sorted(found, key=symbol_sort_key))

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def build_parse_table(
    grammar: Grammar,
    first: AttributeSets | None = None,
    follow: AttributeSets | None = None,
) -> ParseTable:
    """Build the prediction table, failing on the first LL(1) conflict."""
    entries = _fill_table(grammar, first, follow, stop_on_conflict=True)[0]
    LOGGER.debug("parse table built with %d entries", len(entries))
    return ParseTable(entries, grammar.start)


def find_conflicts(
    grammar: Grammar,
    first: AttributeSets | None = None,
    follow: AttributeSets | None = None,
) -> list[Conflict]:
    return _fill_table(grammar, first, follow, stop_on_conflict=False)[1]


def _fill_table(
    grammar: Grammar,
    first: AttributeSets | None,
    follow: AttributeSets | None,
    stop_on_conflict: bool,
) -> tuple[dict[TableKey, tuple[Symbol, ...]], list[Conflict]]:
    if first is None:
        first = compute_first_sets(grammar)
    if follow is None:
        follow = compute_follow_sets(grammar, first)

    table: dict[TableKey, tuple[Symbol, ...]] = {}
    conflicts: list[Conflict] = []

    def put(lhs: Symbol, term: Symbol, rhs: tuple[Symbol, ...]) -> None:
        # any second write into a cell is a conflict, even by the same alternative
        key = (lhs, term)
        if key not in table:
            table[key] = rhs
            return
        if stop_on_conflict:
            raise not_ll1_error(lhs, term, table[key], rhs)
        conflicts.append(Conflict(lhs, term, table[key], rhs))

    for lhs, alternatives in grammar.relations.items():
        for alt in alternatives:
            rhs = tuple(alt)
            alt_first = first_of_sequence(alt, first)
            for term in sorted(alt_first - {EPSILON}, key=symbol_sort_key):
                put(lhs, term, rhs)
            if EPSILON in alt_first:
                for term in sorted(follow.get(lhs, set()), key=symbol_sort_key):
                    put(lhs, term, rhs)
    return table, conflicts


def format_parse_table(table: ParseTable) -> str:
    lines: list[str] = []
    for (var, term), rhs in table.items():
        lines.append(f"  M[{var}, {term}] = {' '.join(str(sym) for sym in rhs)}")
    if not lines:
        lines.append("  <empty>")
    return "\n".join(lines) + "\n"
