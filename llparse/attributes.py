from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from llparse.grammar import Grammar
from llparse.symbols import EOF, EPSILON, Symbol, symbol_sort_key


LOGGER = logging.getLogger(__name__)

AttributeSets = dict[Symbol, set[Symbol]]


def compute_first_sets(grammar: Grammar) -> AttributeSets:
    first: AttributeSets = {var: set() for var in grammar.variables}
    passes = 0
    changed = True
    while changed:
        changed = False
        passes += 1
        for lhs, alternatives in grammar.relations.items():
            for alt in alternatives:
                alt_first = first_of_sequence(alt, first)
                before = len(first[lhs])
                first[lhs] |= alt_first
                if len(first[lhs]) != before:
                    changed = True
    LOGGER.debug("FIRST sets stable after %d passes", passes)
    return first


def compute_follow_sets(grammar: Grammar, first: AttributeSets) -> AttributeSets:
    follow: AttributeSets = {var: set() for var in grammar.variables}
    follow[grammar.start].add(EOF)

    passes = 0
    changed = True
    while changed:
        changed = False
        passes += 1
        for lhs, alternatives in grammar.relations.items():
            for alt in alternatives:
                for i, symbol in enumerate(alt):
                    if not symbol.is_variable:
                        continue
                    suffix_first = first_of_sequence(alt[i + 1 :], first)
                    before = len(follow[symbol])
                    follow[symbol] |= suffix_first - {EPSILON}
                    if EPSILON in suffix_first:
                        follow[symbol] |= follow[lhs]
                    if len(follow[symbol]) != before:
                        changed = True
    LOGGER.debug("FOLLOW sets stable after %d passes", passes)
    return follow


def first_of_sequence(sequence: Sequence[Symbol], first: AttributeSets) -> set[Symbol]:
    out: set[Symbol] = set()
    for symbol in sequence:
        if symbol == EPSILON:
            continue
        if symbol.is_terminal:
            out.add(symbol)
            return out
        symbol_first = first.get(symbol, set())
        if EPSILON not in symbol_first:
            out |= symbol_first
            return out
        out |= symbol_first - {EPSILON}
    out.add(EPSILON)
    return out


def nullable_variables(first: AttributeSets) -> set[Symbol]:
    return {var for var, fset in first.items() if EPSILON in fset}


def format_attribute_sets(grammar: Grammar, first: AttributeSets, follow: AttributeSets) -> str:
    lines: list[str] = []
    lines.append("FIRST sets")
    for var in grammar.variables:
        lines.append(f"  FIRST({var}) = {{ {_set_text(first.get(var, set()))} }}")
    lines.append("")
    lines.append("FOLLOW sets")
    for var in grammar.variables:
        lines.append(f"  FOLLOW({var}) = {{ {_set_text(follow.get(var, set()))} }}")
    return "\n".join(lines) + "\n"


def _set_text(symbols: Iterable[Symbol]) -> str:
    return ", ".join(str(sym) for sym in sorted(symbols, key=symbol_sort_key))
