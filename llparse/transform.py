"""Grammar rewriting passes that prepare a grammar for LL(1) table construction.

Both passes return a new grammar and leave their input untouched. After every
rewrite the grammar keeps these invariants: each relation key is a declared
variable, every declared variable has a relation entry, alternatives are never
empty, and epsilon only appears as the sole symbol of an alternative.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Iterable, Sequence

from llparse.attributes import compute_first_sets, nullable_variables
from llparse.diagnostics import GrammarError
from llparse.grammar import Alternative, Grammar
from llparse.symbols import EPSILON, Symbol, is_epsilon_alternative


LOGGER = logging.getLogger(__name__)


def find_derivation_cycles(grammar: Grammar) -> list[list[Symbol]]:
    """Return groups of variables that derive each other without consuming input.

    ``A`` reaches ``B`` when some alternative of ``A`` is ``α B β`` with both
    ``α`` and ``β`` nullable. Every strongly connected group of that relation
    which actually loops (a self loop included) is reported.
    """
    nullable = nullable_variables(compute_first_sets(grammar))

    def unit_successors(var: Symbol) -> Iterable[Symbol]:
        for alt in grammar.alternatives(var):
            for i, sym in enumerate(alt):
                if not sym.is_variable:
                    continue
                if _all_nullable(alt[:i], nullable) and _all_nullable(alt[i + 1 :], nullable):
                    yield sym

    cycles: list[list[Symbol]] = []
    for component in _strongly_connected(grammar.variables, unit_successors):
        head = component[0]
        if len(component) > 1 or head in set(unit_successors(head)):
            cycles.append(component)
    return cycles


def remove_left_recursion(grammar: Grammar) -> Grammar:
    """Eliminate direct and indirect left recursion (Paull's algorithm).

    Variables are processed in order of first appearance. Grammars whose
    variables derive each other through empty strings are rejected up front.
    """
    result = grammar.copy()
    cycles = find_derivation_cycles(result)
    if cycles:
        names = " => ".join(str(sym) for sym in cycles[0])
        raise GrammarError(
            code="derivation_cycle",
            technical=f"Variables derive each other without consuming input: {names}",
            symbols=tuple(cycles[0]),
        )

    ordered = list(result.variables)
    for i, ai in enumerate(ordered):
        for aj in ordered[:i]:
            rewritten: list[Alternative] = []
            for alt in result.alternatives(ai):
                if alt[0] == aj:
                    for delta in result.alternatives(aj):
                        rewritten.append(_concat(delta, alt[1:]))
                else:
                    rewritten.append(alt)
            result.relations[ai] = _dedupe(rewritten)
        _remove_direct_left_recursion(result, ai)
    return result


def left_factor(grammar: Grammar) -> Grammar:
    """Pull common alternative prefixes out into fresh variables."""
    result = grammar.copy()
    worklist = list(result.variables)
    index = 0
    while index < len(worklist):
        var = worklist[index]
        alts = result.alternatives(var)
        match = _find_common_prefix(alts)
        if match is None:
            index += 1
            continue

        size, members = match
        prefix = alts[members[0]][:size]
        if not prefix:
            raise GrammarError(
                code="empty_prefix",
                technical=f"Common prefix for `{var}` is empty.",
                symbols=(var,),
            )

        fresh = result.fresh_variable()
        continuations: list[Alternative] = []
        for m in members:
            rest = alts[m][size:] or [EPSILON]
            if rest not in continuations:
                continuations.append(rest)
        if [EPSILON] in continuations:
            result.add_epsilon_terminal()

        remaining = [alt for k, alt in enumerate(alts) if k not in members]
        result.relations[var] = remaining + [prefix + [fresh]]
        result.relations[fresh] = continuations
        worklist.append(fresh)
        LOGGER.debug(
            "factored %s common prefix `%s` into %s",
            var,
            " ".join(str(sym) for sym in prefix),
            fresh,
        )
    return result


def make_ll1_ready(grammar: Grammar) -> Grammar:
    return left_factor(remove_left_recursion(grammar))


def _remove_direct_left_recursion(grammar: Grammar, var: Symbol) -> None:
    recursive: list[Alternative] = []
    others: list[Alternative] = []
    for alt in grammar.alternatives(var):
        if alt[0] == var:
            recursive.append(alt[1:])
        else:
            others.append(alt)
    if not recursive:
        return

    tails = [alpha for alpha in recursive if alpha]
    if not tails:
        grammar.relations[var] = others
        return
    if not others:
        raise GrammarError(
            code="invalid_grammar",
            technical=f"`{var}` is left recursive in every alternative and derives no string.",
            symbols=(var,),
        )

    fresh = grammar.fresh_variable(var)
    grammar.add_epsilon_terminal()
    grammar.relations[var] = [_concat(beta, [fresh]) for beta in others]
    grammar.relations[fresh] = [alpha + [fresh] for alpha in tails] + [[EPSILON]]
    LOGGER.debug("removed left recursion of %s via %s", var, fresh)


def _find_common_prefix(alts: list[Alternative]) -> tuple[int, list[int]] | None:
    for i, alt in enumerate(alts):
        if is_epsilon_alternative(alt):
            continue
        for size in range(len(alt), 0, -1):
            prefix = alt[:size]
            matches = [
                j
                for j, other in enumerate(alts)
                if j != i and not is_epsilon_alternative(other) and other[:size] == prefix
            ]
            if matches:
                return size, sorted([i] + matches)
    return None


def _concat(head: Sequence[Symbol], tail: Sequence[Symbol]) -> Alternative:
    parts = [sym for sym in head if sym != EPSILON] + [sym for sym in tail if sym != EPSILON]
    return parts or [EPSILON]


def _dedupe(alts: list[Alternative]) -> list[Alternative]:
    out: list[Alternative] = []
    for alt in alts:
        if alt not in out:
            out.append(alt)
    return out


def _all_nullable(sequence: Sequence[Symbol], nullable: set[Symbol]) -> bool:
    return all(sym == EPSILON or sym in nullable for sym in sequence)


def _strongly_connected(
    nodes: Iterable[Symbol],
    successors: Callable[[Symbol], Iterable[Symbol]],
) -> list[list[Symbol]]:
    # Tarjan's algorithm
    index_of: dict[Symbol, int] = {}
    lowlink: dict[Symbol, int] = {}
    stack: list[Symbol] = []
    on_stack: set[Symbol] = set()
    components: list[list[Symbol]] = []
    counter = itertools.count()

    def strongconnect(node: Symbol) -> None:
        index_of[node] = lowlink[node] = next(counter)
        stack.append(node)
        on_stack.add(node)
        for nxt in successors(node):
            if nxt not in index_of:
                strongconnect(nxt)
                lowlink[node] = min(lowlink[node], lowlink[nxt])
            elif nxt in on_stack:
                lowlink[node] = min(lowlink[node], index_of[nxt])

        if lowlink[node] == index_of[node]:
            component: list[Symbol] = []
            while True:
                member = stack.pop()
                on_stack.discard(member)
                component.append(member)
                if member == node:
                    break
            components.append(list(reversed(component)))

    for node in nodes:
        if node not in index_of:
            strongconnect(node)
    return components
