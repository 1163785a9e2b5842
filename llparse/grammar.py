from __future__ import annotations

import itertools
from dataclasses import dataclass, field

from llparse.diagnostics import GrammarError
from llparse.symbols import EOF, EPSILON, Symbol, terminal, variable


Alternative = list[Symbol]
Relations = dict[Symbol, list[Alternative]]

EPSILON_SPELLINGS = {"EPSILON", "EPS", "ε"}


@dataclass(frozen=True)
class ProductionRule:
    rule_id: int
    lhs: Symbol
    rhs: tuple[Symbol, ...]

    def __str__(self) -> str:
        rhs = " ".join(str(sym) for sym in self.rhs)
        return f"({self.rule_id}){self.lhs} -> {rhs}"


@dataclass
class Grammar:
    variables: list[Symbol]
    terminals: list[Symbol]
    relations: Relations
    start: Symbol
    _fresh_counter: int = field(default=0, repr=False)

    def __post_init__(self) -> None:
        # own the lists so adding EOF or fresh variables never touches the caller's
        self.variables = list(self.variables)
        self.terminals = list(self.terminals)
        if EOF not in self.terminals:
            self.terminals.append(EOF)

    @classmethod
    def from_rules(
        cls,
        rules: dict[str, list[list[str]]],
        start: str | None = None,
        terminals: list[str] | None = None,
    ) -> Grammar:
        """Build a grammar from plain names.

        Keys of ``rules`` are variables and every other name is a terminal.
        An empty alternative or one spelled ``EPSILON``/``ε`` is the empty
        alternative.
        """
        if not rules:
            raise GrammarError(code="invalid_grammar", technical="Grammar has no rules.")
        variables = [variable(name) for name in rules]
        variable_names = set(rules)
        terminal_syms: list[Symbol] = [terminal(name) for name in terminals or []]
        relations: Relations = {}
        uses_epsilon = False

        for name, alternatives in rules.items():
            lhs = variable(name)
            out: list[Alternative] = []
            for alt in alternatives:
                names = [n for n in alt if n not in EPSILON_SPELLINGS]
                if not names:
                    out.append([EPSILON])
                    uses_epsilon = True
                    continue
                rhs: Alternative = []
                for n in names:
                    if n in variable_names:
                        rhs.append(variable(n))
                    else:
                        sym = terminal(n)
                        if sym not in terminal_syms:
                            terminal_syms.append(sym)
                        rhs.append(sym)
                out.append(rhs)
            relations[lhs] = out

        grammar = cls(
            variables=variables,
            terminals=terminal_syms,
            relations=relations,
            start=variable(start) if start is not None else variables[0],
        )
        if uses_epsilon:
            grammar.add_epsilon_terminal()
        return grammar

    def add_variable(self, var: Symbol) -> None:
        if var not in self.variables:
            self.variables.append(var)
        self.relations.setdefault(var, [])

    def add_epsilon_terminal(self) -> None:
        if EPSILON not in self.terminals:
            self.terminals.append(EPSILON)

    def fresh_variable(self, base: Symbol | None = None) -> Symbol:
        names = {v.name for v in self.variables} | {t.name for t in self.terminals}
        while True:
            self._fresh_counter += 1
            stem = base.name if base is not None else "NEW_VAR"
            candidate = f"{stem}'{{{self._fresh_counter}}}"
            if candidate not in names:
                break
        fresh = variable(candidate, synthetic=True)
        self.add_variable(fresh)
        return fresh

    def alternatives(self, var: Symbol) -> list[Alternative]:
        return self.relations.get(var, [])

    def production_rules(self) -> list[ProductionRule]:
        ids = itertools.count(1)
        rules: list[ProductionRule] = []
        for lhs in self.variables:
            for rhs in self.alternatives(lhs):
                rules.append(ProductionRule(next(ids), lhs, tuple(rhs)))
        return rules

    def copy(self) -> Grammar:
        return Grammar(
            variables=list(self.variables),
            terminals=list(self.terminals),
            relations={lhs: [list(alt) for alt in alts] for lhs, alts in self.relations.items()},
            start=self.start,
            _fresh_counter=self._fresh_counter,
        )

    def reachable_variables(self) -> list[Symbol]:
        seen: list[Symbol] = [self.start]
        queue = [self.start]
        while queue:
            current = queue.pop(0)
            for alt in self.alternatives(current):
                for sym in alt:
                    if sym.is_variable and sym not in seen:
                        seen.append(sym)
                        queue.append(sym)
        return seen

    def validate(self) -> None:
        if not self.start.is_variable or self.start not in self.variables:
            raise GrammarError(
                code="invalid_grammar",
                technical=f"Start symbol `{self.start}` is not a grammar variable.",
                symbols=(self.start,),
            )
        for lhs in self.relations:
            if lhs not in self.variables:
                raise GrammarError(
                    code="invalid_grammar",
                    technical=f"Rules defined for undeclared variable `{lhs}`.",
                    symbols=(lhs,),
                )
        for var in self.reachable_variables():
            if not self.relations.get(var):
                raise GrammarError(
                    code="invalid_grammar",
                    technical=f"Variable `{var}` is used but has no rules.",
                    symbols=(var,),
                )
        for lhs, alts in self.relations.items():
            for alt in alts:
                if not alt:
                    raise GrammarError(
                        code="invalid_grammar",
                        technical=f"Empty alternative for `{lhs}`; write EPSILON instead.",
                        symbols=(lhs,),
                    )

    def format(self) -> str:
        lines: list[str] = []
        for var in self.variables:
            alts = self.alternatives(var)
            rhs = " | ".join(" ".join(str(sym) for sym in alt) for alt in alts)
            lines.append(f"{var} -> {rhs}")
        return "\n".join(lines) + "\n"

    def __str__(self) -> str:
        variables = ", ".join(str(v) for v in self.variables)
        terminals = ", ".join(str(t) for t in self.terminals)
        return (
            f"Variables: [{variables}]\n"
            f"Terminals: [{terminals}]\n"
            f"Start: {self.start}\n"
            f"Relations:\n{self.format()}"
        )
