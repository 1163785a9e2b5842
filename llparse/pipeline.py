from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from llparse.attributes import AttributeSets, compute_first_sets, compute_follow_sets, format_attribute_sets
from llparse.diagnostics import LexWarning, ParseAggregateError, ParseError, not_ll1_error
from llparse.engine import LL1Parser
from llparse.grammar import Grammar
from llparse.lexer import Lexer
from llparse.symbols import EOF, EPSILON, Symbol
from llparse.table import Conflict, ParseTable, build_parse_table, find_conflicts, format_parse_table
from llparse.token import Token
from llparse.transform import left_factor, remove_left_recursion
from llparse.tree import ParseTree


LOGGER = logging.getLogger(__name__)


@dataclass
class PipelineOptions:
    remove_left_recursion: bool = True
    left_factor: bool = True
    strict: bool = False


@dataclass
class LL1Artifacts:
    original: Grammar
    grammar: Grammar
    first: AttributeSets
    follow: AttributeSets
    conflicts: list[Conflict]
    table: ParseTable | None = None


@dataclass
class ParseResult:
    tree: ParseTree | None
    errors: list[ParseError] = field(default_factory=list)
    tokens: list[Token] = field(default_factory=list)
    warnings: list[LexWarning] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.tree is not None and not self.errors


def prepare_grammar(grammar: Grammar, options: PipelineOptions | None = None) -> Grammar:
    options = options or PipelineOptions()
    grammar.validate()
    prepared = grammar
    if options.remove_left_recursion:
        prepared = remove_left_recursion(prepared)
    if options.left_factor:
        prepared = left_factor(prepared)
    added = len(prepared.variables) - len(grammar.variables)
    LOGGER.info("grammar prepared: %d variables (%d introduced)", len(prepared.variables), added)
    return prepared


def build_artifacts(grammar: Grammar, options: PipelineOptions | None = None) -> LL1Artifacts:
    """Run every stage and keep all intermediate results, conflicts included."""
    prepared = prepare_grammar(grammar, options)
    first = compute_first_sets(prepared)
    follow = compute_follow_sets(prepared, first)
    conflicts = find_conflicts(prepared, first, follow)
    table = None
    if not conflicts:
        table = build_parse_table(prepared, first, follow)
    return LL1Artifacts(
        original=grammar,
        grammar=prepared,
        first=first,
        follow=follow,
        conflicts=conflicts,
        table=table,
    )


def build_table(grammar: Grammar, options: PipelineOptions | None = None) -> ParseTable:
    artifacts = build_artifacts(grammar, options)
    if artifacts.table is None:
        conflict = artifacts.conflicts[0]
        raise not_ll1_error(conflict.variable, conflict.terminal, conflict.existing, conflict.incoming)
    return artifacts.table


def build_parser(grammar: Grammar, options: PipelineOptions | None = None) -> LL1Parser:
    return LL1Parser(build_table(grammar, options))


def parse_terminals(
    table: ParseTable,
    terminals: Iterable[Symbol],
    strict: bool = False,
) -> ParseResult:
    """Drive a fresh parser over ``terminals``; a trailing EOF is optional."""
    parser = LL1Parser(table)
    errors: list[ParseError] = []
    end = EOF
    for term in terminals:
        if term == EOF:
            end = term
            break
        result = parser.feed(term)
        if result.error is not None:
            LOGGER.warning("At source code line %s: %s", term.location(), result.error.technical)
            errors.append(result.error)

    # positioned EOF from the token stream when there is one
    final = parser.feed(end)
    if final.error is not None:
        LOGGER.warning("Input ended early: %s", final.error.technical)
        errors.append(final.error)

    if strict and errors:
        raise ParseAggregateError(errors)
    return ParseResult(tree=final.tree, errors=errors)


def parse_tokens(table: ParseTable, tokens: list[Token], strict: bool = False) -> ParseResult:
    result = parse_terminals(table, (tok.to_terminal() for tok in tokens), strict=strict)
    result.tokens = list(tokens)
    return result


def parse_source(table: ParseTable, source: str, strict: bool = False) -> ParseResult:
    lexer = Lexer(source)
    tokens = lexer.tokenize()
    for warning in lexer.warnings:
        LOGGER.warning(warning.pretty())
    result = parse_tokens(table, tokens, strict=strict)
    result.warnings = list(lexer.warnings)
    return result


def predictive_parse_trace(table: ParseTable, terminals: Iterable[Symbol]) -> list[str]:
    """Replay a parse step by step without building a tree; stops at the first error."""
    stack: list[Symbol] = [EOF, table.start]
    lookaheads = [term for term in terminals if term != EOF]
    lookaheads.append(EOF)
    index = 0
    trace: list[str] = []

    while stack:
        top = stack.pop()
        lookahead = lookaheads[index]

        if top.is_terminal:
            if top != lookahead:
                trace.append(f"error terminal expected={top} got={lookahead}")
                break
            trace.append(f"match {lookahead}")
            index += 1
            if top == EOF:
                break
            continue

        production = table.lookup(top, lookahead)
        if production is None:
            trace.append(f"error no-rule ({top}, {lookahead})")
            break
        rhs = " ".join(str(sym) for sym in production)
        trace.append(f"{top} -> {rhs}")
        for sym in reversed(production):
            if sym != EPSILON:
                stack.append(sym)
    return trace


def format_parse_trace(trace: list[str]) -> str:
    lines = ["Predictive parse trace"]
    lines.extend(f"  {step}" for step in trace)
    return "\n".join(lines) + "\n"


def format_ll1_artifacts(artifacts: LL1Artifacts) -> str:
    lines: list[str] = []
    lines.append("Grammar")
    lines.extend(f"  {row}" for row in artifacts.grammar.format().splitlines())
    lines.append("")
    lines.append(format_attribute_sets(artifacts.grammar, artifacts.first, artifacts.follow).rstrip("\n"))
    lines.append("")
    lines.append("LL(1) table entries")
    if artifacts.table is not None:
        lines.append(format_parse_table(artifacts.table).rstrip("\n"))
    else:
        lines.append("  <not built>")
    lines.append("")
    lines.append("Conflicts")
    if artifacts.conflicts:
        for conflict in artifacts.conflicts:
            lines.append(f"  {conflict}")
    else:
        lines.append("  <none>")
    return "\n".join(lines) + "\n"


def format_tokens(tokens: list[Token]) -> str:
    rows: list[str] = []
    for tok in tokens:
        rows.append(f"{tok.line}:{tok.column}  {tok.kind:<12} {tok.value!r}")
    return "\n".join(rows) + "\n"
