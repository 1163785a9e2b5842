"""Incremental table-driven predictive parser.

The caller pushes one terminal at a time into :meth:`LL1Parser.feed` and
finally calls :meth:`LL1Parser.input_complete`. Recoverable problems come back
as values on :class:`FeedResult`; the offending terminal is dropped and the
stack is left as it was, so the next terminal is tried against the same
expectation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from llparse.diagnostics import ParseError
from llparse.symbols import EOF, EPSILON, Symbol, is_epsilon_alternative
from llparse.table import ParseTable
from llparse.tree import ParseTree


LOGGER = logging.getLogger(__name__)

CONSUMED = "consumed"
COMPLETE = "complete"
ERROR = "error"


@dataclass(frozen=True)
class StackEntry:
    symbol: Symbol
    node: ParseTree


@dataclass(frozen=True)
class FeedResult:
    status: str  # "consumed" | "complete" | "error"
    tree: ParseTree | None = None
    error: ParseError | None = None

    @property
    def ok(self) -> bool:
        return self.status != ERROR


class LL1Parser:
    def __init__(self, table: ParseTable) -> None:
        self.table = table
        self.tree = ParseTree(table.start)
        self._stack: list[StackEntry] = [
            # the end marker gets a node of its own that never joins the tree
            StackEntry(EOF, ParseTree(EOF)),
            StackEntry(table.start, self.tree),
        ]

    @property
    def completed(self) -> bool:
        return not self._stack

    def stack_symbols(self) -> list[Symbol]:
        """Pending symbols, top of the stack first."""
        return [entry.symbol for entry in reversed(self._stack)]

    def feed(self, terminal: Symbol) -> FeedResult:
        if not self._stack:
            raise ParseError(
                code="already_complete",
                technical="Parsing already completed.",
                line=terminal.line or 0,
                column=terminal.column or 0,
                found=terminal,
            )

        while True:
            top = self._stack.pop()

            if top.symbol == terminal:
                top.node.symbol = terminal
                if terminal == EOF:
                    return FeedResult(COMPLETE, tree=self.tree)
                return FeedResult(CONSUMED)

            if top.symbol.is_terminal:
                self._stack.append(top)
                return self._error(
                    "unexpected_terminal",
                    f"Expected {top.symbol}, found {terminal}",
                    terminal,
                    (top.symbol,),
                )

            production = self.table.lookup(top.symbol, terminal)
            if production is None:
                self._stack.append(top)
                return self._error(
                    "no_production",
                    f"No production for {top.symbol} on seeing {terminal}",
                    terminal,
                    self.table.expected_terminals(top.symbol),
                )

            if is_epsilon_alternative(production):
                top.node.children.append(ParseTree(EPSILON))
                continue

            children = [ParseTree(sym) for sym in production]
            for sym, child in zip(reversed(production), reversed(children)):
                self._stack.append(StackEntry(sym, child))
            top.node.children.extend(children)

    def input_complete(self) -> ParseTree:
        result = self.feed(EOF)
        if result.error is not None:
            raise result.error
        return self.tree

    def _error(
        self,
        code: str,
        technical: str,
        found: Symbol,
        expected: tuple[Symbol, ...],
    ) -> FeedResult:
        error = ParseError(
            code=code,
            technical=technical,
            line=found.line or 0,
            column=found.column or 0,
            expected=expected,
            found=found,
        )
        LOGGER.debug("%s at %s: %s", code, found.location(), technical)
        return FeedResult(ERROR, error=error)
