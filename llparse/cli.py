from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from llparse.diagnostics import GrammarError, LLParseError, ParseAggregateError
from llparse.grammar import Grammar
from llparse.grammar_reader import read_grammar
from llparse.lexer import Lexer
from llparse.pipeline import (
    PipelineOptions,
    build_artifacts,
    build_table,
    format_ll1_artifacts,
    format_parse_trace,
    format_tokens,
    parse_source,
    predictive_parse_trace,
)
from llparse.tree import format_tree, format_tree_dot, format_tree_xml


SUBCOMMANDS = {"table", "parse", "tokens"}


def _add_common_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-v", "--verbose", action="store_true", help="Log pipeline progress")
    parser.add_argument("--debug", action="store_true", help="Log every pass and parser step")


def _add_grammar_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("grammar", help="Path to grammar file (`A -> x y | z` rules)")
    parser.add_argument(
        "--no-transform",
        action="store_true",
        help="Skip left-recursion removal and left factoring",
    )


def _configure_logging(args: argparse.Namespace) -> None:
    level = logging.WARNING
    if args.debug:
        level = logging.DEBUG
    elif args.verbose:
        level = logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _options(args: argparse.Namespace) -> PipelineOptions:
    transform = not args.no_transform
    return PipelineOptions(
        remove_left_recursion=transform,
        left_factor=transform,
        strict=getattr(args, "strict", False),
    )


def _read_text(path: Path, what: str) -> str | None:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        print(f"Could not read {what} file `{path}`: {exc}", file=sys.stderr)
        return None


def _load_grammar(path: Path) -> Grammar | None:
    text = _read_text(path, "grammar")
    if text is None:
        return None
    try:
        return read_grammar(text)
    except GrammarError as exc:
        print(exc.pretty(str(path), source_text=text), file=sys.stderr)
        return None


def build_table_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="llparse table",
        description="Report FIRST/FOLLOW sets, the LL(1) table and any conflicts",
    )
    _add_grammar_flags(parser)
    parser.add_argument("-o", "--output", help="Write the report to this path instead of stdout")
    _add_common_flags(parser)
    return parser


def main_table(argv: list[str] | None = None) -> int:
    parser = build_table_parser()
    args = parser.parse_args(argv)
    _configure_logging(args)
    grammar_path = Path(args.grammar)

    grammar = _load_grammar(grammar_path)
    if grammar is None:
        return 1
    try:
        artifacts = build_artifacts(grammar, _options(args))
    except LLParseError as exc:
        print(exc.pretty(str(grammar_path)), file=sys.stderr)
        return 1

    report = format_ll1_artifacts(artifacts)
    if args.output:
        out_path = Path(args.output)
        out_path.write_text(report, encoding="utf-8")
        print(f"[ok] LL1 artifacts written: {out_path}")
    else:
        print(report, end="")

    if artifacts.conflicts:
        print(f"Grammar is not LL(1): {len(artifacts.conflicts)} conflict(s)", file=sys.stderr)
        return 1
    return 0


def build_parse_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="llparse parse",
        description="Parse a source file with the LL(1) parser generated from a grammar",
    )
    _add_grammar_flags(parser)
    parser.add_argument("source", help="Path to source file")
    parser.add_argument("--xml", help="Write the parse tree as a tree-exchange XML document")
    parser.add_argument("--dot", help="Write the parse tree as a Graphviz dot graph")
    parser.add_argument("--tree", action="store_true", help="Print the indented parse tree")
    parser.add_argument("--trace", action="store_true", help="Print the predictive parse trace")
    parser.add_argument("--strict", action="store_true", help="Fail on the first batch of parse errors")
    _add_common_flags(parser)
    return parser


def main_parse(argv: list[str] | None = None) -> int:
    parser = build_parse_parser()
    args = parser.parse_args(argv)
    _configure_logging(args)
    grammar_path = Path(args.grammar)
    source_path = Path(args.source)

    grammar = _load_grammar(grammar_path)
    if grammar is None:
        return 1
    source_text = _read_text(source_path, "source")
    if source_text is None:
        return 1

    options = _options(args)
    try:
        table = build_table(grammar, options)
    except LLParseError as exc:
        print(exc.pretty(str(grammar_path)), file=sys.stderr)
        return 1

    if args.trace:
        terminals = [tok.to_terminal() for tok in Lexer(source_text).tokenize()]
        print(format_parse_trace(predictive_parse_trace(table, terminals)), end="")

    try:
        result = parse_source(table, source_text, strict=options.strict)
    except ParseAggregateError as exc:
        print(exc.pretty(str(source_path), source_text=source_text), file=sys.stderr)
        return 1

    for warning in result.warnings:
        print(warning.pretty(str(source_path)))
    for error in result.errors:
        print(error.pretty(str(source_path), source_text=source_text), file=sys.stderr)

    if result.tree is None:
        print("Parsing did not complete; no tree produced.", file=sys.stderr)
        return 1

    if args.tree:
        print(format_tree(result.tree), end="")

    if args.xml:
        xml_path = Path(args.xml)
        xml_path.write_text(format_tree_xml(result.tree), encoding="utf-8")
        print(f"[ok] Tree XML written: {xml_path}")

    if args.dot:
        dot_path = Path(args.dot)
        dot_path.write_text(format_tree_dot(result.tree), encoding="utf-8")
        print(f"[ok] Tree dot written: {dot_path}")

    if result.errors:
        print(f"Parsed with {len(result.errors)} recovered error(s): {source_path}", file=sys.stderr)
        return 1
    print(f"[ok] Parsed: {source_path}")
    return 0


def build_tokens_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="llparse tokens",
        description="Print the token stream of a source file",
    )
    parser.add_argument("source", help="Path to source file")
    _add_common_flags(parser)
    return parser


def main_tokens(argv: list[str] | None = None) -> int:
    parser = build_tokens_parser()
    args = parser.parse_args(argv)
    _configure_logging(args)
    source_path = Path(args.source)

    source_text = _read_text(source_path, "source")
    if source_text is None:
        return 1

    lexer = Lexer(source_text)
    tokens = lexer.tokenize()
    print(format_tokens(tokens), end="")
    for warning in lexer.warnings:
        print(warning.pretty(str(source_path)), file=sys.stderr)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = list(argv) if argv is not None else list(sys.argv[1:])
    if not args or args[0] not in SUBCOMMANDS:
        print("usage: llparse {table,parse,tokens} ...", file=sys.stderr)
        return 2

    cmd = args[0]
    rest = args[1:]
    if cmd == "table":
        return main_table(rest)
    if cmd == "parse":
        return main_parse(rest)
    return main_tokens(rest)


if __name__ == "__main__":
    raise SystemExit(main())
