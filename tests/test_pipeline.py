from __future__ import annotations

import contextlib
import io
import tempfile
import unittest
from pathlib import Path

from llparse.cli import main
from llparse.diagnostics import GrammarNotLL1Error, ParseAggregateError
from llparse.grammar import Grammar
from llparse.grammar_reader import read_grammar
from llparse.pipeline import (
    PipelineOptions,
    build_artifacts,
    build_parser,
    build_table,
    format_ll1_artifacts,
    format_parse_trace,
    parse_source,
    parse_terminals,
    predictive_parse_trace,
)
from llparse.symbols import EOF, terminal, variable
from llparse.table import ParseTable


ASSIGN_GRAMMAR = """
# a tiny assignment language over the tokenizer's terminals
prog -> stmt prog | EPSILON
stmt -> id '=' expr ';'
expr -> expr '+' term | term
term -> id | intNum
"""

CONFLICT_GRAMMAR = """
S -> A x
A -> B
B -> x | EPSILON
"""


def assign_table() -> ParseTable:
    return build_table(read_grammar(ASSIGN_GRAMMAR))


class PipelineTests(unittest.TestCase):
    def test_artifacts_for_left_recursive_grammar(self) -> None:
        artifacts = build_artifacts(read_grammar(ASSIGN_GRAMMAR))
        self.assertEqual(artifacts.conflicts, [])
        self.assertIsNotNone(artifacts.table)
        self.assertIn(variable("expr'{1}"), artifacts.grammar.variables)
        self.assertNotIn(variable("expr'{1}"), artifacts.original.variables)
        self.assertEqual(artifacts.follow[variable("expr")], {terminal(";")})

        report = format_ll1_artifacts(artifacts)
        self.assertIn("expr -> term expr'{1}", report)
        self.assertIn("FIRST(prog) = { id, EPSILON }", report)
        self.assertIn("M[term, intNum] = intNum", report)
        self.assertTrue(report.rstrip().endswith("Conflicts\n  <none>"))

    def test_artifacts_keep_conflicts_without_table(self) -> None:
        artifacts = build_artifacts(read_grammar(CONFLICT_GRAMMAR))
        self.assertIsNone(artifacts.table)
        self.assertEqual(len(artifacts.conflicts), 2)
        report = format_ll1_artifacts(artifacts)
        self.assertIn("<not built>", report)
        self.assertIn("(B, x): x  <->  EPSILON", report)

    def test_build_parser_raises_on_conflicts(self) -> None:
        with self.assertRaises(GrammarNotLL1Error):
            build_parser(read_grammar(CONFLICT_GRAMMAR))

    def test_transformations_can_be_switched_off(self) -> None:
        grammar = Grammar.from_rules({"S": [["a", "S"], ["a"]]})
        with self.assertRaises(GrammarNotLL1Error) as ctx:
            build_parser(grammar, PipelineOptions(remove_left_recursion=False, left_factor=False))
        self.assertEqual(ctx.exception.code, "not_ll1")
        parser = build_parser(grammar)
        self.assertFalse(parser.completed)

    def test_parse_source_builds_positioned_tree(self) -> None:
        result = parse_source(assign_table(), "x = 1 + y;\nz = 2;")
        self.assertTrue(result.ok)
        self.assertEqual(result.errors, [])
        self.assertEqual(result.tree.yield_string(), "id = intNum + id ; id = intNum ;")
        leaves = result.tree.leaves()
        self.assertEqual(leaves[0].location(), "1:1")
        self.assertEqual(leaves[6].location(), "2:1")
        self.assertEqual(result.tokens[-1].kind, "EOF")

    def test_parse_errors_are_collected_and_parsing_continues(self) -> None:
        with self.assertLogs("llparse.pipeline", level="WARNING") as logs:
            result = parse_source(assign_table(), "x = = 1;")
        self.assertIsNotNone(result.tree)
        self.assertEqual([err.code for err in result.errors], ["no_production"])
        self.assertEqual((result.errors[0].line, result.errors[0].column), (1, 5))
        self.assertFalse(result.ok)
        self.assertEqual(len(logs.records), 1)

    def test_strict_mode_raises_aggregate(self) -> None:
        with self.assertLogs("llparse.pipeline", level="WARNING"):
            with self.assertRaises(ParseAggregateError) as ctx:
                parse_source(assign_table(), "x = = 1;", strict=True)
        self.assertEqual(len(ctx.exception.errors), 1)

    def test_unfinished_input_reports_at_end_of_file(self) -> None:
        with self.assertLogs("llparse.pipeline", level="WARNING"):
            result = parse_source(assign_table(), "x = 1")
        self.assertIsNone(result.tree)
        self.assertEqual(len(result.errors), 1)
        self.assertEqual(result.errors[0].found, EOF)
        self.assertEqual((result.errors[0].line, result.errors[0].column), (1, 6))

    def test_lexer_warnings_are_returned(self) -> None:
        with self.assertLogs("llparse.pipeline", level="WARNING"):
            result = parse_source(assign_table(), "x = 1 @;")
        self.assertTrue(result.ok)
        self.assertEqual([w.code for w in result.warnings], ["unknown_char"])

    def test_parse_terminals_without_trailing_eof(self) -> None:
        table = build_table(Grammar.from_rules({"S": [["(", "S", ")"], ["a"]]}))
        result = parse_terminals(table, [terminal("("), terminal("a"), terminal(")")])
        self.assertEqual(str(result.tree), "S -> [(, S -> [a], )]")

    def test_predictive_parse_trace(self) -> None:
        table = build_table(Grammar.from_rules({"S": [["(", "S", ")"], ["a"]]}))
        trace = predictive_parse_trace(table, [terminal("("), terminal("a"), terminal(")"), EOF])
        self.assertEqual(
            trace,
            ["S -> ( S )", "match (", "S -> a", "match a", "match )", "match $"],
        )
        broken = predictive_parse_trace(table, [terminal(")")])
        self.assertEqual(broken, ["error no-rule (S, ))"])
        self.assertTrue(format_parse_trace(trace).startswith("Predictive parse trace\n  S -> ( S )"))


class CliTests(unittest.TestCase):
    def _run(self, argv: list[str]) -> tuple[int, str, str]:
        out = io.StringIO()
        err = io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            code = main(argv)
        return code, out.getvalue(), err.getvalue()

    def test_parse_writes_tree_documents(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            base = Path(tmp)
            grammar = base / "assign.grammar"
            source = base / "prog.src"
            xml_path = base / "tree.xml"
            dot_path = base / "tree.dot"
            grammar.write_text(ASSIGN_GRAMMAR, encoding="utf-8")
            source.write_text("a = b + 3;\n", encoding="utf-8")

            code, out, _ = self._run(
                ["parse", str(grammar), str(source), "--xml", str(xml_path), "--dot", str(dot_path), "--tree"]
            )
            self.assertEqual(code, 0)
            self.assertIn("[ok] Parsed:", out)
            self.assertIn("intNum  @1:9", out)
            self.assertTrue(xml_path.read_text(encoding="utf-8").startswith("<tree>"))
            self.assertIn("digraph ParseTree", dot_path.read_text(encoding="utf-8"))

    def test_parse_with_errors_exits_nonzero(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            base = Path(tmp)
            grammar = base / "assign.grammar"
            source = base / "prog.src"
            grammar.write_text(ASSIGN_GRAMMAR, encoding="utf-8")
            source.write_text("a = = 3;\n", encoding="utf-8")

            code, _, err = self._run(["parse", str(grammar), str(source)])
            self.assertEqual(code, 1)
            self.assertIn("[no_production]", err)
            self.assertIn("  | a = = 3;", err)

            code, _, _ = self._run(["parse", str(grammar), str(source), "--strict"])
            self.assertEqual(code, 1)

    def test_table_report_and_conflict_exit_code(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            good = Path(tmp) / "good.grammar"
            bad = Path(tmp) / "bad.grammar"
            good.write_text(ASSIGN_GRAMMAR, encoding="utf-8")
            bad.write_text(CONFLICT_GRAMMAR, encoding="utf-8")

            code, out, _ = self._run(["table", str(good)])
            self.assertEqual(code, 0)
            self.assertIn("LL(1) table entries", out)

            code, out, err = self._run(["table", str(bad)])
            self.assertEqual(code, 1)
            self.assertIn("(B, x)", out)
            self.assertIn("not LL(1)", err)

    def test_grammar_syntax_error_is_pretty_printed(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            grammar = Path(tmp) / "broken.grammar"
            grammar.write_text("S -> a |\n", encoding="utf-8")
            code, _, err = self._run(["table", str(grammar)])
        self.assertEqual(code, 1)
        self.assertIn("[grammar_syntax]", err)

    def test_tokens_command(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            source = Path(tmp) / "prog.src"
            source.write_text("x = 42;\n", encoding="utf-8")
            code, out, _ = self._run(["tokens", str(source)])
        self.assertEqual(code, 0)
        self.assertIn("intNum", out)
        self.assertIn("42", out)

    def test_unknown_command(self) -> None:
        code, _, err = self._run(["frobnicate"])
        self.assertEqual(code, 2)
        self.assertIn("usage: llparse", err)

    def test_missing_file(self) -> None:
        code, _, err = self._run(["tokens", "/nonexistent/prog.src"])
        self.assertEqual(code, 1)
        self.assertIn("Could not read source file", err)


if __name__ == "__main__":
    unittest.main()
