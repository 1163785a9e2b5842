from __future__ import annotations

import unittest

from llparse.attributes import (
    compute_first_sets,
    compute_follow_sets,
    first_of_sequence,
    format_attribute_sets,
    nullable_variables,
)
from llparse.diagnostics import GrammarError
from llparse.grammar import Grammar
from llparse.symbols import EOF, EPSILON, symbol_sort_key, terminal, variable


def expression_grammar() -> Grammar:
    return Grammar.from_rules(
        {
            "E": [["T", "E2"]],
            "E2": [["+", "T", "E2"], ["EPSILON"]],
            "T": [["F", "T2"]],
            "T2": [["*", "F", "T2"], []],
            "F": [["(", "E", ")"], ["id"]],
        }
    )


class SymbolTests(unittest.TestCase):
    def test_position_does_not_take_part_in_equality(self) -> None:
        plain = terminal("id")
        placed = terminal("id", 4, 12)
        self.assertEqual(plain, placed)
        self.assertEqual(hash(plain), hash(placed))
        self.assertEqual({plain: 1}[placed], 1)
        self.assertEqual(placed.location(), "4:12")
        self.assertEqual(plain.location(), "?:?")

    def test_kind_takes_part_in_equality(self) -> None:
        self.assertNotEqual(terminal("S"), variable("S"))
        self.assertTrue(variable("S").is_variable)
        self.assertTrue(terminal("S").is_terminal)

    def test_sentinels(self) -> None:
        self.assertEqual(str(EOF), "$")
        self.assertEqual(str(EPSILON), "EPSILON")
        self.assertTrue(EOF.is_terminal and EPSILON.is_terminal)
        moved = EOF.with_position(3, 1)
        self.assertEqual(moved, EOF)
        self.assertIsNone(EOF.line)

    def test_sort_key_puts_epsilon_then_eof_last(self) -> None:
        ordered = sorted([EOF, terminal("b"), EPSILON, terminal("a")], key=symbol_sort_key)
        self.assertEqual([str(sym) for sym in ordered], ["a", "b", "EPSILON", "$"])


class GrammarTests(unittest.TestCase):
    def test_from_rules_splits_variables_and_terminals(self) -> None:
        grammar = expression_grammar()
        self.assertEqual([str(v) for v in grammar.variables], ["E", "E2", "T", "T2", "F"])
        self.assertEqual(grammar.start, variable("E"))
        self.assertIn(EOF, grammar.terminals)
        self.assertIn(EPSILON, grammar.terminals)
        self.assertIn(terminal("id"), grammar.terminals)
        self.assertEqual(grammar.alternatives(variable("T2"))[1], [EPSILON])

    def test_production_rule_ids_restart_per_call(self) -> None:
        grammar = expression_grammar()
        first = grammar.production_rules()
        second = grammar.production_rules()
        self.assertEqual([rule.rule_id for rule in first], list(range(1, 9)))
        self.assertEqual([rule.rule_id for rule in second], list(range(1, 9)))
        self.assertEqual(str(first[0]), "(1)E -> T E2")

    def test_fresh_variables_are_unique_and_synthetic(self) -> None:
        grammar = Grammar.from_rules({"A": [["a"]], "A'{1}": [["b"]]})
        fresh = grammar.fresh_variable(variable("A"))
        self.assertEqual(str(fresh), "A'{2}")
        self.assertTrue(fresh.synthetic)
        self.assertIn(fresh, grammar.variables)
        self.assertEqual(grammar.alternatives(fresh), [])
        self.assertEqual(str(grammar.fresh_variable()), "NEW_VAR'{3}")

    def test_copy_is_independent(self) -> None:
        grammar = expression_grammar()
        clone = grammar.copy()
        clone.relations[variable("F")].append([terminal("num")])
        clone.fresh_variable()
        self.assertEqual(len(grammar.alternatives(variable("F"))), 2)
        self.assertEqual(len(grammar.variables), 5)

    def test_caller_lists_are_left_alone(self) -> None:
        variables = [variable("S")]
        terminals = [terminal("a")]
        grammar = Grammar(
            variables=variables,
            terminals=terminals,
            relations={variable("S"): [[terminal("a")]]},
            start=variable("S"),
        )
        grammar.fresh_variable()
        self.assertEqual(terminals, [terminal("a")])
        self.assertEqual(variables, [variable("S")])
        self.assertIn(EOF, grammar.terminals)

    def test_validate_rejects_bad_start(self) -> None:
        grammar = expression_grammar()
        grammar.start = variable("Missing")
        with self.assertRaises(GrammarError) as ctx:
            grammar.validate()
        self.assertEqual(ctx.exception.code, "invalid_grammar")

    def test_validate_rejects_reachable_variable_without_rules(self) -> None:
        grammar = expression_grammar()
        grammar.relations[variable("F")] = []
        with self.assertRaises(GrammarError) as ctx:
            grammar.validate()
        self.assertEqual(ctx.exception.code, "invalid_grammar")
        self.assertEqual(ctx.exception.symbols, (variable("F"),))

    def test_format_lists_alternatives(self) -> None:
        text = expression_grammar().format()
        self.assertIn("E2 -> + T E2 | EPSILON", text)
        self.assertIn("F -> ( E ) | id", text)


class AttributeTests(unittest.TestCase):
    def test_first_sets(self) -> None:
        grammar = expression_grammar()
        first = compute_first_sets(grammar)
        self.assertEqual(first[variable("E")], {terminal("("), terminal("id")})
        self.assertEqual(first[variable("E2")], {terminal("+"), EPSILON})
        self.assertEqual(first[variable("T2")], {terminal("*"), EPSILON})
        self.assertEqual(nullable_variables(first), {variable("E2"), variable("T2")})

    def test_follow_sets(self) -> None:
        grammar = expression_grammar()
        first = compute_first_sets(grammar)
        follow = compute_follow_sets(grammar, first)
        self.assertEqual(follow[variable("E")], {terminal(")"), EOF})
        self.assertEqual(follow[variable("E2")], {terminal(")"), EOF})
        self.assertEqual(follow[variable("T")], {terminal("+"), terminal(")"), EOF})
        self.assertEqual(
            follow[variable("F")],
            {terminal("*"), terminal("+"), terminal(")"), EOF},
        )
        for var_follow in follow.values():
            self.assertNotIn(EPSILON, var_follow)

    def test_first_of_sequence(self) -> None:
        first = compute_first_sets(expression_grammar())
        self.assertEqual(first_of_sequence([], first), {EPSILON})
        self.assertEqual(first_of_sequence([EPSILON], first), {EPSILON})
        self.assertEqual(
            first_of_sequence([variable("E2"), variable("T2")], first),
            {terminal("+"), terminal("*"), EPSILON},
        )
        self.assertEqual(
            first_of_sequence([variable("E2"), terminal(")")], first),
            {terminal("+"), terminal(")")},
        )

    def test_recomputing_sets_gives_the_same_answer(self) -> None:
        grammar = expression_grammar()
        first = compute_first_sets(grammar)
        follow = compute_follow_sets(grammar, first)
        self.assertEqual(compute_first_sets(grammar), first)
        self.assertEqual(compute_follow_sets(grammar, first), follow)

    def test_nullable_through_a_chain_of_variables(self) -> None:
        grammar = Grammar.from_rules(
            {"A": [["B", "C"]], "B": [["EPSILON"], ["b"]], "C": [["EPSILON"], ["c"]]}
        )
        first = compute_first_sets(grammar)
        self.assertEqual(first[variable("A")], {terminal("b"), terminal("c"), EPSILON})
        self.assertEqual(nullable_variables(first), {variable("A"), variable("B"), variable("C")})

    def test_one_non_nullable_link_breaks_the_chain(self) -> None:
        grammar = Grammar.from_rules({"A": [["B", "C"]], "B": [["EPSILON"], ["b"]], "C": [["c"]]})
        first = compute_first_sets(grammar)
        self.assertEqual(first[variable("A")], {terminal("b"), terminal("c")})
        self.assertEqual(nullable_variables(first), {variable("B")})

    def test_start_follow_contains_eof_even_when_unused(self) -> None:
        grammar = Grammar.from_rules({"S": [["a"]]})
        follow = compute_follow_sets(grammar, compute_first_sets(grammar))
        self.assertEqual(follow[variable("S")], {EOF})

    def test_format_attribute_sets(self) -> None:
        grammar = expression_grammar()
        first = compute_first_sets(grammar)
        text = format_attribute_sets(grammar, first, compute_follow_sets(grammar, first))
        self.assertIn("FIRST(E2) = { +, EPSILON }", text)
        self.assertIn("FOLLOW(E) = { ), $ }", text)


if __name__ == "__main__":
    unittest.main()
