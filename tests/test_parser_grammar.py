from __future__ import annotations

import logging
import textwrap
import unittest

from secel.ast import And, Eq, Ge, Gt, If, Le, Lt, Nq, Null, Number, Or, ast_to_tree, iter_nodes, slot_indices, to_source
from secel.parser import ParseError, Parser, parse


def _tree(text: str) -> str:
    return textwrap.dedent(text).strip("\n")


def N(index: int) -> Number:
    return Number(index)


class ParserTreeGoldenTests(unittest.TestCase):
    def test_each_comparison_operator(self) -> None:
        cases = {"=": "Eq", "<>": "Nq", ">": "Gt", "<": "Lt", ">=": "Ge", "<=": "Le"}
        for op, name in cases.items():
            with self.subTest(op=op):
                expected = _tree(
                    f"""
                    If
                    ├─ {name}
                    │  ├─ Number
                    │  │  └─ `1`
                    │  └─ Number
                    │     └─ `2`
                    ├─ Number
                    │  └─ `1`
                    └─ Number
                       └─ `2`
                    """
                )
                self.assertEqual(ast_to_tree(parse(f"if(1{op}2;1;2)")), expected)

    def test_null_operands_and_branches(self) -> None:
        expected = _tree(
            """
            If
            ├─ Eq
            │  ├─ Null
            │  └─ Number
            │     └─ `1`
            ├─ Null
            └─ Number
               └─ `2`
            """
        )
        self.assertEqual(ast_to_tree(parse("if(null=1;null;2)")), expected)

    def test_tree_has_no_padding(self) -> None:
        tree = ast_to_tree(parse("if(1=2;1;2)"))
        self.assertFalse(tree.startswith("\n"))
        self.assertFalse(tree.endswith("\n"))
        self.assertEqual(tree.splitlines()[0], "If")
        self.assertEqual(tree.splitlines()[-1], "   └─ `2`")

    def test_or_chain_is_left_associative(self) -> None:
        node = parse("if(1<2 or 3>4 or 5>=6;7;null)")
        self.assertEqual(node, If(Or(Or(Lt(N(1), N(2)), Gt(N(3), N(4))), Ge(N(5), N(6))), N(7), Null()))
        expected = _tree(
            """
            If
            ├─ Or
            │  ├─ Or
            │  │  ├─ Lt
            │  │  │  ├─ Number
            │  │  │  │  └─ `1`
            │  │  │  └─ Number
            │  │  │     └─ `2`
            │  │  └─ Gt
            │  │     ├─ Number
            │  │     │  └─ `3`
            │  │     └─ Number
            │  │        └─ `4`
            │  └─ Ge
            │     ├─ Number
            │     │  └─ `5`
            │     └─ Number
            │        └─ `6`
            ├─ Number
            │  └─ `7`
            └─ Null
            """
        )
        self.assertEqual(ast_to_tree(node), expected)

    def test_and_chain_is_left_associative(self) -> None:
        node = parse("if(1=2 and 3<>4 and 5<=6;1;2)")
        self.assertEqual(node.condition, And(And(Eq(N(1), N(2)), Nq(N(3), N(4))), Le(N(5), N(6))))

    def test_and_binds_tighter_than_or(self) -> None:
        node = parse("if(1<2 or 3>4 and 5>=6;7;null)")
        self.assertEqual(node.condition, Or(Lt(N(1), N(2)), And(Gt(N(3), N(4)), Ge(N(5), N(6)))))
        node = parse("if(1<2 and 3>4 or 5>=6;7;null)")
        self.assertEqual(node.condition, Or(And(Lt(N(1), N(2)), Gt(N(3), N(4))), Ge(N(5), N(6))))

    def test_parentheses_override_precedence(self) -> None:
        node = parse("if((1<2 or 3>4) and 5>=6;7;null)")
        self.assertEqual(node.condition, And(Or(Lt(N(1), N(2)), Gt(N(3), N(4))), Ge(N(5), N(6))))
        node = parse("if(((1=2));1;2)")
        self.assertEqual(node.condition, Eq(N(1), N(2)))

    def test_nested_if_in_both_branches(self) -> None:
        node = parse("if(1=2;if(3<4;3;4);if(null<>5;null;5))")
        self.assertEqual(
            node,
            If(Eq(N(1), N(2)), If(Lt(N(3), N(4)), N(3), N(4)), If(Nq(Null(), N(5)), Null(), N(5))),
        )

    def test_whitespace_is_insignificant(self) -> None:
        self.assertEqual(parse("  if ( 1 = 2 ; 1 ; 2 )\n"), parse("if(1=2;1;2)"))

    def test_repeated_parses_are_stable(self) -> None:
        text = "if(1<2 or 3>4 and 5>=6;7;null)"
        first = ast_to_tree(Parser(text).parse())
        for _ in range(3):
            self.assertEqual(ast_to_tree(Parser(text).parse()), first)


class ParserFailureTests(unittest.TestCase):
    def test_malformed_comparison_reports_operator_slot(self) -> None:
        parser = Parser("if(3 1 null;3;2)")
        with self.assertRaises(ParseError) as ctx:
            parser.parse()
        err = ctx.exception
        self.assertEqual(err.message, "Expected comparison operator")
        self.assertEqual(err.position, 5)
        self.assertEqual(err.found, "NUMBER(1)")
        self.assertIn("=", err.expected)
        self.assertEqual(parser.lexer.get_position(), 0)

    def test_index_of_256_fails_to_parse(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse("if(256=null;1;2)")
        self.assertEqual(ctx.exception.found, "UNDEF")
        self.assertEqual(ctx.exception.position, 3)

    def test_index_of_255_parses(self) -> None:
        self.assertEqual(parse("if(255=null;1;2)").condition, Eq(N(255), Null()))

    def test_leading_zero_fails_to_parse(self) -> None:
        with self.assertRaises(ParseError):
            parse("if(01=1;1;2)")

    def test_missing_branch_names_both_forms(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse("if(1=2;1;)")
        err = ctx.exception
        self.assertEqual(err.message, "Expected value or if expression")
        self.assertEqual(err.expected, ("value", "if expression"))
        self.assertEqual(err.position, 9)
        self.assertEqual(err.found, "RPAREN())")

    def test_nested_if_failure_reports_deepest_error(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse("if(1=2;if(3;4;5);2)")
        self.assertEqual(ctx.exception.message, "Expected comparison operator")
        self.assertEqual(ctx.exception.position, 11)

    def test_missing_closing_paren(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse("if(1=2;1;2")
        self.assertEqual(ctx.exception.expected, ("RPAREN",))
        self.assertEqual(ctx.exception.found, "EOF")

    def test_dangling_or_is_an_error(self) -> None:
        with self.assertRaises(ParseError):
            parse("if(1=2 or;1;2)")

    def test_empty_input(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse("")
        self.assertEqual(ctx.exception.found, "EOF")

    def test_bare_value_is_not_a_statement(self) -> None:
        with self.assertRaises(ParseError):
            parse("1")

    def test_trailing_input_rejected_by_default(self) -> None:
        parser = Parser("if(1=2;1;2) garbage")
        with self.assertRaises(ParseError) as ctx:
            parser.parse()
        self.assertEqual(ctx.exception.message, "Unexpected trailing input")
        self.assertEqual(ctx.exception.position, 12)
        self.assertEqual(parser.lexer.get_position(), 0)

    def test_trailing_unicode_whitespace_is_rejected(self) -> None:
        for text in ("if(1=2;1;2)\u00a0", "if(1=2;1;2)\x1c", "if(1=2;1;2) \u3000"):
            with self.subTest(text=repr(text)):
                with self.assertRaises(ParseError) as ctx:
                    parse(text)
                self.assertEqual(ctx.exception.message, "Unexpected trailing input")
                self.assertEqual(ctx.exception.found, "UNDEF")

    def test_trailing_input_allowed_on_request(self) -> None:
        node = parse("if(1=2;1;2)if(3=4;3;4)", allow_trailing=True)
        self.assertEqual(node, If(Eq(N(1), N(2)), N(1), N(2)))

    def test_error_string_includes_details(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse("if(1=2;1;2")
        self.assertEqual(str(ctx.exception), "Unexpected token at position 10; expected RPAREN; found EOF")

    def test_parse_error_is_a_syntax_error(self) -> None:
        with self.assertRaises(SyntaxError):
            parse("if(")


class ParserTracingTests(unittest.TestCase):
    def test_rule_entries_are_logged_at_debug(self) -> None:
        with self.assertLogs("secel.parser", level=logging.DEBUG) as logs:
            Parser("if(1=2;1;2)").parse()
        rules = [line.split(":", 2)[2].split()[0] for line in logs.output]
        self.assertEqual(rules[:4], ["statement", "if-expression", "condition", "disjunction"])
        self.assertIn("comparison", rules)


class AstHelperTests(unittest.TestCase):
    def test_to_source_round_trips(self) -> None:
        texts = [
            "if(1=2;1;2)",
            "if(1<2 or 3>4 or 5>=6;7;null)",
            "if(1<2 or 3>4 and 5>=6;7;null)",
            "if((1<2 or 3>4) and 5>=6;7;null)",
            "if(1<2 or (3>4 or 5>=6);7;null)",
            "if(1=2 and (3<>4 and 5<=6);1;2)",
            "if(null=null;if(1>2;1;2);null)",
        ]
        for text in texts:
            with self.subTest(text=text):
                node = parse(text)
                self.assertEqual(parse(to_source(node)), node)

    def test_to_source_is_canonical(self) -> None:
        self.assertEqual(to_source(parse("if ( 1 <> null and ( 2 < 3 or 4 > 5 ) ; 6 ; null )")), "if(1<>null and (2<3 or 4>5);6;null)")

    def test_iter_nodes_is_preorder(self) -> None:
        node = parse("if(1=null;2;3)")
        self.assertEqual(
            [type(n).__name__ for n in iter_nodes(node)],
            ["If", "Eq", "Number", "Null", "Number", "Number"],
        )

    def test_slot_indices_are_sorted_and_unique(self) -> None:
        self.assertEqual(slot_indices(parse("if(9>2 or 2<9;9;1)")), (1, 2, 9))
        self.assertEqual(slot_indices(parse("if(null=null;null;null)")), ())

    def test_nodes_are_hashable_and_immutable(self) -> None:
        node = parse("if(1=2;1;2)")
        self.assertEqual(hash(node), hash(parse("if( 1 = 2 ; 1 ; 2 )")))
        with self.assertRaises(AttributeError):
            node.then = Null()  # type: ignore[misc]


if __name__ == "__main__":
    unittest.main()
