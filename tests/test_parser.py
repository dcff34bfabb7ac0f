from typing import Any

import pytest
from hypothesis import given
from hypothesis import strategies as st

from ast_builders import (
    arr,
    arr_l,
    assign,
    bin_,
    block,
    bool_,
    call,
    cond,
    cond_st,
    cond_then,
    const_st,
    expr,
    field,
    id_,
    index,
    let_mut_st,
    let_st,
    n,
    paren,
    pe,
    prefix,
    prog,
    regex,
    s,
)
from mag.mag_ast import Program
from mag.mag_constants import KEYWORDS
from mag.mag_lexer import MagSyntaxError, Token
from mag.mag_parser import Parser, is_rooted_chain, parse_expression, parse_program

COMPARATORS = ["==", "!=", "===", "!==", "<", "<=", ">", ">="]
LEFT_ASSOC = ["+", "-", "*", "/", "%"]

identifiers = st.from_regex(r"[a-z_][a-z0-9_]{0,8}", fullmatch=True).filter(
    lambda x: x not in KEYWORDS
)


def p(source: str) -> Program:
    return parse_program(source)


# Arithmetic


@pytest.mark.parametrize(
    "source,expected",
    [
        ("-a;", pe(prefix("-", id_("a")))),
        ("1 + 2;", pe(bin_("+", n("1"), n("2")))),
        ("2 * a;", pe(bin_("*", n("2"), id_("a")))),
        ("b - c;", pe(bin_("-", id_("b"), id_("c")))),
        ("pi / 2;", pe(bin_("/", id_("pi"), n("2")))),
        ("3 ** 2;", pe(bin_("**", n("3"), n("2")))),
        ("5 % 3;", pe(bin_("%", n("5"), n("3")))),
        ("1 + 2 + 3;", pe(bin_("+", bin_("+", n("1"), n("2")), n("3")))),
        ("1 - 2 - 3;", pe(bin_("-", bin_("-", n("1"), n("2")), n("3")))),
        ("1 * 2 * 3;", pe(bin_("*", bin_("*", n("1"), n("2")), n("3")))),
        ("1 / 2 / 3;", pe(bin_("/", bin_("/", n("1"), n("2")), n("3")))),
        ("1 ** 2 ** 3;", pe(bin_("**", n("1"), bin_("**", n("2"), n("3"))))),
        (
            "1 + 2 * 3 + 4;",
            pe(bin_("+", bin_("+", n("1"), bin_("*", n("2"), n("3"))), n("4"))),
        ),
        (
            "a**2 + 0.5 * a * b + b**2;",
            pe(
                bin_(
                    "+",
                    bin_(
                        "+",
                        bin_("**", id_("a"), n("2")),
                        bin_("*", bin_("*", n("0.5"), id_("a")), id_("b")),
                    ),
                    bin_("**", id_("b"), n("2")),
                )
            ),
        ),
        ("a ** 2 * b;", pe(bin_("*", bin_("**", id_("a"), n("2")), id_("b")))),
        ("-a ** 2;", pe(bin_("**", prefix("-", id_("a")), n("2")))),
        ("a ** -b;", pe(bin_("**", id_("a"), prefix("-", id_("b"))))),
        ("a - -b;", pe(bin_("-", id_("a"), prefix("-", id_("b"))))),
        ("-a.b(c);", pe(prefix("-", call(field(id_("a"), "b"), id_("c"))))),
        ("(1 + 2) * 3;", pe(bin_("*", paren(bin_("+", n("1"), n("2"))), n("3")))),
    ],
)
def test_arithmetic(source: str, expected: Program) -> None:
    assert p(source) == expected


@given(op=st.sampled_from(LEFT_ASSOC), a=identifiers, b=identifiers, c=identifiers)
def test_left_associative_operators(op: str, a: str, b: str, c: str) -> None:
    result = p(f"{a} {op} {b} {op} {c};")
    assert result == pe(bin_(op, bin_(op, id_(a), id_(b)), id_(c)))


@given(a=identifiers, b=identifiers, c=identifiers)
def test_exponent_is_right_associative(a: str, b: str, c: str) -> None:
    result = p(f"{a} ** {b} ** {c};")
    assert result == pe(bin_("**", id_(a), bin_("**", id_(b), id_(c))))


def test_double_negation_is_rejected() -> None:
    with pytest.raises(MagSyntaxError):
        p("- -a;")


# Relations


@pytest.mark.parametrize("op", COMPARATORS)
def test_single_comparison(op: str) -> None:
    assert p(f"a {op} 1;") == pe(bin_(op, id_("a"), n("1")))


def test_comparison_binds_loosest() -> None:
    assert p("a + 1 < b * 2;") == pe(
        bin_("<", bin_("+", id_("a"), n("1")), bin_("*", id_("b"), n("2")))
    )


@pytest.mark.parametrize(
    "source",
    [
        "1 < 2 == 3;",
        "1 === 2 > 1;",
        "a == b == c;",
        "a != b == c;",
        "a < b == c <= d;",
        "x > c < d;",
        "a<b>c;",
    ],
)
def test_chained_comparisons_are_rejected(source: str) -> None:
    with pytest.raises(MagSyntaxError, match="cannot be chained"):
        p(source)


@given(first=st.sampled_from(COMPARATORS), second=st.sampled_from(COMPARATORS))
def test_any_comparator_pair_is_rejected(first: str, second: str) -> None:
    with pytest.raises(MagSyntaxError):
        p(f"a {first} b {second} c;")


@given(first=st.sampled_from(COMPARATORS), second=st.sampled_from(COMPARATORS))
def test_parenthesized_comparison_pair_is_accepted(first: str, second: str) -> None:
    result = p(f"(a {first} b) {second} c;")
    assert result == pe(bin_(second, paren(bin_(first, id_("a"), id_("b"))), id_("c")))


def test_chained_comparison_rejected_inside_parens() -> None:
    with pytest.raises(MagSyntaxError):
        p("f((a < b < c));")


# Conditions


@pytest.mark.parametrize(
    "source,expected",
    [
        # simple expressions
        ("(if (a) b else c);", pe(paren(cond(id_("a"), id_("b"), id_("c"))))),
        ("(if a then b else c);", pe(paren(cond_then(id_("a"), id_("b"), id_("c"))))),
        (
            "(if a { b; } else { c; });",
            pe(paren(cond(id_("a"), block(expr(id_("b"))), block(expr(id_("c")))))),
        ),
        # chained expressions
        (
            "(if (a) b else if (c) d else e);",
            pe(paren(cond(id_("a"), id_("b"), cond(id_("c"), id_("d"), id_("e"))))),
        ),
        (
            "(if a then b else if c then d else e);",
            pe(
                paren(
                    cond_then(id_("a"), id_("b"), cond_then(id_("c"), id_("d"), id_("e")))
                )
            ),
        ),
        (
            "(if (a) b else if c then d else e);",
            pe(paren(cond(id_("a"), id_("b"), cond_then(id_("c"), id_("d"), id_("e"))))),
        ),
        (
            "(if a { b; } else if c { d; } else { e; });",
            pe(
                paren(
                    cond(
                        id_("a"),
                        block(expr(id_("b"))),
                        cond(id_("c"), block(expr(id_("d"))), block(expr(id_("e")))),
                    )
                )
            ),
        ),
        # simple statements
        ("if (a) b;", prog(cond_st(id_("a"), expr(id_("b"))))),
        ("if (a) b; else c;", prog(cond_st(id_("a"), expr(id_("b")), expr(id_("c"))))),
        ("if a { b; }", prog(cond_st(id_("a"), block(expr(id_("b")))))),
        (
            "if a { b; } else { c; }",
            prog(cond_st(id_("a"), block(expr(id_("b"))), block(expr(id_("c"))))),
        ),
        (
            "if (a) b; else { c; }",
            prog(cond_st(id_("a"), expr(id_("b")), block(expr(id_("c"))))),
        ),
        (
            "if a { b; } else c;",
            prog(cond_st(id_("a"), block(expr(id_("b"))), expr(id_("c")))),
        ),
        # chained statements
        (
            """
            if (a) b;
            else if (c) d;
            """,
            prog(cond_st(id_("a"), expr(id_("b")), cond_st(id_("c"), expr(id_("d"))))),
        ),
        (
            """
            if (a) b;
            else if (c) d;
            else e;
            """,
            prog(
                cond_st(
                    id_("a"),
                    expr(id_("b")),
                    cond_st(id_("c"), expr(id_("d")), expr(id_("e"))),
                )
            ),
        ),
        (
            """
            if a { b; }
            else if c { d; }
            """,
            prog(
                cond_st(
                    id_("a"),
                    block(expr(id_("b"))),
                    cond_st(id_("c"), block(expr(id_("d")))),
                )
            ),
        ),
        (
            """
            if a { b; }
            else if c { d; }
            else { e; }
            """,
            prog(
                cond_st(
                    id_("a"),
                    block(expr(id_("b"))),
                    cond_st(id_("c"), block(expr(id_("d"))), block(expr(id_("e")))),
                )
            ),
        ),
        # mixed condition forms along one chain
        (
            "if (a) b; else if c { d; } else e;",
            prog(
                cond_st(
                    id_("a"),
                    expr(id_("b")),
                    cond_st(id_("c"), block(expr(id_("d"))), expr(id_("e"))),
                )
            ),
        ),
    ],
)
def test_conditions(source: str, expected: Program) -> None:
    assert p(source) == expected


@pytest.mark.parametrize(
    "source",
    [
        "(if (a) b);",
        "(if a b else c);",
        "(if a then b);",
        "(if a { b; });",
        "if a b;",
        "if a b; else { c; }",
        "(if a { b; } else c);",
        "if (a) b",
        "if a { b; } else",
    ],
)
def test_forbidden_condition_variants(source: str) -> None:
    with pytest.raises(MagSyntaxError):
        p(source)


def test_if_expression_missing_else_message() -> None:
    with pytest.raises(MagSyntaxError, match="needs both branches"):
        p("(if a then b);")


def test_statement_else_binds_to_nearest_if() -> None:
    assert p("if (a) if (b) c; else d;") == prog(
        cond_st(id_("a"), cond_st(id_("b"), expr(id_("c")), expr(id_("d"))))
    )


def test_conditional_expression_nested_in_larger_expression() -> None:
    assert p("x + if a then b else c;") == pe(
        bin_("+", id_("x"), cond_then(id_("a"), id_("b"), id_("c")))
    )


def test_conditional_expression_alternate_extends_right() -> None:
    assert p("(if a then b else c + 1);") == pe(
        paren(cond_then(id_("a"), id_("b"), bin_("+", id_("c"), n("1"))))
    )


def test_parenthesized_condition_with_block_form() -> None:
    assert p("(if (a) { b; } else { c; });") == pe(
        paren(cond(paren(id_("a")), block(expr(id_("b"))), block(expr(id_("c")))))
    )


def test_then_form_with_parenthesized_condition_prefix() -> None:
    assert p("(if (a) - 1 then b else c);") == pe(
        paren(cond_then(bin_("-", paren(id_("a")), n("1")), id_("b"), id_("c")))
    )


def test_statement_with_bare_parenthesized_prefix_condition() -> None:
    assert p("if (a) + 1 { b; }") == prog(
        cond_st(bin_("+", paren(id_("a")), n("1")), block(expr(id_("b"))))
    )


# Assignment


@pytest.mark.parametrize(
    "source,expected",
    [
        ("(a = b);", pe(paren(assign(id_("a"), id_("b"))))),
        (
            "(x = x**2 + 4);",
            pe(paren(assign(id_("x"), bin_("+", bin_("**", id_("x"), n("2")), n("4"))))),
        ),
        ("(a.b = c);", pe(paren(assign(field(id_("a"), "b"), id_("c"))))),
        ("(a().b = c);", pe(paren(assign(field(call(id_("a")), "b"), id_("c"))))),
        (
            "(a.b(c).d[e] = f);",
            pe(
                paren(
                    assign(
                        index(
                            field(call(field(id_("a"), "b"), id_("c")), "d"), id_("e")
                        ),
                        id_("f"),
                    )
                )
            ),
        ),
        ("(arr = [1, 2]);", pe(paren(assign(id_("arr"), arr(n("1"), n("2")))))),
        (
            "([a, b] = [1, 2]);",
            pe(paren(assign(arr_l(id_("a"), id_("b")), arr(n("1"), n("2"))))),
        ),
        (
            "([a, [b, c.d]] = x);",
            pe(
                paren(
                    assign(
                        arr_l(id_("a"), arr_l(id_("b"), field(id_("c"), "d"))), id_("x")
                    )
                )
            ),
        ),
        (
            "(a = b = c);",
            pe(paren(assign(id_("a"), assign(id_("b"), id_("c"))))),
        ),
        (
            "(x = if a then 1 else 2);",
            pe(paren(assign(id_("x"), cond_then(id_("a"), n("1"), n("2"))))),
        ),
        ("f(a = 1);", pe(call(id_("f"), assign(id_("a"), n("1"))))),
    ],
)
def test_assignment(source: str, expected: Program) -> None:
    assert p(source) == expected


@pytest.mark.parametrize(
    "source",
    [
        "(1 = a);",
        "(a + b = c);",
        "(f() = 1);",
        "((a) = 1);",
        "([a, 1] = x);",
        "(\"s\".x = 1);",
        "(a == b = c);",
    ],
)
def test_invalid_assignment_targets(source: str) -> None:
    with pytest.raises(MagSyntaxError, match="Invalid assignment target"):
        p(source)


def test_unparenthesized_assignment_statement_is_rejected() -> None:
    with pytest.raises(MagSyntaxError, match="must be parenthesized"):
        p("a = b;")


def test_rooted_chain_helper() -> None:
    assert is_rooted_chain(call(field(id_("a"), "b")))
    assert not is_rooted_chain(field(n("1"), "b"))
    assert not is_rooted_chain(paren(id_("a")))


# Variable declarations


@pytest.mark.parametrize(
    "source,expected",
    [
        ("let x = 2;", prog(let_st(id_("x"), None, n("2")))),
        ("let x: f32;", prog(let_st(id_("x"), id_("f32")))),
        ("let x: f32 = 2;", prog(let_st(id_("x"), id_("f32"), n("2")))),
        ("let mut y = true;", prog(let_mut_st(id_("y"), None, bool_(True)))),
        ("let mut y: boolean;", prog(let_mut_st(id_("y"), id_("boolean")))),
        (
            "let mut y: boolean = true;",
            prog(let_mut_st(id_("y"), id_("boolean"), bool_(True))),
        ),
        ("const z = 5;", prog(const_st(id_("z"), None, n("5")))),
        ("const z: number = 5;", prog(const_st(id_("z"), id_("number"), n("5")))),
        ("const z;", prog(const_st(id_("z")))),
        ("let x;", prog(let_st(id_("x")))),
        (
            "let [a, b] = [1, 2];",
            prog(let_st(arr_l(id_("a"), id_("b")), None, arr(n("1"), n("2")))),
        ),
        (
            "let v: vec.f32 = [];",
            prog(let_st(id_("v"), field(id_("vec"), "f32"), arr())),
        ),
    ],
)
def test_variable_declaration(source: str, expected: Program) -> None:
    assert p(source) == expected


@pytest.mark.parametrize(
    "source",
    [
        "let x = 2",
        "let 1 = 2;",
        "let a.b = 2;",
        "const mut z = 5;",
        "let mut = 3;",
        "let x: = 2;",
        "let if = 1;",
    ],
)
def test_invalid_declarations(source: str) -> None:
    with pytest.raises(MagSyntaxError):
        p(source)


def test_declaration_flags() -> None:
    (decl,) = p("let mut y: boolean = true;").body
    assert decl.to_dict() == {
        "type": "VariableDeclaration",
        "left": {"type": "Identifier", "name": "y"},
        "typeAnnotation": {"type": "Identifier", "name": "boolean"},
        "right": {"type": "BooleanLiteral", "value": True},
        "constant": False,
        "mutable": True,
    }


# Primaries and postfix chains


@pytest.mark.parametrize(
    "source,expected",
    [
        ('"hi";', pe(s("hi"))),
        ("'a\\nb';", pe(s("a\nb"))),
        ("false;", pe(bool_(False))),
        ("0x1F;", pe(n("1F", 16))),
        ("0b101;", pe(n("101", 2))),
        ("0o17;", pe(n("17", 8))),
        ("123456789012345678901234567890;", pe(n("123456789012345678901234567890"))),
        ("/ab+c/gi;", pe(regex("ab+c", "gi"))),
        ("a / b / c;", pe(bin_("/", bin_("/", id_("a"), id_("b")), id_("c")))),
        ("x.match(/[/]/);", pe(call(field(id_("x"), "match"), regex("[/]")))),
        ("[];", pe(arr())),
        ("[1, [2], a,];", pe(arr(n("1"), arr(n("2")), id_("a")))),
        ("f();", pe(call(id_("f")))),
        ("f(a, b)(c);", pe(call(call(id_("f"), id_("a"), id_("b")), id_("c")))),
        ("a[0][1];", pe(index(index(id_("a"), n("0")), n("1")))),
        ("a.then.else;", pe(field(field(id_("a"), "then"), "else"))),
        ("((a));", pe(paren(paren(id_("a"))))),
        (
            "// leading comment\na /* inline */ + b; // trailing",
            pe(bin_("+", id_("a"), id_("b"))),
        ),
    ],
)
def test_primaries(source: str, expected: Program) -> None:
    assert p(source) == expected


@pytest.mark.parametrize(
    "source",
    ["a", "a b;", "(a;", "[a;", "f(a b);", "a.;", "a.1;", "@;", ";", "{", "}", "a[];"],
)
def test_malformed_input(source: str) -> None:
    with pytest.raises(MagSyntaxError):
        p(source)


# Program and blocks


def test_empty_program() -> None:
    assert p("") == prog()
    assert p("  // nothing\n") == prog()


def test_empty_and_nested_blocks() -> None:
    assert p("{} { { a; } }") == prog(block(), block(block(expr(id_("a")))))


def test_statement_sequence_keeps_order() -> None:
    result = p("let a = 1; { a; } if (a) b; (c = a);")
    assert [stmt.type for stmt in result.body] == [
        "VariableDeclaration",
        "BlockStatement",
        "ConditionalStatement",
        "ExpressionStatement",
    ]


def test_unterminated_block() -> None:
    with pytest.raises(MagSyntaxError, match="close block"):
        p("{ a;")


# Entry points and errors


def test_parse_expression_entry() -> None:
    assert parse_expression("a = 1 + 2") == assign(id_("a"), bin_("+", n("1"), n("2")))
    assert parse_expression("if a then b else c") == cond_then(
        id_("a"), id_("b"), id_("c")
    )


def test_parse_expression_rejects_trailing_input() -> None:
    with pytest.raises(MagSyntaxError, match="end of input"):
        parse_expression("a;")


def test_error_is_syntax_error_with_position() -> None:
    with pytest.raises(SyntaxError) as excinfo:
        p("let x = 1;\nlet y = ;")
    err = excinfo.value
    assert isinstance(err, MagSyntaxError)
    assert (err.line, err.col) == (2, 9)
    assert err.lineno == 2
    assert "line 2, col 9" in str(err)


def test_furthest_failure_is_reported() -> None:
    with pytest.raises(MagSyntaxError) as excinfo:
        p("if a b;")
    assert excinfo.value.col == 6
    assert "'{'" in excinfo.value.reason


def test_node_positions() -> None:
    result = p("let x = 1;\n  (a.b = c);")
    decl, stmt = result.body
    assert (decl.line, decl.col) == (1, 1)
    assert (stmt.line, stmt.col) == (2, 3)
    assignment = stmt.expression.expression
    assert (assignment.left.field.line, assignment.left.field.col) == (2, 6)


def test_parser_accepts_tokens_without_eof() -> None:
    tokens = [Token("IDENT", "a", 1, 1, 0), Token("SEMI", ";", 1, 2, 1)]
    assert Parser(tokens).parse() == pe(id_("a"))


def test_deeply_nested_calls_parse() -> None:
    depth = 30
    source = "f(" * depth + "x" + ")" * depth + ";"
    result: Any = p(source).body[0].expression
    for _ in range(depth):
        assert result.type == "CallExpression"
        result = result.arguments[0]
    assert result == id_("x")


def test_deeply_nested_conditionals_parse() -> None:
    depth = 25
    source = "(" + "if (a) b else " * depth + "c);"
    result: Any = p(source).body[0].expression.expression
    for _ in range(depth):
        assert result.type == "ConditionalExpression"
        result = result.alternate
    assert result == id_("c")


@pytest.mark.parametrize("open_,close", [("(", ")"), ("[", "]")])
def test_two_hundred_nested_groups_parse(open_: str, close: str) -> None:
    depth = 200
    result: Any = parse_expression(open_ * depth + "x" + close * depth)
    kind = "ParenthesizedExpression" if open_ == "(" else "ArrayExpression"
    for _ in range(depth):
        assert result.type == kind
        result = result.expression if open_ == "(" else result.elements[0]
    assert result == id_("x")


@pytest.mark.parametrize(
    "source",
    [
        "(" * 300 + "x" + ")" * 300 + ";",
        "[" * 300 + "x" + "]" * 300 + ";",
        "f(" * 300 + "x" + ")" * 300 + ";",
        "(" * 1000,
        "{" * 300 + "}" * 300,
        "if (a) " * 300 + "b;",
        "let " + "[" * 300 + "x" + "]" * 300 + ";",
        "(" + "if (a) b else " * 300 + "c);",
    ],
)
def test_too_deep_nesting_is_a_syntax_error(source: str) -> None:
    with pytest.raises(MagSyntaxError, match="Too many nested expressions"):
        parse_program(source)


def test_too_deep_nesting_reports_the_innermost_token() -> None:
    with pytest.raises(MagSyntaxError) as excinfo:
        parse_expression("(" * 300 + "x" + ")" * 300)
    assert excinfo.value.line == 1
    assert excinfo.value.col == 257


def test_nesting_depth_is_released_after_each_group() -> None:
    source = ";".join(["(" * 200 + "x" + ")" * 200] * 3) + ";"
    assert len(p(source).body) == 3


def test_long_exponent_chain_is_a_syntax_error_not_a_crash() -> None:
    with pytest.raises(MagSyntaxError, match="Too many nested expressions"):
        parse_expression(" ** ".join(["a"] * 20_000))


@pytest.mark.parametrize(
    "source,expected",
    [
        (
            "if (a) /re/.test(s);",
            prog(cond_st(id_("a"), expr(call(field(regex("re"), "test"), id_("s"))))),
        ),
        ("if (a) /re/;", prog(cond_st(id_("a"), expr(regex("re"))))),
        (
            "if (a) /x/g; else /y/;",
            prog(cond_st(id_("a"), expr(regex("x", "g")), expr(regex("y")))),
        ),
        ("(if (a) /x/ else /y/);", pe(paren(cond(id_("a"), regex("x"), regex("y"))))),
    ],
)
def test_regex_after_if_condition(source: str, expected: Program) -> None:
    assert p(source) == expected


def test_division_after_parenthesized_operand_inside_condition() -> None:
    assert p("if ((a) / 2) b;") == prog(
        cond_st(bin_("/", paren(id_("a")), n("2")), expr(id_("b")))
    )
