"""
Mag Language Parser

Parses Mag source tokens into an ESTree-compatible abstract syntax tree.

This module implements the grammar of the Mag language as a recursive-descent
parser with ordered choice: where the grammar offers alternatives, they are tried
in order and the token cursor is rolled back after each failure. Rules that are
re-entered at the same position during backtracking are memoized (packrat style),
so backtracking never re-parses a sub-tree.

Grammar Layers
--------------
- Program: a sequence of statements up to end of input.
- Statements:
    * Expression statements terminated by `;`
    * Blocks `{ ... }`
    * Conditional statements: `if (cond) stmt [else stmt]` and
      `if cond { ... } [else stmt]`
    * Declarations: `let`, `let mut`, `const` with optional `: type` and `= value`
- Expressions, loosest to tightest:
    * Assignment `pattern = value` (right-associative)
    * Comparison `== != === !== < <= > >=` (non-associative: at most one per level)
    * Additive `+ -`, multiplicative `* / %` (left-associative)
    * Exponentiation `**` (right-associative)
    * Unary prefix `-`
    * Postfix chains `.field`, `[index]`, `(args)`
    * Primaries: identifiers, literals, arrays, parenthesized expressions and
      conditional expressions (`if (c) a else b`, `if c then a else b`,
      `if c { ... } else { ... }`)

At statement position a leading `if` always starts a conditional statement, and an
assignment is only accepted as an expression. Both therefore need explicit
parentheses to stand as expression statements: `(a = b);`, `(if a then b else c);`.

Entry Points
------------
- `parse_program(source)`: Parse a complete program into a `Program` node.
- `parse_expression(source)`: Parse a single bare expression.

Raises
------
MagSyntaxError
    Raised when the input does not match the grammar. No partial tree is returned.
"""

from __future__ import annotations

import functools
import sys
from collections.abc import Callable
from typing import Any, TypeVar

from mag.mag_ast import (
    ArrayExpression,
    ArrayPattern,
    AssignmentExpression,
    BinaryExpression,
    BlockStatement,
    BooleanLiteral,
    CallExpression,
    ConditionalExpression,
    ConditionalStatement,
    Expression,
    ExpressionStatement,
    FieldExpression,
    Identifier,
    IndexExpression,
    NumericLiteral,
    ParenthesizedExpression,
    Pattern,
    Program,
    RegularExpressionLiteral,
    Statement,
    StringLiteral,
    UnaryExpression,
    VariableDeclaration,
)
from mag.mag_constants import (
    ADDITIVE_OPS,
    COMPARISON_OPS,
    EXPONENT_OPS,
    KEYWORDS,
    MAX_NESTING_DEPTH,
    MULTIPLICATIVE_OPS,
    PARSER_RECURSION_LIMIT,
    UNARY_OPS,
)
from mag.mag_lexer import MagSyntaxError, Token, tokenize

T = TypeVar("T")

CLOSERS = {"RPAREN": ")", "RBRACK": "]"}


def memoized(rule: Callable[[Parser], T]) -> Callable[[Parser], T]:
    """Caches a rule's outcome (node or error) per start position."""

    @functools.wraps(rule)
    def wrapper(self: Parser) -> T:
        key = (rule.__name__, self.position)
        cached = self.cache.get(key)
        if cached is None:
            start = self.position
            try:
                cached = (rule(self), self.position, None)
            except MagSyntaxError as e:
                cached = (None, start, e)
            self.cache[key] = cached
        node, end, error = cached
        if error is not None:
            raise error
        self.position = end
        return node  # type: ignore[no-any-return]

    return wrapper


def nested(rule: Callable[[Parser], T]) -> Callable[[Parser], T]:
    """Counts a rule toward the nesting depth, failing once it is too deep."""

    @functools.wraps(rule)
    def wrapper(self: Parser) -> T:
        if self.depth >= MAX_NESTING_DEPTH:
            raise self.error("Too many nested expressions")
        self.depth += 1
        try:
            return rule(self)
        finally:
            self.depth -= 1

    return wrapper


class Parser:
    """
    Mag Parser Class

    Transforms a list of lexical tokens into a `Program` tree. Each grammar rule
    is a `parse_*` method that either returns a node, leaving the cursor after
    the matched input, or raises `MagSyntaxError`.

    Attributes
    ----------
    tokens : list[Token]
        The token stream to be parsed; must end with an EOF token.
    position : int
        Current index into the token stream.
    cache : dict
        Memo table for rules re-entered during backtracking.
    depth : int
        Current nesting of statements and expressions, bounded by
        `MAX_NESTING_DEPTH`.

    Methods
    -------
    parse() -> Program
        Parse a complete program.
    run(rule) -> node
        Call an entry rule with enough recursion headroom for deep nesting.
    parse_statement() -> Statement
        Parse a single statement.
    parse_expression() -> Expression
        Parse a full expression, including assignment.
    parse_operand() -> Expression
        Parse an expression without a top-level assignment.
    parse_conditional_statement() -> ConditionalStatement
        Parse `if` at statement position.
    parse_conditional_expression() -> ConditionalExpression
        Parse `if` at value position.
    parse_variable_declaration() -> VariableDeclaration
        Parse `let`, `let mut` or `const`.
    """

    def __init__(self, tokens: list[Token]) -> None:
        if not tokens:
            tokens = [Token("EOF", "EOF", 1, 1)]
        elif tokens[-1].type != "EOF":
            last = tokens[-1]
            eof = Token("EOF", "EOF", last.line, last.col, last.position + 1)
            tokens = list(tokens) + [eof]
        self.tokens: list[Token] = tokens
        self.position: int = 0
        self.cache: dict[tuple[str, int], tuple[Any, int, MagSyntaxError | None]] = {}
        self.depth: int = 0

    # Cursor helpers

    def current(self) -> Token:
        return self.tokens[min(self.position, len(self.tokens) - 1)]

    def advance(self) -> Token:
        tok = self.current()
        if tok.type != "EOF":
            self.position += 1
        return tok

    def check(self, *types: str) -> bool:
        return self.current().type in types

    def accept(self, *types: str) -> Token | None:
        if self.check(*types):
            return self.advance()
        return None

    def match(self, *types: str, message: str | None = None) -> Token:
        tok = self.accept(*types)
        if tok is None:
            raise self.error(message or f"Expected {' or '.join(types)}")
        return tok

    def error(self, message: str, tok: Token | None = None) -> MagSyntaxError:
        tok = tok or self.current()
        found = "end of input" if tok.type == "EOF" else repr(tok.value)
        return MagSyntaxError(
            f"{message}, found {found}", tok.line, tok.col, tok.value, tok.position
        )

    def attempt(self, *alternatives: Callable[[], T]) -> T:
        """Ordered choice: returns the first alternative that matches.

        The cursor is restored before each alternative. If all of them fail, the
        error raised furthest into the input is re-raised.
        """
        start = self.position
        furthest: MagSyntaxError | None = None
        for alternative in alternatives:
            try:
                return alternative()
            except MagSyntaxError as e:
                self.position = start
                if furthest is None or e.position > furthest.position:
                    furthest = e
        assert furthest is not None  # for mypy
        raise furthest

    def expect_end(self) -> None:
        if not self.check("EOF"):
            raise self.error("Expected end of input")

    def run(self, rule: Callable[[], T]) -> T:
        """Calls an entry rule with the recursion limit raised for deep nesting.

        `MAX_NESTING_DEPTH` normally stops nesting first. A `RecursionError` from
        any other deep recursion, such as a long `**` chain, is reported as the
        same syntax error.
        """
        limit = sys.getrecursionlimit()
        sys.setrecursionlimit(max(limit, PARSER_RECURSION_LIMIT))
        try:
            return rule()
        except RecursionError:
            raise self.error("Too many nested expressions") from None
        finally:
            sys.setrecursionlimit(limit)

    # Program and statements

    def parse(self) -> Program:
        """Parse a full Mag program."""
        return self.run(self.parse_program)

    def parse_program(self) -> Program:
        first = self.current()
        body: list[Statement] = []
        while not self.check("EOF"):
            body.append(self.parse_statement())
        return Program(tuple(body), line=first.line, col=first.col)

    @memoized
    @nested
    def parse_statement(self) -> Statement:
        """Parse a single statement, dispatching on its leading token."""
        tok = self.current()
        if tok.type == "IF":
            return self.parse_conditional_statement()
        if tok.type in ("LET", "CONST"):
            return self.parse_variable_declaration()
        if tok.type == "LBRACE":
            return self.parse_block()
        return self.parse_expression_statement()

    def parse_expression_statement(self) -> ExpressionStatement:
        expr = self.parse_operand()
        if self.check("ASSIGN"):
            raise self.error("Assignment used as a statement must be parenthesized")
        self.match("SEMI", message="Expected ';' after expression")
        return ExpressionStatement(expr, line=expr.line, col=expr.col)

    def terminate(self) -> None:
        self.match("SEMI", message="Expected ';'")

    @memoized
    def parse_block(self) -> BlockStatement:
        """Parse a `{}`-enclosed sequence of statements."""
        open_tok = self.match("LBRACE", message="Expected '{'")
        body: list[Statement] = []
        while not self.check("RBRACE"):
            if self.check("EOF"):
                raise self.error("Expected '}' to close block")
            body.append(self.parse_statement())
        self.match("RBRACE")
        return BlockStatement(tuple(body), line=open_tok.line, col=open_tok.col)

    def parse_conditional_statement(self) -> ConditionalStatement:
        """Parse `if (cond) stmt [else stmt]` or `if cond { ... } [else stmt]`.

        A bare condition must be followed by a block: `if a b;` is rejected.
        """
        if_tok = self.match("IF")

        def parenthesized() -> tuple[Expression, Statement]:
            self.match("LPAREN", message="Expected '(' after 'if'")
            condition = self.parse_expression()
            self.match("RPAREN", message="Expected ')' after condition")
            return condition, self.parse_statement()

        def bare() -> tuple[Expression, Statement]:
            condition = self.parse_operand()
            if not self.check("LBRACE"):
                raise self.error("Expected '{' after unparenthesized 'if' condition")
            return condition, self.parse_block()

        condition, consequent = self.attempt(parenthesized, bare)

        alternate = None
        if self.accept("ELSE"):
            alternate = self.parse_statement()

        return ConditionalStatement(
            condition, consequent, alternate, line=if_tok.line, col=if_tok.col
        )

    def parse_variable_declaration(self) -> VariableDeclaration:
        """Parse `let [mut] pattern [: type] [= value];` or `const ...;`."""
        kw_tok = self.match("LET", "CONST")
        constant = kw_tok.type == "CONST"
        mutable = False
        if self.check("MUT"):
            if constant:
                raise self.error("'const' declarations cannot be 'mut'")
            self.advance()
            mutable = True

        left = self.parse_binding_pattern()

        type_annotation = None
        if self.accept("COLON"):
            type_annotation = self.parse_operand()

        right = None
        if self.accept("ASSIGN"):
            right = self.parse_expression()

        self.terminate()
        return VariableDeclaration(
            left,
            type_annotation,
            right,
            constant=constant,
            mutable=mutable,
            line=kw_tok.line,
            col=kw_tok.col,
        )

    @nested
    def parse_binding_pattern(self) -> Identifier | ArrayPattern:
        """Parse a declaration target: an identifier or nested array pattern."""
        tok = self.current()
        if tok.type == "IDENT":
            self.advance()
            return Identifier(tok.value, line=tok.line, col=tok.col)
        if tok.type == "LBRACK":
            elements = self.parse_delimited("RBRACK", self.parse_binding_pattern)
            return ArrayPattern(elements, line=tok.line, col=tok.col)
        raise self.error("Expected identifier or array pattern")

    # Expressions

    @memoized
    @nested
    def parse_expression(self) -> Expression:
        """Parse a full expression, including right-associative assignment.

        The left side is parsed as an ordinary operand and reinterpreted as a
        pattern once `=` is seen.
        """
        left = self.parse_operand()
        assign_tok = self.accept("ASSIGN")
        if assign_tok is None:
            return left
        target = self.to_pattern(left, assign_tok)
        right = self.parse_expression()
        return AssignmentExpression(target, right, line=left.line, col=left.col)

    def to_pattern(self, node: Expression, assign_tok: Token) -> Pattern:
        """Reinterpret an already parsed expression as an assignment target."""
        if isinstance(node, Identifier):
            return node
        if isinstance(node, (FieldExpression, IndexExpression)) and is_rooted_chain(
            node.object
        ):
            return node
        if isinstance(node, ArrayExpression):
            elements = tuple(self.to_pattern(e, assign_tok) for e in node.elements)
            return ArrayPattern(elements, line=node.line, col=node.col)
        raise self.error(f"Invalid assignment target {node.type}", assign_tok)

    @memoized
    def parse_operand(self) -> Expression:
        """Parse an expression that is not itself an assignment."""
        return self.parse_comparison()

    def parse_comparison(self) -> Expression:
        """Parse at most one comparator application; a second one is an error."""
        left = self.parse_additive()
        if not self.check(*COMPARISON_OPS):
            return left
        op_tok = self.advance()
        right = self.parse_additive()
        if self.check(*COMPARISON_OPS):
            raise self.error(
                "Comparison operators cannot be chained; parenthesize one side"
            )
        return BinaryExpression(op_tok.value, left, right, line=left.line, col=left.col)

    def parse_binary_left(
        self, operators: set[str], operand: Callable[[], Expression]
    ) -> Expression:
        left = operand()
        while self.check(*operators):
            op_tok = self.advance()
            right = operand()
            left = BinaryExpression(
                op_tok.value, left, right, line=left.line, col=left.col
            )
        return left

    def parse_additive(self) -> Expression:
        return self.parse_binary_left(ADDITIVE_OPS, self.parse_multiplicative)

    def parse_multiplicative(self) -> Expression:
        return self.parse_binary_left(MULTIPLICATIVE_OPS, self.parse_exponent)

    def parse_exponent(self) -> Expression:
        base = self.parse_unary()
        if not self.check(*EXPONENT_OPS):
            return base
        op_tok = self.advance()
        exponent = self.parse_exponent()
        return BinaryExpression(op_tok.value, base, exponent, line=base.line, col=base.col)

    def parse_unary(self) -> Expression:
        op_tok = self.accept(*UNARY_OPS)
        if op_tok is None:
            return self.parse_postfix()
        argument = self.parse_postfix()
        return UnaryExpression(
            op_tok.value, argument, line=op_tok.line, col=op_tok.col
        )

    def parse_postfix(self) -> Expression:
        """Parse a primary followed by any chain of `.f`, `[i]` and `(args)`."""
        node = self.parse_primary()
        while True:
            if self.accept("DOT"):
                name_tok = self.current()
                if name_tok.type != "IDENT" and name_tok.value not in KEYWORDS:
                    raise self.error("Expected field name after '.'")
                self.advance()
                name = Identifier(name_tok.value, line=name_tok.line, col=name_tok.col)
                node = FieldExpression(node, name, line=node.line, col=node.col)
            elif self.accept("LBRACK"):
                index = self.parse_expression()
                self.match("RBRACK", message="Expected ']' after index")
                node = IndexExpression(node, index, line=node.line, col=node.col)
            elif self.check("LPAREN"):
                args = self.parse_delimited("RPAREN", self.parse_expression)
                node = CallExpression(node, args, line=node.line, col=node.col)
            else:
                return node

    def parse_delimited(
        self, close: str, element: Callable[[], T]
    ) -> tuple[T, ...]:
        """Parse `open elem, elem, ... close` with an optional trailing comma.

        The cursor must be on the opening bracket.
        """
        self.advance()
        items: list[T] = []
        while not self.check(close):
            items.append(element())
            if not self.accept("COMMA"):
                break
        self.match(close, message=f"Expected ',' or '{CLOSERS[close]}'")
        return tuple(items)

    def parse_primary(self) -> Expression:
        tok = self.current()
        if tok.type == "IDENT":
            self.advance()
            return Identifier(tok.value, line=tok.line, col=tok.col)
        if tok.type == "NUMBER":
            self.advance()
            return NumericLiteral(tok.value, tok.base, line=tok.line, col=tok.col)
        if tok.type == "STRING":
            self.advance()
            return StringLiteral(tok.value, line=tok.line, col=tok.col)
        if tok.type in ("TRUE", "FALSE"):
            self.advance()
            return BooleanLiteral(tok.type == "TRUE", line=tok.line, col=tok.col)
        if tok.type == "REGEX":
            self.advance()
            return RegularExpressionLiteral(
                tok.value, tok.flags, line=tok.line, col=tok.col
            )
        if tok.type == "LBRACK":
            elements = self.parse_delimited("RBRACK", self.parse_expression)
            return ArrayExpression(elements, line=tok.line, col=tok.col)
        if tok.type == "LPAREN":
            self.advance()
            inner = self.parse_expression()
            self.match("RPAREN", message="Expected ')'")
            return ParenthesizedExpression(inner, line=tok.line, col=tok.col)
        if tok.type == "IF":
            return self.parse_conditional_expression()
        raise self.error("Expected expression")

    def parse_conditional_expression(self) -> ConditionalExpression:
        """Parse `if` at value position; `else` is mandatory.

        Forms, tried in order:
            if (cond) a else b
            if cond then a else b
            if cond { ... } else { ... }
        """
        if_tok = self.match("IF")

        def require_else() -> None:
            self.match(
                "ELSE", message="Expected 'else': an if-expression needs both branches"
            )

        def parenthesized() -> ConditionalExpression:
            self.match("LPAREN", message="Expected '(' after 'if'")
            condition = self.parse_expression()
            self.match("RPAREN", message="Expected ')' after condition")
            consequent = self.parse_expression()
            require_else()
            alternate = self.parse_expression()
            return ConditionalExpression(
                condition, consequent, alternate, line=if_tok.line, col=if_tok.col
            )

        def explicit_then() -> ConditionalExpression:
            condition = self.parse_operand()
            self.match("THEN", message="Expected 'then' after condition")
            consequent = self.parse_expression()
            require_else()
            alternate = self.parse_expression()
            return ConditionalExpression(
                condition,
                consequent,
                alternate,
                explicit_then=True,
                line=if_tok.line,
                col=if_tok.col,
            )

        def block_bodied() -> ConditionalExpression:
            condition = self.parse_operand()
            if not self.check("LBRACE"):
                raise self.error("Expected '{' after unparenthesized 'if' condition")
            consequent = self.parse_block()
            require_else()
            alternate: Expression | BlockStatement
            if self.check("IF"):
                alternate = self.parse_conditional_expression()
            else:
                alternate = self.parse_block()
            return ConditionalExpression(
                condition, consequent, alternate, line=if_tok.line, col=if_tok.col
            )

        return self.attempt(parenthesized, explicit_then, block_bodied)


def is_rooted_chain(node: Expression) -> bool:
    """True when a postfix chain bottoms out in a plain identifier."""
    while isinstance(node, (FieldExpression, IndexExpression, CallExpression)):
        node = node.callee if isinstance(node, CallExpression) else node.object
    return isinstance(node, Identifier)


def parse_program(source: str) -> Program:
    """Parse a complete Mag program.

    Raises:
        MagSyntaxError: If the source is not a valid program.
    """
    return Parser(tokenize(source)).parse()


def parse_expression(source: str) -> Expression:
    """Parse a single bare expression (no trailing `;`).

    Raises:
        MagSyntaxError: If the source is not exactly one expression.
    """
    parser = Parser(tokenize(source))
    node = parser.run(parser.parse_expression)
    parser.expect_end()
    return node


__all__ = ["Parser", "is_rooted_chain", "parse_expression", "parse_program"]
