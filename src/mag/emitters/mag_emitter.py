"""
Translates Mag AST nodes back into canonical Mag source code.

This module defines the `MagEmitter` class, which prints a tree produced by the
parser as normalized Mag text: one statement per line, four-space indentation,
single spaces around binary operators.

Behavior:
    - `ParenthesizedExpression` nodes are printed as written, so parsing the
      output of a parsed program yields an equal tree.
    - For hand-built trees, parentheses are inserted where the grammar would
      otherwise regroup the operands (precedence, associativity, greedy
      `if`-expression branches, leading `if`/assignment at statement position),
      and a dangling `else` is kept on its own `if` by bracing the inner one.
    - Maintains a code buffer (`lines`) which can be retrieved using `get_output()`.

Raises:
    - `NotImplementedError`: If a node type has no corresponding emitter.
    - `ValueError`: For a `const mut` declaration or a numeric base with no Mag prefix.
"""

from mag.mag_ast import (
    ArrayExpression,
    AssignmentExpression,
    ASTNode,
    BinaryExpression,
    BlockStatement,
    BooleanLiteral,
    CallExpression,
    ConditionalExpression,
    ConditionalStatement,
    ExpressionStatement,
    FieldExpression,
    Identifier,
    IndexExpression,
    NumericLiteral,
    ParenthesizedExpression,
    Program,
    RegularExpressionLiteral,
    StringLiteral,
    UnaryExpression,
    VariableDeclaration,
)
from mag.mag_constants import BASE_PREFIXES, COMPARISON_OPS, token_hashmap

# Binding strength, loosest first.
ASSIGNMENT = 1
COMPARISON = 2
ADDITIVE = 3
MULTIPLICATIVE = 4
EXPONENT = 5
UNARY = 6
POSTFIX = 7
PRIMARY = 8

_COMPARATORS = {op for op, tok in token_hashmap.items() if tok in COMPARISON_OPS}
_BINARY_PRECEDENCE = {
    **{op: COMPARISON for op in _COMPARATORS},
    "+": ADDITIVE,
    "-": ADDITIVE,
    "*": MULTIPLICATIVE,
    "/": MULTIPLICATIVE,
    "%": MULTIPLICATIVE,
    "**": EXPONENT,
}

_STRING_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\t": "\\t",
    "\r": "\\r",
    "\b": "\\b",
    "\f": "\\f",
    "\v": "\\v",
    "\0": "\\0",
}


def precedence(node: ASTNode) -> int:
    if isinstance(node, AssignmentExpression):
        return ASSIGNMENT
    if isinstance(node, BinaryExpression):
        return _BINARY_PRECEDENCE[node.operator]
    if isinstance(node, UnaryExpression):
        return UNARY
    if isinstance(node, (FieldExpression, IndexExpression, CallExpression)):
        return POSTFIX
    return PRIMARY


def operand_minimums(operator: str) -> tuple[int, int]:
    """Least precedence each side of a binary operator takes without parentheses.

    Left-associative levels need a strictly tighter right operand, `**` needs a
    strictly tighter left operand, and comparators accept neither side at their
    own level.
    """
    level = _BINARY_PRECEDENCE[operator]
    if level == COMPARISON:
        return ADDITIVE, ADDITIVE
    if level == EXPONENT:
        return UNARY, EXPONENT
    return level, level + 1


def ends_open(node: ASTNode) -> bool:
    """True when the printed node ends in a branch that would swallow what follows."""
    if isinstance(node, ConditionalExpression):
        # only the block-bodied form can end in a closing brace
        if not isinstance(node.consequent, BlockStatement):
            return True
        return not isinstance(node.alternate, BlockStatement) and ends_open(
            node.alternate
        )
    if isinstance(node, (AssignmentExpression, BinaryExpression)):
        return ends_open(node.right)
    if isinstance(node, UnaryExpression):
        return ends_open(node.argument)
    return False


def starts_with_if(node: ASTNode) -> bool:
    """True when the printed node's first token is `if`."""
    while True:
        if isinstance(node, ConditionalExpression):
            return True
        if isinstance(node, (BinaryExpression, AssignmentExpression)):
            node = node.left
        elif isinstance(node, (FieldExpression, IndexExpression)):
            node = node.object
        elif isinstance(node, CallExpression):
            node = node.callee
        else:
            return False


def divides_leading_group(node: ASTNode) -> bool:
    """True when the printed node opens with a `(...)` group followed by `/`.

    After `if`, such a group reads as the whole condition and the `/` as the
    start of a regular expression.
    """
    while isinstance(node, BinaryExpression):
        left_min, _ = operand_minimums(node.operator)
        left = node.left
        if (
            isinstance(left, ParenthesizedExpression)
            or precedence(left) < left_min
            or ends_open(left)
        ):
            return node.operator == "/"
        node = left
    return False


def dangles(node: ASTNode) -> bool:
    """True when an `else` printed after this statement would attach inside it."""
    if not isinstance(node, ConditionalStatement):
        return False
    return node.alternate is None or dangles(node.alternate)


class MagEmitter:
    """Emits Mag source code from Mag AST nodes.

    Attributes:
        lines (list[str]): Accumulated lines of emitted code.
        indent (int): Current indentation level for emitted code blocks.

    Methods:
        get_output(): Returns the full emitted code as a string.
        emit_expr(node): Emits an expression and returns its text.
        _visit(node): Dispatches a statement to the appropriate emit_* method.
    """

    def __init__(self) -> None:
        self.lines: list[str] = []
        self.indent = 0

    def indent_str(self) -> str:
        return "    " * self.indent

    def get_output(self) -> str:
        return "".join(line + "\n" for line in self.lines)

    def _visit(self, node: ASTNode) -> None:
        method = getattr(self, f"emit_{node.kind}", None)
        if method is None:
            raise NotImplementedError(f"No emitter method for node type '{node.type}'")
        method(node)

    def emit_expression(self, node: ASTNode) -> None:
        """Emits a bare expression as the only line of output."""
        self.lines.append(self.indent_str() + self.emit_expr(node))

    # Statements

    def emit_program(self, node: Program) -> None:
        for stmt in node.body:
            self._visit(stmt)

    def emit_expression_statement(self, node: ExpressionStatement) -> None:
        text = self.emit_expr(node.expression)
        if isinstance(node.expression, AssignmentExpression) or starts_with_if(
            node.expression
        ):
            text = f"({text})"
        self.lines.append(f"{self.indent_str()}{text};")

    def emit_block_statement(self, node: BlockStatement) -> None:
        if not node.body:
            self.lines.append(self.indent_str() + "{}")
            return
        self.lines.append(self.indent_str() + "{")
        self.indent += 1
        for stmt in node.body:
            self._visit(stmt)
        self.indent -= 1
        self.lines.append(self.indent_str() + "}")

    def emit_conditional_statement(self, node: ConditionalStatement) -> None:
        consequent = node.consequent
        if node.alternate is not None and dangles(consequent):
            consequent = BlockStatement((consequent,))

        start = len(self.lines)
        self._visit(consequent)
        head = f"if ({self.emit_expr(node.condition)}) "
        self.lines[start] = self.indent_str() + head + self.lines[start].lstrip()

        if node.alternate is None:
            return
        alt_start = len(self.lines)
        self._visit(node.alternate)
        alt_first = self.lines[alt_start].lstrip()
        if self.lines[alt_start - 1].endswith("}"):
            self.lines[alt_start - 1] += " else " + alt_first
            del self.lines[alt_start]
        else:
            self.lines[alt_start] = f"{self.indent_str()}else {alt_first}"

    def emit_variable_declaration(self, node: VariableDeclaration) -> None:
        if node.constant and node.mutable:
            raise ValueError("'const' declarations cannot be 'mut'")
        if node.constant:
            keyword = "const"
        elif node.mutable:
            keyword = "let mut"
        else:
            keyword = "let"
        text = f"{keyword} {self.emit_expr(node.left)}"
        if node.type_annotation is not None:
            text += ": " + self.operand(
                node.type_annotation, COMPARISON, followed=node.right is not None
            )
        if node.right is not None:
            text += " = " + self.emit_expr(node.right)
        self.lines.append(f"{self.indent_str()}{text};")

    # Expressions

    def emit_expr(self, node: ASTNode) -> str:
        method = getattr(self, f"emit_expr_{node.kind}", None)
        if method is None:
            raise NotImplementedError(
                f"No expression emitter for node type '{node.type}'"
            )
        return str(method(node))

    def operand(self, node: ASTNode, minimum: int, followed: bool = False) -> str:
        """Emits `node`, parenthesized if it binds looser than `minimum`.

        `followed` marks operands that more source text will follow, which rules
        out unparenthesized greedy `if`-expression tails.
        """
        text = self.emit_expr(node)
        if precedence(node) < minimum or (followed and ends_open(node)):
            return f"({text})"
        return text

    def emit_expr_identifier(self, node: Identifier) -> str:
        return node.name

    def emit_expr_numeric_literal(self, node: NumericLiteral) -> str:
        if node.base == 10:
            return node.value
        if node.base not in BASE_PREFIXES:
            raise ValueError(f"Unsupported numeric base {node.base}")
        return BASE_PREFIXES[node.base] + node.value

    def emit_expr_string_literal(self, node: StringLiteral) -> str:
        out = []
        for ch in node.value:
            if ch in _STRING_ESCAPES:
                out.append(_STRING_ESCAPES[ch])
            elif ord(ch) < 0x20 or ord(ch) == 0x7F:
                out.append(f"\\x{ord(ch):02x}")
            else:
                out.append(ch)
        return '"' + "".join(out) + '"'

    def emit_expr_boolean_literal(self, node: BooleanLiteral) -> str:
        return "true" if node.value else "false"

    def emit_expr_regular_expression_literal(
        self, node: RegularExpressionLiteral
    ) -> str:
        return f"/{node.pattern}/{node.flags}"

    def emit_expr_parenthesized_expression(self, node: ParenthesizedExpression) -> str:
        return f"({self.emit_expr(node.expression)})"

    def emit_expr_array_expression(self, node: ArrayExpression) -> str:
        return "[" + ", ".join(self.emit_expr(e) for e in node.elements) + "]"

    emit_expr_array_pattern = emit_expr_array_expression

    def emit_expr_field_expression(self, node: FieldExpression) -> str:
        obj = self.operand(node.object, POSTFIX, followed=True)
        return f"{obj}.{node.field.name}"

    def emit_expr_index_expression(self, node: IndexExpression) -> str:
        obj = self.operand(node.object, POSTFIX, followed=True)
        return f"{obj}[{self.emit_expr(node.index)}]"

    def emit_expr_call_expression(self, node: CallExpression) -> str:
        callee = self.operand(node.callee, POSTFIX, followed=True)
        args = ", ".join(self.emit_expr(a) for a in node.arguments)
        return f"{callee}({args})"

    def emit_expr_unary_expression(self, node: UnaryExpression) -> str:
        return node.operator + self.operand(node.argument, POSTFIX)

    def emit_expr_binary_expression(self, node: BinaryExpression) -> str:
        """Emits a binary expression, parenthesizing operands the grammar would regroup."""
        left_min, right_min = operand_minimums(node.operator)
        left = self.operand(node.left, left_min, followed=True)
        right = self.operand(node.right, right_min)
        return f"{left} {node.operator} {right}"

    def emit_expr_assignment_expression(self, node: AssignmentExpression) -> str:
        left = self.emit_expr(node.left)
        return f"{left} {node.operator} {self.emit_expr(node.right)}"

    def emit_expr_conditional_expression(self, node: ConditionalExpression) -> str:
        """
        Emits an `if`-expression in the form it was parsed from.

        Block branches select `if c { ... } else { ... }`, `explicit_then` selects
        `if c then a else b`, anything else `if (c) a else b`.
        """
        if isinstance(node.consequent, BlockStatement):
            condition = self.bare_condition(node.condition)
            alternate = (
                self.inline_block(node.alternate)
                if isinstance(node.alternate, BlockStatement)
                else self.emit_expr(node.alternate)
            )
            return (
                f"if {condition} {self.inline_block(node.consequent)} "
                f"else {alternate}"
            )
        consequent = self.emit_expr(node.consequent)
        alternate = self.emit_expr(node.alternate)
        if node.explicit_then:
            condition = self.bare_condition(node.condition)
            return f"if {condition} then {consequent} else {alternate}"
        return f"if ({self.emit_expr(node.condition)}) {consequent} else {alternate}"

    def bare_condition(self, node: ASTNode) -> str:
        """Emits the condition of a `then` or block-bodied `if`-expression."""
        grouped = precedence(node) < COMPARISON or ends_open(node)
        text = self.operand(node, COMPARISON, followed=True)
        if not grouped and divides_leading_group(node):
            # `if (a) / b` would close the condition at `)`
            return f"({text})"
        return text

    def inline_block(self, node: BlockStatement) -> str:
        """Emits a block on a single line, for blocks nested inside expressions."""
        inner = MagEmitter()
        for stmt in node.body:
            inner._visit(stmt)
        body = " ".join(line.strip() for line in inner.lines)
        return f"{{ {body} }}" if body else "{}"


__all__ = [
    "MagEmitter",
    "dangles",
    "divides_leading_group",
    "ends_open",
    "operand_minimums",
    "precedence",
    "starts_with_if",
]
