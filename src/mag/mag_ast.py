"""
Defines the abstract syntax tree (AST) node structure for the Mag language.

The node set mirrors ESTree naming so that JavaScript tooling can consume the
serialized tree directly: every node carries a `type` tag and its children live
under ESTree field names (`body`, `expression`, `left`, `right`, ...).

Classes:
    ASTNode:
        Base class of every node. Provides the `type` tag, source position
        metadata, and `to_dict()` serialization.

    ASTDict:
        TypedDict describing the common keys of a serialized node.

    Program, ExpressionStatement, BlockStatement, ConditionalStatement,
    VariableDeclaration:
        Statement-level nodes.

    ParenthesizedExpression, ConditionalExpression, AssignmentExpression,
    BinaryExpression, UnaryExpression, FieldExpression, IndexExpression,
    CallExpression, ArrayExpression, ArrayPattern:
        Expression and pattern nodes.

    Identifier, NumericLiteral, StringLiteral, BooleanLiteral,
    RegularExpressionLiteral:
        Leaves.

Nodes are frozen dataclasses: they are built bottom-up by the parser and never
mutated afterwards. Sequences of children are stored as tuples. Source positions
(`line`, `col`) are metadata only and do not take part in equality.

Example:
    node = BinaryExpression("+", NumericLiteral("1"), Identifier("a"))
    node.to_dict()["left"] == {"type": "NumericLiteral", "value": "1", "base": 10}
"""

import re
from dataclasses import dataclass, field, fields
from typing import Any, ClassVar, TypedDict, Union


class ASTDict(TypedDict, total=False):
    """
    TypedDict representation of the keys shared by every serialized node.

    Node-specific keys (e.g. `left`, `body`, `operator`) are added alongside.

    Fields:
        type (str): The node variant tag (e.g. "Program", "Identifier").
        loc (dict[str, int]): `{"line": ..., "col": ...}`, present only when
            positions were requested.
    """

    type: str
    loc: dict[str, int]


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass(frozen=True)
class ASTNode:
    """
    Base class for all Mag AST nodes.

    Attributes:
        type (ClassVar[str]): The ESTree-style variant tag.
        line (int): Source line of the node's first token (0 when unknown).
        col (int): Source column of the node's first token (0 when unknown).
    """

    type: ClassVar[str] = "Node"

    line: int = field(default=0, compare=False, repr=False, kw_only=True)
    col: int = field(default=0, compare=False, repr=False, kw_only=True)

    @property
    def kind(self) -> str:
        """The `type` tag in snake_case, used for `emit_*` dispatch."""
        return re.sub(r"(?<!^)(?=[A-Z])", "_", self.type).lower()

    def to_dict(self, locations: bool = False) -> ASTDict:
        """Converts the node and all descendants into plain dictionaries.

        Args:
            locations: If True, each dict gains a `loc` entry.
        """
        result: dict[str, Any] = {"type": self.type}
        for f in fields(self):
            if not f.compare:
                continue
            result[_camel(f.name)] = _serialize(getattr(self, f.name), locations)
        if locations:
            result["loc"] = {"line": self.line, "col": self.col}
        return result  # type: ignore[return-value]


def _serialize(value: Any, locations: bool) -> Any:
    if isinstance(value, ASTNode):
        return value.to_dict(locations)
    if isinstance(value, tuple):
        return [_serialize(v, locations) for v in value]
    return value


# Leaves


@dataclass(frozen=True)
class Identifier(ASTNode):
    type: ClassVar[str] = "Identifier"
    name: str


@dataclass(frozen=True)
class NumericLiteral(ASTNode):
    """A number; `value` keeps the digit text exactly, `base` the numeral radix."""

    type: ClassVar[str] = "NumericLiteral"
    value: str
    base: int = 10


@dataclass(frozen=True)
class StringLiteral(ASTNode):
    type: ClassVar[str] = "StringLiteral"
    value: str


@dataclass(frozen=True)
class BooleanLiteral(ASTNode):
    type: ClassVar[str] = "BooleanLiteral"
    value: bool


@dataclass(frozen=True)
class RegularExpressionLiteral(ASTNode):
    type: ClassVar[str] = "RegularExpressionLiteral"
    pattern: str
    flags: str = ""


# Expressions


@dataclass(frozen=True)
class ParenthesizedExpression(ASTNode):
    type: ClassVar[str] = "ParenthesizedExpression"
    expression: "Expression"


@dataclass(frozen=True)
class ConditionalExpression(ASTNode):
    """`if` used as a value. `alternate` is mandatory.

    Branches are expressions, or BlockStatements for the block-bodied form.
    """

    type: ClassVar[str] = "ConditionalExpression"
    condition: "Expression"
    consequent: Union["Expression", "BlockStatement"]
    alternate: Union["Expression", "BlockStatement"]
    explicit_then: bool = False


@dataclass(frozen=True)
class AssignmentExpression(ASTNode):
    type: ClassVar[str] = "AssignmentExpression"
    left: "Pattern"
    right: "Expression"
    operator: str = "="


@dataclass(frozen=True)
class BinaryExpression(ASTNode):
    type: ClassVar[str] = "BinaryExpression"
    operator: str
    left: "Expression"
    right: "Expression"


@dataclass(frozen=True)
class UnaryExpression(ASTNode):
    type: ClassVar[str] = "UnaryExpression"
    operator: str
    argument: "Expression"
    prefix: bool = True


@dataclass(frozen=True)
class FieldExpression(ASTNode):
    type: ClassVar[str] = "FieldExpression"
    object: "Expression"
    field: Identifier


@dataclass(frozen=True)
class IndexExpression(ASTNode):
    type: ClassVar[str] = "IndexExpression"
    object: "Expression"
    index: "Expression"


@dataclass(frozen=True)
class CallExpression(ASTNode):
    type: ClassVar[str] = "CallExpression"
    callee: "Expression"
    arguments: tuple["Expression", ...] = ()


@dataclass(frozen=True)
class ArrayExpression(ASTNode):
    type: ClassVar[str] = "ArrayExpression"
    elements: tuple["Expression", ...] = ()


@dataclass(frozen=True)
class ArrayPattern(ASTNode):
    type: ClassVar[str] = "ArrayPattern"
    elements: tuple["Pattern", ...] = ()


# Statements


@dataclass(frozen=True)
class ExpressionStatement(ASTNode):
    type: ClassVar[str] = "ExpressionStatement"
    expression: "Expression"


@dataclass(frozen=True)
class BlockStatement(ASTNode):
    type: ClassVar[str] = "BlockStatement"
    body: tuple["Statement", ...] = ()


@dataclass(frozen=True)
class ConditionalStatement(ASTNode):
    """`if` used as control flow. `alternate` is None when there is no `else`."""

    type: ClassVar[str] = "ConditionalStatement"
    condition: "Expression"
    consequent: "Statement"
    alternate: Union["Statement", None] = None


@dataclass(frozen=True)
class VariableDeclaration(ASTNode):
    """`let`, `let mut` and `const` share this shape; the flags tell them apart."""

    type: ClassVar[str] = "VariableDeclaration"
    left: "Pattern"
    type_annotation: Union["Expression", None] = None
    right: Union["Expression", None] = None
    constant: bool = False
    mutable: bool = False


@dataclass(frozen=True)
class Program(ASTNode):
    type: ClassVar[str] = "Program"
    body: tuple["Statement", ...] = ()


Literal = Union[
    NumericLiteral, StringLiteral, BooleanLiteral, RegularExpressionLiteral
]
Expression = Union[
    Identifier,
    Literal,
    ParenthesizedExpression,
    ConditionalExpression,
    AssignmentExpression,
    BinaryExpression,
    UnaryExpression,
    FieldExpression,
    IndexExpression,
    CallExpression,
    ArrayExpression,
]
Pattern = Union[Identifier, FieldExpression, IndexExpression, ArrayPattern]
Statement = Union[
    ExpressionStatement, BlockStatement, ConditionalStatement, VariableDeclaration
]

__all__ = [
    "ASTDict",
    "ASTNode",
    "ArrayExpression",
    "ArrayPattern",
    "AssignmentExpression",
    "BinaryExpression",
    "BlockStatement",
    "BooleanLiteral",
    "CallExpression",
    "ConditionalExpression",
    "ConditionalStatement",
    "Expression",
    "ExpressionStatement",
    "FieldExpression",
    "Identifier",
    "IndexExpression",
    "Literal",
    "NumericLiteral",
    "ParenthesizedExpression",
    "Pattern",
    "Program",
    "RegularExpressionLiteral",
    "Statement",
    "StringLiteral",
    "UnaryExpression",
    "VariableDeclaration",
]
