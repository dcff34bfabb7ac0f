"""
Provides the `Transpiler` class and emitter interfaces for turning Mag ASTs into text.

Classes and Features:
    - Emitter (Protocol): Interface for all output backends. Requires `get_output`.
    - EstreeEmitter: Serializes the tree as ESTree JSON.
    - MagEmitter: Prints the tree back as canonical Mag source.
    - Transpiler: Selects the emitter for a target ("estree"/"json" or "mag") and
      dispatches the root node to it.

Usage:
    >>> Transpiler("mag").transpile(parse_program("let x=1;"))
    'let x = 1;\\n'

Raises:
    ValueError: If the target is not supported.
    TypeError: If the root is not an AST node.
    NotImplementedError: If the emitter cannot handle the root node.
"""

from typing import Protocol

from mag.emitters.estree_emitter import EstreeEmitter
from mag.emitters.mag_emitter import MagEmitter
from mag.mag_ast import ASTNode, Program


class Emitter(Protocol):  # pragma: no cover
    """Protocol for all Mag output backends."""

    def get_output(self) -> str: ...  # pragma: no cover


TARGETS = ("estree", "json", "mag")


class Transpiler:
    """Dispatches a Mag AST to the emitter for the requested output target.

    Attributes:
        emitter (Emitter): The selected emitter instance for the output target.
    """

    def __init__(
        self, target: str, locations: bool = False, indent: int | None = 2
    ) -> None:
        """Initializes the transpiler with the desired output target.

        Args:
            target: "estree" (alias "json") or "mag".
            locations: Include source positions in ESTree output.
            indent: JSON indentation for ESTree output.

        Raises:
            ValueError: If the target is not supported.
        """
        target = target.lower()
        if target in ("estree", "json"):
            self.emitter: Emitter = EstreeEmitter(locations=locations, indent=indent)
        elif target == "mag":
            self.emitter = MagEmitter()
        else:
            raise ValueError(f"Unknown transpilation target: {target!r}")

    def transpile(self, root: ASTNode) -> str:
        """Emits a Program, or a bare expression, for the selected target.

        Raises:
            TypeError: If `root` is not an ASTNode.
        """
        if not isinstance(root, ASTNode):
            raise TypeError("Transpiler input must be an ASTNode instance.")
        self._visit(root)
        return self.emitter.get_output()

    def _visit(self, node: ASTNode) -> None:
        method_name = "emit_program" if isinstance(node, Program) else "emit_expression"
        if not hasattr(self.emitter, method_name):
            raise NotImplementedError(
                f"No emitter method for node type '{node.type}' "
                f"(line {node.line}, col {node.col})"
            )
        getattr(self.emitter, method_name)(node)


__all__ = ["Emitter", "TARGETS", "Transpiler"]
