"""
Serializes Mag AST nodes as ESTree-compatible JSON.

The output is the `to_dict()` form of the tree, so JavaScript tooling can read
`type` tags and walk `body`/`expression`/`left`/`right` fields directly.
"""

import json

from mag.mag_ast import ASTNode


class EstreeEmitter:
    """Emits ESTree JSON for a Program or a bare expression.

    Attributes:
        locations (bool): Include `loc` entries with line/column positions.
        indent (int | None): JSON indentation; None for compact output.
    """

    def __init__(self, locations: bool = False, indent: int | None = 2) -> None:
        self.locations = locations
        self.indent = indent
        self.output = ""

    def get_output(self) -> str:
        return self.output

    def emit_program(self, node: ASTNode) -> None:
        self.output = json.dumps(
            node.to_dict(locations=self.locations),
            indent=self.indent,
            ensure_ascii=False,
        )

    emit_expression = emit_program


__all__ = ["EstreeEmitter"]
