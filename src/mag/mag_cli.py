"""
Mag CLI Entrypoint.

This module provides the command-line interface for the Mag front end. It parses
Mag source and prints the resulting tree, either as ESTree JSON for JavaScript
tooling or as canonical Mag source.

Features:
    - Read source from `.mag` files or inline strings.
    - Parse full programs, or single expressions with `--expression`.
    - Output to console or file.
    - Syntax errors are reported on stderr with a non-zero exit status.

Example usage:
    mag hello.mag
    mag -s "let x: f32 = 2;" --locations
    mag -s "1 + 2 * 3" -e -t mag
    mag hello.mag -t mag -o formatted.mag

Functions:
    run_mag(source: str, is_string: bool = False, target: str = "estree", out: str | None = None,
            expression: bool = False, locations: bool = False, indent: int | None = 2) -> str:
        Executes the pipeline (read → parse → emit → output) and returns the text.

    main(argv: list[str] | None = None) -> int:
        Parses CLI arguments, runs the pipeline and returns the exit status.
"""

import argparse
import sys

from mag.mag_lexer import MagSyntaxError
from mag.mag_parser import parse_expression, parse_program
from mag.mag_transpile import TARGETS, Transpiler


def run_mag(
    source: str,
    is_string: bool = False,
    target: str = "estree",
    out: str | None = None,
    expression: bool = False,
    locations: bool = False,
    indent: int | None = 2,
) -> str:
    """
    Run the Mag toolchain: read, parse, emit, and print or write the output.

    Args:
        source (str): The Mag source code or path to a `.mag` file.
        is_string (bool): If True, treats `source` as raw code instead of a file path.
        target (str): Output target, "estree" (alias "json") or "mag".
        out (str | None): Optional path to write the output. If None, prints to stdout.
        expression (bool): Parse a single bare expression instead of a program.
        locations (bool): Include line/column positions in ESTree output.
        indent (int | None): JSON indentation for ESTree output.

    Returns:
        str: The emitted text.

    Raises:
        ValueError: If `is_string` is False and the source does not end with '.mag'.
        MagSyntaxError: If the source does not parse.
    """
    if not is_string and not source.endswith(".mag"):
        raise ValueError("Only .mag files are supported.")
    if not is_string:
        with open(source, encoding="utf-8") as f:
            source = f.read()

    tree = parse_expression(source) if expression else parse_program(source)
    text = Transpiler(target, locations=locations, indent=indent).transpile(tree)

    if out:
        with open(out, "w", encoding="utf-8") as f:
            f.write(text)
    else:
        print(text.rstrip("\n"))
    return text


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mag", description="Parse Mag source into an ESTree-compatible AST."
    )
    parser.add_argument("source", help="Filename or raw source (with -s)")
    parser.add_argument(
        "-s", "--string", action="store_true", help="Interpret source as literal string"
    )
    parser.add_argument(
        "-t",
        "--target",
        choices=TARGETS,
        default="estree",
        help="Output format (default: estree)",
    )
    parser.add_argument(
        "-e",
        "--expression",
        action="store_true",
        help="Parse a single expression instead of a program",
    )
    parser.add_argument(
        "--locations", action="store_true", help="Include positions in ESTree output"
    )
    parser.add_argument(
        "--indent",
        type=int,
        default=2,
        metavar="N",
        help="JSON indentation; negative for compact output (default: 2)",
    )
    parser.add_argument("-o", "--out", metavar="OUTFILE", help="Output to file")
    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Entry point for the Mag CLI.

    Returns:
        int: 0 on success, 1 when the source has a syntax error.
    """
    args = build_arg_parser().parse_args(argv)
    try:
        run_mag(
            source=args.source,
            is_string=args.string,
            target=args.target,
            out=args.out,
            expression=args.expression,
            locations=args.locations,
            indent=args.indent if args.indent >= 0 else None,
        )
    except MagSyntaxError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
