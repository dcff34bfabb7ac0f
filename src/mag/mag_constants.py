"""
Shared lexical and grammatical tables for the Mag language.

The lexer uses these tables for keyword recognition and longest-match operator
scanning. The parser uses the operator groups to drive its precedence ladder.

Exports:
    KEYWORDS: Reserved words mapped to their token types.
    token_hashmap: Operator/punctuation spelling mapped to token types.
    COMPARISON_OPS, ADDITIVE_OPS, MULTIPLICATIVE_OPS, EXPONENT_OPS, UNARY_OPS:
        Token types belonging to each precedence level.
    VALUE_END_TOKENS: Token types after which a `/` means division.
    NUMERIC_BASES: Radix prefix character mapped to numeric base.
    REGEX_FLAGS: Flag letters accepted on regular-expression literals.
    MAX_NESTING_DEPTH, PARSER_RECURSION_LIMIT: Bounds on parser recursion.
"""

KEYWORDS: dict[str, str] = {
    "if": "IF",
    "else": "ELSE",
    "then": "THEN",
    "let": "LET",
    "mut": "MUT",
    "const": "CONST",
    "true": "TRUE",
    "false": "FALSE",
}

token_hashmap: dict[str, str] = {
    # comparators
    "===": "STRICT_EQ",
    "!==": "STRICT_NE",
    "==": "EQ",
    "!=": "NE",
    "<=": "LE",
    ">=": "GE",
    "<": "LT",
    ">": "GT",
    # arithmetic
    "**": "POW",
    "+": "PLUS",
    "-": "SUB",
    "*": "MULT",
    "/": "DIV",
    "%": "MOD",
    # assignment
    "=": "ASSIGN",
    # punctuation
    "(": "LPAREN",
    ")": "RPAREN",
    "[": "LBRACK",
    "]": "RBRACK",
    "{": "LBRACE",
    "}": "RBRACE",
    ",": "COMMA",
    ";": "SEMI",
    ":": "COLON",
    ".": "DOT",
}

# Upper bound for longest-match scanning (`===` must win over `==` and `=`).
MAX_OPERATOR_LEN = max(len(op) for op in token_hashmap)

COMPARISON_OPS: set[str] = {
    "EQ",
    "NE",
    "STRICT_EQ",
    "STRICT_NE",
    "LT",
    "LE",
    "GT",
    "GE",
}
ADDITIVE_OPS: set[str] = {"PLUS", "SUB"}
MULTIPLICATIVE_OPS: set[str] = {"MULT", "DIV", "MOD"}
EXPONENT_OPS: set[str] = {"POW"}
UNARY_OPS: set[str] = {"SUB"}

VALUE_END_TOKENS: set[str] = {
    "IDENT",
    "NUMBER",
    "STRING",
    "REGEX",
    "TRUE",
    "FALSE",
    "RPAREN",
    "RBRACK",
}

NUMERIC_BASES: dict[str, int] = {"x": 16, "o": 8, "b": 2}
BASE_PREFIXES: dict[int, str] = {base: f"0{ch}" for ch, base in NUMERIC_BASES.items()}
BASE_DIGITS: dict[int, str] = {
    2: "01",
    8: "01234567",
    10: "0123456789",
    16: "0123456789abcdefABCDEF",
}

REGEX_FLAGS = "dgimsuvy"

# Deepest nesting of statements and expressions the parser accepts.
MAX_NESTING_DEPTH = 256
# Interpreter recursion limit while parsing; each nesting level costs about 20 frames.
PARSER_RECURSION_LIMIT = 10_000

__all__ = [
    "ADDITIVE_OPS",
    "BASE_DIGITS",
    "BASE_PREFIXES",
    "COMPARISON_OPS",
    "EXPONENT_OPS",
    "KEYWORDS",
    "MAX_NESTING_DEPTH",
    "MAX_OPERATOR_LEN",
    "MULTIPLICATIVE_OPS",
    "NUMERIC_BASES",
    "PARSER_RECURSION_LIMIT",
    "REGEX_FLAGS",
    "UNARY_OPS",
    "VALUE_END_TOKENS",
    "token_hashmap",
]
