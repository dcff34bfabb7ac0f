"""
Lexical analyzer for the Mag language.

This module provides the components that turn raw source text into tokens:

Classes:
    MagSyntaxError: The single error type raised by the lexer and parser.
    CharacterStream: Stream abstraction for reading characters with line/column tracking.
    Token: Represents a single token with type, value, and source location.
    Lexer: Converts a CharacterStream into a sequence of tokens.

Features:
    - Skips whitespace, `//` line comments and `/* */` block comments
    - Longest-match recognition of operators and punctuation
    - Recognizes:
        * Identifiers and keywords
        * Numbers (decimal, exponent, `0x`/`0o`/`0b` radix forms)
        * Strings (single or double quoted, with escape sequences)
        * Regular-expression literals where an operand may start

Raises:
    MagSyntaxError: On malformed numbers, strings, comments, regular expressions,
        or characters that cannot start any token.

Example:
    >>> [tok.type for tok in tokenize("let x = 2;")]
    ['LET', 'IDENT', 'ASSIGN', 'NUMBER', 'SEMI', 'EOF']
"""

from typing import Any

from mag.mag_constants import (
    BASE_DIGITS,
    KEYWORDS,
    MAX_OPERATOR_LEN,
    NUMERIC_BASES,
    REGEX_FLAGS,
    VALUE_END_TOKENS,
    token_hashmap,
)

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}


class MagSyntaxError(SyntaxError):
    """Raised when source text does not match the Mag grammar.

    Populates the builtin `SyntaxError` fields (`lineno`, `offset`, `text`) so the
    error renders like any other Python syntax error.

    Attributes:
        line (int): 1-based line of the offending position.
        col (int): 1-based column of the offending position.
        position (int): 0-based offset used to rank failures during backtracking.
    """

    def __init__(
        self,
        message: str,
        line: int = 0,
        col: int = 0,
        text: str | None = None,
        position: int = -1,
    ) -> None:
        super().__init__(message)
        self.reason = message
        self.line = line
        self.col = col
        self.lineno = line
        self.offset = col
        self.text = text
        self.position = position

    def __str__(self) -> str:
        return f"{self.reason} at line {self.line}, col {self.col}"


class CharacterStream:
    """
    A utility for reading characters from a string source with line and column tracking.

    Attributes:
        source (str): The input source string.
        position (int): Current index in the source.
        line (int): Current line number (1-indexed).
        column (int): Current column number (1-indexed).
    """

    def __init__(self, source: str, position: int = 0, line: int = 1, column: int = 1):
        self.source = source
        self.position = position
        self.line = line
        self.column = column

    def next(self) -> str:
        """
        Consumes and returns the next character in the stream.

        Raises:
            MagSyntaxError: If reading past the end of the source.
        """
        if self.position >= len(self.source):
            raise MagSyntaxError(
                "Unexpected end of input", self.line, self.column, None, self.position
            )
        char = self.source[self.position]
        if char == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        self.position += 1
        return char

    def peek(self, offset: int = 0) -> str:
        """Returns the character at `offset` without advancing, or "" when out of bounds."""
        index = self.position + offset
        if index < 0 or index >= len(self.source):
            return ""
        return self.source[index]

    def end_of_file(self) -> bool:
        return self.position >= len(self.source)


class Token:
    """Represents a single lexical token in the Mag language.

    Attributes:
        type (str): The canonical token type (e.g. 'IDENT', 'NUMBER', 'EOF').
        value (str): The token text. For strings this is the decoded value, for
            numbers the digit text without radix prefix.
        line (int): The 1-based line number where the token appears.
        col (int): The 1-based column number where the token starts.
        position (int): The 0-based source offset where the token starts.
        base (int): Numeral radix for NUMBER tokens.
        flags (str): Flags for REGEX tokens.
    """

    def __init__(
        self,
        type_: str,
        value: str,
        line: int = 0,
        col: int = 0,
        position: int = 0,
        base: int = 10,
        flags: str = "",
    ):
        self.type = type_
        self.value = value
        self.line = line
        self.col = col
        self.position = position
        self.base = base
        self.flags = flags

    def __repr__(self) -> str:
        return f"Token({self.type}, {self.value})"

    def __eq__(self, other: Any) -> bool:
        return (
            isinstance(other, Token)
            and self.type == other.type
            and self.value == other.value
            and self.line == other.line
            and self.col == other.col
        )

    def __hash__(self) -> int:
        return hash((self.type, self.value, self.line, self.col))


class Lexer:
    """Lexical analyzer for the Mag language.

    Converts a CharacterStream into Token objects. Whether `/` starts a regular
    expression or means division depends on the previously emitted token. A `)`
    usually ends a value, except the one closing an `if (...)` condition: what
    follows it starts the branch, as in `if (a) /re/.test(s);`.

    Attributes:
        stream (CharacterStream): The source stream to tokenize.
        last_type (str | None): Type of the most recently emitted token.
        groups (list[bool]): One entry per open `(`, True for `if` conditions.
        opens_condition (bool): The last token was an `if` that a `(` may follow.
        after_condition (bool): The last token closed an `if` condition.
    """

    def __init__(self, stream: CharacterStream) -> None:
        self.stream = stream
        self.last_type: str | None = None
        self.groups: list[bool] = []
        self.opens_condition = False
        self.after_condition = False

    def peek(self, offset: int = 0) -> str:
        return self.stream.peek(offset)

    def advance(self) -> str:
        return self.stream.next()

    def error(self, message: str, line: int, col: int, position: int) -> MagSyntaxError:
        return MagSyntaxError(message, line, col, self.peek() or None, position)

    def skip_whitespace(self) -> None:
        """Skips all whitespace and comments in the stream."""
        while not self.stream.end_of_file():
            ch = self.peek()
            if ch in " \t\r\n":
                self.advance()
            elif ch == "/" and self.peek(1) == "/":
                self.skip_line_comment()
            elif ch == "/" and self.peek(1) == "*":
                self.skip_block_comment()
            else:
                break

    def skip_line_comment(self) -> None:
        while not self.stream.end_of_file() and self.peek() != "\n":
            self.advance()

    def skip_block_comment(self) -> None:
        line, col, pos = self.stream.line, self.stream.column, self.stream.position
        self.advance()
        self.advance()
        while not self.stream.end_of_file():
            if self.peek() == "*" and self.peek(1) == "/":
                self.advance()
                self.advance()
                return
            self.advance()
        raise self.error("Unterminated block comment", line, col, pos)

    def regex_allowed(self) -> bool:
        return self.after_condition or self.last_type not in VALUE_END_TOKENS

    def match_operator(self) -> Token | None:
        """Attempts to match the longest valid operator from the current position.

        Returns:
            Token | None: A Token if a match is found, otherwise None.
        """
        line, col, pos = self.stream.line, self.stream.column, self.stream.position
        max_token = None
        candidate = ""

        for i in range(MAX_OPERATOR_LEN):
            ch = self.peek(i)
            if ch == "":
                break
            candidate += ch
            if candidate in token_hashmap:
                max_token = candidate

        if max_token:
            for _ in range(len(max_token)):
                self.advance()
            return Token(token_hashmap[max_token], max_token, line, col, pos)

        return None

    def read_digits(self, digits: str) -> str:
        text = ""
        while self.peek() != "" and (self.peek() in digits or self.peek() == "_"):
            text += self.advance()
        return text

    def read_number(self) -> Token:
        line, col, pos = self.stream.line, self.stream.column, self.stream.position

        prefix = self.peek(1).lower()
        if self.peek() == "0" and prefix in NUMERIC_BASES:
            base = NUMERIC_BASES[prefix]
            self.advance()
            self.advance()
            text = self.read_digits(BASE_DIGITS[base])
            if not text.strip("_"):
                raise self.error(f"Missing digits after '0{prefix}'", line, col, pos)
        else:
            base = 10
            text = self.read_digits(BASE_DIGITS[10])
            if self.peek() == "." and self.peek(1).isdigit():
                text += self.advance()
                text += self.read_digits(BASE_DIGITS[10])
            if self.peek() in ("e", "E"):
                sign = self.peek(1) if self.peek(1) in "+-" else ""
                if self.peek(1 + len(sign)).isdigit():
                    text += self.advance()
                    if sign:
                        text += self.advance()
                    text += self.read_digits(BASE_DIGITS[10])

        if text.endswith("_") or "__" in text:
            raise self.error(f"Invalid numeric separator in '{text}'", line, col, pos)

        nxt = self.peek()
        if nxt != "" and (nxt.isalnum() or nxt in "_$"):
            raise self.error(
                f"Invalid character {nxt!r} in numeric literal", line, col, pos
            )
        return Token("NUMBER", text, line, col, pos, base=base)

    def read_escape(self, line: int, col: int, pos: int) -> str:
        ch = self.advance()
        if ch in _SIMPLE_ESCAPES:
            return _SIMPLE_ESCAPES[ch]
        if ch == "x":
            return self.read_hex(2, line, col, pos)
        if ch == "u":
            if self.peek() == "{":
                self.advance()
                digits = ""
                while self.peek() != "}":
                    if self.stream.end_of_file() or self.peek() == "\n":
                        raise self.error("Unterminated unicode escape", line, col, pos)
                    digits += self.advance()
                self.advance()
                return self.decode_hex(digits, line, col, pos)
            return self.read_hex(4, line, col, pos)
        return ch

    def read_hex(self, count: int, line: int, col: int, pos: int) -> str:
        digits = ""
        for _ in range(count):
            if self.stream.end_of_file():
                break
            digits += self.advance()
        if len(digits) != count:
            raise self.error("Malformed escape sequence", line, col, pos)
        return self.decode_hex(digits, line, col, pos)

    def decode_hex(self, digits: str, line: int, col: int, pos: int) -> str:
        if not digits or any(d not in BASE_DIGITS[16] for d in digits):
            raise self.error(f"Malformed escape sequence '{digits}'", line, col, pos)
        code = int(digits, 16)
        if code > 0x10FFFF:
            raise self.error("Unicode escape out of range", line, col, pos)
        return chr(code)

    def read_string(self) -> Token:
        line, col, pos = self.stream.line, self.stream.column, self.stream.position
        quote = self.advance()
        val = ""
        while not self.stream.end_of_file():
            ch = self.peek()
            if ch == quote:
                self.advance()
                return Token("STRING", val, line, col, pos)
            if ch == "\n":
                break
            if ch == "\\":
                self.advance()
                if self.stream.end_of_file():
                    break
                val += self.read_escape(line, col, pos)
            else:
                val += self.advance()
        raise self.error("Unterminated string", line, col, pos)

    def read_regex(self) -> Token:
        line, col, pos = self.stream.line, self.stream.column, self.stream.position
        self.advance()
        body = ""
        in_class = False
        while True:
            ch = self.peek()
            if ch in ("", "\n"):
                raise self.error("Unterminated regular expression", line, col, pos)
            if ch == "/" and not in_class:
                self.advance()
                break
            if ch == "\\":
                body += self.advance()
                if self.peek() in ("", "\n"):
                    continue
            elif ch == "[":
                in_class = True
            elif ch == "]":
                in_class = False
            body += self.advance()

        flags = ""
        while self.peek() != "" and (self.peek().isalnum() or self.peek() in "_$"):
            flag = self.advance()
            if flag not in REGEX_FLAGS or flag in flags:
                raise self.error(
                    f"Invalid regular expression flag {flag!r}", line, col, pos
                )
            flags += flag
        return Token("REGEX", body, line, col, pos, flags=flags)

    def read_token(self) -> Token:
        self.skip_whitespace()

        line, col, pos = self.stream.line, self.stream.column, self.stream.position
        if self.stream.end_of_file():
            return Token("EOF", "EOF", line, col, pos)

        ch = self.peek()

        # 1. Identifier or keyword
        if ch.isalpha() or ch in "_$":
            ident = ""
            while self.peek() != "" and (self.peek().isalnum() or self.peek() in "_$"):
                ident += self.advance()
            return Token(KEYWORDS.get(ident, "IDENT"), ident, line, col, pos)

        # 2. Number
        if ch.isdigit():
            return self.read_number()

        # 3. String
        if ch in ('"', "'"):
            return self.read_string()

        # 4. Regular expression (only where an operand may start)
        if ch == "/" and self.regex_allowed():
            return self.read_regex()

        # 5. Compound or symbolic operator
        token = self.match_operator()
        if token:
            return token

        raise self.error(f"Unexpected character {ch!r}", line, col, pos)

    def next_token(self) -> Token:
        """Consumes and returns the next Token from the stream.

        Raises:
            MagSyntaxError: If a malformed token is encountered.
        """
        token = self.read_token()
        closes_condition = False
        if token.type == "LPAREN":
            self.groups.append(self.opens_condition)
        elif token.type == "RPAREN" and self.groups:
            closes_condition = self.groups.pop()
        # `x.if(...)` is a method call, not a condition
        self.opens_condition = token.type == "IF" and self.last_type != "DOT"
        self.after_condition = closes_condition
        self.last_type = token.type
        return token


def tokenize(source: str) -> list[Token]:
    """Tokenizes a complete source string. The returned list always ends with EOF."""
    lexer = Lexer(CharacterStream(source))
    tokens = []
    while True:
        tok = lexer.next_token()
        tokens.append(tok)
        if tok.type == "EOF":
            return tokens


__all__ = ["CharacterStream", "Lexer", "MagSyntaxError", "Token", "tokenize"]
