"""JavaScript tokenizer — lexes source into a flat token list."""

from __future__ import annotations


# Token type constants. Keywords use the keyword itself as their type.
TK_NUMBER = "NUMBER"
TK_STRING = "STRING"
TK_IDENT = "IDENT"
TK_OP = "OP"
TK_EOF = "EOF"

KEYWORDS: set[str] = {
    "break",
    "catch",
    "const",
    "continue",
    "delete",
    "do",
    "else",
    "false",
    "finally",
    "for",
    "function",
    "if",
    "in",
    "instanceof",
    "let",
    "new",
    "null",
    "return",
    "this",
    "throw",
    "true",
    "try",
    "typeof",
    "var",
    "void",
    "while",
}

# Reserved words the parser recognizes only to reject them with a clear message.
UNSUPPORTED_KEYWORDS: set[str] = {
    "await",
    "case",
    "class",
    "debugger",
    "default",
    "enum",
    "export",
    "extends",
    "import",
    "super",
    "switch",
    "with",
    "yield",
}

# Multi-character operators, sorted by length descending for greedy matching
MULTI_OPS: list[str] = [
    ">>>=",
    "===",
    "!==",
    "**=",
    "<<=",
    ">>=",
    ">>>",
    "...",
    "&&=",
    "||=",
    "??=",
    "=>",
    "**",
    "&&",
    "||",
    "??",
    "<=",
    ">=",
    "==",
    "!=",
    "<<",
    ">>",
    "++",
    "--",
    "+=",
    "-=",
    "*=",
    "/=",
    "%=",
    "&=",
    "|=",
    "^=",
]

SINGLE_OPS: set[str] = {
    "+",
    "-",
    "*",
    "/",
    "%",
    "&",
    "|",
    "^",
    "~",
    "!",
    "<",
    ">",
    "=",
    "(",
    ")",
    "[",
    "]",
    "{",
    "}",
    ",",
    ":",
    ";",
    ".",
    "?",
}

ESCAPE_MAP: dict[str, str] = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "\\": "\\",
    '"': '"',
    "'": "'",
    "0": "\0",
}


class TokenizeError(Exception):
    """Error during tokenization."""

    def __init__(self, msg: str, line: int, col: int):
        self.msg: str = msg
        self.line: int = line
        self.col: int = col
        super().__init__(msg + " at line " + str(line) + " col " + str(col))


class Token:
    """A token with type, value, and position.

    newline_before records whether a line terminator separates this token
    from the previous one; the parser uses it for automatic semicolons.
    """

    def __init__(self, type_: str, value: str, line: int, col: int):
        self.type: str = type_
        self.value: str = value
        self.line: int = line
        self.col: int = col
        self.newline_before: bool = False

    def __repr__(self) -> str:
        return (
            "Token("
            + self.type
            + ", "
            + repr(self.value)
            + ", "
            + str(self.line)
            + ", "
            + str(self.col)
            + ")"
        )


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _is_hex(c: str) -> bool:
    return (c >= "0" and c <= "9") or (c >= "a" and c <= "f") or (c >= "A" and c <= "F")


def _is_alpha(c: str) -> bool:
    return (c >= "a" and c <= "z") or (c >= "A" and c <= "Z") or c == "_" or c == "$"


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or _is_digit(c)


def _read_hex(src: str, pos: int, count: int, line: int, col: int) -> tuple[int, int]:
    """Read exactly `count` hex digits. Returns (value, new_pos)."""
    if pos + count > len(src):
        raise TokenizeError("incomplete hex escape", line, col)
    digits = src[pos : pos + count]
    for c in digits:
        if not _is_hex(c):
            raise TokenizeError("invalid hex escape", line, col)
    return int(digits, 16), pos + count


def _process_escape(src: str, pos: int, line: int, col: int) -> tuple[str, int]:
    """Process escape after backslash. Returns (resolved_text, new_pos)."""
    if pos >= len(src):
        raise TokenizeError("unexpected end of string in escape", line, col)
    c = src[pos]
    if c == "0" and pos + 1 < len(src) and _is_digit(src[pos + 1]):
        raise TokenizeError("octal escapes are not supported", line, col)
    if c in ESCAPE_MAP:
        return ESCAPE_MAP[c], pos + 1
    if c == "x":
        val, pos = _read_hex(src, pos + 1, 2, line, col)
        return chr(val), pos
    if c == "u":
        if pos + 1 < len(src) and src[pos + 1] == "{":
            end = src.find("}", pos + 2)
            if end == -1:
                raise TokenizeError("unterminated unicode escape", line, col)
            val, _ = _read_hex(src, pos + 2, end - pos - 2, line, col)
            return chr(val), end + 1
        val, pos = _read_hex(src, pos + 1, 4, line, col)
        return chr(val), pos
    return c, pos + 1


def tokenize(source: str) -> list[Token]:
    """Tokenize JavaScript source into a flat list ending with TK_EOF."""
    tokens: list[Token] = []
    pos = 0
    line = 1
    col = 1
    length = len(source)
    newline_before = False

    while pos < length:
        c = source[pos]

        # Newlines
        if c == "\n":
            pos += 1
            line += 1
            col = 1
            newline_before = True
            continue

        # Whitespace
        if c == " " or c == "\t" or c == "\r" or c == "\ufeff":
            pos += 1
            col += 1
            continue

        # Line comment: //
        if c == "/" and pos + 1 < length and source[pos + 1] == "/":
            while pos < length and source[pos] != "\n":
                pos += 1
            continue

        # Block comment: /* ... */
        if c == "/" and pos + 1 < length and source[pos + 1] == "*":
            end = source.find("*/", pos + 2)
            if end == -1:
                raise TokenizeError("unterminated comment", line, col)
            comment = source[pos : end + 2]
            newlines = comment.count("\n")
            if newlines > 0:
                line += newlines
                col = len(comment) - comment.rfind("\n")
                newline_before = True
            else:
                col += len(comment)
            pos = end + 2
            continue

        start_pos = pos
        start_line = line
        start_col = col
        tok: Token | None = None

        # Number: hex, int, or float (including a leading dot)
        if _is_digit(c) or (c == "." and pos + 1 < length and _is_digit(source[pos + 1])):
            if (
                c == "0"
                and pos + 1 < length
                and (source[pos + 1] == "x" or source[pos + 1] == "X")
            ):
                pos += 2
                hex_start = pos
                while pos < length and _is_hex(source[pos]):
                    pos += 1
                if pos == hex_start:
                    raise TokenizeError("invalid hex literal", start_line, start_col)
            else:
                while pos < length and _is_digit(source[pos]):
                    pos += 1
                if pos < length and source[pos] == ".":
                    pos += 1
                    while pos < length and _is_digit(source[pos]):
                        pos += 1
                if pos < length and (source[pos] == "e" or source[pos] == "E"):
                    pos += 1
                    if pos < length and (source[pos] == "+" or source[pos] == "-"):
                        pos += 1
                    if pos >= length or not _is_digit(source[pos]):
                        raise TokenizeError(
                            "invalid number exponent", start_line, start_col
                        )
                    while pos < length and _is_digit(source[pos]):
                        pos += 1
            if pos < length and _is_alpha(source[pos]):
                raise TokenizeError(
                    "identifier starts immediately after number", start_line, start_col
                )
            col += pos - start_pos
            tok = Token(TK_NUMBER, source[start_pos:pos], start_line, start_col)

        # String literal: "..." or '...'
        elif c == '"' or c == "'":
            quote = c
            pos += 1
            col += 1
            chars: list[str] = []
            while pos < length and source[pos] != quote:
                if source[pos] == "\n":
                    raise TokenizeError(
                        "unterminated string literal", start_line, start_col
                    )
                if source[pos] == "\\":
                    if pos + 1 < length and source[pos + 1] == "\n":
                        # Line continuation contributes nothing to the value.
                        pos += 2
                        line += 1
                        col = 1
                        continue
                    esc_start = pos
                    text, pos = _process_escape(source, pos + 1, start_line, col)
                    chars.append(text)
                    col += pos - esc_start
                else:
                    chars.append(source[pos])
                    pos += 1
                    col += 1
            if pos >= length:
                raise TokenizeError(
                    "unterminated string literal", start_line, start_col
                )
            pos += 1  # skip closing quote
            col += 1
            tok = Token(TK_STRING, "".join(chars), start_line, start_col)

        elif c == "`":
            raise TokenizeError("template literals are not supported", line, col)

        # Identifier or keyword
        elif _is_alpha(c) or ord(c) > 127:
            while pos < length and (_is_alnum(source[pos]) or ord(source[pos]) > 127):
                pos += 1
            col += pos - start_pos
            word = source[start_pos:pos]
            if word in KEYWORDS:
                tok = Token(word, word, start_line, start_col)
            else:
                tok = Token(TK_IDENT, word, start_line, start_col)

        else:
            # Multi-character operators
            for op in MULTI_OPS:
                op_len = len(op)
                if pos + op_len <= length and source[pos : pos + op_len] == op:
                    tok = Token(TK_OP, op, start_line, start_col)
                    pos += op_len
                    col += op_len
                    break

            # Single-character operators
            if tok is None and c in SINGLE_OPS:
                tok = Token(TK_OP, c, start_line, start_col)
                pos += 1
                col += 1

        if tok is None:
            raise TokenizeError("unexpected character: " + repr(c), line, col)
        tok.newline_before = newline_before
        newline_before = False
        tokens.append(tok)

    eof = Token(TK_EOF, "", line, col)
    eof.newline_before = newline_before
    tokens.append(eof)
    return tokens
