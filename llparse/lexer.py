"""Scanner for the small block-structured language used in the examples.

The scanner keeps a two-character window (``current`` and ``lookahead``) over
the source and hands out one token per :meth:`Lexer.next_token` call. Token
kinds are the terminal spellings a grammar uses: keywords and operators stand
for themselves, identifiers are ``id``, integers ``intNum`` and reals
``floatNum``. Problems never stop the scan; they are collected as warnings.
"""

from __future__ import annotations

from llparse.diagnostics import LexWarning
from llparse.token import Token


KEYWORDS = frozenset(
    ["and", "not", "or", "if", "then", "else", "for", "class", "int", "float", "get", "put", "return", "program"]
)

SINGLE_CHAR = frozenset(";,.+-*/(){}[]")

# '<', '>' and '=' either stand alone or pair with the next character
OPERATOR_PAIRS = {
    "<": ("<=", "<>"),
    ">": (">=",),
    "=": ("==",),
}

IDENT_KIND = "id"
INT_KIND = "intNum"
FLOAT_KIND = "floatNum"
EOF_KIND = "EOF"
MAX_INT_DIGITS = 10
INT_CAP = 2**31 - 1

_END = ""
_BLANKS = frozenset(" \t\n\f\r\ufeff")


class Lexer:
    def __init__(self, source: str) -> None:
        self.source = source
        self.warnings: list[LexWarning] = []
        self._pos = 0
        self.line = 1
        self.column = 1

    @property
    def current(self) -> str:
        return self.source[self._pos] if self._pos < len(self.source) else _END

    @property
    def lookahead(self) -> str:
        nxt = self._pos + 1
        return self.source[nxt] if nxt < len(self.source) else _END

    def tokenize(self) -> list[Token]:
        tokens = [self.next_token()]
        while tokens[-1].kind != EOF_KIND:
            tokens.append(self.next_token())
        return tokens

    def next_token(self) -> Token:
        while True:
            ch = self.current
            if ch == _END:
                return Token(EOF_KIND, "", self.line, self.column)
            if ch in _BLANKS:
                self._advance()
                continue
            if ch == "/" and self.lookahead in ("*", "/"):
                self._swallow_comment()
                continue

            line, col = self.line, self.column
            if ch in OPERATOR_PAIRS:
                pair = ch + self.lookahead
                if pair in OPERATOR_PAIRS[ch]:
                    self._advance(2)
                    return Token(pair, pair, line, col)
                self._advance()
                return Token(ch, ch, line, col)
            if ch in SINGLE_CHAR:
                self._advance()
                return Token(ch, ch, line, col)
            if ch.isascii() and ch.isalpha():
                return self._scan_word(line, col)
            if _is_digit(ch):
                return self._scan_number(line, col)

            self._warn(f"Unrecognized character {ch!r} -- ignored", "unknown_char", line, col)
            self._advance()

    def _scan_word(self, line: int, col: int) -> Token:
        start = self._pos
        while self.current.isascii() and (self.current.isalnum() or self.current == "_"):
            self._advance()
        text = self.source[start:self._pos]
        return Token(text if text in KEYWORDS else IDENT_KIND, text, line, col)

    def _scan_number(self, line: int, col: int) -> Token:
        # leading zeros carry no value and do not count towards the digit limit
        while self.current == "0":
            self._advance()
        start = self._pos
        while _is_digit(self.current):
            self._advance()
        digits = self.source[start:self._pos]

        if self.current == ".":
            self._advance()
            frac_start = self._pos
            while _is_digit(self.current):
                self._advance()
            fraction = self.source[frac_start:self._pos]
            return Token(FLOAT_KIND, float(f"{digits or '0'}.{fraction or '0'}"), line, col)

        if len(digits) > MAX_INT_DIGITS:
            self._warn(f"Integer literal {digits} is too big -- capped", "number_too_big", line, col)
            return Token(INT_KIND, INT_CAP, line, col)
        return Token(INT_KIND, int(digits or "0"), line, col)

    def _swallow_comment(self) -> None:
        line, col = self.line, self.column
        block = self.lookahead == "*"
        self._advance(2)
        if not block:
            while self.current not in ("\n", "\f", _END):
                self._advance()
            return
        while self.current != _END:
            if self.current == "*" and self.lookahead == "/":
                self._advance(2)
                return
            self._advance()
        self._warn("Source ends inside a block comment", "unterminated_comment", line, col)

    def _warn(self, message: str, code: str, line: int, col: int) -> None:
        self.warnings.append(LexWarning(code=code, message=message, line=line, column=col))

    def _advance(self, count: int = 1) -> None:
        for _ in range(count):
            if self.current == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            self._pos += 1


def _is_digit(ch: str) -> bool:
    return ch != _END and "0" <= ch <= "9"
