#!/usr/bin/env python3
"""
tres_lexer.py - Byte-level tokenizer for Godot text resources (.tres/.tscn).

Shared by tres_parser.py and tres_values.py.

Tokens:
  { } [ ] ( ) : , . =         punctuation
  name / _name2               identifiers
  "text"  &"text"  @"text"    strings and string names (escapes kept as written)
  #rrggbb[aa]                 html colour literals
  12  -3  1.5  2e-4           integers and doubles

';' starts a comment that runs to the end of the line.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, List, Optional, Tuple, Union

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1


class TresError(Exception):
    """Base class for everything the .tres core raises."""


class TresParseError(TresError):
    def __init__(self, message: str, line: int = 0, col: int = 0, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.col = col
        self.path = path

    def __str__(self) -> str:
        path = self.path or "<input>"
        return f"{path}:{self.line}:{self.col}: {self.message}"


class TresLexError(TresParseError):
    """Invalid byte, unterminated string or malformed number."""


class TresGrammarError(TresParseError):
    """A token other than the one the grammar needs, or a premature end of file."""


class TokenKind(Enum):
    CURLY_OPEN = "{"
    CURLY_CLOSE = "}"
    BRACKET_OPEN = "["
    BRACKET_CLOSE = "]"
    PAREN_OPEN = "("
    PAREN_CLOSE = ")"
    COLON = ":"
    COMMA = ","
    PERIOD = "."
    EQUAL = "="
    IDENTIFIER = "identifier"
    STRING = "string"
    STRING_NAME = "string name"
    INTEGER = "integer"
    DOUBLE = "double"
    COLOR = "color"


PUNCTUATION = {
    ord("{"): TokenKind.CURLY_OPEN,
    ord("}"): TokenKind.CURLY_CLOSE,
    ord("["): TokenKind.BRACKET_OPEN,
    ord("]"): TokenKind.BRACKET_CLOSE,
    ord("("): TokenKind.PAREN_OPEN,
    ord(")"): TokenKind.PAREN_CLOSE,
    ord(":"): TokenKind.COLON,
    ord(","): TokenKind.COMMA,
    ord("."): TokenKind.PERIOD,
    ord("="): TokenKind.EQUAL,
}


@dataclass
class Token:
    kind: TokenKind
    value: Union[str, int, float, None] = None
    line: int = 0
    col: int = 0

    def describe(self) -> str:
        if self.value is None:
            return f"'{self.kind.value}'"
        return f"{self.kind.value} {self.value!r}"


def _is_digit(c: int) -> bool:
    return 0x30 <= c <= 0x39


def _is_alpha(c: int) -> bool:
    return 0x41 <= c <= 0x5A or 0x61 <= c <= 0x7A


def _is_hex(c: int) -> bool:
    return _is_digit(c) or 0x41 <= c <= 0x46 or 0x61 <= c <= 0x66


class ByteCursor:
    """Reads one byte at a time and can hold back at most one unread byte."""

    def __init__(self, stream: BinaryIO):
        self._stream = stream
        self._saved: Optional[int] = None
        self.line = 1
        self.col = 1
        self._prev: Tuple[int, int] = (1, 1)

    def read(self) -> Optional[int]:
        if self._saved is not None:
            c = self._saved
            self._saved = None
        else:
            data = self._stream.read(1)
            if not data:
                return None
            c = data[0]
        self._prev = (self.line, self.col)
        if c == 0x0A:
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return c

    def unread(self, c: int) -> None:
        assert self._saved is None, "only one byte of pushback is supported"
        self._saved = c
        self.line, self.col = self._prev


class Tokenizer:
    def __init__(self, stream: BinaryIO, path: Optional[str] = None):
        self.cursor = ByteCursor(stream)
        self.path = path

    @classmethod
    def from_bytes(cls, data: bytes, path: Optional[str] = None) -> "Tokenizer":
        return cls(io.BytesIO(data), path)

    def error(self, message: str, line: Optional[int] = None, col: Optional[int] = None) -> TresLexError:
        return TresLexError(
            message,
            self.cursor.line if line is None else line,
            self.cursor.col if col is None else col,
            self.path,
        )

    def next_byte(self) -> Optional[int]:
        return self.cursor.read()

    def save_byte(self, c: int) -> None:
        self.cursor.unread(c)

    def skip_comment(self) -> bool:
        """Consume through end of line. False when the file ended first."""
        while True:
            c = self.cursor.read()
            if c is None:
                return False
            if c == 0x0A:
                return True

    def next_token(self) -> Optional[Token]:
        while True:
            line, col = self.cursor.line, self.cursor.col
            c = self.cursor.read()
            if c is None:
                return None

            kind = PUNCTUATION.get(c)
            if kind is not None:
                return Token(kind, line=line, col=col)
            if c == 0x3B:  # ;
                if not self.skip_comment():
                    return None
                continue
            if c == 0x23:  # #
                return self._read_color(line, col)
            if c in (0x22, 0x40, 0x26):  # " @ &
                return self._read_string(c, line, col)
            if c == 0x2D or _is_digit(c):  # - 0-9
                return self._read_number(c, line, col)
            if _is_alpha(c) or c == 0x5F:
                return self._read_identifier(c, line, col)
            if c <= 32:
                continue
            raise self.error(f"unexpected character {chr(c)!r}", line, col)

    def _read_color(self, line: int, col: int) -> Token:
        text = ["#"]
        while True:
            c = self.cursor.read()
            if c is None:
                break
            if not _is_hex(c):
                self.cursor.unread(c)
                break
            text.append(chr(c))
        return Token(TokenKind.COLOR, "".join(text), line, col)

    def _read_string(self, first: int, line: int, col: int) -> Token:
        is_name = first != 0x22
        if is_name and self.cursor.read() != 0x22:
            raise self.error(f"expected '\"' after '{chr(first)}'", line, col)

        buf = bytearray()
        while True:
            c = self.cursor.read()
            if c is None:
                raise self.error("unterminated string", line, col)
            if c == 0x22:
                break
            if c == 0x0A:
                continue
            buf.append(c)
            # escaped quotes stay in the text, backslash included
            if c == 0x5C:
                nxt = self.cursor.read()
                if nxt is None:
                    raise self.error("unterminated string", line, col)
                if nxt != 0x0A:
                    buf.append(nxt)

        text = buf.decode("utf-8", errors="replace")
        return Token(TokenKind.STRING_NAME if is_name else TokenKind.STRING, text, line, col)

    def _read_number(self, first: int, line: int, col: int) -> Token:
        # states: int digits -> fraction -> exponent -> done
        INT, DEC, EXP, DONE = 0, 1, 2, 3
        num: List[str] = []
        state = INT
        is_float = False
        exp_digits = False
        exp_sign = False

        if first == 0x2D:
            num.append("-")
            current = self.cursor.read()
        else:
            current = first

        while current is not None:
            if state == INT:
                if _is_digit(current):
                    pass
                elif current == 0x2E:
                    state, is_float = DEC, True
                elif current == 0x65:
                    state, is_float = EXP, True
                else:
                    state = DONE
            elif state == DEC:
                if _is_digit(current):
                    pass
                elif current == 0x65:
                    state = EXP
                else:
                    state = DONE
            elif state == EXP:
                if _is_digit(current):
                    exp_digits = True
                elif current in (0x2B, 0x2D) and not exp_digits and not exp_sign:
                    exp_sign = True
                else:
                    state = DONE

            if state == DONE:
                self.cursor.unread(current)
                break
            num.append(chr(current))
            current = self.cursor.read()

        text = "".join(num)
        if is_float:
            try:
                return Token(TokenKind.DOUBLE, float(text), line, col)
            except ValueError:
                raise self.error(f"could not parse {text!r} as double", line, col) from None
        try:
            value = int(text)
        except ValueError:
            raise self.error(f"could not parse {text!r} as int", line, col) from None
        if not INT64_MIN <= value <= INT64_MAX:
            raise self.error(f"integer {text} does not fit in 64 bits", line, col)
        return Token(TokenKind.INTEGER, value, line, col)

    def _read_identifier(self, first: int, line: int, col: int) -> Token:
        buf = bytearray([first])
        while True:
            c = self.cursor.read()
            if c is None:
                break
            if _is_alpha(c) or _is_digit(c) or c == 0x5F:
                buf.append(c)
            else:
                self.cursor.unread(c)
                break
        return Token(TokenKind.IDENTIFIER, buf.decode("ascii"), line, col)
