#!/usr/bin/env python3
"""
tres_values.py - Value literals of the Godot text resource format.

Supported literals (anything else is rejected):
  true false null nil                 bool / None
  12  -3                              int (64-bit)
  1.5  inf  neg_inf  nan              float
  "text"  &"text"                     str / StringName
  Color(r, g, b, a)  #rrggbbaa        Color / HtmlColor
  Vector2i(x, y)                      Vector2i
  SubResource("id")  ExtResource("id")

Rendering follows the engine's writer: integers digit by digit, doubles
in shortest round-trip form with a trailing ".0" removed.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Tuple, Union

from tres_lexer import Token, TokenKind, Tokenizer, TresGrammarError


@dataclass(frozen=True)
class StringName:
    text: str


@dataclass(frozen=True)
class Color:
    r: float
    g: float
    b: float
    a: float


@dataclass(frozen=True)
class HtmlColor:
    text: str                 # "#rrggbb" or "#rrggbbaa", kept as written


@dataclass(frozen=True)
class Vector2i:
    x: int
    y: int


@dataclass(frozen=True)
class SubResource:
    id: str


@dataclass(frozen=True)
class ExtResource:
    id: str


Value = Union[bool, None, int, float, str, StringName, Color, HtmlColor, Vector2i, SubResource, ExtResource]

KEYWORDS = {
    "true": True,
    "false": False,
    "null": None,
    "nil": None,
    "inf": math.inf,
    "neg_inf": -math.inf,
    "nan": math.nan,
}


def grammar_error(tokens: Tokenizer, message: str, token: Token | None = None) -> TresGrammarError:
    if token is not None:
        return TresGrammarError(message, token.line, token.col, tokens.path)
    return TresGrammarError(message, tokens.cursor.line, tokens.cursor.col, tokens.path)


def expect(tokens: Tokenizer, kind: TokenKind) -> Token:
    token = tokens.next_token()
    if token is None:
        raise grammar_error(tokens, f"expected '{kind.value}', but found end of file")
    if token.kind != kind:
        raise grammar_error(tokens, f"expected '{kind.value}', but found {token.describe()}", token)
    return token


def parse_value(tokens: Tokenizer) -> Value:
    token = tokens.next_token()
    if token is None:
        raise grammar_error(tokens, "expected a value, but found end of file")

    if token.kind == TokenKind.IDENTIFIER:
        name = token.value
        if name in KEYWORDS:
            return KEYWORDS[name]
        if name == "Vector2i":
            args = parse_constructor_args(tokens, name, float_args=False)
            if len(args) != 2:
                raise grammar_error(tokens, f"Vector2i requires 2 arguments, got {len(args)}", token)
            return Vector2i(args[0], args[1])
        if name == "Color":
            args = parse_constructor_args(tokens, name, float_args=True)
            if len(args) != 4:
                raise grammar_error(tokens, f"Color requires 4 arguments, got {len(args)}", token)
            return Color(*args)
        if name in ("SubResource", "ExtResource"):
            expect(tokens, TokenKind.PAREN_OPEN)
            arg = tokens.next_token()
            if arg is None:
                raise grammar_error(tokens, f"expected a string argument to {name}()")
            if arg.kind != TokenKind.STRING:
                raise grammar_error(tokens, f"expected a string argument to {name}(), but found {arg.describe()}", arg)
            expect(tokens, TokenKind.PAREN_CLOSE)
            return SubResource(arg.value) if name == "SubResource" else ExtResource(arg.value)
        raise grammar_error(tokens, f"unsupported or unexpected value identifier '{name}'", token)

    if token.kind in (TokenKind.INTEGER, TokenKind.DOUBLE, TokenKind.STRING):
        return token.value
    if token.kind == TokenKind.STRING_NAME:
        return StringName(token.value)
    if token.kind == TokenKind.COLOR:
        return HtmlColor(token.value)
    raise grammar_error(tokens, f"unsupported or unexpected value token {token.describe()}", token)


def parse_constructor_args(tokens: Tokenizer, name: str, float_args: bool) -> List[Union[int, float]]:
    """Parse '(a, b, ...)'. Integers widen to float when float_args is set."""
    wanted = "float" if float_args else "integer"
    args: List[Union[int, float]] = []
    expect(tokens, TokenKind.PAREN_OPEN)

    while True:
        if args:
            sep = tokens.next_token()
            if sep is None:
                raise grammar_error(tokens, f"expected ',' or ')' in {name}()")
            if sep.kind == TokenKind.PAREN_CLOSE:
                break
            if sep.kind != TokenKind.COMMA:
                raise grammar_error(tokens, f"expected ',' or ')' in {name}(), but found {sep.describe()}", sep)

        token = tokens.next_token()
        if token is None:
            raise grammar_error(tokens, f"expected {wanted} in {name}()")
        if token.kind == TokenKind.PAREN_CLOSE and not args:
            break
        if token.kind == TokenKind.INTEGER:
            args.append(float(token.value) if float_args else token.value)
        elif token.kind == TokenKind.DOUBLE and float_args:
            args.append(token.value)
        else:
            raise grammar_error(tokens, f"expected {wanted} in {name}(), but found {token.describe()}", token)

    return args


# ----------------------------
# Rendering
# ----------------------------

def format_int(n: int) -> str:
    digits: List[str] = []
    m = -n if n < 0 else n
    while True:
        m, d = divmod(m, 10)
        digits.append(chr(0x30 + d))
        if m == 0:
            break
    if n < 0:
        digits.append("-")
    return "".join(reversed(digits))


def _shortest_digits(x: float) -> Tuple[str, int]:
    """Digits and exponent with abs(x) == int(digits) * 10**exp, shortest round-trip."""
    text = repr(abs(x))
    mantissa, _, exp_text = text.partition("e")
    exp = int(exp_text) if exp_text else 0
    whole, _, frac = mantissa.partition(".")
    digits = (whole + frac).lstrip("0")
    exp -= len(frac)
    stripped = digits.rstrip("0")
    exp += len(digits) - len(stripped)
    return stripped, exp


def _layout_decimal(digits: str, exp: int) -> str:
    # Same cut-offs as the ryu crate: plain decimals for 1e-5 <= x < 1e16.
    length = len(digits)
    kk = length + exp
    if 0 <= exp and kk <= 16:
        return digits + "0" * exp + ".0"
    if 0 < kk <= 16:
        return digits[:kk] + "." + digits[kk:]
    if -5 < kk <= 0:
        return "0." + "0" * -kk + digits
    if length == 1:
        return f"{digits}e{kk - 1}"
    return f"{digits[0]}.{digits[1:]}e{kk - 1}"


def format_double(x: float) -> str:
    if x == 0.0:
        return "0"
    if math.isnan(x):
        return "nan"
    if math.isinf(x):
        return "inf" if x > 0 else "neg_inf"

    digits, exp = _shortest_digits(x)
    text = _layout_decimal(digits, exp)
    if text.endswith(".0"):
        text = text[:-2]
    return "-" + text if x < 0 else text


def render_value(value: Value) -> str:
    # bool before int: True is an int too
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return format_int(value)
    if isinstance(value, float):
        return format_double(value)
    if isinstance(value, str):
        return f'"{value}"'
    if isinstance(value, StringName):
        return f'&"{value.text}"'
    if isinstance(value, HtmlColor):
        return value.text
    if isinstance(value, Color):
        parts = ", ".join(format_double(c) for c in (value.r, value.g, value.b, value.a))
        return f"Color({parts})"
    if isinstance(value, Vector2i):
        return f"Vector2i({format_int(value.x)}, {format_int(value.y)})"
    if isinstance(value, SubResource):
        return f'SubResource("{value.id}")'
    if isinstance(value, ExtResource):
        return f'ExtResource("{value.id}")'
    raise TypeError(f"cannot render {type(value).__name__} as a resource value")
