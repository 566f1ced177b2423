#!/usr/bin/env python3
"""
tres_parser.py - Read and write Godot text resources as generic tags.

A file is a header tag followed by body tags; each body tag may be followed
by property assigns:

  [gd_resource type="TileSet" load_steps=3 format=3 uid="uid://..."]

  [ext_resource type="Texture2D" uid="uid://..." path="res://a.png" id="1_xyz"]

  [sub_resource type="TileSetAtlasSource" id="2_abc"]
  texture = ExtResource("1_xyz")
  0:0/0 = 0

Comments, blank lines and field order are not preserved.
"""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import BinaryIO, List, Optional, TextIO

from tres_lexer import TokenKind, Tokenizer, TresGrammarError, TresParseError
from tres_values import Value, grammar_error, parse_value, render_value

FORMAT_VERSION = 3


@dataclass
class Field:
    identifier: str
    value: Value


@dataclass
class TagAssign:
    path: str
    value: Value


@dataclass
class Tag:
    name: str
    fields: List[Field] = field(default_factory=list)
    assigns: List[TagAssign] = field(default_factory=list)

    def get_field(self, identifier: str) -> Optional[Field]:
        for f in self.fields:
            if f.identifier == identifier:
                return f
        return None

    def render(self) -> str:
        out = [f"[{self.name}"]
        for f in self.fields:
            out.append(f" {f.identifier}={render_value(f.value)}")
        out.append("]\n")
        for a in self.assigns:
            out.append(f"{a.path} = {render_value(a.value)}\n")
        return "".join(out)


@dataclass
class TresFile:
    header: Tag
    tags: List[Tag] = field(default_factory=list)


def _with_tag_context(err: TresParseError, tag_name: str) -> TresParseError:
    # innermost tag wins
    if not err.message.startswith("in tag '") and f"'{tag_name}'" not in err.message:
        err.message = f"in tag '{tag_name}': {err.message}"
        err.args = (err.message,)
    return err


def parse_tag(tokens: Tokenizer) -> Optional[Tag]:
    """Parse '[name field=value ...]'. None at end of file."""
    token = tokens.next_token()
    if token is None:
        return None
    if token.kind != TokenKind.BRACKET_OPEN:
        raise grammar_error(tokens, f"expected '[', but found {token.describe()}", token)

    token = tokens.next_token()
    if token is None:
        raise grammar_error(tokens, "expected identifier (tag name), but found end of file")
    if token.kind != TokenKind.IDENTIFIER:
        raise grammar_error(tokens, f"expected identifier (tag name), but found {token.describe()}", token)

    name = token.value
    fields: List[Field] = []
    naming = True

    token = tokens.next_token()
    while True:
        if token is None:
            raise grammar_error(tokens, f"unexpected end of file while parsing tag '{name}'")
        if token.kind == TokenKind.BRACKET_CLOSE:
            break
        if naming and token.kind in (TokenKind.PERIOD, TokenKind.COLON):
            name += token.kind.value
            token = tokens.next_token()
            continue
        if token.kind != TokenKind.IDENTIFIER:
            raise grammar_error(tokens, f"expected an identifier in tag '{name}', but found {token.describe()}", token)

        identifier = token.value
        after = tokens.next_token()
        if after is not None and after.kind == TokenKind.EQUAL:
            naming = False
            try:
                value = parse_value(tokens)
            except TresParseError as e:
                raise _with_tag_context(e, name) from None
            fields.append(Field(identifier, value))
            token = tokens.next_token()
        elif naming:
            name += identifier
            token = after
        elif after is None:
            raise grammar_error(tokens, f"expected '=' after '{identifier}' in tag '{name}', but found end of file")
        else:
            raise grammar_error(
                tokens, f"expected '=' after '{identifier}' in tag '{name}', but found {after.describe()}", after
            )

    return Tag(name, fields)


def parse_assign(tokens: Tokenizer, tag_name: str) -> Optional[TagAssign]:
    """Parse one 'path = value' line. None when the next tag starts or the file ends."""
    path = bytearray()

    while True:
        c = tokens.next_byte()
        if c is None:
            if path:
                raise grammar_error(
                    tokens, f"expected '=' after '{path.decode('utf-8', 'replace')}' in tag '{tag_name}'"
                )
            return None

        if c == 0x3B:  # ;
            if not tokens.skip_comment() and not path:
                return None
        elif c == 0x5B and not path:  # [
            tokens.save_byte(c)
            return None
        elif c == 0x22:  # "
            tokens.save_byte(c)
            token = tokens.next_token()
            path += token.value.encode("utf-8")
        elif c == 0x3D:  # =
            return TagAssign(path.decode("utf-8", "replace"), parse_value(tokens))
        elif c <= 32:
            continue
        else:
            path.append(c)


def parse_tres_stream(stream: BinaryIO, path: Optional[str] = None) -> TresFile:
    tokens = Tokenizer(stream, path)

    try:
        header = parse_tag(tokens)
    except TresParseError as e:
        raise _with_tag_context(e, "header") from None
    if header is None:
        raise TresGrammarError("unexpected empty file", 1, 1, path)

    fmt = header.get_field("format")
    if fmt is not None and (type(fmt.value) is not int or fmt.value != FORMAT_VERSION):
        raise TresGrammarError(
            f"unexpected format version {render_value(fmt.value)} (expected {FORMAT_VERSION})", 1, 1, path
        )

    tags: List[Tag] = []
    while True:
        tag = parse_tag(tokens)
        if tag is None:
            break
        try:
            while True:
                assign = parse_assign(tokens, tag.name)
                if assign is None:
                    break
                tag.assigns.append(assign)
        except TresParseError as e:
            raise _with_tag_context(e, tag.name) from None
        tags.append(tag)

    return TresFile(header, tags)


def parse_tres_bytes(data: bytes, path: Optional[str] = None) -> TresFile:
    return parse_tres_stream(io.BytesIO(data), path)


def parse_tres(path: str) -> TresFile:
    with open(path, "rb") as f:
        return parse_tres_stream(f, str(path))


class TresWriter:
    """Writes the header on creation, then one tag per write_tag() with a blank line before it."""

    def __init__(self, stream: TextIO, header: Tag):
        self.stream = stream
        self.stream.write(header.render())

    def write_tag(self, tag: Tag) -> None:
        self.stream.write("\n")
        self.stream.write(tag.render())


def dumps_tres(tres: TresFile) -> str:
    buf = io.StringIO()
    writer = TresWriter(buf, tres.header)
    for tag in tres.tags:
        writer.write_tag(tag)
    return buf.getvalue()
