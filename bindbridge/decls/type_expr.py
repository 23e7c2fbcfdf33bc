"""Type expressions as the binding generator spells them.

The binding generator writes field, parameter and alias types in Rust
syntax, e.g. ``root::geo::Point``, ``*mut root::Widget``,
``[::std::os::raw::c_int; 4usize]`` or
``::std::option::Option<unsafe extern "C" fn(x: u32)>``. This module parses
such strings into a small immutable tree which the type converter walks and
which renders back to the same syntax with ``str()``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
    |(?P<string>"[^"]*")
    |(?P<arrow>->)
    |(?P<path_sep>::)
    |(?P<ident>[A-Za-z_][A-Za-z0-9_]*)
    |(?P<number>[0-9][A-Za-z0-9_]*)
    |(?P<punct>[*&\[\];<>,():'.])
    """,
    re.VERBOSE,
)

_FN_POINTER_KEYWORDS = ("fn", "unsafe", "extern")


@dataclass(frozen=True)
class PathType:
    segments: tuple[str, ...]
    generics: tuple["TypeExpr", ...] = ()
    leading_colon: bool = False

    def last(self) -> str:
        return self.segments[-1]

    def __str__(self) -> str:
        text = ("::" if self.leading_colon else "") + "::".join(self.segments)
        if self.generics:
            text += "<" + ", ".join(str(g) for g in self.generics) + ">"
        return text


@dataclass(frozen=True)
class PointerType:
    pointee: "TypeExpr"
    mutable: bool = False

    def __str__(self) -> str:
        return f"*{'mut' if self.mutable else 'const'} {self.pointee}"


@dataclass(frozen=True)
class ReferenceType:
    referent: "TypeExpr"
    mutable: bool = False

    def __str__(self) -> str:
        return f"&{'mut ' if self.mutable else ''}{self.referent}"


@dataclass(frozen=True)
class ArrayType:
    element: "TypeExpr"
    length: str

    def __str__(self) -> str:
        return f"[{self.element}; {self.length}]"


@dataclass(frozen=True)
class TupleType:
    elements: tuple["TypeExpr", ...] = ()

    def __str__(self) -> str:
        if len(self.elements) == 1:
            return f"({self.elements[0]},)"
        return "(" + ", ".join(str(e) for e in self.elements) + ")"


@dataclass(frozen=True)
class FunctionPointerType:
    # Kept as text: nothing downstream looks inside a function pointer.
    text: str

    def __str__(self) -> str:
        return self.text


TypeExpr = Union[PathType, PointerType, ReferenceType, ArrayType, TupleType, FunctionPointerType]


class TypeSyntaxError(ValueError):
    pass


@dataclass(frozen=True)
class _Token:
    kind: str
    text: str
    start: int
    end: int


def _tokenize(text: str) -> list[_Token]:
    tokens = []
    pos = 0
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if m is None:
            raise TypeSyntaxError(f"Unexpected character {text[pos]!r} in type '{text}'")
        kind = m.lastgroup
        if kind != "ws":
            tokens.append(_Token(kind, m.group(), m.start(), m.end()))
        pos = m.end()
    return tokens


class _Parser:
    def __init__(self, text: str):
        self.text = text
        self.tokens = _tokenize(text)
        self.pos = 0

    def peek(self) -> _Token | None:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def next(self) -> _Token:
        tok = self.peek()
        if tok is None:
            raise TypeSyntaxError(f"Unexpected end of type '{self.text}'")
        self.pos += 1
        return tok

    def expect(self, text: str) -> _Token:
        tok = self.next()
        if tok.text != text:
            raise TypeSyntaxError(f"Expected '{text}' but found '{tok.text}' in type '{self.text}'")
        return tok

    def accept(self, text: str) -> bool:
        tok = self.peek()
        if tok is not None and tok.text == text:
            self.pos += 1
            return True
        return False

    def parse(self) -> TypeExpr:
        ty = self.parse_type()
        if self.peek() is not None:
            raise TypeSyntaxError(f"Trailing input '{self.text[self.peek().start:]}' in type '{self.text}'")
        return ty

    def parse_type(self) -> TypeExpr:
        tok = self.peek()
        if tok is None:
            raise TypeSyntaxError(f"Empty type in '{self.text}'")
        if tok.text == "*":
            self.next()
            qualifier = self.next().text
            if qualifier not in ("const", "mut"):
                raise TypeSyntaxError(f"Pointer must be *const or *mut in '{self.text}'")
            return PointerType(self.parse_type(), mutable=qualifier == "mut")
        if tok.text == "&":
            self.next()
            self._skip_lifetime()
            mutable = self.accept("mut")
            return ReferenceType(self.parse_type(), mutable=mutable)
        if tok.text == "[":
            self.next()
            element = self.parse_type()
            self.expect(";")
            length = self._raw_until("]")
            self.expect("]")
            return ArrayType(element, length)
        if tok.text == "(":
            self.next()
            elements = []
            while not self.accept(")"):
                elements.append(self.parse_type())
                if not self.accept(","):
                    self.expect(")")
                    break
            return TupleType(tuple(elements))
        if tok.kind == "ident" and tok.text in _FN_POINTER_KEYWORDS:
            return self._parse_fn_pointer()
        if tok.kind in ("ident", "path_sep"):
            return self._parse_path()
        raise TypeSyntaxError(f"Unexpected token '{tok.text}' in type '{self.text}'")

    def _skip_lifetime(self) -> None:
        tok = self.peek()
        if tok is not None and tok.text == "'":
            self.next()
            self.next()

    def _parse_path(self) -> PathType:
        leading_colon = self.accept("::")
        segments = [self._ident()]
        while self.accept("::"):
            segments.append(self._ident())
        generics = []
        if self.accept("<"):
            while not self.accept(">"):
                generics.append(self.parse_type())
                if not self.accept(","):
                    self.expect(">")
                    break
        return PathType(tuple(segments), tuple(generics), leading_colon)

    def _ident(self) -> str:
        tok = self.next()
        if tok.kind != "ident":
            raise TypeSyntaxError(f"Expected identifier but found '{tok.text}' in type '{self.text}'")
        return tok.text

    def _parse_fn_pointer(self) -> FunctionPointerType:
        start = self.peek().start
        depth = 0
        end = start
        while self.peek() is not None:
            tok = self.peek()
            if tok.text in ("(", "<", "["):
                depth += 1
            elif tok.text in (")", ">", "]"):
                if depth == 0:
                    break
                depth -= 1
            elif tok.text == "," and depth == 0:
                break
            end = tok.end
            self.next()
        return FunctionPointerType(self.text[start:end])

    def _raw_until(self, closing: str) -> str:
        tok = self.peek()
        if tok is None:
            raise TypeSyntaxError(f"Unterminated array type '{self.text}'")
        start = tok.start
        end = start
        while self.peek() is not None and self.peek().text != closing:
            end = self.next().end
        return self.text[start:end]


def parse_type(text: str) -> TypeExpr:
    """Parse a Rust-syntax type string into a :data:`TypeExpr`."""
    return _Parser(text).parse()
