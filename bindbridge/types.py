"""Namespaces and qualified type names shared by every conversion stage."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator


@dataclass(frozen=True, order=True)
class Namespace:
    """An immutable path of C++ namespace segments. The root is empty."""

    segments: tuple[str, ...] = ()

    def push(self, segment: str) -> "Namespace":
        return Namespace(self.segments + (segment,))

    def depth(self) -> int:
        return len(self.segments)

    def is_empty(self) -> bool:
        return not self.segments

    def ancestors(self) -> Iterator["Namespace"]:
        """Yield this namespace and every enclosing one, innermost first."""
        for end in range(len(self.segments), -1, -1):
            yield Namespace(self.segments[:end])

    def __iter__(self) -> Iterator[str]:
        return iter(self.segments)

    def __str__(self) -> str:
        return "::".join(self.segments)

    @classmethod
    def from_cpp_name(cls, name: str) -> "Namespace":
        if not name:
            return cls()
        return cls(tuple(name.split("::")))


@dataclass(frozen=True, order=True)
class TypeName:
    """Globally unique identity of a foreign type: namespace plus identifier."""

    ns: Namespace
    name: str

    @classmethod
    def from_cpp_name(cls, cpp_name: str) -> "TypeName":
        parts = cpp_name.strip().strip(":").split("::")
        return cls(Namespace(tuple(parts[:-1])), parts[-1])

    def get_final_ident(self) -> str:
        return self.name

    def get_namespace(self) -> Namespace:
        return self.ns

    def has_namespace(self) -> bool:
        return not self.ns.is_empty()

    def ns_segment_iter(self) -> Iterator[str]:
        return iter(self.ns)

    def to_cpp_name(self) -> str:
        return "::".join(self.ns.segments + (self.name,))

    def __str__(self) -> str:
        return self.to_cpp_name()
