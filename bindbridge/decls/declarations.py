"""The flattened declaration tree emitted by the binding generator.

One dataclass per declaration kind. Everything the binding generator can
emit falls in this closed set; anything else is kept as an
:class:`UnsupportedDecl` so the walker can reject it explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional, Union

from .type_expr import TypeExpr


@dataclass(frozen=True)
class Field:
    name: str
    ty: TypeExpr

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": str(self.ty)}


@dataclass(frozen=True)
class Param:
    name: str
    ty: TypeExpr

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": str(self.ty)}


@dataclass(frozen=True)
class ForeignFunction:
    name: str
    params: tuple[Param, ...] = ()
    ret: Optional[TypeExpr] = None
    # original C++ name when the generator had to rename (overloads)
    cpp_name: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "name": self.name,
            "params": [p.to_dict() for p in self.params],
        }
        if self.ret is not None:
            out["ret"] = str(self.ret)
        if self.cpp_name is not None:
            out["cpp_name"] = self.cpp_name
        return out


@dataclass(frozen=True)
class EnumVariant:
    name: str
    value: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name}
        if self.value is not None:
            out["value"] = self.value
        return out


@dataclass(frozen=True)
class ImplMethod:
    name: str
    foreign_name: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "foreign_name": self.foreign_name}


@dataclass(frozen=True)
class ModDecl:
    name: str
    # None when the module is declared without inline content
    items: Optional[tuple["Declaration", ...]] = None
    kind = "mod"

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"kind": self.kind, "name": self.name}
        if self.items is not None:
            out["items"] = [item.to_dict() for item in self.items]
        return out


@dataclass(frozen=True)
class ForeignModDecl:
    functions: tuple[ForeignFunction, ...] = ()
    abi: str = "C"
    kind = "foreign_mod"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "abi": self.abi,
            "functions": [f.to_dict() for f in self.functions],
        }


@dataclass(frozen=True)
class StructDecl:
    name: str
    fields: tuple[Field, ...] = ()
    derives: tuple[str, ...] = ()
    kind = "struct"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "name": self.name,
            "fields": [f.to_dict() for f in self.fields],
            "derives": list(self.derives),
        }


@dataclass(frozen=True)
class EnumDecl:
    name: str
    variants: tuple[EnumVariant, ...] = ()
    repr: Optional[str] = None
    kind = "enum"

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "kind": self.kind,
            "name": self.name,
            "variants": [v.to_dict() for v in self.variants],
        }
        if self.repr is not None:
            out["repr"] = self.repr
        return out


@dataclass(frozen=True)
class ImplDecl:
    self_ty: str
    methods: tuple[ImplMethod, ...] = ()
    kind = "impl"

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "self_ty": self.self_ty,
            "methods": [m.to_dict() for m in self.methods],
        }


@dataclass(frozen=True)
class UseDecl:
    path: tuple[str, ...]
    allow_unused: bool = True
    kind = "use"
    template_name: ClassVar[str] = "use_statement.rs.j2"

    @classmethod
    def from_path(cls, path: str, allow_unused: bool = True) -> "UseDecl":
        return cls(tuple(path.split("::")), allow_unused)

    def path_str(self) -> str:
        return "::".join(self.path)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "path": self.path_str(), "allow_unused": self.allow_unused}


@dataclass(frozen=True)
class ConstDecl:
    name: str
    ty: TypeExpr
    value: str
    kind = "const"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "name": self.name, "type": str(self.ty), "value": self.value}


@dataclass(frozen=True)
class TypeAliasDecl:
    name: str
    ty: TypeExpr
    kind = "type"

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "name": self.name, "type": str(self.ty)}


@dataclass(frozen=True)
class UnsupportedDecl:
    """A declaration kind the converter does not know how to handle."""

    kind: str
    payload: dict[str, Any] = field(default_factory=dict, hash=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {**self.payload, "kind": self.kind}


Declaration = Union[
    ModDecl,
    ForeignModDecl,
    StructDecl,
    EnumDecl,
    ImplDecl,
    UseDecl,
    ConstDecl,
    TypeAliasDecl,
    UnsupportedDecl,
]
