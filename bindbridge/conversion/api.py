"""API records: the normalized output of the conversion, one per entity.

An :class:`ApiRecord` carries the pieces of generated code an entity needs
in each part of the final bridge module. The downstream code generator
decides which records survive and where each fragment lands.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional, Union

from bindbridge.data_types import TypeKind, Use
from bindbridge.decls.declarations import Declaration, UseDecl
from bindbridge.rendering import render_fragment
from bindbridge.types import Namespace, TypeName


@dataclass(frozen=True)
class UniquePtrImpl:
    """Asserts to the bridge that ``UniquePtr<ident>`` may hold this type."""

    ident: str
    template_name: ClassVar[str] = "unique_ptr_impl.rs.j2"


@dataclass(frozen=True)
class ExternType:
    """Re-exports a type from the foreign tree into the bridge."""

    ident: str
    # path below the foreign tree, starting at "root"
    path: tuple[str, ...]
    namespace: Optional[str] = None
    template_name: ClassVar[str] = "extern_type.rs.j2"


@dataclass(frozen=True)
class ExternTypeAssertion:
    path: tuple[str, ...]
    cpp_name: str
    kind: str
    template_name: ClassVar[str] = "extern_type_assertion.rs.j2"


@dataclass(frozen=True)
class ConcreteType:
    """Names one instantiation of a foreign template."""

    ident: str
    target: str
    template_name: ClassVar[str] = "concrete_type.rs.j2"


@dataclass(frozen=True)
class BridgeFunction:
    name: str
    params: tuple[str, ...] = ()
    ret: Optional[str] = None
    unsafe: bool = False
    cxx_name: Optional[str] = None
    namespace: Optional[str] = None
    template_name: ClassVar[str] = "bridge_function.rs.j2"


@dataclass(frozen=True)
class ImplEntry:
    """A method surfaced on the output type, forwarding to the bridge."""

    self_ty: str
    method_name: str
    bridge_name: str
    params: tuple[str, ...] = ()
    args: tuple[str, ...] = ()
    ret: Optional[str] = None
    unsafe: bool = False
    template_name: ClassVar[str] = "impl_entry.rs.j2"


Fragment = Union[UniquePtrImpl, ExternType, ExternTypeAssertion, ConcreteType, BridgeFunction, ImplEntry, UseDecl]


@dataclass
class ApiRecord:
    ns: Namespace
    id: str
    use_stmt: Use = Use.UNUSED
    bridge_item: Optional[Fragment] = None
    extern_c_mod_item: Optional[Fragment] = None
    global_items: list[Fragment] = field(default_factory=list)
    additional_cpp: Optional[str] = None
    deps: set[TypeName] = field(default_factory=set)
    id_for_allowlist: Optional[TypeName] = None
    bindgen_item: Optional[Declaration] = None
    impl_entry: Optional[ImplEntry] = None
    type_kind: Optional[TypeKind] = None

    def typename(self) -> TypeName:
        return TypeName(self.ns, self.id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ns": str(self.ns),
            "id": self.id,
            "use_stmt": self.use_stmt.name.lower(),
            "type_kind": self.type_kind.name.lower() if self.type_kind else None,
            "bridge_item": render_fragment(self.bridge_item) if self.bridge_item else None,
            "extern_c_mod_item": render_fragment(self.extern_c_mod_item) if self.extern_c_mod_item else None,
            "global_items": [render_fragment(item) for item in self.global_items],
            "additional_cpp": self.additional_cpp,
            "deps": sorted(dep.to_cpp_name() for dep in self.deps),
            "id_for_allowlist": self.id_for_allowlist.to_cpp_name() if self.id_for_allowlist else None,
            "bindgen_item": self.bindgen_item.to_dict() if self.bindgen_item else None,
            "impl_entry": render_fragment(self.impl_entry) if self.impl_entry else None,
        }

    def __repr__(self) -> str:
        return f"ApiRecord({self.typename()})"


@dataclass
class ParseResults:
    apis: list[ApiRecord] = field(default_factory=list)
    use_stmts_by_mod: dict[Namespace, list[UseDecl]] = field(default_factory=dict)

    def find(self, name: TypeName) -> list[ApiRecord]:
        return [api for api in self.apis if api.typename() == name]

    def to_dict(self) -> dict[str, Any]:
        return {
            "apis": [api.to_dict() for api in self.apis],
            "use_statements": {
                str(ns): [render_fragment(use) for use in uses]
                for ns, uses in sorted(self.use_stmts_by_mod.items())
            },
        }
