from collections import deque
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterable, Optional

from bindbridge import logging as bindbridge_logging
from bindbridge.decls.declarations import (Declaration, EnumDecl, ModDecl,
                                          StructDecl, TypeAliasDecl)
from bindbridge.decls.type_expr import (ArrayType, FunctionPointerType,
                                        PathType, PointerType, ReferenceType,
                                        TupleType, TypeExpr)
from bindbridge.types import Namespace, TypeName

from .classifier import spot_forward_declaration
from .errors import PodRequestError
from .type_database import PRIMITIVES, TypeDatabase, map_raw_c_type
from .type_converter import typename_from_path

logger = bindbridge_logging.get_logger(__name__)

# Field the binding generator emits for classes with virtual functions.
VTABLE_MARKER = "vtable_"


class PodState(Enum):
    UNSAFE_TO_BE_POD = auto()
    SAFE_TO_BE_POD = auto()
    IS_POD = auto()


@dataclass
class _StructDetails:
    state: PodState
    reason: Optional[str] = None
    dependent_structs: list[TypeName] = field(default_factory=list)


class ByValueChecker:
    """Works out which types can safely be passed and stored by value.

    A type is only treated as a value type if the user asked for it and
    nothing in its field closure forbids it. Everything else stays opaque.
    """

    def __init__(self, type_database: Optional[TypeDatabase] = None):
        self.type_database = type_database or TypeDatabase()
        self.results: dict[TypeName, _StructDetails] = {}

    @classmethod
    def new_from_declarations(cls, items: Iterable[Declaration], type_database: TypeDatabase) -> "ByValueChecker":
        checker = cls(type_database)
        checker.ingest_items(items, Namespace())
        checker.satisfy_requests(type_database.pod_requests)
        return checker

    def ingest_items(self, items: Iterable[Declaration], ns: Namespace) -> None:
        for item in items:
            if isinstance(item, ModDecl) and item.items is not None:
                self.ingest_items(item.items, ns.push(item.name))
            elif isinstance(item, StructDecl):
                self.ingest_struct(item, ns)
            elif isinstance(item, EnumDecl):
                self.ingest_pod_type(TypeName(ns, item.name))
            elif isinstance(item, TypeAliasDecl):
                self.ingest_alias(item, ns)

    def ingest_struct(self, decl: StructDecl, ns: Namespace) -> None:
        tn = TypeName(ns, decl.name)
        if spot_forward_declaration(decl.fields):
            self.results[tn] = _StructDetails(PodState.UNSAFE_TO_BE_POD, "it is only forward declared")
            return
        if any(f.name == VTABLE_MARKER for f in decl.fields):
            self.results[tn] = _StructDetails(PodState.UNSAFE_TO_BE_POD, "it has virtual functions")
            return
        details = _StructDetails(PodState.SAFE_TO_BE_POD)
        for f in decl.fields:
            reason = self._analyze_type(f.ty, details.dependent_structs)
            if reason is not None:
                details = _StructDetails(PodState.UNSAFE_TO_BE_POD, f"field '{f.name}' {reason}")
                break
        self.results[tn] = details

    def ingest_alias(self, decl: TypeAliasDecl, ns: Namespace) -> None:
        details = _StructDetails(PodState.SAFE_TO_BE_POD)
        reason = self._analyze_type(decl.ty, details.dependent_structs)
        if reason is not None:
            details = _StructDetails(PodState.UNSAFE_TO_BE_POD, f"it aliases a type which {reason}")
        self.results[TypeName(ns, decl.name)] = details

    def ingest_pod_type(self, tn: TypeName) -> None:
        self.results[tn] = _StructDetails(PodState.IS_POD)

    def _analyze_type(self, ty: TypeExpr, deps: list[TypeName]) -> Optional[str]:
        """Return why ``ty`` can't be held by value, or None, collecting dependencies."""
        if isinstance(ty, PathType):
            if len(ty.segments) == 1 and ty.segments[0] in PRIMITIVES:
                return None
            if map_raw_c_type(ty.segments) is not None:
                return None
            tn = typename_from_path(ty)
            if tn is None:
                return f"has type {ty} which is not a foreign type"
            known = self.type_database.get_known_type(tn)
            if known is not None:
                return None if known.pod else f"has type {tn} which is not trivial"
            if ty.generics:
                return f"has template type {ty}"
            deps.append(tn)
            return None
        if isinstance(ty, ArrayType):
            return self._analyze_type(ty.element, deps)
        if isinstance(ty, (PointerType, ReferenceType)):
            return "is a pointer or reference"
        if isinstance(ty, TupleType):
            return None if not ty.elements else "is a tuple"
        if isinstance(ty, FunctionPointerType):
            return None
        return f"has unsupported type {ty}"

    def satisfy_requests(self, requests: Iterable[TypeName]) -> None:
        """Mark requested types, and everything they contain, as value types.

        Raises PodRequestError when a requested type (or one of its fields)
        cannot be held by value.
        """
        queue = deque(requests)
        while queue:
            tn = queue.popleft()
            details = self.results.get(tn)
            if details is None:
                if self.type_database.is_known_pod(tn):
                    continue
                raise PodRequestError(tn.to_cpp_name(), "its definition was not found")
            if details.state == PodState.UNSAFE_TO_BE_POD:
                raise PodRequestError(tn.to_cpp_name(), details.reason or "it is not trivial")
            if details.state == PodState.IS_POD:
                continue
            details.state = PodState.IS_POD
            logger.debug("%s will be passed by value", tn)
            queue.extend(details.dependent_structs)

    def is_pod(self, tn: TypeName) -> bool:
        details = self.results.get(tn)
        if details is not None:
            return details.state == PodState.IS_POD
        return self.type_database.is_known_pod(tn)
