from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from bindbridge import logging as bindbridge_logging
from bindbridge.data_types import TypeKind
from bindbridge.decls.type_expr import (ArrayType, FunctionPointerType,
                                        PathType, PointerType, ReferenceType,
                                        TupleType, TypeExpr)
from bindbridge.types import Namespace, TypeName

from .api import ApiRecord, ConcreteType
from .errors import InfinitelyRecursiveTypedefError, UnknownTypeError
from .type_database import PRIMITIVES, TypeDatabase, map_raw_c_type

logger = bindbridge_logging.get_logger(__name__)

CONCRETE_TYPE_PREFIX = "BindbridgeConcrete"

# std wrappers the binding generator emits around foreign types
_TRANSPARENT_WRAPPERS = {
    ("std", "option", "Option"),
    ("std", "mem", "ManuallyDrop"),
}
_IGNORED_WRAPPERS = {
    ("std", "marker", "PhantomData"),
}

_CPP_PRIMITIVES = {
    "bool": "bool",
    "char": "char32_t",
    "u8": "uint8_t",
    "i8": "int8_t",
    "u16": "uint16_t",
    "i16": "int16_t",
    "u32": "uint32_t",
    "i32": "int32_t",
    "u64": "uint64_t",
    "i64": "int64_t",
    "usize": "size_t",
    "isize": "ptrdiff_t",
    "f32": "float",
    "f64": "double",
    "c_char": "char",
    "c_int": "int",
    "c_uint": "unsigned int",
    "c_long": "long",
    "c_ulong": "unsigned long",
    "c_longlong": "long long",
    "c_ulonglong": "unsigned long long",
    "c_void": "void",
}


def typename_from_path(path: PathType) -> Optional[TypeName]:
    """Map ``root::a::b::C`` to TypeName(a::b, C); None for anything else."""
    if path.leading_colon or len(path.segments) < 2 or path.segments[0] != "root":
        return None
    return TypeName(Namespace(path.segments[1:-1]), path.segments[-1])


@dataclass
class Annotated:
    ty: TypeExpr
    types_encountered: set[TypeName] = field(default_factory=set)
    extra_apis: list[ApiRecord] = field(default_factory=list)

    def absorb(self, other: "Annotated") -> TypeExpr:
        self.types_encountered |= other.types_encountered
        self.extra_apis.extend(other.extra_apis)
        return other.ty


class TypeConverter:
    """Rewrites foreign type expressions into their bridge spelling.

    Also reports every foreign type an expression refers to, and may
    synthesize extra APIs (concrete template instantiations) on the side.
    """

    def __init__(self, type_database: TypeDatabase):
        self.type_database = type_database
        self.types_found: set[TypeName] = set()
        self.typedefs: dict[TypeName, TypeExpr] = {}
        self.concrete_templates: dict[str, TypeName] = {}

    def push(self, tn: TypeName) -> None:
        self.types_found.add(tn)

    def insert_typedef(self, tn: TypeName, ty: TypeExpr) -> None:
        self.typedefs[tn] = ty

    def has_seen(self, tn: TypeName) -> bool:
        return tn in self.types_found or tn in self.typedefs or tn in self.concrete_templates.values()

    def convert_type(self, ty: TypeExpr, ns: Namespace) -> Annotated:
        return self._convert(ty, ns, frozenset())

    def convert_boxed_type(self, ty: TypeExpr, ns: Namespace) -> Annotated:
        """Convert a parameter or return type of a foreign function."""
        return self.convert_type(ty, ns)

    def _convert(self, ty: TypeExpr, ns: Namespace, resolving: frozenset) -> Annotated:
        if isinstance(ty, PathType):
            return self._convert_path(ty, ns, resolving)
        result = Annotated(ty)
        if isinstance(ty, PointerType):
            result.ty = PointerType(result.absorb(self._convert(ty.pointee, ns, resolving)), ty.mutable)
        elif isinstance(ty, ReferenceType):
            result.ty = ReferenceType(result.absorb(self._convert(ty.referent, ns, resolving)), ty.mutable)
        elif isinstance(ty, ArrayType):
            result.ty = ArrayType(result.absorb(self._convert(ty.element, ns, resolving)), ty.length)
        elif isinstance(ty, TupleType):
            result.ty = TupleType(tuple(result.absorb(self._convert(e, ns, resolving)) for e in ty.elements))
        elif isinstance(ty, FunctionPointerType):
            pass
        return result

    def _convert_path(self, path: PathType, ns: Namespace, resolving: frozenset) -> Annotated:
        if len(path.segments) == 1 and path.segments[0] in PRIMITIVES:
            return Annotated(path)
        raw = map_raw_c_type(path.segments)
        if raw is not None:
            return Annotated(PathType((raw,)))
        if path.segments in _IGNORED_WRAPPERS:
            return Annotated(path)
        if path.segments in _TRANSPARENT_WRAPPERS:
            result = Annotated(path)
            generics = tuple(result.absorb(self._convert(g, ns, resolving)) for g in path.generics)
            result.ty = PathType(path.segments, generics, path.leading_colon)
            return result

        tn = typename_from_path(path)
        if tn is None:
            raise UnknownTypeError(str(path))

        if tn in self.typedefs:
            if tn in resolving:
                raise InfinitelyRecursiveTypedefError(tn.to_cpp_name())
            result = Annotated(path)
            result.ty = result.absorb(self._convert(self.typedefs[tn], ns, resolving | {tn}))
            result.types_encountered.add(tn)
            return result

        known = self.type_database.get_known_type(tn)
        if known is not None:
            result = Annotated(path)
            generics = tuple(result.absorb(self._convert(g, ns, resolving)) for g in path.generics)
            result.ty = PathType((known.rust,), generics if known.generic else ())
            return result

        if path.generics:
            return self._convert_template(path, tn, ns, resolving)

        if not self.has_seen(tn):
            logger.debug("%s is referenced before it is defined", tn)
        return Annotated(PathType((tn.get_final_ident(),)), {tn})

    def _convert_template(self, path: PathType, tn: TypeName, ns: Namespace, resolving: frozenset) -> Annotated:
        result = Annotated(path)
        for g in path.generics:
            result.absorb(self._convert(g, ns, resolving))
        key = str(path)
        concrete = self.concrete_templates.get(key)
        if concrete is None:
            concrete = TypeName(Namespace(), f"{CONCRETE_TYPE_PREFIX}{len(self.concrete_templates)}")
            self.concrete_templates[key] = concrete
            cpp_args = ", ".join(_cpp_spelling(g) for g in path.generics)
            result.extra_apis.append(ApiRecord(
                ns=concrete.ns,
                id=concrete.name,
                extern_c_mod_item=ConcreteType(concrete.name, key),
                additional_cpp=f"typedef {tn.to_cpp_name()}<{cpp_args}> {concrete.name};",
                deps={tn} | set(result.types_encountered),
                type_kind=TypeKind.INDIRECT,
            ))
            logger.debug("Instantiated %s<%s> as %s", tn, cpp_args, concrete.name)
        result.ty = PathType((concrete.name,))
        result.types_encountered = {concrete}
        return result


def _cpp_spelling(ty: TypeExpr) -> str:
    if isinstance(ty, PathType):
        tn = typename_from_path(ty)
        if tn is not None:
            base = tn.to_cpp_name()
            if ty.generics:
                base += "<" + ", ".join(_cpp_spelling(g) for g in ty.generics) + ">"
            return base
        last = map_raw_c_type(ty.segments) or ty.segments[-1]
        return _CPP_PRIMITIVES.get(last, last)
    if isinstance(ty, PointerType):
        inner = _cpp_spelling(ty.pointee)
        return f"{inner}*" if ty.mutable else f"const {inner}*"
    if isinstance(ty, ReferenceType):
        inner = _cpp_spelling(ty.referent)
        return f"{inner}&" if ty.mutable else f"const {inner}&"
    return str(ty)
