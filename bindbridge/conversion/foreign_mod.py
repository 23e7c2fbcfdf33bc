"""Conversion of the foreign-function blocks of one namespace.

The binding generator lists every function, method and static method of a
namespace in ``extern "C"`` blocks, and separately emits impl blocks naming
which of those functions belong to a type. :class:`ParseForeignMod` gathers
both while the namespace is walked, then turns the functions into API
records once the namespace's types are known.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol

from bindbridge import logging as bindbridge_logging
from bindbridge.data_types import Use
from bindbridge.decls.declarations import ForeignFunction, ForeignModDecl, ImplDecl
from bindbridge.decls.type_expr import PathType, PointerType, TypeExpr
from bindbridge.types import Namespace, TypeName

from .api import ApiRecord, BridgeFunction, ImplEntry
from .type_converter import typename_from_path

logger = bindbridge_logging.get_logger(__name__)

RECEIVER_PARAM = "this"


class ForeignModCallbacks(Protocol):
    """What the foreign-block conversion needs from the namespace walker."""

    def convert_boxed_type(self, ty: TypeExpr, ns: Namespace) -> tuple[TypeExpr, set[TypeName]]: ...

    def is_pod(self, tn: TypeName) -> bool: ...

    def add_api(self, api: ApiRecord) -> None: ...

    def get_cxx_bridge_name(self, type_name: Optional[str], found_name: str, ns: Namespace) -> str: ...

    def ok_to_use_rust_name(self, rust_name: str) -> bool: ...

    def is_on_allowlist(self, tn: TypeName) -> bool: ...

    def avoid_generating_type(self, tn: TypeName) -> bool: ...

    def should_be_unsafe(self) -> bool: ...


class _SkipFunction(Exception):
    pass


@dataclass
class _Signature:
    params: list[str] = field(default_factory=list)
    args: list[str] = field(default_factory=list)
    ret: Optional[str] = None
    deps: set[TypeName] = field(default_factory=set)


class ParseForeignMod:
    def __init__(self, ns: Namespace):
        self.ns = ns
        self.funcs_to_convert: list[ForeignFunction] = []
        # foreign function name -> (owning type, method name)
        self.method_receivers: dict[str, tuple[TypeName, str]] = {}

    def convert_foreign_mod_items(self, decl: ForeignModDecl) -> None:
        self.funcs_to_convert.extend(decl.functions)

    def convert_impl_items(self, imp: ImplDecl) -> None:
        """Record which foreign functions are methods of ``imp.self_ty``.

        Impl blocks are the only place the binding generator says which
        functions are static methods rather than free functions.
        """
        owner = TypeName(self.ns, imp.self_ty)
        for method in imp.methods:
            self.method_receivers[method.foreign_name] = (owner, method.name)

    def finished(self, callbacks: ForeignModCallbacks) -> list[ApiRecord]:
        apis = []
        for fun in self.funcs_to_convert:
            try:
                apis.append(self._convert_function(fun, callbacks))
            except _SkipFunction as e:
                logger.debug("Skipping %s in '%s': %s", fun.name, self.ns, e)
        self.funcs_to_convert = []
        return apis

    def _receiver(self, fun: ForeignFunction) -> tuple[Optional[TypeName], Optional[bool]]:
        if not fun.params or fun.params[0].name != RECEIVER_PARAM:
            return None, None
        ty = fun.params[0].ty
        if not isinstance(ty, PointerType) or not isinstance(ty.pointee, PathType):
            return None, None
        return typename_from_path(ty.pointee), ty.mutable

    def _convert_function(self, fun: ForeignFunction, cb: ForeignModCallbacks) -> ApiRecord:
        self_type, receiver_mutable = self._receiver(fun)
        params = list(fun.params)
        if self_type is not None:
            params = params[1:]
            method_name = self.method_receivers.get(fun.name, (self_type, None))[1]
            if method_name is None:
                method_name = fun.name.removeprefix(f"{self_type.name}_")
        elif fun.name in self.method_receivers:
            self_type, method_name = self.method_receivers[fun.name]
        else:
            method_name = None

        if self_type is not None and cb.avoid_generating_type(self_type):
            raise _SkipFunction(f"its type {self_type} is not generated")

        sig = self._convert_signature(params, fun.ret, cb)
        rust_name = method_name or fun.name
        bridge_name = cb.get_cxx_bridge_name(self_type.name if self_type else None, rust_name, self.ns)
        cpp_name = fun.cpp_name or rust_name
        unsafe = cb.should_be_unsafe()

        bridge_params = list(sig.params)
        if self_type is not None and receiver_mutable is not None:
            receiver = f"self: Pin<&mut {self_type.name}>" if receiver_mutable else f"self: &{self_type.name}"
            bridge_params.insert(0, receiver)
        bridge_item = BridgeFunction(
            name=bridge_name,
            params=tuple(bridge_params),
            ret=sig.ret,
            unsafe=unsafe,
            cxx_name=cpp_name if cpp_name != bridge_name else None,
            namespace=str(self.ns) or None,
        )

        if self_type is None:
            api_id = self._claim_rust_name(rust_name, bridge_name, cb)
            return ApiRecord(
                ns=self.ns,
                id=api_id,
                use_stmt=Use.USED,
                bridge_item=bridge_item,
                deps=sig.deps,
            )

        sig.deps.add(self_type)
        if receiver_mutable is None:
            impl_params, impl_args = sig.params, sig.args
        else:
            impl_params = ["self: Pin<&mut Self>" if receiver_mutable else "&self"] + sig.params
            impl_args = ["self"] + sig.args
        impl_entry = ImplEntry(
            self_ty=self_type.name,
            method_name=method_name,
            bridge_name=bridge_name,
            params=tuple(impl_params),
            args=tuple(impl_args),
            ret=sig.ret,
            unsafe=unsafe,
        )
        fun_name = TypeName(self.ns, fun.name)
        return ApiRecord(
            ns=self.ns,
            id=bridge_name,
            use_stmt=Use.UNUSED,
            bridge_item=bridge_item,
            deps=sig.deps,
            id_for_allowlist=fun_name if cb.is_on_allowlist(fun_name) else self_type,
            impl_entry=impl_entry,
        )

    def _claim_rust_name(self, rust_name: str, bridge_name: str, cb: ForeignModCallbacks) -> str:
        if cb.ok_to_use_rust_name(rust_name):
            return rust_name
        if bridge_name != rust_name and cb.ok_to_use_rust_name(bridge_name):
            return bridge_name
        raise _SkipFunction(f"the name {rust_name} is already taken in the output module")

    def _convert_signature(self, params, ret: Optional[TypeExpr], cb: ForeignModCallbacks) -> _Signature:
        sig = _Signature()
        for param in params:
            sig.params.append(f"{param.name}: {self._convert_value(param.ty, cb, sig.deps)}")
            sig.args.append(param.name)
        if ret is not None:
            sig.ret = self._convert_value(ret, cb, sig.deps)
        return sig

    def _convert_value(self, ty: TypeExpr, cb: ForeignModCallbacks, deps: set[TypeName]) -> str:
        converted, types = cb.convert_boxed_type(ty, self.ns)
        for tn in types:
            if cb.avoid_generating_type(tn):
                raise _SkipFunction(f"it refers to {tn}, which is not generated")
        # Indirect types can only cross the bridge behind a reference or pointer.
        if isinstance(converted, PathType) and len(converted.segments) == 1:
            for tn in types:
                if tn.name == converted.segments[0] and not cb.is_pod(tn):
                    raise _SkipFunction(f"it passes {tn} by value")
        deps |= types
        return str(converted)
