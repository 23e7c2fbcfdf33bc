from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from bindbridge import logging as bindbridge_logging
from bindbridge.data_types import TypeKind, UnsafePolicy, Use
from bindbridge.decls.declarations import (ConstDecl, Declaration, EnumDecl,
                                          ForeignModDecl, ImplDecl, ModDecl,
                                          StructDecl, TypeAliasDecl, UseDecl)
from bindbridge.decls.type_expr import TypeExpr
from bindbridge.types import Namespace, TypeName

from .api import (ApiRecord, ExternType, ExternTypeAssertion, ParseResults,
                  UniquePtrImpl)
from .byvalue_checker import ByValueChecker
from .classifier import EntityClassifier
from .errors import UnexpectedDeclarationError
from .foreign_mod import ParseForeignMod
from .name_trackers import BridgeNameTracker, RustNameTracker
from .non_pod import make_non_pod
from .type_converter import TypeConverter
from .type_database import TypeDatabase
from .utilities import generate_utilities

logger = bindbridge_logging.get_logger(__name__)

BRIDGE_MOD_NAME = "cxxbridge"
FOREIGN_TREE_PATH = ("bindgen", "root")
# always imported into every output module
_HELPER_TYPES = ("UniquePtr", "CxxString")


@dataclass
class ConversionContext:
    """State owned by one conversion run and threaded through the walk."""

    incomplete_types: set[TypeName] = field(default_factory=set)
    bridge_name_tracker: BridgeNameTracker = field(default_factory=BridgeNameTracker)
    rust_name_tracker: RustNameTracker = field(default_factory=RustNameTracker)
    results: ParseResults = field(default_factory=ParseResults)


class ParseBindgen:
    """Walks the flattened declaration tree and produces API records.

    One call to :meth:`convert_items` converts the whole tree, one namespace
    at a time. This class is also the callback surface the foreign-block
    conversion uses, see :class:`~bindbridge.conversion.foreign_mod.ForeignModCallbacks`.
    """

    def __init__(
        self,
        byvalue_checker: ByValueChecker,
        type_database: TypeDatabase,
        unsafe_policy: UnsafePolicy = UnsafePolicy.ALL_FUNCTIONS_SAFE,
    ):
        self.byvalue_checker = byvalue_checker
        self.type_database = type_database
        self.unsafe_policy = unsafe_policy
        self._start_run()

    def _start_run(self) -> None:
        self.ctx = ConversionContext()
        self.type_converter = TypeConverter(self.type_database)
        self.classifier = EntityClassifier(self.byvalue_checker, self.ctx.incomplete_types)

    @property
    def incomplete_types(self) -> set[TypeName]:
        return self.ctx.incomplete_types

    def convert_items(self, items: Sequence[Declaration], exclude_utilities: bool = False) -> ParseResults:
        """Convert a whole declaration tree. Each call starts from fresh state."""
        self._start_run()
        if not exclude_utilities:
            generate_utilities(self.ctx.results.apis)
            for api in self.ctx.results.apis:
                self.ctx.rust_name_tracker.ok_to_use_rust_name(api.id)
        self._convert_mod_items(items, Namespace())
        self._report_dangling_dependencies()
        logger.info(
            "Converted %d APIs across %d namespaces (%d incomplete types)",
            len(self.ctx.results.apis),
            len(self.ctx.results.use_stmts_by_mod),
            len(self.ctx.incomplete_types),
        )
        return self.ctx.results

    def _convert_mod_items(self, items: Iterable[Declaration], ns: Namespace) -> None:
        """Convert the declarations of one namespace, recursing into nested ones."""
        # Functions are only converted once every type in the namespace is known.
        mod_converter = ParseForeignMod(ns)
        use_statements_for_this_mod: list[UseDecl] = []
        for item in items:
            if isinstance(item, ForeignModDecl):
                mod_converter.convert_foreign_mod_items(item)
            elif isinstance(item, StructDecl):
                tyname = TypeName(ns, item.name)
                type_kind = self.classifier.classify(tyname, item.fields)
                # Either keep the struct untouched or make it fully opaque.
                if type_kind == TypeKind.VALUE:
                    field_types = self._get_struct_field_types(ns, item)
                    bindgen_item = item
                else:
                    field_types = set()
                    bindgen_item = make_non_pod(item)
                self._generate_type(tyname, type_kind, field_types, bindgen_item)
            elif isinstance(item, EnumDecl):
                self._generate_type(TypeName(ns, item.name), TypeKind.VALUE, set(), item)
            elif isinstance(item, ImplDecl):
                # Methods come from the foreign blocks; impl blocks only tell
                # static methods apart from free functions.
                mod_converter.convert_impl_items(item)
            elif isinstance(item, ModDecl):
                if item.items is not None:
                    self._convert_mod_items(item.items, ns.push(item.name))
                else:
                    logger.debug("Skipping namespace %s without inline content", ns.push(item.name))
            elif isinstance(item, UseDecl):
                use_statements_for_this_mod.append(item)
            elif isinstance(item, ConstDecl):
                self.add_api(ApiRecord(ns=ns, id=item.name, bindgen_item=item))
            elif isinstance(item, TypeAliasDecl):
                # The target is only resolved where the alias is used; it may
                # name template parameters such as _Tp that resolve nowhere.
                self.type_converter.insert_typedef(TypeName(ns, item.name), item.ty)
                self.add_api(ApiRecord(ns=ns, id=item.name, bindgen_item=item))
            else:
                raise UnexpectedDeclarationError(getattr(item, "kind", type(item).__name__), str(ns))

        for api in mod_converter.finished(self):
            self.add_api(api)

        # 'use' statements only land in the output if this namespace still has
        # items after unused APIs are dropped, so they are kept aside here.
        supers = ("super",) * (ns.depth() + 2)
        use_statements_for_this_mod.append(UseDecl(("self",) + supers + (BRIDGE_MOD_NAME,)))
        for thing in _HELPER_TYPES:
            use_statements_for_this_mod.append(UseDecl(("cxx", thing)))
        use_statements_for_this_mod.append(UseDecl(("std", "pin", "Pin")))
        self.ctx.results.use_stmts_by_mod[ns] = use_statements_for_this_mod

    def _get_struct_field_types(self, ns: Namespace, s: StructDecl) -> set[TypeName]:
        results: set[TypeName] = set()
        for f in s.fields:
            annotated = self.type_converter.convert_type(f.ty, ns)
            self.ctx.results.apis.extend(annotated.extra_apis)
            results |= annotated.types_encountered
        return results

    def _generate_type(
        self,
        tyname: TypeName,
        type_nature: TypeKind,
        deps: set[TypeName],
        bindgen_item: Optional[Declaration],
    ) -> None:
        """Record the API for a struct or enum.

        Blocklisted types produce nothing at all. Otherwise the record holds
        the re-export of the type into the bridge, the UniquePtr assertion
        (not for incomplete types) and the ExternType impl tying the foreign
        path to its C++ name.
        """
        if self.type_database.is_on_blocklist(tyname):
            logger.debug("%s is blocklisted", tyname)
            return
        final_ident = tyname.get_final_ident()
        kind_item = "Trivial" if type_nature == TypeKind.VALUE else "Opaque"
        ns_path = tuple(tyname.ns_segment_iter())
        extern_c_mod_item = ExternType(
            ident=final_ident,
            path=("root",) + ns_path + (final_ident,),
            namespace=str(tyname.get_namespace()) if tyname.has_namespace() else None,
        )
        bridge_item = None if type_nature == TypeKind.INCOMPLETE else UniquePtrImpl(final_ident)
        assertion = ExternTypeAssertion(
            path=FOREIGN_TREE_PATH + ns_path + (final_ident,),
            cpp_name=tyname.to_cpp_name(),
            kind=kind_item,
        )
        self.add_api(ApiRecord(
            ns=tyname.get_namespace(),
            id=final_ident,
            use_stmt=Use.UNUSED,
            bridge_item=bridge_item,
            extern_c_mod_item=extern_c_mod_item,
            global_items=[assertion],
            deps=deps,
            bindgen_item=bindgen_item,
            type_kind=type_nature,
        ))
        self.type_converter.push(tyname)

    def _report_dangling_dependencies(self) -> None:
        dangling = set()
        for api in self.ctx.results.apis:
            for dep in api.deps:
                if (self.type_converter.has_seen(dep)
                        or dep in self.ctx.incomplete_types
                        or self.type_database.is_known_type(dep)
                        or self.type_database.is_on_blocklist(dep)):
                    continue
                dangling.add(dep)
        for dep in sorted(dangling):
            logger.warning("%s is referenced but never defined", dep)

    # Callbacks for the foreign-block conversion.

    def convert_boxed_type(self, ty: TypeExpr, ns: Namespace) -> tuple[TypeExpr, set[TypeName]]:
        annotated = self.type_converter.convert_boxed_type(ty, ns)
        self.ctx.results.apis.extend(annotated.extra_apis)
        return annotated.ty, annotated.types_encountered

    def is_pod(self, tn: TypeName) -> bool:
        return self.byvalue_checker.is_pod(tn)

    def add_api(self, api: ApiRecord) -> None:
        self.ctx.results.apis.append(api)

    def get_cxx_bridge_name(self, type_name: Optional[str], found_name: str, ns: Namespace) -> str:
        return self.ctx.bridge_name_tracker.get_unique_cxx_bridge_name(type_name, found_name, ns)

    def ok_to_use_rust_name(self, rust_name: str) -> bool:
        return self.ctx.rust_name_tracker.ok_to_use_rust_name(rust_name)

    def is_on_allowlist(self, tn: TypeName) -> bool:
        return self.type_database.is_on_allowlist(tn)

    def avoid_generating_type(self, tn: TypeName) -> bool:
        return self.type_database.is_on_blocklist(tn) or tn in self.ctx.incomplete_types

    def should_be_unsafe(self) -> bool:
        return self.unsafe_policy == UnsafePolicy.ALL_FUNCTIONS_UNSAFE


def convert_declarations(
    items: Sequence[Declaration],
    type_database: TypeDatabase,
    unsafe_policy: UnsafePolicy = UnsafePolicy.ALL_FUNCTIONS_SAFE,
    exclude_utilities: bool = False,
) -> ParseResults:
    """Run one full conversion over a declaration tree."""
    byvalue_checker = ByValueChecker.new_from_declarations(items, type_database)
    parser = ParseBindgen(byvalue_checker, type_database, unsafe_policy)
    return parser.convert_items(items, exclude_utilities)
