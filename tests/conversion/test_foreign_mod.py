from bindbridge.conversion.foreign_mod import ParseForeignMod
from bindbridge.conversion.name_trackers import (BridgeNameTracker,
                                                 RustNameTracker)
from bindbridge.conversion.type_converter import TypeConverter
from bindbridge.data_types import Use
from bindbridge.decls.declarations import (ForeignFunction, ForeignModDecl,
                                          ImplDecl, ImplMethod, Param)
from bindbridge.decls.type_expr import parse_type
from bindbridge.rendering import render_fragment
from bindbridge.types import Namespace, TypeName
from tests.utils import type_database

GEO = Namespace(("geo",))


class _Callbacks:
    def __init__(self, pods=(), avoid=(), allow=(), unsafe=False):
        self.converter = TypeConverter(type_database())
        self.pods = {TypeName.from_cpp_name(n) for n in pods}
        self.avoid = {TypeName.from_cpp_name(n) for n in avoid}
        self.allow = {TypeName.from_cpp_name(n) for n in allow}
        self.unsafe = unsafe
        self.bridge_names = BridgeNameTracker()
        self.rust_names = RustNameTracker()
        self.added = []

    def convert_boxed_type(self, ty, ns):
        annotated = self.converter.convert_boxed_type(ty, ns)
        return annotated.ty, annotated.types_encountered

    def is_pod(self, tn):
        return tn in self.pods

    def add_api(self, api):
        self.added.append(api)

    def get_cxx_bridge_name(self, type_name, found_name, ns):
        return self.bridge_names.get_unique_cxx_bridge_name(type_name, found_name, ns)

    def ok_to_use_rust_name(self, rust_name):
        return self.rust_names.ok_to_use_rust_name(rust_name)

    def is_on_allowlist(self, tn):
        return tn in self.allow

    def avoid_generating_type(self, tn):
        return tn in self.avoid

    def should_be_unsafe(self):
        return self.unsafe


def _fn(name, *params, ret=None, cpp_name=None):
    return ForeignFunction(
        name,
        tuple(Param(n, parse_type(t)) for n, t in params),
        parse_type(ret) if ret else None,
        cpp_name,
    )


def _convert(*functions, impls=(), ns=GEO, callbacks=None):
    callbacks = callbacks or _Callbacks(pods=["geo::Point"])
    parser = ParseForeignMod(ns)
    parser.convert_foreign_mod_items(ForeignModDecl(tuple(functions)))
    for imp in impls:
        parser.convert_impl_items(imp)
    return parser.finished(callbacks)


def test_free_function():
    (api,) = _convert(_fn("get_point", ("x", "i32"), ret="root::geo::Point"))

    assert api.ns == GEO
    assert api.id == "get_point"
    assert api.use_stmt == Use.USED
    assert api.impl_entry is None
    assert api.deps == {TypeName.from_cpp_name("geo::Point")}
    assert render_fragment(api.bridge_item) == '#[namespace = "geo"]\nfn get_point(x: i32) -> Point;'


def test_renamed_overload_keeps_cpp_name():
    (api,) = _convert(_fn("draw1", ("x", "i32"), cpp_name="draw"))
    assert api.bridge_item.cxx_name == "draw"
    assert render_fragment(api.bridge_item) == '#[namespace = "geo"]\n#[cxx_name = "draw"]\nfn draw1(x: i32);'


def test_method_with_receiver():
    resize = _fn("Widget_resize", ("this", "*mut root::geo::Widget"), ("w", "u32"))
    impl = ImplDecl("Widget", (ImplMethod("resize", "Widget_resize"),))

    (api,) = _convert(resize, impls=[impl])

    widget = TypeName.from_cpp_name("geo::Widget")
    assert api.id == "resize"
    assert api.use_stmt == Use.UNUSED
    assert api.id_for_allowlist == widget
    assert widget in api.deps
    assert api.bridge_item.params == ("self: Pin<&mut Widget>", "w: u32")
    assert api.impl_entry.method_name == "resize"
    assert api.impl_entry.params == ("self: Pin<&mut Self>", "w: u32")
    assert api.impl_entry.args == ("self", "w")


def test_const_method_without_impl_entry_strips_type_prefix():
    (api,) = _convert(_fn("Widget_width", ("this", "*const root::geo::Widget"), ret="u32"))
    assert api.impl_entry.method_name == "width"
    assert api.bridge_item.params == ("self: &Widget",)
    assert api.impl_entry.params == ("&self",)


def test_static_method_comes_from_impl_block():
    make = _fn("Widget_make", ret="*mut root::geo::Widget")
    impl = ImplDecl("Widget", (ImplMethod("make", "Widget_make"),))
    callbacks = _Callbacks(allow=["geo::Widget_make"])

    (api,) = _convert(make, impls=[impl], callbacks=callbacks)

    assert api.impl_entry.self_ty == "Widget"
    assert api.impl_entry.params == ()
    assert api.id_for_allowlist == TypeName.from_cpp_name("geo::Widget_make")
    assert api.bridge_item.ret == "*mut Widget"


def test_indirect_types_are_not_passed_by_value():
    assert _convert(_fn("take", ("w", "root::geo::Widget"))) == []
    assert len(_convert(_fn("take_ptr", ("w", "*mut root::geo::Widget")))) == 1


def test_functions_touching_avoided_types_are_skipped():
    callbacks = _Callbacks(avoid=["geo::Opaque"])
    assert _convert(_fn("use_opaque", ("o", "*mut root::geo::Opaque")), callbacks=callbacks) == []


def test_methods_of_avoided_types_are_skipped():
    callbacks = _Callbacks(avoid=["geo::Opaque"])
    method = _fn("Opaque_size", ("this", "*const root::geo::Opaque"), ret="usize")
    assert _convert(method, callbacks=callbacks) == []


def test_unsafe_policy_marks_functions_unsafe():
    (api,) = _convert(_fn("poke"), callbacks=_Callbacks(unsafe=True))
    assert api.bridge_item.unsafe
    assert render_fragment(api.bridge_item).endswith("unsafe fn poke();")


def test_rust_name_clash_falls_back_to_bridge_name():
    callbacks = _Callbacks()
    (first,) = _convert(_fn("reset"), ns=Namespace(("a",)), callbacks=callbacks)
    (second,) = _convert(_fn("reset"), ns=Namespace(("b",)), callbacks=callbacks)
    assert first.id == "reset"
    assert second.id == "b_reset"
    assert second.bridge_item.cxx_name == "reset"


def test_finished_drains_pending_functions():
    parser = ParseForeignMod(GEO)
    parser.convert_foreign_mod_items(ForeignModDecl((_fn("once"),)))
    callbacks = _Callbacks()
    assert len(parser.finished(callbacks)) == 1
    assert parser.finished(callbacks) == []
