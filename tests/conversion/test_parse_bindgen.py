import json

import pytest

from bindbridge.conversion import (ByValueChecker, ParseBindgen,
                                   UnexpectedDeclarationError,
                                   convert_declarations)
from bindbridge.conversion.api import UniquePtrImpl
from bindbridge.data_types import TypeKind, UnsafePolicy, Use
from bindbridge.decls.declarations import (ConstDecl, EnumDecl, EnumVariant,
                                          Field, ForeignFunction,
                                          ForeignModDecl, ImplDecl,
                                          ImplMethod, ModDecl, Param,
                                          StructDecl, TypeAliasDecl,
                                          UnsupportedDecl, UseDecl)
from bindbridge.decls.type_expr import parse_type
from bindbridge.rendering import render_fragment
from bindbridge.types import Namespace, TypeName
from tests.utils import type_database

GEO = Namespace(("geo",))


def _struct(name, /, **fields):
    return StructDecl(name, tuple(Field(n, parse_type(t)) for n, t in fields.items()), ("Debug",))


def _forward(name):
    return _struct(name, _unused="[u8; 0]")


def _fn(name, *params, ret=None):
    return ForeignFunction(name, tuple(Param(n, parse_type(t)) for n, t in params), parse_type(ret) if ret else None)


def _parser(items, unsafe_policy=UnsafePolicy.ALL_FUNCTIONS_SAFE, **types):
    db = type_database(**types)
    return ParseBindgen(ByValueChecker.new_from_declarations(items, db), db, unsafe_policy)


def _convert(items, exclude_utilities=True, **types):
    return _parser(items, **types).convert_items(items, exclude_utilities)


def _only(results, cpp_name):
    (api,) = results.find(TypeName.from_cpp_name(cpp_name))
    return api


def test_value_type_at_root():
    items = [_struct("Point", x="i32", y="i32")]

    results = _convert(items, pod=["Point"])

    (api,) = results.apis
    assert api.typename() == TypeName.from_cpp_name("Point")
    assert api.type_kind == TypeKind.VALUE
    assert api.use_stmt == Use.UNUSED
    assert api.deps == set()
    assert api.bridge_item == UniquePtrImpl("Point")
    assert api.extern_c_mod_item.namespace is None
    assert render_fragment(api.extern_c_mod_item) == "type Point = super::bindgen::root::Point;"
    assert render_fragment(api.global_items[0]) == (
        "unsafe impl cxx::ExternType for bindgen::root::Point {\n"
        '    type Id = cxx::type_id!("Point");\n'
        "    type Kind = cxx::kind::Trivial;\n"
        "}"
    )
    assert api.bindgen_item == items[0]


def test_forward_declared_type_is_incomplete():
    items = [ModDecl("geo", (_forward("ThatType"),))]
    parser = _parser(items)

    results = parser.convert_items(items, exclude_utilities=True)

    api = _only(results, "geo::ThatType")
    assert api.type_kind == TypeKind.INCOMPLETE
    assert api.bridge_item is None
    assert api.global_items[0].kind == "Opaque"
    assert render_fragment(api.extern_c_mod_item) == (
        '#[namespace = "geo"]\ntype ThatType = super::bindgen::root::geo::ThatType;'
    )
    assert TypeName.from_cpp_name("geo::ThatType") in parser.incomplete_types


def test_indirect_type_is_made_opaque():
    items = [_struct("Widget", name="root::std::string", size="usize")]

    api = _only(_convert(items), "Widget")

    assert api.type_kind == TypeKind.INDIRECT
    assert api.deps == set()
    assert api.global_items[0].kind == "Opaque"
    assert [f.name for f in api.bindgen_item.fields] == ["do_not_attempt_to_allocate_nonpod_types"]
    assert str(api.bindgen_item.fields[0].ty) == "[*const u8; 0]"
    assert api.bindgen_item.derives == ()


def test_enums_are_always_value_types():
    items = [ModDecl("geo", (EnumDecl("Kind", (EnumVariant("A", "0"),), "u32"),))]

    api = _only(_convert(items), "geo::Kind")

    assert api.type_kind == TypeKind.VALUE
    assert api.deps == set()
    assert api.bridge_item == UniquePtrImpl("Kind")


@pytest.mark.parametrize("secret, pod", [
    (_struct("Secret", x="i32"), ["geo::Secret"]),
    (_forward("Secret"), []),
    (_struct("Secret", name="root::std::string"), []),
    (EnumDecl("Secret", (EnumVariant("A", "0"),), "u32"), []),
], ids=["value", "incomplete", "indirect", "enum"])
def test_blocklisted_types_produce_no_record(secret, pod):
    items = [
        ModDecl("geo", (
            secret,
            ForeignModDecl((_fn("peek", ("s", "*const root::geo::Secret")),)),
        )),
        EnumDecl("Secret"),
    ]

    results = _convert(items, blocklist=["geo::Secret"], pod=pod)

    assert results.find(TypeName.from_cpp_name("geo::Secret")) == []
    assert results.find(TypeName.from_cpp_name("geo::peek")) == []
    assert len(results.find(TypeName.from_cpp_name("Secret"))) == 1


def test_value_type_deps_are_union_of_field_types():
    items = [
        _struct("Point", x="i32", y="i32"),
        _struct("Line", a="root::Point", b="root::geo::Vec", n="u8"),
        ModDecl("geo", (_struct("Vec", dx="f32"),)),
    ]

    api = _only(_convert(items, pod=["Line"]), "Line")

    assert api.type_kind == TypeKind.VALUE
    assert api.deps == {TypeName.from_cpp_name("Point"), TypeName.from_cpp_name("geo::Vec")}


def test_use_statements_per_namespace():
    user_use = UseDecl(("self", "super", "root"))
    items = [
        user_use,
        ModDecl("a", (ModDecl("b", ()),)),
        ModDecl("c", ()),
        ModDecl("skipped"),
    ]

    results = _convert(items)

    assert set(results.use_stmts_by_mod) == {
        Namespace(), Namespace(("a",)), Namespace(("a", "b")), Namespace(("c",)),
    }
    root_uses = results.use_stmts_by_mod[Namespace()]
    assert root_uses[0] == user_use
    assert [u.path_str() for u in root_uses[1:]] == [
        "self::super::super::cxxbridge",
        "cxx::UniquePtr",
        "cxx::CxxString",
        "std::pin::Pin",
    ]
    for ns, uses in results.use_stmts_by_mod.items():
        bridge_import = [u for u in uses if u.path[-1] == "cxxbridge"]
        assert len(bridge_import) == 1
        assert bridge_import[0].path.count("super") == ns.depth() + 2
        assert all(u.allow_unused for u in uses)
    assert render_fragment(root_uses[1]) == "#[allow(unused_imports)]\nuse self::super::super::cxxbridge;"


def test_conversion_is_deterministic():
    items = [
        _struct("Point", x="i32"),
        ModDecl("geo", (
            _forward("Opaque"),
            _struct("Widget", p="*mut root::geo::Opaque"),
            ForeignModDecl((_fn("Widget_make", ret="*mut root::geo::Widget"),)),
            ImplDecl("Widget", (ImplMethod("make", "Widget_make"),)),
            TypeAliasDecl("Pairs", parse_type("root::geo::Pair<root::Point>")),
        )),
    ]

    first = convert_declarations(items, type_database(pod=["Point"]))
    second = convert_declarations(items, type_database(pod=["Point"]))

    assert json.dumps(first.to_dict(), sort_keys=True) == json.dumps(second.to_dict(), sort_keys=True)


def test_same_name_in_different_namespaces():
    items = [
        ModDecl("a", (
            _struct("Id", v="u32"),
            ForeignModDecl((_fn("make_id", ret="*mut root::a::Id"),)),
        )),
        ModDecl("b", (
            _struct("Id", v="u32"),
            ForeignModDecl((_fn("make_id", ret="*mut root::b::Id"),)),
        )),
    ]

    results = _convert(items)

    a_id = _only(results, "a::Id")
    b_id = _only(results, "b::Id")
    assert a_id.typename() != b_id.typename()
    assert a_id.global_items[0].cpp_name == "a::Id"
    assert b_id.global_items[0].cpp_name == "b::Id"

    a_fn = _only(results, "a::make_id")
    b_fn = _only(results, "b::b_make_id")
    assert a_fn.bridge_item.name != b_fn.bridge_item.name
    assert b_fn.bridge_item.cxx_name == "make_id"
    assert b_fn.deps == {TypeName.from_cpp_name("b::Id")}


def test_unexpected_declaration_kind_is_an_error():
    items = [ModDecl("geo", (UnsupportedDecl("macro", {"name": "M"}),))]
    with pytest.raises(UnexpectedDeclarationError) as excinfo:
        _convert(items)
    assert excinfo.value.kind == "macro"
    assert excinfo.value.ns == "geo"


def test_constants_stay_in_their_namespace():
    const = ConstDecl("LIMIT", parse_type("u32"), "5")
    items = [ModDecl("geo", (const,))]

    api = _only(_convert(items), "geo::LIMIT")

    assert api.bindgen_item == const
    assert api.deps == set()
    assert api.bridge_item is None


def test_type_alias_has_no_deps():
    alias = TypeAliasDecl("Handle", parse_type("*mut root::geo::Point"))
    items = [ModDecl("geo", (_struct("Point", x="i32"), alias))]

    api = _only(_convert(items), "geo::Handle")

    assert api.bindgen_item == alias
    assert api.deps == set()


@pytest.mark.parametrize("alias", [
    TypeAliasDecl("vector_value_type", parse_type("_Tp")),
    TypeAliasDecl("vector_value_type", parse_type("root::std::vector_value_type")),
])
def test_unresolvable_type_alias_is_recorded(alias):
    items = [ModDecl("std", (alias,))]

    results = _convert(items)

    (api,) = results.apis
    assert api.typename() == TypeName.from_cpp_name("std::vector_value_type")
    assert api.bindgen_item == alias
    assert api.deps == set()


def test_unused_template_alias_adds_no_concrete_type():
    items = [TypeAliasDecl("Points", parse_type("root::Vec2<f32>"))]

    results = _convert(items)

    assert [api.id for api in results.apis] == ["Points"]
    assert _only(results, "Points").deps == set()


def test_utilities_are_added_first_unless_excluded():
    results = convert_declarations([], type_database())
    assert [api.id for api in results.apis] == ["make_string"]
    make_string = results.apis[0]
    assert make_string.use_stmt == Use.USED
    assert "std::make_unique<std::string>" in make_string.additional_cpp

    assert convert_declarations([], type_database(), exclude_utilities=True).apis == []


def test_unsafe_policy_reaches_functions():
    items = [ForeignModDecl((_fn("poke"),))]
    results = _parser(items, UnsafePolicy.ALL_FUNCTIONS_UNSAFE).convert_items(items, True)
    assert _only(results, "poke").bridge_item.unsafe


def test_to_dict_is_json_serializable():
    items = [
        _struct("Point", x="i32", y="i32"),
        ModDecl("geo", (_forward("Opaque"), ConstDecl("N", parse_type("u8"), "1"))),
    ]
    payload = convert_declarations(items, type_database(pod=["Point"])).to_dict()

    decoded = json.loads(json.dumps(payload))

    assert [api["id"] for api in decoded["apis"]] == ["make_string", "Point", "Opaque", "N"]
    assert list(decoded["use_statements"]) == ["", "geo"]
    opaque = decoded["apis"][2]
    assert opaque["type_kind"] == "incomplete"
    assert opaque["bridge_item"] is None
    assert opaque["ns"] == "geo"


def test_parser_can_convert_twice():
    items = [
        ModDecl("geo", (
            _forward("Opaque"),
            _struct("Widget", p="*mut root::geo::Opaque"),
            ForeignModDecl((_fn("Widget_make", ret="*mut root::geo::Widget"),)),
        )),
    ]
    parser = _parser(items)

    first = parser.convert_items(items).to_dict()
    second = parser.convert_items(items).to_dict()

    assert second == first
    assert [api["id"] for api in second["apis"]].count("make_string") == 1
    assert [api["id"] for api in second["apis"]].count("Opaque") == 1
    assert parser.incomplete_types == {TypeName.from_cpp_name("geo::Opaque")}
