from types import SimpleNamespace

from bindbridge.conversion.classifier import (EntityClassifier,
                                              spot_forward_declaration)
from bindbridge.data_types import TypeKind
from bindbridge.decls.declarations import Field
from bindbridge.decls.type_expr import parse_type
from bindbridge.types import TypeName


def _oracle(*pods):
    names = {TypeName.from_cpp_name(p) for p in pods}
    return SimpleNamespace(is_pod=lambda tn: tn in names)


def test_spot_forward_declaration():
    assert spot_forward_declaration([Field("_unused", parse_type("[u8; 0]"))])
    assert not spot_forward_declaration([Field("x", parse_type("i32"))])
    assert not spot_forward_declaration([])


def test_forward_declared_type_is_incomplete():
    incomplete = set()
    classifier = EntityClassifier(_oracle("geo::Opaque"), incomplete)
    tn = TypeName.from_cpp_name("geo::Opaque")

    kind = classifier.classify(tn, [Field("_unused", parse_type("[u8; 0]"))])

    assert kind == TypeKind.INCOMPLETE
    assert incomplete == {tn}


def test_pod_type_is_value():
    incomplete = set()
    classifier = EntityClassifier(_oracle("Point"), incomplete)
    assert classifier.classify(TypeName.from_cpp_name("Point"), [Field("x", parse_type("i32"))]) == TypeKind.VALUE
    assert incomplete == set()


def test_other_types_are_indirect():
    classifier = EntityClassifier(_oracle(), set())
    assert classifier.classify(TypeName.from_cpp_name("Widget"), []) == TypeKind.INDIRECT
