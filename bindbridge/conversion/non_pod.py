from dataclasses import replace

from bindbridge.decls.declarations import Field, StructDecl
from bindbridge.decls.type_expr import ArrayType, PathType, PointerType

OPAQUE_FIELD_NAME = "do_not_attempt_to_allocate_nonpod_types"


def make_non_pod(decl: StructDecl) -> StructDecl:
    """Replace a struct's fields with a zero-sized placeholder.

    The result can't be constructed or read from Rust; it is
    only ever reached through a pointer or an owning wrapper.
    """
    placeholder = Field(OPAQUE_FIELD_NAME, ArrayType(PointerType(PathType(("u8",))), "0"))
    return replace(decl, fields=(placeholder,), derives=())
