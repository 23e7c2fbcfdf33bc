from enum import Enum, auto


class TypeKind(Enum):
    VALUE = auto()       # trivial, can be moved and copied in Rust
    INDIRECT = auto()    # destructor or non-trivial move, only behind UniquePtr
    INCOMPLETE = auto()  # no full definition, cannot even generate UniquePtr


class UnsafePolicy(Enum):
    ALL_FUNCTIONS_SAFE = "safe"
    ALL_FUNCTIONS_UNSAFE = "unsafe"


class Use(Enum):
    UNUSED = auto()
    USED = auto()
