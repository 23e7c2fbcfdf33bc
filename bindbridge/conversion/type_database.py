from dataclasses import dataclass
from typing import Any, Iterable, Optional

from bindbridge.types import TypeName

# Rust spellings the binding generator uses for C scalars
PRIMITIVES = frozenset({
    "bool", "char",
    "u8", "i8", "u16", "i16", "u32", "i32", "u64", "i64", "u128", "i128",
    "usize", "isize", "f32", "f64",
})

_RAW_C_TYPES = {
    "c_char": "c_char",
    "c_schar": "i8",
    "c_uchar": "u8",
    "c_short": "i16",
    "c_ushort": "u16",
    "c_int": "c_int",
    "c_uint": "c_uint",
    "c_long": "c_long",
    "c_ulong": "c_ulong",
    "c_longlong": "c_longlong",
    "c_ulonglong": "c_ulonglong",
    "c_float": "f32",
    "c_double": "f64",
    "c_void": "c_void",
}


@dataclass(frozen=True)
class KnownType:
    """A foreign type with a fixed bridge equivalent, e.g. std::string."""

    cpp: str
    rust: str
    pod: bool = False
    generic: bool = False


def map_raw_c_type(segments: tuple[str, ...]) -> Optional[str]:
    """Map ``std::os::raw::c_*`` (or ``libc::c_*``) to the bridge spelling."""
    if len(segments) >= 2 and segments[-2] in ("raw", "libc", "ffi"):
        return _RAW_C_TYPES.get(segments[-1])
    return None


class TypeDatabase:
    """Answers which foreign types the user wants, refuses, or gets for free."""

    def __init__(
        self,
        allowlist: Iterable[str] = (),
        blocklist: Iterable[str] = (),
        pod_requests: Iterable[str] = (),
        known_types: Iterable[KnownType] = (),
    ):
        self.allowlist = {TypeName.from_cpp_name(name) for name in allowlist}
        self.blocklist = {TypeName.from_cpp_name(name) for name in blocklist}
        self.pod_requests = [TypeName.from_cpp_name(name) for name in pod_requests]
        self.known_types = {kt.cpp: kt for kt in known_types}

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "TypeDatabase":
        types_cfg = config.get("types", {})
        known = [
            KnownType(
                cpp=entry["cpp"],
                rust=entry["rust"],
                pod=entry.get("pod", False),
                generic=entry.get("generic", False),
            )
            for entry in config.get("known_types", [])
        ]
        return cls(
            allowlist=types_cfg.get("allowlist", []),
            blocklist=types_cfg.get("blocklist", []),
            pod_requests=types_cfg.get("pod", []),
            known_types=known,
        )

    def is_on_allowlist(self, tn: TypeName) -> bool:
        return tn in self.allowlist

    def is_on_blocklist(self, tn: TypeName) -> bool:
        return tn in self.blocklist

    def get_known_type(self, tn: TypeName) -> Optional[KnownType]:
        return self.known_types.get(tn.to_cpp_name())

    def is_known_type(self, tn: TypeName) -> bool:
        return tn.to_cpp_name() in self.known_types

    def is_known_pod(self, tn: TypeName) -> bool:
        known = self.get_known_type(tn)
        return known is not None and known.pod
