from collections import defaultdict
from typing import Optional

from bindbridge.types import Namespace

UNIQUE_SUFFIX = "_bindbridge"


class BridgeNameTracker:
    """Hands out collision-free names for the bridge interface.

    Everything in the bridge lives in one flat scope, so functions from
    different namespaces or types must not share a name there. The first
    request for a name gets it unchanged; later ones are prefixed with the
    namespace and type, then numbered.
    """

    def __init__(self):
        self.next_cxx_bridge_name_for_prefix: defaultdict[str, int] = defaultdict(int)

    def get_unique_cxx_bridge_name(self, type_name: Optional[str], found_name: str, ns: Namespace) -> str:
        count = self.next_cxx_bridge_name_for_prefix[found_name]
        if count == 0:
            self.next_cxx_bridge_name_for_prefix[found_name] += 1
            return found_name
        prefix = "_".join(list(ns) + ([type_name] if type_name else []) + [found_name])
        count = self.next_cxx_bridge_name_for_prefix[prefix]
        self.next_cxx_bridge_name_for_prefix[prefix] += 1
        if count == 0:
            return prefix
        return f"{prefix}{UNIQUE_SUFFIX}{count}"


class RustNameTracker:
    """Tracks names already taken in the final output module."""

    def __init__(self):
        self.names_so_far: set[str] = set()

    def ok_to_use_rust_name(self, rust_name: str) -> bool:
        if rust_name in self.names_so_far:
            return False
        self.names_so_far.add(rust_name)
        return True
