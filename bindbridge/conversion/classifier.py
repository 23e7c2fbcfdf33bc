from typing import Iterable, Protocol

from bindbridge import logging as bindbridge_logging
from bindbridge.data_types import TypeKind
from bindbridge.decls.declarations import Field
from bindbridge.types import TypeName

logger = bindbridge_logging.get_logger(__name__)

# Field name the binding generator gives the placeholder of a type it only
# saw forward-declared.
FORWARD_DECLARATION_MARKER = "_unused"


class PodOracle(Protocol):
    def is_pod(self, tn: TypeName) -> bool: ...


def spot_forward_declaration(fields: Iterable[Field]) -> bool:
    return any(f.name == FORWARD_DECLARATION_MARKER for f in fields)


class EntityClassifier:
    """Decides whether a struct is a value type, an indirect type, or incomplete.

    The incomplete-type set is owned by the caller and only ever grows.
    """

    def __init__(self, byvalue_checker: PodOracle, incomplete_types: set[TypeName]):
        self.byvalue_checker = byvalue_checker
        self.incomplete_types = incomplete_types

    def classify(self, tn: TypeName, fields: Iterable[Field]) -> TypeKind:
        # A forward declaration has nothing to check for value safety.
        if spot_forward_declaration(fields):
            self.incomplete_types.add(tn)
            kind = TypeKind.INCOMPLETE
        elif self.byvalue_checker.is_pod(tn):
            kind = TypeKind.VALUE
        else:
            kind = TypeKind.INDIRECT
        logger.debug("Classified %s as %s", tn, kind.name)
        return kind
