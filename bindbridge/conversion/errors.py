from typing import Optional


class ConversionError(Exception):
    """Base class for every failure that aborts a conversion run."""


class UnexpectedDeclarationError(ConversionError):
    def __init__(self, kind: str, ns: Optional[str] = None):
        self.kind = kind
        self.ns = ns
        where = f" in namespace '{ns}'" if ns else ""
        super().__init__(f"Unexpected declaration of kind '{kind}'{where}")


class UnknownTypeError(ConversionError):
    def __init__(self, type_text: str):
        self.type_text = type_text
        super().__init__(f"Type '{type_text}' is neither a foreign type, a primitive nor a known built-in")


class InfinitelyRecursiveTypedefError(ConversionError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Type alias '{name}' refers back to itself")


class PodRequestError(ConversionError):
    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Type '{name}' was requested to be passed by value but {reason}")


class DeclarationFormatError(ConversionError, ValueError):
    pass
