from .api import ApiRecord, ParseResults
from .byvalue_checker import ByValueChecker
from .errors import (ConversionError, DeclarationFormatError,
                     InfinitelyRecursiveTypedefError, PodRequestError,
                     UnexpectedDeclarationError, UnknownTypeError)
from .parse_bindgen import ParseBindgen, convert_declarations
from .type_database import KnownType, TypeDatabase

__all__ = [
    'ApiRecord',
    'ParseResults',
    'ByValueChecker',
    'ParseBindgen',
    'convert_declarations',
    'KnownType',
    'TypeDatabase',
    'ConversionError',
    'DeclarationFormatError',
    'InfinitelyRecursiveTypedefError',
    'PodRequestError',
    'UnexpectedDeclarationError',
    'UnknownTypeError',
]
