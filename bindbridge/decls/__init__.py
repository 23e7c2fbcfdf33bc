from .declarations import (ConstDecl, Declaration, EnumDecl, EnumVariant,
                           Field, ForeignFunction, ForeignModDecl, ImplDecl,
                           ImplMethod, ModDecl, Param, StructDecl,
                           TypeAliasDecl, UnsupportedDecl, UseDecl)
from .loader import (declaration_from_dict, load_declarations,
                     load_declarations_from_dict, validate_document,
                     validate_file)
from .type_expr import TypeExpr, TypeSyntaxError, parse_type

__all__ = [
    'ConstDecl',
    'Declaration',
    'EnumDecl',
    'EnumVariant',
    'Field',
    'ForeignFunction',
    'ForeignModDecl',
    'ImplDecl',
    'ImplMethod',
    'ModDecl',
    'Param',
    'StructDecl',
    'TypeAliasDecl',
    'UnsupportedDecl',
    'UseDecl',
    'TypeExpr',
    'TypeSyntaxError',
    'parse_type',
    'declaration_from_dict',
    'load_declarations',
    'load_declarations_from_dict',
    'validate_document',
    'validate_file',
]
