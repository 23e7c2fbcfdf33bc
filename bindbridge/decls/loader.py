import json
from functools import lru_cache
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator  # type: ignore
from jsonschema.exceptions import ValidationError  # type: ignore

from bindbridge import logging as bindbridge_logging
from bindbridge import utils
from bindbridge.conversion.errors import DeclarationFormatError

from .declarations import (ConstDecl, Declaration, EnumDecl, EnumVariant,
                           Field, ForeignFunction, ForeignModDecl, ImplDecl,
                           ImplMethod, ModDecl, Param, StructDecl,
                           TypeAliasDecl, UnsupportedDecl, UseDecl)
from .type_expr import TypeSyntaxError, parse_type

logger = bindbridge_logging.get_logger(__name__)


@lru_cache(maxsize=1)
def _get_validator() -> Draft202012Validator:
    schema = json.loads(utils.load_resource_text("declarations.schema.json"))
    return Draft202012Validator(schema)


def validate_document(document: Any) -> None:
    """Validate a decoded declaration document against the bundled schema.

    Raises DeclarationFormatError naming the offending location.
    """
    try:
        _get_validator().validate(document)
    except ValidationError as e:
        location = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise DeclarationFormatError(f"schema: {e.message} (at {location})") from e


def _type(text: str, where: str):
    try:
        return parse_type(text)
    except TypeSyntaxError as e:
        raise DeclarationFormatError(f"{where}: {e}") from e


def _params(raw: list[dict]) -> tuple[Param, ...]:
    return tuple(Param(p["name"], _type(p["type"], f"parameter {p['name']}")) for p in raw)


def _function(raw: dict) -> ForeignFunction:
    ret = raw.get("ret")
    return ForeignFunction(
        name=raw["name"],
        params=_params(raw.get("params", [])),
        ret=_type(ret, f"return of {raw['name']}") if ret is not None else None,
        cpp_name=raw.get("cpp_name"),
    )


def declaration_from_dict(raw: dict) -> Declaration:
    kind = raw["kind"]
    if kind == "mod":
        items = raw.get("items")
        return ModDecl(raw["name"], tuple(declaration_from_dict(i) for i in items) if items is not None else None)
    if kind == "foreign_mod":
        return ForeignModDecl(tuple(_function(f) for f in raw.get("functions", [])), raw.get("abi", "C"))
    if kind == "struct":
        fields = tuple(
            Field(f["name"], _type(f["type"], f"field {raw['name']}.{f['name']}"))
            for f in raw.get("fields", [])
        )
        return StructDecl(raw["name"], fields, tuple(raw.get("derives", [])))
    if kind == "enum":
        variants = tuple(
            EnumVariant(v["name"], str(v["value"]) if "value" in v else None)
            for v in raw.get("variants", [])
        )
        return EnumDecl(raw["name"], variants, raw.get("repr"))
    if kind == "impl":
        methods = tuple(ImplMethod(m["name"], m["foreign_name"]) for m in raw.get("methods", []))
        return ImplDecl(raw["self_ty"], methods)
    if kind == "use":
        return UseDecl.from_path(raw["path"], raw.get("allow_unused", True))
    if kind == "const":
        return ConstDecl(raw["name"], _type(raw["type"], f"const {raw['name']}"), str(raw["value"]))
    if kind == "type":
        return TypeAliasDecl(raw["name"], _type(raw["type"], f"type alias {raw['name']}"))
    payload = {k: v for k, v in raw.items() if k != "kind"}
    return UnsupportedDecl(kind, payload)


def load_declarations_from_dict(document: Any) -> list[Declaration]:
    validate_document(document)
    return [declaration_from_dict(item) for item in document["items"]]


def _read_document(path: str) -> Any:
    text = utils.read_file(path)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise DeclarationFormatError(f"{path} is not valid JSON: {e}") from e


def validate_file(path: str) -> None:
    validate_document(_read_document(path))


def load_declarations(path: str) -> list[Declaration]:
    """Read a JSON declaration file and build the declaration tree."""
    items = load_declarations_from_dict(_read_document(path))
    logger.debug("Loaded %d top-level declarations from %s", len(items), Path(path).name)
    return items
