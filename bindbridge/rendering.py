from dataclasses import fields
from functools import lru_cache
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader

_TEMPLATE_DIR = Path(__file__).with_name("templates")


@lru_cache(maxsize=None)
def _get_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(_TEMPLATE_DIR),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def template_args(fragment: Any) -> dict[str, Any]:
    return {f.name: getattr(fragment, f.name) for f in fields(fragment)}


def render_fragment(fragment: Any) -> str:
    """Render a generated-code fragment to Rust source text.

    Every fragment dataclass names its template through ``template_name``.
    """
    template = _get_env().get_template(fragment.template_name)
    return template.render(**template_args(fragment)).strip()
