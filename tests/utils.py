import json

import pytest

from bindbridge.conversion import TypeDatabase
from bindbridge.utils import load_default_config


def write_declarations(path, items):
    with open(path, "w") as f:
        json.dump({"items": items}, f)
    return str(path)


def type_database(**kwargs):
    """A TypeDatabase with the default known types plus any overrides."""
    config = load_default_config()
    config["types"].update(kwargs)
    return TypeDatabase.from_config(config)


@pytest.fixture
def config():
    return load_default_config()
