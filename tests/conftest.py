"""Shared fixtures: a small zoo of types with variant containers."""

import pytest

from nominalcheck import NominalConnectionChecker, Workspace, load_hierarchy

ZOO = {
    # Random is unrelated to everything else.
    "Random": {},
    "Animal": {},
    "FlyingAnimal": {"fulfills": ["Animal"]},
    "Mammal": {"fulfills": ["Animal"]},
    "Reptile": {"fulfills": ["Animal"]},
    "Dog": {"fulfills": ["Mammal"]},
    "Cat": {"fulfills": ["Mammal"]},
    "Bat": {"fulfills": ["FlyingAnimal", "Mammal"]},
    "GetterList": {"params": [{"name": "A", "variance": "co"}]},
    "AdderList": {"params": [{"name": "A", "variance": "contra"}]},
    "List": {
        "fulfills": ["GetterList[A]", "AdderList[A]"],
        "params": [{"name": "A", "variance": "inv"}],
    },
    "Dict": {
        "params": [
            {"name": "K", "variance": "inv"},
            {"name": "V", "variance": "inv"},
        ],
    },
}


@pytest.fixture
def zoo():
    return load_hierarchy(ZOO)


@pytest.fixture
def checker():
    return NominalConnectionChecker(ZOO)


@pytest.fixture
def workspace(checker):
    return Workspace(checker)
