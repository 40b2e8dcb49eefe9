import pytest

from odata_provider.odata import EntityType, Property, Provider


class Dog:
    def __init__(self, id, name, breed=None):
        self.id = id
        self.name = name
        self.breed = breed

    def __repr__(self):
        return f"Dog({self.id!r}, {self.name!r})"


DOGS = [
    Dog(1, "Rex", "Boxer"),
    Dog(2, "Fido", "Beagle"),
    Dog(3, "Spot", "Dalmatian"),
]


def make_dog_type(**kwargs):
    kwargs.setdefault("entity_source", lambda: list(DOGS))
    return EntityType(
        "Dog",
        keys=["id"],
        properties=[Property("id", int), Property("name", str), Property("breed", str)],
        **kwargs,
    )


@pytest.fixture
def dogs():
    return list(DOGS)


@pytest.fixture
def dog_type():
    return make_dog_type()


@pytest.fixture
def provider(dog_type):
    return Provider(dog_type, base_url="http://example.org/odata/")
