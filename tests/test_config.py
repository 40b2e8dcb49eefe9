import duckdb
import pytest

from odata_provider.odata import (
    ConfigurationError,
    DuckDBQueryExecutor,
    EntityType,
    InMemoryQueryExecutor,
    ODataConfig,
    Provider,
    QueryExecutor,
)

from conftest import make_dog_type


class HalfDoneExecutor(QueryExecutor):
    pass


class EchoExecutor(QueryExecutor):
    def __init__(self, reply=None):
        self.reply = reply

    def execute(self, query):
        return self.reply


def test_defaults():
    config = ODataConfig()

    assert [t.__name__ for t in config.option_types] == [
        "KeyQueryOption",
        "SkipQueryOption",
        "TopQueryOption",
    ]
    assert config.executor_types["memory"] is InMemoryQueryExecutor
    assert config.executor_types["duckdb"] is DuckDBQueryExecutor
    assert config.default_executor_type is InMemoryQueryExecutor


def test_registries_cannot_be_mutated():
    config = ODataConfig()

    with pytest.raises(TypeError):
        config.executor_types["echo"] = EchoExecutor
    with pytest.raises(AttributeError):
        config.option_types = ()


def test_create_named_executor():
    config = ODataConfig().with_executor_types(echo=EchoExecutor)

    executor = config.create_executor("echo", reply="woof")

    assert isinstance(executor, EchoExecutor)
    assert executor.reply == "woof"
    assert "echo" not in ODataConfig().executor_types


def test_unknown_executor_name():
    with pytest.raises(ConfigurationError, match="Unknown query executor 'redis'"):
        ODataConfig().create_executor("redis")


def test_unimplemented_executor_fails_at_configuration():
    with pytest.raises(ConfigurationError, match="HalfDoneExecutor"):
        ODataConfig().with_executor_types(half=HalfDoneExecutor)
    with pytest.raises(ConfigurationError):
        ODataConfig(default_executor_type=HalfDoneExecutor)
    with pytest.raises(TypeError):
        HalfDoneExecutor()


def test_not_an_option_type():
    with pytest.raises(ConfigurationError):
        ODataConfig(option_types=(str,))


def test_provider_rejects_duplicate_entity_types():
    with pytest.raises(ConfigurationError, match="registered twice"):
        Provider(make_dog_type(), make_dog_type())


def test_provider_rejects_non_executor():
    with pytest.raises(ConfigurationError):
        Provider(make_dog_type(query_executor=object()))


def test_entity_type_requires_a_key():
    with pytest.raises(ConfigurationError):
        EntityType("Ghost", keys=[], properties=["id"], entity_source=list)


def test_custom_executor_per_entity_type():
    dog_type = make_dog_type(entity_source=None, query_executor=EchoExecutor(reply=["woof"]))
    provider = Provider(dog_type)

    assert provider.execute("Dogs") == ["woof"]


def test_default_executor_is_shared():
    provider = Provider(make_dog_type())
    dog_type = provider.get_entity_type("Dog")

    assert provider.executor_for(dog_type) is provider.executor_for(dog_type)
    assert isinstance(provider.executor_for(dog_type), InMemoryQueryExecutor)


@pytest.mark.parametrize(
    "name, properties, keys",
    [
        ("Person", ["id", "first name"], ["id"]),
        ("Person", ["id", "1st"], ["id"]),
        ("Person", ["id"], ["person id"]),
        ("Dog Tag", ["id"], ["id"]),
    ],
)
def test_names_must_be_xml_names(name, properties, keys):
    with pytest.raises(ConfigurationError, match="not a valid XML name"):
        EntityType(name, keys=keys, properties=properties, entity_source=list)


def test_duckdb_executor_checks_relation_at_registration():
    conn = duckdb.connect(database=":memory:")
    conn.execute("CREATE TABLE Dogs (id INTEGER, name VARCHAR)")

    with pytest.raises(ConfigurationError, match="relation 'Kennels'"):
        Provider(make_dog_type(query_executor=DuckDBQueryExecutor(relation="Kennels", connection=conn)))
    # declared "breed" column is missing from the table
    with pytest.raises(ConfigurationError, match="relation 'Dogs'"):
        Provider(make_dog_type(query_executor=DuckDBQueryExecutor(connection=conn)))

    conn.close()
