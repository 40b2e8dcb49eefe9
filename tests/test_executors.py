from dataclasses import dataclass
from typing import ClassVar

import duckdb
import pytest

from odata_provider.odata import (
    DuckDBQueryExecutor,
    EntityType,
    InMemoryQueryExecutor,
    InvalidQueryOptionError,
    KeyQueryOption,
    ODataConfig,
    Property,
    Provider,
    QueryOption,
    SkipQueryOption,
    TopQueryOption,
    UnsupportedQueryOptionError,
)
from odata_provider.odata.executors import register_source

from conftest import DOGS, make_dog_type


def names(result):
    return [d.name for d in result]


def test_collection_returns_everything_in_order(provider):
    assert names(provider.execute("Dogs")) == ["Rex", "Fido", "Spot"]


def test_key_returns_single_entity(provider):
    dog = provider.execute("Dogs(2)")

    assert not isinstance(dog, list)
    assert dog.name == "Fido"


def test_unknown_key_returns_none(provider):
    assert provider.execute("Dogs(42)") is None


def test_top(provider):
    assert names(provider.execute("Dogs?$top=1")) == ["Rex"]
    assert names(provider.execute("Dogs?$top=10")) == ["Rex", "Fido", "Spot"]


def test_top_zero_is_no_result(provider):
    assert provider.execute("Dogs?$top=0") is None


def test_negative_top_shrinks_from_the_end(provider):
    assert names(provider.execute("Dogs?$top=-1")) == ["Rex", "Fido"]


def test_skip(provider):
    assert names(provider.execute("Dogs?$skip=1")) == ["Fido", "Spot"]
    assert provider.execute("Dogs?$skip=3") is None
    assert provider.execute("Dogs?$skip=5") is None


def test_negative_skip_removes_nothing(provider):
    assert names(provider.execute("Dogs?$skip=-2")) == ["Rex", "Fido", "Spot"]


def test_skip_applies_before_top_by_default(provider):
    assert names(provider.execute("Dogs?$top=2&$skip=1")) == ["Fido", "Spot"]


def test_top_applies_before_skip_when_registered_first(dog_type):
    config = ODataConfig().with_option_types(KeyQueryOption, TopQueryOption, SkipQueryOption)
    provider = Provider(dog_type, config=config)

    assert names(provider.execute("Dogs?$skip=1&$top=2")) == ["Fido"]


def test_key_combined_with_skip(provider):
    assert provider.execute("Dogs(1)?$skip=1") is None
    assert provider.execute("Dogs(1)?$top=1").name == "Rex"


def test_key_compares_first_key_only_as_text():
    pairs = EntityType("Pair", keys=["a", "b"], properties=["a", "b"],
                       entity_source=lambda: [{"a": 1, "b": "x"}, {"a": 2, "b": "y"}])
    provider = Provider(pairs)

    assert provider.execute("Pairs(2)") == {"a": 2, "b": "y"}


def test_injected_all_entities_callback():
    seen = []

    def all_entities(entity_type):
        seen.append(entity_type.name)
        return DOGS[:2]

    dog_type = make_dog_type(entity_source=None, query_executor=InMemoryQueryExecutor(all_entities))
    provider = Provider(dog_type)

    assert names(provider.execute("Dogs")) == ["Rex", "Fido"]
    assert seen == ["Dog"]


def test_non_integer_top_is_invalid(provider):
    with pytest.raises(InvalidQueryOptionError) as exc_info:
        provider.execute("Dogs?$top=lots")
    assert "$top" in str(exc_info.value)


@dataclass(frozen=True)
class InlineCountQueryOption(QueryOption):
    name: ClassVar[str] = "$inlinecount"

    @classmethod
    def recognize(cls, query):
        value = query.query_strings.get("$inlinecount")
        return cls(value) if value is not None else None


def test_unsupported_option_fails_naming_the_option(dog_type):
    config = ODataConfig().with_option_types(
        KeyQueryOption, SkipQueryOption, TopQueryOption, InlineCountQueryOption
    )
    provider = Provider(dog_type, config=config)

    with pytest.raises(UnsupportedQueryOptionError) as exc_info:
        provider.execute("Dogs?$inlinecount=allpages")

    assert "InlineCountQueryOption" in str(exc_info.value)
    assert "InMemoryQueryExecutor" in str(exc_info.value)


# ------------------------------------------------------------------
# DuckDB
# ------------------------------------------------------------------

@pytest.fixture
def duck_provider():
    conn = duckdb.connect(database=":memory:")
    conn.execute("CREATE TABLE Dogs (id INTEGER, name VARCHAR, breed VARCHAR)")
    conn.execute(
        "INSERT INTO Dogs VALUES (1, 'Rex', 'Boxer'), (2, 'Fido', 'Beagle'), (3, 'Spot', 'Dalmatian')"
    )
    dog_type = EntityType(
        "Dog",
        keys=["id"],
        properties=[Property("id", int), Property("name", str), Property("breed", str)],
        query_executor=DuckDBQueryExecutor(connection=conn),
    )
    yield Provider(dog_type)
    conn.close()


def test_duckdb_collection(duck_provider):
    rows = duck_provider.execute("Dogs")

    assert [r["name"] for r in rows] == ["Rex", "Fido", "Spot"]
    assert rows[0] == {"id": 1, "name": "Rex", "breed": "Boxer"}


def test_duckdb_key(duck_provider):
    assert duck_provider.execute("Dogs(2)") == {"id": 2, "name": "Fido", "breed": "Beagle"}
    assert duck_provider.execute("Dogs(9)") is None


def test_duckdb_skip_then_top(duck_provider):
    rows = duck_provider.execute("Dogs?$top=1&$skip=1")

    assert [r["name"] for r in rows] == ["Fido"]
    assert duck_provider.execute("Dogs?$skip=5") is None
    assert duck_provider.execute("Dogs?$top=0") is None


def test_duckdb_sql_follows_option_order(duck_provider):
    query = duck_provider.build_query("Dogs(1)?$top=1&$skip=0")
    executor = duck_provider.executor_for(query.entity_type)

    sql, params = executor.build_sql(query)

    assert sql.index("WHERE") < sql.index("OFFSET") < sql.index("LIMIT")
    assert params == ["1"]


def test_register_source_over_csv(tmp_path):
    csv_path = tmp_path / "breeds.csv"
    csv_path.write_text("id,name\n1,Boxer\n2,Beagle\n", encoding="utf-8")
    conn = duckdb.connect(database=":memory:")

    register_source("breed_view", csv_path, connection=conn)
    breed_type = EntityType(
        "Breed",
        keys=["id"],
        properties=["id", "name"],
        query_executor=DuckDBQueryExecutor(relation="breed_view", connection=conn),
    )
    provider = Provider(breed_type)

    assert [r["name"] for r in provider.execute("Breeds")] == ["Boxer", "Beagle"]


def test_register_source_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        register_source("nothing", tmp_path / "missing.parquet")
