# src/odata_provider/odata/executors.py

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Sequence, Tuple
import logging
import threading

import duckdb

from .errors import ConfigurationError, InvalidQueryOptionError, UnsupportedQueryOptionError
from .options import KeyQueryOption, QueryOption, SkipQueryOption, TopQueryOption

if TYPE_CHECKING:
    from .query import Query
    from .schema import EntityType

logger = logging.getLogger(__name__)

AllEntities = Callable[["EntityType"], Sequence[Any]]


def option_int(option: QueryOption) -> int:
    try:
        return int(option.value)
    except (TypeError, ValueError):
        raise InvalidQueryOptionError(option, "expected an integer")


class QueryExecutor(ABC):
    """
    Resolves a Query against some data source.

    `execute` returns a single entity when the query addresses one entry,
    a list when it addresses a collection, and None when nothing matched.
    """

    @abstractmethod
    def execute(self, query: "Query") -> Any:
        ...

    def validate(self, entity_type: "EntityType") -> None:
        """Called once per entity type at registration; raise ConfigurationError to refuse it."""

    def _shape(self, query: "Query", entities: List[Any]) -> Any:
        if not entities:
            return None
        return entities if query.returns_collection else entities[0]


# ------------------------------------------------------------
# In-memory sequences
# ------------------------------------------------------------

class InMemoryQueryExecutor(QueryExecutor):
    """
    Works with a plain sequence of entity instances (objects or mappings).

    The sequence comes from `all_entities(entity_type)` when given, from the
    entity type's own source otherwise.
    """

    def __init__(self, all_entities: Optional[AllEntities] = None):
        self.all_entities_callback = all_entities

    def all_entities(self, query: "Query") -> List[Any]:
        if self.all_entities_callback is not None:
            return list(self.all_entities_callback(query.entity_type))
        return list(query.entity_type.all_entities())

    def execute(self, query: "Query") -> Any:
        entities = self.all_entities(query)
        for option in query.options:
            entities = self.filter_with_option(entities, option, query)
        logger.debug("InMemoryQueryExecutor %r -> %d entities", query, len(entities))
        return self._shape(query, entities)

    def filter_with_option(
        self, entities: List[Any], option: QueryOption, query: "Query"
    ) -> List[Any]:
        if isinstance(option, KeyQueryOption):
            entity_type = query.entity_type
            wanted = str(option.value)
            return [e for e in entities if str(entity_type.key_value(e)) == wanted]
        if isinstance(option, TopQueryOption):
            return entities[: option_int(option)]
        if isinstance(option, SkipQueryOption):
            return entities[max(option_int(option), 0):]
        raise UnsupportedQueryOptionError(option, self)


# ------------------------------------------------------------
# DuckDB: single in-process connection & lock
# ------------------------------------------------------------

_DUCKDB_CONN = duckdb.connect(database=":memory:")
_DUCKDB_LOCK = threading.Lock()

_READERS = {
    ".parquet": "read_parquet",
    ".csv": "read_csv_auto",
    ".tsv": "read_csv_auto",
    ".json": "read_json_auto",
    ".ndjson": "read_json_auto",
}


def get_duckdb_connection():
    return _DUCKDB_CONN, _DUCKDB_LOCK


def _quote_ident(name: str) -> str:
    return '"' + str(name).replace('"', '""') + '"'


def register_source(relation: str, path: Path, connection=None, lock=None) -> str:
    """
    Create (or replace) a view named `relation` over a parquet, CSV or JSON
    file, using the reader matching the file suffix.
    """
    conn = connection if connection is not None else _DUCKDB_CONN
    guard = lock if lock is not None else _DUCKDB_LOCK

    full_path = Path(path).resolve()
    if not full_path.exists():
        raise FileNotFoundError(f"Data file not found for '{relation}': {full_path}")

    reader = _READERS.get(full_path.suffix.lower())
    if reader is None:
        raise ValueError(f"Unsupported data file type: {full_path.suffix}")

    literal = str(full_path).replace("'", "''")
    sql = f"CREATE OR REPLACE VIEW {_quote_ident(relation)} AS SELECT * FROM {reader}('{literal}')"
    logger.info("Creating view for %s: %s", relation, sql)
    with guard:
        conn.execute(sql)
    return relation


class DuckDBQueryExecutor(QueryExecutor):
    """
    Resolves queries with SQL against a DuckDB table or view.

    Each option wraps the SQL built so far in a sub-select, so options are
    applied in the same order the in-memory executor applies them.
    """

    def __init__(self, relation: Optional[str] = None, connection=None, lock=None):
        self.relation = relation
        self.connection = connection if connection is not None else _DUCKDB_CONN
        self.lock = lock if lock is not None else (
            _DUCKDB_LOCK if connection is None else threading.Lock()
        )

    def relation_for(self, entity_type: "EntityType") -> str:
        return self.relation or entity_type.collection_name

    def _select(self, entity_type: "EntityType") -> str:
        columns = ", ".join(_quote_ident(n) for n in entity_type.property_names) or "*"
        return f"SELECT {columns} FROM {_quote_ident(self.relation_for(entity_type))}"

    def validate(self, entity_type: "EntityType") -> None:
        relation = self.relation_for(entity_type)
        with self.lock:
            try:
                self.connection.execute(f"{self._select(entity_type)} LIMIT 0")
            except duckdb.Error as e:
                raise ConfigurationError(
                    f"Entity type '{entity_type.name}': relation '{relation}' is not usable: {e}"
                ) from e

    def build_sql(self, query: "Query") -> Tuple[str, List[object]]:
        entity_type = query.entity_type
        sql = self._select(entity_type)
        params: List[object] = []

        for option in query.options:
            if isinstance(option, KeyQueryOption):
                key = _quote_ident(entity_type.keys[0])
                sql = f"SELECT * FROM ({sql}) AS q WHERE CAST({key} AS VARCHAR) = ?"
                params.append(str(option.value))
            elif isinstance(option, TopQueryOption):
                sql = f"SELECT * FROM ({sql}) AS q LIMIT {max(option_int(option), 0)}"
            elif isinstance(option, SkipQueryOption):
                sql = f"SELECT * FROM ({sql}) AS q OFFSET {max(option_int(option), 0)}"
            else:
                raise UnsupportedQueryOptionError(option, self)

        return sql, params

    def execute(self, query: "Query") -> Any:
        sql, params = self.build_sql(query)
        logger.debug("DuckDBQueryExecutor SQL: %s params=%r", sql, params)

        with self.lock:
            cur = self.connection.execute(sql, params)
            rows = cur.fetchall()
            columns = [d[0] for d in cur.description]

        entities = [{col: val for col, val in zip(columns, row)} for row in rows]
        return self._shape(query, entities)
