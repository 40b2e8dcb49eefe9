"""
odata package

Entity schema, query parsing, executors and document rendering for the
OData provider.
"""

from .config import ODataConfig
from .errors import (
    ConfigurationError,
    InvalidQueryOptionError,
    MalformedRequestError,
    ODataError,
    UnsupportedQueryOptionError,
)
from .executors import DuckDBQueryExecutor, InMemoryQueryExecutor, QueryExecutor
from .options import KeyQueryOption, QueryOption, SkipQueryOption, TopQueryOption
from .provider import Provider
from .query import Query
from .registry import load_provider
from .router import build_router
from .schema import EntityType, Property

__all__ = [
    "ConfigurationError",
    "DuckDBQueryExecutor",
    "EntityType",
    "InMemoryQueryExecutor",
    "InvalidQueryOptionError",
    "KeyQueryOption",
    "MalformedRequestError",
    "ODataConfig",
    "ODataError",
    "Property",
    "Provider",
    "Query",
    "QueryExecutor",
    "QueryOption",
    "SkipQueryOption",
    "TopQueryOption",
    "UnsupportedQueryOptionError",
    "build_router",
    "load_provider",
]
