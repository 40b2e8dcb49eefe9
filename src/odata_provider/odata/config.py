# src/odata_provider/odata/config.py

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping, Tuple, Type
import logging

from .errors import ConfigurationError
from .executors import DuckDBQueryExecutor, InMemoryQueryExecutor, QueryExecutor
from .options import DEFAULT_OPTION_TYPES, QueryOption

logger = logging.getLogger(__name__)

DEFAULT_EXECUTOR_TYPES = {
    "memory": InMemoryQueryExecutor,
    "duckdb": DuckDBQueryExecutor,
}


@dataclass(frozen=True)
class ODataConfig:
    """
    Process-wide registrations, built once at startup and handed to the
    Provider.

    option_types:          recognised in this order, and applied by the
                           executors in this order.
    executor_types:        executors selectable by name from declarations.
    default_executor_type: used for entity types that name no executor.
    schema_namespace:      Namespace of the EDM Schema in $metadata.
    """

    option_types: Tuple[Type[QueryOption], ...] = DEFAULT_OPTION_TYPES
    executor_types: Mapping[str, Type[QueryExecutor]] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_EXECUTOR_TYPES))
    )
    default_executor_type: Type[QueryExecutor] = InMemoryQueryExecutor
    schema_namespace: str = "ODataService"

    def __post_init__(self):
        object.__setattr__(self, "option_types", tuple(self.option_types))
        object.__setattr__(
            self, "executor_types", MappingProxyType(dict(self.executor_types))
        )

        for option_type in self.option_types:
            if not (isinstance(option_type, type) and issubclass(option_type, QueryOption)):
                raise ConfigurationError(f"Not a query option type: {option_type!r}")

        for name, executor_type in self.executor_types.items():
            _check_executor_type(executor_type, name)
        _check_executor_type(self.default_executor_type, "default")

    def with_option_types(self, *option_types: Type[QueryOption]) -> "ODataConfig":
        return replace(self, option_types=option_types)

    def with_executor_types(self, **executor_types: Type[QueryExecutor]) -> "ODataConfig":
        merged = dict(self.executor_types)
        merged.update(executor_types)
        return replace(self, executor_types=merged)

    def create_executor(self, name: str, *args: Any, **kwargs: Any) -> QueryExecutor:
        executor_type = self.executor_types.get(name)
        if executor_type is None:
            raise ConfigurationError(
                f"Unknown query executor '{name}' "
                f"(registered: {', '.join(sorted(self.executor_types)) or 'none'})"
            )
        logger.debug("Creating %s executor args=%r kwargs=%r", name, args, kwargs)
        return executor_type(*args, **kwargs)

    def create_default_executor(self) -> QueryExecutor:
        return self.default_executor_type()


def _check_executor_type(executor_type: Any, name: str) -> None:
    if not (isinstance(executor_type, type) and issubclass(executor_type, QueryExecutor)):
        raise ConfigurationError(
            f"Executor '{name}' is not a QueryExecutor subclass: {executor_type!r}"
        )
    if getattr(executor_type, "__abstractmethods__", None):
        raise ConfigurationError(
            f"You must implement execute(query) in your QueryExecutor class "
            f"({executor_type.__name__})"
        )
