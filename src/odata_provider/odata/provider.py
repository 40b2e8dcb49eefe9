# src/odata_provider/odata/provider.py

from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlsplit
import logging
import re

from . import documents
from .config import ODataConfig
from .errors import ConfigurationError, MalformedRequestError
from .executors import InMemoryQueryExecutor, QueryExecutor
from .inflection import singularize
from .query import Query
from .schema import EntityType

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost/odata/"

_UNSAFE_PATH = re.compile(r"[\s\x00-\x1f\x7f]")


class Provider:
    """
    Owns the entity type registry and the service configuration.

    Turns raw resource paths into Queries, hands them to the executor of the
    addressed entity type and renders the results. Nothing about the HTTP
    transport is visible past this class: callers pass a root-relative path
    (with query string) and receive bytes.
    """

    def __init__(
        self,
        *entity_types: EntityType,
        config: Optional[ODataConfig] = None,
        base_url: str = DEFAULT_BASE_URL,
    ):
        self.config = config or ODataConfig()
        self.base_url = base_url
        self._default_executor = self.config.create_default_executor()

        by_name: Dict[str, EntityType] = {}
        for entity_type in entity_types:
            if entity_type.name in by_name:
                raise ConfigurationError(
                    f"Entity type '{entity_type.name}' registered twice"
                )
            by_name[entity_type.name] = entity_type
            self._validate(entity_type)

        self._entity_types: Tuple[EntityType, ...] = tuple(entity_types)
        self._by_name = by_name
        self._by_collection = {t.collection_name: t for t in self._entity_types}

        logger.info(
            "Provider ready with %d entity types: %s",
            len(self._entity_types),
            ", ".join(self.entity_type_names) or "-",
        )

    def _validate(self, entity_type: EntityType) -> None:
        executor = self.executor_for(entity_type)
        if not isinstance(executor, QueryExecutor):
            raise ConfigurationError(
                f"Entity type '{entity_type.name}' has an executor that is not "
                f"a QueryExecutor: {executor!r}"
            )
        executor.validate(entity_type)
        if (
            isinstance(executor, InMemoryQueryExecutor)
            and executor.all_entities_callback is None
            and entity_type.entity_source is None
        ):
            raise ConfigurationError(
                f"Entity type '{entity_type.name}' uses the in-memory executor "
                f"but has no entity source"
            )

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    @property
    def entity_types(self) -> Tuple[EntityType, ...]:
        return self._entity_types

    @property
    def entity_type_names(self) -> List[str]:
        return [t.name for t in self._entity_types]

    def get_entity_type(self, name: str) -> Optional[EntityType]:
        return self._by_name.get(name)

    def get_collection(self, collection_name: str) -> Optional[EntityType]:
        """
        Entity type addressed by a collection segment. Registered collection
        names win; otherwise the segment is singularized and looked up by
        type name.
        """
        entity_type = self._by_collection.get(collection_name)
        if entity_type is not None:
            return entity_type
        return self.get_entity_type(singularize(collection_name))

    def is_collection_name(self, segment: str) -> bool:
        return segment in self._by_collection

    def executor_for(self, entity_type: EntityType) -> Any:
        if entity_type.query_executor is not None:
            return entity_type.query_executor
        return self._default_executor

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def build_query(self, resource_path: str) -> Query:
        return Query(provider=self, uri=self._uri_for(resource_path))

    def execute_query(self, query: Query) -> Any:
        entity_type = query.entity_type
        if entity_type is None:
            logger.warning("No entity type for collection %r", query.collection_name)
            return None
        return self.executor_for(entity_type).execute(query)

    def execute(self, resource_path: str) -> Any:
        return self.execute_query(self.build_query(resource_path))

    def _uri_for(self, resource_path: str):
        resource_path = resource_path.strip()
        if resource_path.startswith("/"):
            resource_path = resource_path[1:]

        if _UNSAFE_PATH.search(resource_path):
            raise MalformedRequestError(f"Malformed resource path: {resource_path!r}")
        try:
            return urlsplit(resource_path)
        except ValueError as e:
            raise MalformedRequestError(f"Malformed resource path: {resource_path!r} ({e})")

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def root_xml(self, base_url: Optional[str] = None) -> bytes:
        return documents.service_document(self.entity_types, base_url or self.base_url)

    def metadata_xml(self) -> bytes:
        return documents.metadata_document(self.entity_types, self.config.schema_namespace)

    def xml_for(self, query: Query, result: Any, base_url: Optional[str] = None) -> bytes:
        return documents.feed_or_entry_document(query, result, base_url or self.base_url)

