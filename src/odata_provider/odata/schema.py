# src/odata_provider/odata/schema.py

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import logging

from lxml import etree

from .errors import ConfigurationError
from .inflection import pluralize

logger = logging.getLogger(__name__)


# ------------------------------------------------------------
# Declared property types -> EDM type names
# ------------------------------------------------------------

_EDM_TYPES_BY_NAME = {
    "string": "Edm.String",
    "str": "Edm.String",
    "text": "Edm.String",
    "int": "Edm.Int32",
    "integer": "Edm.Int32",
    "int32": "Edm.Int32",
    "int64": "Edm.Int64",
    "long": "Edm.Int64",
    "bigint": "Edm.Int64",
    "float": "Edm.Double",
    "double": "Edm.Double",
    "decimal": "Edm.Decimal",
    "bool": "Edm.Boolean",
    "boolean": "Edm.Boolean",
    "datetime": "Edm.DateTime",
    "timestamp": "Edm.DateTime",
    "date": "Edm.DateTime",
    "time": "Edm.Time",
    "guid": "Edm.Guid",
    "uuid": "Edm.Guid",
    "binary": "Edm.Binary",
    "bytes": "Edm.Binary",
}

# bool before int: bool is an int subclass
_EDM_TYPES_BY_PYTHON_TYPE = (
    (bool, "Edm.Boolean"),
    (int, "Edm.Int32"),
    (float, "Edm.Double"),
    (Decimal, "Edm.Decimal"),
    (datetime, "Edm.DateTime"),
    (date, "Edm.DateTime"),
    (time, "Edm.Time"),
    (bytes, "Edm.Binary"),
    (str, "Edm.String"),
)


def edm_type_name(declared: Any) -> str:
    """
    Map a declared property type onto an EDM primitive type name.

    Accepts python types, short names ("int", "datetime") and literal
    "Edm.*" names. Anything unrecognised is advertised as Edm.String.
    """
    if declared is None:
        return "Edm.String"
    if isinstance(declared, type):
        for py_type, edm in _EDM_TYPES_BY_PYTHON_TYPE:
            if issubclass(declared, py_type):
                return edm
        return "Edm.String"
    text = str(declared).strip()
    if text.startswith("Edm."):
        return text
    return _EDM_TYPES_BY_NAME.get(text.lower(), "Edm.String")


def _default_accessor(name: str) -> Callable[[Any], Any]:
    def get(entity: Any) -> Any:
        if isinstance(entity, Mapping):
            return entity.get(name)
        return getattr(entity, name)

    get.__name__ = f"get_{name}"
    return get


def _check_xml_name(name: str, what: str) -> None:
    # names become element names in the metadata, feed and xml documents
    try:
        etree.QName(name)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{what} {name!r} is not a valid XML name")


# ------------------------------------------------------------
# Schema declarations
# ------------------------------------------------------------

@dataclass(frozen=True)
class Property:
    name: str
    type: Any = None
    getter: Optional[Callable[[Any], Any]] = field(default=None, compare=False)

    @property
    def edm_type(self) -> str:
        return edm_type_name(self.type)


@dataclass(frozen=True, eq=False)
class EntityType:
    """
    Schema-level description of one kind of resource.

    Declared once at startup and shared read-only by every request. The
    accessor table maps each property name to its getter; it is built here
    so that executors and renderers never reach into entities reflectively.
    """

    name: str
    keys: Tuple[str, ...]
    properties: Tuple[Property, ...]
    query_executor: Any = None
    entity_source: Optional[Callable[[], Sequence[Any]]] = None
    accessors: Mapping[str, Callable[[Any], Any]] = field(init=False, repr=False)

    def __init__(
        self,
        name: str,
        keys: Iterable[str] = (),
        properties: Iterable[Any] = (),
        query_executor: Any = None,
        entity_source: Optional[Callable[[], Sequence[Any]]] = None,
    ):
        if not name:
            raise ConfigurationError("Entity type requires a name")
        _check_xml_name(name, "Entity type")

        props: List[Property] = []
        for p in properties:
            if isinstance(p, Property):
                props.append(p)
            elif isinstance(p, str):
                props.append(Property(p))
            else:
                # (name, type) pairs
                props.append(Property(*p))

        accessors: Dict[str, Callable[[Any], Any]] = {}
        for p in props:
            if p.name in accessors:
                raise ConfigurationError(
                    f"Entity type '{name}' declares property '{p.name}' twice"
                )
            _check_xml_name(p.name, f"Entity type '{name}' property")
            accessors[p.name] = p.getter or _default_accessor(p.name)

        key_names = (keys,) if isinstance(keys, str) else tuple(keys)
        if not key_names:
            raise ConfigurationError(f"Entity type '{name}' declares no key")
        for key in key_names:
            _check_xml_name(key, f"Entity type '{name}' key")
            # keys may be left out of the property list; they still need a getter
            accessors.setdefault(key, _default_accessor(key))

        object.__setattr__(self, "name", name)
        object.__setattr__(self, "keys", key_names)
        object.__setattr__(self, "properties", tuple(props))
        object.__setattr__(self, "query_executor", query_executor)
        object.__setattr__(self, "entity_source", entity_source)
        object.__setattr__(self, "accessors", MappingProxyType(accessors))

        logger.debug(
            "Declared entity type %s keys=%s properties=%s",
            name,
            key_names,
            [p.name for p in props],
        )

    @property
    def collection_name(self) -> str:
        return pluralize(self.name)

    @property
    def property_names(self) -> List[str]:
        return [p.name for p in self.properties]

    @property
    def key_properties(self) -> List[Property]:
        by_name = {p.name: p for p in self.properties}
        return [by_name.get(k, Property(k)) for k in self.keys]

    def all_entities(self) -> Sequence[Any]:
        if self.entity_source is None:
            raise ConfigurationError(
                f"Entity type '{self.name}' has no entity source"
            )
        return self.entity_source()

    def value_of(self, entity: Any, property_name: str) -> Any:
        return self.accessors[property_name](entity)

    def key_value(self, entity: Any) -> Any:
        return self.value_of(entity, self.keys[0])

    def to_dict(self, entity: Any) -> Dict[str, Any]:
        return {p.name: self.accessors[p.name](entity) for p in self.properties}
