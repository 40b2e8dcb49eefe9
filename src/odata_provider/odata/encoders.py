# src/odata_provider/odata/encoders.py

from datetime import date, datetime, time
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Tuple
import json

import yaml
from lxml import etree

from .documents import plain_string

if TYPE_CHECKING:
    from .query import Query

# (body, media type)
Encoded = Tuple[bytes, str]


def _records(query: "Query", result: Any) -> Any:
    entity_type = query.entity_type
    if query.returns_collection:
        return [entity_type.to_dict(e) for e in result]
    return entity_type.to_dict(result)


def _yaml_safe(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _yaml_safe(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_yaml_safe(v) for v in value]
    if value is None or isinstance(value, (str, int, float, bool, date, datetime)):
        return value
    if isinstance(value, Decimal):
        return float(value)
    return str(value)


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return str(value)


def encode_json(query: "Query", result: Any) -> Encoded:
    body = json.dumps(_records(query, result), default=_json_default)
    return body.encode("utf-8"), "application/json"


def encode_yaml(query: "Query", result: Any) -> Encoded:
    body = yaml.safe_dump(_yaml_safe(_records(query, result)), sort_keys=False, allow_unicode=True)
    return body.encode("utf-8"), "text/plain"


def _element_for(parent, tag: str, record: Dict[str, Any]):
    element = etree.Element(tag) if parent is None else etree.SubElement(parent, tag)
    for name, value in record.items():
        etree.SubElement(element, name).text = plain_string(value)
    return element


def encode_xml(query: "Query", result: Any) -> Encoded:
    """
    Plain XML dump of the raw result, no OData envelope:
    <Dogs type="array"><Dog><id>1</id>...</Dog></Dogs> or a single <Dog>.
    """
    entity_type = query.entity_type
    records = _records(query, result)
    if query.returns_collection:
        root = etree.Element(entity_type.collection_name, type="array")
        for record in records:
            _element_for(root, entity_type.name, record)
    else:
        root = _element_for(None, entity_type.name, records)
    body = etree.tostring(root, encoding="utf-8", xml_declaration=True, pretty_print=True)
    return body, "application/xml"


ENCODERS: Dict[str, Callable[["Query", Any], Encoded]] = {
    "json": encode_json,
    "yaml": encode_yaml,
    "xml": encode_xml,
}


def encoder_for(fmt: Optional[str]) -> Optional[Callable[["Query", Any], Encoded]]:
    if not fmt:
        return None
    return ENCODERS.get(fmt.lower())
