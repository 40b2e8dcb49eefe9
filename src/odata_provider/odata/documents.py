# src/odata_provider/odata/documents.py

"""
Tree builders for the OData documents the provider serves.

Each document shape has one function building its element tree with
lxml.etree, plus a serializer writing the XML declaration. Service and
metadata documents are declared iso-8859-1; feeds and entries utf-8.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Iterable, Optional
import logging
import re

from lxml import etree

if TYPE_CHECKING:
    from .query import Query
    from .schema import EntityType

logger = logging.getLogger(__name__)

XML_NS = "http://www.w3.org/XML/1998/namespace"
ATOM_NS = "http://www.w3.org/2005/Atom"
APP_NS = "http://www.w3.org/2007/app"
EDMX_NS = "http://schemas.microsoft.com/ado/2007/06/edmx"
EDM_NS = "http://schemas.microsoft.com/ado/2007/05/edm"
D_NS = "http://schemas.microsoft.com/ado/2007/08/dataservices"
M_NS = "http://schemas.microsoft.com/ado/2007/08/dataservices/metadata"
SCHEME = "http://schemas.microsoft.com/ado/2007/08/dataservices/scheme"

NAMESPACES = {
    "atom": ATOM_NS,
    "app": APP_NS,
    "edmx": EDMX_NS,
    "edm": EDM_NS,
    "d": D_NS,
    "m": M_NS,
}

SERVICE_ENCODING = "iso-8859-1"
FEED_ENCODING = "utf-8"


def _q(ns: str, tag: str) -> str:
    return f"{{{ns}}}{tag}"


def serialize(root, encoding: str) -> bytes:
    declaration = f'<?xml version="1.0" encoding="{encoding}" standalone="yes"?>\n'
    body = etree.tostring(root, encoding=encoding, xml_declaration=False, pretty_print=True)
    return declaration.encode(encoding) + body


# characters XML 1.0 cannot carry, even escaped
_XML_ILLEGAL = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def plain_string(value: Any) -> str:
    if value is None:
        return ""
    return _XML_ILLEGAL.sub("", str(value))


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


# ------------------------------------------------------------------
# Service document
# ------------------------------------------------------------------

def build_service_tree(entity_types: Iterable["EntityType"], base_url: str):
    service = etree.Element(_q(APP_NS, "service"), nsmap={None: APP_NS, "atom": ATOM_NS})
    service.set(_q(XML_NS, "base"), base_url)

    workspace = etree.SubElement(service, _q(APP_NS, "workspace"))
    etree.SubElement(workspace, _q(ATOM_NS, "title")).text = "Default"

    for entity_type in entity_types:
        collection = etree.SubElement(
            workspace, _q(APP_NS, "collection"), href=entity_type.collection_name
        )
        etree.SubElement(collection, _q(ATOM_NS, "title")).text = entity_type.collection_name

    return service


def service_document(entity_types: Iterable["EntityType"], base_url: str) -> bytes:
    return serialize(build_service_tree(entity_types, base_url), SERVICE_ENCODING)


# ------------------------------------------------------------------
# Metadata document (EDMX)
# ------------------------------------------------------------------

def build_metadata_tree(entity_types: Iterable["EntityType"], schema_namespace: str):
    entity_types = list(entity_types)

    edmx = etree.Element(_q(EDMX_NS, "Edmx"), nsmap={"edmx": EDMX_NS}, Version="1.0")
    data_services = etree.SubElement(
        edmx, _q(EDMX_NS, "DataServices"), nsmap={"m": M_NS}
    )
    data_services.set(_q(M_NS, "DataServiceVersion"), "2.0")

    schema = etree.SubElement(
        data_services,
        _q(EDM_NS, "Schema"),
        nsmap={None: EDM_NS, "d": D_NS, "m": M_NS},
        Namespace=schema_namespace,
    )

    for entity_type in entity_types:
        type_element = etree.SubElement(schema, _q(EDM_NS, "EntityType"), Name=entity_type.name)

        key_element = etree.SubElement(type_element, _q(EDM_NS, "Key"))
        for key in entity_type.keys:
            etree.SubElement(key_element, _q(EDM_NS, "PropertyRef"), Name=key)

        for prop in entity_type.properties:
            attrs = {"Name": prop.name, "Type": prop.edm_type}
            if prop.name in entity_type.keys:
                attrs["Nullable"] = "false"
            etree.SubElement(type_element, _q(EDM_NS, "Property"), attrs)

    container = etree.SubElement(schema, _q(EDM_NS, "EntityContainer"), Name=schema_namespace)
    container.set(_q(M_NS, "IsDefaultEntityContainer"), "true")
    for entity_type in entity_types:
        etree.SubElement(
            container,
            _q(EDM_NS, "EntitySet"),
            Name=entity_type.collection_name,
            EntityType=f"{schema_namespace}.{entity_type.name}",
        )

    return edmx


def metadata_document(entity_types: Iterable["EntityType"], schema_namespace: str) -> bytes:
    return serialize(build_metadata_tree(entity_types, schema_namespace), SERVICE_ENCODING)


# ------------------------------------------------------------------
# Feeds and entries
# ------------------------------------------------------------------

_FEED_NSMAP = {None: ATOM_NS, "d": D_NS, "m": M_NS}


def _fill_entry(entry, query: "Query", entity: Any, base_url: str, updated: str) -> None:
    entity_type = query.entity_type
    location = f"{entity_type.collection_name}({plain_string(entity_type.key_value(entity))})"

    etree.SubElement(entry, _q(ATOM_NS, "id")).text = base_url + location
    etree.SubElement(entry, _q(ATOM_NS, "title"), type="text")
    etree.SubElement(entry, _q(ATOM_NS, "updated")).text = updated
    author = etree.SubElement(entry, _q(ATOM_NS, "author"))
    etree.SubElement(author, _q(ATOM_NS, "name"))
    etree.SubElement(entry, _q(ATOM_NS, "link"), rel="edit", title=entity_type.name, href=location)
    etree.SubElement(entry, _q(ATOM_NS, "category"), term=entity_type.name, scheme=SCHEME)

    content = etree.SubElement(entry, _q(ATOM_NS, "content"), type="application/xml")
    properties = etree.SubElement(content, _q(M_NS, "properties"))
    for prop in entity_type.properties:
        value = entity_type.value_of(entity, prop.name)
        etree.SubElement(properties, _q(D_NS, prop.name)).text = plain_string(value)


def build_entry_tree(query: "Query", entity: Any, base_url: str, updated: Optional[str] = None):
    entry = etree.Element(_q(ATOM_NS, "entry"), nsmap=_FEED_NSMAP)
    entry.set(_q(XML_NS, "base"), base_url)
    _fill_entry(entry, query, entity, base_url, updated or _timestamp())
    return entry


def build_feed_tree(query: "Query", entities: Iterable[Any], base_url: str, updated: Optional[str] = None):
    updated = updated or _timestamp()
    collection_name = query.collection_name

    feed = etree.Element(_q(ATOM_NS, "feed"), nsmap=_FEED_NSMAP)
    feed.set(_q(XML_NS, "base"), base_url)
    etree.SubElement(feed, _q(ATOM_NS, "title"), type="text").text = collection_name
    etree.SubElement(feed, _q(ATOM_NS, "id")).text = base_url + collection_name
    etree.SubElement(feed, _q(ATOM_NS, "updated")).text = updated
    etree.SubElement(feed, _q(ATOM_NS, "link"), rel="self", title=collection_name, href=collection_name)

    count = 0
    for entity in entities:
        entry = etree.SubElement(feed, _q(ATOM_NS, "entry"))
        _fill_entry(entry, query, entity, base_url, updated)
        count += 1

    logger.debug("Rendered feed %s with %d entries", collection_name, count)
    return feed


def feed_or_entry_document(query: "Query", result: Any, base_url: str) -> bytes:
    if query.returns_collection:
        root = build_feed_tree(query, result, base_url)
    else:
        root = build_entry_tree(query, result, base_url)
    return serialize(root, FEED_ENCODING)
