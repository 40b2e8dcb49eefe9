"""
odata_provider package

Serves declared entity types over HTTP with a subset of OData: service
document, $metadata, Atom feeds/entries, key lookup, $top and $skip.
The FastAPI application lives in `odata_provider.main`.
"""
