# src/odata_provider/odata/router.py

from typing import Optional
import logging

from fastapi import APIRouter, Request, Response

from .encoders import encoder_for
from .provider import Provider

logger = logging.getLogger(__name__)

XML_MEDIA_TYPE = "application/xml"


def normalize_service_root(service_root: Optional[str]) -> str:
    """
    "/odata/" -> "/odata", "odata" -> "/odata", "" or "/" -> "".
    """
    root = (service_root or "").strip().rstrip("/")
    if root and not root.startswith("/"):
        root = "/" + root
    return root


def build_router(
    provider: Provider,
    service_root: str = "/odata",
    base_url: Optional[str] = None,
) -> APIRouter:
    """
    Mount `provider` under `service_root`.

    The service root is removed from the raw request path before the
    provider sees it, so the provider only deals with root-relative paths.
    `base_url` fixes the xml:base of generated documents; when unset it is
    derived from the request.
    """
    root = normalize_service_root(service_root)
    router = APIRouter(prefix=root, tags=["odata"])

    def _base_url(request: Request) -> str:
        if base_url:
            return base_url if base_url.endswith("/") else base_url + "/"
        return str(request.base_url).rstrip("/") + root + "/"

    def _resource_path(request: Request) -> str:
        raw_path = request.scope.get("raw_path")
        path = raw_path.decode("latin-1").split("?", 1)[0] if raw_path else request.url.path
        if root and path.startswith(root):
            path = path[len(root):]
        query = request.url.query
        return f"{path}?{query}" if query else path

    @router.get("/")
    def service_document(request: Request):
        return Response(content=provider.root_xml(_base_url(request)), media_type=XML_MEDIA_TYPE)

    @router.get("/$metadata")
    def metadata_document():
        return Response(content=provider.metadata_xml(), media_type=XML_MEDIA_TYPE)

    @router.get("/{resource_path:path}")
    def resource(resource_path: str, request: Request):
        query = provider.build_query(_resource_path(request))
        result = provider.execute_query(query)

        if result is None:
            logger.info("No result for %s", request.url.path)
            return Response(status_code=404)

        encoder = encoder_for(request.query_params.get("format"))
        if encoder is not None:
            body, media_type = encoder(query, result)
            return Response(content=body, media_type=media_type)

        return Response(
            content=provider.xml_for(query, result, _base_url(request)),
            media_type=XML_MEDIA_TYPE,
        )

    return router
