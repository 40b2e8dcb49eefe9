# src/odata_provider/main.py
from pathlib import Path
from typing import Optional
import logging

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse

from .odata.config import ODataConfig
from .odata.errors import MalformedRequestError
from .odata.provider import DEFAULT_BASE_URL, Provider
from .odata.registry import load_provider
from .odata.router import build_router
from .settings import ServiceSettings, load_settings

logger = logging.getLogger(__name__)


def build_provider(settings: ServiceSettings, config: Optional[ODataConfig] = None) -> Provider:
    """
    Build the provider described by the settings.

    Config source:

      1. ODATA_CONFIG_PATH -> a YAML file or a directory of YAML files
      2. Otherwise: a provider with no entity types

    Configuration errors propagate, so a bad declaration stops startup.
    """
    config = config or ODataConfig(schema_namespace=settings.schema_namespace)
    base_url = settings.base_url or DEFAULT_BASE_URL

    if settings.config_path:
        config_path = Path(settings.config_path)
        logger.info("ODATA_CONFIG_PATH set, loading entity types from: %s", config_path)
        repo_root = Path(settings.repo_root) if settings.repo_root else None
        return load_provider(config_path, config=config, repo_root=repo_root, base_url=base_url)

    logger.info("No ODATA_CONFIG_PATH set, starting with an empty provider.")
    return Provider(config=config, base_url=base_url)


def create_app(
    provider: Optional[Provider] = None,
    settings: Optional[ServiceSettings] = None,
) -> FastAPI:
    settings = settings or load_settings()
    if provider is None:
        provider = build_provider(settings)

    app = FastAPI(title="odata-provider")
    app.state.provider = provider
    app.state.settings = settings

    @app.exception_handler(MalformedRequestError)
    async def malformed_request(request: Request, exc: MalformedRequestError):
        logger.info("Rejected %s: %s", request.url.path, exc)
        return PlainTextResponse(str(exc), status_code=400)

    # OData routes
    app.include_router(build_router(provider, settings.service_root, settings.base_url))

    return app


_settings = load_settings()
logging.basicConfig(level=_settings.log_level)

app = create_app(settings=_settings)
