# src/odata_provider/settings.py
from dataclasses import dataclass
from typing import Optional
import os


@dataclass
class ServiceSettings:
    service_root: str
    config_path: Optional[str]
    repo_root: Optional[str]
    schema_namespace: str
    base_url: Optional[str]
    log_level: str


def load_settings() -> ServiceSettings:
    service_root = os.getenv("ODATA_SERVICE_ROOT", "/odata")

    config_path = os.getenv("ODATA_CONFIG_PATH") or None
    repo_root = os.getenv("ODATA_REPO_ROOT") or None
    schema_namespace = os.getenv("ODATA_SCHEMA_NAMESPACE", "ODataService")
    base_url = os.getenv("ODATA_BASE_URL") or None

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    return ServiceSettings(
        service_root=service_root,
        config_path=config_path,
        repo_root=repo_root,
        schema_namespace=schema_namespace,
        base_url=base_url,
        log_level=log_level,
    )
