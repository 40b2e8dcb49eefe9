# src/odata_provider/odata/registry.py

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import logging
import os

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .config import ODataConfig
from .errors import ConfigurationError
from .executors import register_source
from .inflection import pluralize
from .provider import DEFAULT_BASE_URL, Provider
from .schema import EntityType, Property

logger = logging.getLogger(__name__)


# ------------------------------------------------------------
# Pydantic declaration models
# ------------------------------------------------------------

class PropertyConfig(BaseModel):
    name: str
    type: Optional[str] = None            # "string", "int", "Edm.DateTime", ...


class SourceConfig(BaseModel):
    path: str
    relation: Optional[str] = None        # DuckDB view name, defaults to the collection name


class EntityTypeConfig(BaseModel):
    name: str
    keys: List[str]
    properties: List[PropertyConfig] = Field(default_factory=list)
    executor: Optional[str] = None        # e.g. "memory", "duckdb"; None -> default executor
    rows: Optional[List[Dict[str, Any]]] = None
    source: Optional[SourceConfig] = None

    @field_validator("keys", mode="before")
    @classmethod
    def _single_key(cls, value):
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("properties", mode="before")
    @classmethod
    def _bare_property_names(cls, value):
        if isinstance(value, list):
            return [{"name": v} if isinstance(v, str) else v for v in value]
        return value


class ServiceDeclaration(BaseModel):
    entity_types: List[EntityTypeConfig] = Field(default_factory=list)


# ------------------------------------------------------------
# Helper to determine repo_root
# ------------------------------------------------------------

def _resolve_repo_root(config_path: Path, explicit: Optional[Path] = None) -> Path:
    if explicit is not None:
        return Path(explicit)

    env_root = os.getenv("ODATA_REPO_ROOT")
    if env_root:
        return Path(env_root)

    # Fallback: data paths are relative to the declaration file's directory
    return config_path if config_path.is_dir() else config_path.parent


# ------------------------------------------------------------
# Loading declarations
# ------------------------------------------------------------

def _yaml_files(config_path: Path) -> List[Path]:
    if config_path.is_dir():
        return sorted(
            p for p in config_path.iterdir() if p.suffix in (".yaml", ".yml") and p.is_file()
        )
    if not config_path.exists():
        raise ConfigurationError(f"Entity type declarations not found: {config_path}")
    return [config_path]


def parse_declarations(raw: Any, origin: str = "<memory>") -> List[EntityTypeConfig]:
    """
    Validate one YAML document. It either lists `entity_types:` or is a
    single entity type declaration.
    """
    if raw is None:
        return []
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{origin}: expected a mapping at top level")

    try:
        if "entity_types" in raw:
            return ServiceDeclaration(**raw).entity_types
        return [EntityTypeConfig(**raw)]
    except ValidationError as e:
        raise ConfigurationError(f"{origin}: invalid entity type declaration:\n{e}") from e


def load_declarations(config_path: Path) -> List[EntityTypeConfig]:
    config_path = Path(config_path)
    declarations: List[EntityTypeConfig] = []

    for path in _yaml_files(config_path):
        with path.open("r", encoding="utf-8") as f:
            try:
                raw = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"{path}: cannot parse YAML: {e}") from e

        loaded = parse_declarations(raw, origin=str(path))
        logger.info("Loaded %d entity type declarations from %s", len(loaded), path)
        declarations.extend(loaded)

    return declarations


# ------------------------------------------------------------
# Core: declaration -> EntityType
# ------------------------------------------------------------

def _load_rows(path: Path) -> Tuple[Dict[str, Any], ...]:
    if not path.exists():
        raise ConfigurationError(f"Data file not found: {path}")
    # JSON documents are valid YAML
    rows = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(rows, list):
        raise ConfigurationError(f"{path}: expected a list of rows")
    return tuple(rows)


def build_entity_type(
    decl: EntityTypeConfig, config: ODataConfig, repo_root: Path
) -> EntityType:
    properties = [Property(p.name, p.type) for p in decl.properties]
    executor = None
    entity_source = None

    if decl.executor == "duckdb":
        if decl.rows is not None:
            raise ConfigurationError(
                f"Entity type '{decl.name}': inline rows cannot be served by the "
                f"duckdb executor; declare a source file instead"
            )
        relation = None
        if decl.source is not None:
            relation = decl.source.relation or pluralize(decl.name)
            try:
                register_source(relation, repo_root / decl.source.path)
            except (FileNotFoundError, ValueError) as e:
                raise ConfigurationError(f"Entity type '{decl.name}': {e}") from e
        executor = config.create_executor("duckdb", relation=relation)
    else:
        if decl.rows is not None:
            rows = tuple(decl.rows)
        elif decl.source is not None:
            rows = _load_rows(repo_root / decl.source.path)
        else:
            rows = None

        if rows is not None:
            entity_source = lambda rows=rows: rows  # noqa: E731
        if decl.executor is not None:
            executor = config.create_executor(decl.executor)

    return EntityType(
        decl.name,
        keys=decl.keys,
        properties=properties,
        query_executor=executor,
        entity_source=entity_source,
    )


def load_provider(
    config_path: Path,
    config: Optional[ODataConfig] = None,
    repo_root: Optional[Path] = None,
    base_url: str = DEFAULT_BASE_URL,
) -> Provider:
    """
    Build a Provider from a YAML file or a directory of YAML files.

    Any invalid declaration, unknown executor, missing data file or missing
    DuckDB relation raises ConfigurationError; nothing is skipped.
    """
    config = config or ODataConfig()
    config_path = Path(config_path)
    root = _resolve_repo_root(config_path, repo_root)

    entity_types = [
        build_entity_type(decl, config, root) for decl in load_declarations(config_path)
    ]
    return Provider(*entity_types, config=config, base_url=base_url)
