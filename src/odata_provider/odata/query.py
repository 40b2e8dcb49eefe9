# src/odata_provider/odata/query.py

from typing import TYPE_CHECKING, Dict, List, Optional, Tuple
from urllib.parse import SplitResult, parse_qsl
import logging
import re

from .inflection import is_plural
from .options import QueryOption

if TYPE_CHECKING:
    from .provider import Provider
    from .schema import EntityType

logger = logging.getLogger(__name__)

_KEY_SUFFIX = re.compile(r"\([^\)]*\)$")


class Query:
    """
    One parsed request against a Provider.

    The options are recognised once, in the order of the provider's
    configured option types, and never change afterwards. Everything else
    (entity type, collection name, return shape) is derived from the URI on
    access.
    """

    def __init__(self, provider: "Provider", uri: SplitResult):
        self.provider = provider
        self.uri = uri

        options: List[QueryOption] = []
        for option_type in provider.config.option_types:
            option = option_type.recognize(self)
            if option is not None:
                options.append(option)
        self._options = tuple(options)

        logger.debug("Built query path=%r options=%r", uri.path, self._options)

    def __repr__(self) -> str:
        return f"Query(path={self.uri.path!r}, query={self.uri.query!r}, options={self._options!r})"

    @property
    def options(self) -> Tuple[QueryOption, ...]:
        return self._options

    @property
    def path_segments(self) -> List[str]:
        return [s for s in self.uri.path.split("/") if s]

    @property
    def query_strings(self) -> Dict[str, str]:
        # Only "$" parameters are system query options; last value wins.
        return {
            key: value
            for key, value in parse_qsl(self.uri.query, keep_blank_values=True)
            if key.startswith("$")
        }

    @property
    def last_segment(self) -> str:
        segments = self.path_segments
        return segments[-1] if segments else ""

    @property
    def collection_name(self) -> str:
        return _KEY_SUFFIX.sub("", self.last_segment)

    @property
    def entity_type(self) -> Optional["EntityType"]:
        return self.provider.get_collection(self.collection_name)

    @property
    def entity_name(self) -> Optional[str]:
        entity_type = self.entity_type
        return entity_type.name if entity_type is not None else None

    @property
    def returns_collection(self) -> bool:
        segment = self.last_segment
        return self.provider.is_collection_name(segment) or is_plural(segment)

    @property
    def returns_entity(self) -> bool:
        return not self.returns_collection
