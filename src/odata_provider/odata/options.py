# src/odata_provider/odata/options.py

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, Optional
from urllib.parse import unquote
import re

if TYPE_CHECKING:
    from .query import Query

# Dogs(1)
_KEY_SEGMENT = re.compile(r"^(\w+)\(([^\)]+)\)")


@dataclass(frozen=True)
class QueryOption:
    """
    A typed modifier parsed out of a request.

    Subclasses recognise one URL construct each. `value` always holds the
    literal text from the request; executors interpret it.
    """

    value: str

    name: ClassVar[str] = "option"

    @classmethod
    def recognize(cls, query: "Query") -> Optional["QueryOption"]:
        raise NotImplementedError(
            f"{cls.__name__} must implement recognize(query)"
        )


@dataclass(frozen=True)
class KeyQueryOption(QueryOption):
    name: ClassVar[str] = "key"

    @classmethod
    def recognize(cls, query: "Query") -> Optional["KeyQueryOption"]:
        # Only the first segment is inspected, so keys are found for
        # single-segment resource paths only.
        first_part = query.path_segments[0] if query.path_segments else ""
        match = _KEY_SEGMENT.match(first_part)
        if not match:
            return None
        return cls(value=unquote(match.group(2)))


@dataclass(frozen=True)
class TopQueryOption(QueryOption):
    name: ClassVar[str] = "$top"

    @classmethod
    def recognize(cls, query: "Query") -> Optional["TopQueryOption"]:
        top = query.query_strings.get("$top")
        if top is None:
            return None
        return cls(value=top)


@dataclass(frozen=True)
class SkipQueryOption(QueryOption):
    name: ClassVar[str] = "$skip"

    @classmethod
    def recognize(cls, query: "Query") -> Optional["SkipQueryOption"]:
        skip = query.query_strings.get("$skip")
        if skip is None:
            return None
        return cls(value=skip)


DEFAULT_OPTION_TYPES = (KeyQueryOption, SkipQueryOption, TopQueryOption)
