# src/odata_provider/odata/errors.py


class ODataError(Exception):
    """Base class for errors raised by the OData provider."""


class ConfigurationError(ODataError, ValueError):
    """
    Raised while the provider is being assembled: unknown or unimplemented
    executors, duplicate entity types, invalid YAML declarations.
    """


class UnsupportedQueryOptionError(ODataError, RuntimeError):
    """Raised by an executor that has no way to apply a query option."""

    def __init__(self, option, executor):
        self.option = option
        self.executor = executor
        super().__init__(
            f"Unsupported option type {type(option).__name__} "
            f"for {type(executor).__name__}"
        )


class MalformedRequestError(ODataError, ValueError):
    """The resource path or query string cannot be interpreted."""


class InvalidQueryOptionError(MalformedRequestError):
    def __init__(self, option, reason: str):
        self.option = option
        super().__init__(f"Invalid value {option.value!r} for {option.name}: {reason}")
