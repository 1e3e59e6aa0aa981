"""Exceptions raised by the execution core."""


class ConfigurationError(ValueError):
    """Raised for programming errors such as a missing generator or a duplicate tool name."""


class GenerationError(RuntimeError):
    """Raised when a generator reports a transport/backend error mid-operation."""
