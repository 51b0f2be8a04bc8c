"""
Exception hierarchy for the DAX benchmark tool.
"""


class DaxBenchError(Exception):
    """Base class for errors raised by this tool (not by the backends)."""


class ConfigurationError(DaxBenchError):
    """Invalid flag combination or unusable configuration, raised before any network call."""


class UnsupportedOperationError(ConfigurationError):
    """A backend was asked for a capability it does not provide."""
