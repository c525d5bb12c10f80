"""Custom exception hierarchy for the archive proxy.

Request-level problems (missing target, forbidden origin, transport failures)
are not exceptions; they travel as typed results through the pipeline. Only
process-level problems raise.
"""


class ProxyError(Exception):
    """Base exception for all proxy errors."""


class ConfigurationError(ProxyError):
    """Raised when configuration is missing or invalid."""
