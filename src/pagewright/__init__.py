"""
pagewright: interpreter for declarative page documents.
"""

from .version import DOCUMENT_SCHEMA_VERSION, __version__  # noqa: F401

__all__ = [
    "actions",
    "config",
    "data",
    "document",
    "errors",
    "expressions",
    "renderer",
    "resolution",
    "server",
    "state",
    "__version__",
    "DOCUMENT_SCHEMA_VERSION",
]
