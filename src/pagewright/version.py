"""
Central version constant for pagewright.
"""

__version__ = "0.4.0"

# Page document schema version understood by the loader
DOCUMENT_SCHEMA_VERSION = "1.0"
