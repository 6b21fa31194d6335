"""Page document loading and validation."""

from .loader import PageDocument, freeze, iter_nodes, load_page, load_page_file, thaw
from .schema import NODE_TYPES

__all__ = ["NODE_TYPES", "PageDocument", "freeze", "iter_nodes", "load_page", "load_page_file", "thaw"]
