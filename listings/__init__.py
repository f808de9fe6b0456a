"""Property listings: record schema and the in-memory catalog."""

from .catalog import CatalogError, PropertyCatalog
from .schema import PropertyRecord

__all__ = ["CatalogError", "PropertyCatalog", "PropertyRecord"]
