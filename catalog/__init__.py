from .client import DEFAULT_NODE_KINDS, CatalogClient, CatalogError

__all__ = ["CatalogClient", "CatalogError", "DEFAULT_NODE_KINDS"]
