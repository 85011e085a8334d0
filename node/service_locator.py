"""Service locator for the node's storage components."""

from pathlib import Path
from typing import Optional

from node import config
from node.blob_store import BlobStore
from node.catalog import Catalog

_catalog: Optional[Catalog] = None
_blob_store: Optional[BlobStore] = None


def set_catalog(catalog: Optional[Catalog]):
    """Set global catalog instance"""
    global _catalog
    _catalog = catalog


def get_catalog() -> Catalog:
    """Get global catalog instance, loading it from CATALOG_PATH on first use"""
    global _catalog
    if _catalog is None:
        _catalog = Catalog(Path(config.CATALOG_PATH))
    return _catalog


def set_blob_store(store: Optional[BlobStore]):
    """Set global blob store instance"""
    global _blob_store
    _blob_store = store


def get_blob_store() -> BlobStore:
    """Get global blob store instance rooted at BLOB_DIR"""
    global _blob_store
    if _blob_store is None:
        _blob_store = BlobStore(Path(config.BLOB_DIR))
    return _blob_store
