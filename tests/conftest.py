"""Shared pytest fixtures for all tests."""

import pytest
from fastapi.testclient import TestClient

from common import crypto_codec
from cli.config import Config
from cli.storage_client import StorageClient
from node.blob_store import BlobStore
from node.catalog import Catalog
from node.main import app
from node.service_locator import set_blob_store, set_catalog


@pytest.fixture(autouse=True)
def fast_kdf(monkeypatch):
    """
    Lower the PBKDF2 iteration count so encryption tests stay fast.
    The count travels inside each envelope, so decrypt is unaffected.
    """
    monkeypatch.setattr(crypto_codec, "KDF_ITERATIONS", 1000)


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Returns:
        Path to temporary .stashnode directory
    """
    config_dir = tmp_path / '.stashnode'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir):
    """
    Create temporary config instance with retries disabled.
    """
    config = Config(temp_config_dir / 'config.json')
    config.data['max_retries'] = 0
    return config


@pytest.fixture
def sample_file(tmp_path):
    """
    Create a sample file for testing file uploads.

    Returns:
        Path to an 11 byte text file
    """
    file_path = tmp_path / 'notes.txt'
    file_path.write_bytes(b'hello world')
    return file_path


@pytest.fixture
def node_storage(tmp_path):
    """
    Install a fresh catalog and blob store for the node app.

    Returns:
        (catalog, blob_store) tuple
    """
    catalog = Catalog(tmp_path / 'data' / 'files_db.json')
    blob_store = BlobStore(tmp_path / 'data' / 'uploads')
    set_catalog(catalog)
    set_blob_store(blob_store)
    yield catalog, blob_store
    set_catalog(None)
    set_blob_store(None)


@pytest.fixture
def api_client(node_storage):
    """Create FastAPI test client bound to temporary storage."""
    return TestClient(app)


@pytest.fixture
def storage_client(temp_config, api_client):
    """StorageClient whose HTTP session talks to the in-process node."""
    client = StorageClient(temp_config)
    client.session = api_client
    return client
