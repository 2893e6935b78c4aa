"""
Pytest fixtures for config store tests.
"""
import pytest

from adapters.persistence.sqlite import SQLiteConfigStore


@pytest.fixture
async def config_store(store_config_path):
    """File-based store with a five-entry history limit"""
    store = SQLiteConfigStore(store_config_path)
    await store.connect()

    yield store

    await store.disconnect()
