import pytest

from homeledger.core.config import Settings
from homeledger.core.exceptions import PhotoStorageError
from homeledger.db.init_db import init_db
from homeledger.db.session import Store


class MemoryPhotoStorage:
    def __init__(self):
        self.files = {}

    async def load(self, image_identifier):
        if image_identifier not in self.files:
            raise PhotoStorageError(f"No photo {image_identifier}")
        return self.files[image_identifier]

    async def save(self, image_identifier, data):
        self.files[image_identifier] = data


@pytest.fixture
def settings(tmp_path):
    return Settings(DATA_DIR=tmp_path, SEED_DEFAULTS=False)


@pytest.fixture
def memory_photos():
    return MemoryPhotoStorage()


@pytest.fixture
async def store(tmp_path):
    store = Store(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    await init_db(store)
    yield store
    await store.dispose()


@pytest.fixture
async def other_store(tmp_path):
    """A second, independent ledger for export/restore round trips."""
    store = Store(f"sqlite+aiosqlite:///{tmp_path / 'other.db'}")
    await init_db(store)
    yield store
    await store.dispose()
