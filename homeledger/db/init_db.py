import asyncio
import logging
from typing import Optional

from homeledger import crud
from homeledger.core.config import Settings, get_settings
from homeledger.db.session import Store
from homeledger.migrations import MigrationEngine
import homeledger.models # noqa: F401  registers every table on Base.metadata

logger = logging.getLogger(__name__)


async def init_db(store: Store, migrations: Optional[MigrationEngine] = None) -> str:
    """Create or upgrade the store schema. Returns the resulting schema version.

    Raises MigrationError when the on-disk version cannot be brought forward;
    callers must not go on using the store in that case.
    """
    engine = migrations or MigrationEngine()
    logger.info("Initializing ledger store...")
    try:
        version = await engine.upgrade_store(store.engine)
    except Exception as e:
        logger.error(f"Error during store initialization: {e}")
        raise
    logger.info(f"Ledger store ready at schema version {version}.")
    return version


async def seed_defaults(store: Store) -> None:
    """Default property with its rooms, categories and favorite tags; skips what already exists."""
    async with store.writer() as db:
        if not await crud.property.get_properties(db, limit=1):
            home = await crud.property.create_default_property(db)
            if not await crud.room.get_rooms(db, limit=1):
                await crud.room.create_default_rooms(db, property_id=home.id)
        await crud.category.seed_default_categories(db)
        await crud.tag.seed_favorite_tags(db)


async def open_store(settings: Settings, seed: bool = False) -> Store:
    store = Store.from_settings(settings)
    try:
        await init_db(store)
        if seed:
            await seed_defaults(store)
    except BaseException:
        await store.dispose()
        raise
    return store


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(levelname)s:%(name)s:%(message)s')

    async def _main():
        store = await open_store(get_settings(), seed=True)
        await store.dispose()

    asyncio.run(_main())
