from loguru import logger
from tortoise import Tortoise

from site_crawler.utils.db_utils import to_tortoise_url


MODEL_MODULES = [
    "site_crawler.storage.models.website_model",
    "site_crawler.storage.models.page_model",
]


async def init_db(database_url: str, *, generate_schemas: bool = True) -> None:
    """
    اتصال به دیتابیس و ساخت/بررسی جداول.
    """
    db_url = to_tortoise_url(database_url)

    logger.info("Initializing database and ORM models...")

    await Tortoise.init(db_url=db_url, modules={"models": MODEL_MODULES})

    if generate_schemas:
        await Tortoise.generate_schemas(safe=True)
        logger.info("Database tables created or verified.")


async def close_db() -> None:
    await Tortoise.close_connections()
