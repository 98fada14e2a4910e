"""Создание схемы и проверка ее версии"""
import logging
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine
from database.connection import Base, build_session_maker
from database.models import SchemaVersion

logger = logging.getLogger(__name__)

# Увеличивать при каждом изменении таблиц
SCHEMA_VERSION = 1


class SchemaVersionMismatch(RuntimeError):
    """Версия схемы в БД не совпадает с версией приложения"""


async def init_models(engine: AsyncEngine) -> None:
    """Создать таблицы и записать версию схемы"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = build_session_maker(engine)
    async with session_maker() as session:
        result = await session.execute(select(SchemaVersion).where(SchemaVersion.id == 1))
        row = result.scalar_one_or_none()
        if row is None:
            session.add(SchemaVersion(id=1, version=SCHEMA_VERSION))
            await session.commit()
            logger.info(f"Схема создана, версия {SCHEMA_VERSION}")


async def check_schema_version(engine: AsyncEngine) -> int:
    """Проверить версию схемы при старте. Несовпадение - ошибка запуска"""
    session_maker = build_session_maker(engine)
    async with session_maker() as session:
        result = await session.execute(select(SchemaVersion.version).where(SchemaVersion.id == 1))
        version = result.scalar_one_or_none()

    if version != SCHEMA_VERSION:
        raise SchemaVersionMismatch(
            f"Версия схемы БД {version}, приложение ожидает {SCHEMA_VERSION}"
        )
    return version
