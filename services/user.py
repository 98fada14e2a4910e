"""Сервис для работы с пользователями"""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update

from database.models.user import User, UserRole, LEGACY_ROLE_ALIASES
from services.errors import NotFound

logger = logging.getLogger(__name__)


async def create_user(
    session: AsyncSession,
    role: UserRole = UserRole.BUYER,
    name: str = None,
    telegram_id: Optional[int] = None
) -> User:
    """Создать пользователя"""
    user = User(
        role=UserRole(role).value,
        name=name,
        telegram_id=telegram_id
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def get_user(session: AsyncSession, user_id: int) -> User:
    """Получить пользователя или NotFound"""
    result = await session.execute(
        select(User).where(User.id == user_id)
    )
    user = result.scalar_one_or_none()

    if not user:
        raise NotFound(f"Пользователь {user_id} не найден")
    return user


async def migrate_legacy_roles(session: AsyncSession) -> int:
    """Одноразовая миграция устаревших имен ролей в актуальные.

    После нее в таблице остаются только значения UserRole.
    Возвращает количество обновленных пользователей.
    """
    updated = 0
    for legacy, actual in LEGACY_ROLE_ALIASES.items():
        result = await session.execute(
            update(User)
            .where(User.role == legacy)
            .values(role=actual)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.info(f"Роль {legacy} -> {actual}: {result.rowcount} пользователей")
            updated += result.rowcount
    await session.commit()
    return updated
