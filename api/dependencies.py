"""Зависимости HTTP обработчиков: сессия БД и вызывающий пользователь"""
from dataclasses import dataclass
from typing import AsyncIterator

from fastapi import Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from database.models.listing import Listing
from database.models.user import UserRole
from services.errors import Forbidden


@dataclass(frozen=True)
class Caller:
    """Пользователь, уже аутентифицированный шлюзом"""
    id: int
    role: UserRole


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    """Сессия БД на время запроса"""
    async with request.app.state.session_maker() as session:
        yield session


async def get_caller(
    x_user_id: int = Header(..., alias="X-User-Id"),
    x_user_role: str = Header(..., alias="X-User-Role"),
) -> Caller:
    """Идентичность вызывающего из заголовков шлюза аутентификации"""
    try:
        role = UserRole.parse(x_user_role)
    except ValueError:
        raise HTTPException(status_code=401, detail=f"Неизвестная роль: {x_user_role}")
    return Caller(id=x_user_id, role=role)


def ensure_staff(caller: Caller) -> None:
    if not caller.role.is_staff:
        raise Forbidden("Недостаточно прав")


def ensure_can_moderate(caller: Caller, listing: Listing) -> None:
    """Модерировать может персонал; сотрудник - только товары компании"""
    ensure_staff(caller)
    if caller.role == UserRole.EMPLOYEE and not listing.is_house_listing:
        raise Forbidden("Сотрудник может модерировать только товары компании")


def ensure_can_bid(caller: Caller) -> None:
    if caller.role not in (UserRole.BUYER, UserRole.SELLER):
        raise Forbidden("Ставки могут делать только покупатели и продавцы")


def ensure_self_or_staff(caller: Caller, user_id: int) -> None:
    if caller.id != user_id and not caller.role.is_staff:
        raise Forbidden("Доступ только к своим данным")
