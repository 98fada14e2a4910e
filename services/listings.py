"""Сервис для работы с лотами"""
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, func

from config import settings
from database.models.listing import Listing, ListingStatus
from database.models.bid import Bid
from services.clock import utcnow, as_utc, is_auction_ended
from services.errors import NotFound, InvalidState, ValidationError

logger = logging.getLogger(__name__)

MONEY_QUANTUM = Decimal("0.01")


def to_money(value) -> Decimal:
    """Привести сумму к Decimal с двумя знаками. float не принимается"""
    if isinstance(value, float):
        raise ValidationError("Сумма должна передаваться строкой или Decimal, не float")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Некорректная сумма: {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"Некорректная сумма: {value!r}")
    if amount != amount.quantize(MONEY_QUANTUM):
        raise ValidationError("Сумма может содержать не больше двух знаков после запятой")
    if amount <= 0:
        raise ValidationError("Сумма должна быть положительной")
    return amount.quantize(MONEY_QUANTUM)


async def create_listing(
    session: AsyncSession,
    owner_id: Optional[int],
    title: str,
    starting_price,
    duration_days: Optional[int] = None,
    description: Optional[str] = None,
) -> Listing:
    """Создать лот в статусе pending. owner_id=None - товар компании"""
    if not title or not title.strip():
        raise ValidationError("Название обязательно")

    price = to_money(starting_price)

    if duration_days is None:
        duration_days = settings.AUCTION_DEFAULT_DURATION_DAYS
    if not settings.AUCTION_MIN_DURATION_DAYS <= duration_days <= settings.AUCTION_MAX_DURATION_DAYS:
        raise ValidationError(
            f"Длительность должна быть от {settings.AUCTION_MIN_DURATION_DAYS} "
            f"до {settings.AUCTION_MAX_DURATION_DAYS} дней"
        )

    listing = Listing(
        owner_id=owner_id,
        title=title.strip(),
        description=description,
        starting_price=price,
        current_price=price,
        total_bids=0,
        status=ListingStatus.PENDING.value,
        duration_days=duration_days,
    )
    session.add(listing)
    await session.commit()
    await session.refresh(listing)
    logger.info(f"Лот {listing.id} создан (владелец: {owner_id}, цена: {price})")
    return listing


async def get_listing(session: AsyncSession, listing_id: int) -> Listing:
    """Получить лот или NotFound. Всегда перечитывает строку из БД"""
    result = await session.execute(
        select(Listing)
        .where(Listing.id == listing_id)
        .execution_options(populate_existing=True)
    )
    listing = result.scalar_one_or_none()
    if not listing:
        raise NotFound(f"Лот {listing_id} не найден")
    return listing


async def count_bids(session: AsyncSession, listing_id: int) -> int:
    result = await session.execute(
        select(func.count(Bid.id)).where(Bid.listing_id == listing_id)
    )
    return result.scalar() or 0


async def delete_listing(session: AsyncSession, listing_id: int, force: bool = False) -> None:
    """Удалить лот.

    Без force - только до одобрения. С force (привилегированная роль) - в любом
    статусе. Лот со ставками не удаляется никогда: журнал ставок неизменяем.
    """
    listing = await get_listing(session, listing_id)
    bids_count = await count_bids(session, listing_id)

    if bids_count:
        raise InvalidState("На лот уже есть ставки")
    if not force and listing.status not in (ListingStatus.PENDING.value, ListingStatus.REJECTED.value):
        raise InvalidState("Удалить можно только лот, который еще не одобрен")

    await session.execute(delete(Listing).where(Listing.id == listing.id))
    await session.commit()
    logger.info(f"Лот {listing_id} удален (force={force})")


async def list_pending_listings(session: AsyncSession, house_only: bool = False) -> list[Listing]:
    """Лоты, ожидающие модерации"""
    query = select(Listing).where(Listing.status == ListingStatus.PENDING.value)
    if house_only:
        query = query.where(Listing.owner_id.is_(None))
    result = await session.execute(query.order_by(Listing.created_at.asc(), Listing.id.asc()))
    return list(result.scalars().all())


async def list_live_auctions(session: AsyncSession, now: Optional[datetime] = None) -> list[Listing]:
    """Активные аукционы, ближайшие к завершению первыми"""
    now = as_utc(now) if now else utcnow()
    result = await session.execute(
        select(Listing)
        .where(
            Listing.status == ListingStatus.APPROVED.value,
            Listing.auction_end_time > now,
        )
        .order_by(Listing.auction_end_time.asc())
    )
    return list(result.scalars().all())


async def list_completed_auctions(
    session: AsyncSession,
    now: Optional[datetime] = None,
    house_only: bool = False,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Listing], int]:
    """Завершенные аукционы (одобрены, время вышло) и их общее количество"""
    now = as_utc(now) if now else utcnow()
    conditions = [
        Listing.status == ListingStatus.APPROVED.value,
        Listing.auction_end_time <= now,
    ]
    if house_only:
        conditions.append(Listing.owner_id.is_(None))

    total = (await session.execute(select(func.count(Listing.id)).where(*conditions))).scalar() or 0
    result = await session.execute(
        select(Listing)
        .where(*conditions)
        .order_by(Listing.auction_end_time.desc())
        .limit(limit)
        .offset((max(page, 1) - 1) * limit)
    )
    return list(result.scalars().all()), total


async def get_winning_bid(
    session: AsyncSession,
    listing_id: int,
    now: Optional[datetime] = None,
) -> Optional[Bid]:
    """Победившая ставка завершенного аукциона (None - ставок не было)"""
    now = as_utc(now) if now else utcnow()
    listing = await get_listing(session, listing_id)
    if not is_auction_ended(listing.status, listing.auction_end_time, now):
        raise InvalidState("Аукцион еще не завершен")

    # Максимальная сумма, при равенстве - самая ранняя ставка
    result = await session.execute(
        select(Bid)
        .where(Bid.listing_id == listing_id)
        .order_by(Bid.amount.desc(), Bid.created_at.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def mark_sold(
    session: AsyncSession,
    listing_id: int,
    now: Optional[datetime] = None,
) -> Listing:
    """Отметить завершенный аукцион с победителем как проданный"""
    now = as_utc(now) if now else utcnow()
    listing = await get_listing(session, listing_id)

    if listing.status != ListingStatus.APPROVED.value:
        raise InvalidState(f"Лот в статусе {listing.status} нельзя отметить проданным")
    if not is_auction_ended(listing.status, listing.auction_end_time, now):
        raise InvalidState("Аукцион еще не завершен")
    if listing.highest_bidder_id is None:
        raise InvalidState("На лот не было ставок")

    listing.status = ListingStatus.SOLD.value
    listing.sold_at = now
    await session.commit()
    await session.refresh(listing)
    logger.info(f"Лот {listing_id} продан за {listing.current_price}, покупатель: {listing.highest_bidder_id}")
    return listing
