"""Сервис модерации.

Переходы статусов лота:
    pending -> approved (запускает окно аукциона)
    pending -> rejected (терминальный, повторная подача - новый лот)
    approved -> sold (см. services.listings.mark_sold)

Каждый переход выполняется одним условным UPDATE, поэтому проверка
статуса и изменение не разделены во времени и не гоняются со ставками.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import update, or_, and_

from database.models.listing import Listing, ListingStatus
from services.clock import utcnow, as_utc, compute_auction_end_time
from services.errors import InvalidState
from services.listings import get_listing

logger = logging.getLogger(__name__)


async def approve_listing(
    session: AsyncSession,
    listing_id: int,
    requested_end_time: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Listing:
    """Одобрить лот и запустить аукцион.

    auction_end_time = requested_end_time, если он в будущем,
    иначе now + duration_days.
    """
    now = as_utc(now) if now else utcnow()
    listing = await get_listing(session, listing_id)
    if listing.status != ListingStatus.PENDING.value:
        raise InvalidState(f"Лот {listing_id} в статусе {listing.status}, одобрить можно только pending")

    ends_at = compute_auction_end_time(now, listing.duration_days, requested_end_time)

    result = await session.execute(
        update(Listing)
        .where(
            Listing.id == listing_id,
            Listing.status == ListingStatus.PENDING.value
        )
        .values(
            status=ListingStatus.APPROVED.value,
            rejection_reason=None,
            approved_at=now,
            auction_end_time=ends_at
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        # Статус успели изменить между чтением и обновлением
        await session.rollback()
        raise InvalidState(f"Лот {listing_id} уже прошел модерацию")

    await session.commit()
    await session.refresh(listing)
    logger.info(f"Лот {listing_id} одобрен, аукцион до {ends_at.isoformat()}")
    return listing


async def reject_listing(
    session: AsyncSession,
    listing_id: int,
    reason: Optional[str] = None,
) -> Listing:
    """Отклонить лот.

    Повторное отклонение перезаписывает причину. Одобренный лот можно
    отклонить, только пока на него нет ставок; проданный - нельзя.
    """
    listing = await get_listing(session, listing_id)
    if listing.status == ListingStatus.SOLD.value:
        raise InvalidState(f"Лот {listing_id} уже продан")

    # total_bids меняется в той же транзакции, что и вставка ставки,
    # поэтому условие перепроверяется при блокировке строки
    result = await session.execute(
        update(Listing)
        .where(
            Listing.id == listing_id,
            or_(
                Listing.status.in_([ListingStatus.PENDING.value, ListingStatus.REJECTED.value]),
                and_(
                    Listing.status == ListingStatus.APPROVED.value,
                    Listing.total_bids == 0
                )
            )
        )
        .values(
            status=ListingStatus.REJECTED.value,
            rejection_reason=reason
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await session.rollback()
        raise InvalidState(f"На лот {listing_id} уже есть ставки, отклонить его нельзя")

    await session.commit()
    await session.refresh(listing)
    logger.info(f"Лот {listing_id} отклонен: {reason or 'без причины'}")
    return listing
