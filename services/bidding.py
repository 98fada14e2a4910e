"""Сервис для размещения ставок.

Журнал ставок (таблица bids) - источник истины. Поля лота current_price,
highest_bidder_id и total_bids - кэш, который меняется только здесь и только
в одной транзакции со вставкой ставки.

Одна попытка размещения:
    1. SELECT ... FOR UPDATE строки лота (в PostgreSQL блокирует конкурентов)
    2. проверка условий по только что прочитанной строке
    3. счетчик ставок участника (NotFound, если его нет), затем UPDATE лота
       с условием current_price = прочитанной цене
       (compare-and-swap, страхует СУБД без блокировок строк, например SQLite)
    4. INSERT ставки, COMMIT

Если CAS не сработал, транзакция откатывается и попытка повторяется с
новым чтением: проигравшая ставка получает BidTooLow, а не общую ошибку.
Тайм-аут блокировки и временные ошибки БД тоже повторяются, после
исчерпания попыток - Unavailable. Повтор одной и той же суммы (нарушение
uq_bids_listing_amount) - гонка, прочие нарушения ограничений - ValidationError.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, text
from sqlalchemy.exc import OperationalError, IntegrityError, DBAPIError

from config import settings
from database.models.bid import Bid
from database.models.listing import Listing, ListingStatus
from database.models.user import User
from services.clock import utcnow, as_utc, is_auction_live
from services.errors import (
    AuctionError, NotFound, AuctionNotActive, SelfBid, BidTooLow, Conflict, Unavailable, ValidationError
)
from services.listings import to_money

logger = logging.getLogger(__name__)


class _PriceMoved(Exception):
    """Цена лота изменилась между чтением и обновлением"""


class _LockNotAcquired(Exception):
    """Не удалось заблокировать строку лота"""


# SQLSTATE временных ошибок PostgreSQL: lock_not_available, query_canceled,
# serialization_failure, deadlock_detected
TRANSIENT_SQLSTATES = frozenset({"55P03", "57014", "40001", "40P01"})

DUPLICATE_AMOUNT_CONSTRAINT = "uq_bids_listing_amount"


def _sqlstate(error: DBAPIError) -> Optional[str]:
    return getattr(error.orig, "sqlstate", None) or getattr(error.orig, "pgcode", None)


def is_transient_db_error(error: DBAPIError) -> bool:
    """Ошибка БД, после которой попытку можно повторить"""
    if isinstance(error, OperationalError) or error.connection_invalidated:
        return True
    return _sqlstate(error) in TRANSIENT_SQLSTATES


def is_duplicate_amount(error: IntegrityError) -> bool:
    """Нарушена уникальность (listing_id, amount): конкурент успел поставить ту же сумму"""
    if _sqlstate(error) == "23505":
        return True
    message = str(error.orig)
    return DUPLICATE_AMOUNT_CONSTRAINT in message or "UNIQUE constraint failed: bids." in message


def check_bid_preconditions(listing: Listing, bidder_id: int, amount, now: datetime) -> None:
    """Проверить, можно ли принять ставку на лот в момент now"""
    if not is_auction_live(listing.status, listing.auction_end_time, now):
        if listing.status == ListingStatus.APPROVED.value:
            raise AuctionNotActive(f"Аукцион по лоту {listing.id} завершен")
        raise AuctionNotActive(f"Лот {listing.id} недоступен для ставок (статус: {listing.status})")

    if listing.owner_id is not None and listing.owner_id == bidder_id:
        raise SelfBid("Нельзя делать ставку на свой лот")

    if amount <= listing.current_price:
        raise BidTooLow(amount, listing.current_price)


async def _apply_lock_timeout(session: AsyncSession) -> None:
    """Ограничить ожидание блокировки строки (только PostgreSQL)"""
    if session.get_bind().dialect.name != "postgresql":
        return
    timeout_ms = int(settings.BID_LOCK_TIMEOUT_SECONDS * 1000)
    await session.execute(text(f"SET LOCAL lock_timeout = {timeout_ms}"))


async def _lock_listing(session: AsyncSession, listing_id: int) -> Optional[Listing]:
    """Прочитать строку лота под блокировкой"""
    try:
        await _apply_lock_timeout(session)
        result = await session.execute(
            select(Listing)
            .where(Listing.id == listing_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
    except DBAPIError as e:
        raise _LockNotAcquired() from e
    return result.scalar_one_or_none()


async def _place_bid_once(
    session: AsyncSession,
    listing_id: int,
    bidder_id: int,
    amount,
    now: Optional[datetime],
) -> Bid:
    """Одна попытка: чтение с блокировкой, проверка, CAS, вставка"""
    current_time = as_utc(now) if now else utcnow()

    listing = await _lock_listing(session, listing_id)
    if not listing:
        raise NotFound(f"Лот {listing_id} не найден")

    check_bid_preconditions(listing, bidder_id, amount, current_time)
    expected_price = listing.current_price

    # До записи в лот и журнал: отсутствующий участник - NotFound, а не нарушение внешнего ключа
    result = await session.execute(
        update(User)
        .where(User.id == bidder_id)
        .values(bids_count=User.bids_count + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise NotFound(f"Участник {bidder_id} не найден")

    result = await session.execute(
        update(Listing)
        .where(
            Listing.id == listing_id,
            Listing.status == ListingStatus.APPROVED.value,
            Listing.auction_end_time > current_time,
            Listing.current_price == expected_price
        )
        .values(
            current_price=amount,
            highest_bidder_id=bidder_id,
            total_bids=Listing.total_bids + 1
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise _PriceMoved()

    # Время ставки берется под блокировкой, поэтому порядок created_at
    # совпадает с порядком фиксации
    bid = Bid(
        listing_id=listing_id,
        bidder_id=bidder_id,
        amount=amount,
        created_at=utcnow()
    )
    session.add(bid)

    await session.commit()
    await session.refresh(bid)
    return bid


async def place_bid(
    session: AsyncSession,
    listing_id: int,
    bidder_id: int,
    amount,
    now: Optional[datetime] = None,
    max_attempts: Optional[int] = None,
) -> Bid:
    """Сделать ставку.

    Возвращает сохраненную ставку; ее сумма - новая текущая цена лота.
    Ошибки: NotFound, AuctionNotActive, SelfBid, BidTooLow, ValidationError,
    Conflict (конкуренты не дали провести CAS за max_attempts попыток),
    Unavailable (БД недоступна или блокировка не получена).
    """
    amount = to_money(amount)
    if max_attempts is None:
        max_attempts = settings.BID_MAX_ATTEMPTS

    last_error: Optional[Exception] = None
    for attempt in range(1, max_attempts + 1):
        try:
            bid = await _place_bid_once(session, listing_id, bidder_id, amount, now)
        except AuctionError:
            await session.rollback()
            raise
        except _PriceMoved as e:
            # Конкурент зафиксировал ставку раньше, перечитываем цену
            await session.rollback()
            last_error = e
            logger.debug(f"Ставка на лот {listing_id}: цена изменилась, попытка {attempt}/{max_attempts}")
            continue
        except _LockNotAcquired as e:
            await session.rollback()
            last_error = e
            logger.warning(
                f"Ставка на лот {listing_id}: блокировка не получена, попытка {attempt}/{max_attempts}: {e.__cause__!r}"
            )
            continue
        except IntegrityError as e:
            await session.rollback()
            if not is_duplicate_amount(e):
                logger.error(f"Ставка на лот {listing_id} нарушает ограничения БД: {e.orig}")
                raise ValidationError(f"Ставка на лот {listing_id} не может быть сохранена") from e
            last_error = e
            logger.debug(f"Ставка на лот {listing_id}: такая сумма уже принята, попытка {attempt}/{max_attempts}")
            continue
        except DBAPIError as e:
            await session.rollback()
            if not is_transient_db_error(e):
                raise
            last_error = e
            logger.warning(f"Ставка на лот {listing_id}: ошибка БД, попытка {attempt}/{max_attempts}: {e!r}")
            continue

        logger.info(
            f"Ставка {bid.id} принята: лот {listing_id}, участник {bidder_id}, сумма {amount}"
        )
        return bid

    if isinstance(last_error, (_PriceMoved, IntegrityError)):
        raise Conflict(
            f"Не удалось разместить ставку на лот {listing_id}: слишком много одновременных ставок, повторите"
        )
    raise Unavailable(f"Хранилище недоступно, ставка на лот {listing_id} не принята")


async def get_bids_for_listing(session: AsyncSession, listing_id: int) -> list[Bid]:
    """Ставки по лоту, старшие первыми"""
    result = await session.execute(
        select(Bid)
        .where(Bid.listing_id == listing_id)
        .order_by(Bid.amount.desc(), Bid.created_at.desc())
    )
    return list(result.scalars().all())


async def get_bids_by_bidder(session: AsyncSession, bidder_id: int) -> list[Bid]:
    """Ставки участника, новые первыми"""
    result = await session.execute(
        select(Bid)
        .where(Bid.bidder_id == bidder_id)
        .order_by(Bid.created_at.desc())
    )
    return list(result.scalars().all())
