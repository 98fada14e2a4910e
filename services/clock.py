"""Часы аукциона: статус для отображения и определение победителя.

Все функции чистые и не ходят в БД. Аукцион "завершается" сам собой:
любой путь чтения считает лот завершенным, когда now >= auction_end_time,
поэтому фоновый планировщик для закрытия аукционов не нужен.
"""
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional
import enum

from config import settings
from database.models.listing import ListingStatus


class AuctionDisplayStatus(str, enum.Enum):
    """Статус аукциона для отображения"""
    NOT_LIVE = "not_live"  # Еще не одобрен или отклонен
    ACTIVE = "active"
    HOT = "hot"  # Осталось меньше AUCTION_HOT_HOURS
    ENDING = "ending"  # Осталось меньше AUCTION_ENDING_SOON_HOURS
    ENDED = "ended"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Привести datetime к UTC. Наивные значения (SQLite) считаются UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _status_value(status) -> str:
    return status.value if isinstance(status, ListingStatus) else status


def is_auction_live(status, auction_end_time: Optional[datetime], now: datetime) -> bool:
    """Принимает ли лот ставки в момент now"""
    if _status_value(status) != ListingStatus.APPROVED.value or auction_end_time is None:
        return False
    return as_utc(now) < as_utc(auction_end_time)


def is_auction_ended(status, auction_end_time: Optional[datetime], now: datetime) -> bool:
    """Аукцион завершен: лот продан или одобрен и время вышло"""
    status = _status_value(status)
    if status == ListingStatus.SOLD.value:
        return True
    if status != ListingStatus.APPROVED.value or auction_end_time is None:
        return False
    return as_utc(now) >= as_utc(auction_end_time)


def hours_left(auction_end_time: Optional[datetime], now: datetime) -> Optional[float]:
    """Сколько часов осталось до завершения (отрицательное - уже завершен)"""
    if auction_end_time is None:
        return None
    delta = as_utc(auction_end_time) - as_utc(now)
    return delta.total_seconds() / 3600


def derive_display_status(
    status,
    auction_end_time: Optional[datetime],
    now: datetime,
    ending_soon_hours: Optional[float] = None,
    hot_hours: Optional[float] = None,
) -> AuctionDisplayStatus:
    """Вычислить статус аукциона для отображения"""
    if ending_soon_hours is None:
        ending_soon_hours = settings.AUCTION_ENDING_SOON_HOURS
    if hot_hours is None:
        hot_hours = settings.AUCTION_HOT_HOURS

    if is_auction_ended(status, auction_end_time, now):
        return AuctionDisplayStatus.ENDED
    if not is_auction_live(status, auction_end_time, now):
        return AuctionDisplayStatus.NOT_LIVE

    remaining = as_utc(auction_end_time) - as_utc(now)
    if remaining < timedelta(hours=ending_soon_hours):
        return AuctionDisplayStatus.ENDING
    if remaining < timedelta(hours=hot_hours):
        return AuctionDisplayStatus.HOT
    return AuctionDisplayStatus.ACTIVE


def pick_winning_bid(bids: Iterable):
    """Выигрышная ставка: максимальная сумма, при равенстве - самая ранняя"""
    winner = None
    for bid in bids:
        if winner is None:
            winner = bid
            continue
        if bid.amount > winner.amount:
            winner = bid
        elif bid.amount == winner.amount and as_utc(bid.created_at) < as_utc(winner.created_at):
            winner = bid
    return winner


def compute_auction_end_time(
    now: datetime,
    duration_days: int,
    requested_end_time: Optional[datetime] = None,
) -> datetime:
    """Время завершения: запрошенное (если в будущем) или now + duration_days"""
    now = as_utc(now)
    if requested_end_time is not None:
        requested_end_time = as_utc(requested_end_time)
        if requested_end_time > now:
            return requested_end_time
    return now + timedelta(days=duration_days)
