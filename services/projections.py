"""Отчеты по ставкам и продажам: история участника, заработок продавца.

Только чтение. Отсутствующие значения (NULL) считаются нулем.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional
import enum

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from database.models.bid import Bid
from database.models.listing import Listing, ListingStatus
from services.clock import utcnow, as_utc, hours_left, is_auction_ended, pick_winning_bid
from services.errors import ValidationError
from services.listings import get_listing

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


class BidOutcome(str, enum.Enum):
    """Статус ставки в истории участника"""
    ACTIVE = "active"  # Аукцион идет
    WON = "won"
    LOST = "lost"
    ENDED = "ended"  # Аукцион не состоялся (отклонен или без победителя)


@dataclass
class BidHistoryRow:
    bid_id: int
    amount: Decimal
    bid_date: datetime
    listing_id: int
    listing_title: Optional[str]
    listing_status: Optional[str]
    auction_end_time: Optional[datetime]
    current_highest_bid: Decimal
    highest_bidder_id: Optional[int]
    bid_status: BidOutcome
    hours_left: Optional[float]


@dataclass
class BidderHistory:
    rows: list[BidHistoryRow]
    total: int
    page: int
    limit: int
    total_amount_bid: Decimal
    active_bids: int
    won_bids: int
    lost_bids: int
    win_rate: float

    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0


@dataclass
class SellerEarnings:
    total_earnings: Decimal = ZERO
    pending_earnings: Decimal = ZERO
    sold_count: int = 0
    pending_count: int = 0
    breakdown: list[dict] = field(default_factory=list)
    monthly: list[dict] = field(default_factory=list)

    @property
    def average_per_sale(self) -> Decimal:
        if not self.sold_count:
            return ZERO
        return (self.total_earnings / self.sold_count).quantize(Decimal("0.01"))


def classify_bid(bid: Bid, listing: Optional[Listing], now: datetime) -> BidOutcome:
    """Определить статус ставки участника по состоянию лота"""
    if listing is None:
        return BidOutcome.ENDED
    if listing.status == ListingStatus.APPROVED.value and not is_auction_ended(
        listing.status, listing.auction_end_time, now
    ):
        return BidOutcome.ACTIVE
    if not is_auction_ended(listing.status, listing.auction_end_time, now):
        return BidOutcome.ENDED
    if listing.highest_bidder_id is None:
        return BidOutcome.ENDED
    if listing.highest_bidder_id == bid.bidder_id:
        return BidOutcome.WON
    return BidOutcome.LOST


async def get_bidder_history(
    session: AsyncSession,
    bidder_id: int,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    now: Optional[datetime] = None,
) -> BidderHistory:
    """История ставок участника с фильтром по статусу и пагинацией"""
    now = as_utc(now) if now else utcnow()
    if status is not None:
        try:
            status = BidOutcome(status)
        except ValueError:
            raise ValidationError(f"Неизвестный статус ставки: {status}")
    if page < 1 or limit < 1:
        raise ValidationError("page и limit должны быть положительными")

    result = await session.execute(
        select(Bid, Listing)
        .outerjoin(Listing, Bid.listing_id == Listing.id)
        .where(Bid.bidder_id == bidder_id)
        .order_by(Bid.created_at.desc(), Bid.id.desc())
    )

    rows: list[BidHistoryRow] = []
    for bid, listing in result.all():
        outcome = classify_bid(bid, listing, now)
        rows.append(BidHistoryRow(
            bid_id=bid.id,
            amount=bid.amount or ZERO,
            bid_date=as_utc(bid.created_at),
            listing_id=bid.listing_id,
            listing_title=listing.title if listing else None,
            listing_status=listing.status if listing else None,
            auction_end_time=as_utc(listing.auction_end_time) if listing else None,
            current_highest_bid=(listing.current_price if listing else None) or ZERO,
            highest_bidder_id=listing.highest_bidder_id if listing else None,
            bid_status=outcome,
            hours_left=hours_left(listing.auction_end_time, now) if listing else None,
        ))

    if status is not None:
        rows = [row for row in rows if row.bid_status == status]

    total = len(rows)
    won = sum(1 for row in rows if row.bid_status == BidOutcome.WON)
    history = BidderHistory(
        rows=rows[(page - 1) * limit:page * limit],
        total=total,
        page=page,
        limit=limit,
        total_amount_bid=sum((row.amount for row in rows), ZERO),
        active_bids=sum(1 for row in rows if row.bid_status == BidOutcome.ACTIVE),
        won_bids=won,
        lost_bids=sum(1 for row in rows if row.bid_status == BidOutcome.LOST),
        win_rate=round(won / total * 100, 2) if total else 0.0,
    )
    return history


async def get_seller_earnings(
    session: AsyncSession,
    seller_id: int,
    now: Optional[datetime] = None,
) -> SellerEarnings:
    """Заработок продавца: проданные лоты и ожидающие расчета"""
    now = as_utc(now) if now else utcnow()
    result = await session.execute(
        select(Listing)
        .where(
            Listing.owner_id == seller_id,
            Listing.status.in_([ListingStatus.SOLD.value, ListingStatus.APPROVED.value])
        )
    )

    earnings = SellerEarnings()
    monthly: dict[str, dict] = {}
    year_ago = now - timedelta(days=365)

    for listing in result.scalars().all():
        price = listing.current_price or ZERO
        ended_at = as_utc(listing.auction_end_time)

        if listing.status == ListingStatus.SOLD.value:
            earnings.total_earnings += price
            earnings.sold_count += 1
            sale_state = "sold"
            if ended_at and ended_at >= year_ago:
                month = ended_at.strftime("%Y-%m")
                bucket = monthly.setdefault(month, {"month": month, "earnings": ZERO, "sales_count": 0})
                bucket["earnings"] += price
                bucket["sales_count"] += 1
        elif is_auction_ended(listing.status, listing.auction_end_time, now) and listing.highest_bidder_id:
            earnings.pending_earnings += price
            earnings.pending_count += 1
            sale_state = "pending"
        else:
            continue

        earnings.breakdown.append({
            "listing_id": listing.id,
            "title": listing.title,
            "amount": price,
            "status": sale_state,
            "sold_date": ended_at,
            "buyer_id": listing.highest_bidder_id,
        })

    earnings.breakdown.sort(key=lambda item: item["sold_date"] or now, reverse=True)
    earnings.monthly = sorted(monthly.values(), key=lambda item: item["month"], reverse=True)
    return earnings


@dataclass
class ConsistencyReport:
    listing_id: int
    bids_count: int
    cached_price: Decimal
    ledger_price: Decimal
    cached_bidder: Optional[int]
    ledger_bidder: Optional[int]
    cached_total_bids: int
    strictly_increasing: bool

    @property
    def is_consistent(self) -> bool:
        return (
            self.cached_price == self.ledger_price
            and self.cached_bidder == self.ledger_bidder
            and self.cached_total_bids == self.bids_count
            and self.strictly_increasing
        )


async def verify_listing_consistency(session: AsyncSession, listing_id: int) -> ConsistencyReport:
    """Сверить кэш цены на лоте с журналом ставок"""
    listing = await get_listing(session, listing_id)
    result = await session.execute(
        select(Bid)
        .where(Bid.listing_id == listing_id)
        .order_by(Bid.created_at.asc(), Bid.id.asc())
    )
    bids = list(result.scalars().all())

    increasing = all(prev.amount < nxt.amount for prev, nxt in zip(bids, bids[1:]))
    winner = pick_winning_bid(bids)

    report = ConsistencyReport(
        listing_id=listing_id,
        bids_count=len(bids),
        cached_price=listing.current_price,
        ledger_price=winner.amount if winner else listing.starting_price,
        cached_bidder=listing.highest_bidder_id,
        ledger_bidder=winner.bidder_id if winner else None,
        cached_total_bids=listing.total_bids or 0,
        strictly_increasing=increasing,
    )
    if not report.is_consistent:
        logger.error(f"Лот {listing_id}: кэш цены расходится с журналом ставок: {report}")
    return report
