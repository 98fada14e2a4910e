"""Обработчики отчетов: история ставок и заработок продавца"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import Caller, get_caller, get_session, ensure_self_or_staff
from api.schemas import (
    BidderHistoryOut,
    BidHistoryRowOut,
    BidderAnalytics,
    Pagination,
    SellerEarningsOut,
    EarningsItem,
    MonthlyEarnings,
)
from services.projections import get_bidder_history, get_seller_earnings

router = APIRouter(tags=["reports"])


@router.get("/bidders/{bidder_id}/history", response_model=BidderHistoryOut)
async def bidder_history(
    bidder_id: int,
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
    caller: Caller = Depends(get_caller),
):
    ensure_self_or_staff(caller, bidder_id)
    history = await get_bidder_history(session, bidder_id, status=status, page=page, limit=limit)
    return BidderHistoryOut(
        data=[BidHistoryRowOut.model_validate(row) for row in history.rows],
        analytics=BidderAnalytics(
            total_bids=history.total,
            total_amount_bid=history.total_amount_bid,
            active_bids=history.active_bids,
            won_bids=history.won_bids,
            lost_bids=history.lost_bids,
            win_rate=history.win_rate,
        ),
        pagination=Pagination(
            total=history.total,
            page=history.page,
            limit=history.limit,
            pages=history.pages,
        ),
    )


@router.get("/sellers/{seller_id}/earnings", response_model=SellerEarningsOut)
async def seller_earnings(
    seller_id: int,
    session: AsyncSession = Depends(get_session),
    caller: Caller = Depends(get_caller),
):
    ensure_self_or_staff(caller, seller_id)
    earnings = await get_seller_earnings(session, seller_id)
    return SellerEarningsOut(
        total_earnings=earnings.total_earnings,
        pending_earnings=earnings.pending_earnings,
        sold_count=earnings.sold_count,
        pending_count=earnings.pending_count,
        average_per_sale=earnings.average_per_sale,
        breakdown=[EarningsItem(**item) for item in earnings.breakdown],
        monthly_earnings=[MonthlyEarnings(**item) for item in earnings.monthly],
    )
