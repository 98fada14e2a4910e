"""Обработчики ставок"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import Caller, get_caller, get_session, ensure_can_bid
from api.schemas import BidCreate, BidOut, BidPlaced
from services.bidding import place_bid, get_bids_for_listing
from services.clock import as_utc
from services.listings import get_listing

router = APIRouter(prefix="/listings", tags=["bids"])


@router.post("/{listing_id}/bids", response_model=BidPlaced, status_code=201)
async def create_bid(
    listing_id: int,
    payload: BidCreate,
    session: AsyncSession = Depends(get_session),
    caller: Caller = Depends(get_caller),
):
    """Сделать ставку от имени вызывающего"""
    ensure_can_bid(caller)
    bid = await place_bid(session, listing_id, caller.id, payload.amount)
    return BidPlaced(
        bid_id=bid.id,
        listing_id=bid.listing_id,
        new_current_price=bid.amount,
        created_at=as_utc(bid.created_at),
    )


@router.get("/{listing_id}/bids", response_model=list[BidOut])
async def list_bids(listing_id: int, session: AsyncSession = Depends(get_session)):
    await get_listing(session, listing_id)
    bids = await get_bids_for_listing(session, listing_id)
    return [
        BidOut(
            id=bid.id,
            listing_id=bid.listing_id,
            bidder_id=bid.bidder_id,
            amount=bid.amount,
            created_at=as_utc(bid.created_at),
        )
        for bid in bids
    ]
