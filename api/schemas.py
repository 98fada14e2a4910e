"""Схемы запросов и ответов HTTP API"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from database.models.listing import Listing
from services.clock import as_utc, derive_display_status, hours_left
from services.projections import BidOutcome


class ListingCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    starting_price: Decimal = Field(..., alias="startingPrice")
    duration_days: int = Field(1, alias="duration")

    model_config = ConfigDict(populate_by_name=True)


class ApproveRequest(BaseModel):
    auction_end_time: Optional[datetime] = Field(None, alias="auctionEndTime")

    model_config = ConfigDict(populate_by_name=True)


class RejectRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=2000)


class BidCreate(BaseModel):
    amount: Decimal


class ListingOut(BaseModel):
    id: int
    owner_id: Optional[int]
    title: str
    description: Optional[str]
    starting_price: Decimal
    current_price: Decimal
    highest_bidder_id: Optional[int]
    total_bids: int
    status: str
    rejection_reason: Optional[str]
    duration_days: int
    auction_end_time: Optional[datetime]
    approved_at: Optional[datetime]
    sold_at: Optional[datetime]
    created_at: Optional[datetime]
    display_status: str
    hours_left: Optional[float]

    @classmethod
    def from_listing(cls, listing: Listing, now: datetime) -> "ListingOut":
        return cls(
            id=listing.id,
            owner_id=listing.owner_id,
            title=listing.title,
            description=listing.description,
            starting_price=listing.starting_price,
            current_price=listing.current_price,
            highest_bidder_id=listing.highest_bidder_id,
            total_bids=listing.total_bids or 0,
            status=listing.status,
            rejection_reason=listing.rejection_reason,
            duration_days=listing.duration_days,
            auction_end_time=as_utc(listing.auction_end_time),
            approved_at=as_utc(listing.approved_at),
            sold_at=as_utc(listing.sold_at),
            created_at=as_utc(listing.created_at),
            display_status=derive_display_status(listing.status, listing.auction_end_time, now).value,
            hours_left=hours_left(listing.auction_end_time, now),
        )


class ListingPage(BaseModel):
    items: list[ListingOut]
    total: int
    page: int
    limit: int


class BidOut(BaseModel):
    id: int
    listing_id: int
    bidder_id: int
    amount: Decimal
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BidPlaced(BaseModel):
    bid_id: int
    listing_id: int
    new_current_price: Decimal
    created_at: datetime


class WinnerOut(BaseModel):
    listing_id: int
    final_price: Decimal
    winner_id: Optional[int]
    bid_id: Optional[int]


class BidHistoryRowOut(BaseModel):
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

    model_config = ConfigDict(from_attributes=True)


class BidderAnalytics(BaseModel):
    total_bids: int
    total_amount_bid: Decimal
    active_bids: int
    won_bids: int
    lost_bids: int
    win_rate: float


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    pages: int


class BidderHistoryOut(BaseModel):
    data: list[BidHistoryRowOut]
    analytics: BidderAnalytics
    pagination: Pagination


class EarningsItem(BaseModel):
    listing_id: int
    title: str
    amount: Decimal
    status: str
    sold_date: Optional[datetime]
    buyer_id: Optional[int]


class MonthlyEarnings(BaseModel):
    month: str
    earnings: Decimal
    sales_count: int


class SellerEarningsOut(BaseModel):
    total_earnings: Decimal
    pending_earnings: Decimal
    sold_count: int
    pending_count: int
    average_per_sale: Decimal
    breakdown: list[EarningsItem]
    monthly_earnings: list[MonthlyEarnings]
