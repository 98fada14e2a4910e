"""
Integration tests for bidder history and seller earnings.
"""

from decimal import Decimal

import pytest

from services.bidding import place_bid
from services.errors import ValidationError
from services.listings import mark_sold, create_listing
from services.projections import (
    BidOutcome,
    get_bidder_history,
    get_seller_earnings,
    verify_listing_consistency,
)

from helpers import at


@pytest.fixture
async def market(session, make_live_listing, buyers):
    """Three listings: one live (3 days), one won and one lost (both ended)."""
    alice, bob = buyers[:2]
    won = await make_live_listing(duration_days=1)
    lost = await make_live_listing(duration_days=1)
    live = await make_live_listing(duration_days=3)

    await place_bid(session, won.id, alice.id, "150", now=at(1))
    await place_bid(session, lost.id, alice.id, "120", now=at(2))
    await place_bid(session, lost.id, bob.id, "130", now=at(3))
    await place_bid(session, live.id, alice.id, "300", now=at(4))
    return {"won": won, "lost": lost, "live": live, "alice": alice, "bob": bob}


class TestBidderHistory:
    """Tests for get_bidder_history."""

    async def test_statuses_and_analytics(self, session, market):
        history = await get_bidder_history(session, market["alice"].id, now=at(30))

        by_listing = {row.listing_id: row.bid_status for row in history.rows}
        assert by_listing[market["won"].id] == BidOutcome.WON
        assert by_listing[market["lost"].id] == BidOutcome.LOST
        assert by_listing[market["live"].id] == BidOutcome.ACTIVE

        assert history.total == 3
        assert history.won_bids == 1
        assert history.lost_bids == 1
        assert history.active_bids == 1
        assert history.total_amount_bid == Decimal("570.00")
        assert history.win_rate == pytest.approx(33.33)

    async def test_newest_first(self, session, market):
        history = await get_bidder_history(session, market["alice"].id, now=at(30))
        dates = [row.bid_date for row in history.rows]
        assert dates == sorted(dates, reverse=True)

    async def test_everything_active_before_deadline(self, session, market):
        history = await get_bidder_history(session, market["alice"].id, now=at(5))
        assert {row.bid_status for row in history.rows} == {BidOutcome.ACTIVE}

    async def test_status_filter(self, session, market):
        history = await get_bidder_history(session, market["alice"].id, status="won", now=at(30))
        assert [row.listing_id for row in history.rows] == [market["won"].id]
        assert history.total == 1

    async def test_pagination(self, session, market):
        history = await get_bidder_history(session, market["alice"].id, page=2, limit=2, now=at(30))
        assert len(history.rows) == 1
        assert history.total == 3
        assert history.pages == 2

    async def test_unknown_status(self, session, market):
        with pytest.raises(ValidationError):
            await get_bidder_history(session, market["alice"].id, status="winning")

    async def test_empty_history(self, session, buyers):
        history = await get_bidder_history(session, buyers[5].id)
        assert history.rows == []
        assert history.win_rate == 0.0
        assert history.total_amount_bid == Decimal("0.00")


class TestSellerEarnings:
    """Tests for get_seller_earnings."""

    async def test_sold_and_pending(self, session, seller, market):
        await mark_sold(session, market["won"].id, now=at(30))

        earnings = await get_seller_earnings(session, seller.id, now=at(30))
        assert earnings.total_earnings == Decimal("150.00")
        assert earnings.sold_count == 1
        # The listing Alice lost has ended with a winner but is not settled yet
        assert earnings.pending_earnings == Decimal("130.00")
        assert earnings.pending_count == 1
        assert earnings.average_per_sale == Decimal("150.00")
        assert {item["status"] for item in earnings.breakdown} == {"sold", "pending"}
        assert earnings.monthly == [{"month": "2026-03", "earnings": Decimal("150.00"), "sales_count": 1}]

    async def test_live_and_unsold_ignored(self, session, seller, market):
        await create_listing(session, seller.id, "Ждет модерации", "100")
        earnings = await get_seller_earnings(session, seller.id, now=at(5))
        assert earnings.total_earnings == Decimal("0.00")
        assert earnings.pending_earnings == Decimal("0.00")
        assert earnings.breakdown == []

    async def test_unknown_seller(self, session):
        earnings = await get_seller_earnings(session, 777)
        assert earnings.sold_count == 0
        assert earnings.average_per_sale == Decimal("0.00")


class TestConsistency:
    """Cached price must match the bid ledger."""

    async def test_consistent_after_bids(self, session, market):
        for key in ("won", "lost", "live"):
            report = await verify_listing_consistency(session, market[key].id)
            assert report.is_consistent
            assert report.cached_price == report.ledger_price

    async def test_no_bids_price_is_starting_price(self, session, make_live_listing):
        listing = await make_live_listing(starting_price="99.99")
        report = await verify_listing_consistency(session, listing.id)
        assert report.ledger_price == Decimal("99.99")
        assert report.ledger_bidder is None
        assert report.is_consistent

    async def test_detects_drift(self, session, make_live_listing, buyers):
        listing = await make_live_listing()
        await place_bid(session, listing.id, buyers[0].id, "150", now=at(1))

        listing.current_price = Decimal("999.00")
        await session.commit()

        report = await verify_listing_consistency(session, listing.id)
        assert not report.is_consistent
