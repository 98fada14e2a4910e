"""
Integration tests for listing management.
"""

from decimal import Decimal

import pytest

from database.models.user import UserRole
from services.bidding import place_bid
from services.errors import InvalidState, NotFound, ValidationError
from services.listings import (
    create_listing,
    delete_listing,
    get_listing,
    get_winning_bid,
    list_completed_auctions,
    list_live_auctions,
    list_pending_listings,
    mark_sold,
)
from services.moderation import reject_listing
from services.user import create_user, migrate_legacy_roles, get_user

from helpers import at


class TestCreateListing:
    """Tests for create_listing."""

    async def test_starts_pending_at_starting_price(self, session, seller):
        listing = await create_listing(session, seller.id, "  Розы  ", "250.50", duration_days=2)
        assert listing.status == "pending"
        assert listing.title == "Розы"
        assert listing.starting_price == Decimal("250.50")
        assert listing.current_price == listing.starting_price
        assert listing.highest_bidder_id is None
        assert listing.total_bids == 0
        assert listing.auction_end_time is None

    async def test_house_listing(self, session):
        listing = await create_listing(session, None, "Подарок", "10")
        assert listing.is_house_listing

    @pytest.mark.parametrize("duration", [0, 4, -1])
    async def test_duration_bounds(self, session, seller, duration):
        with pytest.raises(ValidationError):
            await create_listing(session, seller.id, "Розы", "100", duration_days=duration)

    async def test_default_duration(self, session, seller):
        listing = await create_listing(session, seller.id, "Розы", "100")
        assert listing.duration_days == 1

    async def test_blank_title(self, session, seller):
        with pytest.raises(ValidationError):
            await create_listing(session, seller.id, "   ", "100")

    async def test_non_positive_price(self, session, seller):
        with pytest.raises(ValidationError):
            await create_listing(session, seller.id, "Розы", "0")


class TestDeleteListing:
    """Tests for delete_listing."""

    async def test_pending_deleted(self, session, seller):
        listing = await create_listing(session, seller.id, "Розы", "100")
        await delete_listing(session, listing.id)
        with pytest.raises(NotFound):
            await get_listing(session, listing.id)

    async def test_approved_needs_force(self, session, make_live_listing):
        listing = await make_live_listing()
        with pytest.raises(InvalidState):
            await delete_listing(session, listing.id)
        await delete_listing(session, listing.id, force=True)
        with pytest.raises(NotFound):
            await get_listing(session, listing.id)

    async def test_listing_with_bids_never_deleted(self, session, make_live_listing, buyers):
        listing = await make_live_listing()
        await place_bid(session, listing.id, buyers[0].id, "150", now=at(1))
        with pytest.raises(InvalidState):
            await delete_listing(session, listing.id, force=True)


class TestQueries:
    """Tests for listing queries."""

    async def test_live_and_completed(self, session, seller, make_live_listing):
        short = await make_live_listing(duration_days=1)
        long = await make_live_listing(duration_days=3)
        await create_listing(session, seller.id, "Ждет модерации", "100")

        live = await list_live_auctions(session, now=at(1))
        assert [listing.id for listing in live] == [short.id, long.id]

        live = await list_live_auctions(session, now=at(30))
        assert [listing.id for listing in live] == [long.id]

        completed, total = await list_completed_auctions(session, now=at(30))
        assert total == 1
        assert [listing.id for listing in completed] == [short.id]

    async def test_pending_house_only(self, session, seller):
        await create_listing(session, seller.id, "Продавца", "100")
        house = await create_listing(session, None, "Компании", "100")

        assert len(await list_pending_listings(session)) == 2
        assert [listing.id for listing in await list_pending_listings(session, house_only=True)] == [house.id]


class TestWinnerAndSale:
    """Tests for get_winning_bid and mark_sold."""

    async def test_winner_unavailable_while_live(self, session, make_live_listing):
        listing = await make_live_listing()
        with pytest.raises(InvalidState):
            await get_winning_bid(session, listing.id, now=at(1))

    async def test_winner_is_highest_bidder(self, session, make_live_listing, buyers):
        listing = await make_live_listing()
        await place_bid(session, listing.id, buyers[0].id, "150", now=at(1))
        await place_bid(session, listing.id, buyers[1].id, "175", now=at(2))
        await place_bid(session, listing.id, buyers[0].id, "180", now=at(3))

        bid = await get_winning_bid(session, listing.id, now=at(24))
        assert bid.bidder_id == buyers[0].id
        assert bid.amount == Decimal("180.00")

        listing = await get_listing(session, listing.id)
        assert listing.highest_bidder_id == bid.bidder_id

    async def test_no_bids_no_winner(self, session, make_live_listing):
        listing = await make_live_listing()
        assert await get_winning_bid(session, listing.id, now=at(24)) is None

    async def test_mark_sold(self, session, make_live_listing, buyers):
        listing = await make_live_listing()
        await place_bid(session, listing.id, buyers[0].id, "150", now=at(1))

        with pytest.raises(InvalidState):
            await mark_sold(session, listing.id, now=at(2))

        sold = await mark_sold(session, listing.id, now=at(25))
        assert sold.status == "sold"
        assert sold.current_price == Decimal("150.00")

        with pytest.raises(InvalidState):
            await mark_sold(session, listing.id, now=at(26))

    async def test_mark_sold_requires_winner(self, session, make_live_listing):
        listing = await make_live_listing()
        with pytest.raises(InvalidState):
            await mark_sold(session, listing.id, now=at(25))

    async def test_mark_sold_rejected(self, session, seller):
        listing = await create_listing(session, seller.id, "Розы", "100")
        await reject_listing(session, listing.id)
        with pytest.raises(InvalidState):
            await mark_sold(session, listing.id, now=at(25))


class TestRoleMigration:
    """Legacy role names are rewritten once."""

    async def test_migrate_legacy_roles(self, session):
        legacy_admin = await create_user(session, UserRole.BUYER)
        legacy_seller = await create_user(session, UserRole.BUYER)
        legacy_admin.role = "admin"
        legacy_seller.role = "seller_products"
        await session.commit()

        assert await migrate_legacy_roles(session) == 2
        await session.refresh(legacy_admin)
        await session.refresh(legacy_seller)
        assert legacy_admin.role == "superadmin"
        assert legacy_seller.role == "seller"

        assert await migrate_legacy_roles(session) == 0

    async def test_get_user_not_found(self, session):
        with pytest.raises(NotFound):
            await get_user(session, 4242)
