"""
Unit tests for error taxonomy and money parsing.
"""

from decimal import Decimal

import pytest

from database.models.user import UserRole
from services.errors import (
    AuctionNotActive,
    BidTooLow,
    Conflict,
    Forbidden,
    InvalidState,
    SelfBid,
    ValidationError,
)
from services.listings import to_money


class TestErrors:
    """Error codes drive client behaviour and must stay distinct."""

    def test_rejected_bid_codes_are_distinct(self):
        codes = {AuctionNotActive.code, BidTooLow.code, SelfBid.code}
        assert len(codes) == 3

    def test_hierarchy(self):
        assert issubclass(BidTooLow, Conflict)
        assert issubclass(AuctionNotActive, InvalidState)
        assert issubclass(SelfBid, Forbidden)

    def test_bid_too_low_payload(self):
        error = BidTooLow(Decimal("150.00"), Decimal("150.00"))
        payload = error.to_dict()
        assert payload["code"] == "bid_too_low"
        assert payload["current_price"] == "150.00"
        assert payload["success"] is False
        assert error.status_code == 409


class TestToMoney:
    """Tests for to_money."""

    def test_int_and_string(self):
        assert to_money(150) == Decimal("150.00")
        assert to_money("150.5") == Decimal("150.50")

    def test_float_rejected(self):
        with pytest.raises(ValidationError):
            to_money(150.5)

    @pytest.mark.parametrize("value", ["0", "-1", "abc", "1.001", "NaN"])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            to_money(value)


class TestUserRole:
    """Roles form a closed set; legacy names are not aliased at runtime."""

    def test_parse_normalizes(self):
        assert UserRole.parse(" Moderator ") == UserRole.MODERATOR

    @pytest.mark.parametrize("legacy", ["admin", "seller_products", ""])
    def test_parse_rejects_unknown(self, legacy):
        with pytest.raises(ValueError):
            UserRole.parse(legacy)

    def test_staff(self):
        assert UserRole.EMPLOYEE.is_staff
        assert not UserRole.SELLER.is_staff
