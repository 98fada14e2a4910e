"""Модели базы данных"""
from .user import User, UserRole
from .listing import Listing, ListingStatus
from .bid import Bid
from .schema_version import SchemaVersion

__all__ = [
    "User",
    "UserRole",
    "Listing",
    "ListingStatus",
    "Bid",
    "SchemaVersion",
]
