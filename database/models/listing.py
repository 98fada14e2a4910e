"""Модель лота"""
from sqlalchemy import Column, BigInteger, String, Text, Integer, Numeric, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum
from database.connection import Base


class ListingStatus(str, enum.Enum):
    """Статус лота"""
    PENDING = "pending"  # Ожидает модерации
    APPROVED = "approved"  # Одобрен, идет аукцион
    REJECTED = "rejected"  # Отклонен (терминальный)
    SOLD = "sold"  # Продан (расчет завершен)


class Listing(Base):
    """Модель лота на аукционе"""
    __tablename__ = "listings"
    __table_args__ = (
        CheckConstraint("current_price >= starting_price", name="ck_listings_price_floor"),
        CheckConstraint("starting_price > 0", name="ck_listings_starting_price_positive"),
    )

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    # NULL - товар компании, иначе - товар продавца
    owner_id = Column(BigInteger, ForeignKey("users.id"), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    starting_price = Column(Numeric(12, 2), nullable=False)  # Начальная цена
    current_price = Column(Numeric(12, 2), nullable=False)  # Текущая цена, кэш от ставок
    highest_bidder_id = Column(BigInteger, ForeignKey("users.id"), nullable=True, index=True)
    total_bids = Column(Integer, default=0, nullable=False)
    status = Column(String(50), default=ListingStatus.PENDING.value, nullable=False, index=True)
    rejection_reason = Column(Text, nullable=True)  # Причина отклонения
    duration_days = Column(Integer, nullable=False)  # 1-3 дня
    auction_end_time = Column(DateTime(timezone=True), nullable=True, index=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    sold_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    # Связи
    owner = relationship("User", foreign_keys=[owner_id])
    highest_bidder = relationship("User", foreign_keys=[highest_bidder_id])
    bids = relationship("Bid", back_populates="listing", order_by="Bid.created_at.asc()")

    @property
    def is_house_listing(self) -> bool:
        """Товар компании (без продавца)"""
        return self.owner_id is None
