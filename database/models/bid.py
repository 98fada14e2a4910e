"""Модель ставки"""
from sqlalchemy import Column, BigInteger, Integer, Numeric, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from database.connection import Base


class Bid(Base):
    """Модель ставки на лот. Строки только добавляются, никогда не меняются"""
    __tablename__ = "bids"
    __table_args__ = (
        # Две принятые ставки с одинаковой суммой на один лот невозможны
        UniqueConstraint("listing_id", "amount", name="uq_bids_listing_amount"),
    )

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    listing_id = Column(BigInteger, ForeignKey("listings.id"), nullable=False, index=True)
    bidder_id = Column(BigInteger, ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)  # Сумма ставки
    # Проставляется приложением внутри транзакции, чтобы порядок совпадал с порядком фиксации
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)

    # Связи
    listing = relationship("Listing", back_populates="bids")
    bidder = relationship("User")
