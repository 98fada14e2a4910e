"""Модель пользователя"""
from sqlalchemy import Column, BigInteger, String, DateTime, Boolean, Integer
from sqlalchemy.sql import func
import enum
from database.connection import Base


class UserRole(str, enum.Enum):
    """Роль пользователя"""
    SUPERADMIN = "superadmin"
    MODERATOR = "moderator"
    EMPLOYEE = "employee"  # Работает только с товарами компании
    SELLER = "seller"
    BUYER = "buyer"

    @classmethod
    def parse(cls, value: str) -> "UserRole":
        """Разобрать строку роли. Неизвестные и устаревшие имена не принимаются"""
        return cls((value or "").strip().lower())

    @property
    def is_staff(self) -> bool:
        return self in STAFF_ROLES


STAFF_ROLES = frozenset({UserRole.SUPERADMIN, UserRole.MODERATOR, UserRole.EMPLOYEE})

# Устаревшие имена ролей -> актуальные. Применяется один раз миграцией
# services.user.migrate_legacy_roles, в обработке запросов не используется
LEGACY_ROLE_ALIASES = {
    "admin": UserRole.SUPERADMIN.value,
    "seller_products": UserRole.SELLER.value,
}


class User(Base):
    """Модель пользователя"""
    __tablename__ = "users"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    role = Column(String(50), default=UserRole.BUYER.value, nullable=False, index=True)
    telegram_id = Column(BigInteger, unique=True, nullable=True, index=True)  # Для уведомлений
    name = Column(String(255), nullable=True)
    bids_count = Column(Integer, default=0, nullable=False)  # Счетчик ставок (не источник истины)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)
