"""Сервис для отправки уведомлений владельцам лотов через Telegram"""
import logging
from typing import Optional

from aiogram import Bot
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from sqlalchemy import select

from config import settings
from database.connection import async_session_maker
from database.models.listing import Listing, ListingStatus
from database.models.user import User
from services.clock import as_utc

logger = logging.getLogger(__name__)


def create_bot() -> Optional[Bot]:
    """Создать бота для уведомлений. Без BOT_TOKEN уведомления отключены"""
    if not settings.BOT_TOKEN:
        return None
    return Bot(
        token=settings.BOT_TOKEN,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML)
    )


def format_moderation_text(listing: Listing) -> Optional[str]:
    """Текст уведомления о результате модерации"""
    if listing.status == ListingStatus.APPROVED.value:
        ends_at = as_utc(listing.auction_end_time)
        return (
            f"✅ Ваш лот <b>{listing.title}</b> одобрен\n\n"
            f"Стартовая цена: {listing.starting_price}\n"
            f"⏳ Аукцион до: {ends_at:%d.%m.%Y %H:%M} UTC"
        )
    if listing.status == ListingStatus.REJECTED.value:
        text = f"❌ Ваш лот <b>{listing.title}</b> отклонен"
        if listing.rejection_reason:
            text += f"\n\nПричина: {listing.rejection_reason}"
        return text
    return None


async def notify_listing_moderated(bot: Optional[Bot], listing_id: int, session_maker=None) -> bool:
    """Уведомить владельца о результате модерации.

    Вызывается после фиксации перехода. Ошибки только логируются.
    """
    if bot is None:
        return False

    session_maker = session_maker or async_session_maker
    try:
        async with session_maker() as session:
            result = await session.execute(
                select(Listing, User)
                .join(User, Listing.owner_id == User.id)
                .where(Listing.id == listing_id)
            )
            row = result.first()
    except Exception as e:
        logger.error(f"Ошибка чтения лота {listing_id} для уведомления: {e}")
        return False

    if not row:
        # Товар компании или лот уже удален
        return False

    listing, owner = row
    text = format_moderation_text(listing)
    if not text or not owner.telegram_id:
        return False

    try:
        await bot.send_message(owner.telegram_id, text)
    except Exception as e:
        logger.error(f"Ошибка отправки уведомления владельцу лота {listing_id}: {e}")
        return False

    logger.info(f"Владелец лота {listing_id} уведомлен: {listing.status}")
    return True
