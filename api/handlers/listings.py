"""Обработчики лотов и модерации"""
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import Caller, get_caller, get_session, ensure_staff, ensure_can_moderate
from api.schemas import ListingCreate, ListingOut, ListingPage, ApproveRequest, RejectRequest, WinnerOut
from database.models.user import UserRole
from services.clock import utcnow
from services.errors import Forbidden
from services.listings import (
    create_listing,
    get_listing,
    delete_listing,
    list_pending_listings,
    list_live_auctions,
    list_completed_auctions,
    get_winning_bid,
    mark_sold,
)
from services.moderation import approve_listing, reject_listing
from services.notifications import notify_listing_moderated

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/listings", tags=["listings"])


@router.post("", response_model=ListingOut, status_code=201)
async def create(
    payload: ListingCreate,
    session: AsyncSession = Depends(get_session),
    caller: Caller = Depends(get_caller),
):
    """Создать лот: продавец - свой, персонал - товар компании"""
    if caller.role == UserRole.SELLER:
        owner_id = caller.id
    elif caller.role.is_staff:
        owner_id = None
    else:
        raise Forbidden("Создавать лоты могут продавцы и персонал")

    listing = await create_listing(
        session,
        owner_id=owner_id,
        title=payload.title,
        starting_price=payload.starting_price,
        duration_days=payload.duration_days,
        description=payload.description,
    )
    return ListingOut.from_listing(listing, utcnow())


@router.get("/live", response_model=list[ListingOut])
async def live(session: AsyncSession = Depends(get_session)):
    """Идущие аукционы, ближайшие к завершению первыми"""
    now = utcnow()
    return [ListingOut.from_listing(listing, now) for listing in await list_live_auctions(session, now)]


@router.get("/pending", response_model=list[ListingOut])
async def pending(
    session: AsyncSession = Depends(get_session),
    caller: Caller = Depends(get_caller),
):
    ensure_staff(caller)
    now = utcnow()
    listings = await list_pending_listings(session, house_only=caller.role == UserRole.EMPLOYEE)
    return [ListingOut.from_listing(listing, now) for listing in listings]


@router.get("/completed", response_model=ListingPage)
async def completed(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
    caller: Caller = Depends(get_caller),
):
    ensure_staff(caller)
    now = utcnow()
    listings, total = await list_completed_auctions(
        session,
        now,
        house_only=caller.role == UserRole.EMPLOYEE,
        page=page,
        limit=limit,
    )
    return ListingPage(
        items=[ListingOut.from_listing(listing, now) for listing in listings],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/{listing_id}", response_model=ListingOut)
async def get(listing_id: int, session: AsyncSession = Depends(get_session)):
    listing = await get_listing(session, listing_id)
    return ListingOut.from_listing(listing, utcnow())


@router.delete("/{listing_id}", status_code=204)
async def delete(
    listing_id: int,
    session: AsyncSession = Depends(get_session),
    caller: Caller = Depends(get_caller),
):
    listing = await get_listing(session, listing_id)
    if caller.role in (UserRole.SUPERADMIN, UserRole.MODERATOR):
        force = True
    elif caller.role == UserRole.EMPLOYEE:
        ensure_can_moderate(caller, listing)
        force = False
    elif listing.owner_id == caller.id:
        force = False
    else:
        raise Forbidden("Удалить можно только свой лот")

    await delete_listing(session, listing_id, force=force)


@router.post("/{listing_id}/approve", response_model=ListingOut)
async def approve(
    listing_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    payload: ApproveRequest | None = None,
    session: AsyncSession = Depends(get_session),
    caller: Caller = Depends(get_caller),
):
    ensure_can_moderate(caller, await get_listing(session, listing_id))
    listing = await approve_listing(
        session,
        listing_id,
        requested_end_time=payload.auction_end_time if payload else None,
    )
    logger.info(f"Лот {listing_id} одобрен пользователем {caller.id} ({caller.role.value})")

    background_tasks.add_task(
        notify_listing_moderated, request.app.state.bot, listing.id, request.app.state.session_maker
    )
    return ListingOut.from_listing(listing, utcnow())


@router.post("/{listing_id}/reject", response_model=ListingOut)
async def reject(
    listing_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    payload: RejectRequest | None = None,
    session: AsyncSession = Depends(get_session),
    caller: Caller = Depends(get_caller),
):
    ensure_can_moderate(caller, await get_listing(session, listing_id))
    listing = await reject_listing(session, listing_id, reason=payload.reason if payload else None)
    logger.info(f"Лот {listing_id} отклонен пользователем {caller.id} ({caller.role.value})")

    background_tasks.add_task(
        notify_listing_moderated, request.app.state.bot, listing.id, request.app.state.session_maker
    )
    return ListingOut.from_listing(listing, utcnow())


@router.post("/{listing_id}/sold", response_model=ListingOut)
async def sold(
    listing_id: int,
    session: AsyncSession = Depends(get_session),
    caller: Caller = Depends(get_caller),
):
    ensure_can_moderate(caller, await get_listing(session, listing_id))
    listing = await mark_sold(session, listing_id)
    return ListingOut.from_listing(listing, utcnow())


@router.get("/{listing_id}/winner", response_model=WinnerOut)
async def winner(listing_id: int, session: AsyncSession = Depends(get_session)):
    """Победитель завершенного аукциона"""
    bid = await get_winning_bid(session, listing_id)
    listing = await get_listing(session, listing_id)
    return WinnerOut(
        listing_id=listing_id,
        final_price=listing.current_price,
        winner_id=bid.bidder_id if bid else None,
        bid_id=bid.id if bid else None,
    )
