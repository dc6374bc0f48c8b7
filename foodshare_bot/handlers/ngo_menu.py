import logging

from aiogram import Bot, Router, F
from aiogram.exceptions import TelegramAPIError
from aiogram.types import Message, CallbackQuery
from sqlalchemy.ext.asyncio import AsyncSession

from foodshare_bot.config import settings
from foodshare_bot.errors import DonationError, PermissionDenied
from foodshare_bot.keyboards import nearby_kb, pickup_actions_kb
from foodshare_bot.services.donations import DonationService
from foodshare_bot.services.locations import LiveLocationSource
from foodshare_bot.services.members import get_member_by_tg_id, set_member_location
from foodshare_bot.services.notifications import DonorNotifier
from foodshare_bot.services.projections import NearbyDonation
from foodshare_bot.services.tracking import TrackingScheduler
from foodshare_bot.utils.format import donation_card, nearby_text
from foodshare_bot.utils.geo import GeoPoint

logger = logging.getLogger(__name__)

router = Router()


def _donation_id(call: CallbackQuery) -> int:
    return int((call.data or "").split(":")[1])


# ---------- Nearby list ----------


@router.message(F.text == "🔎 Nearby donations")
async def nearby(message: Message, bot: Bot, session: AsyncSession, tracker: TrackingScheduler):
    if not message.from_user:
        return
    member = await get_member_by_tg_id(session, message.from_user.id)
    if not member or member.role != "ngo" or member.location is None:
        await message.answer("Only registered NGOs with a location can browse donations. Send /start.")
        return

    chat_id = message.chat.id

    async def push_list(items: list[NearbyDonation]) -> None:
        try:
            await bot.send_message(chat_id, nearby_text(items), reply_markup=nearby_kb(items))
        except TelegramAPIError as e:
            logger.warning("nearby_push_failed chat=%s: %s", chat_id, e)

    # First refresh happens right away, later ones every PENDING_REFRESH_SECONDS
    tracker.watch_nearby(member.tg_id, member.location, settings.DEFAULT_RADIUS_KM, push_list)
    await tracker.refresh_nearby(member.tg_id)
    await message.answer(f"I'll post changes every {settings.PENDING_REFRESH_SECONDS:g} s. «⏹ Stop updates» to stop.")


@router.message(F.text == "⏹ Stop updates")
async def stop_updates(message: Message, tracker: TrackingScheduler):
    if not message.from_user:
        return
    tracker.stop_watching(message.from_user.id)
    await message.answer("Updates stopped.")


# ---------- Commands on donations ----------


@router.callback_query(F.data.startswith("ngo_accept:"))
async def accept(call: CallbackQuery, session: AsyncSession, donations: DonationService, notifier: DonorNotifier):
    member = await get_member_by_tg_id(session, call.from_user.id)
    if not member or member.role != "ngo" or member.location is None:
        await call.answer("Register as an NGO first.", show_alert=True)
        return
    try:
        donation = await donations.accept_donation(_donation_id(call), member.tg_id, member.name, member.location)
    except DonationError as e:
        await call.answer(f"Not available any more: {e}", show_alert=True)
        return
    await call.answer("Accepted!")
    await call.message.answer(donation_card(donation), reply_markup=pickup_actions_kb(donation))  # type: ignore[union-attr]
    await notifier.status_changed(donation)


async def _own_pickup(call: CallbackQuery, donations: DonationService) -> int:
    donation_id = _donation_id(call)
    donation = await donations.get(donation_id)
    if donation.acceptor_id != call.from_user.id:
        raise PermissionDenied(donation_id, call.from_user.id)
    return donation_id


@router.callback_query(F.data.startswith("ngo_start:"))
async def start_pickup(call: CallbackQuery, donations: DonationService, notifier: DonorNotifier):
    try:
        donation = await donations.start_pickup(await _own_pickup(call, donations))
    except DonationError as e:
        await call.answer(str(e), show_alert=True)
        return
    await call.answer("Tracking started")
    await call.message.edit_text(  # type: ignore[union-attr]
        donation_card(donation) + "\n\nShare your live location so the donor can follow you.",
        reply_markup=pickup_actions_kb(donation, tracking=donations.is_tracking(donation.id)),  # type: ignore[arg-type]
    )
    await notifier.status_changed(donation)


@router.callback_query(F.data.startswith("ngo_done:"))
async def complete_pickup(call: CallbackQuery, donations: DonationService, notifier: DonorNotifier):
    try:
        donation = await donations.complete_pickup(await _own_pickup(call, donations))
    except DonationError as e:
        await call.answer(str(e), show_alert=True)
        return
    await call.answer("Great job!")
    await call.message.edit_text(donation_card(donation))  # type: ignore[union-attr]
    await notifier.status_changed(donation)


@router.callback_query(F.data.startswith("ngo_cancel:"))
async def cancel_pickup(call: CallbackQuery, donations: DonationService, notifier: DonorNotifier):
    try:
        donation = await donations.cancel_donation(await _own_pickup(call, donations))
    except DonationError as e:
        await call.answer(str(e), show_alert=True)
        return
    await call.answer("Cancelled")
    await call.message.edit_text(donation_card(donation))  # type: ignore[union-attr]
    await notifier.status_changed(donation)


@router.callback_query(F.data.startswith("ngo_pause:"))
async def pause_tracking(call: CallbackQuery, donations: DonationService):
    try:
        donation = await donations.pause_tracking(await _own_pickup(call, donations))
    except DonationError as e:
        await call.answer(str(e), show_alert=True)
        return
    await call.answer("Tracking paused, the donor sees your last position")
    await call.message.edit_reply_markup(reply_markup=pickup_actions_kb(donation, tracking=False))  # type: ignore[union-attr]


@router.callback_query(F.data.startswith("ngo_resume:"))
async def resume_tracking(call: CallbackQuery, donations: DonationService):
    try:
        donation = await donations.resume_tracking(await _own_pickup(call, donations))
    except DonationError as e:
        await call.answer(str(e), show_alert=True)
        return
    await call.answer("Tracking resumed")
    await call.message.edit_reply_markup(reply_markup=pickup_actions_kb(donation, tracking=True))  # type: ignore[union-attr]


@router.message(F.text == "🚚 My pickups")
async def my_pickups(message: Message, donations: DonationService):
    if not message.from_user:
        return
    accepted = await donations.list_accepted(message.from_user.id)
    if not accepted:
        await message.answer("You haven't accepted any donations yet.")
        return
    for d in accepted[:10]:
        await message.answer(donation_card(d), reply_markup=pickup_actions_kb(d, tracking=donations.is_tracking(d.id)))  # type: ignore[arg-type]


# ---------- Live location ----------


async def _location_fix(
    message: Message,
    session: AsyncSession,
    tracker: TrackingScheduler,
    live_locations: LiveLocationSource,
) -> bool:
    if not message.from_user or not message.location:
        return False
    member = await get_member_by_tg_id(session, message.from_user.id)
    if not member or member.role != "ngo":
        return False
    point = GeoPoint(message.location.latitude, message.location.longitude)
    try:
        await set_member_location(session, member.tg_id, point)
    except DonationError as e:
        logger.warning("bad_location_fix member=%s: %s", member.tg_id, e)
        return False
    live_locations.push(member.tg_id, point)
    tracker.update_observer_location(member.tg_id, point)
    return True


@router.message(F.location)
async def location_message(message: Message, session: AsyncSession, tracker: TrackingScheduler, live_locations: LiveLocationSource):
    saved = await _location_fix(message, session, tracker, live_locations)
    if saved and message.location and not message.location.live_period:
        await message.answer("Location saved 📍")


@router.edited_message(F.location)
async def live_location_update(message: Message, session: AsyncSession, tracker: TrackingScheduler, live_locations: LiveLocationSource):
    await _location_fix(message, session, tracker, live_locations)
