import os
import re
from tempfile import NamedTemporaryFile

from aiogram import Router, F
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import StatesGroup, State
from aiogram.types import Message, CallbackQuery, FSInputFile
from sqlalchemy.ext.asyncio import AsyncSession

from foodshare_bot.errors import DonationError, PermissionDenied
from foodshare_bot.keyboards import donor_menu_kb, location_request_kb, donation_actions_kb
from foodshare_bot.services.donations import DonationService
from foodshare_bot.services.lifecycle import EDITABLE_FIELDS
from foodshare_bot.services.members import get_member_by_tg_id
from foodshare_bot.services.notifications import DonorNotifier
from foodshare_bot.services.reports import export_donor_history, donor_summary
from foodshare_bot.utils.commands import parse_changes
from foodshare_bot.utils.format import donation_card, tracking_text
from foodshare_bot.utils.geo import GeoPoint

router = Router()

# "15", "15 kg", "2.5 litres"
QUANTITY_RE = re.compile(r"^\s*(\d+(?:[.,]\d+)?)\s*([^\d\s].*)?$")


class NewDonationState(StatesGroup):
    waiting_for_food = State()
    waiting_for_quantity = State()
    waiting_for_expiry = State()
    waiting_for_address = State()
    waiting_for_location = State()


# ---------- New donation ----------


@router.message(F.text == "➕ New donation")
async def new_donation(message: Message, state: FSMContext):
    await state.clear()
    await message.answer("What food are you giving away? (e.g. Rice, Chapati, Fresh fruits)")
    await state.set_state(NewDonationState.waiting_for_food)


@router.message(NewDonationState.waiting_for_food)
async def donation_food(message: Message, state: FSMContext):
    if not message.text or not message.text.strip():
        await message.answer("Please describe the food.")
        return
    await state.update_data(food_type=message.text.strip())
    await message.answer("How much? A number, optionally with a unit: «15», «15 kg», «20 plates».")
    await state.set_state(NewDonationState.waiting_for_quantity)


@router.message(NewDonationState.waiting_for_quantity)
async def donation_quantity(message: Message, state: FSMContext):
    match = QUANTITY_RE.match(message.text or "")
    if not match or float(match.group(1).replace(",", ".")) <= 0:
        await message.answer("That doesn't look like a quantity. Try «15» or «15 kg».")
        return
    quantity = float(match.group(1).replace(",", "."))
    unit = (match.group(2) or "units").strip()
    await state.update_data(quantity=quantity, unit=unit)
    await message.answer("In how many hours does it expire?")
    await state.set_state(NewDonationState.waiting_for_expiry)


@router.message(NewDonationState.waiting_for_expiry)
async def donation_expiry(message: Message, state: FSMContext):
    try:
        hours = float((message.text or "").replace(",", "."))
    except ValueError:
        hours = 0
    if hours <= 0:
        await message.answer("Please send a positive number of hours.")
        return
    await state.update_data(expires_in_hours=hours)
    await message.answer("Pickup address (a short description is fine):")
    await state.set_state(NewDonationState.waiting_for_address)


@router.message(NewDonationState.waiting_for_address)
async def donation_address(message: Message, state: FSMContext):
    if not message.text:
        await message.answer("Please type the address.")
        return
    await state.update_data(location_text=message.text.strip())
    await message.answer("Where exactly? Send the location or use the saved one.", reply_markup=location_request_kb)
    await state.set_state(NewDonationState.waiting_for_location)


@router.message(NewDonationState.waiting_for_location, F.location | (F.text == "Use saved location"))
async def donation_location(message: Message, state: FSMContext, session: AsyncSession, donations: DonationService):
    if not message.from_user:
        return
    member = await get_member_by_tg_id(session, message.from_user.id)
    if message.location:
        point = GeoPoint(message.location.latitude, message.location.longitude)
    elif member and member.location:
        point = member.location
    else:
        await message.answer("No saved location yet, please send one.", reply_markup=location_request_kb)
        return

    data = await state.get_data()
    try:
        donation = await donations.create_donation(
            donor_id=message.from_user.id,
            food_type=data["food_type"],
            quantity=data["quantity"],
            expires_in_hours=data["expires_in_hours"],
            location_text=data["location_text"],
            coords=point,
            unit=data["unit"],
            donor_name=member.name if member else message.from_user.full_name,
        )
    except (DonationError, ValueError) as e:
        await message.answer(f"Could not create the donation: {e}", reply_markup=donor_menu_kb)
        await state.clear()
        return

    await state.clear()
    await message.answer(
        "Donation posted! NGOs nearby will see it.\n\n" + donation_card(donation),
        reply_markup=donor_menu_kb,
    )


# ---------- Lists / tracking ----------


@router.message(F.text == "📦 My donations")
async def my_donations(message: Message, donations: DonationService):
    if not message.from_user:
        return
    mine = await donations.list_mine(message.from_user.id)
    if not mine:
        await message.answer("You haven't posted any donations yet.")
        return
    for d in mine[:10]:
        await message.answer(donation_card(d), reply_markup=donation_actions_kb(d))


@router.callback_query(F.data.startswith("don_cancel:"))
async def cancel_own_donation(call: CallbackQuery, donations: DonationService, notifier: DonorNotifier):
    donation_id = int((call.data or "").split(":")[1])
    try:
        donation = await donations.get(donation_id)
        if donation.donor_id != call.from_user.id:
            raise PermissionDenied(donation_id, call.from_user.id)
        donation = await donations.cancel_donation(donation_id)
    except DonationError as e:
        await call.answer(str(e), show_alert=True)
        return
    await call.answer("Cancelled")
    await call.message.edit_text(donation_card(donation))  # type: ignore[union-attr]
    await notifier.cancelled_by_donor(donation)


@router.message(F.text == "📍 Track pickup")
async def track_pickup(message: Message, donations: DonationService):
    if not message.from_user:
        return
    try:
        active = await donations.active_for_donor(message.from_user.id)
    except DonationError as e:
        await message.answer(f"⚠️ {e}")
        return
    if active is None:
        await message.answer("No pickup in progress.")
        return
    snapshot = await donations.tracking_snapshot(active.id)  # type: ignore[arg-type]
    await message.answer(tracking_text(active, snapshot))


@router.message(F.text == "📊 History")
async def history(message: Message, donations: DonationService):
    if not message.from_user:
        return
    await message.answer(await donor_summary(donations, message.from_user.id))
    tmp = NamedTemporaryFile(delete=False, suffix=".xlsx")
    tmp.close()
    try:
        await export_donor_history(donations, message.from_user.id, tmp.name)
        await message.answer_document(FSInputFile(tmp.name, filename="donations.xlsx"))
    finally:
        os.unlink(tmp.name)


# ---------- Edit ----------
# Registered last: menu buttons above take priority over the edit state.


class EditDonationState(StatesGroup):
    waiting_for_changes = State()


@router.callback_query(F.data.startswith("don_edit:"))
async def edit_donation_start(call: CallbackQuery, state: FSMContext, donations: DonationService):
    donation_id = int((call.data or "").split(":")[1])
    try:
        donation = await donations.get(donation_id)
        if donation.donor_id != call.from_user.id:
            raise PermissionDenied(donation_id, call.from_user.id)
    except DonationError as e:
        await call.answer(str(e), show_alert=True)
        return
    await state.set_state(EditDonationState.waiting_for_changes)
    await state.update_data(donation_id=donation_id)
    await call.answer()
    await call.message.answer(  # type: ignore[union-attr]
        "Send the changes as key=value pairs, for example:\n"
        "quantity=12 unit=kg expires_in_hours=3 location_text='Back gate'\n"
        f"Editable: {', '.join(sorted(EDITABLE_FIELDS))}"
    )


@router.message(EditDonationState.waiting_for_changes)
async def edit_donation_apply(message: Message, state: FSMContext, donations: DonationService):
    if not message.from_user:
        return
    data = await state.get_data()
    try:
        changes = parse_changes(message.text or "")
        donation = await donations.edit_donation(data["donation_id"], message.from_user.id, **changes)
    except (DonationError, ValueError) as e:
        await message.answer(f"Could not edit: {e}")
        return
    await state.clear()
    await message.answer("Updated.\n\n" + donation_card(donation), reply_markup=donation_actions_kb(donation))
