from aiogram import Router, F
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import StatesGroup, State
from aiogram.types import Message, CallbackQuery, InlineKeyboardMarkup, InlineKeyboardButton
from sqlalchemy.ext.asyncio import AsyncSession

from foodshare_bot.keyboards import donor_menu_kb, ngo_menu_kb, location_request_kb
from foodshare_bot.services.members import get_member_by_tg_id, create_member
from foodshare_bot.utils.geo import GeoPoint

router = Router()


class RegistrationState(StatesGroup):
    waiting_for_role = State()
    waiting_for_name = State()
    waiting_for_location = State()


def menu_for(role: str):
    return ngo_menu_kb if role == "ngo" else donor_menu_kb


@router.message(Command("start"))
async def cmd_start(message: Message, session: AsyncSession, state: FSMContext):
    if not message.from_user:
        return
    await state.clear()
    member = await get_member_by_tg_id(session, message.from_user.id)
    if member:
        await message.answer(f"Welcome back, {member.name}!", reply_markup=menu_for(member.role))
        return

    role_kb = InlineKeyboardMarkup(
        inline_keyboard=[[
            InlineKeyboardButton(text="🍱 I have food to give", callback_data="reg:role:donor"),
            InlineKeyboardButton(text="🚚 We pick up food (NGO)", callback_data="reg:role:ngo"),
        ]]
    )
    await message.answer(
        "Hi! This bot connects people with surplus food and organizations that pick it up.\n"
        "Who are you?",
        reply_markup=role_kb,
    )
    await state.set_state(RegistrationState.waiting_for_role)


@router.callback_query(RegistrationState.waiting_for_role, F.data.startswith("reg:role:"))
async def reg_role(call: CallbackQuery, state: FSMContext):
    role = (call.data or "").split(":")[2]
    await state.update_data(role=role)
    await call.answer()
    prompt = "Organization name:" if role == "ngo" else "Your name:"
    await call.message.answer(prompt)  # type: ignore[union-attr]
    await state.set_state(RegistrationState.waiting_for_name)


@router.message(RegistrationState.waiting_for_name)
async def reg_name(message: Message, state: FSMContext):
    if not message.text or not message.text.strip():
        await message.answer("Please type a name.")
        return
    await state.update_data(name=message.text.strip())
    await message.answer(
        "Share your usual location (pickup point or headquarters).",
        reply_markup=location_request_kb,
    )
    await state.set_state(RegistrationState.waiting_for_location)


@router.message(RegistrationState.waiting_for_location, F.location)
async def reg_location(message: Message, session: AsyncSession, state: FSMContext):
    if not message.from_user or not message.location:
        return
    data = await state.get_data()
    point = GeoPoint(message.location.latitude, message.location.longitude)
    member = await create_member(session, message.from_user.id, data["role"], data["name"], point)
    await state.clear()
    await message.answer("Registration complete ✅", reply_markup=menu_for(member.role))


@router.message(RegistrationState.waiting_for_location)
async def reg_location_invalid(message: Message):
    await message.answer("Use the «📍 Send location» button, please.", reply_markup=location_request_kb)
