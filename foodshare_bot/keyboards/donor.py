from aiogram.types import ReplyKeyboardMarkup, KeyboardButton, InlineKeyboardMarkup, InlineKeyboardButton

from foodshare_bot.models import Donation, DonationStatus

donor_menu_kb = ReplyKeyboardMarkup(
    keyboard=[
        [KeyboardButton(text="➕ New donation")],
        [KeyboardButton(text="📦 My donations"), KeyboardButton(text="📍 Track pickup")],
        [KeyboardButton(text="📊 History")],
    ],
    resize_keyboard=True,
)

location_request_kb = ReplyKeyboardMarkup(
    keyboard=[
        [KeyboardButton(text="📍 Send location", request_location=True)],
        [KeyboardButton(text="Use saved location")],
    ],
    resize_keyboard=True,
    one_time_keyboard=True,
)


def donation_actions_kb(donation: Donation) -> InlineKeyboardMarkup | None:
    if donation.is_terminal:
        return None
    row = [InlineKeyboardButton(text="❌ Cancel", callback_data=f"don_cancel:{donation.id}")]
    if donation.status is DonationStatus.PENDING:
        row.insert(0, InlineKeyboardButton(text="✏️ Edit", callback_data=f"don_edit:{donation.id}"))
    return InlineKeyboardMarkup(inline_keyboard=[row])
