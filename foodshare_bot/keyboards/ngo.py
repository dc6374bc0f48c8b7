from aiogram.types import ReplyKeyboardMarkup, KeyboardButton, InlineKeyboardMarkup, InlineKeyboardButton

from foodshare_bot.models import Donation, DonationStatus
from foodshare_bot.services.projections import NearbyDonation

ngo_menu_kb = ReplyKeyboardMarkup(
    keyboard=[
        [KeyboardButton(text="🔎 Nearby donations"), KeyboardButton(text="⏹ Stop updates")],
        [KeyboardButton(text="🚚 My pickups")],
    ],
    resize_keyboard=True,
)

MAX_NEARBY_BUTTONS = 10


def nearby_kb(items: list[NearbyDonation]) -> InlineKeyboardMarkup:
    buttons = [
        [
            InlineKeyboardButton(
                text=f"✅ {item.donation.food_type} – {item.distance_km:.1f} km",
                callback_data=f"ngo_accept:{item.donation.id}",
            )
        ]
        for item in items[:MAX_NEARBY_BUTTONS]
        if not item.expired
    ]
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def pickup_actions_kb(donation: Donation, tracking: bool = False) -> InlineKeyboardMarkup | None:
    rows = []
    row = []
    if donation.status is DonationStatus.ACCEPTED:
        row.append(InlineKeyboardButton(text="🚚 Start pickup", callback_data=f"ngo_start:{donation.id}"))
    elif donation.status is DonationStatus.EN_ROUTE:
        row.append(InlineKeyboardButton(text="✅ Picked up", callback_data=f"ngo_done:{donation.id}"))
        if tracking:
            pause_or_resume = InlineKeyboardButton(text="⏸ Pause tracking", callback_data=f"ngo_pause:{donation.id}")
        else:
            pause_or_resume = InlineKeyboardButton(text="▶️ Resume tracking", callback_data=f"ngo_resume:{donation.id}")
        rows.append([pause_or_resume])
    else:
        return None
    row.append(InlineKeyboardButton(text="❌ Cancel", callback_data=f"ngo_cancel:{donation.id}"))
    rows.insert(0, row)
    return InlineKeyboardMarkup(inline_keyboard=rows)
