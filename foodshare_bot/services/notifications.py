"""Tells donors and NGOs about changes the other side made."""

import logging

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError

from foodshare_bot.models import Donation
from foodshare_bot.services.projections import tracking_snapshot
from foodshare_bot.utils.format import donation_card, tracking_text

logger = logging.getLogger(__name__)


def _stored_id(donation: Donation) -> int:
    if donation.id is None:
        raise ValueError("Donation has not been stored yet")
    return donation.id


class DonorNotifier:
    """Tracking updates go to the donor as one self-updating message.

    Status changes go to whoever did not make them: the donor when the NGO
    acts, the NGO when the donor cancels.
    """

    def __init__(self, bot: Bot, speed_kmh: float):
        self.bot = bot
        self.speed_kmh = speed_kmh
        # donation id -> message id of the live tracking message
        self._messages: dict[int, int] = {}

    async def __call__(self, donation: Donation) -> None:
        donation_id = _stored_id(donation)
        text = tracking_text(donation, tracking_snapshot(donation, self.speed_kmh))
        message_id = self._messages.get(donation_id)
        try:
            if message_id is None:
                msg = await self.bot.send_message(donation.donor_id, text)
                self._messages[donation_id] = msg.message_id
            else:
                await self.bot.edit_message_text(text, chat_id=donation.donor_id, message_id=message_id)
        except TelegramAPIError as e:
            # e.g. user blocked the bot or text did not change
            logger.warning("donor_notify_failed donation=%s: %s", donation_id, e)

    def forget(self, donation_id: int) -> None:
        self._messages.pop(donation_id, None)

    async def status_changed(self, donation: Donation) -> None:
        """Message the donor after the NGO moved their donation to a new status."""
        donation_id = _stored_id(donation)
        if donation.is_terminal:
            self.forget(donation_id)
        text = tracking_text(donation, tracking_snapshot(donation, self.speed_kmh))
        try:
            await self.bot.send_message(donation.donor_id, text)
        except TelegramAPIError as e:
            logger.warning("donor_notify_failed donation=%s: %s", donation_id, e)

    async def cancelled_by_donor(self, donation: Donation) -> None:
        """Warn the NGO (if any) that the donor called the pickup off."""
        donation_id = _stored_id(donation)
        self.forget(donation_id)
        if donation.acceptor_id is None:
            return
        text = "⚠️ The donor cancelled this donation, no need to come.\n\n" + donation_card(donation)
        try:
            await self.bot.send_message(donation.acceptor_id, text)
        except TelegramAPIError as e:
            logger.warning("acceptor_notify_failed donation=%s: %s", donation_id, e)
