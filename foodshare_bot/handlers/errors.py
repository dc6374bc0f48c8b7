import logging

from aiogram import Router
from aiogram.exceptions import TelegramAPIError
from aiogram.types.error_event import ErrorEvent

from foodshare_bot.errors import DonationError

logger = logging.getLogger(__name__)

errors_router = Router()


def _chat_id(event: ErrorEvent) -> int | None:
    update = event.update
    if update.message:
        return update.message.chat.id
    if update.callback_query and update.callback_query.message:
        return update.callback_query.message.chat.id
    return None


@errors_router.errors()
async def handle_errors(event: ErrorEvent) -> bool:
    """
    Last stop for exceptions a handler did not catch.

    Domain errors are expected (stale buttons, races between NGOs) and are
    shown to the user. Anything else is logged with the full update.
    """
    chat_id = _chat_id(event)
    if isinstance(event.exception, DonationError):
        logger.info("donation_error update=%s: %s", event.update.update_id, event.exception)
        if chat_id is not None and event.update.bot is not None:
            try:
                await event.update.bot.send_message(chat_id, f"⚠️ {event.exception}")
            except TelegramAPIError as e:
                logger.warning("error_reply_failed chat=%s: %s", chat_id, e)
        return True

    logger.exception(
        "update_failed update=%s chat=%s: %s\n%s",
        event.update.update_id,
        chat_id,
        event.exception,
        event.update.model_dump_json(indent=2, exclude_none=True),
        exc_info=event.exception,
    )
    return True
