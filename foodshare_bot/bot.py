import asyncio
import logging
import sys

from aiogram import Bot, Dispatcher
from aiogram.fsm.storage.memory import MemoryStorage

from foodshare_bot.config import settings
from foodshare_bot.db import init_db, SessionLocal
from foodshare_bot.handlers import (
    common_router,
    donor_menu_router,
    ngo_menu_router,
    errors_router,
)
from foodshare_bot.middleware.db import DbSessionMiddleware
from foodshare_bot.services.donations import DonationService
from foodshare_bot.services.lifecycle import LifecycleEngine
from foodshare_bot.services.locations import JitterLocationSource, LiveLocationSource
from foodshare_bot.services.notifications import DonorNotifier
from foodshare_bot.services.store import DonationStore
from foodshare_bot.services.tracking import TrackingScheduler


def setup_logging() -> None:
    settings.LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_file = settings.LOG_DIR / "bot.log"

    # Console and file
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file, encoding="utf-8"),
        ],
        force=True,
    )
    # Every tick of every job is logged by apscheduler at INFO
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


async def main():
    setup_logging()
    logging.info("Bot starting…")

    await init_db()

    # Plain text: cards contain user input that must not be parsed as HTML
    bot = Bot(token=settings.BOT_TOKEN)

    live_locations = LiveLocationSource()
    source = JitterLocationSource(approach=0.1) if settings.SIMULATE_MOVEMENT else live_locations

    store = DonationStore(SessionLocal)
    engine = LifecycleEngine(store)
    tracker = TrackingScheduler(engine, source)
    donations = DonationService(store, engine, tracker)
    notifier = DonorNotifier(bot, donations.speed_kmh)
    tracker.subscribe(notifier)

    dp = Dispatcher(
        storage=MemoryStorage(),
        donations=donations,
        tracker=tracker,
        live_locations=live_locations,
        notifier=notifier,
    )

    # Middleware
    dp.update.middleware(DbSessionMiddleware(session_pool=SessionLocal))

    # Routers
    dp.include_router(errors_router)
    dp.include_router(common_router)
    dp.include_router(donor_menu_router)
    dp.include_router(ngo_menu_router)

    # Scheduler
    tracker.start()
    resumed = await tracker.resume()
    logging.info("Resumed tracking for %d donation(s)", resumed)

    # Start polling
    try:
        await dp.start_polling(bot)
    finally:
        tracker.shutdown()
        await bot.session.close()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
