"""Shared fixtures: a throwaway SQLite database and the service stack on top of it."""

import random

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from foodshare_bot.db import init_db
from foodshare_bot.services.donations import DonationService
from foodshare_bot.services.lifecycle import LifecycleEngine
from foodshare_bot.services.locations import JitterLocationSource
from foodshare_bot.services.store import DonationStore
from foodshare_bot.services.tracking import TrackingScheduler


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(engine)
    yield async_sessionmaker(bind=engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def store(session_factory):
    return DonationStore(session_factory)


@pytest.fixture
def engine(store):
    return LifecycleEngine(store)


@pytest.fixture
def location_source():
    return JitterLocationSource(rng=random.Random(7))


@pytest.fixture
def tracker(engine, location_source):
    # Never started: jobs are registered but only run when a test calls the tick
    return TrackingScheduler(
        engine,
        location_source,
        scheduler=AsyncIOScheduler(timezone="UTC"),
        tracking_interval=5,
        refresh_interval=10,
    )


@pytest.fixture
def service(store, engine, tracker):
    return DonationService(store, engine, tracker, speed_kmh=20)
