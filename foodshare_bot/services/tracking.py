"""Polling loops that keep tracked donations and nearby lists fresh.

Two kinds of APScheduler interval jobs live here:

- ``track:<donation_id>`` – while a donation is en route, asks the location
  source for a fix every ``TRACKING_INTERVAL_SECONDS`` and records it through
  the lifecycle engine, then publishes the new revision to subscribers.
- ``nearby:<observer_id>`` – every ``PENDING_REFRESH_SECONDS`` recomputes the
  pending donations around an NGO and hands the list to its callback when it
  changed.

All jobs run as coroutines on the bot's event loop, so a tick is never
preempted by another tick; the only suspension points are the awaits.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from foodshare_bot.config import settings
from foodshare_bot.errors import InvalidTransition, NotFound
from foodshare_bot.models import Donation, DonationStatus
from foodshare_bot.services.lifecycle import LifecycleEngine
from foodshare_bot.services.locations import LocationSource
from foodshare_bot.services.projections import NearbyDonation, nearby_pending
from foodshare_bot.services.store import DonationStore
from foodshare_bot.utils.geo import GeoPoint, validate_point

logger = logging.getLogger(__name__)

TrackingListener = Callable[[Donation], Awaitable[None]]
NearbyCallback = Callable[[List[NearbyDonation]], Awaitable[None]]


def _track_job_id(donation_id: int) -> str:
    return f"track:{donation_id}"


def _nearby_job_id(observer_id: int) -> str:
    return f"nearby:{observer_id}"


@dataclass
class _Watch:
    location: GeoPoint
    radius_km: float
    callback: NearbyCallback
    last_snapshot: Optional[tuple] = None


class TrackingScheduler:
    def __init__(
        self,
        engine: LifecycleEngine,
        location_source: LocationSource,
        scheduler: Optional[AsyncIOScheduler] = None,
        tracking_interval: Optional[float] = None,
        refresh_interval: Optional[float] = None,
    ):
        self.engine = engine
        self.store: DonationStore = engine.store
        self.location_source = location_source
        self.scheduler = scheduler or AsyncIOScheduler(timezone=settings.SCHEDULER_TIMEZONE)
        self.tracking_interval = tracking_interval or settings.TRACKING_INTERVAL_SECONDS
        self.refresh_interval = refresh_interval or settings.PENDING_REFRESH_SECONDS

        self._tracked: set[int] = set()
        self._published: dict[int, int] = {}
        self._listeners: List[TrackingListener] = []
        self._watches: dict[int, _Watch] = {}

    # ---------- lifecycle ----------

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()

    def shutdown(self) -> None:
        self._tracked.clear()
        self._watches.clear()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)

    async def resume(self) -> int:
        """Restart tracking for every donation that is en route (after a restart)."""
        en_route = await self.store.list_by_status(DonationStatus.EN_ROUTE)
        for donation in en_route:
            self.start_tracking(donation.id)  # type: ignore[arg-type]
        return len(en_route)

    def subscribe(self, listener: TrackingListener) -> None:
        self._listeners.append(listener)

    # ---------- tracking loop ----------

    def is_tracking(self, donation_id: int) -> bool:
        return donation_id in self._tracked

    def start_tracking(self, donation_id: int) -> None:
        if donation_id in self._tracked:
            return
        self._tracked.add(donation_id)
        self.scheduler.add_job(
            self.tracking_tick,
            "interval",
            seconds=self.tracking_interval,
            args=[donation_id],
            id=_track_job_id(donation_id),
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info("tracking_started donation=%s every=%ss", donation_id, self.tracking_interval)

    def stop_tracking(self, donation_id: int) -> None:
        """Stop the loop for *donation_id*. Safe to call any number of times."""
        was_tracked = donation_id in self._tracked
        self._tracked.discard(donation_id)
        self._published.pop(donation_id, None)
        self.location_source.release(donation_id)
        try:
            self.scheduler.remove_job(_track_job_id(donation_id))
        except JobLookupError:
            pass
        if was_tracked:
            logger.info("tracking_stopped donation=%s", donation_id)

    async def tracking_tick(self, donation_id: int) -> Optional[Donation]:
        """One poll of the tracking loop.

        Returns the updated donation, or ``None`` when the tick did nothing.
        A donation that vanished, left ``en_route`` or lost a race with a
        concurrent completion ends the loop quietly.
        """
        if donation_id not in self._tracked:
            return None

        try:
            donation = await self.store.get(donation_id)
        except NotFound:
            logger.debug("tracking_gone donation=%s", donation_id)
            self.stop_tracking(donation_id)
            return None
        if donation.status is not DonationStatus.EN_ROUTE:
            logger.debug("tracking_finished donation=%s status=%s", donation_id, donation.status.value)
            self.stop_tracking(donation_id)
            return None

        location = await self.location_source.next_location(donation)
        # stop_tracking() may have run while we waited for the fix
        if location is None or donation_id not in self._tracked:
            return None

        try:
            updated = await self.engine.update_location(donation_id, location)
        except (NotFound, InvalidTransition) as e:
            logger.debug("tracking_interrupted donation=%s: %s", donation_id, e)
            self.stop_tracking(donation_id)
            return None

        await self.publish(updated)
        return updated

    async def publish(self, donation: Donation) -> None:
        """Hand *donation* to listeners unless this revision was already sent."""
        if donation.id is None:
            raise ValueError("Cannot publish a donation that was never stored")
        if self._published.get(donation.id) == donation.revision:
            return
        self._published[donation.id] = donation.revision
        for listener in self._listeners:
            try:
                await listener(donation)
            except Exception:
                logger.exception("tracking_listener_failed donation=%s", donation.id)

    # ---------- nearby refresh loop ----------

    def watch_nearby(
        self,
        observer_id: int,
        location: GeoPoint,
        radius_km: float,
        callback: NearbyCallback,
    ) -> None:
        location = validate_point(location.lat, location.lng)
        self._watches[observer_id] = _Watch(location, radius_km, callback)
        self.scheduler.add_job(
            self.refresh_nearby,
            "interval",
            seconds=self.refresh_interval,
            args=[observer_id],
            id=_nearby_job_id(observer_id),
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info("nearby_watch_started observer=%s radius=%skm", observer_id, radius_km)

    def update_observer_location(self, observer_id: int, location: GeoPoint) -> None:
        watch = self._watches.get(observer_id)
        if watch is not None:
            watch.location = validate_point(location.lat, location.lng)

    def is_watching(self, observer_id: int) -> bool:
        return observer_id in self._watches

    def stop_watching(self, observer_id: int) -> None:
        if self._watches.pop(observer_id, None) is not None:
            logger.info("nearby_watch_stopped observer=%s", observer_id)
        try:
            self.scheduler.remove_job(_nearby_job_id(observer_id))
        except JobLookupError:
            pass

    async def refresh_nearby(self, observer_id: int) -> Optional[List[NearbyDonation]]:
        """Recompute the observer's list; the callback only sees changes."""
        watch = self._watches.get(observer_id)
        if watch is None:
            return None

        items = await nearby_pending(self.store, watch.location, watch.radius_km)
        if self._watches.get(observer_id) is not watch:
            return None

        snapshot = tuple((item.donation.id, item.donation.revision, item.expired) for item in items)
        if snapshot == watch.last_snapshot:
            return None
        watch.last_snapshot = snapshot
        await watch.callback(items)
        return items
