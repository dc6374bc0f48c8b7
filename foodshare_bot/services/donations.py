"""Commands and read models used by the bot handlers."""

import logging
from datetime import timedelta
from typing import Any, List, Optional

from foodshare_bot.config import settings
from foodshare_bot.errors import InvalidTransition
from foodshare_bot.models import Donation, DonationStatus
from foodshare_bot.services import projections
from foodshare_bot.services.lifecycle import LifecycleEngine
from foodshare_bot.services.projections import NearbyDonation, TrackingSnapshot
from foodshare_bot.services.store import DonationStore
from foodshare_bot.services.tracking import TrackingScheduler
from foodshare_bot.utils.geo import GeoPoint, validate_point
from foodshare_bot.utils.time import utcnow

logger = logging.getLogger(__name__)


class DonationService:
    def __init__(
        self,
        store: DonationStore,
        engine: LifecycleEngine,
        tracker: TrackingScheduler,
        speed_kmh: Optional[float] = None,
    ):
        self.store = store
        self.engine = engine
        self.tracker = tracker
        self.speed_kmh = speed_kmh or settings.ASSUMED_SPEED_KMH

    # ---------------- commands ----------------

    async def create_donation(
        self,
        donor_id: int,
        food_type: str,
        quantity: float,
        expires_in_hours: float,
        location_text: str,
        coords: GeoPoint,
        unit: str = "units",
        donor_name: Optional[str] = None,
    ) -> Donation:
        food_type = (food_type or "").strip()
        if not food_type:
            raise ValueError("Food type is required")
        if quantity <= 0:
            raise ValueError("Quantity must be positive")
        if expires_in_hours <= 0:
            raise ValueError("Expiry must be in the future")
        point = validate_point(coords.lat, coords.lng)

        now = utcnow()
        donation = Donation(
            donor_id=donor_id,
            donor_name=donor_name,
            donor_lat=point.lat,
            donor_lng=point.lng,
            location_text=location_text,
            food_type=food_type,
            quantity=float(quantity),
            unit=unit,
            expires_at=now + timedelta(hours=expires_in_hours),
            created_at=now,
            updated_at=now,
        )
        return await self.store.create(donation)

    async def accept_donation(
        self, donation_id: int, acceptor_id: int, acceptor_name: Optional[str], coords: GeoPoint
    ) -> Donation:
        donation = await self.engine.accept(donation_id, acceptor_id, acceptor_name, coords)
        logger.info("donation_accepted id=%s acceptor=%s", donation_id, acceptor_id)
        return donation

    async def start_pickup(self, donation_id: int) -> Donation:
        donation = await self.engine.start_pickup(donation_id)
        self.tracker.start_tracking(donation_id)
        logger.info("pickup_started id=%s", donation_id)
        return donation

    async def update_location(self, donation_id: int, coords: GeoPoint) -> Donation:
        donation = await self.engine.update_location(donation_id, coords)
        await self.tracker.publish(donation)
        return donation

    async def pause_tracking(self, donation_id: int) -> Donation:
        """Stop polling the acceptor's location; the status stays as it is."""
        donation = await self.store.get(donation_id)
        self.tracker.stop_tracking(donation_id)
        return donation

    async def resume_tracking(self, donation_id: int) -> Donation:
        donation = await self.store.get(donation_id)
        if donation.status is not DonationStatus.EN_ROUTE:
            raise InvalidTransition(donation.status, "resume_tracking")
        self.tracker.start_tracking(donation_id)
        logger.info("tracking_resumed id=%s", donation_id)
        return donation

    def is_tracking(self, donation_id: int) -> bool:
        return self.tracker.is_tracking(donation_id)

    async def complete_pickup(self, donation_id: int) -> Donation:
        donation = await self.engine.complete(donation_id)
        self.tracker.stop_tracking(donation_id)
        logger.info("pickup_completed id=%s", donation_id)
        return donation

    async def cancel_donation(self, donation_id: int) -> Donation:
        donation = await self.engine.cancel(donation_id)
        self.tracker.stop_tracking(donation_id)
        logger.info("donation_cancelled id=%s", donation_id)
        return donation

    async def edit_donation(self, donation_id: int, donor_id: int, **changes: Any) -> Donation:
        return await self.engine.edit(donation_id, donor_id, changes)

    # ---------------- read models ----------------

    async def get(self, donation_id: int) -> Donation:
        return await self.store.get(donation_id)

    async def list_mine(self, donor_id: int) -> List[Donation]:
        return await projections.list_mine(self.store, donor_id)

    async def list_pending_near(self, coords: GeoPoint, radius_km: Optional[float] = None) -> List[NearbyDonation]:
        radius = settings.DEFAULT_RADIUS_KM if radius_km is None else radius_km
        return await projections.nearby_pending(self.store, coords, radius)

    async def list_accepted(self, acceptor_id: int) -> List[Donation]:
        return await projections.list_accepted(self.store, acceptor_id)

    async def active_for_donor(self, donor_id: int) -> Optional[Donation]:
        return await projections.active_for_donor(self.store, donor_id)

    async def tracking_snapshot(self, donation_id: int) -> Optional[TrackingSnapshot]:
        donation = await self.store.get(donation_id)
        return projections.tracking_snapshot(donation, self.speed_kmh)
