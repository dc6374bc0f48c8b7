"""Read-only views computed from the store on every poll."""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from foodshare_bot.errors import IntegrityViolation
from foodshare_bot.models import ACTIVE_STATUSES, Donation, DonationStatus
from foodshare_bot.services.store import DonationStore
from foodshare_bot.utils.geo import GeoPoint, distance_km, eta_minutes
from foodshare_bot.utils.time import utcnow


@dataclass(frozen=True)
class NearbyDonation:
    donation: Donation
    distance_km: float
    expired: bool


@dataclass(frozen=True)
class TrackingSnapshot:
    distance_km: float
    eta_minutes: int

    @property
    def arrived(self) -> bool:
        return self.eta_minutes == 0


async def nearby_pending(
    store: DonationStore,
    observer: GeoPoint,
    radius_km: float,
    now: Optional[datetime] = None,
) -> List[NearbyDonation]:
    """Pending donations within *radius_km* of *observer*, closest first.

    Equal distances are ordered by creation time. Expired donations are kept
    but flagged.
    """
    now = now or utcnow()
    found = []
    for donation in await store.list_by_status(DonationStatus.PENDING):
        dist = distance_km(observer, donation.donor_location)
        if dist <= radius_km:
            found.append(NearbyDonation(donation, dist, donation.is_expired(now)))
    found.sort(key=lambda item: (item.distance_km, item.donation.created_at))
    return found


async def active_for_donor(store: DonationStore, donor_id: int) -> Optional[Donation]:
    active = [d for d in await store.list_by_donor(donor_id) if d.status in ACTIVE_STATUSES]
    if len(active) > 1:
        raise IntegrityViolation(donor_id, [d.id for d in active])
    return active[0] if active else None


async def list_mine(store: DonationStore, donor_id: int) -> List[Donation]:
    return await store.list_by_donor(donor_id)


async def list_accepted(store: DonationStore, acceptor_id: int) -> List[Donation]:
    return await store.list_by_acceptor(acceptor_id)


def tracking_snapshot(donation: Donation, speed_kmh: float) -> Optional[TrackingSnapshot]:
    """Distance and ETA from the acceptor to the donor, if the acceptor is on the map."""
    acceptor = donation.acceptor_location
    if acceptor is None:
        return None
    dist = distance_km(acceptor, donation.donor_location)
    return TrackingSnapshot(distance_km=dist, eta_minutes=eta_minutes(dist, speed_kmh))
