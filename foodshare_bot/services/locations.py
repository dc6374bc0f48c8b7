"""Where the acceptor's position comes from while a pickup is on the way."""

import random
from typing import Optional, Protocol

from foodshare_bot.models import Donation
from foodshare_bot.utils.geo import GeoPoint


class LocationSource(Protocol):
    async def next_location(self, donation: Donation) -> Optional[GeoPoint]:
        """Return a new fix for the donation's acceptor, or ``None`` if there is none."""
        ...

    def release(self, donation_id: int) -> None:
        """Tracking for *donation_id* stopped; drop any per-donation state."""
        ...


def _clamp(value: float, limit: float) -> float:
    return max(-limit, min(limit, value))


class JitterLocationSource:
    """Simulated vehicle: drifts randomly around the last known position.

    ``approach`` moves that share of the remaining way to the donor on every
    fix (0 keeps pure jitter).
    """

    def __init__(self, jitter_deg: float = 0.001, approach: float = 0.0, rng: Optional[random.Random] = None):
        self.jitter_deg = jitter_deg
        self.approach = approach
        self._rng = rng or random.Random()

    async def next_location(self, donation: Donation) -> Optional[GeoPoint]:
        current = donation.acceptor_location
        if current is None:
            return None
        target = donation.donor_location
        lat = current.lat + (target.lat - current.lat) * self.approach
        lng = current.lng + (target.lng - current.lng) * self.approach
        lat += (self._rng.random() - 0.5) * self.jitter_deg
        lng += (self._rng.random() - 0.5) * self.jitter_deg
        return GeoPoint(_clamp(lat, 90.0), _clamp(lng, 180.0))

    def release(self, donation_id: int) -> None:
        pass


class LiveLocationSource:
    """Latest fixes pushed by acceptors (Telegram live location).

    Every donation tracked for an acceptor gets each fix once; a tick with
    no newer fix for its donation gets ``None``.
    """

    def __init__(self) -> None:
        self._fixes: dict[int, tuple[int, GeoPoint]] = {}
        self._delivered: dict[int, int] = {}
        self._seq = 0

    def push(self, acceptor_id: int, point: GeoPoint) -> None:
        self._seq += 1
        self._fixes[acceptor_id] = (self._seq, point)

    def release(self, donation_id: int) -> None:
        self._delivered.pop(donation_id, None)

    async def next_location(self, donation: Donation) -> Optional[GeoPoint]:
        if donation.acceptor_id is None or donation.id is None:
            return None
        fix = self._fixes.get(donation.acceptor_id)
        if fix is None:
            return None
        seq, point = fix
        if self._delivered.get(donation.id, 0) >= seq:
            return None
        self._delivered[donation.id] = seq
        return point
