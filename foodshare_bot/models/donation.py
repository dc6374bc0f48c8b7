from datetime import datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from foodshare_bot.utils.geo import GeoPoint
from foodshare_bot.utils.time import utcnow


class DonationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EN_ROUTE = "en_route"
    PICKED_UP = "picked_up"
    CANCELLED = "cancelled"


# Statuses in which the acceptor's location is attached to the donation
ACTIVE_STATUSES = frozenset({DonationStatus.ACCEPTED, DonationStatus.EN_ROUTE})
TERMINAL_STATUSES = frozenset({DonationStatus.PICKED_UP, DonationStatus.CANCELLED})


class Donation(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    donor_id: int = Field(index=True)
    donor_name: Optional[str] = None
    donor_lat: float
    donor_lng: float
    location_text: str = ""

    food_type: str
    quantity: float
    unit: str = "units"
    # Timestamps are naive UTC (see utils.time)
    expires_at: datetime = Field(sa_type=DateTime)

    status: DonationStatus = Field(default=DonationStatus.PENDING, index=True)

    # Set once, on accept
    acceptor_id: Optional[int] = Field(default=None, index=True)
    acceptor_name: Optional[str] = None
    # Only while accepted / en_route
    acceptor_lat: Optional[float] = None
    acceptor_lng: Optional[float] = None

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)
    revision: int = 0

    @property
    def donor_location(self) -> GeoPoint:
        return GeoPoint(self.donor_lat, self.donor_lng)

    @property
    def acceptor_location(self) -> Optional[GeoPoint]:
        if self.acceptor_lat is None or self.acceptor_lng is None:
            return None
        return GeoPoint(self.acceptor_lat, self.acceptor_lng)

    def set_acceptor_location(self, point: Optional[GeoPoint]) -> None:
        self.acceptor_lat = point.lat if point else None
        self.acceptor_lng = point.lng if point else None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) >= self.expires_at

    def clone(self) -> "Donation":
        """Detached copy; changing it never touches the stored record."""
        return Donation(**self.model_dump())

    def to_dict(self) -> dict[str, Any]:
        """Logical record shape shared with any storage backend or API."""
        acceptor = self.acceptor_location
        return {
            "id": self.id,
            "donor_id": self.donor_id,
            "food_type": self.food_type,
            "quantity": self.quantity,
            "unit": self.unit,
            "expires_at": self.expires_at.isoformat(),
            "status": self.status.value,
            "acceptor_id": self.acceptor_id,
            "acceptor_name": self.acceptor_name,
            "acceptor_location": acceptor.as_dict() if acceptor else None,
            "donor_location": self.donor_location.as_dict(),
            "created_at": self.created_at.isoformat(),
            "revision": self.revision,
        }
