"""Donation state machine.

The transition table below is the whole contract: an event whose
``(status, event)`` pair is missing is rejected with
:class:`~foodshare_bot.errors.InvalidTransition` and the record is left as it
was. Nothing is coerced.
"""

from datetime import timedelta
from enum import Enum
from typing import Any, Optional

from foodshare_bot.errors import InvalidTransition, PermissionDenied
from foodshare_bot.models import Donation, DonationStatus
from foodshare_bot.services.store import DonationStore
from foodshare_bot.utils.geo import GeoPoint, validate_point


class DonationEvent(str, Enum):
    ACCEPT = "accept"
    START_PICKUP = "start_pickup"
    UPDATE_LOCATION = "update_location"
    COMPLETE = "complete"
    CANCEL = "cancel"
    EDIT = "edit"


_S = DonationStatus
_E = DonationEvent

TRANSITIONS: dict[tuple[DonationStatus, DonationEvent], DonationStatus] = {
    (_S.PENDING, _E.ACCEPT): _S.ACCEPTED,
    (_S.ACCEPTED, _E.START_PICKUP): _S.EN_ROUTE,
    (_S.EN_ROUTE, _E.UPDATE_LOCATION): _S.EN_ROUTE,
    (_S.EN_ROUTE, _E.COMPLETE): _S.PICKED_UP,
    (_S.PENDING, _E.CANCEL): _S.CANCELLED,
    (_S.ACCEPTED, _E.CANCEL): _S.CANCELLED,
    (_S.EN_ROUTE, _E.CANCEL): _S.CANCELLED,
    (_S.PENDING, _E.EDIT): _S.PENDING,
}

# Fields a donor may change while nobody has accepted the donation yet
EDITABLE_FIELDS = frozenset({"food_type", "quantity", "unit", "expires_in_hours", "location_text"})


def can_apply(status: DonationStatus, event: DonationEvent) -> bool:
    return (status, event) in TRANSITIONS


def next_status(status: DonationStatus, event: DonationEvent) -> DonationStatus:
    try:
        return TRANSITIONS[(status, event)]
    except KeyError:
        raise InvalidTransition(status, event) from None


def apply_event(donation: Donation, event: DonationEvent, **payload: Any) -> Donation:
    """Apply *event* to *donation* in place.

    Everything that can fail is checked before the first field is touched, so
    a rejected event leaves *donation* exactly as it was.

    Payload per event:

    - ``accept``: ``acceptor_id``, ``acceptor_name``, ``location``
    - ``update_location``: ``location``
    - ``edit``: ``donor_id``, ``changes``
    """
    if event is DonationEvent.EDIT and payload["donor_id"] != donation.donor_id:
        raise PermissionDenied(donation.id, payload["donor_id"])

    target = next_status(donation.status, event)

    if event is DonationEvent.ACCEPT:
        location: GeoPoint = payload["location"]
        donation.acceptor_id = payload["acceptor_id"]
        donation.acceptor_name = payload.get("acceptor_name")
        donation.set_acceptor_location(location)
    elif event is DonationEvent.UPDATE_LOCATION:
        donation.set_acceptor_location(payload["location"])
    elif event in (DonationEvent.COMPLETE, DonationEvent.CANCEL):
        donation.set_acceptor_location(None)
    elif event is DonationEvent.EDIT:
        _apply_edit(donation, payload["changes"])

    donation.status = target
    return donation


def _apply_edit(donation: Donation, changes: dict[str, Any]) -> None:
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
    if "quantity" in changes and float(changes["quantity"]) <= 0:
        raise ValueError("Quantity must be positive")
    if "expires_in_hours" in changes and float(changes["expires_in_hours"]) <= 0:
        raise ValueError("Expiry must be in the future")

    for key, value in changes.items():
        if key == "expires_in_hours":
            donation.expires_at = donation.created_at + timedelta(hours=float(value))
        elif key == "quantity":
            donation.quantity = float(value)
        else:
            setattr(donation, key, value)


class LifecycleEngine:
    """Runs lifecycle events through the store's atomic update."""

    def __init__(self, store: DonationStore):
        self.store = store

    async def accept(
        self,
        donation_id: int,
        acceptor_id: int,
        acceptor_name: Optional[str],
        location: GeoPoint,
    ) -> Donation:
        location = validate_point(location.lat, location.lng)
        return await self._apply(
            donation_id,
            DonationEvent.ACCEPT,
            acceptor_id=acceptor_id,
            acceptor_name=acceptor_name,
            location=location,
        )

    async def start_pickup(self, donation_id: int) -> Donation:
        return await self._apply(donation_id, DonationEvent.START_PICKUP)

    async def update_location(self, donation_id: int, location: GeoPoint) -> Donation:
        location = validate_point(location.lat, location.lng)
        return await self._apply(donation_id, DonationEvent.UPDATE_LOCATION, location=location)

    async def complete(self, donation_id: int) -> Donation:
        return await self._apply(donation_id, DonationEvent.COMPLETE)

    async def cancel(self, donation_id: int) -> Donation:
        return await self._apply(donation_id, DonationEvent.CANCEL)

    async def edit(self, donation_id: int, donor_id: int, changes: dict[str, Any]) -> Donation:
        return await self._apply(donation_id, DonationEvent.EDIT, donor_id=donor_id, changes=changes)

    async def _apply(self, donation_id: int, event: DonationEvent, **payload: Any) -> Donation:
        return await self.store.update(
            donation_id, lambda donation: apply_event(donation, event, **payload)
        )
