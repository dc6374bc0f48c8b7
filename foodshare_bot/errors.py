"""Typed errors raised by the donation core.

Bot handlers catch :class:`DonationError` and turn it into a user-visible
message; anything else is a bug and goes to the error router.
"""

from __future__ import annotations

from typing import Any, Iterable


class DonationError(Exception):
    """Base class for every error the donation core raises on purpose."""


class NotFound(DonationError):
    def __init__(self, donation_id: Any):
        self.donation_id = donation_id
        super().__init__(f"Donation {donation_id} not found")


class InvalidTransition(DonationError):
    """An event was applied in a state whose guard rejects it.

    Carries the state the record was in and the attempted event so callers
    can tell a lost race (``pending`` → ``accept`` by someone else) from a
    plain misuse.
    """

    def __init__(self, from_status: Any, event: Any):
        self.from_status = from_status
        self.event = event
        super().__init__(f"Cannot apply '{_value(event)}' to a donation in status '{_value(from_status)}'")


class InvalidCoordinate(DonationError):
    def __init__(self, lat: Any, lng: Any):
        self.lat = lat
        self.lng = lng
        super().__init__(f"Invalid coordinate: lat={lat!r}, lng={lng!r}")


class InvalidSpeed(DonationError):
    def __init__(self, speed: Any):
        self.speed = speed
        super().__init__(f"Speed must be a positive number, got {speed!r}")


class IntegrityViolation(DonationError):
    """A projection found data that breaks a record invariant."""

    def __init__(self, donor_id: Any, donation_ids: Iterable[Any]):
        self.donor_id = donor_id
        self.donation_ids = list(donation_ids)
        super().__init__(
            f"Donor {donor_id} has more than one active donation: {self.donation_ids}"
        )


class PermissionDenied(DonationError):
    def __init__(self, donation_id: Any, actor_id: Any):
        self.donation_id = donation_id
        self.actor_id = actor_id
        super().__init__(f"User {actor_id} may not change donation {donation_id}")


def _value(obj: Any) -> Any:
    return getattr(obj, "value", obj)
