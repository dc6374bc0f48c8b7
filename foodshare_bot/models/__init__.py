from .donation import Donation, DonationStatus, ACTIVE_STATUSES, TERMINAL_STATUSES
from .member import Member

__all__ = [
    "Donation",
    "DonationStatus",
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "Member",
]
