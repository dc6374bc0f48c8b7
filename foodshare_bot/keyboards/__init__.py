from .donor import donor_menu_kb, location_request_kb, donation_actions_kb
from .ngo import ngo_menu_kb, nearby_kb, pickup_actions_kb

__all__ = [
    "donor_menu_kb",
    "location_request_kb",
    "donation_actions_kb",
    "ngo_menu_kb",
    "nearby_kb",
    "pickup_actions_kb",
]
