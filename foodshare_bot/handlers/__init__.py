from .common import router as common_router
from .donor_menu import router as donor_menu_router
from .ngo_menu import router as ngo_menu_router
from .errors import errors_router

__all__ = [
    "common_router",
    "donor_menu_router",
    "ngo_menu_router",
    "errors_router",
]
