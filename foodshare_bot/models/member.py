from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from foodshare_bot.utils.geo import GeoPoint
from foodshare_bot.utils.time import utcnow


class Member(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    tg_id: int = Field(index=True, unique=True)
    role: str  # donor | ngo
    name: str
    # Home base: donor's usual pickup point or NGO headquarters
    lat: Optional[float] = None
    lng: Optional[float] = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime)

    @property
    def location(self) -> Optional[GeoPoint]:
        if self.lat is None or self.lng is None:
            return None
        return GeoPoint(self.lat, self.lng)
