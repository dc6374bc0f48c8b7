from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from foodshare_bot.models import Member
from foodshare_bot.utils.geo import GeoPoint, validate_point

ROLES = {"donor", "ngo"}


async def get_member_by_tg_id(session: AsyncSession, tg_id: int) -> Optional[Member]:
    result = await session.execute(select(Member).where(Member.tg_id == tg_id))
    return result.scalars().first()


async def create_member(
    session: AsyncSession,
    tg_id: int,
    role: str,
    name: str,
    location: Optional[GeoPoint] = None,
) -> Member:
    """Register a donor or an NGO.

    `location` is the member's home base; NGOs use it as the centre of the
    nearby search until they share a live location.
    """
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    name = name.strip()
    if not name:
        raise ValueError("Name is required")

    point = validate_point(location.lat, location.lng) if location else None
    member = Member(
        tg_id=tg_id,
        role=role,
        name=name,
        lat=point.lat if point else None,
        lng=point.lng if point else None,
    )
    session.add(member)
    await session.commit()
    await session.refresh(member)
    return member


async def set_member_location(session: AsyncSession, tg_id: int, location: GeoPoint) -> Optional[Member]:
    member = await get_member_by_tg_id(session, tg_id)
    if not member:
        return None
    point = validate_point(location.lat, location.lng)
    member.lat = point.lat
    member.lng = point.lng
    session.add(member)
    await session.commit()
    return member
