"""Authoritative donation storage.

Every change to a donation goes through :meth:`DonationStore.update`, which is
the only mutation gate: callers hand in a *mutator* that edits a detached copy,
and the copy is written back only if nothing else changed the row meanwhile.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Callable, List

from sqlalchemy import update as sa_update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from foodshare_bot.errors import NotFound
from foodshare_bot.models import Donation, DonationStatus
from foodshare_bot.utils.time import utcnow

logger = logging.getLogger(__name__)

Mutator = Callable[[Donation], None]


class DonationStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def create(self, donation: Donation) -> Donation:
        record = donation.clone()
        record.id = None
        record.revision = 0
        async with self._session_factory() as session:
            session.add(record)
            await session.commit()
            await session.refresh(record)
        logger.info("donation_created id=%s donor=%s", record.id, record.donor_id)
        return record.clone()

    async def get(self, donation_id: int) -> Donation:
        async with self._session_factory() as session:
            record = await session.get(Donation, donation_id)
        if record is None:
            raise NotFound(donation_id)
        return record.clone()

    async def update(self, donation_id: int, mutator: Mutator) -> Donation:
        """Apply *mutator* to the record atomically and return the new version.

        If *mutator* raises, nothing is written and the exception propagates.
        A write that loses the compare-and-set on ``revision`` (another process
        got there first) re-reads the row and runs *mutator* again, so its
        guards are checked against the winner's state.
        """
        async with self._locks[donation_id]:
            while True:
                try:
                    current = await self.get(donation_id)
                except NotFound:
                    self._locks.pop(donation_id, None)
                    raise
                candidate = current.clone()
                mutator(candidate)
                candidate.id = current.id
                candidate.revision = current.revision + 1
                candidate.updated_at = utcnow()

                values = candidate.model_dump(exclude={"id"})
                async with self._session_factory() as session:
                    result = await session.execute(
                        sa_update(Donation)
                        .where(Donation.id == donation_id)  # type: ignore[arg-type]
                        .where(Donation.revision == current.revision)  # type: ignore[arg-type]
                        .values(**values)
                    )
                    await session.commit()

                if result.rowcount == 1:
                    break
                logger.debug("donation_update_conflict id=%s revision=%s", donation_id, current.revision)

        # Terminal records take no further events
        if candidate.is_terminal:
            self._locks.pop(donation_id, None)
        return candidate

    async def list_by_status(self, status: DonationStatus) -> List[Donation]:
        return await self._select(
            select(Donation).where(Donation.status == status).order_by(Donation.created_at, Donation.id)  # type: ignore[arg-type]
        )

    async def list_by_donor(self, donor_id: int) -> List[Donation]:
        return await self._select(
            select(Donation).where(Donation.donor_id == donor_id).order_by(Donation.created_at.desc(), Donation.id.desc())  # type: ignore[attr-defined]
        )

    async def list_by_acceptor(self, acceptor_id: int) -> List[Donation]:
        return await self._select(
            select(Donation).where(Donation.acceptor_id == acceptor_id).order_by(Donation.created_at.desc(), Donation.id.desc())  # type: ignore[attr-defined]
        )

    async def _select(self, query) -> List[Donation]:
        async with self._session_factory() as session:
            rows = (await session.execute(query)).scalars().all()
        return [row.clone() for row in rows]
