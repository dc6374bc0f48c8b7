"""Tests for DonationStore against a real SQLite file."""

import asyncio
from datetime import timedelta

import pytest

from foodshare_bot.errors import NotFound
from foodshare_bot.models import DonationStatus

from .factories import make_donation


class TestCreateAndGet:
    async def test_create_assigns_id_and_revision(self, store):
        created = await store.create(make_donation())
        assert created.id is not None
        assert created.revision == 0
        assert created.status is DonationStatus.PENDING

        fetched = await store.get(created.id)
        assert fetched.model_dump() == created.model_dump()

    async def test_naive_utc_timestamps_round_trip(self, store):
        donation = make_donation()
        assert donation.created_at.tzinfo is None

        created = await store.create(donation)
        fetched = await store.get(created.id)
        assert fetched.created_at == donation.created_at
        assert fetched.expires_at == donation.expires_at
        assert fetched.expires_at.tzinfo is None
        assert not fetched.is_expired()

    async def test_get_unknown_id(self, store):
        with pytest.raises(NotFound) as exc:
            await store.get(12345)
        assert exc.value.donation_id == 12345

    async def test_returned_records_are_detached(self, store):
        created = await store.create(make_donation())
        created.food_type = "Changed locally"
        created.status = DonationStatus.CANCELLED

        fetched = await store.get(created.id)
        assert fetched.food_type == "Rice"
        assert fetched.status is DonationStatus.PENDING


class TestUpdate:
    async def test_update_bumps_revision(self, store):
        created = await store.create(make_donation())

        def set_quantity(d):
            d.quantity = 42

        updated = await store.update(created.id, set_quantity)
        assert updated.quantity == 42
        assert updated.revision == 1
        assert updated.updated_at >= created.updated_at
        assert (await store.get(created.id)).model_dump() == updated.model_dump()

    async def test_failing_mutator_writes_nothing(self, store):
        created = await store.create(make_donation())

        def broken(d):
            d.quantity = 999
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await store.update(created.id, broken)
        assert (await store.get(created.id)).model_dump() == created.model_dump()

    async def test_update_unknown_id(self, store):
        with pytest.raises(NotFound):
            await store.update(999, lambda d: None)

    async def test_concurrent_updates_are_serialized(self, store):
        created = await store.create(make_donation(quantity=0))

        def increment(d):
            d.quantity += 1

        await asyncio.gather(*(store.update(created.id, increment) for _ in range(10)))

        final = await store.get(created.id)
        assert final.quantity == 10
        assert final.revision == 10


class TestListing:
    async def test_list_by_status_oldest_first(self, store):
        base = make_donation().created_at
        newer = await store.create(make_donation(food_type="Bread", created_at=base + timedelta(minutes=5)))
        older = await store.create(make_donation(food_type="Rice", created_at=base))
        other = await store.create(make_donation(food_type="Soup"))
        await store.update(other.id, lambda d: setattr(d, "status", DonationStatus.CANCELLED))

        pending = await store.list_by_status(DonationStatus.PENDING)
        assert [d.id for d in pending] == [older.id, newer.id]
        cancelled = await store.list_by_status(DonationStatus.CANCELLED)
        assert [d.id for d in cancelled] == [other.id]

    async def test_list_by_donor_newest_first(self, store):
        base = make_donation().created_at
        first = await store.create(make_donation(created_at=base))
        second = await store.create(make_donation(created_at=base + timedelta(seconds=1)))
        await store.create(make_donation(donor_id=555))

        mine = await store.list_by_donor(100)
        assert [d.id for d in mine] == [second.id, first.id]

    async def test_list_by_acceptor(self, store):
        created = await store.create(make_donation())
        await store.create(make_donation())
        await store.update(created.id, lambda d: setattr(d, "acceptor_id", 200))

        assert [d.id for d in await store.list_by_acceptor(200)] == [created.id]
        assert await store.list_by_acceptor(201) == []
