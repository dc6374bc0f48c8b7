"""Tests for the tracking and nearby-refresh loops.

The scheduler is never started here; each test drives the ticks itself.
"""

from datetime import timedelta

from foodshare_bot.models import DonationStatus
from foodshare_bot.services.locations import LiveLocationSource
from foodshare_bot.services.tracking import TrackingScheduler
from foodshare_bot.utils.geo import GeoPoint

from .factories import DONOR_HOME, NGO_HQ, make_donation


async def en_route_donation(service):
    donation = await service.create_donation(100, "Rice", 15, 3, "CP", DONOR_HOME)
    await service.accept_donation(donation.id, 200, "Food Bank", NGO_HQ)
    return await service.start_pickup(donation.id)


class StoppingSource:
    """Location source that cancels tracking while the fix is being fetched."""

    def __init__(self):
        self.tracker = None

    async def next_location(self, donation):
        self.tracker.stop_tracking(donation.id)
        return GeoPoint(28.51, 77.31)

    def release(self, donation_id):
        pass


class TestTrackingJobs:
    async def test_start_registers_interval_job(self, service, tracker):
        donation = await en_route_donation(service)
        job = tracker.scheduler.get_job(f"track:{donation.id}")
        assert job is not None
        assert job.trigger.interval == timedelta(seconds=5)

    async def test_start_and_stop_are_idempotent(self, service, tracker):
        donation = await en_route_donation(service)
        tracker.start_tracking(donation.id)
        assert len([j for j in tracker.scheduler.get_jobs() if j.id == f"track:{donation.id}"]) == 1

        tracker.stop_tracking(donation.id)
        tracker.stop_tracking(donation.id)
        assert tracker.scheduler.get_job(f"track:{donation.id}") is None
        assert not tracker.is_tracking(donation.id)

    async def test_tick_after_stop_does_nothing(self, service, tracker):
        donation = await en_route_donation(service)
        tracker.stop_tracking(donation.id)

        assert await tracker.tracking_tick(donation.id) is None
        assert (await service.get(donation.id)).revision == donation.revision

    async def test_stop_during_tick_discards_fix(self, engine, service):
        source = StoppingSource()
        tracker = TrackingScheduler(engine, source, tracking_interval=5, refresh_interval=10)
        source.tracker = tracker
        service.tracker = tracker
        donation = await en_route_donation(service)

        assert await tracker.tracking_tick(donation.id) is None
        stored = await service.get(donation.id)
        assert stored.revision == donation.revision
        assert stored.acceptor_location == NGO_HQ

    async def test_loop_ends_when_donation_leaves_en_route(self, service, tracker, engine):
        donation = await en_route_donation(service)
        await engine.complete(donation.id)  # bypasses the service, tracker not told

        assert await tracker.tracking_tick(donation.id) is None
        assert not tracker.is_tracking(donation.id)
        assert tracker.scheduler.get_job(f"track:{donation.id}") is None

    async def test_loop_ends_for_unknown_donation(self, tracker):
        tracker.start_tracking(777)
        assert await tracker.tracking_tick(777) is None
        assert not tracker.is_tracking(777)

    async def test_resume_picks_up_en_route_donations(self, service, tracker):
        donation = await en_route_donation(service)
        await service.create_donation(101, "Bread", 5, 2, "", DONOR_HOME)
        tracker.stop_tracking(donation.id)

        assert await tracker.resume() == 1
        assert tracker.is_tracking(donation.id)


class TestPublishing:
    async def test_listeners_see_each_revision_once(self, service, tracker):
        seen = []

        async def listener(d):
            seen.append((d.id, d.revision))

        tracker.subscribe(listener)
        donation = await en_route_donation(service)

        first = await tracker.tracking_tick(donation.id)
        await tracker.publish(first)  # same revision again
        second = await tracker.tracking_tick(donation.id)

        assert seen == [(donation.id, first.revision), (donation.id, second.revision)]

    async def test_failing_listener_does_not_break_the_loop(self, service, tracker):
        calls = []

        async def broken(d):
            raise RuntimeError("telegram down")

        async def ok(d):
            calls.append(d.revision)

        tracker.subscribe(broken)
        tracker.subscribe(ok)
        donation = await en_route_donation(service)

        ticked = await tracker.tracking_tick(donation.id)
        assert ticked is not None
        assert calls == [ticked.revision]


class TestLiveLocationSource:
    async def test_no_fix_means_no_update(self, engine, service):
        live = LiveLocationSource()
        tracker = TrackingScheduler(engine, live, tracking_interval=5, refresh_interval=10)
        service.tracker = tracker
        donation = await en_route_donation(service)

        assert await tracker.tracking_tick(donation.id) is None
        assert tracker.is_tracking(donation.id)

        live.push(200, GeoPoint(28.52, 77.28))
        ticked = await tracker.tracking_tick(donation.id)
        assert ticked.acceptor_location == GeoPoint(28.52, 77.28)
        assert ticked.revision == donation.revision + 1

        # the fix was consumed
        assert await tracker.tracking_tick(donation.id) is None

    async def test_one_fix_reaches_every_pickup_of_the_acceptor(self, engine, service):
        live = LiveLocationSource()
        tracker = TrackingScheduler(engine, live, tracking_interval=5, refresh_interval=10)
        service.tracker = tracker
        first = await en_route_donation(service)
        second = await en_route_donation(service)

        live.push(200, GeoPoint(28.52, 77.28))
        ticked_first = await tracker.tracking_tick(first.id)
        ticked_second = await tracker.tracking_tick(second.id)

        assert ticked_first.acceptor_location == GeoPoint(28.52, 77.28)
        assert ticked_second is not None
        assert ticked_second.acceptor_location == GeoPoint(28.52, 77.28)

    async def test_stopped_donation_is_released(self, engine, service):
        live = LiveLocationSource()
        tracker = TrackingScheduler(engine, live, tracking_interval=5, refresh_interval=10)
        service.tracker = tracker
        donation = await en_route_donation(service)
        live.push(200, GeoPoint(28.52, 77.28))
        await tracker.tracking_tick(donation.id)
        assert donation.id in live._delivered

        tracker.stop_tracking(donation.id)
        assert donation.id not in live._delivered


class TestNearbyRefresh:
    async def test_callback_only_on_change(self, tracker, store):
        received = []

        async def callback(items):
            received.append([item.donation.id for item in items])

        first = await store.create(make_donation())
        tracker.watch_nearby(200, NGO_HQ, 50, callback)
        job = tracker.scheduler.get_job("nearby:200")
        assert job.trigger.interval == timedelta(seconds=10)

        await tracker.refresh_nearby(200)
        await tracker.refresh_nearby(200)
        assert received == [[first.id]]

        second = await store.create(make_donation(food_type="Bread"))
        await tracker.refresh_nearby(200)
        assert len(received) == 2
        assert set(received[1]) == {first.id, second.id}

        await store.update(first.id, lambda d: setattr(d, "status", DonationStatus.CANCELLED))
        await tracker.refresh_nearby(200)
        assert received[-1] == [second.id]

    async def test_stop_watching(self, tracker, store):
        received = []

        async def callback(items):
            received.append(items)

        await store.create(make_donation())
        tracker.watch_nearby(200, NGO_HQ, 50, callback)
        tracker.stop_watching(200)
        tracker.stop_watching(200)

        assert await tracker.refresh_nearby(200) is None
        assert received == []
        assert tracker.scheduler.get_job("nearby:200") is None

    async def test_observer_moves(self, tracker, store):
        received = []

        async def callback(items):
            received.append([item.donation.id for item in items])

        donation = await store.create(make_donation())
        far_away = GeoPoint(19.0760, 72.8777)  # Mumbai
        tracker.watch_nearby(200, far_away, 50, callback)
        await tracker.refresh_nearby(200)
        assert received == [[]]

        tracker.update_observer_location(200, NGO_HQ)
        await tracker.refresh_nearby(200)
        assert received[-1] == [donation.id]
