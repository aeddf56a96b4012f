"""Tests for the availability checker."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from appointment_routing.routing.availability import AvailabilityChecker, day_window, has_slot


class TestDayWindow:
    def test_spans_exactly_one_utc_day(self):
        start, end = day_window(date(2025, 3, 10))
        assert start == datetime(2025, 3, 10, tzinfo=UTC)
        assert end - start == timedelta(hours=24)
        assert start.utcoffset() == timedelta(0)

    @pytest.mark.parametrize("offset_hours", [-11, -4, 0, 5.5, 14])
    def test_ignores_the_callers_offset(self, offset_hours):
        tz = timezone(timedelta(hours=offset_hours))
        requested = datetime(2025, 3, 10, 14, 0, tzinfo=tz)
        start, end = day_window(requested.date())
        assert (start, end) == (
            datetime(2025, 3, 10, tzinfo=UTC),
            datetime(2025, 3, 11, tzinfo=UTC),
        )


class TestHasSlot:
    def test_matches_same_instant_in_different_offsets(self):
        slots = {datetime(2025, 3, 10, 18, 0, tzinfo=UTC)}
        local = datetime(2025, 3, 10, 14, 0, tzinfo=timezone(timedelta(hours=-4)))
        assert has_slot(slots, local)

    def test_one_second_off_is_a_miss(self):
        slots = {datetime(2025, 3, 10, 18, 0, 1, tzinfo=UTC)}
        assert not has_slot(slots, datetime(2025, 3, 10, 18, 0, tzinfo=UTC))

    def test_empty_set_never_matches(self):
        assert not has_slot(frozenset(), datetime(2025, 3, 10, 18, 0, tzinfo=UTC))


class TestFreeSlots:
    @pytest.mark.asyncio
    async def test_parses_slots_to_utc(self, fake_ghl):
        fake_ghl.slots["cal-1"] = [
            "2025-03-10T13:30:00-04:00",
            "2025-03-10T14:00:00-04:00",
        ]
        slots = await AvailabilityChecker(fake_ghl).free_slots("cal-1", date(2025, 3, 10))

        assert slots == {
            datetime(2025, 3, 10, 17, 30, tzinfo=UTC),
            datetime(2025, 3, 10, 18, 0, tzinfo=UTC),
        }

    @pytest.mark.asyncio
    async def test_queries_the_utc_day_window(self, fake_ghl):
        await AvailabilityChecker(fake_ghl).free_slots("cal-1", date(2025, 3, 10))

        (_, calendar_id, start, end), = fake_ghl.calls_named("get_free_slots")
        assert calendar_id == "cal-1"
        assert start == datetime(2025, 3, 10, tzinfo=UTC)
        assert end == datetime(2025, 3, 11, tzinfo=UTC)

    @pytest.mark.asyncio
    async def test_upstream_failure_yields_empty_set(self, fake_ghl):
        fake_ghl.failing_calendars.add("cal-1")
        slots = await AvailabilityChecker(fake_ghl).free_slots("cal-1", date(2025, 3, 10))
        assert slots == frozenset()

    @pytest.mark.asyncio
    async def test_missing_day_bucket_yields_empty_set(self, fake_ghl):
        async def other_day(calendar_id, start, end):
            return {"2025-03-11": {"slots": ["2025-03-11T14:00:00Z"]}}

        fake_ghl.get_free_slots = other_day
        slots = await AvailabilityChecker(fake_ghl).free_slots("cal-1", date(2025, 3, 10))
        assert slots == frozenset()

    @pytest.mark.asyncio
    async def test_unparseable_slots_are_skipped(self, fake_ghl):
        fake_ghl.slots["cal-1"] = ["not-a-time", "2025-03-10T18:00:00Z", "2025-03-10T19:00:00"]
        slots = await AvailabilityChecker(fake_ghl).free_slots("cal-1", date(2025, 3, 10))
        # the naive timestamp is skipped as well: it has no absolute meaning
        assert slots == {datetime(2025, 3, 10, 18, 0, tzinfo=UTC)}
