# tests/test_dashboard_service.py
"""Dashboard aggregates against a seeded SQLite database."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import datetime, timedelta, date
from unittest.mock import MagicMock
from app.services import dashboard_service
from app.services.exceptions import ValidationFailed

NOW = datetime(2024, 5, 15, 10, 30, 0)


@pytest.fixture
def seeded(factory):
    """Five trips covering every active/overdue combination."""
    return {
        "booked_open": factory.trip(status="booked"),
        "on_trip_future_end": factory.trip(status="on trip", trip_end=NOW + timedelta(hours=3)),
        "overdue": factory.trip(status="on trip", trip_end=NOW - timedelta(hours=1)),
        "booked_past_end": factory.trip(status="booked", trip_end=NOW - timedelta(days=1),
                                        created_at=NOW - timedelta(days=2)),
        "finished": factory.trip(status="finished", trip_end=NOW - timedelta(hours=4),
                                 created_at=NOW - timedelta(days=40)),
    }


class TestAlerts:
    def test_active_trip_definition(self, db, seeded):
        alerts = dashboard_service.compute_alerts(db, NOW)
        assert alerts["active_trips"] == 2
        assert alerts["overdue_trips"] == 1

    def test_active_trips_list_matches_count(self, db, seeded):
        ids = {t["id"] for t in dashboard_service.active_trips(db, NOW)}
        assert ids == {seeded["booked_open"].id, seeded["on_trip_future_end"].id}

    def test_drivers_on_trip_counts_distinct_drivers(self, db, factory):
        driver = factory.driver()
        factory.trip(driver=driver, status="booked")
        factory.trip(driver=driver, status="on trip")
        factory.trip(status="booked")
        assert dashboard_service.drivers_on_trip(db, NOW) == 2


class TestStats:
    def test_trip_stats_buckets(self, db, seeded):
        stats = dashboard_service.trip_stats(db, NOW)
        assert stats["total"] == 5
        assert stats["today"] == 3
        assert stats["this_week"] == 4     # Monday 13th onwards
        assert stats["this_month"] == 4
        assert stats["booked"] == 2
        assert stats["on_trip"] == 2
        assert stats["finished"] == 1
        assert stats["completed_today"] == 0

    def test_vehicle_stats_by_status_and_type(self, db, factory):
        factory.vehicle(status="available")
        factory.vehicle(status="maintenance")
        factory.vehicle(status="assigned", type_name="HIACE")
        factory.vehicle_type("COASTER")

        stats = dashboard_service.vehicle_stats(db)

        assert stats["total"] == 3
        assert stats["available"] == 1
        assert stats["maintenance"] == 1
        assert stats["assigned"] == 1
        assert {t["name"]: t["count"] for t in stats["by_type"]} == {"HILUX": 2, "HIACE": 1, "COASTER": 0}

    def test_monthly_trends_zero_filled(self, db, seeded):
        trends = dashboard_service.monthly_trends(db, NOW)
        assert [t["month"] for t in trends] == [
            "Dec 2023", "Jan 2024", "Feb 2024", "Mar 2024", "Apr 2024", "May 2024"]
        assert trends[-1] == {"month": "May 2024", "trips": 4, "completed": 0}
        assert trends[-2] == {"month": "Apr 2024", "trips": 1, "completed": 1}
        assert trends[0]["trips"] == 0


class TestRankings:
    def test_top_drivers_tie_broken_by_id(self, db, factory):
        first, second = factory.driver(), factory.driver()
        factory.trip(driver=second, liters=10)
        factory.trip(driver=first, liters=5)

        ranking = dashboard_service.top_drivers(db, NOW - timedelta(days=1), NOW)

        assert [d["id"] for d in ranking] == [first.id, second.id]
        assert ranking[1]["total_fuel"] == 10.0

    def test_top_destinations_with_average_fuel(self, db, factory):
        factory.trip(place="Capitol", liters=10)
        factory.trip(place="Capitol", liters=20)
        factory.trip(place="Airport", liters=5)

        ranking = dashboard_service.top_destinations(db, NOW - timedelta(days=1), NOW)

        assert ranking[0] == {"place": "Capitol", "trip_count": 2, "avg_fuel": 15.0}

    def test_most_used_vehicles_only_with_trips(self, db, factory):
        used = factory.vehicle()
        factory.vehicle()
        factory.trip(vehicle=used)

        ranking = dashboard_service.most_used_vehicles(db, NOW - timedelta(days=1), NOW, with_trips_only=True)

        assert [v["id"] for v in ranking] == [used.id]

    def test_fuel_stats(self, db, factory):
        factory.trip(fuel_type="Diesel", liters=10)
        factory.trip(fuel_type="Diesel", liters=15)
        factory.trip(fuel_type="Gasoline", liters=5)

        stats = dashboard_service.fuel_stats(db, NOW - timedelta(days=1), NOW)

        assert stats["total_liters"] == 30.0
        assert stats["by_fuel_type"][0] == {"fuel_type": "Diesel", "total_liters": 25.0, "trip_count": 2}


class TestFormatTrip:
    def test_duration_from_start_and_end(self):
        trip = MagicMock(trip_start=datetime(2024, 5, 15, 8, 0), trip_end=datetime(2024, 5, 15, 10, 45))
        assert dashboard_service.trip_duration(trip, NOW) == "02:45"

    def test_duration_humanized_while_running(self):
        trip = MagicMock(trip_start=NOW - timedelta(hours=3), trip_end=None)
        assert dashboard_service.trip_duration(trip, NOW) == "3 hours"

    def test_duration_unknown(self):
        trip = MagicMock(trip_start=None, trip_end=None)
        assert dashboard_service.trip_duration(trip, NOW) is None

    def test_format_trip(self, db, factory):
        trip = factory.trip(place="Capitol", created_at=NOW - timedelta(minutes=5))
        formatted = dashboard_service.format_trip(trip, NOW)
        assert formatted["tickNo"] == trip.tick_no
        assert formatted["vehicle"]["type"] == "HILUX"
        assert formatted["created_ago"] == "5 minutes ago"


class TestCachedReadModels:
    def test_dashboard_served_from_cache_until_cleared(self, db, factory, cache):
        factory.trip()
        assert dashboard_service.dashboard(db, cache)["tripStats"]["total"] == 1

        factory.trip()
        assert dashboard_service.dashboard(db, cache)["tripStats"]["total"] == 1

        dashboard_service.clear_cache(cache)
        assert dashboard_service.dashboard(db, cache)["tripStats"]["total"] == 2

    def test_dashboard_contains_every_panel(self, db, seeded, cache):
        data = dashboard_service.dashboard(db, cache)
        for key in ("tripStats", "vehicleStats", "driverStats", "recentTrips", "activeTrips", "fuelStats",
                    "monthlyTrends", "topDestinations", "topDrivers", "mostUsedVehicles", "projectStats",
                    "alerts"):
            assert key in data
        assert data["alerts"]["active_trips"] == 2

    def test_next_hour_recomputes(self, db, factory, cache, clock):
        factory.trip()
        dashboard_service.quick_stats(db, cache)
        factory.trip()
        clock.current = NOW.replace(hour=11, minute=0, second=1)
        assert dashboard_service.quick_stats(db, cache)["trips_today"] == 2

    def test_live_updates_partial(self, db, factory, cache):
        factory.trip(created_at=NOW - timedelta(hours=2))
        fresh = factory.trip(created_at=NOW - timedelta(seconds=30))

        result = dashboard_service.live_updates(db, cache, last_update=NOW - timedelta(minutes=1))

        assert result["refresh_needed"] is False
        assert [t["id"] for t in result["updates"]["new_trips"]] == [fresh.id]
        assert result["updates"]["stats"]["booked_trips"] == 2

    def test_live_updates_with_aware_last_update(self, db, factory, cache):
        factory.trip(created_at=NOW - timedelta(seconds=10))
        last_update = (NOW - timedelta(seconds=30)).astimezone()

        result = dashboard_service.live_updates(db, cache, last_update=last_update)

        assert result["refresh_needed"] is False
        assert len(result["updates"]["new_trips"]) == 1

    def test_live_updates_without_last_update(self, db, cache):
        result = dashboard_service.live_updates(db, cache)
        assert result["refresh_needed"] is True
        assert result["updates"] == {}

    def test_live_updates_full(self, db, seeded, cache):
        result = dashboard_service.live_updates(db, cache, last_update=NOW - timedelta(minutes=5),
                                                refresh_type="full")
        assert result["refresh_needed"] is True
        assert result["data"]["tripStats"]["total"] == 5

    def test_trip_stats_by_range(self, db, seeded, cache):
        result = dashboard_service.trip_stats_by_range(db, cache, date(2024, 5, 13), date(2024, 5, 15))
        assert result["total"] == 4
        assert result["date_range"] == "May 13, 2024 - May 15, 2024"

    def test_trip_stats_by_range_rejects_inverted_range(self, db, cache):
        with pytest.raises(ValidationFailed) as exc:
            dashboard_service.trip_stats_by_range(db, cache, date(2024, 5, 15), date(2024, 5, 1))
        assert "end_date" in exc.value.errors

    def test_recent_activity(self, db, factory, cache):
        factory.trip(place=None)
        activity = dashboard_service.recent_activity(db, cache)
        assert activity[0]["action"] == "created"
        assert activity[0]["description"].endswith("to Unknown destination")

    def test_refresh_repopulates(self, db, seeded, cache):
        result = dashboard_service.refresh(db, cache)
        assert result["data"]["tripStats"]["total"] == 5
        assert cache.backend.get(cache.key_for("main")) == result["data"]
