"""Tests for the badge engine: stats, evaluation, progress and unlock records."""

from __future__ import annotations

import datetime
import threading
from unittest.mock import MagicMock, patch

import pytest
from google.api_core.exceptions import ServiceUnavailable

from loglynx.badges import stats as stats_module
from loglynx.badges.models import (
    BADGE_DEFINITIONS,
    BADGE_ID_ALIASES,
    normalize_badge_id,
)
from loglynx.badges.services import BadgeService
from loglynx.badges.stats import compute_stats, compute_stats_report, days_active
from loglynx.errors import (
    NotFoundError,
    StatsTimeoutError,
    StoreUnavailableError,
    ValidationError,
)
from tests.conftest import MOCK_USER_ID, ApiTestCase


def make_stats(**overrides):
    stats = {
        "totalMileage": 0,
        "bikeCount": 0,
        "serviceCount": 0,
        "componentCount": 0,
        "totalServiceCost": 0,
        "daysActive": 0,
    }
    stats.update(overrides)
    return stats


def test_catalog_order_and_requirements():
    ids = [badge["id"] for badge in BADGE_DEFINITIONS]
    assert ids == [  # nosec B101
        "first_ride",
        "century",
        "half_marathon",
        "marathon",
        "ultra_marathon",
        "bike_collector",
        "maintenance_master",
        "component_expert",
        "big_spender",
        "dedicated_rider",
    ]
    assert all(badge["requirements"] for badge in BADGE_DEFINITIONS)  # nosec B101


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("first_steps", "first_ride"),
        ("FIRST_BIKE", "first_ride"),
        ("KM_100", "century"),
        (" km_100 ", " km_100 "),
        ("hundred_km", "century"),
        ("km_500", "half_marathon"),
        ("thousand_km", "marathon"),
        ("distance_master", "ultra_marathon"),
        ("bike_owner", "bike_collector"),
        ("maintenance_expert", "maintenance_master"),
        ("component_master", "component_expert"),
        ("Century", "century"),
        ("Mystery_Badge", "mystery_badge"),
    ],
)
def test_normalize_badge_id(raw, expected):
    assert normalize_badge_id(raw) == expected  # nosec B101


def test_alias_table_is_read_only():
    with pytest.raises(TypeError):
        BADGE_ID_ALIASES["new_alias"] = "century"  # type: ignore[index]


def test_days_active_accepts_datetimes_and_epoch_ms():
    now = datetime.datetime(2024, 3, 31, 12, tzinfo=datetime.timezone.utc)
    created = datetime.datetime(2024, 3, 1, 13, tzinfo=datetime.timezone.utc)

    assert days_active({"createdAt": created}, now) == 29  # nosec B101
    assert days_active({"createdAt": created.replace(tzinfo=None)}, now) == 29  # nosec B101
    created_ms = int(created.timestamp() * 1000)
    assert days_active({"createdAt": created_ms}, now) == 29  # nosec B101
    assert days_active({}, now) == 0  # nosec B101
    assert days_active(None, now) == 0  # nosec B101


def test_requirement_met_ignores_unknown_types():
    stats = make_stats(totalMileage=10_000)
    unknown = {"type": "elevation_gain", "value": 0}
    assert BadgeService.requirement_met(unknown, stats) is False  # nosec B101
    assert BadgeService.stat_for(unknown, stats) is None  # nosec B101


@pytest.mark.parametrize(
    "current",
    [-5, 0, 1, 49.9, 99, 100, 100.5, 250, 10_000],
)
def test_progress_is_bounded(current):
    for badge in BADGE_DEFINITIONS:
        requirement = badge["requirements"][0]
        stats = make_stats(
            totalMileage=current,
            bikeCount=current,
            serviceCount=current,
            componentCount=current,
            totalServiceCost=current,
            daysActive=current,
        )
        progress = BadgeService.progress_for(badge, stats)
        assert 0 <= progress["percentage"] <= 100  # nosec B101
        if current >= requirement["value"]:
            assert progress["percentage"] == 100  # nosec B101


def test_progress_uses_first_requirement_only():
    badge = {
        "id": "combo",
        "name": "Combo",
        "description": "",
        "icon": "",
        "rarity": "rare",
        "category": "achievement",
        "requirements": [
            {"type": "total_mileage", "value": 200},
            {"type": "bike_count", "value": 5},
        ],
    }
    progress = BadgeService.progress_for(badge, make_stats(totalMileage=50))
    assert progress == {  # nosec B101
        "badgeId": "combo",
        "current": 50,
        "target": 200,
        "percentage": 25,
    }


def test_progress_with_zero_target_is_complete():
    badge = dict(BADGE_DEFINITIONS[0])
    badge["requirements"] = [{"type": "bike_count", "value": 0}]
    progress = BadgeService.progress_for(badge, make_stats())
    assert progress["percentage"] == 100  # nosec B101


def test_progress_for_unknown_type_reports_zero():
    badge = dict(BADGE_DEFINITIONS[0])
    badge["requirements"] = [{"type": "elevation_gain", "value": 10}]
    progress = BadgeService.progress_for(badge, make_stats(totalMileage=500))
    assert progress["current"] == 0  # nosec B101
    assert progress["percentage"] == 0  # nosec B101


class StatsTestCase(ApiTestCase):
    """Tests for the stats aggregator against MockFirestore."""

    def seed(self) -> None:
        self.add_bike("b1", totalMileage=60)
        self.add_bike("b2", totalMileage=40.5)
        self.add_bike("foreign", owner="someone-else", totalMileage=999)
        logs = self.db.collection("service-logs")
        logs.document("l1").set({"bikeId": "b1", "userUid": MOCK_USER_ID, "cost": 25})
        logs.document("l2").set({"bikeId": "b2", "userUid": MOCK_USER_ID, "cost": 10.5})
        logs.document("l3").set({"bikeId": "x", "userUid": "someone-else", "cost": 400})
        components = self.db.collection("components")
        components.document("c1").set({"ownerUid": MOCK_USER_ID, "kind": "chain"})
        components.document("c2").set({"ownerUid": MOCK_USER_ID, "kind": "tyre"})
        components.document("c3").set({"ownerUid": "someone-else", "kind": "tyre"})
        created = datetime.datetime.now(datetime.timezone.utc) - datetime.timedelta(
            days=45, hours=1
        )
        self.db.collection("users").document(MOCK_USER_ID).set({"createdAt": created})

    def test_compute_stats(self) -> None:
        self.seed()
        stats = compute_stats(self.db, MOCK_USER_ID)
        self.assertEqual(
            stats,
            {
                "totalMileage": 100.5,
                "bikeCount": 2,
                "serviceCount": 2,
                "componentCount": 2,
                "totalServiceCost": 35.5,
                "daysActive": 45,
            },
        )

    def test_new_user_has_zero_stats(self) -> None:
        report = compute_stats_report(self.db, "brand-new-user")
        self.assertEqual(report.stats, make_stats())
        self.assertFalse(report.degraded)

    def test_non_numeric_values_count_as_zero(self) -> None:
        self.add_bike("b1", totalMileage="lots")
        self.add_bike("b2", totalMileage=None)
        stats = compute_stats(self.db, MOCK_USER_ID)
        self.assertEqual(stats["totalMileage"], 0)
        self.assertEqual(stats["bikeCount"], 2)

    def test_failed_source_degrades_to_zero(self) -> None:
        self.seed()

        def broken(db, uid):
            raise ServiceUnavailable("components offline")

        with patch.dict(stats_module.STATS_SOURCES, {"components": broken}):
            report = compute_stats_report(self.db, MOCK_USER_ID)

        self.assertEqual(report.stats["componentCount"], 0)
        self.assertEqual(report.stats["totalMileage"], 100.5)
        self.assertEqual(report.stats["bikeCount"], 2)
        self.assertEqual(report.stats["serviceCount"], 2)
        self.assertEqual(report.stats["daysActive"], 45)
        self.assertEqual(list(report.failures), ["components"])
        self.assertIn("components offline", report.failures["components"])

    def test_failed_source_still_unlocks_mileage_badges(self) -> None:
        self.seed()

        def broken(db, uid):
            raise RuntimeError("boom")

        with patch.dict(stats_module.STATS_SOURCES, {"components": broken}):
            unlocked = BadgeService.evaluate_and_unlock(self.db, MOCK_USER_ID)

        # the account source still works, so 45 days also earns dedicated_rider
        self.assertEqual(
            [badge["id"] for badge in unlocked],
            ["first_ride", "century", "dedicated_rider"],
        )

    def test_every_source_failing_still_returns_stats(self) -> None:
        def broken(db, uid):
            raise RuntimeError("boom")

        sources = {name: broken for name in stats_module.STATS_SOURCES}
        with patch.dict(stats_module.STATS_SOURCES, sources):
            report = compute_stats_report(self.db, MOCK_USER_ID)

        self.assertEqual(report.stats, make_stats())
        self.assertEqual(len(report.failures), 4)

    def test_timeout_discards_partial_results(self) -> None:
        release = threading.Event()
        self.addCleanup(release.set)

        def slow(db, uid):
            release.wait(5)
            return []

        with patch.dict(stats_module.STATS_SOURCES, {"serviceLogs": slow}):
            with self.assertRaises(StatsTimeoutError):
                compute_stats_report(self.db, MOCK_USER_ID, timeout=0.05)


class BadgeServiceTestCase(ApiTestCase):
    """Tests for evaluation and the unlock store."""

    def unlock_records(self) -> list[dict]:
        # reads leave empty placeholder documents behind in mockfirestore
        return [
            doc.to_dict()
            for doc in self.db.collection("user_badges").stream()
            if doc.exists
        ]

    def test_scenario_hundred_miles_one_bike(self) -> None:
        stats = make_stats(totalMileage=100, bikeCount=1)
        unlocked = BadgeService.evaluate_and_unlock(self.db, MOCK_USER_ID, stats)
        self.assertEqual([b["id"] for b in unlocked], ["first_ride", "century"])
        for badge in unlocked:
            self.assertTrue(badge["isUnlocked"])
            self.assertEqual(badge["progress"], 100)
            self.assertIsInstance(badge["unlockedAt"], int)

    def test_scenario_three_bikes_no_mileage(self) -> None:
        stats = make_stats(bikeCount=3)
        unlocked = BadgeService.evaluate_and_unlock(self.db, MOCK_USER_ID, stats)
        self.assertEqual([b["id"] for b in unlocked], ["bike_collector"])

    def test_scenario_from_stored_data(self) -> None:
        self.add_bike("b1", totalMileage=100)
        unlocked = BadgeService.evaluate_and_unlock(self.db, MOCK_USER_ID)
        self.assertEqual([b["id"] for b in unlocked], ["first_ride", "century"])

    def test_no_qualifying_badges_is_empty(self) -> None:
        unlocked = BadgeService.evaluate_and_unlock(
            self.db, MOCK_USER_ID, make_stats()
        )
        self.assertEqual(unlocked, [])
        self.assertEqual(self.unlock_records(), [])

    def test_evaluation_is_idempotent(self) -> None:
        stats = make_stats(
            totalMileage=5000,
            bikeCount=3,
            serviceCount=10,
            componentCount=5,
            totalServiceCost=500,
            daysActive=30,
        )
        first = BadgeService.evaluate_and_unlock(self.db, MOCK_USER_ID, stats)
        second = BadgeService.evaluate_and_unlock(self.db, MOCK_USER_ID, stats)

        self.assertEqual(len(first), len(BADGE_DEFINITIONS))
        self.assertEqual(second, [])
        records = self.unlock_records()
        self.assertEqual(len(records), len(BADGE_DEFINITIONS))
        self.assertEqual(
            len({record["badgeId"] for record in records}), len(records)
        )

    def test_unlocks_are_monotonic(self) -> None:
        BadgeService.evaluate_and_unlock(
            self.db, MOCK_USER_ID, make_stats(totalMileage=1)
        )
        before = BadgeService.get_user_badge(self.db, MOCK_USER_ID, "first_ride")

        # Stats drop back to zero; the badge stays unlocked and untouched.
        BadgeService.evaluate_and_unlock(self.db, MOCK_USER_ID, make_stats())
        BadgeService.unlock_badge(self.db, MOCK_USER_ID, "first_ride")
        after = BadgeService.get_user_badge(self.db, MOCK_USER_ID, "first_ride")

        self.assertEqual(before, after)
        self.assertEqual(after["progress"], 100)

    def test_and_semantics(self) -> None:
        combo = {
            "id": "combo",
            "name": "Combo",
            "description": "Ride 100 and own 2 bikes",
            "icon": "",
            "rarity": "rare",
            "category": "achievement",
            "requirements": [
                {"type": "total_mileage", "value": 100},
                {"type": "bike_count", "value": 2},
            ],
        }
        with patch("loglynx.badges.services.BADGE_DEFINITIONS", (combo,)):
            not_yet = BadgeService.evaluate_and_unlock(
                self.db, MOCK_USER_ID, make_stats(totalMileage=150, bikeCount=1)
            )
            unlocked = BadgeService.evaluate_and_unlock(
                self.db, MOCK_USER_ID, make_stats(totalMileage=150, bikeCount=2)
            )

        self.assertEqual(not_yet, [])
        self.assertEqual([b["id"] for b in unlocked], ["combo"])

    def test_unknown_requirement_never_unlocks(self) -> None:
        odd = dict(BADGE_DEFINITIONS[0])
        odd["id"] = "odd"
        odd["requirements"] = [{"type": "elevation_gain", "value": 0}]
        with patch("loglynx.badges.services.BADGE_DEFINITIONS", (odd,)):
            unlocked = BadgeService.evaluate_and_unlock(
                self.db, MOCK_USER_ID, make_stats(totalMileage=10_000)
            )
        self.assertEqual(unlocked, [])

    def test_record_lost_to_concurrent_evaluator_is_not_reported(self) -> None:
        BadgeService.unlock_badge(self.db, MOCK_USER_ID, "first_ride")
        BadgeService.unlock_badge(self.db, MOCK_USER_ID, "century")

        # Each record appears between the existence check and the write.
        original = BadgeService._read_unlock
        checked = set()

        def stale_read(db, uid, badge_id):
            if badge_id not in checked:
                checked.add(badge_id)
                return None
            return original(db, uid, badge_id)

        with patch.object(BadgeService, "_read_unlock", side_effect=stale_read):
            unlocked = BadgeService.evaluate_and_unlock(
                self.db, MOCK_USER_ID, make_stats(totalMileage=100)
            )

        self.assertEqual(unlocked, [])
        self.assertEqual(len(self.unlock_records()), 2)

    def test_create_unlock_reports_existing_record(self) -> None:
        record, created = BadgeService.create_unlock(self.db, MOCK_USER_ID, "century")
        again, created_again = BadgeService.create_unlock(
            self.db, MOCK_USER_ID, "century"
        )
        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertEqual(record, again)

    def test_unlock_record_shape(self) -> None:
        BadgeService.unlock_badge(self.db, MOCK_USER_ID, "km_100")
        doc = self.db.collection("user_badges").document(f"{MOCK_USER_ID}_century")
        data = doc.get().to_dict()
        self.assertEqual(data["uid"], MOCK_USER_ID)
        self.assertEqual(data["badgeId"], "century")
        self.assertEqual(data["progress"], 100)
        self.assertEqual(data["unlockedAt"], data["createdAt"])

    def test_alias_resolves_to_same_record(self) -> None:
        BadgeService.unlock_badge(self.db, MOCK_USER_ID, "first_ride")
        canonical = BadgeService.get_user_badge(self.db, MOCK_USER_ID, "first_ride")
        legacy = BadgeService.get_user_badge(self.db, MOCK_USER_ID, "first_steps")
        self.assertIsNotNone(canonical)
        self.assertEqual(canonical, legacy)
        self.assertEqual(legacy["badgeId"], "first_ride")

    def test_get_user_badge_not_unlocked_is_none(self) -> None:
        self.assertIsNone(
            BadgeService.get_user_badge(self.db, MOCK_USER_ID, "marathon")
        )

    def test_unknown_badge_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError) as ctx:
            BadgeService.get_user_badge(self.db, MOCK_USER_ID, "mystery")
        self.assertEqual(ctx.exception.code, "BADGE_NOT_FOUND")
        with self.assertRaises(NotFoundError):
            BadgeService.unlock_badge(self.db, MOCK_USER_ID, "mystery")
        self.assertEqual(self.unlock_records(), [])

    def test_unlock_requires_badge_id(self) -> None:
        with self.assertRaises(ValidationError):
            BadgeService.unlock_badge(self.db, MOCK_USER_ID, "")

    def test_century_progress_after_unlock(self) -> None:
        self.add_bike("b1", totalMileage=100)
        BadgeService.unlock_badge(self.db, MOCK_USER_ID, "century")
        progress = BadgeService.get_progress(self.db, MOCK_USER_ID)

        self.assertEqual(len(progress), len(BADGE_DEFINITIONS))
        century = next(p for p in progress if p["badgeId"] == "century")
        self.assertEqual(
            century,
            {"badgeId": "century", "current": 100, "target": 100, "percentage": 100},
        )

    def test_get_user_badges_in_catalog_order(self) -> None:
        BadgeService.unlock_badge(self.db, MOCK_USER_ID, "dedicated_rider")
        BadgeService.unlock_badge(self.db, MOCK_USER_ID, "first_ride")
        BadgeService.unlock_badge(self.db, "someone-else", "century")

        badges = BadgeService.get_user_badges(self.db, MOCK_USER_ID)

        self.assertEqual([b["id"] for b in badges], ["first_ride", "dedicated_rider"])
        self.assertTrue(all(b["isUnlocked"] for b in badges))
        self.assertEqual(badges[0]["name"], "First Ride")

    def test_store_read_failure_is_surfaced(self) -> None:
        db = MagicMock()
        db.collection.return_value.document.return_value.get.side_effect = (
            ServiceUnavailable("firestore down")
        )
        with self.assertRaises(StoreUnavailableError) as ctx:
            BadgeService.get_user_badge(db, MOCK_USER_ID, "century")
        self.assertEqual(ctx.exception.status_code, 503)

    def test_store_write_failure_is_surfaced(self) -> None:
        db = MagicMock()
        doc_ref = db.collection.return_value.document.return_value
        doc_ref.get.return_value.exists = False
        doc_ref.create.side_effect = ServiceUnavailable("firestore down")
        with self.assertRaises(StoreUnavailableError):
            BadgeService.unlock_badge(db, MOCK_USER_ID, "century")

    def test_evaluation_fails_loudly_when_unlock_store_is_down(self) -> None:
        db = MagicMock()
        db.collection.return_value.document.return_value.get.side_effect = (
            ServiceUnavailable("firestore down")
        )
        with self.assertRaises(StoreUnavailableError):
            BadgeService.evaluate_and_unlock(
                db, MOCK_USER_ID, make_stats(totalMileage=100)
            )
