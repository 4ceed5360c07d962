from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from footprint import crud
from footprint.database import SessionLocal
from footprint.exceptions import ContributionOutOfRange, DuplicateEmail, MalformedActivityError, UserNotFound
from footprint.schemas import UserGoals, UserStats

DAY_N = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


def test_create_user_lowercases_email(db, user):
    assert user.email == "asha@example.com"
    assert crud.load_user_stats(db, user.id) == UserStats()
    with pytest.raises(DuplicateEmail):
        crud.create_user(db, "Someone", "ASHA@example.com")


def test_missing_user(db):
    with pytest.raises(UserNotFound):
        crud.load_user_stats(db, "user_nope")
    with pytest.raises(UserNotFound):
        crud.apply_user_contribution(db, "user_nope", 1.0)


def test_save_and_load_stats(db, user):
    stats = UserStats(total_emissions=12.5, streak=3, last_calculation=DAY_N)
    crud.save_user_stats(db, user.id, stats)
    loaded = crud.load_user_stats(db, user.id)
    assert loaded.total_emissions == 12.5
    assert loaded.streak == 3
    assert loaded.last_calculation.replace(tzinfo=timezone.utc) == DAY_N


def test_record_activity_updates_stats(db, user):
    activity, stats = crud.record_activity(
        db, user.id, "transport", "car", {"vehicleType": "car", "fuelType": "petrol", "distance": 25}, now=DAY_N,
    )
    assert activity.total_co2e == pytest.approx(4.8)
    assert activity.emissions["totalCO2e"] == pytest.approx(4.8)
    assert activity.emissions["factor"]["unit"] == "km"
    assert activity.data["passengers"] == 1
    assert stats.streak == 1
    assert stats.total_emissions == pytest.approx(4.8)
    assert [a.id for a in stats.achievements] == ["first_calculation"]

    _, stats = crud.record_activity(db, user.id, "electricity", "electricity_consumption", {"units": 120},
                                    now=DAY_N + timedelta(days=1))
    assert stats.streak == 2
    assert stats.total_emissions == pytest.approx(103.2)


def test_backfilled_activity_streak_follows_processing_time(db, user):
    crud.record_activity(db, user.id, "water", "water_usage", {"volume": 100}, now=DAY_N)
    _, stats = crud.record_activity(db, user.id, "water", "water_usage", {"volume": 100},
                                    timestamp=DAY_N - timedelta(days=30), now=DAY_N + timedelta(days=1))
    assert stats.streak == 2


def test_client_emissions_are_never_trusted(db, user):
    activity, _ = crud.record_activity(db, user.id, "electricity", "electricity_consumption",
                                       {"units": 10, "emissions": {"totalCO2e": 9999}}, now=DAY_N)
    assert activity.total_co2e == pytest.approx(8.2)


def test_malformed_activity_is_rejected_and_rolled_back(db, user):
    with pytest.raises(MalformedActivityError):
        crud.record_activity(db, user.id, 17, "car", {"distance": 5}, now=DAY_N)
    with pytest.raises(MalformedActivityError):
        crud.record_activity(db, user.id, "transport", "car", [5], now=DAY_N)
    assert crud.get_activities(db, user_id=user.id) == []
    assert crud.load_user_stats(db, user.id).streak == 0


def test_missing_measurement_still_creates_activity(db, user):
    activity, stats = crud.record_activity(db, user.id, "transport", "car", {}, now=DAY_N)
    assert activity.total_co2e == 0
    assert activity.emissions["factor"]["unit"] == "unknown"
    assert stats.streak == 1


def test_append_activity_leaves_stats_alone(db, user):
    activity = crud.append_activity(db, user.id, "diet", "food_consumption", {"foodType": "beef", "quantity": 1})
    assert activity.total_co2e == pytest.approx(27.0)
    assert crud.load_user_stats(db, user.id).total_emissions == 0


def test_queries_and_aggregates(db, user):
    crud.record_activity(db, user.id, "transport", "car", {"distance": 25}, timestamp=DAY_N, now=DAY_N)
    crud.record_activity(db, user.id, "electricity", "electricity_consumption", {"units": 120},
                         timestamp=DAY_N + timedelta(hours=1), now=DAY_N)
    crud.record_activity(db, user.id, "transport", "bus", {"vehicleType": "bus", "distance": 10},
                         timestamp=DAY_N + timedelta(hours=2), now=DAY_N)

    latest = crud.get_activities(db, user_id=user.id, limit=2)
    assert [a.category for a in latest] == ["bus", "electricity_consumption"]
    assert len(crud.get_activities(db, activity_type="transport")) == 2

    summary = crud.get_user_emissions(db, user.id)
    assert summary.activity_count == 3
    assert summary.total_emissions == pytest.approx(4.8 + 98.4 + 0.89)
    assert crud.get_user_emissions(db, user.id, start=DAY_N + timedelta(minutes=30)).activity_count == 2

    breakdown = crud.get_emissions_by_type(db, user.id)
    assert breakdown[0].type == "electricity"


def test_refresh_rollups(db, user):
    now = datetime(2024, 5, 20, tzinfo=timezone.utc)
    crud.record_activity(db, user.id, "diet", "food_consumption", {"quantity": 5}, timestamp=DAY_N, now=DAY_N)
    stats = crud.refresh_rollups(db, user.id, now=now)
    assert stats.yearly_total == pytest.approx(10.0)
    assert stats.monthly_average == pytest.approx(10.0)
    assert "low_emissions" in {a.id for a in stats.achievements}


def test_leaderboard_order(db, user):
    other = crud.create_user(db, "Ben", "ben@example.com")
    crud.apply_user_contribution(db, other.id, 50.0, now=DAY_N)
    crud.apply_user_contribution(db, user.id, 5.0, now=DAY_N)
    assert [u.id for u in crud.list_top_emitters(db)] == [other.id, user.id]


def _submit(user_id, now):
    session = SessionLocal()
    try:
        _, stats = crud.record_activity(session, user_id, "electricity", "electricity_consumption",
                                        {"units": 10}, now=now)
        return stats
    finally:
        session.close()


def test_concurrent_submissions_do_not_lose_updates(db, user):
    crud.save_user_stats(db, user.id, UserStats(streak=5, last_calculation=DAY_N - timedelta(days=1)))
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda _: _submit(user.id, DAY_N), range(16)))

    db.expire_all()
    stats = crud.load_user_stats(db, user.id)
    assert stats.total_emissions == pytest.approx(16 * 8.2)
    # the day is counted once no matter how many submissions race on it
    assert stats.streak == 6
    assert len(crud.get_activities(db, user_id=user.id, limit=100)) == 16


def test_offset_timestamps_are_stored_as_utc(db, user):
    ist = timezone(timedelta(hours=5, minutes=30))
    activity = crud.append_activity(
        db, user.id, "water", "water_usage", {"volume": 1000}, timestamp=datetime(2024, 3, 1, 2, 0, tzinfo=ist),
    )
    assert activity.timestamp.replace(tzinfo=timezone.utc) == datetime(2024, 2, 29, 20, 30, tzinfo=timezone.utc)

    stats = crud.refresh_rollups(db, user.id, now=datetime(2024, 2, 29, 23, 0, tzinfo=timezone.utc))
    assert stats.yearly_total == pytest.approx(0.3)

    after = datetime(2024, 3, 1, 1, 0, tzinfo=ist)  # 2024-02-29 19:30 UTC
    assert crud.get_user_emissions(db, user.id, start=after).activity_count == 1
    assert crud.get_user_emissions(db, user.id, end=after).activity_count == 0


def test_overflowing_total_is_rejected(db, user):
    crud.apply_user_contribution(db, user.id, 1.7e308, now=DAY_N)
    with pytest.raises(ContributionOutOfRange):
        crud.apply_user_contribution(db, user.id, 1.7e308, now=DAY_N)
    assert crud.load_user_stats(db, user.id).total_emissions == 1.7e308


def test_goals_default_and_update(db, user):
    assert crud.load_user_goals(db, user.id) == UserGoals()
    crud.update_user_goals(db, user.id, UserGoals(monthly_target=150, yearly_target=1800))
    goals = crud.load_user_goals(db, user.id)
    assert goals.monthly_target == 150
    assert goals.yearly_target == 1800
