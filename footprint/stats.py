# footprint/stats.py
"""
Statistics aggregator.

Applies emission contributions to a user's running statistics and derives
the gamified parts (streak, achievements, rollups). Every function takes a
UserStats snapshot and returns a new one; storage is the caller's business.
"""
from collections import defaultdict
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from .schemas import Achievement, EmissionSummary, TypeBreakdown, UserStats

LOW_EMISSIONS_MONTHLY_KG = 50.0

# id -> (title, description, icon, category, rarity)
ACHIEVEMENTS = {
    "first_calculation": ("First Steps", "Completed your first carbon footprint calculation", "🌱", "milestone", "common"),
    "week_streak": ("Week Warrior", "Maintained a 7-day calculation streak", "🔥", "streak", "rare"),
    "month_streak": ("Monthly Master", "Maintained a 30-day calculation streak", "📅", "streak", "epic"),
    "low_emissions": ("Eco Champion", "Kept monthly emissions under 50kg CO₂", "🏆", "emission", "epic"),
}


def as_utc(moment: datetime) -> datetime:
    # naive datetimes come back from SQLite and are stored as UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def day_distance(last: datetime, now: datetime) -> int:
    """
    Calendar days between two instants, counted on UTC dates.

    Two updates on the same UTC date are 0 days apart however many hours
    separate them; this is not the ceiling of the elapsed days.
    """
    return (as_utc(now).date() - as_utc(last).date()).days


def streak_transition(streak: int, last_calculation: Optional[datetime], now: datetime) -> int:
    if last_calculation is None:
        return 1
    days = day_distance(last_calculation, now)
    if days == 1:
        return streak + 1
    if days > 1:
        return 1
    # same day (or a clock that went backwards): unchanged
    return streak


def apply_contribution(prev: UserStats, delta: float, now: datetime) -> UserStats:
    """Add one totalCO2e delta and move the streak forward."""
    return prev.model_copy(update={
        "total_emissions": prev.total_emissions + delta,
        "streak": streak_transition(prev.streak, prev.last_calculation, now),
        "last_calculation": now,
    })


def apply_batch(prev: UserStats, deltas: Iterable[float], now: datetime) -> UserStats:
    """Apply several deltas as a single update: one streak step for the batch."""
    return apply_contribution(prev, sum(deltas), now)


def evaluate_achievements(stats: UserStats, now: datetime) -> UserStats:
    unlocked = {a.id for a in stats.achievements}
    earned = []
    if stats.last_calculation is not None:
        earned.append("first_calculation")
    if stats.streak >= 7:
        earned.append("week_streak")
    if stats.streak >= 30:
        earned.append("month_streak")
    if 0 < stats.monthly_average < LOW_EMISSIONS_MONTHLY_KG:
        earned.append("low_emissions")

    new = []
    for achievement_id in earned:
        if achievement_id in unlocked:
            continue
        title, description, icon, category, rarity = ACHIEVEMENTS[achievement_id]
        new.append(Achievement(
            id=achievement_id, title=title, description=description, icon=icon,
            unlocked_at=now, category=category, rarity=rarity,
        ))
    if not new:
        return stats
    return stats.model_copy(update={"achievements": list(stats.achievements) + new})


def _months_back(moment: datetime, months: int) -> Tuple[int, int]:
    index = moment.year * 12 + (moment.month - 1) - months
    return index // 12, index % 12 + 1


def compute_rollups(stats: UserStats, activities: Iterable[Tuple[datetime, float]], now: datetime) -> UserStats:
    """
    Recompute yearlyTotal and monthlyAverage from (timestamp, totalCO2e) pairs.

    yearlyTotal covers now's calendar year. monthlyAverage is the mean of the
    monthly totals of the trailing 12 months that have any activity.
    """
    now = as_utc(now)
    oldest = _months_back(now, 11)
    yearly = 0.0
    monthly = defaultdict(float)
    for timestamp, co2e in activities:
        timestamp = as_utc(timestamp)
        if timestamp.year == now.year and timestamp <= now:
            yearly += co2e
        month = (timestamp.year, timestamp.month)
        if oldest <= month <= (now.year, now.month):
            monthly[month] += co2e
    average = sum(monthly.values()) / len(monthly) if monthly else 0.0
    return stats.model_copy(update={"yearly_total": round(yearly, 4), "monthly_average": round(average, 4)})


def summarize_emissions(records: Iterable[Tuple[str, float]]) -> EmissionSummary:
    """Total, count, average and per-type breakdown of (type, totalCO2e) pairs."""
    totals = defaultdict(float)
    counts = defaultdict(int)
    for activity_type, co2e in records:
        totals[activity_type] += co2e
        counts[activity_type] += 1
    breakdown = [
        TypeBreakdown(
            type=t,
            total_emissions=round(totals[t], 4),
            count=counts[t],
            average_emissions=round(totals[t] / counts[t], 4),
        )
        for t in totals
    ]
    breakdown.sort(key=lambda b: b.total_emissions, reverse=True)
    total = sum(totals.values())
    count = sum(counts.values())
    return EmissionSummary(
        total_emissions=round(total, 4),
        activity_count=count,
        average_emissions=round(total / count, 4) if count else 0.0,
        breakdown=breakdown,
    )


def emissions_by_type(records: Iterable[Tuple[str, float]]) -> List[TypeBreakdown]:
    return summarize_emissions(records).breakdown
