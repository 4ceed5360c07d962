# footprint/crud.py
import logging
import math
from datetime import datetime, timezone
from threading import Lock
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import models, stats as aggregator
from .calculator import safe_compute
from .exceptions import ContributionOutOfRange, DuplicateEmail, StatsUpdateConflict, UserNotFound
from .schemas import Achievement, EmissionSummary, UserGoals, UserStats
from .validation import build_payload, ensure_structure, parse_activity_type, validate_activity_data

logger = logging.getLogger(__name__)

# Serialises the stats read-modify-write inside this process. Databases that
# support it also hold a row lock (SELECT ... FOR UPDATE) for the transaction.
stats_lock = Lock()


def _utcnow():
    return datetime.now(timezone.utc)

# -----------------
# Users
# -----------------
def create_user(db: Session, name, email):
    email = email.strip().lower()
    if get_user_by_email(db, email):
        raise DuplicateEmail(email)
    user = models.User(name=name.strip(), email=email, achievements=[])
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateEmail(email) from exc
    db.refresh(user)
    return user

def get_user(db: Session, user_id):
    return db.get(models.User, user_id)

def get_user_by_email(db: Session, email):
    return db.query(models.User).filter(models.User.email == email.strip().lower()).first()

def list_top_emitters(db: Session, limit=10):
    return db.query(models.User).order_by(models.User.total_emissions.desc()).limit(limit).all()

def user_goals(user: models.User) -> UserGoals:
    defaults = UserGoals()
    return UserGoals(
        monthly_target=defaults.monthly_target if user.monthly_target is None else user.monthly_target,
        yearly_target=defaults.yearly_target if user.yearly_target is None else user.yearly_target,
    )

def load_user_goals(db: Session, user_id) -> UserGoals:
    user = get_user(db, user_id)
    if user is None:
        raise UserNotFound(user_id)
    return user_goals(user)

def update_user_goals(db: Session, user_id, goals: UserGoals) -> UserGoals:
    user = get_user(db, user_id)
    if user is None:
        raise UserNotFound(user_id)
    user.monthly_target = goals.monthly_target
    user.yearly_target = goals.yearly_target
    db.commit()
    return goals

# -----------------
# Stats
# -----------------
def user_stats(user: models.User) -> UserStats:
    return UserStats(
        total_emissions=user.total_emissions or 0.0,
        monthly_average=user.monthly_average or 0.0,
        yearly_total=user.yearly_total or 0.0,
        streak=user.streak or 0,
        last_calculation=user.last_calculation,
        achievements=[Achievement.model_validate(a) for a in (user.achievements or [])],
        carbon_savings=user.carbon_savings or 0.0,
        trees_planted=user.trees_planted or 0,
        offset_purchases=user.offset_purchases or 0.0,
    )

def _write_stats(user: models.User, new: UserStats):
    user.total_emissions = new.total_emissions
    user.monthly_average = new.monthly_average
    user.yearly_total = new.yearly_total
    user.streak = new.streak
    user.last_calculation = new.last_calculation
    user.achievements = [a.model_dump(mode="json", by_alias=True) for a in new.achievements]
    user.carbon_savings = new.carbon_savings
    user.trees_planted = new.trees_planted
    user.offset_purchases = new.offset_purchases

def _locked_user(db: Session, user_id) -> models.User:
    user = db.query(models.User).filter(models.User.id == user_id).with_for_update().first()
    if user is None:
        raise UserNotFound(user_id)
    return user

def load_user_stats(db: Session, user_id) -> UserStats:
    user = get_user(db, user_id)
    if user is None:
        raise UserNotFound(user_id)
    return user_stats(user)

def save_user_stats(db: Session, user_id, new: UserStats):
    user = get_user(db, user_id)
    if user is None:
        raise UserNotFound(user_id)
    _write_stats(user, new)
    db.commit()

def _commit(db: Session, what):
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("could not commit %s: %s", what, exc)
        raise StatsUpdateConflict(f"could not commit {what}, retry") from exc

def _contribute(user: models.User, delta, now) -> UserStats:
    prev = user_stats(user)
    new = aggregator.apply_contribution(prev, delta, now)
    if not math.isfinite(new.total_emissions):
        raise ContributionOutOfRange(f"total emissions of user {user.id} would overflow")
    new = aggregator.evaluate_achievements(new, now)
    _write_stats(user, new)
    logger.debug("user %s: total %.4f -> %.4f, streak %d -> %d",
                 user.id, prev.total_emissions, new.total_emissions, prev.streak, new.streak)
    return new

def apply_user_contribution(db: Session, user_id, delta, now: Optional[datetime] = None) -> UserStats:
    """Load, apply and save one contribution as a single atomic transaction."""
    now = aggregator.as_utc(now) if now else _utcnow()
    with stats_lock:
        try:
            user = _locked_user(db, user_id)
            new = _contribute(user, delta, now)
        except (UserNotFound, ContributionOutOfRange):
            db.rollback()
            raise
        _commit(db, f"stats of user {user_id}")
    return new

# -----------------
# Activities
# -----------------
def _new_activity(db: Session, user_id, activity_type, category, data, timestamp=None, metadata=None, now=None):
    ensure_structure(activity_type, data)
    payload = build_payload(activity_type, data)
    report = validate_activity_data(activity_type, payload)
    if not report.is_valid:
        logger.warning("activity for user %s (%s): %s", user_id, activity_type, "; ".join(report.errors))

    kind = parse_activity_type(activity_type)
    emissions = safe_compute(kind or activity_type, category, payload, now=now)
    activity = models.Activity(
        user_id=user_id,
        type=kind.value if kind else activity_type,
        category=category,
        data=payload,
        emissions=emissions.model_dump(mode="json", by_alias=True),
        total_co2e=emissions.total_co2e,
        timestamp=aggregator.as_utc(timestamp) if timestamp else now,
        meta=metadata,
    )
    db.add(activity)
    return activity

def append_activity(db: Session, user_id, activity_type, category, data, timestamp=None, metadata=None):
    """Store one activity with server-computed emissions; stats are left alone."""
    if get_user(db, user_id) is None:
        raise UserNotFound(user_id)
    activity = _new_activity(db, user_id, activity_type, category, data, timestamp, metadata, now=_utcnow())
    db.commit()
    db.refresh(activity)
    return activity

def record_activity(db: Session, user_id, activity_type, category, data, timestamp=None,
                    metadata=None, now: Optional[datetime] = None) -> Tuple[models.Activity, UserStats]:
    """Store an activity and fold its emissions into the user's stats in one transaction."""
    now = aggregator.as_utc(now) if now else _utcnow()
    with stats_lock:
        try:
            user = _locked_user(db, user_id)
            activity = _new_activity(db, user_id, activity_type, category, data, timestamp, metadata, now=now)
            new = _contribute(user, activity.total_co2e, now)
        except Exception:
            db.rollback()
            raise
        _commit(db, f"activity of user {user_id}")
    db.refresh(activity)
    return activity, new

def get_activities(db: Session, user_id=None, activity_type=None, limit=50):
    q = db.query(models.Activity)
    if user_id:
        q = q.filter(models.Activity.user_id == user_id)
    if activity_type:
        q = q.filter(models.Activity.type == activity_type)
    return q.order_by(models.Activity.timestamp.desc()).limit(limit).all()

def _activities_between(db: Session, user_id, start=None, end=None):
    q = db.query(models.Activity).filter(models.Activity.user_id == user_id)
    if start:
        q = q.filter(models.Activity.timestamp >= aggregator.as_utc(start))
    if end:
        q = q.filter(models.Activity.timestamp <= aggregator.as_utc(end))
    return q.all()

def get_user_emissions(db: Session, user_id, start=None, end=None) -> EmissionSummary:
    rows = _activities_between(db, user_id, start, end)
    return aggregator.summarize_emissions((a.type, a.total_co2e) for a in rows)

def get_emissions_by_type(db: Session, user_id, start=None, end=None):
    rows = _activities_between(db, user_id, start, end)
    return aggregator.emissions_by_type((a.type, a.total_co2e) for a in rows)

def refresh_rollups(db: Session, user_id, now: Optional[datetime] = None) -> UserStats:
    """Recompute yearlyTotal/monthlyAverage from stored activities."""
    now = aggregator.as_utc(now) if now else _utcnow()
    with stats_lock:
        user = _locked_user(db, user_id)
        rows = _activities_between(db, user_id)
        new = aggregator.compute_rollups(user_stats(user), ((a.timestamp, a.total_co2e) for a in rows), now)
        new = aggregator.evaluate_achievements(new, now)
        _write_stats(user, new)
        _commit(db, f"rollups of user {user_id}")
    return new
