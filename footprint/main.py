# footprint/main.py
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from . import crud, schemas
from .calculator import estimate_monthly_footprint
from .config import settings
from .database import get_db, init_db, dispose
from .exceptions import ContributionOutOfRange, DuplicateEmail, MalformedActivityError, StatsUpdateConflict, UserNotFound

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield
    dispose()


app = FastAPI(title="Carbon Footprint API", lifespan=lifespan)
app.add_middleware(CORSMiddleware, allow_origins=settings.CORS_ORIGINS, allow_methods=["*"], allow_headers=["*"])

# -----------------
# Errors
# -----------------
def error_response(status: int, code: str, reason: str, path: str) -> JSONResponse:
    error = schemas.ErrorResponse(
        status=status,
        code=code,
        reason=reason,
        timeStamp=datetime.now(timezone.utc).isoformat(),
        path=path,
    )
    return JSONResponse(status_code=status, content=error.model_dump())

@app.exception_handler(MalformedActivityError)
async def malformed_activity(request: Request, exc: MalformedActivityError):
    return error_response(400, "ACTIVITY_400_1", str(exc), request.url.path)

@app.exception_handler(ContributionOutOfRange)
async def contribution_out_of_range(request: Request, exc: ContributionOutOfRange):
    return error_response(400, "STATS_400_1", "Contribution is out of range", request.url.path)

@app.exception_handler(UserNotFound)
async def user_not_found(request: Request, exc: UserNotFound):
    return error_response(404, "USER_404_1", "User not found", request.url.path)

@app.exception_handler(DuplicateEmail)
async def duplicate_email(request: Request, exc: DuplicateEmail):
    return error_response(409, "USER_409_1", "User already exists", request.url.path)

@app.exception_handler(StatsUpdateConflict)
async def stats_conflict(request: Request, exc: StatsUpdateConflict):
    return error_response(503, "STATS_503_1", "Stats update conflicted, please retry", request.url.path)

@app.exception_handler(RequestValidationError)
async def request_invalid(request: Request, exc: RequestValidationError):
    reasons = ", ".join(f"{'.'.join(str(p) for p in e['loc'][1:])}: {e['msg']}" for e in exc.errors())
    return error_response(400, "REQUEST_400_1", reasons or "Validation error", request.url.path)


def user_out(user) -> dict:
    out = schemas.UserOut(
        id=user.id, name=user.name, email=user.email, stats=crud.user_stats(user),
        goals=crud.user_goals(user), created_at=user.created_at,
    )
    return out.model_dump(mode="json", by_alias=True)

def activity_out(a) -> dict:
    out = schemas.ActivityOut(
        id=a.id,
        user_id=a.user_id,
        type=a.type,
        category=a.category,
        data=a.data or {},
        emissions=schemas.EmissionResult.model_validate(a.emissions),
        timestamp=a.timestamp,
        metadata=a.meta,
        created_at=a.created_at,
    )
    return out.model_dump(mode="json", by_alias=True)

# -----------------
# Users
# -----------------
@app.post("/users", status_code=201)
def create_user(payload: schemas.UserIn, db: Session = Depends(get_db)):
    user = crud.create_user(db, payload.name, payload.email)
    logger.info("created user %s", user.id)
    return {"message": "User created successfully", "user": user_out(user)}

@app.get("/users")
def top_users(db: Session = Depends(get_db)):
    users = crud.list_top_emitters(db, settings.LEADERBOARD_SIZE)
    return {"users": [user_out(u) for u in users]}

@app.get("/users/{user_id}")
def get_user(user_id: str, db: Session = Depends(get_db)):
    user = crud.get_user(db, user_id)
    if not user:
        raise UserNotFound(user_id)
    return {"user": user_out(user)}

@app.patch("/users/{user_id}")
def update_user(user_id: str, payload: schemas.ContributionIn, db: Session = Depends(get_db)):
    if payload.goals is not None:
        crud.update_user_goals(db, user_id, payload.goals)
    if payload.total_emissions is None:
        stats = crud.load_user_stats(db, user_id)
    else:
        stats = crud.apply_user_contribution(db, user_id, payload.total_emissions)
    return {
        "message": "User updated successfully",
        "user": {"id": user_id, "stats": stats.model_dump(mode="json", by_alias=True),
                 "goals": crud.load_user_goals(db, user_id).model_dump(by_alias=True)},
    }

@app.get("/users/{user_id}/activities")
def user_activities(user_id: str, limit: int = settings.DEFAULT_USER_ACTIVITY_LIMIT, db: Session = Depends(get_db)):
    rows = crud.get_activities(db, user_id=user_id, limit=limit)
    return {"activities": [activity_out(r) for r in rows]}

@app.get("/users/{user_id}/emissions")
def user_emissions(user_id: str, start: Optional[datetime] = None, end: Optional[datetime] = None,
                   db: Session = Depends(get_db)):
    if not crud.get_user(db, user_id):
        raise UserNotFound(user_id)
    summary = crud.get_user_emissions(db, user_id, start, end)
    return summary.model_dump(mode="json", by_alias=True)

@app.post("/users/{user_id}/rollups")
def user_rollups(user_id: str, db: Session = Depends(get_db)):
    stats = crud.refresh_rollups(db, user_id)
    return {"user": {"id": user_id, "stats": stats.model_dump(mode="json", by_alias=True)}}

# -----------------
# Activities
# -----------------
@app.post("/activities", status_code=201)
def add_activity(payload: schemas.ActivityIn, db: Session = Depends(get_db)):
    """
    Emissions are always computed here from the activity data; any emissions
    sent by the client are ignored.
    """
    meta = payload.metadata.model_dump(mode="json", by_alias=True) if payload.metadata else None
    activity, stats = crud.record_activity(
        db, payload.user_id, payload.type, payload.category, payload.data,
        timestamp=payload.timestamp, metadata=meta,
    )
    logger.info("user %s logged %s activity %s: %.4f kg CO2e",
                activity.user_id, activity.type, activity.id, activity.total_co2e)
    return {
        "message": "Activity created successfully",
        "activity": activity_out(activity),
        "stats": stats.model_dump(mode="json", by_alias=True),
    }

@app.get("/activities")
def list_activities(userId: Optional[str] = None, type: Optional[str] = None,
                    limit: int = settings.DEFAULT_ACTIVITY_LIMIT, db: Session = Depends(get_db)):
    rows = crud.get_activities(db, user_id=userId, activity_type=type, limit=limit)
    return {"activities": [activity_out(r) for r in rows]}

# -----------------
# Quick estimate
# -----------------
@app.post("/carbon")
def carbon_estimate(payload: schemas.CarbonFormIn):
    return estimate_monthly_footprint(payload).model_dump(by_alias=True)
