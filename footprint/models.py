# footprint/models.py
from sqlalchemy import Column, String, Integer, Float, DateTime, JSON, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from .database import Base
import uuid

def gen_id(prefix):
    return f"{prefix}_{uuid.uuid4().hex[:8]}"

def utcnow():
    return datetime.now(timezone.utc)

class User(Base):
    __tablename__ = "users"
    id = Column(String, primary_key=True, default=lambda: gen_id("user"))
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    # goals, kg CO2
    monthly_target = Column(Float, default=200.0)
    yearly_target = Column(Float, default=2400.0)

    # stats, written only through the aggregator
    total_emissions = Column(Float, default=0.0, nullable=False, index=True)
    monthly_average = Column(Float, default=0.0, nullable=False)
    yearly_total = Column(Float, default=0.0, nullable=False)
    streak = Column(Integer, default=0, nullable=False)
    last_calculation = Column(DateTime(timezone=True), nullable=True)
    achievements = Column(JSON, default=list)
    carbon_savings = Column(Float, default=0.0, nullable=False)
    trees_planted = Column(Integer, default=0, nullable=False)
    offset_purchases = Column(Float, default=0.0, nullable=False)

    activities = relationship("Activity", back_populates="user")

class Activity(Base):
    __tablename__ = "activities"
    id = Column(String, primary_key=True, default=lambda: gen_id("activity"))
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    type = Column(String, nullable=False, index=True)  # transport, electricity, lpg, diet, ...
    category = Column(String, nullable=False)  # car, bus, electricity_consumption, ...
    data = Column(JSON, default=dict)
    emissions = Column(JSON, nullable=False)  # EmissionResult, camelCase
    total_co2e = Column(Float, default=0.0, nullable=False)  # copy of emissions.totalCO2e for aggregates
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    meta = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    user = relationship("User", back_populates="activities")

    __table_args__ = (
        Index("ix_activities_user_timestamp", "user_id", "timestamp"),
    )
