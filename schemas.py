# Input schemas for subscriptions and routes
#
# Each Pydantic model validates the payload of one service operation before any
# generation or planning logic runs. Update schemas are sparse: only the fields
# the caller actually sent are applied (see `changes()`).

from datetime import date, time
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from errors import InvalidInput

def _parse_hhmm(value):
    if value is None or isinstance(value, time):
        return value
    if isinstance(value, str):
        parts = value.split(":")
        if len(parts) == 2 and all(len(p) == 2 and p.isdigit() for p in parts):
            hours, minutes = int(parts[0]), int(parts[1])
            if hours < 24 and minutes < 60:
                return time(hours, minutes)
    raise ValueError("Time must be in HH:MM format")

def _check_days(days):
    if days is None:
        return days
    if len(days) == 0:
        raise ValueError("At least one day of week must be specified")
    if any(day < 0 or day > 6 for day in days):
        raise ValueError("Invalid day of week. Must be 0-6 (0=Sunday, 6=Saturday)")
    if len(set(days)) != len(days):
        raise ValueError("Days of week must be unique")
    return days

class SubscriptionCreate(BaseModel):
    """A parent's standing order for recurring pickups"""
    parent_id: int
    kid_id: int
    school_id: int
    subscription_type: Literal["WEEKLY", "MONTHLY"]
    status: Literal["ACTIVE", "PAUSED"] = "ACTIVE"
    start_date: date
    end_date: Optional[date] = None
    days_of_week: List[int]
    pickup_time: time
    dropoff_time: Optional[time] = None
    pickup_address: str = Field(..., min_length=1)
    pickup_latitude: float = Field(..., ge=-90, le=90)
    pickup_longitude: float = Field(..., ge=-180, le=180)
    dropoff_address: str = Field(..., min_length=1)
    dropoff_latitude: float = Field(..., ge=-90, le=90)
    dropoff_longitude: float = Field(..., ge=-180, le=180)
    base_fare: float = Field(..., gt=0)
    distance_fare: Optional[float] = Field(None, ge=0)
    total_fare_per_ride: Optional[float] = Field(None, gt=0)
    subscription_total: Optional[float] = Field(None, gt=0)
    parent_notes: Optional[str] = Field(None, max_length=1000)
    auto_generate_rides: bool = True

    @field_validator("pickup_time", "dropoff_time", mode="before")
    @classmethod
    def parse_times(cls, value):
        return _parse_hhmm(value)

    @field_validator("days_of_week")
    @classmethod
    def check_days(cls, value):
        return _check_days(value)

    @model_validator(mode="after")
    def end_not_before_start(self):
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("End date must not be before start date")
        return self

class SubscriptionUpdate(BaseModel):
    status: Optional[Literal["ACTIVE", "PAUSED", "CANCELLED", "EXPIRED"]] = None
    end_date: Optional[date] = None
    days_of_week: Optional[List[int]] = None
    pickup_time: Optional[time] = None
    dropoff_time: Optional[time] = None
    pickup_address: Optional[str] = Field(None, min_length=1)
    pickup_latitude: Optional[float] = Field(None, ge=-90, le=90)
    pickup_longitude: Optional[float] = Field(None, ge=-180, le=180)
    dropoff_address: Optional[str] = Field(None, min_length=1)
    dropoff_latitude: Optional[float] = Field(None, ge=-90, le=90)
    dropoff_longitude: Optional[float] = Field(None, ge=-180, le=180)
    base_fare: Optional[float] = Field(None, gt=0)
    distance_fare: Optional[float] = Field(None, ge=0)
    total_fare_per_ride: Optional[float] = Field(None, gt=0)
    subscription_total: Optional[float] = Field(None, gt=0)
    parent_notes: Optional[str] = Field(None, max_length=1000)
    auto_generate_rides: Optional[bool] = None

    @field_validator("pickup_time", "dropoff_time", mode="before")
    @classmethod
    def parse_times(cls, value):
        return _parse_hhmm(value)

    @field_validator("days_of_week")
    @classmethod
    def check_days(cls, value):
        return _check_days(value)

    @field_validator("status", "days_of_week", "pickup_time", "pickup_address", "pickup_latitude",
                     "pickup_longitude", "dropoff_address", "dropoff_latitude", "dropoff_longitude",
                     "base_fare", "total_fare_per_ride", "auto_generate_rides", mode="before")
    @classmethod
    def not_nullable(cls, value):
        if value is None:
            raise ValueError("Field cannot be cleared")
        return value

    def changes(self):
        """Only the fields that were present in the payload"""
        return self.model_dump(exclude_unset=True)

class WaypointInput(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: Optional[str] = None
    order: Optional[int] = None

class RouteCreate(BaseModel):
    school_id: int
    proposed_driver_id: int
    name: Optional[str] = None
    description: Optional[str] = None
    waypoints: List[WaypointInput] = []
    estimated_distance_km: Optional[float] = Field(None, ge=0)
    estimated_duration_minutes: Optional[int] = Field(None, ge=0)

class RouteUpdate(BaseModel):
    school_id: Optional[int] = None
    driver_id: Optional[int] = None
    name: Optional[str] = None
    description: Optional[str] = None
    waypoints: Optional[List[WaypointInput]] = None
    estimated_distance_km: Optional[float] = Field(None, ge=0)
    estimated_duration_minutes: Optional[int] = Field(None, ge=0)

    def changes(self):
        return self.model_dump(exclude_unset=True)

class OptimizeRouteInput(BaseModel):
    school_id: int
    driver_id: int
    waypoints: List[WaypointInput] = Field(..., min_length=1)
    name: Optional[str] = None
    description: Optional[str] = None

def parse(schema, data):
    """Validate data against schema, raising InvalidInput with every message"""
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except ValidationError as exc:
        messages = [f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}" for err in exc.errors()]
        raise InvalidInput("; ".join(messages), errors=messages) from exc
