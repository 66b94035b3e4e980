"""
Database Schemas

Pydantic models for the documents this service writes. Each record is
validated here before it is persisted; model_dump() yields the stored shape
(enum members are stored as their string values).

Collections (see database.py):
- Order  -> "orders"
- Ride   -> "rides"
- Raider -> "raiders"

Restaurants and menu items are created outside this service and are only
read or deleted, so they have no schema here.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VehicleType(str, Enum):
    CAR = "car"
    BIKE = "bike"
    AUTO = "auto"


class RideStatus(str, Enum):
    """Ride lifecycle. Any status may follow any other."""
    CONFIRMED = "confirmed"
    DRIVER_ASSIGNED = "driver_assigned"
    PICKED_UP = "picked_up"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# --------------------------------------------------
# Food delivery

class Order(BaseModel):
    """
    Orders collection schema
    Collection name: "orders"
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    orderId: str = Field(..., pattern=r"^RB\d+$")
    restaurantId: ObjectId
    items: List[Any] = Field(..., min_length=1)
    customerName: str
    customerAddress: str = ""
    customerPhone: str = ""
    totalAmount: float
    status: str = "confirmed"
    createdAt: datetime
    estimatedDelivery: datetime


# --------------------------------------------------
# Ride booking

Place = Union[str, Dict[str, Any]]


class Ride(BaseModel):
    """
    Rides collection schema
    Collection name: "rides"
    """
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    customerName: str
    pickup: Place
    destination: Place
    vehicleType: VehicleType
    driverName: str
    fare: int = Field(..., ge=0)
    estimatedArrival: datetime
    status: RideStatus = RideStatus.CONFIRMED
    createdAt: datetime = Field(default_factory=utcnow)


# --------------------------------------------------
# Delivery riders ("raiders")

class Raider(BaseModel):
    """
    Raiders collection schema
    Collection name: "raiders"

    Any extra submitted fields (name, phone, vehicle, ...) are kept as-is.
    """
    model_config = ConfigDict(extra="allow")

    status: str = "available"
    isActive: bool = True
    totalDeliveries: int = Field(0, ge=0)
    rating: float = Field(0, ge=0)
    joinedDate: datetime = Field(default_factory=utcnow)
    lastActive: datetime = Field(default_factory=utcnow)


class RaiderUpdate(BaseModel):
    """Partial raider update; only the fields sent are written."""
    model_config = ConfigDict(extra="allow")

    status: Optional[str] = None
    isActive: Optional[bool] = None
    totalDeliveries: Optional[int] = Field(None, ge=0)
    rating: Optional[float] = Field(None, ge=0)

    @field_validator("status", "isActive", "totalDeliveries", "rating")
    @classmethod
    def reject_null(cls, v):
        if v is None:
            raise ValueError("may not be null")
        return v
