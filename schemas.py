"""
Database Schemas for Monaco Cabs (Ride Booking)

Each Pydantic model represents a collection in MongoDB.
Collection name is the lowercase of the class name.

- Rider -> rider
- Driver -> driver
- Booking -> booking
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class GeoPoint(BaseModel):
    latitude: float = Field(..., ge=-90, le=90, description="Latitude")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude")


class Rider(BaseModel):
    name: str = Field(..., min_length=1, description="Full name")
    email: str = Field(..., description="Login email, unique")
    phone: Optional[str] = Field(None, description="Phone number")
    api_key: Optional[str] = None

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class Driver(BaseModel):
    name: str = Field(..., min_length=1)
    email: str
    contact_number: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    vehicle_info: str = Field(..., min_length=1)
    documents: List[str] = Field(..., min_length=1, description="References to uploaded licence/ID documents")
    is_approved: bool = False
    driver_code: Optional[str] = None
    api_key: Optional[str] = None

    @field_validator("name", "contact_number", "address", "vehicle_info")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class BookingStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"


# Allowed forward moves; anything else is rejected
STATUS_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED},
    BookingStatus.CONFIRMED: {BookingStatus.COMPLETED},
    BookingStatus.COMPLETED: set(),
}


class Booking(BaseModel):
    rider_id: str
    driver_id: Optional[str] = None
    pickup_location: str
    dropoff_location: str
    rider_coordinate: GeoPoint
    pickup_coordinate: Optional[GeoPoint] = None
    dropoff_coordinate: Optional[GeoPoint] = None
    fare: float = Field(..., ge=0)
    distance_km: float = Field(..., ge=0)
    distance_source: str = Field(..., description="haversine|placeholder")
    in_region: bool
    status: BookingStatus = BookingStatus.PENDING

    model_config = {"use_enum_values": True, "validate_default": True}
