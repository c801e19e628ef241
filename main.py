import logging
import os
from typing import Any, Dict, List, Optional

import requests
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from auth import current_driver, current_rider, new_api_key
from database import (
    DatabaseUnavailable,
    create_document,
    db,
    find_document,
    get_documents,
    insert_document,
    to_object_id,
    update_document,
)
from distance import HaversineDistance, LocationRef, PlaceholderDistance
from errors import BookingValidationError, MissingRequiredField
from fare import FareEstimator
from geofence import Coordinate, GeofenceValidator
from log_setup import setup_logging
from schemas import STATUS_TRANSITIONS, Booking, BookingStatus, Driver, GeoPoint, Rider
from settings import Settings, get_settings

settings = get_settings()
setup_logging(settings.log.level, json_output=settings.log.format == "json")
logger = logging.getLogger(__name__)


def build_estimator(settings: Settings) -> FareEstimator:
    fallback = None
    if settings.fare.allow_placeholder_distance:
        fallback = PlaceholderDistance(settings.fare.placeholder_distance_km)
    return FareEstimator(settings.region.to_region(), HaversineDistance(), fallback)


region = settings.region.to_region()
geofence = GeofenceValidator(region)
estimator = build_estimator(settings)

app = FastAPI(title="Monaco Cabs API", description="Ride booking backend for Monaco Cabs")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors.origin_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookingValidationError)
async def booking_validation_handler(request: Request, exc: BookingValidationError):
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(DatabaseUnavailable)
async def database_unavailable_handler(request: Request, exc: DatabaseUnavailable):
    return JSONResponse(status_code=500, content={"detail": "Database not available"})


class IdKeyResponse(BaseModel):
    id: str
    api_key: Optional[str] = None


class IdResponse(BaseModel):
    id: str


# Utility

def to_str_id(doc):
    if doc is None:
        return None
    d = dict(doc)
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    d.pop("api_key", None)
    return d


def get_doc_by_id(collection: str, _id: str):
    oid = to_object_id(_id)
    if oid is None:
        raise HTTPException(status_code=400, detail="Invalid id")
    doc = find_document(collection, {"_id": oid})
    if not doc:
        raise HTTPException(status_code=404, detail=f"{collection} not found")
    return doc


@app.get("/")
def read_root():
    return {"message": "Monaco Cabs backend is running"}


@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": None,
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": [],
    }

    try:
        if db is not None:
            response["database"] = "✅ Available"
            response["database_url"] = "✅ Set" if settings.database.url else "❌ Not Set"
            response["database_name"] = db.name if hasattr(db, "name") else "✅ Connected"
            response["connection_status"] = "Connected"
            try:
                collections = db.list_collection_names()
                response["collections"] = collections[:10]
                response["database"] = "✅ Connected & Working"
            except Exception as e:
                response["database"] = f"⚠️  Connected but Error: {str(e)[:50]}"
        else:
            response["database"] = "⚠️  Available but not initialized"
    except Exception as e:
        response["database"] = f"❌ Error: {str(e)[:50]}"

    return response


# Location and fare

class LatLng(BaseModel):
    # raw JSON values; Coordinate.parse does the type and range checks
    latitude: Optional[Any] = None
    longitude: Optional[Any] = None


class LocationCheck(BaseModel):
    rider_coordinate: Optional[LatLng] = None


class BookingRequest(BaseModel):
    pickup_location: Optional[str] = None
    dropoff_location: Optional[str] = None
    rider_coordinate: Optional[LatLng] = None
    pickup_coordinate: Optional[LatLng] = None
    dropoff_coordinate: Optional[LatLng] = None
    fare: Optional[float] = Field(None, description="Ignored, the server always computes the fare")


def require_fields(req: BookingRequest) -> None:
    missing = []
    if not (req.pickup_location or "").strip():
        missing.append("pickup_location")
    if not (req.dropoff_location or "").strip():
        missing.append("dropoff_location")
    if req.rider_coordinate is None:
        missing.append("rider_coordinate")
    if missing:
        raise MissingRequiredField(missing)


def location_ref(label: str, point: Optional[LatLng]) -> LocationRef:
    # a map pin wins over the free-text label
    if point is not None:
        return Coordinate.parse(point)
    return label.strip()


def quote_for(req: BookingRequest):
    require_fields(req)
    rider_coord = Coordinate.parse(req.rider_coordinate)
    pickup = location_ref(req.pickup_location, req.pickup_coordinate)
    dropoff = location_ref(req.dropoff_location, req.dropoff_coordinate)
    return rider_coord, pickup, dropoff, estimator.quote(pickup, dropoff, rider_coord)


@app.post("/validate-location")
def validate_location(payload: LocationCheck):
    if payload.rider_coordinate is None:
        raise MissingRequiredField(["rider_coordinate"])
    is_valid = geofence.is_within_region(payload.rider_coordinate)
    return {
        "is_valid": is_valid,
        "message": "Location is within the service area." if is_valid else "Pickup location is not within the service area.",
    }


@app.post("/fare/estimate")
def fare_estimate(payload: BookingRequest):
    """Fare preview for the booking screen. Not binding: /bookings recomputes it."""
    _, _, _, quote = quote_for(payload)
    return {**quote.model_dump(), "binding": False}


# Geocoding (Nominatim)

@app.get("/geo/search")
def geocode_search(q: str = Query(..., min_length=2), limit: int = 5):
    """Proxy to OpenStreetMap Nominatim search bounded to the service region."""
    limit = max(1, min(limit, 10))
    try:
        params = {
            "q": q,
            "format": "json",
            "limit": limit,
            "addressdetails": 1,
            "viewbox": region.viewbox(),
            "bounded": 1,
        }
        headers = {"User-Agent": settings.geocoder.user_agent}
        r = requests.get(settings.geocoder.url, params=params, headers=headers, timeout=settings.geocoder.timeout)
        r.raise_for_status()
        results = r.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning("Geocoding failed for %r: %s", q, e)
        raise HTTPException(status_code=502, detail=f"Geocoding error: {str(e)[:120]}")

    items: List[Dict[str, Any]] = []
    for it in results:
        try:
            items.append({
                "display_name": it.get("display_name"),
                "latitude": float(it.get("lat")),
                "longitude": float(it.get("lon")),
                "type": it.get("type"),
            })
        except (TypeError, ValueError):
            continue
    return {"results": items[:limit]}


# Riders
@app.post("/riders", response_model=IdKeyResponse, status_code=201)
def create_rider(rider: Rider):
    if find_document("rider", {"email": rider.email}):
        raise HTTPException(status_code=400, detail="Rider with this email already exists.")
    api_key = new_api_key()
    data = rider.model_dump()
    data["api_key"] = api_key
    new_id = create_document("rider", data)
    logger.info("Rider registered", extra={"rider_id": new_id})
    return {"id": new_id, "api_key": api_key}


# Drivers
@app.post("/drivers", response_model=IdKeyResponse, status_code=201)
def create_driver(driver: Driver):
    if find_document("driver", {"email": driver.email}):
        raise HTTPException(status_code=400, detail="Driver with this email already exists.")
    api_key = new_api_key()
    data = driver.model_dump()
    # approval only happens through /drivers/{id}/approve
    data["is_approved"] = False
    data["driver_code"] = None
    data["api_key"] = api_key
    new_id = create_document("driver", data)
    logger.info("Driver registered, awaiting approval", extra={"driver_id": new_id})
    return {"id": new_id, "api_key": api_key}


@app.get("/drivers")
def list_drivers():
    docs = get_documents("driver", projection={"api_key": 0})
    return [to_str_id(d) for d in docs]


class DriverApproval(BaseModel):
    driver_code: Optional[str] = None


@app.post("/drivers/{driver_id}/approve")
def approve_driver(driver_id: str, payload: DriverApproval):
    doc = get_doc_by_id("driver", driver_id)
    update_document("driver", doc["_id"], {"is_approved": True, "driver_code": payload.driver_code})
    logger.info("Driver approved", extra={"driver_id": driver_id})
    return {"message": "Driver approved successfully."}


# Bookings
@app.post("/bookings", status_code=201)
def create_booking(payload: BookingRequest, rider: Dict[str, Any] = Depends(current_rider)):
    rider_id = str(rider["_id"])
    rider_coord, pickup, dropoff, quote = quote_for(payload)
    if payload.fare is not None and payload.fare != quote.fare:
        logger.info(
            "Ignoring client fare %s, computed %s", payload.fare, quote.fare, extra={"rider_id": rider_id}
        )

    booking = Booking(
        rider_id=rider_id,
        pickup_location=payload.pickup_location.strip(),
        dropoff_location=payload.dropoff_location.strip(),
        rider_coordinate=GeoPoint(**rider_coord.to_dict()),
        pickup_coordinate=GeoPoint(**pickup.to_dict()) if isinstance(pickup, Coordinate) else None,
        dropoff_coordinate=GeoPoint(**dropoff.to_dict()) if isinstance(dropoff, Coordinate) else None,
        fare=quote.fare,
        distance_km=quote.distance_km,
        distance_source=quote.distance_source,
        in_region=quote.in_region,
    )
    saved = insert_document("booking", booking)
    new_id = str(saved["_id"])
    logger.info(
        "Booking created with %s fare %s (%s distance)",
        quote.tier,
        quote.fare,
        quote.distance_source,
        extra={"rider_id": rider_id, "booking_id": new_id},
    )
    return {"message": "Booking created successfully", "booking": to_str_id(saved)}


@app.get("/bookings")
def list_bookings(rider: Dict[str, Any] = Depends(current_rider)):
    docs = get_documents("booking", {"rider_id": str(rider["_id"])}, sort=[("created_at", -1)])
    return {"bookings": [to_str_id(d) for d in docs]}


@app.get("/bookings/{booking_id}")
def get_booking(booking_id: str, rider: Dict[str, Any] = Depends(current_rider)):
    doc = get_doc_by_id("booking", booking_id)
    if doc.get("rider_id") != str(rider["_id"]):
        raise HTTPException(status_code=404, detail="booking not found")
    return to_str_id(doc)


class StatusUpdate(BaseModel):
    status: BookingStatus


@app.patch("/bookings/{booking_id}/status")
def update_booking_status(booking_id: str, payload: StatusUpdate, driver: Dict[str, Any] = Depends(current_driver)):
    driver_id = str(driver["_id"])
    doc = get_doc_by_id("booking", booking_id)
    if doc.get("driver_id") and doc["driver_id"] != driver_id:
        raise HTTPException(status_code=403, detail="Booking is assigned to another driver")

    current = BookingStatus(doc.get("status", BookingStatus.PENDING.value))
    if payload.status not in STATUS_TRANSITIONS[current]:
        raise HTTPException(
            status_code=409,
            detail=f"Cannot move booking from {current.value} to {payload.status.value}",
        )

    # fare never changes here; the filter repeats the checks above so a concurrent update loses
    updated = update_document(
        "booking",
        doc["_id"],
        {"status": payload.status.value, "driver_id": driver_id},
        conditions={"status": current.value, "driver_id": {"$in": [None, driver_id]}},
    )
    if not updated:
        raise HTTPException(status_code=409, detail="Booking was updated by someone else, reload and retry")
    logger.info(
        "Booking moved to %s",
        payload.status.value,
        extra={"booking_id": booking_id, "driver_id": driver_id},
    )
    return {"updated": True, "status": payload.status.value}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
