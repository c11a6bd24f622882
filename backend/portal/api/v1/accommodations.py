from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Annotated, Any, Dict, List, Literal, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import AfterValidator, AliasChoices, EmailStr, Field, field_validator
from sqlalchemy import and_, func
from sqlalchemy.orm import Session

from portal.api.v1.common import CamelModel, PhoneNumber, Pincode, UtcDateTime, naive_utc, page_offset, total_pages
from portal.api.v1.serializers import (
    accommodation_to_dict, room_booking_to_dict, room_to_dict, tour_link_to_dict,
)
from portal.core.database import get_db
from portal.core.security import get_admin_user, get_current_user
from portal.models import (
    ACCOMMODATION_FACILITIES, ROOM_FACILITIES, Accommodation, AccommodationCategory, AccommodationTour,
    Booking, Room, RoomBooking, RoomType, Tour, User,
)
from portal.services import room_allocation

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/accommodations", tags=["accommodations"])

SORT_COLUMNS = {
    "name": Accommodation.name,
    "category": Accommodation.category,
    "city": Accommodation.city,
    "location.city": Accommodation.city,
    "rating": Accommodation.rating_overall,
    "rating.overall": Accommodation.rating_overall,
    "basePrice": Accommodation.base_price,
    "pricing.basePrice": Accommodation.base_price,
    "createdAt": Accommodation.created_at,
}


# ============= Request models =============

def _room_facilities(value):
    unknown = [f for f in value or [] if f not in ROOM_FACILITIES]
    if unknown:
        raise ValueError(f"Unknown room facilities: {', '.join(unknown)}")
    return value


RoomFacilities = Annotated[List[str], AfterValidator(_room_facilities)]


class Coordinates(CamelModel):
    latitude: float
    longitude: float


class LocationIn(CamelModel):
    address: str = Field(min_length=1, max_length=500)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    pincode: Pincode
    coordinates: Optional[Coordinates] = None


class ContactIn(CamelModel):
    phone: PhoneNumber
    email: Optional[EmailStr] = None
    website: Optional[str] = None


class OwnerIn(CamelModel):
    name: str = Field(min_length=1)
    phone: PhoneNumber
    email: Optional[EmailStr] = None


class SeasonalRateIn(CamelModel):
    season: Literal["peak", "normal", "off-season"]
    multiplier: float = Field(ge=0.1, le=5.0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class PricingIn(CamelModel):
    base_price: float = Field(ge=0)
    seasonal_rates: List[SeasonalRateIn] = []
    extra_person_charge: float = Field(default=0, ge=0)


class PoliciesIn(CamelModel):
    cancellation_policy: Optional[str] = None
    check_in_policy: Optional[str] = None
    child_policy: Optional[str] = None


class RatingIn(CamelModel):
    overall: float = Field(default=0, ge=0, le=5)
    cleanliness: float = Field(default=0, ge=0, le=5)
    service: float = Field(default=0, ge=0, le=5)
    location: float = Field(default=0, ge=0, le=5)
    review_count: int = Field(default=0, ge=0)


class ImageIn(CamelModel):
    url: str = Field(min_length=1)
    caption: Optional[str] = None
    is_primary: bool = False


class RoomIn(CamelModel):
    room_number: str = Field(min_length=1, max_length=20)
    room_type: RoomType
    capacity: int = Field(ge=1)
    facilities: RoomFacilities = []
    price_per_night: float = Field(ge=0)
    is_available: bool = True


class RoomUpdate(CamelModel):
    room_number: Optional[str] = Field(default=None, min_length=1, max_length=20)
    room_type: Optional[RoomType] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    facilities: Optional[RoomFacilities] = None
    price_per_night: Optional[float] = Field(default=None, ge=0)
    is_available: Optional[bool] = None


class AccommodationUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    category: Optional[AccommodationCategory] = None
    description: Optional[str] = Field(default=None, max_length=1000)
    location: Optional[LocationIn] = None
    contact: Optional[ContactIn] = None
    owner: Optional[OwnerIn] = None
    facilities: Optional[List[str]] = None
    pricing: Optional[PricingIn] = None
    policies: Optional[PoliciesIn] = None
    rating: Optional[RatingIn] = None
    images: Optional[List[ImageIn]] = None
    is_active: Optional[bool] = None

    @field_validator("facilities")
    @classmethod
    def known_facilities(cls, value):
        unknown = [f for f in value or [] if f not in ACCOMMODATION_FACILITIES]
        if unknown:
            raise ValueError(f"Unknown facilities: {', '.join(unknown)}")
        return value


class AccommodationCreate(AccommodationUpdate):
    name: str = Field(min_length=1, max_length=200)
    category: AccommodationCategory
    location: LocationIn
    contact: ContactIn
    owner: OwnerIn
    pricing: PricingIn
    rooms: List[RoomIn] = []


class TourLinkIn(CamelModel):
    tour_id: str = Field(validation_alias=AliasChoices("tourId", "tour", "tour_id"))
    destination: str = Field(min_length=1, max_length=200)
    day_number: int = Field(ge=1)
    check_in_time: str = Field(default="14:00", pattern=r"^\d{2}:\d{2}$")
    check_out_time: str = Field(default="11:00", pattern=r"^\d{2}:\d{2}$")


class GuestIn(CamelModel):
    name: str = Field(min_length=1)
    age: Optional[int] = Field(default=None, ge=0, le=120)
    relation: Optional[str] = None


class RoomAssignmentIn(CamelModel):
    booking_id: str = Field(validation_alias=AliasChoices("bookingId", "booking_id"))
    check_in: UtcDateTime
    check_out: UtcDateTime
    guests: List[GuestIn] = []


# ============= Helpers =============

def _get_accommodation(db: Session, accommodation_id: str) -> Accommodation:
    acc = db.get(Accommodation, accommodation_id)
    if acc is None:
        raise HTTPException(status_code=404, detail="Accommodation not found")
    return acc


def _get_room(acc: Accommodation, room_id: str) -> Room:
    for room in acc.rooms:
        if room.id == room_id:
            return room
    raise HTTPException(status_code=404, detail="Room not found")


def _get_booking(db: Session, booking_id: str, user: User) -> Booking:
    booking = db.get(Booking, booking_id)
    if booking is None or (not user.is_admin and booking.user_id != user.id):
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking


def _apply_accommodation(acc: Accommodation, payload: AccommodationUpdate) -> None:
    fields = payload.model_fields_set
    for key in ("name", "category", "description", "facilities", "is_active"):
        if key in fields and getattr(payload, key) is not None:
            setattr(acc, key, getattr(payload, key))

    if payload.location is not None:
        loc = payload.location
        acc.address, acc.city, acc.state, acc.pincode = loc.address.strip(), loc.city.strip(), loc.state.strip(), loc.pincode
        acc.latitude = loc.coordinates.latitude if loc.coordinates else None
        acc.longitude = loc.coordinates.longitude if loc.coordinates else None
    if payload.contact is not None:
        acc.contact_phone = payload.contact.phone
        acc.contact_email = payload.contact.email
        acc.website = payload.contact.website
    if payload.owner is not None:
        acc.owner_name = payload.owner.name.strip()
        acc.owner_phone = payload.owner.phone
        acc.owner_email = payload.owner.email
    if payload.pricing is not None:
        acc.base_price = payload.pricing.base_price
        acc.extra_person_charge = payload.pricing.extra_person_charge
        acc.seasonal_rates = [r.model_dump(mode="json", by_alias=True) for r in payload.pricing.seasonal_rates]
    if payload.policies is not None:
        acc.policies = payload.policies.model_dump(mode="json", by_alias=True)
    if payload.rating is not None:
        acc.rating_overall = payload.rating.overall
        acc.rating_cleanliness = payload.rating.cleanliness
        acc.rating_service = payload.rating.service
        acc.rating_location = payload.rating.location
        acc.review_count = payload.rating.review_count
    if payload.images is not None:
        acc.images = room_allocation.normalise_primary_image(
            [img.model_dump(mode="json", by_alias=True) for img in payload.images]
        )


def _room_brief(room: Room) -> Dict[str, Any]:
    return {
        "_id": room.id,
        "roomNumber": room.room_number,
        "roomType": room.room_type.value,
        "capacity": room.capacity,
        "pricePerNight": room.price_per_night,
        "facilities": room.facilities or [],
    }


def _stay(check_in: datetime, check_out: datetime):
    check_in, check_out = naive_utc(check_in), naive_utc(check_out)
    try:
        room_allocation.validate_stay(check_in, check_out)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return check_in, check_out


def _assign(db: Session, accommodation_id: str, room_id: str, payload: RoomAssignmentIn, user: User):
    acc = _get_accommodation(db, accommodation_id)
    room = _get_room(acc, room_id)
    booking = _get_booking(db, payload.booking_id, user)
    try:
        entry = room_allocation.assign_room(
            room, booking.id, payload.check_in, payload.check_out,
            guests=[g.model_dump(mode="json") for g in payload.guests],
        )
    except room_allocation.RoomConflictError as e:
        raise HTTPException(status_code=400, detail={
            "message": str(e),
            "conflictingBooking": room_booking_to_dict(e.conflicting),
        })
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    acc.updated_by = user.id
    db.commit()
    db.refresh(room)
    return room, entry


# ============= Listing & lookups =============

@router.get("")
def list_accommodations(
    category: Optional[AccommodationCategory] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
    tour_id: Optional[str] = Query(None, alias="tourId"),
    destination: Optional[str] = None,
    is_active: Optional[bool] = Query(True, alias="isActive"),
    is_verified: Optional[bool] = Query(None, alias="isVerified"),
    min_rating: Optional[float] = Query(None, alias="minRating"),
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    facilities: Optional[List[str]] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    sort_by: str = Query("name", alias="sortBy"),
    sort_order: str = Query("asc", alias="sortOrder"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(Accommodation)
    if category:
        query = query.filter(Accommodation.category == category)
    if city:
        query = query.filter(Accommodation.city.ilike(f"%{city}%"))
    if state:
        query = query.filter(Accommodation.state.ilike(f"%{state}%"))
    if is_active is not None:
        query = query.filter(Accommodation.is_active.is_(is_active))
    if is_verified is not None:
        query = query.filter(Accommodation.is_verified.is_(is_verified))
    if min_rating is not None:
        query = query.filter(Accommodation.rating_overall >= min_rating)
    if min_price is not None:
        query = query.filter(Accommodation.base_price >= min_price)
    if max_price is not None:
        query = query.filter(Accommodation.base_price <= max_price)
    if tour_id:
        link = AccommodationTour.tour_id == tour_id
        if destination:
            link = and_(link, AccommodationTour.destination.ilike(f"%{destination}%"))
        query = query.filter(Accommodation.tour_links.any(link))

    column = SORT_COLUMNS.get(sort_by, Accommodation.name)
    query = query.order_by(column.desc() if sort_order == "desc" else column.asc())

    if facilities:
        # facilities live in a JSON list; any-of matching happens here
        wanted = set(facilities)
        rows = [acc for acc in query.all() if wanted & set(acc.facilities or [])]
        total = len(rows)
        start = page_offset(page, limit)
        rows = rows[start:start + limit]
    else:
        total = query.count()
        rows = query.offset(page_offset(page, limit)).limit(limit).all()

    return {
        "accommodations": [accommodation_to_dict(a) for a in rows],
        "totalPages": total_pages(total, limit),
        "currentPage": page,
        "total": total,
        "hasNext": page * limit < total,
        "hasPrev": page > 1,
    }


@router.get("/stats/overview")
def stats_overview(
    category: Optional[AccommodationCategory] = None,
    city: Optional[str] = None,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user),
):
    query = db.query(Accommodation).filter(Accommodation.is_active.is_(True))
    if category:
        query = query.filter(Accommodation.category == category)
    if city:
        query = query.filter(Accommodation.city.ilike(f"%{city}%"))
    rows: List[Accommodation] = query.all()

    def avg(values: List[float]) -> float:
        return round(sum(values) / len(values), 2) if values else 0

    by_category: "OrderedDict[str, List[Accommodation]]" = OrderedDict()
    for acc in sorted(rows, key=lambda a: a.category.value):
        by_category.setdefault(acc.category.value, []).append(acc)

    return {
        "overview": {
            "totalAccommodations": len(rows),
            "totalRooms": sum(a.total_rooms for a in rows),
            "totalCapacity": sum(a.total_capacity for a in rows),
            "averageRating": avg([a.rating_overall for a in rows]),
            "averagePrice": avg([a.base_price for a in rows]),
        },
        "categories": [
            {
                "_id": name,
                "count": len(group),
                "averageRating": avg([a.rating_overall for a in group]),
                "averagePrice": avg([a.base_price for a in group]),
            }
            for name, group in by_category.items()
        ],
    }


@router.get("/tour/{tour_id}")
def accommodations_for_tour(
    tour_id: str,
    destination: Optional[str] = None,
    day_number: Optional[int] = Query(None, alias="dayNumber"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(AccommodationTour).filter(AccommodationTour.tour_id == tour_id)
    if destination:
        query = query.filter(AccommodationTour.destination.ilike(f"%{destination}%"))
    if day_number is not None:
        query = query.filter(AccommodationTour.day_number == day_number)

    groups: "OrderedDict[tuple, Dict[str, Any]]" = OrderedDict()
    for link in query.order_by(AccommodationTour.day_number, AccommodationTour.destination).all():
        group = groups.setdefault((link.day_number, link.destination), {
            "dayNumber": link.day_number,
            "destination": link.destination,
            "accommodations": [],
        })
        group["accommodations"].append({
            **accommodation_to_dict(link.accommodation),
            "tourAssociation": tour_link_to_dict(link),
        })

    return {"tourId": tour_id, "itinerary": list(groups.values())}


@router.get("/itinerary/{tour_id}")
def itinerary_accommodations(
    tour_id: str,
    destination: Optional[str] = None,
    date: Optional[datetime] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    link = AccommodationTour.tour_id == tour_id
    if destination:
        link = and_(link, AccommodationTour.destination.ilike(f"%{destination}%"))
    rows = (
        db.query(Accommodation)
        .filter(Accommodation.is_active.is_(True), Accommodation.tour_links.any(link))
        .order_by(Accommodation.city, Accommodation.name)
        .all()
    )

    moment = naive_utc(date) if date else None
    accommodations = []
    for acc in rows:
        data = accommodation_to_dict(acc)
        if moment is not None:
            for room, room_data in zip(acc.rooms, data["rooms"]):
                room_data["isAvailableOnDate"] = not room_allocation.is_occupied_at(room, moment)
        accommodations.append(data)

    return {
        "tourId": tour_id,
        "destination": destination or "All destinations",
        "accommodations": accommodations,
        "totalAccommodations": len(accommodations),
        "totalRooms": sum(acc.total_rooms for acc in rows),
    }


@router.get("/bookings/{booking_id}/rooms")
def booking_rooms(booking_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    booking = _get_booking(db, booking_id, user)
    assignments = []
    for entry in db.query(RoomBooking).filter(RoomBooking.booking_id == booking.id).order_by(RoomBooking.check_in):
        room = entry.room
        acc = room.accommodation
        assignments.append({
            "accommodationId": acc.id,
            "accommodationName": acc.name,
            "accommodationCategory": acc.category.value,
            "location": {"address": acc.address, "city": acc.city, "state": acc.state, "pincode": acc.pincode},
            "roomId": room.id,
            "roomNumber": room.room_number,
            "roomType": room.room_type.value,
            "capacity": room.capacity,
            "facilities": room.facilities or [],
            "pricePerNight": room.price_per_night,
            "checkIn": entry.check_in.isoformat(),
            "checkOut": entry.check_out.isoformat(),
            "guests": entry.guests or [],
        })
    return {"bookingId": booking.id, "roomAssignments": assignments, "totalRooms": len(assignments)}


@router.get("/suggest/{booking_id}")
def suggest_rooms(booking_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    booking = _get_booking(db, booking_id, user)
    tour: Tour = booking.tour

    check_in = tour.start_date
    check_out = tour.end_date
    if check_out <= check_in:
        check_out = check_in + timedelta(days=max(tour.duration_nights or 0, 1))

    accommodations = (
        db.query(Accommodation)
        .filter(
            Accommodation.is_active.is_(True),
            Accommodation.tour_links.any(AccommodationTour.tour_id == tour.id),
        )
        .all()
    )
    suggestions = room_allocation.suggest_rooms(accommodations, booking.total_participants, check_in, check_out)

    return {
        "bookingId": booking.id,
        "partySize": booking.total_participants,
        "checkIn": check_in.isoformat(),
        "checkOut": check_out.isoformat(),
        "suggestions": [
            {
                "accommodationId": s.accommodation.id,
                "accommodationName": s.accommodation.name,
                "rooms": [_room_brief(room) for room in s.rooms],
                "totalCapacity": s.capacity,
                "nightlyCost": round(s.nightly_cost, 2),
            }
            for s in suggestions
        ],
    }


@router.get("/{accommodation_id}")
def get_accommodation(accommodation_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return accommodation_to_dict(_get_accommodation(db, accommodation_id))


# ============= Accommodation CRUD =============

def _ensure_unique_name(db: Session, name: str, city: str, exclude_id: Optional[str] = None) -> None:
    query = db.query(Accommodation).filter(
        func.lower(Accommodation.name) == name.strip().lower(),
        func.lower(Accommodation.city) == city.strip().lower(),
    )
    if exclude_id:
        query = query.filter(Accommodation.id != exclude_id)
    if query.first():
        raise HTTPException(status_code=400, detail="Accommodation with this name already exists in this location")


@router.post("", status_code=201)
def create_accommodation(payload: AccommodationCreate, db: Session = Depends(get_db),
                         admin: User = Depends(get_admin_user)):
    _ensure_unique_name(db, payload.name, payload.location.city)

    seen = set()
    for room in payload.rooms:
        if room.room_number in seen:
            raise HTTPException(status_code=400, detail="Room number already exists in this accommodation")
        seen.add(room.room_number)

    try:
        acc = Accommodation(created_by=admin.id)
        _apply_accommodation(acc, payload)
        acc.rooms = [Room(**room.model_dump()) for room in payload.rooms]
        db.add(acc)
        db.commit()
        db.refresh(acc)

        logger.info(f"✅ Accommodation created: {acc.name} ({acc.city})")
        return {"message": "Accommodation created successfully", "accommodation": accommodation_to_dict(acc)}

    except Exception as e:
        db.rollback()
        logger.error(f"❌ Accommodation creation failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error")


@router.put("/{accommodation_id}")
def update_accommodation(accommodation_id: str, payload: AccommodationUpdate, db: Session = Depends(get_db),
                         admin: User = Depends(get_admin_user)):
    acc = _get_accommodation(db, accommodation_id)
    if payload.name is not None or payload.location is not None:
        _ensure_unique_name(
            db,
            payload.name if payload.name is not None else acc.name,
            payload.location.city if payload.location is not None else acc.city,
            exclude_id=acc.id,
        )
    _apply_accommodation(acc, payload)
    acc.updated_by = admin.id
    db.commit()
    db.refresh(acc)
    return {"message": "Accommodation updated successfully", "accommodation": accommodation_to_dict(acc)}


@router.delete("/{accommodation_id}")
def delete_accommodation(accommodation_id: str, db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    acc = _get_accommodation(db, accommodation_id)
    if any(room_allocation.has_future_bookings(room) for room in acc.rooms):
        raise HTTPException(status_code=400, detail="Cannot delete accommodation with active bookings")

    db.delete(acc)
    db.commit()
    logger.info(f"🗑️ Accommodation deleted: {accommodation_id}")
    return {"message": "Accommodation deleted successfully"}


@router.patch("/{accommodation_id}/verify")
def verify_accommodation(accommodation_id: str, db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    acc = _get_accommodation(db, accommodation_id)
    acc.is_verified = True
    acc.verification_date = datetime.utcnow()
    acc.verified_by = admin.id
    db.commit()
    db.refresh(acc)
    return {"message": "Accommodation verified successfully", "accommodation": accommodation_to_dict(acc)}


# ============= Rooms =============

@router.post("/{accommodation_id}/rooms", status_code=201)
def add_room(accommodation_id: str, payload: RoomIn, db: Session = Depends(get_db),
             admin: User = Depends(get_admin_user)):
    acc = _get_accommodation(db, accommodation_id)
    if any(room.room_number == payload.room_number for room in acc.rooms):
        raise HTTPException(status_code=400, detail="Room number already exists in this accommodation")

    room = Room(**payload.model_dump())
    acc.rooms.append(room)
    acc.updated_by = admin.id
    db.commit()
    db.refresh(room)
    return {"message": "Room added successfully", "room": room_to_dict(room)}


@router.put("/{accommodation_id}/rooms/{room_id}")
def update_room(accommodation_id: str, room_id: str, payload: RoomUpdate, db: Session = Depends(get_db),
                admin: User = Depends(get_admin_user)):
    acc = _get_accommodation(db, accommodation_id)
    room = _get_room(acc, room_id)

    data = payload.model_dump(exclude_unset=True, exclude_none=True)
    number = data.get("room_number")
    if number and number != room.room_number and any(r.room_number == number for r in acc.rooms):
        raise HTTPException(status_code=400, detail="Room number already exists in this accommodation")

    for key, value in data.items():
        setattr(room, key, value)
    acc.updated_by = admin.id
    db.commit()
    db.refresh(room)
    return {"message": "Room updated successfully", "room": room_to_dict(room)}


@router.delete("/{accommodation_id}/rooms/{room_id}")
def delete_room(accommodation_id: str, room_id: str, db: Session = Depends(get_db),
                admin: User = Depends(get_admin_user)):
    acc = _get_accommodation(db, accommodation_id)
    room = _get_room(acc, room_id)
    if room_allocation.has_future_bookings(room):
        raise HTTPException(status_code=400, detail="Cannot delete room with active bookings")

    acc.rooms.remove(room)
    acc.updated_by = admin.id
    db.commit()
    return {"message": "Room deleted successfully"}


# ============= Tour associations =============

@router.post("/{accommodation_id}/tours", status_code=201)
def add_tour_link(accommodation_id: str, payload: TourLinkIn, db: Session = Depends(get_db),
                  admin: User = Depends(get_admin_user)):
    acc = _get_accommodation(db, accommodation_id)
    if db.get(Tour, payload.tour_id) is None:
        raise HTTPException(status_code=404, detail="Tour not found")

    destination = payload.destination.strip()
    for link in acc.tour_links:
        if link.tour_id == payload.tour_id and link.destination == destination and link.day_number == payload.day_number:
            raise HTTPException(
                status_code=400,
                detail="This accommodation is already associated with this tour for the specified destination and day",
            )

    acc.tour_links.append(AccommodationTour(
        tour_id=payload.tour_id,
        destination=destination,
        day_number=payload.day_number,
        check_in_time=payload.check_in_time,
        check_out_time=payload.check_out_time,
    ))
    acc.updated_by = admin.id
    db.commit()
    db.refresh(acc)
    return {
        "message": "Tour association added successfully",
        "associatedTours": [tour_link_to_dict(link) for link in acc.tour_links],
    }


@router.delete("/{accommodation_id}/tours/{tour_id}")
def remove_tour_link(
    accommodation_id: str,
    tour_id: str,
    destination: Optional[str] = None,
    day_number: Optional[int] = Query(None, alias="dayNumber"),
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user),
):
    acc = _get_accommodation(db, accommodation_id)
    matches = [
        link for link in acc.tour_links
        if link.tour_id == tour_id
        and (destination is None or link.destination == destination)
        and (day_number is None or link.day_number == day_number)
    ]
    if not matches:
        raise HTTPException(status_code=404, detail="Tour association not found")

    for link in matches:
        acc.tour_links.remove(link)
    acc.updated_by = admin.id
    db.commit()
    return {"message": "Tour association removed successfully", "removed": len(matches)}


# ============= Room assignments =============

@router.post("/{accommodation_id}/rooms/{room_id}/book", status_code=201)
def book_room(accommodation_id: str, room_id: str, payload: RoomAssignmentIn, db: Session = Depends(get_db),
              admin: User = Depends(get_admin_user)):
    room, entry = _assign(db, accommodation_id, room_id, payload, admin)
    return {"message": "Room booked successfully", "booking": room_booking_to_dict(entry)}


@router.post("/{accommodation_id}/rooms/{room_id}/assign-booking")
def assign_booking(accommodation_id: str, room_id: str, payload: RoomAssignmentIn,
                   user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    room, entry = _assign(db, accommodation_id, room_id, payload, user)
    return {"message": "Room successfully assigned to booking", "room": room_to_dict(room)}


@router.delete("/{accommodation_id}/rooms/{room_id}/bookings/{booking_id}")
def remove_assignment(accommodation_id: str, room_id: str, booking_id: str,
                      user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    acc = _get_accommodation(db, accommodation_id)
    room = _get_room(acc, room_id)
    _get_booking(db, booking_id, user)
    try:
        room_allocation.release_room(room, booking_id)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

    db.commit()
    db.refresh(room)
    return {"message": "Room booking assignment removed successfully", "room": room_to_dict(room)}


# ============= Availability =============

@router.get("/{accommodation_id}/availability")
def check_availability(
    accommodation_id: str,
    check_in: datetime = Query(..., alias="checkIn"),
    check_out: datetime = Query(..., alias="checkOut"),
    room_type: Optional[RoomType] = Query(None, alias="roomType"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    acc = _get_accommodation(db, accommodation_id)
    check_in, check_out = _stay(check_in, check_out)
    rooms = room_allocation.available_rooms(acc, check_in, check_out, room_type=room_type)
    return {
        "accommodationId": acc.id,
        "accommodationName": acc.name,
        "checkIn": check_in.isoformat(),
        "checkOut": check_out.isoformat(),
        "totalRooms": acc.total_rooms,
        "availableRooms": len(rooms),
        "rooms": [_room_brief(room) for room in rooms],
    }


@router.get("/{accommodation_id}/available-rooms")
def available_rooms(
    accommodation_id: str,
    check_in: datetime = Query(..., alias="checkIn"),
    check_out: datetime = Query(..., alias="checkOut"),
    capacity: Optional[int] = Query(None, ge=1),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    acc = _get_accommodation(db, accommodation_id)
    check_in, check_out = _stay(check_in, check_out)
    rooms = room_allocation.available_rooms(acc, check_in, check_out, min_capacity=capacity, require_flag=False)
    return {
        "accommodationId": acc.id,
        "accommodationName": acc.name,
        "checkIn": check_in.isoformat(),
        "checkOut": check_out.isoformat(),
        "availableRooms": [room_to_dict(room) for room in rooms],
        "totalAvailable": len(rooms),
        "totalRooms": acc.total_rooms,
    }
