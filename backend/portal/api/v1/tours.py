from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import Field, field_validator, model_validator
from sqlalchemy import or_
from sqlalchemy.orm import Session

from portal.api.v1.common import CamelModel, UtcDateTime, naive_utc, page_offset, total_pages
from portal.api.v1.serializers import tour_to_dict
from portal.core.database import get_db
from portal.core.security import get_admin_user
from portal.models import (
    AccommodationTour, Booking, Expense, Region, Tour, TourCategory, TourDestination,
    TourDifficulty, TourStatus, User,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/tours", tags=["tours"])

TRANSPORT_TYPES = {"bus", "train", "flight", "car", "van", "boat"}


# ============= Request models =============

class Coordinates(CamelModel):
    latitude: float
    longitude: float


class DestinationStopIn(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    state: str = Field(min_length=1, max_length=100)
    region: Region
    significance: Optional[str] = None
    temples: List[str] = []
    coordinates: Optional[Coordinates] = None


class DurationIn(CamelModel):
    days: int = Field(ge=1)
    nights: int = Field(ge=0)


class PricingIn(CamelModel):
    adult: float = Field(ge=0)
    child: float = Field(ge=0)
    senior: Optional[float] = Field(default=None, ge=0)
    currency: str = "INR"


class TourUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, min_length=1)
    short_description: Optional[str] = Field(default=None, max_length=200)
    destinations: Optional[List[DestinationStopIn]] = Field(default=None, min_length=1)
    duration: Optional[DurationIn] = None
    itinerary: Optional[List[Dict[str, Any]]] = None
    transportation: Optional[List[Dict[str, Any]]] = None
    pricing: Optional[PricingIn] = None
    inclusions: Optional[List[str]] = None
    exclusions: Optional[List[str]] = None
    images: Optional[List[Any]] = None
    start_date: Optional[UtcDateTime] = None
    end_date: Optional[UtcDateTime] = None
    max_participants: Optional[int] = Field(default=None, ge=1)
    status: Optional[TourStatus] = None
    difficulty: Optional[TourDifficulty] = None
    category: Optional[TourCategory] = None
    featured: Optional[bool] = None

    @field_validator("transportation")
    @classmethod
    def check_transport_types(cls, value):
        for item in value or []:
            if item.get("type") not in TRANSPORT_TYPES:
                raise ValueError(f"Transportation type must be one of {sorted(TRANSPORT_TYPES)}")
        return value

    @model_validator(mode="after")
    def check_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("End date must be on or after start date")
        return self


class TourCreate(TourUpdate):
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    short_description: str = Field(max_length=200)
    destinations: List[DestinationStopIn] = Field(min_length=1)
    duration: DurationIn
    pricing: PricingIn
    start_date: UtcDateTime
    end_date: UtcDateTime
    max_participants: int = Field(ge=1)


class StatusUpdate(CamelModel):
    status: TourStatus


class FeaturedUpdate(CamelModel):
    featured: bool


# ============= Helpers =============

def _get_tour(db: Session, tour_id: str) -> Tour:
    tour = db.get(Tour, tour_id)
    if tour is None:
        raise HTTPException(status_code=404, detail="Tour not found")
    return tour


def _destination_rows(stops: List[Dict[str, Any]]) -> List[TourDestination]:
    rows = []
    for position, stop in enumerate(stops):
        coords = stop.get("coordinates") or {}
        rows.append(TourDestination(
            position=position,
            name=stop["name"].strip(),
            state=stop["state"].strip(),
            region=stop["region"],
            significance=stop.get("significance"),
            temples=stop.get("temples") or [],
            latitude=coords.get("latitude"),
            longitude=coords.get("longitude"),
        ))
    return rows


def _apply_tour_data(tour: Tour, data: Dict[str, Any]) -> None:
    """Copies a dumped TourCreate/TourUpdate onto the row, flattening duration and pricing."""
    data = dict(data)
    stops = data.pop("destinations", None)
    if stops is not None:
        tour.destinations = _destination_rows(stops)
    duration = data.pop("duration", None)
    if duration:
        tour.duration_days = duration["days"]
        tour.duration_nights = duration["nights"]
    pricing = data.pop("pricing", None)
    if pricing:
        tour.price_adult = pricing["adult"]
        tour.price_child = pricing["child"]
        tour.price_senior = pricing.get("senior")
        tour.currency = pricing.get("currency") or "INR"
    for key, value in data.items():
        if value is None:
            continue
        setattr(tour, key, value)


def _destination_search(term: str):
    pattern = f"%{term}%"
    return or_(
        Tour.title.ilike(pattern),
        Tour.description.ilike(pattern),
        Tour.destinations.any(TourDestination.name.ilike(pattern)),
    )


def _page(query, page: int, limit: int) -> Dict[str, Any]:
    total = query.count()
    tours = query.offset(page_offset(page, limit)).limit(limit).all()
    return {
        "tours": [tour_to_dict(t) for t in tours],
        "totalPages": total_pages(total, limit),
        "currentPage": page,
        "total": total,
    }


# ============= Public =============

@router.get("")
def list_tours(
    region: Optional[Region] = None,
    status: Optional[TourStatus] = None,
    featured: Optional[bool] = None,
    category: Optional[TourCategory] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    query = db.query(Tour)
    if region:
        query = query.filter(Tour.destinations.any(TourDestination.region == region))
    if status:
        query = query.filter(Tour.status == status)
    if featured is not None:
        query = query.filter(Tour.featured.is_(featured))
    if category:
        query = query.filter(Tour.category == category)
    query = query.order_by(Tour.featured.desc(), Tour.created_at.desc())
    return _page(query, page, limit)


@router.get("/featured")
@router.get("/featured/list")
def featured_tours(db: Session = Depends(get_db)):
    tours = (
        db.query(Tour)
        .filter(Tour.featured.is_(True), Tour.status == TourStatus.PUBLISHED)
        .order_by(Tour.created_at.desc())
        .limit(6)
        .all()
    )
    return [tour_to_dict(t) for t in tours]


@router.get("/region/{region}")
def tours_by_region(region: Region, db: Session = Depends(get_db)):
    tours = (
        db.query(Tour)
        .filter(
            Tour.status == TourStatus.PUBLISHED,
            Tour.destinations.any(TourDestination.region == region),
        )
        .order_by(Tour.start_date)
        .all()
    )
    return [tour_to_dict(t) for t in tours]


# ============= Admin =============

@router.get("/admin/all")
def admin_list_tours(
    status: Optional[TourStatus] = None,
    region: Optional[Region] = None,
    featured: Optional[bool] = None,
    search: Optional[str] = None,
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user),
):
    query = db.query(Tour)
    if status:
        query = query.filter(Tour.status == status)
    if region:
        query = query.filter(Tour.destinations.any(TourDestination.region == region))
    if featured is not None:
        query = query.filter(Tour.featured.is_(featured))
    if start_date:
        query = query.filter(Tour.start_date >= naive_utc(start_date))
    if end_date:
        query = query.filter(Tour.start_date <= naive_utc(end_date))
    if search and search.strip():
        query = query.filter(_destination_search(search.strip()))
    return _page(query.order_by(Tour.created_at.desc()), page, limit)


@router.get("/{tour_id}")
def get_tour(tour_id: str, db: Session = Depends(get_db)):
    return tour_to_dict(_get_tour(db, tour_id))


@router.post("", status_code=201)
def create_tour(payload: TourCreate, db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    try:
        tour = Tour(created_by=admin.id, current_participants=0)
        _apply_tour_data(tour, payload.model_dump(exclude_unset=True))
        db.add(tour)
        db.commit()
        db.refresh(tour)

        logger.info(f"✅ Tour created: {tour.title} ({tour.id})")
        return {"message": "Tour created successfully", "tour": tour_to_dict(tour)}

    except Exception as e:
        db.rollback()
        logger.error(f"❌ Tour creation failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error during tour creation")


@router.put("/{tour_id}")
def update_tour(tour_id: str, payload: TourUpdate, db: Session = Depends(get_db),
                admin: User = Depends(get_admin_user)):
    tour = _get_tour(db, tour_id)
    data = payload.model_dump(exclude_unset=True)

    if "max_participants" in data and data["max_participants"] is not None \
            and data["max_participants"] < (tour.current_participants or 0):
        raise HTTPException(status_code=400, detail="Max participants cannot be less than current participants")

    try:
        _apply_tour_data(tour, data)
        if tour.end_date < tour.start_date:
            raise ValueError("End date must be on or after start date")
        tour.updated_by = admin.id
        db.commit()
        db.refresh(tour)
        return {"message": "Tour updated successfully", "tour": tour_to_dict(tour)}

    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Tour update failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error during tour update")


@router.delete("/{tour_id}")
def delete_tour(tour_id: str, db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    tour = _get_tour(db, tour_id)

    bookings = db.query(Booking).filter(Booking.tour_id == tour.id).count()
    if bookings:
        raise HTTPException(
            status_code=400,
            detail="Cannot delete tour with existing bookings. Please cancel all bookings first.",
        )

    db.query(AccommodationTour).filter(AccommodationTour.tour_id == tour.id).delete(synchronize_session=False)
    db.query(Expense).filter(Expense.tour_id == tour.id).update({Expense.tour_id: None}, synchronize_session=False)
    db.delete(tour)
    db.commit()

    logger.info(f"🗑️ Tour deleted: {tour_id}")
    return {"message": "Tour deleted successfully"}


@router.patch("/{tour_id}/status")
def set_tour_status(tour_id: str, payload: StatusUpdate, db: Session = Depends(get_db),
                    admin: User = Depends(get_admin_user)):
    tour = _get_tour(db, tour_id)
    tour.status = payload.status
    tour.updated_by = admin.id
    db.commit()
    db.refresh(tour)
    return tour_to_dict(tour)


@router.patch("/{tour_id}/featured")
def set_tour_featured(tour_id: str, payload: FeaturedUpdate, db: Session = Depends(get_db),
                      admin: User = Depends(get_admin_user)):
    tour = _get_tour(db, tour_id)
    tour.featured = payload.featured
    tour.updated_by = admin.id
    db.commit()
    db.refresh(tour)
    return tour_to_dict(tour)


@router.post("/{tour_id}/duplicate", status_code=201)
def duplicate_tour(tour_id: str, db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    source = _get_tour(db, tour_id)
    copy = Tour(
        title=f"{source.title} (Copy)",
        description=source.description,
        short_description=source.short_description,
        duration_days=source.duration_days,
        duration_nights=source.duration_nights,
        itinerary=list(source.itinerary or []),
        transportation=list(source.transportation or []),
        price_adult=source.price_adult,
        price_child=source.price_child,
        price_senior=source.price_senior,
        currency=source.currency,
        inclusions=list(source.inclusions or []),
        exclusions=list(source.exclusions or []),
        images=list(source.images or []),
        start_date=source.start_date,
        end_date=source.end_date,
        max_participants=source.max_participants,
        current_participants=0,
        status=TourStatus.DRAFT,
        difficulty=source.difficulty,
        category=source.category,
        featured=False,
        created_by=admin.id,
        destinations=[
            TourDestination(
                position=stop.position, name=stop.name, state=stop.state, region=stop.region,
                significance=stop.significance, temples=list(stop.temples or []),
                latitude=stop.latitude, longitude=stop.longitude,
            )
            for stop in source.destinations
        ],
    )
    db.add(copy)
    db.commit()
    db.refresh(copy)

    logger.info(f"Tour {source.id} duplicated as {copy.id}")
    return tour_to_dict(copy)
