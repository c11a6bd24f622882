from typing import Any, List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field
from sqlalchemy.orm import Session

from portal.api.v1.common import CamelModel
from portal.api.v1.serializers import destination_to_dict
from portal.core.database import get_db
from portal.core.security import get_admin_user
from portal.models import Destination, Region, User

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/destinations", tags=["destinations"])


class Coordinates(CamelModel):
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class Transportation(CamelModel):
    nearest_railway: Optional[str] = None
    nearest_airport: Optional[str] = None
    road_connectivity: Optional[str] = None


class AccommodationInfo(CamelModel):
    available: bool = True
    types: List[str] = []


class DestinationUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    state: Optional[str] = Field(default=None, min_length=1, max_length=100)
    region: Optional[Region] = None
    description: Optional[str] = None
    significance: Optional[str] = None
    famous_temples: Optional[List[str]] = None
    best_time_to_visit: Optional[str] = None
    nearby_attractions: Optional[List[str]] = None
    images: Optional[List[Any]] = None
    coordinates: Optional[Coordinates] = None
    transportation: Optional[Transportation] = None
    accommodation: Optional[AccommodationInfo] = None
    is_active: Optional[bool] = None


class DestinationCreate(DestinationUpdate):
    name: str = Field(min_length=1, max_length=200)
    state: str = Field(min_length=1, max_length=100)
    region: Region


def _apply(dest: Destination, payload: DestinationUpdate) -> None:
    data = payload.model_dump(exclude_unset=True, exclude_none=True,
                              exclude={"coordinates", "transportation", "accommodation"})
    for key, value in data.items():
        setattr(dest, key, value)
    if payload.coordinates is not None:
        dest.latitude = payload.coordinates.latitude
        dest.longitude = payload.coordinates.longitude
    if payload.transportation is not None:
        dest.nearest_railway = payload.transportation.nearest_railway
        dest.nearest_airport = payload.transportation.nearest_airport
        dest.road_connectivity = payload.transportation.road_connectivity
    if payload.accommodation is not None:
        dest.accommodation_available = payload.accommodation.available
        dest.accommodation_types = payload.accommodation.types


def _active(db: Session):
    return db.query(Destination).filter(Destination.is_active.is_(True))


@router.get("")
def list_destinations(region: Optional[Region] = None, state: Optional[str] = None, db: Session = Depends(get_db)):
    query = _active(db)
    if region:
        query = query.filter(Destination.region == region)
    if state:
        query = query.filter(Destination.state == state)
    rows = query.order_by(Destination.region, Destination.state, Destination.name).all()
    return [destination_to_dict(d) for d in rows]


@router.get("/region/{region}")
def destinations_by_region(region: Region, db: Session = Depends(get_db)):
    rows = _active(db).filter(Destination.region == region).order_by(Destination.state, Destination.name).all()
    return [destination_to_dict(d) for d in rows]


@router.get("/{destination_id}")
def get_destination(destination_id: str, db: Session = Depends(get_db)):
    dest = _active(db).filter(Destination.id == destination_id).first()
    if dest is None:
        raise HTTPException(status_code=404, detail="Destination not found")
    return destination_to_dict(dest)


@router.post("", status_code=201)
def create_destination(payload: DestinationCreate, db: Session = Depends(get_db),
                       admin: User = Depends(get_admin_user)):
    try:
        dest = Destination()
        _apply(dest, payload)
        db.add(dest)
        db.commit()
        db.refresh(dest)
        logger.info(f"✅ Destination created: {dest.name}")
        return {"message": "Destination created successfully", "destination": destination_to_dict(dest)}
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Destination creation failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error during destination creation")


@router.put("/{destination_id}")
def update_destination(destination_id: str, payload: DestinationUpdate, db: Session = Depends(get_db),
                       admin: User = Depends(get_admin_user)):
    dest = db.get(Destination, destination_id)
    if dest is None:
        raise HTTPException(status_code=404, detail="Destination not found")
    _apply(dest, payload)
    db.commit()
    db.refresh(dest)
    return {"message": "Destination updated successfully", "destination": destination_to_dict(dest)}


@router.delete("/{destination_id}")
def delete_destination(destination_id: str, db: Session = Depends(get_db), admin: User = Depends(get_admin_user)):
    """Soft delete: the destination is deactivated."""
    dest = db.get(Destination, destination_id)
    if dest is None:
        raise HTTPException(status_code=404, detail="Destination not found")
    dest.is_active = False
    db.commit()
    logger.info(f"🗑️ Destination deactivated: {dest.name}")
    return {"message": "Destination deactivated successfully"}
