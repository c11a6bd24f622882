"""
ORM row -> JSON dict converters. Keys are camelCase and ids are exposed as "_id".
"""
from typing import Any, Dict, Optional

from portal.api.v1.common import iso
from portal.models import (
    Accommodation, AccommodationTour, Booking, BookingParticipant, Destination,
    Expense, FamilyMember, Member, Part, Room, RoomBooking, Tour, TourDestination, User,
)


def _v(value):
    return value.value if hasattr(value, "value") else value


def _timestamps(row) -> Dict[str, Any]:
    return {"createdAt": iso(row.created_at), "updatedAt": iso(row.updated_at)}


# ============= Users =============

def user_brief(user: Optional[User]) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {
        "_id": user.id,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "email": user.email,
        "phoneNumber": user.phone_number,
    }


def session_user(user: User) -> Dict[str, Any]:
    """The user object returned alongside a token at login/register."""
    return {
        "id": user.id,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "name": user.full_name,
        "email": user.email,
        "role": _v(user.role),
        "phone": user.phone_number,
        "aadhar": user.aadhar_number,
    }


def family_member_to_dict(member: FamilyMember) -> Dict[str, Any]:
    return {
        "_id": member.id,
        "name": member.name,
        "relationship": member.relationship_type,
        "age": member.age,
        "aadharNumber": member.aadhar_number,
        "phoneNumber": member.phone_number,
    }


def user_to_dict(user: User) -> Dict[str, Any]:
    return {
        "_id": user.id,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "email": user.email,
        "phoneNumber": user.phone_number,
        "aadharNumber": user.aadhar_number,
        "address": {
            "street": user.street,
            "city": user.city,
            "state": user.state,
            "pincode": user.pincode,
        },
        "role": _v(user.role),
        "isVerified": user.is_verified,
        "profileImage": user.profile_image,
        "familyMembers": [family_member_to_dict(m) for m in user.family_members],
        "lastLogin": iso(user.last_login_at),
        **_timestamps(user),
    }


# ============= Tours =============

def destination_stop_to_dict(stop: TourDestination) -> Dict[str, Any]:
    data = {
        "name": stop.name,
        "state": stop.state,
        "region": _v(stop.region),
        "significance": stop.significance,
        "temples": stop.temples or [],
    }
    if stop.latitude is not None and stop.longitude is not None:
        data["coordinates"] = {"latitude": stop.latitude, "longitude": stop.longitude}
    return data


def tour_brief(tour: Optional[Tour]) -> Optional[Dict[str, Any]]:
    if tour is None:
        return None
    return {
        "_id": tour.id,
        "title": tour.title,
        "startDate": iso(tour.start_date),
        "endDate": iso(tour.end_date),
        "destinations": [destination_stop_to_dict(d) for d in tour.destinations],
        "duration": {"days": tour.duration_days, "nights": tour.duration_nights},
        "pricing": tour_pricing(tour),
    }


def tour_pricing(tour: Tour) -> Dict[str, Any]:
    return {
        "adult": tour.price_adult,
        "child": tour.price_child,
        "senior": tour.price_senior if tour.price_senior is not None else tour.price_adult,
        "currency": tour.currency,
    }


def tour_to_dict(tour: Tour) -> Dict[str, Any]:
    return {
        "_id": tour.id,
        "title": tour.title,
        "description": tour.description,
        "shortDescription": tour.short_description,
        "destinations": [destination_stop_to_dict(d) for d in tour.destinations],
        "duration": {"days": tour.duration_days, "nights": tour.duration_nights},
        "durationString": tour.duration_string,
        "itinerary": tour.itinerary or [],
        "transportation": tour.transportation or [],
        "pricing": tour_pricing(tour),
        "inclusions": tour.inclusions or [],
        "exclusions": tour.exclusions or [],
        "images": tour.images or [],
        "startDate": iso(tour.start_date),
        "endDate": iso(tour.end_date),
        "maxParticipants": tour.max_participants,
        "currentParticipants": tour.current_participants,
        "currentBookings": tour.current_participants,
        "availableSeats": tour.available_seats,
        "isAvailable": tour.is_available,
        "status": _v(tour.status),
        "difficulty": _v(tour.difficulty),
        "category": _v(tour.category),
        "featured": tour.featured,
        "createdBy": user_brief(tour.creator),
        "updatedBy": user_brief(tour.updater),
        **_timestamps(tour),
    }


# ============= Bookings =============

def participant_to_dict(participant: BookingParticipant) -> Dict[str, Any]:
    return {
        "_id": participant.id,
        "type": _v(participant.type),
        "name": participant.name,
        "age": participant.age,
        "relationship": participant.relationship_type,
        "aadharNumber": participant.aadhar_number,
        "priceCategory": _v(participant.price_category),
        "addedAt": iso(participant.added_at),
    }


def booking_to_dict(booking: Booking) -> Dict[str, Any]:
    return {
        "_id": booking.id,
        "bookingId": booking.booking_ref,
        "user": user_brief(booking.user),
        "userId": booking.user_id,
        "tour": tour_brief(booking.tour),
        "tourId": booking.tour_id,
        "participants": [participant_to_dict(p) for p in booking.participants],
        "totalParticipants": booking.total_participants,
        "pricing": {
            "subtotal": booking.subtotal,
            "taxes": booking.taxes,
            "discount": booking.discount,
            "total": booking.total,
        },
        "totalAmount": booking.total,
        "status": _v(booking.status),
        "paymentStatus": _v(booking.payment_status),
        "paymentDetails": {
            "method": booking.payment_method,
            "transactionId": booking.transaction_id,
            "amount": booking.payment_amount,
            "paymentDate": iso(booking.payment_date),
        },
        "specialRequests": booking.special_requests,
        "emergencyContact": booking.emergency_contact,
        "adminNotes": booking.admin_notes,
        "statusUpdatedBy": booking.status_updated_by,
        "statusUpdatedAt": iso(booking.status_updated_at),
        "createdBy": booking.created_by,
        "bookingDate": iso(booking.booking_date),
        "confirmationDate": iso(booking.confirmation_date),
        "cancellationDate": iso(booking.cancellation_date),
        "cancellationReason": booking.cancellation_reason,
        **_timestamps(booking),
    }


# ============= Expenses =============

def expense_to_dict(expense: Expense) -> Dict[str, Any]:
    tour = expense.tour
    return {
        "_id": expense.id,
        "tour": {"_id": tour.id, "title": tour.title} if tour else None,
        "tourId": expense.tour_id,
        "addedBy": user_brief(expense.submitter),
        "title": expense.title,
        "category": _v(expense.category),
        "subcategory": expense.subcategory,
        "description": expense.description,
        "amount": expense.amount,
        "currency": expense.currency,
        "expenseDate": iso(expense.expense_date),
        "location": expense.location,
        "vendor": expense.vendor,
        "paymentMethod": _v(expense.payment_method),
        "receiptNumber": expense.receipt_number,
        "participants": expense.participants,
        "perPersonCost": expense.per_person_cost,
        "isReimbursable": expense.is_reimbursable,
        "isApproved": expense.is_approved,
        "approvedBy": user_brief(expense.approver),
        "approvalDate": iso(expense.approval_date),
        "approvedAt": iso(expense.approval_date),
        "rejectionReason": expense.rejection_reason,
        "notes": expense.notes,
        "attachments": expense.attachments or [],
        "tags": expense.tags or [],
        "updatedBy": expense.updated_by,
        **_timestamps(expense),
    }


# ============= Accommodations =============

def room_booking_to_dict(entry: RoomBooking) -> Dict[str, Any]:
    return {
        "_id": entry.id,
        "bookingId": entry.booking_id,
        "checkIn": iso(entry.check_in),
        "checkOut": iso(entry.check_out),
        "guests": entry.guests or [],
    }


def room_to_dict(room: Room) -> Dict[str, Any]:
    return {
        "_id": room.id,
        "roomNumber": room.room_number,
        "roomType": _v(room.room_type),
        "capacity": room.capacity,
        "facilities": room.facilities or [],
        "pricePerNight": room.price_per_night,
        "isAvailable": room.is_available,
        "bookings": [room_booking_to_dict(b) for b in room.bookings],
    }


def tour_link_to_dict(link: AccommodationTour) -> Dict[str, Any]:
    tour = link.tour
    return {
        "_id": link.id,
        "tour": {"_id": tour.id, "title": tour.title} if tour else link.tour_id,
        "destination": link.destination,
        "dayNumber": link.day_number,
        "checkInTime": link.check_in_time,
        "checkOutTime": link.check_out_time,
    }


def accommodation_to_dict(acc: Accommodation) -> Dict[str, Any]:
    location: Dict[str, Any] = {
        "address": acc.address,
        "city": acc.city,
        "state": acc.state,
        "pincode": acc.pincode,
    }
    if acc.latitude is not None and acc.longitude is not None:
        location["coordinates"] = {"latitude": acc.latitude, "longitude": acc.longitude}

    return {
        "_id": acc.id,
        "name": acc.name,
        "category": _v(acc.category),
        "description": acc.description,
        "location": location,
        "contact": {"phone": acc.contact_phone, "email": acc.contact_email, "website": acc.website},
        "owner": {"name": acc.owner_name, "phone": acc.owner_phone, "email": acc.owner_email},
        "facilities": acc.facilities or [],
        "rooms": [room_to_dict(r) for r in acc.rooms],
        "associatedTours": [tour_link_to_dict(link) for link in acc.tour_links],
        "pricing": {
            "basePrice": acc.base_price,
            "seasonalRates": acc.seasonal_rates or [],
            "extraPersonCharge": acc.extra_person_charge,
        },
        "policies": acc.policies or {},
        "rating": {
            "overall": acc.rating_overall,
            "cleanliness": acc.rating_cleanliness,
            "service": acc.rating_service,
            "location": acc.rating_location,
            "reviewCount": acc.review_count,
        },
        "images": acc.images or [],
        "isActive": acc.is_active,
        "isVerified": acc.is_verified,
        "verificationDate": iso(acc.verification_date),
        "verifiedBy": acc.verified_by,
        "createdBy": acc.created_by,
        "updatedBy": acc.updated_by,
        "totalRooms": acc.total_rooms,
        "availableRooms": acc.available_rooms,
        "fullAddress": acc.full_address,
        "totalCapacity": acc.total_capacity,
        "averagePrice": acc.average_price,
        **_timestamps(acc),
    }


# ============= Rosters =============

def member_to_dict(member: Member) -> Dict[str, Any]:
    return {
        "_id": member.id,
        "section": member.section,
        "section_desc": member.section_desc,
        "s_no": member.s_no,
        "mob_s_no": member.mob_s_no,
        "group_s_no": member.group_s_no,
        "name_aadhar": member.name_aadhar,
        "gender": member.gender,
        "age": member.age,
        "aadhar_no": member.aadhar_no,
        "persons": member.persons,
        "sram": member.sram,
        "fwdJny": member.fwd_jny,
        "rtnJny": member.rtn_jny,
        "notes": member.notes,
        "createdBy": user_brief(member.creator),
        "updatedBy": user_brief(member.updater),
        "displayInfo": member.display_info,
        **_timestamps(member),
    }


def part_to_dict(part: Part) -> Dict[str, Any]:
    return {
        "_id": part.id,
        "section": part.section,
        "sectionDescription": part.section_description,
        "memberName": part.member_name,
        "noOfPersons": part.no_of_persons,
        "sradam": part.sradam,
        "notes": part.notes,
        **_timestamps(part),
    }


# ============= Destinations =============

def destination_to_dict(dest: Destination) -> Dict[str, Any]:
    return {
        "_id": dest.id,
        "name": dest.name,
        "state": dest.state,
        "region": _v(dest.region),
        "description": dest.description,
        "significance": dest.significance,
        "famousTemples": dest.famous_temples or [],
        "bestTimeToVisit": dest.best_time_to_visit,
        "nearbyAttractions": dest.nearby_attractions or [],
        "images": dest.images or [],
        "coordinates": {"latitude": dest.latitude, "longitude": dest.longitude},
        "transportation": {
            "nearestRailway": dest.nearest_railway,
            "nearestAirport": dest.nearest_airport,
            "roadConnectivity": dest.road_connectivity,
        },
        "accommodation": {
            "available": dest.accommodation_available,
            "types": dest.accommodation_types or [],
        },
        "isActive": dest.is_active,
        **_timestamps(dest),
    }
