"""
Pricing, booking references and seat accounting in services.booking_rules
"""
import re

import pytest

from portal.models import BookingStatus, Tour
from portal.services import booking_rules


def _row(name="Ravi", category="adult", aadhar="111122223333"):
    return {"name": name, "age": 40, "aadhar_number": aadhar, "price_category": category}


class TestQuote:
    def test_gst_is_added_to_the_tier_sum(self):
        tour = Tour(price_adult=10000, price_child=5000, price_senior=None)
        price = booking_rules.quote(tour, ["adult", "child"])
        assert price.subtotal == 15000
        assert price.taxes == 2700
        assert price.total == 17700

    def test_senior_falls_back_to_adult_price(self):
        tour = Tour(price_adult=1000, price_child=500, price_senior=None)
        assert booking_rules.quote(tour, ["senior"]).subtotal == 1000

        tour.price_senior = 800
        assert booking_rules.quote(tour, ["senior"]).subtotal == 800

    def test_discount_is_subtracted_after_tax(self):
        tour = Tour(price_adult=1000, price_child=500)
        price = booking_rules.quote(tour, ["adult"], discount=100)
        assert price.total == 1080


class TestBookingRef:
    def test_format(self):
        ref = booking_rules.generate_booking_ref(now_ms=1700000000000)
        assert re.fullmatch(r"BK1700000000000[A-Z0-9]{9}", ref)

    def test_refs_differ(self):
        refs = {booking_rules.generate_booking_ref(now_ms=1) for _ in range(20)}
        assert len(refs) == 20


class TestSeats:
    def test_reserve_beyond_capacity_fails(self):
        tour = Tour(max_participants=2, current_participants=1)
        with pytest.raises(ValueError, match="Not enough seats available"):
            booking_rules.reserve_seats(tour, 2)
        assert tour.current_participants == 1

    def test_release_never_goes_negative(self):
        tour = Tour(max_participants=2, current_participants=1)
        booking_rules.release_seats(tour, 5)
        assert tour.current_participants == 0

    def test_status_changes_keep_seat_count_in_sync(self, db, published_tour, member_user):
        booking = booking_rules.create_booking(
            db, published_tour, member_user.id, [_row(), _row("Sita", "child", "111122224444")],
        )
        db.commit()
        assert published_tour.current_participants == 2
        assert booking_rules.count_held_seats(db, published_tour.id) == 2

        booking_rules.change_status(booking, BookingStatus.CANCELLED, reason="plans changed")
        db.commit()
        assert published_tour.current_participants == 0
        assert booking.cancellation_reason == "plans changed"
        assert booking_rules.count_held_seats(db, published_tour.id) == 0

        booking_rules.change_status(booking, BookingStatus.CONFIRMED)
        db.commit()
        assert published_tour.current_participants == 2
        assert booking.confirmation_date is not None
        assert booking.cancellation_reason is None
        assert booking_rules.count_held_seats(db, published_tour.id) == 2

    def test_add_participants_grows_pricing_and_seats(self, db, published_tour, member_user):
        booking = booking_rules.create_booking(db, published_tour, member_user.id, [_row()])
        db.commit()

        booking_rules.add_participants(booking, [_row("Sita", "child", "111122224444")], added_by=member_user.id)
        db.commit()

        assert booking.total_participants == 2
        assert booking.subtotal == 15000
        assert booking.total == 17700
        assert published_tour.current_participants == 2
        assert booking.participants[1].relationship_type is None

    def test_cancelled_booking_holds_no_seats(self, db, published_tour, member_user):
        booking_rules.create_booking(db, published_tour, member_user.id, [_row()],
                                     status=BookingStatus.CANCELLED)
        db.commit()
        assert published_tour.current_participants == 0

    def test_empty_participants_rejected(self, db, published_tour, member_user):
        with pytest.raises(ValueError):
            booking_rules.create_booking(db, published_tour, member_user.id, [])
