"""
Sample data for a fresh database: admin and member accounts, tours,
destinations, an accommodation and the group rosters.

    python -m portal.seed [--reset]
"""
from datetime import datetime, timedelta
import argparse
import logging

from sqlalchemy.orm import Session

from portal.core.config import settings
from portal.core.database import SessionLocal, drop_db, init_db
from portal.core.security import ensure_default_admin, hash_password
from portal.models import (
    Accommodation, AccommodationCategory, AccommodationTour, Destination, Member, Part,
    Region, Room, RoomType, Tour, TourCategory, TourDestination, TourDifficulty, TourStatus,
    User, UserRole,
)

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


PARTS = [
    ("A", "PART-A Rs. 38700/- 1st Advance Rs.20700/-", "V Krishnan", 2, ""),
    ("A", "", "G L Narasimhan", 2, "1"),
    ("A", "", "R Kannan", 2, "1"),
    ("A", "", "Thaligai Swamigal", 5, ""),
    ("A", "", "Cancelled - Refer Tr to PART D S No 8", None, ""),
    ("B", "PART- B Rs. 34475/- 1st Advance Rs.16475/-", "S T Ranganathan", 2, "1"),
    ("B", "", "E R Bakthisaran", 4, "2"),
    ("C", "PART- C Rs. 2200/- in Full during 1st Week Oct 2025", "V Bakthavatchalam", 1, "1"),
    ("C", "", "E R Raghunathan", 2, "1"),
    ("D", "PART- D Rs. 29300/- 1st Advance Rs.14300/-", "Hema Pattabiraman", 1, ""),
    ("D", "", "K Srinivasan", 2, ""),
]

MEMBERS = [
    ("A", "PART-A Rs. 38700/-", 1, 1, 1, "V KRISHNAN", "M", 68, 2),
    ("A", "PART-A Rs. 38700/-", 2, 2, 1, "K VIJAYA", "F", 63, None),
    ("B", "PART-B Rs. 34475/-", 1, 3, 2, "S T RANGANATHAN", "M", 71, 2),
    ("D", "PART-D Rs. 29300/-", 1, 4, 3, "HEMA P", "F", None, 1),
]


def _tour(title, days, price_adult, price_child, start_in_days, max_participants, stops, featured=False,
          category=TourCategory.PILGRIMAGE, difficulty=TourDifficulty.EASY):
    start = datetime.utcnow().replace(hour=6, minute=0, second=0, microsecond=0) + timedelta(days=start_in_days)
    tour = Tour(
        title=title,
        description=f"{title}: guided temple visits with accommodation, meals and transport.",
        short_description=f"{days}-day {title}",
        duration_days=days,
        duration_nights=days - 1,
        price_adult=price_adult,
        price_child=price_child,
        price_senior=round(price_adult * 0.9, 2),
        inclusions=["Accommodation", "Vegetarian meals", "AC transport", "Darshan arrangements"],
        exclusions=["Personal expenses", "Special pooja fees"],
        start_date=start,
        end_date=start + timedelta(days=days - 1),
        max_participants=max_participants,
        status=TourStatus.PUBLISHED,
        difficulty=difficulty,
        category=category,
        featured=featured,
    )
    tour.destinations = [
        TourDestination(position=i, name=name, state=state, region=region, temples=temples)
        for i, (name, state, region, temples) in enumerate(stops)
    ]
    return tour


def seed(db: Session) -> None:
    admin = ensure_default_admin(db) or db.query(User).filter(User.role == UserRole.ADMIN).first()

    if db.query(User).filter(User.email == "member@example.com").first() is None:
        db.add(User(
            first_name="Lakshmi",
            last_name="Narayanan",
            email="member@example.com",
            password_hash=hash_password("member123"),
            phone_number="9876543210",
            aadhar_number="123456789012",
            city="Chennai",
            state="Tamil Nadu",
        ))

    if db.query(Tour).count() == 0:
        south = _tour("South India Temple Circuit", 7, 25000, 15000, 45, 25, [
            ("Tirupati", "Andhra Pradesh", Region.SOUTH, ["Sri Venkateswara Temple"]),
            ("Kanchipuram", "Tamil Nadu", Region.SOUTH, ["Kamakshi Amman Temple", "Varadharaja Perumal Temple"]),
            ("Srirangam", "Tamil Nadu", Region.SOUTH, ["Sri Ranganathaswamy Temple"]),
        ], featured=True)
        char_dham = _tour("Char Dham Yatra", 12, 45000, 30000, 90, 20, [
            ("Yamunotri", "Uttarakhand", Region.NORTH, ["Yamunotri Temple"]),
            ("Gangotri", "Uttarakhand", Region.NORTH, ["Gangotri Temple"]),
            ("Kedarnath", "Uttarakhand", Region.NORTH, ["Kedarnath Temple"]),
            ("Badrinath", "Uttarakhand", Region.NORTH, ["Badrinath Temple"]),
        ], featured=True, difficulty=TourDifficulty.CHALLENGING)
        kashi = _tour("Kashi Vishwanath Express Tour", 4, 18000, 12000, 30, 30, [
            ("Varanasi", "Uttar Pradesh", Region.NORTH, ["Kashi Vishwanath Temple"]),
        ], category=TourCategory.SPIRITUAL)
        for tour in (south, char_dham, kashi):
            tour.created_by = admin.id if admin else None
        db.add_all([south, char_dham, kashi])
        db.flush()

        hotel = Accommodation(
            name="Sri Balaji Residency",
            category=AccommodationCategory.HOTEL,
            description="Walking distance from the Tirumala bus stand",
            address="12 Car Street",
            city="Tirupati",
            state="Andhra Pradesh",
            pincode="517501",
            contact_phone="8772223344",
            owner_name="R Srinivasan",
            owner_phone="9848012345",
            facilities=["ac", "wifi", "parking", "restaurant", "temple-nearby"],
            base_price=1800,
            rating_overall=4.2,
            is_verified=True,
            created_by=admin.id if admin else None,
        )
        hotel.rooms = [
            Room(room_number="101", room_type=RoomType.DOUBLE, capacity=2, price_per_night=1800,
                 facilities=["ac", "bathroom", "bed"]),
            Room(room_number="102", room_type=RoomType.TRIPLE, capacity=3, price_per_night=2400,
                 facilities=["ac", "bathroom", "bed", "tv"]),
            Room(room_number="201", room_type=RoomType.FAMILY, capacity=5, price_per_night=3600,
                 facilities=["ac", "bathroom", "bed", "tv", "refrigerator"]),
        ]
        hotel.tour_links = [AccommodationTour(tour_id=south.id, destination="Tirupati", day_number=1)]
        db.add(hotel)
        logger.info("✅ Tours and accommodation seeded")

    if db.query(Destination).count() == 0:
        db.add_all([
            Destination(name="Tirupati", state="Andhra Pradesh", region=Region.SOUTH,
                        famous_temples=["Sri Venkateswara Temple"], nearest_railway="Tirupati Main",
                        nearest_airport="Tirupati Airport", best_time_to_visit="September to February"),
            Destination(name="Kedarnath", state="Uttarakhand", region=Region.NORTH,
                        famous_temples=["Kedarnath Temple"], nearest_railway="Rishikesh",
                        nearest_airport="Jolly Grant, Dehradun", best_time_to_visit="May to June"),
            Destination(name="Varanasi", state="Uttar Pradesh", region=Region.NORTH,
                        famous_temples=["Kashi Vishwanath Temple"], nearest_railway="Varanasi Junction",
                        nearest_airport="Lal Bahadur Shastri Airport", best_time_to_visit="October to March"),
        ])

    if db.query(Part).count() == 0:
        db.add_all([
            Part(section=s, section_description=desc, member_name=name, no_of_persons=persons, sradam=sradam or None)
            for s, desc, name, persons, sradam in PARTS
        ])

    if db.query(Member).count() == 0:
        db.add_all([
            Member(section=s, section_desc=desc, s_no=s_no, mob_s_no=mob, group_s_no=group,
                   name_aadhar=name, gender=gender, age=age, persons=persons)
            for s, desc, s_no, mob, group, name, gender, age, persons in MEMBERS
        ])

    db.commit()
    logger.info("✅ Seed complete")


def main(argv=None):
    parser = argparse.ArgumentParser(description=f"Seed the {settings.APP_NAME} database")
    parser.add_argument("--reset", action="store_true", help="drop all tables first")
    args = parser.parse_args(argv)

    if args.reset:
        logger.warning("⚠️ Dropping all tables")
        drop_db()
    init_db()

    db = SessionLocal()
    try:
        seed(db)
    finally:
        db.close()


if __name__ == "__main__":
    main()
