from portal.core.config import settings
from portal.models import Accommodation, Member, Part, Tour, User, UserRole
from portal.seed import seed


def test_seed_is_idempotent(db):
    seed(db)
    seed(db)

    assert db.query(Tour).count() == 3
    assert db.query(Accommodation).count() == 1
    assert db.query(Part).count() == 11
    assert db.query(Member).count() == 4
    assert db.query(User).filter(User.email == "member@example.com").count() == 1

    admin = db.query(User).filter(User.email == settings.DEFAULT_ADMIN_EMAIL.lower()).one()
    assert admin.role == UserRole.ADMIN


def test_seeded_member_can_log_in(client, db):
    seed(db)
    response = client.post("/api/auth/login", json={"email": "member@example.com", "password": "member123"})
    assert response.status_code == 200
    assert response.json()["user"]["role"] == "member"
