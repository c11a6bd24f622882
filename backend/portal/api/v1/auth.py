from datetime import datetime
from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import EmailStr, Field
from sqlalchemy.orm import Session

from portal.api.v1.common import AadharNumber, CamelModel, FamilyMemberIn, PhoneNumber, Pincode
from portal.api.v1.serializers import family_member_to_dict, session_user, user_to_dict
from portal.core.database import get_db
from portal.core.security import create_access_token, get_current_user, hash_password, verify_password
from portal.models import User

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


class AddressIn(CamelModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[Pincode] = None


class RegisterRequest(CamelModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=6)
    phone_number: PhoneNumber
    aadhar_number: AadharNumber
    address: Optional[AddressIn] = None


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class ProfileUpdate(CamelModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    phone_number: Optional[PhoneNumber] = None
    address: Optional[AddressIn] = None
    profile_image: Optional[str] = None


def _auth_response(user: User, message: str) -> dict:
    return {
        "message": message,
        "token": create_access_token(user.id),
        "user": session_user(user),
    }


@router.post("/register", status_code=201)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    try:
        email = payload.email.lower()
        existing = (
            db.query(User)
            .filter((User.email == email) | (User.aadhar_number == payload.aadhar_number))
            .first()
        )
        if existing:
            raise HTTPException(status_code=400, detail="User already exists with this email or Aadhar number")

        address = payload.address.model_dump() if payload.address else {}
        user = User(
            first_name=payload.first_name.strip(),
            last_name=payload.last_name.strip(),
            email=email,
            password_hash=hash_password(payload.password),
            phone_number=payload.phone_number,
            aadhar_number=payload.aadhar_number,
            **address,
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        logger.info(f"✅ Registered user {user.email}")
        return _auth_response(user, "User registered successfully")

    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Registration failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error during registration")


@router.post("/login")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    try:
        user = db.query(User).filter(User.email == payload.email.lower()).first()
        if user is None or not verify_password(payload.password, user.password_hash):
            raise HTTPException(status_code=400, detail="Invalid credentials")

        user.last_login_at = datetime.utcnow()
        db.commit()
        db.refresh(user)

        logger.info(f"User {user.email} logged in")
        return _auth_response(user, "Login successful")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Login failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Server error during login")


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return user_to_dict(user)


@router.put("/profile")
def update_profile(payload: ProfileUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    # email, Aadhar and password are not part of ProfileUpdate, so they cannot change here
    data = payload.model_dump(exclude_unset=True)
    address = data.pop("address", None) or {}
    for key, value in {**data, **address}.items():
        if value is not None:
            setattr(user, key, value.strip() if isinstance(value, str) else value)
    db.commit()
    db.refresh(user)
    return {"message": "Profile updated successfully", "user": user_to_dict(user)}


@router.post("/family-member")
def add_family_member(payload: FamilyMemberIn, user: User = Depends(get_current_user),
                      db: Session = Depends(get_db)):
    user.family_members.append(payload.to_row())
    db.commit()
    db.refresh(user)
    return {
        "message": "Family member added successfully",
        "familyMembers": [family_member_to_dict(m) for m in user.family_members],
    }
