from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import Column, DateTime, Enum
from datetime import datetime
import uuid


class Base(DeclarativeBase):
    pass


def _uuid():
    return str(uuid.uuid4())


def enum_column(enum_cls, **kwargs):
    """Enum stored by value ("published"), not by member name."""
    return Column(
        Enum(enum_cls, values_callable=lambda e: [m.value for m in e], native_enum=False, length=32),
        **kwargs,
    )


class TimestampMixin:
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
