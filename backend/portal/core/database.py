import logging
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from portal.core.config import settings

logger = logging.getLogger(__name__)

_is_sqlite = settings.DATABASE_URL.startswith("sqlite")
_is_memory = _is_sqlite and (settings.DATABASE_URL in ("sqlite://", "sqlite:///:memory:"))


def _engine_kwargs() -> dict:
    if _is_memory:
        # one shared connection, otherwise every session sees an empty database
        return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool}
    if _is_sqlite:
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_recycle": 1800,
        "pool_size": settings.DATABASE_POOL_SIZE,
        "max_overflow": settings.DATABASE_MAX_OVERFLOW,
    }


engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    echo=settings.DEBUG,
    **_engine_kwargs(),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    from portal.models import Base

    logger.info("Initialising database...")
    Base.metadata.create_all(bind=engine)
    logger.info("✅ Database initialised")


def drop_db():
    from portal.models import Base

    Base.metadata.drop_all(bind=engine)


def check_db_connection() -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"❌ Database connection failed: {e}")
        return False
