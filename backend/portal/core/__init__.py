from .config import settings
from .database import get_db, init_db, check_db_connection

__all__ = ["settings", "get_db", "init_db", "check_db_connection"]
