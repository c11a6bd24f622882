"""
Where the client keeps the session token and the logged-in user
"""
from pathlib import Path
from typing import Any, Dict, Optional
import json
import logging

logger = logging.getLogger(__name__)


class MemoryTokenStore:
    def __init__(self):
        self._token: Optional[str] = None
        self._user: Optional[Dict[str, Any]] = None

    def get_token(self) -> Optional[str]:
        return self._token

    def get_user(self) -> Optional[Dict[str, Any]]:
        return self._user

    def save(self, token: str, user: Optional[Dict[str, Any]] = None) -> None:
        self._token = token
        self._user = user

    def clear(self) -> None:
        self._token = None
        self._user = None


class FileTokenStore(MemoryTokenStore):
    """Persists {"token", "user"} as JSON so a session survives restarts."""

    def __init__(self, path):
        super().__init__()
        self.path = Path(path)
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"⚠️ Ignoring unreadable token file {self.path}: {e}")
            return
        self._token = data.get("token")
        self._user = data.get("user")

    def save(self, token: str, user: Optional[Dict[str, Any]] = None) -> None:
        super().save(token, user)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({"token": token, "user": user}), encoding="utf-8")

    def clear(self) -> None:
        super().clear()
        if self.path.exists():
            self.path.unlink()
