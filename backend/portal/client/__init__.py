from portal.client.api import PortalClient
from portal.client.errors import ApiError, BackendUnavailableError, SessionExpiredError
from portal.client.token_store import FileTokenStore, MemoryTokenStore

__all__ = [
    "PortalClient",
    "ApiError", "BackendUnavailableError", "SessionExpiredError",
    "FileTokenStore", "MemoryTokenStore",
]
