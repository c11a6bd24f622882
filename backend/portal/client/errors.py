from typing import Any, Optional


class ApiError(Exception):
    """Non-2xx response from the portal API"""

    def __init__(self, status_code: int, message: str, payload: Optional[Any] = None):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.payload = payload


class SessionExpiredError(ApiError):
    """401 from the API; the stored token has already been cleared"""

    def __init__(self, message: str = "Session expired, please log in again", payload: Optional[Any] = None):
        super().__init__(401, message, payload)


class BackendUnavailableError(Exception):
    def __init__(self, message: str = "Backend server is not available. Please contact administrator."):
        super().__init__(message)
        self.message = message
