"""UCM gateway exception hierarchy."""

from typing import Optional


class UcmError(Exception):
    """Base exception for all PBX gateway errors."""

    code = "ucm_error"
    http_status = 500


class ChallengeUnavailable(UcmError):
    """The PBX did not hand out a challenge for the login exchange."""

    code = "challenge_unavailable"
    http_status = 502

    def __init__(self, user: str, message: str = "Challenge failed"):
        self.user = user
        super().__init__(message)


class LoginRejected(UcmError):
    """The PBX answered the login request with a non-success status."""

    code = "login_rejected"
    http_status = 502

    def __init__(self, user: str, remote_status: Optional[int]):
        self.user = user
        self.remote_status = remote_status
        super().__init__(f"Login failed with status {remote_status}")


class RemoteUnavailable(UcmError):
    """Transport failure, timeout or HTTP error talking to the PBX."""

    code = "remote_unavailable"
    http_status = 503

    def __init__(self, detail: str, status_code: Optional[int] = None):
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail)


class NoActiveSession(UcmError):
    """No unexpired session is stored for the user."""

    code = "no_active_session"
    http_status = 404

    def __init__(self, user: str):
        self.user = user
        super().__init__(f"No session found for user: {user}. Please login first.")


class CacheMiss(UcmError):
    """Key absent or expired. Internal only, never surfaced to callers."""

    code = "cache_miss"

    def __init__(self, key: str):
        self.key = key
        super().__init__(key)
