from __future__ import annotations

from typing import Any


class ProfileMergeError(Exception):
    """Base class for hard failures around the merge core."""

    kind = "profile merge error"


class InvalidIdentityError(ProfileMergeError):
    kind = "invalid identity"

    def __init__(self, detail: str = "user id is required") -> None:
        super().__init__(detail)
        self.detail = detail


class ConcurrentUpdateError(ProfileMergeError):
    kind = "concurrent update"

    def __init__(self, user_id: str, expected_version: int | None, actual_version: int | None) -> None:
        super().__init__(
            f"profile {user_id!r} changed concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )
        self.user_id = user_id
        self.expected_version = expected_version
        self.actual_version = actual_version


def require_identity(user_id: Any) -> str:
    """Return the trimmed user id or raise InvalidIdentityError."""
    if not isinstance(user_id, str):
        raise InvalidIdentityError(f"user id must be a string, got {type(user_id).__name__}")
    cleaned = user_id.strip()
    if not cleaned:
        raise InvalidIdentityError("user id is blank")
    return cleaned


class ProfileNotFoundError(ProfileMergeError):
    kind = "not found"

    def __init__(self, user_id: str) -> None:
        super().__init__(f"no profile stored for user {user_id!r}")
        self.user_id = user_id


class VersionNotFoundError(ProfileMergeError):
    kind = "not found"

    def __init__(self, user_id: str, version: int) -> None:
        super().__init__(f"no version {version} stored for user {user_id!r}")
        self.user_id = user_id
        self.version = version
