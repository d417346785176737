"""
Error taxonomy for the search core.

Every failure is terminal for the current call; retry policy belongs to the caller.
"""
from typing import Optional


class SearchError(Exception):
    """Base class for errors surfaced by the search core."""

    status_code = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "success": False,
            "error": type(self).__name__,
            "message": self.message,
        }


class ClientError(SearchError):
    """Malformed request: missing tenant, missing deletion selector, short suggestion query."""

    status_code = 400


class UnauthorizedError(SearchError):
    """Caller identity absent where required."""

    status_code = 401


class InternalError(SearchError):
    """Store unreachable or unexpected searcher failure. Message is opaque to callers."""

    status_code = 500


def require_tenant(tenant_id: Optional[str]) -> str:
    """Reject calls presented without a resolved tenant. Never defaults."""
    if not tenant_id or not str(tenant_id).strip():
        raise ClientError("Tenant ID is required")
    return str(tenant_id).strip()


def require_user(user_id: Optional[str]) -> str:
    """Reject calls presented without a resolved acting user."""
    if not user_id or not str(user_id).strip():
        raise UnauthorizedError("User not authenticated")
    return str(user_id).strip()
