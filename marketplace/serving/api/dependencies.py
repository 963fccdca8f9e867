"""
API Dependencies

Path identifier parsing, service lookup and the caller ownership check.

Authentication happens upstream: the gateway verifies the session and forwards
the caller as request headers. This module only reads them.
"""

from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from fastapi import Depends, Path, Request

from marketplace.activity.exceptions import (
    DependencyFailure,
    InvalidArgument,
    PermissionDenied,
    Unauthenticated,
)
from marketplace.activity.service import UserActivityService
from marketplace.activity.validation import parse_subject_id
from marketplace.config import Settings, get_settings


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_activity_service(request: Request) -> UserActivityService:
    service = getattr(request.app.state, "activity_service", None)
    if service is None:
        raise DependencyFailure("Activity service not initialized")
    return service


# =============================================================================
# PATH IDENTIFIERS
# =============================================================================

def user_id_param(user_id: str = Path(..., description="User id")) -> int:
    return parse_subject_id(user_id, "userId")


def buyer_id_param(buyer_id: str = Path(..., description="Buyer id")) -> int:
    return parse_subject_id(buyer_id, "buyerId")


def seller_id_param(seller_id: str = Path(..., description="Seller id")) -> int:
    return parse_subject_id(seller_id, "sellerId")


# =============================================================================
# AUTHORIZATION
# =============================================================================

@dataclass(frozen=True)
class Caller:
    """Verified caller forwarded by the auth gateway"""
    user_id: int
    role: Optional[str] = None


@dataclass(frozen=True)
class AccessPolicy:
    """Decides whether the caller may read a subject's activity"""
    enforce: bool
    caller: Optional[Caller]
    admin_role: str

    async def require_owner(self, resolve_owner: Callable[[], Awaitable[int]]) -> None:
        """
        Allow the request if enforcement is off, the caller is an admin, or
        the caller is the user owning the subject.
        """
        if not self.enforce:
            return
        if self.caller is None:
            raise Unauthenticated("Caller identity required")
        if self.caller.role == self.admin_role:
            return

        owner_id = await resolve_owner()
        if owner_id != self.caller.user_id:
            raise PermissionDenied(
                "Not allowed to view another user's activity",
                details={"caller_id": self.caller.user_id, "owner_id": owner_id},
            )

    async def require_user(self, user_id: int) -> None:
        async def owner() -> int:
            return user_id

        await self.require_owner(owner)


def get_caller(request: Request, settings: Settings = Depends(get_app_settings)) -> Optional[Caller]:
    headers = settings.activity
    raw_id = request.headers.get(headers.subject_id_header)
    if raw_id is None:
        return None
    try:
        user_id = parse_subject_id(raw_id.strip(), "callerId")
    except InvalidArgument as e:
        raise Unauthenticated("Malformed caller identity") from e

    role = request.headers.get(headers.subject_role_header)
    return Caller(user_id=user_id, role=role.strip().lower() if role else None)


def get_access_policy(
    caller: Optional[Caller] = Depends(get_caller),
    settings: Settings = Depends(get_app_settings),
) -> AccessPolicy:
    return AccessPolicy(
        enforce=settings.activity.enforce_ownership,
        caller=caller,
        admin_role=settings.activity.admin_role,
    )
