"""Per-route access policies and the dependencies that enforce them."""

from enum import Enum

from fastapi import Depends, HTTPException, Request, status
from fastapi.params import Depends as DependsParam

from ..auth import get_current_user


class AccessPolicy(str, Enum):
    PUBLIC = "public"
    BEARER = "bearer"
    SESSION = "session"


# Every route the service exposes, by operation name. Routes declare their
# policy through ``policy_dependencies`` so this table is the single source.
ROUTE_POLICIES: dict[str, AccessPolicy] = {
    "login": AccessPolicy.PUBLIC,
    "register": AccessPolicy.PUBLIC,
    "request_password_reset": AccessPolicy.PUBLIC,
    "confirm_password_reset": AccessPolicy.PUBLIC,
    "get_profile": AccessPolicy.BEARER,
    "dashboard_login_page": AccessPolicy.PUBLIC,
    "dashboard_login": AccessPolicy.PUBLIC,
    "dashboard_home": AccessPolicy.SESSION,
    "dashboard_logout": AccessPolicy.PUBLIC,
}


def policy_dependencies(operation: str) -> list[DependsParam]:
    """Return the route dependencies implementing ``operation``'s policy.

    Session routes resolve the cookie inside the handler because a missing
    session redirects rather than failing.
    """

    policy = ROUTE_POLICIES[operation]
    if policy is AccessPolicy.BEARER:
        return [Depends(get_current_user)]
    return []


def require_json(request: Request) -> None:
    """Ensure that a request was submitted with a JSON content type."""

    if not request.headers.get("content-type", "").lower().startswith("application/json"):
        raise HTTPException(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE)
