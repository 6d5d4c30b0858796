"""Back-office user administration: role assignment and (de)activation."""

from fastapi import APIRouter

from showroom.api.v1.auth import BearerToken, Gateway, unwrap
from showroom.schemas.auth import RoleUpdateRequest, StatusUpdateRequest
from showroom.schemas.results import UserProfile

router = APIRouter()


@router.get("/roles", response_model=list[str])
def assignable_roles(token: BearerToken, gateway: Gateway) -> list[str]:
    """Roles the caller may grant, lowest first."""
    return unwrap(gateway.assignable_roles(token))


@router.put("/{user_id}/role", response_model=UserProfile)
def update_role(
    user_id: str,
    body: RoleUpdateRequest,
    token: BearerToken,
    gateway: Gateway,
) -> UserProfile:
    """
    Assign a role to another user (requires manage_roles).
    Only roles below the caller's own can be granted; the user's sessions are ended.
    """
    return unwrap(gateway.assign_role(token, user_id, body.role))


@router.put("/{user_id}/status", response_model=UserProfile)
def update_status(
    user_id: str,
    body: StatusUpdateRequest,
    token: BearerToken,
    gateway: Gateway,
) -> UserProfile:
    """Activate or deactivate another user (requires manage_users)."""
    return unwrap(gateway.set_user_active(token, user_id, body.is_active))
