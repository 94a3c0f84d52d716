from fastapi import APIRouter, Depends

from packages.auth.dependencies import get_current_active_user, get_user_service
from packages.auth.models.domain.authenticated_user import AuthenticatedUser
from packages.users.models.schemas.user import UserResponse, UserMetadataUpdate
from packages.users.services.user_service import UserService
from common.core.otel_axiom_exporter import trace_span

router = APIRouter()


@router.get("/me", response_model=UserResponse)
@trace_span
async def get_me(
    current_user: AuthenticatedUser = Depends(get_current_active_user),
    user_service: UserService = Depends(get_user_service),
):
    """Get the signed-in user's record."""
    user = await user_service.get_user_or_404(current_user.user_id)
    return UserResponse.from_user(user)


@router.patch("/me/metadata", response_model=UserResponse)
@trace_span
async def update_my_metadata(
    request: UserMetadataUpdate,
    current_user: AuthenticatedUser = Depends(get_current_active_user),
    user_service: UserService = Depends(get_user_service),
):
    """Merge keys into the signed-in user's metadata."""
    user = await user_service.update_metadata(current_user.user_id, request.metadata)
    return UserResponse.from_user(user)
