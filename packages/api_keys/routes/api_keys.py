from typing import List, Annotated, Optional
from fastapi import APIRouter, Body, Depends, HTTPException, Path, status
from fastapi.responses import JSONResponse

from packages.auth.dependencies import get_current_active_user
from packages.auth.models.domain.authenticated_user import AuthenticatedUser
from packages.api_keys.models.schemas.api_key import (
    ApiKeyCreate,
    ApiKeyUpdate,
    ApiKeyResponse,
    ApiKeyCreatedResponse,
    ApiKeyVerifyRequest,
    ApiKeyVerifyResponse,
    DeleteApiKeyResponse,
    UsageSummaryResponse,
)
from packages.api_keys.services.api_key_service import ApiKeyService
from common.core.otel_axiom_exporter import trace_span, get_logger

router = APIRouter()
public_router = APIRouter()
logger = get_logger(__name__)


def get_api_key_service() -> ApiKeyService:
    return ApiKeyService()


@router.get("", response_model=List[ApiKeyResponse])
@trace_span
async def list_api_keys(
    current_user: AuthenticatedUser = Depends(get_current_active_user),
    api_key_service: ApiKeyService = Depends(get_api_key_service),
):
    """List the signed-in user's API keys."""
    keys = await api_key_service.list_keys(current_user.user_id)
    return [ApiKeyResponse.model_validate(key) for key in keys]


@router.post(
    "", response_model=ApiKeyCreatedResponse, status_code=status.HTTP_201_CREATED
)
@trace_span
async def create_api_key(
    request: ApiKeyCreate,
    current_user: AuthenticatedUser = Depends(get_current_active_user),
    api_key_service: ApiKeyService = Depends(get_api_key_service),
):
    """Create an API key. The plain key is only returned here."""
    created = await api_key_service.create_key(
        user_id=current_user.user_id,
        name=request.name,
        key_type=request.type,
        monthly_limit=request.monthly_limit,
    )
    return ApiKeyCreatedResponse(
        **ApiKeyResponse.model_validate(created.api_key).model_dump(),
        key=created.secret,
    )


@router.get("/usage-summary", response_model=UsageSummaryResponse)
@trace_span
async def get_usage_summary(
    current_user: AuthenticatedUser = Depends(get_current_active_user),
    api_key_service: ApiKeyService = Depends(get_api_key_service),
):
    """Usage totals across the user's keys."""
    summary = await api_key_service.get_usage_summary(current_user.user_id)
    return UsageSummaryResponse.model_validate(summary.model_dump())


@router.put("/{keyId}", response_model=ApiKeyResponse)
@trace_span
async def update_api_key(
    key_id: Annotated[int, Path(alias="keyId")],
    request: ApiKeyUpdate,
    current_user: AuthenticatedUser = Depends(get_current_active_user),
    api_key_service: ApiKeyService = Depends(get_api_key_service),
):
    """Rename an API key or change its monthly limit."""
    api_key = await api_key_service.update_key(
        key_id=key_id,
        user_id=current_user.user_id,
        name=request.name,
        monthly_limit=request.monthly_limit,
    )
    return ApiKeyResponse.model_validate(api_key)


@router.delete("/{keyId}", response_model=DeleteApiKeyResponse)
@trace_span
async def delete_api_key(
    key_id: int = Path(alias="keyId"),
    current_user: AuthenticatedUser = Depends(get_current_active_user),
    api_key_service: ApiKeyService = Depends(get_api_key_service),
):
    """Delete an API key."""
    if not await api_key_service.delete_key(key_id, current_user.user_id):
        raise HTTPException(status_code=404, detail="API key not found")
    return DeleteApiKeyResponse(success=True)


@public_router.post("/verify", response_model=ApiKeyVerifyResponse)
@trace_span
async def verify_api_key(
    request: Optional[ApiKeyVerifyRequest] = Body(None),
    api_key_service: ApiKeyService = Depends(get_api_key_service),
):
    """
    Check a key without consuming credit.

    200 with valid=true when usable, 400 with the reason otherwise.
    """
    if request is None or not request.key:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="API key is required"
        )

    verification = await api_key_service.verify_key(request.key)
    response = ApiKeyVerifyResponse(
        valid=verification.valid,
        key=(
            ApiKeyResponse.model_validate(verification.key)
            if verification.key
            else None
        ),
        message=verification.message,
    )
    return JSONResponse(
        status_code=(
            status.HTTP_200_OK if verification.valid else status.HTTP_400_BAD_REQUEST
        ),
        content=response.model_dump(mode="json", by_alias=True),
    )
