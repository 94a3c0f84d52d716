"""
Billing API routes.

Plans are public; usage and plan changes act on the signed-in user.
"""

from fastapi import APIRouter, Depends

from packages.auth.dependencies import get_current_active_user
from packages.auth.models.domain.authenticated_user import AuthenticatedUser
from packages.billing.services.credit_service import CreditService
from packages.billing.services.plans_service import PlansService
from packages.billing.models.domain.plans import PlansResponse
from packages.billing.models.schemas.billing import (
    ChangePlanRequest,
    ChangePlanResponse,
    CreditUsageResponse,
)
from common.core.otel_axiom_exporter import trace_span

router = APIRouter()
public_router = APIRouter()


def get_credit_service() -> CreditService:
    return CreditService()


@public_router.get("/plans", response_model=PlansResponse)
@trace_span
async def get_plans():
    """
    Get all available plans.

    Public (no auth required) for pricing pages.
    """
    plans_service = PlansService()
    return await plans_service.get_all_plans()


@router.get("/usage", response_model=CreditUsageResponse)
@trace_span
async def get_credit_usage(
    current_user: AuthenticatedUser = Depends(get_current_active_user),
    credit_service: CreditService = Depends(get_credit_service),
):
    """Credit pool status for the current month."""
    usage = await credit_service.get_credit_usage(current_user.user_id)
    return CreditUsageResponse(
        **usage.model_dump(), message=usage.get_user_message()
    )


@router.post("/plan", response_model=ChangePlanResponse)
@trace_span
async def change_plan(
    request: ChangePlanRequest,
    current_user: AuthenticatedUser = Depends(get_current_active_user),
    credit_service: CreditService = Depends(get_credit_service),
):
    """Switch the signed-in user's plan."""
    change = await credit_service.change_plan(current_user.user_id, request.tier)
    return ChangePlanResponse.model_validate(change)
