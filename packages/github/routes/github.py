"""
GitHub proxy routes.

All endpoints require an X-API-Key. Reading a README only verifies the key;
summarizing consumes one credit, refunded when the summary fails.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from common.core.otel_axiom_exporter import trace_span, get_logger
from common.providers.rate_limiter.limiter import (
    limiter,
    get_api_key_or_remote_address,
)
from packages.auth.dependencies import require_api_key
from packages.api_keys.services.api_key_service import ApiKeyService
from packages.billing.services.credit_service import CreditService
from packages.github.models.schemas.github import (
    ReadmeResponse,
    SummarizeRequest,
    SummaryResponse,
)
from packages.github.services.readme_service import ReadmeService
from packages.github.services.summary_service import SummaryService

router = APIRouter()
logger = get_logger(__name__)


def get_readme_service() -> ReadmeService:
    return ReadmeService()


def get_summary_service() -> SummaryService:
    return SummaryService()


def get_credit_service() -> CreditService:
    return CreditService()


def get_api_key_service() -> ApiKeyService:
    return ApiKeyService()


@router.get("/readme", response_model=ReadmeResponse)
@trace_span
async def get_readme(
    url: Optional[str] = Query(None),
    api_key: str = Depends(require_api_key),
    api_key_service: ApiKeyService = Depends(get_api_key_service),
    readme_service: ReadmeService = Depends(get_readme_service),
):
    """Fetch a repository README. Verifies the key without consuming credit."""
    verification = await api_key_service.verify_key(api_key)
    if not verification.valid:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail=verification.message
        )

    if not url:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Repository URL is required. Pass it as the 'url' query parameter.",
        )

    readme = await readme_service.get_readme(url)
    return ReadmeResponse.model_validate(readme)


async def _summarize_with_credit(
    api_key: str,
    readme_content: Optional[str],
    github_url: Optional[str],
    credit_service: CreditService,
    readme_service: ReadmeService,
    summary_service: SummaryService,
) -> SummaryResponse:
    """Reserve a credit, summarize, and refund the credit if anything fails."""
    reservation = await credit_service.reserve_credit(api_key)

    succeeded = False
    try:
        if not readme_content and github_url:
            readme_content = (await readme_service.get_readme(github_url)).content

        if not readme_content or not readme_content.strip():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="readmeContent is required. Pass the README text or a githubUrl.",
            )

        summary = await summary_service.summarize(readme_content)
        succeeded = True
    finally:
        # Also covers cancellation when the client disconnects mid-request
        if not succeeded:
            logger.warning(
                "Summarize failed, refunding credit",
                extra={"api_key_id": reservation.api_key_id, "user_id": reservation.user_id},
            )
            await credit_service.refund_credit(reservation)

    return SummaryResponse(summary=summary.summary, cool_facts=summary.cool_facts)


@router.get("/summarize", response_model=SummaryResponse)
@limiter.limit("30/minute", key_func=get_api_key_or_remote_address)
@trace_span
async def summarize_get(
    request: Request,
    readme_content: Optional[str] = Query(None, alias="readmeContent"),
    api_key: str = Depends(require_api_key),
    credit_service: CreditService = Depends(get_credit_service),
    readme_service: ReadmeService = Depends(get_readme_service),
    summary_service: SummaryService = Depends(get_summary_service),
):
    """Summarize README text passed as a query parameter. Costs one credit."""
    return await _summarize_with_credit(
        api_key,
        readme_content,
        None,
        credit_service,
        readme_service,
        summary_service,
    )


@router.post("/summarize", response_model=SummaryResponse)
@limiter.limit("30/minute", key_func=get_api_key_or_remote_address)
@trace_span
async def summarize_post(
    request: Request,
    body: SummarizeRequest,
    api_key: str = Depends(require_api_key),
    credit_service: CreditService = Depends(get_credit_service),
    readme_service: ReadmeService = Depends(get_readme_service),
    summary_service: SummaryService = Depends(get_summary_service),
):
    """
    Summarize a repository. Costs one credit.

    Body carries either readmeContent or a githubUrl to fetch the README from.
    """
    return await _summarize_with_credit(
        api_key,
        body.readme_content,
        body.github_url,
        credit_service,
        readme_service,
        summary_service,
    )
