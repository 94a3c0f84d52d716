from fastapi import APIRouter, Request
from sqlalchemy import text

from common.core.config import settings
from common.core.otel_axiom_exporter import get_logger
from common.db.scoped import get_session
from common.providers.rate_limiter.limiter import limiter

logger = get_logger(__name__)

router = APIRouter()


@router.get("/")
async def health_check(request: Request):
    # Not rate limited; probes hit this every few seconds
    return {
        "status": "healthy",
        "service": settings.otel_service_name,
        "version": settings.api_version,
    }


@router.get("/db")
@limiter.limit("100/minute")
async def db_check(request: Request):
    """Round-trip a trivial query through a readonly operation session."""
    try:
        async with get_session(readonly=True) as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {e!r}")
        return {"status": "unhealthy", "database": "disconnected"}
    return {"status": "healthy", "database": "connected"}
