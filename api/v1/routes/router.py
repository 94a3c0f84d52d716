from fastapi import APIRouter, Depends

from api.v1.routes import health
from packages.auth.routes import session
from packages.users.routes import users
from packages.api_keys.routes import api_keys
from packages.billing.routes import billing
from packages.github.routes import github
from packages.auth.dependencies import get_current_active_user

api_router = APIRouter()

# Health check (no auth required)
api_router.include_router(health.router, prefix="/health", tags=["health"])

# Sign-in callback (Bearer ID token verified in the route)
api_router.include_router(session.router, prefix="/auth", tags=["auth"])

# Public: pricing info and key verification
api_router.include_router(
    billing.public_router, prefix="/billing", tags=["billing"]
)
api_router.include_router(
    api_keys.public_router, prefix="/api-keys", tags=["api-keys"]
)

# Session-authenticated routes
api_router.include_router(
    users.router,
    prefix="/users",
    tags=["users"],
    dependencies=[Depends(get_current_active_user)],
)
api_router.include_router(
    api_keys.router,
    prefix="/api-keys",
    tags=["api-keys"],
    dependencies=[Depends(get_current_active_user)],
)
api_router.include_router(
    billing.router,
    prefix="/billing",
    tags=["billing"],
    dependencies=[Depends(get_current_active_user)],
)

# API-key authenticated proxy
api_router.include_router(github.router, prefix="/github", tags=["github"])
