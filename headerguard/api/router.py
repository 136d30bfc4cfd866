"""
Secondary API router, mounted under the configured API prefix.
Exposes a liveness probe and a view of the hardening headers in effect.
"""

from fastapi import APIRouter, Request

api_router = APIRouter()


@api_router.get("/health", summary="Basic health check", response_model=dict)
async def health_check(request: Request) -> dict:
    """Liveness probe for load balancers."""
    return {"status": "healthy", "version": request.app.state.settings.APP_VERSION}


@api_router.get(
    "/app-info",
    summary="Security headers applied to responses",
    response_model=dict,
)
async def app_info(request: Request) -> dict:
    """Report the active toggles and the headers they would set for this request."""
    settings = request.app.state.settings
    chain = request.app.state.security_chain
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "policies": chain.names,
        "headers": chain.preview(request),
    }
