"""
Health Router: readiness probe.
"""
from fastapi import APIRouter, Request, Response, status
from pos_checkout.utils.config import settings

router = APIRouter()


@router.get("/health")
async def health_check(request: Request, response: Response):
    """
    Returns 503 if app is still initializing (Readiness Probe).
    """
    if not getattr(request.app.state, "is_ready", False):
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "initializing", "message": "Application is starting up"}

    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "upstreams": {
            "commerce": settings.COMMERCE_API_BASE_URL,
            "inventory": settings.INVENTORY_API_BASE_URL,
        },
    }
