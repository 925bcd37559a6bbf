"""POS checkout router for FastAPI.

Endpoints under /api/v1 used by the till: checkout and post-checkout stock refresh.
"""
from fastapi import APIRouter, Depends, Response, status
from functools import lru_cache
import logging

from pos_checkout.models.checkout_models import (
    CheckoutRequest,
    CheckoutResult,
    InventoryRefreshRequest,
    InventoryRefreshResult,
    STATUS_INVALID_INPUT,
    STATUS_ORDER_FAILED,
)
from pos_checkout.services.checkout_service import CheckoutService

router = APIRouter()
logger = logging.getLogger(__name__)

# deduction_failed stays 200: the order exists and the body says so
STATUS_CODES = {
    STATUS_INVALID_INPUT: 422,
    STATUS_ORDER_FAILED: status.HTTP_502_BAD_GATEWAY,
}


@lru_cache()
def get_checkout_service() -> CheckoutService:
    return CheckoutService()


@router.post("/checkout", response_model=CheckoutResult)
async def checkout(
    payload: CheckoutRequest,
    response: Response,
    service: CheckoutService = Depends(get_checkout_service),
):
    """
    Create the order, then deduct stock.

    Check ``status`` rather than the HTTP code alone: ``deduction_failed``
    comes back as 200 with an ``order_id`` because the sale went through.
    """
    result = await service.checkout(payload)
    response.status_code = STATUS_CODES.get(result.status, status.HTTP_200_OK)
    return result


@router.post("/inventory/refresh", response_model=InventoryRefreshResult)
async def refresh_inventory(
    payload: InventoryRefreshRequest,
    service: CheckoutService = Depends(get_checkout_service),
):
    """Current stock for the given products at one location."""
    stock = await service.refresh_inventory(payload.product_ids, payload.location_id)
    return InventoryRefreshResult(location_id=payload.location_id, stock=stock)
