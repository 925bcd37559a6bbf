"""
Checkout Service: order first, then stock.

    validate -> submit order -> deduct stock (sequential, compensated) -> result

An order failure means nothing happened and the till can retry. A deduction
failure after the order exists is reported as a warning with the order id, so
the till never mistakes it for a failed sale.
"""
import asyncio
import logging
import math
from typing import Dict, Iterable, Optional

from pos_checkout.models.checkout_models import (
    CheckoutRequest,
    CheckoutResult,
    InventoryKey,
    SEVERITY_ERROR,
    SEVERITY_INFO,
    SEVERITY_WARNING,
    STATUS_COMPLETED,
    STATUS_DEDUCTION_FAILED,
    STATUS_INVALID_INPUT,
    STATUS_ORDER_FAILED,
)
from pos_checkout.services.deduction_service import BatchDeductionCoordinator
from pos_checkout.services.inventory_service import InventoryService
from pos_checkout.services.order_service import OrderService
from pos_checkout.utils.config import settings
from pos_checkout.utils.errors import (
    InvalidCheckoutInput,
    OrderSubmissionFailed,
)
from pos_checkout.utils.structured_logging import get_logger

logger = logging.getLogger(__name__)


def validate_checkout(request: CheckoutRequest, allowed_payment_methods: Iterable[str]) -> None:
    """
    Raises:
        InvalidCheckoutInput: on the first problem found
    """
    ctx = request.context
    if not request.lines:
        raise InvalidCheckoutInput("Cart is empty")
    if not ctx.location_id or ctx.location_id <= 0:
        raise InvalidCheckoutInput("Invalid location ID")
    if not ctx.employee_id or ctx.employee_id <= 0:
        raise InvalidCheckoutInput("Invalid employee ID")
    if not ctx.payment_method:
        raise InvalidCheckoutInput("Payment method is required")
    if ctx.payment_method not in allowed_payment_methods:
        raise InvalidCheckoutInput(f"Unsupported payment method: {ctx.payment_method}")

    for index, line in enumerate(request.lines):
        label = line.name or f"line {index}"
        if not line.product_id or line.product_id <= 0:
            raise InvalidCheckoutInput(f"Invalid product ID for {label}", line_index=index)
        if line.quantity is None or not math.isfinite(line.quantity) or line.quantity <= 0:
            raise InvalidCheckoutInput(f"Invalid quantity for {label}", line_index=index)
        if not math.isfinite(line.unit_price) or line.unit_price < 0:
            raise InvalidCheckoutInput(f"Invalid price for {label}", line_index=index)
        if line.price_override is not None and (
            not math.isfinite(line.price_override) or line.price_override < 0
        ):
            raise InvalidCheckoutInput(f"Invalid price override for {label}", line_index=index)
        if line.discount_percentage is not None and not 0 <= line.discount_percentage <= 100:
            raise InvalidCheckoutInput(f"Invalid discount for {label}", line_index=index)


class CheckoutService:
    """Checkout Orchestrator: the single entry point the till calls."""

    def __init__(
        self,
        order_service: Optional[OrderService] = None,
        inventory_service: Optional[InventoryService] = None,
        coordinator: Optional[BatchDeductionCoordinator] = None,
        allowed_payment_methods: Optional[Iterable[str]] = None,
    ):
        self.order_service = order_service or OrderService()
        self.inventory_service = inventory_service or InventoryService()
        self.coordinator = coordinator or BatchDeductionCoordinator(self.inventory_service)
        self.allowed_payment_methods = set(allowed_payment_methods or settings.ALLOWED_PAYMENT_METHODS)

    async def checkout(self, request: CheckoutRequest) -> CheckoutResult:
        ctx = request.context
        log = get_logger(__name__).bind(location_id=ctx.location_id)

        try:
            validate_checkout(request, self.allowed_payment_methods)
        except InvalidCheckoutInput as e:
            log.warning(f"Checkout rejected: {e}")
            return CheckoutResult(
                success=False,
                status=STATUS_INVALID_INPUT,
                severity=SEVERITY_ERROR,
                error=str(e),
                error_kind=e.kind,
            )

        log.info(
            f"Starting checkout: {len(request.lines)} item(s), employee={ctx.employee_name} "
            f"(ID: {ctx.employee_id}), payment={ctx.payment_method}"
        )

        try:
            order = await self.order_service.submit_order(request.lines, ctx)
        except OrderSubmissionFailed as e:
            log.error(f"Checkout failed, order not created: {e}")
            return CheckoutResult(
                success=False,
                status=STATUS_ORDER_FAILED,
                severity=SEVERITY_ERROR,
                error=str(e),
                error_kind=e.kind,
            )

        log = log.bind(order_id=order.order_id)
        batch = await self.coordinator.deduct_all(request.lines, ctx.location_id, order.order_id)

        if batch.success:
            log.info("Checkout completed")
            return CheckoutResult(
                success=True,
                status=STATUS_COMPLETED,
                severity=SEVERITY_INFO,
                order_id=order.order_id,
                deductions=batch.records,
                oversell_events=batch.oversell_events,
                capped_conversions=batch.capped_conversions,
            )

        log.warning(
            f"Order created but inventory NOT deducted - manual adjustment may be required: {batch.error}"
        )
        return CheckoutResult(
            success=False,
            status=STATUS_DEDUCTION_FAILED,
            severity=SEVERITY_WARNING,
            order_id=order.order_id,
            error=batch.error,
            error_kind=batch.error_kind,
            failed_line_index=batch.failed_line_index,
            rolled_back=batch.rolled_back,
            rollback_failed=batch.rollback_failed,
            rollback_error=batch.rollback_error,
            requires_manual_reconciliation=True,
            oversell_events=batch.oversell_events,
            capped_conversions=batch.capped_conversions,
        )

    async def refresh_inventory(self, product_ids: Iterable[int], location_id: int) -> Dict[int, float]:
        """
        Re-read stock for the given products after a checkout.

        Reads only, so they run concurrently. Products whose stock cannot be
        read are left out rather than reported as zero.
        """
        ids = list(dict.fromkeys(product_ids))
        logger.info(f"Refreshing inventory for {len(ids)} product(s) at location {location_id}")

        keys = [InventoryKey(product_id=pid, location_id=location_id) for pid in ids]
        levels = await asyncio.gather(*(self.inventory_service.read_stock(key) for key in keys))

        stock = {key.product_id: level for key, level in zip(keys, levels) if level is not None}
        logger.info(f"Inventory refresh complete: {len(stock)}/{len(ids)} product(s) updated")
        return stock
