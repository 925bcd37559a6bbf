"""
Deduction Service: per-line stock deduction and the sequential batch around it.

Lines are processed one at a time so that, when a line fails, the set of
already-committed lines is exact and can be rolled back.
"""
import math
from enum import Enum
from typing import List, Optional, Sequence

from pos_checkout.models.checkout_models import (
    BatchDeductionResult,
    CartLine,
    ConversionCapEvent,
    DeductionRecord,
    InventoryKey,
    OversellEvent,
)
from pos_checkout.services.compensation import CompensationList
from pos_checkout.services.conversion_service import (
    calculate_deduction,
    require_conversion_rule,
    validate_conversion_rule,
)
from pos_checkout.services.inventory_service import InventoryService
from pos_checkout.utils.config import settings
from pos_checkout.utils.errors import (
    CheckoutError,
    InvalidLineItem,
    InventoryUnavailable,
    RollbackPartiallyFailed,
)
from pos_checkout.utils.structured_logging import get_logger


class LineState(str, Enum):
    IDLE = "idle"
    READING_STOCK = "reading_stock"
    COMPUTING = "computing"
    WRITING = "writing"
    COMMITTED = "committed"
    FAILED = "failed"


class LineDeduction:
    """Outcome of one line: the record on success, the error on failure."""

    def __init__(self, line_index: int):
        self.line_index = line_index
        self.state = LineState.IDLE
        self.record: Optional[DeductionRecord] = None
        self.error: Optional[CheckoutError] = None
        self.oversell: Optional[OversellEvent] = None
        self.cap: Optional[ConversionCapEvent] = None
        self.history: List[LineState] = [LineState.IDLE]

    def advance(self, state: LineState) -> None:
        self.state = state
        self.history.append(state)

    @property
    def committed(self) -> bool:
        return self.state == LineState.COMMITTED


class DeductionOrchestrator:
    """Reads, computes and writes the new stock level for a single cart line."""

    def __init__(self, inventory: InventoryService, cap_multiplier: Optional[float] = None):
        self.inventory = inventory
        self.cap_multiplier = cap_multiplier or settings.CONVERSION_SAFETY_CAP

    @staticmethod
    def validate_line(line: CartLine, line_index: int) -> None:
        label = line.name or f"line {line_index}"
        if not line.product_id or line.product_id <= 0:
            raise InvalidLineItem(f"Invalid product ID for {label}", line_index=line_index)
        if line.quantity is None or not math.isfinite(line.quantity) or line.quantity <= 0:
            raise InvalidLineItem(f"Invalid quantity for {label}: {line.quantity}", line_index=line_index)

    async def deduct(self, line: CartLine, location_id: int, line_index: int = 0) -> LineDeduction:
        """
        Run one line through IDLE -> READING_STOCK -> COMPUTING -> WRITING -> COMMITTED.

        Failures end in FAILED with ``error`` set; nothing is raised.
        """
        outcome = LineDeduction(line_index)
        key = InventoryKey.for_line(line, location_id)
        log = get_logger(__name__).bind(
            location_id=location_id, product_id=key.product_id, line_index=line_index
        )

        try:
            self.validate_line(line, line_index)
            # Missing or unusable rules never reach the inventory API
            require_conversion_rule(line, line_index)
            validate_conversion_rule(line, line_index)

            outcome.advance(LineState.READING_STOCK)
            current = await self.inventory.read_stock(key)
            if current is None:
                raise InventoryUnavailable(
                    f"Could not retrieve current inventory for {line.name or key}",
                    line_index=line_index,
                )

            outcome.advance(LineState.COMPUTING)
            deduction = calculate_deduction(line, self.cap_multiplier, line_index)
            if deduction.capped:
                outcome.cap = ConversionCapEvent(
                    line_index=line_index,
                    product_id=line.product_id,
                    calculated=deduction.calculated,
                    capped_to=deduction.amount,
                )

            new_stock = max(0.0, current - deduction.amount)
            log.info(
                f"Inventory deduction: {line.name or key} - Current: {current:.3f}, "
                f"Deducting: {deduction.amount:.3f}, New: {new_stock:.3f}"
            )
            oversold = deduction.amount > current
            if oversold:
                outcome.oversell = OversellEvent(
                    key=key, line_index=line_index, current_stock=current, deduction=deduction.amount
                )
                log.warning(
                    f"OVERSELLING: deduction ({deduction.amount:.3f}) exceeds current stock ({current:.3f})"
                )

            outcome.advance(LineState.WRITING)
            await self.inventory.write_stock(key, new_stock)

            outcome.record = DeductionRecord(
                key=key,
                line_index=line_index,
                name=line.name,
                quantity_sold=line.quantity,
                quantity_deducted=deduction.amount,
                old_stock=current,
                new_stock=new_stock,
                conversion_applied=deduction.conversion_applied,
                conversion_capped=deduction.capped,
                oversold=oversold,
            )
            outcome.advance(LineState.COMMITTED)
            log.info(f"Deducted inventory for {line.name or key}")

        except CheckoutError as e:
            if e.line_index is None:
                e.line_index = line_index
            outcome.error = e
            outcome.advance(LineState.FAILED)
            log.error(f"Line {line_index} failed ({e.kind}): {e}")

        return outcome


class BatchDeductionCoordinator:
    """Deducts every line of an order in sequence and compensates on the first failure."""

    def __init__(self, inventory: InventoryService, orchestrator: Optional[DeductionOrchestrator] = None):
        self.inventory = inventory
        self.orchestrator = orchestrator or DeductionOrchestrator(inventory)

    async def deduct_all(
        self,
        lines: Sequence[CartLine],
        location_id: int,
        order_id: Optional[int] = None,
    ) -> BatchDeductionResult:
        log = get_logger(__name__).bind(order_id=order_id, location_id=location_id)
        log.info(f"Starting inventory deduction for {len(lines)} line(s)")

        compensation = CompensationList(order_id=order_id)
        oversells: List[OversellEvent] = []
        caps: List[ConversionCapEvent] = []
        failure: Optional[CheckoutError] = None

        for index, line in enumerate(lines):
            try:
                outcome = await self.orchestrator.deduct(line, location_id, index)
            except Exception as e:
                log.error(f"Unexpected error deducting line {index}: {e!r}", exc_info=True)
                failure = CheckoutError(
                    f"Unexpected error during inventory deduction: {e}", line_index=index
                )
                break

            if outcome.oversell:
                oversells.append(outcome.oversell)
            if outcome.cap:
                caps.append(outcome.cap)

            if not outcome.committed:
                failure = outcome.error
                break
            compensation.record(outcome.record)

        if failure is None:
            log.info(f"Inventory deducted for all {len(compensation)} line(s)")
            return BatchDeductionResult(
                success=True,
                records=compensation.records,
                oversell_events=oversells,
                capped_conversions=caps,
            )

        label = lines[failure.line_index].name if failure.line_index is not None else ""
        message = f"Failed to deduct inventory for {label or f'line {failure.line_index}'}: {failure}"
        log.warning(message)

        report = await compensation.compensate(self.inventory)
        rollback_error = None
        if not report.complete:
            rollback_error = RollbackPartiallyFailed(
                f"Rollback restored {len(report.restored)} of {len(compensation)} line(s); "
                f"manual reconciliation required"
            )
            log.error(str(rollback_error))

        return BatchDeductionResult(
            success=False,
            records=compensation.records,
            failed_line_index=failure.line_index,
            error=message,
            error_kind=failure.kind,
            rolled_back=report.restored,
            rollback_failed=[record for record, _ in report.failed],
            rollback_error=str(rollback_error) if rollback_error else None,
            oversell_events=oversells,
            capped_conversions=caps,
        )
