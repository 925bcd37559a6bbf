"""
Conversion Service: turns a sold quantity into an inventory deduction.

Example: a pre-roll sold as "1 unit" with rule input=0.5g / output=1 unit
deducts 0.5 from the flower stock counter.
"""
import math
import logging
from dataclasses import dataclass
from typing import Any, Optional

from pos_checkout.models.checkout_models import CartLine
from pos_checkout.utils.errors import ConversionRuleRequired, InvalidConversionRule

logger = logging.getLogger(__name__)

DEFAULT_CAP_MULTIPLIER = 10.0


@dataclass(frozen=True)
class DeductionAmount:
    amount: float
    calculated: float
    conversion_applied: bool = False
    capped: bool = False


def _is_positive_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0


def require_conversion_rule(line: CartLine, line_index: Optional[int] = None) -> None:
    """Fail roll-type lines that arrive without a conversion rule."""
    if line.is_roll_product and line.conversion_rule is None:
        raise ConversionRuleRequired(
            f"{line.name or line.product_id} requires a conversion rule but none was found. "
            f"Sale blocked to prevent inventory errors.",
            line_index=line_index,
        )


def validate_conversion_rule(line: CartLine, line_index: Optional[int] = None) -> None:
    """Reject a rule whose amounts are not finite positive numbers."""
    rule = line.conversion_rule
    if rule is None:
        return
    if not (_is_positive_number(rule.input_amount) and _is_positive_number(rule.output_amount)):
        raise InvalidConversionRule(
            f"Invalid conversion rule for {line.name or line.product_id}: "
            f"input={rule.input_amount} output={rule.output_amount}",
            line_index=line_index,
        )


def calculate_deduction(
    line: CartLine,
    cap_multiplier: float = DEFAULT_CAP_MULTIPLIER,
    line_index: Optional[int] = None,
) -> DeductionAmount:
    """
    Compute the inventory-unit deduction for one cart line.

    Without a rule the deduction is the quantity sold. With a rule it is
    quantity * input_amount / output_amount, capped at cap_multiplier * quantity.

    Raises:
        ConversionRuleRequired: roll-type line without a rule
        InvalidConversionRule: non-positive, NaN or infinite rule amounts or quantity
    """
    require_conversion_rule(line, line_index)

    rule = line.conversion_rule
    if rule is None:
        return DeductionAmount(amount=line.quantity, calculated=line.quantity)

    validate_conversion_rule(line, line_index)
    label = line.name or line.product_id
    if not _is_positive_number(line.quantity):
        raise InvalidConversionRule(
            f"Invalid quantity for {label}: {line.quantity}",
            line_index=line_index,
        )

    calculated = (line.quantity * rule.input_amount) / rule.output_amount
    if not _is_positive_number(calculated):
        raise InvalidConversionRule(
            f"Invalid deduction calculation for {label}: {calculated}",
            line_index=line_index,
        )

    max_deduction = line.quantity * cap_multiplier
    amount = min(calculated, max_deduction)
    capped = amount != calculated
    if capped:
        logger.warning(
            f"Capped deduction for {label} from {calculated} to {amount} "
            f"({cap_multiplier}x quantity sold)",
            extra={"product_id": line.product_id, "line_index": line_index},
        )

    logger.info(
        f"Conversion applied: {label} - {line.quantity} {rule.output_unit} = "
        f"{amount:.3f} {rule.input_unit}"
    )
    return DeductionAmount(amount=amount, calculated=calculated, conversion_applied=True, capped=capped)
