"""
Order payload builder for the commerce API.

Line items and the order carry key/value ``meta_data`` so that prices,
discounts and conversion rules travel with the order for later audits.
"""
import json
import time
from typing import Any, Dict, List, Sequence

from pos_checkout.models.checkout_models import CartLine, CheckoutContext
from pos_checkout.utils.config import settings


def _meta(key: str, value: Any) -> Dict[str, Any]:
    return {"key": key, "value": value}


def _money(value: float) -> str:
    return f"{value:.2f}"


def compute_totals(lines: Sequence[CartLine], tax_rate: float) -> Dict[str, float]:
    subtotal = sum(line.line_total for line in lines)
    tax = round(subtotal * tax_rate, 2)
    total = round(subtotal + tax, 2)
    return {"subtotal": subtotal, "tax": tax, "total": total}


def build_line_item(line: CartLine) -> Dict[str, Any]:
    price = line.effective_price
    line_total = line.line_total

    item: Dict[str, Any] = {
        "product_id": line.product_id,
        "quantity": line.quantity,
        "subtotal": _money(line_total),
        "total": _money(line_total),
        "name": line.name,
        "meta_data": [
            _meta("_actual_quantity", str(line.quantity)),
            _meta("_actual_price", str(price)),
            _meta("_original_price", str(line.unit_price)),
        ],
    }
    if line.sku:
        item["sku"] = line.sku
    if line.variation_id:
        item["variation_id"] = line.variation_id

    meta: List[Dict[str, Any]] = item["meta_data"]
    if line.price_override is not None:
        meta.append(_meta("_price_override", str(line.price_override)))
    if line.discount_percentage and line.discount_percentage > 0:
        meta.append(_meta("_discount_percentage", str(line.discount_percentage)))

    if line.has_pricing_tier:
        meta.extend([
            _meta("_pricing_tier_label", line.tier_label or ""),
            _meta("_pricing_tier_rule_name", line.tier_rule_name or ""),
            _meta("_pricing_tier_price", str(line.tier_price if line.tier_price is not None else "")),
            _meta("_pricing_tier_quantity", str(line.tier_quantity if line.tier_quantity is not None else "")),
            _meta("_pricing_tier_category", line.tier_category or ""),
        ])

    rule = line.conversion_rule
    if rule is not None:
        meta.extend([
            _meta("_conversion_ratio_input_amount", str(rule.input_amount)),
            _meta("_conversion_ratio_input_unit", rule.input_unit),
            _meta("_conversion_ratio_output_amount", str(rule.output_amount)),
            _meta("_conversion_ratio_output_unit", rule.output_unit),
            _meta("_conversion_ratio_description", rule.description),
        ])

    return item


def build_order_metadata(context: CheckoutContext, totals: Dict[str, float]) -> List[Dict[str, Any]]:
    metadata = [
        _meta("_pos_location_id", str(context.location_id)),
        _meta("_pos_location_name", context.location_name),
        _meta("_employee_id", context.employee_id),
        _meta("_employee_name", context.employee_name),
        _meta("_created_via", settings.ORDER_CREATED_VIA),
        _meta("_pos_order", "true"),
        # Stock is deducted by this pipeline; the commerce side must not deduct again
        _meta("_inventory_processed", "yes"),
        _meta("_tax_rate", str(context.tax_rate)),
        _meta("_tax_name", context.tax_name),
        _meta("_subtotal", _money(totals["subtotal"])),
        _meta("_tax_total", _money(totals["tax"])),
        _meta("_total", _money(totals["total"])),
    ]

    if context.terminal_id and context.terminal_name:
        metadata.append(_meta("_payment_terminal_id", str(context.terminal_id)))
        metadata.append(_meta("_payment_terminal_name", context.terminal_name))

    if context.transaction_ref:
        metadata.append(_meta("_transaction_ref", context.transaction_ref))

    if context.split_payments:
        details = [p.model_dump() for p in context.split_payments]
        metadata.extend([
            _meta("_split_payment", "true"),
            _meta("_split_payment_details", json.dumps(details)),
            _meta("_split_payment_count", str(len(details))),
        ])
    elif context.payment_method == "cash" and context.cash_received:
        metadata.extend([
            _meta("_cash_received", _money(context.cash_received)),
            _meta("_change_given", _money(context.change_given or 0)),
        ])

    return metadata


def build_order_payload(lines: Sequence[CartLine], context: CheckoutContext) -> Dict[str, Any]:
    """Build the full commerce order body for a checkout."""
    totals = compute_totals(lines, context.tax_rate)
    city = (context.location_name.split(" ")[0] if context.location_name else "") or "POS"

    order: Dict[str, Any] = {
        "status": "processing",
        "payment_method": context.payment_method,
        "payment_method_title": context.payment_method_title or context.payment_method,
        "currency": settings.ORDER_CURRENCY,
        "line_items": [build_line_item(line) for line in lines],
        "billing": {
            "first_name": "POS",
            "last_name": "Customer",
            "email": f"pos-{int(time.time() * 1000)}@pos.local",
            "city": city,
        },
        "shipping": {
            "first_name": "POS",
            "last_name": "Customer",
            "city": city,
        },
        "meta_data": build_order_metadata(context, totals),
        "pos_order": True,
        "location_id": context.location_id,
        "set_paid": True,
        "created_via": settings.ORDER_CREATED_VIA,
    }

    if context.customer_id and context.customer_id > 0:
        order["customer_id"] = context.customer_id

    return order
