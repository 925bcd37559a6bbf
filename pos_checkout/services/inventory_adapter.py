"""
Inventory API response adapter.

The inventory API answers with either a bare list of records, a single record,
or a ``{"success": ..., "data": ...}`` envelope around either. Everything
shape-dependent lives here; callers only ever see a float or None.
"""
import logging
import math
from typing import Any, Iterable, List, Optional

from pos_checkout.models.checkout_models import InventoryKey

logger = logging.getLogger(__name__)


def _as_int(value: Any, default: int = 0) -> Optional[int]:
    if value is None or value == "":
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _records(payload: Any) -> Optional[List[dict]]:
    """Unwrap the envelope into a list of record dicts, or None for unknown shapes."""
    if isinstance(payload, dict) and "data" in payload and "success" in payload:
        if not payload.get("success"):
            return None
        payload = payload.get("data")

    if isinstance(payload, list):
        return [r for r in payload if isinstance(r, dict)]
    if isinstance(payload, dict) and "product_id" in payload:
        return [payload]
    return None


def _matches(record: dict, key: InventoryKey) -> bool:
    return (
        _as_int(record.get("product_id"), default=None) == key.product_id
        and _as_int(record.get("location_id"), default=None) == key.location_id
        and _as_int(record.get("variation_id")) == key.variation_id
    )


def _find(records: Iterable[dict], key: InventoryKey) -> Optional[dict]:
    for record in records:
        if _matches(record, key):
            return record
    return None


def parse_stock_level(payload: Any, key: InventoryKey) -> Optional[float]:
    """
    Extract the stock level for ``key`` from an inventory API response.

    Returns None when the payload is not understood, reports failure, holds no
    record for the key, or the quantity is not a number. Never returns a
    made-up zero.
    """
    records = _records(payload)
    if records is None:
        logger.warning(f"Unrecognised inventory response for {key}: {str(payload)[:200]}")
        return None

    record = _find(records, key)
    if record is None:
        logger.warning(f"No inventory record for {key} in response ({len(records)} records)")
        return None

    raw = record.get("quantity")
    if raw is None or raw == "":
        raw = record.get("available_quantity")
    try:
        quantity = float(raw)
    except (TypeError, ValueError):
        logger.warning(f"Unparsable quantity {raw!r} for {key}")
        return None
    if not math.isfinite(quantity):
        logger.warning(f"Non-finite quantity {raw!r} for {key}")
        return None
    return max(0.0, quantity)


def is_write_acknowledged(payload: Any) -> bool:
    """A write is rejected only by an explicit ``success: false`` body."""
    if isinstance(payload, dict) and payload.get("success") is False:
        return False
    return True


def error_message(payload: Any, default: str) -> str:
    if isinstance(payload, dict):
        return str(payload.get("message") or payload.get("error") or default)
    return default
