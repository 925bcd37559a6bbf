"""
Order Service: submits POS orders to the commerce API.

Order creation is the point of no return for a checkout. It is not retried:
a POST that timed out may still have created the order, and a retry would
create a duplicate.
"""
import httpx
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from pos_checkout.models.checkout_models import CartLine, CheckoutContext
from pos_checkout.services.order_builder import build_order_payload
from pos_checkout.utils.config import settings
from pos_checkout.utils.errors import OrderSubmissionFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmittedOrder:
    order_id: int
    payload: Dict[str, Any]


def extract_order_id(body: Any) -> Optional[int]:
    """Read the order id from ``{"success": true, "data": {"id": ...}}`` or a bare ``{"id": ...}``."""
    if not isinstance(body, dict):
        return None
    if "success" in body:
        if not body.get("success"):
            return None
        data = body.get("data")
        raw = data.get("id") if isinstance(data, dict) else None
    else:
        raw = body.get("id")
    try:
        order_id = int(raw)
    except (TypeError, ValueError):
        return None
    return order_id if order_id > 0 else None


class OrderService:
    """Order Submitter for the commerce API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.COMMERCE_API_BASE_URL).rstrip("/")
        self.url = f"{self.base_url}/orders"
        self.client = client
        self.timeout = timeout or settings.ORDER_SUBMIT_TIMEOUT
        self.headers = {"accept": "application/json", "Content-Type": "application/json"}

    def _auth_params(self) -> Dict[str, str]:
        if settings.COMMERCE_CONSUMER_KEY and settings.COMMERCE_CONSUMER_SECRET:
            return {
                "consumer_key": settings.COMMERCE_CONSUMER_KEY,
                "consumer_secret": settings.COMMERCE_CONSUMER_SECRET,
            }
        return {}

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        kwargs = {"json": payload, "headers": self.headers, "params": self._auth_params()}
        if self.client is not None:
            return await self.client.post(self.url, timeout=self.timeout, **kwargs)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.url, **kwargs)

    async def submit_order(self, lines: Sequence[CartLine], context: CheckoutContext) -> SubmittedOrder:
        """
        Build and create the order.

        Raises:
            OrderSubmissionFailed: the order was not created
        """
        payload = build_order_payload(lines, context)
        logger.info(
            f"Creating order: {len(payload['line_items'])} line item(s), "
            f"location={context.location_id}, employee={context.employee_id}, payment={context.payment_method}"
        )
        logger.debug(f"Order payload: {payload}")

        try:
            response = await self._post(payload)
        except httpx.TimeoutException as e:
            raise OrderSubmissionFailed(f"Order creation timed out after {self.timeout}s: {e!r}") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise OrderSubmissionFailed(f"Order creation failed: {e!r}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.is_success:
            detail = None
            if isinstance(body, dict):
                detail = body.get("error") or body.get("message")
            raise OrderSubmissionFailed(detail or f"Order creation failed: {response.status_code}")

        order_id = extract_order_id(body)
        if order_id is None:
            raise OrderSubmissionFailed("Order creation failed - no order ID returned")

        logger.info(f"Order created: {order_id}", extra={"order_id": order_id})
        return SubmittedOrder(order_id=order_id, payload=payload)
