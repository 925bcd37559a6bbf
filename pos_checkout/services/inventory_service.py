"""
Inventory Service: reads and writes absolute stock levels on the inventory API.

Reads retry a couple of times with a fixed delay; writes retry more and back
off linearly, since a lost write leaves stock wrong. There is no conditional
write on the API, so read-then-write is last-writer-wins across tills.
"""
import math
import httpx
import logging
from typing import Dict, Optional

from pos_checkout.models.checkout_models import InventoryKey
from pos_checkout.services.inventory_adapter import (
    error_message,
    is_write_acknowledged,
    parse_stock_level,
)
from pos_checkout.utils.config import settings
from pos_checkout.utils.errors import InvalidStockValue, InventoryWriteFailed
from pos_checkout.utils.retry import FIXED, LINEAR, RetryPolicy

logger = logging.getLogger(__name__)


class InventoryService:
    """Inventory Reader and Writer for (product, location, variation) stock counters."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        read_policy: Optional[RetryPolicy] = None,
        write_policy: Optional[RetryPolicy] = None,
        read_timeout: Optional[float] = None,
        write_timeout: Optional[float] = None,
        sleep=None,
    ):
        self.base_url = (base_url or settings.INVENTORY_API_BASE_URL).rstrip("/")
        self.url = f"{self.base_url}/inventory"
        self.client = client
        self.read_policy = read_policy or RetryPolicy(
            max_retries=settings.INVENTORY_READ_MAX_RETRIES,
            base_delay=settings.INVENTORY_READ_RETRY_DELAY,
            backoff=FIXED,
        )
        self.write_policy = write_policy or RetryPolicy(
            max_retries=settings.INVENTORY_WRITE_MAX_RETRIES,
            base_delay=settings.INVENTORY_WRITE_RETRY_DELAY,
            backoff=LINEAR,
        )
        self.read_timeout = read_timeout or settings.INVENTORY_READ_TIMEOUT
        self.write_timeout = write_timeout or settings.INVENTORY_WRITE_TIMEOUT
        self.sleep = sleep
        self.headers = {"accept": "application/json", "Content-Type": "application/json"}

    def _auth_params(self) -> Dict[str, str]:
        if settings.INVENTORY_CONSUMER_KEY and settings.INVENTORY_CONSUMER_SECRET:
            return {
                "consumer_key": settings.INVENTORY_CONSUMER_KEY,
                "consumer_secret": settings.INVENTORY_CONSUMER_SECRET,
            }
        return {}

    async def _request(self, method: str, timeout: float, **kwargs) -> httpx.Response:
        if self.client is not None:
            response = await self.client.request(method, self.url, timeout=timeout, headers=self.headers, **kwargs)
        else:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.request(method, self.url, headers=self.headers, **kwargs)
        # 5xx raise here so the retry policy sees them; 4xx are handled by callers
        if response.status_code >= 500:
            response.raise_for_status()
        return response

    async def read_stock(self, key: InventoryKey) -> Optional[float]:
        """
        Fetch current stock for one counter.

        Returns None when the lookup cannot be completed. Callers must not
        treat None as zero stock.
        """
        params = {**key.query_params(), **self._auth_params()}

        async def call():
            return await self._request("GET", self.read_timeout, params=params)

        try:
            response = await self.read_policy.run(call, name=f"read_stock({key})", sleep=self.sleep)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Failed to fetch current inventory for {key}: {e!r}")
            return None

        if response.status_code != 200:
            logger.error(f"Failed to fetch current inventory for {key}: HTTP {response.status_code}")
            return None

        try:
            payload = response.json()
        except ValueError:
            logger.error(f"Inventory response for {key} is not JSON: {response.text[:200]}")
            return None

        stock = parse_stock_level(payload, key)
        if stock is not None:
            logger.debug(f"Current stock for {key}: {stock:.3f}")
        return stock

    async def write_stock(self, key: InventoryKey, quantity: float) -> None:
        """
        Set the absolute stock level for one counter.

        Raises:
            InvalidStockValue: negative or non-finite target (no call is made)
            InventoryWriteFailed: the API rejected the write or retries ran out
        """
        if quantity is None or not math.isfinite(quantity) or quantity < 0:
            raise InvalidStockValue(f"Refusing to write stock {quantity} for {key}")

        body = {
            "product_id": key.product_id,
            "location_id": key.location_id,
            "quantity": quantity,
        }
        if key.variation_id:
            body["variation_id"] = key.variation_id

        async def call():
            return await self._request("POST", self.write_timeout, json=body, params=self._auth_params())

        try:
            response = await self.write_policy.run(call, name=f"write_stock({key})", sleep=self.sleep)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise InventoryWriteFailed(f"Failed to update inventory for {key}: {e!r}") from e

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not response.is_success:
            message = error_message(payload, f"Failed to update inventory: {response.status_code}")
            raise InventoryWriteFailed(f"{message} ({key})")

        if not is_write_acknowledged(payload):
            message = error_message(payload, "Inventory API reported success=false")
            raise InventoryWriteFailed(f"{message} ({key})")

        logger.debug(f"Stock for {key} set to {quantity:.3f}")
