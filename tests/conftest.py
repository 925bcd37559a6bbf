import pytest
from unittest.mock import AsyncMock
from pos_checkout.models.checkout_models import CartLine, CheckoutContext, CheckoutRequest, ConversionRule
from pos_checkout.services.inventory_service import InventoryService
from pos_checkout.services.order_service import OrderService
from pos_checkout.utils.config import settings
from pos_checkout.utils.retry import FIXED, LINEAR, RetryPolicy

INVENTORY_URL = "http://inventory.test/api"
COMMERCE_URL = "http://commerce.test/api"
LOCATION_ID = 20


@pytest.fixture
def mock_settings(mocker):
    mocker.patch.object(settings, 'INVENTORY_CONSUMER_KEY', None)
    mocker.patch.object(settings, 'INVENTORY_CONSUMER_SECRET', None)
    mocker.patch.object(settings, 'COMMERCE_CONSUMER_KEY', None)
    mocker.patch.object(settings, 'COMMERCE_CONSUMER_SECRET', None)
    mocker.patch.object(settings, 'CONVERSION_SAFETY_CAP', 10.0)
    return settings


@pytest.fixture
def no_sleep():
    return AsyncMock()


@pytest.fixture
def inventory_service(mock_settings, no_sleep):
    return InventoryService(
        base_url=INVENTORY_URL,
        read_policy=RetryPolicy(max_retries=2, base_delay=1.0, backoff=FIXED),
        write_policy=RetryPolicy(max_retries=3, base_delay=1.0, backoff=LINEAR),
        sleep=no_sleep,
    )


@pytest.fixture
def order_service(mock_settings):
    return OrderService(base_url=COMMERCE_URL)


@pytest.fixture
def make_line():
    def _make(product_id=10, quantity=3, **kwargs):
        kwargs.setdefault("name", f"Product {product_id}")
        kwargs.setdefault("unit_price", 10.0)
        return CartLine(product_id=product_id, quantity=quantity, **kwargs)
    return _make


@pytest.fixture
def preroll_rule():
    return ConversionRule(
        input_amount=0.5,
        input_unit="g",
        output_amount=1,
        output_unit="unit",
        description="1 pre-roll = 0.5g flower",
    )


@pytest.fixture
def context():
    return CheckoutContext(
        location_id=LOCATION_ID,
        location_name="Charlotte Central",
        employee_id=7,
        employee_name="Sam",
        payment_method="cash",
        payment_method_title="Cash",
        cash_received=50.0,
        change_given=17.6,
        tax_rate=0.08,
        tax_name="NC Sales Tax",
    )


@pytest.fixture
def make_request(context):
    def _make(lines, **overrides):
        ctx = context.model_copy(update=overrides) if overrides else context
        return CheckoutRequest(lines=lines, context=ctx)
    return _make


def stock_record(product_id, quantity, location_id=LOCATION_ID, variation_id=0):
    return {
        "product_id": str(product_id),
        "location_id": str(location_id),
        "variation_id": str(variation_id),
        "quantity": str(quantity),
    }


@pytest.fixture(name="stock_record")
def stock_record_fixture():
    return stock_record
