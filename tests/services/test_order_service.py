import json
import pytest
import httpx
import respx
from unittest.mock import AsyncMock
from pos_checkout.services.order_service import OrderService, extract_order_id
from pos_checkout.utils.errors import OrderSubmissionFailed

BASE_URL = "http://commerce.test/api"


@pytest.mark.asyncio
async def test_submit_order_returns_id(order_service, make_line, context):
    with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.post("/orders").mock(
            return_value=httpx.Response(201, json={"success": True, "data": {"id": 5001}})
        )

        order = await order_service.submit_order([make_line(10, 3)], context)

        assert order.order_id == 5001
        body = json.loads(route.calls.last.request.content)
        assert body["line_items"][0]["product_id"] == 10
        assert body["status"] == "processing"


@pytest.mark.asyncio
async def test_submit_order_accepts_bare_id(order_service, make_line, context):
    with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.post("/orders").mock(return_value=httpx.Response(200, json={"id": "77", "status": "processing"}))

        order = await order_service.submit_order([make_line()], context)
        assert order.order_id == 77


@pytest.mark.asyncio
async def test_submit_order_error_body(order_service, make_line, context):
    with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.post("/orders").mock(return_value=httpx.Response(400, json={"error": "Invalid payment method"}))

        with pytest.raises(OrderSubmissionFailed, match="Invalid payment method"):
            await order_service.submit_order([make_line()], context)


@pytest.mark.asyncio
async def test_submit_order_without_id_fails(order_service, make_line, context):
    with respx.mock(base_url=BASE_URL) as respx_mock:
        respx_mock.post("/orders").mock(return_value=httpx.Response(200, json={"success": True, "data": {}}))

        with pytest.raises(OrderSubmissionFailed, match="no order ID"):
            await order_service.submit_order([make_line()], context)


@pytest.mark.asyncio
async def test_submit_order_timeout_is_not_retried(order_service, make_line, context):
    with respx.mock(base_url=BASE_URL) as respx_mock:
        route = respx_mock.post("/orders").mock(side_effect=httpx.ReadTimeout("slow hooks"))

        with pytest.raises(OrderSubmissionFailed, match="timed out"):
            await order_service.submit_order([make_line()], context)
        assert route.call_count == 1


@pytest.mark.asyncio
async def test_submit_order_bad_url_is_submission_failure(make_line, context, mock_settings):
    client = AsyncMock()
    client.post.side_effect = httpx.InvalidURL("Invalid non-printable ASCII character in URL")
    service = OrderService(base_url=BASE_URL, client=client)

    with pytest.raises(OrderSubmissionFailed, match="Order creation failed"):
        await service.submit_order([make_line()], context)
    client.post.assert_awaited_once()

@pytest.mark.parametrize("body,expected", [
    ({"success": True, "data": {"id": 12}}, 12),
    ({"id": 13}, 13),
    ({"success": False, "data": {"id": 12}}, None),
    ({"id": 0}, None),
    ({"id": "abc"}, None),
    ([], None),
    (None, None),
])
def test_extract_order_id(body, expected):
    assert extract_order_id(body) == expected
