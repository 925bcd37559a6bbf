from pos_checkout.models.checkout_models import InventoryKey
from pos_checkout.services.inventory_adapter import is_write_acknowledged, parse_stock_level

KEY = InventoryKey(product_id=10, location_id=20)


def test_bare_list(stock_record):
    payload = [stock_record(9, 1), stock_record(10, 5)]
    assert parse_stock_level(payload, KEY) == 5.0


def test_envelope_with_list(stock_record):
    payload = {"success": True, "data": [stock_record(10, "4.5")]}
    assert parse_stock_level(payload, KEY) == 4.5


def test_envelope_with_single_object(stock_record):
    payload = {"success": True, "data": stock_record(10, 2)}
    assert parse_stock_level(payload, KEY) == 2.0


def test_single_object(stock_record):
    assert parse_stock_level(stock_record(10, 7), KEY) == 7.0


def test_matches_variation(stock_record):
    key = InventoryKey(product_id=10, location_id=20, variation_id=33)
    payload = [stock_record(10, 1), stock_record(10, 8, variation_id=33)]
    assert parse_stock_level(payload, key) == 8.0


def test_other_location_is_not_used(stock_record):
    payload = [stock_record(10, 9, location_id=21)]
    assert parse_stock_level(payload, KEY) is None


def test_missing_variation_field_means_zero():
    payload = [{"product_id": 10, "location_id": 20, "quantity": 3}]
    assert parse_stock_level(payload, KEY) == 3.0


def test_available_quantity_fallback():
    payload = [{"product_id": 10, "location_id": 20, "available_quantity": "6"}]
    assert parse_stock_level(payload, KEY) == 6.0


def test_no_matching_record_is_unknown_not_zero():
    assert parse_stock_level([], KEY) is None


def test_failed_envelope_is_unknown(stock_record):
    assert parse_stock_level({"success": False, "data": [stock_record(10, 5)]}, KEY) is None


def test_unrecognised_shapes_are_unknown():
    assert parse_stock_level({"message": "oops"}, KEY) is None
    assert parse_stock_level("5", KEY) is None
    assert parse_stock_level(None, KEY) is None


def test_unparsable_quantity_is_unknown():
    payload = [{"product_id": 10, "location_id": 20, "quantity": "lots"}]
    assert parse_stock_level(payload, KEY) is None


def test_write_acknowledgement():
    assert is_write_acknowledged({"success": True}) is True
    assert is_write_acknowledged({"id": 1}) is True
    assert is_write_acknowledged(None) is True
    assert is_write_acknowledged({"success": False, "message": "locked"}) is False


def test_non_finite_quantity_is_unknown():
    for raw in ("inf", "-inf", "nan", "Infinity"):
        payload = [{"product_id": 10, "location_id": 20, "quantity": raw}]
        assert parse_stock_level(payload, KEY) is None
