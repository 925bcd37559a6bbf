import json
import logging
from pos_checkout.utils.structured_logging import ColoredFormatter, JSONFormatter, get_logger


def make_record(msg="Deducted stock", **extra):
    record = logging.LogRecord("pos_checkout.test", logging.INFO, __file__, 10, msg, None, None)
    for k, v in extra.items():
        setattr(record, k, v)
    return record


def test_json_formatter_includes_checkout_context():
    record = make_record(order_id=5001, location_id=20, line_index=1, unrelated="x")
    entry = json.loads(JSONFormatter().format(record))

    assert entry["message"] == "Deducted stock"
    assert entry["level"] == "INFO"
    assert entry["order_id"] == 5001
    assert entry["location_id"] == 20
    assert entry["line_index"] == 1
    assert "unrelated" not in entry


def test_colored_formatter_prefixes_order_and_truncates():
    formatter = ColoredFormatter()

    assert "[order=42] Deducted stock" in formatter.format(make_record(order_id=42))
    assert "[order=" not in formatter.format(make_record())

    long_line = formatter.format(make_record("x" * 800))
    assert "x" * 497 + "..." in long_line
    assert "x" * 498 not in long_line


def test_bind_is_immutable_and_merges():
    base = get_logger("pos_checkout.test").bind(location_id=20)
    child = base.bind(order_id=5001)

    assert base.context == {"location_id": 20}
    assert child.context == {"location_id": 20, "order_id": 5001}


def test_bound_context_reaches_records(caplog):
    log = get_logger("pos_checkout.test").bind(order_id=5001, location_id=20)

    with caplog.at_level(logging.INFO, logger="pos_checkout.test"):
        log.warning("Order created but inventory NOT deducted")

    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert record.order_id == 5001
    assert record.location_id == 20
