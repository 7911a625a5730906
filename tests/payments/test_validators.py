from decimal import Decimal

import pytest

from domain.common.exceptions import ErrorKind, ValidationError
from domain.payment.entity import (
    AppPayment,
    CloseOrder,
    ExpressPayment,
    OperationKind,
    OrderDetails,
    ReferencePayment,
    StatusQuery,
)
from domain.payment.service import make_operation
from domain.payment.validators import (
    ValidationLimits,
    format_amount,
    normalize_phone_number,
    validate_amount,
    validate_payer_ip,
    validate_subject,
    validate_trade_number,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("900123456", "244900123456"),
        ("244900123456", "244900123456"),
        ("923 456 789", "244923456789"),
        ("(244) 923-456-789", "244923456789"),
    ],
)
def test_phone_normalization(raw, expected):
    assert normalize_phone_number(raw) == expected


@pytest.mark.parametrize("raw", ["12345", "", "800123456", "2448001234567", "+244900123456"])
def test_phone_rejected(raw):
    with pytest.raises(ValidationError) as ei:
        normalize_phone_number(raw)
    assert ei.value.field == "phone_num"
    assert ei.value.expected_format == "244XXXXXXXXX or 9XXXXXXXX"


def test_amount_formatting():
    assert format_amount(validate_amount(1000)) == "1000.00"
    assert format_amount(validate_amount("12.5")) == "12.50"
    assert validate_amount(Decimal("99.99")) == Decimal("99.99")
    assert validate_amount(10.1) == Decimal("10.10")


@pytest.mark.parametrize(
    "value,fragment",
    [
        (-5, "greater than zero"),
        (0, "greater than zero"),
        ("100.123", "more than 2 decimal places"),
        (100.123, "more than 2 decimal places"),
        ("10000000.01", "cannot exceed"),
        ("0.50", "at least"),
        ("abc", "must be a number"),
        (True, "must be a number"),
        (None, "required"),
    ],
)
def test_amount_rejected(value, fragment):
    with pytest.raises(ValidationError) as ei:
        validate_amount(value)
    assert ei.value.field == "amount"
    assert fragment in ei.value.message
    assert ei.value.kind is ErrorKind.VALIDATION


def test_amount_limits_configurable():
    limits = ValidationLimits(min_amount=Decimal("0.01"), max_amount=Decimal("50"))
    assert validate_amount("0.01", limits) == Decimal("0.01")
    with pytest.raises(ValidationError):
        validate_amount("50.01", limits)


@pytest.mark.parametrize("value", ["A" * 6, "a" * 32, "ORDER_2024-01"])
def test_trade_number_accepted(value):
    assert validate_trade_number(value) == value


@pytest.mark.parametrize(
    "value", ["A" * 5, "a" * 33, "ORDER@2024", "ORDER 2024", "ORDER1\n", "ORD\x00ER1", "", None, 123456]
)
def test_trade_number_rejected(value):
    with pytest.raises(ValidationError) as ei:
        validate_trade_number(value)
    assert ei.value.field == "out_trade_no"


def test_subject_rules():
    assert validate_subject(None) == "Purchase"
    assert validate_subject("Compra de bilhetes") == "Compra de bilhetes"
    for bad in ["", "   ", "x" * 129, "<script>", "Tom & Jerry", "line\nbreak"]:
        with pytest.raises(ValidationError):
            validate_subject(bad)


def test_payer_ip():
    assert validate_payer_ip("10.0.0.1") == "10.0.0.1"
    assert validate_payer_ip("::1") == "::1"
    with pytest.raises(ValidationError):
        validate_payer_ip("999.1.1.1")


def test_make_operation_variants():
    order = OrderDetails(out_trade_no="ORDER_000001", amount="100", phone_num="923456789")
    express = make_operation(OperationKind.EXPRESS, order)
    assert isinstance(express, ExpressPayment)
    assert express.phone_num == "244923456789"
    assert express.order.amount == Decimal("100.00")
    assert express.order.subject == "Purchase"

    assert isinstance(make_operation("reference", order), ReferencePayment)
    assert isinstance(make_operation("app", order), AppPayment)
    assert make_operation("status_query", order) == StatusQuery("ORDER_000001")
    assert make_operation(OperationKind.CLOSE, "ORDER_000001") == CloseOrder("ORDER_000001")


def test_make_operation_express_requires_phone():
    order = OrderDetails(out_trade_no="ORDER_000001", amount="100")
    with pytest.raises(ValidationError) as ei:
        make_operation(OperationKind.EXPRESS, order)
    assert ei.value.field == "phone_num"
    assert ei.value.message == "phone_num is required for MULTICAIXA EXPRESS payments"


def test_make_operation_unknown_kind():
    with pytest.raises(ValidationError) as ei:
        make_operation("refund", OrderDetails(out_trade_no="ORDER_000001", amount="1"))
    assert ei.value.field == "operation"
