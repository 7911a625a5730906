import json
import random
from urllib.parse import parse_qsl

import httpx
import pytest

from application.dtos.payments import Failure, Success
from domain.common.exceptions import (
    ConfigurationError,
    CryptoError,
    ErrorKind,
    NetworkError,
    ValidationError,
    is_retryable,
    retry_delay,
)
from domain.payment.entity import OrderDetails
from infrastructure.crypto import decrypt_with_public_key, sign, verify
from infrastructure.external.payments.paypay_client import PayPayClient, PayPayConfig


GATEWAY = "https://gateway.paypayafrica.com/recv.do"


def _client(merchant_private, gateway_public, handler, **cfg):
    config = PayPayConfig(
        partner_id="200001234567",
        private_key=merchant_private,
        paypay_public_key=gateway_public,
        default_payer_ip="127.0.0.1",
        **cfg,
    )
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PayPayClient(config, http_client=http)


def _form(request: httpx.Request) -> dict:
    return dict(parse_qsl(request.content.decode("utf-8")))


class FakeGateway:
    """Checks the incoming envelope like the gateway does and answers with a signed reply."""

    def __init__(self, merchant_public, gateway_private, reply=None, status=200):
        self.merchant_public = merchant_public
        self.gateway_private = gateway_private
        self.reply = reply
        self.status = status
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        form = _form(request)
        self.requests.append(form)
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert verify(form, form["sign"], self.merchant_public)
        biz = json.loads(decrypt_with_public_key(form["biz_content"], self.merchant_public))
        reply = self.reply or {
            "code": "10000",
            "msg": "Success",
            "biz_content": {
                "out_trade_no": biz.get("trade_info", biz).get("out_trade_no"),
                "trade_no": "PP0001",
                "trade_status": "WAIT_BUYER_PAY",
                "total_amount": biz.get("trade_info", {}).get("total_amount", "0"),
                "dynamic_link": "https://pay.example/link",
            },
        }
        body = {**reply, "sign": sign(reply, self.gateway_private), "sign_type": "RSA"}
        return httpx.Response(self.status, json=body)


@pytest.mark.asyncio
async def test_app_payment_round_trip(merchant_private, merchant_public, gateway_private, gateway_public):
    gw = FakeGateway(merchant_public, gateway_private)
    client = _client(merchant_private, gateway_public, gw)
    result = await client.create_app_payment(OrderDetails(out_trade_no="ORDER_100001", amount="1500"))
    await client.aclose()

    assert isinstance(result, Success)
    assert result.data.out_trade_no == "ORDER_100001"
    assert result.data.status == "pending"
    assert str(result.data.total_amount) == "1500.00"
    assert result.data.dynamic_link == "https://pay.example/link"
    assert gw.requests[0]["service"] == "instant_trade"
    assert gw.requests[0]["partner_id"] == "200001234567"


@pytest.mark.asyncio
async def test_express_payment_sends_normalized_phone(merchant_private, merchant_public, gateway_private, gateway_public):
    seen = {}

    def handler(request):
        form = _form(request)
        seen.update(json.loads(decrypt_with_public_key(form["biz_content"], merchant_public)))
        reply = {"code": "10000", "biz_content": {"status": "P", "out_trade_no": "ORDER_100002"}}
        return httpx.Response(200, json={**reply, "sign": sign(reply, gateway_private)})

    client = _client(merchant_private, gateway_public, handler)
    result = await client.create_express_payment(
        OrderDetails(out_trade_no="ORDER_100002", amount=10, phone_num="900123456")
    )
    assert result.ok
    assert seen["pay_method"]["phone_num"] == "244900123456"
    assert seen["pay_method"]["bank_code"] == "MUL"


@pytest.mark.asyncio
async def test_query_and_close(merchant_private, merchant_public, gateway_private, gateway_public):
    reply = {"code": "10000", "biz_content": {"out_trade_no": "ORDER_100003", "trade_status": "TRADE_CLOSED"}}
    gw = FakeGateway(merchant_public, gateway_private, reply=reply)
    client = _client(merchant_private, gateway_public, gw)

    status = await client.query_order_status("ORDER_100003")
    closed = await client.close_order("ORDER_100003")
    assert status.unwrap().status == "canceled"
    assert closed.ok
    assert [r["service"] for r in gw.requests] == ["trade_query", "trade_close"]


@pytest.mark.asyncio
async def test_gateway_error_is_returned_as_failure(merchant_private, merchant_public, gateway_private, gateway_public):
    reply = {"code": "40002", "msg": "Invalid input parameters", "sub_code": "INVALID_PARAMETER"}
    client = _client(merchant_private, gateway_public, FakeGateway(merchant_public, gateway_private, reply=reply))
    result = await client.query_order_status("ORDER_100004")
    assert isinstance(result, Failure)
    assert result.error.family == "validation"
    assert not is_retryable(result.error)


@pytest.mark.asyncio
async def test_connection_refused_returns_retryable_network_failure(merchant_private, gateway_public):
    def handler(request):
        raise httpx.ConnectError("Connection refused", request=request)

    client = _client(merchant_private, gateway_public, handler)
    result = await client.create_reference_payment(OrderDetails(out_trade_no="ORDER_100005", amount=100))
    assert isinstance(result, Failure)
    assert isinstance(result.error, NetworkError)
    assert result.error.kind is ErrorKind.NETWORK
    assert is_retryable(result.error)
    assert 0.75 <= retry_delay(result.error, 1, random.Random(3)) <= 1.25


@pytest.mark.asyncio
async def test_timeout_returns_timeout_failure(merchant_private, gateway_public):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    client = _client(merchant_private, gateway_public, handler)
    result = await client.query_order_status("ORDER_100006")
    assert result.error.kind is ErrorKind.TIMEOUT


@pytest.mark.asyncio
async def test_non_json_reply(merchant_private, gateway_public):
    client = _client(merchant_private, gateway_public, lambda r: httpx.Response(502, text="<html>Bad gateway</html>"))
    result = await client.query_order_status("ORDER_100007")
    assert isinstance(result, Failure)
    assert result.error.kind is ErrorKind.UNKNOWN
    assert result.error.details["http_status"] == 502


@pytest.mark.asyncio
async def test_forged_reply_rejected(merchant_private, merchant_public, gateway_public):
    # reply signed with the merchant's key instead of the gateway's
    gw = FakeGateway(merchant_public, merchant_private)
    client = _client(merchant_private, gateway_public, gw)
    result = await client.query_order_status("ORDER_100008")
    assert isinstance(result, Failure)
    assert isinstance(result.error, CryptoError)


@pytest.mark.asyncio
async def test_validation_errors_raise_before_any_request(merchant_private, gateway_public):
    def handler(request):
        pytest.fail("request should not be sent")

    client = _client(merchant_private, gateway_public, handler)
    with pytest.raises(ValidationError):
        await client.create_express_payment(OrderDetails(out_trade_no="ORDER_100009", amount=10))
    with pytest.raises(ValidationError):
        await client.query_order_status("bad#no")
    with pytest.raises(ValidationError):
        await client.create_payment("close", OrderDetails(out_trade_no="ORDER_100009", amount=10))


@pytest.mark.asyncio
async def test_destroy_clears_keys(merchant_private, merchant_public, gateway_private, gateway_public):
    client = _client(merchant_private, gateway_public, FakeGateway(merchant_public, gateway_private))
    await client.destroy()
    assert merchant_private.cleared
    with pytest.raises(CryptoError):
        await client.query_order_status("ORDER_100010")
    with pytest.raises(ConfigurationError):
        client.verify_response_signature({"code": "10000", "sign": "x"})


def test_verify_response_signature(merchant_private, gateway_private, gateway_public):
    client = _client(merchant_private, gateway_public, lambda r: httpx.Response(200, json={}))
    reply = {"code": "10000", "msg": "Success"}
    assert client.verify_response_signature({**reply, "sign": sign(reply, gateway_private)})
    assert not client.verify_response_signature({**reply, "sign": sign(reply, merchant_private)})


def test_helpers(merchant_private, gateway_public):
    client = _client(merchant_private, gateway_public, lambda r: httpx.Response(200, json={}))
    trade_no = client.generate_trade_number("INV")
    assert trade_no.startswith("INV") and len(trade_no) <= 32
    assert client.generate_trade_number() != client.generate_trade_number()
    with pytest.raises(ValidationError):
        client.generate_trade_number("bad prefix")

    cfg = client.sanitized_config()
    assert cfg["api_url"] == GATEWAY
    assert "private_key" not in cfg
    info = client.sdk_info()
    assert info["keys"]["has_counterparty_key"] is True
    assert "APP_PAYMENT" in info["supported_methods"]["paypay_app"]


def test_config_from_settings(tmp_path, merchant_pems):
    from core.settings import PaymentSettings

    key = tmp_path / "merchant.pem"
    key.write_text(merchant_pems[0], encoding="utf-8")
    cfg = PaymentSettings(paypay={"partner_id": "200001234567", "private_key_path": str(key), "environment": "sandbox"})
    config = PayPayConfig.from_settings(cfg)
    assert config.paypay_public_key is None
    assert config.api_url == GATEWAY
    assert config.environment == "sandbox"

    with pytest.raises(ConfigurationError):
        PayPayConfig.from_settings(PaymentSettings(paypay={"partner_id": "200001234567"}))


def test_client_rejects_unsupported_language(merchant_private, gateway_public):
    with pytest.raises(ConfigurationError):
        _client(merchant_private, gateway_public, lambda r: httpx.Response(200, json={}), language="fr")


def test_retry_settings_only_carry_attempt_budget():
    from core.settings import PaymentSettings

    cfg = PaymentSettings(retry={"max": 3})
    assert cfg.retry.model_dump() == {"max": 3}
