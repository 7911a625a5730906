"""
Factory for the PayPay gateway client.
"""
from __future__ import annotations

from typing import Optional

from application.ports.payment_gateway import PayPayGateway
from core.settings import PaymentSettings, payment_settings


def get_payment_gateway(cfg: Optional[PaymentSettings] = None) -> PayPayGateway:
    from .paypay_client import PayPayClient, PayPayConfig

    return PayPayClient(PayPayConfig.from_settings(cfg or payment_settings))
