from __future__ import annotations

import argparse
import asyncio
import json
import sys
from decimal import Decimal

from application.services.payment_service import PaymentService
from core.settings import payment_settings
from domain.common.exceptions import PayPayError
from domain.payment.entity import OperationKind, OrderDetails
from infrastructure.external.payments import get_payment_gateway
from infrastructure.external.payments.paypay_client import PayPayClient


def _print_result(result) -> None:
    if result.ok:
        print(json.dumps(result.data.model_dump(mode="json", exclude={"raw"}), indent=2, ensure_ascii=False))
    else:
        print(json.dumps(result.error.to_dict(), indent=2, ensure_ascii=False, default=str))


async def run_create(kind: str, amount: str, phone: str | None, subject: str | None, prefix: str) -> int:
    gateway = get_payment_gateway()
    svc = PaymentService(gateway, max_retries=payment_settings.retry.max)
    order = OrderDetails(
        out_trade_no=PayPayClient.generate_trade_number(prefix),
        amount=Decimal(amount),
        subject=subject,
        phone_num=phone,
    )
    try:
        result = await svc.create_payment(OperationKind(kind), order)
    except PayPayError as e:
        print(f"[create] rejected: {e.message}")
        return 2
    finally:
        await svc.aclose()
    _print_result(result)
    return 0 if result.ok else 1


async def run_lookup(action: str, out_trade_no: str) -> int:
    gateway = get_payment_gateway()
    svc = PaymentService(gateway, max_retries=payment_settings.retry.max)
    try:
        if action == "status":
            result = await svc.query_order_status(out_trade_no)
        else:
            result = await svc.close_order(out_trade_no)
    except PayPayError as e:
        print(f"[{action}] rejected: {e.message}")
        return 2
    finally:
        await svc.aclose()
    _print_result(result)
    return 0 if result.ok else 1


def main() -> None:
    parser = argparse.ArgumentParser(description="PayPay gateway demo (configure PAYPAY__* env vars first)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_create = sub.add_parser("create", help="create a payment")
    p_create.add_argument("--kind", choices=["express", "reference", "app"], default="app")
    p_create.add_argument("--amount", required=True)
    p_create.add_argument("--phone")
    p_create.add_argument("--subject")
    p_create.add_argument("--prefix", default="DEMO")

    p_status = sub.add_parser("status", help="query an order")
    p_status.add_argument("out_trade_no")

    p_close = sub.add_parser("close", help="close an order")
    p_close.add_argument("out_trade_no")

    args = parser.parse_args()
    if args.cmd == "create":
        code = asyncio.run(run_create(args.kind, args.amount, args.phone, args.subject, args.prefix))
    else:
        code = asyncio.run(run_lookup(args.cmd, args.out_trade_no))
    sys.exit(code)


if __name__ == "__main__":
    main()
