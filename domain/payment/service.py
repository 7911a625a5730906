"""
支付领域服务 - 校验订单并构造具体的网关操作
"""
from __future__ import annotations

from typing import Union

from domain.common.exceptions import ValidationError
from domain.payment.entity import (
    AppPayment,
    CloseOrder,
    ExpressPayment,
    Operation,
    OperationKind,
    OrderDetails,
    ReferencePayment,
    StatusQuery,
)
from domain.payment.validators import (
    DEFAULT_LIMITS,
    ValidationLimits,
    normalize_phone_number,
    validate_order,
    validate_trade_number,
)


def make_operation(
    kind: Union[OperationKind, str],
    subject: Union[OrderDetails, str],
    limits: ValidationLimits = DEFAULT_LIMITS,
) -> Operation:
    """
    根据操作类型构造 Operation

    业务规则：
    1. 支付类操作（EXPRESS/REFERENCE/APP）需要完整的 OrderDetails
    2. EXPRESS 必须提供手机号，并规范化为 244XXXXXXXXX
    3. 查询/关闭只需要交易号（也可传入 OrderDetails）
    4. 任何校验失败都在加密之前抛出 ValidationError
    """
    try:
        kind = OperationKind(kind)
    except ValueError:
        raise ValidationError(
            "operation", kind, " | ".join(k.value for k in OperationKind), "Unsupported operation"
        ) from None

    if kind in (OperationKind.STATUS_QUERY, OperationKind.CLOSE):
        trade_no = subject.out_trade_no if isinstance(subject, OrderDetails) else subject
        trade_no = validate_trade_number(trade_no, limits)
        return StatusQuery(trade_no) if kind is OperationKind.STATUS_QUERY else CloseOrder(trade_no)

    order = validate_order(subject, limits)  # type: ignore[arg-type]
    if kind is OperationKind.EXPRESS:
        if not order.phone_num:
            raise ValidationError(
                "phone_num",
                order.phone_num,
                "valid Angola phone number for EXPRESS payment",
                "phone_num is required for MULTICAIXA EXPRESS payments",
            )
        return ExpressPayment(order=order, phone_num=normalize_phone_number(order.phone_num))
    if kind is OperationKind.REFERENCE:
        return ReferencePayment(order=order)
    return AppPayment(order=order)
