"""
支付领域实体 - 订单信息与网关操作（tagged union）
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Optional, Union


class OperationKind(str, Enum):
    """网关操作类型"""
    EXPRESS = "express"            # MULTICAIXA Express（手机号支付）
    REFERENCE = "reference"        # MULTICAIXA 参考号支付
    APP = "app"                    # PayPay App 支付
    STATUS_QUERY = "status_query"  # 订单状态查询
    CLOSE = "close"                # 关闭订单


class PaymentStatus(str, Enum):
    """内部支付状态"""
    PENDING = "pending"        # 待支付
    SUCCEEDED = "succeeded"    # 支付成功
    CANCELED = "canceled"      # 已关闭
    FAILED = "failed"          # 支付失败
    UNKNOWN = "unknown"        # 网关未返回状态


@dataclass(frozen=True)
class OrderDetails:
    """
    调用方提供的订单信息（值对象）

    业务规则：
    1. 交易号仅允许字母、数字、短横线和下划线，长度有上下限
    2. 金额必须大于0，最多两位小数，且在配置范围内
    3. 手机号仅 EXPRESS 支付需要
    4. 在任何加密或网络操作之前完成校验
    """

    out_trade_no: str
    amount: Union[Decimal, int, str]
    subject: Optional[str] = None
    phone_num: Optional[str] = None
    payer_ip: Optional[str] = None


@dataclass(frozen=True)
class ExpressPayment:
    order: OrderDetails
    phone_num: str  # 已规范化为 244XXXXXXXXX

    kind: ClassVar[OperationKind] = OperationKind.EXPRESS
    service: ClassVar[str] = "instant_trade"
    bank_code: ClassVar[str] = "MUL"


@dataclass(frozen=True)
class ReferencePayment:
    order: OrderDetails

    kind: ClassVar[OperationKind] = OperationKind.REFERENCE
    service: ClassVar[str] = "instant_trade"
    bank_code: ClassVar[str] = "REF"


@dataclass(frozen=True)
class AppPayment:
    order: OrderDetails

    kind: ClassVar[OperationKind] = OperationKind.APP
    service: ClassVar[str] = "instant_trade"


@dataclass(frozen=True)
class StatusQuery:
    out_trade_no: str

    kind: ClassVar[OperationKind] = OperationKind.STATUS_QUERY
    service: ClassVar[str] = "trade_query"


@dataclass(frozen=True)
class CloseOrder:
    out_trade_no: str

    kind: ClassVar[OperationKind] = OperationKind.CLOSE
    service: ClassVar[str] = "trade_close"


PaymentOperation = Union[ExpressPayment, ReferencePayment, AppPayment]
Operation = Union[ExpressPayment, ReferencePayment, AppPayment, StatusQuery, CloseOrder]
