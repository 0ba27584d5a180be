"""
币种换算

进货单记录原币种金额和汇率（原币 → 日元），库存批次成本一律以日元计：
- 日元金额 = 原币金额 × 汇率
- 单位成本 = 日元金额 / 进货数量

汇率由调用方提供，这里不查询、不校验合理性。
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Tuple, Union

from app.core.exceptions import InvalidArgumentError

Number = Union[Decimal, int, float, str]

MONEY_PLACES = Decimal("0.01")
RATE_PLACES = Decimal("0.0001")


def to_decimal(value: Number) -> Decimal:
    """float 先转字符串，避免二进制误差"""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_money(value: Number) -> Decimal:
    """金额保留2位小数"""
    return to_decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def quantize_rate(value: Number) -> Decimal:
    """汇率保留4位小数"""
    return to_decimal(value).quantize(RATE_PLACES, rounding=ROUND_HALF_UP)


def convert_purchase_amount(
    source_amount: Number,
    exchange_rate: Number,
    quantity: int
) -> Tuple[Decimal, Decimal]:
    """
    换算批次金额

    Returns:
        (日元金额, 日元单位成本)，均保留2位小数

    Raises:
        InvalidArgumentError: quantity <= 0
    """
    if quantity is None or quantity <= 0:
        raise InvalidArgumentError("进货数量必须大于0")

    purchase_amount = to_decimal(source_amount) * to_decimal(exchange_rate)
    unit_cost = purchase_amount / Decimal(quantity)
    return quantize_money(purchase_amount), quantize_money(unit_cost)


def expected_total_jpy(total_amount: Number, exchange_rate: Number) -> Decimal:
    """进货单日元总额 = 原币总额 × 汇率"""
    return quantize_money(to_decimal(total_amount) * to_decimal(exchange_rate))
