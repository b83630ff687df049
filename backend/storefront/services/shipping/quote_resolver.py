# 运费报价计算（纯函数，无 I/O、无状态）

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, DecimalException, InvalidOperation, ROUND_HALF_UP, localcontext
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple
import logging

from storefront.utils.clock import as_utc, now_utc


logger = logging.getLogger(__name__)


_ZERO = Decimal("0")
_Q_CENTS = Decimal("0.01")

# 金额运算精度：默认 28 位不够 quantize 极大的数量/重量
_CALC_PREC = 400
# 响应里 amount 是 JSON number（double），超过这个量级按 0 处理
_MAX_AMOUNT = Decimal("1e300")


class ShippingMode(str, Enum):
    FREE = "free"
    COUPON_FREE = "coupon_free"
    FLAT = "flat"
    PER_ITEM = "per_item"
    PER_KG = "per_kg"

    @classmethod
    def parse(cls, value: Any) -> Optional["ShippingMode"]:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return None


# --------- 输入 / 输出模型 ----------
@dataclass(frozen=True)
class QuoteItem:
    variant_id: Optional[str]
    qty: Decimal


@dataclass(frozen=True)
class QuoteRequest:
    product_id: str
    province_code: Optional[str] = None
    city_id: Optional[int] = None          # 已由城市名反查得到；None = 未匹配
    coupon: Optional[str] = None
    items: Tuple[QuoteItem, ...] = ()
    subtotal: Decimal = _ZERO
    total_weight_kg: Decimal = _ZERO

    @property
    def total_qty(self) -> Decimal:
        return sum((it.qty for it in self.items), _ZERO)


@dataclass(frozen=True)
class Quote:
    amount: Decimal
    eta_days: Optional[int] = None
    rule_id: Optional[Any] = None
    source: str = "none"      # rule / free_over_subtotal / fallback / none



# --------- 工具 ----------
def _field(obj: Any, name: str) -> Any:
    """规则/设置既可以是 ORM 行，也可以是 dict。"""
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _blank(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def to_decimal(value: Any, field_name: str = "value") -> Decimal:
    """
    None / "" → 0；非法数字（"abc"、NaN、Infinity）记 WARNING 后按 0 处理，不中断报价。
    """
    if value is None or value == "":
        return _ZERO
    if isinstance(value, bool):
        return Decimal(int(value))
    try:
        d = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        logger.warning("Malformed numeric field %s=%r coerced to 0", field_name, value)
        return _ZERO
    if not d.is_finite():
        logger.warning("Non-finite numeric field %s=%r coerced to 0", field_name, value)
        return _ZERO
    return d


def _int_or_none(value: Any, field_name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(Decimal(str(value).strip()))
    except (InvalidOperation, ValueError, OverflowError):
        logger.warning("Malformed integer field %s=%r ignored", field_name, value)
        return None


def _priority(rule: Any) -> int:
    return _int_or_none(_field(rule, "priority"), "priority") or 0


def _as_datetime(value: Any, field_name: str) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    try:
        return as_utc(datetime.fromisoformat(str(value).strip().replace("Z", "+00:00")))
    except ValueError:
        # 无法解析的时间边界视为未设置
        logger.warning("Malformed datetime field %s=%r ignored", field_name, value)
        return None



# --------- 规则筛选 ----------
def _scope_matches(rule: Any, request: QuoteRequest) -> bool:
    rule_city = _field(rule, "city_id")
    rule_province = _blank(_field(rule, "province_code"))

    if request.city_id is not None and rule_city is not None and rule_city == request.city_id:
        return True
    if request.province_code and rule_city is None and rule_province == request.province_code:
        return True
    # 全局规则只在请求既没有城市也没有省份时参与
    if not request.province_code and request.city_id is None:
        return rule_city is None and rule_province is None
    return False


def _within_window(rule: Any, now: datetime) -> bool:
    active_from = _as_datetime(_field(rule, "active_from"), "active_from")
    active_to = _as_datetime(_field(rule, "active_to"), "active_to")
    if active_from is not None and now < active_from:
        return False
    if active_to is not None and now > active_to:
        return False
    return True


def _meets_min_subtotal(rule: Any, request: QuoteRequest) -> bool:
    min_subtotal = _field(rule, "min_subtotal")
    if min_subtotal is None:
        return True
    return request.subtotal >= to_decimal(min_subtotal, "min_subtotal")


def _coupon_matches(rule: Any, request: QuoteRequest) -> bool:
    if ShippingMode.parse(_field(rule, "mode")) is not ShippingMode.COUPON_FREE:
        return True
    if not request.coupon:
        return False
    return str(_field(rule, "coupon_code") or "").lower() == request.coupon.lower()


def is_eligible(rule: Any, request: QuoteRequest, now: datetime) -> bool:
    if not _field(rule, "enabled"):
        return False
    return (
        _scope_matches(rule, request)
        and _within_window(rule, now)
        and _meets_min_subtotal(rule, request)
        and _coupon_matches(rule, request)
    )


'''
排序：城市规则 > 省规则 > 全局规则，同一层按 priority 降序；
完全相同时按规则 id 升序（没有 id 的按输入顺序排在最后），结果确定可复现
'''
def _precedence_key(indexed: Tuple[int, Any]):
    idx, rule = indexed
    rule_id = _field(rule, "id")
    return (
        0 if _field(rule, "city_id") else 1,
        0 if _blank(_field(rule, "province_code")) else 1,
        -_priority(rule),
        rule_id is None,
        rule_id if rule_id is not None else 0,
        idx,
    )


def select_rule(request: QuoteRequest, rules: Iterable[Any], now: Optional[datetime] = None) -> Optional[Any]:
    now = as_utc(now) if now is not None else now_utc()
    eligible = [(idx, r) for idx, r in enumerate(rules or ()) if is_eligible(r, request, now)]
    if not eligible:
        return None
    eligible.sort(key=_precedence_key)
    return eligible[0][1]



# --------- 金额计算（按 mode 分派） ----------
def _amount_free(params: Any, request: QuoteRequest) -> Decimal:
    return _ZERO


def _amount_flat(params: Any, request: QuoteRequest) -> Decimal:
    return to_decimal(_field(params, "flat_amount"), "flat_amount")


def _amount_per_item(params: Any, request: QuoteRequest) -> Decimal:
    return to_decimal(_field(params, "per_item_amount"), "per_item_amount") * request.total_qty


def _amount_per_kg(params: Any, request: QuoteRequest) -> Decimal:
    base = to_decimal(_field(params, "base_amount"), "base_amount")
    per_kg = to_decimal(_field(params, "per_kg_amount"), "per_kg_amount")
    return base + per_kg * request.total_weight_kg


_AMOUNT_BY_MODE: Dict[ShippingMode, Callable[[Any, QuoteRequest], Decimal]] = {
    ShippingMode.FREE: _amount_free,
    ShippingMode.COUPON_FREE: _amount_free,
    ShippingMode.FLAT: _amount_flat,
    ShippingMode.PER_ITEM: _amount_per_item,
    ShippingMode.PER_KG: _amount_per_kg,
}


def compute_amount(params: Any, request: QuoteRequest) -> Decimal:
    mode = ShippingMode.parse(_field(params, "mode"))
    if mode is None:
        logger.warning("Unknown shipping mode %r, amount treated as 0", _field(params, "mode"))
        return _ZERO
    return _AMOUNT_BY_MODE[mode](params, request)


def _fallback_params(settings: Any) -> Dict[str, Any]:
    """把 settings 的 fallback_* 字段映射成规则形状，复用同一张金额表。"""
    return {
        "mode": _field(settings, "fallback_mode"),
        "flat_amount": _field(settings, "fallback_flat_amount"),
        "per_item_amount": _field(settings, "fallback_per_item_amount"),
        "base_amount": _field(settings, "fallback_base_amount"),
        "per_kg_amount": _field(settings, "fallback_per_kg_amount"),
    }


def _bounded(amount: Decimal, what: str, request: QuoteRequest) -> Decimal:
    if amount.copy_abs() > _MAX_AMOUNT:
        logger.warning("Shipping %s %s for product=%s out of range, treated as 0", what, amount, request.product_id)
        return _ZERO
    return amount


def _checked_amount(params: Any, request: QuoteRequest, what: str) -> Decimal:
    """按 mode 算金额；运算溢出（指数越界等）或结果超出范围时记 WARNING 后按 0 处理。"""
    try:
        amount = compute_amount(params, request)
    except DecimalException:
        logger.warning("Shipping %s amount for product=%s overflowed, treated as 0", what, request.product_id)
        return _ZERO
    return _bounded(amount, what, request)



"""
报价主入口：
  1) 有符合条件的规则 → 取排序第一条，按 mode 算金额，eta 取规则
  2) 无规则但有 settings → 满额包邮（free_over_subtotal）优先，否则按 fallback_mode 算
  3) 都没有 → 0
  最后：cod_fee > 0 时无条件加上（包括 0 运费的情况）
"""
def resolve(
    request: QuoteRequest,
    rules: Iterable[Any],
    settings: Any = None,
    now: Optional[datetime] = None,
) -> Quote:
    chosen = select_rule(request, rules, now=now)

    eta_days: Optional[int] = None
    rule_id = None
    if chosen is not None:
        eta_days = _int_or_none(_field(chosen, "eta_days"), "eta_days")
        rule_id = _field(chosen, "id")
        source = "rule"
    elif settings is not None:
        threshold = _field(settings, "free_over_subtotal")
        if threshold is not None and request.subtotal >= to_decimal(threshold, "free_over_subtotal"):
            source = "free_over_subtotal"
        else:
            source = "fallback"
    else:
        source = "none"

    with localcontext() as ctx:
        ctx.prec = _CALC_PREC
        if source == "rule":
            amount = _checked_amount(chosen, request, "rule")
        elif source == "fallback":
            amount = _checked_amount(_fallback_params(settings), request, "fallback")
        else:
            amount = _ZERO

        if amount < _ZERO:
            logger.warning("Negative shipping amount %s for product=%s clamped to 0", amount, request.product_id)
            amount = _ZERO

        cod_fee = _bounded(to_decimal(_field(settings, "cod_fee"), "cod_fee"), "cod_fee", request)
        if cod_fee > _ZERO:
            amount += cod_fee

        amount = amount.quantize(_Q_CENTS, rounding=ROUND_HALF_UP)
    logger.debug(
        "Shipping quote product=%s source=%s rule_id=%s amount=%s eta_days=%s",
        request.product_id, source, rule_id, amount, eta_days,
    )
    return Quote(amount=amount, eta_days=eta_days, rule_id=rule_id, source=source)
