"""
报价接口的服务层：
  - 校验/规整请求体（product_id 必填；数字字段非法时按 0 处理）
  - 城市名 + 省份 → city_id
  - 读取该商品的 settings + enabled 规则快照
  - 调用 resolver；DB 读失败统一转成 UpstreamError，不返回半成品报价
"""

from __future__ import annotations
from dataclasses import replace
from typing import Any, List, Mapping, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.core.errors import UpstreamError, ValidationError
from storefront.repository.geo_repo import find_city_id
from storefront.repository.shipping_rule_repo import list_enabled_rules
from storefront.repository.shipping_settings_repo import get_settings
from storefront.services.shipping.quote_resolver import (
    Quote, QuoteItem, QuoteRequest, resolve, to_decimal,
)


logger = logging.getLogger(__name__)


def _text_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_items(raw: Any) -> List[QuoteItem]:
    # items 不是数组时按空列表处理
    if not isinstance(raw, list):
        return []
    items: List[QuoteItem] = []
    for entry in raw:
        if not isinstance(entry, Mapping):
            logger.warning("Ignoring malformed quote item %r", entry)
            continue
        items.append(
            QuoteItem(
                variant_id=_text_or_none(entry.get("variant_id")),
                qty=to_decimal(entry.get("qty"), "items.qty"),
            )
        )
    return items


def build_quote_request(payload: Any) -> tuple[QuoteRequest, Optional[str]]:
    """
    返回 (QuoteRequest, city_name)。city_id 尚未解析，由 quote_shipping 查库后填入。
    """
    body: Mapping[str, Any] = payload if isinstance(payload, Mapping) else {}

    product_id = _text_or_none(body.get("product_id"))
    if not product_id:
        raise ValidationError("product_id required")

    request = QuoteRequest(
        product_id=product_id,
        province_code=_text_or_none(body.get("province_code")),
        coupon=_text_or_none(body.get("coupon")),
        items=tuple(_parse_items(body.get("items"))),
        subtotal=to_decimal(body.get("subtotal"), "subtotal"),
        total_weight_kg=to_decimal(body.get("total_weight_kg"), "total_weight_kg"),
    )
    return request, _text_or_none(body.get("city"))


def quote_shipping(db: Session, payload: Any) -> Quote:
    request, city_name = build_quote_request(payload)

    try:
        settings_row = get_settings(db, request.product_id)

        city_id = None
        if city_name and request.province_code:
            city_id = find_city_id(db, request.province_code, city_name)
            if city_id is None:
                logger.info(
                    "City %r not found in province %s, quoting without city scope",
                    city_name, request.province_code,
                )

        rules = list_enabled_rules(db, request.product_id)
    except SQLAlchemyError as exc:
        logger.exception("Rule store read failed for product=%s", request.product_id)
        raise UpstreamError(str(exc)) from exc

    if city_id is not None:
        request = replace(request, city_id=city_id)

    return resolve(request, rules, settings_row)
