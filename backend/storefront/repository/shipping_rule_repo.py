from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.db.model.shipping import ShippingRule


# 与模型字段名保持一致；后台 create/patch 只接受这些字段
RULE_FIELDS = (
    "province_code", "city_id",
    "enabled", "priority", "mode",
    "flat_amount", "per_item_amount", "base_amount", "per_kg_amount",
    "min_subtotal", "coupon_code", "eta_days",
    "active_from", "active_to",
)


def list_enabled_rules(db: Session, product_id: str) -> List[ShippingRule]:
    """报价候选规则：该商品下全部 enabled 规则，排序交给 resolver。"""
    stmt = (
        select(ShippingRule)
        .where(ShippingRule.product_id == product_id, ShippingRule.enabled.is_(True))
        .order_by(ShippingRule.id.asc())
    )
    return list(db.scalars(stmt))


def list_rules(db: Session, product_id: str) -> List[ShippingRule]:
    """后台列表：priority 降序。"""
    stmt = (
        select(ShippingRule)
        .where(ShippingRule.product_id == product_id)
        .order_by(ShippingRule.priority.desc(), ShippingRule.id.asc())
    )
    return list(db.scalars(stmt))


def get_rule(db: Session, product_id: str, rule_id: int) -> Optional[ShippingRule]:
    return db.scalar(
        select(ShippingRule).where(ShippingRule.id == rule_id, ShippingRule.product_id == product_id)
    )


def create_rule(db: Session, product_id: str, fields: Dict[str, Any]) -> ShippingRule:
    row = ShippingRule(product_id=product_id, **{k: v for k, v in fields.items() if k in RULE_FIELDS})
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def update_rule(db: Session, row: ShippingRule, patch: Dict[str, Any]) -> ShippingRule:
    """仅更新 patch 中出现的字段（允许显式置空，例如清掉 city_id）。"""
    for k, v in patch.items():
        if k in RULE_FIELDS:
            setattr(row, k, v)
    db.commit()
    db.refresh(row)
    return row


def delete_rule(db: Session, row: ShippingRule) -> None:
    db.delete(row)
    db.commit()
