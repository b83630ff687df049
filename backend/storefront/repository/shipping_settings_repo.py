
from __future__ import annotations
from typing import Dict, Any, Optional
from decimal import Decimal
from sqlalchemy import select
from sqlalchemy.orm import Session
from storefront.db.model.shipping import ShippingSettings


# 商品还没有保存过设置时，后台展示的默认值（与模型字段名保持完全一致）
DEFAULTS: Dict[str, Any] = {
    "enable_province_rates": True,
    "enable_city_rates": False,

    # 兜底计费
    "fallback_mode": "flat",
    "fallback_flat_amount": 0,
    "fallback_per_item_amount": 0,
    "fallback_base_amount": 0,
    "fallback_per_kg_amount": 0,

    # 满额包邮 / 货到付款
    "free_over_subtotal": None,
    "cod_fee": 0,
}


# 允许更新的字段白名单
ALL_FIELDS = tuple(DEFAULTS.keys())


def get_settings(db: Session, product_id: str) -> Optional[ShippingSettings]:
    """报价用：没有行就返回 None（不自动创建）。"""
    return db.scalar(select(ShippingSettings).where(ShippingSettings.product_id == product_id))


def to_dict(row: Optional[ShippingSettings], product_id: str) -> Dict[str, Any]:
    """
    将 ORM 行转为 dict（仅导出受支持字段）；row 为空时返回 DEFAULTS。
    """
    def _norm(value: Any) -> Any:
        # SQLAlchemy Numeric -> Decimal；前端需要 number
        if isinstance(value, Decimal):
            return float(value)
        return value

    data = {"product_id": product_id, "saved": row is not None}
    if row is None:
        data.update(DEFAULTS)
        return data
    data.update({k: _norm(getattr(row, k)) for k in ALL_FIELDS})
    return data


def upsert_settings(db: Session, product_id: str, payload: Dict[str, Any]) -> ShippingSettings:
    """
    按 product_id upsert：已有行只更新 payload 中的字段；新行先用 DEFAULTS 填满再覆盖。
    """
    row = get_settings(db, product_id)
    if row is None:
        row = ShippingSettings(product_id=product_id, **DEFAULTS)
        db.add(row)
    for k, v in payload.items():
        if k in ALL_FIELDS:
            setattr(row, k, v)
    db.commit()
    db.refresh(row)
    return row
