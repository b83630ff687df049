# 运费规则表 + 每个商品的运费设置

from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Numeric, String, func, text
from sqlalchemy.orm import Mapped, mapped_column
from storefront.db.base import Base


"""
   运费规则（按商品）
     - 作用范围：city_id 有值 = 城市规则；仅 province_code = 省规则；都为空 = 全局规则
     - mode: free / coupon_free / flat / per_item / per_kg，金额字段按 mode 取用
     - active_from / active_to：有效期（两端都包含）
"""
class ShippingRule(Base):

    __tablename__ = "shipping_rules"

    id:            Mapped[int]           = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id:    Mapped[str]           = mapped_column(String(64), nullable=False, index=True)
    province_code: Mapped[Optional[str]] = mapped_column(String(16), ForeignKey("provinces.code"), nullable=True)
    city_id:       Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("cities.id"), nullable=True)

    enabled:  Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("true"), default=True)
    priority: Mapped[int]  = mapped_column(Integer, nullable=False, server_default=text("0"), default=0)
    mode:     Mapped[str]  = mapped_column(String(16), nullable=False, default="flat")

    flat_amount:     Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    per_item_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    base_amount:     Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    per_kg_amount:   Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))

    min_subtotal: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    coupon_code:  Mapped[Optional[str]]     = mapped_column(String(64))
    eta_days:     Mapped[Optional[int]]     = mapped_column(Integer)

    active_from: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    active_to:   Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        # 报价接口按 product_id + enabled 取全部候选规则
        Index("ix_shipping_rules_product_enabled", "product_id", "enabled"),
    )


"""
   运费设置（每个商品最多一行，product_id 即主键）
     - 没有规则命中时走 fallback_mode
     - free_over_subtotal：兜底时满额包邮
     - cod_fee：货到付款手续费，任何路径最后都加上
"""
class ShippingSettings(Base):

    __tablename__ = "shipping_settings"

    product_id: Mapped[str] = mapped_column(String(64), primary_key=True)

    enable_province_rates: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("true"), default=True)
    enable_city_rates:     Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=text("false"), default=False)

    fallback_mode:            Mapped[str]               = mapped_column(String(16), nullable=False, default="flat")
    fallback_flat_amount:     Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    fallback_per_item_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    fallback_base_amount:     Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    fallback_per_kg_amount:   Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))

    free_over_subtotal: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    cod_fee:            Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
