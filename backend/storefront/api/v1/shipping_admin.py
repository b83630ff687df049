# 后台运费管理：每个商品的运费设置 + 运费规则增删改（需要登录）

from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from storefront.core.config import settings
from storefront.db.session import get_db
from storefront.services.auth_service import get_current_user
from storefront.services.shipping.quote_resolver import ShippingMode
from storefront.utils.clock import as_utc
from storefront.repository.geo_repo import get_city, get_province
from storefront.repository.shipping_settings_repo import get_settings, to_dict, upsert_settings
from storefront.repository.shipping_rule_repo import (
    create_rule, delete_rule, get_rule, list_rules, update_rule,
)


router = APIRouter(
    prefix="/admin/shipping/{product_id}",
    tags=["admin.shipping"],
    dependencies=[Depends(get_current_user)],
)



# ========= Settings =========
class ShippingSettingsIn(BaseModel):
    enable_province_rates: bool = True
    enable_city_rates: bool = False

    fallback_mode: ShippingMode = ShippingMode.FLAT
    fallback_flat_amount: Optional[float] = Field(default=0, ge=0)
    fallback_per_item_amount: Optional[float] = Field(default=0, ge=0)
    fallback_base_amount: Optional[float] = Field(default=0, ge=0)
    fallback_per_kg_amount: Optional[float] = Field(default=0, ge=0)

    free_over_subtotal: Optional[float] = Field(default=None, ge=0)
    cod_fee: Optional[float] = Field(default=0, ge=0)


class ShippingSettingsPartial(BaseModel):
    enable_province_rates: Optional[bool] = None
    enable_city_rates: Optional[bool] = None

    fallback_mode: Optional[ShippingMode] = None
    fallback_flat_amount: Optional[float] = Field(default=None, ge=0)
    fallback_per_item_amount: Optional[float] = Field(default=None, ge=0)
    fallback_base_amount: Optional[float] = Field(default=None, ge=0)
    fallback_per_kg_amount: Optional[float] = Field(default=None, ge=0)

    free_over_subtotal: Optional[float] = Field(default=None, ge=0)
    cod_fee: Optional[float] = Field(default=None, ge=0)


class ShippingSettingsOut(ShippingSettingsIn):
    product_id: str
    saved: bool          # False = 还没保存过，返回的是默认值


@router.get("/settings", response_model=ShippingSettingsOut)
def get_shipping_settings(product_id: str, response: Response, db: Session = Depends(get_db)):
    response.headers["Cache-Control"] = "no-store"
    return ShippingSettingsOut.model_validate(to_dict(get_settings(db, product_id), product_id))


@router.put("/settings", response_model=ShippingSettingsOut)
def put_shipping_settings(
    product_id: str,
    payload: ShippingSettingsIn,
    response: Response,
    db: Session = Depends(get_db),
):
    response.headers["Cache-Control"] = "no-store"
    row = upsert_settings(db, product_id, payload.model_dump(mode="json"))
    return ShippingSettingsOut.model_validate(to_dict(row, product_id))


@router.patch("/settings", response_model=ShippingSettingsOut)
def patch_shipping_settings(
    product_id: str,
    payload: ShippingSettingsPartial,
    response: Response,
    db: Session = Depends(get_db),
):
    response.headers["Cache-Control"] = "no-store"
    # free_over_subtotal 允许显式传 null 关闭满额包邮，所以用 exclude_unset
    update_data = payload.model_dump(mode="json", exclude_unset=True)
    update_data = {k: v for k, v in update_data.items() if v is not None or k == "free_over_subtotal"}
    row = upsert_settings(db, product_id, update_data)
    return ShippingSettingsOut.model_validate(to_dict(row, product_id))



# ========= Rules =========
class RuleIn(BaseModel):
    province_code: Optional[str] = None
    city_id: Optional[int] = None
    enabled: bool = True
    priority: int = 0
    mode: ShippingMode = ShippingMode.FLAT

    flat_amount: Optional[float] = Field(default=None, ge=0)
    per_item_amount: Optional[float] = Field(default=None, ge=0)
    base_amount: Optional[float] = Field(default=None, ge=0)
    per_kg_amount: Optional[float] = Field(default=None, ge=0)

    min_subtotal: Optional[float] = Field(default=None, ge=0)
    coupon_code: Optional[str] = None
    eta_days: Optional[int] = Field(default=None, ge=0)
    active_from: Optional[datetime] = None
    active_to: Optional[datetime] = None


class RulePartial(BaseModel):
    province_code: Optional[str] = None
    city_id: Optional[int] = None
    enabled: Optional[bool] = None
    priority: Optional[int] = None
    mode: Optional[ShippingMode] = None

    flat_amount: Optional[float] = Field(default=None, ge=0)
    per_item_amount: Optional[float] = Field(default=None, ge=0)
    base_amount: Optional[float] = Field(default=None, ge=0)
    per_kg_amount: Optional[float] = Field(default=None, ge=0)

    min_subtotal: Optional[float] = Field(default=None, ge=0)
    coupon_code: Optional[str] = None
    eta_days: Optional[int] = Field(default=None, ge=0)
    active_from: Optional[datetime] = None
    active_to: Optional[datetime] = None


class RuleOut(RuleIn):
    id: int
    product_id: str


class ProvinceRateIn(BaseModel):
    province_code: str = Field(min_length=1)
    flat_amount: float = Field(default=0, ge=0)
    eta_days: Optional[int] = Field(default=None, ge=0)


class CityRateIn(BaseModel):
    city_id: int
    flat_amount: float = Field(default=0, ge=0)
    eta_days: Optional[int] = Field(default=None, ge=0)


@router.get("/rules", response_model=List[RuleOut])
def get_rules(product_id: str, db: Session = Depends(get_db)):
    return [_build_rule_out(r) for r in list_rules(db, product_id)]


@router.post("/rules", response_model=RuleOut, status_code=status.HTTP_201_CREATED)
def post_rule(product_id: str, payload: RuleIn, db: Session = Depends(get_db)):
    fields = _normalize_rule_fields(payload.model_dump())
    _validate_rule(fields)
    _check_scope_refs(db, fields)
    return _build_rule_out(create_rule(db, product_id, fields))


@router.patch("/rules/{rule_id}", response_model=RuleOut)
def patch_rule(product_id: str, rule_id: int, payload: RulePartial, db: Session = Depends(get_db)):
    row = get_rule(db, product_id, rule_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Rule not found")

    patch = _normalize_rule_fields(payload.model_dump(exclude_unset=True))
    # enabled/priority/mode 不允许置空
    for key in ("enabled", "priority", "mode"):
        if key in patch and patch[key] is None:
            patch.pop(key)

    merged = {**_build_rule_out(row).model_dump(), **patch}
    _validate_rule(merged)
    _check_scope_refs(db, merged)
    return _build_rule_out(update_rule(db, row, patch))


@router.delete("/rules/{rule_id}")
def remove_rule(product_id: str, rule_id: int, db: Session = Depends(get_db)):
    row = get_rule(db, product_id, rule_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Rule not found")
    delete_rule(db, row)
    return {"ok": True}


'''
快速添加省运费：后台勾选“按省计费”后，选省 + 填固定金额，一键生成 flat 规则
'''
@router.post("/rules/province-rate", response_model=RuleOut, status_code=status.HTTP_201_CREATED)
def post_province_rate(product_id: str, payload: ProvinceRateIn, db: Session = Depends(get_db)):
    province = get_province(db, payload.province_code.strip())
    if province is None:
        raise HTTPException(status_code=404, detail="Province not found")
    fields = {
        "mode": ShippingMode.FLAT.value,
        "province_code": province.code,
        "city_id": None,
        "flat_amount": payload.flat_amount,
        "eta_days": payload.eta_days,
        "priority": settings.SHIPPING_QUICK_RATE_PRIORITY,
        "enabled": True,
    }
    return _build_rule_out(create_rule(db, product_id, fields))


'''
快速添加城市运费：城市必须存在，省份从城市带出
'''
@router.post("/rules/city-rate", response_model=RuleOut, status_code=status.HTTP_201_CREATED)
def post_city_rate(product_id: str, payload: CityRateIn, db: Session = Depends(get_db)):
    city = get_city(db, payload.city_id)
    if city is None:
        raise HTTPException(status_code=404, detail="City not found")
    fields = {
        "mode": ShippingMode.FLAT.value,
        "province_code": city.province_code,
        "city_id": city.id,
        "flat_amount": payload.flat_amount,
        "eta_days": payload.eta_days,
        "priority": settings.SHIPPING_QUICK_RATE_PRIORITY,
        "enabled": True,
    }
    return _build_rule_out(create_rule(db, product_id, fields))




def _normalize_rule_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(data)
    if isinstance(out.get("mode"), ShippingMode):
        out["mode"] = out["mode"].value
    for key in ("province_code", "coupon_code"):
        if key in out and out[key] is not None:
            out[key] = out[key].strip() or None
    for key in ("active_from", "active_to"):
        if out.get(key) is not None:
            out[key] = as_utc(out[key])
    return out


def _validate_rule(fields: Dict[str, Any]) -> None:
    if ShippingMode.parse(fields.get("mode")) is ShippingMode.COUPON_FREE and not fields.get("coupon_code"):
        raise HTTPException(status_code=422, detail="coupon_code required for coupon_free rules")
    active_from, active_to = fields.get("active_from"), fields.get("active_to")
    if active_from and active_to and as_utc(active_from) > as_utc(active_to):
        raise HTTPException(status_code=422, detail="active_from must not be after active_to")


'''
省/城市必须存在（与快速添加接口一致）；城市规则如果带了省份，必须是该城市所属的省
'''
def _check_scope_refs(db: Session, fields: Dict[str, Any]) -> None:
    province_code, city_id = fields.get("province_code"), fields.get("city_id")
    if province_code is not None and get_province(db, province_code) is None:
        raise HTTPException(status_code=404, detail="Province not found")
    if city_id is None:
        return
    city = get_city(db, city_id)
    if city is None:
        raise HTTPException(status_code=404, detail="City not found")
    if province_code is not None and city.province_code != province_code:
        raise HTTPException(status_code=422, detail="city does not belong to province_code")


def _decimal_to_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    return None


def _build_rule_out(row: Any) -> RuleOut:
    return RuleOut(
        id=row.id,
        product_id=row.product_id,
        province_code=row.province_code,
        city_id=row.city_id,
        enabled=bool(row.enabled),
        priority=row.priority or 0,
        mode=ShippingMode.parse(row.mode) or ShippingMode.FLAT,
        flat_amount=_decimal_to_float(row.flat_amount),
        per_item_amount=_decimal_to_float(row.per_item_amount),
        base_amount=_decimal_to_float(row.base_amount),
        per_kg_amount=_decimal_to_float(row.per_kg_amount),
        min_subtotal=_decimal_to_float(row.min_subtotal),
        coupon_code=row.coupon_code,
        eta_days=row.eta_days,
        active_from=row.active_from,
        active_to=row.active_to,
    )
