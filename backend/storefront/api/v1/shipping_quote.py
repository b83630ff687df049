# 运费报价接口 -> 前台结账页 / 落地页下单抽屉调用（无需登录）

from __future__ import annotations
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from storefront.db.session import get_db
from storefront.services.shipping.quote_service import quote_shipping


router = APIRouter(tags=["shipping"])


class QuoteOut(BaseModel):
    amount: float
    eta_days: Optional[int] = None


'''
POST /shipping/quote
  body: { product_id, province_code?, city?, coupon?, items:[{variant_id, qty}], subtotal, total_weight_kg? }
  - 缺 product_id → 400 {"error": "product_id required"}（ValidationError，由 main.py 统一处理）
  - 规则库读取失败 → 500 {"error": ...}（UpstreamError）
  body 用 Any 接收：字段不全/类型不对时按 0 兜底，而不是 422
'''
@router.post("/shipping/quote", response_model=QuoteOut)
def post_quote(
    response: Response,
    payload: Any = Body(default=None),
    db: Session = Depends(get_db),
):
    response.headers["Cache-Control"] = "no-store"
    quote = quote_shipping(db, payload)
    return QuoteOut(amount=float(quote.amount), eta_days=quote.eta_days)
