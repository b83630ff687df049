# 省 / 城市下拉数据 -> 前台结账页 + 后台城市运费助手（无需登录）

from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from storefront.db.session import get_db
from storefront.repository.geo_repo import get_province, list_cities, list_provinces


router = APIRouter(prefix="/geo", tags=["geo"])


class ProvinceOut(BaseModel):
    code: str
    name: str


class CityOut(BaseModel):
    id: int
    code: Optional[str] = None
    name: str
    province_code: str


@router.get("/provinces", response_model=List[ProvinceOut])
def get_provinces(db: Session = Depends(get_db)):
    return [ProvinceOut(code=p.code, name=p.name) for p in list_provinces(db)]


@router.get("/provinces/{code}/cities", response_model=List[CityOut])
def get_cities(code: str, db: Session = Depends(get_db)):
    if get_province(db, code) is None:
        raise HTTPException(status_code=404, detail="Province not found")
    return [
        CityOut(id=c.id, code=c.code, name=c.name, province_code=c.province_code)
        for c in list_cities(db, code)
    ]
