from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from storefront.db.model.geo import City, Province


def list_provinces(db: Session) -> List[Province]:
    return list(db.scalars(select(Province).order_by(Province.name.asc())))


def list_cities(db: Session, province_code: str) -> List[City]:
    stmt = select(City).where(City.province_code == province_code).order_by(City.name.asc())
    return list(db.scalars(stmt))


def get_province(db: Session, code: str) -> Optional[Province]:
    return db.get(Province, code)


def get_city(db: Session, city_id: int) -> Optional[City]:
    return db.get(City, city_id)


def find_city_id(db: Session, province_code: str, city_name: str) -> Optional[int]:
    """
    城市名大小写不敏感的精确匹配（不做模糊匹配），限定在该省内。
    同名多条时取 id 最小的一条。
    """
    name = (city_name or "").strip()
    if not name or not province_code:
        return None
    stmt = (
        select(City.id)
        .where(City.province_code == province_code, func.lower(City.name) == name.lower())
        .order_by(City.id.asc())
        .limit(1)
    )
    return db.scalar(stmt)
