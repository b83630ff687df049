# 省 / 城市参考表（后台选城市、报价时按城市名反查 city_id）

from __future__ import annotations
from typing import Optional

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from storefront.db.base import Base


class Province(Base):

    __tablename__ = "provinces"

    code: Mapped[str] = mapped_column(String(16), primary_key=True)    # PB / SD / KP / BA / ICT ...
    name: Mapped[str] = mapped_column(String(64), nullable=False)


class City(Base):

    __tablename__ = "cities"

    id:            Mapped[int]           = mapped_column(Integer, primary_key=True, autoincrement=True)
    code:          Mapped[Optional[str]] = mapped_column(String(32))
    name:          Mapped[str]           = mapped_column(String(128), nullable=False)
    province_code: Mapped[str]           = mapped_column(String(16), ForeignKey("provinces.code"), nullable=False, index=True)
