"""共享 fixture：内存 sqlite 会话 + 覆盖 get_db / get_current_user 的 TestClient。"""

import os

# 必须在导入 storefront 之前设置，Settings 在导入时读取环境变量
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")

from decimal import Decimal
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.db.base import Base
from storefront.db.model import City, Province, ShippingRule, ShippingSettings
from storefront.db.session import get_db
from storefront.main import app
from storefront.services.auth_service import get_current_user


@pytest.fixture
def db_session() -> Session:
    """每个测试一份独立的内存库，表结构直接来自 Base.metadata。"""
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    # 与 Postgres 一致，sqlite 也校验外键
    @event.listens_for(engine, "connect")
    def _enable_fk(dbapi_conn, _record):
        dbapi_conn.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(engine)
    TestingSessionLocal = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def admin_client(client):
    # 绕过 Cookie 鉴权
    app.dependency_overrides[get_current_user] = lambda: SimpleNamespace(id=1, username="tester")
    return client


@pytest.fixture
def geo(db_session):
    """两省三城：PB(Lahore, Multan) / SD(Karachi)。"""
    db_session.add_all([
        Province(code="PB", name="Punjab"),
        Province(code="SD", name="Sindh"),
    ])
    db_session.flush()
    lahore = City(code="LHE", name="Lahore", province_code="PB")
    multan = City(code="MUX", name="Multan", province_code="PB")
    karachi = City(code="KHI", name="Karachi", province_code="SD")
    db_session.add_all([lahore, multan, karachi])
    db_session.commit()
    return SimpleNamespace(lahore=lahore, multan=multan, karachi=karachi)


@pytest.fixture
def make_rule(db_session):
    def _make(product_id: str = "tracker-1", **fields) -> ShippingRule:
        fields.setdefault("enabled", True)
        fields.setdefault("priority", 0)
        fields.setdefault("mode", "flat")
        for key in ("flat_amount", "per_item_amount", "base_amount", "per_kg_amount", "min_subtotal"):
            if fields.get(key) is not None:
                fields[key] = Decimal(str(fields[key]))
        row = ShippingRule(product_id=product_id, **fields)
        db_session.add(row)
        db_session.commit()
        return row

    return _make


@pytest.fixture
def make_settings(db_session):
    def _make(product_id: str = "tracker-1", **fields) -> ShippingSettings:
        fields.setdefault("fallback_mode", "flat")
        row = ShippingSettings(product_id=product_id, **fields)
        db_session.add(row)
        db_session.commit()
        return row

    return _make
