# 环境变量和配置
# pydantic‑settings 读取 .env = core/config.py

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# 本机直接跑 uvicorn 时（不走 Docker），才会用到 model_config.env_file=".env"：
# 此时它会读取 backend/.env

class Settings(BaseSettings):

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="",
        case_sensitive=False,
    )

    # ========= project config =========
    PROJECT_NAME: str = "Storefront Shipping"
    ENVIRONMENT: str = "dev"
    API_PREFIX: str = "/api/v1"
    LOG_LEVEL: str = Field("INFO", alias="LOG_LEVEL")


    # ========= 登录 / 鉴权 / CORS =========
    SECRET_KEY: str = Field("CHANGE_ME", alias="SECRET_KEY")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(480, alias="ACCESS_TOKEN_EXPIRE_MINUTES")   # 8h
    COOKIE_NAME: str = Field("access_token", alias="COOKIE_NAME")
    COOKIE_DOMAIN: Optional[str] = Field(None, alias="COOKIE_DOMAIN")
    COOKIE_SAMESITE: str = Field("Strict", alias="COOKIE_SAMESITE")                     # Strict / Lax
    # 逗号分隔：店铺前台 + 后台的域名都要在这里，否则 POST 会被 Origin 校验拦下
    BACKEND_CORS_ORIGINS: str = "http://localhost:3000"


    # ========= Database =========
    # - 线上连托管 Postgres
    # - 测试用 sqlite+pysqlite:///:memory:
    DATABASE_URL: str = Field(
        default="postgresql+psycopg://store_user:store_pass@db:5432/storefront_dev",
        alias="DATABASE_URL",
    )
    DB_ECHO: bool = Field(False, alias="DB_ECHO")


    # ========= Shipping =========
    # 后台“快速添加省/城市运费”生成的规则优先级
    SHIPPING_QUICK_RATE_PRIORITY: int = Field(100, alias="SHIPPING_QUICK_RATE_PRIORITY")

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.BACKEND_CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()  # 只从环境读取（含 .env）
