from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from storefront.core.config import settings
from storefront.core.errors import ShippingError
from storefront.core.logging import configure_logging
from storefront.db.session import dispose_engine
from storefront.api.v1 import api_v1

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("%s started (env=%s)", settings.PROJECT_NAME, settings.ENVIRONMENT)
    yield
    dispose_engine()
    logger.info("%s stopped", settings.PROJECT_NAME)


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

# 从环境读取前端白名单（逗号分隔）。本地可配：
# BACKEND_CORS_ORIGINS=http://localhost:3000,https://admin.local.test:3000
origins = settings.cors_origins


app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,     # 店铺前台 + 后台域名
    allow_credentials=True,    # 后台登录 Cookie 需要
    allow_methods=["GET","POST","PUT","PATCH","DELETE","OPTIONS"],
    allow_headers=["*"],
    )


# Origin 校验（仅对改数据方法）
TRUSTED = set(origins)

@app.middleware("http")
async def origin_check(request: Request, call_next):
    if request.method in {"POST", "PUT", "PATCH", "DELETE"}:
        origin = request.headers.get("origin")
        # 没有 Origin（如 curl/健康检查/服务端调用）则放行
        if not origin:
            return await call_next(request)
        # 有 Origin 但不在白名单里，才拒绝；middleware 里抛 HTTPException 不会被处理，直接返回 403
        if origin not in TRUSTED:
            return JSONResponse(status_code=403, content={"detail": "Bad Origin"})

    return await call_next(request)


# 报价相关错误统一返回 {"error": message}：ValidationError → 400，UpstreamError → 500
@app.exception_handler(ShippingError)
async def shipping_error_handler(request: Request, exc: ShippingError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


app.include_router(api_v1, prefix=settings.API_PREFIX)

# 根路径健康探活（方便测试或 Docker 健康检查）
@app.get("/")
def root():
    return {
        "app": settings.PROJECT_NAME,
        "env": settings.ENVIRONMENT,
        "ok": True
    }
