from fastapi import APIRouter

# 非受保护路由（前台结账页直接调用）
from .routes_health import router as health_router
from .auth import router as auth_router
from .geo import router as geo_router
from .shipping_quote import router as shipping_quote_router


# 需要登录的后台路由（router 自己带 get_current_user 依赖）
from .shipping_admin import router as shipping_admin_router


api_v1 = APIRouter()
api_v1.include_router(health_router)          # /health 不需要登录
api_v1.include_router(auth_router)            # /auth 登录相关
api_v1.include_router(geo_router)             # /geo 省市下拉
api_v1.include_router(shipping_quote_router)  # /shipping/quote

# --- 需要登录的接口 ---
api_v1.include_router(shipping_admin_router)  # /admin/shipping/{product_id}/...
