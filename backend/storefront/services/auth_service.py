
from fastapi import Depends, HTTPException, status, Request, Response
from sqlalchemy.orm import Session
from storefront.db.session import get_db
from storefront.core.security import verify_password, create_access_token, decode_token
from storefront.core.config import settings
from storefront.db.model.user import User
from storefront.repository.user_repo import get_by_username, touch_last_login


COOKIE_NAME = settings.COOKIE_NAME

# 统一 Cookie 策略：
# - 线上：Secure=True，SameSite 取配置（默认 Strict）
# - 本地 http 开发（不走 HTTPS）降级 Secure=False
ENV = getattr(settings, "ENVIRONMENT", "dev")
COOKIE_SECURE_DEFAULT = False if ENV in ("local", "dev", "test") else True
COOKIE_DOMAIN = settings.COOKIE_DOMAIN or None
COOKIE_SAMESITE = settings.COOKIE_SAMESITE


def set_auth_cookie(resp: Response, token: str, max_age: int):
    """只发一枚 HttpOnly 的登录票据 Cookie，max_age 与 JWT 过期时间一致。"""
    resp.set_cookie(
        key=COOKIE_NAME,
        value=token,
        max_age=max_age,
        httponly=True,
        secure=COOKIE_SECURE_DEFAULT,
        samesite=COOKIE_SAMESITE,
        domain=COOKIE_DOMAIN,
        path="/",
    )


def clear_cookie(response: Response):
    response.delete_cookie(key=COOKIE_NAME, domain=COOKIE_DOMAIN, path="/")


'''
后台登录：
    1) 校验用户名/密码（bcrypt）
    2) 签发 JWT 并写入 HttpOnly Cookie，有效期 ACCESS_TOKEN_EXPIRE_MINUTES
    3) 记录 last_login_at
'''
def login_user(response: Response, db: Session, username: str, password: str) -> User:
    user = authenticate_user(db, username, password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    expires_minutes = int(settings.ACCESS_TOKEN_EXPIRE_MINUTES or 480)
    token = create_access_token(
        {"user_id": user.id, "username": user.username},
        expires_minutes=expires_minutes,
    )
    set_auth_cookie(response, token, expires_minutes * 60)
    touch_last_login(db, user)
    return user


def authenticate_user(db: Session, username: str, password: str) -> User | None:
    user = get_by_username(db, username)
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """从 Cookie 取出 JWT 并校验；/admin 下的运费管理接口都依赖它"""
    raw = request.cookies.get(COOKIE_NAME)
    if not raw:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    payload = decode_token(raw)
    if not payload or "user_id" not in payload:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    user = db.get(User, payload["user_id"])
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User disabled")
    return user
