# 后台登录 / 登出 / 当前用户

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session
from storefront.db.model.user import User
from storefront.db.session import get_db
from storefront.services.auth_service import (
    clear_cookie, get_current_user, login_user,
)


router = APIRouter(prefix="/auth", tags=["auth"])


class LoginInput(BaseModel):
    username: str
    password: str


class AdminOut(BaseModel):
    id: int
    username: str
    full_name: Optional[str] = None
    is_superuser: bool
    last_login_at: Optional[datetime] = None


def _admin_out(user: User) -> AdminOut:
    return AdminOut(
        id=user.id,
        username=user.username,
        full_name=user.full_name,
        is_superuser=bool(user.is_superuser),
        last_login_at=user.last_login_at,
    )


@router.post("/login", response_model=AdminOut)
def login(data: LoginInput, response: Response, db: Session = Depends(get_db)):
    return _admin_out(login_user(response, db, data.username, data.password))


@router.post("/logout")
def logout(response: Response):
    clear_cookie(response)
    return {"ok": True}


@router.get("/me", response_model=AdminOut)
def me(current: User = Depends(get_current_user)):
    return _admin_out(current)
