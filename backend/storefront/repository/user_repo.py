from sqlalchemy.orm import Session
from typing import Optional
from storefront.db.model.user import User
from storefront.utils.clock import now_utc


def get_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()


def create_user(db: Session, username: str, hashed_password: str,
                full_name: str | None = None, is_superuser: bool = False) -> User:
    user = User(
        username=username,
        hashed_password=hashed_password,
        full_name=full_name,
        is_superuser=is_superuser,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def touch_last_login(db: Session, user: User) -> None:
    user.last_login_at = now_utc()
    db.commit()
