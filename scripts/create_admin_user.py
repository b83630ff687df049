import argparse
import logging

from storefront.core.logging import configure_logging
from storefront.core.security import get_password_hash
from storefront.db.session import session_scope
from storefront.repository.user_repo import get_by_username, create_user


# 在容器里运行一次：python -m scripts.create_admin_user --username admin --password '...'
# （确保 PYTHONPATH 包含 backend/，或已 pip install -e .）

logger = logging.getLogger("scripts.create_admin_user")


def main():
    configure_logging()
    parser = argparse.ArgumentParser(description="Create a back-office admin user")
    parser.add_argument("--username", default="admin")
    parser.add_argument("--password", required=True)
    parser.add_argument("--full-name", default="Store Admin")
    args = parser.parse_args()

    with session_scope() as db:
        if get_by_username(db, args.username):
            logger.info("User %s exists", args.username)
            return
        create_user(db, args.username, get_password_hash(args.password), full_name=args.full_name, is_superuser=True)
        logger.info("Admin %s created", args.username)


if __name__ == "__main__":
    main()
