# 聚合导入所有模型，供 Alembic 发现

from .geo import Province, City
from .shipping import ShippingRule, ShippingSettings
from .user import User

__all__ = [
    # geo
    "Province", "City",
    # shipping
    "ShippingRule", "ShippingSettings",
    # others
    "User",
]
