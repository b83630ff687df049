import logging

from sqlalchemy import select

from storefront.core.logging import configure_logging
from storefront.db.model.geo import City, Province
from storefront.db.session import session_scope


# 初始化省/城市参考数据（幂等，可重复执行）：python -m scripts.seed_geo

logger = logging.getLogger("scripts.seed_geo")


PROVINCES = {
    "PB": ("Punjab", ["Lahore", "Faisalabad", "Rawalpindi", "Multan", "Gujranwala", "Sialkot", "Bahawalpur"]),
    "SD": ("Sindh", ["Karachi", "Hyderabad", "Sukkur", "Larkana", "Nawabshah"]),
    "KP": ("Khyber Pakhtunkhwa", ["Peshawar", "Mardan", "Abbottabad", "Swat", "Kohat"]),
    "BA": ("Balochistan", ["Quetta", "Gwadar", "Turbat", "Khuzdar"]),
    "ICT": ("Islamabad Capital Territory", ["Islamabad"]),
    "GB": ("Gilgit-Baltistan", ["Gilgit", "Skardu"]),
    "AJK": ("Azad Jammu and Kashmir", ["Muzaffarabad", "Mirpur"]),
}


def main():
    configure_logging()
    with session_scope() as db:
        created = 0
        for code, (name, cities) in PROVINCES.items():
            if db.get(Province, code) is None:
                db.add(Province(code=code, name=name))
                db.flush()
            existing = set(db.scalars(select(City.name).where(City.province_code == code)))
            for city in cities:
                if city not in existing:
                    db.add(City(name=city, province_code=code))
                    created += 1
        db.commit()
        logger.info("Seeded %d provinces, %d new cities", len(PROVINCES), created)


if __name__ == "__main__":
    main()
