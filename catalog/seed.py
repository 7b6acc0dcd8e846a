"""
Database bootstrap and sample data.

- Creates tables if missing
- Ensures the default admin account and reference categories exist
- Optionally loads a handful of sample products

Usage:
  python -m catalog.seed [--sample-products]
"""
import argparse
import logging

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from . import config, models
from .auth import hash_password
from .crud import round_amount
from .db import Base

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    "UI Kits",
    "Templates",
    "Icons",
    "Fonts",
    "Graphics",
    "Code Libraries",
    "Plugins",
    "Themes",
    "Tools",
    "Other",
]

SAMPLE_PRODUCTS = [
    {
        "name": "React UI Kit Pro",
        "license": "MIT",
        "description": "A comprehensive React component library with modern design patterns, "
        "TypeScript support, and extensive customization options.",
        "rating": 5,
        "price": "49.99",
        "category": "UI Kits",
        "main_image_url": "https://images.unsplash.com/photo-1633356122544-f134324a6cee?w=300&h=200&fit=crop",
        "gallery_images": [
            "https://images.unsplash.com/photo-1633356122544-f134324a6cee?w=400&h=300&fit=crop",
            "https://images.unsplash.com/photo-1555066931-4365d14bab8c?w=400&h=300&fit=crop",
        ],
        "feature_1": "150+ Components",
        "feature_2": "TypeScript Support",
        "feature_3": "8 Themes",
        "feature_4": "Responsive Design",
        "feature_5": "Dark Mode",
        "requirements": "React 18+, Node.js 16+",
        "version": "2.1.0",
        "file_size": "15.2 MB",
        "download_count": 1250,
        "is_featured": True,
        "demo_url": "https://react-ui-kit-demo.example.com",
        "documentation_url": "https://docs.react-ui-kit.example.com",
        "support_email": "support@react-ui-kit.example.com",
        "tags": "react, typescript, ui, components",
    },
    {
        "name": "Vue Dashboard Template",
        "license": "Commercial",
        "description": "Professional admin dashboard template built with Vue 3, featuring charts, "
        "tables, and responsive design.",
        "rating": 4,
        "price": "79.99",
        "category": "Templates",
        "main_image_url": "https://images.unsplash.com/photo-1551288049-bebda4e38f71?w=300&h=200&fit=crop",
        "gallery_images": [
            "https://images.unsplash.com/photo-1551288049-bebda4e38f71?w=400&h=300&fit=crop",
            "https://images.unsplash.com/photo-1460925895917-afdab827c52f?w=400&h=300&fit=crop",
        ],
        "feature_1": "25 Pages",
        "feature_2": "12 Chart Types",
        "feature_3": "Responsive Layout",
        "feature_4": "Dark Mode",
        "feature_5": "Real-time Data",
        "requirements": "Vue 3+, Node.js 16+",
        "version": "1.5.2",
        "file_size": "8.7 MB",
        "download_count": 890,
        "is_featured": True,
        "demo_url": "https://vue-dashboard-demo.example.com",
        "documentation_url": "https://docs.vue-dashboard.example.com",
        "support_email": "support@vue-dashboard.example.com",
        "tags": "vue, dashboard, admin, charts",
    },
    {
        "name": "Node.js API Starter",
        "license": "Apache 2.0",
        "description": "Production-ready Node.js API boilerplate with authentication, database "
        "integration, and comprehensive testing.",
        "rating": 5,
        "price": "0.00",
        "category": "Code Libraries",
        "main_image_url": "https://images.unsplash.com/photo-1627398242454-45a1465c2479?w=300&h=200&fit=crop",
        "gallery_images": [
            "https://images.unsplash.com/photo-1627398242454-45a1465c2479?w=400&h=300&fit=crop",
        ],
        "feature_1": "JWT Authentication",
        "feature_2": "MongoDB Integration",
        "feature_3": "Jest Testing",
        "feature_4": "Swagger Documentation",
        "feature_5": "Docker Support",
        "requirements": "Node.js 18+, MongoDB 5+",
        "version": "3.0.1",
        "file_size": "2.1 MB",
        "download_count": 2150,
        "is_featured": False,
        "tags": "nodejs, api, boilerplate",
    },
]


def seed_defaults(db: Session) -> None:
    """Insert the default admin and categories unless they already exist."""
    settings = config.get_settings()
    admin = db.query(models.User).filter(models.User.email == settings.default_admin_email).first()
    if not admin:
        db.add(
            models.User(
                email=settings.default_admin_email,
                password_hash=hash_password(settings.default_admin_password),
                is_admin=True,
            )
        )
        logger.info("Default admin created: %s", settings.default_admin_email)

    existing = {name for (name,) in db.query(models.Category.name).all()}
    for name in DEFAULT_CATEGORIES:
        if name not in existing:
            db.add(models.Category(name=name, description=f"{name} category for products"))
    db.commit()


def seed_sample_products(db: Session) -> int:
    existing = {name for (name,) in db.query(models.Product.name).all()}
    added = 0
    for sample in SAMPLE_PRODUCTS:
        if sample["name"] in existing:
            continue
        data = dict(sample, price=round_amount(sample["price"]))
        db.add(models.Product(**data))
        added += 1
    db.commit()
    logger.info("Seeded %d sample products", added)
    return added


def init_db(engine: Engine, sample_products: bool = False) -> None:
    """Create tables idempotently and seed reference data."""
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)
    with factory() as db:
        seed_defaults(db)
        if sample_products:
            seed_sample_products(db)
    logger.info("Database initialized")


def main():
    parser = argparse.ArgumentParser(description="Create tables and seed catalog data")
    parser.add_argument("--sample-products", action="store_true", help="Also load sample products")
    args = parser.parse_args()

    from .db import engine

    logging.basicConfig(level=config.get_settings().log_level)
    init_db(engine, sample_products=args.sample_products)


if __name__ == "__main__":
    main()
