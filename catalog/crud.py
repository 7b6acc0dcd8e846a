import logging
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Tuple

from sqlalchemy import delete, distinct, func, or_, select, update
from sqlalchemy.dialects import mysql, postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from . import config, models, schemas
from .auth import hash_password, verify_password
from .errors import AuthenticationRequired, Conflict, Forbidden, NotFound, ValidationFailed
from .utils import sanitize_input

logger = logging.getLogger(__name__)

RECENT_DAYS = 30

# Business rule: prices stored rounded to 2 decimals, non-negative

def round_amount(value: Decimal) -> Decimal:
    return Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


# -------------------- Users --------------------

def get_user(db: Session, user_id: int) -> models.User | None:
    return db.get(models.User, user_id)


def get_user_by_email(db: Session, email: str) -> models.User | None:
    return db.query(models.User).filter(models.User.email == email).first()


def create_user(db: Session, user: schemas.RegisterRequest) -> models.User:
    if user.is_admin and not config.get_settings().allow_admin_registration:
        raise Forbidden("Admin registration is disabled")
    if get_user_by_email(db, user.email):
        raise Conflict("User already exists")

    db_user = models.User(
        email=user.email,
        password_hash=hash_password(user.password),
        is_admin=user.is_admin,
    )
    db.add(db_user)
    try:
        db.commit()
    except IntegrityError as e:
        # lost a race against a concurrent registration for the same email
        db.rollback()
        raise Conflict("User already exists") from e
    db.refresh(db_user)
    logger.info("User registered: %s (id=%s, admin=%s)", db_user.email, db_user.id, db_user.is_admin)
    return db_user


def authenticate(db: Session, email: str, password: str) -> models.User:
    user = get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        logger.warning("Failed login attempt for %s", email)
        raise AuthenticationRequired("Invalid email or password")
    return user


def list_users(db: Session) -> List[models.User]:
    return db.query(models.User).order_by(models.User.created_at.desc(), models.User.id.desc()).all()


# -------------------- Products --------------------

def list_products(
    db: Session,
    search: Optional[str] = None,
    license: Optional[str] = None,
    rating: Optional[int] = None,
    category: Optional[str] = None,
    featured: Optional[bool] = None,
) -> List[models.Product]:
    query = db.query(models.Product)

    term = sanitize_input(search)
    if term:
        query = query.filter(
            or_(
                models.Product.name.icontains(term, autoescape=True),
                models.Product.description.icontains(term, autoescape=True),
                models.Product.category.icontains(term, autoescape=True),
            )
        )
    if license:
        query = query.filter(models.Product.license == license)
    if rating is not None:
        query = query.filter(models.Product.rating == rating)
    if category:
        query = query.filter(models.Product.category == category)
    if featured is not None:
        query = query.filter(models.Product.is_featured == featured)

    return query.order_by(
        models.Product.is_featured.desc(),
        models.Product.created_at.desc(),
        models.Product.id.desc(),
    ).all()


def get_product(db: Session, product_id: int) -> models.Product:
    product = db.get(models.Product, product_id)
    if not product:
        raise NotFound("Product not found")
    return product


def view_product(db: Session, product_id: int) -> models.Product:
    """Fetch a product for display, counting the view as a download."""
    result = db.execute(
        update(models.Product)
        .where(models.Product.id == product_id)
        .values(download_count=models.Product.download_count + 1)
    )
    if result.rowcount == 0:
        db.rollback()
        raise NotFound("Product not found")
    db.commit()
    return get_product(db, product_id)


def create_product(db: Session, product: schemas.ProductCreate) -> models.Product:
    data = product.model_dump()
    data["price"] = round_amount(data["price"])
    db_product = models.Product(**data)
    db.add(db_product)
    db.commit()
    db.refresh(db_product)
    logger.info("Product created: %s (id=%s)", db_product.name, db_product.id)
    return db_product


def update_product(db: Session, product_id: int, payload: schemas.ProductUpdate) -> models.Product:
    product = get_product(db, product_id)
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationFailed("No valid fields to update")
    if "price" in changes:
        changes["price"] = round_amount(changes["price"])
    for field, value in changes.items():
        setattr(product, field, value)
    db.add(product)
    db.commit()
    db.refresh(product)
    logger.info("Product %s updated: %s", product.id, ", ".join(sorted(changes)))
    return product


def delete_product(db: Session, product_id: int) -> None:
    product = get_product(db, product_id)
    db.delete(product)
    db.commit()
    logger.info("Product %s deleted", product_id)


def list_categories(db: Session) -> List[models.Category]:
    return db.query(models.Category).order_by(models.Category.name).all()


# -------------------- Cart --------------------

def list_cart(db: Session, user_id: int) -> List[models.CartItem]:
    return (
        db.query(models.CartItem)
        .options(joinedload(models.CartItem.product))
        .filter(models.CartItem.user_id == user_id)
        .order_by(models.CartItem.created_at.desc(), models.CartItem.id.desc())
        .all()
    )


def _cart_upsert(dialect: str, values: dict):
    """Insert a cart row or add to the existing row's quantity, in one statement."""
    table = models.CartItem.__table__
    if dialect in ("mysql", "mariadb"):
        stmt = mysql.insert(table).values(**values)
        return stmt.on_duplicate_key_update(
            quantity=table.c.quantity + stmt.inserted.quantity,
            updated_at=stmt.inserted.updated_at,
        )
    if dialect == "postgresql":
        stmt = postgresql.insert(table).values(**values)
    else:
        stmt = sqlite.insert(table).values(**values)
    return stmt.on_conflict_do_update(
        index_elements=[table.c.user_id, table.c.product_id],
        set_={
            "quantity": table.c.quantity + stmt.excluded.quantity,
            "updated_at": stmt.excluded.updated_at,
        },
    )


def add_to_cart(db: Session, user_id: int, item: schemas.CartAdd) -> Tuple[models.CartItem, bool]:
    """Add ``item`` to the user's cart.

    Returns the cart row and whether it was newly created. An existing row for
    the same product has its quantity increased instead of being duplicated.
    """
    if get_user(db, user_id) is None:
        raise AuthenticationRequired("User not found", clear_session=True)
    get_product(db, item.product_id)

    now = models.utcnow()
    stmt = _cart_upsert(
        db.get_bind().dialect.name,
        {
            "user_id": user_id,
            "product_id": item.product_id,
            "quantity": item.quantity,
            "created_at": now,
            "updated_at": now,
        },
    )
    try:
        db.execute(stmt)
        db.commit()
    except IntegrityError:
        # user or product removed since the checks above
        db.rollback()
        if get_user(db, user_id) is None:
            raise AuthenticationRequired("User not found", clear_session=True)
        raise NotFound("Product not found")

    cart_item = db.execute(
        select(models.CartItem)
        .where(models.CartItem.user_id == user_id, models.CartItem.product_id == item.product_id)
        .execution_options(populate_existing=True)
    ).scalar_one()
    # an update keeps the original created_at, so only our own insert carries `now`
    created = cart_item.created_at == now
    return cart_item, created


def _owned_cart_item(db: Session, user_id: int, item_id: int) -> models.CartItem:
    cart_item = (
        db.query(models.CartItem)
        .filter(models.CartItem.id == item_id, models.CartItem.user_id == user_id)
        .first()
    )
    if not cart_item:
        raise NotFound("Cart item not found")
    return cart_item


def update_cart_item(db: Session, user_id: int, item_id: int, quantity: int) -> models.CartItem:
    cart_item = _owned_cart_item(db, user_id, item_id)
    cart_item.quantity = quantity
    db.add(cart_item)
    db.commit()
    db.refresh(cart_item)
    return cart_item


def remove_cart_item(db: Session, user_id: int, item_id: int) -> None:
    cart_item = _owned_cart_item(db, user_id, item_id)
    db.delete(cart_item)
    db.commit()


def clear_cart(db: Session, user_id: int) -> int:
    result = db.execute(delete(models.CartItem).where(models.CartItem.user_id == user_id))
    db.commit()
    logger.info("Cart cleared for user %s (%d items)", user_id, result.rowcount)
    return result.rowcount


def cart_summary(db: Session, user_id: int) -> schemas.CartSummary:
    row = db.execute(
        select(
            func.count(models.CartItem.id),
            func.coalesce(func.sum(models.CartItem.quantity), 0),
            func.coalesce(func.sum(models.CartItem.quantity * models.Product.price), 0),
        )
        .join(models.Product, models.CartItem.product_id == models.Product.id)
        .where(models.CartItem.user_id == user_id)
    ).one()
    total_items, total_quantity, total_price = row
    return schemas.CartSummary(
        total_items=int(total_items or 0),
        total_quantity=int(total_quantity or 0),
        total_price=float(round_amount(Decimal(str(total_price or 0)))),
    )


# -------------------- Admin --------------------

def admin_stats(db: Session) -> schemas.AdminStats:
    cutoff = models.utcnow() - timedelta(days=RECENT_DAYS)
    User, Product = models.User, models.Product

    total_users = db.query(func.count(User.id)).scalar() or 0
    admin_users = db.query(func.count(User.id)).filter(User.is_admin.is_(True)).scalar() or 0
    recent_users = db.query(func.count(User.id)).filter(User.created_at >= cutoff).scalar() or 0

    total_products = db.query(func.count(Product.id)).scalar() or 0
    featured = db.query(func.count(Product.id)).filter(Product.is_featured.is_(True)).scalar() or 0
    avg_rating = db.query(func.avg(Product.rating)).scalar()
    recent_products = db.query(func.count(Product.id)).filter(Product.created_at >= cutoff).scalar() or 0
    free = db.query(func.count(Product.id)).filter(Product.price == 0).scalar() or 0
    license_types = db.query(func.count(distinct(Product.license))).scalar() or 0

    return schemas.AdminStats(
        users=schemas.UserStats(
            total=total_users,
            admins=admin_users,
            regular=total_users - admin_users,
            recent=recent_users,
        ),
        products=schemas.ProductStats(
            total=total_products,
            featured=featured,
            avg_rating=round(float(avg_rating or 0), 1),
            recent=recent_products,
            free=free,
            paid=total_products - free,
            license_types=license_types,
        ),
    )
