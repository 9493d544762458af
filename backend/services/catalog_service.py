# backend/services/catalog_service.py
import logging
from typing import List, Tuple

from sqlalchemy.orm import Session

from models.cart import CartItem
from models.category import Category
from models.order import OrderItem
from models.product import Product
from models.review import Review
from schemas.product import ProductFilters
from services.concurrency import commit
from services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


# ---- Categories ----

def list_categories(db: Session) -> List[Category]:
    return db.query(Category).order_by(Category.name).all()


def get_category(db: Session, category_id: int) -> Category:
    category = db.get(Category, category_id)
    if not category:
        raise NotFoundError("Category not found")
    return category


def create_category(db: Session, fields: dict) -> Category:
    category = Category(**fields)
    db.add(category)
    commit(db, conflict_message=f"Category slug '{fields.get('slug')}' already exists")
    db.refresh(category)
    return category


def update_category(db: Session, category_id: int, fields: dict) -> Category:
    category = get_category(db, category_id)
    for key, value in fields.items():
        setattr(category, key, value)
    commit(db, conflict_message=f"Category slug '{category.slug}' already exists")
    db.refresh(category)
    return category


def delete_category(db: Session, category_id: int) -> None:
    category = get_category(db, category_id)
    # Products keep existing without a category
    db.query(Product).filter(Product.category_id == category_id).update(
        {Product.category_id: None}, synchronize_session=False
    )
    db.delete(category)
    commit(db)


# ---- Products ----

def list_products(db: Session, filters: ProductFilters) -> Tuple[List[Product], int]:
    """Active products only, ordered by id. Unknown category slugs are ignored."""
    query = db.query(Product).filter(Product.is_active.is_(True))

    if filters.category:
        category = db.query(Category).filter(Category.slug == filters.category).first()
        if category:
            query = query.filter(Product.category_id == category.id)

    if filters.search:
        query = query.filter(Product.name.ilike(f"%{filters.search}%"))

    total = query.count()
    items = query.order_by(Product.id).offset(filters.offset).limit(filters.limit).all()
    return items, total


def get_product(db: Session, product_id: int) -> Product:
    product = db.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product


def get_product_by_slug(db: Session, slug: str) -> Product:
    product = db.query(Product).filter(Product.slug == slug).first()
    if not product:
        raise NotFoundError("Product not found")
    return product


def _reject_stock_edit(fields: dict):
    # Stock is derived from inventory units, never written directly
    if "stock_quantity" in fields:
        raise ValidationError("stock_quantity is derived from inventory units and cannot be set")


def _check_category(db: Session, fields: dict):
    category_id = fields.get("category_id")
    if category_id is not None and db.get(Category, category_id) is None:
        raise NotFoundError("Category not found")


def create_product(db: Session, fields: dict) -> Product:
    _reject_stock_edit(fields)
    _check_category(db, fields)
    product = Product(**fields, stock_quantity=0)
    db.add(product)
    commit(db, conflict_message="Product slug or SKU already exists")
    db.refresh(product)
    logger.info("Product %s created (%s)", product.id, product.slug)
    return product


def update_product(db: Session, product_id: int, fields: dict) -> Product:
    _reject_stock_edit(fields)
    _check_category(db, fields)
    product = get_product(db, product_id)
    for key, value in fields.items():
        setattr(product, key, value)
    commit(db, conflict_message="Product slug or SKU already exists")
    db.refresh(product)
    return product


def delete_product(db: Session, product_id: int) -> None:
    product = get_product(db, product_id)
    # Units, order lines and reviews keep pointing at the product
    referenced = (
        product.units
        or db.query(OrderItem.id).filter(OrderItem.product_id == product_id).first()
        or db.query(Review.id).filter(Review.product_id == product_id).first()
    )
    if referenced:
        raise ValidationError("Product has inventory, orders or reviews; deactivate it instead")
    db.query(CartItem).filter(CartItem.product_id == product_id).delete(synchronize_session=False)
    db.delete(product)
    commit(db)
