# backend/routes/products.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
import schemas.product as product_schemas
from services import catalog_service
from utils.audit import write_log, client_ip
from utils.tokenJWT import role_required

# Back-office catalog management (admin only)
router = APIRouter(tags=["Products"])

admin_only = role_required("admin")


# =========================
# CATEGORIES
# =========================
@router.post("/categories", response_model=product_schemas.CategoryOut)
def create_category(
    payload: product_schemas.CategoryCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
):
    category = catalog_service.create_category(db, payload.model_dump())
    write_log(db, user_id=current_user.id, action="CATEGORY_CREATE", resource="categories",
              status="SUCCESS", ip=client_ip(request), meta={"id": category.id, "slug": category.slug})
    return catalog_service.get_category(db, category.id)

@router.put("/categories/{category_id}", response_model=product_schemas.CategoryOut)
def update_category(
    category_id: int,
    payload: product_schemas.CategoryUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
):
    catalog_service.update_category(db, category_id, payload.model_dump(exclude_unset=True))
    write_log(db, user_id=current_user.id, action="CATEGORY_UPDATE", resource="categories",
              status="SUCCESS", ip=client_ip(request), meta={"id": category_id})
    return catalog_service.get_category(db, category_id)

@router.delete("/categories/{category_id}")
def delete_category(
    category_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
):
    catalog_service.delete_category(db, category_id)
    write_log(db, user_id=current_user.id, action="CATEGORY_DELETE", resource="categories",
              status="SUCCESS", ip=client_ip(request), meta={"id": category_id})
    return {"message": "Category deleted"}


# =========================
# PRODUCTS
# =========================
@router.post("/products", response_model=product_schemas.ProductOut)
def create_product(
    payload: product_schemas.ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
):
    product = catalog_service.create_product(db, payload.model_dump())
    write_log(db, user_id=current_user.id, action="PRODUCT_CREATE", resource="products",
              status="SUCCESS", ip=client_ip(request), meta={"id": product.id, "slug": product.slug})
    return catalog_service.get_product(db, product.id)

@router.put("/products/{product_id}", response_model=product_schemas.ProductOut)
def update_product(
    product_id: int,
    payload: product_schemas.ProductUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
):
    fields = payload.model_dump(exclude_unset=True)
    catalog_service.update_product(db, product_id, fields)
    write_log(db, user_id=current_user.id, action="PRODUCT_UPDATE", resource="products",
              status="SUCCESS", ip=client_ip(request), meta={"id": product_id, "fields": sorted(fields)})
    return catalog_service.get_product(db, product_id)

@router.delete("/products/{product_id}")
def delete_product(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(admin_only),
):
    catalog_service.delete_product(db, product_id)
    write_log(db, user_id=current_user.id, action="PRODUCT_DELETE", resource="products",
              status="SUCCESS", ip=client_ip(request), meta={"id": product_id})
    return {"message": "Product deleted"}
