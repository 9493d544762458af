# backend/routes/shop.py
from typing import Optional, List
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from schemas.product import CategoryOut, ProductFilters, ProductListPage, ProductOut
from schemas.review import ReviewCreate, ReviewOut
from services import catalog_service, review_service
from utils.audit import write_log, client_ip
from utils.tokenJWT import get_current_user

# Public storefront: catalog browsing and product reviews
router = APIRouter(
    prefix="/shop",
    tags=["Shop"]
)

@router.get("/categories", response_model=List[CategoryOut])
def list_categories(db: Session = Depends(get_db)):
    return catalog_service.list_categories(db)

@router.get("/products", response_model=ProductListPage)
def list_products(
    category: Optional[str] = Query(None, description="Category slug"),
    search: Optional[str] = Query(None, description="Search by product name"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    filters = ProductFilters(category=category, search=search, limit=limit, offset=offset)
    items, total = catalog_service.list_products(db, filters)
    return {"items": items, "total": total, "limit": limit, "offset": offset}

@router.get("/products/slug/{slug}", response_model=ProductOut)
def get_product_by_slug(slug: str, db: Session = Depends(get_db)):
    return catalog_service.get_product_by_slug(db, slug)

@router.get("/products/{product_id}", response_model=ProductOut)
def get_product(product_id: int, db: Session = Depends(get_db)):
    return catalog_service.get_product(db, product_id)

@router.get("/products/{product_id}/reviews", response_model=List[ReviewOut])
def list_reviews(product_id: int, db: Session = Depends(get_db)):
    catalog_service.get_product(db, product_id)
    return review_service.list_reviews(db, product_id)

@router.post("/products/{product_id}/reviews", response_model=ReviewOut)
def create_review(
    product_id: int,
    payload: ReviewCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    review = review_service.create_review(
        db, current_user.id, product_id, payload.rating, payload.title, payload.comment
    )
    write_log(db, user_id=current_user.id, action="REVIEW_CREATE", resource="reviews", status="SUCCESS",
              ip=client_ip(request), meta={"review_id": review.id, "product_id": product_id,
                                           "verified_purchase": review.is_verified_purchase})
    db.refresh(review)
    return review
