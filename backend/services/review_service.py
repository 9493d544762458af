# backend/services/review_service.py
import logging
from typing import List, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.order import Order, OrderItem, OrderStatus
from models.product import Product
from models.review import Review, ReviewHelpfulVote
from services.concurrency import commit
from services.errors import NotFoundError

logger = logging.getLogger(__name__)


def _purchase_order_id(db: Session, user_id: int, product_id: int) -> Optional[int]:
    # Most recent non-cancelled order of the user containing the product
    row = (
        db.query(Order.id)
        .join(OrderItem, OrderItem.order_id == Order.id)
        .filter(
            Order.user_id == user_id,
            OrderItem.product_id == product_id,
            Order.status != OrderStatus.CANCELLED.value,
        )
        .order_by(Order.created_at.desc(), Order.id.desc())
        .first()
    )
    return row[0] if row else None


def create_review(
    db: Session,
    user_id: int,
    product_id: int,
    rating: int,
    title: Optional[str] = None,
    comment: Optional[str] = None,
) -> Review:
    if db.get(Product, product_id) is None:
        raise NotFoundError("Product not found")

    order_id = _purchase_order_id(db, user_id, product_id)
    review = Review(
        product_id=product_id,
        user_id=user_id,
        order_id=order_id,
        rating=rating,
        title=title,
        comment=comment,
        is_verified_purchase=order_id is not None,
    )
    db.add(review)
    commit(db)
    db.refresh(review)
    return review


def list_reviews(db: Session, product_id: int) -> List[Review]:
    return (
        db.query(Review)
        .filter(Review.product_id == product_id, Review.is_approved.is_(True))
        .order_by(Review.created_at.desc(), Review.id.desc())
        .all()
    )


def _recount_helpful(db: Session, review_id: int) -> None:
    db.flush()
    helpful = (
        db.query(func.count(ReviewHelpfulVote.id))
        .filter(ReviewHelpfulVote.review_id == review_id, ReviewHelpfulVote.is_helpful.is_(True))
        .scalar_subquery()
    )
    db.execute(
        update(Review).where(Review.id == review_id).values(helpful_count=helpful)
        .execution_options(synchronize_session="fetch")
    )


def vote(db: Session, review_id: int, user_id: int, is_helpful: bool) -> Review:
    """One vote per (review, user); voting again replaces the earlier vote."""
    review = db.get(Review, review_id)
    if not review:
        raise NotFoundError("Review not found")

    existing = (
        db.query(ReviewHelpfulVote)
        .filter(ReviewHelpfulVote.review_id == review_id, ReviewHelpfulVote.user_id == user_id)
        .first()
    )
    if existing:
        existing.is_helpful = is_helpful
    else:
        db.add(ReviewHelpfulVote(review_id=review_id, user_id=user_id, is_helpful=is_helpful))

    try:
        _recount_helpful(db, review_id)
        db.commit()
    except IntegrityError:
        # Concurrent first vote by the same user: update that row instead
        db.rollback()
        db.query(ReviewHelpfulVote).filter(
            ReviewHelpfulVote.review_id == review_id, ReviewHelpfulVote.user_id == user_id
        ).update({ReviewHelpfulVote.is_helpful: is_helpful}, synchronize_session=False)
        _recount_helpful(db, review_id)
        commit(db)

    db.refresh(review)
    return review
