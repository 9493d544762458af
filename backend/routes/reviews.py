# backend/routes/reviews.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from schemas.review import ReviewOut, ReviewVote
from services import review_service
from utils.tokenJWT import get_current_user

router = APIRouter(prefix="/reviews", tags=["Reviews"])

# Mark a review helpful / not helpful; voting again replaces the vote
@router.post("/{review_id}/vote", response_model=ReviewOut)
def vote_review(
    review_id: int,
    payload: ReviewVote,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return review_service.vote(db, review_id, current_user.id, payload.is_helpful)
