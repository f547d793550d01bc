from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from ..auth.dependencies import CurrentUser
from ..db import serialize, serialize_many
from ..models import Review, User
from ..schemas.review import ReviewCreate, ReviewQuery, ReviewUpdate
from ..services.review_service import ReviewService
from .deps import DbSession

router = APIRouter(prefix="/reviews", tags=["reviews"])


def get_review_service(db: DbSession) -> ReviewService:
    return ReviewService(db)


Reviews = Annotated[ReviewService, Depends(get_review_service)]


def _ensure_can_modify(review: Review, user: User) -> None:
    if review.user_id != user.user_id and not user.is_staff:
        raise HTTPException(status_code=403, detail="You can only modify your own reviews")


@router.post("", status_code=201)
def create_review(body: ReviewCreate, current: CurrentUser, reviews: Reviews):
    user_id = body.user_id or current.user_id
    if user_id != current.user_id and not current.is_staff:
        raise HTTPException(status_code=403, detail="You can only create reviews as yourself")
    return serialize(reviews.create(body, user_id=user_id))


@router.get("")
def list_reviews(query: Annotated[ReviewQuery, Query()], reviews: Reviews):
    return reviews.find_all(query)


@router.get("/product/{product_id}/stats")
def product_review_stats(product_id: int, reviews: Reviews):
    return reviews.product_stats(product_id)


@router.get("/product/{product_id}")
def list_reviews_for_product(product_id: int, reviews: Reviews):
    return serialize_many(reviews.find_by_product(product_id))


@router.get("/user/{user_id}")
def list_reviews_for_user(user_id: int, current: CurrentUser, reviews: Reviews):
    if current.user_id != user_id and not current.is_staff:
        raise HTTPException(status_code=403, detail="You can only access your own reviews")
    return serialize_many(reviews.find_by_user(user_id))


@router.get("/{review_id}")
def get_review(review_id: int, reviews: Reviews):
    return serialize(reviews.find_one(review_id))


@router.patch("/{review_id}/helpful")
def mark_review_helpful(review_id: int, reviews: Reviews):
    return serialize(reviews.mark_helpful(review_id))


@router.patch("/{review_id}")
def update_review(review_id: int, body: ReviewUpdate, current: CurrentUser, reviews: Reviews):
    _ensure_can_modify(reviews.find_one(review_id, with_relations=False), current)
    return serialize(reviews.update(review_id, body))


@router.delete("/{review_id}", status_code=204)
def delete_review(review_id: int, current: CurrentUser, reviews: Reviews):
    _ensure_can_modify(reviews.find_one(review_id, with_relations=False), current)
    reviews.remove(review_id)
    return Response(status_code=204)
